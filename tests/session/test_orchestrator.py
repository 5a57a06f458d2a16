"""Tests for the session orchestrator."""

from datetime import datetime

import pytest

from autodidact.errors import ProductionError, StorageError
from autodidact.feedback import FeedbackQueue
from autodidact.knowledge import KnowledgeStore
from autodidact.modification import FailureKind, ImprovementOutcome
from autodidact.modification.models import FailureAnalysis
from autodidact.scheduler import Frequency, ScheduledTask, TaskType
from autodidact.session import (
    ProductionResult,
    Producer,
    Reflection,
    Reflector,
    Scorer,
    SessionOrchestrator,
    Synthesizer,
    Task,
    TaskKind,
    VerificationResult,
    Verifier,
)


class FakeProducer(Producer):
    def __init__(self, fail_on=(), tags=("agents",)):
        self.fail_on = set(fail_on)
        self.tags = list(tags)
        self.calls = []

    async def produce(self, task):
        self.calls.append(task.topic)
        if task.topic in self.fail_on:
            raise ProductionError(f"could not research {task.topic}")
        return ProductionResult(summary=f"notes on {task.topic}", sources=["https://example.com"], tags=self.tags)


class FakeVerifier(Verifier):
    def __init__(self, passed=True):
        self.passed = passed

    async def verify(self, entry_id):
        return VerificationResult(passed=self.passed)


class FakeScorer(Scorer):
    def __init__(self, score=0.9):
        self.value = score

    async def score(self, task, result):
        return self.value


class FakeLedger:
    def __init__(self, error=None):
        self.failures = []
        self.error = error

    async def improve(self, failure):
        self.failures.append(failure)
        if self.error:
            raise self.error
        analysis = FailureAnalysis(kind=FailureKind.UNKNOWN, root_cause="", can_self_modify=False)
        return ImprovementOutcome(improved=False, reason="cannot_self_modify", analysis=analysis)


class FailingSynthesizer(Synthesizer):
    def __init__(self, fail_topic):
        self.fail_topic = fail_topic
        self.topics = []

    async def synthesize(self, topic, entries):
        self.topics.append(topic)
        if topic == self.fail_topic:
            raise RuntimeError("synthesis broke")
        return f"summary of {topic}"


class BrokenReflector(Reflector):
    async def reflect(self, metrics):
        raise RuntimeError("reflection broke")


def _tasks(*topics):
    return [Task(topic=t, kind=TaskKind.EXPLORATORY) for t in topics]


@pytest.fixture
def store(temp_dir):
    return KnowledgeStore(storage_dir=temp_dir / "knowledge")


@pytest.fixture
def feedback(temp_dir):
    return FeedbackQueue(storage_dir=temp_dir / "feedback")


def _orchestrator(store, feedback, **kwargs):
    kwargs.setdefault("producer", FakeProducer())
    kwargs.setdefault("verifier", FakeVerifier())
    kwargs.setdefault("scorer", FakeScorer())
    return SessionOrchestrator(store=store, feedback=feedback, **kwargs)


class TestRunSession:
    @pytest.mark.asyncio
    async def test_failed_task_is_counted_and_triggers_one_improvement(self, store, feedback):
        ledger = FakeLedger()
        orchestrator = _orchestrator(store, feedback, producer=FakeProducer(fail_on={"two"}), ledger=ledger)

        report = await orchestrator.run_session(tasks=_tasks("one", "two", "three"))

        assert report.metrics.tasks_completed == 2
        assert report.metrics.tasks_failed == 1
        assert len(ledger.failures) == 1
        assert ledger.failures[0].task == "session_tasks"
        assert "1 tasks failed" in ledger.failures[0].error
        assert "could not research two" in ledger.failures[0].error

    @pytest.mark.asyncio
    async def test_no_failures_no_improvement(self, store, feedback):
        ledger = FakeLedger()
        report = await _orchestrator(store, feedback, ledger=ledger).run_session(tasks=_tasks("one"))

        assert ledger.failures == []
        assert report.improvement is None

    @pytest.mark.asyncio
    async def test_self_modification_can_be_disabled(self, store, feedback):
        ledger = FakeLedger()
        orchestrator = _orchestrator(
            store, feedback, producer=FakeProducer(fail_on={"one"}), ledger=ledger, enable_self_modification=False
        )
        await orchestrator.run_session(tasks=_tasks("one"))
        assert ledger.failures == []

    @pytest.mark.asyncio
    async def test_results_stored_verified_and_evaluated(self, store, feedback):
        report = await _orchestrator(store, feedback).run_session(tasks=_tasks("one", "two"))

        assert report.metrics.verifications_passed == 2
        entries = store.all_entries()
        assert [e.topic for e in entries] == ["one", "two"]
        assert all(e.verified for e in entries)
        evaluations = store.evaluations()
        assert [e.entry_id for e in evaluations] == [e.id for e in entries]
        assert all(e.score == 0.9 for e in evaluations)

    @pytest.mark.asyncio
    async def test_low_confidence_results_queued(self, store, feedback):
        orchestrator = _orchestrator(store, feedback, scorer=FakeScorer(0.5), confidence_threshold=0.7)
        report = await orchestrator.run_session(tasks=_tasks("one"))

        pending = feedback.pending()
        assert [i.id for i in pending] == report.queued_feedback_ids
        assert pending[0].confidence == 0.5
        assert pending[0].metadata["entry_id"] == store.all_entries()[0].id

    @pytest.mark.asyncio
    async def test_high_confidence_results_not_queued(self, store, feedback):
        await _orchestrator(store, feedback, scorer=FakeScorer(0.9)).run_session(tasks=_tasks("one"))
        assert feedback.pending() == []

    @pytest.mark.asyncio
    async def test_failed_verification(self, store, feedback):
        report = await _orchestrator(store, feedback, verifier=FakeVerifier(False)).run_session(tasks=_tasks("one"))
        assert report.metrics.verifications_passed == 0
        assert store.all_entries()[0].verified is False

    @pytest.mark.asyncio
    async def test_tasks_run_gap_first_in_order(self, store, feedback):
        producer = FakeProducer()
        tasks = [Task("e1"), Task("g1", TaskKind.GAP), Task("e2"), Task("g2", TaskKind.GAP)]
        await _orchestrator(store, feedback, producer=producer).run_session(tasks=tasks)
        assert producer.calls == ["g1", "g2", "e1", "e2"]

    @pytest.mark.asyncio
    async def test_generated_tasks_respect_limit(self, store, feedback):
        producer = FakeProducer()
        await _orchestrator(store, feedback, producer=producer, tasks_per_session=2).run_session()
        assert producer.calls == ["AI safety practices", "cybersecurity"]

    @pytest.mark.asyncio
    async def test_metrics_recorded_once(self, store, feedback):
        report = await _orchestrator(store, feedback).run_session(tasks=_tasks("one"), name="s1")

        sessions = store.sessions()
        assert len(sessions) == 1
        assert sessions[0].session_name == "s1"
        assert sessions[0].tasks_completed == 1
        assert report.metrics.knowledge_gaps == sessions[0].knowledge_gaps
        assert sessions[0].research_time_seconds >= 0


class TestPostTaskSteps:
    @pytest.mark.asyncio
    async def test_synthesis_failure_per_topic_is_isolated(self, store, feedback):
        synthesizer = FailingSynthesizer(fail_topic="alpha")
        producer = FakeProducer(tags=("alpha", "beta"))
        orchestrator = _orchestrator(store, feedback, producer=producer, synthesizer=synthesizer, synthesis_top_n=2)

        report = await orchestrator.run_session(tasks=_tasks("one"))

        assert synthesizer.topics == ["alpha", "beta"]
        assert report.synthesized == ["beta"]
        assert store.search("Synthesis: beta")[0].content == "summary of beta"

    @pytest.mark.asyncio
    async def test_reflection_and_improve_failures_do_not_block_metrics(self, store, feedback):
        orchestrator = _orchestrator(
            store,
            feedback,
            producer=FakeProducer(fail_on={"one"}),
            reflector=BrokenReflector(),
            ledger=FakeLedger(error=StorageError("backup failed")),
        )

        report = await orchestrator.run_session(tasks=_tasks("one"))

        assert report.reflection is None
        assert report.improvement is None
        assert len(store.sessions()) == 1

    @pytest.mark.asyncio
    async def test_reflection_attached(self, store, feedback):
        class StaticReflector(Reflector):
            async def reflect(self, metrics):
                return Reflection(summary=metrics.session_name, improvements=["more"])

        report = await _orchestrator(store, feedback, reflector=StaticReflector()).run_session(
            tasks=_tasks("one"), name="s9"
        )
        assert report.reflection.summary == "s9"

    @pytest.mark.asyncio
    async def test_metrics_storage_failure_propagates(self, store, feedback):
        orchestrator = _orchestrator(store, feedback)

        def fail(metrics):
            raise StorageError("disk full")

        store.record_session = fail
        with pytest.raises(StorageError):
            await orchestrator.run_session(tasks=_tasks("one"))


class TestRunScheduled:
    def _scheduled(self, type_, topic="agents"):
        return ScheduledTask(
            id="t1",
            name="job",
            type=type_,
            topic=topic,
            frequency=Frequency.daily(9),
            next_run=datetime(2025, 1, 1),
        )

    @pytest.mark.asyncio
    async def test_research_runs_a_session_on_the_topic(self, store, feedback):
        producer = FakeProducer()
        report = await _orchestrator(store, feedback, producer=producer).run_scheduled(
            self._scheduled(TaskType.RESEARCH, "vector search")
        )
        assert producer.calls == ["vector search"]
        assert report.metrics.session_name == "scheduled_job"

    @pytest.mark.asyncio
    async def test_research_failure_raises_for_retry(self, store, feedback):
        orchestrator = _orchestrator(store, feedback, producer=FakeProducer(fail_on={"x"}))
        with pytest.raises(ProductionError):
            await orchestrator.run_scheduled(self._scheduled(TaskType.RESEARCH, "x"))

    @pytest.mark.asyncio
    async def test_health_check(self, store, feedback):
        feedback.queue_for_review("r", "c")
        health = await _orchestrator(store, feedback).run_scheduled(self._scheduled(TaskType.HEALTH_CHECK))
        assert health == {"entries": 0, "sessions": 0, "pending_feedback": 1}

    @pytest.mark.asyncio
    async def test_synthesis_without_synthesizer(self, store, feedback):
        assert await _orchestrator(store, feedback).run_scheduled(self._scheduled(TaskType.SYNTHESIS)) == []
