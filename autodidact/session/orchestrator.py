"""Session orchestrator - runs one strictly sequential learning session."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from autodidact.errors import InvalidStateError, ProductionError, StorageError
from autodidact.feedback.models import FeedbackCandidate
from autodidact.feedback.queue import FeedbackQueue
from autodidact.knowledge.models import SessionMetrics
from autodidact.knowledge.store import KnowledgeStore
from autodidact.modification.ledger import ModificationLedger
from autodidact.modification.models import Failure, ImprovementOutcome
from autodidact.scheduler.models import ScheduledTask, TaskType
from autodidact.scheduler.scheduler import ScheduledTaskRunner
from autodidact.session.collaborators import (
    Producer,
    Reflection,
    Reflector,
    Scorer,
    Synthesizer,
    Task,
    TaskKind,
    Verifier,
)
from autodidact.session.tasks import TaskGenerator, order_tasks

logger = logging.getLogger(__name__)


@dataclass
class SessionReport:
    metrics: SessionMetrics
    queued_feedback_ids: list[str] = field(default_factory=list)
    synthesized: list[str] = field(default_factory=list)
    reflection: Reflection | None = None
    improvement: ImprovementOutcome | None = None
    errors: list[str] = field(default_factory=list)


class SessionOrchestrator(ScheduledTaskRunner):
    """Drives produce -> verify -> score for each task, then synthesis,
    reflection and (on failures) one self-modification cycle.

    Metrics are persisted exactly once per session, as the last step.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        feedback: FeedbackQueue,
        producer: Producer,
        verifier: Verifier,
        scorer: Scorer,
        synthesizer: Synthesizer | None = None,
        reflector: Reflector | None = None,
        ledger: ModificationLedger | None = None,
        task_generator: TaskGenerator | None = None,
        tasks_per_session: int = 5,
        confidence_threshold: float = 0.7,
        synthesis_top_n: int = 3,
        enable_self_modification: bool = True,
    ):
        self.store = store
        self.feedback = feedback
        self.producer = producer
        self.verifier = verifier
        self.scorer = scorer
        self.synthesizer = synthesizer
        self.reflector = reflector
        self.ledger = ledger
        self.task_generator = task_generator or TaskGenerator()
        self.tasks_per_session = tasks_per_session
        self.confidence_threshold = confidence_threshold
        self.synthesis_top_n = synthesis_top_n
        self.enable_self_modification = enable_self_modification

    async def run_session(self, tasks: list[Task] | None = None, name: str | None = None) -> SessionReport:
        """Run one session. Only a failure to persist metrics propagates."""
        metrics = SessionMetrics(
            session_name=name or f"session_{datetime.now():%Y%m%d_%H%M%S}",
            knowledge_gaps=self.store.identify_gaps(),
        )
        report = SessionReport(metrics=metrics)

        if tasks is None:
            tasks = self.task_generator.generate(self.store, limit=self.tasks_per_session)
        else:
            tasks = order_tasks(list(tasks))
        logger.info("Starting %s with %d tasks", metrics.session_name, len(tasks))

        started = time.monotonic()
        for task in tasks:
            await self._run_task(task, report)
        metrics.research_time_seconds = time.monotonic() - started

        try:
            report.synthesized = await self.synthesize()
        except Exception as e:
            logger.error("Synthesis failed: %s", e)

        if self.reflector is not None:
            try:
                report.reflection = await self.reflector.reflect(metrics)
            except Exception as e:
                logger.error("Reflection failed: %s", e)

        if metrics.tasks_failed > 0 and self.enable_self_modification and self.ledger is not None:
            failure = Failure(
                task="session_tasks",
                error=f"{metrics.tasks_failed} tasks failed: {'; '.join(report.errors)}",
                context={"session": metrics.session_name},
            )
            try:
                report.improvement = await self.ledger.improve(failure)
            except Exception as e:
                logger.error("Self-modification cycle failed: %s", e)

        self.store.record_session(metrics)
        logger.info(
            "Finished %s: %d completed, %d failed, %d verified",
            metrics.session_name,
            metrics.tasks_completed,
            metrics.tasks_failed,
            metrics.verifications_passed,
        )
        return report

    async def _run_task(self, task: Task, report: SessionReport) -> None:
        metrics = report.metrics
        try:
            result = await self.producer.produce(task)
            entry = self.store.add_entry(
                topic=task.topic,
                content=result.summary,
                tags=result.tags,
                source=", ".join(result.sources),
            )
        except Exception as e:
            metrics.tasks_failed += 1
            report.errors.append(f"{task.label}: {e}")
            logger.warning("Task failed: %s: %s", task.label, e)
            return
        metrics.tasks_completed += 1

        passed = False
        try:
            verification = await self.verifier.verify(entry.id)
            passed = verification.passed
        except Exception as e:
            logger.warning("Verification failed for %s: %s", entry.id, e)
        if passed:
            metrics.verifications_passed += 1

        try:
            score = float(await self.scorer.score(task, result))
        except Exception as e:
            logger.warning("Scoring failed for %s: %s", task.label, e)
            score = 0.0

        try:
            if passed:
                self.store.mark_verified(entry.id)
            self.store.record_evaluation(
                kind="task",
                score=score,
                entry_id=entry.id,
                task=task.label,
                passed=passed,
            )
            queued = self.feedback.auto_queue(
                [FeedbackCandidate(
                    type="research",
                    content=result.summary,
                    confidence=score,
                    source=task.topic,
                    metadata={"entry_id": entry.id, "task": task.label},
                )],
                threshold=self.confidence_threshold,
            )
        except StorageError as e:
            logger.error("Bookkeeping failed for %s: %s", task.label, e)
            return
        report.queued_feedback_ids.extend(item.id for item in queued)

    async def synthesize(self) -> list[str]:
        """Synthesize each of the top tags; one topic failing does not stop the rest."""
        if self.synthesizer is None:
            return []

        synthesized = []
        for tag, _count in self.store.top_tags(self.synthesis_top_n):
            entries = [e for e in self.store.all_entries() if tag in e.tags]
            try:
                content = await self.synthesizer.synthesize(tag, entries)
                if content:
                    self.store.add_entry(topic=f"Synthesis: {tag}", content=content, source="synthesis")
                    synthesized.append(tag)
            except Exception as e:
                logger.warning("Synthesis failed for %s: %s", tag, e)
        return synthesized

    async def run_scheduled(self, task: ScheduledTask) -> Any:
        """Entry point for the scheduler."""
        if task.type == TaskType.RESEARCH:
            report = await self.run_session(
                tasks=[Task(topic=task.topic, kind=TaskKind.EXPLORATORY, description=f"Research {task.topic}")],
                name=f"scheduled_{task.name}",
            )
            if report.metrics.tasks_completed == 0 and report.metrics.tasks_failed > 0:
                raise ProductionError("; ".join(report.errors))
            return report

        if task.type == TaskType.SYNTHESIS:
            return await self.synthesize()

        if task.type == TaskType.REFLECTION:
            if self.reflector is None:
                return None
            sessions = self.store.sessions()
            latest = sessions[-1] if sessions else SessionMetrics(session_name=task.name)
            return await self.reflector.reflect(latest)

        if task.type == TaskType.HEALTH_CHECK:
            stats = self.store.get_stats()
            health = {
                "entries": stats.count,
                "sessions": stats.session_count,
                "pending_feedback": len(self.feedback.pending()),
            }
            logger.info("Health check: %s", health)
            return health

        raise InvalidStateError(f"Unknown scheduled task type: {task.type}")
