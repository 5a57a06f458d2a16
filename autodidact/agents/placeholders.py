"""Offline collaborators so a session can run end to end without any backend.

None of these generate real content; they exist to exercise the pipeline.
"""

from autodidact.errors import VerificationError
from autodidact.knowledge.models import KnowledgeEntry, SessionMetrics
from autodidact.knowledge.store import KnowledgeStore
from autodidact.session.collaborators import (
    ProductionResult,
    Producer,
    Reflection,
    Reflector,
    Scorer,
    Synthesizer,
    Task,
    VerificationResult,
    Verifier,
)

# Confidence used when the producer gives no hint.
DEFAULT_SCORE = 0.5


class PlaceholderProducer(Producer):
    """Records that a task was attempted, with a low quality hint."""

    def __init__(self, quality_hint: float = 0.5):
        self.quality_hint = quality_hint

    async def produce(self, task: Task) -> ProductionResult:
        tags = [word.lower() for word in task.topic.split() if len(word) > 3][:3]
        return ProductionResult(
            summary=f"Placeholder notes for '{task.label}'. No content backend is configured.",
            sources=[],
            tags=tags,
            quality_hint=self.quality_hint,
        )


class StoreVerifier(Verifier):
    """Passes entries that exist in the store and have non-empty content."""

    def __init__(self, store: KnowledgeStore, min_length: int = 20):
        self.store = store
        self.min_length = min_length

    async def verify(self, entry_id: str) -> VerificationResult:
        entry = self.store.get(entry_id)
        if entry is None:
            raise VerificationError(f"Entry not found: {entry_id}")
        length = len(entry.content.strip())
        return VerificationResult(
            passed=length >= self.min_length,
            details={"length": length, "has_source": bool(entry.source)},
        )


class HintScorer(Scorer):
    """Uses the producer's quality hint, clamped to [0, 1]."""

    async def score(self, task: Task, result: ProductionResult) -> float:
        hint = DEFAULT_SCORE if result.quality_hint is None else result.quality_hint
        return min(1.0, max(0.0, hint))


class KnowledgeSynthesizer(Synthesizer):
    """Concatenates the first line of each entry under a topic."""

    def __init__(self, max_entries: int = 5):
        self.max_entries = max_entries

    async def synthesize(self, topic: str, entries: list[KnowledgeEntry]) -> str | None:
        if len(entries) < 2:
            return None
        lines = [f"- {e.topic}: {e.content.splitlines()[0][:200]}" for e in entries[: self.max_entries] if e.content]
        return f"Synthesis of {len(entries)} entries tagged '{topic}':\n" + "\n".join(lines)


class MetricsReflector(Reflector):
    """Derives improvement suggestions from session counters."""

    async def reflect(self, metrics: SessionMetrics) -> Reflection:
        improvements = []
        attempted = metrics.tasks_completed + metrics.tasks_failed
        if metrics.tasks_failed:
            improvements.append(f"Investigate {metrics.tasks_failed} failed tasks")
        if metrics.tasks_completed and metrics.verifications_passed < metrics.tasks_completed:
            improvements.append("Improve source quality so more entries pass verification")
        if metrics.knowledge_gaps:
            improvements.append(f"Cover remaining gaps: {', '.join(metrics.knowledge_gaps[:3])}")

        return Reflection(
            summary=(
                f"{metrics.session_name}: {metrics.tasks_completed}/{attempted} tasks completed, "
                f"{metrics.verifications_passed} verified"
            ),
            improvements=improvements,
        )
