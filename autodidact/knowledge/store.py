"""Knowledge store - JSONL persistence for entries, session metrics and evaluations."""

import logging
import threading
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any

from autodidact.errors import InvalidStateError, NotFoundError
from autodidact.ids import new_id
from autodidact.jsonio import append_jsonl, atomic_write_lines, read_jsonl
from autodidact.knowledge.models import Evaluation, KnowledgeEntry, KnowledgeStats, SessionMetrics
from autodidact.knowledge.similarity import SimilarityBackend

logger = logging.getLogger(__name__)

REFERENCE_GAPS: tuple[str, ...] = (
    "AI safety practices",
    "cybersecurity",
    "web application security",
    "ethical hacking",
    "LLM prompt engineering",
    "agent architectures",
    "vector databases",
    "RAG systems",
)

# Score reported by similarity_search when results come from keyword fallback.
UNRANKED_SCORE = 1.0


class KnowledgeStore:
    """Durable topic -> content store with session and evaluation logs.

    Three append-only JSONL files under ``storage_dir``:
    ``entries.jsonl`` (knowledge), ``sessions.jsonl`` (metrics) and
    ``evaluations.jsonl`` (scored events). Entries are cached in memory
    after the first read; every mutation is written through before the
    call returns.
    """

    def __init__(
        self,
        storage_dir: Path | None = None,
        similarity: SimilarityBackend | None = None,
    ):
        self.storage_dir = storage_dir or (Path.home() / ".autodidact" / "data" / "knowledge")
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self._entries_path = self.storage_dir / "entries.jsonl"
        self._sessions_path = self.storage_dir / "sessions.jsonl"
        self._evaluations_path = self.storage_dir / "evaluations.jsonl"
        self.similarity = similarity
        self._cache: dict[str, KnowledgeEntry] | None = None
        self._lock = threading.RLock()
        self._closed = False

    @classmethod
    def open(cls, path: Path, similarity: SimilarityBackend | None = None) -> "KnowledgeStore":
        """Open (creating if needed) a store rooted at ``path``."""
        return cls(storage_dir=Path(path), similarity=similarity)

    def close(self) -> None:
        """Drop cached state; further calls raise InvalidStateError."""
        with self._lock:
            self._cache = None
            self._closed = True

    def __enter__(self) -> "KnowledgeStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _check_open(self) -> None:
        if self._closed:
            raise InvalidStateError("Knowledge store is closed")

    def _ensure_loaded(self) -> dict[str, KnowledgeEntry]:
        """Lazy-load entries from disk into cache."""
        self._check_open()
        if self._cache is not None:
            return self._cache

        self._cache = {}
        for data in read_jsonl(self._entries_path):
            try:
                entry = KnowledgeEntry.from_dict(data)
            except (KeyError, ValueError, TypeError):
                continue
            self._cache[entry.id] = entry

        if self.similarity is not None:
            try:
                self.similarity.rebuild(list(self._cache.values()))
            except Exception as e:
                logger.debug("Similarity index rebuild failed: %s", e)

        return self._cache

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def add_entry(
        self,
        topic: str,
        content: str,
        tags: list[str] | None = None,
        source: str = "",
    ) -> KnowledgeEntry:
        """Create and persist a new entry. Raises StorageError if the write fails."""
        with self._lock:
            entries = self._ensure_loaded()
            entry = KnowledgeEntry(
                id=new_id(),
                topic=topic,
                content=content,
                tags=list(dict.fromkeys(tags or [])),
                source=source,
                created_at=datetime.now(),
            )
            append_jsonl(self._entries_path, entry.to_dict())
            entries[entry.id] = entry

        if self.similarity is not None:
            try:
                self.similarity.index(entry)
            except Exception as e:
                logger.debug("Similarity index update failed for %s: %s", entry.id, e)

        logger.info("Added knowledge: %s", topic)
        return entry

    def mark_verified(self, entry_id: str) -> KnowledgeEntry:
        """Flip ``verified`` on an entry."""
        with self._lock:
            entries = self._ensure_loaded()
            entry = entries.get(entry_id)
            if entry is None:
                raise NotFoundError(f"Knowledge entry not found: {entry_id}")
            if entry.verified:
                return entry

            entry.verified = True
            entry.verified_at = datetime.now()
            try:
                atomic_write_lines(self._entries_path, (e.to_dict() for e in entries.values()))
            except Exception:
                entry.verified = False
                entry.verified_at = None
                raise
            return entry

    def get(self, entry_id: str) -> KnowledgeEntry | None:
        with self._lock:
            return self._ensure_loaded().get(entry_id)

    def all_entries(self) -> list[KnowledgeEntry]:
        with self._lock:
            return list(self._ensure_loaded().values())

    def export(self) -> list[dict[str, Any]]:
        """All entries as plain records."""
        return [e.to_dict() for e in self.all_entries()]

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def search(self, query: str) -> list[KnowledgeEntry]:
        """Case-insensitive substring match over topic, content and tags.

        Results keep insertion order.
        """
        q = query.lower()
        return [
            entry
            for entry in self.all_entries()
            if q in entry.topic.lower()
            or q in entry.content.lower()
            or any(q in tag.lower() for tag in entry.tags)
        ]

    def similarity_search(self, query: str, k: int = 5) -> list[tuple[KnowledgeEntry, float]]:
        """Ranked lookup; falls back to keyword search when no backend can answer.

        Fallback results carry ``UNRANKED_SCORE``.
        """
        if self.similarity is not None:
            with self._lock:
                entries = self._ensure_loaded()
                try:
                    ranked = self.similarity.query(query, k)
                except Exception as e:
                    logger.debug("Similarity backend unavailable, using keyword search: %s", e)
                else:
                    return [
                        (entries[entry_id], score)
                        for entry_id, score in ranked
                        if entry_id in entries
                    ][:k]

        return [(entry, UNRANKED_SCORE) for entry in self.search(query)[:max(k, 0)]]

    def identify_gaps(self, candidate_topics: list[str] | tuple[str, ...] | None = None) -> list[str]:
        """Candidates whose lowercase form is not contained in any stored topic."""
        candidates = REFERENCE_GAPS if candidate_topics is None else candidate_topics
        topics = [e.topic.lower() for e in self.all_entries() if e.topic]
        return [
            gap for gap in candidates
            if not any(gap.lower() in topic for topic in topics)
        ]

    def top_tags(self, n: int) -> list[tuple[str, int]]:
        """Most frequent tags, ties broken by first appearance."""
        counts: Counter[str] = Counter()
        for entry in self.all_entries():
            counts.update(entry.tags)
        # Counter.most_common is stable with respect to insertion order.
        return counts.most_common(n) if n > 0 else []

    # ------------------------------------------------------------------
    # Sessions and evaluations
    # ------------------------------------------------------------------

    def record_session(self, metrics: SessionMetrics) -> dict[str, Any]:
        """Append a session's metrics to the session log."""
        with self._lock:
            self._check_open()
            record = metrics.to_dict()
            record["recorded_at"] = datetime.now().isoformat()
            append_jsonl(self._sessions_path, record)
        logger.info("Recorded session %s", metrics.session_name)
        return record

    def sessions(self) -> list[SessionMetrics]:
        with self._lock:
            self._check_open()
            return [SessionMetrics.from_dict(r) for r in read_jsonl(self._sessions_path)]

    def record_evaluation(
        self,
        kind: str,
        score: float,
        entry_id: str | None = None,
        task: str | None = None,
        passed: bool | None = None,
        details: dict[str, Any] | None = None,
    ) -> Evaluation:
        """Append a scored event to the evaluation log."""
        evaluation = Evaluation(
            id=new_id(),
            kind=kind,
            score=float(score),
            entry_id=entry_id,
            task=task,
            passed=passed,
            details=details or {},
        )
        with self._lock:
            self._check_open()
            append_jsonl(self._evaluations_path, evaluation.to_dict())
        return evaluation

    def evaluations(self) -> list[Evaluation]:
        with self._lock:
            self._check_open()
            results = []
            for data in read_jsonl(self._evaluations_path):
                try:
                    results.append(Evaluation.from_dict(data))
                except (KeyError, ValueError, TypeError):
                    continue
            return results

    def average_score(self) -> float:
        scores = [e.score for e in self.evaluations()]
        return sum(scores) / len(scores) if scores else 0.0

    def get_stats(self) -> KnowledgeStats:
        """Pure aggregation over persisted state."""
        sessions = self.sessions()
        return KnowledgeStats(
            count=len(self.all_entries()),
            session_count=len(sessions),
            total_tasks=sum(s.tasks_completed for s in sessions),
            total_research_time_seconds=sum(s.research_time_seconds for s in sessions),
            avg_score=self.average_score(),
            gaps=self.identify_gaps(),
        )
