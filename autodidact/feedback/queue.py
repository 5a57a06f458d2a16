"""Feedback queue - pending -> approved/rejected review workflow."""

import logging
import threading
import uuid
from dataclasses import asdict, replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Iterable

from autodidact.errors import InvalidStateError, NotFoundError
from autodidact.feedback.models import (
    FeedbackCandidate,
    FeedbackInsights,
    FeedbackItem,
    FeedbackStatus,
)
from autodidact.jsonio import atomic_write_json, read_json

logger = logging.getLogger(__name__)

_PARTITIONS = ("pending", "approved", "rejected", "archived")
DEFAULT_RATING = 3


class FeedbackQueue:
    """Review queue persisted as one partitioned JSON document.

    Every state transition rewrites ``queue.json`` in a single atomic
    replace, so moving an item out of ``pending`` and into its terminal
    partition is committed together or not at all.
    """

    def __init__(self, storage_dir: Path | None = None):
        self.storage_dir = storage_dir or (Path.home() / ".autodidact" / "data" / "feedback")
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self._queue_path = self.storage_dir / "queue.json"
        self._partitions: dict[str, list[FeedbackItem]] | None = None
        self._lock = threading.RLock()
        self._closed = False

    @classmethod
    def open(cls, path: Path) -> "FeedbackQueue":
        return cls(storage_dir=Path(path))

    def close(self) -> None:
        with self._lock:
            self._partitions = None
            self._closed = True

    def __enter__(self) -> "FeedbackQueue":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _ensure_loaded(self) -> dict[str, list[FeedbackItem]]:
        if self._closed:
            raise InvalidStateError("Feedback queue is closed")
        if self._partitions is not None:
            return self._partitions

        data = read_json(self._queue_path, default={}) or {}
        self._partitions = {}
        for name in _PARTITIONS:
            items = []
            for raw in data.get(name, []):
                try:
                    items.append(FeedbackItem.from_dict(raw))
                except (KeyError, ValueError, TypeError):
                    continue
            self._partitions[name] = items
        return self._partitions

    def _commit(self, partitions: dict[str, list[FeedbackItem]]) -> None:
        """Persist ``partitions`` and adopt them as the live state."""
        atomic_write_json(
            self._queue_path,
            {name: [item.to_dict() for item in partitions[name]] for name in _PARTITIONS},
        )
        self._partitions = partitions

    def _snapshot(self) -> dict[str, list[FeedbackItem]]:
        return {name: list(items) for name, items in self._ensure_loaded().items()}

    # ------------------------------------------------------------------
    # Queueing
    # ------------------------------------------------------------------

    def queue_for_review(
        self,
        type: str,
        content: str,
        confidence: float | None = None,
        source: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> FeedbackItem:
        """Create a new pending item. Identical content is never merged."""
        item = FeedbackItem(
            id=uuid.uuid4().hex,
            type=type,
            content=content,
            confidence=confidence,
            source=source,
            metadata=dict(metadata or {}),
        )
        with self._lock:
            partitions = self._snapshot()
            partitions["pending"].append(item)
            self._commit(partitions)

        logger.info("Queued for review: %s (%s)", item.id, item.type)
        return item

    def auto_queue(
        self, candidates: Iterable[FeedbackCandidate], threshold: float = 0.7
    ) -> list[FeedbackItem]:
        """Queue every candidate whose confidence is strictly below ``threshold``."""
        queued = [
            self.queue_for_review(
                type=c.type,
                content=c.content,
                confidence=c.confidence,
                source=c.source,
                metadata=c.metadata,
            )
            for c in candidates
            if c.confidence < threshold
        ]
        logger.info("Auto-queued %d items for review", len(queued))
        return queued

    # ------------------------------------------------------------------
    # Reviewing
    # ------------------------------------------------------------------

    def submit_review(
        self,
        item_id: str,
        approved: bool,
        comments: str | None = None,
        corrections: list[str] | None = None,
        rating: int | None = None,
        reviewer: str = "human",
    ) -> FeedbackItem:
        """Move a pending item to ``approved`` or ``rejected``.

        Raises NotFoundError when ``item_id`` is not currently pending,
        which covers both unknown ids and already-reviewed items.
        """
        if rating is not None and not 1 <= rating <= 5:
            raise InvalidStateError(f"Rating must be between 1 and 5, got {rating}")

        with self._lock:
            partitions = self._snapshot()
            pending = partitions["pending"]
            index = next((i for i, it in enumerate(pending) if it.id == item_id), None)
            if index is None:
                raise NotFoundError(f"No pending feedback item: {item_id}")

            original = pending.pop(index)
            status = FeedbackStatus.APPROVED if approved else FeedbackStatus.REJECTED
            reviewed = replace(
                original,
                status=status,
                reviewed_at=datetime.now(),
                reviewer=reviewer,
                comments=comments,
                corrections=list(corrections) if corrections else None,
                rating=rating,
            )
            partitions[status.value].append(reviewed)
            self._commit(partitions)

        logger.info("Review submitted: %s -> %s", item_id, status.value)
        return reviewed

    def approve(self, item_id: str, comments: str = "") -> FeedbackItem:
        return self.submit_review(item_id, approved=True, comments=comments, rating=5)

    def reject(self, item_id: str, reason: str = "") -> FeedbackItem:
        return self.submit_review(item_id, approved=False, comments=reason, rating=1)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def pending(self) -> list[FeedbackItem]:
        with self._lock:
            return list(self._ensure_loaded()["pending"])

    def approved(self) -> list[FeedbackItem]:
        with self._lock:
            return list(self._ensure_loaded()["approved"])

    def rejected(self) -> list[FeedbackItem]:
        with self._lock:
            return list(self._ensure_loaded()["rejected"])

    def get(self, item_id: str) -> FeedbackItem | None:
        """Find an item in any partition."""
        with self._lock:
            for items in self._ensure_loaded().values():
                for item in items:
                    if item.id == item_id:
                        return item
        return None

    def items_needing_correction(self) -> list[FeedbackItem]:
        return [i for i in self.rejected() if i.corrections]

    def learn_from_approved(self) -> FeedbackInsights:
        approved = self.approved()
        rejected = self.rejected()
        reviewed = len(approved) + len(rejected)

        distribution: dict[int, int] = {}
        for item in approved:
            r = item.rating or DEFAULT_RATING
            distribution[r] = distribution.get(r, 0) + 1

        corrections = [c for item in approved if item.corrections for c in item.corrections]

        return FeedbackInsights(
            approved_count=len(approved),
            rejected_count=len(rejected),
            approval_rate=len(approved) / reviewed if reviewed else 0.0,
            avg_rating=(
                sum(item.rating or DEFAULT_RATING for item in approved) / len(approved)
                if approved
                else 0.0
            ),
            rating_distribution=distribution,
            top_corrections=corrections[:10],
        )

    def report(self) -> dict[str, Any]:
        with self._lock:
            partitions = self._ensure_loaded()
            summary = {name: len(partitions[name]) for name in ("pending", "approved", "rejected")}
            pending = list(partitions["pending"])
        summary["total"] = sum(summary.values())

        return {
            "summary": summary,
            "insights": asdict(self.learn_from_approved()),
            "pending_items": [
                {"id": i.id, "type": i.type, "content": i.content[:50]} for i in pending
            ],
            "generated_at": datetime.now().isoformat(),
        }

    def export_for_training(self) -> dict[str, list[dict[str, Any]]]:
        return {
            "approved": [
                {
                    "input": i.content,
                    "output": i.corrections or i.content,
                    "feedback": i.comments,
                    "rating": i.rating,
                }
                for i in self.approved()
            ],
            "rejected": [
                {"input": i.content, "error": i.comments, "corrections": i.corrections}
                for i in self.rejected()
            ],
        }

    def archive_old_items(self, days_old: int = 30, now: datetime | None = None) -> int:
        """Move approved items reviewed more than ``days_old`` days ago to the archive."""
        cutoff = (now or datetime.now()) - timedelta(days=days_old)
        with self._lock:
            partitions = self._snapshot()
            old = [i for i in partitions["approved"] if i.reviewed_at and i.reviewed_at < cutoff]
            if not old:
                return 0
            old_ids = {i.id for i in old}
            partitions["approved"] = [i for i in partitions["approved"] if i.id not in old_ids]
            partitions["archived"].extend(old)
            self._commit(partitions)

        logger.info("Archived %d old feedback items", len(old))
        return len(old)
