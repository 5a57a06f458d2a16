"""Data models for the human feedback queue."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class FeedbackStatus(str, Enum):
    """Review state. ``approved`` and ``rejected`` are terminal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class FeedbackItem:
    """A unit of output awaiting (or past) human adjudication."""

    id: str
    type: str
    content: str
    confidence: float | None = None
    status: FeedbackStatus = FeedbackStatus.PENDING
    source: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)
    reviewed_at: datetime | None = None
    reviewer: str | None = None
    comments: str | None = None
    corrections: list[str] | None = None
    rating: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "content": self.content,
            "confidence": self.confidence,
            "status": self.status.value,
            "source": self.source,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "reviewer": self.reviewer,
            "comments": self.comments,
            "corrections": self.corrections,
            "rating": self.rating,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FeedbackItem":
        reviewed_at = data.get("reviewed_at")
        return cls(
            id=data["id"],
            type=data.get("type", ""),
            content=data.get("content", ""),
            confidence=data.get("confidence"),
            status=FeedbackStatus(data.get("status", "pending")),
            source=data.get("source", ""),
            metadata=dict(data.get("metadata") or {}),
            created_at=datetime.fromisoformat(data["created_at"]),
            reviewed_at=datetime.fromisoformat(reviewed_at) if reviewed_at else None,
            reviewer=data.get("reviewer"),
            comments=data.get("comments"),
            corrections=data.get("corrections"),
            rating=data.get("rating"),
        )


@dataclass
class FeedbackCandidate:
    """An output offered to ``FeedbackQueue.auto_queue``."""

    type: str
    content: str
    confidence: float
    source: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class FeedbackInsights:
    """Aggregates over reviewed items.

    ``approval_rate`` is 0.0 when no item has been reviewed and
    ``avg_rating`` is 0.0 when no item has been approved.
    """

    approved_count: int
    rejected_count: int
    approval_rate: float
    avg_rating: float
    rating_distribution: dict[int, int] = field(default_factory=dict)
    top_corrections: list[str] = field(default_factory=list)
