"""Data models for the knowledge store."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class KnowledgeEntry:
    """A persisted finding keyed by topic.

    Immutable once created except for the ``verified`` flip.
    """

    id: str
    topic: str
    content: str
    tags: list[str] = field(default_factory=list)
    source: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    verified: bool = False
    verified_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "topic": self.topic,
            "content": self.content,
            "tags": self.tags,
            "source": self.source,
            "created_at": self.created_at.isoformat(),
            "verified": self.verified,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KnowledgeEntry":
        verified_at = data.get("verified_at")
        return cls(
            id=data["id"],
            topic=data["topic"],
            content=data.get("content", ""),
            tags=list(data.get("tags", [])),
            source=data.get("source", ""),
            created_at=datetime.fromisoformat(data["created_at"]),
            verified=bool(data.get("verified", False)),
            verified_at=datetime.fromisoformat(verified_at) if verified_at else None,
        )


@dataclass
class SessionMetrics:
    """Counters for one orchestrated run."""

    session_name: str
    tasks_completed: int = 0
    tasks_failed: int = 0
    verifications_passed: int = 0
    research_time_seconds: float = 0.0
    knowledge_gaps: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionMetrics":
        return cls(
            session_name=data.get("session_name", ""),
            tasks_completed=int(data.get("tasks_completed", 0)),
            tasks_failed=int(data.get("tasks_failed", 0)),
            verifications_passed=int(data.get("verifications_passed", 0)),
            research_time_seconds=float(data.get("research_time_seconds", 0.0)),
            knowledge_gaps=list(data.get("knowledge_gaps", [])),
        )


@dataclass
class Evaluation:
    """A scored event (verification or task quality)."""

    id: str
    kind: str
    score: float
    entry_id: str | None = None
    task: str | None = None
    passed: bool | None = None
    details: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Evaluation":
        return cls(
            id=data["id"],
            kind=data.get("kind", ""),
            score=float(data["score"]),
            entry_id=data.get("entry_id"),
            task=data.get("task"),
            passed=data.get("passed"),
            details=dict(data.get("details") or {}),
            created_at=datetime.fromisoformat(data["created_at"]),
        )


@dataclass
class KnowledgeStats:
    """Aggregates over persisted knowledge, metrics and evaluations."""

    count: int
    session_count: int
    total_tasks: int
    total_research_time_seconds: float
    avg_score: float
    gaps: list[str] = field(default_factory=list)
