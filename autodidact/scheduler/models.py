"""Scheduled task models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from autodidact.errors import InvalidStateError


class TaskType(str, Enum):
    RESEARCH = "research"
    SYNTHESIS = "synthesis"
    REFLECTION = "reflection"
    HEALTH_CHECK = "health_check"


WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class Frequency:
    """When a task repeats.

    ``day_of_week`` follows ``datetime.weekday()``: 0 is Monday.
    """

    kind: Literal["hourly", "daily", "weekly"]
    interval_hours: int = 1
    hour: int = 0
    day_of_week: int = 0

    @classmethod
    def hourly(cls, interval_hours: int = 1) -> "Frequency":
        if interval_hours < 1:
            raise InvalidStateError(f"Hourly interval must be >= 1, got {interval_hours}")
        return cls(kind="hourly", interval_hours=interval_hours)

    @classmethod
    def daily(cls, hour: int) -> "Frequency":
        _check_hour(hour)
        return cls(kind="daily", hour=hour)

    @classmethod
    def weekly(cls, day_of_week: int, hour: int) -> "Frequency":
        _check_hour(hour)
        if not 0 <= day_of_week <= 6:
            raise InvalidStateError(f"Day of week must be 0-6, got {day_of_week}")
        return cls(kind="weekly", day_of_week=day_of_week, hour=hour)

    @classmethod
    def parse(cls, text: str) -> "Frequency":
        """Parse ``hourly[:N]``, ``daily:H`` or ``weekly:DAY:H`` (DAY is 0-6 or a name)."""
        parts = [p.strip().lower() for p in text.split(":")]
        try:
            if parts[0] == "hourly" and len(parts) <= 2:
                return cls.hourly(int(parts[1]) if len(parts) == 2 else 1)
            if parts[0] == "daily" and len(parts) == 2:
                return cls.daily(int(parts[1]))
            if parts[0] == "weekly" and len(parts) == 3:
                day = WEEKDAYS.index(parts[1]) if parts[1] in WEEKDAYS else int(parts[1])
                return cls.weekly(day, int(parts[2]))
        except ValueError as e:
            raise InvalidStateError(f"Malformed frequency '{text}': {e}") from e
        raise InvalidStateError(f"Malformed frequency '{text}'")

    def describe(self) -> str:
        if self.kind == "hourly":
            return "hourly" if self.interval_hours == 1 else f"every {self.interval_hours}h"
        if self.kind == "daily":
            return f"daily at {self.hour:02d}:00"
        return f"{WEEKDAYS[self.day_of_week].capitalize()}s at {self.hour:02d}:00"

    def to_dict(self) -> dict[str, Any]:
        if self.kind == "hourly":
            return {"kind": "hourly", "interval_hours": self.interval_hours}
        if self.kind == "daily":
            return {"kind": "daily", "hour": self.hour}
        return {"kind": "weekly", "day_of_week": self.day_of_week, "hour": self.hour}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Frequency":
        kind = data.get("kind")
        if kind == "hourly":
            return cls.hourly(int(data.get("interval_hours", 1)))
        if kind == "daily":
            return cls.daily(int(data["hour"]))
        if kind == "weekly":
            return cls.weekly(int(data["day_of_week"]), int(data["hour"]))
        raise InvalidStateError(f"Unknown frequency kind: {kind}")


def _check_hour(hour: int) -> None:
    if not 0 <= hour <= 23:
        raise InvalidStateError(f"Hour must be 0-23, got {hour}")


@dataclass
class ScheduledTask:
    id: str
    name: str
    type: TaskType
    topic: str
    frequency: Frequency
    next_run: datetime
    enabled: bool = True
    last_run: datetime | None = None
    created_at: datetime = field(default_factory=datetime.now)
    options: dict[str, Any] = field(default_factory=dict)

    def is_due(self, now: datetime) -> bool:
        return self.enabled and self.next_run <= now

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "topic": self.topic,
            "frequency": self.frequency.to_dict(),
            "next_run": self.next_run.isoformat(),
            "enabled": self.enabled,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "created_at": self.created_at.isoformat(),
            "options": self.options,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScheduledTask":
        last_run = data.get("last_run")
        return cls(
            id=data["id"],
            name=data["name"],
            type=TaskType(data["type"]),
            topic=data.get("topic", ""),
            frequency=Frequency.from_dict(data["frequency"]),
            next_run=datetime.fromisoformat(data["next_run"]),
            enabled=bool(data.get("enabled", True)),
            last_run=datetime.fromisoformat(last_run) if last_run else None,
            created_at=datetime.fromisoformat(data["created_at"]),
            options=dict(data.get("options") or {}),
        )


@dataclass
class TaskStatus:
    """A scheduled task as reported by ``TaskScheduler.status``."""

    task: ScheduledTask
    due: bool


@dataclass
class SchedulerStatus:
    enabled: bool
    running: bool
    last_tick: datetime | None
    tasks: list[TaskStatus]
