"""Data models for the self-modification ledger."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class FailureKind(str, Enum):
    """Closed set of failure categories."""

    TIMEOUT = "timeout"
    SYNTAX_ERROR = "syntax_error"
    IMPORT_ERROR = "import_error"
    API_ERROR = "api_error"
    RESOURCE_ERROR = "resource_error"
    BROWSER_ERROR = "browser_error"
    UNKNOWN = "unknown"


class ChangeKind(str, Enum):
    """What a proposed change asks the patch strategy to do."""

    INCREASE_TIMEOUT = "increase_timeout"
    ADD_RETRY = "add_retry"
    ADD_ERROR_HANDLING = "add_error_handling"
    NOTE = "note"


class ChangeStatus(str, Enum):
    APPLIED = "applied"
    MANUAL = "manual"
    FAILED = "failed"


class ModificationPhase(str, Enum):
    """States of one modification cycle."""

    IDLE = "idle"
    ANALYZING = "analyzing"
    NOT_MODIFIABLE = "not_modifiable"
    PROPOSING = "proposing"
    BACKING_UP = "backing_up"
    APPLYING = "applying"
    TESTING = "testing"
    RECORDED = "recorded"


@dataclass
class Failure:
    """Descriptor of something that went wrong."""

    task: str
    error: str
    stack: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"task": self.task, "error": self.error, "stack": self.stack, "context": self.context}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Failure":
        return cls(
            task=data.get("task", ""),
            error=data.get("error", ""),
            stack=data.get("stack"),
            context=dict(data.get("context") or {}),
        )


@dataclass
class FailureAnalysis:
    kind: FailureKind
    root_cause: str
    can_self_modify: bool


@dataclass
class Change:
    """A reviewable request to alter one file."""

    target_file: str
    change_description: str
    reason: str = ""
    kind: ChangeKind = ChangeKind.NOTE

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_file": self.target_file,
            "change_description": self.change_description,
            "reason": self.reason,
            "kind": self.kind.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Change":
        return cls(
            target_file=data["target_file"],
            change_description=data.get("change_description", ""),
            reason=data.get("reason", ""),
            kind=ChangeKind(data.get("kind", ChangeKind.NOTE.value)),
        )


@dataclass
class ChangeResult:
    target_file: str
    status: ChangeStatus
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status != ChangeStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        return {"target_file": self.target_file, "status": self.status.value, "error": self.error}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChangeResult":
        return cls(
            target_file=data["target_file"],
            status=ChangeStatus(data["status"]),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class BackupFile:
    path: str
    content: str


@dataclass(frozen=True)
class Backup:
    """Immutable snapshot of the configured file set."""

    id: str
    timestamp: datetime
    files: tuple[BackupFile, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "files": [{"path": f.path, "content": f.content} for f in self.files],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Backup":
        return cls(
            id=data["id"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            files=tuple(BackupFile(path=f["path"], content=f["content"]) for f in data.get("files", [])),
        )


@dataclass
class TestResult:
    __test__ = False  # not a pytest class

    success: bool
    error: str | None = None


@dataclass
class ModificationRecord:
    """One attempted self-modification, appended to the history log."""

    failure: Failure
    root_cause_summary: str
    can_self_modify: bool
    proposed_changes: list[Change]
    applied_results: list[ChangeResult]
    test_result: TestResult
    backup_id: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "failure": self.failure.to_dict(),
            "root_cause_summary": self.root_cause_summary,
            "can_self_modify": self.can_self_modify,
            "proposed_changes": [c.to_dict() for c in self.proposed_changes],
            "applied_results": [r.to_dict() for r in self.applied_results],
            "test_result": {"success": self.test_result.success, "error": self.test_result.error},
            "backup_id": self.backup_id,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModificationRecord":
        test = data.get("test_result") or {}
        return cls(
            failure=Failure.from_dict(data.get("failure") or {}),
            root_cause_summary=data.get("root_cause_summary", ""),
            can_self_modify=bool(data.get("can_self_modify", False)),
            proposed_changes=[Change.from_dict(c) for c in data.get("proposed_changes", [])],
            applied_results=[ChangeResult.from_dict(r) for r in data.get("applied_results", [])],
            test_result=TestResult(success=bool(test.get("success")), error=test.get("error")),
            backup_id=data.get("backup_id", ""),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


@dataclass
class ImprovementOutcome:
    """Result of ``ModificationLedger.improve``."""

    improved: bool
    reason: str
    analysis: FailureAnalysis
    record: ModificationRecord | None = None
