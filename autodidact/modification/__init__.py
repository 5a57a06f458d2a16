"""Self-modification: failure analysis, backups, patching and history."""

from autodidact.modification.classifier import can_self_modify, categorize_failure, infer_change_kind
from autodidact.modification.collaborators import ChangeProposer, ProposalResult, RootCauseReasoner
from autodidact.modification.ledger import ModificationLedger
from autodidact.modification.models import (
    Backup,
    Change,
    ChangeKind,
    ChangeResult,
    ChangeStatus,
    Failure,
    FailureAnalysis,
    FailureKind,
    ImprovementOutcome,
    ModificationPhase,
    ModificationRecord,
    TestResult,
)
from autodidact.modification.patching import (
    ManualPatchStrategy,
    PatchStrategy,
    TextualPatchStrategy,
    get_patch_strategy,
)

__all__ = [
    "Backup",
    "Change",
    "ChangeKind",
    "ChangeProposer",
    "ChangeResult",
    "ChangeStatus",
    "Failure",
    "FailureAnalysis",
    "FailureKind",
    "ImprovementOutcome",
    "ManualPatchStrategy",
    "ModificationLedger",
    "ModificationPhase",
    "ModificationRecord",
    "PatchStrategy",
    "ProposalResult",
    "RootCauseReasoner",
    "TestResult",
    "TextualPatchStrategy",
    "can_self_modify",
    "categorize_failure",
    "get_patch_strategy",
    "infer_change_kind",
]
