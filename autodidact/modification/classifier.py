"""Deterministic failure classification and change-kind inference.

Rules are checked in order; the first matching keyword wins.
"""

from autodidact.modification.models import ChangeKind, Failure, FailureKind

FAILURE_RULES: tuple[tuple[FailureKind, tuple[str, ...]], ...] = (
    (FailureKind.TIMEOUT, ("timeout",)),
    (FailureKind.SYNTAX_ERROR, ("syntax",)),
    (FailureKind.IMPORT_ERROR, ("import",)),
    (FailureKind.API_ERROR, ("api", "key")),
    (FailureKind.RESOURCE_ERROR, ("memory",)),
    (FailureKind.BROWSER_ERROR, ("browser",)),
)

# Policy boundary: everything else needs a human.
SELF_MODIFIABLE: frozenset[FailureKind] = frozenset({
    FailureKind.TIMEOUT,
    FailureKind.SYNTAX_ERROR,
    FailureKind.IMPORT_ERROR,
    FailureKind.BROWSER_ERROR,
})

CHANGE_KIND_RULES: tuple[tuple[ChangeKind, tuple[str, ...]], ...] = (
    (ChangeKind.INCREASE_TIMEOUT, ("increase timeout", "add timeout", "longer timeout")),
    (ChangeKind.ADD_RETRY, ("retry", "backoff")),
    (ChangeKind.ADD_ERROR_HANDLING, ("error handling", "try-except", "try/except", "try-catch")),
)


def categorize_failure(failure: Failure) -> FailureKind:
    error = (failure.error or "").lower()
    for kind, keywords in FAILURE_RULES:
        if any(k in error for k in keywords):
            return kind
    return FailureKind.UNKNOWN


def can_self_modify(failure: Failure) -> bool:
    return categorize_failure(failure) in SELF_MODIFIABLE


def infer_change_kind(description: str) -> ChangeKind:
    lower = description.lower()
    for kind, keywords in CHANGE_KIND_RULES:
        if any(k in lower for k in keywords):
            return kind
    return ChangeKind.NOTE
