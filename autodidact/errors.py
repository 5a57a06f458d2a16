"""Error taxonomy shared by the stores, the modification ledger and the orchestrator."""


class AutodidactError(Exception):
    """Base class for all autodidact errors."""


class StorageError(AutodidactError):
    """Persistence I/O failed. Fatal to the call that raised it."""


class NotFoundError(AutodidactError):
    """Unknown id, or an item that is not in the state the operation expects."""


class InvalidStateError(AutodidactError):
    """An operation was attempted with arguments or in a lifecycle state it does not accept."""


class ProductionError(AutodidactError):
    """A producer collaborator failed to produce a result for a task."""


class VerificationError(AutodidactError):
    """A verifier collaborator failed while checking an entry."""


class ProposalError(AutodidactError):
    """Change generation for a modification cycle failed."""
