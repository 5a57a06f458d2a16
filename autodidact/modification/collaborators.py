"""Contracts for the reasoning collaborators the ledger consumes."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Literal

from autodidact.modification.models import Change, Failure, FailureAnalysis


@dataclass
class ProposalResult:
    """Tagged result of a change proposal.

    ``proposed`` carries changes (possibly none); ``unparsable`` keeps the
    raw output for the logs; ``unavailable`` means the backend could not be
    reached. The ledger treats the last two as "no changes".
    """

    kind: Literal["proposed", "unparsable", "unavailable"]
    changes: list[Change] = field(default_factory=list)
    raw: str = ""

    @classmethod
    def proposed(cls, changes: list[Change]) -> "ProposalResult":
        return cls(kind="proposed", changes=list(changes))

    @classmethod
    def unparsable(cls, raw: str) -> "ProposalResult":
        return cls(kind="unparsable", raw=raw)

    @classmethod
    def unavailable(cls, reason: str = "") -> "ProposalResult":
        return cls(kind="unavailable", raw=reason)


class ChangeProposer(ABC):
    @abstractmethod
    async def propose(self, failure: Failure, analysis: FailureAnalysis) -> ProposalResult:
        """Suggest changes that would address ``failure``."""


class RootCauseReasoner(ABC):
    @abstractmethod
    async def explain(self, failure: Failure) -> str:
        """Return a one or two sentence root-cause summary."""
