"""Contracts for the collaborators the session orchestrator drives.

Each capability returns an explicit result type; nothing here depends on
how content is actually produced.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from autodidact.knowledge.models import KnowledgeEntry, SessionMetrics


class TaskKind(str, Enum):
    GAP = "gap"
    EXPLORATORY = "exploratory"


@dataclass(frozen=True)
class Task:
    """A unit of work dispatched through produce -> verify -> score."""

    topic: str
    kind: TaskKind = TaskKind.EXPLORATORY
    description: str = ""

    @property
    def label(self) -> str:
        return self.description or self.topic


@dataclass
class ProductionResult:
    summary: str
    sources: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    quality_hint: float | None = None


@dataclass
class VerificationResult:
    passed: bool
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class Reflection:
    summary: str
    improvements: list[str] = field(default_factory=list)


class Producer(ABC):
    @abstractmethod
    async def produce(self, task: Task) -> ProductionResult:
        """Produce content for ``task``. May raise ProductionError."""


class Verifier(ABC):
    @abstractmethod
    async def verify(self, entry_id: str) -> VerificationResult:
        pass


class Scorer(ABC):
    @abstractmethod
    async def score(self, task: Task, result: ProductionResult) -> float:
        """Return a confidence in [0, 1]."""


class Synthesizer(ABC):
    @abstractmethod
    async def synthesize(self, topic: str, entries: list[KnowledgeEntry]) -> str | None:
        """Combine entries into one summary, or None when there is nothing to say."""


class Reflector(ABC):
    @abstractmethod
    async def reflect(self, metrics: SessionMetrics) -> Reflection:
        pass
