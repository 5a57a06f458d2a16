"""Session orchestration: task generation and the per-session pipeline."""

from autodidact.session.collaborators import (
    ProductionResult,
    Producer,
    Reflection,
    Reflector,
    Scorer,
    Synthesizer,
    Task,
    TaskKind,
    VerificationResult,
    Verifier,
)
from autodidact.session.orchestrator import SessionOrchestrator, SessionReport
from autodidact.session.tasks import EXPLORATORY_TASKS, TaskGenerator, order_tasks

__all__ = [
    "EXPLORATORY_TASKS",
    "ProductionResult",
    "Producer",
    "Reflection",
    "Reflector",
    "Scorer",
    "SessionOrchestrator",
    "SessionReport",
    "Synthesizer",
    "Task",
    "TaskGenerator",
    "TaskKind",
    "VerificationResult",
    "Verifier",
    "order_tasks",
]
