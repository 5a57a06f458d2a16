"""Wiring from configuration to stores and collaborators, plus CLI error mapping."""

from contextlib import contextmanager
from datetime import timedelta
from functools import cached_property
from pathlib import Path
from typing import Iterator

import typer
from rich.console import Console

from autodidact.agents import (
    HintScorer,
    KnowledgeSynthesizer,
    LLMChangeProposer,
    LLMRootCauseReasoner,
    MetricsReflector,
    PlaceholderProducer,
    StoreVerifier,
)
from autodidact.config import Config, load_config
from autodidact.errors import InvalidStateError, NotFoundError, StorageError
from autodidact.feedback import FeedbackQueue
from autodidact.knowledge import HashingVectorIndex, KnowledgeStore
from autodidact.modification import ModificationLedger, get_patch_strategy
from autodidact.providers import OpenAICompatibleProvider
from autodidact.scheduler import TaskScheduler
from autodidact.session import SessionOrchestrator
from autodidact.tools import ToolCatalog

EXIT_NOT_FOUND = 2
EXIT_INVALID_STATE = 3
EXIT_STORAGE_ERROR = 4

console = Console()

_config_path: Path | None = None


def set_config_path(path: Path | None) -> None:
    global _config_path
    _config_path = path


def get_runtime() -> "Runtime":
    return Runtime(load_config(_config_path))


@contextmanager
def handle_errors() -> Iterator[None]:
    """Map core errors to CLI exit codes."""
    try:
        yield
    except NotFoundError as e:
        console.print(f"[red]Not found:[/red] {e}")
        raise typer.Exit(EXIT_NOT_FOUND)
    except InvalidStateError as e:
        console.print(f"[red]Invalid state:[/red] {e}")
        raise typer.Exit(EXIT_INVALID_STATE)
    except StorageError as e:
        console.print(f"[red]Storage error:[/red] {e}")
        raise typer.Exit(EXIT_STORAGE_ERROR)


class Runtime:
    """Lazily builds each component from one Config."""

    def __init__(self, config: Config):
        self.config = config

    @property
    def root(self) -> Path:
        return self.config.storage_path

    @cached_property
    def provider(self) -> OpenAICompatibleProvider | None:
        if not self.config.has_llm():
            return None
        return OpenAICompatibleProvider(
            api_key=self.config.provider.api_key or None,
            api_base=self.config.provider.api_base,
            default_model=self.config.provider.model,
        )

    @cached_property
    def knowledge(self) -> KnowledgeStore:
        return KnowledgeStore.open(self.root / "knowledge", similarity=HashingVectorIndex())

    @cached_property
    def feedback(self) -> FeedbackQueue:
        return FeedbackQueue.open(self.root / "feedback")

    @cached_property
    def ledger(self) -> ModificationLedger:
        mod = self.config.modification
        proposer = reasoner = None
        if self.provider is not None:
            proposer = LLMChangeProposer(self.provider, allowed_files=mod.backup_files)
            reasoner = LLMRootCauseReasoner(self.provider)
        return ModificationLedger(
            project_root=self.config.project_path,
            storage_dir=self.root / "modification",
            backup_files=mod.backup_files,
            entry_point=mod.entry_point,
            max_backups=mod.max_backups,
            patch_strategy=get_patch_strategy(mod.patch_strategy),
            proposer=proposer,
            reasoner=reasoner,
        )

    @cached_property
    def orchestrator(self) -> SessionOrchestrator:
        session = self.config.session
        return SessionOrchestrator(
            store=self.knowledge,
            feedback=self.feedback,
            producer=PlaceholderProducer(),
            verifier=StoreVerifier(self.knowledge),
            scorer=HintScorer(),
            synthesizer=KnowledgeSynthesizer(),
            reflector=MetricsReflector(),
            ledger=self.ledger,
            tasks_per_session=session.tasks_per_session,
            confidence_threshold=session.confidence_threshold,
            synthesis_top_n=session.synthesis_top_n,
            enable_self_modification=session.enable_self_modification,
        )

    @cached_property
    def scheduler(self) -> TaskScheduler:
        return TaskScheduler(
            storage_dir=self.root / "scheduler",
            runner=self.orchestrator,
            tick_seconds=self.config.scheduler.tick_seconds,
            retry_delay=timedelta(seconds=self.config.scheduler.retry_delay_seconds),
        )

    @cached_property
    def tools(self) -> ToolCatalog:
        return ToolCatalog(self.root / "tools")
