"""Configuration schema using Pydantic."""

import json
import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_BACKUP_FILES = [
    "autodidact/__init__.py",
    "autodidact/session/orchestrator.py",
    "autodidact/session/tasks.py",
    "autodidact/knowledge/store.py",
]


class StorageConfig(BaseModel):
    """Where the knowledge, feedback, modification, schedule and tool stores live."""

    root: str = "~/.autodidact/data"


class SessionConfig(BaseModel):
    """Per-run orchestration settings."""

    tasks_per_session: int = Field(default=5, ge=0)
    confidence_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    synthesis_top_n: int = Field(default=3, ge=0)
    enable_self_modification: bool = True


class ModificationConfig(BaseModel):
    """Self-modification settings."""

    project_root: str = "."
    backup_files: list[str] = Field(default_factory=lambda: list(DEFAULT_BACKUP_FILES))
    entry_point: str = "autodidact/__init__.py"
    max_backups: int = Field(default=5, ge=1)
    patch_strategy: Literal["manual", "textual"] = "manual"


class SchedulerConfig(BaseModel):
    """Scheduler timing."""

    tick_seconds: float = Field(default=60.0, gt=0)
    retry_delay_seconds: int = Field(default=300, gt=0)


class ProviderConfig(BaseModel):
    """OpenAI-compatible LLM endpoint used by the reasoning collaborators."""

    api_key: str = ""
    api_base: str | None = None
    model: str = "gpt-4o-mini"


class LoggingConfig(BaseModel):
    level: str = "INFO"


class Config(BaseModel):
    """Root configuration."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    modification: ModificationConfig = Field(default_factory=ModificationConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def storage_path(self) -> Path:
        """Get expanded storage root."""
        return Path(self.storage.root).expanduser()

    @property
    def project_path(self) -> Path:
        """Get expanded project root for self-modification."""
        return Path(self.modification.project_root).expanduser()

    def has_llm(self) -> bool:
        """True when an LLM endpoint is configured."""
        return bool(self.provider.api_key or self.provider.api_base)


def get_config_path() -> Path:
    """Get the config file path."""
    return Path.home() / ".autodidact" / "config.json"


def load_config(path: Path | None = None) -> Config:
    """Load configuration from file, falling back to defaults."""
    config_path = path or get_config_path()

    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
            return Config(**data)
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.warning("Ignoring invalid config at %s: %s", config_path, e)

    return Config()


def save_config(config: Config, path: Path | None = None) -> None:
    """Save configuration to file."""
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(config.model_dump_json(indent=2))
