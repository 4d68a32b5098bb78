"""Configuration management for mindcontext."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .identity import MachineIdentity

logger = logging.getLogger(__name__)

CONFIG_VERSION = "1.0"


class NotInitializedError(RuntimeError):
    """Raised when the mindcontext home has not been set up with ``init``."""


class ConfigError(RuntimeError):
    """Raised when the configuration document is required but unreadable."""


class MindcontextSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    home: Path = Field(default=Path("~/.mindcontext"), validation_alias="MINDCONTEXT_HOME")
    log_level: str = Field(default="WARNING", validation_alias="MINDCONTEXT_LOG_LEVEL")
    git_timeout: float = Field(default=30.0, validation_alias="MINDCONTEXT_GIT_TIMEOUT")
    identity_timeout: float = Field(default=5.0, validation_alias="MINDCONTEXT_IDENTITY_TIMEOUT")
    git_executable: Path | None = Field(default=None, validation_alias="MINDCONTEXT_GIT")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "MINDCONTEXT_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("git_timeout", "identity_timeout")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be > 0 seconds")
        return value

    @property
    def config_file(self) -> Path:
        return self.home / "config.json"

    @property
    def repo_dir(self) -> Path:
        return self.home / "repo"

    @property
    def pending_file(self) -> Path:
        return self.home / "pending.json"

    def updates_dir(self, project: str) -> Path:
        """Return the ledger directory holding update records for ``project``."""

        return self.repo_dir / "projects" / project / "updates"


@lru_cache(maxsize=1)
def get_settings() -> MindcontextSettings:
    """Return cached settings instance."""

    settings = MindcontextSettings()
    settings.home = settings.home.expanduser().resolve()
    if settings.git_executable is not None:
        settings.git_executable = settings.git_executable.expanduser()
    return settings


class ProjectConfig(BaseModel):
    """A project registered with ``connect``."""

    path: str
    category: str = "default"
    openspec: bool = False


class Config(BaseModel):
    """The per-user configuration document."""

    version: str = CONFIG_VERSION
    dashboard_repo: str = ""
    dashboard_url: str = ""
    projects: dict[str, ProjectConfig] = Field(default_factory=dict)
    machine: MachineIdentity


class ConfigStore:
    """Reads and writes ``config.json`` under the settings home."""

    def __init__(self, settings: MindcontextSettings) -> None:
        self._settings = settings

    @property
    def settings(self) -> MindcontextSettings:
        return self._settings

    def is_initialized(self) -> bool:
        return self._settings.config_file.exists() and self._settings.repo_dir.exists()

    @staticmethod
    def create_default(identity: MachineIdentity) -> Config:
        return Config(machine=identity)

    def read(self) -> Config | None:
        """Return the stored config, or ``None`` when missing or invalid."""

        path = self._settings.config_file
        if not path.exists():
            return None
        try:
            return Config.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as exc:
            logger.warning("Ignoring unreadable config", extra={"path": str(path), "error": str(exc)})
            return None

    def require(self) -> Config:
        """Return the stored config or raise when the home is not usable."""

        if not self.is_initialized():
            raise NotInitializedError('mindcontext is not initialized. Run "mindcontext init" first.')
        config = self.read()
        if config is None:
            raise ConfigError(f"Failed to read config at {self._settings.config_file}")
        return config

    def write(self, config: Config) -> None:
        self._settings.home.mkdir(parents=True, exist_ok=True)
        self._settings.config_file.write_text(
            config.model_dump_json(indent=2) + "\n",
            encoding="utf-8",
        )

    def ensure_project_dir(self, project: str) -> Path:
        path = self._settings.updates_dir(project)
        path.mkdir(parents=True, exist_ok=True)
        return path


class PendingPush(BaseModel):
    timestamp: str
    message: str


class PendingQueue:
    """Pushes that failed and should be retried on the next sync or pull."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    def read(self) -> list[PendingPush]:
        if not self._path.exists():
            return []
        try:
            document = json.loads(self._path.read_text(encoding="utf-8"))
            return [PendingPush.model_validate(item) for item in document]
        except (OSError, ValueError, TypeError) as exc:
            logger.warning("Ignoring unreadable pending queue", extra={"error": str(exc)})
            return []

    def add(self, message: str) -> list[PendingPush]:
        pending = self.read()
        pending.append(PendingPush(timestamp=datetime.now(timezone.utc).isoformat(), message=message))
        self._write(pending)
        return pending

    def clear(self) -> None:
        if self._path.exists():
            self._write([])

    def _write(self, pending: list[PendingPush]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = [item.model_dump() for item in pending]
        self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


__all__ = [
    "CONFIG_VERSION",
    "Config",
    "ConfigError",
    "ConfigStore",
    "MindcontextSettings",
    "NotInitializedError",
    "PendingPush",
    "PendingQueue",
    "ProjectConfig",
    "get_settings",
]
