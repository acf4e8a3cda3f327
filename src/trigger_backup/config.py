from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from croniter import CroniterBadCronError, croniter
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .errors import ConfigurationError
from .storage import ensure_directory

ROOT_ENV = "TRIGGER_BACKUP_ROOT"
DEFAULT_ROOT = "~/Backup"
DEFAULT_ARCHIVE_FORMAT = "tar"

ArchiveFormat = Literal["tar", "zip"]
Compressor = Literal["gzip", "bzip2", "xz"]

_FORBIDDEN_TRIGGER_CHARS = set(",*?[] \t\r\n/\\")


def default_root() -> Path:
    return Path(os.getenv(ROOT_ENV, DEFAULT_ROOT)).expanduser()


def trigger_name_error(value: str) -> Optional[str]:
    """Return why ``value`` cannot name a trigger, or ``None`` when it can."""
    if not value:
        return "Trigger name must not be empty."
    if value in (".", ".."):
        return f"Trigger '{value}' is not a valid name."
    bad = sorted(_FORBIDDEN_TRIGGER_CHARS.intersection(value))
    if bad:
        return f"Trigger '{value}' contains forbidden characters: {''.join(bad)!r}"
    return None


# --- Runtime settings --------------------------------------------------------


class Settings(BaseModel):
    """Filesystem roots and flags for one process invocation."""

    config_file: Path
    data_path: Path
    log_path: Path
    cache_path: Path
    tmp_path: Path
    quiet: bool = False

    @field_validator("config_file", "data_path", "log_path", "cache_path", "tmp_path")
    @classmethod
    def _expand_path(cls, value: Path) -> Path:
        return value.expanduser()

    @classmethod
    def from_overrides(cls, root: Optional[Path] = None, **overrides: Any) -> "Settings":
        """Merge explicitly supplied values over the defaults derived from ``root``."""
        base = Path(root).expanduser() if root else default_root()
        values: Dict[str, Any] = {
            "config_file": base / "config.yaml",
            "data_path": base / "data",
            "log_path": base / "log",
            "cache_path": base / ".cache",
            "tmp_path": base / ".tmp",
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    def ensure_directories(self) -> None:
        for path in (self.log_path, self.cache_path, self.tmp_path):
            ensure_directory(path)


# --- Job definitions ---------------------------------------------------------


class ArchiveConfig(BaseModel):
    name: str
    paths: List[Path]
    excludes: List[str] = Field(default_factory=list, description="Glob patterns skipped while archiving.")

    @field_validator("paths")
    @classmethod
    def _require_paths(cls, value: List[Path]) -> List[Path]:
        if not value:
            raise ValueError("Archive must list at least one path.")
        expanded = [path.expanduser() for path in value]
        names = [path.name for path in expanded]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Archive paths share the same name: {', '.join(duplicates)}")
        return expanded


class NotificationsConfig(BaseModel):
    slack_webhook_env: Optional[str] = None
    on_success: bool = True
    on_failure: bool = True

    def resolve_slack_webhook(self) -> Optional[str]:
        if not self.slack_webhook_env:
            return None
        return os.getenv(self.slack_webhook_env)


class ModelConfig(BaseModel):
    trigger: str
    description: str = ""
    service: Literal["archive"] = "archive"
    archive_format: Optional[ArchiveFormat] = None
    compressor: Optional[Compressor] = None
    archives: List[ArchiveConfig]
    retention_days: Optional[int] = None
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)

    @field_validator("trigger")
    @classmethod
    def _validate_trigger(cls, value: str) -> str:
        problem = trigger_name_error(value)
        if problem:
            raise ValueError(problem)
        return value

    @field_validator("archives")
    @classmethod
    def _require_archives(cls, value: List[ArchiveConfig]) -> List[ArchiveConfig]:
        if not value:
            raise ValueError("Job must define at least one archive.")
        return value

    @field_validator("retention_days")
    @classmethod
    def _positive_retention(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError("Retention must be positive.")
        return value


class SchedulerConfig(BaseModel):
    cron: str
    timezone: str = "UTC"
    run_on_startup: bool = True

    @field_validator("cron")
    @classmethod
    def _validate_cron(cls, value: str) -> str:
        try:
            croniter(value, datetime.now())
        except (CroniterBadCronError, ValueError) as exc:  # pragma: no cover - library errors
            raise ValueError(f"Invalid cron expression '{value}': {exc}") from exc
        return value

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except ZoneInfoNotFoundError as exc:  # pragma: no cover - library errors
            raise ValueError(f"Unknown timezone '{value}'") from exc
        return value


class JobFile(BaseModel):
    archive_format: Optional[ArchiveFormat] = None
    scheduler: Optional[SchedulerConfig] = None
    models: List[ModelConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_models(self) -> "JobFile":
        seen = set()
        for model in self.models:
            if model.trigger in seen:
                raise ValueError(f"Trigger '{model.trigger}' is defined more than once.")
            seen.add(model.trigger)
            effective_format = model.archive_format or self.archive_format or DEFAULT_ARCHIVE_FORMAT
            if model.compressor and effective_format != "tar":
                raise ValueError(
                    f"Trigger '{model.trigger}' uses compressor '{model.compressor}' "
                    f"with archive format '{effective_format}'; compressors require tar."
                )
        return self

    @property
    def triggers(self) -> List[str]:
        return [model.trigger for model in self.models]


def load_job_file(path: Path) -> JobFile:
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Unable to read {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping.")

    try:
        return JobFile.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc
