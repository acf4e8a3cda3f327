from __future__ import annotations

from pathlib import Path


class TriggerBackupError(Exception):
    """Base class for errors raised by trigger-backup."""


class ConfigurationError(TriggerBackupError):
    """Raised when the job file or the runtime settings are invalid."""


class TriggerError(TriggerBackupError):
    """Failure scoped to a single trigger; the batch continues."""

    kind = "failed"

    def __init__(self, trigger: str, message: str) -> None:
        super().__init__(message)
        self.trigger = trigger


class TriggerNotFound(TriggerError):
    kind = "job-not-found"

    def __init__(self, trigger: str, config_file: Path) -> None:
        super().__init__(trigger, f"Could not find trigger '{trigger}' in '{config_file}'.")
        self.config_file = config_file


class DefinitionInvalid(TriggerError):
    kind = "definition-invalid"


class ExecutionFailed(TriggerError):
    kind = "execution-failed"

    def __init__(self, trigger: str, cause: BaseException) -> None:
        detail = "; ".join(getattr(cause, "errors", None) or [str(cause)])
        super().__init__(trigger, f"{type(cause).__name__}: {detail}")
        self.cause = cause


class DirectoryCreationFailed(TriggerBackupError):
    """Raised when a required directory cannot be created; aborts the whole run."""

    def __init__(self, path: Path, cause: OSError) -> None:
        super().__init__(f"Unable to create directory {path}: {cause}")
        self.path = path
        self.cause = cause
