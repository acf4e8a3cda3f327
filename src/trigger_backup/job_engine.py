from __future__ import annotations

import logging
import shutil
from typing import TYPE_CHECKING, List, Optional, Protocol

from .storage import ensure_directory

if TYPE_CHECKING:
    from .context import RunContext

LOG = logging.getLogger(__name__)


class BackupService(Protocol):
    def prepare(self, context: "RunContext") -> None:
        ...

    def execute(self, context: "RunContext") -> None:
        ...

    def finalize(self, context: "RunContext") -> None:
        ...


class BackupServiceError(Exception):
    """Raised by backup services to signal controlled job failures."""

    def __init__(self, message: str, errors: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.errors = errors or [message]


class JobEngine:
    """Coordinates lifecycle hooks for a backup service within a run context."""

    def run(self, service: BackupService, context: "RunContext") -> None:
        workspace = ensure_directory(context.workspace)
        try:
            service.prepare(context)
            service.execute(context)
            service.finalize(context)
        finally:
            shutil.rmtree(workspace, ignore_errors=True)
            LOG.debug("Removed workspace %s", workspace)
