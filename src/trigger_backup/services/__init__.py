from __future__ import annotations

from typing import TYPE_CHECKING

from trigger_backup.job_engine import BackupService

from .archive import ArchiveService

if TYPE_CHECKING:
    from trigger_backup.model import Model


def create_service(model: "Model") -> BackupService:
    if model.config.service == "archive":
        return ArchiveService(model)
    raise ValueError(f"No service registered for '{model.config.service}'.")
