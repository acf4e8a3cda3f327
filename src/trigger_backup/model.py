from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from .config import ArchiveConfig, ModelConfig
from .job_engine import JobEngine
from .notifier import notify
from .services import create_service

if TYPE_CHECKING:
    from .context import RunContext

LOG = logging.getLogger(__name__)

_COMPRESSOR_SUFFIXES = {"gzip": "gz", "bzip2": "bz2", "xz": "xz"}


class Model:
    """A job definition: what one trigger backs up and how."""

    def __init__(self, config: ModelConfig, default_archive_format: str) -> None:
        self.config = config
        self.trigger = config.trigger
        self.description = config.description
        self.archive_format = config.archive_format or default_archive_format

    def __repr__(self) -> str:
        return f"Model(trigger={self.trigger!r}, archive_format={self.archive_format!r})"

    @property
    def archives(self) -> List[ArchiveConfig]:
        return self.config.archives

    @property
    def compressor(self) -> Optional[str]:
        return self.config.compressor

    @property
    def extension(self) -> str:
        if self.archive_format == "tar" and self.compressor:
            return f"tar.{_COMPRESSOR_SUFFIXES[self.compressor]}"
        return self.archive_format

    def package_name(self, timestamp: str) -> str:
        return f"{timestamp}.{self.trigger}.{self.extension}"

    def perform(self, context: "RunContext") -> None:
        LOG.info("Performing backup for %s (%s)", self.trigger, self.description or "no description")
        service = create_service(self)
        try:
            JobEngine().run(service, context)
        except Exception as exc:
            if self.config.notifications.on_failure:
                notify(self, context, success=False, error=exc)
            raise

        if self.config.notifications.on_success:
            notify(self, context, success=True)
        LOG.info("Backup for %s finished", self.trigger)
