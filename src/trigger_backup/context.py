from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, Optional

from .config import Settings, trigger_name_error
from .logger import bind_trigger
from .registry import JobRegistry
from .storage import ensure_directory, format_timestamp

LOG = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass
class RunContext:
    """State scoped to a single trigger's run."""

    trigger: str
    started_at: datetime
    timestamp: str
    settings: Settings
    registry: JobRegistry

    @property
    def trigger_dir(self) -> Path:
        return self.settings.data_path / self.trigger

    @property
    def workspace(self) -> Path:
        return self.settings.tmp_path / self.trigger


class RunContextManager:
    """Creates and tears down run contexts; only one is live at a time.

    The job registry belongs to the manager and is handed to the loader through
    each context. ``leave`` resets it, so job definitions loaded for one trigger
    are never visible while the next trigger's job file is loaded.
    """

    def __init__(
        self,
        settings: Settings,
        registry: Optional[JobRegistry] = None,
        clock: Clock = datetime.now,
    ) -> None:
        self._settings = settings
        self._registry = registry if registry is not None else JobRegistry()
        self._clock = clock
        self._active: Optional[RunContext] = None

    @property
    def active(self) -> Optional[RunContext]:
        return self._active

    @property
    def registry(self) -> JobRegistry:
        return self._registry

    def enter(self, trigger: str) -> RunContext:
        problem = trigger_name_error(trigger)
        if problem:
            raise ValueError(problem)

        if self._active is not None:
            LOG.warning("Run context for '%s' was not released; tearing it down", self._active.trigger)
            self.leave(self._active)

        started_at = self._clock().replace(microsecond=0)
        ensure_directory(self._settings.data_path / trigger)
        context = RunContext(
            trigger=trigger,
            started_at=started_at,
            timestamp=format_timestamp(started_at),
            settings=self._settings,
            registry=self._registry,
        )
        self._active = context
        LOG.debug("Entered run context for %s at %s", trigger, context.timestamp)
        return context

    def leave(self, context: RunContext) -> None:
        context.registry.reset()
        if self._active is context:
            self._active = None
        LOG.debug("Left run context for %s", context.trigger)

    @contextmanager
    def scope(self, trigger: str) -> Iterator[RunContext]:
        context = self.enter(trigger)
        try:
            with bind_trigger(trigger):
                yield context
        finally:
            self.leave(context)
