from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Union

from .config import Settings, trigger_name_error
from .context import RunContextManager
from .errors import TriggerNotFound
from .executor import JobExecutor, RunOutcome, RunResult
from .loader import JobLoader, YamlJobLoader
from .resolver import TriggerResolver

LOG = logging.getLogger(__name__)


class BackupOrchestrator:
    """Performs resolved triggers one after another, each in its own run context."""

    def __init__(
        self,
        settings: Settings,
        loader: Optional[JobLoader] = None,
        context_manager: Optional[RunContextManager] = None,
        executor: Optional[JobExecutor] = None,
    ) -> None:
        self._settings = settings
        self._loader = loader or YamlJobLoader(settings.config_file)
        self._contexts = context_manager or RunContextManager(settings)
        self._executor = executor or JobExecutor(self._loader)
        self._resolver = TriggerResolver(self._loader.catalog)

    @property
    def loader(self) -> JobLoader:
        return self._loader

    def resolve(self, requests: Union[str, Iterable[str]], deduplicate: bool = False) -> List[str]:
        return self._resolver.resolve(requests, deduplicate=deduplicate)

    def run(self, triggers: Sequence[str]) -> List[RunResult]:
        results: List[RunResult] = []
        for trigger in triggers:
            if trigger_name_error(trigger):
                # Names that are not path-safe never reach the filesystem.
                results.append(self._not_found(trigger))
                _log_result(results[-1])
                continue
            with self._contexts.scope(trigger) as context:
                result = self._executor.load_and_run(trigger, context)
            # A failed trigger never stops the batch; only environment errors propagate.
            results.append(result)
            _log_result(result)
        return results

    def _not_found(self, trigger: str) -> RunResult:
        now = datetime.now()
        return RunResult(
            trigger=trigger,
            outcome=RunOutcome.JOB_NOT_FOUND,
            started_at=now,
            completed_at=now,
            error=TriggerNotFound(trigger, self._settings.config_file),
        )

    def perform(self, requests: Union[str, Iterable[str]], deduplicate: bool = False) -> List[RunResult]:
        triggers = self.resolve(requests, deduplicate=deduplicate)
        if not triggers:
            LOG.warning("No triggers to perform")
        return self.run(triggers)


def _log_result(result: RunResult) -> None:
    if result.success:
        LOG.info("Trigger %s succeeded in %.2fs", result.trigger, result.duration)
    else:
        LOG.error("Trigger %s failed (%s): %s", result.trigger, result.outcome.value, result.message)
