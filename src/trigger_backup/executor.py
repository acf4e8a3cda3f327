from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .context import RunContext
from .errors import DefinitionInvalid, DirectoryCreationFailed, ExecutionFailed, TriggerError, TriggerNotFound
from .loader import JobLoader

LOG = logging.getLogger(__name__)


class RunOutcome(str, enum.Enum):
    SUCCESS = "success"
    JOB_NOT_FOUND = "job-not-found"
    DEFINITION_INVALID = "definition-invalid"
    EXECUTION_FAILED = "execution-failed"


@dataclass
class RunResult:
    trigger: str
    outcome: RunOutcome
    started_at: datetime
    completed_at: datetime
    error: Optional[TriggerError] = None

    @property
    def success(self) -> bool:
        return self.outcome is RunOutcome.SUCCESS

    @property
    def duration(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def message(self) -> str:
        return str(self.error) if self.error else ""


class JobExecutor:
    """Loads the job definition for a trigger and performs it exactly once."""

    def __init__(self, loader: JobLoader) -> None:
        self._loader = loader

    def load_and_run(self, trigger: str, context: RunContext) -> RunResult:
        try:
            model = self._loader.load(trigger, context)
        except TriggerNotFound as exc:
            return self._result(context, RunOutcome.JOB_NOT_FOUND, exc)
        except DefinitionInvalid as exc:
            return self._result(context, RunOutcome.DEFINITION_INVALID, exc)

        try:
            model.perform(context)
        except DirectoryCreationFailed:
            raise
        except Exception as exc:  # noqa: BLE001
            LOG.debug("Trigger %s raised", trigger, exc_info=True)
            return self._result(context, RunOutcome.EXECUTION_FAILED, ExecutionFailed(trigger, exc))

        return self._result(context, RunOutcome.SUCCESS)

    @staticmethod
    def _result(context: RunContext, outcome: RunOutcome, error: Optional[TriggerError] = None) -> RunResult:
        return RunResult(
            trigger=context.trigger,
            outcome=outcome,
            started_at=context.started_at,
            completed_at=datetime.now(),
            error=error,
        )
