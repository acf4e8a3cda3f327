from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, List, Protocol

from .config import JobFile, load_job_file
from .errors import ConfigurationError, DefinitionInvalid, TriggerNotFound
from .model import Model

if TYPE_CHECKING:
    from .context import RunContext

LOG = logging.getLogger(__name__)


class JobLoader(Protocol):
    def catalog(self) -> List[str]:
        ...

    def load(self, trigger: str, context: "RunContext") -> Model:
        ...


class YamlJobLoader:
    """Loads job definitions from the YAML job file."""

    def __init__(self, config_file: Path) -> None:
        self.config_file = config_file

    def read(self) -> JobFile:
        return load_job_file(self.config_file)

    def catalog(self) -> List[str]:
        return self.read().triggers

    def load(self, trigger: str, context: "RunContext") -> Model:
        try:
            job_file = self.read()
        except ConfigurationError as exc:
            raise DefinitionInvalid(trigger, str(exc)) from exc

        registry = context.registry
        if job_file.archive_format:
            registry.default_archive_format = job_file.archive_format
        for model_config in job_file.models:
            registry.register(Model(model_config, registry.default_archive_format))

        model = registry.find(trigger)
        if model is None:
            raise TriggerNotFound(trigger, self.config_file)
        LOG.debug("Loaded %s from %s", model, self.config_file)
        return model
