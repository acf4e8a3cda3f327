from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
import yaml

from trigger_backup.config import Settings
from trigger_backup.context import RunContext, RunContextManager
from trigger_backup.errors import TriggerNotFound


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings.from_overrides(root=tmp_path / "Backup", config_file=tmp_path / "config.yaml")


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    source = tmp_path / "source"
    (source / "nested").mkdir(parents=True)
    (source / "notes.txt").write_text("notes", encoding="utf-8")
    (source / "scratch.tmp").write_text("scratch", encoding="utf-8")
    (source / "nested" / "data.csv").write_text("a,b\n1,2\n", encoding="utf-8")
    return source


@pytest.fixture
def write_job_file(settings: Settings) -> Callable[[Dict[str, Any]], Path]:
    def _write(data: Dict[str, Any]) -> Path:
        settings.config_file.write_text(yaml.safe_dump(data), encoding="utf-8")
        return settings.config_file

    return _write


def archive_model(trigger: str, paths: List[Path], **extra: Any) -> Dict[str, Any]:
    model: Dict[str, Any] = {
        "trigger": trigger,
        "archives": [{"name": "files", "paths": [str(path) for path in paths]}],
    }
    model.update(extra)
    return model


class FakeModel:
    def __init__(self, trigger: str, calls: List[str], error: Optional[BaseException] = None) -> None:
        self.trigger = trigger
        self._calls = calls
        self._error = error

    def perform(self, context: RunContext) -> None:
        assert context.trigger == self.trigger
        self._calls.append(self.trigger)
        if self._error is not None:
            raise self._error


class FakeLoader:
    """Registers every known model on each load, like a job file would."""

    def __init__(self, errors: Dict[str, Optional[BaseException]]) -> None:
        self.errors = errors
        self.calls: List[str] = []
        self.observed: List[Dict[str, Any]] = []
        self.catalog_calls = 0

    def catalog(self) -> List[str]:
        self.catalog_calls += 1
        return list(self.errors)

    def load(self, trigger: str, context: RunContext) -> FakeModel:
        registry = context.registry
        self.observed.append(
            {
                "trigger": trigger,
                "current_job": registry.current_job,
                "all_jobs": list(registry.all_jobs),
            }
        )
        for name, error in self.errors.items():
            registry.register(FakeModel(name, self.calls, error))
        model = registry.find(trigger)
        if model is None:
            raise TriggerNotFound(trigger, Path("fake.yaml"))
        return model


class CountingContextManager(RunContextManager):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.entered: List[str] = []
        self.left: List[str] = []

    def enter(self, trigger: str) -> RunContext:
        context = super().enter(trigger)
        self.entered.append(trigger)
        return context

    def leave(self, context: RunContext) -> None:
        self.left.append(context.trigger)
        super().leave(context)
