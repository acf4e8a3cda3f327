from __future__ import annotations

from datetime import datetime

import pytest

from trigger_backup.config import Settings
from trigger_backup.context import RunContextManager
from trigger_backup.errors import DirectoryCreationFailed
from trigger_backup.logger import current_trigger
from trigger_backup.registry import JobRegistry


class StubModel:
    trigger = "web"


def fixed_clock() -> datetime:
    return datetime(2024, 1, 2, 3, 4, 5, 678901)


def test_enter_creates_trigger_directory_and_timestamp(settings: Settings) -> None:
    manager = RunContextManager(settings, clock=fixed_clock)

    context = manager.enter("web")

    assert context.trigger == "web"
    assert context.started_at == datetime(2024, 1, 2, 3, 4, 5)
    assert context.timestamp == "2024.01.02.03.04.05"
    assert context.trigger_dir == settings.data_path / "web"
    assert context.trigger_dir.is_dir()
    assert context.workspace == settings.tmp_path / "web"
    assert manager.active is context


def test_enter_twice_for_same_trigger_is_idempotent(settings: Settings) -> None:
    manager = RunContextManager(settings)

    first = manager.enter("web")
    second = manager.enter("web")

    assert second.trigger_dir.is_dir()
    assert manager.active is second
    assert first is not second


def test_leave_resets_registry_and_active_context(settings: Settings) -> None:
    registry = JobRegistry()
    manager = RunContextManager(settings, registry=registry)
    context = manager.enter("web")
    registry.register(StubModel())
    registry.default_archive_format = "zip"

    manager.leave(context)

    assert registry.current_job is None
    assert registry.all_jobs == []
    assert registry.default_archive_format == "tar"
    assert manager.active is None


def test_scope_releases_context_when_job_raises(settings: Settings) -> None:
    manager = RunContextManager(settings)

    with pytest.raises(RuntimeError):
        with manager.scope("web") as context:
            assert current_trigger() == "web"
            context.registry.register(StubModel())
            raise RuntimeError("boom")

    assert manager.active is None
    assert manager.registry.empty
    assert current_trigger() is None


def test_directory_creation_failure_is_raised(settings: Settings) -> None:
    settings.data_path.parent.mkdir(parents=True, exist_ok=True)
    settings.data_path.write_text("not a directory", encoding="utf-8")
    manager = RunContextManager(settings)

    with pytest.raises(DirectoryCreationFailed) as excinfo:
        manager.enter("web")

    assert excinfo.value.path == settings.data_path / "web"
    assert manager.active is None


@pytest.mark.parametrize("trigger", ["", "..", "../outside", "/abs"])
def test_enter_rejects_names_that_leave_the_data_root(settings: Settings, trigger: str) -> None:
    manager = RunContextManager(settings)

    with pytest.raises(ValueError):
        manager.enter(trigger)

    assert manager.active is None
    assert not settings.data_path.exists()


def test_ensure_directories_creates_roots(settings: Settings) -> None:
    settings.ensure_directories()

    assert settings.log_path.is_dir()
    assert settings.cache_path.is_dir()
    assert settings.tmp_path.is_dir()
    settings.ensure_directories()
