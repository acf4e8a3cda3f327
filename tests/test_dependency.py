from __future__ import annotations

import sys

import pytest

from trigger_backup import dependency
from trigger_backup.dependency import Dependency


def test_load_returns_module_when_requirement_met() -> None:
    module = dependency.load("requests")
    assert module.__name__ == "requests"


def test_unknown_dependency_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown dependency"):
        dependency.load("fog")


def test_unsatisfied_version_exits_with_guidance(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    monkeypatch.setitem(
        dependency.DEPENDENCIES,
        "requests",
        Dependency(name="requests", require="requests", version=">=999", purpose="Testing"),
    )

    with pytest.raises(SystemExit) as excinfo:
        dependency.load("requests")

    assert excinfo.value.code == 1
    out = capsys.readouterr().out
    assert "Dependency required for:" in out
    assert "pip install 'requests>=999'" in out


def test_missing_distribution_exits(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    monkeypatch.setitem(
        dependency.DEPENDENCIES,
        "ghostlib",
        Dependency(name="ghostlib-not-installed", require="ghostlib", version=">=1.0", purpose="Nothing"),
    )

    with pytest.raises(SystemExit):
        dependency.load("ghostlib")

    assert "pip install 'ghostlib-not-installed>=1.0'" in capsys.readouterr().out


def test_install_command_uses_current_interpreter() -> None:
    assert dependency.install_command("requests") == [sys.executable, "-m", "pip", "install", "requests>=2.25"]


def test_catalog_lists_only_gated_libraries() -> None:
    # croniter is a hard requirement imported directly, so it is not gated.
    assert [dep.name for dep in dependency.all_dependencies()] == ["requests"]
