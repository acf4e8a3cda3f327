"""Version-gated loader for optional libraries.

Integrations import their third-party library through :func:`load`. When the
library is missing or the installed version does not satisfy the requirement,
the operator is told which command installs it and the process exits.
"""

from __future__ import annotations

import importlib
import logging
import subprocess
import sys
from dataclasses import dataclass
from importlib import metadata
from types import ModuleType
from typing import Dict, List

from packaging.specifiers import SpecifierSet
from packaging.version import InvalidVersion

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dependency:
    name: str
    require: str
    version: str
    purpose: str

    @property
    def requirement(self) -> str:
        return f"{self.name}{self.version}"


DEPENDENCIES: Dict[str, Dependency] = {
    "requests": Dependency(
        name="requests",
        require="requests",
        version=">=2.25",
        purpose="Sending Slack webhook notifications (Slack Notifier)",
    ),
}


def all_dependencies() -> List[Dependency]:
    return list(DEPENDENCIES.values())


def get(name: str) -> Dependency:
    try:
        return DEPENDENCIES[name]
    except KeyError as exc:
        raise ValueError(f"Unknown dependency '{name}'. Known: {', '.join(sorted(DEPENDENCIES))}") from exc


def installed_version(dependency: Dependency) -> str:
    return metadata.version(dependency.name)


def load(name: str) -> ModuleType:
    dependency = get(name)
    try:
        installed = installed_version(dependency)
        if not SpecifierSet(dependency.version).contains(installed, prereleases=True):
            raise ImportError(f"{dependency.name} {installed} does not satisfy {dependency.version}")
        return importlib.import_module(dependency.require)
    except (ImportError, metadata.PackageNotFoundError, InvalidVersion) as exc:
        LOG.error("Dependency missing.")
        print("\nDependency required for:")
        print(f"\n  {dependency.purpose}")
        print("\nTo install the library, issue the following command:")
        print(f"\n  pip install '{dependency.requirement}'")
        print("\nPlease try again after installing the missing dependency.")
        raise SystemExit(1) from exc


def install_command(name: str) -> List[str]:
    return [sys.executable, "-m", "pip", "install", get(name).requirement]


def install(name: str) -> int:
    command = install_command(name)
    LOG.info("Installing %s", get(name).requirement)
    return subprocess.run(command, check=False).returncode
