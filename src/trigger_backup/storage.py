from __future__ import annotations

import logging
import shutil
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

from .errors import DirectoryCreationFailed

LOG = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y.%m.%d.%H.%M.%S"


def ensure_directory(path: Path) -> Path:
    """Create ``path`` and its parents; succeeds when it already exists."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DirectoryCreationFailed(path, exc) from exc
    return path


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def package_timestamp(package: Path) -> Optional[datetime]:
    """Parse the run timestamp a package name starts with, e.g. ``2024.01.31.23.59.59.web.tar``."""
    prefix = ".".join(package.name.split(".")[:6])
    try:
        return datetime.strptime(prefix, TIMESTAMP_FORMAT)
    except ValueError:
        return None


def enforce_retention(trigger_dir: Path, retention_days: int, now: Optional[datetime] = None) -> List[Path]:
    if retention_days <= 0:
        return []

    if not trigger_dir.exists():
        return []

    cutoff = (now or datetime.now()) - timedelta(days=retention_days)
    removed: List[Path] = []
    for child in sorted(trigger_dir.iterdir()):
        created = package_timestamp(child)
        if created is None:
            LOG.debug("Skipping unrecognised entry %s", child)
            continue

        if created < cutoff:
            LOG.info("Removing expired backup %s", child)
            _remove_path(child)
            removed.append(child)
    return removed


def _remove_path(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)
