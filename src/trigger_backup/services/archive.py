from __future__ import annotations

import fnmatch
import logging
import shutil
import tarfile
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional

from trigger_backup.config import ArchiveConfig
from trigger_backup.job_engine import BackupService, BackupServiceError
from trigger_backup.storage import enforce_retention, ensure_directory

if TYPE_CHECKING:
    from trigger_backup.context import RunContext
    from trigger_backup.model import Model

LOG = logging.getLogger(__name__)

_TAR_MODES = {None: "w", "gzip": "w:gz", "bzip2": "w:bz2", "xz": "w:xz"}


class ArchiveService(BackupService):
    """Packages the model's archive paths into one timestamped file per run."""

    def __init__(self, model: "Model") -> None:
        self._model = model
        self._sources: Dict[str, List[Path]] = {}
        self.package_path: Optional[Path] = None

    # Job lifecycle ---------------------------------------------------------
    def prepare(self, context: "RunContext") -> None:  # noqa: ARG002
        errors: List[str] = []
        for archive in self._model.archives:
            existing = []
            for path in archive.paths:
                if path.exists():
                    existing.append(path)
                else:
                    LOG.warning("Archive %s: path %s does not exist, skipping", archive.name, path)
            if not existing:
                errors.append(f"Archive {archive.name} has no existing paths to back up.")
            self._sources[archive.name] = existing

        if errors:
            raise BackupServiceError("Archive preparation failed.", errors=errors)

    def execute(self, context: "RunContext") -> None:
        if not self._sources:
            raise BackupServiceError("Archive service not prepared.")

        name = self._model.package_name(context.timestamp)
        staged = context.workspace / name
        if self._model.archive_format == "zip":
            self._write_zip(staged)
        else:
            self._write_tar(staged)

        destination = ensure_directory(context.trigger_dir) / name
        shutil.move(str(staged), str(destination))
        self.package_path = destination
        LOG.info("Stored package %s", destination)

    def finalize(self, context: "RunContext") -> None:
        retention_days = self._model.config.retention_days
        if retention_days:
            enforce_retention(context.trigger_dir, retention_days, now=context.started_at)

    # Internal helpers ------------------------------------------------------
    def _archives(self) -> List[ArchiveConfig]:
        return [archive for archive in self._model.archives if self._sources.get(archive.name)]

    def _write_tar(self, target: Path) -> None:
        LOG.info("Creating archive %s", target)
        with tarfile.open(target, _TAR_MODES[self._model.compressor]) as tar:
            for archive in self._archives():
                for path in self._sources[archive.name]:
                    tar.add(
                        path,
                        arcname=f"{archive.name}/{path.name}",
                        filter=_tar_filter(archive.excludes),
                    )

    def _write_zip(self, target: Path) -> None:
        LOG.info("Creating archive %s", target)
        with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for archive in self._archives():
                for path in self._sources[archive.name]:
                    for file_path, arcname in _walk(path, f"{archive.name}/{path.name}"):
                        if _excluded(arcname, archive.excludes):
                            continue
                        zf.write(file_path, arcname)


def _excluded(member: str, patterns: List[str]) -> bool:
    parts = member.strip("/").split("/")
    for pattern in patterns:
        if fnmatch.fnmatch(member, pattern) or any(fnmatch.fnmatch(part, pattern) for part in parts[1:]):
            return True
    return False


def _tar_filter(patterns: List[str]):
    def _filter(member: tarfile.TarInfo) -> Optional[tarfile.TarInfo]:
        if _excluded(member.name, patterns):
            LOG.debug("Excluding %s", member.name)
            return None
        return member

    return _filter


def _walk(path: Path, arcname: str):
    if path.is_file():
        yield path, arcname
        return
    for child in sorted(path.rglob("*")):
        if child.is_file():
            relative = child.relative_to(path).as_posix()
            yield child, f"{arcname}/{relative}"
