"""Sequential, isolated execution of configured backup triggers."""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Settings, load_job_file  # noqa: E402,F401
from .orchestrator import BackupOrchestrator  # noqa: E402,F401
