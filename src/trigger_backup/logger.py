from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, Optional

LOG_FORMAT = "[%(asctime)s][%(levelname)s][%(trigger)s] %(message)s"
LOG_FILE_NAME = "trigger-backup.log"

_trigger_var: ContextVar[str] = ContextVar("log_trigger", default="-")


class TriggerContextFilter(logging.Filter):
    """Stamps each record with the trigger currently being performed."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trigger"):
            record.trigger = _trigger_var.get()
        return True


@contextmanager
def bind_trigger(trigger: str) -> Iterator[None]:
    token = _trigger_var.set(trigger)
    try:
        yield
    finally:
        _trigger_var.reset(token)


def current_trigger() -> Optional[str]:
    value = _trigger_var.get()
    return None if value == "-" else value


def configure_logging(
    level: str = "INFO",
    log_path: Optional[Path] = None,
    quiet: bool = False,
) -> Optional[Path]:
    """Install stderr and file handlers on the root logger; returns the log file, if any."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    formatter = logging.Formatter(LOG_FORMAT)
    context_filter = TriggerContextFilter()

    if not quiet:
        stream_handler = logging.StreamHandler(stream=sys.stderr)
        stream_handler.setFormatter(formatter)
        stream_handler.addFilter(context_filter)
        root.addHandler(stream_handler)

    log_file = None
    if log_path is not None:
        log_file = log_path / LOG_FILE_NAME
        file_handler = RotatingFileHandler(str(log_file), maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler.addFilter(context_filter)
        root.addHandler(file_handler)

    if not root.handlers:
        root.addHandler(logging.NullHandler())

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return log_file
