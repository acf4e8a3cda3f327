from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from .config import trigger_name_error

LOG = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.yaml"

HEADER = """\
# trigger-backup job file.
#
# Every entry under `models` defines one trigger. Run it with:
#
#   trigger-backup perform --trigger {trigger}
#
# Several triggers run one after another: --trigger "{trigger},other_*"
"""

ARCHIVES = """\
    archives:
      - name: documents
        paths:
          - ~/Documents
        excludes:
          - "*.tmp"
          - ".cache"
"""

COMPRESSORS = {
    "gzip": "    compressor: gzip\n",
    "bzip2": "    compressor: bzip2\n",
    "xz": "    compressor: xz\n",
}

NOTIFIERS = {
    "slack": """\
    notifications:
      slack_webhook_env: SLACK_WEBHOOK_URL
      on_success: true
      on_failure: true
""",
}

RETENTION = "    retention_days: 30\n"

SCHEDULER = """\
scheduler:
  cron: "0 3 * * *"
  timezone: UTC
  run_on_startup: false
"""


def _quote(value: str) -> str:
    # Single-quoted YAML keeps names like `yes` or `123` as strings.
    return "'" + value.replace("'", "''") + "'"


def render(
    trigger: str = "my_backup",
    compressor: Optional[str] = None,
    notifiers: Iterable[str] = (),
    retention: bool = False,
    scheduler: bool = False,
) -> str:
    problem = trigger_name_error(trigger)
    if problem:
        raise ValueError(problem)

    parts: List[str] = [HEADER.format(trigger=trigger), "\n"]
    if scheduler:
        parts.extend([SCHEDULER, "\n"])

    parts.append("models:\n")
    parts.append(f"  - trigger: {_quote(trigger)}\n")
    parts.append(f"    description: {_quote('Backup generated for ' + trigger)}\n")
    parts.append(ARCHIVES)
    if compressor:
        if compressor not in COMPRESSORS:
            raise ValueError(f"Unknown compressor '{compressor}'. Choose from: {', '.join(COMPRESSORS)}")
        parts.append(COMPRESSORS[compressor])
    if retention:
        parts.append(RETENTION)
    for notifier in notifiers:
        if notifier not in NOTIFIERS:
            raise ValueError(f"Unknown notifier '{notifier}'. Choose from: {', '.join(NOTIFIERS)}")
        parts.append(NOTIFIERS[notifier])
    return "".join(parts)


def generate(directory: Path, force: bool = False, **fragments) -> Path:
    content = render(**fragments)
    directory = directory.expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / CONFIG_FILE_NAME
    if target.exists() and not force:
        raise FileExistsError(f"{target} already exists; pass --force to overwrite it")

    target.write_text(content, encoding="utf-8")
    LOG.info("Generated %s", target)
    return target
