from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
from datetime import datetime
from importlib import metadata
from pathlib import Path
from typing import List, Optional, Sequence
from zoneinfo import ZoneInfo

from croniter import croniter

from . import __version__, dependency
from .config import ROOT_ENV, SchedulerConfig, Settings
from .decrypt import ENCRYPTORS, decrypt
from .errors import ConfigurationError, DirectoryCreationFailed
from .generator import COMPRESSORS, NOTIFIERS, generate
from .loader import YamlJobLoader
from .logger import configure_logging
from .orchestrator import BackupOrchestrator

LOG = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="trigger-backup", description="Run backup jobs defined in a job file.")
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Log level (default INFO).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    perform = subparsers.add_parser("perform", help="Perform one or more backup triggers.")
    perform.add_argument(
        "-t",
        "--trigger",
        required=True,
        help="Comma-separated triggers to perform; '*' wildcards match defined triggers. "
        "Triggers run in the order given, one at a time.",
    )
    perform.add_argument(
        "--root",
        default=os.getenv(ROOT_ENV),
        help="Base directory for the default config file and data/log/cache/tmp paths (default ~/Backup).",
    )
    perform.add_argument(
        "-c",
        "--config-file",
        type=Path,
        default=os.getenv("TRIGGER_BACKUP_CONFIG"),
        help="Path to the job file.",
    )
    perform.add_argument("-d", "--data-path", type=Path, help="Directory where backup packages are stored.")
    perform.add_argument("-l", "--log-path", type=Path, help="Directory for the log file.")
    perform.add_argument("--cache-path", type=Path, help="Cache directory.")
    perform.add_argument("--tmp-path", type=Path, help="Directory for temporary work files.")
    perform.add_argument("-q", "--quiet", action="store_true", help="Do not log to the console.")
    perform.add_argument(
        "--unique",
        action="store_true",
        help="Perform each resolved trigger once, even when several requests match it.",
    )
    perform.set_defaults(handler=perform_command)

    gen = subparsers.add_parser("generate", help="Generate a job file from template fragments.")
    gen.add_argument("--path", type=Path, default=Path("."), help="Directory to write config.yaml into.")
    gen.add_argument("--trigger", default="my_backup", help="Trigger name used in the generated job.")
    gen.add_argument("--compressor", choices=sorted(COMPRESSORS), help="Compress packages with this compressor.")
    gen.add_argument(
        "--notifiers",
        default="",
        help=f"Comma-separated notifiers to include ({', '.join(sorted(NOTIFIERS))}).",
    )
    gen.add_argument("--retention", action="store_true", help="Include a retention_days setting.")
    gen.add_argument("--scheduler", action="store_true", help="Include a cron scheduler block.")
    gen.add_argument("--force", action="store_true", help="Overwrite an existing config.yaml.")
    gen.set_defaults(handler=generate_command)

    dec = subparsers.add_parser("decrypt", help="Decrypt a backup package with openssl or gpg.")
    dec.add_argument("--encryptor", required=True, choices=ENCRYPTORS)
    dec.add_argument("--in", dest="in_path", required=True, type=Path, help="Encrypted input file.")
    dec.add_argument("--out", dest="out_path", required=True, type=Path, help="Decrypted output file.")
    dec.add_argument("--base64", action="store_true", help="Input is base64 encoded (openssl only).")
    dec.add_argument("--salt", action="store_true", help="Input was salted (openssl only).")
    dec.set_defaults(handler=decrypt_command)

    deps = subparsers.add_parser("dependencies", help="List or install optional libraries.")
    deps.add_argument("--list", action="store_true", help="List optional libraries (default).")
    deps.add_argument("--install", metavar="NAME", help="Install the named optional library with pip.")
    deps.set_defaults(handler=dependencies_command)

    version = subparsers.add_parser("version", help="Show the installed version.")
    version.set_defaults(handler=version_command)
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


# --- perform -----------------------------------------------------------------


def build_settings(args: argparse.Namespace) -> Settings:
    return Settings.from_overrides(
        root=Path(args.root) if args.root else None,
        config_file=args.config_file,
        data_path=args.data_path,
        log_path=args.log_path,
        cache_path=args.cache_path,
        tmp_path=args.tmp_path,
        quiet=args.quiet,
    )


def run_triggers(orchestrator: BackupOrchestrator, triggers: List[str]) -> int:
    results = orchestrator.run(triggers)
    failed = [result for result in results if not result.success]
    if failed:
        LOG.error(
            "%d of %d trigger(s) failed: %s",
            len(failed),
            len(results),
            ", ".join(result.trigger for result in failed),
        )
        return 1
    return 0


def perform_command(args: argparse.Namespace) -> int:
    settings = build_settings(args)
    try:
        settings.ensure_directories()
    except DirectoryCreationFailed as exc:
        configure_logging(args.log_level)
        LOG.error("%s", exc)
        return 2

    configure_logging(args.log_level, settings.log_path, settings.quiet)
    loader = YamlJobLoader(settings.config_file)
    orchestrator = BackupOrchestrator(settings, loader=loader)

    scheduler = _read_scheduler(loader)
    try:
        if scheduler:
            return run_with_scheduler(orchestrator, loader, args.trigger, args.unique, scheduler)
        triggers = orchestrator.resolve(args.trigger, deduplicate=args.unique)
        return run_triggers(orchestrator, triggers)
    except ConfigurationError as exc:
        LOG.error("Configuration error: %s", exc)
        return 2
    except DirectoryCreationFailed as exc:
        LOG.error("Aborting run: %s", exc)
        return 2


def _read_scheduler(loader: YamlJobLoader) -> Optional[SchedulerConfig]:
    try:
        return loader.read().scheduler
    except ConfigurationError:
        # Reported per trigger when the run loads the job file.
        return None


def run_with_scheduler(
    orchestrator: BackupOrchestrator,
    loader: YamlJobLoader,
    requests: str,
    deduplicate: bool,
    scheduler: SchedulerConfig,
    stop_event: Optional[threading.Event] = None,
) -> int:
    stop_event = stop_event or threading.Event()

    def _handle_signal(signum: int, _frame: Optional[object]) -> None:
        LOG.info("Received signal %s; stopping scheduler", signum)
        stop_event.set()

    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGTERM, _handle_signal)
        signal.signal(signal.SIGINT, _handle_signal)

    timezone = ZoneInfo(scheduler.timezone)
    next_run = datetime.now(timezone) if scheduler.run_on_startup else _next_run(scheduler.cron, datetime.now(timezone))

    if scheduler.run_on_startup:
        LOG.info("Executing initial run immediately")
    else:
        LOG.info("Next run scheduled for %s", next_run.isoformat())

    while not stop_event.is_set():
        now = datetime.now(timezone)
        if now >= next_run:
            try:
                reloaded = loader.read().scheduler
            except ConfigurationError as exc:
                LOG.error("Failed to reload configuration: %s; continuing with previous settings", exc)
            else:
                if not reloaded:
                    LOG.info("Scheduler removed from configuration; exiting loop")
                    break
                scheduler = reloaded
                timezone = ZoneInfo(scheduler.timezone)

            try:
                triggers = orchestrator.resolve(requests, deduplicate=deduplicate)
            except ConfigurationError as exc:
                LOG.error("Unable to resolve triggers: %s", exc)
            else:
                exit_code = run_triggers(orchestrator, triggers)
                if exit_code != 0:
                    LOG.warning("Scheduled run completed with errors (exit code %s)", exit_code)

            next_run = _next_run(scheduler.cron, datetime.now(timezone))
            LOG.info("Next run scheduled for %s", next_run.isoformat())
            continue

        sleep_for = max((next_run - now).total_seconds(), 0)
        stop_event.wait(min(sleep_for, 60))

    LOG.info("Scheduler stopped")
    return 0


def _next_run(cron_expression: str, reference: datetime) -> datetime:
    return croniter(cron_expression, reference).get_next(datetime)


# --- generate / decrypt / dependencies / version -----------------------------


def generate_command(args: argparse.Namespace) -> int:
    configure_logging(args.log_level)
    notifiers = [name.strip() for name in args.notifiers.split(",") if name.strip()]
    try:
        target = generate(
            args.path,
            force=args.force,
            trigger=args.trigger,
            compressor=args.compressor,
            notifiers=notifiers,
            retention=args.retention,
            scheduler=args.scheduler,
        )
    except (FileExistsError, ValueError) as exc:
        LOG.error("%s", exc)
        return 1
    print(target)
    return 0


def decrypt_command(args: argparse.Namespace) -> int:
    configure_logging(args.log_level)
    return decrypt(args.encryptor, args.in_path, args.out_path, base64=args.base64, salt=args.salt)


def dependencies_command(args: argparse.Namespace) -> int:
    configure_logging(args.log_level)
    if args.install:
        try:
            return dependency.install(args.install)
        except ValueError as exc:
            LOG.error("%s", exc)
            return 1

    for dep in dependency.all_dependencies():
        try:
            installed = dependency.installed_version(dep)
        except metadata.PackageNotFoundError:
            installed = "not installed"
        print(f"Name: {dep.name}")
        print(f"Require: {dep.require}")
        print(f"Version: {dep.version} (installed: {installed})")
        print(f"For: {dep.purpose}")
        print("-------------------------")
    return 0


def version_command(args: argparse.Namespace) -> int:  # noqa: ARG001
    print(f"trigger-backup {__version__}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
