"""Sync command for the synchrotron CLI.

Commands:
- synchrotron: Sync a source directory to a destination, then keep watching
"""

from __future__ import annotations

import logging
import os
import sys
import threading
from datetime import datetime
from typing import Any, NoReturn

import click
from click.core import ParameterSource

from synchrotron import __version__
from synchrotron.cli.config import find_ignore_file, find_rsync, load_config_file
from synchrotron.cli.console import (
    VERBOSITY_LEVELS,
    StatusLine,
    SyncReporter,
    configure_logging,
)
from synchrotron.core.config import (
    DEFAULT_DEBOUNCE_MAX,
    DEFAULT_DEBOUNCE_MIN,
    DEFAULT_MAX_SYNC_LIMIT,
    SyncConfig,
)
from synchrotron.sync.engine import Synchrotron
from synchrotron.sync.events import SyncEventName
from synchrotron.sync.output import OperationKind, OutputRecord
from synchrotron.sync.types import (
    DebounceEvent,
    SyncEndEvent,
    SyncError,
    SyncStartEvent,
    WarningEvent,
)

LABEL_COLORS = {
    OperationKind.DELETE: "red",
    OperationKind.SEND: "green",
}

# How often the watch loop checks for a fatal error
WATCH_POLL_INTERVAL = 0.5


def _blue(text: Any) -> str:
    return click.style(str(text), fg="blue")


def _gray(text: Any) -> str:
    return click.style(str(text), fg="bright_black")


def _header(log: logging.Logger, text: str) -> None:
    log.info("%s %s", click.style("==>", fg="green", bold=True), click.style(text, bold=True))


def _warn(log: logging.Logger, text: str) -> None:
    log.warning("%s %s", click.style("Warning:", fg="yellow"), text)


def _fatal(log: logging.Logger, message: str, notify: bool = False) -> NoReturn:
    log.error("%s %s", click.style("Error:", fg="red"), message)
    if notify:
        from synchrotron.notifications import notify_error

        notify_error(click.unstyle(message))
    sys.exit(1)


def _merge_config_file(ctx: click.Context, options: dict[str, Any], log: logging.Logger) -> None:
    """Fill options not given on the command line from the --config file."""
    try:
        file_options = load_config_file(options["config"])
    except (OSError, ValueError) as e:
        _fatal(log, str(e))

    for key, value in file_options.items():
        if key not in options or key == "config":
            _warn(log, f"Ignoring unknown option {_blue(key)} in {_blue(options['config'])}")
            continue
        if ctx.get_parameter_source(key) in (None, ParameterSource.DEFAULT):
            options[key] = value


def _apply_positional_args(options: dict[str, Any], legacy_args: tuple[str, ...], log: logging.Logger) -> None:
    if len(legacy_args) > 2:
        _fatal(log, f"Unexpected arguments: {' '.join(legacy_args[2:])}")

    if len(legacy_args) >= 1:
        _warn(
            log,
            f"Specifying the destination as a positional argument is deprecated. "
            f"Use the {_blue('--dest')} option instead.",
        )
        options["dest"] = options["dest"] or legacy_args[0]

    if len(legacy_args) == 2:
        _warn(
            log,
            f"Specifying the source as a positional argument is deprecated. "
            f"Use the {_blue('--source')} option instead.",
        )
        options["source"] = legacy_args[1]


def _add_defaults(options: dict[str, Any], log: logging.Logger) -> None:
    if not options["ignore_path"]:
        if options["exclude_from"]:
            _warn(
                log,
                f"The {_blue('--exclude-from')} option is deprecated. "
                f"Use {_blue('--ignore-path')} instead.",
            )
            options["ignore_path"] = options["exclude_from"]
        else:
            found = find_ignore_file(options["source"]) if os.path.isdir(options["source"]) else None
            options["ignore_path"] = str(found) if found else None

    if not options["rsync_path"]:
        rsync_path = find_rsync()
        if rsync_path is None:
            _fatal(
                log,
                f"Couldn't find an rsync executable. Please use {_blue('--rsync-path')} "
                f"to specify the path to rsync.",
            )
        log.debug("Found rsync at %s", rsync_path)
        options["rsync_path"] = rsync_path


def _validate(options: dict[str, Any], log: logging.Logger) -> None:
    if not options["dest"]:
        _fatal(log, f"No sync destination was specified. Use {_blue('--dest')} to specify a destination.")

    ignore_path = options["ignore_path"]
    if ignore_path and not (os.path.isfile(ignore_path) and os.access(ignore_path, os.R_OK)):
        _fatal(log, f"The ignore file {_blue(ignore_path)} was not found or is not readable.")

    rsync_path = options["rsync_path"]
    if not (os.path.isfile(rsync_path) and os.access(rsync_path, os.X_OK)):
        _fatal(
            log,
            f"Rsync path {_blue(rsync_path)} was not found or cannot be executed. "
            f"Use {_blue('--rsync-path')} to specify the path to an rsync executable.",
        )

    source = options["source"]
    if not (os.path.isdir(source) and os.access(source, os.R_OK)):
        _fatal(log, f"Source directory {_blue(source)} was not found or is not readable.")


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("legacy_args", nargs=-1, metavar="[DEST] [SOURCE]")
@click.option("--dest", "-d", default=None, help="Destination to sync files to (any rsync-compatible path).")
@click.option("--source", "-s", default=".", show_default=True, help="Local directory to sync files from.")
@click.option(
    "--config",
    type=click.Path(dir_okay=False),
    default=None,
    help="JSON file of options. Command-line options take precedence.",
)
@click.option("--delete-ignored", is_flag=True, help="Delete ignored files from the destination.")
@click.option("--dry-run", "-n", is_flag=True, help="Simulate changes without actually making them.")
@click.option(
    "--ignore-path",
    default=None,
    help="File of rsync exclude patterns. Defaults to the nearest .synchrotron-ignore.",
)
@click.option("--exclude-from", default=None, hidden=True, help="Deprecated alias for --ignore-path.")
@click.option("--exclude", "-x", multiple=True, help="Extra exclude pattern (may be repeated).")
@click.option("--no-color", is_flag=True, help="Disable colored output.")
@click.option("--notify", is_flag=True, help="Show a system notification when a sync completes or fails.")
@click.option("--once", is_flag=True, help="Sync once and exit instead of watching for changes.")
@click.option("--rsync-path", default=None, help="Path to rsync. Found on PATH if omitted.")
@click.option(
    "--verbosity",
    type=click.Choice(list(VERBOSITY_LEVELS)),
    default="info",
    show_default=True,
    help="Output verbosity.",
)
@click.option(
    "--debounce-min",
    type=int,
    default=DEFAULT_DEBOUNCE_MIN,
    show_default=True,
    help="Minimum delay in milliseconds before syncing a change.",
)
@click.option(
    "--debounce-max",
    type=int,
    default=DEFAULT_DEBOUNCE_MAX,
    show_default=True,
    help="Maximum delay in milliseconds while changes keep coming.",
)
@click.option(
    "--max-sync-limit",
    type=int,
    default=DEFAULT_MAX_SYNC_LIMIT,
    show_default=True,
    help="Sync the whole source once this many paths have changed.",
)
@click.version_option(version=__version__, prog_name="synchrotron")
@click.pass_context
def sync(ctx: click.Context, legacy_args: tuple[str, ...], **options: Any) -> None:
    """Watch a local directory and sync it to a destination with rsync.

    Runs a full sync, then syncs changed paths as they happen.
    Use --once to sync a single time and exit.
    """
    status_line = StatusLine()
    log = configure_logging(options["verbosity"], status_line, False if options["no_color"] else None)

    if options["config"]:
        _merge_config_file(ctx, options, log)
        if options["verbosity"] not in VERBOSITY_LEVELS:
            _fatal(log, f"Invalid verbosity {_blue(options['verbosity'])}")
        log = configure_logging(options["verbosity"], status_line, False if options["no_color"] else None)

    color = False if options["no_color"] else None
    if options["no_color"]:
        ctx.color = False

    _apply_positional_args(options, legacy_args, log)
    _add_defaults(options, log)
    _validate(options, log)

    notify = bool(options["notify"])
    once = bool(options["once"])

    exclude = options["exclude"] or []
    if isinstance(exclude, str):
        exclude = [exclude]

    try:
        config = SyncConfig(
            dest=options["dest"],
            source=options["source"],
            dry_run=bool(options["dry_run"]),
            delete_ignored=bool(options["delete_ignored"]),
            ignore_path=options["ignore_path"],
            exclude=list(exclude),
            rsync_path=options["rsync_path"],
            debounce_min=int(options["debounce_min"]),
            debounce_max=int(options["debounce_max"]),
            max_sync_limit=int(options["max_sync_limit"]),
        )
    except (TypeError, ValueError) as e:
        _fatal(log, str(e))

    log.debug("Options: %s", config)

    if config.dry_run:
        _header(log, "Dry run mode is enabled. Changes will only be simulated.")

    if config.ignore_path:
        _header(log, f"Using ignore file {_blue(config.ignore_path)}")

    _header(log, f"Syncing {_blue(config.source)} to {_blue(config.dest)}")

    def report(items_synced: int) -> None:
        items_text = "item" if items_synced == 1 else "items"
        timestamp = datetime.now().strftime("%H:%M:%S")
        log.info(
            "%s %s Synced %d %s to %s",
            click.style("✔", fg="green"),
            _gray(timestamp),
            items_synced,
            items_text,
            _blue(config.dest),
        )
        if notify:
            from synchrotron.notifications import notify_sync_complete

            notify_sync_complete(items_synced, config.dest)

    reporter = SyncReporter(report, report_empty=once)
    fatal_errors: list[SyncError] = []
    stop_event = threading.Event()

    def on_debounce(event: DebounceEvent) -> None:
        if not log.isEnabledFor(logging.INFO):
            return
        paths_text = "path" if event.pending_changes == 1 else "paths"
        status_line.show(
            "Rapid changes detected! Waiting for things to settle down. "
            + _gray(f"({event.pending_changes} {paths_text} changed)")
        )

    def on_stdout(record: OutputRecord) -> None:
        fg = LABEL_COLORS.get(record.operation, "yellow")
        log.log(record.level, "%s %s", click.style(record.label, fg=fg), _gray(record.message))

    def on_stderr(record: OutputRecord) -> None:
        log.log(record.level, "%s %s", click.style("!", fg="yellow"), record.line)

    def on_sync_start(event: SyncStartEvent) -> None:
        status_line.clear()
        log.debug("Syncing %d path(s)", len(event.paths))

    def on_sync_end(event: SyncEndEvent) -> None:
        status_line.clear()
        reporter.sync_ended(event.stats.items_synced)

    def on_warning(event: WarningEvent) -> None:
        status_line.clear()
        log.warning("%s %s", click.style("!", fg="yellow"), event.message)

    def on_error(error: SyncError) -> None:
        fatal_errors.append(error)
        stop_event.set()

    engine = Synchrotron(config, logger=log)
    (
        engine.on(SyncEventName.DEBOUNCE, on_debounce)
        .on(SyncEventName.RSYNC_STDOUT, on_stdout)
        .on(SyncEventName.RSYNC_STDERR, on_stderr)
        .on(SyncEventName.SYNC_START, on_sync_start)
        .on(SyncEventName.SYNC_END, on_sync_end)
        .on(SyncEventName.WARNING, on_warning)
        .on(SyncEventName.ERROR, on_error)
    )

    try:
        if not once:
            # Watch before the initial sync so changes made during it aren't missed
            engine.watch()

        try:
            engine.sync()
        except SyncError as e:
            _fatal(log, str(e), notify)

        if once:
            return

        _header(log, f"Watching for changes in {_blue(config.watch_path)}")

        try:
            while not stop_event.wait(WATCH_POLL_INTERVAL):
                pass
        except KeyboardInterrupt:
            status_line.clear()
            click.echo("\nStopping...", color=color)
            return

        _fatal(log, str(fatal_errors[0]), notify)
    finally:
        engine.unwatch()
        reporter.cancel()
