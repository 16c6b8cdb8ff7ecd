"""Command-line entry point for localsync."""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Callable
from typing import Any

from . import __version__
from .config import Config
from .lifespan import service_lifespan
from .logger import setup_logging
from .sync.engine import SyncService
from .sync.errors import InvalidReferenceError, PersistenceError
from .sync.models import ResolutionChoice
from .sync.reporter import (
    conflict_to_json,
    format_conflict_history,
    format_records,
    format_sync_summary,
    summary_to_json,
)
from .version import check_version_consistency

logger = logging.getLogger(__name__)

_CHOICES = {
    "local": ResolutionChoice.KEEP_LOCAL,
    "remote": ResolutionChoice.KEEP_REMOTE,
}


def _emit(args: argparse.Namespace, text: str, data: Any) -> None:
    if args.json:
        print(json.dumps(data, indent=2))
    else:
        print(text)


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


async def _cmd_run(service: SyncService, args: argparse.Namespace) -> int:
    def _print_summary(summary) -> None:
        _emit(args, format_sync_summary(summary), summary_to_json(summary))

    service.add_summary_listener(_print_summary)
    service.start()
    print(
        f"Syncing every {service.scheduler.interval_ms / 1000:g}s. "
        "Press Ctrl-C to stop.",
        file=sys.stderr,
    )
    await asyncio.Event().wait()
    return 0


async def _cmd_sync(service: SyncService, args: argparse.Namespace) -> int:
    summary = await service.trigger_now()
    if summary is None:
        print("A sync cycle is already running.", file=sys.stderr)
        return 1
    _emit(args, format_sync_summary(summary), summary_to_json(summary))
    return 0 if summary.ok else 1


async def _cmd_add(service: SyncService, args: argparse.Namespace) -> int:
    record = await service.add_local_record(
        args.text, args.author, args.category
    )
    _emit(args, f"Added {record.id}", record.model_dump(mode="json"))
    return 0


async def _cmd_list(service: SyncService, args: argparse.Namespace) -> int:
    records = service.all_records()
    _emit(
        args,
        format_records(records),
        [r.model_dump(mode="json") for r in records],
    )
    return 0


async def _cmd_conflicts(
    service: SyncService, args: argparse.Namespace
) -> int:
    entries = service.conflict_history()
    _emit(
        args,
        format_conflict_history(entries),
        [conflict_to_json(i, e) for i, e in enumerate(entries)],
    )
    return 0


async def _cmd_resolve(
    service: SyncService, args: argparse.Namespace
) -> int:
    entry = service.resolve_conflict(args.index, _CHOICES[args.keep])
    _emit(
        args,
        f"Conflict resolved manually: kept {args.keep} for {entry.record_id}.",
        conflict_to_json(args.index, entry),
    )
    return 0


_COMMANDS = {
    "run": _cmd_run,
    "sync": _cmd_sync,
    "add": _cmd_add,
    "list": _cmd_list,
    "conflicts": _cmd_conflicts,
    "resolve": _cmd_resolve,
}


async def main(
    args: argparse.Namespace,
    on_config: Callable[[Config], None] | None = None,
) -> int:
    """Open the service, run one subcommand and close it again.

    *on_config* is called with the loaded config before the subcommand runs.
    """
    overrides: dict[str, Any] = {}
    if args.remote_url:
        overrides["remote_url"] = args.remote_url
    if args.state_dir:
        overrides["state_dir"] = args.state_dir
    if args.debug:
        overrides["debug"] = True
    if getattr(args, "interval_ms", None) is not None:
        overrides["sync_interval_ms"] = args.interval_ms

    async with service_lifespan(config_overrides=overrides) as service:
        if on_config is not None:
            on_config(service.config)
        try:
            return await _COMMANDS[args.command](service, args)
        except (InvalidReferenceError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except PersistenceError as e:
            logger.error("Persistence failure: %s", e)
            print(f"Error: {e}", file=sys.stderr)
            return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="localsync",
        description="Local-first record synchronizer with conflict tracking",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sync every 30s until interrupted
  localsync run

  # One sync cycle against a custom remote
  localsync --remote-url http://localhost:3000/posts sync

  # Add a record and inspect conflicts
  localsync add "Stay hungry, stay foolish." --author "Steve Jobs" --category Life
  localsync conflicts
  localsync resolve 0 local
        """,
    )
    parser.add_argument(
        "--remote-url",
        help="Override remote collection URL (takes precedence over LOCALSYNC_REMOTE_URL and config files)",
    )
    parser.add_argument(
        "--state-dir",
        help="Directory holding records.json and conflicts.json",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path (run: default /tmp/localsync.log)",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--json", action="store_true", help="Print machine-readable JSON"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"localsync version {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    run_p = sub.add_parser("run", help="Sync periodically until interrupted")
    run_p.add_argument(
        "--interval-ms",
        type=int,
        default=None,
        help="Milliseconds between cycles (default from config: 30000)",
    )

    sub.add_parser("sync", help="Run one sync cycle now")

    add_p = sub.add_parser("add", help="Create a local record")
    add_p.add_argument("text")
    add_p.add_argument("--author", required=True)
    add_p.add_argument("--category", required=True)

    sub.add_parser("list", help="List stored records")
    sub.add_parser("conflicts", help="Show the conflict history")

    resolve_p = sub.add_parser("resolve", help="Resolve a conflict by index")
    resolve_p.add_argument("index", type=int)
    resolve_p.add_argument("keep", choices=sorted(_CHOICES))

    return parser


def run(argv: list[str] | None = None) -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    args = build_parser().parse_args(argv)
    mode = "daemon" if args.command == "run" else "cli"
    # Bootstrap from argv so config errors are logged too
    setup_logging(mode=mode, debug=args.debug, log_file=args.log_file)

    def _apply_logging_config(config: Config) -> None:
        setup_logging(
            mode=mode,
            debug=config.debug,
            log_file=args.log_file or config.log_file,
            level=config.log_level,
            force=True,
        )

    if mode == "daemon":
        is_consistent, message = check_version_consistency()
        if is_consistent:
            logger.info(message)
        else:
            logger.warning(message)
            print(f"Warning: {message}", file=sys.stderr)

    try:
        code = asyncio.run(main(args, on_config=_apply_logging_config))
    except RuntimeError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)
    sys.exit(code)


if __name__ == "__main__":
    run()
