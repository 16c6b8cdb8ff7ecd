"""Logging setup for the one-shot CLI and the long-running sync daemon."""

import json
import logging
import os
import sys

DEFAULT_DAEMON_LOG = "/tmp/localsync.log"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON line.

    Keys: ``ts``, ``level``, ``logger``, ``msg``, plus ``exc`` with the
    formatted traceback when the record carries one.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _make_formatter(debug_format: str, with_name: bool) -> logging.Formatter:
    if debug_format == "json":
        return JsonFormatter(datefmt=_DATEFMT)
    fmt = (
        "[%(asctime)s] [%(levelname)s] %(name)s %(message)s"
        if with_name
        else "[%(asctime)s] [%(levelname)s] %(message)s"
    )
    return logging.Formatter(fmt, datefmt=_DATEFMT)


def setup_logging(
    mode: str = "cli",
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
    level: str | None = None,
    force: bool = False,
) -> None:
    """
    Install root handlers for the given execution mode.

    ``daemon`` (the ``run`` command) writes to a log file at INFO, since it
    runs unattended; ``cli`` writes to stderr at WARNING so command output
    on stdout stays clean, optionally mirrored to *log_file*.

    Args:
        mode: "daemon" or "cli".
        debug: Force DEBUG regardless of LOG_LEVEL.
        log_file: Log file path; for daemon mode it beats LOG_FILE.
        debug_format: "text" or "json".
        level: Level name from the config file; LOG_LEVEL beats it.
        force: Replace handlers installed by an earlier call.

    Environment variables:
        LOG_LEVEL: Level name used when *debug* is off.
        LOG_FILE: Daemon log file (default: /tmp/localsync.log).
    """
    default_level = "INFO" if mode == "daemon" else "WARNING"
    level_name = (os.getenv("LOG_LEVEL") or level or default_level).upper()

    if debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, level_name, logging.INFO)

    handlers: list[logging.Handler] = []
    if mode == "daemon":
        final_log_file = log_file or os.getenv("LOG_FILE", DEFAULT_DAEMON_LOG)
        file_handler = logging.FileHandler(final_log_file, mode="a")
        file_handler.setFormatter(_make_formatter(debug_format, True))
        handlers.append(file_handler)
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(_make_formatter(debug_format, False))
        handlers.append(stderr_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file, mode="a")
            file_handler.setFormatter(_make_formatter(debug_format, True))
            handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=force)

    # Silence third-party libs unless DEBUG
    if log_level != logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("requests").setLevel(logging.WARNING)
