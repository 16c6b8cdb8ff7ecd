"""Tests for logger.py: setup_logging() and JsonFormatter.

basicConfig is patched throughout: pytest's log capture already owns the
root logger, so the assertions look at what setup_logging() passes in.
"""

import json
import logging
import sys
from unittest.mock import patch

import pytest

from localsync.logger import DEFAULT_DAEMON_LOG, JsonFormatter, setup_logging


def _handlers(mock_basic) -> list[logging.Handler]:
    return mock_basic.call_args.kwargs["handlers"]


def _close(handlers):
    for h in handlers:
        if isinstance(h, logging.FileHandler):
            h.close()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("LOG_FILE", raising=False)


# ---------------------------------------------------------------------------
# setup_logging tests
# ---------------------------------------------------------------------------


@patch("localsync.logger.logging.basicConfig")
class TestSetupLogging:
    def test_cli_mode_uses_stderr_at_warning(self, mock_basic):
        setup_logging(mode="cli")

        mock_basic.assert_called_once()
        [handler] = _handlers(mock_basic)
        assert type(handler) is logging.StreamHandler
        assert handler.stream is sys.stderr
        assert mock_basic.call_args.kwargs["level"] == logging.WARNING

    def test_cli_mode_with_log_file(self, mock_basic, tmp_path):
        setup_logging(mode="cli", log_file=str(tmp_path / "cli.log"))

        handlers = _handlers(mock_basic)
        assert [type(h) for h in handlers] == [
            logging.StreamHandler,
            logging.FileHandler,
        ]
        _close(handlers)

    def test_daemon_mode_logs_to_file_at_info(self, mock_basic, tmp_path):
        log_file = tmp_path / "daemon.log"
        setup_logging(mode="daemon", log_file=str(log_file))

        [handler] = _handlers(mock_basic)
        assert isinstance(handler, logging.FileHandler)
        assert handler.baseFilename == str(log_file)
        assert mock_basic.call_args.kwargs["level"] == logging.INFO
        _close([handler])

    def test_daemon_mode_log_file_from_env(
        self, mock_basic, tmp_path, monkeypatch
    ):
        monkeypatch.setenv("LOG_FILE", str(tmp_path / "env.log"))
        setup_logging(mode="daemon")

        [handler] = _handlers(mock_basic)
        assert handler.baseFilename == str(tmp_path / "env.log")
        _close([handler])

    def test_daemon_default_path(self, mock_basic):
        with patch("localsync.logger.logging.FileHandler") as mock_fh:
            setup_logging(mode="daemon")
        mock_fh.assert_called_once_with(DEFAULT_DAEMON_LOG, mode="a")

    def test_env_log_level_honored(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "error")
        setup_logging(mode="cli")
        assert mock_basic.call_args.kwargs["level"] == logging.ERROR

    def test_unknown_env_level_falls_back_to_info(
        self, mock_basic, monkeypatch
    ):
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        setup_logging(mode="cli")
        assert mock_basic.call_args.kwargs["level"] == logging.INFO

    def test_debug_beats_env(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(mode="cli", debug=True)
        assert mock_basic.call_args.kwargs["level"] == logging.DEBUG

    def test_config_level_used(self, mock_basic):
        setup_logging(mode="cli", level="error")
        assert mock_basic.call_args.kwargs["level"] == logging.ERROR

    def test_env_level_beats_config_level(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        setup_logging(mode="cli", level="ERROR")
        assert mock_basic.call_args.kwargs["level"] == logging.DEBUG

    def test_force_passed_through(self, mock_basic):
        setup_logging(mode="cli")
        assert mock_basic.call_args.kwargs["force"] is False
        setup_logging(mode="cli", force=True)
        assert mock_basic.call_args.kwargs["force"] is True

    def test_json_format(self, mock_basic):
        setup_logging(mode="cli", debug_format="json")
        [handler] = _handlers(mock_basic)
        assert isinstance(handler.formatter, JsonFormatter)

    def test_third_party_silenced(self, _mock_basic):
        setup_logging(mode="cli")
        assert logging.getLogger("urllib3").level == logging.WARNING
        assert logging.getLogger("requests").level == logging.WARNING


# ---------------------------------------------------------------------------
# JsonFormatter tests
# ---------------------------------------------------------------------------


def _record(msg, args=(), exc_info=None, level=logging.INFO):
    return logging.LogRecord(
        name="localsync.sync.engine",
        level=level,
        pathname="engine.py",
        lineno=1,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )


class TestJsonFormatter:
    def test_fields(self):
        output = JsonFormatter().format(
            _record("Added local record %s", ("local-1",))
        )
        data = json.loads(output)
        assert data["level"] == "INFO"
        assert data["logger"] == "localsync.sync.engine"
        assert data["msg"] == "Added local record local-1"
        assert "ts" in data
        assert "\n" not in output

    def test_exception_included(self):
        try:
            raise OSError("disk full")
        except OSError:
            exc_info = sys.exc_info()

        data = json.loads(
            JsonFormatter().format(
                _record("write failed", exc_info=exc_info, level=logging.ERROR)
            )
        )
        assert "OSError: disk full" in data["exc"]
