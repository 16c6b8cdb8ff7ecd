"""Tests for the localsync command-line interface."""

import json
from unittest.mock import patch

import pytest
import requests

from localsync import __version__
from localsync.cli import build_parser, main, run


async def _run(*argv):
    return await main(build_parser().parse_args(list(argv)))


# -------------------------------------------------------------------------
# Parser
# -------------------------------------------------------------------------


class TestParser:
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_global_options(self):
        args = build_parser().parse_args(
            ["--remote-url", "https://r.example.com", "--json", "list"]
        )
        assert args.remote_url == "https://r.example.com"
        assert args.json is True
        assert args.command == "list"

    def test_add_requires_author_and_category(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["add", "text", "--author", "a"])

    def test_resolve_choices(self):
        args = build_parser().parse_args(["resolve", "2", "local"])
        assert args.index == 2
        assert args.keep == "local"
        with pytest.raises(SystemExit):
            build_parser().parse_args(["resolve", "2", "both"])

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--version"])
        assert __version__ in capsys.readouterr().out


# -------------------------------------------------------------------------
# Subcommands
# -------------------------------------------------------------------------


class TestCommands:
    async def test_list_shows_seeded_records(self, sandbox, capsys):
        assert await _run("list") == 0
        out = capsys.readouterr().out
        assert out.count("local-") == 3

    async def test_sync_prints_summary(self, sandbox, fake_client, capsys):
        fake_client.items = [{"id": 9, "title": "X"}]

        assert await _run("sync") == 0

        assert capsys.readouterr().out.strip() == (
            "Synced with remote: +1 new, 0 updated, "
            "0 conflicts resolved (remote wins)."
        )

    async def test_sync_failure_exit_code(self, sandbox, fake_client, capsys):
        fake_client.fail_with = requests.ConnectionError("offline")

        assert await _run("sync") == 1

        assert capsys.readouterr().out.startswith("Sync failed:")

    async def test_sync_json(self, sandbox, fake_client, capsys):
        fake_client.items = [{"id": 1, "title": "x"}]
        assert await _run("--json", "sync") == 0
        data = json.loads(capsys.readouterr().out)
        assert data["status"] == "success"
        assert data["added"] == 1

    async def test_add_persists_and_pushes(self, sandbox, fake_client, capsys):
        code = await _run(
            "add", "Quote", "--author", "Someone", "--category", "Life"
        )

        assert code == 0
        assert capsys.readouterr().out.startswith("Added local-")
        assert fake_client.created == [
            {"title": "Quote", "body": "Someone", "userId": 1}
        ]

        await _run("--json", "list")
        records = json.loads(capsys.readouterr().out)
        assert records[-1]["text"] == "Quote"

    async def test_add_blank_field(self, sandbox, capsys):
        code = await _run("add", " ", "--author", "a", "--category", "c")
        assert code == 1
        assert "Text cannot be empty" in capsys.readouterr().err

    async def test_conflict_then_resolve(self, sandbox, fake_client, capsys):
        # The second sync conflicts with the first
        fake_client.items = [{"id": 1, "title": "first"}]
        await _run("sync")
        fake_client.items = [{"id": 1, "title": "second"}]
        await _run("sync")
        capsys.readouterr()

        assert await _run("conflicts") == 0
        out = capsys.readouterr().out
        assert "[0] remote-1" in out
        assert "Resolved: No" in out

        assert await _run("resolve", "0", "local") == 0
        assert "kept local for remote-1" in capsys.readouterr().out

        await _run("--json", "list")
        records = {r["id"]: r for r in json.loads(capsys.readouterr().out)}
        assert records["remote-1"]["text"] == "first"
        assert records["remote-1"]["origin"] == "local"

    async def test_resolve_unknown_index(self, sandbox, capsys):
        assert await _run("resolve", "4", "remote") == 1
        assert "Conflict #4 does not exist" in capsys.readouterr().err

    async def test_conflicts_empty(self, sandbox, capsys):
        assert await _run("conflicts") == 0
        assert "No conflicts recorded." in capsys.readouterr().out

    async def test_state_dir_override(self, sandbox):
        await _run("--state-dir", str(sandbox / "custom"), "list")
        assert (sandbox / "custom" / "records.json").is_file()


# -------------------------------------------------------------------------
# run() entry point
# -------------------------------------------------------------------------


class TestRunEntryPoint:
    @patch("localsync.cli.setup_logging")
    def test_exit_code_propagated(self, mock_logging, sandbox):
        with pytest.raises(SystemExit) as exc:
            run(["conflicts"])
        assert exc.value.code == 0
        assert mock_logging.call_args.kwargs["mode"] == "cli"

    @patch("localsync.cli.setup_logging")
    def test_config_error_exits_1(
        self, mock_logging, sandbox, monkeypatch, capsys
    ):
        monkeypatch.setenv("LOCALSYNC_REMOTE_URL", "ftp://nope")
        with pytest.raises(SystemExit) as exc:
            run(["list"])
        assert exc.value.code == 1
        assert "Configuration error" in capsys.readouterr().err

    @patch("localsync.cli.setup_logging")
    def test_interval_below_minimum_exits_1(
        self, mock_logging, sandbox, capsys
    ):
        with pytest.raises(SystemExit) as exc:
            run(["run", "--interval-ms", "10"])
        assert exc.value.code == 1
        assert mock_logging.call_args.kwargs["mode"] == "daemon"

    @patch("localsync.cli.setup_logging")
    def test_logging_reapplied_from_config(
        self, mock_logging, sandbox, monkeypatch
    ):
        monkeypatch.setenv("LOCALSYNC_DEBUG", "1")
        with pytest.raises(SystemExit):
            run(["list"])

        first, second = mock_logging.call_args_list
        assert first.kwargs["debug"] is False
        assert second.kwargs["debug"] is True
        assert second.kwargs["force"] is True

    @patch("localsync.cli.setup_logging")
    def test_yaml_logging_section_applied(self, mock_logging, sandbox):
        config_file = sandbox / ".localsync" / "config.yml"
        config_file.parent.mkdir()
        config_file.write_text(
            f"logging:\n  level: error\n  file: {sandbox / 'ls.log'}\n"
        )
        with pytest.raises(SystemExit):
            run(["list"])

        kwargs = mock_logging.call_args.kwargs
        assert kwargs["level"] == "ERROR"
        assert kwargs["log_file"] == str(sandbox / "ls.log")

    @patch("localsync.cli.setup_logging")
    def test_log_file_flag_beats_config(
        self, mock_logging, sandbox, monkeypatch
    ):
        monkeypatch.setenv("LOG_FILE", str(sandbox / "env.log"))
        with pytest.raises(SystemExit):
            run(["--log-file", str(sandbox / "cli.log"), "list"])

        assert mock_logging.call_args.kwargs["log_file"] == str(
            sandbox / "cli.log"
        )

    @patch("localsync.cli.check_version_consistency")
    @patch("localsync.cli.setup_logging")
    def test_run_warns_on_version_mismatch(
        self, mock_logging, mock_check, sandbox, capsys
    ):
        mock_check.return_value = (False, "Version mismatch: runtime 0.0.1")
        with pytest.raises(SystemExit):
            run(["run", "--interval-ms", "10"])
        assert "Warning: Version mismatch" in capsys.readouterr().err

    @patch("localsync.cli.check_version_consistency")
    @patch("localsync.cli.setup_logging")
    def test_version_checked_only_for_run(
        self, mock_logging, mock_check, sandbox
    ):
        with pytest.raises(SystemExit):
            run(["list"])
        mock_check.assert_not_called()
