"""Shared pytest fixtures for localsync tests."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest

from localsync.config import Config
from localsync.sync.adapter import RemoteSourceAdapter
from localsync.sync.state import StateFile


class FakeRemoteClient:
    """Minimal RemoteClient replacement for testing.

    Serves ``items`` from memory, records every call, and can be told to
    fail with ``fail_with``.
    """

    def __init__(self, items: list[Any] | None = None) -> None:
        self.items: Any = items if items is not None else []
        self.fail_with: Exception | None = None
        self.list_calls: list[int] = []
        self.created: list[dict] = []
        self.closed = False

    def list_items(self, limit: int) -> Any:
        self.list_calls.append(limit)
        if self.fail_with is not None:
            raise self.fail_with
        if isinstance(self.items, list):
            return self.items[:limit]
        return self.items

    def create_item(self, payload: dict) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.created.append(payload)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def state(tmp_path: Path) -> StateFile:
    """StateFile rooted in a fresh temp directory."""
    return StateFile(tmp_path / ".localsync")


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    """Config pointing at a temp state dir, with seeding and pushes off."""
    return Config(
        remote_url="https://remote.example.com/posts",
        state_dir=str(tmp_path / ".localsync"),
        warmup_delay_ms=0,
        push_on_create=False,
        seed_defaults=False,
    )


@pytest.fixture
def fake_client() -> FakeRemoteClient:
    return FakeRemoteClient()


@pytest.fixture
def adapter(fake_client: FakeRemoteClient) -> RemoteSourceAdapter:
    return RemoteSourceAdapter(fake_client)  # type: ignore[arg-type]


@pytest.fixture
def sandbox(tmp_path: Path, monkeypatch, fake_client: FakeRemoteClient):
    """Run the full stack inside *tmp_path* against ``fake_client``.

    No config files, .env, LOCALSYNC_* or LOG_* variables leak in, and every
    ``SyncService`` built without an adapter talks to ``fake_client``.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for name in list(os.environ):
        if name.startswith("LOCALSYNC_") or name in ("LOG_LEVEL", "LOG_FILE"):
            monkeypatch.delenv(name)
    monkeypatch.setattr("localsync.lifespan.load_dotenv", lambda: False)
    monkeypatch.setattr(
        "localsync.sync.engine.RemoteClient", lambda config: fake_client
    )
    return tmp_path
