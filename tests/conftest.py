"""Shared test fixtures for bifrost.

Provides test doubles for the repository's collaborators (store, notifier,
connectivity, clock), isolated config directories, output management, and a
CLI runner. Fixtures are discovered by pytest automatically.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

import pytest

from bifrost.cache import MemoryCache
from bifrost.connectivity import StaticConnectionChecker
from bifrost.models import CacheConfig
from bifrost.notifier import SystemNotifier
from bifrost.output import OutputFormat, OutputManager, reset_output, set_output
from bifrost.repository import Repository
from bifrost.storage import InMemoryStore


# ---------------------------------------------------------------------------
# Global state reset
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams, so a manager created in
    one test must not leak into the next.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _restore_root_logger() -> None:
    """Undo the logging configuration installed by CLI invocations."""
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield
    root.setLevel(level)
    root.handlers[:] = handlers


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeClock:
    """Controllable clock returning aware UTC datetimes."""

    def __init__(self, now: Optional[datetime] = None) -> None:
        self.now = now or datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier(SystemNotifier):
    """Notifier that records every event as ``(name, args)``."""

    def __init__(self) -> None:
        self.events: list[tuple[str, tuple[Any, ...]]] = []

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def on_network_error(self) -> None:
        self.events.append(("network_error", ()))

    def on_unauthorized(self) -> None:
        self.events.append(("unauthorized", ()))

    def on_forbidden(self) -> None:
        self.events.append(("forbidden", ()))

    def on_server_error(self, status_code: int, body: Optional[str]) -> None:
        self.events.append(("server_error", (status_code, body)))

    def on_api_error(self, status_code: int, body: Optional[str]) -> None:
        self.events.append(("api_error", (status_code, body)))


# ---------------------------------------------------------------------------
# Collaborator fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def connectivity() -> StaticConnectionChecker:
    return StaticConnectionChecker(connected=True)


@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def repo(
    store: InMemoryStore,
    notifier: RecordingNotifier,
    connectivity: StaticConnectionChecker,
    memory_cache: MemoryCache,
    clock: FakeClock,
) -> Repository:
    """Repository wired to in-memory doubles and a frozen clock."""
    return Repository(
        store=store,
        notifier=notifier,
        connection_checker=connectivity,
        memory_cache=memory_cache,
        config=CacheConfig(),
        clock=clock,
    )


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration and cache directories under tmp_path.

    Sets XDG_CONFIG_HOME and XDG_CACHE_HOME, forces the XDG layout on
    every platform, clears BIFROST_* variables, and changes the working
    directory to tmp_path.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setattr("bifrost.config._is_xdg_platform", lambda: True)

    for var in ["BIFROST_PROFILE", "BIFROST_BASE_URL", "BIFROST_CACHE_TTL"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN-format OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
