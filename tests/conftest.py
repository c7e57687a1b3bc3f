# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskledger.core.orchestrator import TaskLedgerService
from taskledger.core.state import AppState
from taskledger.store.db import EntityStore

from .fakes import FakeClock


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the command layer.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskledger-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        db_path=tmp_path / "tasks.sqlite3",
        log_dir=tmp_path / "logs",
        list_limit=50,
        actions_limit=10,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(settings: SimpleNamespace):
    s = EntityStore(settings.db_path)
    yield s
    s.close()


@pytest.fixture()
def service(store: EntityStore, clock: FakeClock) -> TaskLedgerService:
    return TaskLedgerService(store, clock=clock)


@pytest.fixture()
def state(settings: SimpleNamespace, store: EntityStore, service: TaskLedgerService) -> AppState:
    """AppState wired with a real SQLite store in tmp_path and a fake clock."""
    return AppState(settings=settings, store=store, service=service)
