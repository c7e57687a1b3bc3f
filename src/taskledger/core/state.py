# src/taskledger/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..store.db import EntityStore
from .orchestrator import TaskLedgerService


@dataclass
class AppState:
    # Settings are stored on the state for easy access from command handlers.
    settings: Any

    store: EntityStore
    service: TaskLedgerService

    def close(self) -> None:
        self.store.close()
