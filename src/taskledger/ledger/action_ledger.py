# src/taskledger/ledger/action_ledger.py

from __future__ import annotations

import logging
import sqlite3
from datetime import date

from ..dates import from_iso, to_iso
from ..errors import Corruption, NothingToRedo, NothingToUndo, NotFound
from ..store.db import Transaction
from . import codec
from .action_models import Action, Operation

logger = logging.getLogger(__name__)


class ActionLedger:
    """
    Append-only log of reversible operations with a linear undo/redo cursor.

    Every record is either unrestored (its mutation is applied, it is on the
    undo side) or restored (its mutation was undone, it is on the redo side).
    A record only ever flips between the two:

        unrestored --undo--> restored --redo--> unrestored --> ...

    Appending a new record discards every restored record: there is one
    history, never a tree.
    """

    def __init__(self, tx: Transaction) -> None:
        self._tx = tx

    # ---- low-level helpers ----

    @staticmethod
    def _row_to_action(row: sqlite3.Row) -> Action:
        action_id = int(row["id"])
        created_at = from_iso(row["created_at"])
        if created_at is None:
            raise Corruption("missing created_at", action_id=action_id)
        return Action(
            id=action_id,
            operation=codec.decode(row["operation"], action_id=action_id),
            restored=bool(row["restored"]),
            created_at=created_at,
        )

    # ---- public API ----

    def append(self, operation: Operation, now: date) -> int:
        cur = self._tx.execute(
            "INSERT INTO actions(operation, restored, created_at) VALUES (?, 0, ?)",
            (codec.encode(operation), to_iso(now)),
        )
        action_id = int(cur.lastrowid or 0)

        # New history: the redo branch is gone.
        dropped = self._tx.execute("DELETE FROM actions WHERE restored = 1").rowcount
        logger.debug("Action appended id=%s dropped_redo=%s", action_id, dropped)
        return action_id

    def replace(self, action_id: int, operation: Operation, restored: bool) -> None:
        cur = self._tx.execute(
            "UPDATE actions SET operation = ?, restored = ? WHERE id = ?",
            (codec.encode(operation), 1 if restored else 0, int(action_id)),
        )
        if cur.rowcount == 0:
            raise NotFound("action", action_id)
        logger.debug("Action replaced id=%s restored=%s", action_id, restored)

    def get(self, action_id: int) -> Action | None:
        row = self._tx.fetchone(
            "SELECT id, operation, restored, created_at FROM actions WHERE id = ?",
            (int(action_id),),
        )
        return self._row_to_action(row) if row else None

    def undo_target(self) -> Action:
        """The most recent unrestored record."""
        row = self._tx.fetchone(
            """
            SELECT id, operation, restored, created_at
            FROM actions
            WHERE restored = 0
            ORDER BY id DESC
            LIMIT 1
            """
        )
        if row is None:
            raise NothingToUndo()
        return self._row_to_action(row)

    def redo_target(self) -> Action:
        """
        The oldest restored record.

        Records are undone from the top down, so the oldest restored one is the
        one undone most recently.
        """
        row = self._tx.fetchone(
            """
            SELECT id, operation, restored, created_at
            FROM actions
            WHERE restored = 1
            ORDER BY id ASC
            LIMIT 1
            """
        )
        if row is None:
            raise NothingToRedo()
        return self._row_to_action(row)

    def list_actions(self, limit: int | None = None) -> list[Action]:
        sql = "SELECT id, operation, restored, created_at FROM actions ORDER BY id DESC"
        params: tuple[int, ...] = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (max(0, int(limit)),)
        return [self._row_to_action(r) for r in self._tx.fetchall(sql, params)]

    def counts(self) -> tuple[int, int]:
        """(unrestored, restored)"""
        row = self._tx.fetchone(
            """
            SELECT
                COALESCE(SUM(CASE WHEN restored = 0 THEN 1 ELSE 0 END), 0) AS unrestored,
                COALESCE(SUM(CASE WHEN restored = 1 THEN 1 ELSE 0 END), 0) AS restored
            FROM actions
            """
        )
        if row is None:
            return 0, 0
        return int(row["unrestored"]), int(row["restored"])

    def clear(self) -> int:
        """Housekeeping: drop the whole history. Returns how many records were removed."""
        (n,) = self._tx.fetchone("SELECT COUNT(*) FROM actions") or (0,)
        self._tx.execute("DELETE FROM actions")
        logger.info("Action ledger cleared removed=%s", n)
        return int(n)
