# src/taskledger/store/db.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path
from typing import Any

from ..errors import StoreFailure

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2


class Transaction:
    """
    Unit of work over the store's single connection.

    Repositories and the ledger are constructed around one Transaction, so a
    task mutation, its category changes and the ledger append either all
    commit or all roll back. A Transaction is only valid inside the
    `EntityStore.transaction()` block that produced it.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._open = True

    def _close(self) -> None:
        self._open = False

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        if not self._open:
            raise StoreFailure("execute on a finished transaction")
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StoreFailure(_describe(sql), e) from e

    def executemany(self, sql: str, rows: Iterable[Sequence[Any]]) -> sqlite3.Cursor:
        if not self._open:
            raise StoreFailure("executemany on a finished transaction")
        try:
            return self._conn.executemany(sql, rows)
        except sqlite3.Error as e:
            raise StoreFailure(_describe(sql), e) from e

    def fetchone(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()


def _describe(sql: str) -> str:
    words = sql.split()
    return " ".join(words[:3]) if words else "statement"


class EntityStore:
    """
    SQLite store for tasks, task categories, the full-text index and the
    action ledger.

    One connection for the lifetime of the store, opened in autocommit mode;
    transactions are explicit (BEGIN IMMEDIATE for writes, BEGIN DEFERRED for
    reads, then COMMIT/ROLLBACK).

    Not safe for concurrent callers: a single process and a single caller at a
    time is a hard constraint, and starting a transaction while another one is
    open is refused.

    The schema is migration-safe in the same way as before:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = str(db_path)
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = self._get_conn()
        self._ensure_schema()
        logger.info("EntityStore ready db=%s tasks=%s", self._db_path, self.count_tasks())

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self._db_path, timeout=30.0, isolation_level=None)
        except sqlite3.Error as e:
            raise StoreFailure(f"open {self._db_path}", e) from e
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        conn.execute("PRAGMA foreign_keys=ON")
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        with self.transaction() as tx:
            had_fts = (
                tx.fetchone(
                    "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'tasks_fts'"
                )
                is not None
            )

            tx.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    info TEXT,
                    deadline TEXT,
                    status TEXT NOT NULL DEFAULT 'undone',
                    created_at TEXT NOT NULL,
                    updated_at TEXT
                )
                """
            )

            # Migrations (safe): add missing columns.
            cols = {row["name"] for row in tx.fetchall("PRAGMA table_info(tasks)")}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                tx.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("EntityStore migration: added column tasks.%s", name)

            add_col("info", "TEXT")
            add_col("deadline", "TEXT")
            add_col("status", "TEXT NOT NULL DEFAULT 'undone'")
            add_col("updated_at", "TEXT")

            # Databases created before updated_at existed.
            tx.execute("UPDATE tasks SET updated_at = created_at WHERE updated_at IS NULL")

            tx.execute(
                """
                CREATE TABLE IF NOT EXISTS task_categories (
                    task_id INTEGER NOT NULL,
                    category TEXT NOT NULL,
                    PRIMARY KEY (task_id, category)
                )
                """
            )
            tx.execute(
                "CREATE INDEX IF NOT EXISTS idx_task_categories_category "
                "ON task_categories(category)"
            )

            tx.execute(
                """
                CREATE TABLE IF NOT EXISTS actions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    operation BLOB NOT NULL,
                    restored INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
                """
            )
            tx.execute("CREATE INDEX IF NOT EXISTS idx_actions_restored ON actions(restored, id)")

            tx.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)")

            tx.execute("CREATE VIRTUAL TABLE IF NOT EXISTS tasks_fts USING fts5(title, info)")
            if not had_fts:
                tx.execute(
                    "INSERT INTO tasks_fts(rowid, title, info) "
                    "SELECT id, title, COALESCE(info, '') FROM tasks"
                )
                logger.info("EntityStore migration: built full-text index")

            tx.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")

    # ---- public API ----

    @property
    def path(self) -> str:
        return self._db_path

    @property
    def in_transaction(self) -> bool:
        return self._conn.in_transaction

    @contextlib.contextmanager
    def transaction(self, *, write: bool = True) -> Iterator[Transaction]:
        """
        Run a block as one atomic unit of work.

        `write=True` takes the write lock up front (BEGIN IMMEDIATE); read-only
        blocks use BEGIN DEFERRED and only take it if they write.

        Commits on normal exit; rolls back and re-raises on any exception.
        """
        if self._conn.in_transaction:
            raise StoreFailure("begin (a transaction is already open)")
        try:
            self._conn.execute("BEGIN IMMEDIATE" if write else "BEGIN DEFERRED")
        except sqlite3.Error as e:
            raise StoreFailure("begin", e) from e

        tx = Transaction(self._conn)
        try:
            yield tx
        except BaseException:
            tx._close()
            self._rollback()
            raise

        tx._close()
        try:
            self._conn.execute("COMMIT")
        except sqlite3.Error as e:
            self._rollback()
            raise StoreFailure("commit", e) from e

    def _rollback(self) -> None:
        if not self._conn.in_transaction:
            return
        try:
            self._conn.execute("ROLLBACK")
        except sqlite3.Error:
            logger.exception("EntityStore rollback failed db=%s", self._db_path)
            raise

    def count_tasks(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
        return int(row[0])

    def schema_version(self) -> int:
        row = self._conn.execute("PRAGMA user_version").fetchone()
        return int(row[0])

    def close(self) -> None:
        self._conn.close()
        logger.debug("EntityStore closed db=%s", self._db_path)

    def __enter__(self) -> EntityStore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
