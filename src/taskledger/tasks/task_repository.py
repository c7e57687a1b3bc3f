# src/taskledger/tasks/task_repository.py

from __future__ import annotations

import logging
import sqlite3
from datetime import date
from typing import Any

from ..dates import from_iso, to_iso
from ..errors import NoChange, NotFound, StoreFailure
from ..store.db import Transaction
from .task_models import (
    NewTask,
    SortField,
    SortOrder,
    Task,
    TaskChanges,
    TaskQuery,
    TaskStatus,
    clean_info,
    clean_status,
    clean_title,
)

logger = logging.getLogger(__name__)

_TASK_COLUMNS = "id, title, info, deadline, status, created_at, updated_at"

_SORT_SQL = {
    SortField.CREATED_AT: "created_at",
    SortField.UPDATED_AT: "updated_at",
    SortField.DEADLINE: "deadline",
    SortField.TITLE: "title COLLATE NOCASE",
}


def fts_phrase_query(text: str) -> str:
    """
    Turn free text into an FTS5 query: every whitespace separated word becomes
    a quoted term, all terms must match.
    """
    terms = [w.replace('"', '""') for w in (text or "").split()]
    return " ".join(f'"{t}"' for t in terms)


class TaskRepository:
    """
    Task rows and their full-text index entries.

    Bound to one Transaction; the index is always written in the same
    transaction as the row.
    """

    def __init__(self, tx: Transaction) -> None:
        self._tx = tx

    # ---- low-level helpers ----

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        created_at = from_iso(row["created_at"])
        if created_at is None:
            raise StoreFailure(f"read task #{row['id']} (missing created_at)")
        return Task(
            id=int(row["id"]),
            title=str(row["title"]),
            info=row["info"],
            deadline=from_iso(row["deadline"]),
            status=TaskStatus.from_db(row["status"]),
            created_at=created_at,
            updated_at=from_iso(row["updated_at"]) or created_at,
        )

    def _index(self, task_id: int, title: str, info: str | None) -> None:
        self._tx.execute(
            "INSERT INTO tasks_fts(rowid, title, info) VALUES (?, ?, ?)",
            (task_id, title, info or ""),
        )

    def _unindex(self, task_id: int) -> None:
        self._tx.execute("DELETE FROM tasks_fts WHERE rowid = ?", (task_id,))

    def _require(self, task_id: int) -> Task:
        task = self.get(task_id)
        if task is None:
            raise NotFound("task", task_id)
        return task

    # ---- public API ----

    def get(self, task_id: int) -> Task | None:
        row = self._tx.fetchone(f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = ?", (int(task_id),))
        return self._row_to_task(row) if row else None

    def exists(self, task_id: int) -> bool:
        return self._tx.fetchone("SELECT 1 FROM tasks WHERE id = ?", (int(task_id),)) is not None

    def count(self) -> int:
        (n,) = self._tx.fetchone("SELECT COUNT(*) FROM tasks") or (0,)
        return int(n)

    def create(self, fields: NewTask, now: date) -> Task:
        title = clean_title(fields.title)
        info = clean_info(fields.info)
        created_at = fields.created_at or now
        updated_at = max(created_at, now)

        cur = self._tx.execute(
            """
            INSERT INTO tasks(title, info, deadline, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                title,
                info,
                to_iso(fields.deadline),
                clean_status(fields.status).value,
                to_iso(created_at),
                to_iso(updated_at),
            ),
        )
        rowid = cur.lastrowid
        if rowid is None:
            raise StoreFailure("insert task (no lastrowid)")
        task_id = int(rowid)
        self._index(task_id, title, info)
        logger.debug("Task created id=%s status=%s", task_id, fields.status)
        return self._require(task_id)

    def create_with_id(self, task: Task) -> Task:
        """Re-insert an exact snapshot, keeping its original id and timestamps."""
        self._tx.execute(
            f"""
            INSERT INTO tasks({_TASK_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.id,
                task.title,
                task.info,
                to_iso(task.deadline),
                task.status.value,
                to_iso(task.created_at),
                to_iso(task.updated_at),
            ),
        )
        self._index(task.id, task.title, task.info)
        logger.debug("Task restored id=%s", task.id)
        return self._require(task.id)

    def update(self, task_id: int, changes: TaskChanges, now: date) -> None:
        supplied = changes.supplied()
        if not supplied:
            raise NoChange(task_id)

        current = self._require(task_id)

        fields: list[str] = []
        params: list[Any] = []

        if "title" in supplied:
            fields.append("title = ?")
            params.append(clean_title(supplied["title"]))

        if "info" in supplied:
            fields.append("info = ?")
            params.append(clean_info(supplied["info"]))

        if "deadline" in supplied:
            fields.append("deadline = ?")
            params.append(to_iso(supplied["deadline"]))

        if "status" in supplied:
            fields.append("status = ?")
            params.append(clean_status(supplied["status"]).value)

        created_at = current.created_at
        if "created_at" in supplied:
            created_at = supplied["created_at"]
            fields.append("created_at = ?")
            params.append(to_iso(created_at))

        fields.append("updated_at = ?")
        params.append(to_iso(max(now, created_at)))
        params.append(int(task_id))

        self._tx.execute(f"UPDATE tasks SET {', '.join(fields)} WHERE id = ?", params)

        if "title" in supplied or "info" in supplied:
            updated = self._require(task_id)
            self._unindex(task_id)
            self._index(task_id, updated.title, updated.info)

        logger.debug("Task updated id=%s fields=%s", task_id, sorted(supplied))

    def overwrite(self, task: Task) -> None:
        """Write every column of an existing task from a snapshot."""
        self._require(task.id)
        self._tx.execute(
            """
            UPDATE tasks
            SET title = ?, info = ?, deadline = ?, status = ?, created_at = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                task.title,
                task.info,
                to_iso(task.deadline),
                task.status.value,
                to_iso(task.created_at),
                to_iso(task.updated_at),
                task.id,
            ),
        )
        self._unindex(task.id)
        self._index(task.id, task.title, task.info)
        logger.debug("Task overwritten id=%s", task.id)

    def delete(self, task: Task) -> None:
        cur = self._tx.execute("DELETE FROM tasks WHERE id = ?", (task.id,))
        if cur.rowcount == 0:
            raise NotFound("task", task.id)
        self._unindex(task.id)
        logger.debug("Task deleted id=%s", task.id)

    def query(self, query: TaskQuery) -> list[Task]:
        where: list[str] = []
        params: list[Any] = []

        if query.status is not None:
            where.append("status = ?")
            params.append(clean_status(query.status).value)

        if query.category:
            where.append("id IN (SELECT task_id FROM task_categories WHERE category = ?)")
            params.append(query.category.strip())

        if query.search and query.search.strip():
            where.append("id IN (SELECT rowid FROM tasks_fts WHERE tasks_fts MATCH ?)")
            params.append(fts_phrase_query(query.search))

        # Sort keys compose: the first is the primary ordering, later ones break ties.
        order: list[str] = []
        for sort_field, sort_order in query.sort:
            column = _SORT_SQL[SortField(sort_field)]
            direction = "DESC" if SortOrder(sort_order) is SortOrder.DESC else "ASC"
            if sort_field == SortField.DEADLINE:
                order.append("deadline IS NULL")
            order.append(f"{column} {direction}")
        order.append("id ASC")

        sql = f"SELECT {_TASK_COLUMNS} FROM tasks"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY " + ", ".join(order)
        if query.limit is not None:
            sql += " LIMIT ?"
            params.append(max(0, int(query.limit)))

        return [self._row_to_task(r) for r in self._tx.fetchall(sql, params)]
