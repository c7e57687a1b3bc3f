# src/taskledger/tasks/category_repository.py

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..errors import Duplicate, NotFound
from ..store.db import Transaction

logger = logging.getLogger(__name__)


class CategoryRepository:
    """
    Task/category assignments (the many-to-many relation).

    Categories have no identity of their own: they exist only as
    (task_id, category) rows. Existence is always checked with an explicit read
    before writing, never inferred from affected-row counts.
    """

    def __init__(self, tx: Transaction) -> None:
        self._tx = tx

    # ---- reads ----

    def exists(self, task_id: int, category: str) -> bool:
        row = self._tx.fetchone(
            "SELECT 1 FROM task_categories WHERE task_id = ? AND category = ?",
            (int(task_id), category),
        )
        return row is not None

    def list_for_task(self, task_id: int) -> list[str]:
        rows = self._tx.fetchall(
            "SELECT category FROM task_categories WHERE task_id = ? ORDER BY category",
            (int(task_id),),
        )
        return [str(r["category"]) for r in rows]

    def list_all(self) -> list[tuple[str, int]]:
        rows = self._tx.fetchall(
            """
            SELECT category, COUNT(task_id) AS n
            FROM task_categories
            GROUP BY category
            ORDER BY category
            """
        )
        return [(str(r["category"]), int(r["n"])) for r in rows]

    def task_ids_for(self, category: str) -> list[int]:
        rows = self._tx.fetchall(
            "SELECT task_id FROM task_categories WHERE category = ? ORDER BY task_id",
            (category,),
        )
        return [int(r["task_id"]) for r in rows]

    # ---- single task ----

    def assign(self, task_id: int, category: str) -> None:
        if self.exists(task_id, category):
            raise Duplicate(task_id, category)
        self._tx.execute(
            "INSERT INTO task_categories(task_id, category) VALUES (?, ?)",
            (int(task_id), category),
        )
        logger.debug("Category assigned task_id=%s category=%s", task_id, category)

    def batch_assign(self, task_id: int, categories: Iterable[str]) -> None:
        for category in categories:
            self.assign(task_id, category)

    def unassign(self, task_id: int, category: str) -> None:
        if not self.exists(task_id, category):
            raise NotFound("category", f"'{category}' on task #{task_id}")
        self._tx.execute(
            "DELETE FROM task_categories WHERE task_id = ? AND category = ?",
            (int(task_id), category),
        )
        logger.debug("Category unassigned task_id=%s category=%s", task_id, category)

    def unassign_all(self, task_id: int) -> list[str]:
        """Drop every category of a task; returns what was removed."""
        removed = self.list_for_task(task_id)
        self._tx.execute("DELETE FROM task_categories WHERE task_id = ?", (int(task_id),))
        return removed

    def rename(self, task_id: int, old: str, new: str) -> None:
        if not self.exists(task_id, old):
            raise NotFound("category", f"'{old}' on task #{task_id}")
        if old != new and self.exists(task_id, new):
            raise Duplicate(task_id, new)
        self._tx.execute(
            "UPDATE task_categories SET category = ? WHERE task_id = ? AND category = ?",
            (new, int(task_id), old),
        )
        logger.debug("Category renamed task_id=%s %s -> %s", task_id, old, new)

    # ---- across tasks ----

    def assign_to_tasks(self, task_ids: Iterable[int], category: str) -> None:
        for task_id in task_ids:
            self.assign(task_id, category)

    def unassign_from_tasks(self, task_ids: Iterable[int], category: str) -> None:
        for task_id in task_ids:
            self.unassign(task_id, category)

    def batch_rename(self, old: str, new: str, task_ids: Iterable[int] | None = None) -> list[int]:
        """
        Rename `old` to `new` on every task holding it (or only on `task_ids`).

        Returns the affected task ids. Fails with Duplicate, before writing
        anything, if an affected task already has `new`.
        """
        ids = self.task_ids_for(old) if task_ids is None else sorted(int(i) for i in task_ids)
        if old == new:
            return ids
        for task_id in ids:
            if not self.exists(task_id, old):
                raise NotFound("category", f"'{old}' on task #{task_id}")
            if self.exists(task_id, new):
                raise Duplicate(task_id, new)
        self._tx.executemany(
            "UPDATE task_categories SET category = ? WHERE task_id = ? AND category = ?",
            [(new, task_id, old) for task_id in ids],
        )
        logger.debug("Category batch renamed %s -> %s tasks=%s", old, new, ids)
        return ids

    def batch_unassign(self, category: str) -> list[int]:
        """Remove `category` from every task; returns the affected task ids."""
        ids = self.task_ids_for(category)
        self._tx.execute("DELETE FROM task_categories WHERE category = ?", (category,))
        logger.debug("Category batch removed %s tasks=%s", category, ids)
        return ids
