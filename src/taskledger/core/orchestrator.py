# src/taskledger/core/orchestrator.py

"""
Operation orchestrator.

The only place that touches both the repositories and the action ledger.
Each public method is one logical operation and runs in exactly one
transaction: the mutation, and the ledger record describing it, commit
together or not at all.

Ledger records describe the mutation that was *performed*. Reverting a record
applies the opposite mutation and yields a new record describing that
opposite mutation; undo and redo are both "revert the target, store what you
did, flip the flag". Repeated undo/redo therefore toggles one record between
two mirror-image payloads without growing the ledger.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import date

from ..errors import InvalidInput, LedgerInvariantError, NotFound
from ..ledger.action_ledger import ActionLedger
from ..ledger.action_models import (
    Action,
    BatchCategoryCreate,
    BatchCategoryDelete,
    BatchCategoryRename,
    CategoryOperation,
    Operation,
    OperationKind,
    RenameCategoryOperation,
    TaskOperation,
    describe,
)
from ..store.db import EntityStore
from ..tasks.category_repository import CategoryRepository
from ..tasks.task_models import (
    NewTask,
    Task,
    TaskChanges,
    TaskDetails,
    TaskQuery,
    clean_categories,
    clean_category,
)
from ..tasks.task_repository import TaskRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Unit:
    """Repositories and ledger bound to the same transaction."""

    tasks: TaskRepository
    categories: CategoryRepository
    ledger: ActionLedger


class TaskLedgerService:
    def __init__(self, store: EntityStore, *, clock: Callable[[], date] = date.today) -> None:
        self._store = store
        self._clock = clock

    @property
    def store(self) -> EntityStore:
        return self._store

    @contextlib.contextmanager
    def _unit(self, *, write: bool = True) -> Iterator[_Unit]:
        with self._store.transaction(write=write) as tx:
            yield _Unit(
                tasks=TaskRepository(tx),
                categories=CategoryRepository(tx),
                ledger=ActionLedger(tx),
            )

    @staticmethod
    def _require_task(u: _Unit, task_id: int) -> Task:
        task = u.tasks.get(task_id)
        if task is None:
            raise NotFound("task", task_id)
        return task

    @staticmethod
    def _details(u: _Unit, task: Task) -> TaskDetails:
        return TaskDetails(task=task, categories=u.categories.list_for_task(task.id))

    # ---- tasks ----

    def add_task(self, fields: NewTask, categories: Iterable[str] = ()) -> TaskDetails:
        cats = clean_categories(tuple(categories))
        now = self._clock()
        with self._unit() as u:
            task = u.tasks.create(fields, now)
            u.categories.batch_assign(task.id, cats)
            details = self._details(u, task)
            u.ledger.append(
                TaskOperation(OperationKind.CREATE, task, tuple(details.categories)), now
            )
        logger.info("Task added id=%s categories=%s", task.id, details.categories)
        return details

    def edit_task(self, task_id: int, changes: TaskChanges) -> TaskDetails:
        now = self._clock()
        with self._unit() as u:
            before = self._require_task(u, task_id)
            u.tasks.update(task_id, changes, now)
            u.ledger.append(TaskOperation(OperationKind.UPDATE, before), now)
            details = self._details(u, self._require_task(u, task_id))
        logger.info("Task edited id=%s fields=%s", task_id, sorted(changes.supplied()))
        return details

    def remove_task(self, task_id: int) -> TaskDetails:
        """Delete a task and its categories; returns what was removed."""
        now = self._clock()
        with self._unit() as u:
            task = self._require_task(u, task_id)
            removed = u.categories.unassign_all(task_id)
            u.tasks.delete(task)
            u.ledger.append(TaskOperation(OperationKind.DELETE, task, tuple(removed)), now)
        logger.info("Task removed id=%s", task_id)
        return TaskDetails(task=task, categories=removed)

    def read_task(self, task_id: int) -> TaskDetails:
        with self._unit(write=False) as u:
            return self._details(u, self._require_task(u, task_id))

    def list_tasks(self, query: TaskQuery | None = None) -> list[TaskDetails]:
        with self._unit(write=False) as u:
            return [self._details(u, t) for t in u.tasks.query(query or TaskQuery())]

    # ---- categories ----

    def add_category(self, task_id: int, category: str) -> None:
        category = clean_category(category)
        now = self._clock()
        with self._unit() as u:
            self._require_task(u, task_id)
            u.categories.assign(task_id, category)
            u.ledger.append(CategoryOperation(OperationKind.CREATE, task_id, category), now)
        logger.info("Category added task_id=%s category=%s", task_id, category)

    def remove_category(self, task_id: int, category: str) -> None:
        category = clean_category(category)
        now = self._clock()
        with self._unit() as u:
            self._require_task(u, task_id)
            u.categories.unassign(task_id, category)
            u.ledger.append(CategoryOperation(OperationKind.DELETE, task_id, category), now)
        logger.info("Category removed task_id=%s category=%s", task_id, category)

    def rename_category(self, task_id: int, old: str, new: str) -> None:
        old, new = self._rename_pair(old, new)
        now = self._clock()
        with self._unit() as u:
            self._require_task(u, task_id)
            u.categories.rename(task_id, old, new)
            u.ledger.append(RenameCategoryOperation(task_id, old, new), now)
        logger.info("Category renamed task_id=%s %s -> %s", task_id, old, new)

    def batch_rename_category(self, old: str, new: str) -> list[int]:
        """Rename a category on every task that has it; returns the affected task ids."""
        old, new = self._rename_pair(old, new)
        now = self._clock()
        with self._unit() as u:
            if not u.categories.task_ids_for(old):
                raise NotFound("category", f"'{old}'")
            ids = u.categories.batch_rename(old, new)
            u.ledger.append(BatchCategoryRename(tuple(ids), old, new), now)
        logger.info("Category batch renamed %s -> %s tasks=%s", old, new, ids)
        return ids

    def batch_delete_category(self, category: str) -> list[int]:
        """Remove a category from every task; returns the affected task ids."""
        category = clean_category(category)
        now = self._clock()
        with self._unit() as u:
            if not u.categories.task_ids_for(category):
                raise NotFound("category", f"'{category}'")
            ids = u.categories.batch_unassign(category)
            u.ledger.append(BatchCategoryDelete(tuple(ids), category), now)
        logger.info("Category batch removed %s tasks=%s", category, ids)
        return ids

    def list_categories(self) -> list[tuple[str, int]]:
        with self._unit(write=False) as u:
            return u.categories.list_all()

    @staticmethod
    def _rename_pair(old: str, new: str) -> tuple[str, str]:
        old_c = clean_category(old)
        new_c = clean_category(new)
        if old_c == new_c:
            raise InvalidInput("category", f"new name equals old name '{old_c}'")
        return old_c, new_c

    # ---- ledger ----

    def undo(self) -> Action:
        with self._unit() as u:
            target = u.ledger.undo_target()
            performed = self._revert(u, target)
            u.ledger.replace(target.id, performed, restored=True)
        logger.info("Undo action id=%s %s", target.id, describe(target.operation))
        return Action(id=target.id, operation=performed, restored=True, created_at=target.created_at)

    def redo(self) -> Action:
        with self._unit() as u:
            target = u.ledger.redo_target()
            performed = self._revert(u, target)
            u.ledger.replace(target.id, performed, restored=False)
        logger.info("Redo action id=%s %s", target.id, describe(target.operation))
        return Action(id=target.id, operation=performed, restored=False, created_at=target.created_at)

    def list_actions(self, limit: int | None = None) -> list[Action]:
        with self._unit(write=False) as u:
            return u.ledger.list_actions(limit)

    def action_counts(self) -> tuple[int, int]:
        """(unrestored, restored)"""
        with self._unit(write=False) as u:
            return u.ledger.counts()

    def clear_actions(self) -> int:
        with self._unit() as u:
            return u.ledger.clear()

    # ---- replay ----

    def _revert(self, u: _Unit, action: Action) -> Operation:
        """Apply the opposite of `action.operation`; return a record of what was applied."""
        op = action.operation

        def expect(ok: bool, reason: str) -> None:
            if not ok:
                raise LedgerInvariantError(action.id, reason)

        def expect_task(task_id: int) -> Task:
            task = u.tasks.get(task_id)
            expect(task is not None, f"task #{task_id} no longer exists")
            assert task is not None
            return task

        if isinstance(op, TaskOperation):
            task_id = op.task.id

            if op.kind is OperationKind.CREATE:
                current = expect_task(task_id)
                removed = u.categories.unassign_all(task_id)
                u.tasks.delete(current)
                return TaskOperation(OperationKind.DELETE, current, tuple(removed))

            if op.kind is OperationKind.DELETE:
                expect(not u.tasks.exists(task_id), f"task #{task_id} already exists")
                expect(
                    not u.categories.list_for_task(task_id),
                    f"task #{task_id} still has categories",
                )
                restored = u.tasks.create_with_id(op.task)
                u.categories.batch_assign(task_id, op.categories)
                return TaskOperation(OperationKind.CREATE, restored, op.categories)

            current = expect_task(task_id)
            u.tasks.overwrite(op.task)
            return TaskOperation(OperationKind.UPDATE, current)

        if isinstance(op, CategoryOperation):
            expect_task(op.task_id)
            present = u.categories.exists(op.task_id, op.category)

            if op.kind is OperationKind.CREATE:
                expect(present, f"category '{op.category}' missing on task #{op.task_id}")
                u.categories.unassign(op.task_id, op.category)
                return CategoryOperation(OperationKind.DELETE, op.task_id, op.category)

            expect(not present, f"category '{op.category}' already on task #{op.task_id}")
            u.categories.assign(op.task_id, op.category)
            return CategoryOperation(OperationKind.CREATE, op.task_id, op.category)

        if isinstance(op, RenameCategoryOperation):
            expect_task(op.task_id)
            expect(
                u.categories.exists(op.task_id, op.new),
                f"category '{op.new}' missing on task #{op.task_id}",
            )
            expect(
                not u.categories.exists(op.task_id, op.old),
                f"category '{op.old}' already on task #{op.task_id}",
            )
            u.categories.rename(op.task_id, op.new, op.old)
            return RenameCategoryOperation(op.task_id, op.new, op.old)

        if isinstance(op, BatchCategoryRename):
            for task_id in op.task_ids:
                expect_task(task_id)
                expect(
                    u.categories.exists(task_id, op.new),
                    f"category '{op.new}' missing on task #{task_id}",
                )
                expect(
                    not u.categories.exists(task_id, op.old),
                    f"category '{op.old}' already on task #{task_id}",
                )
            u.categories.batch_rename(op.new, op.old, task_ids=op.task_ids)
            return BatchCategoryRename(op.task_ids, op.new, op.old)

        if isinstance(op, BatchCategoryDelete):
            for task_id in op.task_ids:
                expect_task(task_id)
                expect(
                    not u.categories.exists(task_id, op.category),
                    f"category '{op.category}' already on task #{task_id}",
                )
            u.categories.assign_to_tasks(op.task_ids, op.category)
            return BatchCategoryCreate(op.task_ids, op.category)

        if isinstance(op, BatchCategoryCreate):
            for task_id in op.task_ids:
                expect_task(task_id)
                expect(
                    u.categories.exists(task_id, op.category),
                    f"category '{op.category}' missing on task #{task_id}",
                )
            u.categories.unassign_from_tasks(op.task_ids, op.category)
            return BatchCategoryDelete(op.task_ids, op.category)

        raise LedgerInvariantError(action.id, f"unknown operation {type(op).__name__}")
