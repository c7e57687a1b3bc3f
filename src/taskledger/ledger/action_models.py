# src/taskledger/ledger/action_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import StrEnum

from ..tasks.task_models import Task


class OperationKind(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class TaskOperation:
    """
    A task was created, updated or deleted.

    `task` is the snapshot needed to reverse it: the created/deleted task, or
    the state *before* an update. `categories` travel with create/delete so the
    reversal restores them too.
    """

    kind: OperationKind
    task: Task
    categories: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class CategoryOperation:
    kind: OperationKind
    task_id: int
    category: str

    def __post_init__(self) -> None:
        if self.kind is OperationKind.UPDATE:
            raise ValueError("CategoryOperation is either create or delete")


@dataclass(frozen=True, slots=True)
class RenameCategoryOperation:
    task_id: int
    old: str
    new: str


@dataclass(frozen=True, slots=True)
class BatchCategoryRename:
    task_ids: tuple[int, ...]
    old: str
    new: str


@dataclass(frozen=True, slots=True)
class BatchCategoryDelete:
    task_ids: tuple[int, ...]
    category: str


@dataclass(frozen=True, slots=True)
class BatchCategoryCreate:
    task_ids: tuple[int, ...]
    category: str


Operation = (
    TaskOperation
    | CategoryOperation
    | RenameCategoryOperation
    | BatchCategoryRename
    | BatchCategoryDelete
    | BatchCategoryCreate
)


@dataclass(frozen=True, slots=True)
class Action:
    id: int
    operation: Operation
    restored: bool
    created_at: date


def describe(operation: Operation) -> str:
    """One-line summary used by the command layer and log messages."""
    if isinstance(operation, TaskOperation):
        return f"[Task] - (#{operation.task.id}) - [{operation.kind.value.capitalize()}]"
    if isinstance(operation, CategoryOperation):
        return (
            f"[Category] - (#{operation.task_id}) '{operation.category}'"
            f" - [{operation.kind.value.capitalize()}]"
        )
    if isinstance(operation, RenameCategoryOperation):
        return f"[Category] - (#{operation.task_id}) '{operation.old}' -> '{operation.new}' - [Rename]"
    if isinstance(operation, BatchCategoryRename):
        n = len(operation.task_ids)
        return f"[Category] - {n} task(s) '{operation.old}' -> '{operation.new}' - [Batch rename]"
    if isinstance(operation, BatchCategoryDelete):
        return f"[Category] - {len(operation.task_ids)} task(s) '{operation.category}' - [Batch delete]"
    if isinstance(operation, BatchCategoryCreate):
        return f"[Category] - {len(operation.task_ids)} task(s) '{operation.category}' - [Batch create]"
    raise TypeError(f"unknown operation: {operation!r}")
