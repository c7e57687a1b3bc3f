# src/taskledger/errors.py

"""
Error taxonomy shared by the stores, the ledger and the service layer.

Every error carries the id/category/operation it is about, so the command
layer can report it without extra context.
"""

from __future__ import annotations


class TaskLedgerError(Exception):
    """Base class for every error raised by taskledger."""


class NotFound(TaskLedgerError):
    def __init__(self, entity: str, key: object) -> None:
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")


class Duplicate(TaskLedgerError):
    def __init__(self, task_id: int, category: str) -> None:
        self.task_id = task_id
        self.category = category
        super().__init__(f"task #{task_id} already has category '{category}'")


class NoChange(TaskLedgerError):
    def __init__(self, task_id: int) -> None:
        self.task_id = task_id
        super().__init__(f"no fields supplied to update task #{task_id}")


class NothingToUndo(TaskLedgerError):
    def __init__(self) -> None:
        super().__init__("nothing to undo")


class NothingToRedo(TaskLedgerError):
    def __init__(self) -> None:
        super().__init__("nothing to redo")


class Corruption(TaskLedgerError):
    """A ledger payload could not be decoded. Never recovered from."""

    def __init__(self, reason: str, action_id: int | None = None) -> None:
        self.action_id = action_id
        self.reason = reason
        where = f"action #{action_id}" if action_id is not None else "action payload"
        super().__init__(f"corrupted {where}: {reason}")


class StoreFailure(TaskLedgerError):
    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.cause = cause
        msg = f"store failure during {operation}"
        if cause is not None:
            msg = f"{msg}: {cause}"
        super().__init__(msg)


class LedgerInvariantError(TaskLedgerError):
    """
    Replaying a ledger record found the store in a state the record says is
    impossible (e.g. the task it refers to is gone).
    """

    def __init__(self, action_id: int, reason: str) -> None:
        self.action_id = action_id
        self.reason = reason
        super().__init__(f"ledger invariant violated by action #{action_id}: {reason}")


class InvalidInput(TaskLedgerError, ValueError):
    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"invalid {field}: {reason}")
