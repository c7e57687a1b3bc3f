# src/taskledger/ledger/codec.py

"""
Versioned binary encoding of ledger operations.

Layout of a blob:

    b"TLA" | version (1 byte) | UTF-8 JSON object {"type": <tag>, ...fields}

The set of tags is closed and every field is encoded/decoded by hand, so the
format only changes when this module changes (and then the version byte
changes with it). Anything that does not decode exactly is Corruption; there
is no best-effort recovery.
"""

from __future__ import annotations

import json
from datetime import date
from typing import Any

from ..errors import Corruption
from ..tasks.task_models import Task, TaskStatus
from .action_models import (
    BatchCategoryCreate,
    BatchCategoryDelete,
    BatchCategoryRename,
    CategoryOperation,
    Operation,
    OperationKind,
    RenameCategoryOperation,
    TaskOperation,
)

MAGIC = b"TLA"
VERSION = 1

_TAG_TASK = "task"
_TAG_CATEGORY = "category"
_TAG_RENAME_CATEGORY = "rename_category"
_TAG_BATCH_RENAME = "batch_category_rename"
_TAG_BATCH_DELETE = "batch_category_delete"
_TAG_BATCH_CREATE = "batch_category_create"


# ---- encode ----


def _task_to_dict(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "info": task.info,
        "deadline": task.deadline.isoformat() if task.deadline else None,
        "status": task.status.value,
        "created_at": task.created_at.isoformat(),
        "updated_at": task.updated_at.isoformat(),
    }


def _operation_to_dict(op: Operation) -> dict[str, Any]:
    if isinstance(op, TaskOperation):
        return {
            "type": _TAG_TASK,
            "kind": op.kind.value,
            "task": _task_to_dict(op.task),
            "categories": list(op.categories),
        }
    if isinstance(op, CategoryOperation):
        return {
            "type": _TAG_CATEGORY,
            "kind": op.kind.value,
            "task_id": op.task_id,
            "category": op.category,
        }
    if isinstance(op, RenameCategoryOperation):
        return {"type": _TAG_RENAME_CATEGORY, "task_id": op.task_id, "old": op.old, "new": op.new}
    if isinstance(op, BatchCategoryRename):
        return {
            "type": _TAG_BATCH_RENAME,
            "task_ids": list(op.task_ids),
            "old": op.old,
            "new": op.new,
        }
    if isinstance(op, BatchCategoryDelete):
        return {"type": _TAG_BATCH_DELETE, "task_ids": list(op.task_ids), "category": op.category}
    if isinstance(op, BatchCategoryCreate):
        return {"type": _TAG_BATCH_CREATE, "task_ids": list(op.task_ids), "category": op.category}
    raise TypeError(f"cannot encode operation of type {type(op).__name__}")


def encode(op: Operation) -> bytes:
    payload = json.dumps(_operation_to_dict(op), ensure_ascii=False, separators=(",", ":"))
    return MAGIC + bytes([VERSION]) + payload.encode("utf-8")


# ---- decode ----


def _field(obj: dict[str, Any], name: str, kind: type | tuple[type, ...]) -> Any:
    if name not in obj:
        raise Corruption(f"missing field '{name}'")
    value = obj[name]
    # bool is an int subclass; never accept it where an int is expected.
    if isinstance(value, bool) and kind is int:
        raise Corruption(f"field '{name}' has type bool")
    if not isinstance(value, kind):
        raise Corruption(f"field '{name}' has type {type(value).__name__}")
    return value


def _optional_str(obj: dict[str, Any], name: str) -> str | None:
    if obj.get(name) is None:
        if name not in obj:
            raise Corruption(f"missing field '{name}'")
        return None
    return _field(obj, name, str)


def _date(raw: str, name: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise Corruption(f"field '{name}' is not a date: {raw!r}") from None


def _int_list(obj: dict[str, Any], name: str) -> tuple[int, ...]:
    values = _field(obj, name, list)
    if not all(isinstance(v, int) and not isinstance(v, bool) for v in values):
        raise Corruption(f"field '{name}' must be a list of ints")
    return tuple(values)


def _str_list(obj: dict[str, Any], name: str) -> tuple[str, ...]:
    values = _field(obj, name, list)
    if not all(isinstance(v, str) for v in values):
        raise Corruption(f"field '{name}' must be a list of strings")
    return tuple(values)


def _kind(obj: dict[str, Any]) -> OperationKind:
    raw = _field(obj, "kind", str)
    try:
        return OperationKind(raw)
    except ValueError:
        raise Corruption(f"unknown operation kind {raw!r}") from None


def _task_from_dict(obj: Any) -> Task:
    if not isinstance(obj, dict):
        raise Corruption("field 'task' must be an object")
    deadline = _optional_str(obj, "deadline")
    raw_status = _field(obj, "status", str)
    try:
        status = TaskStatus(raw_status)
    except ValueError:
        raise Corruption(f"unknown task status {raw_status!r}") from None
    return Task(
        id=_field(obj, "id", int),
        title=_field(obj, "title", str),
        info=_optional_str(obj, "info"),
        deadline=_date(deadline, "deadline") if deadline is not None else None,
        status=status,
        created_at=_date(_field(obj, "created_at", str), "created_at"),
        updated_at=_date(_field(obj, "updated_at", str), "updated_at"),
    )


def _operation_from_dict(obj: dict[str, Any]) -> Operation:
    tag = _field(obj, "type", str)

    if tag == _TAG_TASK:
        return TaskOperation(
            kind=_kind(obj),
            task=_task_from_dict(obj.get("task")),
            categories=_str_list(obj, "categories"),
        )
    if tag == _TAG_CATEGORY:
        kind = _kind(obj)
        if kind is OperationKind.UPDATE:
            raise Corruption("category operation cannot be an update")
        return CategoryOperation(
            kind=kind,
            task_id=_field(obj, "task_id", int),
            category=_field(obj, "category", str),
        )
    if tag == _TAG_RENAME_CATEGORY:
        return RenameCategoryOperation(
            task_id=_field(obj, "task_id", int),
            old=_field(obj, "old", str),
            new=_field(obj, "new", str),
        )
    if tag == _TAG_BATCH_RENAME:
        return BatchCategoryRename(
            task_ids=_int_list(obj, "task_ids"),
            old=_field(obj, "old", str),
            new=_field(obj, "new", str),
        )
    if tag == _TAG_BATCH_DELETE:
        return BatchCategoryDelete(
            task_ids=_int_list(obj, "task_ids"), category=_field(obj, "category", str)
        )
    if tag == _TAG_BATCH_CREATE:
        return BatchCategoryCreate(
            task_ids=_int_list(obj, "task_ids"), category=_field(obj, "category", str)
        )
    raise Corruption(f"unknown operation type {tag!r}")


def decode(blob: bytes, *, action_id: int | None = None) -> Operation:
    """Decode a blob produced by encode(); raises Corruption on any mismatch."""
    if not isinstance(blob, (bytes, bytearray, memoryview)):
        raise Corruption(f"payload is {type(blob).__name__}, not binary", action_id=action_id)
    data = bytes(blob)
    try:
        if not data.startswith(MAGIC):
            raise Corruption("bad magic")
        if len(data) <= len(MAGIC):
            raise Corruption("truncated header")
        version = data[len(MAGIC)]
        if version != VERSION:
            raise Corruption(f"unsupported encoding version {version}")

        try:
            obj = json.loads(data[len(MAGIC) + 1 :].decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise Corruption(f"malformed payload ({e})") from None
        if not isinstance(obj, dict):
            raise Corruption("payload is not an object")

        return _operation_from_dict(obj)
    except Corruption as e:
        if action_id is None or e.action_id is not None:
            raise
        raise Corruption(e.reason, action_id=action_id) from None
