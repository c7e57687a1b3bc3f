# tests/test_codec.py

from __future__ import annotations

import json
from datetime import date

import pytest

from taskledger.errors import Corruption
from taskledger.ledger import codec
from taskledger.ledger.action_models import (
    BatchCategoryCreate,
    BatchCategoryDelete,
    BatchCategoryRename,
    CategoryOperation,
    OperationKind,
    RenameCategoryOperation,
    TaskOperation,
)
from taskledger.tasks.task_models import Task, TaskStatus

TASK = Task(
    id=7,
    title="Pay rent",
    info="ünïcode ok",
    deadline=date(2024, 2, 1),
    status=TaskStatus.DONE,
    created_at=date(2024, 1, 1),
    updated_at=date(2024, 1, 5),
)


def _blob(payload: object) -> bytes:
    return codec.MAGIC + bytes([codec.VERSION]) + json.dumps(payload).encode("utf-8")


def test_task_operation_keeps_full_snapshot() -> None:
    op = TaskOperation(OperationKind.DELETE, TASK, ("bills", "home"))
    blob = codec.encode(op)
    assert blob.startswith(codec.MAGIC + bytes([codec.VERSION]))
    assert codec.decode(blob) == op


def test_task_without_optional_fields() -> None:
    bare = Task(
        id=1,
        title="t",
        info=None,
        deadline=None,
        status=TaskStatus.UNDONE,
        created_at=date(2024, 1, 1),
        updated_at=date(2024, 1, 1),
    )
    op = TaskOperation(OperationKind.UPDATE, bare)
    assert codec.decode(codec.encode(op)) == op


def test_category_variants_decode_to_same_type() -> None:
    ops = [
        CategoryOperation(OperationKind.CREATE, 3, "work"),
        RenameCategoryOperation(3, "work", "job"),
        BatchCategoryRename((1, 2), "two", "too"),
        BatchCategoryDelete((4,), "old"),
        BatchCategoryCreate((4, 5), "old"),
    ]
    for op in ops:
        decoded = codec.decode(codec.encode(op))
        assert type(decoded) is type(op)
        assert decoded == op


@pytest.mark.parametrize(
    "blob",
    [
        b"",
        b"XYZ\x01{}",
        b"TLA",
        b"TLA\x09{}",
        b"TLA\x01{not json",
        b"TLA\x01\xff\xfe",
        b"TLA\x01[1, 2]",
    ],
)
def test_malformed_header_or_payload(blob: bytes) -> None:
    with pytest.raises(Corruption):
        codec.decode(blob)


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "nope"},
        {"type": "category", "kind": "update", "task_id": 1, "category": "x"},
        {"type": "category", "kind": "create", "task_id": True, "category": "x"},
        {"type": "category", "kind": "create", "task_id": 1},
        {"type": "rename_category", "task_id": "1", "old": "a", "new": "b"},
        {"type": "batch_category_delete", "task_ids": [1, "2"], "category": "x"},
        {"type": "task", "kind": "create", "task": "oops", "categories": []},
        {
            "type": "task",
            "kind": "create",
            "task": {
                "id": 1,
                "title": "t",
                "info": None,
                "deadline": "tomorrow",
                "status": "undone",
                "created_at": "2024-01-01",
                "updated_at": "2024-01-01",
            },
            "categories": [],
        },
    ],
)
def test_bad_fields_are_corruption(payload: dict) -> None:
    with pytest.raises(Corruption):
        codec.decode(_blob(payload))


def test_corruption_carries_action_id() -> None:
    with pytest.raises(Corruption) as ei:
        codec.decode(b"garbage", action_id=12)
    assert ei.value.action_id == 12
    assert "#12" in str(ei.value)


def test_non_binary_input() -> None:
    with pytest.raises(Corruption):
        codec.decode("TLA\x01{}")  # type: ignore[arg-type]
