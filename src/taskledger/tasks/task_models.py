# src/taskledger/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Any

from ..errors import InvalidInput

TITLE_MAX_LEN = 1000
INFO_MAX_LEN = 10000
CATEGORY_MAX_LEN = 200

# Marks a TaskChanges field that was not supplied (None is a real value: "clear it").
UNSET: Any = object()


class TaskStatus(StrEnum):
    UNDONE = "undone"
    DONE = "done"
    ARCHIVED = "archived"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.UNDONE
        return cls(raw)


class SortField(StrEnum):
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    DEADLINE = "deadline"
    TITLE = "title"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True, slots=True)
class Task:
    id: int
    title: str
    info: str | None
    deadline: date | None
    status: TaskStatus
    created_at: date
    updated_at: date


@dataclass(frozen=True, slots=True)
class TaskDetails:
    """A task together with its (derived, not owned) category names."""

    task: Task
    categories: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class NewTask:
    title: str
    info: str | None = None
    deadline: date | None = None
    status: TaskStatus = TaskStatus.UNDONE
    # None means "today" according to the service clock.
    created_at: date | None = None


@dataclass(frozen=True, slots=True)
class TaskChanges:
    """
    Partial task update.

    Fields left as UNSET are not touched. `info=None` / `deadline=None` clear
    the column.
    """

    title: Any = UNSET
    info: Any = UNSET
    deadline: Any = UNSET
    status: Any = UNSET
    created_at: Any = UNSET

    def supplied(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for name in ("title", "info", "deadline", "status", "created_at"):
            value = getattr(self, name)
            if value is not UNSET:
                out[name] = value
        return out


@dataclass(frozen=True, slots=True)
class TaskQuery:
    status: TaskStatus | None = None
    category: str | None = None
    search: str | None = None
    # Applied in order: first entry is the primary key, then secondary, ...
    sort: tuple[tuple[SortField, SortOrder], ...] = ()
    limit: int | None = None


def clean_title(title: str) -> str:
    t = (title or "").strip()
    if not t:
        raise InvalidInput("title", "must not be empty")
    if len(t) > TITLE_MAX_LEN:
        raise InvalidInput("title", f"longer than {TITLE_MAX_LEN} characters")
    return t


def clean_info(info: str | None) -> str | None:
    if info is None:
        return None
    if len(info) > INFO_MAX_LEN:
        raise InvalidInput("info", f"longer than {INFO_MAX_LEN} characters")
    return info


def clean_category(category: str) -> str:
    c = (category or "").strip()
    if not c:
        raise InvalidInput("category", "must not be empty")
    if len(c) > CATEGORY_MAX_LEN:
        raise InvalidInput("category", f"longer than {CATEGORY_MAX_LEN} characters")
    return c


def clean_categories(categories: list[str] | tuple[str, ...]) -> list[str]:
    return [clean_category(c) for c in categories]


def clean_status(status: object) -> TaskStatus:
    try:
        return TaskStatus(status)
    except ValueError:
        choices = ", ".join(s.value for s in TaskStatus)
        raise InvalidInput("status", f"{status!r} is not one of {choices}") from None
