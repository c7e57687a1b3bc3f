# src/taskledger/cli/render.py

from __future__ import annotations

from ..ledger.action_models import Action, describe
from ..tasks.task_models import TaskDetails


def task_line(details: TaskDetails) -> str:
    t = details.task
    parts = [f"#{t.id}", f"[{t.status.value}]", t.title]
    if t.deadline is not None:
        parts.append(f"(due {t.deadline.isoformat()})")
    if details.categories:
        parts.append("{" + ", ".join(details.categories) + "}")
    return " ".join(parts)


def task_block(details: TaskDetails) -> str:
    t = details.task
    lines = [
        f"Task #{t.id}",
        f"  Title:      {t.title}",
        f"  Status:     {t.status.value}",
        f"  Deadline:   {t.deadline.isoformat() if t.deadline else '-'}",
        f"  Categories: {', '.join(details.categories) if details.categories else '-'}",
        f"  Created:    {t.created_at.isoformat()}",
        f"  Updated:    {t.updated_at.isoformat()}",
    ]
    if t.info:
        lines.append("  Info:")
        lines.extend(f"    {line}" for line in t.info.splitlines())
    return "\n".join(lines)


def task_list(items: list[TaskDetails]) -> str:
    if not items:
        return "No tasks."
    return "\n".join(task_line(d) for d in items)


def category_list(items: list[tuple[str, int]]) -> str:
    if not items:
        return "No categories."
    width = max(len(name) for name, _ in items)
    return "\n".join(f"{name.ljust(width)}  {count}" for name, count in items)


def action_line(action: Action) -> str:
    state = "restored" if action.restored else "applied"
    return f"{action.id:>4} {action.created_at.isoformat()} {state:<8} {describe(action.operation)}"


def action_list(items: list[Action]) -> str:
    if not items:
        return "No actions."
    return "\n".join(action_line(a) for a in items)
