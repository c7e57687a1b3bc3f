# src/taskledger/cli/commands.py

from __future__ import annotations

import argparse
import logging
import shlex
from collections.abc import Callable
from typing import NoReturn

from ..core.state import AppState
from ..dates import parse_date, parse_optional_date
from ..errors import TaskLedgerError
from ..tasks.task_models import (
    NewTask,
    SortField,
    SortOrder,
    TaskChanges,
    TaskQuery,
    TaskStatus,
    UNSET,
)
from . import render

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)


class CommandUsageError(Exception):
    """Arguments of a command could not be parsed."""


class _ArgParser(argparse.ArgumentParser):
    """argparse that raises instead of printing and exiting."""

    def __init__(self, prog: str) -> None:
        super().__init__(prog=prog, add_help=False)

    def error(self, message: str) -> NoReturn:
        raise CommandUsageError(f"{message}\n{self.format_usage().strip()}")

    def exit(self, status: int = 0, message: str | None = None) -> NoReturn:
        raise CommandUsageError(message or self.format_usage().strip())


class CommandRegistry:
    """Slash-command registry used by the console and the one-shot entrypoint."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def names(self) -> list[str]:
        return list(self._help)

    def run(self, state: AppState, name: str, args: list[str]) -> str:
        """
        Run one command. Raises CommandUsageError for bad arguments and
        TaskLedgerError for failed operations.
        """
        handler = self._handlers.get(name.lower())
        if not handler:
            raise CommandUsageError(f"Unknown command: /{name}. Use /help to list available commands.")
        logger.debug("Command /%s args=%s", name, args)
        return handler(state, args)

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"error: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        try:
            return self.run(state, parts[0], parts[1:])
        except CommandUsageError as e:
            return str(e)
        except TaskLedgerError as e:
            return f"error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----


def _task_id(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid task id '{raw}'") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"invalid task id '{raw}'")
    return value


def _status(raw: str) -> TaskStatus:
    try:
        return TaskStatus(raw.strip().lower())
    except ValueError:
        choices = ", ".join(s.value for s in TaskStatus)
        raise argparse.ArgumentTypeError(f"invalid status '{raw}' (choose from {choices})") from None


def _date(raw: str):
    try:
        return parse_date(raw)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def _optional_date(raw: str):
    try:
        return parse_optional_date(raw)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def _sort_key(raw: str) -> tuple[SortField, SortOrder]:
    field_s, _, order_s = raw.partition(":")
    try:
        return SortField(field_s.strip().lower()), SortOrder((order_s or "asc").strip().lower())
    except ValueError:
        fields = ", ".join(f.value for f in SortField)
        raise argparse.ArgumentTypeError(
            f"invalid sort '{raw}' (FIELD[:asc|desc], FIELD in {fields})"
        ) from None


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_add(state: AppState, args: list[str]) -> str:
    p = _ArgParser("/add")
    p.add_argument("title")
    p.add_argument("-i", "--info")
    p.add_argument("-d", "--deadline", type=_date)
    p.add_argument("-s", "--status", type=_status, default=TaskStatus.UNDONE)
    p.add_argument("-a", "--date", type=_date, help="creation date (default: today)")
    p.add_argument("-c", "--category", action="append", default=[])
    ns = p.parse_args(args)

    details = state.service.add_task(
        NewTask(
            title=ns.title,
            info=ns.info,
            deadline=ns.deadline,
            status=ns.status,
            created_at=ns.date,
        ),
        categories=ns.category,
    )
    return f"Task created with ID: {details.task.id}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    p = _ArgParser("/edit")
    p.add_argument("id", type=_task_id)
    p.add_argument("-t", "--title")
    p.add_argument("-i", "--info")
    p.add_argument("--clear-info", action="store_true")
    p.add_argument(
        "-d", "--deadline", type=_optional_date, default=UNSET, help='"" clears the deadline'
    )
    p.add_argument("-s", "--status", type=_status)
    p.add_argument("-a", "--date", type=_date)
    ns = p.parse_args(args)

    fields: dict[str, object] = {}
    if ns.title is not None:
        fields["title"] = ns.title
    if ns.clear_info:
        fields["info"] = None
    elif ns.info is not None:
        fields["info"] = ns.info
    if ns.deadline is not UNSET:
        fields["deadline"] = ns.deadline
    if ns.status is not None:
        fields["status"] = ns.status
    if ns.date is not None:
        fields["created_at"] = ns.date

    details = state.service.edit_task(ns.id, TaskChanges(**fields))
    return f"Task #{details.task.id} updated.\n{render.task_block(details)}"


def cmd_rm(state: AppState, args: list[str]) -> str:
    p = _ArgParser("/rm")
    p.add_argument("id", type=_task_id)
    ns = p.parse_args(args)
    details = state.service.remove_task(ns.id)
    return f"Task #{details.task.id} deleted."


def cmd_read(state: AppState, args: list[str]) -> str:
    p = _ArgParser("/read")
    p.add_argument("id", type=_task_id)
    ns = p.parse_args(args)
    return render.task_block(state.service.read_task(ns.id))


def cmd_ls(state: AppState, args: list[str]) -> str:
    p = _ArgParser("/ls")
    p.add_argument("-s", "--status", default=TaskStatus.UNDONE.value, help='status or "all"')
    p.add_argument("-c", "--category")
    p.add_argument("-q", "--search")
    p.add_argument("--sort", type=_sort_key, action="append", default=[])
    p.add_argument("-n", "--limit", type=int)
    ns = p.parse_args(args)

    status = None if ns.status.strip().lower() == "all" else _parse_status_or_usage(ns.status)
    limit = ns.limit if ns.limit is not None else getattr(state.settings, "list_limit", 50)
    items = state.service.list_tasks(
        TaskQuery(
            status=status,
            category=ns.category,
            search=ns.search,
            sort=tuple(ns.sort),
            limit=limit,
        )
    )
    return render.task_list(items)


def _parse_status_or_usage(raw: str) -> TaskStatus:
    try:
        return _status(raw)
    except argparse.ArgumentTypeError as e:
        raise CommandUsageError(str(e)) from None


def cmd_cat_add(state: AppState, args: list[str]) -> str:
    p = _ArgParser("/cat-add")
    p.add_argument("id", type=_task_id)
    p.add_argument("category")
    ns = p.parse_args(args)
    state.service.add_category(ns.id, ns.category)
    return f"Category '{ns.category.strip()}' added to task #{ns.id}."


def cmd_cat_rm(state: AppState, args: list[str]) -> str:
    p = _ArgParser("/cat-rm")
    p.add_argument("id", type=_task_id)
    p.add_argument("category")
    ns = p.parse_args(args)
    state.service.remove_category(ns.id, ns.category)
    return f"Category '{ns.category.strip()}' removed from task #{ns.id}."


def cmd_cat_rename(state: AppState, args: list[str]) -> str:
    p = _ArgParser("/cat-rename")
    p.add_argument("id", type=_task_id)
    p.add_argument("old")
    p.add_argument("new")
    ns = p.parse_args(args)
    state.service.rename_category(ns.id, ns.old, ns.new)
    return f"Category '{ns.old.strip()}' renamed to '{ns.new.strip()}' on task #{ns.id}."


def cmd_cat_batch_rename(state: AppState, args: list[str]) -> str:
    p = _ArgParser("/cat-batch-rename")
    p.add_argument("old")
    p.add_argument("new")
    ns = p.parse_args(args)
    ids = state.service.batch_rename_category(ns.old, ns.new)
    return f"Category '{ns.old.strip()}' renamed to '{ns.new.strip()}' on {len(ids)} task(s)."


def cmd_cat_batch_rm(state: AppState, args: list[str]) -> str:
    p = _ArgParser("/cat-batch-rm")
    p.add_argument("category")
    ns = p.parse_args(args)
    ids = state.service.batch_delete_category(ns.category)
    return f"Category '{ns.category.strip()}' removed from {len(ids)} task(s)."


def cmd_cats(state: AppState, args: list[str]) -> str:
    _ArgParser("/cats").parse_args(args)
    return render.category_list(state.service.list_categories())


def cmd_undo(state: AppState, args: list[str]) -> str:
    _ArgParser("/undo").parse_args(args)
    action = state.service.undo()
    return f"Undone: {render.action_line(action)}"


def cmd_redo(state: AppState, args: list[str]) -> str:
    _ArgParser("/redo").parse_args(args)
    action = state.service.redo()
    return f"Redone: {render.action_line(action)}"


def cmd_log(state: AppState, args: list[str]) -> str:
    p = _ArgParser("/log")
    p.add_argument("-n", "--limit", type=int)
    ns = p.parse_args(args)
    limit = ns.limit if ns.limit is not None else getattr(state.settings, "actions_limit", 10)
    return render.action_list(state.service.list_actions(limit))


def cmd_log_clear(state: AppState, args: list[str]) -> str:
    _ArgParser("/log-clear").parse_args(args)
    n = state.service.clear_actions()
    return f"Removed {n} action(s) from the history."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register(
    "add",
    cmd_add,
    help_text="Add a task: /add TITLE [-i INFO] [-d DEADLINE] [-s STATUS] [-a DATE] [-c CATEGORY]...",
)
registry.register(
    "edit",
    cmd_edit,
    help_text="Edit a task: /edit ID [-t TITLE] [-i INFO | --clear-info] [-d DEADLINE] [-s STATUS] [-a DATE]",
    aliases=["update"],
)
registry.register("rm", cmd_rm, help_text="Delete a task: /rm ID", aliases=["delete"])
registry.register("read", cmd_read, help_text="Show a task: /read ID", aliases=["show"])
registry.register(
    "ls",
    cmd_ls,
    help_text="List tasks: /ls [-s STATUS|all] [-c CATEGORY] [-q TEXT] [--sort FIELD[:asc|desc]]... [-n LIMIT]",
    aliases=["list"],
)
registry.register("cat-add", cmd_cat_add, help_text="Add a category to a task: /cat-add ID CATEGORY")
registry.register(
    "cat-rm", cmd_cat_rm, help_text="Remove a category from a task: /cat-rm ID CATEGORY"
)
registry.register(
    "cat-rename", cmd_cat_rename, help_text="Rename a category on a task: /cat-rename ID OLD NEW"
)
registry.register(
    "cat-batch-rename",
    cmd_cat_batch_rename,
    help_text="Rename a category on every task: /cat-batch-rename OLD NEW",
)
registry.register(
    "cat-batch-rm",
    cmd_cat_batch_rm,
    help_text="Remove a category from every task: /cat-batch-rm CATEGORY",
)
registry.register("cats", cmd_cats, help_text="List categories with task counts.")
registry.register("undo", cmd_undo, help_text="Undo the last operation.")
registry.register("redo", cmd_redo, help_text="Redo the last undone operation.")
registry.register("log", cmd_log, help_text="Show recent operations: /log [-n LIMIT]")
registry.register("log-clear", cmd_log_clear, help_text="Forget the whole undo/redo history.")
