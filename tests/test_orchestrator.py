# tests/test_orchestrator.py

from __future__ import annotations

from datetime import date

import pytest

from taskledger.core.orchestrator import TaskLedgerService
from taskledger.errors import (
    Corruption,
    Duplicate,
    InvalidInput,
    LedgerInvariantError,
    NoChange,
    NothingToRedo,
    NothingToUndo,
    NotFound,
)
from taskledger.ledger.action_models import (
    BatchCategoryCreate,
    OperationKind,
    TaskOperation,
)
from taskledger.store.db import EntityStore
from taskledger.tasks.task_models import (
    CATEGORY_MAX_LEN,
    INFO_MAX_LEN,
    TITLE_MAX_LEN,
    NewTask,
    TaskChanges,
    TaskQuery,
    TaskStatus,
)

from .fakes import FakeClock


def snapshot(store: EntityStore) -> tuple[list[tuple], list[tuple]]:
    """Every task row and every (task_id, category) pair, in a stable order."""
    with store.transaction() as tx:
        tasks = [tuple(r) for r in tx.fetchall("SELECT * FROM tasks ORDER BY id")]
        cats = [
            tuple(r)
            for r in tx.fetchall("SELECT task_id, category FROM task_categories ORDER BY 1, 2")
        ]
    return tasks, cats


def _seed(service: TaskLedgerService) -> None:
    service.add_task(NewTask(title="Seed one"), ["home"])
    service.add_task(NewTask(title="Seed two", info="notes"), ["home", "work"])
    service.clear_actions()


def test_add_task_records_create(service: TaskLedgerService, clock: FakeClock) -> None:
    details = service.add_task(NewTask(title="Demo"), ["two", "one"])
    assert details.task.id == 1
    assert details.task.created_at == clock.today
    assert details.categories == ["one", "two"]

    (action,) = service.list_actions()
    assert action.restored is False
    assert action.operation == TaskOperation(OperationKind.CREATE, details.task, ("one", "two"))


def test_add_task_with_duplicate_categories_writes_nothing(
    service: TaskLedgerService, store: EntityStore
) -> None:
    with pytest.raises(Duplicate):
        service.add_task(NewTask(title="x"), ["a", "a"])
    assert store.count_tasks() == 0
    assert service.action_counts() == (0, 0)


def test_demo_scenario(service: TaskLedgerService) -> None:
    service.add_task(NewTask(title="Demo", status=TaskStatus.UNDONE), ["one", "two"])
    assert service.action_counts() == (1, 0)

    undone = service.undo()
    assert undone.restored is True
    assert isinstance(undone.operation, TaskOperation)
    assert undone.operation.kind is OperationKind.DELETE
    with pytest.raises(NotFound):
        service.read_task(1)
    assert service.list_categories() == []
    assert service.action_counts() == (0, 1)

    redone = service.redo()
    assert redone.restored is False
    details = service.read_task(1)
    assert details.task.title == "Demo"
    assert details.categories == ["one", "two"]
    assert service.action_counts() == (1, 0)


def test_batch_rename_scenario(service: TaskLedgerService) -> None:
    service.add_task(NewTask(title="first"), ["two"])
    service.add_task(NewTask(title="second"), ["two", "other"])

    assert service.batch_rename_category("two", "too") == [1, 2]
    for task_id in (1, 2):
        cats = service.read_task(task_id).categories
        assert "too" in cats
        assert "two" not in cats

    service.undo()
    for task_id in (1, 2):
        cats = service.read_task(task_id).categories
        assert "two" in cats
        assert "too" not in cats


def test_n_operations_then_n_undos(service: TaskLedgerService, store: EntityStore, clock) -> None:
    _seed(service)
    before = snapshot(store)

    clock.advance()
    ops = [
        lambda: service.add_task(NewTask(title="New", deadline=date(2024, 3, 1)), ["x"]),
        lambda: service.edit_task(1, TaskChanges(title="Renamed", status=TaskStatus.DONE)),
        lambda: service.add_category(1, "extra"),
        lambda: service.rename_category(2, "work", "job"),
        lambda: service.remove_category(2, "home"),
        lambda: service.batch_rename_category("home", "house"),
        lambda: service.batch_delete_category("x"),
        lambda: service.remove_task(2),
        lambda: service.edit_task(3, TaskChanges(info=None, deadline=None)),
    ]
    for op in ops:
        op()
    assert snapshot(store) != before

    for _ in ops:
        service.undo()

    assert snapshot(store) == before
    assert service.action_counts() == (0, len(ops))
    with pytest.raises(NothingToUndo):
        service.undo()


def test_undo_then_redo_restores_state(service: TaskLedgerService, store: EntityStore) -> None:
    _seed(service)
    service.edit_task(2, TaskChanges(title="Changed", info="more"))
    service.batch_delete_category("home")
    after = snapshot(store)

    service.undo()
    service.undo()
    service.redo()
    service.redo()

    assert snapshot(store) == after
    assert service.action_counts() == (2, 0)
    with pytest.raises(NothingToRedo):
        service.redo()


def test_repeated_undo_redo_does_not_grow_ledger(service: TaskLedgerService) -> None:
    service.add_task(NewTask(title="t"))
    for _ in range(3):
        service.undo()
        service.redo()
    assert len(service.list_actions()) == 1


def test_new_operation_discards_redo(service: TaskLedgerService) -> None:
    service.add_task(NewTask(title="a"))
    service.add_task(NewTask(title="b"))
    service.undo()

    service.add_task(NewTask(title="c"))
    with pytest.raises(NothingToRedo):
        service.redo()
    assert service.action_counts() == (2, 0)


def test_edit_without_fields_writes_nothing(
    service: TaskLedgerService, clock: FakeClock
) -> None:
    created = service.add_task(NewTask(title="a")).task
    clock.advance(5)

    with pytest.raises(NoChange):
        service.edit_task(created.id, TaskChanges())

    assert service.read_task(created.id).task.updated_at == created.updated_at
    assert service.action_counts() == (1, 0)


def test_edit_bumps_updated_at(service: TaskLedgerService, clock: FakeClock) -> None:
    created = service.add_task(NewTask(title="a")).task
    later = clock.advance(3)
    edited = service.edit_task(created.id, TaskChanges(status=TaskStatus.DONE)).task
    assert edited.updated_at == later
    assert edited.created_at == created.created_at


def test_batch_delete_undo_restores_exact_pairs(
    service: TaskLedgerService, store: EntityStore
) -> None:
    service.add_task(NewTask(title="only old"), ["old"])
    service.add_task(NewTask(title="mixed"), ["old", "keep"])
    service.add_task(NewTask(title="untouched"), ["keep"])
    before = snapshot(store)

    assert service.batch_delete_category("old") == [1, 2]
    assert service.read_task(1).categories == []

    undone = service.undo()
    assert undone.operation == BatchCategoryCreate((1, 2), "old")
    assert snapshot(store) == before


def test_batch_operations_on_unknown_category(service: TaskLedgerService) -> None:
    service.add_task(NewTask(title="t"), ["a"])
    with pytest.raises(NotFound):
        service.batch_delete_category("nope")
    with pytest.raises(NotFound):
        service.batch_rename_category("nope", "b")
    assert service.action_counts() == (1, 0)


def test_rename_to_same_name_is_rejected(service: TaskLedgerService) -> None:
    service.add_task(NewTask(title="t"), ["a"])
    with pytest.raises(InvalidInput):
        service.rename_category(1, "a", " a ")


def test_category_errors_name_task_and_category(service: TaskLedgerService) -> None:
    service.add_task(NewTask(title="t"), ["a"])
    with pytest.raises(Duplicate) as dup:
        service.add_category(1, "a")
    assert dup.value.task_id == 1
    assert dup.value.category == "a"

    with pytest.raises(NotFound) as nf:
        service.remove_category(1, "b")
    assert "'b'" in str(nf.value)

    with pytest.raises(NotFound):
        service.add_category(99, "a")


def test_remove_task_returns_removed_categories(service: TaskLedgerService) -> None:
    service.add_task(NewTask(title="t"), ["a", "b"])
    removed = service.remove_task(1)
    assert removed.categories == ["a", "b"]
    assert service.list_categories() == []
    with pytest.raises(NotFound):
        service.remove_task(1)


def test_list_tasks_uses_query(service: TaskLedgerService) -> None:
    service.add_task(NewTask(title="Buy milk"), ["home"])
    service.add_task(NewTask(title="Send invoice", status=TaskStatus.DONE), ["work"])

    assert [d.task.title for d in service.list_tasks()] == ["Buy milk", "Send invoice"]
    done = service.list_tasks(TaskQuery(status=TaskStatus.DONE))
    assert [d.categories for d in done] == [["work"]]
    assert [d.task.id for d in service.list_tasks(TaskQuery(search="milk"))] == [1]


def test_undo_of_vanished_task_is_invariant_error(
    service: TaskLedgerService, store: EntityStore
) -> None:
    service.add_task(NewTask(title="t"))
    service.edit_task(1, TaskChanges(title="u"))

    # Out-of-band delete: the ledger still believes task 1 exists.
    with store.transaction() as tx:
        tx.execute("DELETE FROM tasks WHERE id = 1")

    with pytest.raises(LedgerInvariantError) as ei:
        service.undo()
    assert ei.value.action_id == 2
    # Rolled back: the record is still on the undo side.
    assert service.action_counts() == (2, 0)


def test_corrupted_record_is_surfaced(service: TaskLedgerService, store: EntityStore) -> None:
    service.add_task(NewTask(title="t"))
    with store.transaction() as tx:
        tx.execute("UPDATE actions SET operation = ? WHERE id = 1", (b"TLA\x01{}",))

    with pytest.raises(Corruption) as ei:
        service.undo()
    assert ei.value.action_id == 1
    assert service.read_task(1).task.title == "t"


@pytest.mark.parametrize(
    "fields",
    [
        NewTask(title="t" * (TITLE_MAX_LEN + 1)),
        NewTask(title="ok", info="i" * (INFO_MAX_LEN + 1)),
        NewTask(title="   "),
        NewTask(title="ok", status="bogus"),
    ],
)
def test_add_task_rejects_bad_fields(
    service: TaskLedgerService, store: EntityStore, fields: NewTask
) -> None:
    with pytest.raises(InvalidInput):
        service.add_task(fields)
    assert store.count_tasks() == 0
    assert service.action_counts() == (0, 0)


def test_bounds_are_inclusive(service: TaskLedgerService) -> None:
    details = service.add_task(
        NewTask(title="t" * TITLE_MAX_LEN, info="i" * INFO_MAX_LEN), ["c" * CATEGORY_MAX_LEN]
    )
    assert len(details.task.title) == TITLE_MAX_LEN
    assert details.categories == ["c" * CATEGORY_MAX_LEN]


@pytest.mark.parametrize("bad", ["c" * (CATEGORY_MAX_LEN + 1), "  ", ""])
def test_bad_category_names_write_nothing(
    service: TaskLedgerService, store: EntityStore, bad: str
) -> None:
    with pytest.raises(InvalidInput):
        service.add_task(NewTask(title="t"), [bad])
    assert store.count_tasks() == 0
    assert service.action_counts() == (0, 0)

    service.add_task(NewTask(title="t"), ["a"])
    before = snapshot(store)

    with pytest.raises(InvalidInput):
        service.add_category(1, bad)
    with pytest.raises(InvalidInput):
        service.batch_rename_category("a", bad)
    with pytest.raises(InvalidInput):
        service.rename_category(1, "a", bad)

    assert snapshot(store) == before
    assert service.action_counts() == (1, 0)


def test_edit_with_invalid_status_is_invalid_input(service: TaskLedgerService) -> None:
    service.add_task(NewTask(title="t"))
    with pytest.raises(InvalidInput) as ei:
        service.edit_task(1, TaskChanges(status=None))
    assert ei.value.field == "status"
    with pytest.raises(InvalidInput):
        service.edit_task(1, TaskChanges(status="later"))
    assert service.action_counts() == (1, 0)


def _search(service: TaskLedgerService, text: str) -> list[int]:
    return [d.task.id for d in service.list_tasks(TaskQuery(search=text))]


def test_search_index_follows_undo_and_redo(service: TaskLedgerService) -> None:
    service.add_task(NewTask(title="alpha report", info="beta"))
    service.edit_task(1, TaskChanges(title="gamma report"))
    assert _search(service, "gamma") == [1]
    assert _search(service, "alpha") == []

    service.undo()
    assert _search(service, "alpha") == [1]
    assert _search(service, "gamma") == []

    service.redo()
    assert _search(service, "gamma") == [1]

    service.remove_task(1)
    assert _search(service, "report") == []

    service.undo()
    assert _search(service, "report") == [1]
    assert _search(service, "beta") == [1]

    service.redo()
    assert _search(service, "report") == []
