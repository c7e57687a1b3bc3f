# tests/test_action_ledger.py

from __future__ import annotations

from datetime import date

import pytest

from taskledger.errors import Corruption, NothingToRedo, NothingToUndo, NotFound
from taskledger.ledger.action_ledger import ActionLedger
from taskledger.ledger.action_models import CategoryOperation, OperationKind
from taskledger.store.db import EntityStore

D1 = date(2024, 1, 1)


def _op(n: int) -> CategoryOperation:
    return CategoryOperation(OperationKind.CREATE, n, f"c{n}")


def test_empty_ledger(store: EntityStore) -> None:
    with store.transaction() as tx:
        ledger = ActionLedger(tx)
        with pytest.raises(NothingToUndo):
            ledger.undo_target()
        with pytest.raises(NothingToRedo):
            ledger.redo_target()
        assert ledger.counts() == (0, 0)
        assert ledger.list_actions() == []


def test_undo_and_redo_targets(store: EntityStore) -> None:
    with store.transaction() as tx:
        ledger = ActionLedger(tx)
        ids = [ledger.append(_op(n), D1) for n in (1, 2, 3)]

        target = ledger.undo_target()
        assert target.id == ids[2]
        assert target.restored is False
        assert target.operation == _op(3)

        # Undo the two most recent records (top down).
        ledger.replace(ids[2], _op(30), restored=True)
        ledger.replace(ids[1], _op(20), restored=True)

        assert ledger.undo_target().id == ids[0]
        # The record undone last is the one redone first.
        assert ledger.redo_target().id == ids[1]
        assert ledger.get(ids[2]).operation == _op(30)  # type: ignore[union-attr]
        assert ledger.counts() == (1, 2)


def test_append_discards_restored_records(store: EntityStore) -> None:
    with store.transaction() as tx:
        ledger = ActionLedger(tx)
        a = ledger.append(_op(1), D1)
        b = ledger.append(_op(2), D1)
        ledger.replace(b, _op(2), restored=True)

        c = ledger.append(_op(3), D1)
        assert c > b
        assert [x.id for x in ledger.list_actions()] == [c, a]
        assert ledger.get(b) is None
        with pytest.raises(NothingToRedo):
            ledger.redo_target()


def test_list_is_newest_first_and_limited(store: EntityStore) -> None:
    with store.transaction() as tx:
        ledger = ActionLedger(tx)
        ids = [ledger.append(_op(n), D1) for n in range(5)]
        assert [x.id for x in ledger.list_actions(2)] == [ids[4], ids[3]]
        assert ledger.list_actions(2)[0].created_at == D1


def test_replace_missing_record(store: EntityStore) -> None:
    with pytest.raises(NotFound), store.transaction() as tx:
        ActionLedger(tx).replace(99, _op(1), restored=True)


def test_clear(store: EntityStore) -> None:
    with store.transaction() as tx:
        ledger = ActionLedger(tx)
        for n in range(3):
            ledger.append(_op(n), D1)
        assert ledger.clear() == 3
        assert ledger.counts() == (0, 0)


def test_corrupted_blob_surfaces(store: EntityStore) -> None:
    with store.transaction() as tx:
        tx.execute(
            "INSERT INTO actions(operation, restored, created_at) VALUES (?, 0, '2024-01-01')",
            (b"not a ledger record",),
        )
        with pytest.raises(Corruption) as ei:
            ActionLedger(tx).undo_target()
    assert ei.value.action_id == 1
