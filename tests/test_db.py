from __future__ import annotations

import pytest

import db
from errors import BackendError


def test_insert_find_update_delete():
    pk = db.insert("expenses", {"category": "rent", "amount": 100.0, "description": "Rent", "expense_date": "2025-07-01"})
    row = db.find_by_id("expenses", pk)
    assert row["description"] == "Rent"
    assert row["created_at"] == row["updated_at"]

    assert db.update("expenses", pk, {"amount": 150.0}) == 1
    assert db.find_by_id("expenses", pk)["amount"] == 150.0
    assert db.update("expenses", "missing", {"amount": 1.0}) == 0

    assert db.delete("expenses", pk) == 1
    assert db.find_by_id("expenses", pk) is None


def test_list_filtered_and_count():
    for cat, amt, day in [("rent", 10, "2025-07-01"), ("rent", 20, "2025-07-03"), ("other", 5, "2025-07-02")]:
        db.insert("expenses", {"category": cat, "amount": amt, "description": "x", "expense_date": day})

    rows = db.list_filtered("expenses", {"category": "rent"}, order_by="expense_date DESC")
    assert [r["amount"] for r in rows] == [20, 10]
    assert db.count_filtered("expenses", {"category": "rent", "amount": None}) == 2
    assert len(db.list_filtered("expenses", order_by="amount ASC", limit=2, offset=1)) == 2


def test_unknown_table_or_column_is_refused():
    with pytest.raises(ValueError):
        db.find_by_id("sqlite_master", "x")
    with pytest.raises(ValueError):
        db.insert("expenses", {"category": "rent", "drop_me": 1})
    with pytest.raises(ValueError):
        db.list_filtered("expenses", order_by="amount; DROP TABLE expenses")


def test_check_constraint_surfaces_as_backend_error():
    with pytest.raises(BackendError, match="CHECK"):
        db.insert("expenses", {"category": "snacks", "amount": 1, "description": "x", "expense_date": "2025-07-01"})


def test_foreign_key_enforced():
    with pytest.raises(BackendError, match="FOREIGN KEY"):
        db.insert("check_ins", {"member_id": "ghost", "check_in_time": "2025-07-01T07:00:00", "entry_method": "manual"})
