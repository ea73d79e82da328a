"""
expenses.py
Expense ledger: add, delete, list.
"""

from __future__ import annotations

import logging
from datetime import date

import db
import utils
from errors import NotFoundError, ValidationError
from models import EXPENSE_CATEGORIES, Expense

logger = logging.getLogger(__name__)


def add_expense(category: str, amount, description: str, expense_date: date | str | None = None) -> Expense:
    parsed = utils.parse_amount(amount)
    if not category or not parsed or not (description or "").strip():
        raise ValidationError("Category, amount, and description are required")
    if category not in EXPENSE_CATEGORIES:
        raise ValidationError(f"Category must be one of: {', '.join(EXPENSE_CATEGORIES)}.")
    try:
        when = utils.to_date(expense_date or utils.today_iso())
    except (TypeError, ValueError):
        raise ValidationError("Expense date must be a valid date (YYYY-MM-DD).") from None

    expense_id = db.insert(
        "expenses",
        {
            "category": category,
            "amount": parsed,
            "description": description.strip(),
            "expense_date": when.isoformat(),
        },
    )
    logger.info("Added %s expense of %s on %s", category, parsed, when)
    return Expense.from_row(db.find_by_id("expenses", expense_id))


def delete_expense(expense_id: str) -> None:
    if db.find_by_id("expenses", expense_id) is None:
        raise NotFoundError("Expense not found")
    db.delete("expenses", expense_id)
    logger.info("Deleted expense %s", expense_id)


def list_expenses(category: str | None = None, search: str = "") -> list[Expense]:
    rows = db.list_filtered(
        "expenses",
        {"category": category if category in EXPENSE_CATEGORIES else None},
        order_by="expense_date DESC",
    )
    items = [Expense.from_row(r) for r in rows]
    q = search.strip().lower()
    if q:
        items = [e for e in items if q in e.description.lower()]
    return items
