"""
models.py
Domain constants (closed enums, id formats, thresholds) and row dataclasses.
"""

from __future__ import annotations
from dataclasses import dataclass, fields

MEMBER_ID_PREFIX = "GYM"
MEMBER_ID_WIDTH = 3
INVOICE_PREFIX = "INV"

EXPIRY_WARNING_DAYS = 7
ITEMS_PER_PAGE = 20
ITEMS_PER_PAGE_OPTIONS = (10, 20, 50, 100)
CURRENCY_SYMBOL = "₹"

MEMBER_STATUSES = ("active", "inactive", "frozen", "expired")
PAYMENT_METHODS = ("cash", "card", "upi", "bank_transfer", "online")
PAYMENT_STATUSES = ("paid", "pending", "failed", "refunded")
EXPENSE_CATEGORIES = ("utilities", "salary", "equipment", "maintenance", "marketing", "rent", "other")
ENTRY_METHODS = ("manual", "qr", "kiosk", "fingerprint")
GENDERS = ("male", "female", "other")

PAYMENT_METHOD_LABELS = {
    "cash": "Cash",
    "card": "Card",
    "upi": "UPI",
    "bank_transfer": "Bank Transfer",
    "online": "Online",
}

EXPENSE_CATEGORY_LABELS = {c: c.capitalize() for c in EXPENSE_CATEGORIES}

ENTRY_METHOD_LABELS = {
    "manual": "Manual",
    "qr": "QR Code",
    "kiosk": "Kiosk",
    "fingerprint": "Fingerprint",
}


class _RowMixin:
    @classmethod
    def from_row(cls, row):
        """Build from a sqlite3.Row (or mapping), ignoring unknown columns."""
        data = dict(row)
        return cls(**{f.name: data.get(f.name) for f in fields(cls)})


@dataclass(frozen=True)
class MembershipPlan(_RowMixin):
    id: str | None
    name: str
    price: float
    duration_days: int
    description: str | None = None
    is_active: bool = True
    created_at: str | None = None


@dataclass(frozen=True)
class Member(_RowMixin):
    id: str | None
    member_id: str
    full_name: str
    phone: str
    email: str | None = None
    date_of_birth: str | None = None
    gender: str | None = None
    address: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    membership_plan_id: str | None = None
    membership_start_date: str | None = None
    membership_expiry_date: str | None = None
    status: str = "active"  # see MEMBER_STATUSES
    notes: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Payment(_RowMixin):
    id: str | None
    member_id: str  # members.id (uuid), not the GYM### identifier
    amount: float
    payment_method: str
    payment_status: str
    payment_date: str
    invoice_number: str | None = None
    plan_id: str | None = None
    notes: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Expense(_RowMixin):
    id: str | None
    category: str
    amount: float
    description: str
    expense_date: str
    created_at: str | None = None


@dataclass(frozen=True)
class CheckIn(_RowMixin):
    id: str | None
    member_id: str
    check_in_time: str
    check_out_time: str | None = None
    entry_method: str = "manual"
    notes: str | None = None
