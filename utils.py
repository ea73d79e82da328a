"""
utils.py
Validation, dates, currency formatting, exports.
"""

from __future__ import annotations

import math
import re
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timedelta
import pandas as pd

from models import CURRENCY_SYMBOL, EXPIRY_WARNING_DAYS, GENDERS

# Indian mobile numbers: 10 digits starting with 6-9
PHONE_RE = re.compile(r"^[6-9]\d{9}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def today_iso() -> str:
    return date.today().isoformat()


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def to_date(value: date | datetime | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_iso(str(value)[:10])


def add_days(start: date | str, days: int) -> date:
    """Plain calendar-day addition (no business-day logic)."""
    return to_date(start) + timedelta(days=int(days))


def days_remaining(expiry: date | str, today: date | None = None) -> int:
    return (to_date(expiry) - (today or date.today())).days


def is_expired(expiry: date | str, today: date | None = None) -> bool:
    return days_remaining(expiry, today) < 0


def is_expiring_soon(expiry: date | str, days: int = EXPIRY_WARNING_DAYS, today: date | None = None) -> bool:
    return 0 <= days_remaining(expiry, today) <= days


def parse_amount(value) -> float | None:
    """Parse a form value as a number; None when blank or not numeric."""
    if value is None or str(value).strip() == "":
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(amount) or math.isinf(amount):
        return None
    return amount


def is_valid_phone(phone: str | None) -> bool:
    return bool(phone) and PHONE_RE.match(phone.strip()) is not None


def is_valid_email(email: str | None) -> bool:
    return bool(email) and EMAIL_RE.match(email.strip()) is not None


def _is_iso_date(value) -> bool:
    try:
        to_date(value)
    except (TypeError, ValueError):
        return False
    return True


def _filled(value) -> bool:
    return value is not None and str(value).strip() != ""


def validate_member_inputs(
    full_name: str,
    phone: str,
    start_date,
    email: str | None = None,
    emergency_contact_phone: str | None = None,
    gender: str | None = None,
    date_of_birth=None,
) -> list[str]:
    errors: list[str] = []
    name = (full_name or "").strip()
    if len(name) < 2:
        errors.append("Name must be at least 2 characters.")
    elif len(name) > 100:
        errors.append("Name must be at most 100 characters.")
    if not is_valid_phone(phone):
        errors.append("Invalid phone number (must be 10 digits).")
    if _filled(email) and not is_valid_email(email):
        errors.append("Invalid email address.")
    if _filled(emergency_contact_phone) and not is_valid_phone(emergency_contact_phone):
        errors.append("Invalid emergency contact phone number.")
    if _filled(gender) and gender.strip() not in GENDERS:
        errors.append("Gender must be male, female or other.")
    if _filled(date_of_birth) and not _is_iso_date(date_of_birth):
        errors.append("Date of birth must be a valid date (YYYY-MM-DD).")
    if not start_date or not _is_iso_date(start_date):
        errors.append("Start date must be a valid date (YYYY-MM-DD).")
    return errors


def validate_plan_inputs(name: str, price, duration_days) -> list[str]:
    errors: list[str] = []
    if not (name or "").strip():
        errors.append("Plan name is required.")
    p = parse_amount(price)
    if p is None or p <= 0:
        errors.append("Enter a valid price.")
    d = parse_amount(duration_days)
    if d is None or d <= 0 or d != int(d):
        errors.append("Enter a valid duration.")
    return errors


def format_currency(amount) -> str:
    """
    Rupee formatting with Indian digit grouping: 123456.5 -> ₹1,23,456.5
    """
    value = float(amount or 0)
    sign = "-" if value < 0 else ""
    whole, frac = f"{abs(value):.2f}".split(".")
    frac = frac.rstrip("0")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups) + "," + tail
    return f"{sign}{CURRENCY_SYMBOL}{whole}" + (f".{frac}" if frac else "")


def _as_dict(row) -> dict:
    if is_dataclass(row):
        return asdict(row)
    return dict(row)


def rows_to_dataframe(rows, columns: list[str] | None = None) -> pd.DataFrame:
    df = pd.DataFrame([_as_dict(r) for r in rows])
    if df.empty:
        return pd.DataFrame(columns=columns or [])
    if columns:
        df = df[[c for c in columns if c in df.columns]]
    return df


def to_csv_bytes(rows, columns: list[str] | None = None) -> bytes:
    return rows_to_dataframe(rows, columns).to_csv(index=False).encode("utf-8")
