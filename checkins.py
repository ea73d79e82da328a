"""
checkins.py
Gym visit log. A check-in may be closed by exactly one check-out.
"""

from __future__ import annotations

import logging
from datetime import datetime

import db
import membership
from errors import NotFoundError, ValidationError
from models import ENTRY_METHODS, CheckIn

logger = logging.getLogger(__name__)


def _parse_ts(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def get_check_in(check_in_id: str) -> CheckIn | None:
    row = db.find_by_id("check_ins", check_in_id)
    return CheckIn.from_row(row) if row else None


def check_in(
    member_id: str,
    entry_method: str = "manual",
    notes: str | None = None,
    at: datetime | None = None,
) -> CheckIn:
    member = membership.require_member(member_id)
    if member.status != "active":
        raise ValidationError(f"{member.full_name} is {member.status}; only active members can check in.")
    if entry_method not in ENTRY_METHODS:
        raise ValidationError(f"Entry method must be one of: {', '.join(ENTRY_METHODS)}.")

    check_in_id = db.insert(
        "check_ins",
        {
            "member_id": member_id,
            "check_in_time": at.isoformat(timespec="seconds") if at else db.now_iso(),
            "entry_method": entry_method,
            "notes": (notes or "").strip() or None,
        },
    )
    logger.info("%s checked in (%s)", member.member_id, entry_method)
    return get_check_in(check_in_id)


def check_out(check_in_id: str, at: datetime | None = None) -> CheckIn:
    current = get_check_in(check_in_id)
    if current is None:
        raise NotFoundError("Check-in not found")
    if current.check_out_time:
        raise ValidationError("Member already checked out")

    out = at.isoformat(timespec="seconds") if at else db.now_iso()
    db.update("check_ins", check_in_id, {"check_out_time": out})
    logger.info("Check-in %s closed at %s", check_in_id, out)
    return get_check_in(check_in_id)


def list_check_ins(since: datetime | None = None, limit: int | None = None) -> list[CheckIn]:
    sql = "SELECT * FROM check_ins"
    params: list = []
    if since is not None:
        sql += " WHERE check_in_time >= ?"
        params.append(since.isoformat(timespec="seconds"))
    sql += " ORDER BY check_in_time DESC"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    return [CheckIn.from_row(r) for r in db.fetch_all(sql, tuple(params))]


def currently_inside(check_ins: list[CheckIn]) -> list[CheckIn]:
    return [c for c in check_ins if not c.check_out_time]


def visit_minutes(check_in_time, check_out_time) -> int | None:
    if not check_out_time:
        return None
    mins = round((_parse_ts(check_out_time) - _parse_ts(check_in_time)).total_seconds() / 60)
    return None if mins < 0 else mins


def visit_duration(check_in_time, check_out_time) -> str | None:
    """'45m', '1h 30m', '2h'; None while the visit is open."""
    mins = visit_minutes(check_in_time, check_out_time)
    if mins is None:
        return None
    if mins < 60:
        return f"{mins}m"
    h, m = divmod(mins, 60)
    return f"{h}h {m}m" if m else f"{h}h"
