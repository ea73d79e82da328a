"""
membership.py
Member records: sequential GYM### identifiers, start/expiry computation,
renewal, status changes and the filtered member list.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, replace
from datetime import date

import db
import plans
import utils
from errors import NotFoundError, ValidationError
from models import (
    ITEMS_PER_PAGE,
    MEMBER_ID_PREFIX,
    MEMBER_ID_WIDTH,
    MEMBER_STATUSES,
    Member,
    MembershipPlan,
)

logger = logging.getLogger(__name__)

REFERRAL_CODE_RE = re.compile(r"^[A-Z]+\d{4}$")

# Numeric part of member_id as an SQL expression (GYM1000 sorts after GYM999)
_MEMBER_NUMBER = f"CAST(SUBSTR(member_id, {len(MEMBER_ID_PREFIX) + 1}) AS INTEGER)"

# Fields an admin may edit by hand. Plan and dates only move through
# create_membership()/renew().
EDITABLE_FIELDS = (
    "full_name", "phone", "email", "date_of_birth", "gender", "address",
    "emergency_contact_name", "emergency_contact_phone", "status", "notes",
)


# ---------- Identifiers ----------

def next_member_id(existing_ids, prefix: str = MEMBER_ID_PREFIX, width: int = MEMBER_ID_WIDTH) -> str:
    """
    Next identifier after the highest numeric suffix already in use.

    Numbering is max+1, not count+1: gaps left by deleted members are never
    reused. Identifiers not shaped like PREFIX<digits> are ignored.
    """
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    highest = 0
    for value in existing_ids:
        m = pattern.match(str(value or "").strip())
        if m:
            highest = max(highest, int(m.group(1)))
    return f"{prefix}{highest + 1:0{width}d}"


def is_valid_member_id(value: str | None) -> bool:
    return bool(value) and re.fullmatch(rf"{MEMBER_ID_PREFIX}\d{{{MEMBER_ID_WIDTH},}}", value) is not None


def generate_member_id() -> str:
    rows = db.fetch_all("SELECT member_id FROM members")
    return next_member_id(r["member_id"] for r in rows)


def referral_code(full_name: str, phone: str) -> str:
    first = (full_name or "").strip().split(" ")[0].upper()
    return f"{first}{(phone or '')[-4:]}"


def is_valid_referral_code(code: str | None) -> bool:
    return bool(code) and REFERRAL_CODE_RE.match(code) is not None


# ---------- Lifecycle ----------

def compute_expiry(start_date: date | str, duration_days: int) -> date:
    return utils.add_days(start_date, duration_days)


def create_membership(member: Member, plan: MembershipPlan, start_date: date | str) -> Member:
    """Attach a plan starting on start_date. Backdated starts are accepted."""
    start = utils.to_date(start_date)
    return replace(
        member,
        membership_plan_id=plan.id,
        membership_start_date=start.isoformat(),
        membership_expiry_date=compute_expiry(start, plan.duration_days).isoformat(),
        status="active",
    )


def renew(member: Member, plan: MembershipPlan, payment_date: date | str) -> Member:
    """The payment date becomes the new start date; the old expiry is discarded."""
    return create_membership(member, plan, payment_date)


def apply_renewal(member_pk: str, plan: MembershipPlan, payment_date: date | str) -> Member:
    member = require_member(member_pk)
    renewed = renew(member, plan, payment_date)
    db.update(
        "members",
        member_pk,
        {
            "membership_plan_id": renewed.membership_plan_id,
            "membership_start_date": renewed.membership_start_date,
            "membership_expiry_date": renewed.membership_expiry_date,
            "status": renewed.status,
        },
    )
    logger.info(
        "Renewed %s on plan %s until %s",
        member.member_id, plan.name, renewed.membership_expiry_date,
    )
    return renewed


# ---------- CRUD ----------

def get_member(member_pk: str | None) -> Member | None:
    if not member_pk:
        return None
    row = db.find_by_id("members", member_pk)
    return Member.from_row(row) if row else None


def require_member(member_pk: str | None) -> Member:
    member = get_member(member_pk)
    if member is None:
        raise NotFoundError("Member not found")
    return member


def _blank_to_none(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def create_member(
    full_name: str,
    phone: str,
    plan_id: str,
    start_date: date | str | None = None,
    email: str | None = None,
    date_of_birth: str | None = None,
    gender: str | None = None,
    address: str | None = None,
    emergency_contact_name: str | None = None,
    emergency_contact_phone: str | None = None,
    notes: str | None = None,
) -> Member:
    start_date = start_date or utils.today_iso()
    errors = utils.validate_member_inputs(
        full_name, phone, start_date,
        email=email,
        emergency_contact_phone=emergency_contact_phone,
        gender=gender,
        date_of_birth=date_of_birth,
    )
    if errors:
        raise ValidationError(errors)
    plan = plans.require_plan(plan_id)

    draft = Member(
        id=None,
        member_id=generate_member_id(),
        full_name=full_name.strip(),
        phone=phone.strip(),
        email=_blank_to_none(email),
        date_of_birth=_blank_to_none(date_of_birth),
        gender=_blank_to_none(gender),
        address=_blank_to_none(address),
        emergency_contact_name=_blank_to_none(emergency_contact_name),
        emergency_contact_phone=_blank_to_none(emergency_contact_phone),
        notes=_blank_to_none(notes),
    )
    draft = create_membership(draft, plan, start_date)
    values = {k: v for k, v in asdict(draft).items() if k not in ("id", "created_at")}
    member_pk = db.insert("members", values)
    logger.info("Registered member %s (%s) on plan %s", draft.member_id, draft.full_name, plan.name)
    return get_member(member_pk)


def update_member(member_pk: str, **changes) -> Member:
    """Manual edit of personal details, notes or status."""
    current = require_member(member_pk)
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot edit: {', '.join(sorted(unknown))}")

    merged = {**asdict(current), **changes}
    errors = utils.validate_member_inputs(
        merged["full_name"], merged["phone"], merged["membership_start_date"] or utils.today_iso(),
        email=merged["email"],
        emergency_contact_phone=merged["emergency_contact_phone"],
        gender=merged["gender"],
        date_of_birth=merged["date_of_birth"],
    )
    if merged["status"] not in MEMBER_STATUSES:
        errors.append(f"Status must be one of: {', '.join(MEMBER_STATUSES)}.")
    if errors:
        raise ValidationError(errors)

    values = {}
    for key, value in changes.items():
        if key == "status":
            values[key] = value
        elif key in ("full_name", "phone"):
            values[key] = str(value).strip()
        else:
            values[key] = _blank_to_none(value)
    if values:
        db.update("members", member_pk, values)
        logger.info("Updated member %s: %s", current.member_id, ", ".join(sorted(values)))
    return get_member(member_pk)


def set_status(member_pk: str, status: str) -> Member:
    return update_member(member_pk, status=status)


def delete_member(member_pk: str) -> None:
    member = require_member(member_pk)
    db.delete("members", member_pk)
    logger.info("Deleted member %s", member.member_id)


def list_members(
    search: str = "",
    status: str | None = None,
    plan_id: str | None = None,
    page: int = 1,
    per_page: int = ITEMS_PER_PAGE,
) -> tuple[list[Member], int]:
    """One page of members (newest first) and the total matching count."""
    where = " WHERE 1=1"
    params: list = []

    if search.strip():
        where += " AND (full_name LIKE ? OR phone LIKE ? OR email LIKE ? OR member_id LIKE ?)"
        like = f"%{search.strip()}%"
        params.extend([like, like, like, like])

    if status in MEMBER_STATUSES:
        where += " AND status = ?"
        params.append(status)

    if plan_id:
        where += " AND membership_plan_id = ?"
        params.append(plan_id)

    total = int(db.fetch_one(f"SELECT COUNT(*) AS c FROM members{where}", tuple(params))["c"])
    page = max(1, int(page))
    rows = db.fetch_all(
        f"SELECT * FROM members{where} ORDER BY created_at DESC, {_MEMBER_NUMBER} DESC LIMIT ? OFFSET ?",
        (*params, per_page, (page - 1) * per_page),
    )
    return [Member.from_row(r) for r in rows], total


def all_members() -> list[Member]:
    return [Member.from_row(r) for r in db.list_filtered("members", order_by="created_at ASC")]
