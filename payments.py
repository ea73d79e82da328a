"""
payments.py
Recording payments (invoice numbers, optional renewal) and payment history.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import date

import db
import membership
import plans
import utils
from errors import GymError, ValidationError
from models import INVOICE_PREFIX, PAYMENT_METHODS, PAYMENT_STATUSES, Member, Payment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentResult:
    payment_id: str
    invoice_number: str
    renewed: bool = False
    member: Member | None = None  # the renewed member, when renewed
    renewal_error: str | None = None


def generate_invoice_number(payment_date: date | str, rng: random.Random | None = None) -> str:
    """
    INV-YYYYMMDD-XXXX with four random digits. Not checked for uniqueness.
    """
    rng = rng or random
    return f"{INVOICE_PREFIX}-{utils.to_date(payment_date):%Y%m%d}-{rng.randint(1000, 9999)}"


def check_payment_inputs(amount, method, status: str = "paid", payment_date: date | str | None = None) -> float:
    """Validate the fee fields of a payment and return the parsed amount."""
    parsed = utils.parse_amount(amount)
    if not method or amount is None or str(amount).strip() == "":
        raise ValidationError("Member, amount, and payment method are required")
    if parsed is None:
        raise ValidationError("Amount must be a number")
    # A zero amount counts as missing, same as an empty field.
    if parsed == 0:
        raise ValidationError("Member, amount, and payment method are required")

    errors = []
    if method not in PAYMENT_METHODS:
        errors.append(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}.")
    if status not in PAYMENT_STATUSES:
        errors.append(f"Payment status must be one of: {', '.join(PAYMENT_STATUSES)}.")
    try:
        utils.to_date(payment_date or utils.today_iso())
    except (TypeError, ValueError):
        errors.append("Payment date must be a valid date (YYYY-MM-DD).")
    if errors:
        raise ValidationError(errors)
    return parsed


def _validate(member_id, amount, method, status, payment_date) -> float:
    if not member_id:
        raise ValidationError("Member, amount, and payment method are required")
    return check_payment_inputs(amount, method, status, payment_date)


def record_payment(
    member_id: str,
    amount,
    method: str,
    status: str = "paid",
    payment_date: date | str | None = None,
    plan_id: str | None = None,
    renew: bool = False,
    notes: str | None = None,
    rng: random.Random | None = None,
) -> PaymentResult:
    """
    Insert one payment row, then renew the member when the payment is paid,
    renew is set and a plan is given.

    The two writes are not atomic. If the plan cannot be found the renewal is
    skipped and the payment stands; a failed member update is reported on the
    result (renewal_error) but does not undo the payment.
    """
    status = status or "paid"
    payment_date = payment_date or utils.today_iso()
    parsed = _validate(member_id, amount, method, status, payment_date)
    membership.require_member(member_id)

    pay_date = utils.to_date(payment_date)
    invoice_number = generate_invoice_number(pay_date, rng)
    payment_id = db.insert(
        "payments",
        {
            "member_id": member_id,
            "amount": parsed,
            "payment_method": method,
            "payment_status": status,
            "payment_date": pay_date.isoformat(),
            "invoice_number": invoice_number,
            "plan_id": plan_id or None,
            "notes": (notes or "").strip() or None,
        },
    )
    logger.info("Recorded payment %s: %s via %s (%s)", invoice_number, parsed, method, status)

    if not (renew and plan_id and status == "paid"):
        return PaymentResult(payment_id, invoice_number)

    plan = plans.get_plan(plan_id)
    if plan is None:
        logger.warning("Renewal skipped for payment %s: plan %s not found", invoice_number, plan_id)
        return PaymentResult(payment_id, invoice_number)

    try:
        member = membership.apply_renewal(member_id, plan, pay_date)
    except GymError as exc:
        logger.warning("Renewal failed after payment %s: %s", invoice_number, exc)
        return PaymentResult(payment_id, invoice_number, renewal_error=str(exc))
    return PaymentResult(payment_id, invoice_number, renewed=True, member=member)


def enroll_member(
    full_name: str,
    phone: str,
    plan_id: str,
    start_date: date | str | None = None,
    fee=None,
    method: str = "cash",
    payment_date: date | str | None = None,
    rng: random.Random | None = None,
    **details,
) -> tuple[Member, PaymentResult]:
    """
    Register a member and record the initial membership fee.

    A blank fee means the plan's price. The fee and the member fields are both
    checked before the member row is written, so a rejected form leaves nothing behind.
    """
    plan = plans.require_plan(plan_id)
    if fee is None or str(fee).strip() == "":
        fee = plan.price
    payment_date = payment_date or utils.today_iso()
    check_payment_inputs(fee, method, "paid", payment_date)

    member = membership.create_member(full_name, phone, plan.id, start_date, **details)
    result = record_payment(
        member.id, fee, method, payment_date=payment_date, plan_id=plan.id,
        notes="Initial membership fee", rng=rng,
    )
    return member, result


def get_payment(payment_id: str) -> Payment | None:
    row = db.find_by_id("payments", payment_id)
    return Payment.from_row(row) if row else None


def list_payments(
    member_id: str | None = None,
    status: str | None = None,
    method: str | None = None,
    limit: int | None = None,
) -> list[Payment]:
    rows = db.list_filtered(
        "payments",
        {"member_id": member_id, "payment_status": status, "payment_method": method},
        order_by="payment_date DESC",
        limit=limit,
    )
    return [Payment.from_row(r) for r in rows]


def payment_table(search: str = "", status: str | None = None) -> list[dict]:
    """Payments joined with member name/identifier, newest first (for tables and CSV)."""
    sql = """
        SELECT p.invoice_number, p.payment_date, m.member_id, m.full_name,
               p.amount, p.payment_method, p.payment_status, pl.name AS plan_name, p.notes
        FROM payments p
        JOIN members m ON m.id = p.member_id
        LEFT JOIN membership_plans pl ON pl.id = p.plan_id
        WHERE 1=1
    """
    params: list = []
    if search.strip():
        sql += " AND (m.full_name LIKE ? OR m.member_id LIKE ? OR p.invoice_number LIKE ?)"
        like = f"%{search.strip()}%"
        params.extend([like, like, like])
    if status in PAYMENT_STATUSES:
        sql += " AND p.payment_status = ?"
        params.append(status)
    sql += " ORDER BY p.payment_date DESC, p.created_at DESC"
    return [dict(r) for r in db.fetch_all(sql, tuple(params))]
