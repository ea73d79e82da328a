"""
plans.py
Membership plan configuration (create, edit, activate/deactivate, delete).
"""

from __future__ import annotations

import logging
from dataclasses import replace

import db
import utils
from errors import NotFoundError, ValidationError
from models import MembershipPlan

logger = logging.getLogger(__name__)


def _to_plan(row) -> MembershipPlan | None:
    if row is None:
        return None
    plan = MembershipPlan.from_row(row)
    return replace(plan, is_active=bool(plan.is_active))


def get_plan(plan_id: str | None) -> MembershipPlan | None:
    if not plan_id:
        return None
    return _to_plan(db.find_by_id("membership_plans", plan_id))


def require_plan(plan_id: str | None) -> MembershipPlan:
    plan = get_plan(plan_id)
    if plan is None:
        raise NotFoundError("Invalid membership plan")
    return plan


def list_plans(active_only: bool = False) -> list[MembershipPlan]:
    rows = db.list_filtered(
        "membership_plans",
        {"is_active": 1} if active_only else None,
        order_by="price ASC",
    )
    return [_to_plan(r) for r in rows]


def is_referenced(plan_id: str) -> bool:
    """True once any payment points at the plan."""
    return db.count_filtered("payments", {"plan_id": plan_id}) > 0


def _clean(name: str, price, duration_days, description: str | None) -> dict:
    errors = utils.validate_plan_inputs(name, price, duration_days)
    if errors:
        raise ValidationError(errors)
    return {
        "name": name.strip(),
        "price": float(price),
        "duration_days": int(float(duration_days)),
        "description": (description or "").strip() or None,
    }


def create_plan(name: str, price, duration_days, description: str | None = None) -> MembershipPlan:
    values = _clean(name, price, duration_days, description)
    plan_id = db.insert("membership_plans", {**values, "is_active": 1})
    logger.info("Created plan %s (%s days @ %s)", values["name"], values["duration_days"], values["price"])
    return get_plan(plan_id)


def update_plan(plan_id: str, name: str, price, duration_days, description: str | None = None) -> MembershipPlan:
    """
    Edit a plan. Price and duration are frozen once a payment references the plan.
    """
    current = require_plan(plan_id)
    values = _clean(name, price, duration_days, description)
    changes_terms = (
        values["price"] != float(current.price) or values["duration_days"] != int(current.duration_days)
    )
    if changes_terms and is_referenced(plan_id):
        raise ValidationError("Price and duration cannot change once payments reference this plan.")
    db.update("membership_plans", plan_id, values)
    logger.info("Updated plan %s", plan_id)
    return get_plan(plan_id)


def toggle_plan_status(plan_id: str, is_active: bool) -> MembershipPlan:
    require_plan(plan_id)
    db.update("membership_plans", plan_id, {"is_active": 1 if is_active else 0})
    logger.info("Plan %s %s", plan_id, "activated" if is_active else "deactivated")
    return get_plan(plan_id)


def delete_plan(plan_id: str) -> None:
    require_plan(plan_id)
    if is_referenced(plan_id):
        raise ValidationError("This plan is referenced by payments; deactivate it instead.")
    db.delete("membership_plans", plan_id)
    logger.info("Deleted plan %s", plan_id)
