from __future__ import annotations

import pytest

import payments
import plans
from errors import NotFoundError, ValidationError


def test_create_and_list_plans(monthly_plan, quarterly_plan):
    assert monthly_plan.is_active is True
    assert monthly_plan.duration_days == 30
    assert [p.name for p in plans.list_plans()] == ["Monthly", "Quarterly"]


@pytest.mark.parametrize(
    "name,price,duration",
    [("", 500, 30), ("Gold", 0, 30), ("Gold", "abc", 30), ("Gold", 500, 0), ("Gold", 500, "1.5")],
)
def test_create_plan_validation(name, price, duration):
    with pytest.raises(ValidationError):
        plans.create_plan(name, price, duration)
    assert plans.list_plans() == []


def test_toggle_and_active_only(monthly_plan, quarterly_plan):
    plans.toggle_plan_status(monthly_plan.id, False)
    assert [p.name for p in plans.list_plans(active_only=True)] == ["Quarterly"]
    assert plans.get_plan(monthly_plan.id).is_active is False
    plans.toggle_plan_status(monthly_plan.id, True)
    assert len(plans.list_plans(active_only=True)) == 2


def test_update_unreferenced_plan(monthly_plan):
    updated = plans.update_plan(monthly_plan.id, "Monthly Plus", 650, 31, "With sauna")
    assert (updated.name, updated.price, updated.duration_days, updated.description) == (
        "Monthly Plus", 650.0, 31, "With sauna",
    )


def test_referenced_plan_keeps_price_and_duration(make_member, monthly_plan):
    m = make_member()
    payments.record_payment(m.id, 500, "cash", plan_id=monthly_plan.id)

    with pytest.raises(ValidationError):
        plans.update_plan(monthly_plan.id, "Monthly", 600, 30)
    with pytest.raises(ValidationError):
        plans.update_plan(monthly_plan.id, "Monthly", 500, 45)
    renamed = plans.update_plan(monthly_plan.id, "Monthly Classic", 500, 30)
    assert renamed.name == "Monthly Classic"

    with pytest.raises(ValidationError):
        plans.delete_plan(monthly_plan.id)
    assert plans.get_plan(monthly_plan.id) is not None


def test_delete_plan(quarterly_plan):
    plans.delete_plan(quarterly_plan.id)
    assert plans.get_plan(quarterly_plan.id) is None
    with pytest.raises(NotFoundError):
        plans.delete_plan(quarterly_plan.id)
