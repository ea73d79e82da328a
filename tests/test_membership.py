from __future__ import annotations

from datetime import date

import pytest

import db
import membership
import plans
from errors import NotFoundError, ValidationError
from models import Member, MembershipPlan


def _plan(days: int = 30) -> MembershipPlan:
    return MembershipPlan(id="plan-1", name="Monthly", price=500, duration_days=days)


def _member(**kw) -> Member:
    base = dict(id="m-1", member_id="GYM001", full_name="Asha Rao", phone="9876543210")
    base.update(kw)
    return Member(**base)


# ---------- identifiers ----------

def test_first_identifier_when_no_members():
    assert membership.next_member_id([]) == "GYM001"


def test_next_identifier_uses_max_not_count():
    assert membership.next_member_id(["GYM001", "GYM003"]) == "GYM004"


def test_malformed_identifiers_are_skipped():
    ids = ["GYM002", "XYZ009", "GYMabc", "", None, "GYM"]
    assert membership.next_member_id(ids) == "GYM003"


def test_only_malformed_identifiers_start_from_one():
    assert membership.next_member_id(["member-7", "abc"]) == "GYM001"


def test_identifier_grows_past_padding_width():
    assert membership.next_member_id(["GYM999"]) == "GYM1000"


def test_next_identifier_exceeds_every_suffix():
    ids = ["GYM010", "GYM002", "GYM041", "GYM007"]
    nxt = membership.next_member_id(ids)
    assert int(nxt[3:]) > max(int(i[3:]) for i in ids)
    assert nxt == "GYM042"


@pytest.mark.parametrize(
    "value,expected",
    [("GYM001", True), ("GYM1234", True), ("GYM01", False), ("gym001", False), ("INV001", False), ("", False)],
)
def test_is_valid_member_id(value, expected):
    assert membership.is_valid_member_id(value) is expected


def test_referral_code():
    assert membership.referral_code("asha rao", "9876543210") == "ASHA3210"
    assert membership.is_valid_referral_code("ASHA3210")
    assert not membership.is_valid_referral_code("asha3210")


# ---------- lifecycle ----------

def test_compute_expiry_is_calendar_day_addition():
    assert membership.compute_expiry(date(2025, 1, 1), 30) == date(2025, 1, 31)
    assert membership.compute_expiry("2024-02-28", 1) == date(2024, 2, 29)
    assert membership.compute_expiry("2025-12-15", 30) == date(2026, 1, 14)


def test_create_membership_sets_dates_and_activates():
    m = membership.create_membership(_member(status="inactive"), _plan(30), "2025-06-01")
    assert m.membership_plan_id == "plan-1"
    assert m.membership_start_date == "2025-06-01"
    assert m.membership_expiry_date == "2025-07-01"
    assert m.status == "active"


def test_create_membership_accepts_backdated_start():
    m = membership.create_membership(_member(), _plan(30), "2001-01-01")
    assert m.membership_expiry_date == "2001-01-31"
    assert m.status == "active"


def test_renew_restarts_from_payment_date():
    current = _member(membership_start_date="2025-06-01", membership_expiry_date="2025-07-01", status="expired")
    renewed = membership.renew(current, _plan(30), date(2025, 7, 1))
    assert renewed.membership_start_date == "2025-07-01"
    assert renewed.membership_expiry_date == "2025-07-31"
    assert renewed.status == "active"


# ---------- persistence ----------

def test_create_member_scenario(monthly_plan):
    m = membership.create_member("Asha Rao", "9876543210", monthly_plan.id, "2025-06-01")
    assert m.member_id == "GYM001"
    assert m.membership_expiry_date == "2025-07-01"
    assert m.status == "active"
    assert m.membership_plan_id == monthly_plan.id


def test_create_member_numbers_after_gap(make_member):
    first = make_member()
    second = make_member()
    third = make_member()
    membership.delete_member(second.id)
    fourth = make_member()
    assert [first.member_id, third.member_id, fourth.member_id] == ["GYM001", "GYM003", "GYM004"]


def test_create_member_rejects_bad_phone(monthly_plan):
    with pytest.raises(ValidationError) as exc:
        membership.create_member("Asha Rao", "12345", monthly_plan.id, "2025-06-01")
    assert "phone" in str(exc.value).lower()
    assert membership.list_members()[1] == 0


def test_create_member_collects_all_errors(monthly_plan):
    with pytest.raises(ValidationError) as exc:
        membership.create_member("A", "5555555555", monthly_plan.id, "2025-06-01", email="not-an-email")
    assert len(exc.value.errors) == 3


def test_create_member_unknown_plan():
    with pytest.raises(NotFoundError, match="Invalid membership plan"):
        membership.create_member("Asha Rao", "9876543210", "missing", "2025-06-01")


def test_create_member_blank_optionals_stored_as_null(make_member):
    m = make_member(email="  ", address="", notes=None)
    assert m.email is None
    assert m.address is None


def test_update_member_status_and_details(make_member):
    m = make_member()
    updated = membership.update_member(m.id, status="frozen", notes="Travelling")
    assert updated.status == "frozen"
    assert updated.notes == "Travelling"
    assert updated.membership_expiry_date == m.membership_expiry_date


def test_update_member_rejects_unknown_status(make_member):
    m = make_member()
    with pytest.raises(ValidationError):
        membership.set_status(m.id, "paused")
    assert membership.get_member(m.id).status == "active"


def test_update_member_cannot_touch_dates(make_member):
    m = make_member()
    with pytest.raises(ValidationError):
        membership.update_member(m.id, membership_expiry_date="2030-01-01")


def test_update_missing_member():
    with pytest.raises(NotFoundError):
        membership.update_member("nope", status="active")


def test_list_members_filters_and_pages(make_member, quarterly_plan):
    a = make_member("Asha Rao")
    make_member("Bilal Khan")
    c = make_member("Chitra Das", plan=quarterly_plan)
    membership.set_status(a.id, "expired")

    rows, total = membership.list_members(search="khan")
    assert total == 1 and rows[0].full_name == "Bilal Khan"

    rows, total = membership.list_members(status="expired")
    assert [r.id for r in rows] == [a.id]

    rows, total = membership.list_members(plan_id=quarterly_plan.id)
    assert [r.id for r in rows] == [c.id]

    rows, total = membership.list_members(search="GYM00", page=2, per_page=2)
    assert total == 3
    assert len(rows) == 1


def test_deleting_plan_leaves_member_untouched(monthly_plan, make_member):
    m = make_member()
    plans.delete_plan(monthly_plan.id)
    again = membership.get_member(m.id)
    assert again == m


def test_list_members_orders_identifiers_numerically(monkeypatch):
    monkeypatch.setattr(db, "now_iso", lambda: "2025-06-01T09:00:00")
    for member_id in ("GYM999", "GYM1000", "GYM998"):
        db.insert("members", {"member_id": member_id, "full_name": "Asha Rao", "phone": "9876543210", "status": "active"})
    rows, _ = membership.list_members()
    assert [r.member_id for r in rows] == ["GYM1000", "GYM999", "GYM998"]


def test_delete_missing_member():
    with pytest.raises(NotFoundError):
        membership.delete_member("nope")
