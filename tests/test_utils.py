from __future__ import annotations

from datetime import date

import pytest

import utils
from models import Member


@pytest.mark.parametrize(
    "phone,ok",
    [("9876543210", True), ("6000000000", True), ("5876543210", False), ("987654321", False),
     ("98765432101", False), ("98765-4321", False), ("", False), (None, False)],
)
def test_phone_validation(phone, ok):
    assert utils.is_valid_phone(phone) is ok


@pytest.mark.parametrize(
    "value,expected",
    [(0, "₹0"), (500, "₹500"), (1500, "₹1,500"), (123456.5, "₹1,23,456.5"),
     (10000000, "₹1,00,00,000"), (99.99, "₹99.99"), (-2500, "-₹2,500")],
)
def test_format_currency(value, expected):
    assert utils.format_currency(value) == expected


@pytest.mark.parametrize("raw,expected", [("12.5", 12.5), (3, 3.0), (" ", None), ("abc", None), ("nan", None), (None, None)])
def test_parse_amount(raw, expected):
    assert utils.parse_amount(raw) == expected


def test_expiry_helpers():
    today = date(2025, 7, 10)
    assert utils.days_remaining("2025-07-17", today) == 7
    assert utils.is_expired("2025-07-09", today)
    assert not utils.is_expired("2025-07-10", today)
    assert utils.is_expiring_soon("2025-07-17", today=today)
    assert not utils.is_expiring_soon("2025-07-18", today=today)
    assert not utils.is_expiring_soon("2025-07-09", today=today)


def test_validate_member_inputs_ok():
    assert utils.validate_member_inputs("Asha Rao", "9876543210", "2025-06-01", email="asha@example.com") == []


def test_validate_member_inputs_ignores_blank_optionals():
    errors = utils.validate_member_inputs(
        "Asha Rao", "9876543210", "2025-06-01",
        email="  ", emergency_contact_phone=" ", gender="", date_of_birth="   ",
    )
    assert errors == []


def test_validate_member_inputs_reports_each_field():
    errors = utils.validate_member_inputs(
        "A", "123", "not-a-date",
        email="asha@", emergency_contact_phone="111", gender="robot", date_of_birth="31/12/1990",
    )
    assert len(errors) == 7


def test_to_csv_bytes_from_dataclasses():
    rows = [Member(id="m1", member_id="GYM001", full_name="Asha Rao", phone="9876543210")]
    csv = utils.to_csv_bytes(rows, ["member_id", "full_name"]).decode("utf-8")
    assert csv.splitlines() == ["member_id,full_name", "GYM001,Asha Rao"]


def test_to_csv_bytes_empty_keeps_header():
    assert utils.to_csv_bytes([], ["a", "b"]).decode("utf-8").strip() == "a,b"
