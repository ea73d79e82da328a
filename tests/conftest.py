from __future__ import annotations

import pytest

import auth
import db
import membership
import plans

ADMIN_EMAIL = "admin@gym.local"
ADMIN_PASSWORD = "admin123"


@pytest.fixture(scope="session")
def admin_hash() -> str:
    # bcrypt at 12 rounds is slow; hash once per run
    return auth.hash_password(ADMIN_PASSWORD)


@pytest.fixture(autouse=True)
def gym_db(tmp_path, monkeypatch, admin_hash):
    monkeypatch.setattr(db, "DB_FILE", tmp_path / "gym_test.db")
    db.init_db(ADMIN_EMAIL, admin_hash)
    yield db.DB_FILE


@pytest.fixture()
def monthly_plan():
    return plans.create_plan("Monthly", 500, 30, "Full gym access")


@pytest.fixture()
def quarterly_plan():
    return plans.create_plan("Quarterly", 1400, 90)


@pytest.fixture()
def make_member(monthly_plan):
    counter = {"n": 0}

    def _make(full_name: str = "Asha Rao", phone: str | None = None, start_date="2025-06-01", plan=None, **extra):
        counter["n"] += 1
        phone = phone or f"98765{counter['n']:05d}"
        return membership.create_member(full_name, phone, (plan or monthly_plan).id, start_date, **extra)

    return _make
