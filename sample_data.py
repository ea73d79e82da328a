"""
sample_data.py
Demo rows for trying the dashboard (safe to run multiple times: adds new rows each time).
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

import checkins
import expenses
import membership
import payments
import plans


def insert_sample_data() -> None:
    """
    Insert 2 plans, 3 members (one expiring soon, one expired), their fees,
    a couple of check-ins and expenses.
    """
    today = date.today()

    monthly = plans.create_plan("Monthly", 1500, 30, "Full gym access")
    quarterly = plans.create_plan("Quarterly", 4000, 90, "Full gym access + 1 PT session")

    # Member 1: active, expires in ~5 days
    start = today - timedelta(days=25)
    m1, _ = payments.enroll_member("Arjun Mehta", "9876500001", monthly.id, start, method="cash", payment_date=start)
    # Member 2: active, longer plan
    start = today - timedelta(days=10)
    m2, _ = payments.enroll_member("Priya Nair", "9876500002", quarterly.id, start, method="upi", payment_date=start,
                                   email="priya@example.com", gender="female")
    # Member 3: expired
    start = today - timedelta(days=60)
    m3, _ = payments.enroll_member("Rahul Verma", "9876500003", monthly.id, start, method="card", payment_date=start)
    membership.set_status(m3.id, "expired")

    payments.record_payment(m3.id, 1500, "upi", status="pending", plan_id=monthly.id, notes="Renewal promised")

    morning = datetime.combine(today, datetime.min.time()).replace(hour=7)
    visit = checkins.check_in(m1.id, at=morning)
    checkins.check_out(visit.id, at=morning + timedelta(minutes=75))
    checkins.check_in(m2.id, entry_method="qr", at=morning.replace(hour=18))

    expenses.add_expense("rent", 25000, "Monthly rent", today.replace(day=1))
    expenses.add_expense("maintenance", 1800, "Treadmill belt replacement", today)
