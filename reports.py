"""
reports.py
Dashboard and report figures. Everything here is a pure function over rows
already fetched from the database; `today` is passed in, never read from a cache.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
import pandas as pd

import utils
from models import EXPIRY_WARNING_DAYS, MEMBER_STATUSES

NO_PLAN = "No Plan"


@dataclass(frozen=True)
class DashboardStats:
    total_members: int
    active_members: int
    expired_members: int
    today_revenue: float
    today_payments_count: int
    today_check_ins: int
    expiring_this_week: int


@dataclass(frozen=True)
class FinancialSummary:
    total_revenue: float
    total_expenses: float
    net_profit: float
    month_revenue: float
    month_expenses: float
    month_net: float


# ---------- helpers ----------

def _paid(payments):
    return [p for p in payments if p.payment_status == "paid"]


def _day_keys(today: date, days: int) -> list[str]:
    return [(today - timedelta(days=i)).isoformat() for i in range(days - 1, -1, -1)]


def _month_keys(today: date, months: int) -> list[str]:
    base = today.year * 12 + today.month - 1
    keys = []
    for i in range(months - 1, -1, -1):
        y, m = divmod(base - i, 12)
        keys.append(f"{y:04d}-{m + 1:02d}")
    return keys


def _bucket(keys: list[str], pairs: list[tuple[str, float]], label: str, name: str, count: bool = False) -> pd.DataFrame:
    """Sum (or count) values per key, zero-filled and ordered like `keys`."""
    df = pd.DataFrame(pairs, columns=["key", "value"])
    grouped = df.groupby("key")["value"]
    series = (grouped.count() if count else grouped.sum()).reindex(keys, fill_value=0)
    values = series.astype(int) if count else series.astype(float)
    return pd.DataFrame({label: keys, name: values.to_numpy()})


def _amount(x) -> float:
    return float(x.amount or 0)


# ---------- dashboard ----------

def dashboard_stats(members, payments, check_ins, today: date | None = None) -> DashboardStats:
    today = today or date.today()
    t = today.isoformat()
    paid_today = [p for p in _paid(payments) if p.payment_date == t]
    return DashboardStats(
        total_members=len(members),
        active_members=sum(1 for m in members if m.status == "active"),
        expired_members=sum(1 for m in members if m.status == "expired"),
        today_revenue=sum(_amount(p) for p in paid_today),
        today_payments_count=len(paid_today),
        today_check_ins=sum(1 for c in check_ins if c.check_in_time[:10] == t),
        expiring_this_week=len(expiring_members(members, today, EXPIRY_WARNING_DAYS)),
    )


def daily_revenue(payments, today: date | None = None, days: int = 30) -> pd.DataFrame:
    today = today or date.today()
    pairs = [(p.payment_date[:10], _amount(p)) for p in _paid(payments)]
    return _bucket(_day_keys(today, days), pairs, "date", "revenue")


def monthly_revenue(payments, today: date | None = None, months: int = 12) -> pd.DataFrame:
    today = today or date.today()
    pairs = [(p.payment_date[:7], _amount(p)) for p in _paid(payments)]
    return _bucket(_month_keys(today, months), pairs, "month", "revenue")


# ---------- financial ----------

def financial_summary(payments, expenses, today: date | None = None) -> FinancialSummary:
    today = today or date.today()
    month = today.isoformat()[:7]
    paid = _paid(payments)
    total_revenue = sum(_amount(p) for p in paid)
    total_expenses = sum(_amount(e) for e in expenses)
    month_revenue = sum(_amount(p) for p in paid if p.payment_date.startswith(month))
    month_expenses = sum(_amount(e) for e in expenses if e.expense_date.startswith(month))
    return FinancialSummary(
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        net_profit=total_revenue - total_expenses,
        month_revenue=month_revenue,
        month_expenses=month_expenses,
        month_net=month_revenue - month_expenses,
    )


def monthly_revenue_vs_expenses(payments, expenses, today: date | None = None, months: int = 12) -> pd.DataFrame:
    today = today or date.today()
    keys = _month_keys(today, months)
    revenue = monthly_revenue(payments, today, months)
    spent = _bucket(keys, [(e.expense_date[:7], _amount(e)) for e in expenses], "month", "expenses")
    return revenue.merge(spent, on="month")


def expense_totals_by_category(expenses) -> list[tuple[str, float]]:
    totals: dict[str, float] = {}
    for e in expenses:
        totals[e.category] = totals.get(e.category, 0.0) + _amount(e)
    return sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))


# ---------- membership ----------

def status_counts(members) -> dict[str, int]:
    counts = Counter(m.status for m in members)
    return {s: counts.get(s, 0) for s in MEMBER_STATUSES}


def plan_distribution(members, plans) -> list[tuple[str, int]]:
    names = {p.id: p.name for p in plans}
    counts = Counter(names.get(m.membership_plan_id, NO_PLAN) for m in members)
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))


def new_members_by_month(members, today: date | None = None, months: int = 12) -> pd.DataFrame:
    today = today or date.today()
    pairs = [(m.created_at[:7], 1) for m in members if m.created_at]
    return _bucket(_month_keys(today, months), pairs, "month", "new_members", count=True)


def retention_rate(members) -> int:
    """Active members as a whole-number percentage of all members."""
    if not members:
        return 0
    return round(sum(1 for m in members if m.status == "active") / len(members) * 100)


def expiring_members(members, today: date | None = None, window_days: int = EXPIRY_WARNING_DAYS) -> list:
    today = today or date.today()
    soon = [
        m for m in members
        if m.status == "active"
        and m.membership_expiry_date
        and utils.is_expiring_soon(m.membership_expiry_date, window_days, today)
    ]
    return sorted(soon, key=lambda m: (m.membership_expiry_date, m.member_id))


# ---------- attendance ----------

def daily_check_ins(check_ins, today: date | None = None, days: int = 30) -> pd.DataFrame:
    today = today or date.today()
    pairs = [(c.check_in_time[:10], 1) for c in check_ins]
    return _bucket(_day_keys(today, days), pairs, "date", "check_ins", count=True)


def hourly_check_ins(check_ins) -> pd.DataFrame:
    """Visits per hour of day; quiet night hours (outside 5:00-22:00) are dropped."""
    counts = Counter(datetime.fromisoformat(c.check_in_time).hour for c in check_ins)
    hours = [h for h in range(24) if counts.get(h) or 5 <= h <= 22]
    return pd.DataFrame({"hour": hours, "visits": [counts.get(h, 0) for h in hours]})


def peak_hour(check_ins) -> tuple[int, int] | None:
    hourly = hourly_check_ins(check_ins)
    if hourly.empty or hourly["visits"].max() == 0:
        return None
    row = hourly.loc[hourly["visits"].idxmax()]
    return int(row["hour"]), int(row["visits"])


def unique_visitors(check_ins) -> int:
    return len({c.member_id for c in check_ins})


def top_visitors(check_ins, members, limit: int = 10) -> list[dict]:
    by_pk = {m.id: m for m in members}
    counts = Counter(c.member_id for c in check_ins)
    rows = []
    for pk, n in counts.items():
        m = by_pk.get(pk)
        rows.append({
            "member_id": m.member_id if m else "—",
            "name": m.full_name if m else "Unknown",
            "visits": n,
        })
    rows.sort(key=lambda r: (-r["visits"], r["name"], r["member_id"]))
    return rows[:limit]


# ---------- payments ----------

def payment_method_breakdown(payments) -> list[dict]:
    agg: dict[str, dict] = {}
    for p in _paid(payments):
        slot = agg.setdefault(p.payment_method, {"method": p.payment_method, "count": 0, "total": 0.0})
        slot["count"] += 1
        slot["total"] += _amount(p)
    return sorted(agg.values(), key=lambda r: (-r["total"], r["method"]))


def pending_summary(payments) -> tuple[int, float]:
    pending = [p for p in payments if p.payment_status == "pending"]
    return len(pending), sum(_amount(p) for p in pending)


def average_payment(payments) -> float:
    paid = _paid(payments)
    return sum(_amount(p) for p in paid) / len(paid) if paid else 0.0
