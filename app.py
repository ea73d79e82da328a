"""
app.py
Streamlit Gym Administration Dashboard (admin-only).
Run: streamlit run app.py
"""

from __future__ import annotations

import logging
import os
from datetime import date, datetime, timedelta
import streamlit as st

import db
import auth
import checkins
import expenses
import membership
import payments
import plans
import reports
import sample_data
import utils
from errors import GymError
from models import (
    ENTRY_METHOD_LABELS,
    EXPENSE_CATEGORIES,
    EXPENSE_CATEGORY_LABELS,
    EXPIRY_WARNING_DAYS,
    GENDERS,
    ITEMS_PER_PAGE,
    ITEMS_PER_PAGE_OPTIONS,
    MEMBER_STATUSES,
    PAYMENT_METHOD_LABELS,
    PAYMENT_METHODS,
    PAYMENT_STATUSES,
)

logging.basicConfig(
    level=os.environ.get("GYM_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)

DEFAULT_ADMIN_EMAIL = os.environ.get("GYM_DEFAULT_ADMIN_EMAIL", "admin@gym.local")
DEFAULT_ADMIN_PASSWORD = os.environ.get("GYM_DEFAULT_ADMIN_PASSWORD", "admin123")

st.set_page_config(page_title="Gym Management System", layout="wide")


@st.cache_resource
def init_once():
    # Initialize DB + default admin if needed
    default_hash = auth.hash_password(DEFAULT_ADMIN_PASSWORD)
    db.init_db(DEFAULT_ADMIN_EMAIL, default_hash)
    return True


def require_login():
    if "logged_in" not in st.session_state:
        st.session_state.logged_in = False
    if "email" not in st.session_state:
        st.session_state.email = None


def logout():
    st.session_state.logged_in = False
    st.session_state.email = None
    st.success("Logged out.")


def login_screen():
    st.title("🔐 Admin Login")

    col1, col2 = st.columns([1, 1])
    with col1:
        email = st.text_input("Email", value=DEFAULT_ADMIN_EMAIL)
        password = st.text_input("Password", type="password")
        if st.button("Login", type="primary"):
            if auth.login(email.strip(), password):
                st.session_state.logged_in = True
                st.session_state.email = email.strip().lower()
                st.rerun()
            else:
                st.error("Invalid email or password.")

    with col2:
        st.info(
            "First run creates a default admin:\n\n"
            f"- email: **{DEFAULT_ADMIN_EMAIL}**\n"
            "- password: **admin123** (unless overridden)\n\n"
            "You will be forced to change it on first login."
        )


def password_form(key: str) -> None:
    new1 = st.text_input("New password", type="password", key=f"{key}_p1")
    new2 = st.text_input("Confirm new password", type="password", key=f"{key}_p2")
    if st.button("Update password", type="primary", key=f"{key}_btn"):
        try:
            auth.change_password(st.session_state.email, new1, new2)
        except GymError as exc:
            st.error(str(exc))
            return
        st.success("Password updated.")
        st.rerun()


def force_change_password_screen():
    st.title("⚠️ Change Password (Required)")
    st.warning("You must change the default password before using the app.")
    password_form("force")


# ---------- Shared helpers ----------

def plan_names() -> dict:
    return {p.id: p.name for p in plans.list_plans()}


def member_label(m) -> str:
    return f"{m.member_id} · {m.full_name} ({m.phone})"


def show_table(rows, columns=None, empty="Nothing to show yet."):
    df = utils.rows_to_dataframe(rows, columns)
    if df.empty:
        st.caption(empty)
    else:
        st.dataframe(df, use_container_width=True, hide_index=True)


# ---------- Pages ----------

def dashboard_page():
    st.header("📊 Dashboard")

    today = date.today()
    members = membership.all_members()
    pays = payments.list_payments()
    visits = checkins.list_check_ins(since=datetime.combine(today - timedelta(days=1), datetime.min.time()))
    stats = reports.dashboard_stats(members, pays, visits, today)

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total members", stats.total_members, f"{stats.active_members} active", delta_color="off")
    c2.metric("Today's revenue", utils.format_currency(stats.today_revenue), f"{stats.today_payments_count} payments",
              delta_color="off")
    c3.metric("Today's check-ins", stats.today_check_ins)
    c4.metric("Expiring this week", stats.expiring_this_week)

    st.divider()

    st.subheader("Revenue")
    days = st.radio("Range", [5, 30, 365], index=1, horizontal=True, format_func=lambda d: f"{d}D")
    chart = reports.daily_revenue(pays, today, days)
    st.line_chart(chart.set_index("date"))

    st.subheader(f"Expiring soon (next {EXPIRY_WARNING_DAYS} days)")
    show_table(
        reports.expiring_members(members, today),
        ["member_id", "full_name", "phone", "membership_expiry_date"],
        empty=f"No members expiring in the next {EXPIRY_WARNING_DAYS} days.",
    )

    st.subheader("Recent check-ins")
    by_pk = {m.id: m for m in members}
    recent = [
        {
            "time": c.check_in_time.replace("T", " "),
            "member": by_pk[c.member_id].member_id if c.member_id in by_pk else "—",
            "name": by_pk[c.member_id].full_name if c.member_id in by_pk else "Unknown",
        }
        for c in checkins.list_check_ins(limit=8)
    ]
    show_table(recent, empty="No check-ins yet.")


def add_member_form():
    st.subheader("➕ Add Member")
    active_plans = plans.list_plans(active_only=True)
    if not active_plans:
        st.info("Create an active membership plan first (Plans page).")
        return

    # Kept outside the form: widgets inside st.form do not rerun on change.
    c1, c2 = st.columns(2)
    plan = c1.selectbox(
        "Membership plan",
        active_plans,
        format_func=lambda p: f"{p.name} · {p.duration_days} days · {utils.format_currency(p.price)}",
    )
    start = c2.date_input("Start date", value=date.today())
    st.caption(f"Expiry: {membership.compute_expiry(start, plan.duration_days).isoformat()}")

    with st.form("add_member", clear_on_submit=True):
        col1, col2, col3 = st.columns(3)
        with col1:
            full_name = st.text_input("Full name")
            phone = st.text_input("Phone (10 digits)")
            email = st.text_input("Email (optional)")
            gender = st.selectbox("Gender", ["", *GENDERS])
        with col2:
            dob = st.date_input("Date of birth", value=None, min_value=date(1930, 1, 1))
            address = st.text_input("Address")
            ec_name = st.text_input("Emergency contact name")
            ec_phone = st.text_input("Emergency contact phone")
        with col3:
            fee = st.text_input("Payment amount", value=str(plan.price), key=f"fee_{plan.id}")
            method = st.selectbox("Payment method", PAYMENT_METHODS, format_func=PAYMENT_METHOD_LABELS.get)
        notes = st.text_area("Notes")
        submitted = st.form_submit_button("Save", type="primary")

    if submitted:
        try:
            member, result = payments.enroll_member(
                full_name, phone, plan.id, start, fee=fee, method=method,
                email=email, date_of_birth=dob.isoformat() if dob else None, gender=gender or None,
                address=address, emergency_contact_name=ec_name, emergency_contact_phone=ec_phone, notes=notes,
            )
        except GymError as exc:
            st.error(str(exc))
            return
        st.success(f"Member {member.member_id} added. Invoice {result.invoice_number}.")


def edit_member_form(m):
    st.subheader(f"✏️ Edit {m.member_id}")
    with st.form(f"edit_{m.id}"):
        col1, col2 = st.columns(2)
        with col1:
            full_name = st.text_input("Full name", value=m.full_name)
            phone = st.text_input("Phone", value=m.phone)
            email = st.text_input("Email", value=m.email or "")
            address = st.text_input("Address", value=m.address or "")
        with col2:
            ec_name = st.text_input("Emergency contact name", value=m.emergency_contact_name or "")
            ec_phone = st.text_input("Emergency contact phone", value=m.emergency_contact_phone or "")
            status = st.selectbox("Status", MEMBER_STATUSES, index=MEMBER_STATUSES.index(m.status))
            notes = st.text_input("Notes", value=m.notes or "")
        saved = st.form_submit_button("Save changes", type="primary")
    if saved:
        try:
            membership.update_member(
                m.id, full_name=full_name, phone=phone, email=email, address=address,
                emergency_contact_name=ec_name, emergency_contact_phone=ec_phone, status=status, notes=notes,
            )
        except GymError as exc:
            st.error(str(exc))
            return
        st.success("Member updated.")
        st.rerun()


def members_page():
    st.header("👥 Members")

    names = plan_names()
    with st.sidebar:
        st.subheader("Search & Filters")
        search = st.text_input("Search (name/phone/email/ID)")
        status_filter = st.selectbox("Status", ["All", *MEMBER_STATUSES])
        plan_filter = st.selectbox("Plan", ["All", *names], format_func=lambda k: names.get(k, k))
        per_page = st.selectbox("Rows per page", ITEMS_PER_PAGE_OPTIONS,
                                index=ITEMS_PER_PAGE_OPTIONS.index(ITEMS_PER_PAGE))

    page = st.session_state.get("members_page", 1)
    rows, total = membership.list_members(
        search=search,
        status=None if status_filter == "All" else status_filter,
        plan_id=None if plan_filter == "All" else plan_filter,
        page=page,
        per_page=per_page,
    )
    pages = max(1, -(-total // per_page))
    if page > pages:
        st.session_state.members_page = pages
        st.rerun()
    df = utils.rows_to_dataframe(rows)
    if not df.empty:
        df["plan"] = df["membership_plan_id"].map(lambda k: names.get(k, "No Plan"))
        df["days_left"] = df["membership_expiry_date"].map(lambda d: utils.days_remaining(d) if d else None)
        df = df[["member_id", "full_name", "phone", "email", "plan", "membership_start_date",
                 "membership_expiry_date", "days_left", "status"]]
        st.dataframe(df, use_container_width=True, hide_index=True)
    else:
        st.caption("No members match.")

    c1, c2, c3 = st.columns([1, 2, 1])
    with c1:
        if st.button("◀ Prev", disabled=page <= 1):
            st.session_state.members_page = page - 1
            st.rerun()
    with c2:
        st.caption(f"Page {min(page, pages)} of {pages} · {total} members")
    with c3:
        if st.button("Next ▶", disabled=page >= pages):
            st.session_state.members_page = page + 1
            st.rerun()

    st.divider()

    if rows:
        selected = st.selectbox("Select member", [None, *rows],
                                format_func=lambda m: "(none)" if m is None else member_label(m))
        if selected is not None:
            st.caption(f"Referral code: **{membership.referral_code(selected.full_name, selected.phone)}**")
            edit_member_form(selected)
            delete_confirm = st.checkbox("Confirm delete", value=False, key="del_confirm")
            if st.button("Delete member", disabled=not delete_confirm):
                try:
                    membership.delete_member(selected.id)
                except GymError as exc:
                    st.error(str(exc))
                else:
                    st.success("Member deleted.")
                    st.rerun()
        st.divider()

    add_member_form()


def check_ins_page():
    st.header("🚪 Check-ins")

    active, _ = membership.list_members(status="active", per_page=10_000)
    with st.form("check_in", clear_on_submit=True):
        c1, c2, c3 = st.columns([2, 1, 2])
        with c1:
            member = st.selectbox("Member", active, format_func=member_label)
        with c2:
            method = st.selectbox("Entry method", list(ENTRY_METHOD_LABELS), format_func=ENTRY_METHOD_LABELS.get)
        with c3:
            notes = st.text_input("Notes")
        submitted = st.form_submit_button("Check in", type="primary", disabled=not active)
    if submitted and member is not None:
        try:
            checkins.check_in(member.id, method, notes)
        except GymError as exc:
            st.error(str(exc))
        else:
            st.success(f"{member.full_name} checked in.")

    st.divider()

    members = {m.id: m for m in membership.all_members()}
    visits = checkins.list_check_ins(limit=200)
    inside = checkins.currently_inside(visits)

    st.subheader(f"Currently inside ({len(inside)})")
    for c in inside:
        m = members.get(c.member_id)
        col1, col2 = st.columns([4, 1])
        col1.write(f"{member_label(m) if m else c.member_id} (since {c.check_in_time[11:16]})")
        if col2.button("Check out", key=f"out_{c.id}"):
            try:
                checkins.check_out(c.id)
            except GymError as exc:
                st.error(str(exc))
            else:
                st.rerun()

    st.subheader("Recent visits")
    show_table(
        [
            {
                "member": members[c.member_id].member_id if c.member_id in members else "—",
                "name": members[c.member_id].full_name if c.member_id in members else "Unknown",
                "check_in": c.check_in_time.replace("T", " "),
                "check_out": (c.check_out_time or "").replace("T", " "),
                "duration": checkins.visit_duration(c.check_in_time, c.check_out_time) or "inside",
                "method": ENTRY_METHOD_LABELS.get(c.entry_method, c.entry_method),
            }
            for c in visits
        ],
        empty="No check-ins yet.",
    )


def record_payment_form():
    st.subheader("Record payment")
    members, _ = membership.list_members(per_page=10_000)
    if not members:
        st.info("No members yet. Add a member first.")
        return
    all_plans = plans.list_plans(active_only=True)

    with st.form("record_payment", clear_on_submit=True):
        c1, c2, c3 = st.columns(3)
        with c1:
            member = st.selectbox("Member", members, format_func=member_label)
            amount = st.text_input("Amount")
        with c2:
            method = st.selectbox("Method", PAYMENT_METHODS, format_func=PAYMENT_METHOD_LABELS.get)
            status = st.selectbox("Status", PAYMENT_STATUSES)
            pay_date = st.date_input("Payment date", value=date.today())
        with c3:
            plan = st.selectbox("Plan (for renewal)", [None, *all_plans],
                                format_func=lambda p: "(none)" if p is None else p.name)
            renew = st.checkbox("Renew membership from payment date")
            notes = st.text_input("Notes")
        submitted = st.form_submit_button("Record payment", type="primary")

    if submitted:
        try:
            result = payments.record_payment(
                member.id, amount, method, status, pay_date,
                plan_id=plan.id if plan else None, renew=renew, notes=notes,
            )
        except GymError as exc:
            st.error(str(exc))
            return
        st.success(f"Payment recorded. Invoice {result.invoice_number}.")
        if result.renewed:
            st.info(f"Membership renewed until {result.member.membership_expiry_date}.")
        elif result.renewal_error:
            st.warning(f"Payment saved but renewal failed: {result.renewal_error}")


def payments_page():
    st.header("💳 Payments")
    record_payment_form()
    st.divider()

    c1, c2 = st.columns([2, 1])
    search = c1.text_input("Search (name/ID/invoice)")
    status = c2.selectbox("Status filter", ["All", *PAYMENT_STATUSES])
    rows = payments.payment_table(search, None if status == "All" else status)
    show_table(rows, empty="No payments yet.")
    if rows:
        st.download_button("Download payments.csv", data=utils.to_csv_bytes(rows),
                           file_name="payments.csv", mime="text/csv")


def plans_page():
    st.header("📋 Membership Plans")

    with st.form("new_plan", clear_on_submit=True):
        c1, c2, c3 = st.columns(3)
        name = c1.text_input("Plan name")
        price = c2.text_input("Price")
        duration = c3.text_input("Duration (days)", value="30")
        description = st.text_input("Description")
        if st.form_submit_button("Create plan", type="primary"):
            try:
                plans.create_plan(name, price, duration, description)
            except GymError as exc:
                st.error(str(exc))
            else:
                st.success("Plan created.")

    st.divider()

    for p in plans.list_plans():
        with st.expander(f"{p.name} · {p.duration_days} days · {utils.format_currency(p.price)}"
                         f"{'' if p.is_active else ' (inactive)'}"):
            with st.form(f"plan_{p.id}"):
                c1, c2, c3 = st.columns(3)
                name = c1.text_input("Name", value=p.name)
                price = c2.text_input("Price", value=str(p.price))
                duration = c3.text_input("Duration (days)", value=str(p.duration_days))
                description = st.text_input("Description", value=p.description or "")
                save = st.form_submit_button("Save")
            c1, c2 = st.columns(2)
            toggle = c1.button("Deactivate" if p.is_active else "Activate", key=f"toggle_{p.id}")
            remove = c2.button("Delete", key=f"delete_{p.id}")
            try:
                if save:
                    plans.update_plan(p.id, name, price, duration, description)
                elif toggle:
                    plans.toggle_plan_status(p.id, not p.is_active)
                elif remove:
                    plans.delete_plan(p.id)
                else:
                    continue
            except GymError as exc:
                st.error(str(exc))
            else:
                st.rerun()


def financial_page():
    st.header("💰 Financial")

    today = date.today()
    pays = payments.list_payments(status="paid")
    ledger = expenses.list_expenses()
    summary = reports.financial_summary(pays, ledger, today)

    c1, c2, c3 = st.columns(3)
    c1.metric("Total revenue", utils.format_currency(summary.total_revenue),
              utils.format_currency(summary.month_revenue) + " this month", delta_color="off")
    c2.metric("Total expenses", utils.format_currency(summary.total_expenses),
              utils.format_currency(summary.month_expenses) + " this month", delta_color="off")
    c3.metric("Net profit", utils.format_currency(summary.net_profit),
              utils.format_currency(summary.month_net) + " this month")

    st.bar_chart(reports.monthly_revenue_vs_expenses(pays, ledger, today).set_index("month"))

    st.subheader("Add expense")
    with st.form("add_expense", clear_on_submit=True):
        c1, c2, c3 = st.columns(3)
        category = c1.selectbox("Category", EXPENSE_CATEGORIES, format_func=EXPENSE_CATEGORY_LABELS.get)
        amount = c2.text_input("Amount")
        when = c3.date_input("Date", value=today)
        description = st.text_input("Description")
        if st.form_submit_button("Add expense", type="primary"):
            try:
                expenses.add_expense(category, amount, description, when)
            except GymError as exc:
                st.error(str(exc))
            else:
                st.success("Expense added.")
                st.rerun()

    st.subheader("By category")
    totals = reports.expense_totals_by_category(ledger)
    show_table([{"category": EXPENSE_CATEGORY_LABELS[c], "total": utils.format_currency(t)} for c, t in totals],
               empty="No expenses yet.")

    st.subheader("Expenses")
    c1, c2 = st.columns([1, 2])
    cat = c1.selectbox("Filter", ["all", *EXPENSE_CATEGORIES])
    q = c2.text_input("Search description")
    filtered = expenses.list_expenses(None if cat == "all" else cat, q)
    show_table(filtered, ["expense_date", "category", "description", "amount"], empty="No expenses match.")
    if filtered:
        st.caption(f"{len(filtered)} expenses · {utils.format_currency(sum(e.amount for e in filtered))}")
        doomed = st.selectbox("Delete expense", [None, *filtered],
                              format_func=lambda e: "(none)" if e is None else
                              f"{e.expense_date} · {e.description} · {utils.format_currency(e.amount)}")
        if doomed is not None and st.button("Delete", type="secondary"):
            try:
                expenses.delete_expense(doomed.id)
            except GymError as exc:
                st.error(str(exc))
            else:
                st.rerun()


def reports_page():
    st.header("🧾 Reports")

    today = date.today()
    members = membership.all_members()
    all_plans = plans.list_plans()
    visits = checkins.list_check_ins(since=datetime.combine(today - timedelta(days=90), datetime.min.time()))
    pays = payments.list_payments()

    t1, t2, t3, t4 = st.tabs(["Membership", "Attendance", "Renewals", "Payments"])

    with t1:
        counts = reports.status_counts(members)
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Total members", len(members))
        c2.metric("Active", counts["active"])
        c3.metric("Expired", counts["expired"])
        c4.metric("Retention rate", f"{reports.retention_rate(members)}%")
        st.bar_chart(reports.new_members_by_month(members, today).set_index("month"))
        show_table([{"plan": p, "members": n} for p, n in reports.plan_distribution(members, all_plans)])
        st.download_button("Download members.csv", data=utils.to_csv_bytes(members),
                           file_name="members.csv", mime="text/csv", disabled=not members)

    with t2:
        peak = reports.peak_hour(visits)
        c1, c2, c3 = st.columns(3)
        c1.metric("Check-ins (90 days)", len(visits))
        c2.metric("Unique visitors", reports.unique_visitors(visits))
        c3.metric("Peak hour", f"{peak[0]}:00" if peak else "—")
        st.line_chart(reports.daily_check_ins(visits, today).set_index("date"))
        st.bar_chart(reports.hourly_check_ins(visits).set_index("hour"))
        st.subheader("Top visitors")
        show_table(reports.top_visitors(visits, members), empty="No visits recorded.")

    with t3:
        window = st.radio("Window (days)", [7, 15, 30], index=1, horizontal=True)
        c1, c2, c3 = st.columns(3)
        c1.metric("Expiring in 7 days", len(reports.expiring_members(members, today, 7)))
        c2.metric("Expiring in 30 days", len(reports.expiring_members(members, today, 30)))
        c3.metric("Already expired", reports.status_counts(members)["expired"])
        soon = reports.expiring_members(members, today, window)
        show_table(
            [
                {
                    "member": m.member_id,
                    "name": m.full_name,
                    "phone": m.phone,
                    "expires": m.membership_expiry_date,
                    "days_left": utils.days_remaining(m.membership_expiry_date, today),
                }
                for m in soon
            ],
            empty=f"No members expiring within {window} days.",
        )

    with t4:
        paid = [p for p in pays if p.payment_status == "paid"]
        pending_count, pending_total = reports.pending_summary(pays)
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Total payments", len(paid))
        c2.metric("Revenue", utils.format_currency(sum(p.amount for p in paid)))
        c3.metric("Pending", pending_count, utils.format_currency(pending_total), delta_color="off")
        c4.metric("Avg. payment", utils.format_currency(reports.average_payment(pays)))
        st.bar_chart(reports.monthly_revenue(pays, today).set_index("month"))
        show_table(
            [{**r, "method": PAYMENT_METHOD_LABELS.get(r["method"], r["method"])}
             for r in reports.payment_method_breakdown(pays)],
            empty="No paid payments yet.",
        )


def settings_page():
    st.header("⚙️ Settings")

    admin = auth.get_admin_by_email(st.session_state.email)
    st.subheader("Profile")
    with st.form("profile"):
        full_name = st.text_input("Full name", value=admin["full_name"] if admin else "")
        phone = st.text_input("Phone", value=(admin["phone"] or "") if admin else "")
        if st.form_submit_button("Save profile", type="primary"):
            try:
                auth.update_profile(st.session_state.email, full_name, phone)
            except GymError as exc:
                st.error(str(exc))
            else:
                st.success("Profile updated.")

    st.divider()

    st.subheader("Change password")
    password_form("settings")

    st.divider()

    st.subheader("Sample data")
    st.caption("Insert demo plans, members, payments, check-ins and expenses (adds new rows each run).")
    if st.button("Insert sample data"):
        try:
            sample_data.insert_sample_data()
        except GymError as exc:
            st.error(str(exc))
        else:
            st.success("Sample data inserted.")
            st.rerun()


PAGES = {
    "Dashboard": dashboard_page,
    "Members": members_page,
    "Check-ins": check_ins_page,
    "Payments": payments_page,
    "Plans": plans_page,
    "Financial": financial_page,
    "Reports": reports_page,
    "Settings": settings_page,
}


def main_app():
    st.sidebar.title("🏋️ Gym Admin")
    st.sidebar.caption(f"Logged in as: {st.session_state.email}")

    names = list(PAGES)
    if "page" not in st.session_state:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", names, index=names.index(st.session_state.page))

    if st.sidebar.button("Logout"):
        logout()
        st.rerun()

    PAGES[st.session_state.page]()


# --------- App entry ---------

def run():
    init_once()
    require_login()

    if not st.session_state.logged_in:
        login_screen()
        return

    # Force password change on first login after DB creation
    if db.is_force_password_change():
        force_change_password_screen()
        return

    main_app()


if __name__ == "__main__":
    run()
