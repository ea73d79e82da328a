"""
db.py
SQLite helpers + initialization (creates DB/tables, inserts default admin, etc.)
and the small repository layer the services go through (find/insert/update/list).
"""

from __future__ import annotations

import logging
import os
import sqlite3
import uuid
from contextlib import contextmanager
from pathlib import Path
from datetime import datetime

from errors import BackendError
from models import (
    ENTRY_METHODS, EXPENSE_CATEGORIES, GENDERS, MEMBER_STATUSES, PAYMENT_METHODS, PAYMENT_STATUSES,
)

logger = logging.getLogger(__name__)

DB_FILE = Path(os.environ.get("GYM_DB_PATH") or Path(__file__).with_name("gym.db"))

# Columns writable through insert()/update(). Anything else is rejected.
TABLE_COLUMNS: dict[str, tuple[str, ...]] = {
    "membership_plans": ("name", "price", "duration_days", "description", "is_active"),
    "members": (
        "member_id", "full_name", "phone", "email", "date_of_birth", "gender", "address",
        "emergency_contact_name", "emergency_contact_phone", "membership_plan_id",
        "membership_start_date", "membership_expiry_date", "status", "notes",
    ),
    "payments": (
        "member_id", "amount", "payment_method", "payment_status", "payment_date",
        "invoice_number", "plan_id", "notes",
    ),
    "expenses": ("category", "amount", "description", "expense_date"),
    "check_ins": ("member_id", "check_in_time", "check_out_time", "entry_method", "notes"),
}

# Tables that carry an updated_at column
_TOUCH_ON_UPDATE = {"membership_plans", "members", "payments", "expenses"}


def now_iso() -> str:
    """Local wall-clock time; shared by row stamps and check-in times."""
    return datetime.now().isoformat(timespec="seconds")


@contextmanager
def get_conn():
    conn = sqlite3.connect(DB_FILE, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def execute(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.rowcount


def fetch_one(sql: str, params: tuple = ()):
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


# ---------- Repository ----------

def _check_table(table: str) -> tuple[str, ...]:
    try:
        return TABLE_COLUMNS[table]
    except KeyError:
        raise ValueError(f"Unknown table: {table}") from None


def _check_columns(table: str, names) -> None:
    allowed = set(_check_table(table)) | {"id", "created_at", "updated_at"}
    bad = [n for n in names if n not in allowed]
    if bad:
        raise ValueError(f"Unknown column(s) for {table}: {', '.join(bad)}")


def find_by_id(table: str, row_id: str):
    _check_table(table)
    return fetch_one(f"SELECT * FROM {table} WHERE id = ?", (row_id,))


def insert(table: str, values: dict) -> str:
    """Insert a row and return its generated uuid."""
    _check_columns(table, values)
    row_id = str(uuid.uuid4())
    stamp = now_iso()
    data = {"id": row_id, **values, "created_at": stamp}
    if table in _TOUCH_ON_UPDATE:
        data["updated_at"] = stamp
    cols = ", ".join(data)
    marks = ", ".join("?" for _ in data)
    try:
        execute(f"INSERT INTO {table}({cols}) VALUES({marks})", tuple(data.values()))
    except sqlite3.Error as exc:
        logger.error("Insert into %s failed: %s", table, exc, exc_info=True)
        raise BackendError(str(exc)) from exc
    return row_id


def update(table: str, row_id: str, values: dict) -> int:
    """Update a row by id. Returns the number of rows changed (0 or 1)."""
    _check_columns(table, values)
    data = dict(values)
    if table in _TOUCH_ON_UPDATE:
        data["updated_at"] = now_iso()
    assignments = ", ".join(f"{c} = ?" for c in data)
    try:
        return execute(
            f"UPDATE {table} SET {assignments} WHERE id = ?",
            (*data.values(), row_id),
        )
    except sqlite3.Error as exc:
        logger.error("Update of %s %s failed: %s", table, row_id, exc, exc_info=True)
        raise BackendError(str(exc)) from exc


def delete(table: str, row_id: str) -> int:
    _check_table(table)
    try:
        return execute(f"DELETE FROM {table} WHERE id = ?", (row_id,))
    except sqlite3.Error as exc:
        logger.error("Delete from %s %s failed: %s", table, row_id, exc, exc_info=True)
        raise BackendError(str(exc)) from exc


def _where(table: str, filters: dict | None) -> tuple[str, list]:
    filters = {k: v for k, v in (filters or {}).items() if v is not None}
    _check_columns(table, filters)
    if not filters:
        return "", []
    return " WHERE " + " AND ".join(f"{c} = ?" for c in filters), list(filters.values())


def list_filtered(
    table: str,
    filters: dict | None = None,
    order_by: str = "created_at DESC",
    limit: int | None = None,
    offset: int = 0,
) -> list[sqlite3.Row]:
    """
    Equality filters only (None values are ignored). order_by is "<column> [ASC|DESC]".
    """
    where, params = _where(table, filters)
    col, _, direction = order_by.partition(" ")
    _check_columns(table, [col])
    direction = direction.strip().upper() or "ASC"
    if direction not in ("ASC", "DESC"):
        raise ValueError(f"Bad sort direction: {direction}")
    sql = f"SELECT * FROM {table}{where} ORDER BY {col} {direction}"
    if limit is not None:
        sql += " LIMIT ? OFFSET ?"
        params += [limit, offset]
    return fetch_all(sql, tuple(params))


def count_filtered(table: str, filters: dict | None = None) -> int:
    where, params = _where(table, filters)
    return int(fetch_one(f"SELECT COUNT(*) AS c FROM {table}{where}", tuple(params))["c"])


# ---------- Schema ----------

def _enum(values) -> str:
    return ", ".join(f"'{v}'" for v in values)


def _create_tables() -> None:
    execute(
        """
        CREATE TABLE IF NOT EXISTS admin_users (
            id TEXT PRIMARY KEY,
            email TEXT NOT NULL UNIQUE,
            full_name TEXT NOT NULL,
            phone TEXT,
            password_hash TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS membership_plans (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            price REAL NOT NULL,
            duration_days INTEGER NOT NULL,
            description TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )

    # membership_plan_id has no foreign key: deleting a plan leaves members untouched.
    execute(
        f"""
        CREATE TABLE IF NOT EXISTS members (
            id TEXT PRIMARY KEY,
            member_id TEXT NOT NULL UNIQUE,
            full_name TEXT NOT NULL,
            phone TEXT NOT NULL,
            email TEXT,
            date_of_birth TEXT,
            gender TEXT CHECK(gender IS NULL OR gender IN ({_enum(GENDERS)})),
            address TEXT,
            emergency_contact_name TEXT,
            emergency_contact_phone TEXT,
            membership_plan_id TEXT,
            membership_start_date TEXT,
            membership_expiry_date TEXT,
            status TEXT NOT NULL CHECK(status IN ({_enum(MEMBER_STATUSES)})),
            notes TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )

    execute(
        f"""
        CREATE TABLE IF NOT EXISTS payments (
            id TEXT PRIMARY KEY,
            member_id TEXT NOT NULL,
            amount REAL NOT NULL,
            payment_method TEXT NOT NULL CHECK(payment_method IN ({_enum(PAYMENT_METHODS)})),
            payment_status TEXT NOT NULL CHECK(payment_status IN ({_enum(PAYMENT_STATUSES)})),
            payment_date TEXT NOT NULL,
            invoice_number TEXT,
            plan_id TEXT,
            notes TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY(member_id) REFERENCES members(id) ON DELETE CASCADE
        )
        """
    )

    execute(
        f"""
        CREATE TABLE IF NOT EXISTS expenses (
            id TEXT PRIMARY KEY,
            category TEXT NOT NULL CHECK(category IN ({_enum(EXPENSE_CATEGORIES)})),
            amount REAL NOT NULL,
            description TEXT NOT NULL,
            expense_date TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )

    execute(
        f"""
        CREATE TABLE IF NOT EXISTS check_ins (
            id TEXT PRIMARY KEY,
            member_id TEXT NOT NULL,
            check_in_time TEXT NOT NULL,
            check_out_time TEXT,
            entry_method TEXT NOT NULL CHECK(entry_method IN ({_enum(ENTRY_METHODS)})),
            notes TEXT,
            created_at TEXT NOT NULL,
            FOREIGN KEY(member_id) REFERENCES members(id) ON DELETE CASCADE
        )
        """
    )

    # Small settings table (used to force password change on first login)
    execute(
        """
        CREATE TABLE IF NOT EXISTS app_settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """
    )


def _get_setting(key: str, default: str | None = None) -> str | None:
    row = fetch_one("SELECT value FROM app_settings WHERE key = ?", (key,))
    if row:
        return str(row["value"])
    return default


def _set_setting(key: str, value: str) -> None:
    execute(
        """
        INSERT INTO app_settings(key, value) VALUES(?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """,
        (key, value),
    )


def init_db(default_admin_email: str, default_admin_hash: str) -> None:
    """
    Initialize the database.
    - Create tables
    - Insert default admin if no admin exists
    - Force password change on first login
    """
    _create_tables()

    admin = fetch_one("SELECT id FROM admin_users LIMIT 1")
    if not admin:
        execute(
            "INSERT INTO admin_users(id, email, full_name, password_hash, created_at) VALUES(?,?,?,?,?)",
            (str(uuid.uuid4()), default_admin_email.strip().lower(), "Administrator", default_admin_hash, now_iso()),
        )
        _set_setting("force_password_change", "1")
        logger.info("Created default admin %s", default_admin_email)
    else:
        # ensure setting exists
        if _get_setting("force_password_change") is None:
            _set_setting("force_password_change", "0")


def is_force_password_change() -> bool:
    return _get_setting("force_password_change") == "1"


def clear_force_password_change() -> None:
    _set_setting("force_password_change", "0")
