"""
auth.py
Admin accounts: bcrypt hashing, login by email, password change, profile edits.
"""

from __future__ import annotations

import logging

import bcrypt
import db
import utils
from errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt only uses the first 72 BYTES of the password.
    We truncate to 72 bytes to avoid ValueError and to make behavior explicit.
    """
    pw = password.encode("utf-8")
    if len(pw) > 72:
        pw = pw[:72]
    return pw


def hash_password(password: str) -> str:
    secret = _to_bcrypt_secret(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(secret, salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    secret = _to_bcrypt_secret(password)
    stored = password_hash.encode("utf-8")
    return bcrypt.checkpw(secret, stored)


def get_admin_by_email(email: str):
    return db.fetch_one("SELECT * FROM admin_users WHERE email = ?", ((email or "").strip().lower(),))


def login(email: str, password: str) -> bool:
    admin = get_admin_by_email(email)
    if not admin:
        logger.info("Login failed for unknown account %s", email)
        return False
    ok = verify_password(password, admin["password_hash"])
    if not ok:
        logger.info("Login failed for %s", email)
    return ok


def validate_new_password(new_password: str, confirm: str) -> list[str]:
    errors: list[str] = []
    if len(new_password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if new_password != confirm:
        errors.append("Passwords do not match.")
    return errors


def change_password(email: str, new_password: str, confirm: str | None = None) -> None:
    errors = validate_new_password(new_password, new_password if confirm is None else confirm)
    if errors:
        raise ValidationError(errors)
    if not get_admin_by_email(email):
        raise NotFoundError("Not authenticated")
    db.execute(
        "UPDATE admin_users SET password_hash = ? WHERE email = ?",
        (hash_password(new_password), email.strip().lower()),
    )
    db.clear_force_password_change()
    logger.info("Password changed for %s", email)


def update_profile(email: str, full_name: str, phone: str | None = None) -> None:
    if not get_admin_by_email(email):
        raise NotFoundError("Not authenticated")
    full_name = (full_name or "").strip()
    phone = (phone or "").strip()
    if not full_name:
        raise ValidationError("Full name is required")
    if phone and not utils.is_valid_phone(phone):
        raise ValidationError("Invalid phone number")
    db.execute(
        "UPDATE admin_users SET full_name = ?, phone = ? WHERE email = ?",
        (full_name, phone or None, email.strip().lower()),
    )
    logger.info("Profile updated for %s", email)
