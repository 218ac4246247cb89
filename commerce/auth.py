"""
Session context and authentication.

Identity lives in exactly one place: a `SessionContext` stored under
SESSION_KEY in the Streamlit session state. Pages call `get_session()` once
and pass the context down to the services that need it.
"""
from __future__ import annotations

import random
import string
from dataclasses import dataclass
from enum import Enum
from typing import MutableMapping, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from commerce.db import q1, x
from commerce.exceptions import AuthError, DuplicateError, PermissionDenied, ValidationError
from commerce.logging_setup import get_logger
from commerce.utils import iso_now
from commerce.validation import EMAIL_RE, INDIAN_PHONE_RE, STAFF_PASSWORD_RE

logger = get_logger("auth")

SESSION_KEY = "commerce_session"


class Role(str, Enum):
    ADMIN = "admin"
    SUBADMIN = "subadmin"
    CUSTOMER = "customer"


ADMIN_SECTIONS = (
    "Dashboard",
    "POS",
    "Orders",
    "Brands",
    "Categories",
    "Products",
    "Homepage Setup",
    "Credentials",
    "Reports",
    "Customers",
    "Data Management",
)
SUBADMIN_SECTIONS = ("Dashboard", "POS", "Orders", "Categories", "Products")


@dataclass(frozen=True)
class SessionContext:
    user_id: Optional[int]
    email: Optional[str]
    role: Optional[Role]

    @classmethod
    def anonymous(cls) -> "SessionContext":
        return cls(user_id=None, email=None, role=None)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None and self.role is not None

    @property
    def is_staff(self) -> bool:
        return self.role in (Role.ADMIN, Role.SUBADMIN)

    @property
    def is_customer(self) -> bool:
        return self.role == Role.CUSTOMER


def get_session(state: MutableMapping) -> SessionContext:
    ctx = state.get(SESSION_KEY)
    return ctx if isinstance(ctx, SessionContext) else SessionContext.anonymous()


def set_session(state: MutableMapping, ctx: SessionContext) -> None:
    state[SESSION_KEY] = ctx


def clear_session(state: MutableMapping) -> None:
    state.pop(SESSION_KEY, None)


def allowed_sections(role: Optional[Role]) -> tuple[str, ...]:
    if role == Role.ADMIN:
        return ADMIN_SECTIONS
    if role == Role.SUBADMIN:
        return SUBADMIN_SECTIONS
    return ()


def require_role(ctx: SessionContext, *roles: Role) -> None:
    if ctx.role not in roles:
        raise PermissionDenied()


def require_section(ctx: SessionContext, section: str) -> None:
    if section not in allowed_sections(ctx.role):
        raise PermissionDenied(f"{section} is not available for your account")


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: Optional[str], password: str) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def generate_captcha(length: int = 5) -> str:
    chars = string.ascii_letters + string.digits
    return "".join(random.choice(chars) for _ in range(int(length)))


def check_captcha(expected: str, given: str) -> bool:
    return bool(expected) and (given or "") == expected


# -------------------------
# Staff (admin / subadmin)
# -------------------------

def ensure_default_admin(conn, email: str, password: str) -> int:
    row = q1(conn, "SELECT id FROM staff_users WHERE role='admin' ORDER BY id LIMIT 1")
    if row:
        return int(row["id"])
    admin_id = x(
        conn,
        "INSERT INTO staff_users (email, password_hash, role, created_at) VALUES (?, ?, 'admin', ?)",
        (email.strip().lower(), hash_password(password), iso_now()),
    )
    logger.info("Seeded default admin account %s", email)
    return admin_id


def login_staff(conn, email: str, password: str) -> SessionContext:
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationError(field_errors={"email": "Invalid email format!"})
    if not STAFF_PASSWORD_RE.match(password or ""):
        raise ValidationError(field_errors={"password": "Password must meet requirements"})

    row = q1(conn, "SELECT * FROM staff_users WHERE email=?", (email,))
    if not row or not verify_password(row["password_hash"], password):
        logger.warning("Rejected staff login for %s", email)
        raise AuthError("Invalid credentials")

    role = Role.ADMIN if row["role"] == Role.ADMIN.value else Role.SUBADMIN
    logger.info("Staff login %s (%s)", email, role.value)
    return SessionContext(user_id=int(row["id"]), email=email, role=role)


# -------------------------
# Storefront customers
# -------------------------

def signup_customer(
    conn,
    *,
    email: str,
    password: str,
    confirm_password: str,
    phone: str,
    name: Optional[str] = None,
) -> int:
    email = (email or "").strip().lower()
    phone = (phone or "").strip()
    errors: dict[str, str] = {}
    if not email:
        errors["email"] = "Email is required."
    elif not EMAIL_RE.match(email):
        errors["email"] = "Enter a valid email."
    if not password:
        errors["password"] = "Password is required."
    if not INDIAN_PHONE_RE.match(phone):
        errors["phone"] = "Enter a valid 10-digit Indian phone number."
    if password != confirm_password:
        errors["confirm_password"] = "Passwords do not match."
    if errors:
        raise ValidationError(field_errors=errors)

    existing = q1(conn, "SELECT id, password_hash FROM customers WHERE email=?", (email,))
    if existing and existing["password_hash"]:
        raise DuplicateError(field_errors={"email": "Email already registered. Please login."})

    if existing:
        # POS customer signing up online: claim the existing row
        x(
            conn,
            "UPDATE customers SET password_hash=?, phone=?, name=COALESCE(?, name) WHERE id=?",
            (hash_password(password), phone, name, int(existing["id"])),
        )
        customer_id = int(existing["id"])
    else:
        customer_id = x(
            conn,
            """
            INSERT INTO customers (name, email, phone, password_hash, is_blocked, created_at)
            VALUES (?, ?, ?, ?, 0, ?)
            """,
            (name, email, phone, hash_password(password), iso_now()),
        )
    logger.info("Customer signed up: %s", email)
    return customer_id


def login_customer(conn, email: str, password: str) -> SessionContext:
    email = (email or "").strip().lower()
    errors: dict[str, str] = {}
    if not email:
        errors["email"] = "Email is required."
    if not password:
        errors["password"] = "Password is required."
    if errors:
        raise ValidationError(field_errors=errors)

    row = q1(conn, "SELECT * FROM customers WHERE email=?", (email,))
    if not row or not verify_password(row["password_hash"], password):
        raise AuthError("Invalid email or password.")
    if int(row["is_blocked"]):
        logger.warning("Blocked customer tried to log in: %s", email)
        raise AuthError("Your account is blocked. Please contact support.", code="blocked")

    x(conn, "UPDATE customers SET last_sign_in_at=? WHERE id=?", (iso_now(), int(row["id"])))
    return SessionContext(user_id=int(row["id"]), email=email, role=Role.CUSTOMER)
