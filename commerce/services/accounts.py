from __future__ import annotations

from typing import Optional

from commerce.auth import Role, hash_password
from commerce.db import q, q1, x, xn
from commerce.exceptions import DuplicateError, NotFoundError, ValidationError
from commerce.logging_setup import get_logger
from commerce.repositories import CustomerRepository, Page, paginate
from commerce.utils import iso_now
from commerce.validation import EMAIL_RE, STAFF_PASSWORD_RE

logger = get_logger("accounts")

CUSTOMER_STATUSES = ("All", "Active", "Blocked")


# -------------------------
# Subadmins
# -------------------------

def list_staff(conn) -> list[dict]:
    rows = q(conn, "SELECT id, email, role, created_at FROM staff_users ORDER BY role, created_at")
    return [dict(r) for r in rows]


def save_subadmin(conn, *, staff_id: Optional[int] = None, email: str, password: Optional[str] = None) -> int:
    """Create a subadmin, or update one's email and (optionally) password."""
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationError(field_errors={"email": "Invalid email format!"})
    if staff_id is None or password:
        if not STAFF_PASSWORD_RE.match(password or ""):
            raise ValidationError(field_errors={"password": "Password must meet requirements"})

    dup = q1(conn, "SELECT id FROM staff_users WHERE email=? AND id<>?", (email, int(staff_id or 0)))
    if dup:
        raise DuplicateError(field_errors={"email": "This email is already in use."})

    if staff_id is None:
        new_id = x(
            conn,
            "INSERT INTO staff_users (email, password_hash, role, created_at) VALUES (?, ?, ?, ?)",
            (email, hash_password(password), Role.SUBADMIN.value, iso_now()),
        )
        logger.info("Subadmin created: %s", email)
        return new_id

    row = q1(conn, "SELECT role FROM staff_users WHERE id=?", (int(staff_id),))
    if not row:
        raise NotFoundError("Subadmin not found")
    if row["role"] != Role.SUBADMIN.value:
        raise ValidationError("Only subadmin accounts can be edited here.")
    if password:
        x(conn, "UPDATE staff_users SET email=?, password_hash=? WHERE id=?", (email, hash_password(password), int(staff_id)))
    else:
        x(conn, "UPDATE staff_users SET email=? WHERE id=?", (email, int(staff_id)))
    logger.info("Subadmin #%s updated", staff_id)
    return int(staff_id)


def delete_subadmin(conn, staff_id: int) -> None:
    n = xn(conn, "DELETE FROM staff_users WHERE id=? AND role=?", (int(staff_id), Role.SUBADMIN.value))
    if n == 0:
        raise ValidationError("Only subadmin accounts can be deleted.")
    logger.info("Subadmin #%s deleted", staff_id)


# -------------------------
# Customers
# -------------------------

def list_customers(conn, *, search: Optional[str] = None, status: str = "All") -> list[dict]:
    filters = {}
    if status == "Active":
        filters["is_blocked"] = 0
    elif status == "Blocked":
        filters["is_blocked"] = 1
    rows = CustomerRepository(conn).list(
        filters,
        search=search,
        search_columns=("email", "phone"),
        order_by="created_at",
        descending=True,
    )
    for r in rows:
        r.pop("password_hash", None)
        r["status"] = "Blocked" if int(r["is_blocked"]) else "Active"
    return rows


def customers_page(conn, *, search: Optional[str] = None, status: str = "All", page: int = 1, page_size: int = 15) -> Page:
    return paginate(list_customers(conn, search=search, status=status), page, page_size)


def set_customer_blocked(conn, customer_id: int, blocked: bool) -> None:
    CustomerRepository(conn).update(int(customer_id), {"is_blocked": 1 if blocked else 0})
    logger.info("Customer #%s %s", customer_id, "blocked" if blocked else "unblocked")
