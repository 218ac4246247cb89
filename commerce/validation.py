from __future__ import annotations

import re
from typing import Mapping, Optional

from commerce.exceptions import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
INDIAN_PHONE_RE = re.compile(r"^[6-9]\d{9}$")
PHONE10_RE = re.compile(r"^\d{10}$")
PINCODE_RE = re.compile(r"^\d{6}$")
NAME_RE = re.compile(r"^[A-Za-z\s]+$")
INSTAGRAM_URL_RE = re.compile(
    r"^https?://(www\.)?instagram\.com/(p|reel|tv|stories)/[A-Za-z0-9_\-]+/?(\?.*)?$"
)
_SPECIAL = r"!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?"
STAFF_PASSWORD_RE = re.compile(rf"^(?=.*[A-Z])(?=.*\d)(?=.*[{_SPECIAL}]).{{7,}}$")
HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")

SHIPPING_FIELDS = (
    "full_name",
    "phone_number",
    "alt_phone_number",
    "house_number",
    "street",
    "city",
    "state",
    "pincode",
)


def is_email(value: Optional[str]) -> bool:
    return bool(value) and bool(EMAIL_RE.match(value))


def password_rules(password: str) -> list[tuple[str, bool]]:
    """Checklist shown under the staff password field."""
    return [
        ("At least 7 characters", len(password) >= 7),
        ("At least one uppercase letter", bool(re.search(r"[A-Z]", password))),
        ("At least one number", bool(re.search(r"\d", password))),
        ("At least one special character", bool(re.search(rf"[{_SPECIAL}]", password))),
    ]


def validate_shipping(fields: Mapping[str, Optional[str]]) -> dict[str, str]:
    errors: dict[str, str] = {}

    def val(key: str) -> str:
        return str(fields.get(key) or "").strip()

    if not val("full_name"):
        errors["full_name"] = "Full name is required"
    if not val("phone_number"):
        errors["phone_number"] = "Phone number is required"
    elif not PHONE10_RE.match(val("phone_number")):
        errors["phone_number"] = "Phone number must be 10 digits"
    if val("alt_phone_number") and not PHONE10_RE.match(val("alt_phone_number")):
        errors["alt_phone_number"] = "Alternative phone number must be 10 digits"
    if not val("house_number"):
        errors["house_number"] = "House number is required"
    if not val("street"):
        errors["street"] = "Street is required"
    if not val("city"):
        errors["city"] = "City is required"
    if not val("state"):
        errors["state"] = "State is required"
    if not val("pincode"):
        errors["pincode"] = "Pincode is required"
    elif not PINCODE_RE.match(val("pincode")):
        errors["pincode"] = "Pincode must be 6 digits"
    return errors


def validate_new_customer(name: str, email: str, phone: str) -> dict[str, str]:
    name, email, phone = (name or "").strip(), (email or "").strip(), (phone or "").strip()
    if not name or not email or not phone:
        return {"customer": "Fill all customer fields."}
    errors: dict[str, str] = {}
    if not NAME_RE.match(name):
        errors["name"] = "Name should contain only letters."
    if not EMAIL_RE.match(email):
        errors["email"] = "Enter a valid email."
    if not INDIAN_PHONE_RE.match(phone):
        errors["phone"] = "Enter a valid 10-digit Indian phone number."
    return errors


def raise_if_errors(errors: Mapping[str, str]) -> None:
    if errors:
        raise ValidationError(field_errors=dict(errors))
