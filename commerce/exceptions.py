from __future__ import annotations

from typing import Optional


class CommerceError(Exception):
    """Base exception for the commerce console."""

    default_message = "Operation failed"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None, details: Optional[dict] = None):
        self.message = message or self.default_message
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self) -> dict:
        error_dict = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.code:
            error_dict["code"] = self.code
        if self.details:
            error_dict["details"] = self.details
        return error_dict


class ValidationError(CommerceError):
    """Form input rejected. `field_errors` maps field name to message."""

    default_message = "Please fix the highlighted fields."

    def __init__(self, message: Optional[str] = None, field_errors: Optional[dict[str, str]] = None, code: Optional[str] = None):
        self.field_errors = dict(field_errors or {})
        if message is None and len(self.field_errors) == 1:
            message = next(iter(self.field_errors.values()))
        super().__init__(message, code or "validation", {"fields": self.field_errors} if self.field_errors else None)


class NotFoundError(CommerceError):
    default_message = "Record not found"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, code or "not_found", details)


class DuplicateError(ValidationError):
    """Uniqueness rule violated (name, priority, email...)."""


class StockError(CommerceError):
    default_message = "Insufficient stock"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, code or "stock", details)


class AuthError(CommerceError):
    default_message = "Invalid credentials"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, code or "auth", details)


class PermissionDenied(AuthError):
    default_message = "You do not have access to this section"


class PaymentError(CommerceError):
    default_message = "Payment failed"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, code or "payment", details)
