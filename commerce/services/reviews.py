from __future__ import annotations

from typing import Optional

from commerce.auth import SessionContext
from commerce.db import q, q1, x
from commerce.exceptions import AuthError, NotFoundError, ValidationError
from commerce.utils import clean_str, iso_now, safe_div


def add_review(conn, ctx: SessionContext, product_id: int, rating: int, comment: Optional[str] = None) -> int:
    if not ctx.is_customer or ctx.user_id is None:
        raise AuthError("Please log in to write a review.", code="login_required")
    try:
        r = int(rating)
    except (TypeError, ValueError):
        r = 0
    if r < 1 or r > 5:
        raise ValidationError(field_errors={"rating": "Rating must be between 1 and 5."})
    if not q1(conn, "SELECT 1 FROM products WHERE id=?", (int(product_id),)):
        raise NotFoundError("Product not found")
    return x(
        conn,
        "INSERT INTO product_reviews (product_id, user_id, rating, comment, created_at) VALUES (?, ?, ?, ?, ?)",
        (int(product_id), int(ctx.user_id), r, clean_str(comment), iso_now()),
    )


def list_reviews(conn, product_id: int) -> list[dict]:
    rows = q(
        conn,
        """
        SELECT r.id, r.rating, r.comment, r.created_at,
               COALESCE(c.name, c.email, 'Customer') AS reviewer
        FROM product_reviews r
        LEFT JOIN customers c ON c.id = r.user_id
        WHERE r.product_id=?
        ORDER BY r.created_at DESC, r.id DESC
        """,
        (int(product_id),),
    )
    return [dict(r) for r in rows]


def average_rating(conn, product_id: int) -> tuple[float, int]:
    """(average, count); (0.0, 0) when nobody has reviewed yet."""
    row = q1(
        conn,
        "SELECT COALESCE(SUM(rating), 0) AS total, COUNT(*) AS n FROM product_reviews WHERE product_id=?",
        (int(product_id),),
    )
    n = int(row["n"]) if row else 0
    return (round(safe_div(row["total"], n), 1) if n else 0.0, n)
