from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

from commerce.auth import SessionContext
from commerce.db import q, q1, transaction, xn
from commerce.exceptions import NotFoundError, PaymentError, StockError, ValidationError
from commerce.logging_setup import get_logger
from commerce.repositories import CartRepository, OrderRepository, Page
from commerce.services.pricing import (
    FREE_SHIPPING_THRESHOLD,
    CartLine,
    CartTotals,
    compute_cart_totals,
    line_ships_free,
)
from commerce.utils import clean_str, iso_now
from commerce.validation import validate_shipping

logger = get_logger("orders")

ORDER_STATUSES = ("pending", "confirmed", "processing", "out_for_delivery", "delivered", "cancelled")
STATUS_LABELS = {
    "pending": "Pending",
    "confirmed": "Confirmed",
    "processing": "Processing",
    "out_for_delivery": "Out for delivery",
    "delivered": "Delivered",
    "cancelled": "Cancelled",
}
PAYMENT_METHODS = ("razorpay", "cod")
ORDER_SORTS = {"newest": True, "oldest": False}

# Older rows carry free-text statuses
_LEGACY_STATUSES = {
    "out of delivery": "out_for_delivery",
    "out for delivery": "out_for_delivery",
    "canceled": "cancelled",
}


@dataclass
class ShippingDetails:
    full_name: str
    phone_number: str
    house_number: str
    street: str
    city: str
    state: str
    pincode: str
    alt_phone_number: Optional[str] = None


def normalize_status(status: Optional[str]) -> str:
    s = (status or "").strip().lower()
    s = _LEGACY_STATUSES.get(s, s.replace(" ", "_"))
    if s not in ORDER_STATUSES:
        raise ValidationError(f"Unknown order status: {status}")
    return s


def _new_reference() -> str:
    return "ORD-" + uuid.uuid4().hex[:10].upper()


# -------------------------
# Stock
# -------------------------

def decrement_stock(conn, product_id: int, variation_id: Optional[int], qty: int, strict: bool = True) -> None:
    """
    Take `qty` units off the variation (or the base product when there is none).

    strict: refuse when stock is short (StockError), nothing is written.
    not strict: clamp at zero.
    """
    qty = int(qty)
    if qty <= 0:
        return
    if variation_id:
        table, key = "product_variations", int(variation_id)
    else:
        table, key = "products", int(product_id)

    if strict:
        n = xn(conn, f"UPDATE {table} SET stock = stock - ? WHERE id=? AND stock >= ?", (qty, key, qty))
        if n == 0:
            exists = q1(conn, f"SELECT stock FROM {table} WHERE id=?", (key,))
            if not exists:
                raise NotFoundError("Product no longer exists")
            raise StockError(
                f"Only {int(exists['stock'])} left in stock",
                details={"product_id": int(product_id), "variation_id": variation_id, "requested": qty},
            )
    else:
        xn(conn, f"UPDATE {table} SET stock = MAX(stock - ?, 0) WHERE id=?", (qty, key))
    logger.info("Stock decremented: %s #%s by %s", table, key, qty)


def restore_stock(conn, product_id: Optional[int], variation_id: Optional[int], qty: int) -> None:
    if variation_id:
        xn(conn, "UPDATE product_variations SET stock = stock + ? WHERE id=?", (int(qty), int(variation_id)))
    elif product_id:
        xn(conn, "UPDATE products SET stock = stock + ? WHERE id=?", (int(qty), int(product_id)))


# -------------------------
# Placement
# -------------------------

def chargeable_lines(lines: Iterable[CartLine]) -> list[CartLine]:
    return [line for line in lines if line.in_stock]


def place_online_order(
    conn,
    ctx: SessionContext,
    lines: Iterable[CartLine],
    shipping: ShippingDetails,
    payment_method: str,
    idempotency_key: str,
    *,
    threshold: float = FREE_SHIPPING_THRESHOLD,
    strict_stock: bool = True,
) -> int:
    """
    Create an order with its items, snapshot and stock decrement as one unit.

    A repeated call with the same idempotency key returns the existing order
    without touching stock again.
    """
    repo = OrderRepository(conn)
    if idempotency_key:
        existing = repo.by_idempotency_key(idempotency_key)
        if existing:
            logger.info("Order %s already placed for key %s", existing["reference_code"], idempotency_key)
            return int(existing["id"])

    errors = validate_shipping(asdict(shipping))
    if errors:
        raise ValidationError(field_errors=errors)
    method = (payment_method or "").strip().lower()
    if method not in PAYMENT_METHODS:
        raise ValidationError(field_errors={"payment_method": "Select a payment method."})

    items = chargeable_lines(lines)
    if not items:
        raise ValidationError("Your cart is empty.")
    totals: CartTotals = compute_cart_totals(items, threshold)

    with transaction(conn):
        order_id = repo.create(
            {
                "reference_code": _new_reference(),
                "idempotency_key": idempotency_key or None,
                "user_id": ctx.user_id if ctx.is_customer else None,
                "full_name": shipping.full_name.strip(),
                "phone_number": shipping.phone_number.strip(),
                "alt_phone_number": clean_str(shipping.alt_phone_number),
                "house_number": shipping.house_number.strip(),
                "street": shipping.street.strip(),
                "city": shipping.city.strip(),
                "state": shipping.state.strip(),
                "pincode": shipping.pincode.strip(),
                "payment_method": method,
                "payment_status": "pending",
                "total_price": totals.subtotal,
                "shipping_cost": totals.shipping,
                "tax_amount": totals.tax,
                "discount_amount": totals.discount,
                "grand_total": totals.grand_total,
                "cart_items": json.dumps([line.snapshot() for line in items]),
                "status": "pending",
                "order_date": iso_now(),
            }
        )
        for line in items:
            repo.add_item(
                order_id,
                {
                    "product_id": line.product_id,
                    "product_name": line.name,
                    "variation_id": line.variation_id,
                    "variation_name": line.variation_name,
                    "quantity": line.quantity,
                    "price": line.price,
                    "shipping_charge": 0.0 if line_ships_free(line, threshold) else line.shipping_charge,
                    "image": line.image,
                },
            )
            decrement_stock(conn, line.product_id, line.variation_id, line.quantity, strict=strict_stock)
        if ctx.is_customer and ctx.user_id is not None:
            CartRepository(conn).clear_for(ctx.user_id)

    logger.info(
        "Order #%s placed (%s, %d item(s), grand total %.2f)",
        order_id, method, len(items), totals.grand_total,
    )
    return order_id


def attach_gateway_order(conn, order_id: int, gateway_order_id: str) -> None:
    OrderRepository(conn).update(int(order_id), {"gateway_order_id": str(gateway_order_id)})


def confirm_payment(conn, order_id: int, payment_id: str) -> bool:
    """
    Mark an order paid. Returns False when it was already paid with the same
    payment id.
    """
    repo = OrderRepository(conn)
    order = repo.require(order_id)
    payment_id = (payment_id or "").strip()
    if not payment_id:
        raise PaymentError("Missing payment id")
    if order["status"] == "cancelled":
        raise PaymentError("Order was cancelled", details={"order_id": int(order_id)})
    if order["payment_status"] == "paid":
        if order["payment_id"] == payment_id:
            return False
        raise PaymentError("Order is already paid with a different payment", details={"order_id": int(order_id)})

    with transaction(conn):
        repo.update(int(order_id), {"payment_status": "paid", "payment_id": payment_id})
        if order["status"] == "pending":
            repo.update(int(order_id), {"status": "confirmed"})
    logger.info("Payment %s confirmed for order #%s", payment_id, order_id)
    return True


def set_payment_status(conn, order_id: int, paid: bool) -> None:
    OrderRepository(conn).update(int(order_id), {"payment_status": "paid" if paid else "pending"})
    logger.info("Order #%s payment status set to %s", order_id, "paid" if paid else "pending")


def cancel_order(conn, order_id: int) -> bool:
    """
    Cancel and put the ordered quantities back on the shelf.

    Returns False when the order was already cancelled; stock is restored
    only once.
    """
    repo = OrderRepository(conn)
    with transaction(conn):
        order = repo.require(order_id)
        if order["status"] == "cancelled":
            return False
        if order["status"] == "delivered":
            raise ValidationError("Delivered orders cannot be cancelled.")
        n = xn(conn, "UPDATE orders SET status='cancelled' WHERE id=? AND status<>'cancelled'", (int(order_id),))
        if n == 0:
            return False
        for item in repo.items(order_id):
            restore_stock(conn, item["product_id"], item["variation_id"], int(item["quantity"]))
    logger.info("Order #%s cancelled, stock restored", order_id)
    return True


def update_order_status(conn, order_id: int, status: str) -> None:
    new_status = normalize_status(status)
    repo = OrderRepository(conn)
    order = repo.require(order_id)
    if order["status"] == new_status:
        return
    if order["status"] == "cancelled":
        raise ValidationError("Cancelled orders cannot be reopened.")
    if new_status == "cancelled":
        cancel_order(conn, order_id)
        return
    repo.update(int(order_id), {"status": new_status})
    logger.info("Order #%s status %s -> %s", order_id, order["status"], new_status)


# -------------------------
# Readers
# -------------------------

def list_orders(
    conn,
    *,
    search: Optional[str] = None,
    status: Optional[str] = None,
    sort: str = "newest",
    page: int = 1,
    page_size: int = 10,
) -> Page:
    filters = {}
    if status and status != "all":
        filters["status"] = normalize_status(status)
    return OrderRepository(conn).page(
        filters,
        page=page,
        page_size=page_size,
        search=search,
        search_columns=("full_name",),
        order_by="order_date",
        descending=ORDER_SORTS.get(sort, True),
    )


def order_status_counts(conn) -> dict[str, int]:
    counts = {s: 0 for s in ORDER_STATUSES}
    for r in q(conn, "SELECT status, COUNT(*) AS n FROM orders GROUP BY status"):
        try:
            counts[normalize_status(r["status"])] += int(r["n"])
        except ValidationError:
            logger.warning("Order rows with unknown status %r", r["status"])
    counts["all"] = sum(counts[s] for s in ORDER_STATUSES)
    return counts


def get_order(conn, order_id: int) -> dict:
    row = q1(
        conn,
        """
        SELECT o.*, c.email AS customer_email
        FROM orders o
        LEFT JOIN customers c ON c.id = o.user_id
        WHERE o.id=?
        """,
        (int(order_id),),
    )
    if not row:
        raise NotFoundError(f"Order #{order_id} not found")
    order = dict(row)
    order["items"] = OrderRepository(conn).items(order_id)
    try:
        order["cart_snapshot"] = json.loads(order.get("cart_items") or "[]")
    except ValueError:
        order["cart_snapshot"] = []
    return order


def list_customer_orders(conn, ctx: SessionContext) -> list[dict]:
    if not ctx.is_customer or ctx.user_id is None:
        return []
    repo = OrderRepository(conn)
    orders = repo.list({"user_id": int(ctx.user_id)}, order_by="order_date", descending=True)
    for o in orders:
        o["items"] = repo.items(o["id"])
    return orders
