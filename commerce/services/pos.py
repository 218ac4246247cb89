from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Iterable, Optional

from commerce.db import q, transaction
from commerce.exceptions import DuplicateError, StockError, ValidationError
from commerce.logging_setup import get_logger
from commerce.repositories import CustomerRepository, TableRepository
from commerce.services.orders import decrement_stock
from commerce.services.pricing import CartLine, CartTotals, compute_pos_totals
from commerce.utils import iso_now
from commerce.validation import validate_new_customer

logger = get_logger("pos")

POS_PAYMENT_METHODS = ("cash", "card", "upi")


@dataclass
class PosLine:
    product_id: int
    name: str
    price: float
    quantity: int
    stock: int
    variation_id: Optional[int] = None
    variation_name: Optional[str] = None

    @property
    def line_total(self) -> float:
        return float(self.price) * int(self.quantity)

    @property
    def key(self) -> str:
        return f"{self.product_id}:{self.variation_id or 0}"

    def as_cart_line(self) -> CartLine:
        return CartLine(
            product_id=self.product_id,
            name=self.name,
            price=self.price,
            quantity=self.quantity,
            variation_id=self.variation_id,
            variation_name=self.variation_name,
            stock=self.stock,
        )


PosCart = list[PosLine]


@dataclass
class CustomerChoice:
    """Either an existing customer id or the fields of a walk-in to register."""

    customer_id: Optional[int] = None
    name: str = ""
    email: str = ""
    phone: str = ""

    @property
    def is_new(self) -> bool:
        return self.customer_id is None


def pos_products(conn) -> list[dict]:
    """Active products with their variations, for the counter grid."""
    products = [
        dict(r)
        for r in q(
            conn,
            """
            SELECT p.id, p.name, p.sku, p.category_id, p.has_variation, p.price, p.stock,
                   (SELECT image_url FROM product_images i WHERE i.product_id=p.id ORDER BY i.id LIMIT 1) AS image
            FROM products p
            WHERE p.active=1
            """,
        )
    ]
    variations: dict[int, list[dict]] = {}
    for v in q(conn, "SELECT * FROM product_variations ORDER BY id"):
        variations.setdefault(int(v["product_id"]), []).append(dict(v))
    for p in products:
        p["variations"] = variations.get(int(p["id"]), [])
    return products


def filter_pos_products(products: Iterable[dict], search: Optional[str] = None, category_id: Optional[int] = None) -> list[dict]:
    term = (search or "").strip().lower()
    out = [
        p
        for p in products
        if (not term or term in str(p["name"]).lower())
        and (not category_id or int(p["category_id"]) == int(category_id))
    ]
    return sorted(out, key=lambda p: str(p["name"]).lower())


def find_line(cart: PosCart, key: str) -> Optional[PosLine]:
    for line in cart:
        if line.key == key:
            return line
    return None


def add_to_pos_cart(cart: PosCart, product: dict, variation: Optional[dict] = None) -> PosLine:
    """Add one unit. Raises StockError when the shelf has no more."""
    if int(product.get("has_variation") or 0) and variation is None:
        raise ValidationError(field_errors={"variation_id": "Select a variation."})
    if variation is not None:
        stock, price = int(variation["stock"]), float(variation["price"])
        variation_id, variation_name = int(variation["id"]), str(variation["unit_type"])
    else:
        stock, price = int(product.get("stock") or 0), float(product.get("price") or 0.0)
        variation_id, variation_name = None, None

    key = f"{int(product['id'])}:{variation_id or 0}"
    existing = find_line(cart, key)
    in_cart = existing.quantity if existing else 0
    if in_cart + 1 > stock:
        raise StockError(f"Insufficient stock for {product['name']}")

    if existing:
        existing.quantity += 1
        return existing
    line = PosLine(
        product_id=int(product["id"]),
        name=str(product["name"]),
        price=price,
        quantity=1,
        stock=stock,
        variation_id=variation_id,
        variation_name=variation_name,
    )
    cart.append(line)
    return line


def update_pos_qty(cart: PosCart, key: str, delta: int, available: Optional[int] = None) -> int:
    """Apply a +/- step. Returns the new quantity; 0 means the line was removed."""
    line = find_line(cart, key)
    if line is None:
        return 0
    new_qty = line.quantity + int(delta)
    if new_qty <= 0:
        cart.remove(line)
        return 0
    limit = line.stock if available is None else int(available)
    if new_qty > limit:
        raise StockError(f"Insufficient stock for {line.name}")
    line.quantity = new_qty
    return new_qty


def pos_totals(cart: PosCart, tax: float = 0.0, discount: float = 0.0) -> CartTotals:
    return compute_pos_totals([line.as_cart_line() for line in cart], tax=tax, discount=discount)


def place_pos_order(
    conn,
    cart: PosCart,
    customer: CustomerChoice,
    payment_method: str,
    *,
    tax: float = 0.0,
    discount: float = 0.0,
    strict_stock: bool = True,
) -> int:
    if not cart:
        raise ValidationError("Cart is empty.")
    method = (payment_method or "").strip().lower()
    if method not in POS_PAYMENT_METHODS:
        raise ValidationError(field_errors={"payment_method": "Select a payment method."})

    customers = CustomerRepository(conn)
    if customer.is_new:
        errors = validate_new_customer(customer.name, customer.email, customer.phone)
        if errors:
            raise ValidationError(field_errors=errors)
        if customers.by_email(customer.email):
            raise DuplicateError(field_errors={"email": "A customer with this email already exists."})
    else:
        customers.require(int(customer.customer_id))

    totals = pos_totals(cart, tax=tax, discount=discount)
    if totals.grand_total < 0:
        raise ValidationError(field_errors={"discount": "Discount cannot exceed the bill."})

    with transaction(conn):
        if customer.is_new:
            customer_id = customers.create(
                {
                    "name": customer.name.strip(),
                    "email": customer.email.strip().lower(),
                    "phone": customer.phone.strip(),
                    "is_blocked": 0,
                    "created_at": iso_now(),
                }
            )
            full_name, phone = customer.name.strip(), customer.phone.strip()
        else:
            row = customers.require(int(customer.customer_id))
            customer_id = int(row["id"])
            full_name, phone = row["name"] or row["email"] or "Walk-in", row["phone"]

        order_id = TableRepository(conn, "pos_orders").create(
            {
                "customer_id": customer_id,
                "full_name": full_name,
                "phone_number": phone,
                "payment_method": method,
                "subtotal": totals.subtotal,
                "tax_amount": totals.tax,
                "discount_amount": totals.discount,
                "grand_total": totals.grand_total,
                "order_items": json.dumps([line.as_cart_line().snapshot() for line in cart]),
                "created_at": iso_now(),
            }
        )
        for line in cart:
            decrement_stock(conn, line.product_id, line.variation_id, line.quantity, strict=strict_stock)

    logger.info("POS order #%s placed (%s, grand total %.2f)", order_id, method, totals.grand_total)
    return order_id


def list_pos_orders(conn, limit: int = 50) -> list[dict]:
    rows = TableRepository(conn, "pos_orders").list(order_by="created_at", descending=True, limit=limit)
    for r in rows:
        try:
            r["items"] = json.loads(r.get("order_items") or "[]")
        except ValueError:
            r["items"] = []
    return rows
