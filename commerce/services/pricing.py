from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from commerce.utils import money

FREE_SHIPPING_THRESHOLD = 500.0


@dataclass
class CartLine:
    product_id: int
    name: str
    price: float
    quantity: int
    shipping_charge: float = 0.0
    variation_id: Optional[int] = None
    variation_name: Optional[str] = None
    image: Optional[str] = None
    stock: Optional[int] = None
    cart_id: Optional[int] = None

    @property
    def line_total(self) -> float:
        return float(self.price) * int(self.quantity)

    @property
    def in_stock(self) -> bool:
        return self.stock is None or int(self.stock) > 0

    def snapshot(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "variation_id": self.variation_id,
            "variation_name": self.variation_name,
            "price": float(self.price),
            "quantity": int(self.quantity),
            "shipping_charge": float(self.shipping_charge or 0.0),
            "image": self.image,
        }


@dataclass
class CartTotals:
    subtotal: float
    shipping: float
    tax: float
    discount: float
    grand_total: float


def line_ships_free(line: CartLine, threshold: float = FREE_SHIPPING_THRESHOLD) -> bool:
    # Threshold is inclusive and applies to each line on its own
    return line.line_total >= float(threshold)


def compute_cart_totals(
    lines: Iterable[CartLine],
    threshold: float = FREE_SHIPPING_THRESHOLD,
    discount: float = 0.0,
) -> CartTotals:
    """
    Storefront totals: subtotal + shipping - discount.

    Out-of-stock lines are shown in the cart but never charged.
    """
    subtotal = 0.0
    shipping = 0.0
    for line in lines:
        if not line.in_stock:
            continue
        subtotal += line.line_total
        if not line_ships_free(line, threshold):
            shipping += float(line.shipping_charge or 0.0)
    discount = max(0.0, float(discount or 0.0))
    return CartTotals(
        subtotal=money(subtotal),
        shipping=money(shipping),
        tax=0.0,
        discount=money(discount),
        grand_total=money(subtotal + shipping - discount),
    )


def compute_pos_totals(lines: Iterable[CartLine], tax: float = 0.0, discount: float = 0.0) -> CartTotals:
    """Counter sales carry no shipping; tax and discount are typed in by the operator."""
    tax = float(tax or 0.0)
    discount = float(discount or 0.0)
    if tax < 0 or discount < 0:
        raise ValueError("Tax and discount cannot be negative.")
    subtotal = sum(line.line_total for line in lines)
    return CartTotals(
        subtotal=money(subtotal),
        shipping=0.0,
        tax=money(tax),
        discount=money(discount),
        grand_total=money(subtotal + tax - discount),
    )


def clamp_stock(current: int, qty: int) -> int:
    return max(0, int(current or 0) - int(qty))


def remaining_for_free_shipping(line_total: float, threshold: float = FREE_SHIPPING_THRESHOLD) -> float:
    return money(max(0.0, float(threshold) - float(line_total)))
