from __future__ import annotations

from typing import MutableMapping, Optional, Protocol

from commerce.auth import SessionContext
from commerce.db import q, q1, transaction, x, xn
from commerce.exceptions import AuthError, NotFoundError, StockError, ValidationError
from commerce.logging_setup import get_logger
from commerce.repositories import CartRepository
from commerce.services.pricing import CartLine
from commerce.utils import iso_now

logger = get_logger("cart")

SESSION_CART_KEY = "commerce_cart"


def available_stock(conn, product_id: int, variation_id: Optional[int]) -> int:
    if variation_id:
        row = q1(
            conn,
            "SELECT stock FROM product_variations WHERE id=? AND product_id=?",
            (int(variation_id), int(product_id)),
        )
    else:
        row = q1(conn, "SELECT stock FROM products WHERE id=?", (int(product_id),))
    if not row:
        raise NotFoundError("Product not found")
    return int(row["stock"] or 0)


def _check_addable(conn, product_id: int, variation_id: Optional[int], qty: int) -> None:
    if int(qty) < 1:
        raise ValidationError(field_errors={"quantity": "Quantity must be at least 1."})
    product = q1(conn, "SELECT active, has_variation FROM products WHERE id=?", (int(product_id),))
    if not product or not int(product["active"]):
        raise NotFoundError("Product is not available")
    if int(product["has_variation"]) and not variation_id:
        raise ValidationError(field_errors={"variation_id": "Please select a variation."})
    if available_stock(conn, product_id, variation_id) <= 0:
        raise StockError("This item is out of stock.")


def hydrate_lines(conn, raw_lines: list[dict]) -> list[CartLine]:
    """
    Join stored (product, variation, quantity) rows with the live catalog.

    Inactive or deleted products are dropped; out-of-stock lines are kept
    with stock=0 so the cart can flag them.
    """
    out: list[CartLine] = []
    for raw in raw_lines:
        product = q1(
            conn,
            """
            SELECT p.id, p.name, p.price, p.stock, p.shipping_charge, p.active, p.has_variation,
                   (SELECT image_url FROM product_images i WHERE i.product_id=p.id ORDER BY i.id LIMIT 1) AS image
            FROM products p WHERE p.id=?
            """,
            (int(raw["product_id"]),),
        )
        if not product or not int(product["active"]):
            continue
        variation_id = raw.get("variation_id")
        if variation_id:
            var = q1(
                conn,
                "SELECT id, unit_type, price, stock FROM product_variations WHERE id=? AND product_id=?",
                (int(variation_id), int(product["id"])),
            )
            if not var:
                continue
            price, stock, variation_name = float(var["price"]), int(var["stock"]), str(var["unit_type"])
        else:
            price = float(product["price"] or 0.0)
            stock = int(product["stock"] or 0)
            variation_name = None
        out.append(
            CartLine(
                product_id=int(product["id"]),
                name=str(product["name"]),
                price=price,
                quantity=int(raw["quantity"]),
                shipping_charge=float(product["shipping_charge"] or 0.0),
                variation_id=int(variation_id) if variation_id else None,
                variation_name=variation_name,
                image=product["image"],
                stock=stock,
                cart_id=raw.get("id"),
            )
        )
    return out


class CartStore(Protocol):
    def add(self, product_id: int, variation_id: Optional[int], qty: int = 1) -> None: ...

    def set_quantity(self, product_id: int, variation_id: Optional[int], qty: int) -> None: ...

    def remove(self, product_id: int, variation_id: Optional[int]) -> None: ...

    def clear(self) -> None: ...

    def raw_lines(self) -> list[dict]: ...

    def lines(self) -> list[CartLine]: ...


def _same_line(item: dict, product_id: int, variation_id: Optional[int]) -> bool:
    return int(item["product_id"]) == int(product_id) and (item.get("variation_id") or None) == (variation_id or None)


class SessionCartStore:
    """Anonymous cart kept in the browser session as a list of plain dicts."""

    def __init__(self, conn, state: MutableMapping):
        self.conn = conn
        self.state = state
        if not isinstance(state.get(SESSION_CART_KEY), list):
            state[SESSION_CART_KEY] = []

    @property
    def _items(self) -> list[dict]:
        return self.state[SESSION_CART_KEY]

    def add(self, product_id: int, variation_id: Optional[int], qty: int = 1) -> None:
        _check_addable(self.conn, product_id, variation_id, qty)
        for item in self._items:
            if _same_line(item, product_id, variation_id):
                item["quantity"] = int(item["quantity"]) + int(qty)
                return
        self._items.append(
            {"product_id": int(product_id), "variation_id": int(variation_id) if variation_id else None, "quantity": int(qty)}
        )

    def set_quantity(self, product_id: int, variation_id: Optional[int], qty: int) -> None:
        if int(qty) < 1:
            return
        for item in self._items:
            if _same_line(item, product_id, variation_id):
                item["quantity"] = int(qty)

    def remove(self, product_id: int, variation_id: Optional[int]) -> None:
        self.state[SESSION_CART_KEY] = [i for i in self._items if not _same_line(i, product_id, variation_id)]

    def clear(self) -> None:
        self.state[SESSION_CART_KEY] = []

    def raw_lines(self) -> list[dict]:
        return [dict(i) for i in self._items]

    def lines(self) -> list[CartLine]:
        return hydrate_lines(self.conn, self.raw_lines())


class TableCartStore:
    """Cart rows of a signed-in customer."""

    def __init__(self, conn, user_id: int):
        self.conn = conn
        self.user_id = int(user_id)
        self.repo = CartRepository(conn)

    def add(self, product_id: int, variation_id: Optional[int], qty: int = 1) -> None:
        _check_addable(self.conn, product_id, variation_id, qty)
        existing = self.repo.find_line(self.user_id, product_id, variation_id)
        if existing:
            x(
                self.conn,
                "UPDATE cart SET quantity = quantity + ? WHERE id=?",
                (int(qty), int(existing["id"])),
            )
            return
        self.repo.create(
            {
                "user_id": self.user_id,
                "product_id": int(product_id),
                "variation_id": int(variation_id) if variation_id else None,
                "quantity": int(qty),
                "created_at": iso_now(),
            }
        )

    def set_quantity(self, product_id: int, variation_id: Optional[int], qty: int) -> None:
        if int(qty) < 1:
            return
        existing = self.repo.find_line(self.user_id, product_id, variation_id)
        if existing:
            self.repo.update(int(existing["id"]), {"quantity": int(qty)})

    def remove(self, product_id: int, variation_id: Optional[int]) -> None:
        existing = self.repo.find_line(self.user_id, product_id, variation_id)
        if existing:
            self.repo.delete(int(existing["id"]))

    def clear(self) -> None:
        self.repo.clear_for(self.user_id)

    def raw_lines(self) -> list[dict]:
        return self.repo.lines_for(self.user_id)

    def lines(self) -> list[CartLine]:
        return hydrate_lines(self.conn, self.raw_lines())


def cart_store_for(ctx: SessionContext, state: MutableMapping, conn) -> CartStore:
    if ctx.is_customer and ctx.user_id is not None:
        return TableCartStore(conn, ctx.user_id)
    return SessionCartStore(conn, state)


def cart_count(store: CartStore) -> int:
    return sum(int(i["quantity"]) for i in store.raw_lines())


def _still_listed(conn, product_id: int, variation_id: Optional[int]) -> bool:
    product = q1(conn, "SELECT active FROM products WHERE id=?", (int(product_id),))
    if not product or not int(product["active"]):
        return False
    if variation_id:
        return q1(
            conn,
            "SELECT 1 FROM product_variations WHERE id=? AND product_id=?",
            (int(variation_id), int(product_id)),
        ) is not None
    return True


def merge_session_cart_into_user(conn, state: MutableMapping, user_id: int) -> int:
    """Move the anonymous cart into the customer's cart rows. Returns lines merged."""
    items = state.get(SESSION_CART_KEY) or []
    if not items:
        return 0
    repo = CartRepository(conn)
    merged = 0
    with transaction(conn):
        for item in items:
            product_id, variation_id, qty = item["product_id"], item.get("variation_id"), int(item["quantity"])
            if not _still_listed(conn, product_id, variation_id):
                logger.warning("Dropped stale cart line for product #%s on merge", product_id)
                continue
            existing = repo.find_line(user_id, product_id, variation_id)
            if existing:
                x(conn, "UPDATE cart SET quantity = quantity + ? WHERE id=?", (qty, int(existing["id"])))
            else:
                repo.create(
                    {
                        "user_id": int(user_id),
                        "product_id": int(product_id),
                        "variation_id": variation_id,
                        "quantity": qty,
                        "created_at": iso_now(),
                    }
                )
            merged += 1
    state[SESSION_CART_KEY] = []
    logger.info("Merged %d session cart line(s) into customer #%s", merged, user_id)
    return merged


# -------------------------
# Wishlist
# -------------------------

def _require_customer(ctx: SessionContext) -> int:
    if not ctx.is_customer or ctx.user_id is None:
        raise AuthError("Please log in to use your wishlist.", code="login_required")
    return int(ctx.user_id)


def toggle_wishlist(conn, ctx: SessionContext, product_id: int) -> bool:
    """Returns True when the product is now on the wishlist."""
    user_id = _require_customer(ctx)
    n = xn(conn, "DELETE FROM wishlists WHERE user_id=? AND product_id=?", (user_id, int(product_id)))
    if n:
        return False
    x(
        conn,
        "INSERT INTO wishlists (user_id, product_id, created_at) VALUES (?, ?, ?)",
        (user_id, int(product_id), iso_now()),
    )
    return True


def wishlist_product_ids(conn, ctx: SessionContext) -> set[int]:
    if not ctx.is_customer or ctx.user_id is None:
        return set()
    rows = q(conn, "SELECT product_id FROM wishlists WHERE user_id=?", (int(ctx.user_id),))
    return {int(r["product_id"]) for r in rows}


def list_wishlist(conn, ctx: SessionContext) -> list[dict]:
    user_id = _require_customer(ctx)
    rows = q(
        conn,
        """
        SELECT w.product_id, p.name, p.has_variation,
               CASE WHEN p.has_variation=1
                    THEN (SELECT MIN(v.price) FROM product_variations v WHERE v.product_id=p.id)
                    ELSE p.price END AS price,
               (SELECT image_url FROM product_images i WHERE i.product_id=p.id ORDER BY i.id LIMIT 1) AS image,
               w.created_at
        FROM wishlists w
        JOIN products p ON p.id = w.product_id
        WHERE w.user_id=? AND p.active=1
        ORDER BY w.created_at DESC
        """,
        (user_id,),
    )
    return [dict(r) for r in rows]


def move_wishlist_item_to_cart(conn, ctx: SessionContext, product_id: int, variation_id: Optional[int] = None) -> None:
    user_id = _require_customer(ctx)
    if variation_id is None:
        first = q1(
            conn,
            "SELECT id FROM product_variations WHERE product_id=? ORDER BY id LIMIT 1",
            (int(product_id),),
        )
        variation_id = int(first["id"]) if first else None
    with transaction(conn):
        TableCartStore(conn, user_id).add(product_id, variation_id, 1)
        x(conn, "DELETE FROM wishlists WHERE user_id=? AND product_id=?", (user_id, int(product_id)))
    logger.info("Moved product #%s from wishlist to cart for customer #%s", product_id, user_id)
