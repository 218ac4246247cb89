"""
Shared data-access layer.

Pages and services go through these repositories (or the service functions
built on them) instead of writing SQL against arbitrary tables. Table and
column names are checked against the live schema before they reach SQL.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence

from commerce.db import q, q1, table_columns, x, xn
from commerce.exceptions import NotFoundError, ValidationError

_KNOWN_TABLES = {
    "staff_users",
    "customers",
    "categories",
    "subcategories",
    "sub_subcategories",
    "brands",
    "attributes",
    "products",
    "product_variations",
    "product_images",
    "cart",
    "wishlists",
    "product_reviews",
    "orders",
    "order_items",
    "pos_orders",
    "banners",
    "hero_sections",
    "notification_banners",
    "instagram_links",
    "offers",
}


@dataclass
class Page:
    rows: list = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total / self.page_size)) if self.page_size else 1


def paginate(rows: Sequence, page: int, page_size: int) -> Page:
    """Slice an in-memory result set. Out-of-range pages clamp to the last page."""
    page_size = max(1, int(page_size))
    total = len(rows)
    last = max(1, math.ceil(total / page_size))
    page = min(max(1, int(page)), last)
    start = (page - 1) * page_size
    return Page(rows=list(rows[start:start + page_size]), total=total, page=page, page_size=page_size)


class TableRepository:
    table: str = ""

    def __init__(self, conn, table: Optional[str] = None):
        self.conn = conn
        if table is not None:
            self.table = table
        if self.table not in _KNOWN_TABLES:
            raise ValueError(f"Unknown table: {self.table}")
        self._columns = set(table_columns(conn, self.table))

    # ---- helpers ----

    def _check_columns(self, names: Iterable[str]) -> None:
        unknown = [n for n in names if n not in self._columns]
        if unknown:
            raise ValueError(f"Unknown column(s) for {self.table}: {', '.join(unknown)}")

    def _where(
        self,
        filters: Optional[Mapping[str, Any]],
        search: Optional[str],
        search_columns: Sequence[str],
    ) -> tuple[str, list]:
        clauses: list[str] = []
        params: list = []
        filters = dict(filters or {})
        self._check_columns(filters.keys())
        self._check_columns(search_columns)
        for col, val in filters.items():
            if val is None:
                clauses.append(f"{col} IS NULL")
            else:
                clauses.append(f"{col} = ?")
                params.append(val)
        term = (search or "").strip()
        if term and search_columns:
            # ilike: case-insensitive substring match
            ors = " OR ".join(f"LOWER(COALESCE({c}, '')) LIKE ?" for c in search_columns)
            clauses.append(f"({ors})")
            params.extend([f"%{term.lower()}%"] * len(search_columns))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    # ---- CRUD ----

    def list(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        search: Optional[str] = None,
        search_columns: Sequence[str] = (),
        order_by: str = "id",
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[dict]:
        self._check_columns([order_by])
        where, params = self._where(filters, search, search_columns)
        sql = f"SELECT * FROM {self.table} {where} ORDER BY {order_by} {'DESC' if descending else 'ASC'}, id ASC"
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([int(limit), int(offset)])
        return [dict(r) for r in q(self.conn, sql, params)]

    def count(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        search: Optional[str] = None,
        search_columns: Sequence[str] = (),
    ) -> int:
        where, params = self._where(filters, search, search_columns)
        row = q1(self.conn, f"SELECT COUNT(*) AS n FROM {self.table} {where}", params)
        return int(row["n"]) if row else 0

    def page(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        page: int = 1,
        page_size: int = 10,
        search: Optional[str] = None,
        search_columns: Sequence[str] = (),
        order_by: str = "id",
        descending: bool = False,
    ) -> Page:
        total = self.count(filters, search=search, search_columns=search_columns)
        last = max(1, math.ceil(total / page_size))
        page = min(max(1, int(page)), last)
        rows = self.list(
            filters,
            search=search,
            search_columns=search_columns,
            order_by=order_by,
            descending=descending,
            limit=page_size,
            offset=(page - 1) * page_size,
        )
        return Page(rows=rows, total=total, page=page, page_size=page_size)

    def get(self, row_id: int) -> Optional[dict]:
        row = q1(self.conn, f"SELECT * FROM {self.table} WHERE id=?", (int(row_id),))
        return dict(row) if row else None

    def require(self, row_id: int) -> dict:
        row = self.get(row_id)
        if row is None:
            raise NotFoundError(f"{self.table} #{row_id} not found")
        return row

    def create(self, fields: Mapping[str, Any]) -> int:
        if not fields:
            raise ValidationError("Nothing to save.")
        cols = list(fields.keys())
        self._check_columns(cols)
        placeholders = ", ".join("?" for _ in cols)
        return x(
            self.conn,
            f"INSERT INTO {self.table} ({', '.join(cols)}) VALUES ({placeholders})",
            [fields[c] for c in cols],
        )

    def update(self, row_id: int, fields: Mapping[str, Any]) -> None:
        if not fields:
            return
        cols = [c for c in fields.keys() if c != "id"]
        self._check_columns(cols)
        assignments = ", ".join(f"{c}=?" for c in cols)
        n = xn(
            self.conn,
            f"UPDATE {self.table} SET {assignments} WHERE id=?",
            [fields[c] for c in cols] + [int(row_id)],
        )
        if n == 0:
            raise NotFoundError(f"{self.table} #{row_id} not found")

    def delete(self, row_id: int) -> None:
        n = xn(self.conn, f"DELETE FROM {self.table} WHERE id=?", (int(row_id),))
        if n == 0:
            raise NotFoundError(f"{self.table} #{row_id} not found")


class CategoryRepository(TableRepository):
    table = "categories"

    def priority_taken(self, priority: int, *, exclude_id: Optional[int] = None, scope: Optional[Mapping[str, Any]] = None) -> bool:
        """True when another row at this level already uses `priority`."""
        where, params = self._where(scope, None, ())
        where = f"{where} AND priority=?" if where else "WHERE priority=?"
        params.append(int(priority))
        if exclude_id is not None:
            where += " AND id<>?"
            params.append(int(exclude_id))
        return q1(self.conn, f"SELECT 1 FROM {self.table} {where} LIMIT 1", params) is not None

    def name_taken(self, name: str, *, exclude_id: Optional[int] = None, scope: Optional[Mapping[str, Any]] = None) -> bool:
        where, params = self._where(scope, None, ())
        where = f"{where} AND LOWER(name)=?" if where else "WHERE LOWER(name)=?"
        params.append(name.strip().lower())
        if exclude_id is not None:
            where += " AND id<>?"
            params.append(int(exclude_id))
        return q1(self.conn, f"SELECT 1 FROM {self.table} {where} LIMIT 1", params) is not None


class SubcategoryRepository(CategoryRepository):
    table = "subcategories"


class SubSubcategoryRepository(CategoryRepository):
    table = "sub_subcategories"


class ProductRepository(TableRepository):
    table = "products"

    def variations(self, product_id: int) -> list[dict]:
        rows = q(self.conn, "SELECT * FROM product_variations WHERE product_id=? ORDER BY id", (int(product_id),))
        return [dict(r) for r in rows]

    def images(self, product_id: int) -> list[str]:
        rows = q(self.conn, "SELECT image_url FROM product_images WHERE product_id=? ORDER BY id", (int(product_id),))
        return [str(r["image_url"]) for r in rows]

    def variation(self, variation_id: int) -> Optional[dict]:
        row = q1(self.conn, "SELECT * FROM product_variations WHERE id=?", (int(variation_id),))
        return dict(row) if row else None

    def sync_variations(self, product_id: int, variations: Iterable[Mapping[str, Any]]) -> None:
        """
        Rows carrying the id of one of this product's variations are updated
        in place, rows without one are inserted, and variations missing from
        `variations` are deleted. Existing ids stay stable so order items and
        cart lines keep pointing at them.
        """
        existing = {int(v["id"]) for v in self.variations(product_id)}
        kept: set[int] = set()
        for v in variations:
            values = (str(v["unit_type"]), float(v["price"]), int(v["stock"]), v.get("sku"))
            vid = int(v["id"]) if v.get("id") is not None else None
            if vid in existing and vid not in kept:
                x(
                    self.conn,
                    "UPDATE product_variations SET unit_type=?, price=?, stock=?, sku=? WHERE id=?",
                    values + (vid,),
                )
                kept.add(vid)
            else:
                x(
                    self.conn,
                    "INSERT INTO product_variations (product_id, unit_type, price, stock, sku) VALUES (?, ?, ?, ?, ?)",
                    (int(product_id),) + values,
                )
        for vid in existing - kept:
            x(self.conn, "DELETE FROM product_variations WHERE id=?", (vid,))

    def replace_images(self, product_id: int, image_urls: Iterable[str]) -> None:
        x(self.conn, "DELETE FROM product_images WHERE product_id=?", (int(product_id),))
        for url in image_urls:
            x(self.conn, "INSERT INTO product_images (product_id, image_url) VALUES (?, ?)", (int(product_id), str(url)))

    def sku_exists(self, sku: str) -> bool:
        return q1(self.conn, "SELECT 1 FROM products WHERE sku=?", (sku,)) is not None


class CartRepository(TableRepository):
    table = "cart"

    def find_line(self, user_id: int, product_id: int, variation_id: Optional[int]) -> Optional[dict]:
        row = q1(
            self.conn,
            "SELECT * FROM cart WHERE user_id=? AND product_id=? AND IFNULL(variation_id, 0)=IFNULL(?, 0)",
            (int(user_id), int(product_id), variation_id),
        )
        return dict(row) if row else None

    def lines_for(self, user_id: int) -> list[dict]:
        return self.list({"user_id": int(user_id)}, order_by="created_at")

    def clear_for(self, user_id: int) -> int:
        return xn(self.conn, "DELETE FROM cart WHERE user_id=?", (int(user_id),))


class OrderRepository(TableRepository):
    table = "orders"

    def by_idempotency_key(self, key: str) -> Optional[dict]:
        row = q1(self.conn, "SELECT * FROM orders WHERE idempotency_key=?", (key,))
        return dict(row) if row else None

    def items(self, order_id: int) -> list[dict]:
        rows = q(self.conn, "SELECT * FROM order_items WHERE order_id=? ORDER BY id", (int(order_id),))
        return [dict(r) for r in rows]

    def add_item(self, order_id: int, item: Mapping[str, Any]) -> int:
        return x(
            self.conn,
            """
            INSERT INTO order_items (
                order_id, product_id, product_name, variation_id, variation_name,
                quantity, price, shipping_charge, image
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                int(order_id),
                item.get("product_id"),
                str(item["product_name"]),
                item.get("variation_id"),
                item.get("variation_name"),
                int(item["quantity"]),
                float(item["price"]),
                float(item.get("shipping_charge") or 0.0),
                item.get("image"),
            ),
        )


class CustomerRepository(TableRepository):
    table = "customers"

    def by_email(self, email: str) -> Optional[dict]:
        row = q1(self.conn, "SELECT * FROM customers WHERE email=?", ((email or "").strip().lower(),))
        return dict(row) if row else None
