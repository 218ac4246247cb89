from __future__ import annotations

import io
import json
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

import pandas as pd

from commerce.db import q, q1
from commerce.utils import money

ORDER_REPORT_LIMIT = 100
ORDER_REPORT_SORTS = ("order_date", "total_price", "grand_total")
PRODUCT_REPORT_SORTS = {
    "name": ("name", False),
    "orders": ("orders_count", True),
    "revenue": ("revenue", True),
    "stock": ("stock", False),
}


def _pos_sales_by_product(conn) -> dict[int, tuple[int, float]]:
    """product_id -> (POS orders containing it, POS revenue) from the JSON line snapshots."""
    totals: dict[int, tuple[int, float]] = {}
    for row in q(conn, "SELECT order_items FROM pos_orders"):
        try:
            items = json.loads(row["order_items"] or "[]")
        except ValueError:
            continue
        seen: set[int] = set()
        for item in items:
            if item.get("product_id") is None:
                continue
            pid = int(item["product_id"])
            count, revenue = totals.get(pid, (0, 0.0))
            if pid not in seen:
                count += 1
                seen.add(pid)
            totals[pid] = (count, revenue + float(item.get("price") or 0) * int(item.get("quantity") or 0))
    return totals


def product_report(conn, *, search: Optional[str] = None, sort_by: str = "name") -> list[dict]:
    """
    One row per product: first variation's price/stock (or the base price/stock),
    number of distinct orders and revenue.

    Online order items and POS sales both count; `online_revenue` and
    `pos_revenue` keep the split. Cancelled online orders are left out.
    """
    rows = q(
        conn,
        """
        SELECT p.id, p.name, p.sku, c.name AS category,
               COALESCE(
                   (SELECT v.price FROM product_variations v WHERE v.product_id=p.id ORDER BY v.id LIMIT 1),
                   p.price
               ) AS price,
               COALESCE(
                   (SELECT v.stock FROM product_variations v WHERE v.product_id=p.id ORDER BY v.id LIMIT 1),
                   p.stock
               ) AS stock,
               COUNT(DISTINCT CASE WHEN o.status<>'cancelled' THEN oi.order_id END) AS orders_count,
               COALESCE(SUM(CASE WHEN o.status<>'cancelled' THEN oi.price * oi.quantity END), 0) AS online_revenue
        FROM products p
        LEFT JOIN categories c ON c.id = p.category_id
        LEFT JOIN order_items oi ON oi.product_id = p.id
        LEFT JOIN orders o ON o.id = oi.order_id
        GROUP BY p.id
        """,
    )
    pos = _pos_sales_by_product(conn)
    out = [dict(r) for r in rows]
    term = (search or "").strip().lower()
    if term:
        out = [r for r in out if term in str(r["name"]).lower() or term in str(r["sku"] or "").lower()]
    for r in out:
        pos_orders, pos_revenue = pos.get(int(r["id"]), (0, 0.0))
        r["orders_count"] = int(r["orders_count"]) + pos_orders
        r["online_revenue"] = money(r["online_revenue"])
        r["pos_revenue"] = money(pos_revenue)
        r["revenue"] = money(r["online_revenue"] + r["pos_revenue"])

    key, descending = PRODUCT_REPORT_SORTS.get(sort_by, PRODUCT_REPORT_SORTS["name"])
    if key == "name":
        return sorted(out, key=lambda r: str(r["name"]).lower())
    return sorted(out, key=lambda r: float(r[key] or 0), reverse=descending)


def order_report(conn, *, search: Optional[str] = None, sort_by: str = "order_date") -> list[dict]:
    rows = q(
        conn,
        """
        SELECT id, reference_code, full_name, phone_number, city, payment_method, payment_status,
               total_price, shipping_cost, discount_amount, grand_total, status, order_date
        FROM orders
        ORDER BY order_date DESC, id DESC
        LIMIT ?
        """,
        (ORDER_REPORT_LIMIT,),
    )
    out = [dict(r) for r in rows]
    term = (search or "").strip().lower()
    if term:
        out = [r for r in out if term in str(r["full_name"]).lower() or term in str(r["phone_number"])]
    if sort_by not in ORDER_REPORT_SORTS:
        sort_by = "order_date"
    if sort_by == "order_date":
        return sorted(out, key=lambda r: str(r["order_date"]), reverse=True)
    return sorted(out, key=lambda r: float(r[sort_by] or 0), reverse=True)


def order_report_summary(rows: Iterable[dict]) -> dict:
    rows = list(rows)
    return {
        "total": len(rows),
        "pending": sum(1 for r in rows if r["status"] == "pending"),
        "delivered": sum(1 for r in rows if r["status"] == "delivered"),
        "revenue": money(sum(float(r["grand_total"] or 0) for r in rows if r["status"] != "cancelled")),
    }


@dataclass
class DashboardStats:
    online_orders: int = 0
    online_sales: float = 0.0
    pos_orders: int = 0
    pos_sales: float = 0.0
    customers: int = 0
    products: int = 0
    active_banners: int = 0
    active_offers: int = 0
    recent_orders: list = field(default_factory=list)
    daily_sales: list = field(default_factory=list)
    sales_by_category: list = field(default_factory=list)

    @property
    def total_sales(self) -> float:
        return money(self.online_sales + self.pos_sales)


def _count(conn, sql: str, params: tuple = ()) -> int:
    row = q1(conn, sql, params)
    return int(row["n"]) if row else 0


def dashboard_stats(conn, start: date, end: date) -> DashboardStats:
    """Figures for [start, end], both inclusive."""
    s, e = start.isoformat(), end.isoformat()
    online = q1(
        conn,
        """
        SELECT COUNT(*) AS n, COALESCE(SUM(grand_total), 0) AS total
        FROM orders
        WHERE status<>'cancelled' AND substr(order_date, 1, 10) BETWEEN ? AND ?
        """,
        (s, e),
    )
    pos = q1(
        conn,
        """
        SELECT COUNT(*) AS n, COALESCE(SUM(grand_total), 0) AS total
        FROM pos_orders
        WHERE substr(created_at, 1, 10) BETWEEN ? AND ?
        """,
        (s, e),
    )
    recent = q(
        conn,
        """
        SELECT reference_code, full_name, grand_total, status, order_date
        FROM orders ORDER BY order_date DESC, id DESC LIMIT 5
        """,
    )
    daily = q(
        conn,
        """
        SELECT day, SUM(online) AS online, SUM(pos) AS pos FROM (
            SELECT substr(order_date, 1, 10) AS day, grand_total AS online, 0 AS pos
            FROM orders WHERE status<>'cancelled'
            UNION ALL
            SELECT substr(created_at, 1, 10), 0, grand_total FROM pos_orders
        )
        WHERE day BETWEEN ? AND ?
        GROUP BY day ORDER BY day
        """,
        (s, e),
    )
    by_category = q(
        conn,
        """
        SELECT COALESCE(c.name, 'Unknown') AS category,
               ROUND(SUM(oi.price * oi.quantity), 2) AS sales
        FROM order_items oi
        JOIN orders o ON o.id = oi.order_id
        LEFT JOIN products p ON p.id = oi.product_id
        LEFT JOIN categories c ON c.id = p.category_id
        WHERE o.status<>'cancelled' AND substr(o.order_date, 1, 10) BETWEEN ? AND ?
        GROUP BY category ORDER BY sales DESC
        """,
        (s, e),
    )
    today = date.today().isoformat()
    return DashboardStats(
        online_orders=int(online["n"]),
        online_sales=money(online["total"]),
        pos_orders=int(pos["n"]),
        pos_sales=money(pos["total"]),
        customers=_count(conn, "SELECT COUNT(*) AS n FROM customers"),
        products=_count(conn, "SELECT COUNT(*) AS n FROM products"),
        active_banners=_count(conn, "SELECT COUNT(*) AS n FROM banners WHERE active=1"),
        active_offers=_count(
            conn,
            "SELECT COUNT(*) AS n FROM offers WHERE is_active=1 AND start_date<=? AND end_date>=?",
            (today, today),
        ),
        recent_orders=[dict(r) for r in recent],
        daily_sales=[dict(r) for r in daily],
        sales_by_category=[dict(r) for r in by_category],
    )


def to_excel_bytes(df: pd.DataFrame, sheet_name: str = "Report") -> bytes:
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name[:31], index=False)
    return buf.getvalue()
