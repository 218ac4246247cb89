"""Tests for report queries, dashboard figures and Excel export."""
from __future__ import annotations

import io
from dataclasses import replace
from datetime import date, timedelta

import pandas as pd
import pytest

from commerce.auth import SessionContext
from commerce.services.cart import SessionCartStore
from commerce.services.content import save_banner
from commerce.services.orders import cancel_order, place_online_order, update_order_status
from commerce.services.pos import CustomerChoice, add_to_pos_cart, place_pos_order, pos_products
from commerce.services.reports import (
    ORDER_REPORT_LIMIT,
    dashboard_stats,
    order_report,
    order_report_summary,
    product_report,
    to_excel_bytes,
)


@pytest.fixture
def orders(conn, variant_product, simple_product, shipping):
    """Three online orders: one delivered, one cancelled, one pending."""
    ids = []
    for i, (pid, vid, qty) in enumerate(
        [
            (variant_product["id"], variant_product["variation_ids"][0], 2),
            (simple_product, None, 1),
            (variant_product["id"], variant_product["variation_ids"][1], 1),
        ]
    ):
        store = SessionCartStore(conn, {})
        store.add(pid, vid, qty)
        name = ["Asha Rao", "Ravi Kumar", "Sita Devi"][i]
        ids.append(
            place_online_order(
                conn, SessionContext.anonymous(), store.lines(), replace(shipping, full_name=name), "cod", f"rep-{i}"
            )
        )
    update_order_status(conn, ids[0], "delivered")
    cancel_order(conn, ids[1])
    return ids


class TestProductReport:
    def test_cancelled_orders_excluded(self, conn, orders, variant_product, simple_product):
        rows = {r["id"]: r for r in product_report(conn)}

        assert rows[variant_product["id"]]["orders_count"] == 2
        assert rows[variant_product["id"]]["revenue"] == 780.0
        assert rows[simple_product]["orders_count"] == 0
        assert rows[simple_product]["revenue"] == 0.0

    def test_pos_sales_counted(self, conn, orders, simple_product, customer):
        grid = {p["id"]: p for p in pos_products(conn)}
        cart = []
        add_to_pos_cart(cart, grid[simple_product])
        place_pos_order(conn, cart, CustomerChoice(customer_id=customer.user_id), "cash")

        row = next(r for r in product_report(conn) if r["id"] == simple_product)
        assert row["orders_count"] == 1
        assert row["online_revenue"] == 0.0
        assert row["pos_revenue"] == 100.0
        assert row["revenue"] == 100.0

    def test_first_variation_price_and_stock(self, conn, orders, variant_product):
        row = next(r for r in product_report(conn) if r["id"] == variant_product["id"])
        assert row["price"] == 200.0
        assert row["stock"] == 8

    def test_sort_and_search(self, conn, orders):
        assert [r["name"] for r in product_report(conn, sort_by="revenue")] == ["Mango Pickle", "Lemon Pickle"]
        assert [r["name"] for r in product_report(conn, sort_by="name")] == ["Lemon Pickle", "Mango Pickle"]
        assert [r["name"] for r in product_report(conn, search="lem")] == ["Lemon Pickle"]


class TestOrderReport:
    def test_summary(self, conn, orders):
        rows = order_report(conn)
        summary = order_report_summary(rows)

        assert summary["total"] == 3
        assert summary["pending"] == 1
        assert summary["delivered"] == 1
        assert summary["revenue"] == 400.0 + 50.0 + 380.0 + 50.0

    def test_search_and_sort(self, conn, orders):
        assert [r["full_name"] for r in order_report(conn, search="ravi")] == ["Ravi Kumar"]
        totals = [r["grand_total"] for r in order_report(conn, sort_by="grand_total")]
        assert totals == sorted(totals, reverse=True)

    def test_limit(self):
        assert ORDER_REPORT_LIMIT == 100


class TestDashboard:
    def test_figures(self, conn, orders, simple_product, customer):
        grid = {p["id"]: p for p in pos_products(conn)}
        cart = []
        add_to_pos_cart(cart, grid[simple_product])
        place_pos_order(conn, cart, CustomerChoice(customer_id=customer.user_id), "cash")
        save_banner(conn, title="Hello", active=True)

        today = date.today()
        stats = dashboard_stats(conn, today - timedelta(days=7), today + timedelta(days=1))

        assert stats.online_orders == 2
        assert stats.online_sales == 880.0
        assert stats.pos_orders == 1
        assert stats.pos_sales == 100.0
        assert stats.total_sales == 980.0
        assert stats.products == 2
        assert stats.customers == 1
        assert stats.active_banners == 1
        assert len(stats.recent_orders) == 3
        assert sum(d["online"] for d in stats.daily_sales) == 880.0
        assert stats.sales_by_category[0]["category"] == "Pickles"

    def test_empty_range(self, conn, orders):
        stats = dashboard_stats(conn, date(2000, 1, 1), date(2000, 1, 31))
        assert stats.online_orders == 0
        assert stats.daily_sales == []


def test_excel_export_round_trips_rows():
    df = pd.DataFrame([{"name": "Mango Pickle", "revenue": 780.0}, {"name": "Lemon Pickle", "revenue": 0.0}])
    data = to_excel_bytes(df, "Products")

    assert data[:2] == b"PK"
    back = pd.read_excel(io.BytesIO(data), sheet_name="Products", engine="openpyxl")
    assert back["name"].tolist() == ["Mango Pickle", "Lemon Pickle"]
