"""
Shared fixtures: a fresh SQLite database per test plus a small catalog.

Services are exercised directly against the connection; no Streamlit
runtime is needed.
"""
from __future__ import annotations

import pytest

from commerce.auth import Role, SessionContext, signup_customer
from commerce.db import _connect, ensure_schema
from commerce.services.catalog import (
    ProductInput,
    VariationInput,
    add_attribute,
    create_product,
    save_category,
    save_sub_subcategory,
    save_subcategory,
)
from commerce.services.orders import ShippingDetails

IMAGE = "data:image/png;base64,iVBORw0KGgo="


@pytest.fixture
def conn(tmp_path):
    c = _connect(tmp_path / "commerce-test.db")
    ensure_schema(c)
    yield c
    c.close()


@pytest.fixture
def taste_id(conn):
    return add_attribute(conn, "taste", "Spicy")


@pytest.fixture
def tree(conn):
    """Category > subcategory > sub-subcategory."""
    category_id = save_category(conn, category_id=None, name="Pickles", priority=1, image_url=IMAGE)
    subcategory_id = save_subcategory(conn, subcategory_id=None, name="Veg Pickles", category_id=category_id, priority=1)
    sub_subcategory_id = save_sub_subcategory(
        conn,
        sub_subcategory_id=None,
        name="Mango",
        category_id=category_id,
        subcategory_id=subcategory_id,
        priority=1,
    )
    return {
        "category_id": category_id,
        "subcategory_id": subcategory_id,
        "sub_subcategory_id": sub_subcategory_id,
    }


def product_input(tree, taste_id, /, **overrides) -> ProductInput:
    fields = dict(
        name="Mango Pickle",
        category_id=tree["category_id"],
        subcategory_id=tree["subcategory_id"],
        sub_subcategory_id=tree["sub_subcategory_id"],
        ingredients="Mango, chilli, oil",
        taste_id=taste_id,
        pack_of="1",
        max_shelf_life="90 days",
        images=[IMAGE],
        paid_shipping=True,
        shipping_charge=50.0,
        variations=[
            VariationInput(unit_type="250 g", price=200.0, stock=10),
            VariationInput(unit_type="500 g", price=380.0, stock=5),
        ],
    )
    fields.update(overrides)
    return ProductInput(**fields)


@pytest.fixture
def make_input(tree, taste_id):
    def _make(**overrides):
        return product_input(tree, taste_id, **overrides)

    return _make


@pytest.fixture
def variant_product(conn, tree, taste_id):
    """Product sold in two packs; shipping 50 per line."""
    product_id = create_product(conn, product_input(tree, taste_id))
    rows = conn.execute("SELECT id FROM product_variations WHERE product_id=? ORDER BY id", (product_id,)).fetchall()
    return {"id": product_id, "variation_ids": [int(r["id"]) for r in rows]}


@pytest.fixture
def simple_product(conn, tree, taste_id):
    """Single-price product: 100 each, 3 in stock, shipping 30."""
    return create_product(
        conn,
        product_input(
            tree,
            taste_id,
            name="Lemon Pickle",
            variations=[],
            price=100.0,
            stock=3,
            shipping_charge=30.0,
        ),
    )


@pytest.fixture
def customer(conn):
    customer_id = signup_customer(
        conn,
        email="asha@example.com",
        password="secret1",
        confirm_password="secret1",
        phone="9876543210",
        name="Asha",
    )
    return SessionContext(user_id=customer_id, email="asha@example.com", role=Role.CUSTOMER)


@pytest.fixture
def shipping():
    return ShippingDetails(
        full_name="Asha Rao",
        phone_number="9876543210",
        house_number="12-4",
        street="MG Road",
        city="Hyderabad",
        state="Telangana",
        pincode="500001",
    )
