from __future__ import annotations

import random
from datetime import date, timedelta

from commerce.auth import Role, SessionContext, ensure_default_admin, hash_password
from commerce.db import ensure_schema, q, x
from commerce.exceptions import CommerceError
from commerce.services.cart import hydrate_lines
from commerce.services.catalog import (
    ProductInput,
    VariationInput,
    create_product,
    save_category,
    save_sub_subcategory,
    save_subcategory,
)
from commerce.services.content import OfferInput, save_banner, save_instagram_link, save_offer
from commerce.services.orders import ShippingDetails, place_online_order, update_order_status
from commerce.services.pos import CustomerChoice, add_to_pos_cart, place_pos_order, pos_products
from commerce.utils import iso_now

DEFAULT_TASTES = ["Sweet", "Spicy", "Tangy", "Savory"]
DEFAULT_UNITS = ["100 g", "250 g", "500 g", "1 kg"]

# 1x1 PNG placeholder
PLACEHOLDER_IMAGE = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8z8BQDwAEhQGAhKmMIQAAAABJRU5ErkJggg=="
)

DEMO_CATALOG = {
    "Pickles": {
        "Veg Pickles": ["Mango", "Lemon"],
        "Non-Veg Pickles": ["Chicken", "Prawn"],
    },
    "Sweets": {
        "Traditional": ["Laddu", "Ariselu"],
    },
    "Snacks": {
        "Fried": ["Murukulu", "Chekkalu"],
    },
}


def upsert_reference_data(conn, *, admin_email: str = "admin@swaadha.in", admin_password: str = "Admin@123") -> None:
    ensure_schema(conn)

    for name in DEFAULT_TASTES:
        x(conn, "INSERT OR IGNORE INTO attributes(type, name) VALUES ('taste', ?)", (name,))
    for name in DEFAULT_UNITS:
        x(conn, "INSERT OR IGNORE INTO attributes(type, name) VALUES ('unit_type', ?)", (name,))

    ensure_default_admin(conn, admin_email, admin_password)


def wipe_all(conn) -> None:
    # Keep schema and staff accounts, delete data (order matters for FKs).
    for t in [
        "order_items",
        "orders",
        "pos_orders",
        "cart",
        "wishlists",
        "product_reviews",
        "product_images",
        "product_variations",
        "products",
        "offers",
        "sub_subcategories",
        "subcategories",
        "categories",
        "brands",
        "attributes",
        "banners",
        "hero_sections",
        "notification_banners",
        "instagram_links",
        "customers",
    ]:
        conn.execute(f"DELETE FROM {t};")
    conn.commit()


def load_demo_data(conn, *, seed: int = 7) -> None:
    random.seed(seed)
    upsert_reference_data(conn)

    tastes = q(conn, "SELECT id FROM attributes WHERE type='taste' ORDER BY id")

    priority = q(conn, "SELECT COALESCE(MAX(priority), 0) AS p FROM categories")[0]["p"]
    sub_priority = q(conn, "SELECT COALESCE(MAX(priority), 0) AS p FROM subcategories")[0]["p"]
    ss_priority = q(conn, "SELECT COALESCE(MAX(priority), 0) AS p FROM sub_subcategories")[0]["p"]

    for cat_name, subs in DEMO_CATALOG.items():
        if q(conn, "SELECT 1 FROM categories WHERE LOWER(name)=?", (cat_name.lower(),)):
            continue
        priority += 1
        cat_id = save_category(conn, category_id=None, name=cat_name, priority=priority, image_url=PLACEHOLDER_IMAGE)
        x(conn, "UPDATE categories SET home_status=1 WHERE id=?", (cat_id,))
        for sub_name, items in subs.items():
            sub_priority += 1
            sub_id = save_subcategory(conn, subcategory_id=None, name=sub_name, category_id=cat_id, priority=sub_priority)
            for item in items:
                ss_priority += 1
                ss_id = save_sub_subcategory(
                    conn,
                    sub_subcategory_id=None,
                    name=f"{item} {cat_name}",
                    category_id=cat_id,
                    subcategory_id=sub_id,
                    priority=ss_priority,
                )
                with_variations = random.random() < 0.7
                base = random.choice([120, 180, 240, 320])
                create_product(
                    conn,
                    ProductInput(
                        name=f"{item} {cat_name[:-1] if cat_name.endswith('s') else cat_name}",
                        category_id=cat_id,
                        subcategory_id=sub_id,
                        sub_subcategory_id=ss_id,
                        ingredients="Traditional home-style recipe",
                        taste_id=int(random.choice(tastes)["id"]),
                        pack_of="1",
                        max_shelf_life="90 days",
                        images=[PLACEHOLDER_IMAGE],
                        paid_shipping=True,
                        shipping_charge=float(random.choice([40, 50, 60])),
                        variations=[
                            VariationInput(unit_type="250 g", price=float(base), stock=random.randint(5, 60)),
                            VariationInput(unit_type="500 g", price=float(base * 2 - 20), stock=random.randint(5, 60)),
                        ]
                        if with_variations
                        else [],
                        price=None if with_variations else float(base),
                        stock=None if with_variations else random.randint(5, 60),
                    ),
                )

    # Customers
    customers = []
    for i, (name, phone) in enumerate([("Anitha Rao", "9876543210"), ("Ravi Kumar", "9123456780"), ("Sita Devi", "8123456789")]):
        email = f"demo{i + 1}@example.com"
        existing = q(conn, "SELECT id FROM customers WHERE email=?", (email,))
        if existing:
            customers.append(int(existing[0]["id"]))
            continue
        customers.append(
            x(
                conn,
                "INSERT INTO customers (name, email, phone, password_hash, is_blocked, created_at) VALUES (?, ?, ?, ?, 0, ?)",
                (name, email, phone, hash_password("Demo@123"), iso_now()),
            )
        )

    # Online orders across the last week
    products = q(conn, "SELECT id, has_variation FROM products WHERE active=1 ORDER BY id")
    statuses = ["pending", "confirmed", "processing", "out_for_delivery", "delivered"]
    for i in range(8):
        ctx = SessionContext(user_id=random.choice(customers), email=None, role=Role.CUSTOMER)
        raw = []
        for p in random.sample(list(products), k=min(2, len(products))):
            var = q(conn, "SELECT id FROM product_variations WHERE product_id=? ORDER BY id LIMIT 1", (int(p["id"]),))
            raw.append({"product_id": int(p["id"]), "variation_id": int(var[0]["id"]) if var else None, "quantity": random.randint(1, 3)})
        lines = hydrate_lines(conn, raw)
        try:
            order_id = place_online_order(
                conn,
                ctx,
                lines,
                ShippingDetails(
                    full_name="Demo Customer",
                    phone_number="9876543210",
                    house_number=f"{i + 1}-4-12",
                    street="MG Road",
                    city="Hyderabad",
                    state="Telangana",
                    pincode="500001",
                ),
                random.choice(["cod", "razorpay"]),
                idempotency_key=f"demo-{seed}-{i}",
                strict_stock=False,
            )
        except CommerceError:
            continue
        day = (date.today() - timedelta(days=i % 7)).isoformat()
        x(conn, "UPDATE orders SET order_date=? WHERE id=?", (f"{day}T10:{i:02d}:00+00:00", order_id))
        update_order_status(conn, order_id, random.choice(statuses))

    # A couple of counter sales
    for _ in range(3):
        grid = pos_products(conn)
        if not grid:
            break
        cart = []
        product = random.choice(grid)
        variation = product["variations"][0] if product["variations"] else None
        if (variation["stock"] if variation else product["stock"]) <= 0:
            continue
        add_to_pos_cart(cart, product, variation)
        place_pos_order(conn, cart, CustomerChoice(customer_id=random.choice(customers)), random.choice(["cash", "upi"]))

    # Homepage content
    if not q(conn, "SELECT 1 FROM banners"):
        save_banner(conn, title="Free shipping on every item worth ₹500 or more", active=True)
    if not q(conn, "SELECT 1 FROM instagram_links"):
        save_instagram_link(conn, url="https://www.instagram.com/p/Cdemo12345/")
    if not q(conn, "SELECT 1 FROM offers"):
        today = date.today()
        save_offer(
            conn,
            OfferInput(
                title="Festive Sale",
                discount_type="percentage",
                discount_value=10,
                start_date=today.isoformat(),
                end_date=(today + timedelta(days=14)).isoformat(),
            ),
        )
