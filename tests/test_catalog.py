"""Tests for the category hierarchy, brands, attributes and products."""
from __future__ import annotations

import re

import pytest

from commerce.exceptions import DuplicateError, NotFoundError, ValidationError
from commerce.services.cart import TableCartStore
from commerce.services.catalog import (
    VariationInput,
    add_attribute,
    create_product,
    delete_attribute,
    delete_category,
    delete_product,
    delete_sub_subcategory,
    delete_subcategory,
    generate_sku,
    get_product_detail,
    list_attributes,
    list_brands,
    list_categories,
    list_products,
    list_stock_rows,
    list_sub_subcategories,
    list_subcategories,
    product_input_from_detail,
    save_brand,
    save_category,
    save_sub_subcategory,
    save_subcategory,
    set_product_active,
    set_product_stock,
    set_variation_stock,
    toggle_brand_status,
    toggle_category_home,
    update_product,
    validate_product,
)

from conftest import IMAGE


class TestCategories:
    def test_priority_must_be_unique(self, conn, tree):
        with pytest.raises(DuplicateError) as exc:
            save_category(conn, category_id=None, name="Sweets", priority=1, image_url=IMAGE)
        assert "priority" in exc.value.field_errors

    def test_update_may_keep_own_priority(self, conn, tree):
        save_category(conn, category_id=tree["category_id"], name="Pickles & Podis", priority=1)
        assert list_categories(conn)[0]["name"] == "Pickles & Podis"

    def test_name_unique_on_create(self, conn, tree):
        with pytest.raises(DuplicateError):
            save_category(conn, category_id=None, name="pickles", priority=2, image_url=IMAGE)

    def test_image_required_on_create(self, conn):
        with pytest.raises(ValidationError) as exc:
            save_category(conn, category_id=None, name="Sweets", priority=1, image_url=None)
        assert "image_url" in exc.value.field_errors

    @pytest.mark.parametrize("priority", [0, -3, "abc", None])
    def test_priority_must_be_positive_number(self, conn, priority):
        with pytest.raises(ValidationError):
            save_category(conn, category_id=None, name="Sweets", priority=priority, image_url=IMAGE)

    def test_list_ordered_by_priority_and_searchable(self, conn, tree):
        save_category(conn, category_id=None, name="Snacks", priority=3, image_url=IMAGE)
        save_category(conn, category_id=None, name="Sweets", priority=2, image_url=IMAGE)

        assert [c["name"] for c in list_categories(conn)] == ["Pickles", "Sweets", "Snacks"]
        assert [c["name"] for c in list_categories(conn, search="SN")] == ["Snacks"]

    def test_home_toggle(self, conn, tree):
        assert toggle_category_home(conn, tree["category_id"]) is True
        assert toggle_category_home(conn, tree["category_id"]) is False

    def test_delete_blocked_while_products_exist(self, conn, tree, simple_product):
        with pytest.raises(ValidationError):
            delete_category(conn, tree["category_id"])


class TestSubcategories:
    def test_priority_unique_across_level(self, conn, tree):
        other = save_category(conn, category_id=None, name="Sweets", priority=2, image_url=IMAGE)
        with pytest.raises(DuplicateError):
            save_subcategory(conn, subcategory_id=None, name="Laddus", category_id=other, priority=1)

    def test_requires_existing_category(self, conn):
        with pytest.raises(NotFoundError):
            save_subcategory(conn, subcategory_id=None, name="Laddus", category_id=99, priority=1)

    def test_missing_fields(self, conn):
        with pytest.raises(ValidationError) as exc:
            save_subcategory(conn, subcategory_id=None, name=" ", category_id=None, priority=1)
        assert set(exc.value.field_errors) == {"name", "category_id"}

    def test_sub_subcategory_parent_must_match(self, conn, tree):
        other = save_category(conn, category_id=None, name="Sweets", priority=2, image_url=IMAGE)
        with pytest.raises(ValidationError) as exc:
            save_sub_subcategory(
                conn,
                sub_subcategory_id=None,
                name="Lemon",
                category_id=other,
                subcategory_id=tree["subcategory_id"],
                priority=2,
            )
        assert "subcategory_id" in exc.value.field_errors

    def test_sub_subcategory_priority_unique(self, conn, tree):
        with pytest.raises(DuplicateError):
            save_sub_subcategory(
                conn,
                sub_subcategory_id=None,
                name="Lemon",
                category_id=tree["category_id"],
                subcategory_id=tree["subcategory_id"],
                priority=1,
            )

    def test_delete_blocked_while_products_exist(self, conn, tree, simple_product):
        with pytest.raises(ValidationError):
            delete_subcategory(conn, tree["subcategory_id"])
        with pytest.raises(ValidationError):
            delete_sub_subcategory(conn, tree["sub_subcategory_id"])

        delete_product(conn, simple_product)
        delete_sub_subcategory(conn, tree["sub_subcategory_id"])
        delete_subcategory(conn, tree["subcategory_id"])
        assert list_subcategories(conn) == []

    def test_listing_joins_parent_names(self, conn, tree):
        (sub,) = list_subcategories(conn, category_id=tree["category_id"])
        (ss,) = list_sub_subcategories(conn, subcategory_id=tree["subcategory_id"])
        assert sub["category_name"] == "Pickles"
        assert ss["subcategory_name"] == "Veg Pickles"


class TestBrandsAndAttributes:
    def test_brand_lifecycle(self, conn):
        brand_id = save_brand(conn, name="Swaadha", alt_text="logo", image_url=IMAGE)
        with pytest.raises(DuplicateError):
            save_brand(conn, name="SWAADHA", image_url=IMAGE)

        assert toggle_brand_status(conn, brand_id) is False
        assert list_brands(conn, active_only=True) == []
        assert len(list_brands(conn, search="swa")) == 1

    def test_brand_logo_required(self, conn):
        with pytest.raises(ValidationError):
            save_brand(conn, name="Swaadha")

    def test_attributes(self, conn, taste_id):
        with pytest.raises(DuplicateError):
            add_attribute(conn, "taste", "spicy")
        with pytest.raises(ValidationError):
            add_attribute(conn, "colour", "Red")
        add_attribute(conn, "unit_type", "250 g")
        assert [a["name"] for a in list_attributes(conn, "unit_type")] == ["250 g"]

    def test_attribute_in_use_cannot_be_deleted(self, conn, taste_id, simple_product):
        with pytest.raises(ValidationError):
            delete_attribute(conn, taste_id)


class TestProducts:
    def test_sku_format(self):
        for _ in range(20):
            assert re.fullmatch(r"SKU-[A-Z0-9]{8}", generate_sku())

    def test_validation_lists_every_missing_field(self, make_input):
        data = make_input(
            name="",
            ingredients="",
            taste_id=None,
            pack_of="",
            max_shelf_life="",
            images=[],
            shipping_charge=0,
        )
        errors = validate_product(data)
        assert {"name", "ingredients", "taste_id", "pack_of", "max_shelf_life", "images", "shipping_charge"} <= set(errors)

    def test_variation_rules(self, make_input):
        data = make_input(variations=[VariationInput(unit_type="", price=0, stock=-1)])
        errors = validate_product(data)
        assert {"variation_1_unit_type", "variation_1_price", "variation_1_stock"} <= set(errors)

    def test_simple_product_needs_price(self, make_input):
        errors = validate_product(make_input(variations=[], price=None, stock=4))
        assert "price" in errors

    def test_create_with_variations_and_images(self, conn, variant_product):
        detail = get_product_detail(conn, variant_product["id"])

        assert detail["has_variation"] == 1
        assert detail["sku"].startswith("SKU-")
        assert [v["unit_type"] for v in detail["variations"]] == ["250 g", "500 g"]
        assert detail["images"] == [IMAGE]
        assert detail["category_name"] == "Pickles"
        assert detail["taste_name"] == "Spicy"

    def test_duplicate_sku(self, conn, make_input):
        create_product(conn, make_input(sku="SKU-FIXED001"))
        with pytest.raises(DuplicateError):
            create_product(conn, make_input(sku="SKU-FIXED001"))

    def test_free_shipping_product_stores_zero(self, conn, make_input):
        product_id = create_product(conn, make_input(paid_shipping=False, shipping_charge=75))
        assert get_product_detail(conn, product_id)["shipping_charge"] == 0

    def test_update_keeps_variation_ids(self, conn, variant_product):
        data = product_input_from_detail(get_product_detail(conn, variant_product["id"]))
        data.name = "Mango Pickle (Family)"
        data.variations[0].price = 210
        update_product(conn, variant_product["id"], data)

        detail = get_product_detail(conn, variant_product["id"])
        assert detail["name"] == "Mango Pickle (Family)"
        assert [v["id"] for v in detail["variations"]] == variant_product["variation_ids"]
        assert detail["variations"][0]["price"] == 210

    def test_update_adds_and_removes_variations(self, conn, variant_product):
        first, second = variant_product["variation_ids"]
        data = product_input_from_detail(get_product_detail(conn, variant_product["id"]))
        data.variations = [data.variations[0], VariationInput(unit_type="1 kg", price=700, stock=2)]
        update_product(conn, variant_product["id"], data)

        variations = get_product_detail(conn, variant_product["id"])["variations"]
        assert variations[0]["id"] == first
        assert second not in [v["id"] for v in variations]
        assert [v["unit_type"] for v in variations] == ["250 g", "1 kg"]

    def test_update_keeps_customer_cart_lines(self, conn, customer, variant_product):
        store = TableCartStore(conn, customer.user_id)
        store.add(variant_product["id"], variant_product["variation_ids"][0], 2)

        data = product_input_from_detail(get_product_detail(conn, variant_product["id"]))
        data.description = "Sun-dried"
        update_product(conn, variant_product["id"], data)

        lines = store.lines()
        assert len(lines) == 1
        assert lines[0].quantity == 2

    def test_foreign_variation_id_is_inserted_not_updated(self, conn, variant_product, make_input):
        other_id = create_product(conn, make_input(name="Gongura Pickle"))
        data = product_input_from_detail(get_product_detail(conn, other_id))
        data.variations[0].id = variant_product["variation_ids"][0]
        update_product(conn, other_id, data)

        assert [v["id"] for v in get_product_detail(conn, variant_product["id"])["variations"]] == variant_product[
            "variation_ids"
        ]
        assert len(get_product_detail(conn, other_id)["variations"]) == 2

    def test_list_products_display_price_and_stock(self, conn, variant_product, simple_product):
        rows = {r["id"]: r for r in list_products(conn)}

        assert rows[variant_product["id"]]["display_price"] == 200.0
        assert rows[variant_product["id"]]["total_stock"] == 15
        assert rows[simple_product]["display_price"] == 100.0
        assert rows[simple_product]["image"] == IMAGE

    def test_active_filter(self, conn, variant_product, simple_product):
        set_product_active(conn, simple_product, False)
        assert [r["id"] for r in list_products(conn, active_only=True)] == [variant_product["id"]]
        assert len(list_products(conn, search="lemon")) == 1

    def test_delete_product(self, conn, simple_product):
        delete_product(conn, simple_product)
        with pytest.raises(NotFoundError):
            get_product_detail(conn, simple_product)


class TestRestock:
    def test_rows_flatten_variations(self, conn, variant_product, simple_product):
        rows = list_stock_rows(conn)
        assert len(rows) == 3
        assert {r["variation_id"] for r in rows} == set(variant_product["variation_ids"]) | {None}

    def test_low_stock_and_sort(self, conn, variant_product, simple_product):
        low = list_stock_rows(conn, low_stock_only=True, low_stock_threshold=6, sort_by="stock")
        assert [r["stock"] for r in low] == [3, 5]

    def test_set_stock(self, conn, variant_product, simple_product):
        vid = variant_product["variation_ids"][0]
        set_variation_stock(conn, vid, 42)
        set_product_stock(conn, simple_product, 7)
        stocks = {(r["product_id"], r["variation_id"]): r["stock"] for r in list_stock_rows(conn)}

        assert stocks[(variant_product["id"], vid)] == 42
        assert stocks[(simple_product, None)] == 7

    def test_negative_stock_rejected(self, conn, variant_product):
        with pytest.raises(ValidationError):
            set_variation_stock(conn, variant_product["variation_ids"][0], -1)

    def test_variation_product_has_no_base_stock(self, conn, variant_product):
        with pytest.raises(NotFoundError):
            set_product_stock(conn, variant_product["id"], 5)
