from __future__ import annotations

import random
import string
from dataclasses import dataclass, field
from typing import Optional

from commerce.db import q, q1, transaction, x, xn
from commerce.exceptions import DuplicateError, NotFoundError, ValidationError
from commerce.logging_setup import get_logger
from commerce.repositories import (
    CategoryRepository,
    ProductRepository,
    SubcategoryRepository,
    SubSubcategoryRepository,
    TableRepository,
)
from commerce.utils import clean_str, iso_now

logger = get_logger("catalog")

ATTRIBUTE_TYPES = ("taste", "unit_type")
STOCK_SORTS = {
    "name": "product_name COLLATE NOCASE ASC",
    "price": "price ASC",
    "stock": "stock ASC",
}


# -------------------------
# Category hierarchy
# -------------------------

def _check_priority(priority) -> int:
    try:
        p = int(priority)
    except (TypeError, ValueError):
        raise ValidationError(field_errors={"priority": "Priority must be a number."})
    if p < 1:
        raise ValidationError(field_errors={"priority": "Priority must be at least 1."})
    return p


def list_categories(conn, search: Optional[str] = None) -> list[dict]:
    return CategoryRepository(conn).list(search=search, search_columns=("name",), order_by="priority")


def save_category(
    conn,
    *,
    category_id: Optional[int],
    name: str,
    priority: int,
    image_url: Optional[str] = None,
) -> int:
    repo = CategoryRepository(conn)
    name = (name or "").strip()
    if not name:
        raise ValidationError(field_errors={"name": "Category name is required."})
    p = _check_priority(priority)

    if category_id is None:
        if repo.name_taken(name):
            raise DuplicateError(field_errors={"name": "Category already exists."})
        if not image_url:
            raise ValidationError(field_errors={"image_url": "Category image is required."})
    if repo.priority_taken(p, exclude_id=category_id):
        raise DuplicateError(field_errors={"priority": f"Priority {p} is already used by another category."})

    if category_id is None:
        new_id = repo.create({"name": name, "priority": p, "image_url": image_url, "home_status": 0})
        logger.info("Category created: %s (priority %s)", name, p)
        return new_id

    fields = {"name": name, "priority": p}
    if image_url:
        fields["image_url"] = image_url
    repo.update(int(category_id), fields)
    logger.info("Category #%s updated", category_id)
    return int(category_id)


def toggle_category_home(conn, category_id: int) -> bool:
    repo = CategoryRepository(conn)
    row = repo.require(category_id)
    new_status = 0 if int(row["home_status"]) else 1
    repo.update(int(category_id), {"home_status": new_status})
    return bool(new_status)


def delete_category(conn, category_id: int) -> None:
    in_use = q1(conn, "SELECT 1 FROM products WHERE category_id=? LIMIT 1", (int(category_id),))
    if in_use:
        raise ValidationError("Category has products. Move or delete them first.")
    CategoryRepository(conn).delete(category_id)
    logger.info("Category #%s deleted", category_id)


def list_subcategories(conn, category_id: Optional[int] = None, search: Optional[str] = None) -> list[dict]:
    where = []
    params: list = []
    if category_id is not None:
        where.append("s.category_id=?")
        params.append(int(category_id))
    if search and search.strip():
        where.append("LOWER(s.name) LIKE ?")
        params.append(f"%{search.strip().lower()}%")
    sql = f"""
        SELECT s.*, c.name AS category_name
        FROM subcategories s
        JOIN categories c ON c.id = s.category_id
        {"WHERE " + " AND ".join(where) if where else ""}
        ORDER BY s.priority, s.id
    """
    return [dict(r) for r in q(conn, sql, params)]


def save_subcategory(
    conn,
    *,
    subcategory_id: Optional[int],
    name: str,
    category_id: Optional[int],
    priority: int,
) -> int:
    repo = SubcategoryRepository(conn)
    name = (name or "").strip()
    errors: dict[str, str] = {}
    if not name:
        errors["name"] = "Subcategory name is required."
    if not category_id:
        errors["category_id"] = "Select a category."
    if errors:
        raise ValidationError(field_errors=errors)
    CategoryRepository(conn).require(int(category_id))
    p = _check_priority(priority)
    if repo.priority_taken(p, exclude_id=subcategory_id):
        raise DuplicateError(field_errors={"priority": f"Priority {p} is already used by another subcategory."})

    fields = {"name": name, "category_id": int(category_id), "priority": p}
    if subcategory_id is None:
        new_id = repo.create(fields)
        logger.info("Subcategory created: %s", name)
        return new_id
    repo.update(int(subcategory_id), fields)
    return int(subcategory_id)


def delete_subcategory(conn, subcategory_id: int) -> None:
    in_use = q1(conn, "SELECT 1 FROM products WHERE subcategory_id=? LIMIT 1", (int(subcategory_id),))
    if in_use:
        raise ValidationError("Subcategory has products. Move or delete them first.")
    SubcategoryRepository(conn).delete(subcategory_id)
    logger.info("Subcategory #%s deleted", subcategory_id)


def list_sub_subcategories(conn, subcategory_id: Optional[int] = None, search: Optional[str] = None) -> list[dict]:
    where = []
    params: list = []
    if subcategory_id is not None:
        where.append("ss.subcategory_id=?")
        params.append(int(subcategory_id))
    if search and search.strip():
        where.append("LOWER(ss.name) LIKE ?")
        params.append(f"%{search.strip().lower()}%")
    sql = f"""
        SELECT ss.*, c.name AS category_name, s.name AS subcategory_name
        FROM sub_subcategories ss
        JOIN categories c ON c.id = ss.category_id
        JOIN subcategories s ON s.id = ss.subcategory_id
        {"WHERE " + " AND ".join(where) if where else ""}
        ORDER BY ss.priority, ss.id
    """
    return [dict(r) for r in q(conn, sql, params)]


def save_sub_subcategory(
    conn,
    *,
    sub_subcategory_id: Optional[int],
    name: str,
    category_id: Optional[int],
    subcategory_id: Optional[int],
    priority: int,
) -> int:
    repo = SubSubcategoryRepository(conn)
    name = (name or "").strip()
    errors: dict[str, str] = {}
    if not name:
        errors["name"] = "Sub-subcategory name is required."
    if not category_id:
        errors["category_id"] = "Select a category."
    if not subcategory_id:
        errors["subcategory_id"] = "Select a subcategory."
    if errors:
        raise ValidationError(field_errors=errors)

    sub = SubcategoryRepository(conn).require(int(subcategory_id))
    if int(sub["category_id"]) != int(category_id):
        raise ValidationError(field_errors={"subcategory_id": "Subcategory does not belong to the selected category."})
    p = _check_priority(priority)
    if repo.priority_taken(p, exclude_id=sub_subcategory_id):
        raise DuplicateError(field_errors={"priority": f"Priority {p} is already used by another sub-subcategory."})

    fields = {"name": name, "category_id": int(category_id), "subcategory_id": int(subcategory_id), "priority": p}
    if sub_subcategory_id is None:
        new_id = repo.create(fields)
        logger.info("Sub-subcategory created: %s", name)
        return new_id
    repo.update(int(sub_subcategory_id), fields)
    return int(sub_subcategory_id)


def delete_sub_subcategory(conn, sub_subcategory_id: int) -> None:
    in_use = q1(conn, "SELECT 1 FROM products WHERE sub_subcategory_id=? LIMIT 1", (int(sub_subcategory_id),))
    if in_use:
        raise ValidationError("Sub-subcategory has products. Move or delete them first.")
    SubSubcategoryRepository(conn).delete(sub_subcategory_id)
    logger.info("Sub-subcategory #%s deleted", sub_subcategory_id)


# -------------------------
# Brands
# -------------------------

def list_brands(conn, search: Optional[str] = None, active_only: bool = False) -> list[dict]:
    repo = TableRepository(conn, "brands")
    return repo.list(
        {"status": 1} if active_only else None,
        search=search,
        search_columns=("name_en",),
        order_by="created_at",
        descending=True,
    )


def save_brand(
    conn,
    *,
    brand_id: Optional[int] = None,
    name: str,
    alt_text: Optional[str] = None,
    image_url: Optional[str] = None,
) -> int:
    repo = TableRepository(conn, "brands")
    name = (name or "").strip()
    if not name:
        raise ValidationError(field_errors={"name_en": "Brand name is required."})
    dup = q1(
        conn,
        "SELECT id FROM brands WHERE LOWER(name_en)=? AND id<>?",
        (name.lower(), int(brand_id or 0)),
    )
    if dup:
        raise DuplicateError(field_errors={"name_en": "Brand already exists."})
    if brand_id is None and not image_url:
        raise ValidationError(field_errors={"image_url": "Brand logo is required."})

    if brand_id is None:
        new_id = repo.create(
            {"name_en": name, "alt_text": clean_str(alt_text), "image_url": image_url, "status": 1, "created_at": iso_now()}
        )
        logger.info("Brand created: %s", name)
        return new_id
    fields = {"name_en": name, "alt_text": clean_str(alt_text)}
    if image_url:
        fields["image_url"] = image_url
    repo.update(int(brand_id), fields)
    return int(brand_id)


def toggle_brand_status(conn, brand_id: int) -> bool:
    repo = TableRepository(conn, "brands")
    row = repo.require(brand_id)
    new_status = 0 if int(row["status"]) else 1
    repo.update(int(brand_id), {"status": new_status})
    return bool(new_status)


def delete_brand(conn, brand_id: int) -> None:
    with transaction(conn):
        x(conn, "UPDATE products SET brand_id=NULL WHERE brand_id=?", (int(brand_id),))
        TableRepository(conn, "brands").delete(brand_id)
    logger.info("Brand #%s deleted", brand_id)


# -------------------------
# Attributes (taste / unit type)
# -------------------------

def _check_attribute_type(attr_type: str) -> str:
    t = (attr_type or "").strip().lower()
    if t not in ATTRIBUTE_TYPES:
        raise ValidationError(f"Attribute type must be one of: {', '.join(ATTRIBUTE_TYPES)}")
    return t


def list_attributes(conn, attr_type: str) -> list[dict]:
    t = _check_attribute_type(attr_type)
    return [dict(r) for r in q(conn, "SELECT * FROM attributes WHERE type=? ORDER BY name COLLATE NOCASE", (t,))]


def add_attribute(conn, attr_type: str, name: str) -> int:
    t = _check_attribute_type(attr_type)
    name = (name or "").strip()
    if not name:
        raise ValidationError(field_errors={"name": "Name is required."})
    if q1(conn, "SELECT 1 FROM attributes WHERE type=? AND LOWER(name)=?", (t, name.lower())):
        raise DuplicateError(field_errors={"name": f"{name} already exists."})
    return x(conn, "INSERT INTO attributes (type, name) VALUES (?, ?)", (t, name))


def delete_attribute(conn, attribute_id: int) -> None:
    in_use = q1(conn, "SELECT 1 FROM products WHERE taste_id=? LIMIT 1", (int(attribute_id),))
    if in_use:
        raise ValidationError("Attribute is used by a product.")
    TableRepository(conn, "attributes").delete(attribute_id)


# -------------------------
# Products
# -------------------------

@dataclass
class VariationInput:
    unit_type: str
    price: float
    stock: int
    sku: Optional[str] = None
    id: Optional[int] = None


@dataclass
class ProductInput:
    name: str
    category_id: Optional[int]
    ingredients: str
    taste_id: Optional[int]
    pack_of: str
    max_shelf_life: str
    images: list[str] = field(default_factory=list)
    variations: list[VariationInput] = field(default_factory=list)
    description: Optional[str] = None
    subcategory_id: Optional[int] = None
    sub_subcategory_id: Optional[int] = None
    brand_id: Optional[int] = None
    paid_shipping: bool = False
    shipping_charge: float = 0.0
    youtube_url: Optional[str] = None
    price: Optional[float] = None
    stock: Optional[int] = None
    sku: Optional[str] = None
    active: bool = True

    @property
    def has_variation(self) -> bool:
        return bool(self.variations)


def generate_sku() -> str:
    chars = string.ascii_uppercase + string.digits
    return "SKU-" + "".join(random.choice(chars) for _ in range(8))


def validate_product(data: ProductInput) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not (data.name or "").strip():
        errors["name"] = "Product name is required"
    if not data.category_id:
        errors["category_id"] = "Category is required"
    if not (data.ingredients or "").strip():
        errors["ingredients"] = "Ingredients are required"
    if not data.taste_id:
        errors["taste_id"] = "Taste is required"
    if not str(data.pack_of or "").strip():
        errors["pack_of"] = "Pack of is required"
    if not str(data.max_shelf_life or "").strip():
        errors["max_shelf_life"] = "Max shelf life is required"
    if data.paid_shipping and float(data.shipping_charge or 0) <= 0:
        errors["shipping_charge"] = "Shipping charge must be greater than 0"
    if not data.images:
        errors["images"] = "At least one product image is required"

    if data.variations:
        for i, v in enumerate(data.variations, start=1):
            if not (v.unit_type or "").strip():
                errors[f"variation_{i}_unit_type"] = f"Variation {i}: unit type is required"
            if v.price is None or float(v.price) <= 0:
                errors[f"variation_{i}_price"] = f"Variation {i}: price must be greater than 0"
            if v.stock is None or int(v.stock) < 0:
                errors[f"variation_{i}_stock"] = f"Variation {i}: stock cannot be negative"
    else:
        if data.price is None or float(data.price) <= 0:
            errors["price"] = "Price must be greater than 0"
        if data.stock is None or int(data.stock) < 0:
            errors["stock"] = "Stock cannot be negative"
    return errors


def _product_fields(data: ProductInput) -> dict:
    return {
        "name": data.name.strip(),
        "description": clean_str(data.description),
        "category_id": int(data.category_id),
        "subcategory_id": int(data.subcategory_id) if data.subcategory_id else None,
        "sub_subcategory_id": int(data.sub_subcategory_id) if data.sub_subcategory_id else None,
        "brand_id": int(data.brand_id) if data.brand_id else None,
        "ingredients": data.ingredients.strip(),
        "taste_id": int(data.taste_id),
        "pack_of": str(data.pack_of).strip(),
        "max_shelf_life": str(data.max_shelf_life).strip(),
        "has_variation": 1 if data.has_variation else 0,
        "price": None if data.has_variation else float(data.price),
        "stock": 0 if data.has_variation else int(data.stock),
        "shipping_charge": float(data.shipping_charge) if data.paid_shipping else 0.0,
        "youtube_url": clean_str(data.youtube_url),
        "active": 1 if data.active else 0,
    }


def _variation_rows(data: ProductInput) -> list[dict]:
    return [
        {
            "id": v.id,
            "unit_type": v.unit_type.strip(),
            "price": float(v.price),
            "stock": int(v.stock),
            "sku": clean_str(v.sku),
        }
        for v in data.variations
    ]


def create_product(conn, data: ProductInput) -> int:
    errors = validate_product(data)
    if errors:
        raise ValidationError(field_errors=errors)

    repo = ProductRepository(conn)
    sku = (data.sku or "").strip() or generate_sku()
    if repo.sku_exists(sku):
        raise DuplicateError(field_errors={"sku": f"SKU {sku} already exists."})

    with transaction(conn):
        fields = _product_fields(data)
        fields["sku"] = sku
        fields["created_at"] = iso_now()
        product_id = repo.create(fields)
        repo.sync_variations(product_id, _variation_rows(data))
        repo.replace_images(product_id, data.images)

    logger.info("Product created: %s (%s, %d variation(s))", data.name, sku, len(data.variations))
    return product_id


def update_product(conn, product_id: int, data: ProductInput) -> None:
    errors = validate_product(data)
    if errors:
        raise ValidationError(field_errors=errors)

    repo = ProductRepository(conn)
    repo.require(product_id)
    with transaction(conn):
        repo.update(int(product_id), _product_fields(data))
        repo.sync_variations(int(product_id), _variation_rows(data))
        repo.replace_images(int(product_id), data.images)
    logger.info("Product #%s updated", product_id)


def set_product_active(conn, product_id: int, active: bool) -> None:
    ProductRepository(conn).update(int(product_id), {"active": 1 if active else 0})
    logger.info("Product #%s %s", product_id, "activated" if active else "deactivated")


def delete_product(conn, product_id: int) -> None:
    with transaction(conn):
        # order_items keep their snapshot; product_id goes NULL via FK
        ProductRepository(conn).delete(product_id)
    logger.info("Product #%s deleted", product_id)


def get_product_detail(conn, product_id: int) -> dict:
    row = q1(
        conn,
        """
        SELECT p.*,
               c.name AS category_name,
               s.name AS subcategory_name,
               ss.name AS sub_subcategory_name,
               b.name_en AS brand_name,
               t.name AS taste_name
        FROM products p
        JOIN categories c ON c.id = p.category_id
        LEFT JOIN subcategories s ON s.id = p.subcategory_id
        LEFT JOIN sub_subcategories ss ON ss.id = p.sub_subcategory_id
        LEFT JOIN brands b ON b.id = p.brand_id
        LEFT JOIN attributes t ON t.id = p.taste_id
        WHERE p.id=?
        """,
        (int(product_id),),
    )
    if not row:
        raise NotFoundError(f"Product #{product_id} not found")
    repo = ProductRepository(conn)
    detail = dict(row)
    detail["variations"] = repo.variations(product_id)
    detail["images"] = repo.images(product_id)
    return detail


def product_input_from_detail(detail: dict) -> ProductInput:
    """Prefill for the edit form."""
    return ProductInput(
        name=detail["name"],
        category_id=detail["category_id"],
        ingredients=detail.get("ingredients") or "",
        taste_id=detail.get("taste_id"),
        pack_of=detail.get("pack_of") or "",
        max_shelf_life=detail.get("max_shelf_life") or "",
        images=list(detail.get("images") or []),
        variations=[
            VariationInput(
                unit_type=v["unit_type"], price=float(v["price"]), stock=int(v["stock"]), sku=v.get("sku"), id=v["id"]
            )
            for v in detail.get("variations") or []
        ],
        description=detail.get("description"),
        subcategory_id=detail.get("subcategory_id"),
        sub_subcategory_id=detail.get("sub_subcategory_id"),
        brand_id=detail.get("brand_id"),
        paid_shipping=float(detail.get("shipping_charge") or 0) > 0,
        shipping_charge=float(detail.get("shipping_charge") or 0),
        youtube_url=detail.get("youtube_url"),
        price=detail.get("price"),
        stock=detail.get("stock"),
        sku=detail.get("sku"),
        active=bool(detail.get("active", 1)),
    )


def list_products(
    conn,
    *,
    search: Optional[str] = None,
    category_id: Optional[int] = None,
    active_only: bool = False,
) -> list[dict]:
    """
    Product list with display price/stock.

    For variation products the display price is the cheapest variation and
    stock is the sum over variations.
    """
    where = []
    params: list = []
    if active_only:
        where.append("p.active=1")
    if category_id:
        where.append("p.category_id=?")
        params.append(int(category_id))
    if search and search.strip():
        where.append("(LOWER(p.name) LIKE ? OR LOWER(p.sku) LIKE ?)")
        term = f"%{search.strip().lower()}%"
        params.extend([term, term])

    rows = q(
        conn,
        f"""
        SELECT p.id, p.name, p.sku, p.category_id, p.subcategory_id, p.sub_subcategory_id,
               p.has_variation, p.active, p.shipping_charge, p.created_at,
               c.name AS category_name,
               CASE WHEN p.has_variation=1
                    THEN (SELECT MIN(v.price) FROM product_variations v WHERE v.product_id=p.id)
                    ELSE p.price END AS display_price,
               CASE WHEN p.has_variation=1
                    THEN (SELECT COALESCE(SUM(v.stock),0) FROM product_variations v WHERE v.product_id=p.id)
                    ELSE p.stock END AS total_stock,
               (SELECT image_url FROM product_images i WHERE i.product_id=p.id ORDER BY i.id LIMIT 1) AS image
        FROM products p
        JOIN categories c ON c.id = p.category_id
        {"WHERE " + " AND ".join(where) if where else ""}
        ORDER BY p.created_at DESC, p.id DESC
        """,
        params,
    )
    return [dict(r) for r in rows]


# -------------------------
# Restock
# -------------------------

def list_stock_rows(
    conn,
    *,
    search: Optional[str] = None,
    low_stock_only: bool = False,
    low_stock_threshold: int = 20,
    sort_by: str = "name",
) -> list[dict]:
    """One row per sellable unit: each variation, or the product itself when it has none."""
    order = STOCK_SORTS.get(sort_by, STOCK_SORTS["name"])
    where = []
    params: list = []
    if search and search.strip():
        where.append("(LOWER(product_name) LIKE ? OR LOWER(COALESCE(unit_type,'')) LIKE ?)")
        term = f"%{search.strip().lower()}%"
        params.extend([term, term])
    if low_stock_only:
        where.append("stock < ?")
        params.append(int(low_stock_threshold))

    rows = q(
        conn,
        f"""
        SELECT * FROM (
            SELECT p.id AS product_id, p.name AS product_name, p.sku,
                   v.id AS variation_id, v.unit_type, v.price, v.stock
            FROM products p
            JOIN product_variations v ON v.product_id = p.id
            WHERE p.has_variation=1
            UNION ALL
            SELECT p.id, p.name, p.sku, NULL, NULL, p.price, p.stock
            FROM products p
            WHERE p.has_variation=0
        )
        {"WHERE " + " AND ".join(where) if where else ""}
        ORDER BY {order}, product_id, variation_id
        """,
        params,
    )
    return [dict(r) for r in rows]


def set_variation_stock(conn, variation_id: int, stock: int) -> None:
    if stock is None or int(stock) < 0:
        raise ValidationError(field_errors={"stock": "Stock cannot be negative."})
    n = xn(conn, "UPDATE product_variations SET stock=? WHERE id=?", (int(stock), int(variation_id)))
    if n == 0:
        raise NotFoundError(f"Variation #{variation_id} not found")
    logger.info("Variation #%s stock set to %s", variation_id, stock)


def set_product_stock(conn, product_id: int, stock: int) -> None:
    if stock is None or int(stock) < 0:
        raise ValidationError(field_errors={"stock": "Stock cannot be negative."})
    n = xn(conn, "UPDATE products SET stock=? WHERE id=? AND has_variation=0", (int(stock), int(product_id)))
    if n == 0:
        raise NotFoundError(f"Product #{product_id} not found or uses variations")
    logger.info("Product #%s stock set to %s", product_id, stock)
