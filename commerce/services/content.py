from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from commerce.db import q, q1, transaction, x
from commerce.exceptions import ValidationError
from commerce.logging_setup import get_logger
from commerce.repositories import TableRepository
from commerce.utils import iso_now, iso_today
from commerce.validation import HEX_COLOR_RE, INSTAGRAM_URL_RE

logger = get_logger("content")

DISCOUNT_TYPES = ("percentage", "flat")


def _deactivate_others(conn, table: str, keep_id: int) -> None:
    x(conn, f"UPDATE {table} SET active=0 WHERE id<>?", (int(keep_id),))


def _toggle(conn, table: str, row_id: int, column: str = "active") -> bool:
    repo = TableRepository(conn, table)
    row = repo.require(row_id)
    new_val = 0 if int(row[column]) else 1
    repo.update(int(row_id), {column: new_val})
    return bool(new_val)


# -------------------------
# Top banner
# -------------------------

def list_banners(conn) -> list[dict]:
    return TableRepository(conn, "banners").list(order_by="created_at", descending=True)


def save_banner(
    conn,
    *,
    banner_id: Optional[int] = None,
    title: str,
    bg_color: str = "#F97316",
    text_color: str = "#FFFFFF",
    active: bool = False,
) -> int:
    title = (title or "").strip()
    errors: dict[str, str] = {}
    if not title:
        errors["title"] = "Banner text is required."
    if not HEX_COLOR_RE.match(bg_color or ""):
        errors["bg_color"] = "Background colour must be a hex value like #F97316."
    if not HEX_COLOR_RE.match(text_color or ""):
        errors["text_color"] = "Text colour must be a hex value like #FFFFFF."
    if errors:
        raise ValidationError(field_errors=errors)

    repo = TableRepository(conn, "banners")
    fields = {"title": title, "bg_color": bg_color, "text_color": text_color, "active": 1 if active else 0}
    with transaction(conn):
        if banner_id is None:
            fields["created_at"] = iso_now()
            banner_id = repo.create(fields)
        else:
            repo.update(int(banner_id), fields)
        if active:
            _deactivate_others(conn, "banners", banner_id)
    logger.info("Top banner #%s saved (active=%s)", banner_id, active)
    return int(banner_id)


def delete_banner(conn, banner_id: int) -> None:
    TableRepository(conn, "banners").delete(banner_id)


def active_top_banner(conn) -> Optional[dict]:
    row = q1(conn, "SELECT * FROM banners WHERE active=1 ORDER BY created_at DESC LIMIT 1")
    return dict(row) if row else None


# -------------------------
# Hero slider
# -------------------------

def _hero_row(row: dict) -> dict:
    try:
        row["images"] = json.loads(row.get("images") or "[]")
    except ValueError:
        row["images"] = []
    return row


def list_heroes(conn) -> list[dict]:
    return [_hero_row(r) for r in TableRepository(conn, "hero_sections").list(order_by="created_at", descending=True)]


def save_hero(conn, *, hero_id: Optional[int] = None, images: Iterable[str], active: bool = False) -> int:
    """Only one hero slider can be live; activating this one switches the others off."""
    images = [i for i in images if i]
    if not images:
        raise ValidationError(field_errors={"images": "Add at least one slider image."})

    repo = TableRepository(conn, "hero_sections")
    fields = {"images": json.dumps(images), "active": 1 if active else 0}
    with transaction(conn):
        if hero_id is None:
            fields["created_at"] = iso_now()
            hero_id = repo.create(fields)
        else:
            repo.update(int(hero_id), fields)
        if active:
            _deactivate_others(conn, "hero_sections", hero_id)
    logger.info("Hero slider #%s saved with %d image(s) (active=%s)", hero_id, len(images), active)
    return int(hero_id)


def set_hero_active(conn, hero_id: int, active: bool) -> None:
    repo = TableRepository(conn, "hero_sections")
    with transaction(conn):
        repo.update(int(hero_id), {"active": 1 if active else 0})
        if active:
            _deactivate_others(conn, "hero_sections", hero_id)


def delete_hero(conn, hero_id: int) -> None:
    TableRepository(conn, "hero_sections").delete(hero_id)


def active_hero_images(conn) -> list[str]:
    row = q1(conn, "SELECT * FROM hero_sections WHERE active=1 ORDER BY created_at DESC LIMIT 1")
    return _hero_row(dict(row))["images"] if row else []


# -------------------------
# Notification banner
# -------------------------

def list_notification_banners(conn) -> list[dict]:
    return TableRepository(conn, "notification_banners").list(order_by="created_at", descending=True)


def save_notification_banner(conn, *, image_url: str, active: bool = True) -> int:
    if not image_url:
        raise ValidationError(field_errors={"image_url": "Upload a banner image."})
    return TableRepository(conn, "notification_banners").create(
        {"image_url": image_url, "active": 1 if active else 0, "created_at": iso_now()}
    )


def toggle_notification_banner(conn, banner_id: int) -> bool:
    return _toggle(conn, "notification_banners", banner_id)


def delete_notification_banner(conn, banner_id: int) -> None:
    TableRepository(conn, "notification_banners").delete(banner_id)


def active_notification_banner(conn) -> Optional[dict]:
    row = q1(conn, "SELECT * FROM notification_banners WHERE active=1 ORDER BY created_at DESC LIMIT 1")
    return dict(row) if row else None


# -------------------------
# Instagram
# -------------------------

def list_instagram_links(conn) -> list[dict]:
    return TableRepository(conn, "instagram_links").list(order_by="created_at", descending=True)


def save_instagram_link(conn, *, link_id: Optional[int] = None, url: str, published: bool = True) -> int:
    url = (url or "").strip()
    if not INSTAGRAM_URL_RE.match(url):
        raise ValidationError(field_errors={"url": "Enter a valid Instagram post or reel URL."})
    repo = TableRepository(conn, "instagram_links")
    if link_id is None:
        return repo.create({"url": url, "published": 1 if published else 0, "created_at": iso_now()})
    repo.update(int(link_id), {"url": url, "published": 1 if published else 0, "updated_at": iso_now()})
    return int(link_id)


def toggle_instagram_published(conn, link_id: int) -> bool:
    return _toggle(conn, "instagram_links", link_id, column="published")


def delete_instagram_link(conn, link_id: int) -> None:
    TableRepository(conn, "instagram_links").delete(link_id)


def published_instagram_links(conn) -> list[str]:
    rows = q(conn, "SELECT url FROM instagram_links WHERE published=1 ORDER BY created_at DESC")
    return [str(r["url"]) for r in rows]


# -------------------------
# Offers
# -------------------------

@dataclass
class OfferInput:
    title: str
    discount_type: str
    discount_value: float
    start_date: Optional[str]
    end_date: Optional[str]
    all_products: bool = True
    category_id: Optional[int] = None
    subcategory_id: Optional[int] = None
    sub_subcategory_id: Optional[int] = None
    is_active: bool = True


def validate_offer(data: OfferInput) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not (data.title or "").strip():
        errors["title"] = "Offer title is required."
    if data.discount_type not in DISCOUNT_TYPES:
        errors["discount_type"] = "Choose percentage or flat."
    try:
        value = float(data.discount_value)
    except (TypeError, ValueError):
        value = 0.0
    if value <= 0:
        errors["discount_value"] = "Discount must be greater than 0."
    elif data.discount_type == "percentage" and value > 100:
        errors["discount_value"] = "Percentage discount cannot exceed 100."
    if not data.start_date:
        errors["start_date"] = "Start date is required."
    if not data.end_date:
        errors["end_date"] = "End date is required."
    if data.start_date and data.end_date and str(data.start_date) > str(data.end_date):
        errors["end_date"] = "End date must be on or after the start date."
    if not data.all_products and not (data.category_id and data.subcategory_id and data.sub_subcategory_id):
        errors["category_id"] = "Select category, subcategory and sub-subcategory."
    return errors


def save_offer(conn, data: OfferInput, offer_id: Optional[int] = None) -> int:
    errors = validate_offer(data)
    if errors:
        raise ValidationError(field_errors=errors)
    fields = {
        "title": data.title.strip(),
        "discount_type": data.discount_type,
        "discount_value": float(data.discount_value),
        "category_id": None if data.all_products else int(data.category_id),
        "subcategory_id": None if data.all_products else int(data.subcategory_id),
        "sub_subcategory_id": None if data.all_products else int(data.sub_subcategory_id),
        "start_date": str(data.start_date),
        "end_date": str(data.end_date),
        "is_active": 1 if data.is_active else 0,
    }
    repo = TableRepository(conn, "offers")
    if offer_id is None:
        offer_id = repo.create(fields)
    else:
        repo.update(int(offer_id), fields)
    logger.info("Offer #%s saved: %s", offer_id, data.title)
    return int(offer_id)


def list_offers(conn) -> list[dict]:
    rows = q(
        conn,
        """
        SELECT o.*, c.name AS category_name, s.name AS subcategory_name, ss.name AS sub_subcategory_name
        FROM offers o
        LEFT JOIN categories c ON c.id = o.category_id
        LEFT JOIN subcategories s ON s.id = o.subcategory_id
        LEFT JOIN sub_subcategories ss ON ss.id = o.sub_subcategory_id
        ORDER BY o.start_date DESC, o.id DESC
        """,
    )
    return [dict(r) for r in rows]


def delete_offer(conn, offer_id: int) -> None:
    TableRepository(conn, "offers").delete(offer_id)


def active_offers(conn, today: Optional[date] = None) -> list[dict]:
    day = today.isoformat() if today else iso_today()
    rows = q(
        conn,
        "SELECT * FROM offers WHERE is_active=1 AND start_date<=? AND end_date>=? ORDER BY discount_value DESC",
        (day, day),
    )
    return [dict(r) for r in rows]


def offer_applies(offer: dict, product: dict) -> bool:
    if offer.get("category_id") is None:
        return True
    for key in ("category_id", "subcategory_id", "sub_subcategory_id"):
        if offer.get(key) is not None and offer[key] != product.get(key):
            return False
    return True


def offer_for_product(product: dict, offers: Iterable[dict]) -> Optional[dict]:
    """First matching offer; callers pass offers already sorted by value."""
    for offer in offers:
        if offer_applies(offer, product):
            return offer
    return None


def offer_badge(offer: dict, currency_symbol: str = "₹") -> str:
    value = float(offer["discount_value"])
    if offer["discount_type"] == "percentage":
        return f"{value:g}% OFF"
    return f"{currency_symbol}{value:g} OFF"


# -------------------------
# Home page
# -------------------------

def home_categories(conn) -> list[dict]:
    rows = q(conn, "SELECT * FROM categories WHERE home_status=1 ORDER BY priority, id")
    return [dict(r) for r in rows]
