"""Tests for homepage content and offers."""
from __future__ import annotations

from datetime import date

import pytest

from commerce.exceptions import ValidationError
from commerce.services.catalog import toggle_category_home
from commerce.services.content import (
    OfferInput,
    active_hero_images,
    active_notification_banner,
    active_offers,
    active_top_banner,
    delete_offer,
    home_categories,
    list_heroes,
    list_offers,
    offer_badge,
    offer_for_product,
    published_instagram_links,
    save_banner,
    save_hero,
    save_instagram_link,
    save_notification_banner,
    save_offer,
    set_hero_active,
    toggle_instagram_published,
    toggle_notification_banner,
    validate_offer,
)


class TestBanners:
    def test_activating_a_banner_switches_others_off(self, conn):
        first = save_banner(conn, title="Diwali sale", active=True)
        second = save_banner(conn, title="Free shipping over 500", bg_color="#000000", active=True)

        assert active_top_banner(conn)["id"] == second
        row = conn.execute("SELECT active FROM banners WHERE id=?", (first,)).fetchone()
        assert row["active"] == 0

    def test_colour_and_title_validation(self, conn):
        with pytest.raises(ValidationError) as exc:
            save_banner(conn, title=" ", bg_color="orange", text_color="#FFF")
        assert set(exc.value.field_errors) == {"title", "bg_color", "text_color"}


class TestHero:
    def test_single_active_hero(self, conn):
        a = save_hero(conn, images=["a1.png", "a2.png"], active=True)
        b = save_hero(conn, images=["b1.png"], active=True)

        actives = [h["id"] for h in list_heroes(conn) if h["active"]]
        assert actives == [b]
        assert active_hero_images(conn) == ["b1.png"]

        set_hero_active(conn, a, True)
        assert active_hero_images(conn) == ["a1.png", "a2.png"]

    def test_images_required(self, conn):
        with pytest.raises(ValidationError):
            save_hero(conn, images=["", None])

    def test_no_active_hero(self, conn):
        save_hero(conn, images=["x.png"], active=False)
        assert active_hero_images(conn) == []


class TestNotificationAndInstagram:
    def test_notification_toggle(self, conn):
        banner_id = save_notification_banner(conn, image_url="n.png")
        assert active_notification_banner(conn)["id"] == banner_id
        assert toggle_notification_banner(conn, banner_id) is False
        assert active_notification_banner(conn) is None

    def test_instagram_publish_flow(self, conn):
        link_id = save_instagram_link(conn, url="https://www.instagram.com/p/Cabc123/")
        assert published_instagram_links(conn) == ["https://www.instagram.com/p/Cabc123/"]
        toggle_instagram_published(conn, link_id)
        assert published_instagram_links(conn) == []

    def test_instagram_url_rejected(self, conn):
        with pytest.raises(ValidationError):
            save_instagram_link(conn, url="https://example.com/p/abc")


def _offer(**overrides) -> OfferInput:
    fields = dict(
        title="Festive Sale",
        discount_type="percentage",
        discount_value=10,
        start_date="2024-10-01",
        end_date="2024-10-31",
    )
    fields.update(overrides)
    return OfferInput(**fields)


class TestOffers:
    def test_validation(self):
        assert validate_offer(_offer()) == {}
        assert "discount_value" in validate_offer(_offer(discount_value=120))
        assert "discount_value" in validate_offer(_offer(discount_value=0))
        assert "end_date" in validate_offer(_offer(start_date="2024-11-01"))
        assert "category_id" in validate_offer(_offer(all_products=False, category_id=1))
        assert validate_offer(_offer(discount_type="flat", discount_value=150)) == {}

    def test_active_window(self, conn):
        save_offer(conn, _offer())
        assert len(active_offers(conn, date(2024, 10, 1))) == 1
        assert len(active_offers(conn, date(2024, 10, 31))) == 1
        assert active_offers(conn, date(2024, 11, 1)) == []

    def test_inactive_offer_hidden(self, conn):
        save_offer(conn, _offer(is_active=False))
        assert active_offers(conn, date(2024, 10, 15)) == []

    def test_scoped_offer_matches_category_path(self, conn, tree):
        save_offer(
            conn,
            _offer(
                title="Mango Week",
                discount_type="flat",
                discount_value=50,
                all_products=False,
                **tree,
            ),
        )
        offers = active_offers(conn, date(2024, 10, 10))
        mango = {"category_id": tree["category_id"], "subcategory_id": tree["subcategory_id"],
                 "sub_subcategory_id": tree["sub_subcategory_id"]}
        other = {**mango, "sub_subcategory_id": tree["sub_subcategory_id"] + 1}

        assert offer_for_product(mango, offers)["title"] == "Mango Week"
        assert offer_for_product(other, offers) is None
        assert list_offers(conn)[0]["sub_subcategory_name"] == "Mango"

    def test_biggest_offer_wins_and_badge(self, conn):
        save_offer(conn, _offer(title="Small", discount_value=5))
        save_offer(conn, _offer(title="Big", discount_value=25))
        offer = offer_for_product({"category_id": 1}, active_offers(conn, date(2024, 10, 10)))

        assert offer["title"] == "Big"
        assert offer_badge(offer) == "25% OFF"
        assert offer_badge({"discount_type": "flat", "discount_value": 50.0}) == "₹50 OFF"

    def test_delete(self, conn):
        offer_id = save_offer(conn, _offer())
        delete_offer(conn, offer_id)
        assert list_offers(conn) == []


def test_home_categories(conn, tree):
    assert home_categories(conn) == []
    toggle_category_home(conn, tree["category_id"])
    assert [c["name"] for c in home_categories(conn)] == ["Pickles"]
