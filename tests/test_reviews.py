"""Tests for product reviews."""
from __future__ import annotations

import pytest

from commerce.auth import SessionContext
from commerce.exceptions import AuthError, NotFoundError, ValidationError
from commerce.services.reviews import add_review, average_rating, list_reviews


def test_review_requires_customer(conn, simple_product):
    with pytest.raises(AuthError):
        add_review(conn, SessionContext.anonymous(), simple_product, 5)


@pytest.mark.parametrize("rating", [0, 6, "x", None])
def test_rating_range(conn, customer, simple_product, rating):
    with pytest.raises(ValidationError):
        add_review(conn, customer, simple_product, rating)


def test_unknown_product(conn, customer):
    with pytest.raises(NotFoundError):
        add_review(conn, customer, 999, 4)


def test_list_and_average(conn, customer, simple_product):
    assert average_rating(conn, simple_product) == (0.0, 0)

    add_review(conn, customer, simple_product, 5, "Tastes like home")
    add_review(conn, customer, simple_product, 4, "  ")

    reviews = list_reviews(conn, simple_product)
    assert len(reviews) == 2
    assert {r["reviewer"] for r in reviews} == {"Asha"}
    assert {r["comment"] for r in reviews} == {"Tastes like home", None}
    assert average_rating(conn, simple_product) == (4.5, 2)
