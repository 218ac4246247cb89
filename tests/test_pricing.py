"""Unit tests for storefront and counter totals."""
from __future__ import annotations

import pytest

from commerce.services.pricing import (
    CartLine,
    clamp_stock,
    compute_cart_totals,
    compute_pos_totals,
    line_ships_free,
    remaining_for_free_shipping,
)


def _line(price, qty, shipping=0.0, stock=None, pid=1):
    return CartLine(product_id=pid, name=f"P{pid}", price=price, quantity=qty, shipping_charge=shipping, stock=stock)


class TestCartTotals:
    def test_per_line_shipping_example(self):
        """400 + 100 is 500 overall, but neither line reaches 500 on its own."""
        lines = [_line(200, 2, 50, pid=1), _line(100, 1, 30, pid=2)]
        totals = compute_cart_totals(lines)

        assert totals.subtotal == 500.0
        assert totals.shipping == 80.0
        assert totals.grand_total == 580.0

    def test_threshold_is_inclusive(self):
        line = _line(250, 2, 60)
        assert line_ships_free(line)
        assert compute_cart_totals([line]).shipping == 0.0

    def test_just_below_threshold_pays_shipping(self):
        line = _line(499.99, 1, 40)
        assert not line_ships_free(line)
        assert compute_cart_totals([line]).shipping == 40.0

    def test_grand_total_identity_with_discount(self):
        lines = [_line(120, 3, 40, pid=1), _line(600, 1, 70, pid=2), _line(45.5, 2, 10, pid=3)]
        totals = compute_cart_totals(lines, discount=25)

        assert totals.grand_total == pytest.approx(totals.subtotal + totals.shipping - totals.discount)
        assert totals.shipping == 50.0

    def test_out_of_stock_lines_are_not_charged(self):
        lines = [_line(200, 1, 50, stock=4, pid=1), _line(300, 1, 50, stock=0, pid=2)]
        totals = compute_cart_totals(lines)

        assert totals.subtotal == 200.0
        assert totals.shipping == 50.0

    def test_custom_threshold(self):
        assert compute_cart_totals([_line(100, 1, 20)], threshold=100).shipping == 0.0

    def test_empty_cart(self):
        totals = compute_cart_totals([])
        assert (totals.subtotal, totals.shipping, totals.grand_total) == (0.0, 0.0, 0.0)


class TestPosTotals:
    def test_no_shipping_tax_and_discount_applied(self):
        lines = [_line(200, 2, 50), _line(100, 1, 30, pid=2)]
        totals = compute_pos_totals(lines, tax=18, discount=10)

        assert totals.shipping == 0.0
        assert totals.grand_total == 508.0

    def test_negative_inputs_rejected(self):
        with pytest.raises(ValueError):
            compute_pos_totals([_line(10, 1)], tax=-1)
        with pytest.raises(ValueError):
            compute_pos_totals([_line(10, 1)], discount=-5)


class TestStockHelpers:
    @pytest.mark.parametrize(
        "current,qty,expected",
        [(10, 3, 7), (3, 3, 0), (2, 5, 0), (0, 1, 0)],
    )
    def test_clamp_never_negative(self, current, qty, expected):
        assert clamp_stock(current, qty) == expected

    def test_remaining_for_free_shipping(self):
        assert remaining_for_free_shipping(400) == 100.0
        assert remaining_for_free_shipping(650) == 0.0
