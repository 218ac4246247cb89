"""Tests for barcode label rendering."""
from __future__ import annotations

import pytest

from commerce.exceptions import ValidationError
from commerce.services.barcodes import MAX_LABELS, LabelSpec, label_spec_for, render_label_sheet, render_label_svg


def test_label_spec_prefers_variation_sku():
    product = {"id": 7, "name": "Mango Pickle", "sku": "SKU-AAAA1111", "price": None}
    variation = {"sku": "SKU-BBBB2222", "price": 380.0, "unit_type": "500 g"}

    spec = label_spec_for(product, variation)
    assert spec == LabelSpec(value="SKU-BBBB2222", name="Mango Pickle", price=380.0, unit="500 g")


def test_label_spec_falls_back_to_product_id():
    spec = label_spec_for({"id": 42, "name": "Lemon Pickle", "sku": None, "price": 100})
    assert spec.value == "42"
    assert spec.unit is None


def test_svg_has_no_xml_prolog():
    svg = render_label_svg("SKU-AAAA1111")
    assert svg.startswith("<svg")
    assert "<?xml" not in svg


def test_empty_value_rejected():
    with pytest.raises(ValidationError):
        render_label_svg("")


def test_sheet_repeats_label():
    sheet = render_label_sheet(LabelSpec(value="SKU-AAAA1111", name="Mango <Pickle>", price=200.0), 12)

    assert sheet.count('class="label"') == 12
    assert "Mango &lt;Pickle&gt;" in sheet
    assert "₹200.00" in sheet


@pytest.mark.parametrize("qty", [0, MAX_LABELS + 1])
def test_quantity_bounds(qty):
    with pytest.raises(ValidationError):
        render_label_sheet(LabelSpec(value="X1", name="A", price=1.0), qty)
