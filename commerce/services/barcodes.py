from __future__ import annotations

import html
import io
from dataclasses import dataclass
from typing import Optional

import barcode
from barcode.writer import SVGWriter

from commerce.exceptions import ValidationError

MAX_LABELS = 500

_LABEL_OPTIONS = {
    "module_width": 0.25,
    "module_height": 10.0,
    "font_size": 8,
    "text_distance": 3.0,
    "quiet_zone": 2.0,
}


@dataclass
class LabelSpec:
    value: str
    name: str
    price: float
    unit: Optional[str] = None


def label_spec_for(product: dict, variation: Optional[dict] = None) -> LabelSpec:
    sku = (variation or {}).get("sku") or product.get("sku") or str(product["id"])
    price = float(variation["price"]) if variation else float(product.get("price") or 0.0)
    return LabelSpec(
        value=str(sku),
        name=str(product["name"]),
        price=price,
        unit=str(variation["unit_type"]) if variation else None,
    )


def render_label_svg(value: str) -> str:
    """Code128 symbol as an inline <svg> element."""
    if not value:
        raise ValidationError("Barcode value is empty.")
    code = barcode.get("code128", str(value), writer=SVGWriter())
    buf = io.BytesIO()
    code.write(buf, options=_LABEL_OPTIONS)
    svg = buf.getvalue().decode("utf-8")
    # drop the XML prolog so the markup can sit inside HTML
    return svg[svg.find("<svg"):]


def render_label_sheet(spec: LabelSpec, qty: int, brand: str = "Swaadha", currency_symbol: str = "₹") -> str:
    """Printable HTML page with `qty` identical labels laid out in a grid."""
    qty = int(qty)
    if qty < 1 or qty > MAX_LABELS:
        raise ValidationError(field_errors={"qty": f"Quantity must be between 1 and {MAX_LABELS}."})

    svg = render_label_svg(spec.value)
    title = html.escape(spec.name if not spec.unit else f"{spec.name} ({spec.unit})")
    label = f"""
      <div class="label">
        <div class="brand">{html.escape(brand)}</div>
        <div class="name">{title}</div>
        <div class="code">{svg}</div>
        <div class="price">{currency_symbol}{spec.price:,.2f}</div>
      </div>"""

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Labels - {title}</title>
<style>
  body {{ font-family: Arial, sans-serif; margin: 8px; }}
  .sheet {{ display: flex; flex-wrap: wrap; gap: 6px; }}
  .label {{ width: 48mm; border: 1px dashed #999; padding: 4px; text-align: center; page-break-inside: avoid; }}
  .brand {{ font-weight: bold; font-size: 11px; }}
  .name {{ font-size: 10px; white-space: nowrap; overflow: hidden; text-overflow: ellipsis; }}
  .code svg {{ width: 100%; height: auto; }}
  .price {{ font-size: 11px; font-weight: bold; }}
  @media print {{ .label {{ border: none; }} }}
</style>
</head>
<body>
<div class="sheet">{label * qty}
</div>
</body>
</html>
"""
