from __future__ import annotations

import base64
from datetime import datetime, date, timezone
from typing import Optional


def iso_today() -> str:
    return date.today().isoformat()


def iso_now() -> str:
    # Use UTC ISO timestamps for consistency.
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def safe_div(n: float, d: float) -> float:
    return float(n) / float(d) if d else 0.0


def money(v: Optional[float]) -> float:
    return round(float(v or 0.0), 2)


def clean_str(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s if s else None


def file_to_data_url(data: bytes, mime_type: str = "image/png") -> str:
    """Images are stored inline as data URLs ("data:image/png;base64,...")."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type or 'application/octet-stream'};base64,{encoded}"
