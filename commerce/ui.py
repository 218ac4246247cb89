"""Shared bits for page scripts: DB bootstrap, access guard, error display."""
from __future__ import annotations

from typing import Optional

import streamlit as st

from commerce.auth import SessionContext, allowed_sections, get_session
from commerce.config import Settings, get_settings
from commerce.db import ensure_schema, get_conn
from commerce.exceptions import CommerceError, ValidationError
from commerce.logging_setup import get_logger
from commerce.utils import file_to_data_url

logger = get_logger("ui")


def open_db() -> tuple[Settings, object]:
    settings = get_settings()
    conn = get_conn(settings.db_path)
    ensure_schema(conn)
    return settings, conn


def guard(section: str) -> SessionContext:
    """Stop the page unless the signed-in staff role may open `section`."""
    ctx = get_session(st.session_state)
    if section not in allowed_sections(ctx.role):
        st.error("You do not have access to this section. Log in from the Home page.")
        st.stop()
    return ctx


def show_error(e: Exception) -> None:
    if isinstance(e, ValidationError) and len(e.field_errors) > 1:
        st.error(e.message)
        for msg in e.field_errors.values():
            st.caption(f"• {msg}")
    elif isinstance(e, CommerceError):
        st.error(e.message)
    else:
        logger.exception("Unexpected error")
        st.error(str(e))


def fmt_money(v: Optional[float], symbol: str = "₹") -> str:
    return f"{symbol}{float(v or 0):,.2f}"


def uploaded_to_data_url(uploaded) -> Optional[str]:
    if uploaded is None:
        return None
    return file_to_data_url(uploaded.getvalue(), uploaded.type)
