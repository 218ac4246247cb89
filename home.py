from __future__ import annotations

import streamlit as st

from commerce.auth import (
    check_captcha,
    clear_session,
    generate_captcha,
    get_session,
    login_staff,
    set_session,
)
from commerce.services.demo_data import upsert_reference_data
from commerce.ui import open_db, show_error
from commerce.validation import password_rules

st.set_page_config(page_title="Swaadha Commerce", page_icon="🛍️", layout="wide")

settings, conn = open_db()
upsert_reference_data(conn, admin_email=settings.admin_email, admin_password=settings.admin_password)

st.title(f"🛍️ {settings.store_name} · Commerce Console")
st.caption("Catalog, point of sale, orders, homepage content and reports for the store, plus the customer storefront.")

with st.sidebar:
    st.subheader("Environment")
    st.write(f"**Data directory:** `{settings.data_dir}`")
    st.write(f"**Database:** `{settings.db_path.name}`")
    st.write(f"**Payments:** {'Razorpay' if settings.razorpay_key_id else 'COD only (no gateway keys)'}")

ctx = get_session(st.session_state)

if ctx.is_staff:
    st.success(f"Signed in as **{ctx.email}** ({ctx.role.value}).")
    st.info("Use the left sidebar navigation. Start with **🧪 Data Management** to load demo data.", icon="ℹ️")
    if st.button("Log out"):
        clear_session(st.session_state)
        st.rerun()
    st.stop()

st.info("Customers: browse the **Shop** in the sidebar. Staff: sign in below.", icon="ℹ️")

if "staff_captcha" not in st.session_state:
    st.session_state["staff_captcha"] = generate_captcha()

st.subheader("Staff login")
with st.form("staff_login"):
    email = st.text_input("Email")
    password = st.text_input("Password", type="password")
    st.code(st.session_state["staff_captcha"], language=None)
    captcha = st.text_input("Type the characters above")
    submitted = st.form_submit_button("Log in", type="primary")

if password:
    for label, ok in password_rules(password):
        st.caption(f"{'✅' if ok else '❌'} {label}")

if submitted:
    if not check_captcha(st.session_state["staff_captcha"], captcha):
        st.error("Captcha does not match.")
        st.session_state["staff_captcha"] = generate_captcha()
    else:
        try:
            if ctx.is_authenticated:
                clear_session(st.session_state)
            set_session(st.session_state, login_staff(conn, email, password))
            st.session_state.pop("staff_captcha", None)
            st.rerun()
        except Exception as e:
            st.session_state["staff_captcha"] = generate_captcha()
            show_error(e)

if st.button("New captcha"):
    st.session_state["staff_captcha"] = generate_captcha()
    st.rerun()
