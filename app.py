from __future__ import annotations

import streamlit as st

from commerce.auth import Role, allowed_sections, get_session

st.set_page_config(page_title="Swaadha Commerce", page_icon="🛍️", layout="wide")

ADMIN_PAGES = {
    "Dashboard": st.Page("pages/1_📊_Dashboard.py", title="Dashboard", icon="📊"),
    "POS": st.Page("pages/2_🧾_POS.py", title="POS", icon="🧾"),
    "Orders": st.Page("pages/3_📦_Orders.py", title="Orders", icon="📦"),
    "Categories": st.Page("pages/4_🗂️_Categories.py", title="Categories", icon="🗂️"),
    "Brands": st.Page("pages/5_🏷️_Brands.py", title="Brands", icon="🏷️"),
    "Products": st.Page("pages/6_🥫_Products.py", title="Products", icon="🥫"),
    "Homepage Setup": st.Page("pages/7_🏠_Homepage_Setup.py", title="Homepage Setup", icon="🏠"),
    "Credentials": st.Page("pages/8_🔑_Credentials.py", title="Credentials", icon="🔑"),
    "Customers": st.Page("pages/9_👥_Customers.py", title="Customers", icon="👥"),
    "Reports": st.Page("pages/10_📈_Reports.py", title="Reports", icon="📈"),
    "Data Management": st.Page("pages/11_🧪_Data_Management.py", title="Data Management", icon="🧪"),
}

STORE_PAGES = [
    st.Page("pages/20_🛍️_Shop.py", title="Shop", icon="🛍️"),
    st.Page("pages/21_🛒_Cart.py", title="Cart", icon="🛒"),
    st.Page("pages/22_💳_Checkout.py", title="Checkout", icon="💳"),
    st.Page("pages/23_📬_My_Orders.py", title="My Orders", icon="📬"),
    st.Page("pages/24_👤_Account.py", title="Account", icon="👤"),
]

ctx = get_session(st.session_state)
home = st.Page("home.py", title="Home", icon="🏠", default=True)

if ctx.role in (Role.ADMIN, Role.SUBADMIN):
    pages = {
        "Console": [home] + [ADMIN_PAGES[s] for s in allowed_sections(ctx.role)],
        "Storefront": STORE_PAGES,
    }
else:
    pages = {"Storefront": [home] + STORE_PAGES}

st.navigation(pages).run()
