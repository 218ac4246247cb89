"""Tests for subadmin and customer administration."""
from __future__ import annotations

import pytest

from commerce.auth import ensure_default_admin, login_staff
from commerce.exceptions import AuthError, DuplicateError, ValidationError
from commerce.services.accounts import (
    customers_page,
    delete_subadmin,
    list_customers,
    list_staff,
    save_subadmin,
    set_customer_blocked,
)


class TestSubadmins:
    def test_create_edit_delete(self, conn):
        admin_id = ensure_default_admin(conn, "admin@swaadha.in", "Admin@123")
        sub_id = save_subadmin(conn, email="sub@swaadha.in", password="Sub@1234")

        assert {s["role"] for s in list_staff(conn)} == {"admin", "subadmin"}

        save_subadmin(conn, staff_id=sub_id, email="desk@swaadha.in")
        assert login_staff(conn, "desk@swaadha.in", "Sub@1234").user_id == sub_id

        save_subadmin(conn, staff_id=sub_id, email="desk@swaadha.in", password="New@4321")
        with pytest.raises(AuthError):
            login_staff(conn, "desk@swaadha.in", "Sub@1234")

        with pytest.raises(ValidationError):
            delete_subadmin(conn, admin_id)
        delete_subadmin(conn, sub_id)
        assert [s["id"] for s in list_staff(conn)] == [admin_id]

    def test_password_policy_on_create(self, conn):
        with pytest.raises(ValidationError):
            save_subadmin(conn, email="sub@swaadha.in", password="weak")

    def test_duplicate_email(self, conn):
        ensure_default_admin(conn, "admin@swaadha.in", "Admin@123")
        with pytest.raises(DuplicateError):
            save_subadmin(conn, email="ADMIN@swaadha.in", password="Sub@1234")

    def test_admin_cannot_be_edited_here(self, conn):
        admin_id = ensure_default_admin(conn, "admin@swaadha.in", "Admin@123")
        with pytest.raises(ValidationError):
            save_subadmin(conn, staff_id=admin_id, email="boss@swaadha.in")


class TestCustomerAdmin:
    @pytest.fixture
    def people(self, conn):
        for i in range(20):
            conn.execute(
                "INSERT INTO customers (name, email, phone, password_hash, is_blocked, created_at) VALUES (?, ?, ?, 'x', ?, ?)",
                (f"Customer {i}", f"c{i}@example.com", f"90000000{i:02d}", 1 if i < 4 else 0, f"2024-01-{i + 1:02d}"),
            )
        conn.commit()

    def test_status_filter(self, conn, people):
        assert len(list_customers(conn, status="Blocked")) == 4
        assert len(list_customers(conn, status="Active")) == 16
        assert len(list_customers(conn)) == 20

    def test_password_hash_not_exposed(self, conn, people):
        row = list_customers(conn)[0]
        assert "password_hash" not in row
        assert row["status"] in {"Active", "Blocked"}

    def test_search_by_email_or_phone(self, conn, people):
        assert [r["email"] for r in list_customers(conn, search="C19@")] == ["c19@example.com"]
        assert len(list_customers(conn, search="9000000001")) == 1

    def test_pages_of_fifteen(self, conn, people):
        first = customers_page(conn, page=1)
        second = customers_page(conn, page=2)
        clamped = customers_page(conn, page=9)

        assert len(first.rows) == 15
        assert len(second.rows) == 5
        assert first.total_pages == 2
        assert clamped.page == 2

    def test_block_and_unblock(self, conn, people):
        customer_id = list_customers(conn, status="Active")[0]["id"]
        set_customer_blocked(conn, customer_id, True)
        assert len(list_customers(conn, status="Blocked")) == 5
        set_customer_blocked(conn, customer_id, False)
        assert len(list_customers(conn, status="Blocked")) == 4
