from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator

import streamlit as st

from commerce.logging_setup import get_logger
from commerce.schema import SCHEMA_SQL

logger = get_logger("db")

# Open transaction depth per connection; writes inside a transaction do not commit.
_TX_DEPTH: dict[int, int] = {}


def _connect(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@st.cache_resource
def get_conn(db_path: Path) -> sqlite3.Connection:
    logger.info("Opening database %s", db_path)
    return _connect(db_path)


def _column_exists(conn: sqlite3.Connection, table: str, column: str) -> bool:
    rows = conn.execute(f"PRAGMA table_info({table});").fetchall()
    cols = [r["name"] for r in rows]
    return column in cols


def table_columns(conn: sqlite3.Connection, table: str) -> list[str]:
    return [r["name"] for r in conn.execute(f"PRAGMA table_info({table});").fetchall()]


def ensure_schema(conn: sqlite3.Connection) -> None:
    # Create base schema (for new installs)
    conn.executescript(SCHEMA_SQL)

    # ---- migrations for existing installs ----
    if not _column_exists(conn, "orders", "idempotency_key"):
        conn.execute("ALTER TABLE orders ADD COLUMN idempotency_key TEXT;")
    if not _column_exists(conn, "orders", "gateway_order_id"):
        conn.execute("ALTER TABLE orders ADD COLUMN gateway_order_id TEXT;")
    if not _column_exists(conn, "products", "brand_id"):
        conn.execute("ALTER TABLE products ADD COLUMN brand_id INTEGER REFERENCES brands(id);")

    conn.commit()


def dump_sql(conn: sqlite3.Connection) -> str:
    """Full SQL dump (schema + rows) for a downloadable backup."""
    if conn.in_transaction and not in_transaction(conn):
        conn.commit()
    return "\n".join(conn.iterdump()) + "\n"


def in_transaction(conn: sqlite3.Connection) -> bool:
    return _TX_DEPTH.get(id(conn), 0) > 0


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    Run a group of writes as one unit.

    Nested calls join the outer transaction. The outermost block commits on
    success and rolls everything back on any exception.
    """
    key = id(conn)
    depth = _TX_DEPTH.get(key, 0)
    if depth == 0:
        if conn.in_transaction:
            conn.commit()
        conn.execute("BEGIN IMMEDIATE")
    _TX_DEPTH[key] = depth + 1
    try:
        yield conn
    except Exception:
        if depth == 0:
            conn.rollback()
            logger.warning("Transaction rolled back")
        raise
    else:
        if depth == 0:
            conn.commit()
    finally:
        if depth == 0:
            _TX_DEPTH.pop(key, None)
        else:
            _TX_DEPTH[key] = depth


def q(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
    cur = conn.execute(sql, tuple(params))
    rows = cur.fetchall()
    cur.close()
    return rows


def q1(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> sqlite3.Row | None:
    rows = q(conn, sql, params)
    return rows[0] if rows else None


def x(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> int:
    cur = conn.execute(sql, tuple(params))
    if not in_transaction(conn):
        conn.commit()
    last = cur.lastrowid
    cur.close()
    return int(last or 0)


def xn(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> int:
    """Like x() but returns the number of affected rows."""
    cur = conn.execute(sql, tuple(params))
    if not in_transaction(conn):
        conn.commit()
    n = cur.rowcount
    cur.close()
    return int(n)
