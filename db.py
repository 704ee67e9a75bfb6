"""
db.py
SQLite helpers + initialization (creates DB/tables with cascade rules).
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

import config
from errors import StorageError

logger = logging.getLogger(__name__)


@contextmanager
def get_conn(db_file: str | Path | None = None):
    conn = sqlite3.connect(db_file or config.DB_FILE, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON;")
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        logger.error("SQLite error: %s", e)
        raise StorageError(str(e)) from e
    finally:
        conn.close()


def execute(sql: str, params: tuple = (), db_file=None) -> int:
    """Run a write statement; returns the number of affected rows."""
    with get_conn(db_file) as conn:
        cur = conn.execute(sql, params)
        return cur.rowcount


def executemany(sql: str, seq_of_params: list[tuple], db_file=None) -> None:
    with get_conn(db_file) as conn:
        conn.executemany(sql, seq_of_params)


def execute_in_transaction(statements: list[tuple[str, tuple]], db_file=None) -> int:
    """
    Run several statements atomically (all or nothing).
    Returns the affected row count of the last statement.
    """
    rowcount = 0
    with get_conn(db_file) as conn:
        for sql, params in statements:
            rowcount = conn.execute(sql, params).rowcount
    return rowcount


def fetch_one(sql: str, params: tuple = (), db_file=None):
    with get_conn(db_file) as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = (), db_file=None) -> list[sqlite3.Row]:
    with get_conn(db_file) as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


SCHEMA = """
CREATE TABLE IF NOT EXISTS products (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    icon TEXT NOT NULL DEFAULT '📦',
    color TEXT NOT NULL DEFAULT '#6366f1',
    created_at TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS houses (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    product_id TEXT,
    created_at TEXT NOT NULL DEFAULT '',
    FOREIGN KEY(product_id) REFERENCES products(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS members (
    id TEXT PRIMARY KEY,
    house_id TEXT NOT NULL,
    product_id TEXT,
    name TEXT NOT NULL,
    email TEXT NOT NULL DEFAULT '',
    phone TEXT NOT NULL DEFAULT '',
    monthly_fee REAL NOT NULL DEFAULT 0 CHECK(monthly_fee >= 0),
    billing_cycle TEXT NOT NULL DEFAULT 'monthly' CHECK(billing_cycle IN ('monthly','6months','yearly')),
    payment_date TEXT NOT NULL DEFAULT '',
    expiration_date TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT '',
    FOREIGN KEY(house_id) REFERENCES houses(id) ON DELETE CASCADE,
    FOREIGN KEY(product_id) REFERENCES products(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS payment_history (
    id TEXT PRIMARY KEY,
    member_id TEXT NOT NULL,
    amount REAL NOT NULL,
    paid_at TEXT NOT NULL,
    FOREIGN KEY(member_id) REFERENCES members(id) ON DELETE CASCADE
);
"""


def init_db(db_file=None) -> None:
    """Create tables if they don't exist yet."""
    with get_conn(db_file) as conn:
        conn.executescript(SCHEMA)
    logger.debug("Database initialized at %s", db_file or config.DB_FILE)
