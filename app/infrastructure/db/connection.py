"""
Shared SQLite connection and schema setup for the db adapters.

Every adapter opens a short-lived connection per call; `with conn:`
wraps a transaction that commits on success and rolls back on error.
Timestamps are stored as ISO-8601 strings in UTC, so lexical order is
chronological order.
"""

import sqlite3
from pathlib import Path
from typing import Optional

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    username TEXT NOT NULL UNIQUE,
    email TEXT,
    avatar_url TEXT,
    phone_number TEXT,
    location_city TEXT,
    latitude REAL,
    longitude REAL,
    subscription_status TEXT NOT NULL DEFAULT 'inactive',
    subscription_end_date TEXT,
    stripe_customer_id TEXT,
    stripe_product_id TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS books (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    author TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    genre TEXT,
    condition TEXT NOT NULL,
    cover_image_url TEXT,
    owner_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    is_available INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_books_owner ON books(owner_id);
CREATE INDEX IF NOT EXISTS idx_books_created ON books(created_at);

CREATE TABLE IF NOT EXISTS exchange_requests (
    id TEXT PRIMARY KEY,
    book_id TEXT NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    requester_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    offered_book_id TEXT REFERENCES books(id) ON DELETE SET NULL,
    status TEXT NOT NULL,
    message TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_requests_book_requester
    ON exchange_requests(book_id, requester_id, status);

CREATE UNIQUE INDEX IF NOT EXISTS idx_requests_one_pending
    ON exchange_requests(book_id, requester_id)
    WHERE status = 'pending';

CREATE TABLE IF NOT EXISTS user_ratings (
    rated_user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    rater_user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
    comment TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (rater_user_id, rated_user_id)
);

CREATE TABLE IF NOT EXISTS notifications (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    type TEXT NOT NULL,
    content TEXT NOT NULL,
    related_id TEXT,
    is_read INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    sender_id TEXT NOT NULL,
    receiver_id TEXT NOT NULL,
    content TEXT NOT NULL,
    is_read INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);
"""


def icontains(haystack: Optional[str], needle: Optional[str]) -> int:
    """Case-insensitive (Unicode-aware) substring test exposed to SQL."""
    if haystack is None or needle is None:
        return 0
    return int(needle.casefold() in haystack.casefold())


def connect(db_path: Path) -> sqlite3.Connection:
    """Open a connection with named-column rows and the ICONTAINS function."""
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row  # access columns by name
    conn.create_function("ICONTAINS", 2, icontains, deterministic=True)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_schema(db_path: Path) -> None:
    """Create the database file and every table if missing."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = connect(db_path)
    try:
        conn.executescript(SCHEMA)
        conn.commit()
    finally:
        conn.close()
