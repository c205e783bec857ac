#!/usr/bin/env python3
"""
Catalog Seeding Script.

Loads users and books from a JSON fixture into the SQLite catalog so the
API has something to search, browse and exchange.

Fixture format:
    {
      "users": [{"username": "alice", "subscription_status": "active", ...}],
      "books": [{"title": "...", "author": "...", "owner": "alice",
                 "genre": "Mystery", "condition": "Good", ...}]
    }

Users are matched by username, so running the script twice does not
duplicate them. Books are always added.

Usage:
    python -m scripts.seed_catalog --fixture scripts/fixtures/sample_catalog.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Tuple
from uuid import UUID

from app.domain.entities import Book, User
from app.domain.ports import CatalogStore
from app.domain.utils.uuid7 import uuid7
from app.domain.value_objects import UserQuery
from app.infrastructure.db.sqlite_catalog_store import SqliteCatalogStore

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path("data/bookswap.db")
DEFAULT_FIXTURE = Path(__file__).parent / "fixtures" / "sample_catalog.json"

USER_FIELDS = (
    "email",
    "avatar_url",
    "phone_number",
    "location_city",
    "latitude",
    "longitude",
    "subscription_status",
)
BOOK_FIELDS = ("description", "genre", "condition", "cover_image_url", "is_available")


def _upsert_user(store: CatalogStore, record: dict) -> UUID:
    """Return the id of the user named in `record`, creating it if missing."""
    username = record["username"]
    for existing in store.find_users(UserQuery(username_contains=username)):
        if existing.username == username:
            return existing.id

    user = User(
        id=uuid7(),
        username=username,
        **{key: record[key] for key in USER_FIELDS if key in record},
    )
    store.save_user(user)
    return user.id


def load_fixture(store: CatalogStore, fixture: dict) -> Tuple[int, int]:
    """
    Load a fixture dict into the store.

    Args:
        store: Target catalog store
        fixture: Parsed fixture with "users" and "books" lists

    Returns:
        (number of users processed, number of books added)

    Raises:
        ValueError: If a book names an owner missing from "users",
                    or a record fails entity validation
    """
    owners: Dict[str, UUID] = {}
    for record in fixture.get("users", []):
        owners[record["username"]] = _upsert_user(store, record)

    books_added = 0
    for record in fixture.get("books", []):
        owner = record.get("owner")
        if owner not in owners:
            raise ValueError(f"Book '{record.get('title')}' has unknown owner '{owner}'")

        book = Book.create_new(
            title=record["title"],
            author=record["author"],
            owner_id=owners[owner],
            **{key: record[key] for key in BOOK_FIELDS if key in record},
        )
        store.save_book(book)
        books_added += 1

    return len(owners), books_added


def main(fixture_path: Path, db_path: Path = DEFAULT_DB_PATH) -> Tuple[int, int]:
    """
    Main entry point for the seeding script.

    Returns:
        (users, books) counts
    """
    logger.info(f"Seeding {db_path} from {fixture_path}")

    try:
        with open(fixture_path, encoding="utf-8") as f:
            fixture = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Cannot read fixture {fixture_path}: {e}")
        sys.exit(1)

    store = SqliteCatalogStore(db_path)
    try:
        users, books = load_fixture(store, fixture)
    except (ValueError, RuntimeError) as e:
        logger.error(f"Seeding failed: {e}")
        sys.exit(1)

    logger.info(f"Seeded {users} users and {books} books")
    return users, books


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    parser = argparse.ArgumentParser(description="Seed the SQLite catalog from a JSON fixture")
    parser.add_argument(
        "--fixture", "-f",
        type=Path,
        default=DEFAULT_FIXTURE,
        help="Path to the JSON fixture",
    )
    parser.add_argument(
        "--db-path",
        type=Path,
        default=DEFAULT_DB_PATH,
        help="SQLite database file",
    )
    args = parser.parse_args()

    main(fixture_path=args.fixture, db_path=args.db_path)
