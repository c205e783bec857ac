"""
Tests for the catalog seeding script.
"""

import json

import pytest

from app.domain.value_objects import BookQuery, UserQuery
from app.infrastructure.db.sqlite_catalog_store import SqliteCatalogStore
from scripts.seed_catalog import DEFAULT_FIXTURE, load_fixture, main


FIXTURE = {
    "users": [
        {"username": "alice", "subscription_status": "active", "location_city": "Lisbon"},
        {"username": "bob"},
    ],
    "books": [
        {"title": "Dune", "author": "Frank Herbert", "owner": "alice", "genre": "Science Fiction"},
        {"title": "Emma", "author": "Jane Austen", "owner": "bob", "is_available": False},
    ],
}


@pytest.fixture
def store(tmp_path):
    return SqliteCatalogStore(tmp_path / "seed.db")


class TestLoadFixture:
    def test_loads_users_and_books(self, store):
        users, books = load_fixture(store, FIXTURE)

        assert (users, books) == (2, 2)
        [alice] = store.find_users(UserQuery(username_contains="alice"))
        assert alice.has_active_subscription()
        emma = store.find_books(BookQuery(title_contains="Emma"))[0]
        assert emma.is_available is False

    def test_users_not_duplicated_on_rerun(self, store):
        load_fixture(store, FIXTURE)
        load_fixture(store, FIXTURE)

        assert len(store.find_users(UserQuery())) == 2
        assert len(store.find_books(BookQuery())) == 4

    def test_unknown_owner_rejected(self, store):
        fixture = {"users": [], "books": [{"title": "X", "author": "Y", "owner": "ghost"}]}

        with pytest.raises(ValueError, match="unknown owner"):
            load_fixture(store, fixture)


class TestMain:
    def test_seeds_from_file(self, tmp_path):
        fixture_path = tmp_path / "fixture.json"
        fixture_path.write_text(json.dumps(FIXTURE), encoding="utf-8")

        assert main(fixture_path, tmp_path / "out.db") == (2, 2)

    def test_bundled_fixture_loads(self, tmp_path):
        users, books = main(DEFAULT_FIXTURE, tmp_path / "sample.db")
        assert users == 3
        assert books == 7

    def test_missing_fixture_exits(self, tmp_path):
        with pytest.raises(SystemExit):
            main(tmp_path / "missing.json", tmp_path / "out.db")
