"""
Tests for the HTTP API.

Each test points the app at a fresh SQLite file through DB_PATH and
resets the dependency singletons, then drives the endpoints with
FastAPI's TestClient.
"""

import pytest
from datetime import datetime, timedelta, UTC
from fastapi.testclient import TestClient

from app.api.v1.dependencies import reset_dependencies
from app.domain.entities import Book, User
from app.domain.utils.uuid7 import uuid7
from app.infrastructure.db.sqlite_catalog_store import SqliteCatalogStore
from app.infrastructure.db.sqlite_inbox import SqliteInbox
from app.main import app


BASE_TIME = datetime(2026, 4, 1, tzinfo=UTC)


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "api.db"
    monkeypatch.setenv("CATALOG_BACKEND", "sqlite")
    monkeypatch.setenv("DB_PATH", str(path))
    monkeypatch.setenv("RECOMMENDATION_LIMIT", "6")
    reset_dependencies()
    yield path
    reset_dependencies()


@pytest.fixture
def store(db_path):
    return SqliteCatalogStore(db_path)


@pytest.fixture
def client(db_path):
    return TestClient(app)


@pytest.fixture
def world(store):
    """alice owns Dune and Emma; bob owns Poirot and is a subscriber."""
    alice = User(id=uuid7(), username="alice")
    bob = User(id=uuid7(), username="bob", subscription_status="active")
    store.save_user(alice)
    store.save_user(bob)

    books = {}
    for minute, (title, author, genre, owner) in enumerate([
        ("Dune", "Frank Herbert", "Science Fiction", alice),
        ("Emma", "Jane Austen", "Romance", alice),
        ("Poirot", "Agatha Christie", "Mystery", bob),
    ]):
        book = Book.create_new(
            title, author, owner.id, genre=genre,
            created_at=BASE_TIME + timedelta(minutes=minute),
        )
        store.save_book(book)
        books[title] = book

    return {"alice": alice, "bob": bob, "books": books}


def as_user(user) -> dict:
    return {"X-User-Id": str(user.id)}


# =============================================================================
# Books
# =============================================================================


class TestBookEndpoints:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["health"] == "/api/v1/health"

    def test_health(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "catalog": True}

    def test_search_excludes_callers_books(self, client, world):
        response = client.get(
            "/api/v1/books/search", params={"q": ""}, headers=as_user(world["alice"])
        )

        assert response.status_code == 200
        assert [b["title"] for b in response.json()] == ["Poirot"]

    def test_search_by_mode(self, client, world):
        response = client.get("/api/v1/books/search", params={"q": "austen", "mode": "author"})
        assert [b["title"] for b in response.json()] == ["Emma"]

    def test_unknown_mode_falls_back_to_combined(self, client, world):
        response = client.get("/api/v1/books/search", params={"q": "dune", "mode": "isbn"})

        assert response.status_code == 200
        assert [b["title"] for b in response.json()] == ["Dune"]

    def test_search_with_genre_filter(self, client, world):
        response = client.get("/api/v1/books/search", params={"genre": "Mystery"})
        assert [b["title"] for b in response.json()] == ["Poirot"]

    def test_invalid_user_header_is_bad_request(self, client, world):
        response = client.get("/api/v1/books/search", headers={"X-User-Id": "not-a-uuid"})
        assert response.status_code == 400

    def test_browse(self, client, world):
        response = client.get("/api/v1/books/browse", headers=as_user(world["bob"]))

        body = response.json()
        assert response.status_code == 200
        assert [b["title"] for b in body["user_books"]] == ["Poirot"]
        assert set(body["books_by_genre"]) == {"Science Fiction", "Romance", "Mystery"}

    def test_popular(self, client, world):
        response = client.get("/api/v1/books/popular", params={"limit": 2})

        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_get_book(self, client, world):
        dune = world["books"]["Dune"]

        response = client.get(f"/api/v1/books/{dune.id}")

        assert response.status_code == 200
        assert response.json()["title"] == "Dune"
        assert response.json()["owner_id"] == str(world["alice"].id)

    def test_get_missing_book(self, client, world):
        response = client.get(f"/api/v1/books/{uuid7()}")
        assert response.status_code == 404

    def test_toggle_availability_owner_only(self, client, world, store):
        dune = world["books"]["Dune"]
        url = f"/api/v1/books/{dune.id}/availability"

        refused = client.patch(url, json={"is_available": False}, headers=as_user(world["bob"]))
        accepted = client.patch(url, json={"is_available": False}, headers=as_user(world["alice"]))

        assert refused.status_code == 403
        assert accepted.status_code == 200
        assert store.get_book(dune.id).is_available is False

    def test_toggle_requires_user_header(self, client, world):
        dune = world["books"]["Dune"]
        response = client.patch(f"/api/v1/books/{dune.id}/availability", json={"is_available": False})
        assert response.status_code == 422


# =============================================================================
# Recommendations
# =============================================================================


class TestRecommendationEndpoint:
    def test_query_ranks_match_first(self, client, world):
        response = client.post(
            "/api/v1/recommendations",
            json={"query_text": "emma", "limit": 2},
            headers=as_user(world["bob"]),
        )

        titles = [b["title"] for b in response.json()]
        assert response.status_code == 200
        assert titles[0] == "Emma"
        assert "Poirot" not in titles

    def test_exclude_and_zero_limit(self, client, world):
        emma = world["books"]["Emma"]

        excluded = client.post(
            "/api/v1/recommendations", json={"exclude_ids": [str(emma.id)]}
        )
        empty = client.post("/api/v1/recommendations", json={"limit": 0})

        assert "Emma" not in [b["title"] for b in excluded.json()]
        assert empty.json() == []

    def test_history_biases_genre(self, client, world, store):
        # Arrange: bob requested Emma before, so romance should lead
        bob, alice = world["bob"], world["alice"]
        emma = world["books"]["Emma"]
        client.post("/api/v1/exchanges", json={"book_id": str(emma.id)}, headers=as_user(bob))
        extra = Book.create_new("Persuasion", "Jane Austen", alice.id, genre="Romance",
                                created_at=BASE_TIME - timedelta(days=1))
        store.save_book(extra)

        # Act
        response = client.post(
            "/api/v1/recommendations",
            json={"exclude_ids": [str(emma.id)]},
            headers=as_user(bob),
        )

        # Assert
        assert response.json()[0]["title"] == "Persuasion"


# =============================================================================
# Exchanges
# =============================================================================


class TestExchangeEndpoints:
    def request_dune(self, client, world, **extra):
        body = {"book_id": str(world["books"]["Dune"].id), **extra}
        return client.post("/api/v1/exchanges", json=body, headers=as_user(world["bob"]))

    def test_full_lifecycle(self, client, world, store, db_path):
        # Arrange
        poirot = world["books"]["Poirot"]
        created = self.request_dune(client, world, offered_book_id=str(poirot.id), message="Swap?")
        request_id = created.json()["exchange"]["id"]

        # Act
        accepted = client.post(
            f"/api/v1/exchanges/{request_id}/respond",
            json={"accept": True},
            headers=as_user(world["alice"]),
        )
        done = client.post(f"/api/v1/exchanges/{request_id}/done", headers=as_user(world["bob"]))

        # Assert
        assert created.status_code == 201
        assert created.json()["exchange"]["status"] == "pending"
        assert accepted.status_code == 200
        assert accepted.json()["exchange"]["status"] == "accepted"
        assert done.json()["exchange"]["status"] == "done"
        assert store.get_book(world["books"]["Dune"].id).is_available is False
        assert store.get_book(poirot.id).is_available is False

        inbox = SqliteInbox(db_path)
        assert len(inbox.list_messages(world["alice"].id)) == 1
        assert [n.type for n in inbox.list_notifications(world["bob"].id)] == ["exchange_response"]
        assert [n.type for n in inbox.list_notifications(world["alice"].id)] == ["exchange_done"]

    def test_duplicate_request_conflicts(self, client, world):
        self.request_dune(client, world)
        assert self.request_dune(client, world).status_code == 409

    def test_requesting_own_book_conflicts(self, client, world):
        body = {"book_id": str(world["books"]["Dune"].id)}
        response = client.post("/api/v1/exchanges", json=body, headers=as_user(world["alice"]))
        assert response.status_code == 409

    def test_missing_book_not_found(self, client, world):
        body = {"book_id": str(uuid7())}
        response = client.post("/api/v1/exchanges", json=body, headers=as_user(world["bob"]))
        assert response.status_code == 404

    def test_requester_cannot_respond(self, client, world):
        request_id = self.request_dune(client, world).json()["exchange"]["id"]

        response = client.post(
            f"/api/v1/exchanges/{request_id}/respond",
            json={"accept": True},
            headers=as_user(world["bob"]),
        )

        assert response.status_code == 403

    def test_cancel_pending(self, client, world):
        request_id = self.request_dune(client, world).json()["exchange"]["id"]

        response = client.post(f"/api/v1/exchanges/{request_id}/cancel", headers=as_user(world["bob"]))

        assert response.status_code == 200
        assert response.json()["exchange"]["status"] == "cancelled"

    def test_done_requires_accepted(self, client, world):
        request_id = self.request_dune(client, world).json()["exchange"]["id"]

        response = client.post(f"/api/v1/exchanges/{request_id}/done", headers=as_user(world["alice"]))

        assert response.status_code == 409
        assert response.json()["detail"] == "Only accepted exchanges can be marked as done"


# =============================================================================
# Ratings
# =============================================================================


class TestRatingEndpoints:
    def test_subscriber_rates_and_summary_reflects_it(self, client, world):
        alice, bob = world["alice"], world["bob"]

        put = client.put(
            f"/api/v1/users/{alice.id}/ratings",
            json={"rating": 4, "comment": "Great swap"},
            headers=as_user(bob),
        )
        summary = client.get(f"/api/v1/users/{alice.id}/ratings")

        assert put.status_code == 200
        assert put.json()["rating"] == 4
        assert summary.json()["average"] == 4.0
        assert summary.json()["count"] == 1
        assert summary.json()["ratings"][0]["comment"] == "Great swap"

    def test_non_subscriber_forbidden(self, client, world):
        alice, bob = world["alice"], world["bob"]

        response = client.put(
            f"/api/v1/users/{bob.id}/ratings", json={"rating": 5}, headers=as_user(alice)
        )

        assert response.status_code == 403

    def test_rating_out_of_range_is_validation_error(self, client, world):
        alice, bob = world["alice"], world["bob"]
        response = client.put(
            f"/api/v1/users/{alice.id}/ratings", json={"rating": 9}, headers=as_user(bob)
        )
        assert response.status_code == 422

    def test_delete_rating(self, client, world):
        alice, bob = world["alice"], world["bob"]
        url = f"/api/v1/users/{alice.id}/ratings"
        client.put(url, json={"rating": 3}, headers=as_user(bob))

        first = client.delete(url, headers=as_user(bob))
        second = client.delete(url, headers=as_user(bob))

        assert first.status_code == 204
        assert second.status_code == 404
