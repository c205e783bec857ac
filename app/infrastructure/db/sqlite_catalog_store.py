"""
SQLite implementation of the CatalogStore port.

This adapter persists books, users, exchange requests and ratings to a
single SQLite file, translating rows to domain entities and back.

The three paired exchange operations (accept / cancel / complete) each
run inside ONE transaction: the request status and the availability of
both books are committed together or rolled back together.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, UTC
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple
from uuid import UUID

from app.domain.entities import Book, ExchangeRequest, User, UserRating
from app.domain.ports import CatalogStore
from app.domain.value_objects import (
    BookQuery,
    ExchangeRequestQuery,
    ExchangeStatus,
    UserQuery,
)
from app.infrastructure.db.connection import connect, init_schema

logger = logging.getLogger(__name__)

BOOK_UPDATABLE_COLUMNS = frozenset(
    {"title", "author", "description", "genre", "condition", "cover_image_url", "is_available"}
)


def to_db_timestamp(value: datetime) -> str:
    """Serialise a datetime as a fixed-width UTC ISO string (naive = UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def from_db_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _uuid_or_none(value: Optional[str]) -> Optional[UUID]:
    return UUID(value) if value else None


def _placeholders(values: Sequence) -> str:
    return ", ".join("?" for _ in values)


class SqliteCatalogStore(CatalogStore):
    """
    Catalog store backed by SQLite.

    Text filters use the ICONTAINS SQL function (Unicode case folding),
    genre is compared exactly. Listings are ordered newest first with
    the id as tie-breaker, so repeated queries return identical order.
    """

    def __init__(self, db_path: Path) -> None:
        """
        Initialize the store, creating the schema if needed.

        Args:
            db_path: SQLite file; parent directories are created
        """
        self._db_path = Path(db_path)
        init_schema(self._db_path)

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a transaction, translating sqlite errors."""
        conn = connect(self._db_path)
        try:
            with conn:
                yield conn
        except sqlite3.IntegrityError as e:
            raise ValueError(f"Catalog constraint violated: {e}") from e
        except sqlite3.Error as e:
            raise RuntimeError(f"Database error: {e}") from e
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Row mapping
    # -------------------------------------------------------------------------

    @staticmethod
    def _row_to_book(row: sqlite3.Row) -> Book:
        return Book(
            id=UUID(row["id"]),
            title=row["title"],
            author=row["author"],
            owner_id=UUID(row["owner_id"]),
            description=row["description"] or "",
            genre=row["genre"],
            condition=row["condition"],
            cover_image_url=row["cover_image_url"],
            is_available=bool(row["is_available"]),
            created_at=from_db_timestamp(row["created_at"]),
        )

    @staticmethod
    def _book_to_row(book: Book) -> dict:
        return {
            "id": str(book.id),
            "title": book.title,
            "author": book.author,
            "description": book.description or "",
            "genre": book.genre,
            "condition": book.condition,
            "cover_image_url": book.cover_image_url,
            "owner_id": str(book.owner_id),
            "is_available": int(book.is_available),
            "created_at": to_db_timestamp(book.created_at),
        }

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=UUID(row["id"]),
            username=row["username"],
            email=row["email"],
            avatar_url=row["avatar_url"],
            phone_number=row["phone_number"],
            location_city=row["location_city"],
            latitude=row["latitude"],
            longitude=row["longitude"],
            subscription_status=row["subscription_status"],
            subscription_end_date=from_db_timestamp(row["subscription_end_date"]),
            stripe_customer_id=row["stripe_customer_id"],
            stripe_product_id=row["stripe_product_id"],
            created_at=from_db_timestamp(row["created_at"]),
        )

    @staticmethod
    def _row_to_request(row: sqlite3.Row) -> ExchangeRequest:
        return ExchangeRequest(
            id=UUID(row["id"]),
            book_id=UUID(row["book_id"]),
            requester_id=UUID(row["requester_id"]),
            offered_book_id=_uuid_or_none(row["offered_book_id"]),
            status=ExchangeStatus(row["status"]),
            message=row["message"],
            created_at=from_db_timestamp(row["created_at"]),
        )

    @staticmethod
    def _row_to_rating(row: sqlite3.Row) -> UserRating:
        return UserRating(
            rated_user_id=UUID(row["rated_user_id"]),
            rater_user_id=UUID(row["rater_user_id"]),
            rating=row["rating"],
            comment=row["comment"],
            created_at=from_db_timestamp(row["created_at"]),
            updated_at=from_db_timestamp(row["updated_at"]),
        )

    # -------------------------------------------------------------------------
    # Books
    # -------------------------------------------------------------------------

    @staticmethod
    def _book_where(query: BookQuery) -> Tuple[str, list]:
        clauses: List[str] = []
        params: list = []

        if query.title_contains is not None:
            clauses.append("ICONTAINS(title, ?)")
            params.append(query.title_contains)
        if query.author_contains is not None:
            clauses.append("ICONTAINS(author, ?)")
            params.append(query.author_contains)
        if query.text is not None:
            clauses.append(
                "(ICONTAINS(title, ?) OR ICONTAINS(author, ?) OR ICONTAINS(description, ?))"
            )
            params.extend([query.text] * 3)
        if query.genre is not None:
            clauses.append("genre = ?")
            params.append(query.genre)
        if query.owner_ids is not None:
            if not query.owner_ids:
                clauses.append("0")
            else:
                clauses.append(f"owner_id IN ({_placeholders(query.owner_ids)})")
                params.extend(str(owner_id) for owner_id in query.owner_ids)
        if query.ids is not None:
            if not query.ids:
                clauses.append("0")
            else:
                clauses.append(f"id IN ({_placeholders(query.ids)})")
                params.extend(str(book_id) for book_id in query.ids)
        if query.is_available is not None:
            clauses.append("is_available = ?")
            params.append(int(query.is_available))

        where = " AND ".join(clauses) if clauses else "1"
        return where, params

    def find_books(self, query: BookQuery) -> List[Book]:
        where, params = self._book_where(query)
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT * FROM books WHERE {where} ORDER BY created_at DESC, id DESC",
                params,
            ).fetchall()
        return [self._row_to_book(row) for row in rows]

    def get_book(self, book_id: UUID) -> Optional[Book]:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM books WHERE id = ?", (str(book_id),)).fetchone()
        return self._row_to_book(row) if row is not None else None

    def save_book(self, book: Book) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO books
                (id, title, author, description, genre, condition,
                 cover_image_url, owner_id, is_available, created_at)
                VALUES
                (:id, :title, :author, :description, :genre, :condition,
                 :cover_image_url, :owner_id, :is_available, :created_at)
                ON CONFLICT(id) DO UPDATE SET
                    title=excluded.title,
                    author=excluded.author,
                    description=excluded.description,
                    genre=excluded.genre,
                    condition=excluded.condition,
                    cover_image_url=excluded.cover_image_url,
                    owner_id=excluded.owner_id,
                    is_available=excluded.is_available
                """,
                self._book_to_row(book),
            )

    def update_book(self, book_id: UUID, **changes) -> bool:
        if not changes:
            return self.get_book(book_id) is not None

        unknown = set(changes) - BOOK_UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update book fields: {sorted(unknown)}")

        assignments = ", ".join(f"{column} = :{column}" for column in changes)
        params = {
            column: int(value) if column == "is_available" else value
            for column, value in changes.items()
        }
        params["id"] = str(book_id)

        with self._transaction() as conn:
            cursor = conn.execute(f"UPDATE books SET {assignments} WHERE id = :id", params)
            return cursor.rowcount > 0

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def find_users(self, query: UserQuery) -> List[User]:
        clauses: List[str] = []
        params: list = []
        if query.username_contains is not None:
            clauses.append("ICONTAINS(username, ?)")
            params.append(query.username_contains)
        if query.ids is not None:
            if not query.ids:
                clauses.append("0")
            else:
                clauses.append(f"id IN ({_placeholders(query.ids)})")
                params.extend(str(user_id) for user_id in query.ids)
        where = " AND ".join(clauses) if clauses else "1"

        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT * FROM users WHERE {where} ORDER BY username", params
            ).fetchall()
        return [self._row_to_user(row) for row in rows]

    def get_user(self, user_id: UUID) -> Optional[User]:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (str(user_id),)).fetchone()
        return self._row_to_user(row) if row is not None else None

    def save_user(self, user: User) -> None:
        row = {
            "id": str(user.id),
            "username": user.username,
            "email": user.email,
            "avatar_url": user.avatar_url,
            "phone_number": user.phone_number,
            "location_city": user.location_city,
            "latitude": user.latitude,
            "longitude": user.longitude,
            "subscription_status": user.subscription_status,
            "subscription_end_date": (
                to_db_timestamp(user.subscription_end_date)
                if user.subscription_end_date
                else None
            ),
            "stripe_customer_id": user.stripe_customer_id,
            "stripe_product_id": user.stripe_product_id,
            "created_at": to_db_timestamp(user.created_at),
        }
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO users
                (id, username, email, avatar_url, phone_number, location_city,
                 latitude, longitude, subscription_status, subscription_end_date,
                 stripe_customer_id, stripe_product_id, created_at)
                VALUES
                (:id, :username, :email, :avatar_url, :phone_number, :location_city,
                 :latitude, :longitude, :subscription_status, :subscription_end_date,
                 :stripe_customer_id, :stripe_product_id, :created_at)
                ON CONFLICT(id) DO UPDATE SET
                    username=excluded.username,
                    email=excluded.email,
                    avatar_url=excluded.avatar_url,
                    phone_number=excluded.phone_number,
                    location_city=excluded.location_city,
                    latitude=excluded.latitude,
                    longitude=excluded.longitude,
                    subscription_status=excluded.subscription_status,
                    subscription_end_date=excluded.subscription_end_date,
                    stripe_customer_id=excluded.stripe_customer_id,
                    stripe_product_id=excluded.stripe_product_id
                """,
                row,
            )

    # -------------------------------------------------------------------------
    # Exchange requests
    # -------------------------------------------------------------------------

    def insert_exchange_request(self, request: ExchangeRequest) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO exchange_requests
                (id, book_id, requester_id, offered_book_id, status, message, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(request.id),
                    str(request.book_id),
                    str(request.requester_id),
                    str(request.offered_book_id) if request.offered_book_id else None,
                    request.status.value,
                    request.message,
                    to_db_timestamp(request.created_at),
                ),
            )

    def get_exchange_request(self, request_id: UUID) -> Optional[ExchangeRequest]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM exchange_requests WHERE id = ?", (str(request_id),)
            ).fetchone()
        return self._row_to_request(row) if row is not None else None

    def find_exchange_requests(self, query: ExchangeRequestQuery) -> List[ExchangeRequest]:
        clauses: List[str] = []
        params: list = []
        if query.book_id is not None:
            clauses.append("book_id = ?")
            params.append(str(query.book_id))
        if query.requester_id is not None:
            clauses.append("requester_id = ?")
            params.append(str(query.requester_id))
        if query.status is not None:
            clauses.append("status = ?")
            params.append(query.status.value)
        where = " AND ".join(clauses) if clauses else "1"

        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT * FROM exchange_requests WHERE {where} "
                "ORDER BY created_at DESC, id DESC",
                params,
            ).fetchall()
        return [self._row_to_request(row) for row in rows]

    def update_exchange_request_status(self, request_id: UUID, status: ExchangeStatus) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE exchange_requests SET status = ? WHERE id = ?",
                (ExchangeStatus(status).value, str(request_id)),
            )
            return cursor.rowcount > 0

    def _transition_with_books(
        self,
        request_id: UUID,
        status: ExchangeStatus,
        is_available: bool,
        book_ids: Sequence[UUID],
    ) -> None:
        """Set a request status and the availability of its books in one transaction."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE exchange_requests SET status = ? WHERE id = ?",
                (status.value, str(request_id)),
            )
            if cursor.rowcount == 0:
                raise RuntimeError(f"Exchange request '{request_id}' does not exist")

            conn.execute(
                f"UPDATE books SET is_available = ? WHERE id IN ({_placeholders(book_ids)})",
                [int(is_available), *(str(book_id) for book_id in book_ids)],
            )
        logger.debug(
            f"Request {request_id} -> {status.value}; "
            f"{len(book_ids)} book(s) is_available={is_available}"
        )

    @staticmethod
    def _pair(book_id: UUID, offered_book_id: Optional[UUID]) -> Tuple[UUID, ...]:
        return (book_id,) if offered_book_id is None else (book_id, offered_book_id)

    def accept_exchange_and_mark_unavailable(
        self, request_id: UUID, book_id: UUID, offered_book_id: Optional[UUID] = None
    ) -> None:
        self._transition_with_books(
            request_id, ExchangeStatus.ACCEPTED, False, self._pair(book_id, offered_book_id)
        )

    def cancel_exchange_and_mark_available(
        self, request_id: UUID, book_id: UUID, offered_book_id: Optional[UUID] = None
    ) -> None:
        self._transition_with_books(
            request_id, ExchangeStatus.CANCELLED, True, self._pair(book_id, offered_book_id)
        )

    def complete_exchange_and_mark_unavailable(
        self, request_id: UUID, book_id: UUID, offered_book_id: Optional[UUID] = None
    ) -> None:
        self._transition_with_books(
            request_id, ExchangeStatus.DONE, False, self._pair(book_id, offered_book_id)
        )

    # -------------------------------------------------------------------------
    # Ratings
    # -------------------------------------------------------------------------

    def upsert_rating(self, rating: UserRating) -> UserRating:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO user_ratings
                (rated_user_id, rater_user_id, rating, comment, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(rater_user_id, rated_user_id) DO UPDATE SET
                    rating=excluded.rating,
                    comment=excluded.comment,
                    updated_at=excluded.updated_at
                """,
                (
                    str(rating.rated_user_id),
                    str(rating.rater_user_id),
                    rating.rating,
                    rating.comment,
                    to_db_timestamp(rating.created_at),
                    to_db_timestamp(rating.updated_at),
                ),
            )
            row = conn.execute(
                "SELECT * FROM user_ratings WHERE rater_user_id = ? AND rated_user_id = ?",
                (str(rating.rater_user_id), str(rating.rated_user_id)),
            ).fetchone()
        return self._row_to_rating(row)

    def get_rating(self, rater_user_id: UUID, rated_user_id: UUID) -> Optional[UserRating]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM user_ratings WHERE rater_user_id = ? AND rated_user_id = ?",
                (str(rater_user_id), str(rated_user_id)),
            ).fetchone()
        return self._row_to_rating(row) if row is not None else None

    def find_ratings(self, rated_user_id: UUID) -> List[UserRating]:
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM user_ratings WHERE rated_user_id = ? ORDER BY created_at DESC",
                (str(rated_user_id),),
            ).fetchall()
        return [self._row_to_rating(row) for row in rows]

    def delete_rating(self, rater_user_id: UUID, rated_user_id: UUID) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM user_ratings WHERE rater_user_id = ? AND rated_user_id = ?",
                (str(rater_user_id), str(rated_user_id)),
            )
            return cursor.rowcount > 0

    def ping(self) -> bool:
        try:
            with self._transaction() as conn:
                conn.execute("SELECT 1").fetchone()
            return True
        except Exception as e:
            logger.warning(f"Catalog store unreachable: {e}")
            return False
