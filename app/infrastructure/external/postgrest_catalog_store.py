"""
PostgREST implementation of the CatalogStore port.

The hosted marketplace backend exposes its tables through PostgREST
(`/rest/v1/<table>`) and the paired exchange updates as SQL functions
under `/rest/v1/rpc/<name>`, defined in `exchange_rpc.sql` next to this
module. This adapter translates domain queries into
PostgREST filter syntax and rows back into domain entities.

Like the other HTTP adapters, it accepts an injected `session` so tests
can replace the network with canned responses.
"""

import logging
from datetime import datetime, UTC
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

import requests

from app.domain.entities import Book, ExchangeRequest, User, UserRating
from app.domain.ports import CatalogStore, MessagingSink, NotificationSink
from app.domain.value_objects import (
    BookQuery,
    ExchangeRequestQuery,
    ExchangeStatus,
    UserQuery,
)

logger = logging.getLogger(__name__)

# Characters that must be double-quoted inside PostgREST list/logic values
_RESERVED = set(',.:()"\\ ')

BOOK_UPDATABLE_COLUMNS = frozenset(
    {"title", "author", "description", "genre", "condition", "cover_image_url", "is_available"}
)


def quote_value(value: str) -> str:
    """Quote a filter value for use inside `in.(...)` or `or=(...)` lists."""
    if not any(ch in _RESERVED for ch in value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def ilike_pattern(value: str) -> str:
    """Substring pattern for `ilike`; PostgREST uses `*` as the wildcard."""
    return f"*{value}*"


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    # PostgreSQL emits "+00:00" offsets, older servers may emit "Z"
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _created_at(row: Dict[str, Any]) -> datetime:
    return _parse_timestamp(row.get("created_at")) or datetime.now(UTC)


def _in_list(values: Iterable[Any]) -> str:
    return "in.(" + ",".join(quote_value(str(v)) for v in values) + ")"


class PostgrestClient:
    """Thin HTTP wrapper holding the base URL, auth headers and session."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        session: Optional[Any] = None,
        timeout: float = 10.0,
    ) -> None:
        """
        Args:
            base_url: PostgREST root, e.g. "https://xyz.supabase.co/rest/v1"
            api_key: Service key sent as `apikey` and bearer token
            session: Optional HTTP session (inject a fake in tests)
            timeout: Per-request timeout in seconds
        """
        if not base_url or not base_url.strip():
            raise ValueError("base_url cannot be empty")

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session if session is not None else requests.Session()
        self._headers = {"Content-Type": "application/json"}
        if api_key:
            self._headers["apikey"] = api_key
            self._headers["Authorization"] = f"Bearer {api_key}"

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Sequence[Tuple[str, str]]] = None,
        json: Optional[Any] = None,
        prefer: Optional[str] = None,
    ) -> Any:
        """
        Perform a request and return the decoded JSON body (None if empty).

        Raises:
            RuntimeError: On transport failure or non-2xx status
        """
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer

        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            response = self._session.request(
                method,
                url,
                params=list(params or []),
                json=json,
                headers=headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
        except Exception as e:
            raise RuntimeError(f"PostgREST {method} {path} failed: {e}") from e

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RuntimeError(f"PostgREST {method} {path} returned invalid JSON: {e}") from e


class PostgrestCatalogStore(CatalogStore):
    """
    Catalog store backed by the hosted PostgREST API.

    Usage:
        store = PostgrestCatalogStore(
            PostgrestClient("https://xyz.supabase.co/rest/v1", api_key="...")
        )
        books = store.find_books(BookQuery(genre="Mystery"))
    """

    ORDER_NEWEST = "created_at.desc,id.desc"

    def __init__(self, client: PostgrestClient) -> None:
        self._client = client

    # =========================================================================
    # Row mapping
    # =========================================================================

    @staticmethod
    def _row_to_book(row: Dict[str, Any]) -> Book:
        return Book(
            id=UUID(row["id"]),
            title=row["title"],
            author=row["author"],
            owner_id=UUID(row["owner_id"]),
            description=row.get("description") or "",
            genre=row.get("genre"),
            condition=row.get("condition") or "Good",
            cover_image_url=row.get("cover_image_url"),
            is_available=bool(row.get("is_available", True)),
            created_at=_created_at(row),
        )

    @staticmethod
    def _book_to_row(book: Book) -> Dict[str, Any]:
        return {
            "id": str(book.id),
            "title": book.title,
            "author": book.author,
            "description": book.description,
            "genre": book.genre,
            "condition": book.condition,
            "cover_image_url": book.cover_image_url,
            "owner_id": str(book.owner_id),
            "is_available": book.is_available,
            "created_at": book.created_at.isoformat(),
        }

    @staticmethod
    def _row_to_user(row: Dict[str, Any]) -> User:
        return User(
            id=UUID(row["id"]),
            username=row["username"],
            email=row.get("email"),
            avatar_url=row.get("avatar_url"),
            phone_number=row.get("phone_number"),
            location_city=row.get("location_city"),
            latitude=row.get("latitude"),
            longitude=row.get("longitude"),
            subscription_status=row.get("subscription_status") or "inactive",
            subscription_end_date=_parse_timestamp(row.get("subscription_end_date")),
            stripe_customer_id=row.get("stripe_customer_id"),
            stripe_product_id=row.get("stripe_product_id"),
            created_at=_created_at(row),
        )

    @staticmethod
    def _row_to_request(row: Dict[str, Any]) -> ExchangeRequest:
        offered = row.get("offered_book_id")
        return ExchangeRequest(
            id=UUID(row["id"]),
            book_id=UUID(row["book_id"]),
            requester_id=UUID(row["requester_id"]),
            offered_book_id=UUID(offered) if offered else None,
            status=ExchangeStatus(row["status"]),
            message=row.get("message"),
            created_at=_created_at(row),
        )

    @staticmethod
    def _row_to_rating(row: Dict[str, Any]) -> UserRating:
        return UserRating(
            rated_user_id=UUID(row["rated_user_id"]),
            rater_user_id=UUID(row["rater_user_id"]),
            rating=int(row["rating"]),
            comment=row.get("comment"),
            created_at=_created_at(row),
            updated_at=_parse_timestamp(row.get("updated_at")) or _created_at(row),
        )

    # =========================================================================
    # Books
    # =========================================================================

    @staticmethod
    def book_filters(query: BookQuery) -> Optional[List[Tuple[str, str]]]:
        """
        Translate a BookQuery into PostgREST query parameters.

        Returns None when the query can match nothing (an empty id list),
        so callers can skip the round trip.
        """
        params: List[Tuple[str, str]] = []

        if query.title_contains is not None:
            params.append(("title", f"ilike.{ilike_pattern(query.title_contains)}"))
        if query.author_contains is not None:
            params.append(("author", f"ilike.{ilike_pattern(query.author_contains)}"))
        if query.text is not None:
            pattern = quote_value(ilike_pattern(query.text))
            params.append((
                "or",
                f"(title.ilike.{pattern},author.ilike.{pattern},description.ilike.{pattern})",
            ))
        if query.genre is not None:
            params.append(("genre", f"eq.{query.genre}"))
        if query.owner_ids is not None:
            if not query.owner_ids:
                return None
            params.append(("owner_id", _in_list(query.owner_ids)))
        if query.ids is not None:
            if not query.ids:
                return None
            params.append(("id", _in_list(query.ids)))
        if query.is_available is not None:
            params.append(("is_available", f"eq.{str(query.is_available).lower()}"))

        return params

    def find_books(self, query: BookQuery) -> List[Book]:
        filters = self.book_filters(query)
        if filters is None:
            return []
        params = [("select", "*"), *filters, ("order", self.ORDER_NEWEST)]
        rows = self._client.request("GET", "books", params=params) or []
        return [self._row_to_book(row) for row in rows]

    def get_book(self, book_id: UUID) -> Optional[Book]:
        rows = self._client.request(
            "GET", "books", params=[("select", "*"), ("id", f"eq.{book_id}")]
        ) or []
        return self._row_to_book(rows[0]) if rows else None

    def save_book(self, book: Book) -> None:
        self._client.request(
            "POST",
            "books",
            json=self._book_to_row(book),
            prefer="resolution=merge-duplicates,return=minimal",
        )

    def update_book(self, book_id: UUID, **changes) -> bool:
        unknown = set(changes) - BOOK_UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update book fields: {sorted(unknown)}")
        if not changes:
            return self.get_book(book_id) is not None

        rows = self._client.request(
            "PATCH",
            "books",
            params=[("id", f"eq.{book_id}")],
            json=changes,
            prefer="return=representation",
        ) or []
        return len(rows) > 0

    # =========================================================================
    # Users
    # =========================================================================

    def find_users(self, query: UserQuery) -> List[User]:
        params: List[Tuple[str, str]] = [("select", "*")]
        if query.username_contains is not None:
            params.append(("username", f"ilike.{ilike_pattern(query.username_contains)}"))
        if query.ids is not None:
            if not query.ids:
                return []
            params.append(("id", _in_list(query.ids)))
        params.append(("order", "username.asc"))

        rows = self._client.request("GET", "profiles", params=params) or []
        return [self._row_to_user(row) for row in rows]

    def get_user(self, user_id: UUID) -> Optional[User]:
        rows = self._client.request(
            "GET", "profiles", params=[("select", "*"), ("id", f"eq.{user_id}")]
        ) or []
        return self._row_to_user(rows[0]) if rows else None

    def save_user(self, user: User) -> None:
        row = {
            "id": str(user.id),
            "username": user.username,
            "avatar_url": user.avatar_url,
            "phone_number": user.phone_number,
            "location_city": user.location_city,
            "latitude": user.latitude,
            "longitude": user.longitude,
            "subscription_status": user.subscription_status,
            "subscription_end_date": (
                user.subscription_end_date.isoformat() if user.subscription_end_date else None
            ),
            "stripe_customer_id": user.stripe_customer_id,
            "stripe_product_id": user.stripe_product_id,
        }
        self._client.request(
            "POST",
            "profiles",
            json=row,
            prefer="resolution=merge-duplicates,return=minimal",
        )

    # =========================================================================
    # Exchange requests
    # =========================================================================

    def insert_exchange_request(self, request: ExchangeRequest) -> None:
        self._client.request(
            "POST",
            "exchange_requests",
            json={
                "id": str(request.id),
                "book_id": str(request.book_id),
                "requester_id": str(request.requester_id),
                "offered_book_id": str(request.offered_book_id) if request.offered_book_id else None,
                "status": request.status.value,
                "message": request.message,
                "created_at": request.created_at.isoformat(),
            },
            prefer="return=minimal",
        )

    def get_exchange_request(self, request_id: UUID) -> Optional[ExchangeRequest]:
        rows = self._client.request(
            "GET", "exchange_requests", params=[("select", "*"), ("id", f"eq.{request_id}")]
        ) or []
        return self._row_to_request(rows[0]) if rows else None

    def find_exchange_requests(self, query: ExchangeRequestQuery) -> List[ExchangeRequest]:
        params: List[Tuple[str, str]] = [("select", "*")]
        if query.book_id is not None:
            params.append(("book_id", f"eq.{query.book_id}"))
        if query.requester_id is not None:
            params.append(("requester_id", f"eq.{query.requester_id}"))
        if query.status is not None:
            params.append(("status", f"eq.{ExchangeStatus(query.status).value}"))
        params.append(("order", self.ORDER_NEWEST))

        rows = self._client.request("GET", "exchange_requests", params=params) or []
        return [self._row_to_request(row) for row in rows]

    def update_exchange_request_status(self, request_id: UUID, status: ExchangeStatus) -> bool:
        rows = self._client.request(
            "PATCH",
            "exchange_requests",
            params=[("id", f"eq.{request_id}")],
            json={"status": ExchangeStatus(status).value},
            prefer="return=representation",
        ) or []
        return len(rows) > 0

    def _rpc(
        self, name: str, request_id: UUID, book_id: UUID, offered_book_id: Optional[UUID]
    ) -> None:
        self._client.request(
            "POST",
            f"rpc/{name}",
            json={
                "p_request_id": str(request_id),
                "p_book_id": str(book_id),
                "p_offered_book_id": str(offered_book_id) if offered_book_id else None,
            },
        )

    def accept_exchange_and_mark_unavailable(
        self, request_id: UUID, book_id: UUID, offered_book_id: Optional[UUID] = None
    ) -> None:
        self._rpc("accept_exchange_and_mark_books_unavailable", request_id, book_id, offered_book_id)

    def cancel_exchange_and_mark_available(
        self, request_id: UUID, book_id: UUID, offered_book_id: Optional[UUID] = None
    ) -> None:
        self._rpc("cancel_exchange_and_mark_books_available", request_id, book_id, offered_book_id)

    def complete_exchange_and_mark_unavailable(
        self, request_id: UUID, book_id: UUID, offered_book_id: Optional[UUID] = None
    ) -> None:
        self._rpc(
            "complete_exchange_and_mark_books_unavailable", request_id, book_id, offered_book_id
        )

    # =========================================================================
    # Ratings
    # =========================================================================

    def upsert_rating(self, rating: UserRating) -> UserRating:
        rows = self._client.request(
            "POST",
            "user_ratings",
            params=[("on_conflict", "rater_user_id,rated_user_id")],
            json={
                "rated_user_id": str(rating.rated_user_id),
                "rater_user_id": str(rating.rater_user_id),
                "rating": rating.rating,
                "comment": rating.comment,
                "updated_at": rating.updated_at.isoformat(),
            },
            prefer="resolution=merge-duplicates,return=representation",
        ) or []
        return self._row_to_rating(rows[0]) if rows else rating

    def _rating_params(self, rater_user_id: UUID, rated_user_id: UUID) -> List[Tuple[str, str]]:
        return [
            ("rater_user_id", f"eq.{rater_user_id}"),
            ("rated_user_id", f"eq.{rated_user_id}"),
        ]

    def get_rating(self, rater_user_id: UUID, rated_user_id: UUID) -> Optional[UserRating]:
        rows = self._client.request(
            "GET",
            "user_ratings",
            params=[("select", "*"), *self._rating_params(rater_user_id, rated_user_id)],
        ) or []
        return self._row_to_rating(rows[0]) if rows else None

    def find_ratings(self, rated_user_id: UUID) -> List[UserRating]:
        rows = self._client.request(
            "GET",
            "user_ratings",
            params=[
                ("select", "*"),
                ("rated_user_id", f"eq.{rated_user_id}"),
                ("order", "created_at.desc"),
            ],
        ) or []
        return [self._row_to_rating(row) for row in rows]

    def delete_rating(self, rater_user_id: UUID, rated_user_id: UUID) -> bool:
        rows = self._client.request(
            "DELETE",
            "user_ratings",
            params=self._rating_params(rater_user_id, rated_user_id),
            prefer="return=representation",
        ) or []
        return len(rows) > 0

    def ping(self) -> bool:
        try:
            self._client.request("GET", "books", params=[("select", "id"), ("limit", "1")])
            return True
        except RuntimeError as e:
            logger.warning(f"PostgREST backend unreachable: {e}")
            return False


class PostgrestInbox(NotificationSink, MessagingSink):
    """Writes notifications and direct messages through PostgREST."""

    def __init__(self, client: PostgrestClient) -> None:
        self._client = client

    def notify(
        self,
        user_id: UUID,
        type: str,
        content: str,
        related_id: Optional[UUID] = None,
    ) -> None:
        self._client.request(
            "POST",
            "notifications",
            json={
                "user_id": str(user_id),
                "type": str(getattr(type, "value", type)),
                "content": content,
                "related_id": str(related_id) if related_id else None,
            },
            prefer="return=minimal",
        )

    def send_message(self, sender_id: UUID, receiver_id: UUID, content: str) -> None:
        if not content or not content.strip():
            raise ValueError("Message content cannot be empty")
        self._client.request(
            "POST",
            "messages",
            json={
                "sender_id": str(sender_id),
                "receiver_id": str(receiver_id),
                "content": content,
            },
            prefer="return=minimal",
        )
