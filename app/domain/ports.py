"""
Port interfaces (protocols) for the domain layer.

Ports define the contracts between the domain and infrastructure layers.
They are implemented by adapters in the infrastructure layer (SQLite,
a hosted PostgREST backend, test fakes), allowing the domain to remain
independent of technical details.

Following Hexagonal Architecture principles, the domain layer depends only
on these abstract protocols, never on concrete implementations.
"""

from typing import Protocol, List, Optional
from uuid import UUID

from .entities import Book, User, ExchangeRequest, UserRating
from .value_objects import BookQuery, UserQuery, ExchangeRequestQuery, ExchangeStatus


class CatalogStore(Protocol):
    """
    Port for the external persistence/query service.

    The store owns Book, User, ExchangeRequest and UserRating records.
    Services hold no copy of truth; they fetch snapshots per operation.

    Implementations should handle:
    - Case-insensitive substring matching for text filters
    - Ordering of book and request listings by created_at, newest first
    - Atomic execution of the three paired exchange operations

    Unless stated otherwise every method raises RuntimeError when the
    underlying store fails.
    """

    def find_books(self, query: BookQuery) -> List[Book]:
        """
        Return books matching every filter set on `query`.

        Args:
            query: Declarative filter; an empty query matches all books

        Returns:
            Matching books, newest first
        """
        ...

    def get_book(self, book_id: UUID) -> Optional[Book]:
        """Return the book with this id, or None."""
        ...

    def save_book(self, book: Book) -> None:
        """
        Insert or replace a book.

        Raises:
            ValueError: If the book violates catalog constraints
        """
        ...

    def update_book(self, book_id: UUID, **changes) -> bool:
        """
        Patch fields of a book.

        Returns:
            True if a book was updated, False if the id does not exist
        """
        ...

    def find_users(self, query: UserQuery) -> List[User]:
        """Return users matching the query, ordered by username."""
        ...

    def get_user(self, user_id: UUID) -> Optional[User]:
        """Return the user with this id, or None."""
        ...

    def save_user(self, user: User) -> None:
        """
        Insert or replace a user.

        Raises:
            ValueError: If the username is already taken by another user
        """
        ...

    def insert_exchange_request(self, request: ExchangeRequest) -> None:
        """
        Persist a new exchange request.

        Raises:
            ValueError: If a constraint is violated, such as a second pending
                        request for the same book and requester
        """
        ...

    def get_exchange_request(self, request_id: UUID) -> Optional[ExchangeRequest]:
        """Return the request with this id, or None."""
        ...

    def find_exchange_requests(self, query: ExchangeRequestQuery) -> List[ExchangeRequest]:
        """Return requests matching the query, newest first."""
        ...

    def update_exchange_request_status(
        self, request_id: UUID, status: ExchangeStatus
    ) -> bool:
        """
        Set the status of a request without touching any book.

        Returns:
            True if a request was updated, False if the id does not exist
        """
        ...

    def accept_exchange_and_mark_unavailable(
        self, request_id: UUID, book_id: UUID, offered_book_id: Optional[UUID] = None
    ) -> None:
        """
        Atomically mark the request accepted and both books unavailable.

        Either every change is applied or none is.
        """
        ...

    def cancel_exchange_and_mark_available(
        self, request_id: UUID, book_id: UUID, offered_book_id: Optional[UUID] = None
    ) -> None:
        """
        Atomically mark the request cancelled and both books available again.

        This is the undo of accept_exchange_and_mark_unavailable.
        """
        ...

    def complete_exchange_and_mark_unavailable(
        self, request_id: UUID, book_id: UUID, offered_book_id: Optional[UUID] = None
    ) -> None:
        """Atomically mark the request done and both books unavailable for good."""
        ...

    def upsert_rating(self, rating: UserRating) -> UserRating:
        """
        Insert a rating, or update the existing one for the same
        (rater, rated) pair.

        Returns:
            The stored rating (created_at preserved on update)
        """
        ...

    def get_rating(self, rater_user_id: UUID, rated_user_id: UUID) -> Optional[UserRating]:
        ...

    def find_ratings(self, rated_user_id: UUID) -> List[UserRating]:
        """Return the ratings a user received, newest first."""
        ...

    def delete_rating(self, rater_user_id: UUID, rated_user_id: UUID) -> bool:
        """Returns True if a rating was deleted, False if none existed."""
        ...

    def ping(self) -> bool:
        """
        Check whether the store is reachable.

        Used for health checks. Must not raise.
        """
        ...


class NotificationSink(Protocol):
    """
    Port for in-app notifications.

    Fire-and-forget: callers log failures and carry on.
    """

    def notify(
        self,
        user_id: UUID,
        type: str,
        content: str,
        related_id: Optional[UUID] = None,
    ) -> None:
        """
        Deliver a notification to a user.

        Raises:
            RuntimeError: If delivery fails
        """
        ...


class MessagingSink(Protocol):
    """Port for direct messages. Same fire-and-forget contract as notifications."""

    def send_message(self, sender_id: UUID, receiver_id: UUID, content: str) -> None:
        """
        Send a direct message.

        Raises:
            RuntimeError: If delivery fails
        """
        ...
