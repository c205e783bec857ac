"""
Exchange request workflow.

State machine:

    pending --accept--> accepted --done--> done
       |                   |
       +--reject--> rejected
       |                   |
       +--cancel--> cancelled <--cancel--+

`rejected`, `cancelled` and `done` are terminal. Nothing ever moves back
to `pending`.

Whenever a transition changes book availability (accept, cancel after
accept, done) the status change and both availability flips are pushed
down to ONE store-side atomic operation, so a failure can never leave
one book flipped and the other not.

Concurrent callers are resolved by last-write-wins at the store; there
are no version checks. Notifications and messages are fire-and-forget:
their failure is logged and never rolls back the transition.
"""

import logging
from dataclasses import replace
from typing import Callable, Optional, Tuple
from uuid import UUID

from app.domain.entities import Book, ExchangeRequest
from app.domain.exceptions import (
    ConflictError,
    DomainError,
    NotAuthorizedError,
    NotFoundError,
)
from app.domain.ports import CatalogStore, MessagingSink, NotificationSink
from app.domain.value_objects import (
    ExchangeRequestQuery,
    ExchangeStatus,
    FailureKind,
    NotificationType,
    OperationResult,
)

logger = logging.getLogger(__name__)


def build_request_message(
    book: Book, offered_book: Optional[Book] = None, message: Optional[str] = None
) -> str:
    """Compose the direct message sent to a book owner about a new request."""
    content = f'Hi! I\'m interested in your book "{book.title}".'
    if offered_book is not None:
        content += f' I\'d like to offer my book "{offered_book.title}" in exchange.'
    if message:
        content += f" Message: {message}"
    return content


class ExchangeService:
    """
    Governs the lifecycle of exchange requests between two users.

    Every public method returns an OperationResult; refusals carry a
    FailureKind (not_found, unauthorized, conflict, upstream) and a
    human-readable detail. The payload of a successful result is the
    request in its new state.

    Usage:
        service = ExchangeService(catalog, notifications, messaging)
        result = service.request_exchange(book_id, requester_id, "Swap?")
        if not result:
            print(result.failure, result.detail)
    """

    def __init__(
        self,
        catalog: CatalogStore,
        notifications: NotificationSink,
        messaging: MessagingSink,
    ) -> None:
        """
        Args:
            catalog: Store owning books and exchange requests
            notifications: Sink for in-app notifications
            messaging: Sink for direct messages
        """
        self._catalog = catalog
        self._notifications = notifications
        self._messaging = messaging

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    def request_exchange(
        self,
        book_id: UUID,
        requester_id: UUID,
        message: Optional[str] = None,
        offered_book_id: Optional[UUID] = None,
    ) -> OperationResult:
        """
        Ask the owner of `book_id` for an exchange.

        Refused when the requester or the book is missing; when the book
        is unavailable or the requester's own; when the offered book is
        missing, not the requester's or not available; or when the
        requester already has a pending request for this book. Requests
        for other books of the same owner, and new requests after a
        rejection, are allowed.

        On success the owner receives a direct message summarising the
        request (best effort).
        """
        return self._run(
            "request exchange",
            lambda: self._request(book_id, requester_id, message, offered_book_id),
            success_detail="Exchange request sent",
        )

    def respond_to_exchange(
        self, request_id: UUID, caller_id: UUID, accept: bool
    ) -> OperationResult:
        """
        Accept or reject a pending request. Only the book owner may respond.

        Accepting makes the requested book and the offered book (if any)
        unavailable in the same atomic store operation that records the
        new status. Either way the requester is notified.
        """
        verb = "accepted" if accept else "rejected"
        return self._run(
            "respond to exchange",
            lambda: self._respond(request_id, caller_id, accept),
            success_detail=f"Exchange request {verb}",
        )

    def cancel_exchange(self, request_id: UUID, caller_id: UUID) -> OperationResult:
        """
        Cancel a pending or accepted request. Owner or requester only.

        Cancelling an accepted request makes both books available again
        atomically. The other party is notified.
        """
        return self._run(
            "cancel exchange",
            lambda: self._cancel(request_id, caller_id),
            success_detail="Exchange request cancelled",
        )

    def mark_exchange_done(self, request_id: UUID, caller_id: UUID) -> OperationResult:
        """
        Complete an accepted exchange. Owner or requester only.

        Both books become unavailable permanently; `done` has no undo.
        The other party is notified.
        """
        return self._run(
            "mark exchange done",
            lambda: self._mark_done(request_id, caller_id),
            success_detail="Exchange marked as done",
        )

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def _request(
        self,
        book_id: UUID,
        requester_id: UUID,
        message: Optional[str],
        offered_book_id: Optional[UUID],
    ) -> ExchangeRequest:
        if self._catalog.get_user(requester_id) is None:
            raise NotFoundError(f"User '{requester_id}' not found")
        book = self._require_book(book_id)

        if book.is_owned_by(requester_id):
            raise ConflictError("You cannot request your own book")
        if not book.is_available:
            raise ConflictError(f'"{book.title}" is not available for exchange')

        offered_book = None
        if offered_book_id is not None:
            offered_book = self._require_book(offered_book_id)
            if not offered_book.is_owned_by(requester_id):
                raise NotAuthorizedError("You can only offer books you own")
            if not offered_book.is_available:
                raise ConflictError(f'Your book "{offered_book.title}" is not available')

        pending = self._catalog.find_exchange_requests(
            ExchangeRequestQuery(
                book_id=book_id,
                requester_id=requester_id,
                status=ExchangeStatus.PENDING,
            )
        )
        if pending:
            raise ConflictError("You already have a pending request for this book")

        request = ExchangeRequest.create_new(
            book_id=book_id,
            requester_id=requester_id,
            message=message,
            offered_book_id=offered_book_id,
        )
        try:
            self._catalog.insert_exchange_request(request)
        except ValueError as e:
            raise ConflictError("You already have a pending request for this book") from e
        logger.info(f"Exchange request {request.id} created for book {book_id}")

        self._send_message_safely(
            requester_id,
            book.owner_id,
            build_request_message(book, offered_book, message),
        )
        return request

    def _respond(self, request_id: UUID, caller_id: UUID, accept: bool) -> ExchangeRequest:
        request, book = self._load(request_id)

        if not book.is_owned_by(caller_id):
            raise NotAuthorizedError("You can only respond to requests for your own books")

        target = ExchangeStatus.ACCEPTED if accept else ExchangeStatus.REJECTED
        self._guard_transition(request, target)

        if accept:
            self._catalog.accept_exchange_and_mark_unavailable(
                request.id, book.id, request.offered_book_id
            )
        else:
            self._catalog.update_exchange_request_status(request.id, target)

        logger.info(f"Exchange request {request.id} {target.value}")

        self._notify_safely(
            request.requester_id,
            NotificationType.EXCHANGE_RESPONSE,
            f'Your request for "{book.title}" has been {target.value}',
            book.id,
        )
        return replace(request, status=target)

    def _cancel(self, request_id: UUID, caller_id: UUID) -> ExchangeRequest:
        request, book = self._load(request_id)
        counterparty = self._counterparty(request, book, caller_id)

        self._guard_transition(request, ExchangeStatus.CANCELLED)

        if request.status == ExchangeStatus.ACCEPTED:
            self._catalog.cancel_exchange_and_mark_available(
                request.id, book.id, request.offered_book_id
            )
        else:
            self._catalog.update_exchange_request_status(request.id, ExchangeStatus.CANCELLED)

        logger.info(f"Exchange request {request.id} cancelled (was {request.status.value})")

        self._notify_safely(
            counterparty,
            NotificationType.EXCHANGE_CANCELLED,
            f'Exchange request for "{book.title}" has been cancelled',
            book.id,
        )
        return replace(request, status=ExchangeStatus.CANCELLED)

    def _mark_done(self, request_id: UUID, caller_id: UUID) -> ExchangeRequest:
        request, book = self._load(request_id)
        counterparty = self._counterparty(request, book, caller_id)

        if request.status != ExchangeStatus.ACCEPTED:
            raise ConflictError("Only accepted exchanges can be marked as done")

        self._catalog.complete_exchange_and_mark_unavailable(
            request.id, book.id, request.offered_book_id
        )
        logger.info(f"Exchange request {request.id} done")

        self._notify_safely(
            counterparty,
            NotificationType.EXCHANGE_DONE,
            f'Exchange for "{book.title}" has been completed!',
            book.id,
        )
        return replace(request, status=ExchangeStatus.DONE)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        action: Callable[[], ExchangeRequest],
        success_detail: str,
    ) -> OperationResult:
        """Execute a transition and convert any failure to an OperationResult."""
        try:
            request = action()
        except DomainError as e:
            logger.warning(f"Refused to {operation}: {e.detail}")
            return OperationResult.failed(e.kind, e.detail)
        except Exception as e:
            logger.error(f"Failed to {operation}: {e}")
            return OperationResult.failed(FailureKind.UPSTREAM, f"Error: {e}")

        return OperationResult.ok(success_detail, payload=request)

    def _require_book(self, book_id: UUID) -> Book:
        book = self._catalog.get_book(book_id)
        if book is None:
            raise NotFoundError(f"Book '{book_id}' not found")
        return book

    def _load(self, request_id: UUID) -> Tuple[ExchangeRequest, Book]:
        request = self._catalog.get_exchange_request(request_id)
        if request is None:
            raise NotFoundError(f"Exchange request '{request_id}' not found")
        return request, self._require_book(request.book_id)

    @staticmethod
    def _counterparty(request: ExchangeRequest, book: Book, caller_id: UUID) -> UUID:
        """Return the other party, or refuse callers who are neither."""
        if book.is_owned_by(caller_id):
            return request.requester_id
        if request.requester_id == caller_id:
            return book.owner_id
        raise NotAuthorizedError("You can only change your own exchanges")

    @staticmethod
    def _guard_transition(request: ExchangeRequest, target: ExchangeStatus) -> None:
        if not request.status.can_transition_to(target):
            raise ConflictError(
                f"Cannot move exchange request from {request.status.value} to {target.value}"
            )

    def _notify_safely(
        self,
        user_id: UUID,
        notification_type: NotificationType,
        content: str,
        related_id: Optional[UUID],
    ) -> None:
        try:
            self._notifications.notify(user_id, notification_type.value, content, related_id)
        except Exception as e:
            logger.error(f"Failed to notify user {user_id} ({notification_type.value}): {e}")

    def _send_message_safely(self, sender_id: UUID, receiver_id: UUID, content: str) -> None:
        try:
            self._messaging.send_message(sender_id, receiver_id, content)
        except Exception as e:
            logger.error(f"Exchange request created but failed to message the owner: {e}")
