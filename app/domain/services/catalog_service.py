"""
Catalog use cases consumed by the pages: browse listings, composed
search, request history and the owner's availability switch.

Visibility rule: a book with is_available=False never shows up in
browse or search results for anyone but its owner. Owners always see
their own books in their listings, but never in search results.
"""

import logging
from typing import Dict, List, Optional, Union
from uuid import UUID

from app.domain.entities import Book
from app.domain.ports import CatalogStore
from app.domain.services.search_dispatcher import SearchDispatcher
from app.domain.value_objects import (
    BookQuery,
    BrowseSnapshot,
    ExchangeRequestQuery,
    FailureKind,
    OperationResult,
    SearchMode,
)

logger = logging.getLogger(__name__)

RECENTLY_ADDED_LIMIT = 10
BOOKS_PER_GENRE_LIMIT = 12
ALL_GENRES = "all"


class CatalogService:
    """
    Read-mostly facade over the catalog store.

    Query methods log store failures and return empty results; the
    availability toggle returns an OperationResult.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        dispatcher: Optional[SearchDispatcher] = None,
    ) -> None:
        """
        Args:
            catalog: Store owning books and requests
            dispatcher: Search dispatcher; built over `catalog` if omitted
        """
        self._catalog = catalog
        self._dispatcher = dispatcher or SearchDispatcher(catalog)

    def list_visible_books(self, viewer_id: Optional[UUID] = None) -> List[Book]:
        """All books the viewer may see, newest first."""
        try:
            books = self._catalog.find_books(BookQuery())
        except Exception as e:
            logger.error(f"Error fetching books: {e}")
            return []
        return [book for book in books if book.is_visible_to(viewer_id)]

    def browse(self, viewer_id: Optional[UUID] = None) -> BrowseSnapshot:
        """
        Build the browse page listings from one catalog snapshot.

        Returns:
            BrowseSnapshot with visible books, the ten newest available
            ones, the viewer's own books and available books per genre
        """
        try:
            books = self._catalog.find_books(BookQuery())
        except Exception as e:
            logger.error(f"Error fetching books for browse: {e}")
            return BrowseSnapshot()

        available = [book for book in books if book.is_available]

        by_genre: Dict[str, List[Book]] = {}
        for book in available:
            if not book.genre:
                continue
            bucket = by_genre.setdefault(book.genre, [])
            if len(bucket) < BOOKS_PER_GENRE_LIMIT:
                bucket.append(book)

        return BrowseSnapshot(
            books=[book for book in books if book.is_visible_to(viewer_id)],
            recently_added=available[:RECENTLY_ADDED_LIMIT],
            user_books=[book for book in books if book.is_owned_by(viewer_id)],
            books_by_genre=by_genre,
        )

    def search_books(
        self,
        query: str = "",
        genre_filter: Optional[str] = None,
        mode: Union[SearchMode, str] = SearchMode.COMBINED,
        viewer_id: Optional[UUID] = None,
    ) -> List[Book]:
        """
        Search books for a viewer.

        Composition:
        - genre filter set (and not "all"): genre strategy; if the query is
          non-blank too, intersect by book id with the `mode` strategy
        - otherwise, non-blank query: the `mode` strategy
        - otherwise: every visible book
        Then the viewer's own books and unavailable books are removed.

        Args:
            query: Free text
            genre_filter: Genre to restrict to; None, "" or "all" for any
            mode: Strategy for the free text
            viewer_id: Caller, whose own books are excluded

        Returns:
            Matching books in store order (newest first)
        """
        has_query = bool(query and query.strip())

        try:
            if genre_filter and genre_filter != ALL_GENRES:
                results = self._dispatcher.search(SearchMode.GENRE, genre_filter)
                if has_query:
                    matched_ids = {book.id for book in self._dispatcher.search(mode, query)}
                    results = [book for book in results if book.id in matched_ids]
            elif has_query:
                results = self._dispatcher.search(mode, query)
            else:
                results = self.list_visible_books(viewer_id)
        except Exception as e:
            logger.error(f"Error searching books: {e}")
            return []

        return [
            book
            for book in results
            if book.is_available and not book.is_owned_by(viewer_id)
        ]

    def fetch_books_by_genre(self, genre: str) -> List[Book]:
        """Available books in a genre, newest first."""
        try:
            return self._catalog.find_books(BookQuery(genre=genre, is_available=True))
        except Exception as e:
            logger.error(f"Error fetching {genre} books: {e}")
            return []

    def get_book(self, book_id: UUID) -> Optional[Book]:
        try:
            return self._catalog.get_book(book_id)
        except Exception as e:
            logger.error(f"Error fetching book {book_id}: {e}")
            return None

    def get_request_history(self, user_id: UUID) -> List[Book]:
        """
        Distinct books the user has ever requested, whatever the outcome.

        This is the behavioural signal fed to the recommendation engine.
        """
        try:
            requests = self._catalog.find_exchange_requests(
                ExchangeRequestQuery(requester_id=user_id)
            )
            if not requests:
                return []

            book_ids = tuple(dict.fromkeys(request.book_id for request in requests))
            return self._catalog.find_books(BookQuery(ids=book_ids))
        except Exception as e:
            logger.error(f"Error fetching request history for {user_id}: {e}")
            return []

    def toggle_availability(
        self, book_id: UUID, caller_id: UUID, is_available: bool
    ) -> OperationResult:
        """Let an owner list or unlist one of their books."""
        try:
            book = self._catalog.get_book(book_id)
            if book is None:
                return OperationResult.failed(FailureKind.NOT_FOUND, f"Book '{book_id}' not found")

            if not book.is_owned_by(caller_id):
                logger.warning(f"User {caller_id} tried to toggle book {book_id} they do not own")
                return OperationResult.failed(
                    FailureKind.UNAUTHORIZED,
                    "You can only change availability of your own books",
                )

            self._catalog.update_book(book_id, is_available=is_available)
        except Exception as e:
            logger.error(f"Error toggling availability of book {book_id}: {e}")
            return OperationResult.failed(FailureKind.UPSTREAM, f"Error: {e}")

        state = "available" if is_available else "unavailable"
        logger.info(f"Book {book_id} marked as {state}")
        return OperationResult.ok(f"Book marked as {state}")
