"""
Multi-strategy book search.

Each SearchMode maps to one matching strategy expressed as a BookQuery
(or, for owner search, a username lookup followed by a BookQuery). The
mode -> strategy table is resolved once per call; there is no runtime
registry.

The dispatcher does not exclude anything: hiding the caller's own books
and unavailable books is the job of CatalogService.search_books.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Union

from app.domain.entities import Book
from app.domain.ports import CatalogStore
from app.domain.value_objects import BookQuery, SearchMode, UserQuery

logger = logging.getLogger(__name__)

StrategyFn = Callable[[CatalogStore, str], List[Book]]


def _search_title(catalog: CatalogStore, query: str) -> List[Book]:
    return catalog.find_books(BookQuery(title_contains=query))


def _search_author(catalog: CatalogStore, query: str) -> List[Book]:
    return catalog.find_books(BookQuery(author_contains=query))


def _search_genre(catalog: CatalogStore, query: str) -> List[Book]:
    return catalog.find_books(BookQuery(genre=query))


def _search_owner(catalog: CatalogStore, query: str) -> List[Book]:
    users = catalog.find_users(UserQuery(username_contains=query))
    if not users:
        return []
    owner_ids = tuple(user.id for user in users)
    return catalog.find_books(BookQuery(owner_ids=owner_ids))


def _search_combined(catalog: CatalogStore, query: str) -> List[Book]:
    # Callers special-case "no query" before dispatching
    if not query or not query.strip():
        return []
    return catalog.find_books(BookQuery(text=query))


_STRATEGIES: Dict[SearchMode, StrategyFn] = {
    SearchMode.TITLE: _search_title,
    SearchMode.AUTHOR: _search_author,
    SearchMode.GENRE: _search_genre,
    SearchMode.OWNER: _search_owner,
    SearchMode.COMBINED: _search_combined,
}


@dataclass(frozen=True)
class SearchStrategy:
    """A search mode bound to a catalog, exposing `search(query)`."""

    mode: SearchMode
    catalog: CatalogStore

    def search(self, query: str) -> List[Book]:
        """
        Run this strategy.

        Store failures are logged and reported as an empty result; callers
        treat "no results" and "query failed" the same way.
        """
        try:
            return _STRATEGIES[self.mode](self.catalog, query)
        except Exception as e:
            logger.error(f"Error searching books by {self.mode.value}: {e}")
            return []


class SearchDispatcher:
    """
    Dispatches a query to the matching strategy for a search mode.

    Modes:
    - title, author: case-insensitive substring on that field
    - genre: exact equality as stored
    - owner: usernames (case-insensitive substring) -> their books
    - combined: substring over title OR author OR description

    Results are ordered newest first by the store; no relevance ranking
    is applied here.
    """

    def __init__(self, catalog: CatalogStore) -> None:
        """
        Args:
            catalog: Store the strategies query
        """
        self._catalog = catalog

    def strategy_for(self, mode: Union[SearchMode, str] = SearchMode.COMBINED) -> SearchStrategy:
        """Resolve a mode (unknown values fall back to combined) to its strategy."""
        return SearchStrategy(mode=SearchMode.parse(mode), catalog=self._catalog)

    def search(self, mode: Union[SearchMode, str], query: str) -> List[Book]:
        """
        Search books with the strategy for `mode`.

        Args:
            mode: A SearchMode or its string value
            query: Raw query text

        Returns:
            Matching books, newest first; [] on no match or store failure
        """
        strategy = self.strategy_for(mode)
        results = strategy.search(query)
        logger.debug(f"{strategy.mode.value} search for '{query}' returned {len(results)} books")
        return results
