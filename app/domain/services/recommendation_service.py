"""
Book recommendation engine.

Ranks available books with a single additive score that blends three
independent signals:

1. **Personal history** - genre and author frequencies over the books the
   user previously requested (their behaviour, not their own listings)
2. **Active filter** - a bonus for the genre the user is browsing
3. **Text relevance** - whole-query and per-token substring hits on
   title, author, genre and description

plus a flat availability base and a small bonus for well-kept copies.
Weights live in RecommendationWeights so ranking can be retuned without
code changes.

The engine is pure: it never touches the catalog, and identical inputs
always produce identical output.
"""

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from app.domain.entities import Book
from app.domain.value_objects import (
    PreferenceProfile,
    RecommendationOptions,
    RecommendationWeights,
)

logger = logging.getLogger(__name__)

OTHER_GENRE = "Other"


class RecommendationService:
    """
    Scores and selects books to suggest next to search results.

    Usage:
        service = RecommendationService()
        picks = service.get_recommendations(
            all_books,
            RecommendationOptions(query_text="dune", request_history=history),
        )
    """

    def __init__(self, weights: Optional[RecommendationWeights] = None) -> None:
        """
        Args:
            weights: Scoring constants; defaults to RecommendationWeights()
        """
        self._weights = weights or RecommendationWeights()

    @property
    def weights(self) -> RecommendationWeights:
        return self._weights

    def get_recommendations(
        self,
        all_books: Sequence[Book],
        options: Optional[RecommendationOptions] = None,
    ) -> List[Book]:
        """
        Return the top-N books for a search context.

        Algorithm:
        1. Build a PreferenceProfile from options.request_history
        2. Drop excluded and unavailable books
        3. Score each remaining book (see score_book)
        4. Stable sort by score, descending; ties keep input order
        5. Truncate to options.limit

        With no history, no query and no active genre every book scores
        the base plus its condition bonus, so the ranking degrades to
        "best condition first, then input order".

        Args:
            all_books: Candidate books, in the order ties should keep
            options: Search context; defaults to RecommendationOptions()

        Returns:
            Up to options.limit books; [] for empty input or limit <= 0
        """
        options = options or RecommendationOptions()

        if not all_books or options.limit <= 0:
            return []

        profile = self.build_preference_profile(options.request_history)

        scored = [
            (book, self.score_book(book, options.query_text, options.active_genre, profile))
            for book in all_books
            if book.id not in options.exclude_ids and book.is_available
        ]

        # sorted() is stable: equal scores keep their all_books order
        scored = sorted(scored, key=lambda pair: pair[1], reverse=True)

        logger.debug(
            f"Scored {len(scored)} candidates "
            f"(history={profile.total_requests}, query='{options.query_text}', "
            f"genre={options.active_genre})"
        )

        return [book for book, _ in scored[: options.limit]]

    @staticmethod
    def build_preference_profile(request_history: Iterable[Book]) -> PreferenceProfile:
        """
        Count genres and (lower-cased) authors across requested books.

        Books without a genre still count towards the total and the author
        counts, but add no genre entry.
        """
        history = list(request_history)
        genre_counts: Counter = Counter(book.genre for book in history if book.genre)
        author_counts: Counter = Counter(book.author.lower() for book in history)

        return PreferenceProfile(
            genre_counts=dict(genre_counts),
            author_counts=dict(author_counts),
            total_requests=len(history),
        )

    def score_book(
        self,
        book: Book,
        query_text: str = "",
        active_genre: Optional[str] = None,
        profile: Optional[PreferenceProfile] = None,
    ) -> float:
        """
        Compute the additive relevance score of one book.

        Args:
            book: Candidate book
            query_text: Raw search text (trimmed and lower-cased here)
            active_genre: Genre currently selected in the UI, if any
            profile: User preference profile; None means no history

        Returns:
            Total score (higher is better)
        """
        w = self._weights
        score = 0.0

        if book.is_available:
            score += w.availability_base

        if profile is not None and not profile.is_empty():
            score += profile.genre_share(book.genre) * w.genre_affinity
            score += profile.author_share(book.author) * w.author_affinity

        if active_genre and book.genre == active_genre:
            score += w.active_genre

        query = (query_text or "").strip().lower()
        if query:
            score += self._text_score(book, query)

        score += w.bonus_for_condition(book.condition)

        return score

    def _text_score(self, book: Book, query: str) -> float:
        w = self._weights
        title = book.title.lower()
        author = book.author.lower()
        genre = (book.genre or "").lower()
        description = (book.description or "").lower()

        score = 0.0

        if query in title:
            score += w.title_match
        if query in author:
            score += w.author_match
        if query in genre:
            score += w.genre_match
        if query in description:
            score += w.description_match

        tokens = [token for token in query.split() if len(token) >= w.min_token_length]
        for token in tokens:
            if token in title:
                score += w.title_token
            if token in author:
                score += w.author_token
            if token in genre:
                score += w.genre_token
            if token in description:
                score += w.description_token

        return score

    def get_popular_books(self, all_books: Sequence[Book], limit: int = 6) -> List[Book]:
        """
        Pick available books round-robin across genres for variety.

        Genres are visited in first-seen order; books without a genre are
        grouped under "Other". Within a genre input order is kept.
        """
        if limit <= 0:
            return []

        groups: Dict[str, List[Book]] = {}
        for book in all_books:
            if book.is_available:
                groups.setdefault(book.genre or OTHER_GENRE, []).append(book)

        queues = [list(books) for books in groups.values()]
        popular: List[Book] = []

        while len(popular) < limit and any(queues):
            for queue in queues:
                if queue and len(popular) < limit:
                    popular.append(queue.pop(0))

        return popular

    def get_books_by_author(
        self,
        all_books: Sequence[Book],
        author: str,
        exclude_ids: Iterable[UUID] = (),
        limit: int = 4,
    ) -> List[Book]:
        """Available books by the same author (case-insensitive), input order."""
        excluded = set(exclude_ids)
        author_lower = author.lower()
        matches = [
            book
            for book in all_books
            if book.author.lower() == author_lower
            and book.id not in excluded
            and book.is_available
        ]
        return matches[: max(limit, 0)]

    def get_books_by_genre(
        self,
        all_books: Sequence[Book],
        genre: str,
        exclude_ids: Iterable[UUID] = (),
        limit: int = 6,
    ) -> List[Book]:
        """Available books in exactly this genre, input order."""
        excluded = set(exclude_ids)
        matches = [
            book
            for book in all_books
            if book.genre == genre and book.id not in excluded and book.is_available
        ]
        return matches[: max(limit, 0)]
