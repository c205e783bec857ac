"""
Tests for RecommendationService.

The engine is pure, so every test builds books in memory and checks the
ranking produced for a given search context.

Test Pattern: AAA (Arrange-Act-Assert)
"""

import pytest

from app.domain.entities import Book
from app.domain.services import RecommendationService
from app.domain.utils.uuid7 import uuid7
from app.domain.value_objects import (
    PreferenceProfile,
    RecommendationOptions,
    RecommendationWeights,
)


# ============================================================================
# FIXTURES
# ============================================================================

OWNER = uuid7()


def make_book(
    title: str,
    author: str = "Some Author",
    genre: str = None,
    description: str = "",
    condition: str = "Fair",
    is_available: bool = True,
) -> Book:
    """Helper to list a book; 'Fair' condition carries no bonus."""
    return Book.create_new(
        title=title,
        author=author,
        owner_id=OWNER,
        genre=genre,
        description=description,
        condition=condition,
        is_available=is_available,
    )


@pytest.fixture
def service():
    return RecommendationService()


# ============================================================================
# SCORING TESTS
# ============================================================================

class TestScoreBook:
    """Tests for the additive score of a single book."""

    def test_available_book_gets_base_score(self, service):
        book = make_book("Anything")
        assert service.score_book(book) == 10.0

    def test_unavailable_book_gets_no_base(self, service):
        book = make_book("Anything", is_available=False)
        assert service.score_book(book) == 0.0

    def test_whole_query_and_token_hits_add_up(self, service):
        """'dune' hits the title as a whole query (+40) and as a token (+15)."""
        book = make_book(
            "Dune",
            author="Frank Herbert",
            genre="Science Fiction",
            description="desert planet",
            condition="Good",
        )

        score = service.score_book(book, query_text="  DUNE ")

        assert score == 10 + 40 + 15 + 3

    def test_every_field_contributes(self, service):
        book = make_book(
            "Mystery Manor",
            author="Mystery Writer",
            genre="Mystery",
            description="A mystery novel",
        )

        score = service.score_book(book, query_text="mystery")

        # whole query: 40 + 35 + 30 + 20, tokens: 15 + 12 + 10 + 5
        assert score == 10 + 125 + 42

    def test_short_tokens_are_ignored(self, service):
        """Tokens under three characters only count via the whole query."""
        book = make_book("To Be Or Not")

        score = service.score_book(book, query_text="to be")

        assert score == 10 + 40

    def test_active_genre_must_match_exactly(self, service):
        book = make_book("Emma", genre="Romance")

        assert service.score_book(book, active_genre="Romance") == 60.0
        assert service.score_book(book, active_genre="romance") == 10.0

    def test_profile_affinities(self, service):
        profile = PreferenceProfile(
            genre_counts={"Mystery": 3},
            author_counts={"agatha christie": 1},
            total_requests=4,
        )
        book = make_book("Poirot", author="Agatha Christie", genre="Mystery")

        score = service.score_book(book, profile=profile)

        assert score == pytest.approx(10 + 0.75 * 100 + 0.25 * 80)

    @pytest.mark.parametrize(
        "condition, bonus",
        [("Like New", 5), ("Very Good", 0), ("Good", 3), ("Fair", 0), ("Poor", 0)],
    )
    def test_condition_bonus(self, service, condition, bonus):
        book = make_book("Anything", condition=condition)
        assert service.score_book(book) == 10 + bonus

    def test_custom_weights_are_used(self):
        service = RecommendationService(RecommendationWeights(availability_base=1.0))
        assert service.score_book(make_book("Anything")) == 1.0


class TestPreferenceProfile:
    def test_counts_genres_and_lowercased_authors(self):
        history = [
            make_book("A", author="Agatha Christie", genre="Mystery"),
            make_book("B", author="AGATHA CHRISTIE", genre="Mystery"),
            make_book("C", author="Jane Austen", genre=None),
        ]

        profile = RecommendationService.build_preference_profile(history)

        assert profile.total_requests == 3
        assert profile.genre_counts == {"Mystery": 2}
        assert profile.author_counts == {"agatha christie": 2, "jane austen": 1}


# ============================================================================
# RANKING TESTS
# ============================================================================

class TestGetRecommendations:
    """Tests for get_recommendations()."""

    def test_history_ranks_preferred_genre_first(self, service):
        """Three mystery requests and one romance: mysteries lead."""
        history = [make_book(f"M{i}", genre="Mystery") for i in range(3)]
        history.append(make_book("R0", genre="Romance"))
        romance = make_book("Emma", genre="Romance")
        mystery = make_book("Poirot", genre="Mystery")

        result = service.get_recommendations(
            [romance, mystery],
            RecommendationOptions(request_history=history),
        )

        assert result == [mystery, romance]

    def test_query_ranks_matching_titles_first(self, service):
        dune = make_book("Dune")
        messiah = make_book("Dune Messiah")
        unrelated = make_book("Emma")

        result = service.get_recommendations(
            [unrelated, dune, messiah],
            RecommendationOptions(query_text="dune"),
        )

        assert result == [dune, messiah, unrelated]

    def test_whole_query_in_title_beats_scattered_tokens(self, service):
        """Tokens spread over author and description never catch a title hit."""
        # Arrange
        titled = make_book("Desert Planet")
        scattered = make_book(
            "Field Notes",
            author="Planet Press",
            description="a desert crossing",
            condition="Like New",
        )
        unrelated = make_book("Emma")

        # Act
        result = service.get_recommendations(
            [unrelated, scattered, titled],
            RecommendationOptions(query_text="Desert Planet"),
        )

        # Assert
        assert result == [titled, scattered, unrelated]
        # 10 base + 40 title + 2 x 15 title tokens
        assert service.score_book(titled, query_text="desert planet") == 80.0
        # 10 base + 12 author token + 5 description token + 5 Like New
        assert service.score_book(scattered, query_text="desert planet") == 32.0

    def test_cold_start_orders_by_condition_then_input(self, service):
        """No history, no query, no genre: condition bonus then input order."""
        fair = make_book("Fair copy", condition="Fair")
        good = make_book("Good copy", condition="Good")
        like_new = make_book("Like new copy", condition="Like New")
        poor = make_book("Poor copy", condition="Poor")

        result = service.get_recommendations([fair, good, like_new, poor])

        assert result == [like_new, good, fair, poor]

    def test_ties_keep_input_order(self, service):
        books = [make_book(f"Book {i}") for i in range(5)]

        result = service.get_recommendations(books, RecommendationOptions(limit=5))

        assert result == books

    def test_excluded_and_unavailable_books_are_dropped(self, service):
        shown = make_book("Already on screen")
        gone = make_book("Promised", is_available=False)
        candidate = make_book("Candidate")

        result = service.get_recommendations(
            [shown, gone, candidate],
            RecommendationOptions(exclude_ids=[shown.id]),
        )

        assert result == [candidate]

    def test_result_truncated_to_limit(self, service):
        books = [make_book(f"Book {i}") for i in range(10)]

        result = service.get_recommendations(books, RecommendationOptions(limit=3))

        assert result == books[:3]

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_limit_returns_empty(self, service, limit):
        books = [make_book("Book")]
        assert service.get_recommendations(books, RecommendationOptions(limit=limit)) == []

    def test_empty_catalog_returns_empty(self, service):
        assert service.get_recommendations([], RecommendationOptions(query_text="dune")) == []

    def test_identical_inputs_give_identical_output(self, service):
        books = [make_book(f"Book {i}", genre="Mystery" if i % 2 else "Romance") for i in range(8)]
        options = RecommendationOptions(query_text="book", active_genre="Mystery")

        assert service.get_recommendations(books, options) == service.get_recommendations(books, options)


# ============================================================================
# SUGGESTION LISTS
# ============================================================================

class TestPopularBooks:
    def test_round_robin_across_genres(self, service):
        m1 = make_book("M1", genre="Mystery")
        m2 = make_book("M2", genre="Mystery")
        r1 = make_book("R1", genre="Romance")
        other = make_book("No genre")
        m3 = make_book("M3", genre="Mystery")

        result = service.get_popular_books([m1, m2, r1, other, m3], limit=4)

        assert result == [m1, r1, other, m2]

    def test_skips_unavailable_and_stops_when_exhausted(self, service):
        m1 = make_book("M1", genre="Mystery")
        hidden = make_book("Hidden", genre="Romance", is_available=False)

        assert service.get_popular_books([m1, hidden], limit=6) == [m1]

    def test_non_positive_limit(self, service):
        assert service.get_popular_books([make_book("M1")], limit=0) == []


class TestSameAuthorAndGenre:
    def test_books_by_author_case_insensitive(self, service):
        current = make_book("Dune", author="Frank Herbert")
        sequel = make_book("Dune Messiah", author="frank herbert")
        other = make_book("Emma", author="Jane Austen")

        result = service.get_books_by_author(
            [current, sequel, other], "Frank Herbert", exclude_ids=[current.id]
        )

        assert result == [sequel]

    def test_books_by_author_respects_limit(self, service):
        books = [make_book(f"Book {i}", author="Prolific") for i in range(6)]
        assert service.get_books_by_author(books, "Prolific") == books[:4]

    def test_books_by_genre_exact_match(self, service):
        mystery = make_book("Poirot", genre="Mystery")
        lower = make_book("poirot", genre="mystery")
        hidden = make_book("Marple", genre="Mystery", is_available=False)

        result = service.get_books_by_genre([mystery, lower, hidden], "Mystery")

        assert result == [mystery]
