"""
Value objects for the domain layer.

Value objects are immutable objects that represent descriptive aspects
of the domain with no conceptual identity: statuses, query descriptions,
scoring weights and operation outcomes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple
from uuid import UUID


BOOK_CONDITIONS: Tuple[str, ...] = ("Like New", "Very Good", "Good", "Fair", "Poor")
"""Allowed values for Book.condition, best first"""


class ExchangeStatus(str, Enum):
    """Lifecycle status of an exchange request."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    DONE = "done"

    def is_terminal(self) -> bool:
        """Terminal statuses accept no further transition."""
        return not _TRANSITIONS[self]

    def can_transition_to(self, target: "ExchangeStatus") -> bool:
        """Check whether moving from this status to `target` is allowed."""
        return target in _TRANSITIONS[self]


_TRANSITIONS: Dict[ExchangeStatus, FrozenSet[ExchangeStatus]] = {
    ExchangeStatus.PENDING: frozenset(
        {ExchangeStatus.ACCEPTED, ExchangeStatus.REJECTED, ExchangeStatus.CANCELLED}
    ),
    ExchangeStatus.ACCEPTED: frozenset({ExchangeStatus.DONE, ExchangeStatus.CANCELLED}),
    ExchangeStatus.REJECTED: frozenset(),
    ExchangeStatus.CANCELLED: frozenset(),
    ExchangeStatus.DONE: frozenset(),
}


class SearchMode(str, Enum):
    """Matching strategy used by the search dispatcher."""

    TITLE = "title"
    AUTHOR = "author"
    GENRE = "genre"
    OWNER = "owner"
    COMBINED = "combined"

    @classmethod
    def parse(cls, value: Any) -> "SearchMode":
        """
        Resolve a mode from user input.

        Unknown or empty values fall back to COMBINED, matching the
        behaviour of the search box when no mode is picked.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.COMBINED


class FailureKind(str, Enum):
    """Why a use case refused or failed."""

    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    CONFLICT = "conflict"
    UPSTREAM = "upstream"


class NotificationType(str, Enum):
    """Notification types emitted by the exchange workflow."""

    EXCHANGE_RESPONSE = "exchange_response"
    EXCHANGE_CANCELLED = "exchange_cancelled"
    EXCHANGE_DONE = "exchange_done"


@dataclass(frozen=True)
class BookQuery:
    """
    Declarative filter over the books table.

    Every field is optional; None means "no restriction". Text fields
    are matched as case-insensitive substrings, `genre` as exact
    equality. `text` matches title OR author OR description. Stores
    return matches ordered by created_at, newest first.
    """

    title_contains: Optional[str] = None
    author_contains: Optional[str] = None
    text: Optional[str] = None
    genre: Optional[str] = None
    owner_ids: Optional[Tuple[UUID, ...]] = None
    ids: Optional[Tuple[UUID, ...]] = None
    is_available: Optional[bool] = None

    def is_empty(self) -> bool:
        """Check if no filters are set."""
        return all(
            getattr(self, field_name) is None
            for field_name in [
                "title_contains",
                "author_contains",
                "text",
                "genre",
                "owner_ids",
                "ids",
                "is_available",
            ]
        )


@dataclass(frozen=True)
class UserQuery:
    """Filter over users: case-insensitive username substring and/or ids."""

    username_contains: Optional[str] = None
    ids: Optional[Tuple[UUID, ...]] = None


@dataclass(frozen=True)
class ExchangeRequestQuery:
    """Filter over exchange requests. Results are newest first."""

    book_id: Optional[UUID] = None
    requester_id: Optional[UUID] = None
    status: Optional[ExchangeStatus] = None


@dataclass(frozen=True)
class RecommendationWeights:
    """
    Hand-tuned constants of the additive recommendation score.

    These are configuration rather than learned parameters; override any
    of them to retune ranking without touching the engine.
    """

    availability_base: float = 10.0
    genre_affinity: float = 100.0
    author_affinity: float = 80.0
    active_genre: float = 50.0

    title_match: float = 40.0
    author_match: float = 35.0
    genre_match: float = 30.0
    description_match: float = 20.0

    title_token: float = 15.0
    author_token: float = 12.0
    genre_token: float = 10.0
    description_token: float = 5.0

    min_token_length: int = 3
    """Query tokens shorter than this are ignored"""

    condition_bonus: Tuple[Tuple[str, float], ...] = (("Like New", 5.0), ("Good", 3.0))
    """(condition, bonus) pairs; conditions not listed get no bonus"""

    def bonus_for_condition(self, condition: str) -> float:
        """Return the bonus for a book condition (0 when not listed)."""
        for name, bonus in self.condition_bonus:
            if name == condition:
                return bonus
        return 0.0


@dataclass(frozen=True)
class RecommendationOptions:
    """
    Search context for a recommendation request.

    `request_history` holds the books the user previously asked for;
    it is the behavioural signal behind the preference profile.
    """

    query_text: str = ""
    active_genre: Optional[str] = None
    exclude_ids: FrozenSet[UUID] = field(default_factory=frozenset)
    limit: int = 6
    request_history: Tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        """Normalise collection fields so callers may pass lists."""
        if not isinstance(self.exclude_ids, frozenset):
            object.__setattr__(self, "exclude_ids", frozenset(self.exclude_ids))
        if not isinstance(self.request_history, tuple):
            object.__setattr__(self, "request_history", tuple(self.request_history))


@dataclass(frozen=True)
class PreferenceProfile:
    """Genre and author request frequencies derived from a user's history."""

    genre_counts: Dict[str, int] = field(default_factory=dict)
    author_counts: Dict[str, int] = field(default_factory=dict)
    """Keys are lower-cased author names"""

    total_requests: int = 0

    def __post_init__(self) -> None:
        if self.total_requests < 0:
            raise ValueError(
                f"total_requests cannot be negative, got {self.total_requests}"
            )

    def is_empty(self) -> bool:
        return self.total_requests == 0

    def genre_share(self, genre: Optional[str]) -> float:
        """Fraction of historical requests in `genre` (0 when unknown)."""
        if self.is_empty() or not genre:
            return 0.0
        return self.genre_counts.get(genre, 0) / self.total_requests

    def author_share(self, author: str) -> float:
        """Fraction of historical requests for `author`, case-insensitive."""
        if self.is_empty():
            return 0.0
        return self.author_counts.get(author.lower(), 0) / self.total_requests


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of a mutating use case.

    Truthiness follows `success`, so callers interested only in the
    boolean can write ``if service.cancel_exchange(...):``. When the
    operation did not succeed, `failure` says why.
    """

    success: bool
    failure: Optional[FailureKind] = None
    detail: str = ""
    payload: Optional[Any] = None

    def __post_init__(self) -> None:
        if self.success and self.failure is not None:
            raise ValueError("A successful result cannot carry a failure kind")
        if not self.success and self.failure is None:
            raise ValueError("failure is required when success=False")

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, detail: str = "", payload: Optional[Any] = None) -> "OperationResult":
        return cls(success=True, detail=detail, payload=payload)

    @classmethod
    def failed(cls, failure: FailureKind, detail: str) -> "OperationResult":
        return cls(success=False, failure=failure, detail=detail)


@dataclass(frozen=True)
class BrowseSnapshot:
    """What the browse page shows to a given viewer."""

    books: List[Any] = field(default_factory=list)
    """Available books plus the viewer's own, newest first"""

    recently_added: List[Any] = field(default_factory=list)
    """Up to ten newest available books"""

    user_books: List[Any] = field(default_factory=list)
    """Every book owned by the viewer, regardless of availability"""

    books_by_genre: Dict[str, List[Any]] = field(default_factory=dict)
    """Available books grouped by genre, capped per genre"""


@dataclass(frozen=True)
class RatingSummary:
    """Aggregate of the ratings a user has received."""

    average: float = 0.0
    count: int = 0

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError(f"count cannot be negative, got {self.count}")
        if self.count and not (1.0 <= self.average <= 5.0):
            raise ValueError(
                f"average must be between 1.0 and 5.0, got {self.average}"
            )
