"""
Domain entities for the book exchange marketplace.

Entities are objects with a unique identity that runs through time and
different representations. The catalog store owns them; services only
hold transient snapshots fetched per operation.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Optional
from uuid import UUID

from .utils.uuid7 import uuid7
from .value_objects import BOOK_CONDITIONS, ExchangeStatus


@dataclass
class Book:
    """
    A physical book listed by its owner for exchange.

    Unavailable books are hidden from everybody except their owner.
    """

    id: UUID
    """Unique identifier for this book"""

    title: str
    """Book title"""

    author: str
    """Author name as entered by the owner"""

    owner_id: UUID
    """User who listed the book"""

    description: str = ""
    """Free-text description"""

    genre: Optional[str] = None
    """Genre name (matched exactly as stored)"""

    condition: str = "Good"
    """One of BOOK_CONDITIONS"""

    cover_image_url: Optional[str] = None
    """Reference to the cover image in file storage"""

    is_available: bool = True
    """False once the book is promised or handed over in an exchange"""

    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    """When the book was listed"""

    def __post_init__(self) -> None:
        """Validate book data."""
        if not self.title or not self.title.strip():
            raise ValueError("Book title cannot be empty")

        if not self.author or not self.author.strip():
            raise ValueError("Book author cannot be empty")

        if self.condition not in BOOK_CONDITIONS:
            raise ValueError(
                f"condition must be one of {BOOK_CONDITIONS}, got '{self.condition}'"
            )

        if self.description is None:
            self.description = ""

    def __eq__(self, other: object) -> bool:
        """Two books are equal if they have the same ID."""
        if not isinstance(other, Book):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def is_owned_by(self, user_id: Optional[UUID]) -> bool:
        return user_id is not None and self.owner_id == user_id

    def is_visible_to(self, viewer_id: Optional[UUID]) -> bool:
        """Owners always see their books; everybody else only available ones."""
        return self.is_available or self.is_owned_by(viewer_id)

    @staticmethod
    def create_new(title: str, author: str, owner_id: UUID, **kwargs) -> "Book":
        """
        Factory method to list a new book with an auto-generated ID.

        Args:
            title: Book title
            author: Author name
            owner_id: Listing user
            **kwargs: Additional book attributes

        Returns:
            A new Book instance with a time-ordered UUID
        """
        return Book(id=uuid7(), title=title, author=author, owner_id=owner_id, **kwargs)


@dataclass
class User:
    """
    A marketplace member.

    Subscription fields mirror what the billing provider reports; this
    module only reads them to gate subscriber-only features.
    """

    id: UUID
    username: str
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    phone_number: Optional[str] = None
    location_city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    subscription_status: str = "inactive"
    subscription_end_date: Optional[datetime] = None
    stripe_customer_id: Optional[str] = None
    stripe_product_id: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if not self.username or not self.username.strip():
            raise ValueError("username cannot be empty")

        if self.subscription_status not in ("active", "inactive"):
            raise ValueError(
                "subscription_status must be 'active' or 'inactive', "
                f"got '{self.subscription_status}'"
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, User):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def has_active_subscription(self, now: Optional[datetime] = None) -> bool:
        """
        Check whether the user may use subscriber-only features.

        A subscription counts as active when its status is "active" and
        it has no end date or the end date lies in the future.
        """
        if self.subscription_status != "active":
            return False
        if self.subscription_end_date is None:
            return True
        now = now or datetime.now(UTC)
        end = self.subscription_end_date
        if end.tzinfo is None:
            end = end.replace(tzinfo=UTC)
        return end > now


@dataclass
class ExchangeRequest:
    """
    A proposal to trade an (optional) offered book for a listed one.

    Status only moves forward along the exchange state machine; see
    ExchangeStatus for the allowed transitions.
    """

    id: UUID
    """Unique identifier for this request"""

    book_id: UUID
    """The wanted book"""

    requester_id: UUID
    """User asking for the book"""

    status: ExchangeStatus = ExchangeStatus.PENDING
    """Current lifecycle status"""

    offered_book_id: Optional[UUID] = None
    """Requester's counter-offer, if any"""

    message: Optional[str] = None
    """Optional note to the owner"""

    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if not isinstance(self.status, ExchangeStatus):
            self.status = ExchangeStatus(self.status)

        if self.offered_book_id is not None and self.offered_book_id == self.book_id:
            raise ValueError("offered_book_id cannot be the requested book")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExchangeRequest):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @staticmethod
    def create_new(
        book_id: UUID,
        requester_id: UUID,
        message: Optional[str] = None,
        offered_book_id: Optional[UUID] = None,
    ) -> "ExchangeRequest":
        """Create a pending request with a generated ID."""
        return ExchangeRequest(
            id=uuid7(),
            book_id=book_id,
            requester_id=requester_id,
            message=message or None,
            offered_book_id=offered_book_id,
        )


@dataclass
class UserRating:
    """One user's 1-5 star rating of another. Unique per (rater, rated)."""

    rated_user_id: UUID
    rater_user_id: UUID
    rating: int
    comment: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if isinstance(self.rating, bool) or not isinstance(self.rating, int):
            raise ValueError(f"rating must be an integer, got {self.rating!r}")

        if not (1 <= self.rating <= 5):
            raise ValueError(f"rating must be between 1 and 5, got {self.rating}")

        if self.rated_user_id == self.rater_user_id:
            raise ValueError("Users cannot rate themselves")


@dataclass
class Notification:
    """An in-app notification delivered to a single user."""

    user_id: UUID
    type: str
    content: str
    related_id: Optional[UUID] = None
    is_read: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class Message:
    """A direct chat message between two users."""

    sender_id: UUID
    receiver_id: UUID
    content: str
    is_read: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if not self.content or not self.content.strip():
            raise ValueError("Message content cannot be empty")
