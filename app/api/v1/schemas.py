"""
Pydantic models for the HTTP API.

These mirror the domain entities but are owned by the API layer, so the
wire format can evolve without touching the domain.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


Condition = Literal["Like New", "Very Good", "Good", "Fair", "Poor"]
ExchangeStatusName = Literal["pending", "accepted", "rejected", "cancelled", "done"]


class Book(BaseModel):
    """API representation of a listed book."""

    id: UUID = Field(description="Unique identifier of the book")
    title: str
    author: str
    description: str = ""
    genre: str | None = None
    condition: Condition = "Good"
    cover_image_url: str | None = None
    owner_id: UUID = Field(description="User who listed the book")
    is_available: bool = True
    created_at: datetime


class BrowseResponse(BaseModel):
    """Listings for the browse page, computed from one catalog snapshot."""

    books: list[Book] = Field(default_factory=list, description="Every book visible to the caller")
    recently_added: list[Book] = Field(default_factory=list)
    user_books: list[Book] = Field(default_factory=list, description="The caller's own books")
    books_by_genre: dict[str, list[Book]] = Field(default_factory=dict)


# request body of POST /recommendations
class RecommendationRequest(BaseModel):
    query_text: str = Field(default="", description="Free text the user is searching for")
    active_genre: str | None = Field(default=None, description="Genre filter currently applied")
    exclude_ids: list[UUID] = Field(default_factory=list, description="Books already on screen")
    limit: int | None = Field(default=None, ge=0, le=100, description="Max results (0-100)")
    use_history: bool = Field(
        default=True,
        description="Bias results with the caller's exchange request history",
    )


class AvailabilityUpdate(BaseModel):
    is_available: bool


class ExchangeCreate(BaseModel):
    """Request body for POST /exchanges."""

    book_id: UUID = Field(description="Book the caller wants")
    offered_book_id: UUID | None = Field(
        default=None, description="One of the caller's books offered in return"
    )
    message: str | None = Field(default=None, max_length=2000)


class ExchangeResponseBody(BaseModel):
    accept: bool = Field(description="True to accept, False to reject")


class ExchangeRequest(BaseModel):
    """API representation of an exchange request."""

    id: UUID
    book_id: UUID
    requester_id: UUID
    offered_book_id: UUID | None = None
    status: ExchangeStatusName
    message: str | None = None
    created_at: datetime


class OperationOutcome(BaseModel):
    """Result of a successful mutating operation."""

    success: bool = True
    detail: str = ""
    exchange: ExchangeRequest | None = None


class RatingSubmission(BaseModel):
    rating: int = Field(ge=1, le=5, description="Star rating from 1 to 5")
    comment: str | None = Field(default=None, max_length=1000)


class Rating(BaseModel):
    rated_user_id: UUID
    rater_user_id: UUID
    rating: int
    comment: str | None = None
    created_at: datetime
    updated_at: datetime


class RatingSummary(BaseModel):
    """Aggregate of the ratings a user has received."""

    user_id: UUID
    average: float = Field(description="Mean rating rounded to 2 decimals, 0 when unrated")
    count: int
    ratings: list[Rating] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"]
    catalog: bool = Field(description="Whether the catalog store answered")
