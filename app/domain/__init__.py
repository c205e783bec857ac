"""
Domain layer - Core business logic and entities.

This layer contains the business entities, value objects, and defines
the ports (interfaces) that the infrastructure layer must implement.

It has NO dependencies on external frameworks, databases, or APIs.
"""

from .entities import Book, User, ExchangeRequest, UserRating, Notification, Message
from .value_objects import (
    BookQuery,
    ExchangeStatus,
    FailureKind,
    OperationResult,
    RecommendationOptions,
    RecommendationWeights,
    SearchMode,
)

__all__ = [
    # Entities
    "Book",
    "User",
    "ExchangeRequest",
    "UserRating",
    "Notification",
    "Message",
    # Value Objects
    "BookQuery",
    "ExchangeStatus",
    "FailureKind",
    "OperationResult",
    "RecommendationOptions",
    "RecommendationWeights",
    "SearchMode",
]
