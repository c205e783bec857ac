"""
Domain services package.

Services orchestrate domain logic that doesn't naturally belong to a single
entity. They coordinate between entities and ports to implement use cases.

Following Hexagonal Architecture principles, services depend only on domain
entities, value objects, and port protocols (never on concrete implementations).
"""

from .search_dispatcher import SearchDispatcher, SearchStrategy
from .recommendation_service import RecommendationService
from .exchange_service import ExchangeService
from .catalog_service import CatalogService
from .rating_service import RatingService

__all__ = [
    "SearchDispatcher",
    "SearchStrategy",
    "RecommendationService",
    "ExchangeService",
    "CatalogService",
    "RatingService",
]
