"""
FastAPI dependencies for dependency injection.

This module provides singleton instances of adapters and services
for use with FastAPI's Depends() system.

Note: We use module-level singletons instead of @lru_cache with Depends()
parameters, which is an antipattern that can cause unexpected behavior.
"""

from typing import Optional, Union
from uuid import UUID

from fastapi import Header, HTTPException, status

from app.config import Settings
from app.domain.ports import CatalogStore
from app.domain.services import (
    CatalogService,
    ExchangeService,
    RatingService,
    RecommendationService,
)
from app.infrastructure.db.sqlite_catalog_store import SqliteCatalogStore
from app.infrastructure.db.sqlite_inbox import SqliteInbox
from app.infrastructure.external.postgrest_catalog_store import (
    PostgrestCatalogStore,
    PostgrestClient,
    PostgrestInbox,
)

# Module-level singletons (initialized lazily)
_settings: Optional[Settings] = None
_catalog_store: Optional[CatalogStore] = None
_inbox: Optional[Union[SqliteInbox, PostgrestInbox]] = None
_catalog_service: Optional[CatalogService] = None
_recommendation_service: Optional[RecommendationService] = None
_exchange_service: Optional[ExchangeService] = None
_rating_service: Optional[RatingService] = None


def get_settings() -> Settings:
    """Provide settings read once from the environment."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def _postgrest_client(settings: Settings) -> PostgrestClient:
    return PostgrestClient(settings.postgrest_url, api_key=settings.postgrest_api_key)


def get_catalog_store() -> CatalogStore:
    """Provide a singleton catalog store for the configured backend."""
    global _catalog_store
    if _catalog_store is None:
        settings = get_settings()
        if settings.catalog_backend == "postgrest":
            _catalog_store = PostgrestCatalogStore(_postgrest_client(settings))
        else:
            _catalog_store = SqliteCatalogStore(settings.db_path)
    return _catalog_store


def get_inbox() -> Union[SqliteInbox, PostgrestInbox]:
    """Provide the sink used for both notifications and messages."""
    global _inbox
    if _inbox is None:
        settings = get_settings()
        if settings.catalog_backend == "postgrest":
            _inbox = PostgrestInbox(_postgrest_client(settings))
        else:
            _inbox = SqliteInbox(settings.db_path)
    return _inbox


def get_catalog_service() -> CatalogService:
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = CatalogService(get_catalog_store())
    return _catalog_service


def get_recommendation_service() -> RecommendationService:
    global _recommendation_service
    if _recommendation_service is None:
        _recommendation_service = RecommendationService()
    return _recommendation_service


def get_exchange_service() -> ExchangeService:
    """Provide the Exchange Service with store and sinks wired."""
    global _exchange_service
    if _exchange_service is None:
        inbox = get_inbox()
        _exchange_service = ExchangeService(
            catalog=get_catalog_store(),
            notifications=inbox,
            messaging=inbox,
        )
    return _exchange_service


def get_rating_service() -> RatingService:
    global _rating_service
    if _rating_service is None:
        _rating_service = RatingService(get_catalog_store())
    return _rating_service


def get_current_user_id(x_user_id: UUID = Header(...)) -> UUID:
    """
    Caller identity from the X-User-Id header.

    Authentication happens upstream; this layer only trusts the header.
    """
    return x_user_id


def get_optional_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[UUID]:
    """Caller identity for read endpoints that also serve anonymous visitors."""
    if not x_user_id:
        return None
    try:
        return UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-Id must be a UUID",
        )


def reset_dependencies() -> None:
    """
    Reset all singletons. Useful for testing.

    This allows tests to point the app at a fresh database by changing
    the environment and resetting the module state between test cases.
    """
    global _settings, _catalog_store, _inbox
    global _catalog_service, _recommendation_service, _exchange_service, _rating_service

    _settings = None
    _catalog_store = None
    _inbox = None
    _catalog_service = None
    _recommendation_service = None
    _exchange_service = None
    _rating_service = None
