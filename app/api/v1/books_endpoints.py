"""
API endpoints for browsing, searching and recommending books.

This module defines the FastAPI routes for the catalog pages. It handles
HTTP concerns and delegates to domain services.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.config import Settings
from app.domain.ports import CatalogStore
from app.domain.services import CatalogService, RecommendationService
from app.domain.value_objects import SearchMode
from app.api.v1 import schemas as api
from app.api.v1.converters import (
    api_recommendation_request_to_domain,
    domain_book_to_api,
    domain_books_to_api,
    domain_browse_to_api,
    domain_result_to_api,
)
from app.api.v1.dependencies import (
    get_catalog_service,
    get_catalog_store,
    get_current_user_id,
    get_optional_user_id,
    get_recommendation_service,
    get_settings,
)
from app.api.v1.errors import raise_for_failure

router = APIRouter()


@router.get("/books/search", response_model=list[api.Book])
def search_books(
    q: str = Query(default="", description="Free text to search for"),
    genre: Optional[str] = Query(default=None, description="Genre filter, 'all' for any"),
    mode: str = Query(default="combined", description="title, author, genre, owner or combined"),
    viewer_id: Optional[UUID] = Depends(get_optional_user_id),
    service: CatalogService = Depends(get_catalog_service),
) -> list[api.Book]:
    """
    Search available books of other users.

    Unknown modes fall back to combined search. An empty query with no
    genre returns every book the caller may see.
    """
    books = service.search_books(
        query=q,
        genre_filter=genre,
        mode=SearchMode.parse(mode),
        viewer_id=viewer_id,
    )
    return domain_books_to_api(books)


@router.get("/books/browse", response_model=api.BrowseResponse)
def browse_books(
    viewer_id: Optional[UUID] = Depends(get_optional_user_id),
    service: CatalogService = Depends(get_catalog_service),
) -> api.BrowseResponse:
    return domain_browse_to_api(service.browse(viewer_id))


@router.get("/books/popular", response_model=list[api.Book])
def popular_books(
    limit: int = Query(default=6, ge=0, le=50),
    viewer_id: Optional[UUID] = Depends(get_optional_user_id),
    catalog: CatalogService = Depends(get_catalog_service),
    recommender: RecommendationService = Depends(get_recommendation_service),
) -> list[api.Book]:
    """A genre-diverse selection of available books (round-robin by genre)."""
    candidates = [
        book for book in catalog.list_visible_books(viewer_id) if not book.is_owned_by(viewer_id)
    ]
    return domain_books_to_api(recommender.get_popular_books(candidates, limit=limit))


@router.post("/recommendations", response_model=list[api.Book])
def recommend_books(
    request: api.RecommendationRequest,
    viewer_id: Optional[UUID] = Depends(get_optional_user_id),
    catalog: CatalogService = Depends(get_catalog_service),
    recommender: RecommendationService = Depends(get_recommendation_service),
    settings: Settings = Depends(get_settings),
) -> list[api.Book]:
    """
    Rank books for the caller's current search context.

    Args:
        request: Query text, active genre, ids to exclude and limit

    Returns:
        Top-N books, best first
    """
    history = []
    if request.use_history and viewer_id is not None:
        history = catalog.get_request_history(viewer_id)

    options = api_recommendation_request_to_domain(
        request, history, default_limit=settings.recommendation_limit
    )
    candidates = [
        book for book in catalog.list_visible_books(viewer_id) if not book.is_owned_by(viewer_id)
    ]
    return domain_books_to_api(recommender.get_recommendations(candidates, options))


@router.get("/books/{book_id}", response_model=api.Book)
def get_book_by_id(
    book_id: UUID,
    service: CatalogService = Depends(get_catalog_service),
) -> api.Book:
    """
    Get a book by its unique identifier.

    Raises:
        404: Book not found
    """
    book = service.get_book(book_id)
    if book is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Book with id '{book_id}' not found",
        )

    return domain_book_to_api(book)


@router.patch("/books/{book_id}/availability", response_model=api.OperationOutcome)
def set_book_availability(
    book_id: UUID,
    body: api.AvailabilityUpdate,
    caller_id: UUID = Depends(get_current_user_id),
    service: CatalogService = Depends(get_catalog_service),
) -> api.OperationOutcome:
    """List or unlist one of the caller's books."""
    result = service.toggle_availability(book_id, caller_id, body.is_available)
    raise_for_failure(result)
    return domain_result_to_api(result)


@router.get("/health", response_model=api.HealthResponse)
def health_check(
    catalog: CatalogStore = Depends(get_catalog_store),
) -> api.HealthResponse:
    """Report whether the catalog store is reachable."""
    reachable = catalog.ping()
    return api.HealthResponse(status="ok" if reachable else "degraded", catalog=reachable)
