"""
Converters between domain entities/value objects and API schemas.

This module centralizes all conversion logic between the domain layer
and the API layer, maintaining clean separation of concerns.
"""

from dataclasses import asdict
from typing import List
from uuid import UUID

from app.domain import entities as domain
from app.domain import value_objects as domain_vo
from app.api.v1 import schemas as api


def domain_book_to_api(book: domain.Book) -> api.Book:
    """
    Convert a domain Book entity to an API Book model.

    Args:
        book: Domain Book entity

    Returns:
        API Book model
    """
    return api.Book(**asdict(book))


def domain_books_to_api(books: List[domain.Book]) -> List[api.Book]:
    return [domain_book_to_api(book) for book in books]


def domain_browse_to_api(snapshot: domain_vo.BrowseSnapshot) -> api.BrowseResponse:
    return api.BrowseResponse(
        books=domain_books_to_api(snapshot.books),
        recently_added=domain_books_to_api(snapshot.recently_added),
        user_books=domain_books_to_api(snapshot.user_books),
        books_by_genre={
            genre: domain_books_to_api(books)
            for genre, books in snapshot.books_by_genre.items()
        },
    )


def domain_exchange_to_api(request: domain.ExchangeRequest) -> api.ExchangeRequest:
    return api.ExchangeRequest(
        id=request.id,
        book_id=request.book_id,
        requester_id=request.requester_id,
        offered_book_id=request.offered_book_id,
        status=request.status.value,
        message=request.message,
        created_at=request.created_at,
    )


def domain_result_to_api(result: domain_vo.OperationResult) -> api.OperationOutcome:
    """
    Convert a successful OperationResult into the API outcome.

    Failed results never reach this function; endpoints turn them into
    HTTP errors first.
    """
    exchange = None
    if isinstance(result.payload, domain.ExchangeRequest):
        exchange = domain_exchange_to_api(result.payload)
    return api.OperationOutcome(success=result.success, detail=result.detail, exchange=exchange)


def api_recommendation_request_to_domain(
    request: api.RecommendationRequest,
    history: List[domain.Book],
    default_limit: int,
) -> domain_vo.RecommendationOptions:
    """
    Build RecommendationOptions from the request body.

    Args:
        request: API request body
        history: Books the caller requested before (empty when unused)
        default_limit: Limit applied when the body does not set one
    """
    return domain_vo.RecommendationOptions(
        query_text=request.query_text,
        active_genre=request.active_genre,
        exclude_ids=frozenset(request.exclude_ids),
        limit=default_limit if request.limit is None else request.limit,
        request_history=tuple(history),
    )


def domain_rating_to_api(rating: domain.UserRating) -> api.Rating:
    return api.Rating(**asdict(rating))


def domain_rating_summary_to_api(
    user_id: UUID,
    summary: domain_vo.RatingSummary,
    ratings: List[domain.UserRating],
) -> api.RatingSummary:
    return api.RatingSummary(
        user_id=user_id,
        average=summary.average,
        count=summary.count,
        ratings=[domain_rating_to_api(rating) for rating in ratings],
    )
