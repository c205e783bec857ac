"""
API endpoints for user ratings.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.domain.services import RatingService
from app.api.v1 import schemas as api
from app.api.v1.converters import domain_rating_summary_to_api, domain_rating_to_api
from app.api.v1.dependencies import get_current_user_id, get_rating_service
from app.api.v1.errors import raise_for_failure

router = APIRouter()


@router.put("/users/{user_id}/ratings", response_model=api.Rating)
def submit_rating(
    user_id: UUID,
    body: api.RatingSubmission,
    caller_id: UUID = Depends(get_current_user_id),
    service: RatingService = Depends(get_rating_service),
) -> api.Rating:
    """
    Create or update the caller's rating of `user_id`.

    Raises:
        403: Caller has no active subscription
        404: Either user not found
        409: Caller rating themselves
    """
    result = service.submit_rating(caller_id, user_id, body.rating, body.comment)
    raise_for_failure(result)
    return domain_rating_to_api(result.payload)


@router.delete("/users/{user_id}/ratings", status_code=status.HTTP_204_NO_CONTENT)
def delete_rating(
    user_id: UUID,
    caller_id: UUID = Depends(get_current_user_id),
    service: RatingService = Depends(get_rating_service),
) -> None:
    raise_for_failure(service.delete_rating(caller_id, user_id))


@router.get("/users/{user_id}/ratings", response_model=api.RatingSummary)
def get_ratings(
    user_id: UUID,
    service: RatingService = Depends(get_rating_service),
) -> api.RatingSummary:
    """Average, count and the individual ratings received, newest first."""
    return domain_rating_summary_to_api(
        user_id,
        service.get_rating_summary(user_id),
        service.get_ratings(user_id),
    )
