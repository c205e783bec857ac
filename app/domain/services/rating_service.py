"""
User ratings.

Rating other members is a subscriber-only feature. Each rater holds at
most one rating per rated user; submitting again updates it.
"""

import logging
from datetime import datetime, UTC
from typing import Callable, List, Optional
from uuid import UUID

from app.domain.entities import UserRating
from app.domain.ports import CatalogStore
from app.domain.value_objects import FailureKind, OperationResult, RatingSummary

logger = logging.getLogger(__name__)


class RatingService:
    """Submit, delete and aggregate user ratings."""

    def __init__(
        self,
        catalog: CatalogStore,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Args:
            catalog: Store owning users and ratings
            clock: Returns "now" for subscription checks (injectable for tests)
        """
        self._catalog = catalog
        self._clock = clock or (lambda: datetime.now(UTC))

    def submit_rating(
        self,
        rater_id: UUID,
        rated_user_id: UUID,
        rating: int,
        comment: Optional[str] = None,
    ) -> OperationResult:
        """
        Create or update the rater's rating of another user.

        Refused when either user is unknown (not_found), the rater has no
        active subscription (unauthorized), or the rating is invalid or
        targets the rater (conflict).
        """
        if rater_id == rated_user_id:
            return OperationResult.failed(FailureKind.CONFLICT, "You cannot rate yourself")

        try:
            rater = self._catalog.get_user(rater_id)
            if rater is None:
                return OperationResult.failed(FailureKind.NOT_FOUND, f"User '{rater_id}' not found")

            if not rater.has_active_subscription(self._clock()):
                return OperationResult.failed(
                    FailureKind.UNAUTHORIZED,
                    "An active subscription is required to rate users",
                )

            if self._catalog.get_user(rated_user_id) is None:
                return OperationResult.failed(
                    FailureKind.NOT_FOUND, f"User '{rated_user_id}' not found"
                )

            try:
                entry = UserRating(
                    rated_user_id=rated_user_id,
                    rater_user_id=rater_id,
                    rating=rating,
                    comment=(comment or "").strip() or None,
                    updated_at=self._clock(),
                )
            except ValueError as e:
                return OperationResult.failed(FailureKind.CONFLICT, str(e))

            stored = self._catalog.upsert_rating(entry)
        except Exception as e:
            logger.error(f"Error submitting rating from {rater_id} to {rated_user_id}: {e}")
            return OperationResult.failed(FailureKind.UPSTREAM, f"Error: {e}")

        logger.info(f"User {rater_id} rated {rated_user_id} with {rating}")
        return OperationResult.ok("Rating saved", payload=stored)

    def delete_rating(self, rater_id: UUID, rated_user_id: UUID) -> OperationResult:
        try:
            deleted = self._catalog.delete_rating(rater_id, rated_user_id)
        except Exception as e:
            logger.error(f"Error deleting rating from {rater_id} to {rated_user_id}: {e}")
            return OperationResult.failed(FailureKind.UPSTREAM, f"Error: {e}")

        if not deleted:
            return OperationResult.failed(FailureKind.NOT_FOUND, "No rating to delete")
        return OperationResult.ok("Rating deleted")

    def get_ratings(self, user_id: UUID) -> List[UserRating]:
        """Ratings received by a user, newest first ([] on store failure)."""
        try:
            return self._catalog.find_ratings(user_id)
        except Exception as e:
            logger.error(f"Error fetching ratings for {user_id}: {e}")
            return []

    def get_rating_summary(self, user_id: UUID) -> RatingSummary:
        ratings = self.get_ratings(user_id)
        if not ratings:
            return RatingSummary()
        average = sum(r.rating for r in ratings) / len(ratings)
        return RatingSummary(average=round(average, 2), count=len(ratings))
