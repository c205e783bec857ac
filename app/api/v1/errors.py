"""
Mapping from domain failure kinds to HTTP errors.
"""

from fastapi import HTTPException, status

from app.domain.value_objects import FailureKind, OperationResult

FAILURE_STATUS = {
    FailureKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    FailureKind.CONFLICT: status.HTTP_409_CONFLICT,
    FailureKind.UPSTREAM: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def raise_for_failure(result: OperationResult) -> None:
    """Raise the HTTPException matching a failed result; no-op on success."""
    if result.success:
        return
    raise HTTPException(
        status_code=FAILURE_STATUS.get(result.failure, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=result.detail,
    )
