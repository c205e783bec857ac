"""
API endpoints for the exchange request lifecycle.

Every route acts on behalf of the caller named in X-User-Id; the
exchange service decides whether that caller may perform the transition.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.domain.services import ExchangeService
from app.api.v1 import schemas as api
from app.api.v1.converters import domain_result_to_api
from app.api.v1.dependencies import get_current_user_id, get_exchange_service
from app.api.v1.errors import raise_for_failure

router = APIRouter()


@router.post(
    "/exchanges",
    response_model=api.OperationOutcome,
    status_code=status.HTTP_201_CREATED,
)
def create_exchange(
    body: api.ExchangeCreate,
    caller_id: UUID = Depends(get_current_user_id),
    service: ExchangeService = Depends(get_exchange_service),
) -> api.OperationOutcome:
    """
    Request a book, optionally offering one of the caller's books.

    Raises:
        404: Requested or offered book not found
        403: Offered book belongs to someone else
        409: Own book, unavailable book or duplicate pending request
    """
    result = service.request_exchange(
        book_id=body.book_id,
        requester_id=caller_id,
        message=body.message,
        offered_book_id=body.offered_book_id,
    )
    raise_for_failure(result)
    return domain_result_to_api(result)


@router.post("/exchanges/{request_id}/respond", response_model=api.OperationOutcome)
def respond_to_exchange(
    request_id: UUID,
    body: api.ExchangeResponseBody,
    caller_id: UUID = Depends(get_current_user_id),
    service: ExchangeService = Depends(get_exchange_service),
) -> api.OperationOutcome:
    result = service.respond_to_exchange(request_id, caller_id, body.accept)
    raise_for_failure(result)
    return domain_result_to_api(result)


@router.post("/exchanges/{request_id}/cancel", response_model=api.OperationOutcome)
def cancel_exchange(
    request_id: UUID,
    caller_id: UUID = Depends(get_current_user_id),
    service: ExchangeService = Depends(get_exchange_service),
) -> api.OperationOutcome:
    result = service.cancel_exchange(request_id, caller_id)
    raise_for_failure(result)
    return domain_result_to_api(result)


@router.post("/exchanges/{request_id}/done", response_model=api.OperationOutcome)
def mark_exchange_done(
    request_id: UUID,
    caller_id: UUID = Depends(get_current_user_id),
    service: ExchangeService = Depends(get_exchange_service),
) -> api.OperationOutcome:
    result = service.mark_exchange_done(request_id, caller_id)
    raise_for_failure(result)
    return domain_result_to_api(result)
