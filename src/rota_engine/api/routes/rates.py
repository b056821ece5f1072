"""Staff rate history endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Response, status

from rota_engine.api.dependencies import CurrentActor, DbSession
from rota_engine.api.schemas import ErrorResponse, RateCreate, RateHistoryResponse, RateResponse
from rota_engine.services.rate_history_service import RateHistoryService

router = APIRouter(prefix="/staff/{staff_id}/rate-history", tags=["rates"])

_ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get("", response_model=RateHistoryResponse, responses=_ERRORS)
async def list_rate_history(
    db: DbSession,
    actor: CurrentActor,
    staff_id: Annotated[UUID, Path()],
) -> RateHistoryResponse:
    """Rate history, newest effective date first."""
    history = await RateHistoryService(db).list_history(actor, staff_id)
    return RateHistoryResponse(history=[RateResponse.model_validate(r) for r in history])


@router.post(
    "",
    response_model=RateResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def add_rate(
    db: DbSession,
    actor: CurrentActor,
    staff_id: Annotated[UUID, Path()],
    payload: RateCreate,
) -> RateResponse:
    rate = await RateHistoryService(db).add_rate(
        actor, staff_id, payload.hourly_rate, payload.effective_date, payload.notes
    )
    return RateResponse.model_validate(rate)


@router.delete(
    "/{rate_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_ERRORS,
)
async def delete_rate(
    db: DbSession,
    actor: CurrentActor,
    staff_id: Annotated[UUID, Path()],
    rate_id: Annotated[UUID, Path()],
) -> Response:
    """Remove a rate that has not taken effect yet."""
    await RateHistoryService(db).delete_rate(actor, staff_id, rate_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
