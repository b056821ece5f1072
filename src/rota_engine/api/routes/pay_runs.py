"""Pay run API endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response, status

from rota_engine.api.dependencies import CurrentActor, DbSession
from rota_engine.api.schemas import (
    ErrorResponse,
    PayPeriodRequest,
    PayRunChangeListResponse,
    PayRunChangeResponse,
    PayRunCreate,
    PayRunDetailResponse,
    PayRunLineResponse,
    PayRunLineUpdate,
    PayRunListResponse,
    PayRunResponse,
    PayRunUpdate,
    PreviewResponse,
    SuggestedPeriodResponse,
)
from rota_engine.services.export_service import ExportService
from rota_engine.services.pay_run_service import PayRunService

router = APIRouter(prefix="/pay-runs", tags=["pay-runs"])

_ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


# ============================================================================
# Preview / create / read
# ============================================================================


@router.post("/preview", response_model=PreviewResponse, responses=_ERRORS)
async def preview_pay_run(
    db: DbSession,
    actor: CurrentActor,
    payload: PayPeriodRequest,
) -> PreviewResponse:
    """Show what a run for the period would contain. Persists nothing."""
    preview = await PayRunService(db).preview(
        actor, payload.pay_period_start, payload.pay_period_end
    )
    return PreviewResponse(**preview.to_dict())


@router.get("/suggested-period", response_model=SuggestedPeriodResponse, responses=_ERRORS)
async def suggested_period(
    db: DbSession,
    actor: CurrentActor,
    day: Annotated[date | None, Query(alias="date")] = None,
) -> SuggestedPeriodResponse:
    """The tenant's pay period containing the given date (default today)."""
    period = await PayRunService(db).suggested_period(actor, day or date.today())
    return SuggestedPeriodResponse(period_start=period.start, period_end=period.end)


@router.post(
    "",
    response_model=PayRunDetailResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def create_pay_run(
    db: DbSession,
    actor: CurrentActor,
    payload: PayRunCreate,
) -> PayRunDetailResponse:
    """Create a draft pay run from approved timesheets."""
    run = await PayRunService(db).create(
        actor, payload.pay_period_start, payload.pay_period_end, payload.notes
    )
    return PayRunDetailResponse.model_validate(run)


@router.get("", response_model=PayRunListResponse, responses=_ERRORS)
async def list_pay_runs(
    db: DbSession,
    actor: CurrentActor,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> PayRunListResponse:
    """List pay runs for a tenant, newest period first."""
    service = PayRunService(db)
    total = await service.count_runs(actor, status_filter)
    runs = await service.list_runs(
        actor, status_filter, limit=page_size, offset=(page - 1) * page_size
    )
    return PayRunListResponse(
        items=[PayRunResponse.model_validate(run) for run in runs],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{pay_run_id}", response_model=PayRunDetailResponse, responses=_ERRORS)
async def get_pay_run(
    db: DbSession,
    actor: CurrentActor,
    pay_run_id: Annotated[UUID, Path()],
) -> PayRunDetailResponse:
    run = await PayRunService(db).get_run(actor, pay_run_id)
    return PayRunDetailResponse.model_validate(run)


@router.get("/{pay_run_id}/changes", response_model=PayRunChangeListResponse, responses=_ERRORS)
async def list_pay_run_changes(
    db: DbSession,
    actor: CurrentActor,
    pay_run_id: Annotated[UUID, Path()],
) -> PayRunChangeListResponse:
    changes = await PayRunService(db).list_changes(actor, pay_run_id)
    return PayRunChangeListResponse(
        items=[PayRunChangeResponse.model_validate(c) for c in changes],
        total=len(changes),
    )


# ============================================================================
# Mutations
# ============================================================================


@router.patch("/{pay_run_id}", response_model=PayRunResponse, responses=_ERRORS)
async def update_pay_run(
    db: DbSession,
    actor: CurrentActor,
    pay_run_id: Annotated[UUID, Path()],
    payload: PayRunUpdate,
) -> PayRunResponse:
    """Update notes and/or advance the run to the requested status.

    Notes are applied before the status change so they can be set in the
    same request that finalises the run.
    """
    service = PayRunService(db)
    run = None
    if "notes" in payload.model_fields_set:
        run = await service.update_notes(actor, pay_run_id, payload.notes)
    if payload.status is not None:
        run = await service.transition_status(
            actor, pay_run_id, payload.status, reason=payload.reason
        )
    if run is None:
        run = await service.get_run(actor, pay_run_id, load_lines=False)
    return PayRunResponse.model_validate(run)


@router.delete(
    "/{pay_run_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_ERRORS,
)
async def delete_pay_run(
    db: DbSession,
    actor: CurrentActor,
    pay_run_id: Annotated[UUID, Path()],
) -> Response:
    await PayRunService(db).delete(actor, pay_run_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch(
    "/{pay_run_id}/lines/{line_id}",
    response_model=PayRunLineResponse,
    responses=_ERRORS,
)
async def update_pay_run_line(
    db: DbSession,
    actor: CurrentActor,
    pay_run_id: Annotated[UUID, Path()],
    line_id: Annotated[UUID, Path()],
    payload: PayRunLineUpdate,
) -> PayRunLineResponse:
    """Adjust a line while the run is draft or reviewing."""
    fields = payload.model_dump(
        include={"adjustments", "adjustment_reason", "status", "hourly_rate"},
        exclude_unset=True,
    )
    line = await PayRunService(db).edit_line(
        actor, pay_run_id, line_id, reason=payload.reason, **fields
    )
    return PayRunLineResponse.model_validate(line)


@router.post("/{pay_run_id}/export", responses=_ERRORS)
async def export_pay_run(
    db: DbSession,
    actor: CurrentActor,
    pay_run_id: Annotated[UUID, Path()],
) -> Response:
    """Download the included lines as CSV. Available in every status."""
    filename, content = await ExportService(db).export_run(actor, pay_run_id)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
