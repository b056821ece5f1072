"""Schedule consistency endpoints."""

import re
from datetime import date
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query

from rota_engine.api.dependencies import CurrentActor, DbSession
from rota_engine.api.schemas import (
    ConflictListResponse,
    ConflictResponse,
    DropCheckRequest,
    DropDecisionResponse,
    ErrorResponse,
    ShiftCostResponse,
    ShiftReassign,
    ShiftReassignResponse,
    WeekCostResponse,
)
from rota_engine.services.errors import ValidationError
from rota_engine.services.schedule_service import ScheduleService

router = APIRouter(prefix="/schedule", tags=["schedule"])

_ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}

_WEEK_START_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_week_start(value: str | None) -> date:
    """Accept a bare YYYY-MM-DD date only; no time component."""
    if not value:
        raise ValidationError("weekStart parameter is required (format: YYYY-MM-DD)")
    if not _WEEK_START_RE.match(value):
        raise ValidationError(
            "weekStart must be in format YYYY-MM-DD (no time component)",
            {"weekStart": value},
        )
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"weekStart is not a valid date: {value}", {"weekStart": value}) from exc


@router.get("/conflicts", response_model=ConflictListResponse, responses=_ERRORS)
async def list_conflicts(
    db: DbSession,
    actor: CurrentActor,
    week_start: Annotated[str | None, Query(alias="weekStart")] = None,
) -> ConflictListResponse:
    """Overlap errors plus availability and working-time warnings for a week."""
    start = parse_week_start(week_start)
    conflicts = await ScheduleService(db).conflicts_for_week(actor, start)
    return ConflictListResponse(
        week_start=start,
        conflicts=[ConflictResponse(**conflict.to_dict()) for conflict in conflicts],
    )


@router.get("/costs", response_model=WeekCostResponse, responses=_ERRORS)
async def week_costs(
    db: DbSession,
    actor: CurrentActor,
    week_start: Annotated[str | None, Query(alias="weekStart")] = None,
) -> WeekCostResponse:
    """Estimated labour cost of each shift in a week at its effective rate."""
    start = parse_week_start(week_start)
    priced = await ScheduleService(db).week_costs(actor, start)
    return WeekCostResponse(
        week_start=start,
        shifts=[
            ShiftCostResponse(
                shift_id=shift.id,
                staff_id=shift.staff_id,
                paid_hours=shift.paid_hours,
                cost=cost,
            )
            for shift, cost in priced
        ],
        total_cost=sum((cost for _, cost in priced if cost is not None), Decimal("0.00")),
        unpriced_count=sum(1 for _, cost in priced if cost is None),
    )


@router.post("/drop-check", response_model=DropDecisionResponse, responses=_ERRORS)
async def drop_check(
    db: DbSession,
    actor: CurrentActor,
    payload: DropCheckRequest,
) -> DropDecisionResponse:
    """Whether a shift may be dropped onto a staff member. Changes nothing."""
    decision = await ScheduleService(db).check_drop(actor, payload.shift_id, payload.target_staff_id)
    return DropDecisionResponse(
        allowed=decision.allowed,
        reason=decision.reason.value if decision.reason else None,
    )


@router.post("/shifts/{shift_id}/reassign", response_model=ShiftReassignResponse, responses=_ERRORS)
async def reassign_shift(
    db: DbSession,
    actor: CurrentActor,
    shift_id: Annotated[UUID, Path()],
    payload: ShiftReassign,
) -> ShiftReassignResponse:
    shift, decision = await ScheduleService(db).reassign_shift(
        actor, shift_id, payload.target_staff_id
    )
    return ShiftReassignResponse(
        shift_id=shift.id,
        staff_id=shift.staff_id,
        allowed=decision.allowed,
        reason=decision.reason.value if decision.reason else None,
    )
