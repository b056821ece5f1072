"""Schedule service - conflict analysis, shift reassignment and shift costing."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rota_engine.calculators.line_builder import PayLineCalculator
from rota_engine.calculators.rate_resolver import RateResolver, resolve_rate
from rota_engine.config import get_settings
from rota_engine.models import JobRole, Shift, Staff, StaffAvailability, StaffRole, TenantPayrollSettings
from rota_engine.scheduling.conflict_detector import (
    AvailabilityWindow,
    Conflict,
    ShiftRecord,
    WorkingTimeRules,
    detect_availability_conflicts,
    detect_conflicts,
    detect_working_time_conflicts,
)
from rota_engine.scheduling.role_validation import DropDecision, can_drop_shift
from rota_engine.services.authorization import SCHEDULING_ROLES, Actor, require_role
from rota_engine.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def week_bounds(week_start: date) -> tuple[datetime, datetime]:
    """Half-open UTC window [week_start, week_start + 7 days)."""
    start = datetime.combine(week_start, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=7)


class ScheduleService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.rate_resolver = RateResolver(session)

    async def load_week_shifts(self, tenant_id: UUID, week_start: date) -> list[ShiftRecord]:
        start, end = week_bounds(week_start)
        result = await self.session.execute(
            select(Shift)
            .where(
                Shift.tenant_id == tenant_id,
                Shift.start_time >= start,
                Shift.start_time < end,
                Shift.status != "cancelled",
            )
            .order_by(Shift.start_time, Shift.id)
        )
        return [ShiftRecord.from_model(shift) for shift in result.scalars().all()]

    async def load_availability(self, staff_ids: Iterable[UUID]) -> list[AvailabilityWindow]:
        ids = list(set(staff_ids))
        if not ids:
            return []
        result = await self.session.execute(
            select(StaffAvailability).where(StaffAvailability.staff_id.in_(ids))
        )
        return [AvailabilityWindow.from_model(row) for row in result.scalars().all()]

    async def working_time_rules(self, tenant_id: UUID) -> WorkingTimeRules:
        settings = get_settings()
        tenant_settings = await self.session.get(TenantPayrollSettings, tenant_id)
        return WorkingTimeRules(
            min_rest_hours=Decimal(settings.min_rest_hours),
            max_weekly_hours=Decimal(settings.max_weekly_hours),
            week_starts_on=tenant_settings.week_starts_on if tenant_settings else 0,
        )

    async def conflicts_for_week(self, actor: Actor, week_start: date) -> list[Conflict]:
        """All conflicts for the tenant's shifts starting in the given week.

        Overlap errors come first, followed by availability and working-time
        warnings.
        """
        require_role(actor, SCHEDULING_ROLES)
        shifts = await self.load_week_shifts(actor.tenant_id, week_start)
        availability = await self.load_availability(s.staff_id for s in shifts)
        rules = await self.working_time_rules(actor.tenant_id)

        conflicts = detect_conflicts(shifts)
        conflicts.extend(detect_availability_conflicts(shifts, availability))
        conflicts.extend(detect_working_time_conflicts(shifts, rules))

        logger.debug(
            "Week %s for tenant %s: %d shifts, %d conflicts",
            week_start,
            actor.tenant_id,
            len(shifts),
            len(conflicts),
        )
        return conflicts

    async def _get_shift(self, actor: Actor, shift_id: UUID) -> Shift:
        result = await self.session.execute(
            select(Shift).where(Shift.id == shift_id, Shift.tenant_id == actor.tenant_id)
        )
        shift = result.scalar_one_or_none()
        if shift is None:
            raise NotFoundError("Shift not found", {"shift_id": str(shift_id)})
        return shift

    async def _get_staff(self, actor: Actor, staff_id: UUID) -> Staff:
        result = await self.session.execute(
            select(Staff).where(Staff.id == staff_id, Staff.tenant_id == actor.tenant_id)
        )
        staff = result.scalar_one_or_none()
        if staff is None:
            raise NotFoundError("Staff not found", {"staff_id": str(staff_id)})
        return staff

    async def check_drop(self, actor: Actor, shift_id: UUID, target_staff_id: UUID) -> DropDecision:
        """Decide whether a shift may move to target_staff_id without moving it."""
        require_role(actor, SCHEDULING_ROLES)
        shift = await self._get_shift(actor, shift_id)
        return await self._decide(actor, shift, target_staff_id)

    async def _decide(self, actor: Actor, shift: Shift, target_staff_id: UUID) -> DropDecision:
        if shift.staff_id != target_staff_id:
            await self._get_staff(actor, target_staff_id)

        role_rows = await self.session.execute(
            select(StaffRole.role_id)
            .join(JobRole, JobRole.id == StaffRole.role_id)
            .where(StaffRole.staff_id == target_staff_id, JobRole.is_active.is_(True))
        )
        target_role_ids = {row.role_id for row in role_rows}

        role_exists: bool | None = None
        if shift.role_id is not None:
            role = await self.session.get(JobRole, shift.role_id)
            role_exists = role is not None and role.is_active

        return can_drop_shift(
            shift_role_id=shift.role_id,
            source_staff_id=shift.staff_id,
            target_staff_id=target_staff_id,
            target_staff_role_ids=target_role_ids,
            role_exists=role_exists,
        )

    async def reassign_shift(
        self, actor: Actor, shift_id: UUID, target_staff_id: UUID
    ) -> tuple[Shift, DropDecision]:
        """Move a shift to another staff member if their roles allow it."""
        require_role(actor, SCHEDULING_ROLES)
        shift = await self._get_shift(actor, shift_id)
        decision = await self._decide(actor, shift, target_staff_id)
        if not decision.allowed:
            raise ValidationError(
                "Shift cannot be assigned to this staff member",
                {
                    "shift_id": str(shift_id),
                    "target_staff_id": str(target_staff_id),
                    "reason": decision.reason.value if decision.reason else None,
                },
            )

        if shift.staff_id != target_staff_id:
            previous = shift.staff_id
            shift.staff_id = target_staff_id
            await self.session.flush()
            logger.info(
                "Reassigned shift %s from staff %s to %s (tenant %s)",
                shift.id,
                previous,
                target_staff_id,
                actor.tenant_id,
            )
        return shift, decision

    async def estimate_shift_costs(
        self, shifts: Iterable[ShiftRecord]
    ) -> dict[UUID, Decimal | None]:
        """Price each shift at the rate effective on its own date.

        Rates for every staff member are fetched in one query up to the
        latest shift date. Shifts with no effective rate map to None.
        """
        shift_list = list(shifts)
        if not shift_list:
            return {}

        latest = max(shift.start_time.date() for shift in shift_list)
        histories = await self.rate_resolver.resolve_rates_batch(
            (shift.staff_id for shift in shift_list), latest
        )

        costs: dict[UUID, Decimal | None] = {}
        for shift in shift_list:
            rate = resolve_rate(histories.get(shift.staff_id, []), shift.start_time)
            costs[shift.id] = (
                PayLineCalculator.round_to_cents(shift.paid_hours * rate) if rate is not None else None
            )
        return costs

    async def week_costs(
        self, actor: Actor, week_start: date
    ) -> list[tuple[ShiftRecord, Decimal | None]]:
        """Each shift starting in the week paired with its estimated cost."""
        require_role(actor, SCHEDULING_ROLES)
        shifts = await self.load_week_shifts(actor.tenant_id, week_start)
        costs = await self.estimate_shift_costs(shifts)
        return [(shift, costs[shift.id]) for shift in shifts]
