"""Timesheet aggregation into regular and overtime hours."""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rota_engine.calculators.line_builder import PayLineCalculator
from rota_engine.calculators.pay_period import week_start
from rota_engine.calculators.types import (
    AggregatedHours,
    OvertimeBasis,
    OvertimePolicy,
    TimesheetRecord,
)
from rota_engine.models import Timesheet

ZERO = Decimal("0")


def split_overtime(hours: Decimal, threshold: Decimal | None) -> tuple[Decimal, Decimal]:
    """Split a block of hours at a threshold into (regular, overtime)."""
    if threshold is None or threshold <= 0:
        return hours, ZERO
    regular = min(hours, threshold)
    return regular, max(ZERO, hours - threshold)


def aggregate_entries(
    entries: Iterable[TimesheetRecord],
    period_start: date,
    period_end: date,
    policy: OvertimePolicy | None = None,
) -> AggregatedHours:
    """Reduce one staff member's entries to payable hours.

    Only approved entries dated inside [period_start, period_end] count.
    In-range entries that are not approved are counted in unapproved_count
    but contribute no hours.
    """
    policy = policy or OvertimePolicy()
    result = AggregatedHours()
    by_week: dict[date, Decimal] = defaultdict(lambda: ZERO)

    for entry in sorted(entries, key=lambda e: (e.work_date, str(e.id))):
        if not period_start <= entry.work_date <= period_end:
            continue
        if not entry.is_approved:
            result.unapproved_count += 1
            continue
        hours = entry.hours or ZERO
        result.total_hours += hours
        result.timesheet_ids.append(entry.id)
        by_week[week_start(entry.work_date, policy.week_starts_on)] += hours

    if not policy.applies:
        result.regular_hours = result.total_hours
    elif policy.basis == OvertimeBasis.PERIOD:
        result.regular_hours, result.overtime_hours = split_overtime(
            result.total_hours, policy.threshold_hours
        )
    else:
        # Weekly threshold resets at each week boundary
        for week_hours in by_week.values():
            regular, overtime = split_overtime(week_hours, policy.threshold_hours)
            result.regular_hours += regular
            result.overtime_hours += overtime

    result.regular_hours = PayLineCalculator.round_hours(result.regular_hours)
    result.overtime_hours = PayLineCalculator.round_hours(result.overtime_hours)
    result.total_hours = result.regular_hours + result.overtime_hours
    return result


class TimesheetAggregator:
    """Loads a tenant's timesheets for a period and aggregates them per staff."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._entries: dict[UUID, list[TimesheetRecord]] | None = None
        self._loaded_for: tuple[UUID, date, date] | None = None

    async def load_entries(
        self,
        tenant_id: UUID,
        period_start: date,
        period_end: date,
    ) -> dict[UUID, list[TimesheetRecord]]:
        """Fetch every in-range entry for the tenant, grouped by staff."""
        result = await self.session.execute(
            select(
                Timesheet.id,
                Timesheet.staff_id,
                Timesheet.work_date,
                Timesheet.status,
                Timesheet.total_hours,
            )
            .where(
                Timesheet.tenant_id == tenant_id,
                Timesheet.work_date >= period_start,
                Timesheet.work_date <= period_end,
            )
            .order_by(Timesheet.staff_id, Timesheet.work_date)
        )
        grouped: dict[UUID, list[TimesheetRecord]] = defaultdict(list)
        for row in result.all():
            grouped[row.staff_id].append(
                TimesheetRecord(
                    id=row.id,
                    staff_id=row.staff_id,
                    work_date=row.work_date,
                    status=row.status,
                    hours=Decimal(row.total_hours) if row.total_hours is not None else ZERO,
                )
            )
        self._entries = dict(grouped)
        self._loaded_for = (tenant_id, period_start, period_end)
        return self._entries

    async def aggregate(
        self,
        tenant_id: UUID,
        staff_id: UUID,
        period_start: date,
        period_end: date,
        policy: OvertimePolicy | None = None,
    ) -> AggregatedHours:
        """Aggregate approved hours for one staff member."""
        if self._loaded_for != (tenant_id, period_start, period_end):
            await self.load_entries(tenant_id, period_start, period_end)
        assert self._entries is not None
        return aggregate_entries(
            self._entries.get(staff_id, []), period_start, period_end, policy
        )
