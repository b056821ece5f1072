"""Pay run generation - the shared pipeline behind preview and create."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rota_engine.calculators.aggregator import TimesheetAggregator, aggregate_entries
from rota_engine.calculators.line_builder import PayLineCalculator
from rota_engine.calculators.overtime import resolve_overtime_policy
from rota_engine.calculators.rate_resolver import RateResolver, resolve_rate
from rota_engine.calculators.types import LineComputation, OvertimeRuleType, PayTotals
from rota_engine.config import get_settings
from rota_engine.models import Staff, TenantPayrollSettings

logger = logging.getLogger(__name__)


def build_run_name(period_start: date, period_end: date) -> str:
    """Human readable run name, e.g. '1 Jan to 14 Jan 2026'."""
    return (
        f"{period_start.day} {period_start:%b} to "
        f"{period_end.day} {period_end:%b %Y}"
    )


@dataclass
class GeneratedRun:
    """Lines computed for a tenant and period, not yet persisted."""

    name: str
    period_start: date
    period_end: date
    lines: list[LineComputation] = field(default_factory=list)
    unapproved_count: int = 0

    @property
    def totals(self) -> PayTotals:
        return PayLineCalculator.totals_from_lines(self.lines)

    @property
    def unresolved_rate_count(self) -> int:
        return sum(1 for line in self.lines if line.issue is not None)


class PayRunGenerator:
    """Computes pay run lines from approved timesheets.

    Pipeline (stable order):
    1) Load every in-range timesheet for the tenant in one query
    2) Load active staff with approved hours
    3) Batch-load rate histories up to the period end
    4) Per staff: resolve overtime policy, aggregate hours, resolve rate,
       compute the line
    Lines are ordered by staff name then staff id for deterministic output.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.rate_resolver = RateResolver(session)
        self.aggregator = TimesheetAggregator(session)
        self.settings = get_settings()

    async def load_tenant_settings(self, tenant_id: UUID) -> TenantPayrollSettings | None:
        return await self.session.get(TenantPayrollSettings, tenant_id)

    async def generate(
        self,
        tenant_id: UUID,
        period_start: date,
        period_end: date,
    ) -> GeneratedRun:
        """Compute one line per active staff member with approved hours."""
        run = GeneratedRun(
            name=build_run_name(period_start, period_end),
            period_start=period_start,
            period_end=period_end,
        )

        entries_by_staff = await self.aggregator.load_entries(
            tenant_id, period_start, period_end
        )
        run.unapproved_count = sum(
            1
            for entries in entries_by_staff.values()
            for entry in entries
            if not entry.is_approved
        )

        staff_ids = [
            staff_id
            for staff_id, entries in entries_by_staff.items()
            if any(entry.is_approved for entry in entries)
        ]
        if not staff_ids:
            return run

        result = await self.session.execute(
            select(Staff).where(
                Staff.tenant_id == tenant_id,
                Staff.id.in_(staff_ids),
                Staff.is_active.is_(True),
            )
        )
        staff_rows = list(result.scalars().all())

        tenant_settings = await self.load_tenant_settings(tenant_id)
        rates_by_staff = await self.rate_resolver.resolve_rates_batch(
            [s.id for s in staff_rows], period_end
        )

        for staff in staff_rows:
            policy = resolve_overtime_policy(
                staff, tenant_settings, self.settings.default_overtime_multiplier
            )
            hours = aggregate_entries(
                entries_by_staff.get(staff.id, []), period_start, period_end, policy
            )
            rate = resolve_rate(rates_by_staff.get(staff.id, []), period_end)
            if rate is None:
                logger.warning(
                    "No hourly rate effective on %s for staff %s (tenant %s); "
                    "line excluded",
                    period_end,
                    staff.id,
                    tenant_id,
                )

            line = PayLineCalculator.compute_line(
                staff_id=staff.id,
                hours=hours,
                rate=rate,
                overtime_multiplier=policy.multiplier,
                overtime_flat_extra=(
                    policy.flat_extra
                    if policy.rule_type == OvertimeRuleType.FLAT_EXTRA
                    else None
                ),
            )
            line.employee_number = staff.employee_number or ""
            line.staff_name = staff.full_name
            run.lines.append(line)

        run.lines.sort(key=lambda line: (line.staff_name, str(line.staff_id)))
        return run
