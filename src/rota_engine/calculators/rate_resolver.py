"""Effective-dated hourly rate resolution."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rota_engine.calculators.types import RateRecord
from rota_engine.models import StaffHourlyRate


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def resolve_rate(
    rates: Sequence[RateRecord],
    target_date: date | datetime,
) -> Decimal | None:
    """Return the rate effective on target_date, or None if none applies.

    ``rates`` must already be sorted by effective_date ascending. The scan
    stops at the first record dated after target_date since no later record
    can apply.
    """
    as_of = _as_date(target_date)
    applicable: Decimal | None = None
    for rate in rates:
        if rate.effective_date <= as_of:
            applicable = rate.hourly_rate
        else:
            break
    return applicable


def group_rates(records: Iterable[RateRecord]) -> dict[UUID, list[RateRecord]]:
    """Group rate rows per staff member, preserving input order."""
    grouped: dict[UUID, list[RateRecord]] = {}
    for record in records:
        grouped.setdefault(record.staff_id, []).append(record)
    return grouped


class RateResolver:
    """Loads rate history in bulk and resolves rates from it.

    One query covers every staff member in a batch; the grouped histories are
    held in memory for the duration of a run generation and then discarded.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve_rates_batch(
        self,
        staff_ids: Iterable[UUID],
        max_date: date | datetime,
    ) -> dict[UUID, list[RateRecord]]:
        """Fetch sorted rate histories for a set of staff up to max_date."""
        ids = sorted(set(staff_ids), key=str)
        if not ids:
            return {}

        result = await self.session.execute(
            select(
                StaffHourlyRate.staff_id,
                StaffHourlyRate.hourly_rate,
                StaffHourlyRate.effective_date,
            )
            .where(
                StaffHourlyRate.staff_id.in_(ids),
                StaffHourlyRate.effective_date <= _as_date(max_date),
            )
            .order_by(StaffHourlyRate.staff_id, StaffHourlyRate.effective_date)
        )
        return group_rates(
            RateRecord(
                staff_id=row.staff_id,
                hourly_rate=Decimal(row.hourly_rate),
                effective_date=row.effective_date,
            )
            for row in result.all()
        )

    async def resolve_for_staff(
        self,
        staff_id: UUID,
        target_date: date | datetime,
    ) -> Decimal | None:
        """Resolve a single staff member's rate on a date."""
        histories = await self.resolve_rates_batch([staff_id], target_date)
        return resolve_rate(histories.get(staff_id, []), target_date)
