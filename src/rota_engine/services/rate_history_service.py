"""Maintenance of the effective-dated staff rate history."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rota_engine.models import Staff, StaffHourlyRate
from rota_engine.services.authorization import WRITE_ROLES, Actor, require_role
from rota_engine.services.errors import DuplicateRateError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class RateHistoryService:
    """Rate history is append-only: new rates are added with a future or
    current effective date, and only rates that have not yet taken effect
    may be removed.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_staff(self, actor: Actor, staff_id: UUID) -> Staff:
        result = await self.session.execute(
            select(Staff).where(Staff.id == staff_id, Staff.tenant_id == actor.tenant_id)
        )
        staff = result.scalar_one_or_none()
        if staff is None:
            raise NotFoundError("Staff not found", {"staff_id": str(staff_id)})
        return staff

    async def list_history(self, actor: Actor, staff_id: UUID) -> list[StaffHourlyRate]:
        """All rates for a staff member, newest effective date first."""
        require_role(actor, WRITE_ROLES)
        await self._get_staff(actor, staff_id)
        result = await self.session.execute(
            select(StaffHourlyRate)
            .where(StaffHourlyRate.staff_id == staff_id)
            .order_by(StaffHourlyRate.effective_date.desc())
        )
        return list(result.scalars().all())

    async def add_rate(
        self,
        actor: Actor,
        staff_id: UUID,
        hourly_rate: Any,
        effective_date: date | None,
        notes: str | None = None,
    ) -> StaffHourlyRate:
        require_role(actor, WRITE_ROLES)
        try:
            rate = Decimal(str(hourly_rate))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError("Invalid hourly rate", {"hourly_rate": hourly_rate}) from exc
        if not rate.is_finite() or rate < 0:
            raise ValidationError("Invalid hourly rate", {"hourly_rate": str(hourly_rate)})
        if effective_date is None:
            raise ValidationError("Effective date required")

        await self._get_staff(actor, staff_id)

        existing = await self.session.execute(
            select(StaffHourlyRate.id).where(
                StaffHourlyRate.staff_id == staff_id,
                StaffHourlyRate.effective_date == effective_date,
            )
        )
        if existing.first() is not None:
            raise DuplicateRateError(
                "Rate already exists for this effective date",
                {"staff_id": str(staff_id), "effective_date": effective_date.isoformat()},
            )

        record = StaffHourlyRate(
            id=uuid4(),
            tenant_id=actor.tenant_id,
            staff_id=staff_id,
            hourly_rate=rate,
            effective_date=effective_date,
            notes=notes or None,
            created_by=actor.user_id,
        )
        self.session.add(record)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise DuplicateRateError(
                "A rate already exists for this effective date",
                {"staff_id": str(staff_id), "effective_date": effective_date.isoformat()},
            ) from exc

        logger.info(
            "Added rate %s for staff %s effective %s (tenant %s)",
            rate,
            staff_id,
            effective_date,
            actor.tenant_id,
        )
        return record

    async def delete_rate(
        self,
        actor: Actor,
        staff_id: UUID,
        rate_id: UUID,
        today: date | None = None,
    ) -> None:
        """Remove a rate that has not taken effect yet."""
        require_role(actor, WRITE_ROLES)
        record = await self.session.get(StaffHourlyRate, rate_id)
        if record is None or record.staff_id != staff_id or record.tenant_id != actor.tenant_id:
            raise NotFoundError("Rate not found", {"rate_id": str(rate_id)})

        if record.is_historical(today or date.today()):
            raise ValidationError(
                "Cannot delete historical rates",
                {"rate_id": str(rate_id), "effective_date": record.effective_date.isoformat()},
            )

        await self.session.delete(record)
        await self.session.flush()
        logger.info("Deleted future rate %s for staff %s (tenant %s)", rate_id, staff_id, actor.tenant_id)
