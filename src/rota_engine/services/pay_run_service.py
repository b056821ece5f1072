"""Pay run service - orchestrates run generation and the run lifecycle."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rota_engine.calculators.engine import PayRunGenerator
from rota_engine.calculators.line_builder import PayLineCalculator
from rota_engine.calculators.overtime import resolve_overtime_policy
from rota_engine.calculators.pay_period import (
    PayPeriod,
    PayPeriodConfig,
    PayPeriodConfigError,
    pay_period_for,
)
from rota_engine.calculators.types import LineIssue, LineStatus, OvertimeRuleType
from rota_engine.config import get_settings
from rota_engine.database import acquire_tenant_run_lock
from rota_engine.models import PayRun, PayRunChange, PayRunLine, Staff, TenantPayrollSettings
from rota_engine.models.base import utcnow
from rota_engine.services.authorization import READ_ROLES, WRITE_ROLES, Actor, require_role
from rota_engine.services.errors import DuplicatePayRunError, NotFoundError, ValidationError
from rota_engine.services.state_machine import (
    PayRunNotEditableError,
    PayRunStateMachine,
    PayRunStatus,
)

logger = logging.getLogger(__name__)

_UNSET: Any = object()


@dataclass(frozen=True)
class PayRunPreview:
    """Expected outcome of creating a run, computed without persisting."""

    period_start: date
    period_end: date
    staff_count: int
    total_hours: Decimal
    estimated_gross: Decimal
    unapproved_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _stringify(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def _as_money(value: Any, field: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field} must be a number", {field: value}) from exc
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number", {field: str(value)})
    return amount


class PayRunService:
    """Service for managing the pay run lifecycle.

    Operations:
    - preview: compute what a run would contain, persisting nothing
    - create: generate and persist a draft run for a pay period
    - edit_line: adjust a line while the run is draft or reviewing
    - submit_for_review / approve / finalise: advance the run
    - update_notes / delete: run housekeeping

    Every mutation is written to the PayRunChange log in the caller's
    transaction, so a failed audit write rolls back the mutation too.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.generator = PayRunGenerator(session)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_run(
        self,
        actor: Actor,
        run_id: UUID,
        load_lines: bool = True,
        load_changes: bool = False,
    ) -> PayRun:
        """Load a run for the actor's tenant, raising NotFoundError if absent."""
        require_role(actor, READ_ROLES)
        options = []
        if load_lines:
            options.append(selectinload(PayRun.lines))
        if load_changes:
            options.append(selectinload(PayRun.changes))

        result = await self.session.execute(
            select(PayRun)
            .where(PayRun.id == run_id, PayRun.tenant_id == actor.tenant_id)
            .options(*options)
        )
        run = result.scalar_one_or_none()
        if run is None:
            raise NotFoundError(f"Pay run {run_id} not found", {"pay_run_id": str(run_id)})
        return run

    async def list_runs(
        self,
        actor: Actor,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[PayRun]:
        """List the tenant's runs, newest period first."""
        query = self._runs_query(actor, status)
        query = query.order_by(PayRun.pay_period_start.desc()).limit(limit).offset(offset)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_runs(self, actor: Actor, status: str | None = None) -> int:
        query = self._runs_query(actor, status)
        total = await self.session.scalar(select(func.count()).select_from(query.subquery()))
        return total or 0

    @staticmethod
    def _runs_query(actor: Actor, status: str | None) -> Select[tuple[PayRun]]:
        require_role(actor, READ_ROLES)
        query = select(PayRun).where(PayRun.tenant_id == actor.tenant_id)
        if status is not None:
            if status not in PayRunStateMachine.VALID_TRANSITIONS:
                raise ValidationError(f"Unknown pay run status '{status}'", {"status": status})
            query = query.where(PayRun.status == status)
        return query

    async def list_changes(self, actor: Actor, run_id: UUID) -> list[PayRunChange]:
        """Change log for a run in the order it was written."""
        await self.get_run(actor, run_id, load_lines=False)
        result = await self.session.execute(
            select(PayRunChange)
            .where(
                PayRunChange.pay_run_id == run_id,
                PayRunChange.tenant_id == actor.tenant_id,
            )
            .order_by(PayRunChange.created_at)
        )
        return list(result.scalars().all())

    async def find_overlapping_run(
        self, tenant_id: UUID, period_start: date, period_end: date
    ) -> PayRun | None:
        """Any run for the tenant whose period intersects the given range."""
        result = await self.session.execute(
            select(PayRun)
            .where(
                PayRun.tenant_id == tenant_id,
                PayRun.pay_period_start <= period_end,
                PayRun.pay_period_end >= period_start,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Preview / create
    # ------------------------------------------------------------------

    @staticmethod
    def validate_period(period_start: date | None, period_end: date | None) -> None:
        if period_start is None or period_end is None:
            raise ValidationError(
                "pay_period_start and pay_period_end are required",
                {"pay_period_start": _stringify(period_start), "pay_period_end": _stringify(period_end)},
            )
        if period_start > period_end:
            raise ValidationError(
                "pay_period_start must be on or before pay_period_end",
                {"pay_period_start": period_start.isoformat(), "pay_period_end": period_end.isoformat()},
            )

    async def suggested_period(self, actor: Actor, day: date) -> PayPeriod:
        """The tenant's pay period containing a day, from its cadence settings."""
        require_role(actor, READ_ROLES)
        settings = await self.generator.load_tenant_settings(actor.tenant_id)
        config = (
            PayPeriodConfig(
                frequency=settings.pay_frequency,
                week_starts_on=settings.week_starts_on,
                first_period_start=settings.first_period_start,
                first_period_end=settings.semi_monthly_first_period_end,
                monthly_starts_on=settings.monthly_starts_on,
            )
            if settings is not None
            else PayPeriodConfig()
        )
        try:
            return pay_period_for(day, config)
        except PayPeriodConfigError as exc:
            raise ValidationError(str(exc), {"pay_frequency": config.frequency}) from exc

    async def preview(
        self, actor: Actor, period_start: date, period_end: date
    ) -> PayRunPreview:
        """Run the create pipeline without writing anything."""
        require_role(actor, WRITE_ROLES)
        self.validate_period(period_start, period_end)

        generated = await self.generator.generate(actor.tenant_id, period_start, period_end)
        totals = generated.totals
        return PayRunPreview(
            period_start=period_start,
            period_end=period_end,
            staff_count=totals.staff_count,
            total_hours=totals.total_hours,
            estimated_gross=totals.total_gross_pay,
            unapproved_count=generated.unapproved_count,
        )

    async def create(
        self,
        actor: Actor,
        period_start: date,
        period_end: date,
        notes: str | None = None,
    ) -> PayRun:
        """Generate and persist a draft run.

        Creation is serialized per tenant so two concurrent requests cannot
        both pass the overlap check; the unique constraint on the period
        catches anything that slips through.
        """
        require_role(actor, WRITE_ROLES)
        self.validate_period(period_start, period_end)

        await acquire_tenant_run_lock(self.session, str(actor.tenant_id))

        existing = await self.find_overlapping_run(actor.tenant_id, period_start, period_end)
        if existing is not None:
            raise DuplicatePayRunError(
                "A pay run already exists for an overlapping period",
                {
                    "existing_pay_run_id": str(existing.id),
                    "existing_period_start": existing.pay_period_start.isoformat(),
                    "existing_period_end": existing.pay_period_end.isoformat(),
                },
            )

        generated = await self.generator.generate(actor.tenant_id, period_start, period_end)
        totals = generated.totals

        run = PayRun(
            id=uuid4(),
            tenant_id=actor.tenant_id,
            name=generated.name,
            notes=notes,
            pay_period_start=period_start,
            pay_period_end=period_end,
            status=PayRunStatus.DRAFT.value,
            staff_count=totals.staff_count,
            total_hours=totals.total_hours,
            total_gross_pay=totals.total_gross_pay,
            created_by=actor.user_id,
        )
        run.lines = [
            PayRunLine(id=uuid4(), tenant_id=actor.tenant_id, **line.to_row())
            for line in generated.lines
        ]
        self.session.add(run)
        self._record_change(
            run,
            actor,
            field_changed="status",
            old_value=None,
            new_value=PayRunStatus.DRAFT.value,
            reason="Pay run created",
        )

        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise DuplicatePayRunError(
                "A pay run already exists for this period",
                {
                    "pay_period_start": period_start.isoformat(),
                    "pay_period_end": period_end.isoformat(),
                },
            ) from exc

        logger.info(
            "Created pay run %s for tenant %s (%s to %s): %d lines, %d unresolved rates",
            run.id,
            actor.tenant_id,
            period_start,
            period_end,
            len(run.lines),
            generated.unresolved_rate_count,
        )
        return run

    # ------------------------------------------------------------------
    # Line edits
    # ------------------------------------------------------------------

    async def edit_line(
        self,
        actor: Actor,
        run_id: UUID,
        line_id: UUID,
        *,
        adjustments: Any = _UNSET,
        adjustment_reason: Any = _UNSET,
        status: Any = _UNSET,
        hourly_rate: Any = _UNSET,
        reason: str | None = None,
    ) -> PayRunLine:
        """Apply field changes to one line and recompute its pay.

        Each field that actually changes appends exactly one change record,
        including an overtime rate derived from a new hourly rate.
        Run totals are refreshed from the included lines afterwards.
        """
        require_role(actor, WRITE_ROLES)
        run = await self.get_run(actor, run_id)
        PayRunStateMachine.validate_editable(run.status)

        line = next((ln for ln in run.lines if ln.id == line_id), None)
        if line is None:
            raise NotFoundError(
                f"Line {line_id} not found on pay run {run_id}",
                {"pay_run_id": str(run_id), "line_id": str(line_id)},
            )

        # Validate every requested value before touching the line
        updates: dict[str, Any] = {}

        if hourly_rate is not _UNSET:
            new_rate = None
            if hourly_rate is not None:
                new_rate = PayLineCalculator.round_rate(_as_money(hourly_rate, "hourly_rate"))
                if new_rate < 0:
                    raise ValidationError(
                        "hourly_rate must be non-negative", {"hourly_rate": str(hourly_rate)}
                    )
            if new_rate != line.hourly_rate:
                updates["hourly_rate"] = new_rate

        if adjustments is not _UNSET:
            new_adjustments = PayLineCalculator.round_to_cents(
                _as_money(adjustments if adjustments is not None else 0, "adjustments")
            )
            if new_adjustments != line.adjustments:
                updates["adjustments"] = new_adjustments

        if adjustment_reason is not _UNSET and adjustment_reason != line.adjustment_reason:
            updates["adjustment_reason"] = adjustment_reason

        if status is not _UNSET:
            try:
                new_status = LineStatus(status).value
            except ValueError as exc:
                raise ValidationError(
                    f"Line status must be 'included' or 'excluded', got '{status}'",
                    {"status": status},
                ) from exc
            if new_status != line.status:
                updates["status"] = new_status

        resulting_status = updates.get("status", line.status)
        resulting_rate = updates.get("hourly_rate", line.hourly_rate)
        if resulting_status == LineStatus.INCLUDED.value and resulting_rate is None:
            raise ValidationError(
                "Cannot include a line without an hourly rate",
                {"line_id": str(line.id), "staff_id": str(line.staff_id)},
            )

        changes = [(field, getattr(line, field), value) for field, value in updates.items()]
        if "hourly_rate" in updates:
            new_overtime_rate = await self._overtime_rate_for(
                actor.tenant_id, line, updates["hourly_rate"]
            )
            if new_overtime_rate != line.overtime_rate:
                changes.append(("overtime_rate", line.overtime_rate, new_overtime_rate))
            line.overtime_rate = new_overtime_rate
            line.issue = (
                None if updates["hourly_rate"] is not None else LineIssue.RATE_UNRESOLVED.value
            )
        for field, value in updates.items():
            setattr(line, field, value)

        line.regular_pay, line.overtime_pay, line.gross_pay = PayLineCalculator.reprice(
            Decimal(line.regular_hours),
            Decimal(line.overtime_hours),
            line.hourly_rate,
            line.overtime_rate,
            Decimal(line.adjustments),
        )

        for field_changed, old_value, new_value in changes:
            self._record_change(
                run,
                actor,
                field_changed=field_changed,
                old_value=old_value,
                new_value=new_value,
                reason=reason or (line.adjustment_reason if field_changed == "adjustments" else None),
                line=line,
            )

        self._refresh_totals(run)
        await self.session.flush()

        if changes:
            logger.info(
                "Edited line %s on pay run %s (tenant %s): %s",
                line.id,
                run.id,
                actor.tenant_id,
                ", ".join(field for field, _, _ in changes),
            )
        return line

    async def _overtime_rate_for(
        self, tenant_id: UUID, line: PayRunLine, hourly_rate: Decimal | None
    ) -> Decimal | None:
        if hourly_rate is None:
            return None
        staff = await self.session.get(Staff, line.staff_id)
        settings = await self.session.get(TenantPayrollSettings, tenant_id)
        if staff is None:
            multiplier = (
                Decimal(settings.overtime_multiplier)
                if settings
                else get_settings().default_overtime_multiplier
            )
            return PayLineCalculator.overtime_rate_for(hourly_rate, multiplier)
        policy = resolve_overtime_policy(
            staff, settings, get_settings().default_overtime_multiplier
        )
        return PayLineCalculator.overtime_rate_for(
            hourly_rate,
            policy.multiplier,
            policy.flat_extra if policy.rule_type == OvertimeRuleType.FLAT_EXTRA else None,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def transition_status(
        self,
        actor: Actor,
        run_id: UUID,
        to_status: str,
        reason: str | None = None,
    ) -> PayRun:
        """Move a run to its next status.

        Handles the side effects of each transition:
        - approved: record approver, recompute and freeze totals
        - finalised: record finaliser; the run is read-only afterwards

        Raises InvalidTransitionError if the transition is not allowed,
        leaving the run untouched.
        """
        require_role(actor, WRITE_ROLES)
        run = await self.get_run(actor, run_id)
        from_status = run.status
        target = to_status.value if isinstance(to_status, PayRunStatus) else str(to_status)

        PayRunStateMachine.validate_transition(from_status, target)

        if target == PayRunStatus.APPROVED.value:
            self._refresh_totals(run)
            run.approved_by = actor.user_id
            run.approved_at = utcnow()
        elif target == PayRunStatus.FINALISED.value:
            run.finalised_by = actor.user_id
            run.finalised_at = utcnow()

        run.status = target
        self._record_change(
            run,
            actor,
            field_changed="status",
            old_value=from_status,
            new_value=target,
            reason=reason,
        )
        await self.session.flush()

        logger.info(
            "Pay run %s (tenant %s) moved from %s to %s",
            run.id,
            actor.tenant_id,
            from_status,
            target,
        )
        return run

    async def submit_for_review(self, actor: Actor, run_id: UUID) -> PayRun:
        return await self.transition_status(actor, run_id, PayRunStatus.REVIEWING)

    async def approve(self, actor: Actor, run_id: UUID) -> PayRun:
        return await self.transition_status(actor, run_id, PayRunStatus.APPROVED)

    async def finalise(self, actor: Actor, run_id: UUID) -> PayRun:
        return await self.transition_status(actor, run_id, PayRunStatus.FINALISED)

    async def update_notes(self, actor: Actor, run_id: UUID, notes: str | None) -> PayRun:
        """Change run notes; allowed until the run is finalised."""
        require_role(actor, WRITE_ROLES)
        run = await self.get_run(actor, run_id)
        if PayRunStateMachine.is_terminal(run.status):
            raise PayRunNotEditableError(
                run.status,
                [s for s in PayRunStateMachine.VALID_TRANSITIONS if not PayRunStateMachine.is_terminal(s)],
                "update notes on",
            )
        if notes != run.notes:
            self._record_change(
                run, actor, field_changed="notes", old_value=run.notes, new_value=notes
            )
            run.notes = notes
            await self.session.flush()
        return run

    async def delete(self, actor: Actor, run_id: UUID) -> None:
        """Delete a draft run together with its lines and change log."""
        require_role(actor, WRITE_ROLES)
        run = await self.get_run(actor, run_id, load_lines=True, load_changes=True)
        if run.status != PayRunStatus.DRAFT.value:
            raise PayRunNotEditableError(run.status, [PayRunStatus.DRAFT.value], "delete")
        await self.session.delete(run)
        await self.session.flush()
        logger.info("Deleted draft pay run %s (tenant %s)", run_id, actor.tenant_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _refresh_totals(run: PayRun) -> None:
        totals = PayLineCalculator.totals_from_lines(run.lines)
        run.staff_count = totals.staff_count
        run.total_hours = totals.total_hours
        run.total_gross_pay = totals.total_gross_pay

    def _record_change(
        self,
        run: PayRun,
        actor: Actor,
        field_changed: str,
        old_value: Any,
        new_value: Any,
        reason: str | None = None,
        line: PayRunLine | None = None,
    ) -> PayRunChange:
        """Append a change record to the session."""
        change = PayRunChange(
            id=uuid4(),
            pay_run_id=run.id,
            tenant_id=run.tenant_id,
            pay_run_line_id=line.id if line is not None else None,
            field_changed=field_changed,
            old_value=_stringify(old_value),
            new_value=_stringify(new_value),
            reason=reason,
            changed_by=actor.user_id,
        )
        self.session.add(change)
        return change
