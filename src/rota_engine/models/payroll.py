"""Pay run, line, change log and tenant payroll settings models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rota_engine.models.base import Base, TimestampMixin, UpdatedAtMixin


class TenantPayrollSettings(Base, UpdatedAtMixin):
    """Tenant payroll configuration consumed by run generation."""

    __tablename__ = "tenant_payroll_settings"

    tenant_id: Mapped[UUID] = mapped_column(primary_key=True)
    overtime_multiplier: Mapped[Decimal] = mapped_column(
        Numeric(6, 3), nullable=False, default=Decimal("1.5")
    )
    overtime_threshold_hours: Mapped[Decimal | None] = mapped_column(
        Numeric(6, 2), nullable=True
    )
    overtime_basis: Mapped[str] = mapped_column(String, nullable=False, default="weekly")
    pay_frequency: Mapped[str] = mapped_column(String, nullable=False, default="weekly")
    week_starts_on: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    first_period_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    semi_monthly_first_period_end: Mapped[int] = mapped_column(
        Integer, nullable=False, default=15
    )
    monthly_starts_on: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint(
            "overtime_basis IN ('weekly', 'period')",
            name="tenant_payroll_settings_basis_check",
        ),
        CheckConstraint(
            "pay_frequency IN ('weekly', 'fortnightly', 'semi_monthly', 'monthly')",
            name="tenant_payroll_settings_frequency_check",
        ),
        CheckConstraint("overtime_multiplier >= 1", name="tenant_payroll_settings_multiplier_check"),
    )


class PayRun(Base, TimestampMixin, UpdatedAtMixin):
    """Payroll run container for one tenant and one pay period."""

    __tablename__ = "pay_run"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    pay_period_start: Mapped[date] = mapped_column(Date, nullable=False)
    pay_period_end: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")

    # Totals over included lines, frozen at approval
    total_hours: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    total_gross_pay: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    staff_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_by: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finalised_by: Mapped[UUID | None] = mapped_column(nullable=True)
    finalised_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "tenant_id",
            "pay_period_start",
            "pay_period_end",
            name="pay_run_tenant_period_unique",
        ),
        CheckConstraint(
            "status IN ('draft', 'reviewing', 'approved', 'finalised')",
            name="pay_run_status_check",
        ),
        CheckConstraint("pay_period_end >= pay_period_start", name="pay_run_dates_check"),
    )

    # Relationships
    lines: Mapped[list[PayRunLine]] = relationship(
        back_populates="pay_run",
        cascade="all, delete-orphan",
        order_by="PayRunLine.staff_name",
    )
    changes: Mapped[list[PayRunChange]] = relationship(
        back_populates="pay_run",
        cascade="all, delete-orphan",
        order_by="PayRunChange.created_at",
    )


class PayRunLine(Base, TimestampMixin, UpdatedAtMixin):
    """One staff member's computed pay within a run."""

    __tablename__ = "pay_run_line"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_run.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    staff_id: Mapped[UUID] = mapped_column(nullable=False)
    employee_number: Mapped[str] = mapped_column(String, nullable=False, default="")
    staff_name: Mapped[str] = mapped_column(String, nullable=False)

    regular_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    overtime_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    total_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))

    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 4), nullable=True)
    overtime_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 4), nullable=True)
    regular_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    overtime_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    adjustments: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    adjustment_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    gross_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))

    status: Mapped[str] = mapped_column(String, nullable=False, default="included")
    issue: Mapped[str | None] = mapped_column(String, nullable=True)
    timesheet_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (
        UniqueConstraint("pay_run_id", "staff_id", name="pay_run_line_staff_unique"),
        CheckConstraint(
            "status IN ('included', 'excluded')",
            name="pay_run_line_status_check",
        ),
    )

    pay_run: Mapped[PayRun] = relationship(back_populates="lines")


class PayRunChange(Base, TimestampMixin):
    """Immutable audit record of one field change on a run or line."""

    __tablename__ = "pay_run_change"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_run.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    pay_run_line_id: Mapped[UUID | None] = mapped_column(nullable=True)
    field_changed: Mapped[str] = mapped_column(String, nullable=False)
    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    changed_by: Mapped[UUID | None] = mapped_column(nullable=True)

    pay_run: Mapped[PayRun] = relationship(back_populates="changes")
