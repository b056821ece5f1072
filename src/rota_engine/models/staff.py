"""Staff, role, rate history and availability models."""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rota_engine.models.base import Base, TimestampMixin


class JobRole(Base, TimestampMixin):
    """Tenant-defined job role (chef, server, ...)."""

    __tablename__ = "job_role"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="job_role_tenant_name_unique"),
    )


class Staff(Base, TimestampMixin):
    """Staff member with per-person overtime configuration."""

    __tablename__ = "staff"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    employee_number: Mapped[str | None] = mapped_column(String, nullable=True)
    first_name: Mapped[str | None] = mapped_column(String, nullable=True)
    last_name: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Overtime overrides (tenant settings apply where these are null)
    contracted_weekly_hours: Mapped[Decimal | None] = mapped_column(
        Numeric(6, 2), nullable=True
    )
    overtime_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    overtime_rule_type: Mapped[str | None] = mapped_column(String, nullable=True)
    overtime_multiplier: Mapped[Decimal | None] = mapped_column(Numeric(6, 3), nullable=True)
    overtime_flat_extra: Mapped[Decimal | None] = mapped_column(Numeric(12, 4), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "overtime_rule_type IS NULL OR overtime_rule_type IN ('multiplier', 'flat_extra')",
            name="staff_overtime_rule_type_check",
        ),
    )

    # Relationships
    roles: Mapped[list[StaffRole]] = relationship(back_populates="staff")
    hourly_rates: Mapped[list[StaffHourlyRate]] = relationship(
        back_populates="staff", order_by="StaffHourlyRate.effective_date"
    )

    @property
    def full_name(self) -> str:
        """Display name used on pay lines."""
        name = " ".join(p for p in (self.first_name, self.last_name) if p).strip()
        return name or "Unknown"


class StaffRole(Base):
    """Assignment of a job role to a staff member."""

    __tablename__ = "staff_role"

    staff_id: Mapped[UUID] = mapped_column(
        ForeignKey("staff.id", ondelete="CASCADE"), primary_key=True
    )
    role_id: Mapped[UUID] = mapped_column(
        ForeignKey("job_role.id", ondelete="CASCADE"), primary_key=True
    )

    staff: Mapped[Staff] = relationship(back_populates="roles")
    role: Mapped[JobRole] = relationship()


class StaffHourlyRate(Base, TimestampMixin):
    """Effective-dated hourly rate. Append-only history."""

    __tablename__ = "staff_hourly_rate"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    staff_id: Mapped[UUID] = mapped_column(
        ForeignKey("staff.id", ondelete="CASCADE"), nullable=False
    )
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint("staff_id", "effective_date", name="staff_hourly_rate_date_unique"),
        CheckConstraint("hourly_rate >= 0", name="staff_hourly_rate_non_negative"),
    )

    staff: Mapped[Staff] = relationship(back_populates="hourly_rates")

    def is_historical(self, today: date) -> bool:
        """Rates effective on or before today can no longer be removed."""
        return self.effective_date <= today


class StaffAvailability(Base):
    """Recurring weekly availability window."""

    __tablename__ = "staff_availability"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    staff_id: Mapped[UUID] = mapped_column(
        ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)  # 0 = Monday
    start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="staff_availability_dow_check"),
    )
