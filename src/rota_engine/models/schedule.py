"""Shift and timesheet inputs."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rota_engine.models.base import Base, TimestampMixin
from rota_engine.models.staff import JobRole, Staff


class Shift(Base, TimestampMixin):
    """Scheduled shift. Intervals are half-open: [start_time, end_time)."""

    __tablename__ = "shift"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    staff_id: Mapped[UUID] = mapped_column(
        ForeignKey("staff.id", ondelete="CASCADE"), nullable=False
    )
    role_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("job_role.id", ondelete="SET NULL"), nullable=True
    )
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="scheduled")
    break_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="shift_times_check"),
    )

    staff: Mapped[Staff] = relationship()
    role: Mapped[JobRole | None] = relationship()

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"

    @property
    def paid_hours(self) -> Decimal:
        """Shift length in hours less unpaid break."""
        seconds = (self.end_time - self.start_time).total_seconds()
        minutes = Decimal(int(seconds // 60)) - Decimal(self.break_duration_minutes or 0)
        return max(Decimal("0"), minutes / Decimal(60))


class Timesheet(Base, TimestampMixin):
    """Worked hours for one staff member on one day."""

    __tablename__ = "timesheet"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    staff_id: Mapped[UUID] = mapped_column(
        ForeignKey("staff.id", ondelete="CASCADE"), nullable=False
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    total_hours: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'submitted', 'approved')",
            name="timesheet_status_check",
        ),
    )
