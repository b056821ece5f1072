"""ORM models."""

from rota_engine.models.base import Base, TimestampMixin, UpdatedAtMixin
from rota_engine.models.payroll import PayRun, PayRunChange, PayRunLine, TenantPayrollSettings
from rota_engine.models.schedule import Shift, Timesheet
from rota_engine.models.staff import (
    JobRole,
    Staff,
    StaffAvailability,
    StaffHourlyRate,
    StaffRole,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "UpdatedAtMixin",
    "JobRole",
    "PayRun",
    "PayRunChange",
    "PayRunLine",
    "Shift",
    "Staff",
    "StaffAvailability",
    "StaffHourlyRate",
    "StaffRole",
    "TenantPayrollSettings",
    "Timesheet",
]
