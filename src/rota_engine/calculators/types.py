"""Type definitions for the calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class LineStatus(str, Enum):
    """Pay run line inclusion status."""

    INCLUDED = "included"
    EXCLUDED = "excluded"


class LineIssue(str, Enum):
    """Data-quality flags carried on a line."""

    RATE_UNRESOLVED = "RATE_UNRESOLVED"


class OvertimeBasis(str, Enum):
    """Window over which the overtime threshold accumulates."""

    WEEKLY = "weekly"
    PERIOD = "period"


class OvertimeRuleType(str, Enum):
    MULTIPLIER = "multiplier"
    FLAT_EXTRA = "flat_extra"


@dataclass(frozen=True)
class RateRecord:
    """One effective-dated rate, detached from the ORM."""

    staff_id: UUID
    hourly_rate: Decimal
    effective_date: date


@dataclass(frozen=True)
class TimesheetRecord:
    """One timesheet entry, detached from the ORM."""

    id: UUID
    staff_id: UUID
    work_date: date
    status: str
    hours: Decimal

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"


@dataclass(frozen=True)
class OvertimePolicy:
    """Resolved overtime configuration for one staff member."""

    enabled: bool = False
    threshold_hours: Decimal | None = None
    basis: OvertimeBasis = OvertimeBasis.WEEKLY
    rule_type: OvertimeRuleType = OvertimeRuleType.MULTIPLIER
    multiplier: Decimal = Decimal("1.5")
    flat_extra: Decimal | None = None
    week_starts_on: int = 0  # 0 = Monday

    @property
    def applies(self) -> bool:
        return self.enabled and self.threshold_hours is not None and self.threshold_hours > 0


@dataclass
class AggregatedHours:
    """Approved hours for one staff member in a period."""

    regular_hours: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    total_hours: Decimal = Decimal("0")
    timesheet_ids: list[UUID] = field(default_factory=list)
    unapproved_count: int = 0


@dataclass
class LineComputation:
    """A computed pay line before persistence."""

    staff_id: UUID
    regular_hours: Decimal
    overtime_hours: Decimal
    total_hours: Decimal
    hourly_rate: Decimal | None
    overtime_rate: Decimal | None
    regular_pay: Decimal
    overtime_pay: Decimal
    adjustments: Decimal
    gross_pay: Decimal
    status: LineStatus = LineStatus.INCLUDED
    issue: LineIssue | None = None
    employee_number: str = ""
    staff_name: str = ""
    timesheet_ids: list[UUID] = field(default_factory=list)

    def to_row(self) -> dict[str, Any]:
        """Column values for a PayRunLine insert."""
        return {
            "staff_id": self.staff_id,
            "employee_number": self.employee_number,
            "staff_name": self.staff_name,
            "regular_hours": self.regular_hours,
            "overtime_hours": self.overtime_hours,
            "total_hours": self.total_hours,
            "hourly_rate": self.hourly_rate,
            "overtime_rate": self.overtime_rate,
            "regular_pay": self.regular_pay,
            "overtime_pay": self.overtime_pay,
            "adjustments": self.adjustments,
            "adjustment_reason": None,
            "gross_pay": self.gross_pay,
            "status": self.status.value,
            "issue": self.issue.value if self.issue else None,
            "timesheet_ids": [str(t) for t in self.timesheet_ids],
        }


@dataclass(frozen=True)
class PayTotals:
    """Run-level totals over included lines."""

    staff_count: int = 0
    total_hours: Decimal = Decimal("0")
    total_gross_pay: Decimal = Decimal("0")
