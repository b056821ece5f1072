"""Pay line calculation with exact decimal arithmetic."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Protocol
from uuid import UUID

from rota_engine.calculators.types import (
    AggregatedHours,
    LineComputation,
    LineIssue,
    LineStatus,
    PayTotals,
)


class _TotalledLine(Protocol):
    status: Any
    total_hours: Decimal
    gross_pay: Decimal


def _status_value(status: Any) -> str:
    return status.value if isinstance(status, LineStatus) else str(status)


class PayLineCalculator:
    """Builds pay lines from resolved rates and aggregated hours.

    Rounding:
    - Hours and money to 2 decimals, half-up
    - Rates keep 4 decimals
    - Each pay component is rounded before summing, so
      gross_pay == regular_pay + overtime_pay + adjustments holds exactly
    """

    RATE_PRECISION = Decimal("0.0001")
    OUTPUT_PRECISION = Decimal("0.01")
    ZERO = Decimal("0")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(PayLineCalculator.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def round_hours(hours: Decimal) -> Decimal:
        return hours.quantize(PayLineCalculator.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def round_rate(rate: Decimal) -> Decimal:
        return rate.quantize(PayLineCalculator.RATE_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def overtime_rate_for(
        rate: Decimal | None,
        overtime_multiplier: Decimal,
        overtime_flat_extra: Decimal | None = None,
    ) -> Decimal | None:
        if rate is None:
            return None
        if overtime_flat_extra is not None:
            return PayLineCalculator.round_rate(rate + overtime_flat_extra)
        return PayLineCalculator.round_rate(rate * overtime_multiplier)

    @staticmethod
    def compute_line(
        staff_id: UUID,
        hours: AggregatedHours,
        rate: Decimal | None,
        overtime_multiplier: Decimal = Decimal("1.5"),
        adjustments: Decimal = Decimal("0"),
        overtime_flat_extra: Decimal | None = None,
    ) -> LineComputation:
        """Combine a resolved rate and aggregated hours into a pay line.

        An unresolved rate never defaults to zero-cost labour: the line is
        produced with no rate, zero pay and an excluded status carrying
        RATE_UNRESOLVED so it stays out of run totals.
        """
        calc = PayLineCalculator
        adjustments = calc.round_to_cents(Decimal(adjustments))
        regular_hours = calc.round_hours(hours.regular_hours)
        overtime_hours = calc.round_hours(hours.overtime_hours)
        total_hours = regular_hours + overtime_hours

        if rate is None:
            return LineComputation(
                staff_id=staff_id,
                regular_hours=regular_hours,
                overtime_hours=overtime_hours,
                total_hours=total_hours,
                hourly_rate=None,
                overtime_rate=None,
                regular_pay=calc.ZERO,
                overtime_pay=calc.ZERO,
                adjustments=adjustments,
                gross_pay=adjustments,
                status=LineStatus.EXCLUDED,
                issue=LineIssue.RATE_UNRESOLVED,
                timesheet_ids=list(hours.timesheet_ids),
            )

        hourly_rate = calc.round_rate(Decimal(rate))
        ot_rate = calc.overtime_rate_for(hourly_rate, overtime_multiplier, overtime_flat_extra)
        regular_pay = calc.round_to_cents(regular_hours * hourly_rate)
        overtime_pay = calc.round_to_cents(overtime_hours * ot_rate)

        return LineComputation(
            staff_id=staff_id,
            regular_hours=regular_hours,
            overtime_hours=overtime_hours,
            total_hours=total_hours,
            hourly_rate=hourly_rate,
            overtime_rate=ot_rate,
            regular_pay=regular_pay,
            overtime_pay=overtime_pay,
            adjustments=adjustments,
            gross_pay=regular_pay + overtime_pay + adjustments,
            status=LineStatus.INCLUDED,
            timesheet_ids=list(hours.timesheet_ids),
        )

    @staticmethod
    def reprice(
        regular_hours: Decimal,
        overtime_hours: Decimal,
        hourly_rate: Decimal | None,
        overtime_rate: Decimal | None,
        adjustments: Decimal,
    ) -> tuple[Decimal, Decimal, Decimal]:
        """Recompute (regular_pay, overtime_pay, gross_pay) for an edited line."""
        calc = PayLineCalculator
        regular_pay = (
            calc.round_to_cents(regular_hours * hourly_rate) if hourly_rate is not None else calc.ZERO
        )
        overtime_pay = (
            calc.round_to_cents(overtime_hours * overtime_rate)
            if overtime_rate is not None
            else calc.ZERO
        )
        adjustments = calc.round_to_cents(adjustments)
        return regular_pay, overtime_pay, regular_pay + overtime_pay + adjustments

    @staticmethod
    def totals_from_lines(lines: Iterable[_TotalledLine]) -> PayTotals:
        """Sum hours and gross over included lines; excluded lines never count."""
        staff_count = 0
        total_hours = Decimal("0")
        total_gross = Decimal("0")
        for line in lines:
            if _status_value(line.status) != LineStatus.INCLUDED.value:
                continue
            staff_count += 1
            total_hours += Decimal(line.total_hours)
            total_gross += Decimal(line.gross_pay)
        return PayTotals(
            staff_count=staff_count,
            total_hours=PayLineCalculator.round_hours(total_hours),
            total_gross_pay=PayLineCalculator.round_to_cents(total_gross),
        )

    @staticmethod
    def validate_line(line: LineComputation) -> list[str]:
        """Return consistency errors for a computed line (empty if valid)."""
        errors: list[str] = []
        if line.gross_pay != line.regular_pay + line.overtime_pay + line.adjustments:
            errors.append(
                f"Line for staff {line.staff_id} has gross {line.gross_pay} which is not "
                f"regular + overtime + adjustments"
            )
        if line.hourly_rate is not None and line.hourly_rate < 0:
            errors.append(f"Line for staff {line.staff_id} has negative rate {line.hourly_rate}")
        if line.total_hours != line.regular_hours + line.overtime_hours:
            errors.append(f"Line for staff {line.staff_id} hours do not add up")
        return errors
