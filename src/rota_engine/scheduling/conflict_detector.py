"""Schedule conflict detection.

Overlaps between shifts of the same staff member are hard errors. Availability
and working-time checks only produce warnings and never block a schedule.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Sequence
from uuid import UUID


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops the offset on reload)."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class ConflictType(str, Enum):
    OVERLAP = "overlap"
    UNAVAILABLE = "unavailable"
    OUTSIDE_AVAILABILITY = "outside_availability"
    INSUFFICIENT_REST = "insufficient_rest"
    MAX_HOURS = "max_hours"


class ConflictSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ShiftRecord:
    """A shift detached from the ORM. Intervals are half-open."""

    id: UUID
    staff_id: UUID
    start_time: datetime
    end_time: datetime
    status: str = "scheduled"
    role_id: UUID | None = None
    break_minutes: int = 0

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"

    @property
    def paid_hours(self) -> Decimal:
        minutes = int((self.end_time - self.start_time).total_seconds() // 60)
        return max(Decimal("0"), Decimal(minutes - self.break_minutes) / Decimal(60))

    @classmethod
    def from_model(cls, shift: Any) -> ShiftRecord:
        return cls(
            id=shift.id,
            staff_id=shift.staff_id,
            start_time=as_utc(shift.start_time),
            end_time=as_utc(shift.end_time),
            status=shift.status,
            role_id=shift.role_id,
            break_minutes=shift.break_duration_minutes or 0,
        )


@dataclass(frozen=True)
class AvailabilityWindow:
    """Recurring availability for one weekday (0 = Monday).

    A window with no start/end covers the whole day.
    """

    staff_id: UUID
    day_of_week: int
    start_time: time | None = None
    end_time: time | None = None
    is_available: bool = True

    def covers(self, shift: ShiftRecord) -> bool:
        start = self.start_time or time.min
        if shift.end_time.date() != shift.start_time.date():
            # Overnight shifts need the window to run to the end of the day
            return shift.start_time.time() >= start and self.end_time is None
        end = self.end_time or time.max
        return shift.start_time.time() >= start and shift.end_time.time() <= end

    @classmethod
    def from_model(cls, availability: Any) -> AvailabilityWindow:
        return cls(
            staff_id=availability.staff_id,
            day_of_week=availability.day_of_week,
            start_time=availability.start_time,
            end_time=availability.end_time,
            is_available=availability.is_available,
        )


@dataclass(frozen=True)
class WorkingTimeRules:
    min_rest_hours: Decimal = Decimal("8")
    max_weekly_hours: Decimal = Decimal("48")
    week_starts_on: int = 0


@dataclass
class Conflict:
    """One detected problem, attributed to a single shift."""

    shift_id: UUID
    type: ConflictType
    severity: ConflictSeverity
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_blocking(self) -> bool:
        return self.severity == ConflictSeverity.ERROR

    def to_dict(self) -> dict[str, Any]:
        return {
            "shift_id": str(self.shift_id),
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
            "details": {
                key: str(value) if isinstance(value, (UUID, Decimal, date)) else value
                for key, value in self.details.items()
            },
        }


def _active(shifts: Iterable[ShiftRecord]) -> list[ShiftRecord]:
    return [shift for shift in shifts if not shift.is_cancelled]


def _by_staff(shifts: Iterable[ShiftRecord]) -> dict[UUID, list[ShiftRecord]]:
    grouped: dict[UUID, list[ShiftRecord]] = {}
    for shift in shifts:
        grouped.setdefault(shift.staff_id, []).append(shift)
    for staff_shifts in grouped.values():
        staff_shifts.sort(key=lambda s: (s.start_time, s.end_time))
    return grouped


def shifts_overlap(first: ShiftRecord, second: ShiftRecord) -> bool:
    """Half-open interval intersection; touching shifts do not overlap."""
    return first.start_time < second.end_time and first.end_time > second.start_time


def detect_conflicts(shifts: Sequence[ShiftRecord]) -> list[Conflict]:
    """Report every overlapping pair of shifts held by the same staff member.

    Pairwise over the non-cancelled shifts in input order; each overlapping
    pair yields exactly one conflict attributed to the earlier-listed shift.
    """
    active = _active(shifts)
    conflicts: list[Conflict] = []
    for i, first in enumerate(active):
        for second in active[i + 1 :]:
            if first.staff_id == second.staff_id and shifts_overlap(first, second):
                conflicts.append(
                    Conflict(
                        shift_id=first.id,
                        type=ConflictType.OVERLAP,
                        severity=ConflictSeverity.ERROR,
                        message="Shift overlaps with another shift for the same staff member",
                        details={"overlapping_shift_id": second.id},
                    )
                )
    return conflicts


def detect_availability_conflicts(
    shifts: Sequence[ShiftRecord],
    availability: Iterable[AvailabilityWindow],
) -> list[Conflict]:
    """Warn about shifts outside a staff member's recorded availability.

    Days with no availability recorded are not checked.
    """
    windows: dict[tuple[UUID, int], list[AvailabilityWindow]] = {}
    for window in availability:
        windows.setdefault((window.staff_id, window.day_of_week), []).append(window)

    conflicts: list[Conflict] = []
    for shift in _active(shifts):
        day = shift.start_time.weekday()
        day_windows = windows.get((shift.staff_id, day))
        if not day_windows:
            continue

        available = [w for w in day_windows if w.is_available]
        if not available:
            conflicts.append(
                Conflict(
                    shift_id=shift.id,
                    type=ConflictType.UNAVAILABLE,
                    severity=ConflictSeverity.WARNING,
                    message="Staff member is marked unavailable on this day",
                    details={"staff_id": shift.staff_id, "day_of_week": day},
                )
            )
        elif not any(w.covers(shift) for w in available):
            conflicts.append(
                Conflict(
                    shift_id=shift.id,
                    type=ConflictType.OUTSIDE_AVAILABILITY,
                    severity=ConflictSeverity.WARNING,
                    message="Shift falls outside the staff member's availability",
                    details={"staff_id": shift.staff_id, "day_of_week": day},
                )
            )
    return conflicts


def _week_start(day: date, week_starts_on: int) -> date:
    return day - timedelta(days=(day.weekday() - week_starts_on) % 7)


def detect_working_time_conflicts(
    shifts: Sequence[ShiftRecord],
    rules: WorkingTimeRules | None = None,
) -> list[Conflict]:
    """Warn about short rest between consecutive shifts and long weeks."""
    rules = rules or WorkingTimeRules()
    min_rest = timedelta(hours=float(rules.min_rest_hours))
    conflicts: list[Conflict] = []

    for staff_id, staff_shifts in _by_staff(_active(shifts)).items():
        for previous, current in zip(staff_shifts, staff_shifts[1:]):
            gap = current.start_time - previous.end_time
            # Negative gaps are overlaps and reported by detect_conflicts
            if timedelta(0) <= gap < min_rest:
                rest_hours = Decimal(int(gap.total_seconds() // 60)) / Decimal(60)
                conflicts.append(
                    Conflict(
                        shift_id=current.id,
                        type=ConflictType.INSUFFICIENT_REST,
                        severity=ConflictSeverity.WARNING,
                        message=f"Less than {rules.min_rest_hours} hours rest between shifts",
                        details={
                            "previous_shift_id": previous.id,
                            "rest_hours": rest_hours.quantize(Decimal("0.01")),
                        },
                    )
                )

        weekly: dict[date, list[ShiftRecord]] = {}
        for shift in staff_shifts:
            week = _week_start(shift.start_time.date(), rules.week_starts_on)
            weekly.setdefault(week, []).append(shift)

        for week, week_shifts in sorted(weekly.items()):
            running = Decimal("0")
            for shift in week_shifts:
                running += shift.paid_hours
                if running > rules.max_weekly_hours:
                    conflicts.append(
                        Conflict(
                            shift_id=shift.id,
                            type=ConflictType.MAX_HOURS,
                            severity=ConflictSeverity.WARNING,
                            message=(
                                f"Weekly hours would exceed limit "
                                f"({running.quantize(Decimal('0.1'))} hours)"
                            ),
                            details={
                                "staff_id": staff_id,
                                "week_start": week,
                                "total_hours": running.quantize(Decimal("0.01")),
                                "max_hours": rules.max_weekly_hours,
                            },
                        )
                    )
                    break
    return conflicts
