"""Tests for schedule conflict detection."""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

from rota_engine.scheduling.conflict_detector import (
    AvailabilityWindow,
    ConflictSeverity,
    ConflictType,
    ShiftRecord,
    WorkingTimeRules,
    detect_availability_conflicts,
    detect_conflicts,
    detect_working_time_conflicts,
    shifts_overlap,
)
from tests.conftest import at

MONDAY = date(2026, 1, 5)
TUESDAY = date(2026, 1, 6)
ALICE = uuid4()
BOB = uuid4()


def _shift(staff_id, day, start, end, status="scheduled", break_minutes=0, end_day=None):
    return ShiftRecord(
        id=uuid4(),
        staff_id=staff_id,
        start_time=at(day, start),
        end_time=at(end_day or day, end),
        status=status,
        break_minutes=break_minutes,
    )


class TestOverlaps:
    def test_overlapping_shifts_conflict_once(self):
        first = _shift(ALICE, MONDAY, 9, 17)
        second = _shift(ALICE, MONDAY, 16, 20)

        conflicts = detect_conflicts([first, second])

        assert len(conflicts) == 1
        conflict = conflicts[0]
        assert conflict.shift_id == first.id
        assert conflict.type == ConflictType.OVERLAP
        assert conflict.severity == ConflictSeverity.ERROR
        assert conflict.is_blocking
        assert conflict.details["overlapping_shift_id"] == second.id

    def test_touching_shifts_do_not_overlap(self):
        first = _shift(ALICE, MONDAY, 9, 12)
        second = _shift(ALICE, MONDAY, 12, 17)

        assert not shifts_overlap(first, second)
        assert detect_conflicts([first, second]) == []

    def test_different_staff_never_conflict(self):
        assert detect_conflicts([_shift(ALICE, MONDAY, 9, 17), _shift(BOB, MONDAY, 9, 17)]) == []

    def test_cancelled_shifts_are_ignored(self):
        shifts = [_shift(ALICE, MONDAY, 9, 17), _shift(ALICE, MONDAY, 10, 14, status="cancelled")]

        assert detect_conflicts(shifts) == []

    def test_every_pair_is_reported(self):
        shifts = [
            _shift(ALICE, MONDAY, 9, 17),
            _shift(ALICE, MONDAY, 10, 12),
            _shift(ALICE, MONDAY, 11, 13),
        ]

        conflicts = detect_conflicts(shifts)

        assert len(conflicts) == 3
        assert [c.shift_id for c in conflicts].count(shifts[0].id) == 2

    def test_to_dict_stringifies_ids(self):
        first = _shift(ALICE, MONDAY, 9, 17)
        second = _shift(ALICE, MONDAY, 16, 20)

        data = detect_conflicts([first, second])[0].to_dict()

        assert data == {
            "shift_id": str(first.id),
            "type": "overlap",
            "severity": "error",
            "message": "Shift overlaps with another shift for the same staff member",
            "details": {"overlapping_shift_id": str(second.id)},
        }


class TestAvailability:
    def test_no_windows_means_no_check(self):
        assert detect_availability_conflicts([_shift(ALICE, MONDAY, 9, 17)], []) == []

    def test_unavailable_day(self):
        shift = _shift(ALICE, MONDAY, 9, 17)
        windows = [AvailabilityWindow(ALICE, 0, is_available=False)]

        conflicts = detect_availability_conflicts([shift], windows)

        assert [c.type for c in conflicts] == [ConflictType.UNAVAILABLE]
        assert conflicts[0].severity == ConflictSeverity.WARNING
        assert not conflicts[0].is_blocking

    def test_shift_outside_window(self):
        shift = _shift(ALICE, MONDAY, 9, 17)
        windows = [AvailabilityWindow(ALICE, 0, time(12), time(22))]

        conflicts = detect_availability_conflicts([shift], windows)

        assert [c.type for c in conflicts] == [ConflictType.OUTSIDE_AVAILABILITY]

    def test_shift_inside_any_window(self):
        shift = _shift(ALICE, MONDAY, 13, 17)
        windows = [
            AvailabilityWindow(ALICE, 0, time(6), time(11)),
            AvailabilityWindow(ALICE, 0, time(12), time(22)),
        ]

        assert detect_availability_conflicts([shift], windows) == []

    def test_windows_only_apply_to_their_day(self):
        shift = _shift(ALICE, TUESDAY, 9, 17)
        windows = [AvailabilityWindow(ALICE, 0, is_available=False)]

        assert detect_availability_conflicts([shift], windows) == []

    def test_overnight_shift_needs_open_ended_window(self):
        shift = _shift(ALICE, MONDAY, 22, 6, end_day=TUESDAY)

        assert detect_availability_conflicts(
            [shift], [AvailabilityWindow(ALICE, 0, time(18), None)]
        ) == []
        assert len(
            detect_availability_conflicts([shift], [AvailabilityWindow(ALICE, 0, time(18), time(23))])
        ) == 1


class TestWorkingTime:
    def test_short_rest_between_shifts(self):
        late = _shift(ALICE, MONDAY, 14, 23)
        early = _shift(ALICE, TUESDAY, 6, 14)

        conflicts = detect_working_time_conflicts([early, late])

        assert len(conflicts) == 1
        conflict = conflicts[0]
        assert conflict.type == ConflictType.INSUFFICIENT_REST
        assert conflict.shift_id == early.id
        assert conflict.details["previous_shift_id"] == late.id
        assert conflict.details["rest_hours"] == Decimal("7.00")

    def test_enough_rest(self):
        shifts = [_shift(ALICE, MONDAY, 9, 17), _shift(ALICE, TUESDAY, 9, 17)]

        assert detect_working_time_conflicts(shifts) == []

    def test_weekly_hours_limit_warns_once(self):
        # Six 9-hour shifts, Monday to Saturday
        shifts = [
            _shift(ALICE, date(2026, 1, 5 + offset), 8, 17) for offset in range(6)
        ]

        conflicts = detect_working_time_conflicts(shifts)

        assert [c.type for c in conflicts] == [ConflictType.MAX_HOURS]
        assert conflicts[0].shift_id == shifts[5].id
        assert conflicts[0].details["total_hours"] == Decimal("54.00")

    def test_breaks_are_not_counted(self):
        shifts = [
            _shift(ALICE, date(2026, 1, 5 + offset), 8, 17, break_minutes=60)
            for offset in range(6)
        ]

        assert detect_working_time_conflicts(shifts) == []

    def test_custom_rules(self):
        shifts = [_shift(ALICE, MONDAY, 9, 17), _shift(ALICE, TUESDAY, 9, 17)]
        rules = WorkingTimeRules(min_rest_hours=Decimal("18"), max_weekly_hours=Decimal("10"))

        types = sorted(c.type.value for c in detect_working_time_conflicts(shifts, rules))

        assert types == ["insufficient_rest", "max_hours"]


class TestShiftRecord:
    def test_naive_timestamps_are_read_as_utc(self):
        row = SimpleNamespace(
            id=uuid4(),
            staff_id=ALICE,
            start_time=datetime(2026, 1, 5, 9),
            end_time=datetime(2026, 1, 5, 17),
            status="scheduled",
            role_id=None,
            break_duration_minutes=None,
        )

        record = ShiftRecord.from_model(row)

        assert record.start_time == at(MONDAY, 9)
        assert record.end_time.tzinfo is timezone.utc
        assert record.break_minutes == 0

    def test_naive_and_aware_rows_compare(self):
        aware = _shift(ALICE, MONDAY, 9, 17)
        naive = ShiftRecord.from_model(
            SimpleNamespace(
                id=uuid4(),
                staff_id=ALICE,
                start_time=datetime(2026, 1, 5, 16),
                end_time=datetime(2026, 1, 5, 20),
                status="scheduled",
                role_id=None,
                break_duration_minutes=0,
            )
        )

        assert len(detect_conflicts([aware, naive])) == 1
        assert detect_working_time_conflicts([aware, naive]) == []
