"""Unit tests for durations, night hours, requalification and weighting."""

import pytest
from datetime import date

from carecompliance.exceptions import InvalidInputError, InvalidTimeFormat
from carecompliance.hours import (
    calculate_night_hours,
    calculate_shift_duration,
    compute_effective_hours,
    guard_segment_minutes,
    is_requalified,
    night_presence_allowance_hours,
    work_hours,
)
from carecompliance.types import ComplianceRules, GuardSegmentType, ShiftType

DAY = date(2025, 10, 6)


class TestShiftDuration:

    def test_overnight_shift(self):
        assert calculate_shift_duration("23:00", "07:00") == 480

    def test_break_is_subtracted(self):
        assert calculate_shift_duration("09:00", "17:00", 30) == 450

    def test_equal_times_are_24_hours(self):
        assert calculate_shift_duration("10:00", "10:00") == 1440

    def test_break_longer_than_shift_floors_at_zero(self):
        assert calculate_shift_duration("09:00", "11:00", 600) == 0

    def test_malformed_time_raises(self):
        with pytest.raises(InvalidTimeFormat):
            calculate_shift_duration("9h", "17:00")


class TestNightHours:

    def test_evening_shift_partly_at_night(self):
        assert calculate_night_hours(DAY, "20:00", "22:00") == pytest.approx(1.0)

    def test_day_shift_has_no_night_hours(self):
        assert calculate_night_hours(DAY, "09:00", "17:00") == 0

    def test_overnight_shift_capped_by_window_end(self):
        assert calculate_night_hours(DAY, "22:00", "07:00") == pytest.approx(8.0)

    def test_early_morning_shift(self):
        assert calculate_night_hours(DAY, "02:00", "05:00") == pytest.approx(3.0)

    def test_shift_leaving_the_night_window(self):
        assert calculate_night_hours(DAY, "05:00", "08:00") == pytest.approx(1.0)

    def test_full_day_contains_one_night(self):
        assert calculate_night_hours(DAY, "20:00", "20:00") == pytest.approx(9.0)

    def test_unrounded_minutes(self):
        assert calculate_night_hours(DAY, "20:00", "21:20") == pytest.approx(20 / 60)

    def test_custom_window(self):
        rules = ComplianceRules(night_start="22:00", night_end="07:00")
        assert calculate_night_hours(DAY, "22:00", "07:00", rules) == pytest.approx(9.0)

    def test_malformed_time_raises(self):
        with pytest.raises(InvalidTimeFormat):
            calculate_night_hours(DAY, "21:00", "6am")

    def test_date_does_not_change_the_result(self):
        assert calculate_night_hours(date(2025, 12, 25), "22:00", "07:00") == calculate_night_hours(DAY, "22:00", "07:00")


class TestRequalification:

    def test_below_threshold(self):
        assert not is_requalified(ShiftType.PRESENCE_NIGHT, 3)

    def test_at_threshold(self):
        assert is_requalified(ShiftType.PRESENCE_NIGHT, 4)

    def test_only_night_presence_is_requalified(self):
        assert not is_requalified(ShiftType.EFFECTIVE, 10)
        assert not is_requalified("presence_day", 10)

    def test_monotonic_in_interventions(self):
        results = [is_requalified("presence_night", count) for count in range(12)]
        first_true = results.index(True)
        assert all(results[first_true:])
        assert not any(results[:first_true])

    def test_custom_threshold(self):
        rules = ComplianceRules(requalification_threshold=2)
        assert is_requalified(ShiftType.PRESENCE_NIGHT, 2, rules)

    def test_unknown_shift_type(self):
        with pytest.raises(InvalidInputError):
            is_requalified("sleep_in", 5)


class TestEffectiveHours:

    def test_effective_shift_not_applicable(self, make_shift):
        shift = make_shift("09:00", "17:00")
        assert compute_effective_hours(shift, False) is None

    def test_presence_day_weighted_two_thirds(self, make_shift):
        shift = make_shift("08:00", "17:00", shift_type=ShiftType.PRESENCE_DAY)
        assert compute_effective_hours(shift, False) == pytest.approx(6.0)

    def test_night_presence_not_requalified(self, make_shift):
        shift = make_shift("21:00", "07:00", shift_type=ShiftType.PRESENCE_NIGHT)
        assert compute_effective_hours(shift, False) is None

    def test_night_presence_requalified(self, make_shift):
        shift = make_shift(
            "21:00", "07:00",
            shift_type=ShiftType.PRESENCE_NIGHT,
            night_interventions_count=5,
        )
        assert compute_effective_hours(shift, True) == pytest.approx(10.0)

    def test_guard_counts_effective_segments(self, make_shift):
        shift = make_shift(
            "08:00", "08:00",
            shift_type=ShiftType.GUARD_24H,
            guard_segments=[
                {"start_time": "08:00", "type": "effective"},
                {"start_time": "16:00", "type": "presence"},
            ],
        )
        assert compute_effective_hours(shift, False) == pytest.approx(8.0)

    def test_guard_segment_break_is_subtracted(self, make_shift):
        shift = make_shift(
            "08:00", "08:00",
            shift_type=ShiftType.GUARD_24H,
            guard_segments=[
                {"start_time": "08:00", "type": "effective", "break_minutes": 30},
                {"start_time": "16:00", "type": "presence"},
            ],
        )
        assert compute_effective_hours(shift, False) == pytest.approx(7.5)

    def test_guard_without_segments(self, make_shift):
        shift = make_shift("08:00", "08:00", shift_type=ShiftType.GUARD_24H)
        assert compute_effective_hours(shift, False) == 0

    def test_rounded_to_two_decimals(self, make_shift):
        shift = make_shift("08:00", "08:10", shift_type=ShiftType.PRESENCE_DAY)
        assert compute_effective_hours(shift, False) == 0.11


class TestGuardSegments:

    def test_last_segment_wraps_to_first_start(self, make_shift):
        shift = make_shift(
            "07:00", "07:00",
            shift_type=ShiftType.GUARD_24H,
            guard_segments=[
                {"start_time": "07:00", "type": "effective"},
                {"start_time": "12:00", "type": "presence"},
                {"start_time": "14:00", "type": "effective"},
                {"start_time": "21:00", "type": "presence_night"},
            ],
        )
        assert guard_segment_minutes(shift) == [
            (GuardSegmentType.EFFECTIVE, 300),
            (GuardSegmentType.PRESENCE, 120),
            (GuardSegmentType.EFFECTIVE, 420),
            (GuardSegmentType.PRESENCE_NIGHT, 600),
        ]


class TestWorkHours:

    def test_night_presence_allowance(self, make_shift):
        shift = make_shift("21:00", "07:00", shift_type=ShiftType.PRESENCE_NIGHT)
        assert night_presence_allowance_hours(shift) == pytest.approx(2.5)

    def test_plain_night_presence_is_not_work(self, make_shift):
        shift = make_shift("21:00", "07:00", shift_type=ShiftType.PRESENCE_NIGHT)
        assert work_hours(shift) == 0.0

    def test_presence_day_counts_weighted(self, make_shift):
        shift = make_shift("08:00", "17:00", shift_type=ShiftType.PRESENCE_DAY)
        assert work_hours(shift) == pytest.approx(6.0)
