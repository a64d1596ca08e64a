"""
Hour calculations for IDCC 3239 shifts.

Duration and night-hour content of a shift, the night-presence
requalification rule and the per-type effective-hours weighting.
"""

from datetime import date
from typing import Optional

from .exceptions import InvalidInputError
from .timeline import ClockSpan, night_windows
from .types import (
    DEFAULT_RULES,
    ComplianceRules,
    GuardSegment,
    GuardSegmentType,
    Shift,
    ShiftType,
)


def calculate_shift_duration(start_time: str, end_time: str, break_minutes: int = 0) -> int:
    """
    Effective minutes of a shift.

    An end at or before the start crosses midnight. A break longer than the
    span yields 0, never a negative duration.
    """
    return max(0, ClockSpan.from_clock(start_time, end_time).minutes - break_minutes)


def shift_duration_hours(shift: Shift) -> float:
    return calculate_shift_duration(shift.start_time, shift.end_time, shift.break_duration) / 60


def calculate_night_hours(
    day: date,
    start_time: str,
    end_time: str,
    rules: Optional[ComplianceRules] = None,
) -> float:
    """
    Hours of the shift falling inside the legal night window.

    ``day`` only anchors the shift; the result depends on the clock times
    alone, since the night window recurs identically every day.

    Raises InvalidTimeFormat on malformed times; callers pick their own
    fallback. The result is not rounded.
    """
    rules = rules or DEFAULT_RULES
    span = ClockSpan.from_clock(start_time, end_time)
    night_minutes = sum(
        span.overlap_minutes(window)
        for window in night_windows(rules.night_start, rules.night_end)
    )
    return night_minutes / 60


def is_requalified(
    shift_type,
    night_interventions_count: int,
    rules: Optional[ComplianceRules] = None,
) -> bool:
    """A night presence with enough interventions is paid as effective work (Art. 148)."""
    rules = rules or DEFAULT_RULES
    try:
        shift_type = ShiftType(shift_type)
    except ValueError as exc:
        raise InvalidInputError(f"Unknown shift type: {shift_type!r}") from exc
    if shift_type != ShiftType.PRESENCE_NIGHT:
        return False
    return (night_interventions_count or 0) >= rules.requalification_threshold


def shift_is_requalified(shift: Shift, rules: Optional[ComplianceRules] = None) -> bool:
    return is_requalified(
        shift.shift_type,
        getattr(shift, "night_interventions_count", 0),
        rules,
    )


def guard_segment_spans(shift: Shift) -> list[tuple[GuardSegment, ClockSpan]]:
    """
    Each guard segment with its clock span.

    A segment ends where the next one starts; the last one ends at the first
    segment's start, 24h later.
    """
    segments = getattr(shift, "guard_segments", None) or []
    result = []
    for i, segment in enumerate(segments):
        if i + 1 < len(segments):
            segment_end = segments[i + 1].start_time
        else:
            segment_end = segments[0].start_time
        result.append((segment, ClockSpan.from_clock(segment.start_time, segment_end)))
    return result


def guard_segment_minutes(shift: Shift) -> list[tuple[GuardSegmentType, int]]:
    """(type, minutes net of break) for each guard segment."""
    return [
        (segment.type, max(0, span.minutes - segment.break_minutes))
        for segment, span in guard_segment_spans(shift)
    ]


def work_hours(shift: Shift, rules: Optional[ComplianceRules] = None) -> float:
    """Hours counted as effective work for daily ceilings."""
    if shift.shift_type == ShiftType.EFFECTIVE:
        return shift_duration_hours(shift)
    return weighted_hours(shift, shift_is_requalified(shift, rules), rules) or 0.0


def weighted_hours(
    shift: Shift,
    requalified: bool,
    rules: Optional[ComplianceRules] = None,
) -> Optional[float]:
    """Unrounded weighted hours; see compute_effective_hours."""
    rules = rules or DEFAULT_RULES
    shift_type = shift.shift_type

    if shift_type == ShiftType.EFFECTIVE:
        return None

    if shift_type == ShiftType.PRESENCE_DAY:
        return shift_duration_hours(shift) * rules.presence_day_ratio

    if shift_type == ShiftType.PRESENCE_NIGHT:
        if requalified:
            return shift_duration_hours(shift)
        return None

    if shift_type == ShiftType.GUARD_24H:
        total_minutes = 0.0
        for segment_type, minutes in guard_segment_minutes(shift):
            if segment_type == GuardSegmentType.EFFECTIVE:
                total_minutes += minutes
            else:
                total_minutes += minutes * rules.guard_presence_ratio
        return total_minutes / 60

    raise ValueError(f"Unhandled shift type: {shift_type}")


def compute_effective_hours(
    shift: Shift,
    requalified: bool,
    rules: Optional[ComplianceRules] = None,
) -> Optional[float]:
    """
    Effective hours after pay weighting, or None when weighting does not apply.

    effective: None (paid at raw duration)
    presence_day: duration x 2/3
    presence_night: duration when requalified, else None (flat indemnity)
    guard_24h: sum of effective segments, presence segments weighted by guard_presence_ratio
    """
    hours = weighted_hours(shift, requalified, rules)
    if hours is None:
        return None
    return round(hours, 2)


def night_presence_allowance_hours(shift: Shift, rules: Optional[ComplianceRules] = None) -> float:
    """Paid hours of the flat night-presence indemnity (duration x 1/4)."""
    rules = rules or DEFAULT_RULES
    return shift_duration_hours(shift) * rules.night_presence_allowance_ratio
