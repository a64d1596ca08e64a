"""Shift pay with IDCC 3239 majorations."""

from datetime import date, timedelta
from functools import lru_cache
from typing import Iterable, Optional

from dateutil.easter import easter

from .hours import (
    calculate_night_hours,
    compute_effective_hours,
    night_presence_allowance_hours,
    shift_duration_hours,
    shift_is_requalified,
    weighted_hours,
)
from .timeline import week_bounds
from .types import (
    DEFAULT_RULES,
    ComplianceRules,
    ComputedPay,
    Contract,
    Shift,
    ShiftType,
)


@lru_cache(maxsize=32)
def french_public_holidays(year: int) -> frozenset[date]:
    """French public holidays, Easter-dependent ones included."""
    easter_sunday = easter(year)
    return frozenset({
        date(year, 1, 1),
        date(year, 5, 1),
        date(year, 5, 8),
        date(year, 7, 14),
        date(year, 8, 15),
        date(year, 11, 1),
        date(year, 11, 11),
        date(year, 12, 25),
        easter_sunday,
        easter_sunday + timedelta(days=1),   # Easter Monday
        easter_sunday + timedelta(days=39),  # Ascension
        easter_sunday + timedelta(days=50),  # Whit Monday
    })


def is_public_holiday(day: date) -> bool:
    return day in french_public_holidays(day.year)


def is_sunday(day: date) -> bool:
    return day.weekday() == 6


def weekly_overtime_bounds(
    shift: Shift,
    sibling_shifts: Iterable[Shift],
    contractual_weekly_hours: float,
) -> tuple[float, float]:
    """Weekly overtime before and after this shift is added."""
    week_start, week_end = week_bounds(shift.date)
    previous_hours = sum(
        shift_duration_hours(s)
        for s in sibling_shifts
        if s is not shift
        and not (shift.id and s.id == shift.id)
        and s.employee_id == shift.employee_id
        and week_start <= s.date <= week_end
    )
    total_hours = previous_hours + shift_duration_hours(shift)
    return (
        max(0.0, previous_hours - contractual_weekly_hours),
        max(0.0, total_hours - contractual_weekly_hours),
    )


def calculate_overtime_hours(
    shift: Shift,
    sibling_shifts: Iterable[Shift],
    contractual_weekly_hours: float,
) -> float:
    """Hours beyond the contractual week that this shift itself adds."""
    previous_overtime, total_overtime = weekly_overtime_bounds(
        shift, sibling_shifts, contractual_weekly_hours
    )
    return total_overtime - previous_overtime


def calculate_shift_pay(
    shift: Shift,
    contract: Contract,
    sibling_shifts: Iterable[Shift] = (),
    rules: Optional[ComplianceRules] = None,
    habitual_holiday_work: bool = False,
) -> ComputedPay:
    """
    Pay breakdown of one shift.

    Night majoration applies only when the worker performed an action during
    the night; simple presence earns none. Amounts are rounded to cents once,
    on the way out.
    """
    rules = rules or DEFAULT_RULES
    hourly_rate = contract.hourly_rate or 0.0
    duration_hours = shift_duration_hours(shift)
    base_pay = duration_hours * hourly_rate
    shift_type = shift.shift_type

    requalified = shift_is_requalified(shift, rules)
    hours_weighted = weighted_hours(shift, requalified, rules)

    night_hours = calculate_night_hours(shift.date, shift.start_time, shift.end_time, rules)
    night_majoration = 0.0
    if night_hours > 0 and shift.has_night_action:
        night_majoration = night_hours * hourly_rate * rules.night_majoration_rate

    presence_responsible_pay = 0.0
    night_presence_allowance = 0.0
    if shift_type == ShiftType.EFFECTIVE:
        majorable_pay = base_pay
    elif shift_type == ShiftType.PRESENCE_DAY:
        presence_responsible_pay = hours_weighted * hourly_rate
        majorable_pay = presence_responsible_pay
    elif shift_type == ShiftType.PRESENCE_NIGHT:
        if requalified:
            night_presence_allowance = duration_hours * hourly_rate
        else:
            night_presence_allowance = night_presence_allowance_hours(shift, rules) * hourly_rate
        majorable_pay = 0.0
    else:
        majorable_pay = (hours_weighted or 0.0) * hourly_rate

    sunday_majoration = 0.0
    if is_sunday(shift.date):
        sunday_majoration = majorable_pay * rules.sunday_majoration_rate

    holiday_majoration = 0.0
    if is_public_holiday(shift.date):
        rate = (
            rules.holiday_habitual_majoration_rate
            if habitual_holiday_work
            else rules.holiday_exceptional_majoration_rate
        )
        holiday_majoration = majorable_pay * rate

    overtime_majoration = 0.0
    if shift_type == ShiftType.EFFECTIVE and contract.weekly_hours is not None:
        previous_overtime, total_overtime = weekly_overtime_bounds(
            shift, sibling_shifts, contract.weekly_hours
        )
        if total_overtime > previous_overtime:
            # Tiers count from the first overtime hour of the week
            tier = rules.overtime_first_tier_hours
            first_tier = max(0.0, min(total_overtime, tier) - min(previous_overtime, tier))
            beyond_tier = total_overtime - previous_overtime - first_tier
            overtime_majoration = (
                first_tier * hourly_rate * rules.overtime_first_tier_rate
                + beyond_tier * hourly_rate * rules.overtime_beyond_tier_rate
            )

    if shift_type == ShiftType.EFFECTIVE:
        total_pay = base_pay + sunday_majoration + holiday_majoration + night_majoration + overtime_majoration
    elif shift_type == ShiftType.PRESENCE_DAY:
        total_pay = presence_responsible_pay + sunday_majoration + holiday_majoration
    elif shift_type == ShiftType.PRESENCE_NIGHT:
        total_pay = night_presence_allowance + night_majoration
    else:
        total_pay = majorable_pay + sunday_majoration + holiday_majoration + night_majoration

    return ComputedPay(
        base_pay=round(base_pay, 2),
        sunday_majoration=round(sunday_majoration, 2),
        holiday_majoration=round(holiday_majoration, 2),
        night_majoration=round(night_majoration, 2),
        overtime_majoration=round(overtime_majoration, 2),
        presence_responsible_pay=round(presence_responsible_pay, 2),
        night_presence_allowance=round(night_presence_allowance, 2),
        total_pay=round(total_pay, 2),
        night_hours=round(night_hours, 2),
        effective_hours=compute_effective_hours(shift, requalified, rules),
    )
