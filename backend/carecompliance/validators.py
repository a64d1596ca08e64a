"""Compliance validators for IDCC 3239 labor rules."""

import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Iterable, Optional

from .hours import (
    calculate_night_hours,
    guard_segment_minutes,
    guard_segment_spans,
    shift_duration_hours,
    work_hours,
)
from .timeline import Interval, hours_between, minutes_to_time, week_bounds, week_interval
from .types import (
    ComplianceContext,
    ComplianceResult,
    ComplianceRules,
    GuardSegmentType,
    Shift,
    ShiftType,
    Violation,
    ViolationSeverity,
    ViolationType,
    WeeklyRestStatus,
)

RULE_REFERENCES = {
    ViolationType.SHIFT_OVERLAP: "One intervention at a time per worker",
    ViolationType.ABSENCE_CONFLICT: "No intervention during an approved absence",
    ViolationType.DAILY_REST: "Minimum 11 consecutive hours of daily rest (Art. L3131-1 Code du travail)",
    ViolationType.DAILY_MAX_HOURS: "Maximum 10 working hours per day (Art. L3121-18 Code du travail)",
    ViolationType.DAILY_HOURS_REMAINING: "Maximum 10 working hours per day (Art. L3121-18 Code du travail)",
    ViolationType.WEEKLY_MAX_HOURS: "Maximum 48 working hours per week (Art. L3121-20 Code du travail)",
    ViolationType.CONTRACT_WEEKLY_HOURS: "Hours beyond the contract are overtime (Art. L3121-28 Code du travail)",
    ViolationType.WEEKLY_REST: "Minimum 35 consecutive hours of weekly rest (Art. L3132-2 Code du travail)",
    ViolationType.MANDATORY_BREAK: "20-minute break after 6 hours of work (Art. L3121-16 Code du travail)",
    ViolationType.NIGHT_PRESENCE_MAX_DURATION: "Night presence limited to 12 hours (IDCC 3239 Art. 148)",
    ViolationType.CONSECUTIVE_NIGHTS_MAX: "At most 5 consecutive night presences (IDCC 3239 Art. 148)",
    ViolationType.GUARD_24H_EFFECTIVE_MAX: "24h guard: at most 12 hours of effective work (IDCC 3239 Art. 137.2)",
    ViolationType.GUARD_MAX_AMPLITUDE: "Effective work plus presence limited to 24 hours (IDCC 3239 Art. 137.2)",
}


def make_violation(
    rule_type: ViolationType,
    severity: ViolationSeverity,
    shift: Shift,
    message: str,
    related_id: Optional[str] = None,
    details: Optional[dict] = None,
) -> Violation:
    return Violation(
        rule_type=rule_type,
        severity=severity,
        message=message,
        rule=RULE_REFERENCES.get(rule_type, ""),
        shift_id=shift.id,
        related_id=related_id,
        date=shift.date.isoformat(),
        details=details or {},
    )


def find_previous_shift(interval: Interval, shifts: Iterable[Shift]) -> Optional[Shift]:
    """Shift ending last at or before ``interval`` starts."""
    earlier = [s for s in shifts if s.interval.end <= interval.start]
    return max(earlier, key=lambda s: s.interval.end, default=None)


def find_next_shift(interval: Interval, shifts: Iterable[Shift]) -> Optional[Shift]:
    """Shift starting first at or after ``interval`` ends."""
    later = [s for s in shifts if s.interval.start >= interval.end]
    return min(later, key=lambda s: s.interval.start, default=None)


def week_hours(day, shifts: Iterable[Shift]) -> float:
    """Raw duration hours of the shifts starting in the ISO week of ``day``."""
    week_start, week_end = week_bounds(day)
    return sum(shift_duration_hours(s) for s in shifts if week_start <= s.date <= week_end)


def day_hours(day, shifts: Iterable[Shift], rules: Optional[ComplianceRules] = None) -> float:
    """Working hours of the shifts starting on ``day``."""
    return sum(work_hours(s, rules) for s in shifts if s.date == day)


def weekly_rest_status(day, shifts: Iterable[Shift], rules: ComplianceRules) -> WeeklyRestStatus:
    """Longest uninterrupted rest inside the ISO week of ``day``."""
    week = week_interval(day)
    busy = sorted(
        (clipped for clipped in (s.interval.clipped(week.start, week.end) for s in shifts) if clipped),
        key=lambda i: i.start,
    )

    rest_periods = []
    cursor = week.start
    for interval in busy:
        if interval.start > cursor:
            rest_periods.append(Interval(cursor, interval.start))
        cursor = max(cursor, interval.end)
    if cursor < week.end:
        rest_periods.append(Interval(cursor, week.end))

    longest = max((p.hours for p in rest_periods), default=0.0)
    return WeeklyRestStatus(
        longest_rest=round(longest, 2),
        is_compliant=longest >= rules.min_weekly_rest_hours,
        rest_periods=rest_periods,
    )


class BaseValidator(ABC):
    """Base class for compliance validators."""

    @abstractmethod
    def validate(self, context: ComplianceContext, result: ComplianceResult) -> None:
        """Validate compliance and add violations to result."""
        pass


class OverlapValidator(BaseValidator):
    """One intervention at a time: every intersecting shift is its own error."""

    def validate(self, context: ComplianceContext, result: ComplianceResult) -> None:
        candidate = context.candidate
        interval = candidate.interval

        for other in context.employee_shifts():
            if not interval.overlaps(other.interval):
                continue
            result.add_violation(make_violation(
                ViolationType.SHIFT_OVERLAP,
                ViolationSeverity.ERROR,
                candidate,
                f"Shift {candidate.describe()} overlaps shift {other.describe()}",
                related_id=other.id,
                details={
                    "conflicting_start": other.start_time,
                    "conflicting_end": other.end_time,
                    "conflicting_date": other.date.isoformat(),
                },
            ))


class AbsenceConflictValidator(BaseValidator):
    """No work on a calendar day covered by an approved absence."""

    def validate(self, context: ComplianceContext, result: ComplianceResult) -> None:
        candidate = context.candidate
        days = candidate.interval.days()

        for absence in context.employee_absences():
            touched = [d for d in days if absence.covers(d)]
            if not touched:
                continue
            result.add_violation(make_violation(
                ViolationType.ABSENCE_CONFLICT,
                ViolationSeverity.ERROR,
                candidate,
                f"Shift {candidate.describe()} falls within an approved {absence.absence_type} "
                f"absence ({absence.start_date.isoformat()} to {absence.end_date.isoformat()})",
                related_id=absence.id,
                details={
                    "absence_type": absence.absence_type,
                    "days": [d.isoformat() for d in touched],
                },
            ))


class DailyRestValidator(BaseValidator):
    """Validates the 11h rest before and after the candidate (anti-clopening)."""

    def validate(self, context: ComplianceContext, result: ComplianceResult) -> None:
        if not context.enable_daily_rest:
            return

        candidate = context.candidate
        if candidate.is_presence:
            return

        others = context.employee_shifts()
        interval = candidate.interval

        previous = find_previous_shift(interval, others)
        if previous is not None and not previous.is_presence:
            self._check_gap(context, result, previous, previous.interval.end, interval.start, "previous")

        following = find_next_shift(interval, others)
        if following is not None and not following.is_presence:
            self._check_gap(context, result, following, interval.end, following.interval.start, "next")

    @staticmethod
    def _check_gap(context, result, other, rest_start, rest_end, direction):
        rules = context.rules
        rest_hours = hours_between(rest_start, rest_end)
        if rest_hours < rules.min_daily_rest_hours:
            severity = ViolationSeverity.ERROR
            message = (
                f"Only {rest_hours:.1f}h of rest with the {direction} shift "
                f"({other.describe()}); {rules.min_daily_rest_hours:g}h required"
            )
        elif rest_hours < rules.min_daily_rest_hours + rules.daily_rest_warning_margin_hours:
            severity = ViolationSeverity.WARNING
            message = (
                f"Rest with the {direction} shift ({other.describe()}) is {rest_hours:.1f}h, "
                f"close to the {rules.min_daily_rest_hours:g}h minimum"
            )
        else:
            return

        result.add_violation(make_violation(
            ViolationType.DAILY_REST,
            severity,
            context.candidate,
            message,
            related_id=other.id,
            details={
                "direction": direction,
                "rest_hours": round(rest_hours, 2),
                "minimum_required": rules.min_daily_rest_hours,
                "rest_start": rest_start.isoformat(),
                "rest_end": rest_end.isoformat(),
            },
        ))


class DailyHoursValidator(BaseValidator):
    """Validates the 10h ceiling of working hours on the candidate's day."""

    def validate(self, context: ComplianceContext, result: ComplianceResult) -> None:
        if not context.enable_hour_limits:
            return

        rules = context.rules
        candidate = context.candidate
        others_hours = day_hours(candidate.date, context.employee_shifts(), rules)
        total = others_hours + work_hours(candidate, rules)

        if total > rules.daily_hours_max:
            result.add_violation(make_violation(
                ViolationType.DAILY_MAX_HOURS,
                ViolationSeverity.ERROR,
                candidate,
                f"{total:.1f}h of work on {candidate.date.isoformat()}, "
                f"exceeds the daily maximum of {rules.daily_hours_max:g}h",
                details={
                    "hours_scheduled": round(total, 2),
                    "already_scheduled": round(others_hours, 2),
                    "max_allowed": rules.daily_hours_max,
                },
            ))


class WeeklyHoursValidator(BaseValidator):
    """Validates the legal weekly ceiling and the contractual weekly hours."""

    def __init__(self, check_contract: bool = True):
        self.check_contract = check_contract

    def validate(self, context: ComplianceContext, result: ComplianceResult) -> None:
        if not context.enable_hour_limits:
            return

        rules = context.rules
        candidate = context.candidate
        total = week_hours(candidate.date, context.employee_shifts()) + shift_duration_hours(candidate)
        week_start, week_end = week_bounds(candidate.date)
        details = {
            "hours_scheduled": round(total, 2),
            "week_start": week_start.isoformat(),
            "week_end": week_end.isoformat(),
        }

        if total >= rules.weekly_hours_max:
            result.add_violation(make_violation(
                ViolationType.WEEKLY_MAX_HOURS,
                ViolationSeverity.ERROR,
                candidate,
                f"{total:.1f}h scheduled this week, reaches the legal maximum of {rules.weekly_hours_max:g}h",
                details={**details, "max_allowed": rules.weekly_hours_max},
            ))
        elif total > rules.weekly_hours_warning:
            result.add_violation(make_violation(
                ViolationType.WEEKLY_MAX_HOURS,
                ViolationSeverity.WARNING,
                candidate,
                f"{total:.1f}h scheduled this week, approaching the legal maximum of {rules.weekly_hours_max:g}h",
                details={**details, "warning_threshold": rules.weekly_hours_warning},
            ))

        if not self.check_contract:
            return

        contract = context.contract
        if contract is None or contract.weekly_hours is None:
            logging.warning(
                f"Contract weekly hours unknown for employee {candidate.employee_id}; "
                f"contract hours check skipped"
            )
            result.mark_not_evaluated(ViolationType.CONTRACT_WEEKLY_HOURS)
            return

        if total > contract.weekly_hours:
            overtime = total - contract.weekly_hours
            result.add_violation(make_violation(
                ViolationType.CONTRACT_WEEKLY_HOURS,
                ViolationSeverity.WARNING,
                candidate,
                f"{total:.1f}h scheduled this week, {overtime:.1f}h beyond the "
                f"{contract.weekly_hours:g}h contract (overtime)",
                related_id=contract.id,
                details={
                    **details,
                    "contract_hours": contract.weekly_hours,
                    "overtime_hours": round(overtime, 2),
                },
            ))


class WeeklyRestValidator(BaseValidator):
    """Validates 35 consecutive hours of rest within the candidate's week."""

    def validate(self, context: ComplianceContext, result: ComplianceResult) -> None:
        if not context.enable_weekly_rest:
            return

        rules = context.rules
        candidate = context.candidate
        status = weekly_rest_status(candidate.date, context.employee_shifts() + [candidate], rules)

        if not status.is_compliant:
            result.add_violation(make_violation(
                ViolationType.WEEKLY_REST,
                ViolationSeverity.ERROR,
                candidate,
                f"Longest rest this week is {status.longest_rest:.1f}h; "
                f"{rules.min_weekly_rest_hours:g}h consecutive required",
                details={
                    "longest_rest": status.longest_rest,
                    "minimum_required": rules.min_weekly_rest_hours,
                },
            ))


class BreakComplianceValidator(BaseValidator):
    """Validates the 20 min break of worked shifts longer than 6h."""

    def validate(self, context: ComplianceContext, result: ComplianceResult) -> None:
        if not context.enable_break_compliance:
            return

        candidate = context.candidate
        # Sleep-in nights and guards carry their own breaks
        if candidate.shift_type in (ShiftType.PRESENCE_NIGHT, ShiftType.GUARD_24H):
            return

        rules = context.rules
        span_minutes = candidate.span.minutes
        if span_minutes <= rules.break_required_after_minutes:
            return
        if candidate.break_duration >= rules.min_break_minutes:
            return

        result.add_violation(make_violation(
            ViolationType.MANDATORY_BREAK,
            ViolationSeverity.WARNING,
            candidate,
            f"{span_minutes / 60:.1f}h shift with a {candidate.break_duration} min break; "
            f"at least {rules.min_break_minutes} min required",
            details={
                "shift_minutes": span_minutes,
                "break_minutes": candidate.break_duration,
                "minimum_break": rules.min_break_minutes,
            },
        ))


class NightPresenceDurationValidator(BaseValidator):
    """Validates the 12h ceiling of a night presence."""

    def validate(self, context: ComplianceContext, result: ComplianceResult) -> None:
        if not context.enable_presence_rules:
            return

        candidate = context.candidate
        if candidate.shift_type != ShiftType.PRESENCE_NIGHT:
            return

        rules = context.rules
        duration = shift_duration_hours(candidate)
        if duration > rules.max_night_presence_hours:
            result.add_violation(make_violation(
                ViolationType.NIGHT_PRESENCE_MAX_DURATION,
                ViolationSeverity.ERROR,
                candidate,
                f"Night presence of {duration:.1f}h exceeds {rules.max_night_presence_hours:g}h",
                details={"duration_hours": round(duration, 2), "max_allowed": rules.max_night_presence_hours},
            ))


class ConsecutiveNightsValidator(BaseValidator):
    """Validates the run of consecutive night presences around the candidate."""

    def validate(self, context: ComplianceContext, result: ComplianceResult) -> None:
        if not context.enable_presence_rules:
            return

        candidate = context.candidate
        if candidate.shift_type != ShiftType.PRESENCE_NIGHT:
            return

        nights = {
            s.date for s in context.employee_shifts()
            if s.shift_type == ShiftType.PRESENCE_NIGHT
        }
        nights.add(candidate.date)

        one_day = timedelta(days=1)
        first = candidate.date
        while first - one_day in nights:
            first -= one_day
        last = candidate.date
        while last + one_day in nights:
            last += one_day
        run = (last - first).days + 1

        rules = context.rules
        if run > rules.max_consecutive_nights:
            result.add_violation(make_violation(
                ViolationType.CONSECUTIVE_NIGHTS_MAX,
                ViolationSeverity.ERROR,
                candidate,
                f"{run} consecutive night presences ({first.isoformat()} to {last.isoformat()}); "
                f"at most {rules.max_consecutive_nights} allowed",
                details={
                    "consecutive_nights": run,
                    "first_night": first.isoformat(),
                    "last_night": last.isoformat(),
                    "max_allowed": rules.max_consecutive_nights,
                },
            ))


class Guard24hValidator(BaseValidator):
    """Validates the segment breakdown of a 24h guard."""

    def validate(self, context: ComplianceContext, result: ComplianceResult) -> None:
        if not context.enable_presence_rules:
            return

        candidate = context.candidate
        if candidate.shift_type != ShiftType.GUARD_24H:
            return

        rules = context.rules
        if not candidate.guard_segments:
            result.add_violation(make_violation(
                ViolationType.GUARD_24H_EFFECTIVE_MAX,
                ViolationSeverity.ERROR,
                candidate,
                "24h guard has no segments; effective and presence time cannot be told apart",
            ))
            return

        effective_hours = sum(
            minutes for segment_type, minutes in guard_segment_minutes(candidate)
            if segment_type == GuardSegmentType.EFFECTIVE
        ) / 60
        if effective_hours > rules.guard_max_effective_hours:
            result.add_violation(make_violation(
                ViolationType.GUARD_24H_EFFECTIVE_MAX,
                ViolationSeverity.ERROR,
                candidate,
                f"24h guard holds {effective_hours:.1f}h of effective work; "
                f"at most {rules.guard_max_effective_hours:g}h allowed",
                details={
                    "effective_hours": round(effective_hours, 2),
                    "max_allowed": rules.guard_max_effective_hours,
                },
            ))

        for segment, span in guard_segment_spans(candidate):
            if segment.is_effective:
                continue
            segment_hours = span.minutes / 60
            if segment_hours <= rules.guard_night_segment_warning_hours:
                continue
            end_time = minutes_to_time(span.end)
            night_hours = calculate_night_hours(candidate.date, segment.start_time, end_time, rules)
            if segment.type != GuardSegmentType.PRESENCE_NIGHT and night_hours == 0:
                continue
            result.add_violation(make_violation(
                ViolationType.GUARD_24H_EFFECTIVE_MAX,
                ViolationSeverity.WARNING,
                candidate,
                f"Night presence segment {segment.start_time}-{end_time} lasts {segment_hours:.1f}h, "
                f"beyond {rules.guard_night_segment_warning_hours:g}h",
                details={
                    "segment_start": segment.start_time,
                    "segment_hours": round(segment_hours, 2),
                    "night_hours": round(night_hours, 2),
                },
            ))


class GuardAmplitudeValidator(BaseValidator):
    """Validates the amplitude of chained effective and presence shifts."""

    def validate(self, context: ComplianceContext, result: ComplianceResult) -> None:
        if not context.enable_presence_rules:
            return

        rules = context.rules
        candidate = context.candidate
        shifts = sorted(context.employee_shifts() + [candidate], key=lambda s: s.interval.start)

        chains = []
        chain = [shifts[0]]
        chain_end = shifts[0].interval.end
        for current in shifts[1:]:
            previous = chain[-1]
            gap = hours_between(chain_end, current.interval.start)
            if gap <= rules.guard_chain_gap_hours and (previous.is_presence or current.is_presence):
                chain.append(current)
                chain_end = max(chain_end, current.interval.end)
            else:
                chains.append((chain, chain_end))
                chain = [current]
                chain_end = current.interval.end
        chains.append((chain, chain_end))

        for chain, chain_end in chains:
            if not any(s is candidate for s in chain):
                continue
            if len(chain) < 2:
                return
            amplitude = hours_between(chain[0].interval.start, chain_end)
            if amplitude > rules.guard_max_amplitude_hours:
                result.add_violation(make_violation(
                    ViolationType.GUARD_MAX_AMPLITUDE,
                    ViolationSeverity.ERROR,
                    candidate,
                    f"Chained interventions span {amplitude:.1f}h; "
                    f"at most {rules.guard_max_amplitude_hours:g}h allowed",
                    details={
                        "amplitude_hours": round(amplitude, 2),
                        "chain_length": len(chain),
                        "chain_shift_ids": [s.id for s in chain],
                        "max_allowed": rules.guard_max_amplitude_hours,
                    },
                ))
            return
