"""Compliance validation engine that orchestrates all validators."""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

from .hours import calculate_shift_duration, shift_duration_hours
from .pay import calculate_shift_pay
from .schemas import ContractRecord, parse_absences, parse_record, parse_shifts
from .timeline import minutes_to_time
from .types import (
    DEFAULT_RULES,
    Absence,
    ComplianceContext,
    ComplianceResult,
    ComplianceRules,
    Contract,
    Shift,
    ViolationType,
)
from .validators import (
    AbsenceConflictValidator,
    BaseValidator,
    BreakComplianceValidator,
    ConsecutiveNightsValidator,
    DailyHoursValidator,
    DailyRestValidator,
    Guard24hValidator,
    GuardAmplitudeValidator,
    NightPresenceDurationValidator,
    OverlapValidator,
    WeeklyHoursValidator,
    WeeklyRestValidator,
    find_previous_shift,
)

MAX_SUGGESTIONS = 3


class ComplianceEngine:
    """
    Main engine for validating one shift.

    Runs every validator in order, then assembles the shift's duration and
    pay breakdown.
    """

    def __init__(self, validators: Optional[list[BaseValidator]] = None):
        """Initialize with all validators unless a subset is given."""
        if validators is None:
            validators = [
                OverlapValidator(),
                AbsenceConflictValidator(),
                DailyRestValidator(),
                DailyHoursValidator(),
                WeeklyHoursValidator(),
                WeeklyRestValidator(),
                BreakComplianceValidator(),
                NightPresenceDurationValidator(),
                ConsecutiveNightsValidator(),
                Guard24hValidator(),
                GuardAmplitudeValidator(),
            ]
        self.validators = validators

    def validate(self, context: ComplianceContext) -> ComplianceResult:
        """
        Run all compliance validations.

        Args:
            context: The compliance context with rules, candidate and siblings

        Returns:
            ComplianceResult with all violations found
        """
        result = ComplianceResult()
        candidate = context.candidate
        label = candidate.id or candidate.describe()

        for validator in self.validators:
            found = len(result.errors) + len(result.warnings)
            validator.validate(context, result)
            found = len(result.errors) + len(result.warnings) - found
            logging.debug(f"{type(validator).__name__}: {found} finding(s) for shift {label}")

        result.duration_hours = round(shift_duration_hours(candidate), 2)

        if context.enable_pay_computation:
            contract = context.contract
            if contract is None or contract.hourly_rate is None:
                logging.warning(f"No hourly rate for shift {label}; pay not computed")
                result.mark_not_evaluated(ViolationType.PAY)
            else:
                result.computed_pay = calculate_shift_pay(
                    candidate,
                    contract,
                    context.employee_shifts(),
                    context.rules,
                    context.habitual_holiday_work,
                )

        return result

    @classmethod
    def build_context(
        cls,
        rules: ComplianceRules,
        candidate: dict,
        sibling_shifts: list[dict],
        absences: Optional[list[dict]] = None,
        contract: Optional[dict] = None,
        habitual_holiday_work: bool = False,
        config: Optional[dict] = None,
    ) -> ComplianceContext:
        """
        Build a ComplianceContext from raw records.

        Args:
            rules: Compliance rules for the agreement
            candidate: Shift record to validate (camelCase or snake_case keys)
            sibling_shifts: The employee's other shift records
            absences: Absence records; only approved ones are considered
            contract: Contract record carrying weekly hours and hourly rate
            habitual_holiday_work: Whether holiday work is habitual for this contract
            config: Config dict with compliance toggles

        Returns:
            ComplianceContext ready for validation
        """
        config = config or {}

        return ComplianceContext(
            rules=rules,
            candidate=parse_shifts([candidate])[0],
            sibling_shifts=parse_shifts(sibling_shifts),
            absences=parse_absences(absences or []),
            contract=parse_record(ContractRecord, contract).to_contract() if contract else None,
            habitual_holiday_work=habitual_holiday_work,
            enable_daily_rest=config.get("enable_daily_rest", True),
            enable_weekly_rest=config.get("enable_weekly_rest", True),
            enable_hour_limits=config.get("enable_hour_limits", True),
            enable_break_compliance=config.get("enable_break_compliance", True),
            enable_presence_rules=config.get("enable_presence_rules", True),
            enable_pay_computation=config.get("enable_pay_computation", True),
        )


def validate_shift(
    candidate: Shift,
    sibling_shifts: Iterable[Shift],
    approved_absences: Optional[Iterable[Absence]] = None,
    contract: Optional[Contract] = None,
    rules: Optional[ComplianceRules] = None,
    habitual_holiday_work: bool = False,
) -> ComplianceResult:
    """Check a candidate shift against the employee's other shifts, absences and legal limits."""
    context = ComplianceContext(
        rules=rules or DEFAULT_RULES,
        candidate=candidate,
        sibling_shifts=list(sibling_shifts),
        absences=list(approved_absences or []),
        contract=contract,
        habitual_holiday_work=habitual_holiday_work,
    )
    return ComplianceEngine().validate(context)


def quick_validate(
    candidate: Shift,
    sibling_shifts: Iterable[Shift],
    rules: Optional[ComplianceRules] = None,
) -> tuple[bool, list[str]]:
    """Blocking checks only, for live feedback while a shift is being edited."""
    context = ComplianceContext(
        rules=rules or DEFAULT_RULES,
        candidate=candidate,
        sibling_shifts=list(sibling_shifts),
        enable_pay_computation=False,
    )
    result = ComplianceResult()
    for validator in (
        OverlapValidator(),
        DailyRestValidator(),
        DailyHoursValidator(),
        WeeklyHoursValidator(check_contract=False),
    ):
        validator.validate(context, result)

    messages = [
        v.message for v in result.errors
        if not (v.rule_type == ViolationType.DAILY_REST and v.details.get("direction") == "next")
    ]
    return not messages, messages


@dataclass
class ShiftSuggestion:
    date: date
    start_time: str
    end_time: str
    reason: str

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "reason": self.reason,
        }


def suggest_alternatives(
    candidate: Shift,
    sibling_shifts: Iterable[Shift],
    result: ComplianceResult,
    rules: Optional[ComplianceRules] = None,
) -> list[ShiftSuggestion]:
    """
    Propose up to three slots that keep the candidate's length.

    A daily-rest error suggests starting once the rest after the previous
    shift is over; an overlap suggests starting when the conflicting shift ends.
    """
    rules = rules or DEFAULT_RULES
    span_minutes = calculate_shift_duration(candidate.start_time, candidate.end_time)
    siblings = [
        s for s in sibling_shifts
        if s is not candidate
        and s.employee_id == candidate.employee_id
        and not (candidate.id and s.id == candidate.id)
    ]
    error_types = {e.rule_type for e in result.errors}

    def slot(start, reason):
        start_minutes = start.hour * 60 + start.minute
        return ShiftSuggestion(
            date=start.date(),
            start_time=minutes_to_time(start_minutes),
            end_time=minutes_to_time(start_minutes + span_minutes),
            reason=reason,
        )

    suggestions: list[ShiftSuggestion] = []
    rest_too_short = any(
        e.rule_type == ViolationType.DAILY_REST and e.details.get("direction") == "previous"
        for e in result.errors
    )
    if rest_too_short:
        previous = find_previous_shift(candidate.interval, siblings)
        if previous is not None:
            start = previous.interval.end + timedelta(hours=rules.min_daily_rest_hours)
            suggestions.append(slot(start, f"Respects the {rules.min_daily_rest_hours:g}h daily rest"))

    if ViolationType.SHIFT_OVERLAP in error_types:
        overlapping = sorted(
            (s for s in siblings if s.interval.overlaps(candidate.interval)),
            key=lambda s: s.interval.start,
        )
        for other in overlapping:
            suggestions.append(slot(other.interval.end, f"Starts after shift {other.describe()}"))

    unique = []
    for suggestion in suggestions:
        if suggestion not in unique:
            unique.append(suggestion)
    return unique[:MAX_SUGGESTIONS]
