"""
Weekly compliance overview for an employer.

Every active contract of the employer gets its hours, rest and alerts for the
week of the reference date; employees are ranked worst first.
"""

import logging
from datetime import date, timedelta
from typing import Iterable, Optional

from .engine import ComplianceEngine
from .timeline import coerce_date, week_bounds
from .types import (
    DEFAULT_RULES,
    AlertSeverity,
    ComplianceAlert,
    ComplianceContext,
    ComplianceRules,
    ComplianceStatus,
    Contract,
    EmployeeComplianceStatus,
    OverviewSummary,
    Shift,
    Violation,
    ViolationSeverity,
    ViolationType,
    WeeklyComplianceOverview,
)
from .validators import RULE_REFERENCES, day_hours, week_hours, weekly_rest_status

WEEK_SCOPED_RULES = {
    ViolationType.WEEKLY_MAX_HOURS,
    ViolationType.CONTRACT_WEEKLY_HOURS,
    ViolationType.WEEKLY_REST,
}
PAIRWISE_RULES = {ViolationType.SHIFT_OVERLAP, ViolationType.DAILY_REST}

STATUS_ORDER = {
    ComplianceStatus.CRITICAL: 0,
    ComplianceStatus.WARNING: 1,
    ComplianceStatus.OK: 2,
}


def week_label(week_start: date, week_end: date) -> str:
    """e.g. "Week of October 6 to October 12, 2025"."""
    return (
        f"Week of {week_start:%B} {week_start.day} "
        f"to {week_end:%B} {week_end.day}, {week_end.year}"
    )


def _alert_key(violation: Violation):
    if violation.rule_type in WEEK_SCOPED_RULES:
        return (violation.rule_type,)
    if violation.rule_type in PAIRWISE_RULES:
        return (violation.rule_type, frozenset({violation.shift_id, violation.related_id}))
    return (violation.rule_type, violation.shift_id, violation.message)


def _to_alert(violation: Violation) -> ComplianceAlert:
    severity = (
        AlertSeverity.CRITICAL
        if violation.severity == ViolationSeverity.ERROR
        else AlertSeverity.WARNING
    )
    return ComplianceAlert(
        type=violation.rule_type,
        severity=severity,
        message=violation.message,
        shift_id=violation.shift_id,
    )


def collect_alerts(
    contract: Contract,
    week_shifts: list[Shift],
    employee_shifts: list[Shift],
    rules: ComplianceRules,
) -> list[ComplianceAlert]:
    """Validate each shift of the week and merge the findings into unique alerts."""
    engine = ComplianceEngine()
    seen = set()
    alerts = []
    for shift in week_shifts:
        context = ComplianceContext(
            rules=rules,
            candidate=shift,
            sibling_shifts=employee_shifts,
            contract=contract,
            enable_pay_computation=False,
        )
        result = engine.validate(context)
        for violation in result.errors + result.warnings:
            key = _alert_key(violation)
            if key in seen:
                continue
            seen.add(key)
            alerts.append(_to_alert(violation))
    return alerts


def _status_of(alerts: list[ComplianceAlert]) -> ComplianceStatus:
    severities = {a.severity for a in alerts}
    if AlertSeverity.CRITICAL in severities:
        return ComplianceStatus.CRITICAL
    if AlertSeverity.WARNING in severities:
        return ComplianceStatus.WARNING
    return ComplianceStatus.OK


def employee_status(
    contract: Contract,
    shifts: Iterable[Shift],
    reference_date: date,
    rules: ComplianceRules,
) -> EmployeeComplianceStatus:
    week_start, week_end = week_bounds(reference_date)
    employee_shifts = [s for s in shifts if s.employee_id == contract.employee_id]
    week_shifts = sorted(
        (s for s in employee_shifts if week_start <= s.date <= week_end),
        key=lambda s: s.interval.start,
    )

    current_week_hours = week_hours(reference_date, employee_shifts)
    remaining_weekly = max(0.0, rules.weekly_hours_max - current_week_hours)
    remaining_daily = max(0.0, rules.daily_hours_max - day_hours(reference_date, employee_shifts, rules))

    alerts = collect_alerts(contract, week_shifts, employee_shifts, rules)
    if remaining_daily <= 0:
        alerts.append(ComplianceAlert(
            type=ViolationType.DAILY_HOURS_REMAINING,
            severity=AlertSeverity.CRITICAL,
            message=(
                f"Daily maximum reached on {reference_date.isoformat()} "
                f"({RULE_REFERENCES[ViolationType.DAILY_HOURS_REMAINING]})"
            ),
        ))
    elif remaining_daily <= rules.daily_hours_low_remaining:
        alerts.append(ComplianceAlert(
            type=ViolationType.DAILY_HOURS_REMAINING,
            severity=AlertSeverity.WARNING,
            message=(
                f"Only {remaining_daily:.1f}h of work left on {reference_date.isoformat()} "
                f"({RULE_REFERENCES[ViolationType.DAILY_HOURS_REMAINING]})"
            ),
        ))

    return EmployeeComplianceStatus(
        employee_id=contract.employee_id,
        employee_name=contract.employee_name,
        contract_id=contract.id,
        weekly_hours=contract.weekly_hours,
        current_week_hours=round(current_week_hours, 2),
        remaining_weekly_hours=round(remaining_weekly, 2),
        remaining_daily_hours=round(remaining_daily, 2),
        weekly_rest_status=weekly_rest_status(reference_date, employee_shifts, rules),
        alerts=alerts,
        status=_status_of(alerts),
    )


def get_weekly_overview(
    employer_id: str,
    contracts: Iterable[Contract],
    shifts: Iterable[Shift],
    reference_date,
    rules: Optional[ComplianceRules] = None,
) -> WeeklyComplianceOverview:
    """
    Compliance overview of an employer's active contracts for one week.

    Args:
        employer_id: Employer whose contracts are reported
        contracts: Contracts to pick from; other employers' and inactive ones are skipped
        shifts: Shifts of the employees, any week
        reference_date: Any day of the reported week
        rules: Compliance rules, IDCC 3239 defaults when omitted

    Returns:
        WeeklyComplianceOverview ranked critical, warning, then ok
    """
    rules = rules or DEFAULT_RULES
    reference_date = coerce_date(reference_date)
    week_start, week_end = week_bounds(reference_date)
    shifts = list(shifts)

    employees = [
        employee_status(contract, shifts, reference_date, rules)
        for contract in contracts
        if contract.employer_id == employer_id and contract.is_active
    ]
    employees.sort(key=lambda e: (STATUS_ORDER[e.status], e.employee_name.casefold()))

    summary = OverviewSummary(
        total_employees=len(employees),
        compliant=sum(1 for e in employees if e.status == ComplianceStatus.OK),
        warnings=sum(1 for e in employees if e.status == ComplianceStatus.WARNING),
        critical=sum(1 for e in employees if e.status == ComplianceStatus.CRITICAL),
    )
    label = week_label(week_start, week_end)
    logging.info(
        f"Compliance overview for employer {employer_id}, {label}: "
        f"{summary.total_employees} employees, {summary.critical} critical, "
        f"{summary.warnings} warnings"
    )

    return WeeklyComplianceOverview(
        week_start=week_start,
        week_end=week_end,
        week_label=label,
        employees=employees,
        summary=summary,
    )


def get_critical_alerts(overview: WeeklyComplianceOverview) -> list[ComplianceAlert]:
    """Critical alerts of every employee, prefixed with the employee's name."""
    return [
        ComplianceAlert(
            type=alert.type,
            severity=alert.severity,
            message=f"{employee.employee_name}: {alert.message}",
            shift_id=alert.shift_id,
        )
        for employee in overview.employees
        for alert in employee.alerts
        if alert.severity == AlertSeverity.CRITICAL
    ]


def get_compliance_history(
    employer_id: str,
    contracts: Iterable[Contract],
    shifts: Iterable[Shift],
    reference_date,
    weeks_back: int = 4,
    rules: Optional[ComplianceRules] = None,
) -> list[dict]:
    """Weekly status tallies for the last ``weeks_back`` weeks, oldest first."""
    reference_date = coerce_date(reference_date)
    contracts = list(contracts)
    shifts = list(shifts)

    history = []
    for weeks_ago in range(weeks_back - 1, -1, -1):
        overview = get_weekly_overview(
            employer_id,
            contracts,
            shifts,
            reference_date - timedelta(weeks=weeks_ago),
            rules,
        )
        history.append({
            "week_start": overview.week_start.isoformat(),
            "week_label": f"W{overview.week_start.isocalendar()[1]}",
            "compliant": overview.summary.compliant,
            "warnings": overview.summary.warnings,
            "critical": overview.summary.critical,
        })
    return history
