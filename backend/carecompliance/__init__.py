"""IDCC 3239 labor compliance and pay-weighting engine for home-care shifts."""

from .exceptions import InvalidInputError, InvalidTimeFormat
from .types import (
    DEFAULT_RULES,
    Absence,
    ComplianceContext,
    ComplianceResult,
    ComplianceRules,
    ComputedPay,
    Contract,
    EffectiveShift,
    Guard24hShift,
    GuardSegment,
    PresenceDayShift,
    PresenceNightShift,
    ShiftType,
    Violation,
    ViolationSeverity,
    ViolationType,
    WeeklyComplianceOverview,
    make_shift,
)
from .hours import (
    calculate_night_hours,
    calculate_shift_duration,
    compute_effective_hours,
    is_requalified,
)
from .pay import calculate_shift_pay
from .engine import ComplianceEngine, quick_validate, suggest_alternatives, validate_shift
from .overview import get_compliance_history, get_critical_alerts, get_weekly_overview
from .config import load_rules

__all__ = [
    "InvalidInputError",
    "InvalidTimeFormat",
    "DEFAULT_RULES",
    "Absence",
    "ComplianceContext",
    "ComplianceResult",
    "ComplianceRules",
    "ComputedPay",
    "Contract",
    "EffectiveShift",
    "Guard24hShift",
    "GuardSegment",
    "PresenceDayShift",
    "PresenceNightShift",
    "ShiftType",
    "Violation",
    "ViolationSeverity",
    "ViolationType",
    "WeeklyComplianceOverview",
    "make_shift",
    "calculate_night_hours",
    "calculate_shift_duration",
    "compute_effective_hours",
    "is_requalified",
    "calculate_shift_pay",
    "ComplianceEngine",
    "quick_validate",
    "suggest_alternatives",
    "validate_shift",
    "get_compliance_history",
    "get_critical_alerts",
    "get_weekly_overview",
    "load_rules",
]
