"""Type definitions for the compliance engine."""

from dataclasses import dataclass, field, fields
from datetime import date
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from .exceptions import InvalidInputError
from .timeline import ClockSpan, Interval, coerce_date, parse_time_to_minutes


class ShiftType(str, Enum):
    """Pay-weighting category of a shift."""
    EFFECTIVE = "effective"
    PRESENCE_DAY = "presence_day"
    PRESENCE_NIGHT = "presence_night"
    GUARD_24H = "guard_24h"


class ShiftStatus(str, Enum):
    PLANNED = "planned"
    COMPLETED = "completed"


class GuardSegmentType(str, Enum):
    EFFECTIVE = "effective"
    PRESENCE = "presence"
    PRESENCE_NIGHT = "presence_night"  # presence segment flagged as night


class AbsenceStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ViolationType(str, Enum):
    """Machine-readable compliance rule kinds."""
    SHIFT_OVERLAP = "SHIFT_OVERLAP"
    ABSENCE_CONFLICT = "ABSENCE_CONFLICT"
    DAILY_REST = "DAILY_REST"
    DAILY_MAX_HOURS = "DAILY_MAX_HOURS"
    DAILY_HOURS_REMAINING = "DAILY_HOURS_REMAINING"
    WEEKLY_MAX_HOURS = "WEEKLY_MAX_HOURS"
    CONTRACT_WEEKLY_HOURS = "CONTRACT_WEEKLY_HOURS"
    WEEKLY_REST = "WEEKLY_REST"
    MANDATORY_BREAK = "MANDATORY_BREAK"
    NIGHT_PRESENCE_MAX_DURATION = "NIGHT_PRESENCE_MAX_DURATION"
    CONSECUTIVE_NIGHTS_MAX = "CONSECUTIVE_NIGHTS_MAX"
    GUARD_24H_EFFECTIVE_MAX = "GUARD_24H_EFFECTIVE_MAX"
    GUARD_MAX_AMPLITUDE = "GUARD_MAX_AMPLITUDE"
    PAY = "PAY"


class ViolationSeverity(str, Enum):
    """Severity levels for violations."""
    ERROR = "error"  # Blocks completion
    WARNING = "warning"  # Surfaced, never blocks


class ComplianceStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    CRITICAL = "critical"


class AlertSeverity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ComplianceRules:
    """Labor-agreement parameters. Defaults encode IDCC 3239."""
    jurisdiction: str = "IDCC_3239"

    # Night window
    night_start: str = "21:00"
    night_end: str = "06:00"

    # Night presence requalification (Art. 148)
    requalification_threshold: int = 4

    # Rest
    min_daily_rest_hours: float = 11.0
    daily_rest_warning_margin_hours: float = 1.0
    min_weekly_rest_hours: float = 35.0

    # Hour ceilings
    daily_hours_max: float = 10.0
    daily_hours_low_remaining: float = 2.0
    weekly_hours_warning: float = 44.0
    weekly_hours_max: float = 48.0

    # Breaks
    break_required_after_minutes: int = 360
    min_break_minutes: int = 20

    # Presence and guard duty
    max_night_presence_hours: float = 12.0
    max_consecutive_nights: int = 5
    guard_max_effective_hours: float = 12.0
    guard_night_segment_warning_hours: float = 12.0
    guard_max_amplitude_hours: float = 24.0
    guard_chain_gap_hours: float = 2.0

    # Pay weighting
    presence_day_ratio: float = 2 / 3
    night_presence_allowance_ratio: float = 0.25
    guard_presence_ratio: float = 0.0

    # Majorations
    night_majoration_rate: float = 0.20
    sunday_majoration_rate: float = 0.30
    holiday_habitual_majoration_rate: float = 0.60
    holiday_exceptional_majoration_rate: float = 1.00
    overtime_first_tier_hours: float = 8.0
    overtime_first_tier_rate: float = 0.25
    overtime_beyond_tier_rate: float = 0.50

    def __post_init__(self):
        if parse_time_to_minutes(self.night_start) == parse_time_to_minutes(self.night_end):
            raise InvalidInputError("Night window start and end must differ")
        if self.requalification_threshold < 1:
            raise InvalidInputError("requalification_threshold must be at least 1")
        if self.weekly_hours_warning > self.weekly_hours_max:
            raise InvalidInputError(
                f"weekly_hours_warning ({self.weekly_hours_warning}) exceeds "
                f"weekly_hours_max ({self.weekly_hours_max})"
            )
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, (int, float)) and value < 0:
                raise InvalidInputError(f"{f.name} must not be negative")

    @classmethod
    def from_doc(cls, doc) -> "ComplianceRules":
        """Create from a stored rules document (mapping or object); unknown keys are ignored."""
        values = {}
        for f in fields(cls):
            if isinstance(doc, dict):
                value = doc.get(f.name)
            else:
                value = getattr(doc, f.name, None)
            if value is not None:
                values[f.name] = value
        return cls(**values)


DEFAULT_RULES = ComplianceRules()


@dataclass
class GuardSegment:
    """One segment of a 24h guard; it ends where the next one starts."""
    start_time: str
    type: GuardSegmentType = GuardSegmentType.EFFECTIVE
    break_minutes: int = 0

    def __post_init__(self):
        parse_time_to_minutes(self.start_time)
        try:
            self.type = GuardSegmentType(self.type)
        except ValueError as exc:
            raise InvalidInputError(f"Unknown guard segment type: {self.type!r}") from exc
        if self.break_minutes < 0:
            raise InvalidInputError("Guard segment break must not be negative")

    @property
    def is_effective(self) -> bool:
        return self.type == GuardSegmentType.EFFECTIVE


@dataclass
class BaseShift:
    """Fields shared by every shift variant."""
    employee_id: str
    date: date
    start_time: str
    end_time: str
    id: Optional[str] = None
    contract_id: Optional[str] = None
    break_duration: int = 0
    status: ShiftStatus = ShiftStatus.PLANNED
    has_night_action: bool = False
    tasks: list[str] = field(default_factory=list)

    shift_type: ClassVar[ShiftType]
    is_presence: ClassVar[bool] = False

    def __post_init__(self):
        self.date = coerce_date(self.date)
        parse_time_to_minutes(self.start_time)
        parse_time_to_minutes(self.end_time)
        if self.break_duration is None or self.break_duration < 0:
            raise InvalidInputError(f"Invalid break duration: {self.break_duration!r}")
        try:
            self.status = ShiftStatus(self.status)
        except ValueError as exc:
            raise InvalidInputError(f"Unknown shift status: {self.status!r}") from exc

    @property
    def span(self) -> ClockSpan:
        return ClockSpan.from_clock(self.start_time, self.end_time)

    @property
    def interval(self) -> Interval:
        return self.span.on(self.date)

    def describe(self) -> str:
        return f"{self.date.isoformat()} {self.start_time}-{self.end_time}"


@dataclass
class EffectiveShift(BaseShift):
    shift_type: ClassVar[ShiftType] = ShiftType.EFFECTIVE


@dataclass
class PresenceDayShift(BaseShift):
    shift_type: ClassVar[ShiftType] = ShiftType.PRESENCE_DAY
    is_presence: ClassVar[bool] = True


@dataclass
class PresenceNightShift(BaseShift):
    night_interventions_count: int = 0

    shift_type: ClassVar[ShiftType] = ShiftType.PRESENCE_NIGHT
    is_presence: ClassVar[bool] = True

    def __post_init__(self):
        super().__post_init__()
        if self.night_interventions_count is None or self.night_interventions_count < 0:
            raise InvalidInputError(
                f"Invalid night interventions count: {self.night_interventions_count!r}"
            )


@dataclass
class Guard24hShift(BaseShift):
    guard_segments: list[GuardSegment] = field(default_factory=list)

    shift_type: ClassVar[ShiftType] = ShiftType.GUARD_24H

    def __post_init__(self):
        super().__post_init__()
        self.guard_segments = [
            seg if isinstance(seg, GuardSegment) else GuardSegment(**seg)
            for seg in self.guard_segments
        ]


Shift = Union[EffectiveShift, PresenceDayShift, PresenceNightShift, Guard24hShift]

SHIFT_CLASSES: dict[ShiftType, type] = {
    ShiftType.EFFECTIVE: EffectiveShift,
    ShiftType.PRESENCE_DAY: PresenceDayShift,
    ShiftType.PRESENCE_NIGHT: PresenceNightShift,
    ShiftType.GUARD_24H: Guard24hShift,
}


def make_shift(shift_type=ShiftType.EFFECTIVE, **kwargs) -> Shift:
    """Build the shift variant matching ``shift_type``."""
    try:
        cls = SHIFT_CLASSES[ShiftType(shift_type)]
    except ValueError as exc:
        raise InvalidInputError(f"Unknown shift type: {shift_type!r}") from exc
    return cls(**kwargs)


@dataclass
class Contract:
    """Employment link between one employee and one employer."""
    id: str
    employee_id: str
    employer_id: Optional[str] = None
    employee_name: str = ""
    weekly_hours: Optional[float] = None
    hourly_rate: Optional[float] = None
    status: str = "active"

    def __post_init__(self):
        for name in ("weekly_hours", "hourly_rate"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise InvalidInputError(f"Contract {name} must not be negative")

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass
class Absence:
    """Absence over an inclusive calendar range."""
    id: str
    employee_id: str
    absence_type: str
    start_date: date
    end_date: date
    status: AbsenceStatus = AbsenceStatus.PENDING

    def __post_init__(self):
        self.start_date = coerce_date(self.start_date)
        self.end_date = coerce_date(self.end_date)
        if self.end_date < self.start_date:
            raise InvalidInputError(
                f"Absence {self.id} ends ({self.end_date}) before it starts ({self.start_date})"
            )
        try:
            self.status = AbsenceStatus(self.status)
        except ValueError as exc:
            raise InvalidInputError(f"Unknown absence status: {self.status!r}") from exc

    @property
    def is_approved(self) -> bool:
        return self.status == AbsenceStatus.APPROVED

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass
class Violation:
    """A single compliance finding."""
    rule_type: ViolationType
    severity: ViolationSeverity
    message: str = ""
    rule: str = ""
    shift_id: Optional[str] = None
    related_id: Optional[str] = None  # Conflicting shift or absence
    date: Optional[str] = None  # ISO date string
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "rule_type": self.rule_type.value,
            "severity": self.severity.value,
            "message": self.message,
            "rule": self.rule,
            "shift_id": self.shift_id,
            "related_id": self.related_id,
            "date": self.date,
            "details": self.details,
        }


@dataclass
class ComputedPay:
    """Pay breakdown for one shift, rounded to cents."""
    base_pay: float = 0.0
    sunday_majoration: float = 0.0
    holiday_majoration: float = 0.0
    night_majoration: float = 0.0
    overtime_majoration: float = 0.0
    presence_responsible_pay: float = 0.0
    night_presence_allowance: float = 0.0
    total_pay: float = 0.0
    night_hours: float = 0.0
    effective_hours: Optional[float] = None

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class ComplianceContext:
    """Everything one validation run needs."""
    rules: ComplianceRules
    candidate: Shift
    sibling_shifts: list[Shift] = field(default_factory=list)
    absences: list[Absence] = field(default_factory=list)
    contract: Optional[Contract] = None
    habitual_holiday_work: bool = False

    # Config toggles
    enable_daily_rest: bool = True
    enable_weekly_rest: bool = True
    enable_hour_limits: bool = True
    enable_break_compliance: bool = True
    enable_presence_rules: bool = True
    enable_pay_computation: bool = True

    def employee_shifts(self) -> list[Shift]:
        """Other shifts of the candidate's employee, the candidate itself excluded."""
        candidate = self.candidate
        return [
            s for s in self.sibling_shifts
            if s is not candidate
            and s.employee_id == candidate.employee_id
            and not (candidate.id and s.id == candidate.id)
        ]

    def employee_absences(self) -> list[Absence]:
        return [
            a for a in self.absences
            if a.employee_id == self.candidate.employee_id and a.is_approved
        ]


@dataclass
class ComplianceResult:
    """Result of validating one shift."""
    errors: list[Violation] = field(default_factory=list)
    warnings: list[Violation] = field(default_factory=list)
    not_evaluated: list[ViolationType] = field(default_factory=list)
    duration_hours: float = 0.0
    computed_pay: Optional[ComputedPay] = None

    def add_violation(self, violation: Violation):
        """Add a violation to the list matching its severity."""
        if violation.severity == ViolationSeverity.ERROR:
            self.errors.append(violation)
        else:
            self.warnings.append(violation)

    def mark_not_evaluated(self, rule_type: ViolationType):
        if rule_type not in self.not_evaluated:
            self.not_evaluated.append(rule_type)

    @property
    def is_compliant(self) -> bool:
        return not self.errors

    @property
    def violations(self) -> list[Violation]:
        return self.errors + self.warnings

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "is_compliant": self.is_compliant,
            "errors": [v.to_dict() for v in self.errors],
            "warnings": [v.to_dict() for v in self.warnings],
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "not_evaluated": [r.value for r in self.not_evaluated],
            "duration_hours": self.duration_hours,
            "computed_pay": self.computed_pay.to_dict() if self.computed_pay else None,
        }


@dataclass
class ComplianceAlert:
    type: ViolationType
    severity: AlertSeverity
    message: str
    shift_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
            "shift_id": self.shift_id,
        }


@dataclass
class WeeklyRestStatus:
    longest_rest: float
    is_compliant: bool
    rest_periods: list[Interval] = field(default_factory=list)


@dataclass
class EmployeeComplianceStatus:
    """Weekly compliance picture of one employee."""
    employee_id: str
    employee_name: str
    contract_id: str
    weekly_hours: Optional[float]
    current_week_hours: float
    remaining_weekly_hours: float
    remaining_daily_hours: float
    weekly_rest_status: WeeklyRestStatus
    alerts: list[ComplianceAlert] = field(default_factory=list)
    status: ComplianceStatus = ComplianceStatus.OK

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "contract_id": self.contract_id,
            "weekly_hours": self.weekly_hours,
            "current_week_hours": self.current_week_hours,
            "remaining_weekly_hours": self.remaining_weekly_hours,
            "remaining_daily_hours": self.remaining_daily_hours,
            "weekly_rest_status": {
                "longest_rest": self.weekly_rest_status.longest_rest,
                "is_compliant": self.weekly_rest_status.is_compliant,
            },
            "alerts": [a.to_dict() for a in self.alerts],
            "status": self.status.value,
        }


@dataclass
class OverviewSummary:
    total_employees: int = 0
    compliant: int = 0
    warnings: int = 0
    critical: int = 0


@dataclass
class WeeklyComplianceOverview:
    """Ranked weekly compliance view for one employer."""
    week_start: date
    week_end: date
    week_label: str
    employees: list[EmployeeComplianceStatus] = field(default_factory=list)
    summary: OverviewSummary = field(default_factory=OverviewSummary)

    def to_dict(self) -> dict[str, Any]:
        return {
            "week_start": self.week_start.isoformat(),
            "week_end": self.week_end.isoformat(),
            "week_label": self.week_label,
            "employees": [e.to_dict() for e in self.employees],
            "summary": {
                "total_employees": self.summary.total_employees,
                "compliant": self.summary.compliant,
                "warnings": self.summary.warnings,
                "critical": self.summary.critical,
            },
        }
