"""Pydantic records for raw shift, contract and absence payloads."""

from datetime import date
from typing import Iterable, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from .exceptions import InvalidInputError
from .types import (
    Absence,
    AbsenceStatus,
    Contract,
    GuardSegment,
    GuardSegmentType,
    Shift,
    ShiftStatus,
    ShiftType,
    make_shift,
)


class Record(BaseModel):
    """Accepts camelCase or snake_case keys; unknown keys are ignored."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GuardSegmentRecord(Record):
    start_time: str
    type: GuardSegmentType = GuardSegmentType.EFFECTIVE
    break_minutes: int = 0

    def to_segment(self) -> GuardSegment:
        return GuardSegment(
            start_time=self.start_time,
            type=self.type,
            break_minutes=self.break_minutes,
        )


class ShiftRecord(Record):
    employee_id: str
    date: date
    start_time: str
    end_time: str
    id: str | None = None
    contract_id: str | None = None
    shift_type: ShiftType = ShiftType.EFFECTIVE
    break_duration: int = 0
    status: ShiftStatus = ShiftStatus.PLANNED
    has_night_action: bool = False
    night_interventions_count: int = 0
    guard_segments: list[GuardSegmentRecord] = []
    tasks: list[str] = []

    def to_shift(self) -> Shift:
        fields = dict(
            employee_id=self.employee_id,
            date=self.date,
            start_time=self.start_time,
            end_time=self.end_time,
            id=self.id,
            contract_id=self.contract_id,
            break_duration=self.break_duration,
            status=self.status,
            has_night_action=self.has_night_action,
            tasks=list(self.tasks),
        )
        if self.shift_type == ShiftType.PRESENCE_NIGHT:
            fields["night_interventions_count"] = self.night_interventions_count
        elif self.shift_type == ShiftType.GUARD_24H:
            fields["guard_segments"] = [s.to_segment() for s in self.guard_segments]
        return make_shift(self.shift_type, **fields)


class ContractRecord(Record):
    id: str
    employee_id: str
    employer_id: str | None = None
    employee_name: str = ""
    weekly_hours: float | None = None
    hourly_rate: float | None = None
    status: str = "active"

    def to_contract(self) -> Contract:
        return Contract(**self.model_dump())


class AbsenceRecord(Record):
    id: str
    employee_id: str
    absence_type: str
    start_date: date
    end_date: date
    status: AbsenceStatus = AbsenceStatus.PENDING

    def to_absence(self) -> Absence:
        return Absence(**self.model_dump())


RecordT = TypeVar("RecordT", bound=Record)


def parse_record(model: Type[RecordT], data) -> RecordT:
    """Validate one raw record, re-raising pydantic errors as InvalidInputError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid {model.__name__}: {exc}") from exc


def parse_shifts(records: Iterable) -> list[Shift]:
    return [parse_record(ShiftRecord, r).to_shift() for r in records]


def parse_absences(records: Iterable) -> list[Absence]:
    return [parse_record(AbsenceRecord, r).to_absence() for r in records]


def parse_contracts(records: Iterable) -> list[Contract]:
    return [parse_record(ContractRecord, r).to_contract() for r in records]
