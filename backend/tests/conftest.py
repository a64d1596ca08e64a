import pytest

from carecompliance.types import (
    Absence,
    ComplianceContext,
    ComplianceRules,
    Contract,
    ShiftType,
)
from carecompliance.types import make_shift as build_shift


# 2025-10-06 is a Monday; the week runs to Sunday 2025-10-12.
MONDAY = "2025-10-06"


@pytest.fixture
def default_rules():
    """IDCC 3239 defaults."""
    return ComplianceRules()


@pytest.fixture
def make_shift():
    """Factory to create shift variants."""
    def _make_shift(
        start_time: str = "09:00",
        end_time: str = "17:00",
        date_str: str = MONDAY,
        shift_type: ShiftType = ShiftType.EFFECTIVE,
        employee_id: str = "emp-1",
        id: str = None,
        **kwargs
    ):
        return build_shift(
            shift_type,
            employee_id=employee_id,
            date=date_str,
            start_time=start_time,
            end_time=end_time,
            id=id,
            **kwargs
        )
    return _make_shift


@pytest.fixture
def make_contract():
    """Factory to create Contract objects."""
    def _make_contract(
        id: str = "contract-1",
        employee_id: str = "emp-1",
        employee_name: str = "Alice Martin",
        weekly_hours: float = 35.0,
        hourly_rate: float = 12.0,
        employer_id: str = "employer-1",
        status: str = "active",
    ) -> Contract:
        return Contract(
            id=id,
            employee_id=employee_id,
            employer_id=employer_id,
            employee_name=employee_name,
            weekly_hours=weekly_hours,
            hourly_rate=hourly_rate,
            status=status,
        )
    return _make_contract


@pytest.fixture
def make_absence():
    """Factory to create Absence objects."""
    def _make_absence(
        start_date: str,
        end_date: str,
        status: str = "approved",
        id: str = "abs-1",
        employee_id: str = "emp-1",
        absence_type: str = "vacation",
    ) -> Absence:
        return Absence(
            id=id,
            employee_id=employee_id,
            absence_type=absence_type,
            start_date=start_date,
            end_date=end_date,
            status=status,
        )
    return _make_absence


@pytest.fixture
def make_context(default_rules):
    """Factory to create ComplianceContext objects."""
    def _make_context(
        candidate,
        siblings: list = None,
        absences: list = None,
        contract: Contract = None,
        rules: ComplianceRules = None,
        **kwargs
    ) -> ComplianceContext:
        return ComplianceContext(
            rules=rules or default_rules,
            candidate=candidate,
            sibling_shifts=siblings or [],
            absences=absences or [],
            contract=contract,
            **kwargs
        )
    return _make_context
