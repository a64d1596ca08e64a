"""Unit tests for the weekly compliance overview."""

import pytest
from datetime import date

from carecompliance.overview import (
    get_compliance_history,
    get_critical_alerts,
    get_weekly_overview,
    week_label,
)
from carecompliance.types import (
    AlertSeverity,
    ComplianceStatus,
    ViolationType,
)

REFERENCE_DATE = date(2025, 10, 8)  # Wednesday


@pytest.fixture
def contracts(make_contract):
    return [
        make_contract(id="c-alice", employee_id="alice", employee_name="Alice Martin", weekly_hours=35),
        make_contract(id="c-bob", employee_id="bob", employee_name="Bob Durand", weekly_hours=20),
        make_contract(id="c-zoe", employee_id="zoe", employee_name="Zoe Petit"),
        make_contract(id="c-adam", employee_id="adam", employee_name="adam Roux"),
        make_contract(id="c-carol", employee_id="carol", employee_name="Carol", status="terminated"),
        make_contract(id="c-dan", employee_id="dan", employee_name="Dan", employer_id="employer-2"),
    ]


@pytest.fixture
def shifts(make_shift):
    alice = [
        make_shift("08:00", "16:00", date_str=f"2025-10-{day:02d}", employee_id="alice", id=f"a{day}")
        for day in range(6, 11)
    ]
    bob = [
        make_shift("09:00", "13:00", date_str="2025-10-07", employee_id="bob", id="b1"),
        make_shift("12:30", "17:00", date_str="2025-10-07", employee_id="bob", id="b2"),
    ]
    carol = [
        make_shift("09:00", "13:00", date_str="2025-10-07", employee_id="carol", id="c1"),
        make_shift("09:00", "13:00", date_str="2025-10-07", employee_id="carol", id="c2"),
    ]
    return alice + bob + carol


@pytest.fixture
def overview(contracts, shifts):
    return get_weekly_overview("employer-1", contracts, shifts, REFERENCE_DATE)


def by_id(overview, employee_id):
    return next(e for e in overview.employees if e.employee_id == employee_id)


class TestWeeklyOverview:

    def test_week_bounds_and_label(self, overview):
        assert overview.week_start == date(2025, 10, 6)
        assert overview.week_end == date(2025, 10, 12)
        assert overview.week_label == "Week of October 6 to October 12, 2025"

    def test_only_active_contracts_of_employer(self, overview):
        ids = {e.employee_id for e in overview.employees}
        assert ids == {"alice", "bob", "zoe", "adam"}

    def test_ranked_worst_first_then_by_name(self, overview):
        assert [e.employee_id for e in overview.employees] == ["bob", "alice", "adam", "zoe"]

    def test_summary(self, overview):
        summary = overview.summary
        assert summary.total_employees == 4
        assert summary.compliant == 2
        assert summary.warnings == 1
        assert summary.critical == 1

    def test_hours(self, overview):
        alice = by_id(overview, "alice")
        assert alice.current_week_hours == 40.0
        assert alice.remaining_weekly_hours == 8.0
        assert alice.remaining_daily_hours == 2.0
        assert alice.weekly_rest_status.is_compliant

    def test_week_scoped_alert_reported_once(self, overview):
        alice = by_id(overview, "alice")
        contract_alerts = [a for a in alice.alerts if a.type == ViolationType.CONTRACT_WEEKLY_HOURS]
        assert len(contract_alerts) == 1
        assert contract_alerts[0].severity == AlertSeverity.WARNING

    def test_low_daily_hours_alert(self, overview):
        alice = by_id(overview, "alice")
        assert ViolationType.DAILY_HOURS_REMAINING in {a.type for a in alice.alerts}
        assert alice.status == ComplianceStatus.WARNING

    def test_overlap_reported_once_per_pair(self, overview):
        bob = by_id(overview, "bob")
        overlaps = [a for a in bob.alerts if a.type == ViolationType.SHIFT_OVERLAP]
        assert len(overlaps) == 1
        assert overlaps[0].severity == AlertSeverity.CRITICAL
        assert bob.status == ComplianceStatus.CRITICAL

    def test_employee_without_shifts(self, overview):
        zoe = by_id(overview, "zoe")
        assert zoe.status == ComplianceStatus.OK
        assert zoe.alerts == []
        assert zoe.current_week_hours == 0
        assert zoe.weekly_rest_status.longest_rest == 168.0

    def test_to_dict(self, overview):
        data = overview.to_dict()
        assert data["week_start"] == "2025-10-06"
        assert data["summary"]["critical"] == 1
        assert data["employees"][0]["status"] == "critical"

    def test_accepts_iso_reference_date(self, contracts, shifts):
        overview = get_weekly_overview("employer-1", contracts, shifts, "2025-10-12")
        assert overview.week_start == date(2025, 10, 6)

    def test_week_label_across_months(self):
        assert week_label(date(2025, 9, 29), date(2025, 10, 5)) == "Week of September 29 to October 5, 2025"

    def test_full_day_is_critical(self, make_contract, make_shift):
        contract = make_contract(employee_id="eve", employee_name="Eve Blanc")
        shift = make_shift("08:00", "18:20", date_str="2025-10-08", employee_id="eve", id="e1", break_duration=20)

        overview = get_weekly_overview("employer-1", [contract], [shift], REFERENCE_DATE)
        [eve] = overview.employees

        assert eve.remaining_daily_hours == 0.0
        assert [(a.type, a.severity) for a in eve.alerts] == [
            (ViolationType.DAILY_HOURS_REMAINING, AlertSeverity.CRITICAL)
        ]
        assert eve.status == ComplianceStatus.CRITICAL


class TestCriticalAlerts:

    def test_prefixed_with_employee_name(self, overview):
        alerts = get_critical_alerts(overview)
        assert len(alerts) == 1
        assert alerts[0].message.startswith("Bob Durand: ")
        assert alerts[0].type == ViolationType.SHIFT_OVERLAP


class TestComplianceHistory:

    def test_oldest_week_first(self, contracts, shifts):
        history = get_compliance_history("employer-1", contracts, shifts, REFERENCE_DATE, weeks_back=3)

        assert [h["week_start"] for h in history] == ["2025-09-22", "2025-09-29", "2025-10-06"]
        assert history[-1]["week_label"] == "W41"
        assert history[0]["compliant"] == 4
        assert history[-1]["critical"] == 1
