"""Tests for SLA deadline arithmetic and breach checks"""
from datetime import datetime, timedelta, timezone

import pytest

from ictserve.domain.defaults import default_sla_thresholds
from ictserve.domain.enums import AlertLevel, BreachSeverity
from ictserve.domain.models import SlaThresholds
from ictserve.engine.sla_calculator import SlaCalculator

CREATED = datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)


def thresholds(business_hours: bool = False, **overrides) -> SlaThresholds:
    data = default_sla_thresholds()
    data["business_hours"]["enabled"] = business_hours
    data.update(overrides)
    return SlaThresholds.model_validate(data)


@pytest.fixture
def calculator() -> SlaCalculator:
    return SlaCalculator(thresholds())


class TestLookup:

    def test_known_category_and_priority(self, calculator):
        sla = calculator.get_sla("urgent", "security")
        assert sla.response_time_hours == 0.5
        assert sla.resolution_time_hours == 4
        assert sla.escalation_threshold_percent == 25

    def test_unknown_category_falls_back_to_general(self, calculator):
        sla = calculator.get_sla("high", "plumbing")
        assert sla.category == "general"
        assert sla.response_time_hours == 24

    def test_unknown_priority_falls_back_to_normal(self, calculator):
        sla = calculator.get_sla("critical", "network")
        assert sla.priority == "normal"
        assert sla.resolution_time_hours == 48


class TestDeadlines:

    def test_half_hour_response_without_business_hours(self, calculator):
        deadlines = calculator.calculate_deadlines("urgent", "security", CREATED)

        assert deadlines.response_deadline == datetime(2025, 1, 1, 0, 30, tzinfo=timezone.utc)
        assert deadlines.resolution_deadline == datetime(2025, 1, 1, 4, 0, tzinfo=timezone.utc)

    def test_escalation_point_leaves_threshold_share_of_window(self, calculator):
        deadlines = calculator.calculate_deadlines("urgent", "network", CREATED)
        # 4h resolution, escalate with 25% (1h) remaining
        assert deadlines.escalation_deadline == CREATED + timedelta(hours=3)

    def test_naive_start_is_treated_as_utc(self, calculator):
        deadlines = calculator.calculate_deadlines("urgent", "security", datetime(2025, 1, 1))
        assert deadlines.response_deadline == datetime(2025, 1, 1, 0, 30, tzinfo=timezone.utc)

    def test_business_hours_skip_the_weekend(self):
        calculator = SlaCalculator(thresholds(business_hours=True))
        # Friday 16:00 in Kuala Lumpur (UTC+8)
        friday = datetime(2025, 1, 3, 8, 0, tzinfo=timezone.utc)

        deadlines = calculator.calculate_deadlines("high", "network", friday)

        # 4 working hours: 1 on Friday, 3 on Monday from 08:00 -> Monday 11:00 local
        assert deadlines.response_deadline == datetime(2025, 1, 6, 3, 0, tzinfo=timezone.utc)


class TestBreach:

    def test_within_window(self, calculator):
        status = calculator.check_breach(CREATED, "urgent", "network", CREATED + timedelta(minutes=30))

        assert status.response_breached is False
        assert status.resolution_breached is False
        assert status.response_time_remaining_minutes == 30
        assert status.severity == BreachSeverity.LOW

    def test_response_breach_is_high(self, calculator):
        status = calculator.check_breach(CREATED, "urgent", "network", CREATED + timedelta(hours=2))

        assert status.response_breached is True
        assert status.response_overdue_minutes == 60
        assert status.response_time_remaining_minutes == 0
        assert status.severity == BreachSeverity.HIGH

    def test_resolution_breach_is_critical(self, calculator):
        status = calculator.check_breach(CREATED, "urgent", "network", CREATED + timedelta(hours=5))

        assert status.resolution_breached is True
        assert status.escalation_needed is True
        assert status.resolution_overdue_minutes == 60
        assert status.severity == BreachSeverity.CRITICAL

    def test_escalation_before_any_breach_is_medium(self):
        data = default_sla_thresholds()
        data["business_hours"]["enabled"] = False
        data["categories"]["general"]["response_times"]["normal"] = 10
        data["categories"]["general"]["resolution_times"]["normal"] = 12
        calculator = SlaCalculator(SlaThresholds.model_validate(data))

        status = calculator.check_breach(CREATED, "normal", "general", CREATED + timedelta(hours=9, minutes=30))

        assert status.escalation_needed is True
        assert status.response_breached is False
        assert status.severity == BreachSeverity.MEDIUM

    def test_escalation_disabled(self):
        data = default_sla_thresholds()
        data["business_hours"]["enabled"] = False
        data["escalation"]["enabled"] = False
        calculator = SlaCalculator(SlaThresholds.model_validate(data))

        status = calculator.check_breach(CREATED, "urgent", "network", CREATED + timedelta(hours=5))
        assert status.escalation_needed is False


class TestAlerts:

    @pytest.mark.parametrize("minutes_left,expected", [
        (90, AlertLevel.NONE),
        (30, AlertLevel.WARNING),
        (10, AlertLevel.CRITICAL),
        (-5, AlertLevel.BREACH),
        (-300, AlertLevel.OVERDUE),
    ])
    def test_alert_level(self, calculator, minutes_left, expected):
        deadline = CREATED + timedelta(hours=4)
        now = deadline - timedelta(minutes=minutes_left)
        assert calculator.alert_level(deadline, now) == expected

    @pytest.mark.parametrize("offset_seconds,breached,expected", [
        (-30, False, AlertLevel.CRITICAL),
        (0, False, AlertLevel.CRITICAL),
        (30, True, AlertLevel.BREACH),
    ])
    def test_breach_alert_waits_for_the_deadline(self, calculator, offset_seconds, breached, expected):
        deadline = calculator.calculate_deadlines("urgent", "network", CREATED).resolution_deadline
        now = deadline + timedelta(seconds=offset_seconds)

        status = calculator.check_breach(CREATED, "urgent", "network", now)

        assert status.resolution_breached is breached
        assert status.alert_level == expected

    def test_warning_boundary_uses_seconds(self, calculator):
        deadline = CREATED + timedelta(hours=4)

        assert calculator.alert_level(deadline, deadline - timedelta(minutes=60, seconds=30)) == AlertLevel.NONE
        assert calculator.alert_level(deadline, deadline - timedelta(minutes=59, seconds=30)) == AlertLevel.WARNING

    def test_no_alerts_when_notifications_disabled(self):
        data = default_sla_thresholds()
        data["notifications"]["enabled"] = False
        calculator = SlaCalculator(SlaThresholds.model_validate(data))

        assert calculator.alert_level(CREATED, CREATED + timedelta(days=1)) == AlertLevel.NONE

    def test_overdue_cycles(self, calculator):
        assert calculator.overdue_cycle(CREATED, CREATED + timedelta(minutes=100)) == 0
        assert calculator.overdue_cycle(CREATED, CREATED + timedelta(minutes=300)) == 1
        assert calculator.overdue_cycle(CREATED, CREATED + timedelta(minutes=500)) == 2


class TestCompliance:

    def test_counts_and_percentages(self, calculator):
        tickets = [
            {"created_at": "2025-01-01T00:00:00Z", "priority": "urgent", "category": "network"},
            {"created_at": "2025-01-01T00:00:00Z", "priority": "low", "category": "general"},
        ]

        report = calculator.compliance(tickets, CREATED + timedelta(hours=2))

        assert report.total_tickets == 2
        assert report.response_compliance_count == 1
        assert report.resolution_compliance_count == 2
        assert report.response_compliance_percent == 50.0

    def test_empty(self, calculator):
        report = calculator.compliance([], CREATED)
        assert report.total_tickets == 0
        assert report.resolution_compliance_percent == 0


class TestValidation:

    def test_response_above_resolution_rejected(self):
        data = default_sla_thresholds()
        data["categories"]["general"]["response_times"]["urgent"] = 48
        with pytest.raises(ValueError):
            SlaThresholds.model_validate(data)

    def test_general_category_required(self):
        data = default_sla_thresholds()
        del data["categories"]["general"]
        with pytest.raises(ValueError):
            SlaThresholds.model_validate(data)

    def test_escalation_threshold_bounds(self):
        data = default_sla_thresholds()
        data["escalation"]["threshold_percent"] = 75
        with pytest.raises(ValueError):
            SlaThresholds.model_validate(data)
