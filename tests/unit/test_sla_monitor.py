"""Tests for the SLA monitor job"""
from datetime import datetime, timedelta, timezone

import pytest

from ictserve.domain.defaults import default_sla_thresholds
from ictserve.scheduler.sla_monitor import SlaMonitor

from ..factories import make_ticket, make_user

CREATED = datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def monitor(sla_service, entity_repo, notification_repo, inapp_repo, user_repo, dispatcher, collections):
    data = default_sla_thresholds()
    data["business_hours"]["enabled"] = False
    sla_service.update_sla_thresholds(data)

    collections["users"].insert_many([
        make_user("adm", "48", role="admin"),
        make_user("tech1", "41", role="staff"),
    ])
    return SlaMonitor(
        sla_service=sla_service,
        entity_repo=entity_repo,
        notification_repo=notification_repo,
        inapp_repo=inapp_repo,
        user_repo=user_repo,
        dispatcher=dispatcher
    )


@pytest.fixture
def urgent_ticket(collections):
    # network/urgent: 4h resolution, escalation after 3h
    collections["helpdesk_tickets"].insert_one(make_ticket(
        "TKT-1", CREATED,
        priority="urgent", category="network",
        assigned_to="tech1", supervisor_email="Penyelia@motac.gov.my"
    ))


class TestAlerts:

    def test_warning_sent_once(self, monitor, urgent_ticket, collections):
        now = CREATED + timedelta(hours=3, minutes=30)

        first = monitor.run_once(now)
        second = monitor.run_once(now)

        assert first["alerts"] == 1
        assert second["alerts"] == 0
        warning = collections["notification_outbox"].find_one({"template_key": "SLA_WARNING"})
        assert warning["dedupe_key"] == "sla:TKT-1:warning"
        assert warning["recipients"] == ["tech1@motac.gov.my", "penyelia@motac.gov.my", "adm@motac.gov.my"]

    def test_overdue_reminder_repeats_per_interval(self, monitor, urgent_ticket, collections):
        deadline = CREATED + timedelta(hours=4)

        assert monitor.run_once(deadline + timedelta(minutes=250))["alerts"] == 1
        assert monitor.run_once(deadline + timedelta(minutes=300))["alerts"] == 0
        assert monitor.run_once(deadline + timedelta(minutes=490))["alerts"] == 1
        assert collections["notification_outbox"].count_documents({"template_key": "SLA_OVERDUE"}) == 2

    def test_breach_alert_sent_only_after_deadline(self, monitor, urgent_ticket, collections):
        deadline = CREATED + timedelta(hours=4)
        outbox = collections["notification_outbox"]

        monitor.run_once(deadline - timedelta(seconds=30))
        assert outbox.count_documents({"template_key": "SLA_BREACH"}) == 0
        assert outbox.count_documents({"template_key": "SLA_CRITICAL"}) == 1

        monitor.run_once(deadline + timedelta(seconds=30))
        assert outbox.count_documents({"template_key": "SLA_BREACH"}) == 1

    def test_closed_tickets_are_not_scanned(self, monitor, collections):
        collections["helpdesk_tickets"].insert_one(make_ticket("TKT-2", CREATED, status="closed"))

        assert monitor.run_once(CREATED + timedelta(days=30))["scanned"] == 0


class TestEscalation:

    def test_escalation_notifies_and_reassigns_once(self, monitor, urgent_ticket, collections, inapp_repo):
        now = CREATED + timedelta(hours=3, minutes=30)

        summary = monitor.run_once(now)
        again = monitor.run_once(now)

        assert summary["escalations"] == 1
        assert summary["reassigned"] == 1
        assert again["escalations"] == 0
        assert collections["helpdesk_tickets"].find_one({"id": "TKT-1"})["assigned_to"] == "adm"
        assert collections["notification_outbox"].count_documents({"template_key": "SLA_ESCALATION"}) == 1
        assert inapp_repo.get_notifications_for_recipient("adm@motac.gov.my")[0].category.value == "SLA"

    def test_no_reassignment_without_auto_assign(self, monitor, sla_service, urgent_ticket, collections):
        thresholds = sla_service.get_sla_thresholds()
        thresholds.escalation.auto_assign = False
        sla_service.update_sla_thresholds(thresholds)

        summary = monitor.run_once(CREATED + timedelta(hours=3, minutes=30))

        assert summary["escalations"] == 1
        assert summary["reassigned"] == 0
        assert collections["helpdesk_tickets"].find_one({"id": "TKT-1"})["assigned_to"] == "tech1"
