"""Tests for SLA threshold configuration"""
import json
from datetime import datetime, timedelta, timezone

import pytest

from ictserve.domain.defaults import default_sla_thresholds
from ictserve.domain.enums import AdminAuditAction
from ictserve.domain.errors import MalformedInputError, ValidationError
from ictserve.repositories.config_cache import ConfigCache
from ictserve.services.sla_threshold_service import SlaThresholdService

from ..factories import make_ticket

CREATED = datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)


def flat_thresholds():
    data = default_sla_thresholds()
    data["business_hours"]["enabled"] = False
    return data


class TestConfiguration:

    def test_defaults_when_nothing_saved(self, sla_service):
        thresholds = sla_service.get_sla_thresholds()

        assert set(thresholds.categories) == {"general", "hardware", "software", "network", "security"}
        assert thresholds.business_hours.enabled is True

    def test_update_from_dict_and_audit(self, sla_service, admin_actor, audit_repo):
        sla_service.update_sla_thresholds(flat_thresholds(), actor=admin_actor)

        assert sla_service.get_sla_thresholds().business_hours.enabled is False
        assert audit_repo.get_events()[0].action == AdminAuditAction.SAVE

    def test_invalid_update_rejected_and_not_stored(self, sla_service, collections):
        data = flat_thresholds()
        data["categories"]["network"]["response_times"]["high"] = 100

        with pytest.raises(ValidationError) as exc:
            sla_service.update_sla_thresholds(data)
        assert "categories.network" in exc.value.details["field"]
        assert collections["system_config"].find_one({}) is None

    def test_reset_to_default(self, sla_service):
        sla_service.update_sla_thresholds(flat_thresholds())
        assert sla_service.reset_to_default().business_hours.enabled is True

    def test_update_from_another_worker_is_seen(self, sla_service, config_repo, audit_repo, entity_repo):
        other_worker = SlaThresholdService(
            config_repo=config_repo, audit_repo=audit_repo, entity_repo=entity_repo, cache=ConfigCache()
        )
        assert sla_service.get_sla_thresholds().business_hours.enabled is True

        other_worker.update_sla_thresholds(flat_thresholds())

        assert sla_service.get_sla_thresholds().business_hours.enabled is False

    def test_options(self, sla_service):
        assert sla_service.get_available_categories()["security"] == "Keselamatan"
        assert list(sla_service.get_available_priorities()) == ["low", "normal", "high", "urgent"]


class TestQueries:

    def test_deadlines_follow_saved_thresholds(self, sla_service):
        sla_service.update_sla_thresholds(flat_thresholds())

        deadlines = sla_service.calculate_sla_deadlines("urgent", "security", CREATED)
        assert deadlines.response_deadline == CREATED + timedelta(minutes=30)

    def test_breach_check(self, sla_service):
        sla_service.update_sla_thresholds(flat_thresholds())

        status = sla_service.check_sla_breach(CREATED, "urgent", "security", CREATED + timedelta(hours=1))
        assert status.response_breached is True
        assert status.resolution_breached is False

    def test_compliance_over_stored_tickets(self, sla_service, collections):
        sla_service.update_sla_thresholds(flat_thresholds())
        collections["helpdesk_tickets"].insert_many([
            make_ticket("TKT-1", datetime.now(timezone.utc), priority="low"),
            make_ticket("TKT-2", CREATED, priority="urgent", category="network"),
        ])

        report = sla_service.get_sla_compliance()

        assert report.total_tickets == 2
        assert report.resolution_compliance_count == 1

    def test_test_command_covers_sample_tickets(self, sla_service):
        results = sla_service.test_sla(start_time=CREATED)

        assert len(results) == 4
        assert results[-1]["sla"]["category"] == "general"


class TestImportExport:

    def test_round_trip(self, sla_service):
        sla_service.update_sla_thresholds(flat_thresholds())
        exported = sla_service.export_thresholds()

        sla_service.reset_to_default()
        imported = sla_service.import_thresholds(exported)

        assert imported.business_hours.enabled is False
        assert imported.categories["security"].response_times.urgent == 0.5

    def test_malformed_file_leaves_thresholds_unchanged(self, sla_service, collections):
        sla_service.update_sla_thresholds(flat_thresholds())
        stored = collections["system_config"].find_one({})

        with pytest.raises(MalformedInputError):
            sla_service.import_thresholds(b'{"thresholds": ')

        assert collections["system_config"].find_one({}) == stored

    def test_missing_thresholds_key(self, sla_service):
        with pytest.raises(ValidationError):
            sla_service.import_thresholds(json.dumps({"categories": {}}))
