"""Tests for approval matrix configuration and approver routing"""
import json
from datetime import datetime, timezone

import pytest

from ictserve.domain.enums import Module
from ictserve.domain.errors import (
    ApproverNotFoundError, MalformedInputError, RuleValidationError, ValidationError
)
from ictserve.domain.models import ApprovalMatrix, ApprovalRequest, ApproverUser

from ..factories import make_user


@pytest.fixture
def approvers(collections):
    users = collections["users"]
    for user_id, grade in [("g44", "44"), ("g48", "48"), ("g52", "52"), ("g54", "54")]:
        users.insert_one(make_user(user_id, grade))
    return users


class TestDetermineApprover:

    @pytest.mark.parametrize("grade,value,expected", [
        ("41", 3000, "44"),
        ("41", 7000, "48"),
        ("41", 15000, "52"),
        ("41", 1000000, "54"),
        ("44", 8000, "48"),
        ("44", 15000, "52"),
        ("44", 25000, "54"),
        ("52", 1000, "54"),
        (41, 5000, "44"),
        (41, 5001, "48"),
        (41, 5000.004, "44"),
        (41, 5000.006, "48"),
    ])
    def test_grade_and_value_thresholds(self, approval_service, approvers, grade, value, expected):
        assignment = approval_service.determine_approver(grade, value)

        assert assignment.grade == expected
        assert assignment.fallback is None

    def test_admin_and_superuser_roles_can_be_assigned(self, approval_service, collections):
        collections["users"].insert_one(make_user("adm48", "48", role="admin"))

        assert approval_service.determine_approver("41", 7000).user_id == "adm48"

    def test_inactive_and_staff_users_are_skipped(self, approval_service, collections):
        collections["users"].insert_one(make_user("off44", "44", is_active=False))
        collections["users"].insert_one(make_user("staff44", "44", role="staff"))
        collections["users"].insert_one(make_user("g54", "54"))

        assignment = approval_service.determine_approver("41", 3000)
        assert assignment.user_id == "g54"
        assert assignment.fallback == "grade"

    def test_falls_back_to_superuser(self, approval_service, collections):
        collections["users"].insert_one(make_user("root", "41", role="superuser"))

        assignment = approval_service.determine_approver("41", 3000)
        assert assignment.user_id == "root"
        assert assignment.fallback == "superuser"

    def test_no_approver_at_all(self, approval_service):
        with pytest.raises(ApproverNotFoundError, match="No approver found in the system"):
            approval_service.determine_approver("41", 3000)

    def test_unknown_grade_routes_to_highest_grade(self, approval_service, approvers):
        assert approval_service.required_grades("99", 1000) == ["54"]
        assert approval_service.required_grades("N/A", 1000) == ["54"]
        assert approval_service.determine_approver("99", 1000).grade == "54"


class TestCanUserApprove:

    def test_matching_grade_and_role(self, approval_service):
        approver = ApproverUser.model_validate(make_user("g48", "48"))

        assert approval_service.can_user_approve(approver, "41", 7000) is True
        assert approval_service.can_user_approve(approver, "41", 3000) is False

    def test_staff_cannot_approve(self, approval_service):
        staff = ApproverUser.model_validate(make_user("s48", "48", role="staff"))
        assert approval_service.can_user_approve(staff, "41", 7000) is False


class TestMatrixConfiguration:

    def test_default_matrix_for_loans(self, approval_service):
        matrix = approval_service.get_approval_matrix()
        assert len(matrix.rules) == 11
        assert matrix.rules[0].priority >= matrix.rules[-1].priority

    def test_other_modules_default_to_empty(self, approval_service):
        assert approval_service.get_approval_matrix(Module.HELPDESK).rules == []

    def test_long_loan_adds_second_level(self, approval_service):
        chain = approval_service.resolve(ApprovalRequest(total_value=8000, applicant_grade=30, duration_days=120))

        assert [s.approval_level for s in chain.steps] == [1, 2]
        assert chain.steps[0].approver_grades == ["48"]

    def test_update_assigns_ids_and_audits(self, approval_service, admin_actor, audit_repo):
        matrix = ApprovalMatrix(rules=[{"name": "Semua pinjaman", "approver_roles": ["admin"]}])

        saved = approval_service.update_approval_matrix(matrix, actor=admin_actor)

        assert saved.rules[0].id.startswith("APR-")
        assert saved.rules[0].sequence == 0
        events = audit_repo.get_events()
        assert events[0].action.value == "SAVE"
        assert events[0].actor_email == admin_actor.email

    def test_rule_for_other_module_rejected(self, approval_service):
        matrix = ApprovalMatrix(rules=[{"name": "Tiket", "module": "helpdesk"}])
        with pytest.raises(RuleValidationError):
            approval_service.update_approval_matrix(matrix)

    def test_reset_restores_default(self, approval_service):
        approval_service.update_approval_matrix(ApprovalMatrix(rules=[]))
        assert approval_service.get_approval_matrix().rules == []

        assert len(approval_service.reset_to_default().rules) == 11

    def test_test_command_uses_sample_loans(self, approval_service):
        results = approval_service.test_approval_matrix()

        assert len(results) == 3
        assert results[0]["chain"]["steps"][0]["approver_grades"] == ["44"]


class TestImportExport:

    def test_round_trip(self, approval_service):
        approval_service.update_approval_matrix(ApprovalMatrix(rules=[
            {"name": "Nilai tinggi", "asset_value_min": 10000, "approver_grades": ["54"]}
        ]))
        exported = approval_service.export_matrix()
        before = approval_service.get_approval_matrix()

        approval_service.reset_to_default()
        imported = approval_service.import_matrix(exported)

        assert [r.id for r in imported.rules] == [r.id for r in before.rules]
        assert imported.rules[0].asset_value_min == 10000

    def test_malformed_file_leaves_matrix_unchanged(self, approval_service, collections):
        approval_service.update_approval_matrix(ApprovalMatrix(rules=[{"name": "Kekal"}]))
        stored = collections["system_config"].find_one({})

        with pytest.raises(MalformedInputError):
            approval_service.import_matrix("not json at all")

        assert collections["system_config"].find_one({}) == stored
        assert [r.name for r in approval_service.get_approval_matrix().rules] == ["Kekal"]

    def test_document_without_matrix(self, approval_service):
        with pytest.raises(ValidationError):
            approval_service.import_matrix(json.dumps({"rules": []}))


class TestRuleTimestamps:

    OLD = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)

    def save_two_rules(self, approval_service):
        return approval_service.update_approval_matrix(ApprovalMatrix(rules=[
            {"id": "APR-a", "name": "Nilai rendah", "priority": 2, "updated_at": self.OLD},
            {"id": "APR-b", "name": "Nilai tinggi", "priority": 1, "updated_at": self.OLD},
        ]))

    def test_export_import_keeps_updated_at(self, approval_service):
        self.save_two_rules(approval_service)
        exported = approval_service.export_matrix()

        approval_service.reset_to_default()
        imported = approval_service.import_matrix(exported)

        assert [r.updated_at for r in imported.rules] == [self.OLD, self.OLD]

    def test_only_edited_rule_is_restamped(self, approval_service):
        matrix = self.save_two_rules(approval_service)
        matrix.rules[0].description = "Had dinaikkan"

        saved = approval_service.update_approval_matrix(matrix)

        by_id = {r.id: r for r in saved.rules}
        assert by_id["APR-a"].updated_at != self.OLD
        assert by_id["APR-b"].updated_at == self.OLD

    def test_new_rule_without_timestamp_is_stamped(self, approval_service):
        saved = approval_service.update_approval_matrix(ApprovalMatrix(rules=[{"name": "Baru"}]))

        assert saved.rules[0].updated_at is not None
