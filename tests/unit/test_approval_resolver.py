"""Tests for approval chain resolution"""
import pytest

from ictserve.domain.models import ApprovalRequest, ApprovalRule
from ictserve.engine.approval_resolver import ApprovalResolver


def approval_rule(rule_id, **fields):
    fields.setdefault("name", rule_id)
    return ApprovalRule(id=rule_id, **fields)


@pytest.fixture
def resolver() -> ApprovalResolver:
    return ApprovalResolver()


@pytest.fixture
def laptop_request() -> ApprovalRequest:
    return ApprovalRequest(
        total_value=3000, applicant_grade=25, duration_days=14, asset_categories=["laptop"]
    )


class TestResolve:

    def test_single_supervisor_step(self, resolver, laptop_request):
        rules = [approval_rule(
            "APR-1", asset_value_min=0, asset_value_max=5000, approval_level=1,
            approver_roles=["supervisor"], auto_approve=False
        )]

        chain = resolver.resolve(rules, laptop_request)

        assert len(chain.steps) == 1
        assert chain.steps[0].approval_level == 1
        assert chain.steps[0].approver_roles == ["supervisor"]
        assert chain.requires_approval is True
        assert chain.auto_approved is False

    def test_range_bounds_are_inclusive(self, resolver):
        rules = [approval_rule("APR-1", asset_value_min=1000, asset_value_max=5000, approver_roles=["admin"])]

        assert resolver.resolve(rules, ApprovalRequest(total_value=5000)).steps
        assert resolver.resolve(rules, ApprovalRequest(total_value=1000)).steps
        assert not resolver.resolve(rules, ApprovalRequest(total_value=5000.01)).steps

    def test_no_match_means_no_approval_required(self, resolver, laptop_request):
        rules = [approval_rule("APR-1", asset_value_min=10000, approver_roles=["admin"])]

        chain = resolver.resolve(rules, laptop_request)

        assert chain.steps == []
        assert chain.requires_approval is False

    def test_bounded_grade_rule_skips_request_without_grade(self, resolver):
        rules = [approval_rule("APR-1", applicant_grade_max=41, approver_roles=["admin"])]
        assert resolver.resolve(rules, ApprovalRequest(total_value=100)).steps == []

    def test_category_sets_intersect(self, resolver, laptop_request):
        printers = approval_rule("APR-1", asset_categories=["printer"], approver_roles=["admin"])
        laptops = approval_rule("APR-2", asset_categories=["laptop", "camera"], approver_roles=["admin"])

        assert resolver.resolve([printers], laptop_request).steps == []
        assert resolver.resolve([laptops], laptop_request).matched_rule_ids == ["APR-2"]

    def test_inactive_rules_are_ignored(self, resolver, laptop_request):
        rules = [approval_rule("APR-1", is_active=False, approver_roles=["admin"])]
        assert resolver.resolve(rules, laptop_request).steps == []

    def test_levels_ordered_and_same_level_merged(self, resolver, laptop_request):
        rules = [
            approval_rule("APR-3", approval_level=2, approver_roles=["admin"], approver_grades=["54"]),
            approval_rule("APR-1", approval_level=1, approver_roles=["approver"], approver_grades=["44"],
                          priority=10, required=False),
            approval_rule("APR-2", approval_level=1, approver_roles=["admin"], approver_grades=["48"],
                          priority=5),
        ]

        chain = resolver.resolve(rules, laptop_request)

        assert [s.approval_level for s in chain.steps] == [1, 2]
        first = chain.steps[0]
        assert first.approver_roles == ["approver", "admin"]
        assert first.approver_grades == ["44", "48"]
        assert first.required is True
        assert first.rule_ids == ["APR-1", "APR-2"]

    def test_level_one_auto_approve_ends_chain(self, resolver, laptop_request):
        rules = [
            approval_rule("APR-1", approval_level=1, auto_approve=True, approver_roles=["approver"]),
            approval_rule("APR-2", approval_level=2, approver_roles=["admin"]),
        ]

        chain = resolver.resolve(rules, laptop_request)

        assert chain.auto_approved is True
        assert chain.requires_approval is False
        assert [s.approval_level for s in chain.steps] == [1]

    def test_rule_conditions_are_evaluated_on_request(self, resolver, laptop_request):
        rules = [approval_rule(
            "APR-1", approver_roles=["admin"],
            conditions=[{"field": "duration_days", "operator": ">", "value": 30}]
        )]
        assert resolver.resolve(rules, laptop_request).steps == []

    def test_min_above_max_is_rejected(self):
        with pytest.raises(ValueError):
            ApprovalRule(name="bad", asset_value_min=5000, asset_value_max=1000)
