"""Approval Resolver - Turns the approval matrix into an approval chain"""
from typing import Dict, List, Optional, Sequence

from ..domain.models import ApprovalRule, ApprovalRequest, ApprovalStep, ApprovalChain
from ..utils.logger import get_logger
from .condition_evaluator import ConditionEvaluator
from .ordering import order_by_priority

logger = get_logger(__name__)


def _within(value: Optional[float], low: Optional[float], high: Optional[float]) -> bool:
    """Inclusive range check; a missing bound is unbounded"""
    if low is None and high is None:
        return True
    if value is None:
        return False
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def _extend_unique(target: List[str], values: Sequence[str]) -> None:
    for value in values:
        if value not in target:
            target.append(value)


class ApprovalResolver:
    """
    Resolve which approval levels a loan or ticket request needs

    Every active rule that matches contributes a step at its approval level.
    Rules sharing a level are alternatives: their roles and grades are merged
    and any one approver satisfies the level.
    """

    def __init__(self, evaluator: Optional[ConditionEvaluator] = None):
        self.evaluator = evaluator or ConditionEvaluator()

    def matches(self, rule: ApprovalRule, request: ApprovalRequest) -> bool:
        """Check a single rule against the request"""
        if not rule.is_active:
            return False

        if not _within(request.total_value, rule.asset_value_min, rule.asset_value_max):
            return False
        if not _within(request.applicant_grade, rule.applicant_grade_min, rule.applicant_grade_max):
            return False
        if not _within(request.duration_days, rule.duration_days_min, rule.duration_days_max):
            return False

        if rule.asset_categories and not set(rule.asset_categories) & set(request.asset_categories):
            return False

        if rule.conditions and not self.evaluator.evaluate(rule.conditions, request.to_facts()):
            return False

        return True

    def resolve(
        self,
        rules: Sequence[ApprovalRule],
        request: ApprovalRequest
    ) -> ApprovalChain:
        """
        Build the ordered approval chain

        A matching level-1 rule with auto_approve ends the chain at level 1.
        No matching rule yields an empty chain (no approval required).
        """
        levels: Dict[int, ApprovalStep] = {}
        matched: List[str] = []

        for rule in order_by_priority(rules):
            if not self.matches(rule, request):
                continue

            if rule.id:
                matched.append(rule.id)

            step = levels.get(rule.approval_level)
            if step is None:
                step = ApprovalStep(
                    approval_level=rule.approval_level,
                    required=rule.required,
                    auto_approve=rule.auto_approve,
                )
                levels[rule.approval_level] = step
            else:
                step.required = step.required or rule.required
                step.auto_approve = step.auto_approve or rule.auto_approve

            _extend_unique(step.approver_roles, rule.approver_roles)
            _extend_unique(step.approver_grades, rule.approver_grades)
            if rule.id:
                step.rule_ids.append(rule.id)

        steps = [levels[level] for level in sorted(levels)]

        if steps and steps[0].approval_level == 1 and steps[0].auto_approve:
            logger.info(
                "Request auto-approved at level 1",
                extra={"rule_id": ",".join(steps[0].rule_ids)}
            )
            return ApprovalChain(
                steps=[steps[0]],
                auto_approved=True,
                requires_approval=False,
                matched_rule_ids=matched,
            )

        return ApprovalChain(
            steps=steps,
            auto_approved=False,
            requires_approval=any(step.required and not step.auto_approve for step in steps),
            matched_rule_ids=matched,
        )
