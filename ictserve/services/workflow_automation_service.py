"""Workflow Automation Service - Rule administration and execution"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from ..domain.models import (
    ActorContext, Rule, RuleExecution, RuleTestResult, TargetEntity
)
from ..domain.enums import AdminAuditAction, ConfigKind, Module
from ..domain.defaults import SAMPLE_FACTS
from ..domain.vocabulary import ACTION_FIELDS, FieldSpec, condition_fields
from ..engine.action_dispatcher import ActionDispatcher
from ..engine.condition_evaluator import ConditionEvaluator
from ..repositories.audit_repo import AdminAuditRepository
from ..repositories.entity_repo import EntityRepository
from ..repositories.rule_set_repo import RuleSetRepository
from ..utils.logger import get_logger
from ..utils.time import parse_iso, utc_now

logger = get_logger(__name__)


def with_derived_facts(module: Module, facts: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Add facts computed from the stored entity

    Helpdesk tickets store created_at; rules test created_hours_ago. A value
    already present in the bag is kept.
    """
    if Module(module) == Module.HELPDESK and "created_hours_ago" not in facts and facts.get("created_at"):
        elapsed = (now or utc_now()) - parse_iso(facts["created_at"])
        facts["created_hours_ago"] = round(elapsed.total_seconds() / 3600, 2)
    return facts


class WorkflowAutomationService:
    """Service for workflow automation rules"""

    def __init__(
        self,
        rule_repo: Optional[RuleSetRepository] = None,
        audit_repo: Optional[AdminAuditRepository] = None,
        dispatcher: Optional[ActionDispatcher] = None,
        entity_repo: Optional[EntityRepository] = None,
        evaluator: Optional[ConditionEvaluator] = None
    ):
        self.rule_repo = rule_repo or RuleSetRepository()
        self.audit_repo = audit_repo or AdminAuditRepository()
        self.entity_repo = entity_repo or EntityRepository()
        self.dispatcher = dispatcher or ActionDispatcher(entity_repo=self.entity_repo)
        self.evaluator = evaluator or ConditionEvaluator()

    # =========================================================================
    # Rule Administration
    # =========================================================================

    def list_rules(self, module: Optional[Module] = None) -> List[Rule]:
        """Rules of one module, or of every module in module order"""
        if module is not None:
            return self.rule_repo.get_rules(module)

        rules: List[Rule] = []
        for each in Module:
            rules.extend(self.rule_repo.get_rules(each))
        return rules

    def get_rule(self, module: Module, rule_id: str) -> Rule:
        return self.rule_repo.get_rule(module, rule_id)

    def save_rule(self, rule: Rule, actor: Optional[ActorContext] = None) -> Rule:
        """Create or update a rule"""
        is_new = rule.id is None
        saved = self.rule_repo.save(rule, actor_email=actor.email if actor else None)

        self.audit_repo.log_admin_action(
            action=AdminAuditAction.SAVE,
            config_kind=ConfigKind.WORKFLOW_RULES,
            summary=f"{'Created' if is_new else 'Updated'} rule '{saved.name}'",
            actor=actor,
            module=saved.module,
            details={"rule_id": saved.id}
        )
        return saved

    def delete_rule(self, module: Module, rule_id: str, actor: Optional[ActorContext] = None) -> None:
        self.rule_repo.delete(module, rule_id, actor_email=actor.email if actor else None)
        self.audit_repo.log_admin_action(
            action=AdminAuditAction.DELETE,
            config_kind=ConfigKind.WORKFLOW_RULES,
            summary=f"Deleted rule {rule_id}",
            actor=actor,
            module=module,
            details={"rule_id": rule_id}
        )

    def toggle_rule(
        self,
        module: Module,
        rule_id: str,
        is_active: bool,
        actor: Optional[ActorContext] = None
    ) -> Rule:
        rule = self.rule_repo.set_active(
            module, rule_id, is_active, actor_email=actor.email if actor else None
        )
        self.audit_repo.log_admin_action(
            action=AdminAuditAction.TOGGLE,
            config_kind=ConfigKind.WORKFLOW_RULES,
            summary=f"{'Activated' if is_active else 'Deactivated'} rule '{rule.name}'",
            actor=actor,
            module=module,
            details={"rule_id": rule_id, "is_active": is_active}
        )
        return rule

    # =========================================================================
    # Execution
    # =========================================================================

    def execute_rules(
        self,
        module: Module,
        event: str,
        target: TargetEntity,
        dry_run: bool = False
    ) -> List[RuleExecution]:
        """
        Run the module's active rules against an entity

        Rules are evaluated in priority order. Each fired rule's actions are
        dispatched before the next rule is evaluated, so status or assignment
        changes made by one rule are visible to the rules after it.

        Args:
            module: Module whose rules apply
            event: Lifecycle event that triggered the run (created, updated...)
            target: Entity to evaluate; when only an id is given the entity
                document is loaded as the fact bag
            dry_run: Evaluate and report without side effects
        """
        if not target.facts and target.entity_id:
            target.facts = self.entity_repo.get(module, target.entity_id)
        with_derived_facts(module, target.facts)

        executions: List[RuleExecution] = []
        for rule in self.rule_repo.get_active_rules(module):
            if not self.evaluator.evaluate(rule.conditions, target.facts):
                executions.append(RuleExecution(rule_id=rule.id, rule_name=rule.name, fired=False))
                continue

            dispatch = self.dispatcher.dispatch(rule.actions, target, dry_run=dry_run)
            executions.append(RuleExecution(
                rule_id=rule.id,
                rule_name=rule.name,
                fired=True,
                dispatch=dispatch
            ))
            logger.info(
                f"Workflow rule executed on {event}",
                extra={
                    "rule_id": rule.id,
                    "app_module": Module(module).value,
                    "entity_id": target.entity_id,
                    "status": "partial" if dispatch.partial_failure else "ok"
                }
            )

        return executions

    # =========================================================================
    # Testing
    # =========================================================================

    def test_rule(self, rule: Rule, samples: List[Dict[str, Any]]) -> List[RuleTestResult]:
        """Evaluate a rule against sample fact bags without executing anything"""
        results = []
        for data in samples:
            matched = self.evaluator.evaluate(rule.conditions, data)
            results.append(RuleTestResult(
                data=data,
                condition_result=matched,
                condition_details=self.evaluator.explain(rule.conditions, data),
                actions_would_execute=list(rule.actions) if matched else []
            ))
        return results

    def test_rules(
        self,
        module: Optional[Module] = None,
        samples: Optional[List[Dict[str, Any]]] = None,
        actor: Optional[ActorContext] = None
    ) -> List[Dict[str, Any]]:
        """
        Test every active rule against sample data

        Uses built-in sample facts per module when none are supplied.
        """
        report = []
        for rule in self.list_rules(module):
            if not rule.is_active:
                continue
            rule_samples = samples if samples is not None else SAMPLE_FACTS.get(rule.module, [])
            report.append({
                "rule_id": rule.id,
                "rule_name": rule.name,
                "module": rule.module.value,
                "results": [r.model_dump(mode="json") for r in self.test_rule(rule, rule_samples)],
            })

        self.audit_repo.log_admin_action(
            action=AdminAuditAction.TEST,
            config_kind=ConfigKind.WORKFLOW_RULES,
            summary=f"Tested {len(report)} rules",
            actor=actor,
            module=module
        )
        return report

    # =========================================================================
    # Builder Vocabulary
    # =========================================================================

    def get_available_conditions(self, module: Module) -> Dict[str, FieldSpec]:
        return condition_fields(module)

    def get_available_actions(self) -> Dict[str, Dict[str, Any]]:
        return {action_type.value: spec for action_type, spec in ACTION_FIELDS.items()}

    # =========================================================================
    # Reset / Import / Export
    # =========================================================================

    def export_rules(self, module: Module, actor: Optional[ActorContext] = None) -> str:
        content = self.rule_repo.export_all(module, exported_by=actor.email if actor else None)
        self.audit_repo.log_admin_action(
            action=AdminAuditAction.EXPORT,
            config_kind=ConfigKind.WORKFLOW_RULES,
            summary="Exported workflow rules",
            actor=actor,
            module=module
        )
        return content

    def import_rules(
        self,
        module: Module,
        raw: Union[str, bytes],
        actor: Optional[ActorContext] = None,
        max_bytes: Optional[int] = None
    ) -> List[Rule]:
        rules = self.rule_repo.import_all(
            module, raw, actor_email=actor.email if actor else None, max_bytes=max_bytes
        )
        self.audit_repo.log_admin_action(
            action=AdminAuditAction.IMPORT,
            config_kind=ConfigKind.WORKFLOW_RULES,
            summary=f"Imported {len(rules)} workflow rules",
            actor=actor,
            module=module,
            details={"rule_count": len(rules)}
        )
        return rules

    def reset_rules(self, module: Module, actor: Optional[ActorContext] = None) -> List[Rule]:
        rules = self.rule_repo.reset_to_default(module, actor_email=actor.email if actor else None)
        self.audit_repo.log_admin_action(
            action=AdminAuditAction.RESET,
            config_kind=ConfigKind.WORKFLOW_RULES,
            summary="Reset workflow rules to default",
            actor=actor,
            module=module
        )
        return rules

    def clear_cache(self, module: Optional[Module] = None) -> None:
        for each in ([module] if module is not None else list(Module)):
            self.rule_repo.clear_cache(each)
