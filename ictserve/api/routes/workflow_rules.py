"""Workflow Rules API Routes - Workflow automation configuration page"""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile
from pydantic import BaseModel, Field

from ..deps import get_admin_actor_dep, get_correlation_id_dep, get_workflow_service
from ..responses import export_response
from ...config.settings import settings
from ...domain.defaults import SAMPLE_FACTS
from ...domain.enums import Module
from ...domain.models import ActorContext, Rule, TargetEntity
from ...services.workflow_automation_service import WorkflowAutomationService
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================

class RuleListResponse(BaseModel):
    items: List[Dict[str, Any]]
    total: int


class ToggleRequest(BaseModel):
    """Omit is_active to flip the current state"""
    is_active: Optional[bool] = None


class TestRulesRequest(BaseModel):
    """Test one (unsaved) rule, or every active rule of a module"""
    module: Optional[Module] = None
    rule: Optional[Rule] = None
    samples: Optional[List[Dict[str, Any]]] = None


class ExecuteRulesRequest(BaseModel):
    event: str = Field("updated", min_length=1)
    entity_id: Optional[str] = None
    facts: Dict[str, Any] = Field(default_factory=dict)
    dry_run: bool = False
    strict: bool = Field(False, description="Fail the request when any action fails")


# ============================================================================
# Rule Builder Vocabulary
# ============================================================================

@router.get("/actions")
async def get_available_actions(
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: WorkflowAutomationService = Depends(get_workflow_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Action types and the fields their forms expose"""
    return service.get_available_actions()


@router.get("/{module}/conditions")
async def get_available_conditions(
    module: Module,
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: WorkflowAutomationService = Depends(get_workflow_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Condition fields a rule of this module may test"""
    return service.get_available_conditions(module)


# ============================================================================
# Rules
# ============================================================================

@router.get("", response_model=RuleListResponse)
async def list_rules(
    module: Optional[Module] = Query(None),
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: WorkflowAutomationService = Depends(get_workflow_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """List rules in evaluation order"""
    rules = service.list_rules(module)
    return RuleListResponse(
        items=[rule.model_dump(mode="json") for rule in rules],
        total=len(rules)
    )


@router.post("")
async def save_rule(
    rule: Rule,
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: WorkflowAutomationService = Depends(get_workflow_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Create (no id) or update (existing id) a rule"""
    saved = service.save_rule(rule, actor)
    return saved.model_dump(mode="json")


@router.post("/test")
async def test_rules(
    request: TestRulesRequest,
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: WorkflowAutomationService = Depends(get_workflow_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Evaluate rules against sample data without executing actions"""
    if request.rule is not None:
        samples = request.samples if request.samples is not None else SAMPLE_FACTS.get(request.rule.module, [])
        results = service.test_rule(request.rule, samples)
        return {"results": [r.model_dump(mode="json") for r in results]}

    return {"rules": service.test_rules(request.module, request.samples, actor)}


@router.get("/{module}/export")
async def export_rules(
    module: Module,
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: WorkflowAutomationService = Depends(get_workflow_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Download the module's rules as JSON"""
    content = service.export_rules(module, actor)
    return export_response(content, f"workflow-rules-{module.value}")


@router.post("/{module}/import")
async def import_rules(
    module: Module,
    file: UploadFile = File(...),
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: WorkflowAutomationService = Depends(get_workflow_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Replace the module's rules with an uploaded export"""
    raw = await file.read()
    rules = service.import_rules(module, raw, actor, max_bytes=settings.import_max_bytes)
    return {
        "message": f"Imported {len(rules)} rules",
        "items": [rule.model_dump(mode="json") for rule in rules]
    }


@router.post("/{module}/reset")
async def reset_rules(
    module: Module,
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: WorkflowAutomationService = Depends(get_workflow_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Restore the default rule set"""
    rules = service.reset_rules(module, actor)
    return {
        "message": "Workflow rules reset to default",
        "items": [rule.model_dump(mode="json") for rule in rules]
    }


@router.post("/{module}/execute")
async def execute_rules(
    module: Module,
    request: ExecuteRulesRequest,
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: WorkflowAutomationService = Depends(get_workflow_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Run the module's active rules against an entity"""
    target = TargetEntity(module=module, entity_id=request.entity_id, facts=request.facts)
    executions = service.execute_rules(module, request.event, target, dry_run=request.dry_run)

    if request.strict:
        for execution in executions:
            if execution.dispatch is not None:
                execution.dispatch.raise_for_failure()

    return {
        "executions": [e.model_dump(mode="json") for e in executions],
        "facts": target.facts
    }


@router.get("/{module}/{rule_id}")
async def get_rule(
    module: Module,
    rule_id: str,
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: WorkflowAutomationService = Depends(get_workflow_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Get a rule by ID"""
    return service.get_rule(module, rule_id).model_dump(mode="json")


@router.delete("/{module}/{rule_id}")
async def delete_rule(
    module: Module,
    rule_id: str,
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: WorkflowAutomationService = Depends(get_workflow_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Delete a rule"""
    service.delete_rule(module, rule_id, actor)
    return {"message": "Rule deleted", "rule_id": rule_id}


@router.post("/{module}/{rule_id}/toggle")
async def toggle_rule(
    module: Module,
    rule_id: str,
    request: Optional[ToggleRequest] = None,
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: WorkflowAutomationService = Depends(get_workflow_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Activate or deactivate a rule"""
    is_active = request.is_active if request is not None else None
    if is_active is None:
        is_active = not service.get_rule(module, rule_id).is_active
    rule = service.toggle_rule(module, rule_id, is_active, actor)
    return rule.model_dump(mode="json")
