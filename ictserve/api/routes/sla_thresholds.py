"""SLA Thresholds API Routes - SLA threshold management page"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel

from ..deps import get_admin_actor_dep, get_correlation_id_dep, get_sla_threshold_service
from ..responses import export_response
from ...config.settings import settings
from ...domain.models import ActorContext, SlaThresholds
from ...engine.sla_calculator import FALLBACK_CATEGORY, FALLBACK_PRIORITY
from ...services.sla_threshold_service import SlaThresholdService
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request Models
# ============================================================================

class TestSlaRequest(BaseModel):
    """Samples are {"name", "priority", "category"}; omit to use the built-in tickets"""
    samples: Optional[List[Dict[str, Any]]] = None
    start_time: Optional[datetime] = None


class DeadlinesRequest(BaseModel):
    priority: str = FALLBACK_PRIORITY
    category: str = FALLBACK_CATEGORY
    created_at: Optional[datetime] = None


class BreachRequest(BaseModel):
    created_at: datetime
    priority: str = FALLBACK_PRIORITY
    category: str = FALLBACK_CATEGORY
    now: Optional[datetime] = None


# ============================================================================
# Thresholds
# ============================================================================

@router.get("")
async def get_sla_thresholds(
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: SlaThresholdService = Depends(get_sla_threshold_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Current SLA thresholds"""
    return service.get_sla_thresholds().model_dump(mode="json")


@router.put("")
async def update_sla_thresholds(
    thresholds: SlaThresholds,
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: SlaThresholdService = Depends(get_sla_threshold_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Replace the SLA thresholds"""
    return service.update_sla_thresholds(thresholds, actor=actor).model_dump(mode="json")


@router.get("/options")
async def get_options(
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: SlaThresholdService = Depends(get_sla_threshold_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Categories and priorities offered by the form"""
    return {
        "categories": service.get_available_categories(),
        "priorities": service.get_available_priorities(),
    }


# ============================================================================
# Calculations
# ============================================================================

@router.post("/test")
async def test_sla(
    request: TestSlaRequest,
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: SlaThresholdService = Depends(get_sla_threshold_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """SLA and deadlines for sample tickets"""
    return {"results": service.test_sla(request.samples, actor=actor, start_time=request.start_time)}


@router.post("/deadlines")
async def calculate_deadlines(
    request: DeadlinesRequest,
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: SlaThresholdService = Depends(get_sla_threshold_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Response, resolution and escalation deadlines for a ticket"""
    sla = service.get_sla_for_ticket(request.priority, request.category)
    deadlines = service.calculate_sla_deadlines(request.priority, request.category, request.created_at)
    return {"sla": sla.model_dump(mode="json"), "deadlines": deadlines.model_dump(mode="json")}


@router.post("/breach")
async def check_breach(
    request: BreachRequest,
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: SlaThresholdService = Depends(get_sla_threshold_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Breach status of a ticket"""
    status = service.check_sla_breach(request.created_at, request.priority, request.category, request.now)
    return status.model_dump(mode="json")


@router.get("/compliance")
async def get_compliance(
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: SlaThresholdService = Depends(get_sla_threshold_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Compliance over the stored helpdesk tickets"""
    return service.get_sla_compliance().model_dump(mode="json")


# ============================================================================
# Reset / Import / Export
# ============================================================================

@router.post("/reset")
async def reset_sla_thresholds(
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: SlaThresholdService = Depends(get_sla_threshold_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Restore the default thresholds"""
    thresholds = service.reset_to_default(actor=actor)
    return {"message": "SLA thresholds reset to default", "thresholds": thresholds.model_dump(mode="json")}


@router.get("/export")
async def export_sla_thresholds(
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: SlaThresholdService = Depends(get_sla_threshold_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Download the thresholds as JSON"""
    return export_response(service.export_thresholds(actor=actor), "sla-thresholds")


@router.post("/import")
async def import_sla_thresholds(
    file: UploadFile = File(...),
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: SlaThresholdService = Depends(get_sla_threshold_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Replace the thresholds with an uploaded export"""
    raw = await file.read()
    thresholds = service.import_thresholds(raw, actor=actor, max_bytes=settings.import_max_bytes)
    return {
        "message": f"Imported SLA thresholds for {len(thresholds.categories)} categories",
        "thresholds": thresholds.model_dump(mode="json")
    }
