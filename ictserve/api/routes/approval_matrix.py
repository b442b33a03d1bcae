"""Approval Matrix API Routes - Approval matrix configuration page"""
from typing import Any, Dict, List, Optional, Union
from fastapi import APIRouter, Depends, File, Query, UploadFile
from pydantic import BaseModel, Field

from ..deps import get_admin_actor_dep, get_approval_matrix_service, get_correlation_id_dep
from ..responses import export_response
from ...config.settings import settings
from ...domain.enums import Module
from ...domain.models import ActorContext, ApprovalMatrix, ApprovalRequest
from ...services.approval_matrix_service import ApprovalMatrixService
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request Models
# ============================================================================

class TestMatrixRequest(BaseModel):
    """Samples are {"name", "loan_data"}; omit to use the built-in loans"""
    samples: Optional[List[Dict[str, Any]]] = None


class DetermineApproverRequest(BaseModel):
    applicant_grade: Union[str, int]
    total_value: float = Field(..., ge=0)


# ============================================================================
# Matrix
# ============================================================================

@router.get("")
async def get_approval_matrix(
    module: Module = Query(Module.LOANS),
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: ApprovalMatrixService = Depends(get_approval_matrix_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Current matrix, rules in evaluation order"""
    return service.get_approval_matrix(module).model_dump(mode="json")


@router.put("")
async def update_approval_matrix(
    matrix: ApprovalMatrix,
    module: Module = Query(Module.LOANS),
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: ApprovalMatrixService = Depends(get_approval_matrix_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Replace the whole matrix"""
    saved = service.update_approval_matrix(matrix, actor=actor, module=module)
    return saved.model_dump(mode="json")


@router.get("/options")
async def get_options(
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: ApprovalMatrixService = Depends(get_approval_matrix_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Roles, grades and asset categories offered by the rule form"""
    return {
        "roles": service.get_available_roles(),
        "grades": service.get_available_grades(),
        "asset_categories": service.get_asset_categories(),
    }


# ============================================================================
# Resolution
# ============================================================================

@router.post("/test")
async def test_approval_matrix(
    request: TestMatrixRequest,
    module: Module = Query(Module.LOANS),
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: ApprovalMatrixService = Depends(get_approval_matrix_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Resolve sample requests against the matrix"""
    return {"results": service.test_approval_matrix(request.samples, actor=actor, module=module)}


@router.post("/resolve")
async def resolve_approval_chain(
    request: ApprovalRequest,
    module: Module = Query(Module.LOANS),
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: ApprovalMatrixService = Depends(get_approval_matrix_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Approval chain for one request"""
    return service.resolve(request, module).model_dump(mode="json")


@router.post("/determine-approver")
async def determine_approver(
    request: DetermineApproverRequest,
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: ApprovalMatrixService = Depends(get_approval_matrix_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Concrete approver for a loan application"""
    assignment = service.determine_approver(request.applicant_grade, request.total_value)
    return assignment.model_dump(mode="json")


# ============================================================================
# Reset / Import / Export
# ============================================================================

@router.post("/reset")
async def reset_approval_matrix(
    module: Module = Query(Module.LOANS),
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: ApprovalMatrixService = Depends(get_approval_matrix_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Restore the default matrix"""
    matrix = service.reset_to_default(actor=actor, module=module)
    return {"message": "Approval matrix reset to default", "matrix": matrix.model_dump(mode="json")}


@router.get("/export")
async def export_approval_matrix(
    module: Module = Query(Module.LOANS),
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: ApprovalMatrixService = Depends(get_approval_matrix_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Download the matrix as JSON"""
    return export_response(service.export_matrix(actor=actor, module=module), "approval-matrix")


@router.post("/import")
async def import_approval_matrix(
    file: UploadFile = File(...),
    module: Module = Query(Module.LOANS),
    actor: ActorContext = Depends(get_admin_actor_dep),
    service: ApprovalMatrixService = Depends(get_approval_matrix_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Replace the matrix with an uploaded export"""
    raw = await file.read()
    matrix = service.import_matrix(raw, actor=actor, module=module, max_bytes=settings.import_max_bytes)
    return {
        "message": f"Imported {len(matrix.rules)} approval rules",
        "matrix": matrix.model_dump(mode="json")
    }
