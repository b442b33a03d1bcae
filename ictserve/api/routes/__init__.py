"""API Routes module"""
from fastapi import APIRouter

from .workflow_rules import router as workflow_rules_router
from .approval_matrix import router as approval_matrix_router
from .sla_thresholds import router as sla_thresholds_router

# Main API router
api_router = APIRouter()

api_router.include_router(workflow_rules_router, prefix="/admin/workflow-rules", tags=["Workflow Rules"])
api_router.include_router(approval_matrix_router, prefix="/admin/approval-matrix", tags=["Approval Matrix"])
api_router.include_router(sla_thresholds_router, prefix="/admin/sla-thresholds", tags=["SLA Thresholds"])

__all__ = ["api_router"]
