"""Service modules - Business logic layer"""
from .workflow_automation_service import WorkflowAutomationService
from .approval_matrix_service import ApprovalMatrixService
from .sla_threshold_service import SlaThresholdService

__all__ = [
    "WorkflowAutomationService",
    "ApprovalMatrixService",
    "SlaThresholdService",
]
