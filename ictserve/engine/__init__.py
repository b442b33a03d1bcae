"""Rule engine - Pure evaluation logic plus the action dispatcher"""
from .condition_evaluator import ConditionEvaluator
from .ordering import order_by_priority
from .approval_resolver import ApprovalResolver
from .business_hours import BusinessCalendar
from .sla_calculator import SlaCalculator

__all__ = [
    "ConditionEvaluator",
    "order_by_priority",
    "ApprovalResolver",
    "BusinessCalendar",
    "SlaCalculator",
]
