"""Per-module fact vocabulary for the rule builder"""
from typing import Any, Dict, List, Union

from .enums import Module, ActionType

# Field -> allowed values (list) or value kind ("number", "user_id")
FieldSpec = Union[List[str], str]

MODULE_CONDITION_FIELDS: Dict[Module, Dict[str, FieldSpec]] = {
    Module.HELPDESK: {
        "priority": ["urgent", "high", "medium", "low"],
        "status": ["open", "assigned", "in_progress", "resolved", "closed"],
        "category": ["hardware", "software", "network", "other"],
        "created_hours_ago": "number",
        "assigned_to": "user_id",
    },
    Module.LOANS: {
        "status": ["pending", "approved", "rejected", "issued", "returned"],
        "asset_value": "number",
        "loan_duration_days": "number",
        "applicant_grade": "number",
    },
    Module.ASSETS: {
        "status": ["available", "on_loan", "maintenance", "retired"],
        "condition": ["excellent", "good", "fair", "poor", "damaged"],
        "category": ["laptop", "desktop", "monitor", "printer", "other"],
    },
}

ACTION_FIELDS: Dict[ActionType, Dict[str, Any]] = {
    ActionType.SEND_EMAIL: {
        "type": "email",
        "fields": ["recipient", "template", "subject", "body"],
    },
    ActionType.UPDATE_STATUS: {
        "type": "status_update",
        "fields": ["new_status"],
    },
    ActionType.ASSIGN_USER: {
        "type": "assignment",
        "fields": ["user_id"],
    },
    ActionType.CREATE_NOTIFICATION: {
        "type": "notification",
        "fields": ["message", "type", "recipients"],
    },
}

# Collections holding the entities rules act upon
MODULE_COLLECTIONS: Dict[Module, str] = {
    Module.HELPDESK: "helpdesk_tickets",
    Module.LOANS: "loan_applications",
    Module.ASSETS: "assets",
}


def condition_fields(module: Module) -> Dict[str, FieldSpec]:
    """Fact keys a rule in this module may test"""
    return MODULE_CONDITION_FIELDS.get(Module(module), {})


def is_valid_field(module: Module, field: str) -> bool:
    """Top-level key of a (possibly dotted) field must be in the module vocabulary"""
    return field.split(".", 1)[0] in condition_fields(module)
