"""Default configurations restored by the admin "reset" command"""
from typing import Any, Dict, List

from .enums import Module


APPROVER_ROLES = ["approver", "admin", "superuser"]

AVAILABLE_ROLES: Dict[str, str] = {
    "approver": "Pegawai Pelulus",
    "admin": "Pentadbir",
    "superuser": "Superuser",
    "supervisor": "Penyelia",
}

AVAILABLE_GRADES: Dict[str, str] = {
    "41": "Gred 41",
    "44": "Gred 44",
    "48": "Gred 48",
    "52": "Gred 52",
    "54": "Gred 54",
}

ASSET_CATEGORIES: Dict[str, str] = {
    "laptop": "Laptop",
    "desktop": "Komputer Desktop",
    "projector": "Projektor",
    "printer": "Pencetak",
    "camera": "Kamera",
    "audio": "Peralatan Audio",
    "network": "Peralatan Rangkaian",
    "other": "Lain-lain",
}

# Highest approving grade, used when no specific grade is available
FALLBACK_APPROVER_GRADE = "54"

PRIORITY_LABELS: Dict[str, str] = {
    "low": "Rendah",
    "normal": "Biasa",
    "high": "Tinggi",
    "urgent": "Segera",
}


def _approval_rule(
    rule_id: str,
    name: str,
    priority: int,
    approver_grade: str,
    **criteria: Any
) -> Dict[str, Any]:
    rule = {
        "id": rule_id,
        "name": name,
        "module": Module.LOANS.value,
        "priority": priority,
        "is_active": True,
        "approver_roles": list(APPROVER_ROLES),
        "approver_grades": [approver_grade],
        "approval_level": 1,
        "required": True,
        "auto_approve": False,
    }
    rule.update(criteria)
    return rule


def default_approval_matrix() -> Dict[str, Any]:
    """Grade and value thresholds for loan approval"""
    rules: List[Dict[str, Any]] = [
        # Grade 41 and below
        _approval_rule("APR-default-01", "Gred <=41, nilai <= RM5,000", 100, "44",
                       applicant_grade_max=41, asset_value_max=5000),
        _approval_rule("APR-default-02", "Gred <=41, nilai <= RM10,000", 99, "48",
                       applicant_grade_max=41, asset_value_min=5000.01, asset_value_max=10000),
        _approval_rule("APR-default-03", "Gred <=41, nilai <= RM50,000", 98, "52",
                       applicant_grade_max=41, asset_value_min=10000.01, asset_value_max=50000),
        _approval_rule("APR-default-04", "Gred <=41, nilai > RM50,000", 97, "54",
                       applicant_grade_max=41, asset_value_min=50000.01),
        # Grade 42 - 44
        _approval_rule("APR-default-05", "Gred 42-44, nilai <= RM10,000", 90, "48",
                       applicant_grade_min=42, applicant_grade_max=44, asset_value_max=10000),
        _approval_rule("APR-default-06", "Gred 42-44, nilai <= RM20,000", 89, "52",
                       applicant_grade_min=42, applicant_grade_max=44,
                       asset_value_min=10000.01, asset_value_max=20000),
        _approval_rule("APR-default-07", "Gred 42-44, nilai > RM20,000", 88, "54",
                       applicant_grade_min=42, applicant_grade_max=44, asset_value_min=20000.01),
        # Grade 45 - 51
        _approval_rule("APR-default-08", "Gred 45-51, nilai <= RM20,000", 80, "52",
                       applicant_grade_min=45, applicant_grade_max=51, asset_value_max=20000),
        _approval_rule("APR-default-09", "Gred 45-51, nilai > RM20,000", 79, "54",
                       applicant_grade_min=45, applicant_grade_max=51, asset_value_min=20000.01),
        # Grade 52 and above
        _approval_rule("APR-default-10", "Gred >=52", 70, "54",
                       applicant_grade_min=52, applicant_grade_max=60),
        # Long loans need the division head as a second level
        {
            "id": "APR-default-11",
            "name": "Pinjaman melebihi 90 hari",
            "description": "Kelulusan tambahan Ketua Bahagian untuk pinjaman jangka panjang",
            "module": Module.LOANS.value,
            "priority": 50,
            "is_active": True,
            "duration_days_min": 91,
            "approver_roles": ["admin", "superuser"],
            "approver_grades": ["54"],
            "approval_level": 2,
            "required": True,
            "auto_approve": False,
        },
    ]
    for index, rule in enumerate(rules):
        rule["sequence"] = index
    return {"version": "1.0", "rules": rules}


def _category(name: str, description: str, response: List[float], resolution: List[float]) -> Dict[str, Any]:
    levels = ["low", "normal", "high", "urgent"]
    return {
        "name": name,
        "description": description,
        "response_times": dict(zip(levels, response)),
        "resolution_times": dict(zip(levels, resolution)),
    }


def default_sla_thresholds() -> Dict[str, Any]:
    """Response/resolution hours per category and priority"""
    return {
        "version": "1.0",
        "categories": {
            "general": _category("Am (Umum)", "SLA untuk tiket am",
                                 [168, 72, 24, 4], [336, 168, 72, 24]),
            "hardware": _category("Perkakasan", "SLA untuk isu perkakasan",
                                  [72, 24, 8, 2], [168, 72, 24, 8]),
            "software": _category("Perisian", "SLA untuk isu perisian",
                                  [96, 48, 12, 4], [240, 120, 48, 12]),
            "network": _category("Rangkaian", "SLA untuk isu rangkaian",
                                 [48, 12, 4, 1], [120, 48, 12, 4]),
            "security": _category("Keselamatan", "SLA untuk isu keselamatan",
                                  [24, 8, 2, 0.5], [72, 24, 8, 4]),
        },
        "escalation": {
            "enabled": True,
            "threshold_percent": 25,
            "escalation_roles": ["admin", "superuser"],
            "auto_assign": True,
        },
        "notifications": {
            "enabled": True,
            "intervals": {"warning": 60, "critical": 15, "breach": 0, "overdue": 240},
            "recipients": {"assignee": True, "supervisor": True, "admin": True},
        },
        "business_hours": {
            "enabled": True,
            "timezone": "Asia/Kuala_Lumpur",
            "working_days": [1, 2, 3, 4, 5],
            "start_time": "08:00",
            "end_time": "17:00",
            "exclude_holidays": True,
            "holidays": [],
        },
    }


# Sample facts used by the "Test Rules" command
SAMPLE_FACTS: Dict[Module, List[Dict[str, Any]]] = {
    Module.HELPDESK: [
        {"priority": "urgent", "status": "open", "created_hours_ago": 2},
        {"priority": "low", "status": "assigned", "created_hours_ago": 48},
    ],
    Module.LOANS: [
        {"status": "pending", "asset_value": 5000, "applicant_grade": 45},
        {"status": "approved", "asset_value": 1000, "applicant_grade": 38},
    ],
    Module.ASSETS: [
        {"status": "maintenance", "condition": "damaged"},
        {"status": "available", "condition": "excellent"},
    ],
}

# Sample loans used by the "Test Matrix" command
SAMPLE_LOAN_REQUESTS: List[Dict[str, Any]] = [
    {
        "name": "Pinjaman Nilai Rendah - Staf Biasa",
        "loan_data": {
            "total_value": 3000,
            "applicant_grade": 25,
            "duration_days": 14,
            "asset_categories": ["laptop"],
        },
    },
    {
        "name": "Pinjaman Nilai Tinggi - Staf Kanan",
        "loan_data": {
            "total_value": 20000,
            "applicant_grade": 45,
            "duration_days": 30,
            "asset_categories": ["projector"],
        },
    },
    {
        "name": "Pinjaman Jangka Panjang",
        "loan_data": {
            "total_value": 8000,
            "applicant_grade": 30,
            "duration_days": 120,
            "asset_categories": ["laptop", "printer"],
        },
    },
]

# Sample tickets used by the SLA "Test" command
SAMPLE_TICKETS: List[Dict[str, Any]] = [
    {"name": "Isu keselamatan segera", "priority": "urgent", "category": "security"},
    {"name": "Rangkaian perlahan", "priority": "high", "category": "network"},
    {"name": "Permintaan perisian", "priority": "normal", "category": "software"},
    {"name": "Kategori tidak dikenali", "priority": "low", "category": "unknown"},
]
