"""
Seed Data Script - Creates approvers and sample tickets for testing
Run: python -m scripts.seed_data
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import timedelta
from ictserve.domain.enums import Module
from ictserve.domain.vocabulary import MODULE_COLLECTIONS
from ictserve.repositories.mongo_client import get_collection, create_indexes
from ictserve.utils.time import utc_now


APPROVERS = [
    # user_id, name, grade, role
    ("u-ahmad", "Ahmad bin Ismail", "44", "approver"),
    ("u-siti", "Siti Aminah binti Yusof", "48", "approver"),
    ("u-rajesh", "Rajesh a/l Kumar", "52", "approver"),
    ("u-lim", "Lim Wei Ling", "54", "admin"),
    ("u-root", "Pentadbir Sistem", "54", "superuser"),
    ("u-tech1", "Juruteknik Helpdesk", "29", "staff"),
]


def create_approvers():
    """Create the approver directory used by the approval matrix"""
    users_col = get_collection("users")
    
    if users_col.count_documents({}) > 0:
        print("Users already exist. Skipping approvers.")
        return
    
    for user_id, name, grade, role in APPROVERS:
        users_col.insert_one({
            "_id": user_id,
            "user_id": user_id,
            "name": name,
            "email": f"{user_id[2:]}@motac.gov.my",
            "grade": grade,
            "role": role,
            "is_active": True,
        })
        print(f"Created user: {user_id} (grade {grade}, {role})")


def create_sample_tickets():
    """Create open helpdesk tickets at different points of their SLA"""
    tickets_col = get_collection(MODULE_COLLECTIONS[Module.HELPDESK])
    
    if tickets_col.count_documents({}) > 0:
        print("Tickets already exist. Skipping tickets.")
        return
    
    now = utc_now()
    samples = [
        ("TKT-0001", "Rangkaian terputus di aras 3", "urgent", "network", timedelta(hours=3, minutes=30)),
        ("TKT-0002", "Komputer tidak boleh dihidupkan", "high", "hardware", timedelta(hours=1)),
        ("TKT-0003", "Pemasangan perisian pejabat", "normal", "software", timedelta(days=6)),
        ("TKT-0004", "Akaun e-mel disekat", "urgent", "security", timedelta(minutes=10)),
    ]
    
    for ticket_id, title, priority, category, age in samples:
        tickets_col.insert_one({
            "_id": ticket_id,
            "id": ticket_id,
            "title": title,
            "status": "open",
            "priority": priority,
            "category": category,
            "assigned_to": "u-tech1",
            "supervisor_email": "lim@motac.gov.my",
            "created_at": (now - age).isoformat(),
        })
        print(f"Created ticket: {ticket_id} ({priority}/{category})")


def main():
    print("=== Seeding database ===")
    print("-" * 40)
    
    create_indexes()
    create_approvers()
    create_sample_tickets()
    
    print("-" * 40)
    print("Done!")


if __name__ == "__main__":
    main()
