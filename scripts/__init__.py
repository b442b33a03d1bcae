"""
Scripts Module

Utility scripts for database operations and maintenance.

Available scripts:
    - seed_data.py: Creates the approver directory and sample helpdesk tickets

Usage:
    python -m scripts.seed_data
"""
