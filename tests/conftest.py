"""
Pytest Configuration and Fixtures

Repositories run against in-memory collections (tests/fakes.py); the API
tests override the service dependencies with services built on them.
"""

import os
import tempfile

# Settings are read at import time
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-admin-tokens-0001")
os.environ.setdefault("LOGS_PATH", os.path.join(tempfile.gettempdir(), "ictserve-test-logs"))
os.environ.setdefault("SLA_MONITOR_ENABLED", "false")

from typing import Dict, Generator

import pytest
from fastapi.testclient import TestClient

from ictserve.domain.enums import Module
from ictserve.domain.models import ActorContext
from ictserve.engine.action_dispatcher import ActionDispatcher
from ictserve.engine.condition_evaluator import ConditionEvaluator
from ictserve.repositories.audit_repo import AdminAuditRepository
from ictserve.repositories.config_cache import ConfigCache
from ictserve.repositories.config_repo import ConfigRepository
from ictserve.repositories.entity_repo import EntityRepository
from ictserve.repositories.inapp_notification_repo import InAppNotificationRepository
from ictserve.repositories.notification_repo import NotificationRepository
from ictserve.repositories.rule_set_repo import RuleSetRepository
from ictserve.repositories.user_repo import UserRepository
from ictserve.services.approval_matrix_service import ApprovalMatrixService
from ictserve.services.sla_threshold_service import SlaThresholdService
from ictserve.services.workflow_automation_service import WorkflowAutomationService

from .factories import make_token
from .fakes import FakeCollection


# ============================================================================
# Collections & Repositories
# ============================================================================

@pytest.fixture
def collections() -> Dict[str, FakeCollection]:
    names = [
        "system_config", "admin_audit", "notification_outbox", "inapp_notifications",
        "users", "helpdesk_tickets", "loan_applications", "assets",
    ]
    return {name: FakeCollection() for name in names}


@pytest.fixture
def cache() -> ConfigCache:
    return ConfigCache()


@pytest.fixture
def config_repo(collections) -> ConfigRepository:
    return ConfigRepository(collections["system_config"])


@pytest.fixture
def audit_repo(collections) -> AdminAuditRepository:
    return AdminAuditRepository(collections["admin_audit"])


@pytest.fixture
def notification_repo(collections) -> NotificationRepository:
    return NotificationRepository(collections["notification_outbox"])


@pytest.fixture
def inapp_repo(collections) -> InAppNotificationRepository:
    return InAppNotificationRepository(collections["inapp_notifications"])


@pytest.fixture
def user_repo(collections) -> UserRepository:
    return UserRepository(collections["users"])


@pytest.fixture
def entity_repo(collections) -> EntityRepository:
    return EntityRepository({
        Module.HELPDESK: collections["helpdesk_tickets"],
        Module.LOANS: collections["loan_applications"],
        Module.ASSETS: collections["assets"],
    })


@pytest.fixture
def rule_repo(config_repo, cache) -> RuleSetRepository:
    return RuleSetRepository(config_repo=config_repo, cache=cache)


@pytest.fixture
def dispatcher(entity_repo, notification_repo, inapp_repo) -> ActionDispatcher:
    return ActionDispatcher(
        entity_repo=entity_repo,
        notification_repo=notification_repo,
        inapp_repo=inapp_repo
    )


# ============================================================================
# Services
# ============================================================================

@pytest.fixture
def workflow_service(rule_repo, audit_repo, dispatcher, entity_repo) -> WorkflowAutomationService:
    return WorkflowAutomationService(
        rule_repo=rule_repo,
        audit_repo=audit_repo,
        dispatcher=dispatcher,
        entity_repo=entity_repo,
        evaluator=ConditionEvaluator()
    )


@pytest.fixture
def approval_service(config_repo, user_repo, audit_repo, cache) -> ApprovalMatrixService:
    return ApprovalMatrixService(
        config_repo=config_repo,
        user_repo=user_repo,
        audit_repo=audit_repo,
        cache=cache
    )


@pytest.fixture
def sla_service(config_repo, audit_repo, entity_repo, cache) -> SlaThresholdService:
    return SlaThresholdService(
        config_repo=config_repo,
        audit_repo=audit_repo,
        entity_repo=entity_repo,
        cache=cache
    )


# ============================================================================
# Data
# ============================================================================

@pytest.fixture
def admin_actor() -> ActorContext:
    return ActorContext(
        user_id="u-admin",
        email="pentadbir@motac.gov.my",
        display_name="Pentadbir Sistem",
        roles=["superuser"]
    )


# ============================================================================
# API
# ============================================================================

@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(['superuser'])}"}


@pytest.fixture
def client(workflow_service, approval_service, sla_service) -> Generator[TestClient, None, None]:
    from ictserve.api import deps
    from ictserve.main import app

    app.dependency_overrides[deps.get_workflow_service] = lambda: workflow_service
    app.dependency_overrides[deps.get_approval_matrix_service] = lambda: approval_service
    app.dependency_overrides[deps.get_sla_threshold_service] = lambda: sla_service
    # No context manager: the lifespan (MongoDB indexes, scheduler) is not run
    yield TestClient(app)
    app.dependency_overrides.clear()
