"""Repository modules - Data access layer"""
from .mongo_client import get_database, get_collection
from .config_cache import ConfigCache, config_cache
from .config_repo import ConfigRepository
from .rule_set_repo import RuleSetRepository
from .audit_repo import AdminAuditRepository
from .notification_repo import NotificationRepository
from .inapp_notification_repo import InAppNotificationRepository
from .entity_repo import EntityRepository
from .user_repo import UserRepository

__all__ = [
    "get_database",
    "get_collection",
    "ConfigCache",
    "config_cache",
    "ConfigRepository",
    "RuleSetRepository",
    "AdminAuditRepository",
    "NotificationRepository",
    "InAppNotificationRepository",
    "EntityRepository",
    "UserRepository",
]
