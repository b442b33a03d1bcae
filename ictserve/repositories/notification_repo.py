"""Notification Repository - Data access for the email outbox

Emails are only queued here; delivery belongs to the mail worker.
"""
from typing import Optional
from pymongo.collection import Collection

from .mongo_client import get_collection
from ..domain.models import NotificationOutbox
from ..utils.logger import get_logger

logger = get_logger(__name__)


class NotificationRepository:
    """Repository for notification outbox operations"""
    
    def __init__(self, collection: Optional[Collection] = None):
        self._outbox: Collection = collection if collection is not None else get_collection("notification_outbox")
    
    def create_notification(self, notification: NotificationOutbox) -> NotificationOutbox:
        """Create a notification in outbox"""
        doc = notification.model_dump(mode="json")
        doc["_id"] = notification.notification_id
        
        self._outbox.insert_one(doc)
        logger.info(
            f"Queued notification: {notification.template_key.value}",
            extra={
                "app_module": notification.module.value if notification.module else None,
                "entity_id": notification.entity_id
            }
        )
        return notification
    
    def exists_for_dedupe_key(self, dedupe_key: str) -> bool:
        """True when an alert with this key has already been queued"""
        return self._outbox.count_documents({"dedupe_key": dedupe_key}, limit=1) > 0

