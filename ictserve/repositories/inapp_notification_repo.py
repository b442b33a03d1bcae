"""In-App Notification Repository - Data access for notification bell"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import DESCENDING

from .mongo_client import get_collection
from ..domain.models import InAppNotification
from ..domain.enums import InAppNotificationCategory, Module
from ..utils.logger import get_logger
from ..utils.time import utc_now
from ..utils.idgen import generate_notification_id

logger = get_logger(__name__)


class InAppNotificationRepository:
    """Repository for in-app notification operations"""
    
    COLLECTION_NAME = "inapp_notifications"
    
    def __init__(self, collection: Optional[Collection] = None):
        self._collection: Collection = collection if collection is not None else get_collection(self.COLLECTION_NAME)
    
    def create_notification(
        self,
        recipient: str,
        category: InAppNotificationCategory,
        title: str,
        message: str,
        module: Optional[Module] = None,
        entity_id: Optional[str] = None
    ) -> InAppNotification:
        """Create a new in-app notification"""
        notification = InAppNotification(
            notification_id=generate_notification_id(),
            recipient=recipient.strip().lower(),
            category=category,
            title=title,
            message=message,
            module=module,
            entity_id=entity_id,
            is_read=False,
            created_at=utc_now()
        )
        
        doc = notification.model_dump(mode="json")
        doc["_id"] = notification.notification_id
        self._collection.insert_one(doc)
        
        logger.info(
            f"Created in-app notification for {recipient}",
            extra={
                "app_module": module.value if module else None,
                "entity_id": entity_id
            }
        )
        return notification
    
    def get_notifications_for_recipient(
        self,
        recipient: str,
        unread_only: bool = False,
        limit: int = 50
    ) -> List[InAppNotification]:
        """Notifications for a user id or email, newest first"""
        query: Dict[str, Any] = {"recipient": recipient.strip().lower()}
        if unread_only:
            query["is_read"] = False
        
        cursor = self._collection.find(query).sort("created_at", DESCENDING).limit(limit)
        
        notifications = []
        for doc in cursor:
            doc.pop("_id", None)
            notifications.append(InAppNotification.model_validate(doc))
        return notifications
