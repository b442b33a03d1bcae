"""Admin Audit Repository - Append-only trail of configuration commands"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import DESCENDING

from .mongo_client import get_collection
from ..domain.models import ActorContext, AdminAuditEvent
from ..domain.enums import AdminAuditAction, ConfigKind, Module
from ..utils.idgen import generate_audit_event_id
from ..utils.logger import get_logger, get_correlation_id
from ..utils.time import utc_now

logger = get_logger(__name__)


class AdminAuditRepository:
    """Repository for admin audit events (append-only)"""
    
    def __init__(self, collection: Optional[Collection] = None):
        self._audit_events: Collection = collection if collection is not None else get_collection("admin_audit")
    
    def create_event(self, event: AdminAuditEvent) -> AdminAuditEvent:
        """Create an audit event (append-only)"""
        doc = event.model_dump(mode="json")
        doc["_id"] = event.audit_event_id
        
        self._audit_events.insert_one(doc)
        logger.info(
            f"Admin audit: {event.action.value} {event.config_kind.value}",
            extra={
                "app_module": event.module.value if event.module else None,
                "action": event.action.value,
                "actor_email": event.actor_email
            }
        )
        return event
    
    def log_admin_action(
        self,
        action: AdminAuditAction,
        config_kind: ConfigKind,
        summary: str,
        actor: Optional[ActorContext] = None,
        module: Optional[Module] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> AdminAuditEvent:
        """Record an admin command against a configuration"""
        event = AdminAuditEvent(
            audit_event_id=generate_audit_event_id(),
            action=action,
            config_kind=config_kind,
            module=module,
            actor_email=actor.email if actor else None,
            actor_display_name=actor.display_name if actor else None,
            summary=summary,
            details=details or {},
            correlation_id=get_correlation_id(),
            timestamp=utc_now()
        )
        return self.create_event(event)
    
    def get_events(
        self,
        config_kind: Optional[ConfigKind] = None,
        module: Optional[Module] = None,
        actions: Optional[List[AdminAuditAction]] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[AdminAuditEvent]:
        """Audit events, newest first"""
        query: Dict[str, Any] = {}
        if config_kind is not None:
            query["config_kind"] = ConfigKind(config_kind).value
        if module is not None:
            query["module"] = Module(module).value
        if actions:
            query["action"] = {"$in": [a.value for a in actions]}
        
        cursor = self._audit_events.find(query).sort("timestamp", DESCENDING).skip(skip).limit(limit)
        
        events = []
        for doc in cursor:
            doc.pop("_id", None)
            events.append(AdminAuditEvent.model_validate(doc))
        
        return events

