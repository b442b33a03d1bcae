"""Entity Repository - Tickets, loans and assets acted on by rules"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import ASCENDING

from .mongo_client import get_collection
from ..domain.enums import Module
from ..domain.errors import EntityNotFoundError
from ..domain.vocabulary import MODULE_COLLECTIONS
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)

OPEN_TICKET_STATUSES = ["open", "assigned", "in_progress"]


class EntityRepository:
    """
    Minimal access to the module entities

    Only the fields rule actions may change are ever written.
    """
    
    def __init__(self, collections: Optional[Dict[Module, Collection]] = None):
        self._collections = collections
    
    def _collection(self, module: Module) -> Collection:
        module = Module(module)
        if self._collections is not None:
            return self._collections[module]
        return get_collection(MODULE_COLLECTIONS[module])
    
    def get(self, module: Module, entity_id: str) -> Dict[str, Any]:
        doc = self._collection(module).find_one({"id": entity_id})
        if doc is None:
            raise EntityNotFoundError(
                f"{Module(module).value} entity {entity_id} not found",
                details={"entity_id": entity_id, "module": Module(module).value}
            )
        doc.pop("_id", None)
        return doc
    
    def update_fields(self, module: Module, entity_id: str, fields: Dict[str, Any]) -> None:
        """Set fields on an entity"""
        updates = dict(fields)
        updates["updated_at"] = utc_now()
        result = self._collection(module).update_one({"id": entity_id}, {"$set": updates})
        if result.matched_count == 0:
            raise EntityNotFoundError(
                f"{Module(module).value} entity {entity_id} not found",
                details={"entity_id": entity_id, "module": Module(module).value}
            )
        logger.info(
            f"Updated {', '.join(fields)} on {entity_id}",
            extra={"app_module": Module(module).value, "entity_id": entity_id}
        )
    
    def list_open_tickets(self, limit: int = 500) -> List[Dict[str, Any]]:
        """Helpdesk tickets still inside their SLA lifecycle, oldest first"""
        cursor = self._collection(Module.HELPDESK).find(
            {"status": {"$in": OPEN_TICKET_STATUSES}}
        ).sort("created_at", ASCENDING).limit(limit)
        
        tickets = []
        for doc in cursor:
            doc.pop("_id", None)
            tickets.append(doc)
        return tickets
    
    def list_tickets(self, limit: int = 1000) -> List[Dict[str, Any]]:
        """All helpdesk tickets, used for compliance reports"""
        cursor = self._collection(Module.HELPDESK).find({}).sort("created_at", ASCENDING).limit(limit)
        tickets = []
        for doc in cursor:
            doc.pop("_id", None)
            tickets.append(doc)
        return tickets
