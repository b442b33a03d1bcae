"""Config Repository - Whole-document storage for admin configuration"""
from typing import Any, Dict, Optional
from pymongo.collection import Collection

from .mongo_client import get_collection
from ..domain.enums import ConfigKind, Module
from ..utils.idgen import generate_id
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)


def config_id_for(kind: ConfigKind, module: Optional[Module] = None) -> str:
    """Stable document key, e.g. 'workflow_rules:helpdesk'"""
    scope = Module(module).value if module is not None else "global"
    return f"{ConfigKind(kind).value}:{scope}"


class ConfigRepository:
    """
    Repository for configuration documents
    
    Each configuration (a module's rule set, the approval matrix, the SLA
    thresholds) is one document, so every save replaces it in a single
    write. Concurrent saves are last-write-wins.
    """
    
    def __init__(self, collection: Optional[Collection] = None):
        self._configs: Collection = collection if collection is not None else get_collection("system_config")
    
    def get(self, config_id: str) -> Optional[Dict[str, Any]]:
        """Get the stored payload, or None when never saved"""
        doc = self._configs.find_one({"config_id": config_id})
        if doc is None:
            return None
        return doc.get("payload")
    
    def get_revision(self, config_id: str) -> Optional[str]:
        """Revision stamp of the stored document, None when never saved"""
        doc = self._configs.find_one({"config_id": config_id}, {"revision": 1})
        if doc is None:
            return None
        return doc.get("revision")
    
    def save(
        self,
        config_id: str,
        kind: ConfigKind,
        payload: Dict[str, Any],
        module: Optional[Module] = None,
        actor_email: Optional[str] = None
    ) -> None:
        """Replace the whole configuration document"""
        doc = {
            "_id": config_id,
            "config_id": config_id,
            "kind": ConfigKind(kind).value,
            "module": Module(module).value if module is not None else None,
            "payload": payload,
            "updated_at": utc_now(),
            "revision": generate_id(),
            "updated_by": actor_email,
        }
        self._configs.replace_one({"config_id": config_id}, doc, upsert=True)
        logger.info(
            f"Saved configuration {config_id}",
            extra={"config_id": config_id, "actor_email": actor_email}
        )
    
    def delete(self, config_id: str) -> bool:
        """Remove a stored configuration so defaults apply again"""
        result = self._configs.delete_one({"config_id": config_id})
        if result.deleted_count:
            logger.info(f"Deleted configuration {config_id}", extra={"config_id": config_id})
        return result.deleted_count > 0
