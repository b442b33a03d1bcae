"""User Repository - Approver directory"""
from typing import Any, Dict, List, Optional, Sequence
from pymongo.collection import Collection
from pymongo import ASCENDING

from .mongo_client import get_collection
from ..domain.models import ApproverUser
from ..utils.logger import get_logger

logger = get_logger(__name__)


class UserRepository:
    """Read access to portal users holding approving roles"""
    
    def __init__(self, collection: Optional[Collection] = None):
        self._users: Collection = collection if collection is not None else get_collection("users")
    
    def list_active_users(
        self,
        roles: Optional[Sequence[str]] = None,
        grades: Optional[Sequence[str]] = None
    ) -> List[ApproverUser]:
        """Active users, optionally filtered by role and grade"""
        query: Dict[str, Any] = {"is_active": True}
        if roles:
            query["role"] = {"$in": list(roles)}
        if grades:
            query["grade"] = {"$in": [str(g) for g in grades]}
        
        cursor = self._users.find(query).sort("user_id", ASCENDING)
        users = []
        for doc in cursor:
            doc.pop("_id", None)
            users.append(ApproverUser.model_validate(doc))
        return users
    
    def get_user(self, user_id: str) -> Optional[ApproverUser]:
        doc = self._users.find_one({"user_id": user_id})
        if doc is None:
            return None
        doc.pop("_id", None)
        return ApproverUser.model_validate(doc)
