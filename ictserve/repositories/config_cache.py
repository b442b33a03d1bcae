"""Config Cache - Read-through cache in front of system_config

Entries have no TTL. Each entry is stamped with the revision of the stored
document it was built from; a read that presents a different revision
(another process saved, imported or reset) misses and reloads from MongoDB.
Writers in this process also invalidate synchronously.
"""
import threading
from typing import Any, Dict, Optional, Tuple

from ..utils.logger import get_logger

logger = get_logger(__name__)


class ConfigCache:
    """Process-local cache keyed by config_id"""
    
    def __init__(self):
        self._entries: Dict[str, Tuple[Optional[str], Any]] = {}
        self._lock = threading.Lock()
    
    def get(self, key: str, revision: Optional[str] = None) -> Optional[Any]:
        """Cached value, or None when absent or built from another revision"""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        cached_revision, value = entry
        if cached_revision != revision:
            logger.info(f"Cache stale: {key}", extra={"config_id": key})
            return None
        return value
    
    def set(self, key: str, value: Any, revision: Optional[str] = None) -> None:
        with self._lock:
            self._entries[key] = (revision, value)
    
    def invalidate(self, key: str) -> None:
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        if removed:
            logger.info(f"Cache invalidated: {key}", extra={"config_id": key})
    
    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


# Shared by all request-scoped services in this process
config_cache = ConfigCache()
