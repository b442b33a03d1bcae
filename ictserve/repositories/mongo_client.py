"""MongoDB Client - Connection and Collection Management"""
from typing import Any, Dict, Optional
from pymongo import MongoClient as PyMongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure, PyMongoError

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Global client instance
_client: Optional[PyMongoClient] = None
_database: Optional[Database] = None


def get_client() -> PyMongoClient:
    """Get or create MongoDB client"""
    global _client
    if _client is None:
        logger.info(f"Connecting to MongoDB: {settings.mongo_uri}")
        _client = PyMongoClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=30000,
            tz_aware=True,
        )
        try:
            _client.admin.command("ping")
            logger.info("MongoDB connection successful")
        except ConnectionFailure as e:
            logger.error(f"MongoDB connection failed: {e}")
            raise
    return _client


def get_database() -> Database:
    """Get the application database"""
    global _database
    if _database is None:
        client = get_client()
        _database = client[settings.mongo_db]
        logger.info(f"Using database: {settings.mongo_db}")
    return _database


def get_collection(name: str) -> Collection:
    """Get a collection from the database"""
    return get_database()[name]


def close_connection() -> None:
    """Close MongoDB connection"""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


def create_indexes() -> None:
    """Create all required indexes"""
    db = get_database()
    logger.info("Creating MongoDB indexes...")
    
    # Configuration documents (rule sets, approval matrix, SLA thresholds)
    system_config = db["system_config"]
    system_config.create_index("config_id", unique=True)
    system_config.create_index("kind")
    
    # Admin audit trail
    admin_audit = db["admin_audit"]
    admin_audit.create_index("audit_event_id", unique=True)
    admin_audit.create_index([("timestamp", DESCENDING)])
    admin_audit.create_index([("config_kind", ASCENDING), ("module", ASCENDING)])
    admin_audit.create_index("correlation_id")
    
    # Notification outbox
    notification_outbox = db["notification_outbox"]
    notification_outbox.create_index("notification_id", unique=True)
    notification_outbox.create_index([("status", ASCENDING), ("created_at", ASCENDING)])
    notification_outbox.create_index("dedupe_key", sparse=True)
    
    # Notification bell
    inapp_notifications = db["inapp_notifications"]
    inapp_notifications.create_index([("recipient", ASCENDING), ("created_at", DESCENDING)])
    
    # Entities acted on by rules
    tickets = db["helpdesk_tickets"]
    tickets.create_index("id", unique=True)
    tickets.create_index("status")
    db["loan_applications"].create_index("id", unique=True)
    db["assets"].create_index("id", unique=True)
    
    # Approver directory
    users = db["users"]
    users.create_index("user_id", unique=True)
    users.create_index([("role", ASCENDING), ("grade", ASCENDING)])
    
    logger.info("MongoDB indexes created successfully")


def health_check() -> Dict[str, Any]:
    """Check MongoDB health"""
    try:
        client = get_client()
        client.admin.command("ping")
        return {
            "status": "healthy",
            "database": settings.mongo_db,
            "connection": "ok"
        }
    except PyMongoError as e:
        logger.error(f"MongoDB health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": settings.mongo_db,
            "error": str(e)
        }
