"""
MongoDB Client - Shared connection for the automation repositories

One client per process. Repositories ask for their collection by name;
index definitions for those collections live in INDEXES below.
"""
from typing import Any, Dict, List, Optional, Tuple, Union
from pymongo import MongoClient
from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, PyMongoError

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

CHANNEL_CONFIGS = "channel_configs"
AUTOMATION_RULES = "automation_rules"
AUDIT_LOGS = "audit_logs"

IndexKeys = Union[str, List[Tuple[str, int]]]

# collection -> [(keys, options)]
INDEXES: Dict[str, List[Tuple[IndexKeys, Dict[str, Any]]]] = {
    CHANNEL_CONFIGS: [
        ("id", {"unique": True}),
        ([("type", ASCENDING), ("is_active", ASCENDING)], {}),
    ],
    AUTOMATION_RULES: [
        ("id", {"unique": True}),
        ("priority", {}),
    ],
    AUDIT_LOGS: [
        ("id", {"unique": True}),
        ([("entity", ASCENDING), ("entity_id", ASCENDING), ("created_at", DESCENDING)], {}),
        ("created_at", {"background": True}),
    ],
}

_client: Optional[MongoClient] = None


def get_client() -> MongoClient:
    """
    Connect lazily and verify the server answers

    Raises:
        ConnectionFailure: Server not reachable within the selection timeout
    """
    global _client
    if _client is not None:
        return _client

    client = MongoClient(
        settings.mongo_uri,
        serverSelectionTimeoutMS=5000,
        connectTimeoutMS=5000,
        socketTimeoutMS=30000,
    )
    try:
        client.admin.command("ping")
    except ConnectionFailure as e:
        client.close()
        logger.error(f"MongoDB connection failed: {e}")
        raise

    logger.info(f"Connected to MongoDB, database {settings.mongo_db}")
    _client = client
    return _client


def get_database() -> Database:
    return get_client()[settings.mongo_db]


def get_collection(name: str) -> Collection:
    return get_database()[name]


def close_connection() -> None:
    """Close the shared client if one was opened"""
    global _client
    if _client is None:
        return
    _client.close()
    _client = None
    logger.info("MongoDB connection closed")


def create_indexes() -> None:
    """Ensure every index in INDEXES exists"""
    db = get_database()
    for collection_name, indexes in INDEXES.items():
        collection = db[collection_name]
        for keys, options in indexes:
            collection.create_index(keys, **options)
        logger.info(f"Indexes ensured on {collection_name} ({len(indexes)})")


def health_check() -> Dict[str, Any]:
    """Ping the server and report which automation collections exist"""
    try:
        db = get_database()
        db.command("ping")
        existing = set(db.list_collection_names())
    except PyMongoError as e:
        logger.error(f"MongoDB health check failed: {e}")
        return {"status": "unhealthy", "database": settings.mongo_db, "error": str(e)}

    return {
        "status": "healthy",
        "database": settings.mongo_db,
        "collections": {name: name in existing for name in INDEXES},
    }
