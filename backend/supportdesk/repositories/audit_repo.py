"""Audit Repository - Data access for audit log entries"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import DESCENDING

from .mongo_client import AUDIT_LOGS, get_collection
from ..domain.models import AuditLogEntry
from ..domain.enums import AuditLevel
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuditRepository:
    """Repository for audit log operations (append-only)"""

    def __init__(self, collection: Optional[Collection] = None):
        self._audit_logs: Collection = collection if collection is not None else get_collection(AUDIT_LOGS)

    def create_entry(self, entry: AuditLogEntry) -> AuditLogEntry:
        """Create an audit entry (append-only)"""
        doc = entry.model_dump(mode="json")
        doc["_id"] = entry.id

        self._audit_logs.insert_one(doc)
        logger.debug(
            f"Created audit entry: {entry.action}",
            extra={"status": entry.level.value}
        )
        return entry

    def get_entries_for_entity(
        self,
        entity: str,
        entity_id: str,
        skip: int = 0,
        limit: int = 100
    ) -> List[AuditLogEntry]:
        """Get audit entries for one entity, newest first"""
        cursor = self._audit_logs.find(
            {"entity": entity, "entity_id": entity_id}
        ).sort("created_at", DESCENDING).skip(skip).limit(limit)

        entries = []
        for doc in cursor:
            doc.pop("_id", None)
            entries.append(AuditLogEntry.model_validate(doc))
        return entries

    def get_recent_entries(
        self,
        levels: Optional[List[AuditLevel]] = None,
        limit: int = 100
    ) -> List[AuditLogEntry]:
        """Get the most recent audit entries"""
        query: Dict[str, Any] = {}
        if levels:
            query["level"] = {"$in": [level.value for level in levels]}

        cursor = self._audit_logs.find(query).sort("created_at", DESCENDING).limit(limit)

        entries = []
        for doc in cursor:
            doc.pop("_id", None)
            entries.append(AuditLogEntry.model_validate(doc))
        return entries
