"""Channel Repository - Data access for channel configurations"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import ASCENDING

from .mongo_client import CHANNEL_CONFIGS, get_collection
from ..domain.models import ChannelConfig
from ..domain.errors import ChannelNotFoundError
from ..utils.time import ensure_utc, parse_iso, utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Stored as naive datetimes by pymongo, or as ISO strings by older writers
TIMESTAMP_FIELDS = ("last_sync", "last_error_time", "created_at", "updated_at")


def channel_from_document(doc: Dict[str, Any]) -> ChannelConfig:
    """Build a ChannelConfig from a raw document with UTC-aware timestamps"""
    fields = {key: value for key, value in doc.items() if key != "_id"}
    for key in TIMESTAMP_FIELDS:
        value = fields.get(key)
        if isinstance(value, str):
            fields[key] = parse_iso(value) if value else None
        elif isinstance(value, datetime):
            fields[key] = ensure_utc(value)
    return ChannelConfig.model_validate(fields)


class ChannelConfigRepository:
    """Repository for channel configuration operations"""

    def __init__(self, collection: Optional[Collection] = None):
        self._channels: Collection = collection if collection is not None else get_collection(CHANNEL_CONFIGS)

    def get_channel(self, channel_id: str) -> Optional[ChannelConfig]:
        """Get channel by ID"""
        doc = self._channels.find_one({"id": channel_id})
        return channel_from_document(doc) if doc else None

    def get_channel_or_raise(self, channel_id: str) -> ChannelConfig:
        """Get channel by ID or raise error"""
        channel = self.get_channel(channel_id)
        if not channel:
            raise ChannelNotFoundError(f"Channel {channel_id} not found")
        return channel

    def find_by_type(self, channel_type: str, active_only: bool = True) -> List[ChannelConfig]:
        """Get channels of one type, oldest first"""
        query: Dict[str, Any] = {"type": channel_type}
        if active_only:
            query["is_active"] = True

        cursor = self._channels.find(query).sort("created_at", ASCENDING)
        return [channel_from_document(doc) for doc in cursor]

    def update_channel(self, channel_id: str, updates: Dict[str, Any]) -> bool:
        """Apply a partial update (enum values must already be plain strings)"""
        fields = dict(updates)
        fields["updated_at"] = utc_now()

        result = self._channels.update_one({"id": channel_id}, {"$set": fields})
        if result.matched_count == 0:
            return False

        logger.info(
            f"Updated channel {channel_id}: {sorted(updates.keys())}",
            extra={"channel_id": channel_id, "status": fields.get("status")}
        )
        return True
