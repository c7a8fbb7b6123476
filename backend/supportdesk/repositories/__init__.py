"""Repository modules - Data access layer"""
from .mongo_client import get_database, get_collection, create_indexes, close_connection
from .channel_repo import ChannelConfigRepository
from .rule_repo import AutomationRuleRepository
from .audit_repo import AuditRepository

__all__ = [
    "get_database",
    "get_collection",
    "create_indexes",
    "close_connection",
    "ChannelConfigRepository",
    "AutomationRuleRepository",
    "AuditRepository",
]
