"""Automation Rule Repository - Persistence for admin-defined rules"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import ASCENDING

from .mongo_client import AUTOMATION_RULES, get_collection
from ..domain.models import AutomationRule
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AutomationRuleRepository:
    """
    Repository for automation rules

    Documents are returned raw so that the rule store can validate each one
    and skip malformed records instead of failing the whole load.
    """

    def __init__(self, collection: Optional[Collection] = None):
        self._rules: Collection = collection if collection is not None else get_collection(AUTOMATION_RULES)

    def list_rule_documents(self) -> List[Dict[str, Any]]:
        """Get all stored rule documents ordered by priority"""
        cursor = self._rules.find({}).sort("priority", ASCENDING)

        docs = []
        for doc in cursor:
            doc.pop("_id", None)
            docs.append(doc)
        return docs

    def save_rule(self, rule: AutomationRule) -> AutomationRule:
        """Insert or replace a rule"""
        doc = rule.model_dump(mode="json")
        doc["_id"] = rule.id

        self._rules.replace_one({"_id": rule.id}, doc, upsert=True)
        logger.info(f"Saved automation rule: {rule.name}", extra={"rule_id": rule.id})
        return rule

    def delete_rule(self, rule_id: str) -> bool:
        """Delete a rule by ID"""
        result = self._rules.delete_one({"_id": rule_id})
        if result.deleted_count:
            logger.info(f"Deleted automation rule: {rule_id}", extra={"rule_id": rule_id})
        return result.deleted_count > 0
