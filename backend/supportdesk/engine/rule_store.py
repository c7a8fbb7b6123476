"""Rule Store - Ordered automation rules with admin CRUD"""
import threading
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..domain.models import AutomationRule, AutomationRuleCreate
from ..domain.errors import RuleValidationError
from ..repositories.rule_repo import AutomationRuleRepository
from ..utils.idgen import generate_rule_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class RuleStore:
    """
    Holds the automation rule list

    Rules keep their definition order; the engine sorts by priority on
    every call. Mutations swap the list under a lock, so readers always
    see a complete snapshot. With a repository, every change is written
    through; repository failures are logged and never raised.
    """

    def __init__(
        self,
        rules: Optional[Iterable[AutomationRule]] = None,
        repo: Optional[AutomationRuleRepository] = None
    ):
        self._rules: List[AutomationRule] = list(rules or [])
        self._lock = threading.Lock()
        self.repo = repo

    def get_rules(self) -> List[AutomationRule]:
        """Snapshot of the current rules"""
        with self._lock:
            return list(self._rules)

    def get_rule(self, rule_id: str) -> Optional[AutomationRule]:
        """Get rule by ID"""
        for rule in self.get_rules():
            if rule.id == rule_id:
                return rule
        return None

    def add_rule(self, data: Union[AutomationRuleCreate, Dict[str, Any]]) -> AutomationRule:
        """
        Create a rule with a generated id and creation time

        Raises:
            RuleValidationError: Malformed conditions or action
        """
        if isinstance(data, AutomationRuleCreate):
            payload = data.model_dump()
        else:
            payload = dict(data)
        payload["id"] = generate_rule_id()
        payload["created_at"] = utc_now()

        rule = self._validate(payload)
        with self._lock:
            self._rules = self._rules + [rule]

        logger.info(f"Added automation rule: {rule.name}", extra={"rule_id": rule.id})
        self._persist(rule)
        return rule

    def update_rule(self, rule_id: str, updates: Dict[str, Any]) -> bool:
        """
        Merge updates into an existing rule

        Returns:
            False if the rule does not exist

        Raises:
            RuleValidationError: The merged rule is malformed
        """
        with self._lock:
            for index, rule in enumerate(self._rules):
                if rule.id != rule_id:
                    continue
                payload = rule.model_dump()
                payload.update({k: v for k, v in updates.items() if k not in ("id", "created_at")})
                updated = self._validate(payload)
                rules = list(self._rules)
                rules[index] = updated
                self._rules = rules
                break
            else:
                return False

        logger.info(f"Updated automation rule: {rule_id}", extra={"rule_id": rule_id})
        self._persist(updated)
        return True

    def delete_rule(self, rule_id: str) -> bool:
        """Remove a rule; False if it does not exist"""
        with self._lock:
            remaining = [rule for rule in self._rules if rule.id != rule_id]
            if len(remaining) == len(self._rules):
                return False
            self._rules = remaining

        logger.info(f"Deleted automation rule: {rule_id}", extra={"rule_id": rule_id})
        if self.repo is not None:
            try:
                self.repo.delete_rule(rule_id)
            except Exception as e:
                logger.error(f"Failed to delete persisted rule: {e}", extra={"rule_id": rule_id})
        return True

    def load_rules(self, raw_rules: Iterable[Dict[str, Any]]) -> int:
        """
        Merge persisted rules into the store

        A stored rule replaces an existing rule with the same id, otherwise
        it is appended. Malformed records are logged and skipped.

        Returns:
            Number of rules loaded
        """
        loaded: List[AutomationRule] = []
        for raw in raw_rules:
            try:
                loaded.append(self._validate(raw))
            except RuleValidationError as e:
                logger.warning(
                    f"Skipping malformed stored rule: {e.message}",
                    extra={"rule_id": raw.get("id") if isinstance(raw, dict) else None}
                )

        with self._lock:
            by_id = {rule.id: rule for rule in loaded}
            merged = [by_id.pop(rule.id, rule) for rule in self._rules]
            merged.extend(rule for rule in loaded if rule.id in by_id)
            self._rules = merged

        logger.info(f"Loaded {len(loaded)} stored automation rule(s)")
        return len(loaded)

    def _validate(self, payload: Any) -> AutomationRule:
        try:
            return AutomationRule.model_validate(payload)
        except PydanticValidationError as e:
            raise RuleValidationError(
                "Invalid automation rule",
                details={"errors": e.errors(include_url=False, include_context=False, include_input=False)}
            )

    def _persist(self, rule: AutomationRule) -> None:
        if self.repo is None:
            return
        try:
            self.repo.save_rule(rule)
        except Exception as e:
            logger.error(f"Failed to persist rule: {e}", extra={"rule_id": rule.id})
