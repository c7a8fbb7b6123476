"""Automation Rules API - Manage the rule set"""
from typing import Any, Dict, List
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from ..deps import get_rule_store
from ...domain.models import AutomationRule, AutomationRuleCreate
from ...domain.errors import RuleNotFoundError
from ...engine.rule_store import RuleStore
from ...utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


class DeleteRuleResponse(BaseModel):
    success: bool


@router.get("/rules", response_model=List[AutomationRule])
async def list_rules(store: RuleStore = Depends(get_rule_store)):
    """All rules, active or not"""
    return store.get_rules()


@router.post("/rules", response_model=AutomationRule, status_code=status.HTTP_201_CREATED)
async def create_rule(
    request: AutomationRuleCreate,
    store: RuleStore = Depends(get_rule_store)
):
    """Create a rule; the id is assigned here"""
    return store.add_rule(request)


@router.patch("/rules/{rule_id}", response_model=AutomationRule)
async def update_rule(
    rule_id: str,
    updates: Dict[str, Any],
    store: RuleStore = Depends(get_rule_store)
):
    """
    Partially update a rule.

    The merged rule is re-validated; an invalid result leaves the stored
    rule untouched.
    """
    if not store.update_rule(rule_id, updates):
        raise RuleNotFoundError(f"Rule {rule_id} not found", details={"rule_id": rule_id})
    return store.get_rule(rule_id)


@router.delete("/rules/{rule_id}", response_model=DeleteRuleResponse)
async def delete_rule(
    rule_id: str,
    store: RuleStore = Depends(get_rule_store)
):
    if not store.delete_rule(rule_id):
        raise RuleNotFoundError(f"Rule {rule_id} not found", details={"rule_id": rule_id})
    return DeleteRuleResponse(success=True)
