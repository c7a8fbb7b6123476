"""Automation engine - rule evaluation and agent selection"""
from .rule_engine import RuleEngine, EscalationNotifier
from .rule_store import RuleStore
from .default_rules import build_default_rules
from .condition_evaluator import ConditionEvaluator
from .agent_selector import AgentSelector
from .sentiment import analyze_sentiment
from .audit_writer import AuditLogger

__all__ = [
    "RuleEngine",
    "EscalationNotifier",
    "RuleStore",
    "build_default_rules",
    "ConditionEvaluator",
    "AgentSelector",
    "analyze_sentiment",
    "AuditLogger",
]
