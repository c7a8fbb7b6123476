"""Condition Evaluator - Safe evaluation of automation rule conditions"""
from datetime import datetime
from typing import List

from ..domain.models import (
    Ticket, RuleCondition, PriorityCondition, ChannelCondition,
    UrgencyScoreCondition, SentimentCondition, TimeOpenCondition,
    IsNewTicketCondition
)
from ..domain.errors import RuleValidationError
from ..utils.time import milliseconds_since
from ..utils.logger import get_logger

logger = get_logger(__name__)

ANY_CHANNEL = "any"
NEW_TICKET_WINDOW_MS = 5 * 60 * 1000
DEFAULT_URGENCY_SCORE = 5


class ConditionEvaluator:
    """
    Evaluate rule conditions against a ticket

    Conditions combine with AND semantics. An empty condition list always
    matches. Unknown condition variants raise RuleValidationError so the
    caller can skip the offending rule.
    """

    def evaluate(
        self,
        conditions: List[RuleCondition],
        ticket: Ticket,
        now: datetime
    ) -> bool:
        """
        Evaluate a condition list

        Args:
            conditions: Typed conditions of one rule
            ticket: Ticket under evaluation
            now: Evaluation instant (shared by every rule of one call)

        Returns:
            True if every condition matches
        """
        for condition in conditions:
            if not self._evaluate_single(condition, ticket, now):
                return False
        return True

    def _evaluate_single(
        self,
        condition: RuleCondition,
        ticket: Ticket,
        now: datetime
    ) -> bool:
        """Evaluate a single condition"""
        if isinstance(condition, PriorityCondition):
            return ticket.priority == condition.value

        elif isinstance(condition, ChannelCondition):
            return self._match_channel(condition.value, ticket.channel)

        elif isinstance(condition, UrgencyScoreCondition):
            score = ticket.urgency_score or DEFAULT_URGENCY_SCORE
            if condition.gte is not None and score < condition.gte:
                return False
            if condition.lte is not None and score > condition.lte:
                return False
            return True

        elif isinstance(condition, SentimentCondition):
            return ticket.sentiment == condition.value

        elif isinstance(condition, TimeOpenCondition):
            return milliseconds_since(ticket.created_at, now) >= condition.gte

        elif isinstance(condition, IsNewTicketCondition):
            if not condition.value:
                return True
            return milliseconds_since(ticket.created_at, now) <= NEW_TICKET_WINDOW_MS

        raise RuleValidationError(
            f"Unsupported condition: {type(condition).__name__}",
            details={"condition": repr(condition)}
        )

    def _match_channel(self, expected, channel: str) -> bool:
        """Channel sentinel, single value or list membership"""
        if isinstance(expected, list):
            return channel in expected
        if expected == ANY_CHANNEL:
            return True
        return expected == channel
