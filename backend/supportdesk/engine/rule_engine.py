"""
Rule Engine - Evaluate automation rules against tickets

Given a ticket and the agent roster, the engine walks the active rules in
priority order and turns every matching rule's action into a decision:
assignment, canned auto-responses, escalation or suggested replies.

The engine only proposes. Committing an assignment or a priority change is
left to the caller.
"""
from datetime import datetime
from typing import Callable, List, Optional

from .agent_selector import AgentSelector
from .condition_evaluator import ConditionEvaluator
from .rule_store import RuleStore
from .sentiment import analyze_sentiment as _analyze_sentiment
from ..domain.models import (
    Agent, AutomationRule, ProcessingResult, Ticket,
    AssignAction, SendTemplateAction, EscalateAction, AiResponseAction
)
from ..domain.enums import Sentiment
from ..domain.errors import RuleValidationError
from ..templates.response_templates import get_response_template, generate_ai_response
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Called with the ticket and the escalate action that fired
EscalationNotifier = Callable[[Ticket, EscalateAction], None]


class RuleEngine:
    """
    Automation rule engine

    Holds no per-ticket state, so one instance serves concurrent requests.
    Rules are read from the store as a snapshot at the start of each call.
    """

    def __init__(
        self,
        rule_store: RuleStore,
        selector: Optional[AgentSelector] = None,
        notifier: Optional[EscalationNotifier] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.rule_store = rule_store
        self.selector = selector or AgentSelector()
        self.notifier = notifier
        self.clock = clock
        self.evaluator = ConditionEvaluator()

    def process_ticket(self, ticket: Ticket, agents: List[Agent]) -> ProcessingResult:
        """
        Run all active rules against a ticket

        Args:
            ticket: Ticket to evaluate
            agents: Agent roster for assign actions

        Returns:
            ProcessingResult (never raises; broken rules are skipped)
        """
        result = ProcessingResult()
        now = self.clock()

        # sorted() is stable: equal priorities keep definition order
        rules = sorted(
            (rule for rule in self.rule_store.get_rules() if rule.is_active),
            key=lambda rule: rule.priority
        )

        for rule in rules:
            try:
                if not self.evaluator.evaluate(rule.conditions, ticket, now):
                    continue
                self._execute_action(rule, ticket, agents, result)
                result.matched_rule_ids.append(rule.id)
            except Exception as e:
                result.skipped_rule_ids.append(rule.id)
                logger.warning(
                    f"Skipping automation rule '{rule.name}': {e}",
                    extra={"rule_id": rule.id, "ticket_id": ticket.id}
                )

        logger.info(
            f"Processed ticket with {len(result.matched_rule_ids)} matching rule(s)",
            extra={"ticket_id": ticket.id, "agent_id": result.assigned_agent_id}
        )
        return result

    def analyze_sentiment(self, text: str) -> Sentiment:
        """Keyword sentiment for ticket text"""
        return _analyze_sentiment(text)

    # =========================================================================
    # Action dispatch
    # =========================================================================

    def _execute_action(
        self,
        rule: AutomationRule,
        ticket: Ticket,
        agents: List[Agent],
        result: ProcessingResult
    ) -> None:
        action = rule.action

        if isinstance(action, AssignAction):
            # At most one assignment, and never over an existing one
            if ticket.assigned_agent_id or result.assigned_agent_id:
                return
            agent_id = self.selector.find_best_agent(action.criteria, agents, ticket)
            if agent_id:
                result.assigned_agent_id = agent_id
                logger.info(
                    f"Rule '{rule.name}' assigned ticket",
                    extra={"rule_id": rule.id, "ticket_id": ticket.id, "agent_id": agent_id}
                )

        elif isinstance(action, SendTemplateAction):
            template = get_response_template(action.template_id)
            if template:
                result.auto_responses.append(template)

        elif isinstance(action, EscalateAction):
            result.escalated = True
            if action.priority:
                result.escalation_priority = action.priority
            if action.notify_management:
                self._notify_management(ticket, action, rule)

        elif isinstance(action, AiResponseAction):
            result.ai_suggestions.append(
                generate_ai_response(ticket, action.tone, action.max_length)
            )

        else:
            raise RuleValidationError(
                f"Unsupported action: {type(action).__name__}",
                details={"rule_id": rule.id}
            )

    def _notify_management(self, ticket: Ticket, action: EscalateAction, rule: AutomationRule) -> None:
        """Fire-and-forget notifier call"""
        if self.notifier is None:
            return
        try:
            self.notifier(ticket, action)
        except Exception as e:
            logger.error(
                f"Escalation notifier failed: {e}",
                extra={"rule_id": rule.id, "ticket_id": ticket.id}
            )
