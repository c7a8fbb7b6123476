"""
Ticket Router - Runs automation on ticket lifecycle events

The CRUD layer calls on_ticket_created / on_ticket_updated and commits the
returned TicketUpdate itself. Email auto-responses are only delivered when
the email channel is healthy.
"""
import asyncio
import time
from typing import List, Optional, Set

from .channel_health import ChannelHealthMonitor
from .message_dispatcher import MessageDispatcher
from ..engine.rule_engine import RuleEngine
from ..engine.audit_writer import AuditLogger
from ..domain.models import (
    Agent, DeliveredResponse, EscalateAction, ProcessingResult, RoutingOutcome,
    Ticket, TicketUpdate, ChannelConfig
)
from ..domain.enums import ChannelStatus, ChannelType, TicketEvent
from ..repositories.channel_repo import ChannelConfigRepository
from ..utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_REPLY_SIGNATURE = "Support Team"


class ManagementNotifier:
    """
    Escalation notifier handed to the rule engine

    Emails management in a background task so rule evaluation never waits
    on delivery. Task references are kept until the task finishes.
    """

    def __init__(
        self,
        dispatcher: MessageDispatcher,
        audit: Optional[AuditLogger] = None,
        management_email: Optional[str] = None
    ):
        self.dispatcher = dispatcher
        self.audit = audit
        self.management_email = management_email
        self._tasks: Set[asyncio.Task] = set()

    def __call__(self, ticket: Ticket, action: EscalateAction) -> None:
        notify = bool(self.management_email)
        if self.audit:
            self.audit.log_escalation(ticket, notified=notify)
        if not notify:
            logger.info("No management address configured, escalation not emailed", extra={"ticket_id": ticket.id})
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, escalation not emailed", extra={"ticket_id": ticket.id})
            return

        task = loop.create_task(self.dispatcher.send_escalation_notice(ticket, [self.management_email]))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error:
            logger.error(f"Escalation email failed: {error}")

    @property
    def pending(self) -> int:
        return len(self._tasks)


class TicketRouter:
    """Composition point between ticket events and the automation core"""

    def __init__(
        self,
        engine: RuleEngine,
        health_monitor: ChannelHealthMonitor,
        dispatcher: MessageDispatcher,
        channel_repo: Optional[ChannelConfigRepository] = None,
        audit: Optional[AuditLogger] = None
    ):
        self.engine = engine
        self.health_monitor = health_monitor
        self.dispatcher = dispatcher
        self.channel_repo = channel_repo
        self.audit = audit

    async def on_ticket_created(self, ticket: Ticket, agents: List[Agent]) -> RoutingOutcome:
        """New ticket: derive sentiment, then run automation"""
        sentiment_derived = False
        if ticket.sentiment is None:
            sentiment = self.engine.analyze_sentiment(f"{ticket.subject} {ticket.description}")
            ticket = ticket.model_copy(update={"sentiment": sentiment})
            sentiment_derived = True
        return await self._route(ticket, agents, TicketEvent.CREATED, sentiment_derived)

    async def on_ticket_updated(self, ticket: Ticket, agents: List[Agent]) -> RoutingOutcome:
        """Changed ticket: run automation as-is"""
        return await self._route(ticket, agents, TicketEvent.UPDATED, False)

    async def _route(
        self,
        ticket: Ticket,
        agents: List[Agent],
        event: TicketEvent,
        sentiment_derived: bool
    ) -> RoutingOutcome:
        started = time.perf_counter()
        result = self.engine.process_ticket(ticket, agents)
        update = self.build_update(ticket, result, sentiment_derived)
        delivered = await self._deliver_auto_responses(ticket, result)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)

        if self.audit:
            self.audit.log_ticket_automation(ticket, event, result, duration_ms=duration_ms)

        return RoutingOutcome(
            ticket_id=ticket.id,
            event=event,
            result=result,
            update=update,
            delivered_responses=delivered
        )

    @staticmethod
    def build_update(ticket: Ticket, result: ProcessingResult, sentiment_derived: bool = False) -> TicketUpdate:
        """Mutation for the CRUD layer to commit"""
        update = TicketUpdate()
        if result.assigned_agent_id and not ticket.assigned_agent_id:
            update.assigned_agent_id = result.assigned_agent_id
            update.auto_assigned = True
        if result.escalated and result.escalation_priority and result.escalation_priority != ticket.priority:
            update.priority = result.escalation_priority
        if sentiment_derived:
            update.sentiment = ticket.sentiment
        return update

    async def _deliver_auto_responses(self, ticket: Ticket, result: ProcessingResult) -> List[DeliveredResponse]:
        """Send auto-responses where a healthy outbound channel exists"""
        if not result.auto_responses:
            return []

        deliverable = ticket.channel == ChannelType.EMAIL.value and self._email_channel_connected()

        delivered: List[DeliveredResponse] = []
        for content in result.auto_responses:
            sent = False
            if deliverable:
                try:
                    sent = await self.dispatcher.send_ticket_reply(ticket, content, DEFAULT_REPLY_SIGNATURE)
                except Exception as e:
                    logger.error(f"Auto-response delivery failed: {e}", extra={"ticket_id": ticket.id})
                    if self.audit:
                        self.audit.log_error("auto_response_delivery", e, entity="ticket", entity_id=ticket.id)
            delivered.append(DeliveredResponse(
                channel=ticket.channel,
                recipient=ticket.customer_contact,
                content=content,
                delivered=sent
            ))
        return delivered

    def _email_channel_connected(self) -> bool:
        channel = self._active_email_channel()
        if channel is None:
            return False
        return self.health_monitor.get_health_status(channel) == ChannelStatus.CONNECTED

    def _active_email_channel(self) -> Optional[ChannelConfig]:
        if self.channel_repo is None:
            return None
        try:
            channels = self.channel_repo.find_by_type(ChannelType.EMAIL.value, active_only=True)
        except Exception as e:
            logger.error(f"Failed to load email channel: {e}")
            return None
        return channels[0] if channels else None
