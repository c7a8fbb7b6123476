"""Audit Writer - Fire-and-forget audit log sink"""
from typing import Any, Dict, Optional

from ..domain.models import AuditContext, AuditLogEntry, ProcessingResult, Ticket
from ..domain.enums import AuditLevel, ChannelStatus, TicketEvent
from ..repositories.audit_repo import AuditRepository
from ..utils.idgen import generate_audit_log_id
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuditLogger:
    """
    Write audit log entries (append-only)

    Every public method swallows its own failures: auditing must never
    break the operation being audited. Without a repository entries are
    only emitted to the application log.
    """

    def __init__(self, repo: Optional[AuditRepository] = None):
        self.repo = repo

    def log(
        self,
        action: str,
        description: str,
        level: AuditLevel = AuditLevel.INFO,
        entity: Optional[str] = None,
        entity_id: Optional[str] = None,
        context: Optional[AuditContext] = None,
        metadata: Optional[Dict[str, Any]] = None,
        success: bool = True,
        error_message: Optional[str] = None,
        duration_ms: Optional[float] = None
    ) -> Optional[AuditLogEntry]:
        """Write a single audit entry"""
        try:
            context = context or AuditContext()
            entry = AuditLogEntry(
                id=generate_audit_log_id(),
                level=level,
                action=action,
                entity=entity,
                entity_id=entity_id,
                user_type=context.user_type,
                user_id=context.user_id,
                user_name=context.user_name,
                user_email=context.user_email,
                ip_address=context.ip_address,
                user_agent=context.user_agent,
                description=description,
                metadata=metadata,
                success=success,
                error_message=error_message,
                duration_ms=duration_ms
            )

            logger.info(
                f"[AUDIT] {action}: {description}",
                extra={"status": level.value, "duration_ms": duration_ms}
            )

            if self.repo is not None:
                self.repo.create_entry(entry)
            return entry
        except Exception as e:
            logger.warning(f"Failed to write audit entry '{action}': {e}")
            return None

    def log_channel_update(
        self,
        channel_id: str,
        channel_type: str,
        status: ChannelStatus,
        context: Optional[AuditContext] = None,
        error_message: Optional[str] = None
    ) -> Optional[AuditLogEntry]:
        """Record a channel status change"""
        failed = status == ChannelStatus.ERROR
        return self.log(
            action="channel_status_changed",
            description=f"{channel_type} channel is now {status.value}",
            level=AuditLevel.WARN if failed else AuditLevel.INFO,
            entity="channel",
            entity_id=channel_id,
            context=context,
            metadata={"channel_type": channel_type, "status": status.value},
            success=not failed,
            error_message=error_message
        )

    def log_ticket_automation(
        self,
        ticket: Ticket,
        event: TicketEvent,
        result: ProcessingResult,
        duration_ms: Optional[float] = None
    ) -> Optional[AuditLogEntry]:
        """Record the outcome of running automation over a ticket"""
        return self.log(
            action=f"ticket_automation_{event.value}",
            description=(
                f"Automation matched {len(result.matched_rule_ids)} rule(s) "
                f"for ticket {ticket.ticket_number or ticket.id}"
            ),
            entity="ticket",
            entity_id=ticket.id,
            metadata={
                "matched_rule_ids": result.matched_rule_ids,
                "skipped_rule_ids": result.skipped_rule_ids,
                "assigned_agent_id": result.assigned_agent_id,
                "escalated": result.escalated,
                "auto_responses": len(result.auto_responses),
            },
            duration_ms=duration_ms
        )

    def log_escalation(self, ticket: Ticket, notified: bool) -> Optional[AuditLogEntry]:
        """Record a management escalation"""
        return self.log(
            action="ticket_escalated",
            description=f"Ticket {ticket.ticket_number or ticket.id} escalated to management",
            level=AuditLevel.WARN,
            entity="ticket",
            entity_id=ticket.id,
            metadata={"priority": ticket.priority.value, "management_notified": notified}
        )

    def log_system_event(
        self,
        action: str,
        description: str,
        metadata: Optional[Dict[str, Any]] = None,
        level: AuditLevel = AuditLevel.INFO
    ) -> Optional[AuditLogEntry]:
        """Record a system-initiated event"""
        return self.log(
            action=action,
            description=description,
            level=level,
            entity="system",
            metadata=metadata
        )

    def log_error(
        self,
        action: str,
        error: Exception,
        entity: Optional[str] = None,
        entity_id: Optional[str] = None,
        context: Optional[AuditContext] = None
    ) -> Optional[AuditLogEntry]:
        """Record a failed operation"""
        return self.log(
            action=action,
            description=f"Operation failed: {action}",
            level=AuditLevel.ERROR,
            entity=entity,
            entity_id=entity_id,
            context=context,
            success=False,
            error_message=str(error)
        )
