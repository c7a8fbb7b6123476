"""In-memory stand-ins for the MongoDB repositories, plus ticket factories"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from supportdesk.domain.enums import TicketPriority
from supportdesk.domain.errors import ChannelNotFoundError
from supportdesk.domain.models import AuditLogEntry, AutomationRule, ChannelConfig, Ticket

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def make_ticket(**overrides) -> Ticket:
    """Ticket created at NOW unless overridden"""
    fields = {
        "id": "ticket-1",
        "ticket_number": "TKT-0001",
        "subject": "Login Problem",
        "description": "I cannot log in",
        "priority": TicketPriority.MEDIUM,
        "channel": "email",
        "customer_name": "Dana",
        "customer_contact": "dana@example.com",
        "created_at": NOW,
    }
    fields.update(overrides)
    return Ticket(**fields)


def minutes_ago(minutes: int) -> datetime:
    return NOW - timedelta(minutes=minutes)


class FakeChannelRepository:
    def __init__(self, channels: Optional[List[ChannelConfig]] = None):
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.updates: List[Dict[str, Any]] = []
        self.fail_updates = False
        for channel in channels or []:
            self.docs[channel.id] = channel.model_dump()

    def get_channel(self, channel_id: str) -> Optional[ChannelConfig]:
        doc = self.docs.get(channel_id)
        return ChannelConfig.model_validate(doc) if doc else None

    def get_channel_or_raise(self, channel_id: str) -> ChannelConfig:
        channel = self.get_channel(channel_id)
        if not channel:
            raise ChannelNotFoundError(f"Channel {channel_id} not found")
        return channel

    def find_by_type(self, channel_type: str, active_only: bool = True) -> List[ChannelConfig]:
        return [
            ChannelConfig.model_validate(doc)
            for doc in self.docs.values()
            if doc["type"] == channel_type and (doc["is_active"] or not active_only)
        ]

    def update_channel(self, channel_id: str, updates: Dict[str, Any]) -> bool:
        if self.fail_updates:
            raise RuntimeError("database unavailable")
        self.updates.append({"id": channel_id, **updates})
        if channel_id not in self.docs:
            return False
        self.docs[channel_id].update(updates)
        return True

    def statuses(self, channel_id: str) -> List[str]:
        return [update["status"] for update in self.updates if update["id"] == channel_id and "status" in update]


class FakeRuleRepository:
    def __init__(self, documents: Optional[List[Dict[str, Any]]] = None):
        self.documents = list(documents or [])
        self.saved: Dict[str, AutomationRule] = {}
        self.deleted: List[str] = []

    def list_rule_documents(self) -> List[Dict[str, Any]]:
        return list(self.documents)

    def save_rule(self, rule: AutomationRule) -> AutomationRule:
        self.saved[rule.id] = rule
        return rule

    def delete_rule(self, rule_id: str) -> bool:
        self.deleted.append(rule_id)
        return self.saved.pop(rule_id, None) is not None


class FakeAuditRepository:
    def __init__(self):
        self.entries: List[AuditLogEntry] = []

    def create_entry(self, entry: AuditLogEntry) -> AuditLogEntry:
        self.entries.append(entry)
        return entry

    def actions(self) -> List[str]:
        return [entry.action for entry in self.entries]
