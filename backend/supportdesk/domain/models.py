"""Domain Models - Pydantic schemas for all entities"""
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import (
    TicketStatus, TicketPriority, Sentiment, AgentRole, ChannelStatus,
    SendErrorCategory, AuditLevel, AuditUserType, TicketEvent
)
from ..utils.time import utc_now


# ============================================================================
# Tickets & Agents (owned by the CRUD layer, read by the core)
# ============================================================================

class Ticket(BaseModel):
    """Customer support ticket as seen by the automation core"""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Ticket ID")
    ticket_number: Optional[str] = None
    subject: str = ""
    description: str = ""
    status: TicketStatus = TicketStatus.OPEN
    priority: TicketPriority = TicketPriority.MEDIUM
    channel: str = Field(..., description="email, whatsapp, twitter, facebook, livechat, sms")
    customer_name: Optional[str] = None
    customer_contact: Optional[str] = None
    customer_id: Optional[str] = None
    assigned_agent_id: Optional[str] = None
    auto_assigned: bool = False
    urgency_score: Optional[int] = Field(None, ge=1, le=10, description="1-10, treated as 5 when unset")
    sentiment: Optional[Sentiment] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: Optional[datetime] = None


class Agent(BaseModel):
    """Support agent"""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: AgentRole = AgentRole.AGENT


# ============================================================================
# Automation Rule Conditions (tagged union on "kind")
# ============================================================================

class PriorityCondition(BaseModel):
    """Exact match on ticket priority"""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["priority"] = "priority"
    value: TicketPriority


class ChannelCondition(BaseModel):
    """Channel match - "any", a single channel or a list of channels"""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["channel"] = "channel"
    value: Union[str, List[str]]


class UrgencyScoreCondition(BaseModel):
    """Inclusive range check on the urgency score"""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["urgency_score"] = "urgency_score"
    gte: Optional[int] = None
    lte: Optional[int] = None


class SentimentCondition(BaseModel):
    """Exact match on ticket sentiment"""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["sentiment"] = "sentiment"
    value: Sentiment


class TimeOpenCondition(BaseModel):
    """Milliseconds elapsed since the ticket was created"""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["time_open"] = "time_open"
    gte: int = Field(..., ge=0, description="Minimum elapsed milliseconds")


class IsNewTicketCondition(BaseModel):
    """Ticket created within the new-ticket window (value=False imposes nothing)"""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["is_new_ticket"] = "is_new_ticket"
    value: bool = True


RuleCondition = Annotated[
    Union[
        PriorityCondition,
        ChannelCondition,
        UrgencyScoreCondition,
        SentimentCondition,
        TimeOpenCondition,
        IsNewTicketCondition,
    ],
    Field(discriminator="kind"),
]


# ============================================================================
# Automation Rule Actions (tagged union on "type")
# ============================================================================

class AssignAction(BaseModel):
    """Assign the ticket to an agent chosen by criteria"""
    model_config = ConfigDict(extra="forbid")

    type: Literal["assign"] = "assign"
    criteria: str = "least_loaded_senior_agent"


class SendTemplateAction(BaseModel):
    """Queue a canned auto-response"""
    model_config = ConfigDict(extra="forbid")

    type: Literal["send_template"] = "send_template"
    template_id: str


class EscalateAction(BaseModel):
    """Flag the ticket as escalated"""
    model_config = ConfigDict(extra="forbid")

    type: Literal["escalate"] = "escalate"
    priority: Optional[TicketPriority] = None
    notify_management: bool = False


class AiResponseAction(BaseModel):
    """Suggest a locally generated, tone-aware reply"""
    model_config = ConfigDict(extra="forbid")

    type: Literal["ai_response"] = "ai_response"
    tone: str = "empathetic"
    max_length: Optional[int] = Field(None, ge=1)


RuleAction = Annotated[
    Union[AssignAction, SendTemplateAction, EscalateAction, AiResponseAction],
    Field(discriminator="type"),
]


# Keys accepted from the admin UI's camelCase rule payloads
_LEGACY_KEYS = {
    "isActive": "is_active",
    "createdAt": "created_at",
    "templateId": "template_id",
    "notifyManagement": "notify_management",
    "maxLength": "max_length",
    "urgencyScore": "urgency_score",
    "timeOpen": "time_open",
    "isNewTicket": "is_new_ticket",
}


def _legacy_conditions(raw: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Convert a {field: criteria} condition object into the tagged list form"""
    conditions = []
    for key, criteria in raw.items():
        kind = _LEGACY_KEYS.get(key, key)
        if isinstance(criteria, dict):
            conditions.append({"kind": kind, **criteria})
        else:
            conditions.append({"kind": kind, "value": criteria})
    return conditions


class AutomationRule(BaseModel):
    """Priority-ordered condition -> action pair"""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    conditions: List[RuleCondition] = Field(default_factory=list)
    action: RuleAction
    is_active: bool = True
    priority: int = 1
    created_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="before")
    @classmethod
    def _coerce_legacy_shape(cls, data: Any) -> Any:
        """Accept the {conditions: {...}, actions: {...}} shape used by stored rules"""
        if not isinstance(data, dict):
            return data
        data = {_LEGACY_KEYS.get(k, k): v for k, v in data.items()}
        if isinstance(data.get("conditions"), dict):
            data["conditions"] = _legacy_conditions(data["conditions"])
        if "action" not in data and "actions" in data:
            data["action"] = data.pop("actions")
        if isinstance(data.get("action"), dict):
            data["action"] = {_LEGACY_KEYS.get(k, k): v for k, v in data["action"].items()}
        return data


class AutomationRuleCreate(BaseModel):
    """Admin payload for a new rule"""
    model_config = ConfigDict(extra="ignore")

    name: str
    conditions: List[RuleCondition] = Field(default_factory=list)
    action: RuleAction
    is_active: bool = True
    priority: int = 1


class ProcessingResult(BaseModel):
    """Outcome of running automation rules over one ticket"""
    assigned_agent_id: Optional[str] = None
    auto_responses: List[str] = Field(default_factory=list)
    escalated: bool = False
    escalation_priority: Optional[TicketPriority] = None
    ai_suggestions: List[str] = Field(default_factory=list)
    matched_rule_ids: List[str] = Field(default_factory=list)
    skipped_rule_ids: List[str] = Field(default_factory=list)


class TicketUpdate(BaseModel):
    """Mutation proposed to the CRUD layer"""
    assigned_agent_id: Optional[str] = None
    auto_assigned: Optional[bool] = None
    priority: Optional[TicketPriority] = None
    sentiment: Optional[Sentiment] = None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class DeliveredResponse(BaseModel):
    """Auto-response delivery attempt"""
    channel: str
    recipient: Optional[str] = None
    content: str
    delivered: bool


class RoutingOutcome(BaseModel):
    """Result of routing a ticket through automation"""
    ticket_id: str
    event: TicketEvent
    result: ProcessingResult
    update: TicketUpdate
    delivered_responses: List[DeliveredResponse] = Field(default_factory=list)


# ============================================================================
# Channels
# ============================================================================

class InboundSettings(BaseModel):
    """IMAP/POP3 mailbox settings for email channels"""
    model_config = ConfigDict(extra="ignore")

    server: Optional[str] = None
    port: Optional[int] = None
    protocol: Optional[str] = None  # imap | pop3
    username: Optional[str] = None
    password: Optional[str] = None
    ssl: bool = False
    tls: bool = False


class OutboundSettings(BaseModel):
    """SMTP settings for email channels"""
    model_config = ConfigDict(extra="ignore")

    smtp_host: Optional[str] = None
    smtp_port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    ssl: bool = False
    tls: bool = False
    auth_method: Optional[str] = None  # login | oauth2


class PollingConfig(BaseModel):
    """Inbound email polling configuration"""
    interval: int = 1  # minutes
    enabled: bool = False
    max_emails: int = 50


class ChannelConfig(BaseModel):
    """Persisted configuration + live status for one channel"""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str = ""
    type: str = Field(..., description="email, sms, whatsapp, twitter, facebook")
    status: ChannelStatus = ChannelStatus.DISCONNECTED
    is_active: bool = True
    is_online: bool = False
    config: Dict[str, Any] = Field(default_factory=dict)
    provider: Optional[str] = None
    inbound_settings: Optional[InboundSettings] = None
    outbound_settings: Optional[OutboundSettings] = None
    polling_config: PollingConfig = Field(default_factory=PollingConfig)
    error_message: Optional[str] = None
    last_error_time: Optional[datetime] = None
    last_sync: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ConnectionTestResult(BaseModel):
    """Outcome of a channel connection test"""
    success: bool
    error: Optional[str] = None
    status: ChannelStatus = ChannelStatus.ERROR


# ============================================================================
# Email
# ============================================================================

class EmailData(BaseModel):
    """Outbound email (cc/bcc are comma separated)"""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    to: str
    cc: Optional[str] = None
    bcc: Optional[str] = None
    from_: str = Field(..., alias="from")
    subject: str
    text: str
    html: Optional[str] = None


class SendResult(BaseModel):
    """Uniform result of one provider attempt"""
    provider: str
    success: bool
    error: Optional[str] = None
    status_code: Optional[int] = None
    error_category: Optional[SendErrorCategory] = None
    message_id: Optional[str] = None


class EmailProviderInfo(BaseModel):
    """Active email provider summary"""
    provider: str
    configured: bool


# ============================================================================
# Storage
# ============================================================================

class StorageFile(BaseModel):
    """Streamed storage object"""
    stream: Any = Field(..., description="Iterator of byte chunks")
    content_type: Optional[str] = None
    content_length: Optional[int] = None


# ============================================================================
# Audit
# ============================================================================

class AuditContext(BaseModel):
    """Who performed an audited action"""
    user_type: AuditUserType = AuditUserType.SYSTEM
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class AuditLogEntry(BaseModel):
    """Append-only audit log record"""
    id: str
    level: AuditLevel = AuditLevel.INFO
    action: str
    entity: Optional[str] = None
    entity_id: Optional[str] = None
    user_type: AuditUserType = AuditUserType.SYSTEM
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    description: str
    metadata: Optional[Dict[str, Any]] = None
    success: bool = True
    error_message: Optional[str] = None
    duration_ms: Optional[float] = None
    created_at: datetime = Field(default_factory=utc_now)
