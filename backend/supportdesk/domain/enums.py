"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class TicketStatus(str, Enum):
    """Ticket lifecycle status"""
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    """Ticket priority"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Sentiment(str, Enum):
    """Keyword-derived customer sentiment"""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class AgentRole(str, Enum):
    """Agent roles - availability is implied by role only"""
    AGENT = "agent"
    SENIOR_AGENT = "senior_agent"
    LEAD_AGENT = "lead_agent"
    ADMIN = "admin"


# ============================================================================
# Automation
# ============================================================================

class ConditionKind(str, Enum):
    """Automation rule condition variants"""
    PRIORITY = "priority"
    CHANNEL = "channel"
    URGENCY_SCORE = "urgency_score"
    SENTIMENT = "sentiment"
    TIME_OPEN = "time_open"
    IS_NEW_TICKET = "is_new_ticket"


class ActionType(str, Enum):
    """Automation rule action variants"""
    ASSIGN = "assign"
    SEND_TEMPLATE = "send_template"
    ESCALATE = "escalate"
    AI_RESPONSE = "ai_response"


class AssignmentCriteria(str, Enum):
    """Agent selection strategies for the assign action"""
    LEAST_LOADED_SENIOR_AGENT = "least_loaded_senior_agent"
    ROUND_ROBIN = "round_robin"
    PRIORITY_BASED = "priority_based"


class ResponseTone(str, Enum):
    """Tone for locally generated response suggestions"""
    EMPATHETIC = "empathetic"
    PROFESSIONAL = "professional"
    FRIENDLY = "friendly"


class TicketEvent(str, Enum):
    """Ticket lifecycle events that trigger automation"""
    CREATED = "created"
    UPDATED = "updated"


# ============================================================================
# Channels
# ============================================================================

class ChannelType(str, Enum):
    """Supported communication channels"""
    EMAIL = "email"
    SMS = "sms"
    WHATSAPP = "whatsapp"
    TWITTER = "twitter"
    FACEBOOK = "facebook"


class ChannelStatus(str, Enum):
    """Channel connection state"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class EmailHostProvider(str, Enum):
    """Mailbox hosting provider for email channels"""
    GMAIL = "gmail"
    OFFICE365 = "office365"
    OUTLOOK = "outlook"
    SMTP = "smtp"


# ============================================================================
# Email delivery
# ============================================================================

class EmailProviderName(str, Enum):
    """Outbound email delivery providers"""
    SENDGRID = "sendgrid"
    MAILGUN = "mailgun"
    MAILJET = "mailjet"
    ELASTIC = "elastic"
    SMTP = "smtp"


class SendErrorCategory(str, Enum):
    """Uniform classification of provider failures"""
    CONFIGURATION = "configuration"
    AUTHENTICATION = "authentication"
    NETWORK = "network"
    TIMEOUT = "timeout"
    REJECTED = "rejected"
    UNKNOWN = "unknown"


# ============================================================================
# Storage
# ============================================================================

class StorageProviderType(str, Enum):
    """Object storage backends"""
    LOCAL = "local"
    S3 = "s3"
    AZURE = "azure"
    HOSTED = "hosted"


# ============================================================================
# Audit
# ============================================================================

class AuditLevel(str, Enum):
    """Audit log severity"""
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class AuditUserType(str, Enum):
    """Who performed an audited action"""
    AGENT = "agent"
    CUSTOMER = "customer"
    ADMIN = "admin"
    SYSTEM = "system"
