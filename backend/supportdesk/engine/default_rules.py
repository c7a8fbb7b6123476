"""Default automation rules installed at startup"""
from typing import List

from ..domain.models import (
    AutomationRule, PriorityCondition, ChannelCondition, IsNewTicketCondition,
    UrgencyScoreCondition, TimeOpenCondition, SentimentCondition,
    AssignAction, SendTemplateAction, EscalateAction, AiResponseAction
)
from ..domain.enums import (
    TicketPriority, Sentiment, AssignmentCriteria, ResponseTone
)
from ..templates.response_templates import ResponseTemplateKey

ONE_HOUR_MS = 60 * 60 * 1000


def build_default_rules() -> List[AutomationRule]:
    """Fresh copies of the built-in rules, in evaluation order"""
    return [
        AutomationRule(
            id="auto-assign-high-priority",
            name="Auto-assign high priority tickets",
            conditions=[
                PriorityCondition(value=TicketPriority.HIGH),
                ChannelCondition(value="any"),
            ],
            action=AssignAction(criteria=AssignmentCriteria.LEAST_LOADED_SENIOR_AGENT.value),
            priority=1,
        ),
        AutomationRule(
            id="auto-response-whatsapp",
            name="Auto-response for WhatsApp",
            conditions=[
                ChannelCondition(value="whatsapp"),
                IsNewTicketCondition(value=True),
            ],
            action=SendTemplateAction(template_id=ResponseTemplateKey.WHATSAPP_ACKNOWLEDGMENT),
            priority=2,
        ),
        AutomationRule(
            id="escalate-urgent",
            name="Escalate urgent tickets",
            conditions=[
                UrgencyScoreCondition(gte=8),
                TimeOpenCondition(gte=ONE_HOUR_MS),
            ],
            action=EscalateAction(priority=TicketPriority.HIGH, notify_management=True),
            priority=3,
        ),
        AutomationRule(
            id="ai-sentiment-response",
            name="AI response for negative sentiment",
            conditions=[
                SentimentCondition(value=Sentiment.NEGATIVE),
                ChannelCondition(value=["livechat", "whatsapp"]),
            ],
            action=AiResponseAction(tone=ResponseTone.EMPATHETIC.value, max_length=200),
            priority=4,
        ),
    ]
