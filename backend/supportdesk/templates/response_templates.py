"""
Auto-Response Templates

Canned customer-facing replies used by automation rules:
- Static acknowledgement templates addressed by id (send_template action)
- Tone-aware suggested replies (ai_response action)

Everything here is a local heuristic. No model is called.
"""
from typing import Dict, Optional

from ..domain.enums import ResponseTone, Sentiment, TicketPriority
from ..domain.models import Ticket


class ResponseTemplateKey:
    """Static auto-response template ids"""
    WHATSAPP_ACKNOWLEDGMENT = "whatsapp-acknowledgment"
    EMAIL_ACKNOWLEDGMENT = "email-acknowledgment"
    URGENT_ESCALATION = "urgent-escalation"
    AI_EMPATHETIC = "ai-empathetic"


RESPONSE_TEMPLATES: Dict[str, str] = {
    ResponseTemplateKey.WHATSAPP_ACKNOWLEDGMENT: (
        "Thank you for contacting us via WhatsApp! We have received your message "
        "and a support agent will respond shortly."
    ),
    ResponseTemplateKey.EMAIL_ACKNOWLEDGMENT: (
        "Thank you for contacting our support team. We have received your email "
        "and will respond within 24 hours."
    ),
    ResponseTemplateKey.URGENT_ESCALATION: (
        "Your urgent request has been escalated to our senior support team. "
        "You will receive a response within the next hour."
    ),
    ResponseTemplateKey.AI_EMPATHETIC: (
        "I understand this situation must be frustrating for you. Let me help you "
        "resolve this issue as quickly as possible."
    ),
}

ELLIPSIS = "..."


def get_response_template(template_id: str) -> Optional[str]:
    """Look up a static template (None for unknown ids)"""
    return RESPONSE_TEMPLATES.get(template_id)


def generate_ai_response(
    ticket: Ticket,
    tone: str,
    max_length: Optional[int] = None
) -> str:
    """
    Build a suggested reply for a ticket

    The text is chosen from (tone, sentiment, priority):
    an empathetic tone on a negative ticket apologises, a high priority
    ticket gets an urgent acknowledgement, everything else a generic reply.

    Args:
        ticket: Ticket being answered
        tone: ResponseTone value
        max_length: Optional hard cap; longer text is cut and ends with "..."

    Returns:
        Suggested reply text
    """
    subject = (ticket.subject or "your request").lower()

    if tone == ResponseTone.EMPATHETIC.value and ticket.sentiment == Sentiment.NEGATIVE:
        response = (
            f"I sincerely apologize for the inconvenience you're experiencing with {subject}. "
            "I understand how frustrating this must be, and I'm here to help resolve "
            "this issue for you as quickly as possible."
        )
    elif ticket.priority == TicketPriority.HIGH:
        response = (
            "Thank you for bringing this urgent matter to our attention. I'm prioritizing "
            "your request and will work to resolve this immediately."
        )
    else:
        response = (
            f"Thank you for contacting us regarding {subject}. "
            "I'll be happy to assist you with this matter."
        )

    return truncate_response(response, max_length)


def truncate_response(response: str, max_length: Optional[int]) -> str:
    """Cut text to exactly max_length characters, ending with an ellipsis"""
    if max_length is None or len(response) <= max_length:
        return response
    if max_length <= len(ELLIPSIS):
        return ELLIPSIS[:max_length]
    return response[:max_length - len(ELLIPSIS)] + ELLIPSIS
