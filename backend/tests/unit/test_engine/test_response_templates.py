from supportdesk.domain.enums import Sentiment, TicketPriority
from supportdesk.templates.response_templates import (
    RESPONSE_TEMPLATES, generate_ai_response, get_response_template, truncate_response
)

from tests.fakes import make_ticket


def test_static_templates_by_id():
    assert get_response_template("whatsapp-acknowledgment") == RESPONSE_TEMPLATES["whatsapp-acknowledgment"]
    assert get_response_template("missing") is None


def test_empathetic_reply_for_negative_ticket_mentions_subject():
    ticket = make_ticket(subject="Billing Error", sentiment=Sentiment.NEGATIVE)
    reply = generate_ai_response(ticket, "empathetic")

    assert reply.startswith("I sincerely apologize")
    assert "billing error" in reply


def test_high_priority_reply():
    ticket = make_ticket(priority=TicketPriority.HIGH, sentiment=Sentiment.NEUTRAL)
    assert "urgent matter" in generate_ai_response(ticket, "empathetic")


def test_generic_reply_without_subject():
    ticket = make_ticket(subject="", sentiment=Sentiment.POSITIVE)
    assert "regarding your request" in generate_ai_response(ticket, "professional")


def test_truncation_is_exact_and_ends_with_ellipsis():
    ticket = make_ticket(sentiment=Sentiment.NEGATIVE)
    reply = generate_ai_response(ticket, "empathetic", max_length=40)

    assert len(reply) == 40
    assert reply.endswith("...")


def test_truncate_response_edge_cases():
    assert truncate_response("short", 10) == "short"
    assert truncate_response("abcdef", None) == "abcdef"
    assert truncate_response("abcdef", 2) == ".."
