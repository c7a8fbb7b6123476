import pytest

from supportdesk.domain.enums import Sentiment, TicketPriority
from supportdesk.domain.errors import RuleValidationError
from supportdesk.domain.models import (
    ChannelCondition, IsNewTicketCondition, PriorityCondition, SentimentCondition,
    TimeOpenCondition, UrgencyScoreCondition
)
from supportdesk.engine.condition_evaluator import ConditionEvaluator

from tests.fakes import NOW, make_ticket, minutes_ago

ONE_HOUR_MS = 60 * 60 * 1000


@pytest.fixture
def evaluator():
    return ConditionEvaluator()


def test_empty_condition_list_always_matches(evaluator):
    assert evaluator.evaluate([], make_ticket(), NOW)


def test_conditions_combine_with_and(evaluator):
    ticket = make_ticket(priority=TicketPriority.HIGH, channel="sms")
    conditions = [PriorityCondition(value=TicketPriority.HIGH), ChannelCondition(value="whatsapp")]

    assert not evaluator.evaluate(conditions, ticket, NOW)
    assert evaluator.evaluate(conditions[:1], ticket, NOW)


def test_channel_condition_forms(evaluator):
    ticket = make_ticket(channel="livechat")

    assert evaluator.evaluate([ChannelCondition(value="any")], ticket, NOW)
    assert evaluator.evaluate([ChannelCondition(value="livechat")], ticket, NOW)
    assert evaluator.evaluate([ChannelCondition(value=["whatsapp", "livechat"])], ticket, NOW)
    assert not evaluator.evaluate([ChannelCondition(value=["whatsapp", "sms"])], ticket, NOW)


def test_missing_urgency_score_is_treated_as_five(evaluator):
    ticket = make_ticket(urgency_score=None)

    assert evaluator.evaluate([UrgencyScoreCondition(gte=5)], ticket, NOW)
    assert not evaluator.evaluate([UrgencyScoreCondition(gte=6)], ticket, NOW)
    assert evaluator.evaluate([UrgencyScoreCondition(gte=3, lte=5)], ticket, NOW)


def test_urgency_score_range(evaluator):
    ticket = make_ticket(urgency_score=9)

    assert evaluator.evaluate([UrgencyScoreCondition(gte=8)], ticket, NOW)
    assert not evaluator.evaluate([UrgencyScoreCondition(lte=8)], ticket, NOW)


def test_time_open_boundary_is_inclusive(evaluator):
    assert evaluator.evaluate([TimeOpenCondition(gte=ONE_HOUR_MS)], make_ticket(created_at=minutes_ago(60)), NOW)
    assert not evaluator.evaluate([TimeOpenCondition(gte=ONE_HOUR_MS)], make_ticket(created_at=minutes_ago(59)), NOW)


def test_is_new_ticket_window(evaluator):
    condition = [IsNewTicketCondition(value=True)]

    assert evaluator.evaluate(condition, make_ticket(created_at=minutes_ago(5)), NOW)
    assert not evaluator.evaluate(condition, make_ticket(created_at=minutes_ago(6)), NOW)
    assert evaluator.evaluate([IsNewTicketCondition(value=False)], make_ticket(created_at=minutes_ago(600)), NOW)


def test_sentiment_condition_requires_known_sentiment(evaluator):
    condition = [SentimentCondition(value=Sentiment.NEGATIVE)]

    assert evaluator.evaluate(condition, make_ticket(sentiment=Sentiment.NEGATIVE), NOW)
    assert not evaluator.evaluate(condition, make_ticket(sentiment=None), NOW)


def test_unknown_condition_variant_raises(evaluator):
    with pytest.raises(RuleValidationError):
        evaluator.evaluate([{"kind": "weather", "value": "sunny"}], make_ticket(), NOW)
