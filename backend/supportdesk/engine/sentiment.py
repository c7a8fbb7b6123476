"""Keyword sentiment heuristic"""
from ..domain.enums import Sentiment

POSITIVE_WORDS = ("thank", "great", "excellent", "good", "happy", "satisfied", "pleased")
NEGATIVE_WORDS = ("bad", "terrible", "awful", "frustrated", "angry", "disappointed", "broken", "problem")


def analyze_sentiment(text: str) -> Sentiment:
    """
    Classify text by counting positive vs negative keywords

    Each keyword counts once if it appears anywhere in the lower-cased
    text. Ties (including no hits) are neutral.
    """
    lowered = (text or "").lower()
    positive = sum(1 for word in POSITIVE_WORDS if word in lowered)
    negative = sum(1 for word in NEGATIVE_WORDS if word in lowered)

    if positive > negative:
        return Sentiment.POSITIVE
    if negative > positive:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL
