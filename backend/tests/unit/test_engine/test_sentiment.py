from supportdesk.domain.enums import Sentiment
from supportdesk.engine.sentiment import analyze_sentiment


def test_negative_keywords_win():
    assert analyze_sentiment("This is terrible, I am so frustrated") == Sentiment.NEGATIVE


def test_positive_keywords_win():
    assert analyze_sentiment("Thank you, great support!") == Sentiment.POSITIVE


def test_keyword_match_is_case_insensitive():
    assert analyze_sentiment("AWFUL experience") == Sentiment.NEGATIVE


def test_ties_and_empty_text_are_neutral():
    assert analyze_sentiment("good but broken") == Sentiment.NEUTRAL
    assert analyze_sentiment("") == Sentiment.NEUTRAL
    assert analyze_sentiment(None) == Sentiment.NEUTRAL
