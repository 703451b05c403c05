"""
sentiment.py - Lexicon scoring per review + aggregation across a batch.
"""
import math

from .models import Sentiment
from .rules import DEFAULT_RULES, HeuristicRules

NEUTRAL_SCORE = 50


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def count_lexicon_hits(text: str, rules: HeuristicRules = DEFAULT_RULES) -> tuple[int, int]:
    """Substring hits against the positive / negative lexicons (case-insensitive)."""
    lower = text.lower()
    pos = sum(1 for w in rules.positive_words if w in lower)
    neg = sum(1 for w in rules.negative_words if w in lower)
    return pos, neg


def score_sentiment(pos: int, neg: int, rules: HeuristicRules = DEFAULT_RULES) -> int:
    """
    Maps lexicon hits onto 0-100, 50 being neutral.
    Input: pos=2, neg=0 -> 80
    """
    return max(0, min(100, NEUTRAL_SCORE + (pos - neg) * rules.sentiment_step))


def aggregate_sentiment(scores: list[int]) -> tuple[int, Sentiment]:
    """Average score (rounded) and its label. Empty batches are neutral."""
    if not scores:
        return NEUTRAL_SCORE, Sentiment.NEUTRAL

    avg = round_half_up(sum(scores) / len(scores))
    if avg >= 60:
        label = Sentiment.POSITIVE
    elif avg <= 40:
        label = Sentiment.NEGATIVE
    else:
        label = Sentiment.NEUTRAL
    return avg, label
