"""
Rule data for the review heuristics: lexicons, regexes and thresholds.
The classifier, sentiment scorer and pros/cons miner read everything from here.
"""
import re
from dataclasses import dataclass


POSITIVE_WORDS = (
    "good", "great", "excellent", "amazing", "perfect", "love", "loved", "best",
    "fantastic", "recommend", "works", "happy", "satisfied",
)
NEGATIVE_WORDS = (
    "bad", "terrible", "awful", "worst", "disappoint", "poor", "broken", "hate",
    "problem", "doesn't work", "not work", "return",
)

# ── SUSPICION PATTERNS ─────────────────────────────────────────────────────
PROMO_PATTERNS = [
    r"\b(best product ever|best product|buy now|five stars|5 stars|highly recommend)\b",
    r"\b(must buy|click here|promo code|discount code)\b",
]
PROMO_RE = re.compile("|".join(PROMO_PATTERNS), re.IGNORECASE)
ALL_CAPS_RE = re.compile(r"^[A-Z\s\W]{10,}$")
GENERIC_PRAISE_RE = re.compile(
    r"\b(great|good|nice|awesome|excellent|perfect|amazing|love it|wonderful)\b", re.IGNORECASE
)
WORD_RE = re.compile(r"\b\w+\b")


@dataclass(frozen=True)
class HeuristicRules:
    positive_words: tuple[str, ...] = POSITIVE_WORDS
    negative_words: tuple[str, ...] = NEGATIVE_WORDS
    sentiment_step: int = 15

    min_length: int = 25
    max_exclamations: int = 3
    promo_re: re.Pattern = PROMO_RE
    all_caps_re: re.Pattern = ALL_CAPS_RE
    all_caps_max_length: int = 200
    overly_positive_hits: int = 3
    overly_positive_max_length: int = 60
    generic_praise_re: re.Pattern = GENERIC_PRAISE_RE
    generic_praise_max_length: int = 50
    min_words: int = 10
    duplicate_key_length: int = 120


DEFAULT_RULES = HeuristicRules()


# ── PROS / CONS MINING ─────────────────────────────────────────────────────
STOPWORDS = frozenset({
    "the", "and", "a", "an", "of", "to", "for", "with", "is", "it", "this", "that",
    "on", "in", "was", "are", "be", "as", "its", "i", "my", "we", "you",
})
POSITIVE_SEEDS = (
    "good", "great", "excellent", "love", "recommend", "works", "happy", "easy",
    "comfortable", "perfect", "amazing", "best",
)
NEGATIVE_SEEDS = (
    "bad", "terrible", "awful", "worst", "disappoint", "poor", "broken", "hate",
    "problem", "return", "expensive", "disappointed",
)


@dataclass(frozen=True)
class MiningRules:
    stopwords: frozenset = STOPWORDS
    positive_seeds: tuple[str, ...] = POSITIVE_SEEDS
    negative_seeds: tuple[str, ...] = NEGATIVE_SEEDS
    max_ngram: int = 3
    max_examples: int = 3
    max_candidates: int = 15
    max_pros: int = 8
    max_cons: int = 8
    fallback_pros: int = 5


DEFAULT_MINING_RULES = MiningRules()


# ── LANGUAGE DETECTION ─────────────────────────────────────────────────────
# checked in order; "la"/"que" overlap between es and fr, es wins
LANGUAGE_MARKERS = [
    ("es", re.compile(r"\b(el|la|los|las|que|para|por|con)\b")),
    ("fr", re.compile(r"\b(le|la|les|que|pour|avec|pas)\b")),
    ("de", re.compile(r"\b(der|die|das|und|nicht|mit|ist)\b")),
]
DEFAULT_LANGUAGE = "en"
LANGUAGE_NAMES = {"en": "English", "es": "Spanish", "fr": "French", "de": "German"}
