"""
Extractive summary: picks verbatim sentences, generates nothing.

Each sentence is scored by length-normalised TF-IDF:
    score = sum(tf[w] * log(1 + N / (1 + df[w]))) / word_count
where tf counts a term over all sentences and df counts the sentences that
contain it. The top-K sentences are returned in document order.
"""
import math
import re
from collections import Counter

from .rules import DEFAULT_LANGUAGE, LANGUAGE_MARKERS

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_NON_WORD_RE = re.compile(r"[^a-z0-9\u00C0-\u017F\s]")


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]


def tokenize(sentence: str) -> list[str]:
    return _NON_WORD_RE.sub("", sentence.lower()).split()


def detect_language(sample: str) -> str:
    """Keyword heuristic for es / fr / de. Anything else is English."""
    lowered = sample.lower()
    for lang, marker in LANGUAGE_MARKERS:
        if marker.search(lowered):
            return lang
    return DEFAULT_LANGUAGE


def extractive_summary(reviews: list[str], max_sentences: int = 3) -> str:
    sentences = [s for review in reviews for s in split_sentences(review)]
    if not sentences:
        return ""

    tokenized = [tokenize(s) for s in sentences]
    tf: Counter = Counter()
    df: Counter = Counter()
    for words in tokenized:
        tf.update(words)
        df.update(set(words))

    n = len(sentences)
    scores = []
    for words in tokenized:
        total = sum(tf[w] * math.log(1 + n / (1 + df[w])) for w in words)
        scores.append(total / max(1, len(words)))

    # sorted() is stable, so ties keep document order
    ranked = sorted(range(n), key=lambda i: scores[i], reverse=True)[:max_sentences]
    return " ".join(sentences[i] for i in sorted(ranked))
