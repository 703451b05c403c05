"""
Pros/cons mining over review text.

Every sentence yields contiguous 1-3 word n-grams (stopwords removed first).
A phrase counts as positive / negative context when the whole review it came
from contains a positive / negative seed word.
"""
import re
from dataclasses import dataclass, field

from .models import ProsConsItem
from .rules import DEFAULT_MINING_RULES, MiningRules
from .summarizer import split_sentences

_STRIP_RE = re.compile(r"[^a-z0-9\s]")


@dataclass
class PhraseCandidate:
    term: str
    count: int = 0
    pos: int = 0
    neg: int = 0
    examples: list[str] = field(default_factory=list)

    def to_item(self) -> ProsConsItem:
        return ProsConsItem(term=self.term, count=self.count, examples=list(self.examples))


def _tokens(sentence: str) -> list[str]:
    return _STRIP_RE.sub("", sentence.lower()).split()


def _normalize_phrase(gram: str) -> str:
    norm = re.sub(r"\s+", " ", _STRIP_RE.sub("", gram.lower())).strip()
    return re.sub(r"\b(its|it's)\b", "", norm)


def count_phrases(reviews: list[str], rules: MiningRules = DEFAULT_MINING_RULES) -> dict[str, PhraseCandidate]:
    candidates: dict[str, PhraseCandidate] = {}

    for review in reviews:
        lowered = review.lower()
        is_pos = any(s in lowered for s in rules.positive_seeds)
        is_neg = any(s in lowered for s in rules.negative_seeds)

        for sentence in split_sentences(review):
            toks = [t for t in _tokens(sentence) if t not in rules.stopwords]
            for i in range(len(toks)):
                for size in range(1, rules.max_ngram + 1):
                    if i + size > len(toks):
                        break
                    gram = " ".join(toks[i:i + size])
                    if len(gram) < 2:
                        continue
                    norm = _normalize_phrase(gram)
                    if any(len(w) <= 1 for w in norm.split(" ")):
                        continue

                    entry = candidates.setdefault(norm, PhraseCandidate(term=norm))
                    entry.count += 1
                    if is_pos:
                        entry.pos += 1
                    if is_neg:
                        entry.neg += 1
                    if len(entry.examples) < rules.max_examples:
                        entry.examples.append(sentence)

    return candidates


def mine_candidates(reviews: list[str], rules: MiningRules = DEFAULT_MINING_RULES) -> list[PhraseCandidate]:
    """
    Most frequent phrases after collapsing near-duplicates.
    A phrase is dropped when a longer phrase containing it is at least as frequent,
    e.g. "battery" (2) gives way to "battery life" (2).
    """
    items = sorted(
        count_phrases(reviews, rules).values(),
        key=lambda c: (-c.count, -len(c.term)),
    )

    chosen = []
    for item in items:
        shadowed = any(
            len(other.term) > len(item.term) and item.term in other.term and other.count >= item.count
            for other in items
        )
        if shadowed:
            continue
        chosen.append(item)
        if len(chosen) >= rules.max_candidates:
            break
    return chosen


def extract_pros_cons(
    reviews: list[str], rules: MiningRules = DEFAULT_MINING_RULES
) -> tuple[list[ProsConsItem], list[ProsConsItem]]:
    chosen = mine_candidates(reviews, rules)

    pros = [c.to_item() for c in chosen if c.pos >= c.neg and c.pos > 0][: rules.max_pros]
    cons = [c.to_item() for c in chosen if c.neg > c.pos][: rules.max_cons]

    # no sentiment signal at all: fall back to the most frequent phrases
    if not pros:
        pros = [c.to_item() for c in chosen[: rules.fallback_pros]]
    return pros, cons
