"""
Fake-review classifier. Rule-based and deterministic, local CPU only.

Pipeline per review:
1. Lexicon sentiment (positive / negative hits -> 0-100)
2. Suspicion flags (every rule is checked, every hit is recorded)
3. Verdict: FAKE once the number of flags reaches the threshold

The per-review verdict lines are returned to the caller as detailedAnalysis.
"""
import logging
import re

from .config import FAKE_FLAG_THRESHOLD
from .models import ReviewAnalysis, ReviewVerdict
from .rules import DEFAULT_RULES, WORD_RE, HeuristicRules
from .sentiment import aggregate_sentiment, count_lexicon_hits, round_half_up, score_sentiment

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 100


def _suspicion_flags(
    text: str, pos: int, neg: int, seen: set[str], rules: HeuristicRules
) -> list[str]:
    reasons = []
    length = len(text)

    if length < rules.min_length:
        reasons.append("very short review")
    if text.count("!") >= rules.max_exclamations:
        reasons.append("excessive exclamation")
    if rules.promo_re.search(text):
        reasons.append("promotional language")
    if rules.all_caps_re.match(text) and length < rules.all_caps_max_length:
        reasons.append("all caps or unnatural casing")
    if pos >= rules.overly_positive_hits and neg == 0 and length < rules.overly_positive_max_length:
        reasons.append("overly positive without detail")
    if rules.generic_praise_re.search(text) and length < rules.generic_praise_max_length:
        reasons.append("generic praise")
    if len(WORD_RE.findall(text)) < rules.min_words:
        reasons.append("too few words")

    key = re.sub(r"\s+", " ", text)[: rules.duplicate_key_length]
    if key in seen:
        reasons.append("duplicate or repeated review")
    seen.add(key)

    return reasons


def judge_reviews(
    reviews: list[str],
    rules: HeuristicRules = DEFAULT_RULES,
    fake_flag_threshold: int = FAKE_FLAG_THRESHOLD,
) -> list[ReviewVerdict]:
    """One verdict per non-blank review, in input order."""
    verdicts = []
    seen: set[str] = set()
    texts = [r.strip() for r in reviews if r and r.strip()]

    for i, text in enumerate(texts, start=1):
        pos, neg = count_lexicon_hits(text, rules)
        reasons = _suspicion_flags(text, pos, neg, seen, rules)
        verdicts.append(ReviewVerdict(
            index=i,
            is_fake=len(reasons) >= max(1, fake_flag_threshold),
            reasons=reasons,
            sentiment_score=score_sentiment(pos, neg, rules),
            preview=text[:PREVIEW_LENGTH],
        ))
    return verdicts


def format_verdict(v: ReviewVerdict) -> str:
    if v.is_fake:
        return f'Review {v.index}: FAKE ({", ".join(v.reasons)}) - Preview: "{v.preview}"'
    if v.reasons:
        # flagged, but under the threshold
        return f'Review {v.index}: GENUINE (minor: {", ".join(v.reasons)}) - Preview: "{v.preview}"'
    return f'Review {v.index}: GENUINE - Preview: "{v.preview}"'


def classify_reviews(
    reviews: list[str],
    rules: HeuristicRules = DEFAULT_RULES,
    fake_flag_threshold: int = FAKE_FLAG_THRESHOLD,
) -> ReviewAnalysis:
    verdicts = judge_reviews(reviews, rules, fake_flag_threshold)

    total = len(verdicts)
    fake = sum(1 for v in verdicts if v.is_fake)
    real = total - fake
    fake_pct = round_half_up(fake / total * 100) if total else 0
    avg, label = aggregate_sentiment([v.sentiment_score for v in verdicts])

    logger.info(f"[Classifier] {total} reviews: {real} genuine, {fake} fake ({fake_pct}%)")

    return ReviewAnalysis(
        total_reviews=total,
        real_reviews=real,
        fake_reviews=fake,
        fake_percentage=fake_pct,
        overall_sentiment=label,
        sentiment_score=avg,
        summary=(
            f"Found {real} likely genuine reviews and {fake} likely fake reviews ({fake_pct}%). "
            f"Average sentiment: {label.value} ({avg}/100)."
        ),
        detailed_analysis="\n".join(format_verdict(v) for v in verdicts),
    )
