"""
Review text extraction from a product page.

Strategy:
  1. Known review containers (Amazon data-hook, schema.org itemprop, common classes)
  2. Fallback when fewer than 5 were found: long sentence-like text blocks
     between tags, filtered to look like prose rather than navigation or code
"""
import html as html_lib
import re

from bs4 import BeautifulSoup

from .fetcher import log_step

REVIEW_SELECTORS = [
    '[data-hook="review"] [data-hook="review-body"]',
    '[itemprop="reviewBody"]',
    '[data-testid="review-content"]',
    ".review-text",
]
PRIMARY_MIN_LENGTH = 30     # exclusive
PRIMARY_MAX_LENGTH = 1500
MIN_PRIMARY_BEFORE_FALLBACK = 5

# ── FALLBACK FILTERS ───────────────────────────────────────────────────────
_TEXT_BLOCK_RE = re.compile(r">\s*([a-zA-Z][^<>]{60,1200}?[.!?])\s*<")
_NON_CONTENT_RE = re.compile(r"<(script|style|noscript)\b[^>]*>.*?</\1\s*>", re.DOTALL | re.IGNORECASE)
_FUNCTION_WORD_RE = re.compile(r"\b(the|and|is|it|this|was|with|for|but|not|very|i)\b", re.IGNORECASE)
LINK_MARKERS = ("href=", "http://", "https://", "www.")
FALLBACK_MIN_LENGTH = 50    # exclusive
MAX_UPPER_RATIO = 0.4

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def clean_text(raw: str) -> str:
    """Strip tags, decode entities, collapse whitespace."""
    return _WS_RE.sub(" ", html_lib.unescape(_TAG_RE.sub(" ", raw))).strip()


def _upper_ratio(text: str) -> float:
    return sum(1 for ch in text if ch.isupper()) / len(text) if text else 1.0


def looks_like_prose(text: str) -> bool:
    return (
        len(text) > FALLBACK_MIN_LENGTH
        and _upper_ratio(text) < MAX_UPPER_RATIO
        and _FUNCTION_WORD_RE.search(text) is not None
        and not any(marker in text.lower() for marker in LINK_MARKERS)
    )


def _from_containers(soup: BeautifulSoup, found: dict[str, None], limit: int, logs: list[str]) -> None:
    for selector in REVIEW_SELECTORS:
        elements = soup.select(selector)
        log_step(logs, f"Found review containers with {selector}: {len(elements)}")
        for el in elements:
            if len(found) >= limit:
                return
            text = clean_text(el.get_text(" "))
            if PRIMARY_MIN_LENGTH < len(text) <= PRIMARY_MAX_LENGTH:
                found.setdefault(text, None)


def _from_text_blocks(html: str, found: dict[str, None], limit: int) -> int:
    added = 0
    body = _NON_CONTENT_RE.sub(" ", html)
    for match in _TEXT_BLOCK_RE.finditer(body):
        if len(found) >= limit:
            break
        text = clean_text(match.group(1))
        if text in found or not looks_like_prose(text):
            continue
        found[text] = None
        added += 1
    return added


def extract_reviews(html: str, limit: int, logs: list[str], soup: BeautifulSoup | None = None) -> list[str]:
    # dict keeps first-seen order and doubles as the exact-duplicate set
    found: dict[str, None] = {}
    if soup is None:
        soup = BeautifulSoup(html, "html.parser")

    _from_containers(soup, found, limit, logs)
    log_step(logs, f"Extracted {len(found)} reviews from primary selectors")

    if len(found) < MIN_PRIMARY_BEFORE_FALLBACK:
        log_step(logs, f"Falling back to regex extraction (found < {MIN_PRIMARY_BEFORE_FALLBACK} reviews)")
        added = _from_text_blocks(html, found, limit)
        log_step(logs, f"Regex extraction found {added} additional reviews")

    return list(found)[:limit]
