"""
pipeline.py: request-level orchestration behind the HTTP endpoints.

Review analysis:
  1. Reviews supplied by the caller, or
  2. Scrape the URL (through the TTL cache) → reviews + product metadata
  3. Classify the full list, return the requested page
Summarization:
  extractive summary + pros/cons + optional translation
"""
import logging

from .agents.translator_agent import translate_summary
from .cache import ReviewCache
from .classifier import classify_reviews
from .config import REVIEW_FETCH_CAP
from .errors import ValidationError
from .models import (
    AnalyzeReviewsRequest,
    AnalyzeReviewsResponse,
    ReviewAnalysis,
    ScrapeResult,
    Sentiment,
    SummaryResult,
)
from .pros_cons import extract_pros_cons
from .scrapers.product_scraper import HtmlFetcher, scrape_product
from .summarizer import detect_language, extractive_summary

logger = logging.getLogger(__name__)

NO_REVIEWS_SUMMARY = "No reviews found on the provided URL and no reviews were supplied."
NO_REVIEWS_DETAIL = (
    "Ensure the product page has visible reviews. If reviews are loaded dynamically by "
    "JavaScript, consider providing the reviews array directly from the client or "
    "configuring a rendering proxy token (SCRAPEDO_API_TOKEN)."
)


async def load_product(
    url: str,
    cache: ReviewCache,
    fetcher: HtmlFetcher,
    fetch_cap: int = REVIEW_FETCH_CAP,
) -> ScrapeResult:
    """Scrape result for url, served from the cache while it is fresh."""
    key = ReviewCache.key_for(url, fetch_cap)
    cached = cache.get(key)
    if cached is not None:
        logger.info(f"[Pipeline] Cache hit for {url}")
        hit = f"Cache hit: reusing {len(cached.reviews)} reviews scraped within the last {cache.ttl:.0f}s"
        return cached.model_copy(update={"logs": [hit, *cached.logs]})

    result = await scrape_product(url, fetch_cap=fetch_cap, fetcher=fetcher)
    # a page that could not be fetched at all is retried on the next request
    if result.fetch_method != "none":
        cache.put(key, result)
    return result


def _empty_analysis() -> ReviewAnalysis:
    return ReviewAnalysis(
        total_reviews=0,
        real_reviews=0,
        fake_reviews=0,
        fake_percentage=0,
        overall_sentiment=Sentiment.NEUTRAL,
        sentiment_score=50,
        summary=NO_REVIEWS_SUMMARY,
        detailed_analysis=NO_REVIEWS_DETAIL,
    )


def _supplied_reviews(req: AnalyzeReviewsRequest) -> list[str]:
    texts = (r if isinstance(r, str) else r.text for r in req.reviews or [])
    return [t for t in texts if t.strip()]


async def run_review_analysis(
    req: AnalyzeReviewsRequest,
    cache: ReviewCache,
    fetcher: HtmlFetcher,
) -> AnalyzeReviewsResponse:
    reviews = _supplied_reviews(req)
    product = ScrapeResult()

    if not reviews and req.url:
        logger.info(f"[Pipeline] Analyzing reviews for URL: {req.url}")
        product = await load_product(req.url, cache, fetcher)
        reviews = list(product.reviews)

    analysis = classify_reviews(reviews)
    if analysis.total_reviews == 0:
        analysis = _empty_analysis()

    start = req.page * req.limit
    return AnalyzeReviewsResponse(
        analysis=analysis,
        reviews_count=len(reviews),
        page=req.page,
        limit=req.limit,
        reviews=reviews[start:start + req.limit],
        logs=list(product.logs),
        product_title=product.product_title,
        product_description=product.product_description,
        product_image=product.product_image,
        product_price=product.product_price,
    )


async def run_summarization(reviews: list[str] | None, target_lang: str | None) -> SummaryResult:
    if not reviews:
        raise ValidationError("reviews array required")

    detected = detect_language(" ".join(reviews[:3]))
    summary = extractive_summary(reviews, 3)
    pros, cons = extract_pros_cons(reviews)

    translated = None
    if target_lang and target_lang != detected and summary:
        translated = await translate_summary(summary, target_lang)

    logger.info(
        f"[Pipeline] Summarized {len(reviews)} reviews ({detected}): "
        f"{len(pros)} pros, {len(cons)} cons, translated={translated is not None}"
    )
    return SummaryResult(
        language_detected=detected,
        summary=summary,
        translated_summary=translated,
        pros=pros,
        cons=cons,
        input_count=len(reviews),
    )
