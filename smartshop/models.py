from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .config import DEFAULT_PAGE_LIMIT, REVIEW_FETCH_CAP


class ApiModel(BaseModel):
    # camelCase on the wire, snake_case in Python; requests accept both
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class Recommendation(str, Enum):
    BUY = "buy"
    WAIT = "wait"
    HOLD = "hold"


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


# ── SCRAPING ───────────────────────────────────────────────────────────────

class ProductMetadata(ApiModel):
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    price: Optional[str] = None       # raw text, e.g. "$24.99"


class ScrapeResult(ApiModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    reviews: list[str] = []
    product_title: Optional[str] = None
    product_description: Optional[str] = None
    product_image: Optional[str] = None
    product_price: Optional[str] = None
    logs: list[str] = []
    fetch_method: str = "none"        # "scrape.do" | "direct" | "none"


# ── REVIEW ANALYSIS ────────────────────────────────────────────────────────

class ReviewVerdict(ApiModel):
    index: int                        # 1-based position in the batch
    is_fake: bool
    reasons: list[str] = []
    sentiment_score: int              # 0 – 100
    preview: str


class ReviewAnalysis(ApiModel):
    total_reviews: int
    real_reviews: int
    fake_reviews: int
    fake_percentage: int
    overall_sentiment: Sentiment
    sentiment_score: int
    summary: str
    detailed_analysis: str


class ReviewText(BaseModel):
    text: str = ""


class AnalyzeReviewsRequest(ApiModel):
    url: Optional[str] = None
    reviews: Optional[list[str | ReviewText]] = None
    limit: int = Field(default=DEFAULT_PAGE_LIMIT, ge=1, le=REVIEW_FETCH_CAP)
    page: int = Field(default=0, ge=0)


class AnalyzeReviewsResponse(ApiModel):
    analysis: ReviewAnalysis
    reviews_count: int
    page: int
    limit: int
    reviews: list[str]
    logs: list[str]
    product_title: Optional[str] = None
    product_description: Optional[str] = None
    product_image: Optional[str] = None
    product_price: Optional[str] = None


# ── SUMMARIZATION ──────────────────────────────────────────────────────────

class ProsConsItem(ApiModel):
    term: str
    count: int
    examples: list[str]


class SummarizeRequest(ApiModel):
    reviews: Optional[list[str]] = None
    target_lang: Optional[str] = None


class SummaryResult(ApiModel):
    language_detected: str
    summary: str
    translated_summary: Optional[str] = None
    pros: list[ProsConsItem]
    cons: list[ProsConsItem]
    input_count: int


# ── PRICE PREDICTION ───────────────────────────────────────────────────────

class PricePoint(ApiModel):
    ts: Optional[int] = None        # epoch milliseconds
    price: float


class PredictedPoint(ApiModel):
    ts: Optional[int] = None
    price: float


class PredictPriceRequest(ApiModel):
    prices: list[PricePoint] = []
    days: int = Field(default=7, le=365)


class PredictionResult(ApiModel):
    model: str = "linear_regression_index"
    slope: float
    intercept: float
    rmse: float
    confidence: int
    predicted_avg: float
    last_price: float
    pct_change: float
    recommendation: Recommendation
    trend: Trend
    predictions: list[PredictedPoint]
    input_count: int


# ── CHAT ───────────────────────────────────────────────────────────────────

class ChatMessage(ApiModel):
    role: str
    content: str


class ChatRequest(ApiModel):
    messages: list[ChatMessage]
    target_lang: Optional[str] = None
    url: Optional[str] = None
