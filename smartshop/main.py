import asyncio
import json
import logging
from contextlib import aclosing, asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse

from .agents.chat_agent import build_chat_messages, has_product_context, open_chat_stream
from .cache import ReviewCache
from .config import LOG_LEVEL, STORE_SWEEP_INTERVAL_SECONDS, TRUST_FORWARDED_FOR
from .errors import RateLimitExceeded, UpstreamProviderError, ValidationError
from .models import (
    AnalyzeReviewsRequest,
    AnalyzeReviewsResponse,
    ChatRequest,
    PredictionResult,
    PredictPriceRequest,
    SummarizeRequest,
    SummaryResult,
)
from .pipeline import load_product, run_review_analysis, run_summarization
from .price_engine import predict_prices
from .rate_limit import SlidingWindowRateLimiter
from .scrapers.fetcher import fetch_html
from .store import InMemoryStore

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


class OpenCORSMiddleware(CORSMiddleware):
    """Reflects any origin; preflight answers 204 with an empty body."""

    def preflight_response(self, request_headers):
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            k: v for k, v in response.headers.items()
            if k.lower() not in ("content-length", "content-type")
        }
        return Response(status_code=204, headers=headers)


# Process-wide state. Swap the stores for a shared backend to make limits global.
_review_cache = ReviewCache(InMemoryStore())
_rate_limiter = SlidingWindowRateLimiter(InMemoryStore())


def sweep_stores(cache: ReviewCache, limiter: SlidingWindowRateLimiter) -> tuple[int, int]:
    """Drop expired cache entries and idle rate-limit buckets."""
    expired = cache.prune_expired()
    idle = limiter.prune_idle()
    if expired or idle:
        logger.info(f"[Main] Store sweep: {expired} expired cache entries, {idle} idle clients")
    return expired, idle


async def _sweep_forever(interval: float):
    while True:
        await asyncio.sleep(interval)
        try:
            sweep_stores(_review_cache, _rate_limiter)
        except Exception as e:
            logger.error(f"[Main] Store sweep failed: {e!r}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.store_sweeper = asyncio.create_task(_sweep_forever(STORE_SWEEP_INTERVAL_SECONDS))
    yield
    app.state.store_sweeper.cancel()
    try:
        await app.state.store_sweeper
    except asyncio.CancelledError:
        pass


app = FastAPI(title="SmartShop Analysis API", lifespan=lifespan)
app.add_middleware(
    OpenCORSMiddleware,
    allow_origin_regex=".*",           # echoed back as the request's Origin
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


def get_review_cache() -> ReviewCache:
    return _review_cache


def get_rate_limiter() -> SlidingWindowRateLimiter:
    return _rate_limiter


def get_html_fetcher():
    return fetch_html


def get_chat_streamer():
    return open_chat_stream


def client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded and TRUST_FORWARDED_FOR:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "anonymous"


def enforce_rate_limit(request: Request, limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter)):
    key = client_key(request)
    if limiter.is_limited(key):
        raise RateLimitExceeded(key, limiter.window)


# ── ERROR MAPPING ──────────────────────────────────────────────────────────

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"error": str(exc), "retryAfter": int(exc.retry_after)},
        headers={"Retry-After": str(int(exc.retry_after))},
    )


@app.exception_handler(UpstreamProviderError)
async def provider_error_handler(request: Request, exc: UpstreamProviderError):
    logger.error(f"[Main] Provider failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"[Main] Unhandled error on {request.url.path}: {exc!r}")
    return JSONResponse(status_code=500, content={"error": str(exc), "details": "Unexpected server error"})


# ── ENDPOINTS ──────────────────────────────────────────────────────────────

@app.post(
    "/analyze-reviews",
    response_model=AnalyzeReviewsResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def analyze_reviews(
    req: AnalyzeReviewsRequest,
    cache: ReviewCache = Depends(get_review_cache),
    fetcher=Depends(get_html_fetcher),
):
    result = await run_review_analysis(req, cache, fetcher)
    logger.info(
        f"[Main] analyze-reviews: {result.reviews_count} reviews, "
        f"{result.analysis.fake_percentage}% fake"
    )
    return result


@app.post("/summarize-reviews", response_model=SummaryResult)
async def summarize_reviews(req: SummarizeRequest):
    return await run_summarization(req.reviews, req.target_lang)


@app.post("/predict-price", response_model=PredictionResult)
async def predict_price(req: PredictPriceRequest):
    return predict_prices(req.prices, req.days)


async def _sse_frames(tokens):
    async with aclosing(tokens):
        try:
            async for token in tokens:
                payload = {"choices": [{"delta": {"content": token}}]}
                yield f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"
        except UpstreamProviderError as e:
            # headers are already sent; report in-band
            yield f"data: {json.dumps({'error': str(e)})}\n\n"
        yield "data: [DONE]\n\n"


@app.post("/chat", dependencies=[Depends(enforce_rate_limit)])
async def chat(
    req: ChatRequest,
    cache: ReviewCache = Depends(get_review_cache),
    fetcher=Depends(get_html_fetcher),
    streamer=Depends(get_chat_streamer),
):
    if not req.messages:
        raise ValidationError("Messages array is required")

    product = None
    if req.url and not has_product_context(req.messages):
        product = await load_product(req.url, cache, fetcher)

    messages = build_chat_messages(req.messages, req.target_lang, product)
    grounded = product is not None or has_product_context(req.messages)
    tokens = await streamer(messages, grounded)

    return StreamingResponse(
        _sse_frames(tokens),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@app.get("/health")
def health():
    return {"status": "ok"}
