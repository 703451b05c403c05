"""End-to-end tests of the HTTP surface with the network replaced by fakes."""

import asyncio
import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from smartshop import main, pipeline
from smartshop.agents.chat_agent import PRODUCT_CONTEXT_MARKER
from smartshop.cache import ReviewCache
from smartshop.errors import UpstreamProviderError
from smartshop.main import (
    _sse_frames,
    app,
    get_chat_streamer,
    get_html_fetcher,
    get_rate_limiter,
    get_review_cache,
)
from smartshop.rate_limit import SlidingWindowRateLimiter
from smartshop.store import InMemoryStore

FIXTURES_DIR = Path(__file__).parent / "fixtures"
PRODUCT_HTML = (FIXTURES_DIR / "product_page.html").read_text(encoding="utf-8")
PRODUCT_URL = "https://shop.example/dp/B000TEST"

GENUINE = "The battery lasts about two days with normal use and the case feels solid in hand."
SHOUTY = "BEST PRODUCT EVER BUY NOW!!!"


class FakeFetcher:
    def __init__(self, html=PRODUCT_HTML, method="direct"):
        self.html = html
        self.method = method
        self.urls = []

    async def __call__(self, url, logs):
        self.urls.append(url)
        logs.append(f"Direct fetch successful, HTML length: {len(self.html or '')}")
        return self.html, self.method


class FakeStreamer:
    def __init__(self, pieces=("Hello", " there"), open_error=None, stream_error=None):
        self.pieces = pieces
        self.open_error = open_error
        self.stream_error = stream_error
        self.calls = []

    async def __call__(self, messages, grounded):
        self.calls.append((messages, grounded))
        if self.open_error:
            raise self.open_error

        async def tokens():
            for piece in self.pieces:
                yield piece
            if self.stream_error:
                raise self.stream_error

        return tokens()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def streamer():
    return FakeStreamer()


@pytest.fixture
def client(fetcher, streamer):
    cache = ReviewCache(InMemoryStore())
    limiter = SlidingWindowRateLimiter(InMemoryStore(), max_requests=30, window=3600)

    app.dependency_overrides[get_review_cache] = lambda: cache
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    app.dependency_overrides[get_html_fetcher] = lambda: fetcher
    app.dependency_overrides[get_chat_streamer] = lambda: streamer
    yield TestClient(app)
    app.dependency_overrides.clear()


def _sse_payloads(body: str) -> list[str]:
    return [line[len("data: "):] for line in body.split("\n\n") if line.startswith("data: ")]


class TestAnalyzeReviews:
    """POST /analyze-reviews"""

    def test_supplied_reviews(self, client, fetcher):
        resp = client.post("/analyze-reviews", json={"reviews": [GENUINE, {"text": SHOUTY}, "  "]})

        assert resp.status_code == 200
        body = resp.json()
        assert body["analysis"]["totalReviews"] == 2
        assert body["analysis"]["fakeReviews"] == 1
        assert body["analysis"]["fakePercentage"] == 50
        assert body["reviewsCount"] == 2
        assert body["page"] == 0
        assert body["limit"] == 20
        assert body["logs"] == []
        assert body["productTitle"] is None
        assert fetcher.urls == []

    def test_scraped_and_paged(self, client):
        resp = client.post("/analyze-reviews", json={"url": PRODUCT_URL, "limit": 2, "page": 1})

        assert resp.status_code == 200
        body = resp.json()
        assert body["reviewsCount"] == 5
        assert body["analysis"]["totalReviews"] == 5
        assert body["reviews"] == [
            "The fit was uncomfortable after an hour and the left bud kept falling out while running.",
            "Decent bass for the price, though the app is clunky & the touch controls are too sensitive.",
        ]
        assert body["productTitle"] == "Acme Wireless Earbuds"
        assert body["productPrice"] == "$24.99"
        assert body["productImage"] == "https://example.com/earbuds-large.jpg"

    def test_page_past_the_end(self, client):
        body = client.post("/analyze-reviews", json={"url": PRODUCT_URL, "limit": 20, "page": 3}).json()

        assert body["reviews"] == []
        assert body["reviewsCount"] == 5

    def test_second_call_is_cache_hit(self, client, fetcher):
        first = client.post("/analyze-reviews", json={"url": PRODUCT_URL}).json()
        second = client.post("/analyze-reviews", json={"url": PRODUCT_URL}).json()

        assert fetcher.urls == [PRODUCT_URL]
        assert second["reviews"] == first["reviews"]
        assert second["logs"][1:] == first["logs"]
        assert "cache hit" in second["logs"][0].lower()

    def test_nothing_found(self, client, fetcher):
        fetcher.html, fetcher.method = None, "none"

        body = client.post("/analyze-reviews", json={"url": PRODUCT_URL}).json()
        client.post("/analyze-reviews", json={"url": PRODUCT_URL})

        assert body["analysis"]["totalReviews"] == 0
        assert body["analysis"]["summary"] == pipeline.NO_REVIEWS_SUMMARY
        assert body["analysis"]["overallSentiment"] == "neutral"
        # failed fetches are not cached
        assert fetcher.urls == [PRODUCT_URL, PRODUCT_URL]

    @pytest.mark.parametrize("payload", [{"limit": 0}, {"limit": 201}, {"page": -1}, {"reviews": "nope"}])
    def test_bad_input(self, client, payload):
        resp = client.post("/analyze-reviews", json=payload)

        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request body"

    def test_rate_limited(self, client):
        headers = {"X-Forwarded-For": "203.0.113.9, 10.0.0.1"}
        for _ in range(30):
            assert client.post("/analyze-reviews", json={"reviews": [GENUINE]}, headers=headers).status_code == 200

        resp = client.post("/analyze-reviews", json={"reviews": [GENUINE]}, headers=headers)
        assert resp.status_code == 429
        assert resp.json()["retryAfter"] == 3600
        assert resp.headers["Retry-After"] == "3600"
        assert "203.0.113.9" in resp.json()["error"]

        other = client.post("/analyze-reviews", json={"reviews": [GENUINE]}, headers={"X-Forwarded-For": "198.51.100.7"})
        assert other.status_code == 200

    def test_forwarded_for_ignored_when_untrusted(self, client, monkeypatch):
        monkeypatch.setattr(main, "TRUST_FORWARDED_FOR", False)
        for i in range(30):
            headers = {"X-Forwarded-For": f"203.0.113.{i}"}
            assert client.post("/analyze-reviews", json={"reviews": [GENUINE]}, headers=headers).status_code == 200

        resp = client.post("/analyze-reviews", json={"reviews": [GENUINE]}, headers={"X-Forwarded-For": "198.51.100.7"})
        assert resp.status_code == 429
        assert "testclient" in resp.json()["error"]


class TestSummarizeReviews:
    """POST /summarize-reviews"""

    REVIEWS = ["Great battery life.", "Battery life is great and screen is great."]

    def test_summary(self, client):
        resp = client.post("/summarize-reviews", json={"reviews": self.REVIEWS, "targetLang": "en"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["languageDetected"] == "en"
        assert body["translatedSummary"] is None
        assert body["inputCount"] == 2
        assert body["pros"][0]["term"] == "great"
        assert body["cons"] == []
        assert body["summary"]

    def test_translation_requested(self, client, monkeypatch):
        seen = []

        async def fake_translate(summary, target_lang):
            seen.append(target_lang)
            return "resumen"

        monkeypatch.setattr(pipeline, "translate_summary", fake_translate)
        body = client.post("/summarize-reviews", json={"reviews": self.REVIEWS, "targetLang": "es"}).json()

        assert body["translatedSummary"] == "resumen"
        assert seen == ["es"]

    def test_reviews_required(self, client):
        for payload in ({}, {"reviews": []}):
            resp = client.post("/summarize-reviews", json=payload)
            assert resp.status_code == 400
            assert resp.json() == {"error": "reviews array required"}


class TestPredictPrice:
    """POST /predict-price"""

    def test_prediction(self, client):
        prices = [{"ts": 1_700_000_000_000 + i * 86_400_000, "price": p} for i, p in enumerate([100, 102, 104])]
        resp = client.post("/predict-price", json={"prices": prices, "days": 2})

        assert resp.status_code == 200
        body = resp.json()
        assert [p["price"] for p in body["predictions"]] == [106.0, 108.0]
        assert body["predictedAvg"] == 107.0
        assert body["pctChange"] == 2.88
        assert body["recommendation"] == "buy"
        assert body["trend"] == "up"
        assert body["inputCount"] == 3
        assert body["predictions"][0]["ts"] == 1_700_000_000_000 + 3 * 86_400_000
        assert isinstance(body["predictions"][0]["ts"], int)

    def test_out_of_range_prices(self, client):
        resp = client.post("/predict-price", json={"prices": [{"price": 1e308}] * 3, "days": 2})

        assert resp.status_code == 400
        assert resp.json() == {"error": "price values out of range"}

    def test_too_few_points(self, client):
        resp = client.post("/predict-price", json={"prices": [{"price": 10}, {"price": 11}]})

        assert resp.status_code == 400
        assert "at least 3" in resp.json()["error"]


class TestChat:
    """POST /chat"""

    def test_streams_sse(self, client, streamer):
        resp = client.post("/chat", json={"messages": [{"role": "user", "content": "hi"}], "targetLang": "fr"})

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")
        payloads = _sse_payloads(resp.text)
        assert payloads[-1] == "[DONE]"
        assert [json.loads(p)["choices"][0]["delta"]["content"] for p in payloads[:-1]] == ["Hello", " there"]

        messages, grounded = streamer.calls[0]
        assert grounded is False
        assert messages[0]["content"].endswith("Respond in French.")

    def test_url_grounds_the_model(self, client, streamer, fetcher):
        client.post("/chat", json={"messages": [{"role": "user", "content": "Worth it?"}], "url": PRODUCT_URL})

        messages, grounded = streamer.calls[0]
        assert grounded is True
        assert PRODUCT_CONTEXT_MARKER in messages[0]["content"]
        assert "Acme Wireless Earbuds" in messages[0]["content"]
        assert fetcher.urls == [PRODUCT_URL]

    def test_messages_required(self, client):
        resp = client.post("/chat", json={"messages": []})
        assert resp.status_code == 400

    def test_provider_failure_before_stream(self, client, streamer):
        streamer.open_error = UpstreamProviderError("Groq API key not configured")

        resp = client.post("/chat", json={"messages": [{"role": "user", "content": "hi"}]})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Groq API key not configured"}

    def test_failure_mid_stream(self, client, streamer):
        streamer.stream_error = UpstreamProviderError("Groq stream error: reset")

        resp = client.post("/chat", json={"messages": [{"role": "user", "content": "hi"}]})
        payloads = _sse_payloads(resp.text)

        assert json.loads(payloads[-2]) == {"error": "Groq stream error: reset"}
        assert payloads[-1] == "[DONE]"

    def test_disconnect_closes_upstream(self):
        closed = []

        async def tokens():
            try:
                yield "Hello"
                yield " there"
            finally:
                closed.append(True)

        async def take_first_then_disconnect():
            frames = _sse_frames(tokens())
            first = await frames.__anext__()
            await frames.aclose()
            return first

        first = asyncio.run(take_first_then_disconnect())

        assert json.loads(first[len("data: "):])["choices"][0]["delta"]["content"] == "Hello"
        assert closed == [True]


class TestCorsAndHealth:

    def test_preflight(self, client):
        resp = client.options(
            "/analyze-reviews",
            headers={
                "Origin": "https://app.example",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "content-type, authorization",
            },
        )

        assert resp.status_code == 204
        assert resp.content == b""
        assert resp.headers["access-control-allow-origin"] == "https://app.example"
        assert resp.headers["access-control-allow-credentials"] == "true"

    def test_simple_request_headers(self, client):
        resp = client.get("/health", headers={"Origin": "https://app.example"})

        assert resp.json() == {"status": "ok"}
        assert resp.headers["access-control-allow-origin"] == "https://app.example"

    def test_unexpected_error(self, fetcher, streamer):
        class BrokenCache:
            def get(self, key):
                raise RuntimeError("store offline")

        app.dependency_overrides[get_review_cache] = lambda: BrokenCache()
        app.dependency_overrides[get_html_fetcher] = lambda: fetcher
        try:
            resp = TestClient(app, raise_server_exceptions=False).post("/analyze-reviews", json={"url": PRODUCT_URL})
        finally:
            app.dependency_overrides.clear()

        assert resp.status_code == 500
        assert resp.json()["error"] == "store offline"


class TestLifespan:

    def test_store_sweeper_runs_while_serving(self):
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200
            sweeper = app.state.store_sweeper
            assert not sweeper.done()

        assert sweeper.cancelled()
