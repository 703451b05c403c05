"""fetch_html tests against a stubbed curl_cffi session."""

import asyncio

import pytest
from curl_cffi.requests import RequestsError

from smartshop.config import SCRAPEDO_URL
from smartshop.scrapers import fetcher


class FakeResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text


def _session_factory(outcomes, calls):
    """AsyncSession stand-in that replays `outcomes` in order and records every GET."""

    class FakeSession:
        def __init__(self, **kwargs):
            self.kwargs = kwargs
            self.headers = dict(kwargs.get("headers") or {})

        async def __aenter__(self):
            return self

        async def __aexit__(self, *exc_info):
            return False

        async def get(self, url, params=None):
            calls.append({"url": url, "params": params, "headers": dict(self.headers)})
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

    return FakeSession


@pytest.fixture
def calls():
    return []


def _fetch(url="https://shop.example/p/1"):
    logs = []
    html, method = asyncio.run(fetcher.fetch_html(url, logs))
    return html, method, logs


class TestFetchHtml:
    """Tests for fetch_html."""

    def test_direct_without_token(self, monkeypatch, calls):
        monkeypatch.delenv("SCRAPEDO_API_TOKEN", raising=False)
        monkeypatch.setattr(fetcher, "AsyncSession", _session_factory([FakeResponse(200, "<html>ok</html>")], calls))

        html, method, logs = _fetch()

        assert (html, method) == ("<html>ok</html>", "direct")
        assert len(calls) == 1
        assert calls[0]["url"] == "https://shop.example/p/1"
        assert calls[0]["headers"]["Referer"] == "https://www.google.com/"
        assert "Falling back to direct fetch: https://shop.example/p/1" in logs

    def test_proxy_first_with_token(self, monkeypatch, calls):
        monkeypatch.setenv("SCRAPEDO_API_TOKEN", "tok")
        monkeypatch.setattr(fetcher, "AsyncSession", _session_factory([FakeResponse(200, "<html>rendered</html>")], calls))

        html, method, logs = _fetch()

        assert (html, method) == ("<html>rendered</html>", "scrape.do")
        assert calls[0]["url"] == SCRAPEDO_URL
        assert calls[0]["params"] == {"token": "tok", "url": "https://shop.example/p/1", "render": "true"}

    def test_proxy_failure_falls_back(self, monkeypatch, calls):
        monkeypatch.setenv("SCRAPEDO_API_TOKEN", "tok")
        outcomes = [FakeResponse(500, "oops"), FakeResponse(200, "<html>direct</html>")]
        monkeypatch.setattr(fetcher, "AsyncSession", _session_factory(outcomes, calls))

        html, method, logs = _fetch()

        assert (html, method) == ("<html>direct</html>", "direct")
        assert len(calls) == 2
        assert "scrape.do request failed: scrape.do fetch failed, status: 500" in logs

    def test_everything_fails(self, monkeypatch, calls):
        monkeypatch.setenv("SCRAPEDO_API_TOKEN", "tok")
        outcomes = [RequestsError("timed out"), FakeResponse(403, "denied")]
        monkeypatch.setattr(fetcher, "AsyncSession", _session_factory(outcomes, calls))

        html, method, logs = _fetch()

        assert (html, method) == (None, "none")
        assert logs[-1] == "Direct fetch error: Direct fetch failed, status: 403"

    def test_empty_body_is_a_failure(self, monkeypatch, calls):
        monkeypatch.delenv("SCRAPEDO_API_TOKEN", raising=False)
        monkeypatch.setattr(fetcher, "AsyncSession", _session_factory([FakeResponse(200, "")], calls))

        html, method, _logs = _fetch()
        assert (html, method) == (None, "none")
