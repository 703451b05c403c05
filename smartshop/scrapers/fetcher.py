"""
Two-tier page fetch: scrape.do JS rendering proxy (when a token is set),
then a direct GET through a Chrome-impersonating session.

Nothing here raises. Each failed attempt becomes a line in `logs`; if both
tiers fail the caller gets (None, "none") and treats it as zero reviews.
"""
import logging

from curl_cffi.requests import AsyncSession, RequestsError

from ..config import SCRAPEDO_URL, scrapedo_token
from ..errors import UpstreamFetchError

logger = logging.getLogger(__name__)

# curl_cffi sets the User-Agent that matches Chrome's TLS fingerprint;
# these are the remaining headers a browser navigation sends.
EXTRA_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
}


def log_step(logs: list[str], message: str, level: int = logging.INFO) -> None:
    """Diagnostic line for the client, mirrored into the process log."""
    logs.append(message)
    logger.log(level, f"[Scraper] {message}")


def _body_or_raise(resp, source: str) -> str:
    if not 200 <= resp.status_code < 300:
        raise UpstreamFetchError(f"{source} fetch failed, status: {resp.status_code}")
    if not resp.text:
        raise UpstreamFetchError(f"{source} returned an empty body")
    return resp.text


async def _fetch_via_proxy(client: AsyncSession, url: str, token: str) -> str:
    resp = await client.get(SCRAPEDO_URL, params={"token": token, "url": url, "render": "true"})
    return _body_or_raise(resp, "scrape.do")


async def _fetch_direct(client: AsyncSession, url: str) -> str:
    client.headers.update({"Referer": "https://www.google.com/"})
    resp = await client.get(url)
    return _body_or_raise(resp, "Direct")


async def fetch_html(url: str, logs: list[str]) -> tuple[str | None, str]:
    """Returns (html, method) where method is "scrape.do", "direct" or "none"."""
    token = scrapedo_token()

    async with AsyncSession(impersonate="chrome", headers=EXTRA_HEADERS, allow_redirects=True) as client:
        if token:
            log_step(logs, f"Scraping URL with scrape.do: {url}")
            try:
                html = await _fetch_via_proxy(client, url, token)
                log_step(logs, f"scrape.do fetch successful, HTML length: {len(html)}")
                return html, "scrape.do"
            except (UpstreamFetchError, RequestsError) as e:
                log_step(logs, f"scrape.do request failed: {e}", logging.WARNING)

        log_step(logs, f"Falling back to direct fetch: {url}")
        try:
            html = await _fetch_direct(client, url)
            log_step(logs, f"Direct fetch successful, HTML length: {len(html)}")
            return html, "direct"
        except (UpstreamFetchError, RequestsError) as e:
            log_step(logs, f"Direct fetch error: {e}", logging.WARNING)

    return None, "none"
