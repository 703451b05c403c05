"""
Error taxonomy shared by the scrapers, engines and the HTTP layer.
main.py maps each class to a status code.
"""


class SmartShopError(Exception):
    """Base class for every error raised on purpose by this package."""


class UpstreamFetchError(SmartShopError):
    """A proxy or direct page fetch failed. Recovered inside the fetcher."""


class ValidationError(SmartShopError):
    """Malformed or insufficient input (HTTP 400)."""


class RateLimitExceeded(SmartShopError):
    """Client went over its request budget (HTTP 429)."""

    def __init__(self, client_key: str, retry_after: float):
        super().__init__(f"Rate limit exceeded for {client_key}. Please try again later.")
        self.client_key = client_key
        self.retry_after = retry_after


class UpstreamProviderError(SmartShopError):
    """The language-model provider failed or is not configured (HTTP 500)."""
