from functools import lru_cache

from groq import AsyncGroq

from ..config import groq_api_key
from ..errors import UpstreamProviderError


@lru_cache(maxsize=4)
def _client_for(api_key: str) -> AsyncGroq:
    return AsyncGroq(api_key=api_key)


def get_groq_client() -> AsyncGroq:
    """Shared async client for the configured key. Raises when no key is set."""
    api_key = groq_api_key()
    if not api_key:
        raise UpstreamProviderError("Groq API key not configured")
    return _client_for(api_key)
