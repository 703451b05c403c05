"""
ChatAgent — builds the outbound message list and streams Groq tokens back.

Conversations that already carry a VERIFIED PRODUCT DATA block are grounded
by the caller and go out untouched. Everything else gets the generic
shopping-assistant system prompt.
"""
import asyncio
import logging
from typing import AsyncIterator

from ..classifier import classify_reviews
from ..config import GROQ_MODEL
from ..errors import UpstreamProviderError
from ..models import ChatMessage, ScrapeResult
from ..rules import LANGUAGE_NAMES
from .llm import get_groq_client

logger = logging.getLogger(__name__)

PRODUCT_CONTEXT_MARKER = "VERIFIED PRODUCT DATA"
SEPARATOR = "━━━━━━━━━━━━━━━━━━━━"
SAMPLE_REVIEWS = 5

GROUNDED_TEMPERATURE = 0.1
OPEN_TEMPERATURE = 0.7
MAX_TOKENS = 2048


def _language_name(target_lang: str | None) -> str:
    if not target_lang:
        return "English"
    return LANGUAGE_NAMES.get(target_lang, target_lang)


def system_prompt(target_lang: str | None) -> str:
    return f"""You are a helpful shopping assistant AI for SmartShop. You help users:
- Analyze products from URLs (Amazon, eBay, etc.)
- Compare prices and features
- Summarize product reviews
- Provide buying recommendations
- Answer questions about products

Be conversational, helpful, and provide detailed product insights. Respond in {_language_name(target_lang)}."""


def has_product_context(messages: list[ChatMessage]) -> bool:
    return any(
        m.content and (PRODUCT_CONTEXT_MARKER in m.content or "━━━" in m.content)
        for m in messages
    )


def render_product_context(product: ScrapeResult, target_lang: str | None = None) -> str:
    """System message grounding the model in a freshly scraped page."""
    analysis = classify_reviews(product.reviews)
    samples = "\n".join(f"- {r[:300]}" for r in product.reviews[:SAMPLE_REVIEWS]) or "- (none found)"

    return f"""{SEPARATOR}
{PRODUCT_CONTEXT_MARKER}
{SEPARATOR}
Title: {product.product_title or 'unknown'}
Price: {product.product_price or 'unknown'}
Description: {(product.product_description or 'unknown')[:600]}
Reviews scraped: {analysis.total_reviews}
Review check: {analysis.summary}

Sample reviews:
{samples}
{SEPARATOR}
Answer using only the data above when discussing this product. If something is
not in the data, say so. Respond in {_language_name(target_lang)}."""


def build_chat_messages(
    messages: list[ChatMessage],
    target_lang: str | None = None,
    product: ScrapeResult | None = None,
) -> list[dict]:
    if product is not None and not has_product_context(messages):
        grounding = ChatMessage(role="system", content=render_product_context(product, target_lang))
        messages = [grounding, *messages]

    if has_product_context(messages):
        return [{"role": m.role, "content": m.content} for m in messages]

    return [
        {"role": "system", "content": system_prompt(target_lang)},
        *({"role": m.role, "content": m.content} for m in messages if m.role != "system"),
    ]


async def _iter_tokens(upstream) -> AsyncIterator[str]:
    try:
        async for chunk in upstream:
            if not chunk.choices:
                continue
            content = chunk.choices[0].delta.content
            if content:
                yield content
    except Exception as e:
        logger.error(f"[ChatAgent] Stream interrupted: {e}")
        raise UpstreamProviderError(f"Groq stream error: {e}") from e
    finally:
        # also reached when the consumer is cancelled (client disconnect)
        await asyncio.shield(upstream.close())


async def open_chat_stream(messages: list[dict], grounded: bool) -> AsyncIterator[str]:
    """
    Opens the upstream completion and returns an async iterator of text deltas.
    Connection/auth errors surface here, before any byte goes to the client.
    """
    client = get_groq_client()
    try:
        upstream = await client.chat.completions.create(
            model=GROQ_MODEL,
            messages=messages,
            temperature=GROUNDED_TEMPERATURE if grounded else OPEN_TEMPERATURE,
            max_tokens=MAX_TOKENS,
            stream=True,
        )
    except Exception as e:
        logger.error(f"[ChatAgent] Groq API error: {e}")
        raise UpstreamProviderError(f"Groq API error: {e}") from e

    logger.info(f"[ChatAgent] Streaming {len(messages)} messages (grounded={grounded})")
    return _iter_tokens(upstream)
