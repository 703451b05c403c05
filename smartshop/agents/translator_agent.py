"""
TranslatorAgent — translates the extractive summary on request.
Best effort: any failure returns None and the summary goes out untranslated.
"""
import logging

from ..config import GROQ_MODEL
from ..errors import UpstreamProviderError
from ..rules import LANGUAGE_NAMES
from .llm import get_groq_client

logger = logging.getLogger(__name__)


async def translate_summary(summary: str, target_lang: str) -> str | None:
    if not summary:
        return None

    try:
        client = get_groq_client()
    except UpstreamProviderError as e:
        logger.info(f"[Translator] Skipping translation: {e}")
        return None

    target_name = LANGUAGE_NAMES.get(target_lang, target_lang)
    try:
        completion = await client.chat.completions.create(
            model=GROQ_MODEL,
            messages=[
                {
                    "role": "system",
                    "content": (
                        f"You are a professional translator. Translate the following product review "
                        f"summary to {target_name}. Preserve the meaning and tone. "
                        f"Only return the translation, nothing else."
                    ),
                },
                {"role": "user", "content": summary},
            ],
            temperature=0.3,
            max_tokens=500,
        )
        translated = (completion.choices[0].message.content or "").strip()
        return translated or None
    except Exception as e:
        logger.warning(f"[Translator] Translation to {target_lang} failed: {e}")
        return None
