"""Environment configuration. Everything here can be overridden through .env."""
import os
from pathlib import Path

from dotenv import load_dotenv

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# ── SCRAPING ───────────────────────────────────────────────────────────────
SCRAPEDO_URL = os.getenv("SCRAPEDO_URL", "https://api.scrape.do/")
REVIEW_FETCH_CAP = int(os.getenv("REVIEW_FETCH_CAP", "200"))
DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "20"))

# ── CACHE / RATE LIMIT ─────────────────────────────────────────────────────
REVIEW_CACHE_TTL_SECONDS = float(os.getenv("REVIEW_CACHE_TTL_SECONDS", "300"))
RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "30"))
RATE_LIMIT_WINDOW_SECONDS = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "3600"))
STORE_SWEEP_INTERVAL_SECONDS = float(os.getenv("STORE_SWEEP_INTERVAL_SECONDS", "600"))
# Only honour X-Forwarded-For when a proxy you control sets it.
TRUST_FORWARDED_FOR = os.getenv("TRUST_FORWARDED_FOR", "true").lower() == "true"

# ── CLASSIFIER ─────────────────────────────────────────────────────────────
FAKE_FLAG_THRESHOLD = int(os.getenv("FAKE_FLAG_THRESHOLD", "1"))

# ── LLM ────────────────────────────────────────────────────────────────────
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


# Secrets are read per call so a rotated key (or a test) never needs a reload.
def scrapedo_token() -> str | None:
    return os.getenv("SCRAPEDO_API_TOKEN") or None


def groq_api_key() -> str | None:
    return os.getenv("GROQ_API_KEY") or None
