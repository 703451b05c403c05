"""
Product metadata extraction.

Each field has an ordered list of strategies; the first one returning a
non-empty value wins. Meta tags and site markup come first, JSON-LD
`Product` objects last, to fill whatever is still missing.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from bs4 import BeautifulSoup

from ..models import ProductMetadata
from .fetcher import log_step
from .review_extractor import clean_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldStrategy:
    name: str
    extract: Callable[[BeautifulSoup, list[dict]], Optional[str]]


# ── STRATEGY BUILDERS ──────────────────────────────────────────────────────

def meta_tag(key: str) -> FieldStrategy:
    def extract(soup: BeautifulSoup, _products: list[dict]) -> Optional[str]:
        for attr in ("property", "name", "itemprop"):
            tag = soup.find("meta", attrs={attr: key})
            if tag and tag.get("content"):
                return tag["content"]
        return None
    return FieldStrategy(f"meta[{key}]", extract)


def element_text(selector: str) -> FieldStrategy:
    def extract(soup: BeautifulSoup, _products: list[dict]) -> Optional[str]:
        el = soup.select_one(selector)
        return clean_text(el.get_text(" ")) if el else None
    return FieldStrategy(selector, extract)


def element_attr(selector: str, *attrs: str) -> FieldStrategy:
    def extract(soup: BeautifulSoup, _products: list[dict]) -> Optional[str]:
        el = soup.select_one(selector)
        if el is None:
            return None
        for attr in attrs:
            if el.get(attr):
                return el[attr]
        return None
    return FieldStrategy(f"{selector}@{'/'.join(attrs)}", extract)


def json_ld(field: str, getter: Callable[[dict], Any]) -> FieldStrategy:
    def extract(_soup: BeautifulSoup, products: list[dict]) -> Optional[str]:
        for product in products:
            value = getter(product)
            if value not in (None, ""):
                return str(value)
        return None
    return FieldStrategy(f"json-ld.{field}", extract)


# ── JSON-LD ────────────────────────────────────────────────────────────────

def _is_product(node: dict) -> bool:
    kind = node.get("@type")
    return kind == "Product" or (isinstance(kind, list) and "Product" in kind)


def find_json_ld_products(soup: BeautifulSoup) -> list[dict]:
    products = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.get_text())
        except json.JSONDecodeError as e:
            logger.debug(f"[Metadata] Skipping malformed JSON-LD block: {e}")
            continue

        queue = list(data) if isinstance(data, list) else [data]
        while queue:
            node = queue.pop(0)
            if not isinstance(node, dict):
                continue
            if isinstance(node.get("@graph"), list):
                queue.extend(node["@graph"])
            if _is_product(node):
                products.append(node)
    return products


def _ld_image(product: dict) -> Any:
    image = product.get("image")
    if isinstance(image, list):
        image = image[0] if image else None
    if isinstance(image, dict):
        image = image.get("url")
    return image


def _ld_price(product: dict) -> Any:
    offers = product.get("offers")
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    if not isinstance(offers, dict):
        return None
    return offers.get("price") or offers.get("lowPrice")


FIELD_STRATEGIES: dict[str, list[FieldStrategy]] = {
    "title": [
        meta_tag("og:title"),
        meta_tag("twitter:title"),
        element_text("#productTitle"),
        element_text("#title"),
        element_text("title"),
        json_ld("name", lambda p: p.get("name")),
    ],
    "description": [
        meta_tag("description"),
        meta_tag("og:description"),
        element_text("#productDescription"),
        element_text("#feature-bullets"),
        json_ld("description", lambda p: p.get("description")),
    ],
    "image": [
        meta_tag("og:image"),
        meta_tag("twitter:image"),
        element_attr("#landingImage", "data-old-hires", "src"),
        element_attr("#imgBlkFront", "src"),
        json_ld("image", _ld_image),
    ],
    "price": [
        meta_tag("product:price:amount"),
        meta_tag("og:price:amount"),
        meta_tag("price"),
        element_text("#corePrice_feature_div .a-offscreen"),
        element_text(".a-price .a-offscreen"),
        element_text("#priceblock_ourprice"),
        element_text("#priceblock_dealprice"),
        json_ld("offers.price", _ld_price),
    ],
}


def extract_metadata(html: str, logs: list[str], soup: BeautifulSoup | None = None) -> ProductMetadata:
    if soup is None:
        soup = BeautifulSoup(html, "html.parser")
    products = find_json_ld_products(soup)

    values = {}
    for field, strategies in FIELD_STRATEGIES.items():
        values[field] = None
        for strategy in strategies:
            value = strategy.extract(soup, products)
            if value and value.strip():
                values[field] = value.strip()
                log_step(logs, f"Product {field} found via {strategy.name}")
                break
        else:
            log_step(logs, f"Product {field} not found")

    return ProductMetadata(**values)
