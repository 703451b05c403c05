import argparse
import asyncio
import logging
from typing import Awaitable, Callable

from bs4 import BeautifulSoup

from ..config import REVIEW_FETCH_CAP
from ..models import ScrapeResult
from .fetcher import fetch_html, log_step
from .metadata import extract_metadata
from .review_extractor import extract_reviews


HtmlFetcher = Callable[[str, list[str]], Awaitable[tuple[str | None, str]]]


async def scrape_product(
    url: str,
    fetch_cap: int = REVIEW_FETCH_CAP,
    fetcher: HtmlFetcher = fetch_html,
) -> ScrapeResult:
    """Fetch a product page and pull reviews + metadata out of it.

    Upstream failures never propagate: the result just has no reviews and
    `logs` says what went wrong.
    """
    logs: list[str] = []
    try:
        html, method = await fetcher(url, logs)
        if not html:
            log_step(logs, "No HTML retrieved, returning zero reviews", logging.WARNING)
            return ScrapeResult(logs=logs, fetch_method=method)

        soup = BeautifulSoup(html, "html.parser")
        reviews = extract_reviews(html, fetch_cap, logs, soup=soup)
        meta = extract_metadata(html, logs, soup=soup)
        log_step(logs, f"Total reviews extracted: {len(reviews)} (method: {method})")

        return ScrapeResult(
            reviews=reviews,
            product_title=meta.title,
            product_description=meta.description,
            product_image=meta.image,
            product_price=meta.price,
            logs=logs,
            fetch_method=method,
        )
    except Exception as e:
        log_step(logs, f"Failed to fetch reviews from url: {e}", logging.ERROR)
        return ScrapeResult(logs=logs)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scrape a product page and print its reviews")
    parser.add_argument("url", type=str, help="Product page URL")
    parser.add_argument("--limit", type=int, default=REVIEW_FETCH_CAP, help="Maximum reviews to extract")
    return parser


def main(argv: list[str] | None = None, fetcher: HtmlFetcher = fetch_html) -> None:
    args = build_parser().parse_args(argv)
    result = asyncio.run(scrape_product(args.url, fetch_cap=args.limit, fetcher=fetcher))

    for line in result.logs:
        print(line)
    print()
    print(f"Title: {result.product_title or '-'}")
    print(f"Price: {result.product_price or '-'}")
    print(f"Image: {result.product_image or '-'}")
    print(f"Description: {result.product_description or '-'}")
    print()
    print(f"Extracted reviews: {len(result.reviews)}")
    for i, review in enumerate(result.reviews, 1):
        print(f"\n--- Review {i} ---\n{review}")
    if not result.reviews:
        print("No reviews extracted. The page may block scraping or load reviews dynamically.")


if __name__ == "__main__":
    main()
