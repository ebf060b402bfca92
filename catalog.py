from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from config import config
from shelf import WANT_TO_READ, Book

logger = logging.getLogger(__name__)

COVER_URL_TEMPLATE = "https://covers.openlibrary.org/b/id/{cover_id}-{size}.jpg"
THUMBNAIL_SIZE = "S"
SHELF_COVER_SIZE = "M"

UNKNOWN_AUTHOR = "Unknown Author"
DEFAULT_GENRE = "Fiction"
DEFAULT_YEAR = 2020
ESTIMATED_PAGES_RANGE = (100, 499)


def cover_url(cover_id: Any, size: str = SHELF_COVER_SIZE) -> Optional[str]:
    """Build a covers.openlibrary.org URL, or ``None`` without a cover id."""
    if cover_id is None or isinstance(cover_id, bool):
        return None
    if isinstance(cover_id, float) and cover_id.is_integer():
        cover_id = int(cover_id)
    if not isinstance(cover_id, int) or cover_id <= 0:
        return None
    return COVER_URL_TEMPLATE.format(cover_id=cover_id, size=size)


def _first(values: Any) -> Optional[str]:
    if isinstance(values, list):
        for value in values:
            if isinstance(value, str) and value.strip():
                return value
        return None
    if isinstance(values, str) and values.strip():
        return values
    return None


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_number(value: Any) -> Optional[float]:
    """Return a finite float for a JSON number, ``None`` for anything else."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    if not math.isfinite(number):
        return None
    return number


@dataclass
class CatalogQuery:
    """Encapsulates an Open Library search query."""

    text: str
    limit: int = config.SEARCH_LIMIT

    def to_params(self) -> Dict[str, str]:
        return {"q": self.text, "limit": str(self.limit)}


@dataclass
class SearchResult:
    """A search row as drawn in the results list.

    ``book`` is the shelf-ready book built from the same doc, so adding
    a row to the shelf keeps the page count that was displayed.
    """

    key: str
    title: str
    author: str
    year: Optional[int]
    subject: Optional[str]
    thumbnail_url: Optional[str]
    book: Optional[Book] = None


def describe_doc(doc: Dict[str, Any], book: Optional[Book] = None) -> SearchResult:
    year = _as_number(doc.get("first_publish_year"))
    return SearchResult(
        key=str(doc.get("key") or ""),
        title=_text(doc.get("title")),
        author=_first(doc.get("author_name")) or UNKNOWN_AUTHOR,
        year=int(year) if year is not None else None,
        subject=_first(doc.get("subject")),
        thumbnail_url=cover_url(doc.get("cover_i"), THUMBNAIL_SIZE),
        book=book,
    )


def build_book(doc: Dict[str, Any], rng: Optional[random.Random] = None) -> Book:
    """Create a shelf-ready book from an Open Library search doc.

    The search endpoint has no reliable page count. When
    ``number_of_pages_median`` is missing the count is synthesized and
    the book is flagged with ``pages_estimated``.
    """
    rating = _as_number(doc.get("ratings_average")) or 0.0
    rating = min(max(rating, 0.0), 5.0)

    year = _as_number(doc.get("first_publish_year"))

    pages_value = _as_number(doc.get("number_of_pages_median"))
    if pages_value is not None and pages_value >= 1:
        pages = int(pages_value)
        estimated = False
    else:
        low, high = ESTIMATED_PAGES_RANGE
        pages = (rng or random).randint(low, high)
        estimated = True

    return Book(
        id=str(doc.get("key") or ""),
        title=_text(doc.get("title")),
        author=_first(doc.get("author_name")) or UNKNOWN_AUTHOR,
        cover=cover_url(doc.get("cover_i"), SHELF_COVER_SIZE),
        rating=rating,
        pages=pages,
        published_year=int(year) if year is not None else DEFAULT_YEAR,
        genre=_first(doc.get("subject")) or DEFAULT_GENRE,
        status=WANT_TO_READ,
        pages_estimated=estimated,
    )


class CatalogClient:
    """Client for the Open Library search endpoint.

    Every failure mode (network, HTTP status, undecodable body) is
    logged and reported as an empty result list.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        base_url: str = config.OPENLIBRARY_SEARCH_URL,
        limit: int = config.SEARCH_LIMIT,
        timeout: float = config.SEARCH_TIMEOUT,
        rng: Optional[random.Random] = None,
    ):
        self.session = session or requests.Session()
        self.base_url = base_url
        self.limit = limit
        self.timeout = timeout
        self.rng = rng or random.Random()

    def fetch_docs(self, query: CatalogQuery) -> List[Dict[str, Any]]:
        """Fetch raw docs from the Open Library Search API."""
        try:
            response = self.session.get(
                self.base_url,
                params=query.to_params(),
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as error:
            logger.warning("Unable to reach Open Library: %s", error)
            return []
        except ValueError as error:
            logger.warning("Open Library returned an unreadable body: %s", error)
            return []

        if not isinstance(data, dict):
            logger.warning("Unexpected Open Library payload: %r", type(data).__name__)
            return []
        docs = data.get("docs") or []
        if not isinstance(docs, list):
            return []
        return [doc for doc in docs if isinstance(doc, dict)][: query.limit]

    def search_docs(self, text: str) -> Optional[List[Dict[str, Any]]]:
        if not text or not text.strip():
            return None
        return self.fetch_docs(CatalogQuery(text=text, limit=self.limit))

    def lookup(self, text: str) -> Optional[List[SearchResult]]:
        """Search the catalog and return result rows.

        Returns ``None`` for a blank query (nothing searched) and a
        possibly empty list otherwise. Each row carries its shelf-ready
        book.
        """
        docs = self.search_docs(text)
        if docs is None:
            return None
        rows: List[SearchResult] = []
        for doc in docs:
            if not doc.get("key"):
                continue
            rows.append(describe_doc(doc, book=build_book(doc, rng=self.rng)))
        logger.debug("Open Library returned %d books for %r", len(rows), text)
        return rows

    def search(self, text: str) -> Optional[List[Book]]:
        rows = self.lookup(text)
        if rows is None:
            return None
        return [row.book for row in rows if row.book is not None]
