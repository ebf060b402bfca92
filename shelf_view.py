from __future__ import annotations

import math
import unicodedata
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from shelf import FINISHED, READING, SHELF_LABELS, STATUSES, WANT_TO_READ, Book, validate_status

SORT_KEYS = ("title", "author", "rating", "year")
VIEW_MODES = ("grid", "list")
PLACEHOLDER_COVER = "/placeholder.svg"
MAX_STARS = 5


@dataclass(frozen=True)
class ShelfInfo:
    status: str
    label: str
    description: str
    empty_message: str


SHELVES: Dict[str, ShelfInfo] = {
    READING: ShelfInfo(
        status=READING,
        label=SHELF_LABELS[READING],
        description="Books you are actively reading",
        empty_message="Start reading a book to see it here.",
    ),
    WANT_TO_READ: ShelfInfo(
        status=WANT_TO_READ,
        label=SHELF_LABELS[WANT_TO_READ],
        description="Books on your reading wishlist",
        empty_message="Search for books and add them to your reading list.",
    ),
    FINISHED: ShelfInfo(
        status=FINISHED,
        label=SHELF_LABELS[FINISHED],
        description="Books you have completed",
        empty_message="Mark books as finished to see them here.",
    ),
}

STATUS_BADGES: Dict[str, str] = {
    WANT_TO_READ: "Want to Read",
    READING: "Reading",
    FINISHED: "Finished",
}


def collation_key(value: Optional[str]) -> str:
    """Accent- and case-insensitive key used for alphabetical ordering."""
    decomposed = unicodedata.normalize("NFKD", value or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


_SORTERS: Dict[str, Callable[[Book], Any]] = {
    "title": lambda book: collation_key(book.title),
    "author": lambda book: collation_key(book.author),
    "rating": lambda book: -book.rating,
    "year": lambda book: -book.published_year,
}


def sort_books(books: Iterable[Book], sort_key: str) -> List[Book]:
    # sorted() is stable, equal keys keep their shelf order
    if sort_key not in _SORTERS:
        raise ValueError(f"Unknown sort key: {sort_key!r}")
    return sorted(books, key=_SORTERS[sort_key])


def status_label(status: str) -> str:
    return STATUS_BADGES.get(status, status)


def star_count(rating: float) -> int:
    return max(0, min(MAX_STARS, math.floor(rating)))


def cover_or_placeholder(book: Book) -> str:
    return book.cover or PLACEHOLDER_COVER


def render_card(book: Book, favorite: bool = False) -> Dict[str, Any]:
    """Flatten a book into the fields a shelf card draws."""
    show_progress = book.status == READING and bool(book.progress)
    return {
        "id": book.id,
        "title": book.title,
        "author": book.author,
        "cover": cover_or_placeholder(book),
        "has_cover": bool(book.cover),
        "rating": round(book.rating, 1),
        "rating_label": f"{book.rating:.1f}",
        "stars": star_count(book.rating),
        "pages": book.pages,
        "pages_estimated": book.pages_estimated,
        "published_year": book.published_year,
        "genre": book.genre,
        "status": book.status,
        "status_label": status_label(book.status),
        "progress": book.progress if show_progress else None,
        "favorite": favorite,
    }


class ShelfView:
    """View-local state for the library tab.

    Nothing here mutates the store; ``visible_books`` is recomputed from
    whatever collection it is handed.
    """

    def __init__(self, active_shelf: str = READING, sort_key: str = "title", view_mode: str = "grid"):
        self.active_shelf = READING
        self.sort_key = "title"
        self.view_mode = "grid"
        self.set_active_shelf(active_shelf)
        self.set_sort_key(sort_key)
        self.set_view_mode(view_mode)

    def set_active_shelf(self, status: str) -> None:
        self.active_shelf = validate_status(status)

    def set_sort_key(self, key: str) -> None:
        if key not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {key!r}")
        self.sort_key = key

    def set_view_mode(self, mode: str) -> None:
        if mode not in VIEW_MODES:
            raise ValueError(f"Unknown view mode: {mode!r}")
        self.view_mode = mode

    def toggle_view_mode(self) -> str:
        self.view_mode = "list" if self.view_mode == "grid" else "grid"
        return self.view_mode

    @property
    def shelf_info(self) -> ShelfInfo:
        return SHELVES[self.active_shelf]

    def visible_books(self, books: Iterable[Book]) -> List[Book]:
        on_shelf = [book for book in books if book.status == self.active_shelf]
        return sort_books(on_shelf, self.sort_key)

    def cards(self, books: Iterable[Book], favorites: Optional[Set[str]] = None) -> List[Dict[str, Any]]:
        favorites = favorites or set()
        return [render_card(book, book.id in favorites) for book in self.visible_books(books)]


def shelf_summary(books: Iterable[Book]) -> List[Dict[str, Any]]:
    """Per-shelf navigation entries with their book counts."""
    counts = {status: 0 for status in STATUSES}
    for book in books:
        if book.status in counts:
            counts[book.status] += 1
    return [
        {
            "status": info.status,
            "label": info.label,
            "description": info.description,
            "count": counts[info.status],
        }
        for info in SHELVES.values()
    ]
