from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Set, Tuple

from notifications import LoggingNotifier, NotificationSink

logger = logging.getLogger(__name__)

WANT_TO_READ = "want-to-read"
READING = "reading"
FINISHED = "finished"
STATUSES: Tuple[str, ...] = (WANT_TO_READ, READING, FINISHED)

SHELF_LABELS: Dict[str, str] = {
    WANT_TO_READ: "Want to Read",
    READING: "Currently Reading",
    FINISHED: "Finished",
}


def validate_status(status: str) -> str:
    if status not in STATUSES:
        raise ValueError(f"Unknown shelf status: {status!r}")
    return status


def validate_book(book: Book) -> Book:
    validate_status(book.status)
    if isinstance(book.pages, bool) or not isinstance(book.pages, int) or book.pages < 1:
        raise ValueError(f"Page count must be a positive integer, got {book.pages!r}")
    if book.progress is not None and not 0 <= book.progress <= 100:
        raise ValueError(f"Progress must be between 0 and 100, got {book.progress!r}")
    return book


@dataclass
class Book:
    id: str
    title: str
    author: str
    pages: int
    cover: Optional[str] = None
    rating: float = 0.0
    published_year: int = 2020
    genre: str = "Fiction"
    status: str = WANT_TO_READ
    progress: Optional[int] = None
    pages_estimated: bool = False


@dataclass(frozen=True)
class ShelfStats:
    reading: int
    finished: int
    want_to_read: int
    total_pages: int


Listener = Callable[[], None]


def seed_books() -> List[Book]:
    """Return fresh copies of the sample shelf shown on first start."""
    return [
        Book(
            id="1",
            title="The Great Gatsby",
            author="F. Scott Fitzgerald",
            cover="https://covers.openlibrary.org/b/id/8225261-M.jpg",
            rating=4.2,
            pages=180,
            published_year=1925,
            genre="Classic Literature",
            status=READING,
            progress=65,
        ),
        Book(
            id="2",
            title="To Kill a Mockingbird",
            author="Harper Lee",
            cover="https://covers.openlibrary.org/b/id/8226691-M.jpg",
            rating=4.5,
            pages=324,
            published_year=1960,
            genre="Classic Literature",
            status=FINISHED,
        ),
        Book(
            id="3",
            title="1984",
            author="George Orwell",
            cover="https://covers.openlibrary.org/b/id/8221016-M.jpg",
            rating=4.4,
            pages=328,
            published_year=1949,
            genre="Dystopian Fiction",
            status=WANT_TO_READ,
        ),
        Book(
            id="4",
            title="Pride and Prejudice",
            author="Jane Austen",
            cover="https://covers.openlibrary.org/b/id/8134945-M.jpg",
            rating=4.3,
            pages=432,
            published_year=1813,
            genre="Romance",
            status=READING,
            progress=30,
        ),
    ]


class ShelfStore:
    """In-memory store for the reading list and its favorites.

    Books keep their insertion order. Reads hand out copies so callers
    never mutate the collection behind the store's back; every mutation
    goes through ``add_book`` or ``change_status`` and is followed by a
    call to each subscribed listener.
    """

    def __init__(
        self,
        books: Optional[List[Book]] = None,
        notifier: Optional[NotificationSink] = None,
    ):
        self._lock = threading.Lock()
        self._books: List[Book] = []
        self._index: Dict[str, Book] = {}
        self._favorites: Set[str] = set()
        self._listeners: List[Listener] = []
        self.notifier: NotificationSink = notifier or LoggingNotifier()
        for book in books or []:
            if book.id in self._index:
                logger.warning("Skipping duplicate seed book %s", book.id)
                continue
            self._insert(book)

    def _insert(self, book: Book) -> Book:
        validate_book(book)
        stored = replace(book)
        self._books.append(stored)
        self._index[stored.id] = stored
        return stored

    # --------------------------------------------------------------------- #
    # Subscriptions
    # --------------------------------------------------------------------- #
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener()

    # --------------------------------------------------------------------- #
    # Reads
    # --------------------------------------------------------------------- #
    def books(self) -> List[Book]:
        with self._lock:
            return [replace(book) for book in self._books]

    def get_book(self, book_id: str) -> Optional[Book]:
        with self._lock:
            book = self._index.get(book_id)
            return replace(book) if book else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._books)

    def __contains__(self, book_id: object) -> bool:
        with self._lock:
            return book_id in self._index

    def favorites(self) -> Set[str]:
        with self._lock:
            return set(self._favorites)

    def is_favorite(self, book_id: str) -> bool:
        with self._lock:
            return book_id in self._favorites

    def count(self, status: str) -> int:
        validate_status(status)
        with self._lock:
            return sum(1 for book in self._books if book.status == status)

    def stats(self) -> ShelfStats:
        with self._lock:
            reading = finished = want_to_read = total_pages = 0
            for book in self._books:
                if book.status == READING:
                    reading += 1
                elif book.status == FINISHED:
                    finished += 1
                    total_pages += book.pages
                elif book.status == WANT_TO_READ:
                    want_to_read += 1
        return ShelfStats(
            reading=reading,
            finished=finished,
            want_to_read=want_to_read,
            total_pages=total_pages,
        )

    # --------------------------------------------------------------------- #
    # Mutations
    # --------------------------------------------------------------------- #
    def add_book(self, book: Book) -> Tuple[Book, bool]:
        """Append ``book`` unless its id is already shelved.

        Returns the stored book and whether it was newly created. A
        duplicate leaves the collection untouched and only notifies.
        """
        with self._lock:
            existing = self._index.get(book.id)
            if existing is None:
                stored = replace(self._insert(book))
        if existing is not None:
            self.notifier.notify(
                "Book already in library",
                "This book is already in your personal library.",
            )
            return replace(existing), False

        label = SHELF_LABELS[stored.status]
        self.notifier.notify(
            "Book added to library",
            f'"{stored.title}" has been added to your {label} shelf.',
        )
        self._changed()
        return stored, True

    def change_status(self, book_id: str, status: str) -> Optional[Book]:
        """Move a book to another shelf; unknown ids are ignored."""
        validate_status(status)
        with self._lock:
            book = self._index.get(book_id)
            if book is None:
                return None
            book.status = status
            if status == FINISHED:
                book.progress = 100
            updated = replace(book)

        self.notifier.notify(
            "Book status updated",
            f'"{updated.title}" moved to {status.replace("-", " ")}.',
        )
        self._changed()
        return updated

    def toggle_favorite(self, book_id: str) -> bool:
        """Flip favorite membership for ``book_id``; returns the new state."""
        with self._lock:
            if book_id in self._favorites:
                self._favorites.discard(book_id)
                favorite = False
            else:
                self._favorites.add(book_id)
                favorite = True
        self._changed()
        return favorite
