from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Callable, List, Optional

from catalog import CatalogClient, SearchResult
from config import config
from shelf import Book

logger = logging.getLogger(__name__)

NOT_SEARCHED = "not-searched"
LOADING = "loading"
EMPTY = "empty"
RESULTS = "results"

TimerFactory = Callable[..., Any]


@dataclass
class SearchSnapshot:
    status: str = NOT_SEARCHED
    query: str = ""
    results: List[SearchResult] = field(default_factory=list)

    @property
    def books(self) -> List[Book]:
        return [row.book for row in self.results if row.book is not None]

    def find(self, key: str) -> Optional[SearchResult]:
        for row in self.results:
            if row.key == key:
                return row
        return None


class SearchSession:
    """Search-as-you-type over the catalog with a single pending slot.

    Each ``submit`` cancels the timer that has not fired yet and bumps a
    generation counter. A request only writes its results back while its
    generation is still the current one, so a slow response for an old
    query can never replace the results of a newer one.
    """

    def __init__(
        self,
        client: CatalogClient,
        delay: float = config.SEARCH_DEBOUNCE,
        timer_factory: TimerFactory = threading.Timer,
    ):
        self.client = client
        self.delay = delay
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: Optional[Any] = None
        self._generation = 0
        self._state = SearchSnapshot()

    def submit(self, query: str) -> SearchSnapshot:
        with self._lock:
            self._cancel_timer()
            self._generation += 1
            generation = self._generation
            self._state.query = query
            if not query or not query.strip():
                self._state = SearchSnapshot(query=query)
                return self._copy()

            timer = self._timer_factory(self.delay, self._run, args=(generation, query))
            timer.daemon = True
            self._timer = timer
            snapshot = self._copy()
        # started outside the lock, the callback takes it again
        timer.start()
        return snapshot

    def cancel(self) -> None:
        """Drop the pending timer and orphan any request still in flight."""
        with self._lock:
            self._cancel_timer()
            self._generation += 1
            if self._state.status == LOADING:
                self._state.status = NOT_SEARCHED

    def snapshot(self) -> SearchSnapshot:
        with self._lock:
            return self._copy()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _copy(self) -> SearchSnapshot:
        return SearchSnapshot(
            status=self._state.status,
            query=self._state.query,
            results=[
                replace(row, book=replace(row.book) if row.book is not None else None)
                for row in self._state.results
            ],
        )

    def _run(self, generation: int, query: str) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
            self._state.status = LOADING

        try:
            rows = self.client.lookup(query) or []
        except Exception:
            # runs on a timer thread; a raise here would leave LOADING behind
            logger.exception("Search for %r failed", query)
            rows = []

        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding results for superseded query %r", query)
                return
            self._state = SearchSnapshot(
                status=RESULTS if rows else EMPTY,
                query=query,
                results=rows,
            )
