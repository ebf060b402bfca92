from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    """A short-lived message shown to the user after a shelf change."""

    title: str
    description: str


class NotificationSink(Protocol):
    def notify(self, title: str, description: str) -> None:
        ...


class LoggingNotifier:
    """Sink that only writes notifications to the log."""

    def notify(self, title: str, description: str) -> None:
        logger.info("%s: %s", title, description)


class NotificationFeed:
    """Bounded queue of pending notifications for the front-end to poll.

    Older messages are dropped once ``maxlen`` is reached; ``drain()``
    hands everything pending to the caller and empties the queue.
    """

    def __init__(self, maxlen: int = 20):
        self._items: Deque[Notification] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def notify(self, title: str, description: str) -> None:
        logger.info("%s: %s", title, description)
        with self._lock:
            self._items.append(Notification(title=title, description=description))

    def pending(self) -> List[Notification]:
        with self._lock:
            return list(self._items)

    def drain(self) -> List[Notification]:
        with self._lock:
            items = list(self._items)
            self._items.clear()
        return items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
