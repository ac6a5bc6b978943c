"""Run-scoped set of links already collected."""

import threading
from collections.abc import Iterable
from typing import Optional


class SeenLinks:
    """
    Links collected so far in one run, shared by every source of a content type.

    A single instance is created per run and passed to each source loop.
    `add` is atomic, so concurrent sources never both claim the same link.
    """

    def __init__(self, initial: Optional[Iterable[str]] = None):
        self._links: set[str] = set(initial or ())
        self._lock = threading.Lock()

    def add(self, link: str) -> bool:
        """Record a link; return False if it was already seen."""
        with self._lock:
            if link in self._links:
                return False
            self._links.add(link)
            return True

    def __contains__(self, link: object) -> bool:
        with self._lock:
            return link in self._links

    def __len__(self) -> int:
        with self._lock:
            return len(self._links)
