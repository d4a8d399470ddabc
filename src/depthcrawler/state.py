"""
Shared crawl state: the run-wide set of visited URLs.
"""
from __future__ import annotations

import enum
import threading
from typing import Dict, List, Optional


class Claim(str, enum.Enum):
    """Answer of :meth:`CrawlState.claim`."""
    NEW = "new"          # first time seen, caller expands it
    DEEPER = "deeper"    # seen before, but with less depth left; caller expands again
    SEEN = "seen"        # seen with at least as much depth left; caller skips
    FULL = "full"        # new, but the page limit is reached; caller skips


class CrawlState:
    """
    Visited URLs shared by every traversal task of one run.

    Each URL is stored once, together with the largest remaining depth it
    has been claimed with. Entries are never removed. All access goes
    through one lock, and :meth:`claim` is the only way to write.
    """

    def __init__(self, max_pages: Optional[int] = None) -> None:
        self.max_pages = max_pages
        self._visited: Dict[str, int] = {}
        self._lock = threading.Lock()

    def claim(self, url: str, remaining_depth: int) -> Claim:
        """Atomically record ``url`` and decide whether the caller should expand it."""
        with self._lock:
            known_depth = self._visited.get(url)
            if known_depth is None:
                if self.max_pages is not None and len(self._visited) >= self.max_pages:
                    return Claim.FULL
                self._visited[url] = remaining_depth
                return Claim.NEW
            if remaining_depth > known_depth:
                self._visited[url] = remaining_depth
                return Claim.DEEPER
            return Claim.SEEN

    def urls(self) -> List[str]:
        """Snapshot of every recorded URL, in insertion order."""
        with self._lock:
            return list(self._visited)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._visited

    def __len__(self) -> int:
        with self._lock:
            return len(self._visited)
