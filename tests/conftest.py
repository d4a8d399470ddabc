"""
Shared fixtures: an in-memory site that stands in for the network.
"""
import threading
import time
from typing import Dict, List, Union

import pytest

from depthcrawler.fetch import HTTPStatusError, Page, parse_document


def html_page(*hrefs: str) -> str:
    anchors = "".join(f'<a href="{href}">link</a>' for href in hrefs)
    return f"<html><head><title>t</title></head><body>{anchors}</body></html>"


class FakeSite:
    """
    Fetcher double backed by a dict of ``url -> hrefs``.

    A value that is an int is answered with that HTTP status; an exception
    instance is raised as-is. Unknown URLs answer 404.
    """

    def __init__(self, pages: Dict[str, Union[List[str], int, Exception]], delay: float = 0.0) -> None:
        self.pages = pages
        self.delay = delay
        self.fetched: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def fetch(self, url: str) -> Page:
        with self._lock:
            self.fetched.append(url)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            page = self.pages.get(url, 404)
            if isinstance(page, Exception):
                raise page
            if isinstance(page, int):
                raise HTTPStatusError(url, page)
            return Page(url=url, document=parse_document(html_page(*page)))
        finally:
            with self._lock:
                self.in_flight -= 1

    def fetch_count(self, url: str) -> int:
        with self._lock:
            return self.fetched.count(url)


@pytest.fixture
def make_site():
    return FakeSite
