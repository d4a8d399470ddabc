"""
Link extraction from parsed pages.
"""
from __future__ import annotations

from typing import List, Protocol

from depthcrawler.fetch import Page


class LinkExtractor(Protocol):
    def extract(self, page: Page) -> List[str]:
        ...


class AnchorLinkExtractor:
    """Extract the raw href of every <a> tag inside the document body."""

    selector = "body a[href]"

    def extract(self, page: Page) -> List[str]:
        return [a["href"].strip() for a in page.document.select(self.selector)]
