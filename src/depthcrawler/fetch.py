"""
Fetching pages over HTTP.

The crawl engine only depends on the :class:`Fetcher` protocol, so any
object with a ``fetch(url) -> Page`` method can stand in for
:class:`HttpFetcher`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import requests
from bs4 import BeautifulSoup

log = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "DepthCrawler/1.0"


@dataclass(slots=True)
class Page:
    """A fetched and parsed HTML document."""
    url: str
    document: BeautifulSoup
    status_code: int = 200


class FetchError(Exception):
    """Base class for every failure to turn a URL into a Page."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(message)
        self.url = url


class TransportError(FetchError):
    """Network-level failure (DNS, connection refused, timeout, ...)."""


class HTTPStatusError(FetchError):
    """The server answered with a non-success status code."""

    def __init__(self, url: str, status_code: int, reason: str = "") -> None:
        status = f"{status_code} {reason}".strip()
        super().__init__(url, f"Status code error: {status} for URL: {url}")
        self.status_code = status_code


class ParseError(FetchError):
    """The response body could not be parsed as a document."""


class Fetcher(Protocol):
    def fetch(self, url: str) -> Page:
        ...


def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


class HttpFetcher:
    """
    Fetcher backed by a single shared ``requests.Session``.

    Failures are raised as :class:`FetchError` subclasses and are never
    retried here.
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout_s: float = 15.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout_s = timeout_s
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = user_agent

    def fetch(self, url: str) -> Page:
        try:
            resp = self.session.get(url, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise TransportError(url, str(e)) from e

        try:
            if not 200 <= resp.status_code < 300:
                raise HTTPStatusError(url, resp.status_code, resp.reason or "")

            try:
                document = parse_document(resp.text)
            except Exception as e:
                raise ParseError(url, f"Could not parse {url}: {e}") from e
        finally:
            resp.close()

        log.debug("Fetched %s (%d)", url, resp.status_code)
        return Page(url=url, document=document, status_code=resp.status_code)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpFetcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
