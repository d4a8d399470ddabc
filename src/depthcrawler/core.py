"""
Core crawling logic and data structures.
"""
from __future__ import annotations

import enum
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from depthcrawler.config import CrawlConfig
from depthcrawler.fetch import (
    Fetcher,
    FetchError,
    HTTPStatusError,
    HttpFetcher,
    ParseError,
    TransportError,
)
from depthcrawler.links import AnchorLinkExtractor, LinkExtractor
from depthcrawler.state import Claim, CrawlState
from depthcrawler.urls import ResolutionError, in_scope, resolve_url

log = logging.getLogger(__name__)


class Outcome(str, enum.Enum):
    """How a single traversal task ended."""
    EXPANDED = "expanded"
    LEAF = "leaf"
    DEPTH_EXHAUSTED = "depth_exhausted"
    RESOLUTION_FAILED = "resolution_failed"
    OUT_OF_SCOPE = "out_of_scope"
    ALREADY_VISITED = "already_visited"
    PAGE_LIMIT = "page_limit"
    FETCH_FAILED = "fetch_failed"
    EXTRACT_FAILED = "extract_failed"
    INTERNAL_ERROR = "internal_error"


@dataclass(slots=True)
class TaskResult:
    """Result of expanding one URL, with the results of its children."""
    url: str
    remaining_depth: int
    outcome: Outcome
    resolved_url: Optional[str] = None
    error: Optional[Exception] = None
    children: List["TaskResult"] = field(default_factory=list)

    def walk(self) -> Iterator["TaskResult"]:
        """Yield this result and every result below it."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find(self, resolved_url: str) -> List["TaskResult"]:
        """Every result in this tree whose URL resolved to ``resolved_url``."""
        return [r for r in self.walk() if r.resolved_url == resolved_url]


@dataclass(slots=True)
class CrawlStats:
    """Statistics collected during crawl for summary output."""
    pages_recorded: int = 0
    pages_fetched: int = 0
    external_links: int = 0
    resolution_errors: int = 0
    duplicates_skipped: int = 0
    page_limit_hits: int = 0
    error_counts: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def record_error(self, error: Optional[Exception]) -> None:
        """Record a failed task by error category."""
        if isinstance(error, HTTPStatusError):
            self.error_counts[str(error.status_code)] += 1
        elif isinstance(error, TransportError):
            self.error_counts["connection_error"] += 1
        elif isinstance(error, ParseError):
            self.error_counts["parse_error"] += 1
        else:
            self.error_counts["other_error"] += 1

    def record(self, result: TaskResult) -> None:
        """Count one task result under its outcome."""
        outcome = result.outcome
        if outcome is Outcome.EXPANDED or outcome is Outcome.EXTRACT_FAILED:
            self.pages_fetched += 1
        if outcome is Outcome.OUT_OF_SCOPE:
            self.external_links += 1
        elif outcome is Outcome.RESOLUTION_FAILED:
            self.resolution_errors += 1
        elif outcome is Outcome.ALREADY_VISITED:
            self.duplicates_skipped += 1
        elif outcome is Outcome.PAGE_LIMIT:
            self.page_limit_hits += 1
        elif outcome is Outcome.FETCH_FAILED:
            self.record_error(result.error)
        elif outcome is Outcome.EXTRACT_FAILED:
            self.error_counts["extract_error"] += 1
        elif outcome is Outcome.INTERNAL_ERROR:
            self.error_counts["internal_error"] += 1

    @property
    def total_errors(self) -> int:
        """Malformed links plus every failed fetch or extraction."""
        return self.resolution_errors + sum(self.error_counts.values())

    @classmethod
    def from_tree(cls, root: TaskResult, pages_recorded: int = 0) -> "CrawlStats":
        """Build stats by walking a finished result tree."""
        stats = cls(pages_recorded=pages_recorded)
        for result in root.walk():
            stats.record(result)
        return stats


@dataclass(slots=True)
class CrawlResult:
    """Everything a finished run produced."""
    seed_url: str
    visited: List[str]
    root: TaskResult
    stats: CrawlStats

    def report(self) -> Dict[str, bool]:
        """The visited set as ``{url: True}``."""
        return {url: True for url in self.visited}


class _ChildTask(threading.Thread):
    """Runs one child expansion; joining it is the child's completion signal."""

    def __init__(self, crawler: "Crawler", href: str, remaining_depth: int) -> None:
        super().__init__(name=f"crawl-{remaining_depth}", daemon=True)
        self.crawler = crawler
        self.href = href
        self.remaining_depth = remaining_depth
        self.result: Optional[TaskResult] = None

    def run(self) -> None:
        self.result = self.crawler.expand(self.href, self.remaining_depth)


class Crawler:
    """
    Depth-bounded, single-host crawler.

    Every discovered link becomes its own traversal task running in its own
    thread. A task records its URL in the shared :class:`CrawlState`,
    fetches the page, starts one child task per link on it and waits for all
    of them before it finishes, so the seed task returning means the whole
    reachable tree has been explored.

    Fetches are capped run-wide by ``max_in_flight``. The cap is only held
    while fetching, never while waiting for children.
    """

    def __init__(
        self,
        config: CrawlConfig,
        fetcher: Fetcher,
        extractor: Optional[LinkExtractor] = None,
        state: Optional[CrawlState] = None,
    ) -> None:
        config.validate()
        self.config = config
        self.fetcher = fetcher
        self.extractor = extractor or AnchorLinkExtractor()
        self.state = state if state is not None else CrawlState(config.max_pages)
        self.seed_url = config.seed_url
        self.seed_host = config.seed_host
        self._fetch_slots = threading.BoundedSemaphore(config.max_in_flight)

    def run(self) -> CrawlResult:
        """Crawl from the seed and return once every task has finished."""
        log.info("Starting crawl from: %s (max depth %d)", self.seed_url, self.config.max_depth)
        root = self.expand(self.seed_url, self.config.max_depth)
        visited = sorted(self.state.urls())
        stats = CrawlStats.from_tree(root, pages_recorded=len(visited))
        log.info(
            "Crawl finished: %d URLs recorded, %d pages fetched, %d errors",
            len(visited), stats.pages_fetched, stats.total_errors,
        )
        return CrawlResult(seed_url=self.seed_url, visited=visited, root=root, stats=stats)

    def expand(self, url: str, remaining_depth: int) -> TaskResult:
        """
        Run one traversal task. Never raises.

        Args:
            url: Raw href (relative, absolute or malformed).
            remaining_depth: Hops still allowed below this URL. At 0 the URL
                is recorded but not fetched.
        """
        try:
            return self._expand(url, remaining_depth)
        except Exception as e:
            log.exception("Unexpected error while crawling %s", url)
            return TaskResult(url, remaining_depth, Outcome.INTERNAL_ERROR, error=e)

    def _expand(self, url: str, remaining_depth: int) -> TaskResult:
        if remaining_depth < 0:
            return TaskResult(url, remaining_depth, Outcome.DEPTH_EXHAUSTED)

        try:
            absolute = resolve_url(url, self.seed_url)
        except ResolutionError as e:
            log.warning("Could not resolve link %r: %s", url, e.reason)
            return TaskResult(url, remaining_depth, Outcome.RESOLUTION_FAILED, error=e)

        result = TaskResult(url, remaining_depth, Outcome.EXPANDED, resolved_url=absolute)

        if not in_scope(absolute, self.seed_host, self.config.allow_subdomains):
            log.info("Not storing external URL: %s", absolute)
            result.outcome = Outcome.OUT_OF_SCOPE
            return result

        claim = self.state.claim(absolute, remaining_depth)
        if claim is Claim.SEEN:
            log.debug("Already visited: %s", absolute)
            result.outcome = Outcome.ALREADY_VISITED
            return result
        if claim is Claim.FULL:
            log.debug("Page limit reached, not storing: %s", absolute)
            result.outcome = Outcome.PAGE_LIMIT
            return result

        if remaining_depth == 0:
            result.outcome = Outcome.LEAF
            return result

        try:
            with self._fetch_slots:
                page = self.fetcher.fetch(absolute)
        except FetchError as e:
            log.warning("Fetch failed for %s: %s", absolute, e)
            result.outcome = Outcome.FETCH_FAILED
            result.error = e
            return result

        try:
            hrefs = self.extractor.extract(page)
        except Exception as e:
            log.warning("Link extraction failed for %s: %s", absolute, e)
            result.outcome = Outcome.EXTRACT_FAILED
            result.error = e
            return result

        log.debug("%s: %d links, depth left %d", absolute, len(hrefs), remaining_depth - 1)
        result.children = self._fan_out(hrefs, remaining_depth - 1)
        return result

    def _fan_out(self, hrefs: List[str], remaining_depth: int) -> List[TaskResult]:
        tasks = [_ChildTask(self, href, remaining_depth) for href in hrefs]
        started: List[_ChildTask] = []
        results: Dict[int, TaskResult] = {}

        for i, task in enumerate(tasks):
            try:
                task.start()
                started.append(task)
            except RuntimeError:
                # Out of threads: run this child on the current one instead
                log.debug("Could not start thread, expanding %s inline", task.href)
                results[i] = self.expand(task.href, remaining_depth)

        for task in started:
            task.join()

        children: List[TaskResult] = []
        for i, task in enumerate(tasks):
            child = results.get(i) or task.result
            if child is None:
                child = TaskResult(task.href, remaining_depth, Outcome.INTERNAL_ERROR)
            children.append(child)
        return children


def crawl(
    start_url: str,
    max_depth: int = 5,
    max_in_flight: int = 10,
    max_pages: Optional[int] = None,
    allow_subdomains: bool = False,
    timeout_s: float = 15.0,
    user_agent: Optional[str] = None,
) -> CrawlResult:
    """
    Crawl every link reachable from ``start_url`` on the same host.

    Args:
        start_url: The URL to start crawling from.
        max_depth: Maximum number of hops from the start URL.
        max_in_flight: Maximum number of concurrent HTTP requests.
        max_pages: Optional cap on the number of URLs recorded.
        allow_subdomains: Also follow links to subdomains of the start host.
        timeout_s: HTTP request timeout in seconds.
        user_agent: User-Agent header to use for requests.

    Returns:
        The finished :class:`CrawlResult`.

    Raises:
        ValueError: if the start URL or any limit is invalid.
    """
    options = dict(
        start_url=start_url,
        max_depth=max_depth,
        max_in_flight=max_in_flight,
        max_pages=max_pages,
        allow_subdomains=allow_subdomains,
        timeout_s=timeout_s,
    )
    if user_agent:
        options["user_agent"] = user_agent
    config = CrawlConfig(**options)
    config.validate()

    with HttpFetcher(config.user_agent, config.timeout_s) as fetcher:
        return Crawler(config, fetcher).run()
