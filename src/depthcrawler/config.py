"""
Run configuration.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from depthcrawler.fetch import DEFAULT_USER_AGENT
from depthcrawler.urls import CRAWLABLE_SCHEMES, ResolutionError, host_of, resolve_url

DEFAULT_MAX_DEPTH = 5
DEFAULT_MAX_IN_FLIGHT = 10


@dataclass(frozen=True)
class CrawlConfig:
    """Settings for a single crawl run. Never mutated once the run starts."""

    start_url: str

    # Traversal limits
    max_depth: int = DEFAULT_MAX_DEPTH
    max_pages: Optional[int] = None

    # Concurrency: fetches running at the same time across the whole run
    max_in_flight: int = DEFAULT_MAX_IN_FLIGHT

    # Scoping
    allow_subdomains: bool = False

    # Network
    timeout_s: float = 15.0
    user_agent: str = DEFAULT_USER_AGENT

    def validate(self) -> None:
        """Raise ValueError if the configuration cannot start a run."""
        try:
            seed = resolve_url(self.start_url, self.start_url)
        except ResolutionError as e:
            raise ValueError(f"Invalid start URL: {self.start_url}") from e
        if urlsplit(seed).scheme not in CRAWLABLE_SCHEMES:
            raise ValueError(f"Invalid start URL: {self.start_url}")

        if self.max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {self.max_depth}")
        if self.max_in_flight < 1:
            raise ValueError(f"max_in_flight must be at least 1, got {self.max_in_flight}")
        if self.max_pages is not None and self.max_pages < 1:
            raise ValueError(f"max_pages must be at least 1, got {self.max_pages}")
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be positive, got {self.timeout_s}")

    @property
    def seed_url(self) -> str:
        """The start URL in normalized absolute form."""
        return resolve_url(self.start_url, self.start_url)

    @property
    def seed_host(self) -> str:
        return host_of(self.seed_url)
