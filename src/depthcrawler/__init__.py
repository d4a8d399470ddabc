"""
Depth-bounded web crawler that follows links within the start URL's host.
Every link becomes its own concurrent task; outputs the set of visited URLs as JSON.
"""
from depthcrawler.core import crawl, Crawler, CrawlResult, CrawlStats, Outcome, TaskResult
from depthcrawler.config import CrawlConfig
from depthcrawler.state import CrawlState

__version__ = "1.0.0"
__all__ = [
    "crawl",
    "Crawler",
    "CrawlConfig",
    "CrawlResult",
    "CrawlState",
    "CrawlStats",
    "Outcome",
    "TaskResult",
]
