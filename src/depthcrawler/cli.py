"""
Command-line interface for the crawler.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

from depthcrawler.config import DEFAULT_MAX_DEPTH, DEFAULT_MAX_IN_FLIGHT
from depthcrawler.core import crawl, CrawlStats
from depthcrawler.fetch import DEFAULT_USER_AGENT

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATEFMT = "%H:%M:%S"


def print_summary(stats: CrawlStats) -> None:
    """Print crawl summary to stderr."""
    sys.stderr.write("=" * 50 + "\n")
    sys.stderr.write("CRAWL SUMMARY\n")
    sys.stderr.write("=" * 50 + "\n\n")

    sys.stderr.write(f"URLs recorded:          {stats.pages_recorded}\n")
    sys.stderr.write(f"Pages fetched:          {stats.pages_fetched}\n")
    sys.stderr.write(f"External links skipped: {stats.external_links}\n")
    sys.stderr.write(f"Duplicate links:        {stats.duplicates_skipped}\n")
    if stats.page_limit_hits:
        sys.stderr.write(f"Refused by page limit:  {stats.page_limit_hits}\n")
    sys.stderr.write("\n")

    if stats.resolution_errors or stats.error_counts:
        sys.stderr.write("Errors by type:\n")
        if stats.resolution_errors:
            sys.stderr.write(f"  Malformed links: {stats.resolution_errors}\n")
        for error_type, count in sorted(stats.error_counts.items()):
            if error_type == "connection_error":
                label = "Connection errors"
            elif error_type.isdigit():
                label = f"HTTP {error_type}"
            else:
                label = error_type.replace("_", " ").capitalize()
            sys.stderr.write(f"  {label}: {count}\n")
    else:
        sys.stderr.write("No errors encountered.\n")

    sys.stderr.write("\n")


def generate_output_path(start_url: str) -> Path:
    """Generate output path: crawls/{hostname}_{datetime}.json"""
    parsed = urlparse(start_url)
    hostname = parsed.hostname or "unknown"
    # Sanitize hostname for filename (replace dots with underscores)
    hostname_safe = hostname.replace(".", "_")
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    crawls_dir = Path("crawls")
    crawls_dir.mkdir(exist_ok=True)

    return crawls_dir / f"{hostname_safe}_{timestamp}.json"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="depthcrawler",
        description="Crawl every link within N hops of a URL on the same host and output them as JSON.",
    )
    parser.add_argument("start_url", help="Start URL (e.g. https://example.com)")
    parser.add_argument(
        "--max-depth", type=int, default=DEFAULT_MAX_DEPTH,
        help=f"Maximum number of hops from the start URL (default: {DEFAULT_MAX_DEPTH})",
    )
    parser.add_argument(
        "--max-in-flight", type=int, default=DEFAULT_MAX_IN_FLIGHT,
        help=f"Maximum concurrent requests (default: {DEFAULT_MAX_IN_FLIGHT})",
    )
    parser.add_argument("--max-pages", type=int, help="Stop recording new URLs after this many")
    parser.add_argument(
        "--allow-subdomains", action="store_true",
        help="Also follow links to subdomains of the start host",
    )
    parser.add_argument("--timeout", type=float, default=15.0, help="Request timeout in seconds (default: 15)")
    parser.add_argument("--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent header")
    parser.add_argument("--out", help="Output file path, or '-' for stdout (default: auto-generated in crawls/)")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--verbose", action="store_true", help="Debug logging and a summary at the end")
    verbosity.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    return parser


def configure_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT, stream=sys.stderr)
    # urllib3 is chatty at debug level
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the crawler CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    try:
        result = crawl(
            start_url=args.start_url,
            max_depth=args.max_depth,
            max_in_flight=args.max_in_flight,
            max_pages=args.max_pages,
            allow_subdomains=args.allow_subdomains,
            timeout_s=args.timeout,
            user_agent=args.user_agent,
        )
    except ValueError as e:
        sys.stderr.write(f"Error: {e}\n")
        return 2

    if args.verbose:
        print_summary(result.stats)

    json_text = json.dumps(result.report(), ensure_ascii=False, indent=2 if args.pretty else None)

    if args.out == "-":
        sys.stderr.write("\nCrawled URLs:\n")
        print(json_text)
    else:
        # Auto-generate path if not specified
        output_path = Path(args.out) if args.out else generate_output_path(args.start_url)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json_text, encoding="utf-8")
        sys.stderr.write(f"Results written to: {output_path}\n")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
