"""
URL resolution and domain scoping.
"""
from __future__ import annotations

import re
from urllib.parse import urljoin, urlsplit, urlunsplit, urldefrag

CRAWLABLE_SCHEMES: frozenset[str] = frozenset(("http", "https"))
DEFAULT_PORTS = {"http": 80, "https": 443}

# ASCII control characters are never legal inside a URL
_ILLEGAL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")


class ResolutionError(ValueError):
    """Raised when a raw href cannot be turned into an absolute URL."""

    def __init__(self, href: str, reason: str) -> None:
        super().__init__(f"{reason}: {href!r}")
        self.href = href
        self.reason = reason


def _check_reference(href: str) -> None:
    if _ILLEGAL_CHARS.search(href):
        raise ResolutionError(href, "control character")

    # A relative reference may not have a colon in its first path segment,
    # otherwise it would be read as a scheme (RFC 3986, section 4.2).
    if not _SCHEME.match(href) and not href.startswith(("/", "?", "#")):
        first_segment = href.split("/", 1)[0]
        if ":" in first_segment:
            raise ResolutionError(href, "colon in first path segment")


def resolve_url(href: str, base: str) -> str:
    """
    Resolve a raw href against ``base`` into an absolute, normalized URL.

    - Joins relative URLs against base
    - Drops fragments (#...)
    - Normalizes scheme/host case
    - Removes default ports (:80, :443)
    - Keeps querystrings (they matter for uniqueness)
    - Percent-encodes spaces in the path and query

    Non-http schemes (mailto:, javascript:, ...) are returned as-is apart
    from the fragment; deciding whether they are crawlable is a scoping
    concern, see :func:`in_scope`.

    Raises:
        ResolutionError: if ``href`` is malformed.
    """
    href = href.strip()
    _check_reference(href)

    try:
        joined, _ = urldefrag(urljoin(base, href))
        parts = urlsplit(joined)
        port = parts.port
    except ValueError as exc:
        raise ResolutionError(href, str(exc)) from exc

    scheme = parts.scheme.lower()
    if scheme not in CRAWLABLE_SCHEMES:
        return joined

    hostname = (parts.hostname or "").lower()
    if not hostname:
        raise ResolutionError(href, "missing host")
    if " " in hostname:
        raise ResolutionError(href, "invalid host")
    if ":" in hostname:
        hostname = f"[{hostname}]"

    if port is None or DEFAULT_PORTS.get(scheme) == port:
        netloc = hostname
    else:
        netloc = f"{hostname}:{port}"

    # Spaces are kept, percent-encoded the way a browser sends them
    path = (parts.path or "/").replace(" ", "%20")
    query = parts.query.replace(" ", "%20")
    return urlunsplit((scheme, netloc, path, query, ""))


def host_of(url: str) -> str:
    """Return the normalized ``host[:port]`` of an absolute URL ('' if none)."""
    try:
        return urlsplit(resolve_url(url, url)).netloc
    except ResolutionError:
        return ""


def in_scope(url: str, seed_host: str, allow_subdomains: bool = False) -> bool:
    """
    Check whether ``url`` belongs to the crawl's domain.

    Hosts are compared exactly. With ``allow_subdomains`` any subdomain of
    ``seed_host`` also matches, on a dot boundary only, so
    ``evil-example.test`` never matches ``example.test``.
    """
    parts = urlsplit(url)
    if parts.scheme.lower() not in CRAWLABLE_SCHEMES:
        return False

    host = parts.netloc.lower()
    seed_host = seed_host.lower()
    if host == seed_host:
        return True
    return allow_subdomains and host.endswith("." + seed_host)
