"""
URL canonicalisation and classification used by discovery and link extraction.

Every function here is pure and never raises on bad input: unparseable URLs
are passed through by :func:`normalize_url`, rejected by
:func:`is_same_domain` and skipped by :func:`should_skip`.
"""
from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from typing import AbstractSet, Iterable, Sequence
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

__all__: Sequence[str] = (
    "TRACKING_PARAMS",
    "SKIP_EXTENSIONS",
    "SKIP_PATH_PREFIXES",
    "UrlPolicy",
    "ensure_scheme",
    "normalize_url",
    "is_same_domain",
    "should_skip",
    "strip_www",
)

logger = logging.getLogger("SeoScout")

# Query parameters that never change page content
TRACKING_PARAMS: frozenset[str] = frozenset((
    "utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content",
    "ref", "fbclid", "gclid",
))

SKIP_EXTENSIONS: frozenset[str] = frozenset((
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".ico",
    ".pdf", ".zip", ".tar", ".gz",
    ".mp4", ".mp3", ".wav", ".ogg",
    ".woff", ".woff2", ".ttf", ".eot",
    ".css", ".js", ".json", ".xml",
    ".map", ".ts",
))

SKIP_PATH_PREFIXES: tuple[str, ...] = (
    "/cdn-cgi/",
    "/wp-json/",
    "/api/",
    "/_next/",
    "/static/",
    "/.well-known/",
)

_HTTP_SCHEMES = ("http", "https")


@dataclass(frozen=True, slots=True)
class UrlPolicy:
    """The overridable sets that drive normalisation and skip filtering."""

    tracking_params: AbstractSet[str] = field(default=TRACKING_PARAMS)
    skip_extensions: AbstractSet[str] = field(default=SKIP_EXTENSIONS)
    skip_path_prefixes: tuple[str, ...] = SKIP_PATH_PREFIXES

    @classmethod
    def build(
        cls,
        tracking_params: Iterable[str] = TRACKING_PARAMS,
        skip_extensions: Iterable[str] = SKIP_EXTENSIONS,
        skip_path_prefixes: Iterable[str] = SKIP_PATH_PREFIXES,
    ) -> UrlPolicy:
        return cls(
            tracking_params=frozenset(tracking_params),
            skip_extensions=frozenset(e.lower() for e in skip_extensions),
            skip_path_prefixes=tuple(p.lower() for p in skip_path_prefixes),
        )

    def normalize(self, url: str) -> str:
        return normalize_url(url, self.tracking_params)

    def should_skip(self, url: str) -> bool:
        return should_skip(url, self.skip_extensions, self.skip_path_prefixes)


def ensure_scheme(raw: str) -> str:
    """Trim user input and prefix ``https://`` when no http(s) scheme is given."""
    url = raw.strip()
    if not url.lower().startswith(("http://", "https://")):
        url = "https://" + url
    return url


def strip_www(host: str) -> str:
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


def normalize_url(url: str, tracking_params: AbstractSet[str] = TRACKING_PARAMS) -> str:
    """Canonical form used for deduplication.

    Drops the fragment and tracking parameters, lowercases the host and strips
    every trailing slash from the path, so ``/a//`` becomes ``/a`` and a second
    pass changes nothing. The root path ``/`` is kept.
    Non-parseable input is returned unchanged.
    """
    try:
        parts = urlsplit(url)
        host = parts.hostname
    except ValueError:
        logger.debug("Cannot normalize %r, keeping it as is", url)
        return url
    if not parts.scheme or host is None:
        logger.debug("Cannot normalize %r, keeping it as is", url)
        return url

    netloc = parts.netloc
    userinfo, sep, hostport = netloc.rpartition("@")
    netloc = f"{userinfo}{sep}{hostport.lower()}"

    path = parts.path.rstrip("/") or "/"

    query = parts.query
    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        kept = [(k, v) for k, v in pairs if k not in tracking_params]
        if len(kept) != len(pairs):
            query = urlencode(kept)

    return urlunsplit((parts.scheme.lower(), netloc, path, query, ""))


def is_same_domain(url: str, base_domain: str) -> bool:
    """True when *url* is on *base_domain* or one of its subdomains, ignoring ``www.``."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return False
    if not host or not base_domain:
        return False
    host = strip_www(host)
    base = strip_www(base_domain)
    return host == base or host.endswith("." + base)


def should_skip(
    url: str,
    skip_extensions: AbstractSet[str] = SKIP_EXTENSIONS,
    skip_path_prefixes: Sequence[str] = SKIP_PATH_PREFIXES,
) -> bool:
    """True for assets, infrastructure paths and non-http(s) URLs."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return True
    if parts.scheme.lower() not in _HTTP_SCHEMES or not parts.netloc:
        return True

    path = parts.path.lower()
    ext = posixpath.splitext(path)[1]
    if ext and ext in skip_extensions:
        return True
    return any(path.startswith(prefix) for prefix in skip_path_prefixes)
