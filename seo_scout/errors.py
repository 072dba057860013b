"""Exception hierarchy for SEO Scout.

Fatal crawl errors carry the user-facing message as ``str(exc)``; the engine
turns them into a :class:`~seo_scout.crawler.models.CrawlFailure`.
"""
from __future__ import annotations

from typing import Optional

__all__ = (
    "SeoScoutError",
    "InvalidUrlError",
    "SiteUnreachableError",
    "NoPagesFoundError",
    "DiscoveryFailedError",
    "CrawlCancelled",
)


class SeoScoutError(Exception):
    """Base class for every error raised by the package."""


class InvalidUrlError(SeoScoutError, ValueError):
    def __init__(self, raw_url: str) -> None:
        super().__init__("Invalid URL. Please enter a valid website address.")
        self.raw_url = raw_url


class SiteUnreachableError(SeoScoutError):
    """The reachability check failed (timeout, non-2xx or network error)."""

    def __init__(self, message: str, *, status: Optional[int] = None, timed_out: bool = False) -> None:
        super().__init__(message)
        self.status = status
        self.timed_out = timed_out

    @classmethod
    def timeout(cls) -> SiteUnreachableError:
        return cls(
            "The site took too long to respond. Make sure it is online and publicly accessible.",
            timed_out=True,
        )

    @classmethod
    def bad_status(cls, status: int) -> SiteUnreachableError:
        return cls(
            f"The site returned an HTTP {status} error. "
            "Make sure the URL is correct and the site is publicly accessible.",
            status=status,
        )

    @classmethod
    def network(cls, reason: str) -> SiteUnreachableError:
        return cls(f"Could not reach the site. ({reason})")


class NoPagesFoundError(SeoScoutError):
    def __init__(self) -> None:
        super().__init__(
            "No pages found to crawl. The site may be blocking crawlers or have no internal links."
        )


class DiscoveryFailedError(SeoScoutError):
    """Discovery itself broke, not a single page."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to discover pages on the site. ({reason})")
        self.reason = reason


class CrawlCancelled(SeoScoutError):
    def __init__(self) -> None:
        super().__init__("Crawl was cancelled.")
