"""
Page auditor: the collaborator the crawl engine calls once per discovered URL.

Any object with an ``async audit_url(url)`` method satisfying
:class:`PageAuditor` can be plugged into the engine. :class:`HtmlPageAuditor`
is the default: fetch, parse, run :mod:`seo_scout.audit.checks`, score.
"""
from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Callable, Dict, Optional, Protocol, Union, runtime_checkable
from urllib.parse import urlsplit

from aiohttp import ClientError

from seo_scout.audit.checks import run_checks, score_issues
from seo_scout.audit.parser import ParsedPage, parse_page
from seo_scout.config import CrawlerConfig
from seo_scout.crawler.fetcher import Fetcher
from seo_scout.crawler.models import AuditError, Issue, IssueCounts, PageAuditResult
from seo_scout.crawler.urls import ensure_scheme

__all__ = ("PageAuditor", "HtmlPageAuditor", "JsDetector", "looks_js_rendered")

logger = logging.getLogger("SeoScout")

#: predicate deciding whether a page is a client-rendered shell
JsDetector = Callable[[ParsedPage], bool]

_JS_MARKERS = (
    re.compile(r"__NEXT_DATA__"),
    re.compile(r"__nuxt__", re.IGNORECASE),
    re.compile(r"data-reactroot", re.IGNORECASE),
    re.compile(r"ng-version=", re.IGNORECASE),
    re.compile(r'<div[^>]+id=["\'](?:root|app)["\']', re.IGNORECASE),
)


@runtime_checkable
class PageAuditor(Protocol):
    async def audit_url(self, url: str) -> Union[PageAuditResult, AuditError, Dict[str, Any]]:
        ...


def looks_js_rendered(page: ParsedPage) -> bool:
    """Return ``True`` if the markup carries a client-side framework fingerprint."""
    return any(marker.search(page.raw) for marker in _JS_MARKERS)


class HtmlPageAuditor:
    """Static (no JavaScript) SEO auditor for a single URL."""

    def __init__(
        self,
        fetcher: Fetcher,
        config: Optional[CrawlerConfig] = None,
        js_detector: JsDetector = looks_js_rendered,
    ) -> None:
        self.fetcher = fetcher
        self.config = config or CrawlerConfig()
        self.js_detector = js_detector

    async def audit_url(self, url: str) -> Union[PageAuditResult, AuditError]:
        url = ensure_scheme(url)
        path = urlsplit(url).path.lower()
        if any(path.startswith(p) for p in self.config.audit_skip_paths):
            return AuditError(
                url,
                "This page does not need SEO optimization. Auth pages, dashboards "
                "and legal pages are intentionally excluded from auditing.",
            )

        try:
            page = await self.fetcher.fetch(url)
        except asyncio.TimeoutError:
            return AuditError(
                url,
                f"The page took too long to respond (timeout after {self.config.timeout:g}s). "
                "Try again or check if the URL is correct.",
            )
        except ClientError as exc:
            return AuditError(
                url, f"Could not reach the URL. Make sure it is publicly accessible. ({exc})"
            )

        if not page.ok:
            return AuditError(
                url,
                f"The page returned an HTTP {page.status} error. "
                "Make sure the URL is correct and the page is publicly accessible.",
            )

        parsed = parse_page(page.content)
        meta = {
            "title": parsed.title,
            "metaDescription": parsed.meta_description,
            "wordCount": parsed.word_count,
            "imageCount": len(parsed.images),
        }

        if self.js_detector(parsed) and parsed.word_count < self.config.js_min_word_count:
            logger.info("%s looks JS-rendered (%d words), limited audit", url, parsed.word_count)
            issues = [_js_rendered_issue(parsed.word_count)]
            return PageAuditResult(
                url=url,
                final_url=page.final_url,
                score=None,
                issues=issues,
                counts=IssueCounts.from_issues(issues),
                meta=meta,
                js_rendered=True,
            )

        issues = run_checks(parsed, page.final_url)
        return PageAuditResult(
            url=url,
            final_url=page.final_url,
            score=score_issues(issues),
            issues=issues,
            counts=IssueCounts.from_issues(issues),
            meta=meta,
        )


def _js_rendered_issue(word_count: int) -> Issue:
    return Issue(
        id="js-rendered",
        type="js_rendered_page",
        severity="warning",
        title="JavaScript-rendered page, limited audit available",
        description=(
            "This page is built with a client-side framework. A static scanner only sees the "
            "HTML shell, not the rendered content."
        ),
        current_value=f"Only {word_count} words visible in raw HTML",
        recommendation=(
            "Make sure critical SEO tags (title, meta description, canonical) are rendered "
            "server-side."
        ),
        can_auto_fix=False,
    )
