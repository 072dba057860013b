"""seo_scout.engine: оркестрация обхода сайта (проверка доступности, поиск страниц, аудит, сводка)."""

from __future__ import annotations

import asyncio
import enum
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Union

from aiohttp import ClientError

from seo_scout.aggregator import (
    aggregate_site_results,
    coerce_audit_result,
    sort_pages_by_severity,
    split_results,
)
from seo_scout.audit.auditor import HtmlPageAuditor, PageAuditor
from seo_scout.config import CrawlerConfig, CrawlTarget
from seo_scout.crawler.concurrency import run_with_concurrency
from seo_scout.crawler.discovery import BfsDiscoverer
from seo_scout.crawler.fetcher import Fetcher
from seo_scout.crawler.models import (
    AuditError,
    CrawlFailure,
    PageAuditResult,
    ProgressEvent,
    SiteReport,
)
from seo_scout.errors import (
    DiscoveryFailedError,
    NoPagesFoundError,
    SeoScoutError,
    SiteUnreachableError,
)
from seo_scout.logger import logger

__all__ = ["CrawlEngine", "CrawlState", "ProgressCallback", "crawl_site", "audit_page"]

ProgressCallback = Callable[[ProgressEvent], None]
CrawlResult = Union[SiteReport, CrawlFailure]

class CrawlState(str, enum.Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    AUDITING = "auditing"
    COMPLETE = "complete"
    ERROR = "error"



class CrawlEngine:
    """Фасад для CLI, SSE-сервера и тестов: один вызов :meth:`crawl` даёт один отчёт.

    *fetcher* и *auditor* можно подменить; если они не переданы, движок сам
    открывает HTTP-сессию на время обхода и использует :class:`HtmlPageAuditor`.
    """

    def __init__(
        self,
        config: Optional[CrawlerConfig] = None,
        *,
        fetcher: Optional[Fetcher] = None,
        auditor: Optional[PageAuditor] = None,
    ) -> None:
        self.config = config or CrawlerConfig()
        self._fetcher = fetcher
        self._auditor = auditor
        self.state = CrawlState.IDLE

    async def crawl(
        self,
        raw_url: str,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> CrawlResult:
        """Запускает полный обход. Никогда не бросает исключений: фатальные ошибки -> CrawlFailure."""
        self.state = CrawlState.IDLE
        try:
            report = await self._run(raw_url, on_progress, cancel_event)
        except SeoScoutError as exc:
            self.state = CrawlState.ERROR
            logger.warning("Crawl of %r failed: %s", raw_url, exc)
            return CrawlFailure(str(exc))
        except Exception as exc:
            self.state = CrawlState.ERROR
            logger.exception("Crawl of %r failed unexpectedly", raw_url)
            return CrawlFailure(f"Crawl failed unexpectedly. ({exc})")
        self.state = CrawlState.COMPLETE
        return report

    async def _run(
        self,
        raw_url: str,
        on_progress: Optional[ProgressCallback],
        cancel_event: Optional[asyncio.Event],
    ) -> SiteReport:
        target = CrawlTarget.from_input(raw_url, self.config)
        logger.info("Starting crawl of %s (max %d pages)", target.start_url, target.max_pages)

        owns_fetcher = self._fetcher is None
        fetcher = self._fetcher or Fetcher.from_config(self.config)
        try:
            await self._check_reachable(fetcher, target)
            urls, discovery_errors = await self._discover(fetcher, target, on_progress, cancel_event)
            auditor = self._auditor or HtmlPageAuditor(fetcher, self.config)
            results = await self._audit(auditor, urls, target, on_progress, cancel_event)
        finally:
            if owns_fetcher:
                await fetcher.close()

        pages, errors = split_results(urls, results)
        return self._build_report(target, urls, pages, errors, discovery_errors)

    async def _check_reachable(self, fetcher: Fetcher, target: CrawlTarget) -> None:
        try:
            page = await fetcher.fetch(target.start_url, read_body=False)
        except asyncio.TimeoutError as exc:
            raise SiteUnreachableError.timeout() from exc
        except ClientError as exc:
            raise SiteUnreachableError.network(str(exc) or exc.__class__.__name__) from exc
        if not page.ok:
            raise SiteUnreachableError.bad_status(page.status)

    async def _discover(
        self,
        fetcher: Fetcher,
        target: CrawlTarget,
        on_progress: Optional[ProgressCallback],
        cancel_event: Optional[asyncio.Event],
    ) -> tuple[List[str], int]:
        self.state = CrawlState.DISCOVERING
        _emit(on_progress, ProgressEvent("discovering", 0, 0, "Discovering pages..."))

        def forward(discovered: int, queued: int) -> None:
            _emit(on_progress, ProgressEvent("discovering", discovered, queued, f"Found {discovered} pages..."))

        discoverer = BfsDiscoverer(
            target,
            fetcher,
            self.config.url_policy,
            on_progress=forward,
            cancel_event=cancel_event,
        )
        try:
            urls = await discoverer.discover()
        except SeoScoutError:
            raise
        except Exception as exc:
            raise DiscoveryFailedError(str(exc)) from exc

        if not urls:
            raise NoPagesFoundError()
        return urls, discoverer.discovery_errors

    async def _audit(
        self,
        auditor: PageAuditor,
        urls: List[str],
        target: CrawlTarget,
        on_progress: Optional[ProgressCallback],
        cancel_event: Optional[asyncio.Event],
    ) -> List[Any]:
        self.state = CrawlState.AUDITING
        total = len(urls)
        _emit(on_progress, ProgressEvent("auditing", 0, total, f"Auditing {total} pages..."))
        audited = 0

        async def audit_one(url: str) -> Any:
            nonlocal audited
            try:
                return coerce_audit_result(await auditor.audit_url(url), url)
            finally:
                audited += 1
                _emit(
                    on_progress,
                    ProgressEvent("auditing", audited, total, f"Audited {audited} of {total} pages..."),
                )

        return await run_with_concurrency(urls, target.concurrency, audit_one, cancel_event=cancel_event)

    @staticmethod
    def _build_report(
        target: CrawlTarget,
        urls: List[str],
        pages: List[PageAuditResult],
        errors: List[AuditError],
        discovery_errors: int,
    ) -> SiteReport:
        summary = aggregate_site_results(pages)
        logger.info(
            "Crawl of %s complete: %d pages, %d failed, site score %d",
            target.base_domain, len(urls), len(errors), summary.site_score,
        )
        return SiteReport(
            domain=target.base_domain,
            start_url=target.start_url,
            crawled_at=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            total_pages=len(urls),
            successful_pages=len(pages),
            failed_pages=len(errors),
            site_score=summary.site_score,
            site_counts=summary.site_counts,
            health_breakdown=summary.health_breakdown,
            top_issues=summary.top_issues,
            pages=sort_pages_by_severity(pages),
            errors=errors,
            hit_page_limit=len(urls) >= target.max_pages,
            page_limit=target.max_pages,
            discovery_errors=discovery_errors,
        )

def _emit(callback: Optional[ProgressCallback], event: ProgressEvent) -> None:
    if callback is None:
        return
    try:
        callback(event)
    except Exception:
        # прогресс не должен ронять обход
        logger.exception("Progress callback failed")

async def crawl_site(
    raw_url: str,
    config: Optional[CrawlerConfig] = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
    auditor: Optional[PageAuditor] = None,
) -> CrawlResult:
    """Короткий вызов: ``await crawl_site("example.com")``."""
    return await CrawlEngine(config, auditor=auditor).crawl(raw_url, on_progress, cancel_event)

async def audit_page(
    raw_url: str, config: Optional[CrawlerConfig] = None
) -> Union[PageAuditResult, AuditError]:
    """Аудит одной страницы без обхода сайта."""
    config = config or CrawlerConfig()
    async with Fetcher.from_config(config) as fetcher:
        return await HtmlPageAuditor(fetcher, config).audit_url(raw_url)
