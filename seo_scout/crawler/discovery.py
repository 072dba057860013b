"""
Breadth-first link discovery within a single domain.

The discoverer owns ``visited``, ``discovered`` and ``queue``; workers spawned
through :func:`run_with_concurrency` only return link sets and never touch
that state, so no locking is needed.
"""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Callable, Deque, List, Optional, Set

from aiohttp import ClientError

from seo_scout.config import CrawlTarget
from seo_scout.crawler.concurrency import run_with_concurrency
from seo_scout.crawler.fetcher import Fetcher
from seo_scout.crawler.link_extractor import extract_links
from seo_scout.crawler.models import TaskFailure
from seo_scout.crawler.urls import UrlPolicy, is_same_domain
from seo_scout.errors import CrawlCancelled

__all__ = ("BfsDiscoverer", "DiscoveryProgress")

#: callback(discovered_count, queue_length)
DiscoveryProgress = Callable[[int, int], None]

logger = logging.getLogger("SeoScout")


class BfsDiscoverer:
    """Level-order crawler that returns the list of pages to audit."""

    def __init__(
        self,
        target: CrawlTarget,
        fetcher: Fetcher,
        policy: Optional[UrlPolicy] = None,
        on_progress: Optional[DiscoveryProgress] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        self.target = target
        self.fetcher = fetcher
        self.policy = policy or UrlPolicy()
        self.on_progress = on_progress
        self.cancel_event = cancel_event

        self.visited: Set[str] = set()
        # dict keeps insertion order, which is the discovery order
        self.discovered: dict[str, None] = {}
        self.queue: Deque[str] = deque()
        self.discovery_errors: int = 0

    @property
    def hit_page_limit(self) -> bool:
        return len(self.discovered) >= self.target.max_pages

    async def discover(self) -> List[str]:
        start = self.policy.normalize(self.target.start_url)
        if self.policy.should_skip(start):
            logger.warning("Start URL %s is filtered out, nothing to discover", start)
            return []
        self.discovered = {start: None}
        self.queue = deque([start])
        max_pages = self.target.max_pages

        while self.queue and len(self.discovered) < max_pages:
            if self.cancel_event is not None and self.cancel_event.is_set():
                raise CrawlCancelled()

            batch = [self.queue.popleft() for _ in range(min(self.target.concurrency, len(self.queue)))]
            results = await run_with_concurrency(
                batch, self.target.concurrency, self._links_from, cancel_event=self.cancel_event
            )

            for url, links in zip(batch, results):
                if isinstance(links, TaskFailure):
                    self.discovery_errors += 1
                    logger.debug("No links from %s: %s", url, links.error)
                    continue
                # sorted so that the page cap cuts deterministically
                for link in sorted(links):
                    if link not in self.discovered and len(self.discovered) < max_pages:
                        self.discovered[link] = None
                        self.queue.append(link)

            logger.debug("Discovered %d pages, %d queued", len(self.discovered), len(self.queue))
            if self.on_progress is not None:
                self.on_progress(len(self.discovered), len(self.queue))

        logger.info(
            "Discovery finished for %s: %d pages%s",
            self.target.base_domain,
            len(self.discovered),
            " (page limit reached)" if self.hit_page_limit else "",
        )
        return list(self.discovered)

    async def _links_from(self, url: str) -> Set[str]:
        if url in self.visited:
            return set()
        self.visited.add(url)
        try:
            page = await self.fetcher.fetch(url, html_only=True)
        except (ClientError, asyncio.TimeoutError) as exc:
            # treated as a page without links
            self.discovery_errors += 1
            logger.debug("Discovery fetch failed for %s: %r", url, exc)
            return set()
        if not page.is_html:
            return set()
        if not is_same_domain(page.final_url, self.target.base_domain):
            logger.debug("%s redirected off-domain to %s", url, page.final_url)
            return set()
        return extract_links(page.content, page.final_url, self.target.base_domain, self.policy)
