# seo_scout/crawler/fetcher.py
"""
Fetcher module: one HTTP GET per call, bounded by the per-request timeout.

Used by the reachability check, the discovery phase and the default page
auditor. Redirects are followed; :attr:`PageData.final_url` is the URL the
response actually came from.
"""
from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import Optional, Type

from aiohttp import ClientSession, ClientTimeout

from seo_scout.config import CrawlerConfig
from seo_scout.crawler.models import PageData

__all__ = ("Fetcher", "build_session")

logger = logging.getLogger("SeoScout")

_ACCEPT = "text/html,application/xhtml+xml"


def build_session(config: CrawlerConfig) -> ClientSession:
    """Session with the crawler's User-Agent and per-request timeout."""
    return ClientSession(
        timeout=ClientTimeout(total=config.timeout),
        headers={
            "User-Agent": config.user_agent,
            "Accept": _ACCEPT,
            "Accept-Language": "en-US,en;q=0.9",
        },
        raise_for_status=False,
    )


class Fetcher:
    """Thin wrapper over :class:`aiohttp.ClientSession` with timeout handling.

    Network errors propagate as :class:`aiohttp.ClientError`, timeouts as
    :class:`asyncio.TimeoutError`; callers decide whether that is fatal.
    """

    def __init__(self, session: ClientSession, timeout: float) -> None:
        self.session = session
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: CrawlerConfig) -> Fetcher:
        return cls(build_session(config), config.timeout)

    async def __aenter__(self) -> Fetcher:
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.close()

    async def close(self) -> None:
        if not self.session.closed:
            await self.session.close()

    async def fetch(self, url: str, *, read_body: bool = True, html_only: bool = False) -> PageData:
        """
        GET *url* and return :class:`PageData`.

        With ``html_only`` the body of non-HTML responses is not downloaded.
        """
        async with asyncio.timeout(self.timeout):
            async with self.session.get(url, allow_redirects=True) as resp:
                ctype = resp.headers.get("Content-Type", "")
                page = PageData(
                    url=url,
                    final_url=str(resp.url),
                    status=resp.status,
                    content_type=ctype,
                    content="",
                )
                if read_body and (page.is_html or not html_only):
                    page.content = await resp.text(errors="replace")
        logger.debug("GET %s -> %s (%s)", url, page.status, page.final_url)
        return page
