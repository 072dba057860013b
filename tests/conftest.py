import asyncio
from collections.abc import AsyncIterator
from typing import Callable, Dict, List, Optional, Tuple, Union

import pytest_asyncio
from aiohttp import ClientConnectionError, web

from seo_scout.crawler.models import PageAuditResult, IssueCounts, PageData

# --------------------------------------------------------------------------- #
#                               Helper utilities                              #
# --------------------------------------------------------------------------- #

#: a page that passes every SEO check of the default auditor
GOOD_PAGE_BODY = " ".join(["word"] * 320)

def html_page(*links: str, body: str = "") -> str:
    anchors = "".join(f'<a href="{href}">{href}</a>' for href in links)
    return f"<html><body>{anchors}{body}</body></html>"

FakeEntry = Union[str, Tuple[int, str, str], Tuple[int, str, str, str], BaseException]

class FakeFetcher:
    """In-memory stand-in for :class:`seo_scout.crawler.fetcher.Fetcher`.

    ``pages`` maps URL -> HTML, or ``(status, content_type, body[, final_url])``,
    or an exception instance to raise. Unknown URLs raise a connection error.
    """

    def __init__(self, pages: Dict[str, FakeEntry]) -> None:
        self.pages = pages
        self.calls: List[str] = []
        self.closed = False

    async def fetch(self, url: str, *, read_body: bool = True, html_only: bool = False) -> PageData:
        self.calls.append(url)
        entry = self.pages.get(url)
        if entry is None:
            raise ClientConnectionError(f"no route to {url}")
        if isinstance(entry, BaseException):
            raise entry
        if isinstance(entry, str):
            entry = (200, "text/html; charset=utf-8", entry)
        status, ctype, body, *rest = entry
        page = PageData(url=url, final_url=rest[0] if rest else url, status=status, content_type=ctype, content="")
        if read_body and (page.is_html or not html_only):
            page.content = body
        return page

    async def close(self) -> None:
        self.closed = True

class StubAuditor:
    """Auditor returning canned results; ``fail`` URLs raise, ``scores`` override 100."""

    def __init__(
        self,
        scores: Optional[Dict[str, int]] = None,
        fail: Optional[Dict[str, Exception]] = None,
        issues: Optional[Dict[str, List[dict]]] = None,
    ) -> None:
        self.scores = scores or {}
        self.fail = fail or {}
        self.issues = issues or {}
        self.calls: List[str] = []

    async def audit_url(self, url: str) -> PageAuditResult:
        self.calls.append(url)
        await asyncio.sleep(0)
        if url in self.fail:
            raise self.fail[url]
        issues = self.issues.get(url, [])
        return PageAuditResult(
            url=url,
            final_url=url,
            score=self.scores.get(url, 100),
            issues=issues,
            counts=IssueCounts.from_issues(issues),
        )

def issue(type_: str, severity: str = "warning") -> dict:
    return {
        "id": type_.replace("_", "-"),
        "type": type_,
        "severity": severity,
        "title": type_,
        "description": "",
        "current_value": None,
        "recommendation": "",
        "can_auto_fix": False,
    }

async def serve_app(app: web.Application) -> AsyncIterator[str]:
    """Start *app* on a free local port, yield its base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    port = runner.addresses[0][1]
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        await runner.cleanup()

def site_app(pages: Dict[str, str], slow: Optional[Dict[str, float]] = None) -> web.Application:
    """aiohttp app serving each ``path -> html`` entry as text/html."""
    slow = slow or {}
    app = web.Application()

    def make_handler(path: str, text: str) -> Callable:
        async def handler(_):
            if path in slow:
                await asyncio.sleep(slow[path])
            return web.Response(text=text, content_type="text/html")
        return handler

    for path, text in pages.items():
        app.router.add_get(path, make_handler(path, text))
    return app

# --------------------------------------------------------------------------- #
#                                  Fixtures                                   #
# --------------------------------------------------------------------------- #

@pytest_asyncio.fixture
async def small_site() -> AsyncIterator[str]:
    """Root -> /page1, /page2; /page1 -> /page3 and an external link; a few assets."""
    app = site_app({
        "/": html_page("/page1", "/page2", "/logo.png", "mailto:a@b.c"),
        "/page1": html_page("/page3", "https://other.example.org/x", "#top"),
        "/page2": html_page("/page1/", "/page2?utm_source=x"),
        "/page3": html_page(),
    })

    async def json_handler(_):
        return web.json_response({"ok": True})

    app.router.add_get("/data", json_handler)
    async for url in serve_app(app):
        yield url
