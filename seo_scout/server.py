"""
HTTP front-end for the crawler.

``POST /api/crawl`` streams progress as Server-Sent Events and finishes with a
``complete`` or ``error`` event. A full crawl can take minutes, so the
response stays open and each progress callback is pushed to the client as
soon as it fires. When the client goes away the crawl is cancelled.

``POST /api/audit`` audits a single page and answers with plain JSON.
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Optional, Tuple

from aiohttp import web

from seo_scout.config import CrawlerConfig
from seo_scout.crawler.models import AuditError, CrawlFailure, ProgressEvent
from seo_scout.engine import CrawlEngine, audit_page
from seo_scout.logger import get_logger

__all__ = ["create_app", "run_server", "CONFIG_KEY"]

log = get_logger("server")

CONFIG_KEY = web.AppKey("config", CrawlerConfig)

_SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _json_error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


async def _read_url(request: web.Request, action: str) -> Tuple[Optional[str], Optional[web.Response]]:
    """Validate the ``{"url": ...}`` body; returns (url, None) or (None, error response)."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None, _json_error('Invalid request body. Expected JSON with a "url" field.', 400)

    url = body.get("url") if isinstance(body, dict) else None
    if not isinstance(url, str) or not url.strip():
        return None, _json_error(f"Please provide a URL to {action}.", 400)

    cleaned = url.strip()
    for prefix in ("http://", "https://"):
        if cleaned.lower().startswith(prefix):
            cleaned = cleaned[len(prefix):]
            break
    if "." not in cleaned or len(cleaned) < 4:
        return None, _json_error("That doesn't look like a valid URL.", 400)
    return url.strip(), None


def _sse(payload: Dict[str, Any]) -> bytes:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n".encode("utf-8")


async def handle_crawl(request: web.Request) -> web.StreamResponse:
    url, error = await _read_url(request, "crawl")
    if error is not None:
        return error

    response = web.StreamResponse(headers=_SSE_HEADERS)
    await response.prepare(request)

    events: asyncio.Queue[Optional[Dict[str, Any]]] = asyncio.Queue()
    cancel_event = asyncio.Event()

    def on_progress(event: ProgressEvent) -> None:
        events.put_nowait(event.to_dict())

    async def run_crawl() -> None:
        engine = CrawlEngine(request.app[CONFIG_KEY])
        try:
            result = await engine.crawl(url, on_progress, cancel_event)
            if isinstance(result, CrawlFailure):
                events.put_nowait({"type": "error", "error": result.error})
            else:
                events.put_nowait({"type": "complete", "result": result.to_dict()})
        finally:
            events.put_nowait(None)

    task = asyncio.create_task(run_crawl())
    try:
        while (payload := await events.get()) is not None:
            await response.write(_sse(payload))
    except (ConnectionResetError, asyncio.CancelledError):
        log.info("Client disconnected, cancelling crawl of %s", url)
        cancel_event.set()
        raise
    finally:
        if not task.done():
            cancel_event.set()
            await asyncio.shield(task)

    await response.write_eof()
    return response


async def handle_audit(request: web.Request) -> web.Response:
    url, error = await _read_url(request, "audit")
    if error is not None:
        return error

    result = await audit_page(url, request.app[CONFIG_KEY])
    if isinstance(result, AuditError):
        return _json_error(result.error, 422)
    return web.json_response(result.to_dict())


def create_app(config: Optional[CrawlerConfig] = None) -> web.Application:
    app = web.Application()
    app[CONFIG_KEY] = config or CrawlerConfig()
    app.router.add_post("/api/crawl", handle_crawl)
    app.router.add_post("/api/audit", handle_audit)
    return app


def run_server(config: Optional[CrawlerConfig] = None, host: str = "127.0.0.1", port: int = 8080) -> None:
    log.info("Serving on http://%s:%d", host, port)
    web.run_app(create_app(config), host=host, port=port, print=None)
