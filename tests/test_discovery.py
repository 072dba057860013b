# Test-suite for the breadth-first discoverer
from __future__ import annotations

import asyncio

import pytest
from aiohttp import ClientConnectionError

from conftest import FakeFetcher, html_page, serve_app, site_app
from seo_scout.config import CrawlerConfig, CrawlTarget
from seo_scout.crawler.discovery import BfsDiscoverer
from seo_scout.crawler.fetcher import Fetcher
from seo_scout.crawler.urls import is_same_domain, should_skip
from seo_scout.errors import CrawlCancelled

ROOT = "https://example.com/"


def target_for(url: str = "example.com", **overrides) -> CrawlTarget:
    return CrawlTarget.from_input(url, CrawlerConfig(**overrides))


@pytest.mark.asyncio()
async def test_discovers_same_domain_pages_only():
    fetcher = FakeFetcher({
        ROOT: html_page("/about", "https://other.com/x", "/style.css"),
        "https://example.com/about": html_page("/", "/team"),
        "https://example.com/team": html_page("https://blog.example.com/post"),
        "https://blog.example.com/post": html_page(),
    })
    urls = await BfsDiscoverer(target_for(max_pages=10), fetcher).discover()

    assert urls == [
        ROOT,
        "https://example.com/about",
        "https://example.com/team",
        "https://blog.example.com/post",
    ]
    for url in urls:
        assert is_same_domain(url, "example.com")
        assert not should_skip(url)


@pytest.mark.asyncio()
async def test_level_order_traversal():
    fetcher = FakeFetcher({
        ROOT: html_page("/a", "/b"),
        "https://example.com/a": html_page("/a/deep"),
        "https://example.com/b": html_page("/b/deep"),
        "https://example.com/a/deep": html_page("/a/deeper"),
        "https://example.com/b/deep": html_page(),
        "https://example.com/a/deeper": html_page(),
    })
    urls = await BfsDiscoverer(target_for(concurrency=1), fetcher).discover()

    assert urls == [
        ROOT,
        "https://example.com/a",
        "https://example.com/b",
        "https://example.com/a/deep",
        "https://example.com/b/deep",
        "https://example.com/a/deeper",
    ]


@pytest.mark.asyncio()
async def test_page_cap_is_exact():
    links = [f"/page{i}" for i in range(1, 251)]
    fetcher = FakeFetcher({ROOT: html_page(*links)})
    discoverer = BfsDiscoverer(target_for(max_pages=200), fetcher)

    urls = await discoverer.discover()

    assert len(urls) == 200
    assert len(set(urls)) == 200
    assert discoverer.hit_page_limit
    # cap reached after the first level, no page beyond the root was fetched
    assert fetcher.calls == [ROOT]


@pytest.mark.asyncio()
async def test_batches_are_bounded_by_concurrency():
    links = [f"/p{i}" for i in range(7)]
    pages = {ROOT: html_page(*links)}
    pages.update({f"https://example.com/p{i}": html_page() for i in range(7)})
    fetcher = FakeFetcher(pages)
    progress = []

    discoverer = BfsDiscoverer(
        target_for(concurrency=3, max_pages=50),
        fetcher,
        on_progress=lambda d, q: progress.append((d, q)),
    )
    urls = await discoverer.discover()

    assert len(urls) == 8
    # root batch, then 7 queued pages in batches of 3, 3, 1
    assert progress == [(8, 7), (8, 4), (8, 1), (8, 0)]


@pytest.mark.asyncio()
async def test_broken_pages_do_not_abort_discovery():
    fetcher = FakeFetcher({
        ROOT: html_page("/timeout", "/refused", "/pdf", "/moved", "/ok"),
        "https://example.com/timeout": asyncio.TimeoutError(),
        "https://example.com/refused": ClientConnectionError("refused"),
        "https://example.com/pdf": (200, "application/pdf", html_page("/from-pdf")),
        "https://example.com/moved": (200, "text/html", html_page("/from-redirect"), "https://elsewhere.net/"),
        "https://example.com/ok": html_page("/found"),
        "https://example.com/found": html_page(),
    })
    discoverer = BfsDiscoverer(target_for(), fetcher)
    urls = await discoverer.discover()

    assert "https://example.com/found" in urls
    assert "https://example.com/from-pdf" not in urls
    assert "https://example.com/from-redirect" not in urls
    assert discoverer.discovery_errors == 2


@pytest.mark.asyncio()
async def test_each_page_is_fetched_once():
    fetcher = FakeFetcher({
        ROOT: html_page("/a", "/b"),
        "https://example.com/a": html_page("/", "/b"),
        "https://example.com/b": html_page("/a", "/"),
    })
    await BfsDiscoverer(target_for(), fetcher).discover()
    assert sorted(fetcher.calls) == sorted(set(fetcher.calls))


@pytest.mark.asyncio()
async def test_unreachable_start_still_yields_start_url():
    urls = await BfsDiscoverer(target_for(), FakeFetcher({})).discover()
    assert urls == [ROOT]


@pytest.mark.asyncio()
async def test_cancel_event_stops_discovery():
    cancel = asyncio.Event()
    cancel.set()
    with pytest.raises(CrawlCancelled):
        await BfsDiscoverer(target_for(), FakeFetcher({ROOT: html_page("/a")}), cancel_event=cancel).discover()


@pytest.mark.asyncio()
async def test_discovery_against_live_server(small_site: str):
    config = CrawlerConfig(max_pages=10, timeout=2.0)
    async with Fetcher.from_config(config) as fetcher:
        urls = await BfsDiscoverer(CrawlTarget.from_input(small_site, config), fetcher).discover()

    assert urls == [
        f"{small_site}/",
        f"{small_site}/page1",
        f"{small_site}/page2",
        f"{small_site}/page3",
    ]


@pytest.mark.asyncio()
async def test_slow_page_counts_as_discovery_error():
    app = site_app(
        {
            "/": html_page("/slow", "/fast"),
            "/slow": html_page("/behind-slow"),
            "/fast": html_page(),
        },
        slow={"/slow": 1.0},
    )
    config = CrawlerConfig(timeout=0.2)
    async for base in serve_app(app):
        async with Fetcher.from_config(config) as fetcher:
            discoverer = BfsDiscoverer(CrawlTarget.from_input(base, config), fetcher)
            urls = await discoverer.discover()

    assert urls == [f"{base}/", f"{base}/fast", f"{base}/slow"]
    assert discoverer.discovery_errors == 1
