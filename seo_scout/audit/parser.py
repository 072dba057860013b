"""HTML parsing for the page auditor.

:func:`parse_page` turns raw markup into a :class:`ParsedPage` holding only
the fields the SEO checks look at. Parsing is lenient: missing elements
become ``None`` or empty lists, never exceptions.
"""
from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

__all__: Sequence[str] = ("ImageInfo", "ParsedPage", "parse_page")

_WS_RE = re.compile(r"\s+")


@dataclass(slots=True)
class ImageInfo:
    src: str
    alt: Optional[str]  # None when the attribute is missing entirely


@dataclass(slots=True)
class ParsedPage:
    """The SEO-relevant parts of an HTML document."""

    title: Optional[str] = None
    meta_description: Optional[str] = None
    canonical: Optional[str] = None
    h1s: list[str] = field(default_factory=list)
    h2s: list[str] = field(default_factory=list)
    images: list[ImageInfo] = field(default_factory=list)
    robots_meta: Optional[str] = None
    og_title: Optional[str] = None
    og_description: Optional[str] = None
    html_lang: Optional[str] = None
    viewport: Optional[str] = None
    has_schema: bool = False
    word_count: int = 0
    raw: str = ""


def _meta(soup: BeautifulSoup, attr: str, value: str) -> Optional[str]:
    for tag in soup.find_all("meta"):
        if not isinstance(tag, Tag):
            continue
        key = tag.get(attr)
        if isinstance(key, str) and key.strip().lower() == value:
            content = tag.get("content")
            return content if isinstance(content, str) else None
    return None


def _canonical(soup: BeautifulSoup) -> Optional[str]:
    for tag in soup.find_all("link"):
        if not isinstance(tag, Tag):
            continue
        rel = tag.get("rel") or []
        rels = rel if isinstance(rel, list) else [rel]
        if any(str(r).lower() == "canonical" for r in rels):
            href = tag.get("href")
            return href if isinstance(href, str) else None
    return None


def _text(tag: Tag) -> str:
    return _WS_RE.sub(" ", tag.get_text(" ", strip=True)).strip()


def parse_page(html: str) -> ParsedPage:
    soup = BeautifulSoup(html or "", "html.parser")

    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if isinstance(title_tag, Tag) else None

    html_tag = soup.find("html")
    lang = html_tag.get("lang") if isinstance(html_tag, Tag) else None

    images: list[ImageInfo] = []
    for img in soup.find_all("img"):
        if not isinstance(img, Tag):
            continue
        src = img.get("src")
        alt = img.get("alt")
        images.append(ImageInfo(
            src=src if isinstance(src, str) else "",
            alt=alt if isinstance(alt, str) else None,
        ))

    has_schema = bool(soup.find("script", attrs={"type": "application/ld+json"})) or bool(
        soup.find(attrs={"itemtype": re.compile(r"schema\.org", re.I)})
    )

    page = ParsedPage(
        title=title or None,
        meta_description=_meta(soup, "name", "description"),
        canonical=_canonical(soup),
        h1s=[_text(t) for t in soup.find_all("h1") if isinstance(t, Tag)],
        h2s=[_text(t) for t in soup.find_all("h2") if isinstance(t, Tag)],
        images=images,
        robots_meta=_meta(soup, "name", "robots"),
        og_title=_meta(soup, "property", "og:title"),
        og_description=_meta(soup, "property", "og:description"),
        html_lang=lang if isinstance(lang, str) and lang.strip() else None,
        viewport=_meta(soup, "name", "viewport"),
        has_schema=has_schema,
        raw=html or "",
    )

    # Visible text (skip <script>, <style>, etc.)
    for element in soup(["script", "style", "noscript", "template"]):
        element.decompose()
    page.word_count = len(soup.get_text(" ", strip=True).split())
    return page
