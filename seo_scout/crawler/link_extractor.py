# seo_scout/crawler/link_extractor.py
"""
Link extraction for the discovery phase.
"""
from __future__ import annotations

import logging
from typing import Optional, Set
from urllib.parse import urljoin

from bs4 import BeautifulSoup, SoupStrainer
from bs4.element import Tag

from seo_scout.crawler.urls import UrlPolicy, is_same_domain

logger = logging.getLogger("SeoScout")

# Parse only <a href> tags
LINK_STRAINER = SoupStrainer("a", href=True)

_IGNORED_PREFIXES = ("#", "javascript:", "mailto:", "tel:")
_DEFAULT_POLICY = UrlPolicy()


def extract_links(
    html: str,
    page_url: str,
    base_domain: str,
    policy: Optional[UrlPolicy] = None,
) -> Set[str]:
    """
    Return normalized, same-domain, non-skipped absolute URLs linked from *html*.

    Relative hrefs are resolved against *page_url* (the post-redirect URL).
    Empty, fragment-only, ``javascript:``, ``mailto:`` and ``tel:`` targets are
    ignored. Malformed markup or hrefs never raise; bad hrefs are dropped.
    """
    policy = policy or _DEFAULT_POLICY
    links: Set[str] = set()
    try:
        soup = BeautifulSoup(html or "", "html.parser", parse_only=LINK_STRAINER)
    except Exception as exc:  # html.parser can choke on pathological input
        logger.debug("Unparseable HTML from %s: %s", page_url, exc)
        return links

    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        href_val = tag.get("href")
        if not isinstance(href_val, str):
            continue
        href = href_val.strip()
        if not href or href.lower().startswith(_IGNORED_PREFIXES):
            continue
        try:
            absolute = urljoin(page_url, href)
        except ValueError:
            logger.debug("Dropping malformed href %r on %s", href, page_url)
            continue
        normalized = policy.normalize(absolute)
        if is_same_domain(normalized, base_domain) and not policy.should_skip(normalized):
            links.add(normalized)
    return links
