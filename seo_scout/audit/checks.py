"""
On-page SEO heuristics.

Each check takes a :class:`ParsedPage` (and the final URL where needed) and
returns an :class:`Issue` or ``None``. :data:`CHECKS` fixes the order the
auditor runs them in: robots first, since a noindex page makes the rest moot.
"""
from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence

from seo_scout.audit.parser import ParsedPage
from seo_scout.crawler.models import Issue, Severity

__all__ = ("CHECKS", "run_checks", "score_issues", "SEVERITY_DEDUCTIONS")

SEVERITY_DEDUCTIONS: Dict[str, int] = {"critical": 20, "warning": 10, "info": 5}

Check = Callable[[ParsedPage, str], Optional[Issue]]


def _issue(
    id: str,
    type: str,
    severity: Severity,
    title: str,
    description: str,
    recommendation: str,
    *,
    current_value: Optional[str] = None,
    can_auto_fix: bool = True,
) -> Issue:
    return Issue(
        id=id,
        type=type,
        severity=severity,
        title=title,
        description=description,
        current_value=current_value,
        recommendation=recommendation,
        can_auto_fix=can_auto_fix,
    )


def check_robots_meta(page: ParsedPage, final_url: str) -> Optional[Issue]:
    robots = (page.robots_meta or "").lower()
    if "noindex" in robots or "none" in robots:
        return _issue(
            "noindex", "noindex_set", "warning",
            "Page is set to noindex - verify if this is intentional",
            f'The robots meta tag is set to "{page.robots_meta}". Search engines will not index this page.',
            "Remove the noindex directive if this page should rank. Login, checkout and "
            "thank-you pages are fine to keep out of the index.",
            current_value=page.robots_meta,
            can_auto_fix=False,
        )
    return None


def check_title(page: ParsedPage, final_url: str) -> Optional[Issue]:
    if not page.title:
        return _issue(
            "missing-title", "missing_title", "critical",
            "Missing title tag",
            "The page has no <title> tag. Search engines use it as the headline in results.",
            "Add a descriptive <title> of 30-60 characters that includes the primary keyword.",
        )
    length = len(page.title)
    if length > 60:
        return _issue(
            "title-too-long", "title_too_long", "warning",
            "Title tag too long",
            f"Your title is {length} characters; results usually cut it after 50-60.",
            "Shorten the title to under 60 characters, keyword near the beginning.",
            current_value=page.title,
        )
    if length < 30:
        return _issue(
            "title-too-short", "title_too_short", "warning",
            "Title tag too short",
            f"Your title is only {length} characters and misses room for descriptive keywords.",
            "Expand the title to 30-60 characters.",
            current_value=page.title,
        )
    return None


def check_meta_description(page: ParsedPage, final_url: str) -> Optional[Issue]:
    desc = page.meta_description
    if not desc:
        return _issue(
            "missing-meta-description", "missing_meta_description", "critical",
            "Missing meta description",
            "The page has no meta description, so search engines pick arbitrary text for the snippet.",
            "Add a meta description of 120-160 characters with a call to action.",
        )
    if len(desc) > 160:
        return _issue(
            "meta-description-too-long", "meta_description_too_long", "warning",
            "Meta description too long",
            f"Your meta description is {len(desc)} characters; it is truncated around 155-160.",
            "Trim the meta description to under 160 characters.",
            current_value=desc,
        )
    if len(desc) < 70:
        return _issue(
            "meta-description-too-short", "meta_description_too_short", "info",
            "Meta description is short",
            f"Your meta description is only {len(desc)} characters.",
            "Expand the meta description to 120-160 characters.",
            current_value=desc,
        )
    return None


def check_canonical(page: ParsedPage, final_url: str) -> Optional[Issue]:
    if not page.canonical:
        return _issue(
            "missing-canonical", "missing_canonical", "critical",
            "Missing canonical tag",
            "Without a canonical tag, several URL variants of this page may be indexed separately.",
            "Add a self-referencing canonical tag.",
        )

    def _cmp(u: str) -> str:
        return u.rstrip("/").lower()

    if _cmp(page.canonical) != _cmp(final_url):
        return _issue(
            "canonical-mismatch", "canonical_mismatch", "warning",
            "Canonical points to a different URL",
            f'The canonical tag points to "{page.canonical}" but the page URL is "{final_url}".',
            "Verify this is intentional; otherwise point the canonical at this page.",
            current_value=page.canonical,
            can_auto_fix=False,
        )
    return None


def check_h1(page: ParsedPage, final_url: str) -> Optional[Issue]:
    if not page.h1s:
        return _issue(
            "missing-h1", "missing_h1", "critical",
            "Missing H1 heading",
            "The page has no H1 tag, a strong signal of what the page is about.",
            "Add a single H1 that includes the primary keyword.",
        )
    if len(page.h1s) > 1:
        return _issue(
            "multiple-h1", "multiple_h1", "warning",
            f"Multiple H1 tags ({len(page.h1s)} found)",
            f"The page has {len(page.h1s)} H1 tags, which dilutes the primary topic.",
            "Keep one H1 and turn the others into H2/H3.",
            current_value=" | ".join(page.h1s),
            can_auto_fix=False,
        )
    if len(page.h1s[0]) > 70:
        return _issue(
            "h1-too-long", "h1_too_long", "info",
            "H1 heading is very long",
            f"Your H1 is {len(page.h1s[0])} characters.",
            "Shorten the H1 to under 60 characters.",
            current_value=page.h1s[0],
        )
    return None


def check_images(page: ParsedPage, final_url: str) -> Optional[Issue]:
    missing = [img for img in page.images if img.alt is None and img.src and not img.src.startswith("data:")]
    if not missing:
        return None
    n = len(missing)
    plural = "s" if n > 1 else ""
    shown = ", ".join(img.src for img in missing[:3])
    if n > 3:
        shown += f" ...and {n - 3} more"
    return _issue(
        "missing-alt-text", "missing_alt_text", "warning",
        f"{n} image{plural} missing alt text",
        f"Found {n} image{plural} without an alt attribute.",
        'Add descriptive alt text to content images; use alt="" for decorative ones.',
        current_value=shown,
    )


def check_viewport(page: ParsedPage, final_url: str) -> Optional[Issue]:
    if page.viewport:
        return None
    return _issue(
        "missing-viewport", "missing_viewport", "critical",
        "Missing viewport meta tag",
        "Without a viewport tag mobile browsers render the page at desktop width.",
        'Add <meta name="viewport" content="width=device-width, initial-scale=1">.',
    )


def check_html_lang(page: ParsedPage, final_url: str) -> Optional[Issue]:
    if page.html_lang:
        return None
    return _issue(
        "missing-lang", "missing_html_lang", "warning",
        "Missing lang attribute on <html>",
        "The <html> tag has no lang attribute.",
        'Add a lang attribute, e.g. <html lang="en">.',
    )


def check_open_graph(page: ParsedPage, final_url: str) -> Optional[Issue]:
    missing = [name for name, value in (("og:title", page.og_title), ("og:description", page.og_description)) if not value]
    if not missing:
        return None
    return _issue(
        "missing-og-tags", "missing_og_tags", "info",
        f"Missing Open Graph tags: {', '.join(missing)}",
        "Open Graph tags control how the page looks when shared on social media.",
        "Add og:title, og:description and og:image tags.",
    )


def check_schema(page: ParsedPage, final_url: str) -> Optional[Issue]:
    if page.has_schema:
        return None
    return _issue(
        "missing-schema", "missing_schema", "warning",
        "No structured data (Schema.org) detected",
        "No JSON-LD or microdata markup was found.",
        "Add Schema.org markup for the page type; Organization and WebSite are a good start.",
        can_auto_fix=False,
    )


def check_content_length(page: ParsedPage, final_url: str) -> Optional[Issue]:
    if page.word_count >= 300:
        return None
    return _issue(
        "thin-content", "thin_content", "warning",
        f"Thin content ({page.word_count} words)",
        f"The page has only about {page.word_count} words of text.",
        "Aim for at least 300 words on informational pages.",
        current_value=f"~{page.word_count} words",
        can_auto_fix=False,
    )


CHECKS: Sequence[Check] = (
    check_robots_meta,
    check_title,
    check_meta_description,
    check_canonical,
    check_h1,
    check_images,
    check_viewport,
    check_html_lang,
    check_open_graph,
    check_schema,
    check_content_length,
)


def run_checks(page: ParsedPage, final_url: str, checks: Sequence[Check] = CHECKS) -> List[Issue]:
    return [issue for check in checks if (issue := check(page, final_url)) is not None]


def score_issues(issues: List[Issue]) -> int:
    """100 minus a per-severity deduction, floored at 0."""
    return max(0, 100 - sum(SEVERITY_DEDUCTIONS.get(i["severity"], 0) for i in issues))
