"""
Data models shared by the crawler, the auditor and the report layer.
"""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal, Optional, TypedDict, Union

__all__ = (
    "PageData",
    "Issue",
    "IssueCounts",
    "PageAuditResult",
    "AuditError",
    "AuditOutcome",
    "TaskFailure",
    "ProgressEvent",
    "HealthBreakdown",
    "SiteReport",
    "CrawlFailure",
)

Severity = Literal["critical", "warning", "info"]
Phase = Literal["discovering", "auditing"]


@dataclass(slots=True)
class PageData:
    """A fetched response: requested URL, URL after redirects, status and body."""

    url: str
    final_url: str
    status: int
    content_type: str
    content: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_html(self) -> bool:
        return "text/html" in self.content_type.lower()


class Issue(TypedDict):
    """One finding of the page auditor."""

    id: str
    type: str
    severity: Severity
    title: str
    description: str
    current_value: Optional[str]
    recommendation: str
    can_auto_fix: bool


@dataclass(slots=True)
class IssueCounts:
    critical: int = 0
    warning: int = 0
    info: int = 0
    total: int = 0

    @classmethod
    def from_issues(cls, issues: List[Issue]) -> IssueCounts:
        counts = cls()
        for issue in issues:
            severity = issue.get("severity")
            if severity in ("critical", "warning", "info"):
                setattr(counts, severity, getattr(counts, severity) + 1)
        counts.total = len(issues)
        return counts

    def __add__(self, other: IssueCounts) -> IssueCounts:
        return IssueCounts(
            critical=self.critical + other.critical,
            warning=self.warning + other.warning,
            info=self.info + other.info,
            total=self.total + other.total,
        )


@dataclass(slots=True)
class PageAuditResult:
    """Successful audit of one page. ``score`` is None for JS-rendered pages."""

    url: str
    final_url: str
    score: Optional[int]
    issues: List[Issue] = field(default_factory=list)
    counts: IssueCounts = field(default_factory=IssueCounts)
    meta: Dict[str, Any] = field(default_factory=dict)
    js_rendered: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "finalUrl": self.final_url,
            "score": self.score,
            "issues": [_issue_to_dict(i) for i in self.issues],
            "counts": asdict(self.counts),
            "meta": dict(self.meta),
            "jsRendered": self.js_rendered,
        }


@dataclass(slots=True)
class AuditError:
    url: str
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "error": self.error}


AuditOutcome = Union[PageAuditResult, AuditError]


@dataclass(slots=True)
class TaskFailure:
    """Placeholder stored by the concurrency runner when a unit of work raised."""

    error: str


@dataclass(slots=True)
class ProgressEvent:
    phase: Phase
    current: int
    total: int
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "progress",
            "phase": self.phase,
            "current": self.current,
            "total": self.total,
            "message": self.message,
        }


@dataclass(slots=True)
class HealthBreakdown:
    healthy: int = 0
    needs_work: int = 0
    poor: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"healthy": self.healthy, "needsWork": self.needs_work, "poor": self.poor}


@dataclass(slots=True)
class SiteReport:
    """Site-level crawl report. Built once at the end of a crawl."""

    domain: str
    start_url: str
    crawled_at: str
    total_pages: int
    successful_pages: int
    failed_pages: int
    site_score: int
    site_counts: IssueCounts
    health_breakdown: HealthBreakdown
    top_issues: List[Dict[str, Any]]
    pages: List[PageAuditResult]
    errors: List[AuditError]
    hit_page_limit: bool
    page_limit: int
    discovery_errors: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form with the camelCase keys the presentation layer reads."""
        return {
            "domain": self.domain,
            "startUrl": self.start_url,
            "crawledAt": self.crawled_at,
            "totalPages": self.total_pages,
            "successfulPages": self.successful_pages,
            "failedPages": self.failed_pages,
            "siteScore": self.site_score,
            "siteCounts": asdict(self.site_counts),
            "healthBreakdown": self.health_breakdown.to_dict(),
            "topIssues": [dict(t) for t in self.top_issues],
            "pages": [p.to_dict() for p in self.pages],
            "errors": [e.to_dict() for e in self.errors],
            "hitPageLimit": self.hit_page_limit,
            "pageLimit": self.page_limit,
            "discoveryErrors": self.discovery_errors,
        }

    def json(self, *, pretty: bool = False) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


@dataclass(slots=True)
class CrawlFailure:
    """Fatal crawl outcome: a single user-facing message, no partial report."""

    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.error}


def _issue_to_dict(issue: Issue) -> Dict[str, Any]:
    return {
        "id": issue.get("id"),
        "type": issue.get("type"),
        "severity": issue.get("severity"),
        "title": issue.get("title"),
        "description": issue.get("description"),
        "currentValue": issue.get("current_value"),
        "recommendation": issue.get("recommendation"),
        "canAutoFix": issue.get("can_auto_fix", False),
    }
