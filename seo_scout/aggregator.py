# File: seo_scout/aggregator.py
"""seo_scout.aggregator: сводка результатов аудита страниц в показатели по сайту."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from seo_scout.crawler.models import AuditError, HealthBreakdown, IssueCounts, PageAuditResult

__all__ = [
    "SiteSummary",
    "aggregate_site_results",
    "coerce_audit_result",
    "sort_pages_by_severity",
    "split_results",
    "HEALTHY_SCORE",
    "NEEDS_WORK_SCORE",
    "TOP_ISSUES_LIMIT",
]

HEALTHY_SCORE = 80
NEEDS_WORK_SCORE = 50
TOP_ISSUES_LIMIT = 5


@dataclass(slots=True)
class SiteSummary:
    """Итоговые показатели сайта."""

    site_score: int = 0
    site_counts: IssueCounts = field(default_factory=IssueCounts)
    health_breakdown: HealthBreakdown = field(default_factory=HealthBreakdown)
    top_issues: List[Dict[str, Any]] = field(default_factory=list)


def _get(entry: Any, *names: str, default: Any = None) -> Any:
    """Достаёт поле из dict (camelCase или snake_case) или из атрибута объекта."""
    for name in names:
        if isinstance(entry, Mapping):
            if name in entry:
                return entry[name]
        elif hasattr(entry, name):
            return getattr(entry, name)
    return default


def _coerce_counts(raw: Any) -> IssueCounts:
    if isinstance(raw, IssueCounts):
        return raw
    if raw is None:
        return IssueCounts()
    return IssueCounts(
        critical=int(_get(raw, "critical", default=0) or 0),
        warning=int(_get(raw, "warning", default=0) or 0),
        info=int(_get(raw, "info", default=0) or 0),
        total=int(_get(raw, "total", default=0) or 0),
    )


def coerce_audit_result(raw: Any, url: str) -> PageAuditResult | AuditError:
    """
    Приводит ответ аудитора к PageAuditResult или AuditError.

    Аудитор может вернуть dataclass или словарь; словарь с ключом ``error``
    считается ошибкой. Неизвестный или битый формат (нечисловой балл,
    проблемы не в виде словарей) тоже становится AuditError и не роняет обход.
    """
    if isinstance(raw, (PageAuditResult, AuditError)):
        return raw
    error = _get(raw, "error")
    if error:
        return AuditError(url=url, error=str(error))
    if not isinstance(raw, Mapping):
        return AuditError(url=url, error=f"Unexpected audit result: {type(raw).__name__}")

    try:
        issues = list(_get(raw, "issues", default=[]) or [])
        if not all(isinstance(i, Mapping) for i in issues):
            raise TypeError("issues must be mappings")
        counts = _get(raw, "counts")
        score = _get(raw, "score")
        return PageAuditResult(
            url=str(_get(raw, "url", default=url) or url),
            final_url=str(_get(raw, "final_url", "finalUrl", default=url) or url),
            score=None if score is None else int(score),
            issues=issues,
            counts=_coerce_counts(counts) if counts is not None else IssueCounts.from_issues(issues),
            meta=dict(_get(raw, "meta", default={}) or {}),
            js_rendered=bool(_get(raw, "js_rendered", "jsRendered", default=False)),
        )
    except (TypeError, ValueError, AttributeError) as exc:
        return AuditError(url=url, error=f"Malformed audit result: {exc}")


def _health(scores: Sequence[Optional[int]]) -> HealthBreakdown:
    # страница без балла попадает в poor
    return HealthBreakdown(
        healthy=sum(1 for s in scores if s is not None and s >= HEALTHY_SCORE),
        needs_work=sum(1 for s in scores if s is not None and NEEDS_WORK_SCORE <= s < HEALTHY_SCORE),
        poor=sum(1 for s in scores if s is None or s < NEEDS_WORK_SCORE),
    )


def _top_issues(pages: Sequence[PageAuditResult], limit: int) -> List[Dict[str, Any]]:
    frequency: Dict[str, int] = {}
    for page in pages:
        for issue in page.issues:
            issue_type = _get(issue, "type")
            if issue_type is None:
                continue
            frequency[issue_type] = frequency.get(issue_type, 0) + 1
    # sorted() стабилен: при равенстве сохраняется порядок первого появления
    ranked = sorted(frequency.items(), key=lambda kv: kv[1], reverse=True)
    return [{"type": t, "count": c} for t, c in ranked[:limit]]


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def aggregate_site_results(
    pages: Sequence[PageAuditResult], top_limit: int = TOP_ISSUES_LIMIT
) -> SiteSummary:
    """
    Считает средний балл, суммы по важности, разбивку по «здоровью» и топ проблем.

    Страница без балла (JS-рендеринг) считается в среднем как 0 и попадает
    в poor, так что healthy + needs_work + poor == len(pages).
    Пустой список даёт нулевую сводку.
    """
    if not pages:
        return SiteSummary()

    scores = [p.score for p in pages]
    site_score = _round_half_up(sum(s or 0 for s in scores) / len(scores))

    site_counts = IssueCounts()
    for page in pages:
        site_counts = site_counts + page.counts

    return SiteSummary(
        site_score=site_score,
        site_counts=site_counts,
        health_breakdown=_health(scores),
        top_issues=_top_issues(pages, top_limit),
    )


def sort_pages_by_severity(pages: Sequence[PageAuditResult]) -> List[PageAuditResult]:
    """Худшие страницы первыми: по числу critical, затем по общему числу проблем."""
    return sorted(pages, key=lambda p: (-p.counts.critical, -p.counts.total))


def split_results(
    urls: Sequence[str], results: Sequence[Any]
) -> tuple[List[PageAuditResult], List[AuditError]]:
    """Разделяет результаты аудита на успешные и ошибочные, сохраняя порядок."""
    ok: List[PageAuditResult] = []
    failed: List[AuditError] = []
    for url, raw in zip(urls, results):
        outcome = coerce_audit_result(raw, url)
        if isinstance(outcome, AuditError):
            failed.append(AuditError(url=url, error=outcome.error))
        else:
            ok.append(outcome)
    return ok, failed
