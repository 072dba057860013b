"""
seo_scout.audit: per-page SEO auditing used by the crawl engine.
"""
from seo_scout.audit.auditor import HtmlPageAuditor, JsDetector, PageAuditor, looks_js_rendered

__all__ = ["HtmlPageAuditor", "JsDetector", "PageAuditor", "looks_js_rendered"]
