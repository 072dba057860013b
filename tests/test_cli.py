import json
import logging

import pytest
from click.testing import CliRunner

import seo_scout.cli as cli_module
from seo_scout import __version__
from seo_scout.cli import cli
from seo_scout.crawler.models import (
    AuditError,
    CrawlFailure,
    HealthBreakdown,
    IssueCounts,
    PageAuditResult,
    ProgressEvent,
    SiteReport,
)
from seo_scout.logger import AIOHTTP_LOGGERS, LOGGER_NAME


def make_report(domain: str = "example.com") -> SiteReport:
    return SiteReport(
        domain=domain,
        start_url=f"https://{domain}",
        crawled_at="2024-05-01T12:00:00.000Z",
        total_pages=1,
        successful_pages=1,
        failed_pages=0,
        site_score=100,
        site_counts=IssueCounts(),
        health_breakdown=HealthBreakdown(healthy=1),
        top_issues=[],
        pages=[PageAuditResult(f"https://{domain}/", f"https://{domain}/", 100)],
        errors=[],
        hit_page_limit=False,
        page_limit=200,
    )


@pytest.fixture(autouse=True)
def restore_loggers():
    # the CLI binds handlers to CliRunner's streams, which close after invoke
    loggers = [logging.getLogger(name) for name in (LOGGER_NAME, *AIOHTTP_LOGGERS)]
    saved = [(list(lg.handlers), lg.level, lg.propagate) for lg in loggers]
    yield
    for lg, (handlers, level, propagate) in zip(loggers, saved):
        for handler in list(lg.handlers):
            lg.removeHandler(handler)
        for handler in handlers:
            lg.addHandler(handler)
        lg.setLevel(level)
        lg.propagate = propagate


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def fake_crawl(monkeypatch):
    calls = []

    async def crawl_site(url, config=None, on_progress=None, cancel_event=None, auditor=None):
        calls.append((url, config))
        if on_progress is not None:
            on_progress(ProgressEvent("discovering", 0, 0, "Discovering pages..."))
        return make_report()

    monkeypatch.setattr(cli_module, "crawl_site", crawl_site)
    return calls


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert result.output.strip() == f"SEO Scout, version {__version__}"


def test_config_command_shows_loaded_file(runner, tmp_path):
    path = tmp_path / "crawler.yaml"
    path.write_text("max_pages: 12\nconcurrency: 4\n", encoding="utf-8")

    result = runner.invoke(cli, ["--config", str(path), "config"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["max_pages"] == 12
    assert data["concurrency"] == 4


def test_broken_config_exits_with_error(runner, tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("max_pages: [", encoding="utf-8")

    result = runner.invoke(cli, ["--config", str(path), "config"])

    assert result.exit_code == 1
    assert "Ошибка загрузки конфигурации" in result.output


def test_crawl_prints_report(runner, fake_crawl):
    result = runner.invoke(cli, ["crawl", "example.com", "--max-pages", "5", "-n", "2", "--quiet"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["domain"] == "example.com"
    url, config = fake_crawl[0]
    assert url == "example.com"
    assert config.max_pages == 5
    assert config.concurrency == 2


def test_crawl_reports_progress(runner, fake_crawl):
    result = runner.invoke(cli, ["crawl", "example.com"])
    assert result.exit_code == 0
    assert "[discovering] Discovering pages..." in result.output


def test_crawl_writes_report_files(runner, fake_crawl, tmp_path):
    json_path = tmp_path / "report.json"
    html_path = tmp_path / "report.html"

    result = runner.invoke(
        cli,
        ["crawl", "example.com", "--quiet", "--pretty", "--json", str(json_path), "--html", str(html_path)],
    )

    assert result.exit_code == 0, result.output
    assert f"JSON report: {json_path}" in result.output
    assert f"HTML report: {html_path}" in result.output
    assert json.loads(json_path.read_text(encoding="utf-8"))["siteScore"] == 100
    assert "example.com" in html_path.read_text(encoding="utf-8")


def test_crawl_failure_exits_non_zero(runner, monkeypatch):
    async def crawl_site(url, config=None, on_progress=None, cancel_event=None, auditor=None):
        return CrawlFailure("Invalid URL. Please enter a valid website address.")

    monkeypatch.setattr(cli_module, "crawl_site", crawl_site)
    result = runner.invoke(cli, ["crawl", "not a url", "--quiet"])

    assert result.exit_code == 1
    assert "Invalid URL. Please enter a valid website address." in result.output


def test_audit_command(runner, monkeypatch):
    async def audit_page(url, config=None):
        if "broken" in url:
            return AuditError(url, "The page returned an HTTP 500 error.")
        return PageAuditResult(url, url, 90)

    monkeypatch.setattr(cli_module, "audit_page", audit_page)

    ok = runner.invoke(cli, ["audit", "https://example.com/"])
    assert ok.exit_code == 0, ok.output
    assert json.loads(ok.output)["score"] == 90

    failed = runner.invoke(cli, ["audit", "https://example.com/broken"])
    assert failed.exit_code == 1
    assert "HTTP 500" in failed.output


def test_serve_passes_host_and_port(runner, monkeypatch):
    seen = {}

    def run_server(config, host, port):
        seen.update(config=config, host=host, port=port)

    monkeypatch.setattr(cli_module, "run_server", run_server)
    result = runner.invoke(cli, ["serve", "--host", "0.0.0.0", "--port", "9000"])

    assert result.exit_code == 0, result.output
    assert seen["host"] == "0.0.0.0"
    assert seen["port"] == 9000
    assert seen["config"].max_pages == 200
