#!/usr/bin/env python3
"""
Точка входа для запуска краулера SEO Scout через командную строку.

Команды:
  crawl URL   Обойти сайт, проверить страницы и вывести/сохранить отчёт
  audit URL   Проверить одну страницу
  serve       Запустить HTTP-сервер с потоковой выдачей прогресса (SSE)
  config      Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (только консоль, если не указан)
  --log-format FORMAT Формат логирования

Команда crawl опции:
  --max-pages INT     Лимит страниц (override max_pages)
  --concurrency INT   Число одновременных запросов
  --timeout SEC       Таймаут одного запроса
  --json PATH         Сохранить JSON-отчёт в файл
  --html PATH         Сохранить HTML-отчёт в файл
  --template DIR      Папка с Jinja2-шаблонами (по умолчанию встроенный шаблон)
  --pretty            Преформатировать JSON-вывод (отступ 2)

Пример:
  seo-scout crawl example.com --max-pages 50 --json report.json --pretty
"""
import sys
import asyncio
import json
from pathlib import Path

import click

from seo_scout import __version__
from seo_scout.config import load_config
from seo_scout.crawler.models import AuditError, CrawlFailure, ProgressEvent
from seo_scout.engine import audit_page, crawl_site
from seo_scout.logger import DEFAULT_FORMAT, LOG_LEVELS, init_logging
from seo_scout.report.json_report import render_json
from seo_scout.report.html_report import render_html
from seo_scout.server import run_server

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def _echo_progress(event: ProgressEvent) -> None:
    click.echo(f'[{event.phase}] {event.message}', err=True)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SEO Scout, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='WARNING', show_default=True,
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (только консоль, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default=DEFAULT_FORMAT,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд SEO Scout CLI."""
    log_settings = dict(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    init_logging(**log_settings)
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg
    ctx.obj['logging'] = log_settings


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option('--max-pages', '-l', 'max_pages', type=click.IntRange(min=1), default=None,
              help='Макс. число страниц (override max_pages)')
@click.option('--concurrency', '-n', 'concurrency', type=click.IntRange(min=1), default=None,
              help='Число одновременных запросов')
@click.option('--timeout', 'timeout', type=click.FloatRange(min=0, min_open=True), default=None,
              help='Таймаут одного запроса (секунд)')
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-отчёт в файл'
)
@click.option(
    '--html', '-h', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить HTML-отчёт в файл'
)
@click.option(
    '--template', '-t', 'template_dir',
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Папка с Jinja2-шаблонами'
)
@click.option('--pretty', is_flag=True, help='Преформатировать JSON-вывод (отступ 2)')
@click.option('--quiet', '-q', is_flag=True, help='Не выводить прогресс')
@click.pass_context
def crawl(ctx, url, max_pages, concurrency, timeout, json_output, html_output, template_dir, pretty, quiet):
    """Обойти сайт URL и сформировать отчёт."""
    cfg = ctx.obj['config'].with_overrides(max_pages=max_pages, concurrency=concurrency, timeout=timeout)
    result = asyncio.run(crawl_site(url, cfg, None if quiet else _echo_progress))

    if isinstance(result, CrawlFailure):
        print_error(result.error)

    # Если не сохраняем в файл, печатаем в stdout
    if not json_output and not html_output:
        click.echo(result.json(pretty=pretty))
        return

    if json_output:
        try:
            saved_json = render_json(result, json_output, pretty=pretty)
            click.echo(f'JSON report: {saved_json}')
        except OSError as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    if html_output:
        try:
            saved_html = render_html(result, template_dir, html_output)
            click.echo(f'HTML report: {saved_html}')
        except OSError as e:
            print_error(f'Ошибка при сохранении HTML: {e}')


@cli.command('audit', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option('--pretty', is_flag=True, help='Преформатировать JSON-вывод (отступ 2)')
@click.pass_context
def audit(ctx, url, pretty):
    """Проверить одну страницу URL."""
    result = asyncio.run(audit_page(url, ctx.obj['config']))
    if isinstance(result, AuditError):
        print_error(result.error)
    click.echo(json.dumps(result.to_dict(), ensure_ascii=False, indent=2 if pretty else None))


@cli.command('serve', context_settings=CONTEXT_SETTINGS)
@click.option('--host', default='127.0.0.1', show_default=True, help='Адрес для прослушивания')
@click.option('--port', default=8080, show_default=True, type=int, help='Порт')
@click.pass_context
def serve(ctx, host, port):
    """Запустить HTTP-сервер (POST /api/crawl, POST /api/audit)."""
    # access-лог aiohttp пишем теми же хендлерами
    init_logging(**ctx.obj['logging'], with_aiohttp=True)
    run_server(ctx.obj['config'], host=host, port=port)


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
