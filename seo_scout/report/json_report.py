# seo_scout/report/json_report.py

"""
JSON-отчёт SEO Scout.

Файл содержит ровно то, что отдаёт событие ``complete`` SSE-сервера:
``SiteReport.to_dict()`` с camelCase-ключами.
"""
from pathlib import Path

from seo_scout.crawler.models import SiteReport


def render_json(report: SiteReport, output_path: Path | str, *, pretty: bool = True) -> Path:
    """
    Записывает SiteReport в JSON-файл, создавая недостающие каталоги.

    :param pretty: отступ в 2 пробела; False даёт одну строку
    :return: Path записанного файла
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(report.json(pretty=pretty), encoding='utf-8')
    return output
