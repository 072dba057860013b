"""
Модуль для загрузки и валидации конфигурации краулера SEO Scout.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import json
import os
import errno
from pathlib import Path
from typing import Any, Union
from urllib.parse import urlsplit

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from seo_scout.crawler.urls import (
    SKIP_EXTENSIONS,
    SKIP_PATH_PREFIXES,
    TRACKING_PARAMS,
    UrlPolicy,
    ensure_scheme,
)
from seo_scout.errors import InvalidUrlError

__all__ = ["CrawlerConfig", "CrawlTarget", "load_config", "AUDIT_SKIP_PATHS"]

# Страницы, которые не нуждаются в SEO-аудите: авторизация, кабинеты, юридические тексты
AUDIT_SKIP_PATHS: tuple[str, ...] = (
    "/login", "/signin", "/sign-in", "/signup", "/sign-up",
    "/register", "/logout", "/auth/", "/dashboard", "/account", "/profile",
    "/settings", "/admin", "/app/", "/privacy", "/cookie", "/terms", "/legal",
)


class CrawlerConfig(BaseModel):
    """Настройки краулера; все значения по умолчанию можно переопределить."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_pages: int = Field(200, ge=1, description="Жесткий лимит по числу страниц.")
    concurrency: int = Field(3, ge=1, description="Число одновременных запросов.")
    timeout: float = Field(10.0, gt=0, description="Таймаут на один запрос (секунд).")
    user_agent: str = Field(
        "Mozilla/5.0 (compatible; SEOScout/1.0)", min_length=1, description="Заголовок User-Agent."
    )
    skip_extensions: frozenset[str] = Field(
        SKIP_EXTENSIONS, description="Расширения файлов, которые не обходятся."
    )
    skip_path_prefixes: tuple[str, ...] = Field(
        SKIP_PATH_PREFIXES, description="Префиксы путей, которые не обходятся."
    )
    tracking_params: frozenset[str] = Field(
        TRACKING_PARAMS, description="Параметры запроса, удаляемые при нормализации."
    )
    audit_skip_paths: tuple[str, ...] = Field(
        AUDIT_SKIP_PATHS, description="Префиксы путей, исключённые из аудита."
    )
    js_min_word_count: int = Field(
        500, ge=0, description="Порог слов, ниже которого JS-страница не проверяется."
    )

    @field_validator("skip_extensions", mode="before")
    def _dot_extensions(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple, set, frozenset)):
            return frozenset(e if str(e).startswith(".") else f".{e}" for e in v)
        return v

    @property
    def url_policy(self) -> UrlPolicy:
        return UrlPolicy.build(
            tracking_params=self.tracking_params,
            skip_extensions=self.skip_extensions,
            skip_path_prefixes=self.skip_path_prefixes,
        )

    def with_overrides(self, **overrides: Any) -> CrawlerConfig:
        """Возвращает копию конфига; значения None игнорируются."""
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return CrawlerConfig(**data)


class CrawlTarget(BaseModel):
    """Сессия обхода одного домена. Неизменяема на всё время обхода."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    start_url: str = Field(..., description="Стартовый URL (со схемой).")
    base_domain: str = Field(..., min_length=1, description="Хост, с которым сравниваются ссылки.")
    max_pages: int = Field(200, ge=1)
    concurrency: int = Field(3, ge=1)
    timeout: float = Field(10.0, gt=0)

    @field_validator("start_url")
    def _http_only(cls, v: str) -> str:
        if urlsplit(v).scheme.lower() not in ("http", "https"):
            raise ValueError("start_url must use http or https")
        return v

    @classmethod
    def from_input(cls, raw_url: str, config: CrawlerConfig) -> CrawlTarget:
        """
        Строит цель обхода из пользовательского ввода.
        Без схемы подставляется https://. Неразбираемый URL -> InvalidUrlError.
        """
        if not isinstance(raw_url, str) or not raw_url.strip():
            raise InvalidUrlError(str(raw_url))
        start_url = ensure_scheme(raw_url)
        try:
            host = urlsplit(start_url).hostname
        except ValueError as exc:
            raise InvalidUrlError(raw_url) from exc
        if not host or any(ch.isspace() for ch in host):
            raise InvalidUrlError(raw_url)
        return cls(
            start_url=start_url,
            base_domain=host,
            max_pages=config.max_pages,
            concurrency=config.concurrency,
            timeout=config.timeout,
        )


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None] = None) -> CrawlerConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект CrawlerConfig.
    Без пути берётся configs/default.yaml, а если его нет, то значения по умолчанию.
    Отсутствующий явно указанный файл -> FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            return CrawlerConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    return CrawlerConfig(**data)
