"""Logging setup for **SEO Scout**.

Every module logs through the ``SeoScout`` logger (or a ``SeoScout.<part>``
child from :func:`get_logger`). Nothing is printed until the CLI or the
server calls :func:`init_logging`; library users keep control of their own
handlers.

Console output goes to stderr because stdout carries the JSON report
printed by ``seo-scout crawl``. A rotating log file can be added with
``--log-file``.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Iterable, Optional, TextIO, Union

DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOGGER_NAME: Final[str] = "SeoScout"
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

#: aiohttp loggers that follow the project level when the SSE server runs
AIOHTTP_LOGGERS: Final[tuple[str, ...]] = ("aiohttp.access", "aiohttp.server", "aiohttp.web")

_LevelT = Union[int, str]

_LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
_LOG_FILE_BACKUPS = 3


def _resolve_level(level: _LevelT) -> int:
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name not in LOG_LEVELS:
        raise ValueError(f"Unknown log level {level!r}, expected one of {', '.join(LOG_LEVELS)}")
    return logging.getLevelName(name)


def _handlers(fmt: str, log_file: Union[str, Path, None], stream: Optional[TextIO]) -> list[logging.Handler]:
    formatter = logging.Formatter(fmt)
    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stderr)]
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            filename=str(path),
            maxBytes=_LOG_FILE_MAX_BYTES,
            backupCount=_LOG_FILE_BACKUPS,
            encoding="utf-8",
        ))
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: Union[str, Path, None] = None,
    log_format: str = DEFAULT_FORMAT,
    replace_handlers: bool = True,
    stream: Optional[TextIO] = None,
    also: Iterable[str] = (),
) -> logging.Logger:
    """(Re)configure the project logger.

    Parameters
    ----------
    level
        Numeric level or one of :data:`LOG_LEVELS`.
    log_file
        Rotating log file; *None* keeps output on the console only.
    log_format
        Format string for :class:`logging.Formatter`.
    replace_handlers
        Close and drop the handlers installed by a previous call.
    stream
        Console stream, stderr by default.
    also
        Names of third-party loggers that get the same handlers and level.
    """
    numeric = _resolve_level(level)
    handlers = _handlers(log_format, log_file, stream)

    for name in (LOGGER_NAME, *also):
        lg = logging.getLogger(name)
        lg.setLevel(numeric)
        if replace_handlers:
            for old in list(lg.handlers):
                lg.removeHandler(old)
                old.close()
        for handler in handlers:
            lg.addHandler(handler)
        lg.propagate = False
    return logging.getLogger(LOGGER_NAME)


def init_logging(
    level: _LevelT = "INFO",
    log_file: Union[str, Path, None] = None,
    log_format: str = DEFAULT_FORMAT,
    *,
    with_aiohttp: bool = False,
) -> logging.Logger:
    """Entry-point helper for the CLI; ``with_aiohttp`` also routes the server's access log."""
    return configure(
        level=level,
        log_file=log_file,
        log_format=log_format,
        also=AIOHTTP_LOGGERS if with_aiohttp else (),
    )


def get_logger(suffix: Optional[str] = None) -> logging.Logger:
    """``SeoScout`` or its ``SeoScout.<suffix>`` child."""
    return logging.getLogger(f"{LOGGER_NAME}.{suffix}" if suffix else LOGGER_NAME)


logger: logging.Logger = logging.getLogger(LOGGER_NAME)

__all__ = [
    "logger",
    "configure",
    "init_logging",
    "get_logger",
    "DEFAULT_FORMAT",
    "LOGGER_NAME",
    "LOG_LEVELS",
    "AIOHTTP_LOGGERS",
]
