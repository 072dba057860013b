"""
Bounded concurrency runner shared by the discovery and audit phases.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar, Union

from seo_scout.crawler.models import TaskFailure
from seo_scout.errors import CrawlCancelled

__all__ = ("run_with_concurrency",)

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger("SeoScout")

_CANCELLED = "cancelled"


async def run_with_concurrency(
    items: Sequence[T],
    limit: int,
    fn: Callable[[T], Awaitable[R]],
    *,
    cancel_event: Optional[asyncio.Event] = None,
) -> List[Union[R, TaskFailure]]:
    """Run ``fn`` over *items* with at most *limit* calls in flight.

    ``results[i]`` always corresponds to ``items[i]`` whatever the completion
    order. An exception raised for one item is stored as
    :class:`TaskFailure` at its index; the worker then moves on to the next
    unclaimed item. When *cancel_event* is set, workers stop claiming new items
    and :class:`~seo_scout.errors.CrawlCancelled` is raised once the in-flight
    calls have settled.
    """
    if limit < 1:
        raise ValueError("limit must be >= 1")

    total = len(items)
    results: List[Any] = [TaskFailure(_CANCELLED)] * total
    next_index = 0

    async def worker() -> None:
        nonlocal next_index
        while next_index < total:
            if cancel_event is not None and cancel_event.is_set():
                return
            # claiming happens between awaits, so it is atomic for the event loop
            current = next_index
            next_index += 1
            try:
                results[current] = await fn(items[current])
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.debug("Item %d failed: %s", current, exc)
                results[current] = TaskFailure(str(exc) or exc.__class__.__name__)

    await asyncio.gather(*(worker() for _ in range(min(limit, total))))

    if next_index < total:
        raise CrawlCancelled()
    return results
