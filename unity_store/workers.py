"""workers.py — Fixed-size worker pool over a shared index cursor.

``bounded_map`` runs ``fn`` over ``items`` with at most ``limit`` calls in
flight. Each worker claims the next index under a lock until the cursor
passes the end. A failing item is replaced by ``fallback(item, exc)``; the
pool keeps draining and nothing is retried.
"""
from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, TypeVar

from unity_store.config import logger

__all__ = ["bounded_map"]

T = TypeVar("T")
R = TypeVar("R")


def bounded_map(
    items: Sequence[T],
    fn: Callable[[T], R],
    fallback: Callable[[T, Exception], R],
    limit: int,
) -> List[R]:
    """Results in input order."""
    total = len(items)
    if total == 0:
        return []
    workers = max(1, min(int(limit), total))
    results: List[Optional[R]] = [None] * total
    cursor = 0
    lock = threading.Lock()

    def _claim() -> int:
        nonlocal cursor
        with lock:
            idx = cursor
            cursor += 1
            return idx

    def _worker() -> None:
        while True:
            idx = _claim()
            if idx >= total:
                return
            item = items[idx]
            try:
                results[idx] = fn(item)
            except Exception as exc:
                logger.warning("bounded_map: item %d failed, using fallback: %s", idx, exc)
                results[idx] = fallback(item, exc)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_worker) for _ in range(workers)]
        for future in futures:
            future.result()
    return results  # type: ignore[return-value]
