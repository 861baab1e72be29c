"""Parallel worker pool for independent system generation."""

from __future__ import annotations

import logging
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterable, Iterator, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class WorkerPool:
    """Runs one task per item on a ThreadPoolExecutor.

    Tasks share no mutable state (each owns its stream), so results are
    identical to a serial run. Results come back in submission order and
    the first failure propagates to the caller.
    """

    __slots__ = ("_num_workers", "_executor")

    def __init__(self, num_workers: int = 1) -> None:
        self._num_workers = max(1, num_workers)
        self._executor: ThreadPoolExecutor | None = None
        if self._num_workers > 1:
            self._executor = ThreadPoolExecutor(
                max_workers=self._num_workers,
                thread_name_prefix="gen-worker",
            )

    def map(self, fn: Callable[[T], R], items: Sequence[T]) -> list[R]:
        """Apply *fn* to every item; ordered results."""
        if not items:
            return []

        # Fast path: single-worker mode, run inline
        if self._executor is None:
            return [fn(item) for item in items]

        futures: list[Future[R]] = [self._executor.submit(fn, item) for item in items]
        results: list[R] = []
        try:
            for idx, future in enumerate(futures):
                try:
                    results.append(future.result())
                except Exception:
                    logger.error("Worker failed on item %d; cancelling remaining tasks", idx)
                    raise
        finally:
            for future in futures:
                future.cancel()
        return results

    def imap(self, fn: Callable[[T], R], items: Iterable[T]) -> Iterator[R]:
        """Lazy ordered results.

        At most ``2 * num_workers`` tasks are in flight, so a caller that
        stops iterating early leaves the rest of *items* unstarted.
        """
        if self._executor is None:
            for item in items:
                yield fn(item)
            return

        window = 2 * self._num_workers
        pending: deque[Future[R]] = deque()
        source = iter(items)
        try:
            for item in source:
                pending.append(self._executor.submit(fn, item))
                if len(pending) >= window:
                    yield pending.popleft().result()
            while pending:
                yield pending.popleft().result()
        finally:
            for future in pending:
                future.cancel()

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=True)

    def __enter__(self) -> WorkerPool:
        return self

    def __exit__(self, *exc: object) -> None:
        self.shutdown()
