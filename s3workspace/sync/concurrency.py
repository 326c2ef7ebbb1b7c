"""Bounded-parallelism gate for transfers."""

import logging
import threading
from collections.abc import Iterable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class ConcurrencyLimiter:
    """Runs callables with at most ``limit`` of them in flight.

    Work is queued in submission order on a worker pool created on first
    use. Each callable's outcome, including any exception, is confined to
    its own future.

    Examples:
        >>> limiter = ConcurrencyLimiter(2, name="example")
        >>> sorted(f.result() for _, f in limiter.run_all(lambda x: x * 2, [1, 2, 3]))
        [2, 4, 6]
        >>> limiter.peak_active <= 2
        True
        >>> limiter.shutdown()
    """

    def __init__(self, limit: int, name: str = "transfer"):
        """Initialize the limiter.

        Args:
            limit: Maximum number of callables running at once
            name: Label used for worker thread names and logs

        Raises:
            ValueError: If limit is less than 1
        """
        if limit < 1:
            raise ValueError(f"Concurrency limit must be at least 1, got {limit}")
        self.limit = limit
        self.name = name

        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()
        self._active = 0
        self.peak_active = 0

    @property
    def active(self) -> int:
        """Number of callables currently executing."""
        return self._active

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.limit, thread_name_prefix=f"{self.name}-worker"
                )
            return self._executor

    def _run(self, fn: Callable[..., R], args: tuple, kwargs: dict) -> R:
        with self._lock:
            self._active += 1
            if self._active > self.peak_active:
                self.peak_active = self._active
        try:
            return fn(*args, **kwargs)
        finally:
            with self._lock:
                self._active -= 1

    def submit(self, fn: Callable[..., R], *args: Any, **kwargs: Any) -> "Future[R]":
        """Queue a callable.

        Returns:
            Future resolving to the callable's result or exception
        """
        return self._get_executor().submit(self._run, fn, args, kwargs)

    def run_all(
        self, fn: Callable[[T], R], items: Iterable[T]
    ) -> Iterator[tuple[T, "Future[R]"]]:
        """Submit ``fn(item)`` for every item and yield them as they finish.

        Args:
            fn: Callable applied to each item
            items: Work items, submitted in order

        Yields:
            (item, future) pairs in completion order
        """
        futures = {self.submit(fn, item): item for item in items}
        logger.debug(
            "%s: queued %d task(s) with limit %d", self.name, len(futures), self.limit
        )
        for future in as_completed(futures):
            yield futures[future], future

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker pool. A later submit starts a new one."""
        with self._lock:
            executor = self._executor
            self._executor = None
        if executor is not None:
            executor.shutdown(wait=wait)
