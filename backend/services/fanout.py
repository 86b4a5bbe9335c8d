"""
Fan-out / fan-in helpers for independent provider calls.

Provider requests for one user action (several place-type searches, several
distance-matrix batches) do not depend on each other, so they are issued
concurrently on a small thread pool and gathered in input order. A failure in
one item never aborts the others: the caller gets an ``Outcome`` per item and
decides on the fallback.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

from settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

_POLL_INTERVAL_SEC = 0.1


class CancellationToken:
    """Cancelled when the user action that started the work goes away."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class Outcome(Generic[R]):
    value: Optional[R] = None
    error: Optional[BaseException] = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled


def fan_out(
    func: Callable[[T], R],
    items: Sequence[T],
    token: Optional[CancellationToken] = None,
    max_workers: Optional[int] = None,
) -> List[Outcome[R]]:
    """
    Run ``func`` on every item concurrently and return outcomes in item order.

    Items not yet started when ``token`` is cancelled are skipped; requests
    already in flight are left to finish but their results are discarded.
    """
    if not items:
        return []
    if token is not None and token.cancelled:
        return [Outcome(cancelled=True) for _ in items]

    workers = max(1, min(max_workers or settings.PROVIDER_MAX_WORKERS, len(items)))
    outcomes: List[Outcome[R]] = [Outcome(cancelled=True) for _ in items]

    def _guarded(item: T) -> R:
        if token is not None and token.cancelled:
            raise _Skipped()
        return func(item)

    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="provider")
    cancelled = False
    try:
        futures: dict[Future, int] = {executor.submit(_guarded, item): idx for idx, item in enumerate(items)}
        pending = set(futures)
        while pending:
            if token is not None and token.cancelled:
                cancelled = True
                logger.info("fan_out: cancelled with %d of %d items pending", len(pending), len(items))
                break
            done, pending = wait(pending, timeout=_POLL_INTERVAL_SEC, return_when=FIRST_COMPLETED)
            for future in done:
                idx = futures[future]
                exc = future.exception()
                if isinstance(exc, _Skipped):
                    continue
                if exc is not None:
                    logger.warning("fan_out: item %d failed: %s", idx, exc)
                    outcomes[idx] = Outcome(error=exc)
                else:
                    outcomes[idx] = Outcome(value=future.result())
    finally:
        executor.shutdown(wait=not cancelled, cancel_futures=cancelled)
    return outcomes


class _Skipped(Exception):
    """Raised inside a worker for items started after cancellation."""
