"""Bounded thread pool with cooperative cancellation."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def run_parallel(
    func: Callable[[T], R],
    items: Sequence[T],
    max_workers: int,
    cancel_event: Optional[threading.Event] = None,
    on_cancel: Optional[Callable[[T], R]] = None,
) -> List[Optional[R]]:
    """Apply ``func`` to every item on at most ``max_workers`` threads.

    Results come back in input order. Once ``cancel_event`` is set, items that
    have not started yet are not run: they yield ``on_cancel(item)`` (or
    None). Exceptions raised by ``func`` propagate to the caller; callers that
    want failure isolation must return failures as values.

    On KeyboardInterrupt the event is set, queued work is dropped and the
    interrupt is re-raised.
    """
    items = list(items)
    if not items:
        return []
    cancel_event = cancel_event or threading.Event()

    def guarded(item: T) -> Optional[R]:
        if cancel_event.is_set():
            return on_cancel(item) if on_cancel is not None else None
        return func(item)

    results: List[Optional[R]] = [None] * len(items)
    workers = max(1, min(max_workers, len(items)))
    executor = ThreadPoolExecutor(max_workers=workers)
    try:
        futures = {executor.submit(guarded, item): i for i, item in enumerate(items)}
        for future in as_completed(futures):
            results[futures[future]] = future.result()
    except KeyboardInterrupt:
        logger.warning("Interrupted, waiting for running jobs to finish")
        cancel_event.set()
        executor.shutdown(wait=True, cancel_futures=True)
        raise
    finally:
        executor.shutdown(wait=True)
    return results
