"""Time-bounded calls to external collaborators."""

from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Callable, TypeVar

logger = logging.getLogger("trend_trader.utils.timeouts")

T = TypeVar("T")


class CallTimeout(TimeoutError):
    """External call did not finish in time."""


def call_with_timeout(fn: Callable[..., T], timeout_s: float, *args: Any, **kwargs: Any) -> T:
    """
    Run fn in a worker thread and wait at most timeout_s.
    On timeout the worker is abandoned; its result is never observed.
    """
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ext-call")
    future = pool.submit(fn, *args, **kwargs)
    try:
        return future.result(timeout=timeout_s)
    except FutureTimeout:
        name = getattr(fn, "__name__", repr(fn))
        logger.warning("%s timed out after %.1fs", name, timeout_s)
        raise CallTimeout(f"{name} timed out after {timeout_s:.1f}s") from None
    finally:
        pool.shutdown(wait=False)
