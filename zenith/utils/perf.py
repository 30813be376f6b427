import time
from typing import Callable, TypeVar

from .config import settings
from .logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


def trace(name: str, fn: Callable[[], T], slow_ms: float = None) -> T:
    """Run `fn()` and log how long it took; slow calls are logged as warnings."""
    threshold = settings.PERF_SLOW_MS if slow_ms is None else slow_ms
    start = time.perf_counter()
    try:
        result = fn()
    except Exception:
        elapsed = (time.perf_counter() - start) * 1000.0
        log.error(f"[PERF] Failed query: {name} after {elapsed:.2f}ms")
        raise
    elapsed = (time.perf_counter() - start) * 1000.0
    if elapsed > threshold:
        log.warning(f"[PERF] Slow query: {name} took {elapsed:.2f}ms")
    else:
        log.debug(f"[PERF] {name}: {elapsed:.2f}ms")
    return result
