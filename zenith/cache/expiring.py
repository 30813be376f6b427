# in-process ttl cache shared by the portal store and the admin api
import asyncio
import copy
import threading
import time
from concurrent.futures import Future
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from ..utils.logging import get_logger

log = get_logger(__name__)


class TTL:
    """Freshness classes, in seconds, grouped by how volatile the data is."""
    STATIC = 24 * 60 * 60   # settings, branches, positions, departments
    PROFILES = 60 * 60      # users
    MODERATE = 15 * 60      # vacations
    FREQUENT = 5 * 60       # attendance, cash desk, balances


SWEEP_INTERVAL = 5 * 60

_MISSING = object()


class ExpiringCache:
    """
    Key -> value map where every entry carries its own expiry.

    Expired entries are never returned: `get` drops them when it sees them,
    and the sweeper thread (see `start`) reclaims the ones nobody reads again.

    Values are handed out by reference unless `copy_values` is set, so callers
    must treat what they get back as read-only. With `copy_values` every
    caller, coalesced waiters included, gets its own copy.

    Concurrent misses on the same key each run their fetcher unless
    `coalesce` is set, in which case later callers wait for the fetch that is
    already in flight.

    `invalidate` and `clear` bump a generation counter. A `wrap` fetch that
    started before the bump still returns its result to its callers but does
    not store it, so a read racing a write cannot put the pre-write value back.
    They also forget matching in-flight fetches, so the next miss fetches anew.
    Plain `set` is not checked: between direct writers the last one wins.
    """

    def __init__(
        self,
        sweep_interval: float = SWEEP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        coalesce: bool = False,
        copy_values: bool = False,
    ):
        self.sweep_interval = sweep_interval
        self.coalesce = coalesce
        self.copy_values = copy_values
        self._clock = clock
        self._store: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.RLock()
        self._inflight: Dict[str, Future] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._generation = 0
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None
        self._counters = {
            "hits": 0,
            "misses": 0,
            "evictions": 0,
            "invalidations": 0,
            "coalesced": 0,
        }

    # ---- basic map ops ----

    def _lookup(self, key: str) -> Any:
        with self._lock:
            item = self._store.get(key)
            if item is None:
                self._counters["misses"] += 1
                return _MISSING
            expires_at, value = item
            if expires_at <= self._clock():
                del self._store[key]
                self._counters["evictions"] += 1
                self._counters["misses"] += 1
                return _MISSING
            self._counters["hits"] += 1
        return copy.deepcopy(value) if self.copy_values else value

    def get(self, key: str, default: Any = None) -> Any:
        value = self._lookup(key)
        return default if value is _MISSING else value

    def set(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            if ttl <= 0:
                # expires immediately: nothing observable to keep
                self._store.pop(key, None)
                return
            if self.copy_values:
                value = copy.deepcopy(value)
            self._store[key] = (self._clock() + ttl, value)

    def invalidate(self, pattern: str) -> int:
        with self._lock:
            doomed = [k for k in self._store if pattern in k]
            for k in doomed:
                del self._store[k]
            self._counters["invalidations"] += len(doomed)
            self._generation += 1
            for k in [k for k in self._inflight if pattern in k]:
                del self._inflight[k]
            for k in [k for k in self._tasks if pattern in k]:
                del self._tasks[k]
        if doomed:
            log.debug(f"[CACHE] Invalidated {len(doomed)} keys matching {pattern!r}")
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self._generation += 1
            self._inflight.clear()
            self._tasks.clear()

    def sweep(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [k for k, (exp, _) in self._store.items() if exp <= now]
            for k in expired:
                del self._store[k]
            self._counters["evictions"] += len(expired)
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            item = self._store.get(key)
            return item is not None and item[0] > self._clock()

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "entries": len(self._store),
                **self._counters,
                "sweeper_running": self.sweeper_running,
            }

    # ---- read-through ----

    def _store_fetched(self, key: str, value: Any, ttl: float, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                log.debug(f"[CACHE] Not storing {key}: invalidated while fetching")
                return
            self.set(key, value, ttl)

    def _own_copy(self, value: Any) -> Any:
        return copy.deepcopy(value) if self.copy_values else value

    def wrap(self, key: str, ttl: float, fetcher: Callable[[], Any]) -> Any:
        if not self.coalesce:
            with self._lock:
                cached = self._lookup(key)
                generation = self._generation
            if cached is not _MISSING:
                log.debug(f"[CACHE] Hit: {key}")
                return cached
            log.debug(f"[CACHE] Miss: {key}")
            fresh = fetcher()
            self._store_fetched(key, fresh, ttl, generation)
            return fresh

        with self._lock:
            cached = self._lookup(key)
            if cached is not _MISSING:
                log.debug(f"[CACHE] Hit: {key}")
                return cached
            generation = self._generation
            pending = self._inflight.get(key)
            owner = pending is None
            if owner:
                pending = Future()
                self._inflight[key] = pending
            else:
                self._counters["coalesced"] += 1

        if not owner:
            log.debug(f"[CACHE] Waiting on in-flight fetch: {key}")
            return self._own_copy(pending.result())

        log.debug(f"[CACHE] Miss: {key}")
        try:
            fresh = fetcher()
            self._store_fetched(key, fresh, ttl, generation)
        except BaseException as e:
            pending.set_exception(e)
            raise
        else:
            pending.set_result(fresh)
            return fresh
        finally:
            with self._lock:
                if self._inflight.get(key) is pending:
                    del self._inflight[key]

    async def wrap_async(self, key: str, ttl: float, fetcher: Callable[[], Awaitable[Any]]) -> Any:
        with self._lock:
            cached = self._lookup(key)
            generation = self._generation
        if cached is not _MISSING:
            log.debug(f"[CACHE] Hit: {key}")
            return cached

        if not self.coalesce:
            log.debug(f"[CACHE] Miss: {key}")
            fresh = await fetcher()
            self._store_fetched(key, fresh, ttl, generation)
            return fresh

        task = self._tasks.get(key)
        if task is None or task.done():
            log.debug(f"[CACHE] Miss: {key}")
            task = asyncio.ensure_future(self._fetch_and_store(key, ttl, fetcher, generation))
            self._tasks[key] = task
            task.add_done_callback(lambda t, k=key: self._forget_task(k, t))
        else:
            with self._lock:
                self._counters["coalesced"] += 1
        # one caller giving up must not cancel the fetch the others wait on
        return self._own_copy(await asyncio.shield(task))

    async def _fetch_and_store(self, key, ttl, fetcher, generation):
        fresh = await fetcher()
        self._store_fetched(key, fresh, ttl, generation)
        return fresh

    def _forget_task(self, key, task):
        if self._tasks.get(key) is task:
            del self._tasks[key]
        if not task.cancelled():
            # mark the failure as seen when every waiter was cancelled
            task.exception()

    # ---- sweeper lifecycle ----

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.sweeper_running:
                return
            self._stop = threading.Event()
            self._sweeper = threading.Thread(
                target=self._sweep_loop, args=(self._stop,), name="cache-sweeper", daemon=True
            )
            self._sweeper.start()
        log.info(f"cache sweeper started interval={self.sweep_interval}s")

    def stop(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            sweeper, self._sweeper = self._sweeper, None
            if sweeper is None:
                return
            self._stop.set()
        sweeper.join(timeout)
        log.info("cache sweeper stopped")

    def _sweep_loop(self, stop: threading.Event) -> None:
        while not stop.wait(self.sweep_interval):
            try:
                removed = self.sweep()
            except Exception:
                log.exception("cache sweep failed")
                continue
            if removed:
                log.debug(f"[CACHE] Swept {removed} expired entries")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.stop()
        return False
