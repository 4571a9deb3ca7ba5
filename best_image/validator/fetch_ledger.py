# best_image/validator/fetch_ledger.py
# Responsibility: Coalesce concurrent lookups of the same URL and briefly cache finished results.

import asyncio
import time
from typing import Awaitable, Callable, Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


class FetchLedger(Generic[T]):
    """
    Tracks in-flight fetches per key.

    The first caller for a key starts the fetch as a task; every caller that
    arrives while it runs awaits that same task. A task resolves exactly
    once, so all waiters see one outcome (result or exception). Finished
    tasks stay available for ttl_seconds to absorb closely spaced repeats.
    """

    def __init__(self, ttl_seconds: float = 10.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._in_flight: Dict[str, "asyncio.Task[T]"] = {}
        self._completed: Dict[str, Tuple[float, "asyncio.Task[T]"]] = {}

    async def fetch(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """
        Returns the result for key, starting factory() only when no fetch is
        in flight and no fresh result is cached.
        """
        self._purge_expired()
        task = self._lookup(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._in_flight[key] = task
            task.add_done_callback(lambda done, key=key: self._complete(key, done))

        # one waiter being cancelled must not cancel the shared fetch
        return await asyncio.shield(task)

    def _lookup(self, key: str) -> Optional["asyncio.Task[T]"]:
        pending = self._in_flight.get(key)
        if pending is not None:
            return pending

        cached = self._completed.get(key)
        if cached is None:
            return None
        expires_at, task = cached
        if self.clock() >= expires_at:
            del self._completed[key]
            return None
        return task

    def _purge_expired(self) -> None:
        # entries are stored in completion order with one ttl, so the oldest expire first
        now = self.clock()
        while self._completed:
            key, (expires_at, _) = next(iter(self._completed.items()))
            if expires_at > now:
                break
            del self._completed[key]

    def _complete(self, key: str, task: "asyncio.Task[T]") -> None:
        # only the task registered for the key may complete it
        if self._in_flight.get(key) is not task:
            return
        del self._in_flight[key]
        if task.cancelled():
            return
        # mark the exception as retrieved even if every waiter went away
        task.exception()
        self._completed[key] = (self.clock() + self.ttl_seconds, task)

    def is_in_flight(self, key: str) -> bool:
        return key in self._in_flight

    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def cached_count(self) -> int:
        return len(self._completed)

    def clear(self) -> None:
        self._completed.clear()
