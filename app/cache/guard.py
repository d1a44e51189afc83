import asyncio
from contextlib import asynccontextmanager


class KeyedLock:
    """
    One asyncio.Lock per key, for cache stampede protection.

    When multiple concurrent requests miss the same cache key, only the
    holder of that key's lock queries the store; the others wait and then
    re-read the cache. Distinct keys never block each other.

    A lock exists only while someone holds or waits on it: the entry is
    reclaimed when the last waiter leaves, so the map stays bounded by the
    number of keys in flight. Release happens on every exit path, including
    cancellation by a request deadline.

    Scope is a single process (one event loop). Separate workers each get
    their own guard.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)

    def __contains__(self, key: str) -> bool:
        return key in self._locks
