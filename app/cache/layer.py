import logging
from typing import Any, Awaitable, Callable, Optional

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from app.cache.clients import CacheClient
from app.cache.guard import KeyedLock
from app.core.errors import CacheUnavailableError

logger = logging.getLogger(__name__)


class CacheLayer:
    """
    Cache-aside layer in front of the backing store.

    Reads go cache -> (per-key guard) -> cache again -> loader, and the
    loader's result is written back with a fixed TTL. Writes call
    ``delete`` once the store has accepted them.

    Failure policy:
    - a transport error on lookup is raised (CacheUnavailableError), the
      store is not consulted
    - a failed populate or delete is logged and counted, never raised; the
      entry then lives until its TTL

    The cache is never the source of truth: wiping it at any time only costs
    extra store reads.
    """

    def __init__(self, client: CacheClient, ttl: int, namespace: str = ""):
        self.client = client
        self.ttl = ttl
        self.namespace = namespace
        self.guard = KeyedLock()

        # Stats tracking
        self.stats = {
            "hits": 0,
            "misses": 0,
            "loads": 0,
            "errors": 0,
            "populate_errors": 0,
            "invalidate_errors": 0,
        }

    def _key(self, key: str) -> str:
        """Build namespaced cache key."""
        return f"{self.namespace}{key}"

    async def _lookup(self, key: str, adapter: TypeAdapter) -> Any:
        """Return the decoded entry, or None on a miss."""
        try:
            raw = await self.client.get(self._key(key))
        except CacheUnavailableError:
            self.stats["errors"] += 1
            raise
        if raw is None:
            return None
        try:
            return adapter.validate_json(raw)
        except PydanticValidationError as e:
            logger.warning(f"Discarding undecodable cache entry {key}: {e}")
            return None

    async def get(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        adapter: TypeAdapter,
        ttl: Optional[int] = None,
    ):
        """
        Retrieve a value through the cache.

        Args:
            key: Cache key (namespaced automatically)
            loader: Async function reading the store on a miss. Returning
                None means "not found" and nothing is cached.
            adapter: TypeAdapter used to validate, serialize and decode
            ttl: Override of the layer TTL in seconds

        Returns:
            The decoded value, or None if the loader found nothing
        """
        value = await self._lookup(key, adapter)
        if value is not None:
            self.stats["hits"] += 1
            logger.debug(f"Cache hit {key}")
            return value

        async with self.guard.hold(key):
            # Another holder may have populated it while we waited
            value = await self._lookup(key, adapter)
            if value is not None:
                self.stats["hits"] += 1
                logger.debug(f"Cache hit after wait {key}")
                return value

            self.stats["misses"] += 1
            self.stats["loads"] += 1
            logger.info(f"Cache miss, loading from store {key}")
            loaded = await loader()
            if loaded is None:
                return None

            value = adapter.validate_python(loaded, from_attributes=True)
            await self._populate(key, adapter.dump_json(value).decode(), ttl)
            return value

    async def _populate(self, key: str, data: str, ttl: Optional[int]):
        try:
            await self.client.set(self._key(key), data, ttl or self.ttl)
        except CacheUnavailableError as e:
            self.stats["populate_errors"] += 1
            logger.warning(f"Cache populate failed: {e}", extra={"cache_key": key})

    async def delete(self, *keys: str):
        """
        Invalidate entries after a store write.

        Runs whether or not the entries exist. A failure is counted in
        ``stats["invalidate_errors"]`` and logged; repeated failures mean
        readers may see stale data until TTL.
        """
        try:
            await self.client.delete(*(self._key(k) for k in keys))
            logger.debug(f"Invalidated {keys}")
        except CacheUnavailableError as e:
            self.stats["invalidate_errors"] += 1
            logger.warning(f"Cache invalidate failed: {e}", extra={"cache_key": ",".join(keys)})

    def get_stats(self) -> dict:
        """Get cache statistics."""
        lookups = self.stats["hits"] + self.stats["misses"]
        return {
            **self.stats,
            "in_flight_keys": len(self.guard),
            "hit_rate": self.stats["hits"] / lookups if lookups else 0,
        }
