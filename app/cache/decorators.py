import asyncio
from functools import wraps
from typing import Any, Callable

from pydantic import TypeAdapter


def cached(key_builder: Callable[..., str], result_type: Any, ttl: int = None):
    """
    Read-through decorator for async service methods.

    The instance must expose a CacheLayer as ``self.cache``. key_builder
    receives the same args/kwargs as the method (without self).
    Example:
      @cached(lambda owner_id: f"tasks:{owner_id}", list[TaskResponse])
      async def fetch_collection(self, owner_id): ...
    """
    adapter = TypeAdapter(result_type)

    def decorator(fn: Callable):
        @wraps(fn)
        async def wrapper(self, *args, **kwargs):
            key = key_builder(*args, **kwargs)

            # loader closure calls the original method
            async def loader():
                return await fn(self, *args, **kwargs)

            return await self.cache.get(key, loader=loader, adapter=adapter, ttl=ttl)

        return wrapper

    return decorator


def invalidates(*key_builders: Callable[..., str]):
    """
    Write-side decorator: run the mutation, then delete every built key.

    Keys are only deleted once the method returns; if it raises (for example
    NotFoundError) the cache is left untouched. The delete is shielded so a
    deadline that fires after the store write cannot skip it.
    """

    def decorator(fn: Callable):
        @wraps(fn)
        async def wrapper(self, *args, **kwargs):
            result = await fn(self, *args, **kwargs)
            keys = [build(*args, **kwargs) for build in key_builders]
            await asyncio.shield(self.cache.delete(*keys))
            return result

        return wrapper

    return decorator
