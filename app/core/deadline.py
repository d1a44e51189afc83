import asyncio
from typing import Awaitable, TypeVar

from app.core.errors import RequestTimeoutError

T = TypeVar("T")


async def with_deadline(aw: Awaitable[T], seconds: float) -> T:
    """
    Run an awaitable under a request-scoped deadline.

    On expiry the inner task is cancelled, so any scope guard it holds is
    released by its own context manager before RequestTimeoutError is raised.
    """
    try:
        return await asyncio.wait_for(aw, timeout=seconds)
    except asyncio.TimeoutError:
        raise RequestTimeoutError(f"Request exceeded deadline of {seconds}s")
