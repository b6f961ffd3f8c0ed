"""Async retry with exponential backoff + jitter, for collaborator lookups."""

import asyncio
import random
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

T = TypeVar("T")


async def retry(
    fn: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    base_ms: int = 50,
    max_ms: int = 2000,
    jitter_ms: int = 50,
    retry_on: Iterable[type[BaseException]] = (Exception,),
) -> T:
    """Call ``fn`` up to ``attempts`` times; re-raise the last error."""
    exc_types = tuple(retry_on)
    delay = base_ms
    last_exc: BaseException | None = None
    for i in range(attempts):
        try:
            return await fn()
        except exc_types as e:
            last_exc = e
            if i == attempts - 1:
                break
            jitter = random.randint(0, jitter_ms)
            await asyncio.sleep(min((delay + jitter) / 1000.0, max_ms / 1000.0))
            delay = min(delay * 2, max_ms)
    assert last_exc is not None
    raise last_exc
