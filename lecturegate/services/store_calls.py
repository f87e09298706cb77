from __future__ import annotations

import asyncio
from typing import Any, Callable, TypeVar

from lecturegate.core.errors import LectureGateError, StoreUnavailable

T = TypeVar("T")


async def call_store(fn: Callable[..., T], *args: Any, timeout: float, **kwargs: Any) -> T:
    """Run a blocking gateway call in a worker thread, bounded by ``timeout`` seconds."""
    name = getattr(fn, "__name__", "store call")
    try:
        return await asyncio.wait_for(asyncio.to_thread(fn, *args, **kwargs), timeout)
    except asyncio.TimeoutError as exc:
        raise StoreUnavailable(f"{name} timed out after {timeout}s") from exc
    except LectureGateError:
        raise
    except Exception as exc:
        raise StoreUnavailable(f"{name} failed: {exc}") from exc
