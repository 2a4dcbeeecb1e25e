"""Run AI calls under a hard deadline.

The runner only stops waiting: a task that overruns its deadline keeps
running on its own schedule and its eventual outcome is discarded.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from app.logging_config import get_logger

logger = get_logger("timeout_runner")

T = TypeVar("T")


class AI_TIMEOUT:
    INTENT = 2_500
    DRAFT = 6_000


@dataclass(frozen=True)
class TimedResult(Generic[T]):
    result: Optional[T] = None
    timed_out: bool = False
    elapsed_ms: float = 0.0
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.error is None


def _discard_outcome(future: asyncio.Future) -> None:
    # Retrieve the late outcome so asyncio does not report it as never retrieved.
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.info(
            "Abandoned task finished with error",
            extra={"context": {"error": str(exc)}},
        )


async def with_timeout(task: Awaitable[T], deadline_ms: float) -> TimedResult[T]:
    start = time.monotonic()
    future = asyncio.ensure_future(task)

    done, _ = await asyncio.wait({future}, timeout=max(deadline_ms, 0) / 1000)
    elapsed_ms = round((time.monotonic() - start) * 1000, 2)

    if future not in done:
        future.add_done_callback(_discard_outcome)
        logger.info(
            "Timing",
            extra={"context": {"stage": "bounded_task", "elapsed_ms": elapsed_ms, "timeout": True}},
        )
        return TimedResult(timed_out=True, elapsed_ms=elapsed_ms)

    exc = asyncio.CancelledError() if future.cancelled() else future.exception()
    if exc is not None:
        logger.warning(
            "Bounded task failed",
            extra={"context": {"elapsed_ms": elapsed_ms, "error": str(exc)}},
        )
        return TimedResult(elapsed_ms=elapsed_ms, error=exc)

    return TimedResult(result=future.result(), elapsed_ms=elapsed_ms)


async def with_timeout_sync(fn: Callable[..., T], deadline_ms: float, *args: Any, **kwargs: Any) -> TimedResult[T]:
    """Same contract for blocking callables (httpx.Client based providers)."""
    return await with_timeout(asyncio.to_thread(fn, *args, **kwargs), deadline_ms)
