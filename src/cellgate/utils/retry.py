"""Retrying async calls with exponential backoff."""

import asyncio
import functools
import random
from typing import Awaitable, Callable, Iterable, Optional, ParamSpec, Tuple, Type, TypeVar

import structlog

logger = structlog.get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def backoff_wait(
    attempt: int, backoff_base: float, jitter: bool, max_wait: Optional[float]
) -> float:
    wait = backoff_base**attempt
    if jitter:
        wait *= random.uniform(0.5, 1.5)
    if max_wait is not None:
        wait = min(wait, max_wait)
    return wait


def async_retry(
    *,
    max_attempts: int = 3,
    backoff_base: float = 2.0,
    exceptions: Iterable[Type[BaseException]] = (Exception,),
    no_retry: Iterable[Type[BaseException]] = (),
    jitter: bool = True,
    max_wait: Optional[float] = None,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """
    Retry an async callable on the given exception types.

    Args:
        max_attempts: Total attempts; values below 1 still make one attempt.
        backoff_base: Wait before attempt ``n + 1`` is ``backoff_base ** n``.
        exceptions: Exception types that trigger a retry.
        no_retry: Subclasses of ``exceptions`` that are re-raised at once.
        jitter: Scale each wait by a random factor in [0.5, 1.5].
        max_wait: Upper bound on a single wait, in seconds.
    """
    retry_on: Tuple[Type[BaseException], ...] = tuple(exceptions)
    give_up_on: Tuple[Type[BaseException], ...] = tuple(no_retry)
    attempts = max(1, max_attempts)

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        name = getattr(func, "__qualname__", repr(func))

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            for attempt in range(1, attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except retry_on as exc:
                    if isinstance(exc, give_up_on) or attempt == attempts:
                        raise
                    wait = backoff_wait(attempt, backoff_base, jitter, max_wait)
                    logger.warning(
                        "retrying_operation",
                        function=name,
                        attempt=attempt,
                        max_attempts=attempts,
                        wait_seconds=wait,
                        error=str(exc),
                    )
                    await asyncio.sleep(wait)
            raise AssertionError("unreachable")

        return wrapper

    return decorator


__all__ = ["async_retry", "backoff_wait"]
