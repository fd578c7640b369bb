"""Exponential-backoff retry for transient network failures.

This is the only retry mechanism in Gatekeeper. Clients that talk to
external services wrap their request coroutine factories with
:func:`retry_with_backoff`; no other component retries on its own.

Usage
-----
Retry a request up to three times, waiting 1s then 2s between attempts::

    response = await retry_with_backoff(
        lambda: client.post(url, json=payload),
        max_attempts=3,
        initial_delay_s=1.0,
    )

"""

from __future__ import annotations

import asyncio
import typing as typ

from gatekeeper.logging import get_logger, log_warning

if typ.TYPE_CHECKING:
    import collections.abc as cabc

__all__ = ["backoff_delays", "retry_with_backoff"]

logger = get_logger(__name__)

type Operation[T] = cabc.Callable[[], cabc.Awaitable[T]]
type Sleeper = cabc.Callable[[float], cabc.Awaitable[object]]


def backoff_delays(max_attempts: int, initial_delay_s: float) -> list[float]:
    """Return the waits applied between ``max_attempts`` attempts.

    The wait after attempt ``n`` (1-based) is
    ``initial_delay_s * 2 ** (n - 1)``; no wait follows the final attempt.

    >>> backoff_delays(4, 0.5)
    [0.5, 1.0, 2.0]

    """
    if max_attempts < 1:
        msg = f"max_attempts must be at least 1, got {max_attempts}"
        raise ValueError(msg)
    return [initial_delay_s * 2 ** (attempt - 1) for attempt in range(1, max_attempts)]


async def retry_with_backoff[T](
    operation: Operation[T],
    *,
    max_attempts: int = 3,
    initial_delay_s: float = 1.0,
    retry_if: cabc.Callable[[Exception], bool] | None = None,
    sleep: Sleeper = asyncio.sleep,
) -> T:
    """Invoke ``operation`` until it succeeds or attempts run out.

    Parameters
    ----------
    operation
        Zero-argument callable returning a fresh awaitable per attempt.
    max_attempts
        Total number of invocations allowed, including the first.
    initial_delay_s
        Wait after the first failure; doubles after each further failure.
    retry_if
        Predicate deciding whether a failure is worth another attempt.
        When it returns False the error propagates immediately. ``None``
        retries every ``Exception``.
    sleep
        Awaitable sleep used between attempts; injectable for tests.

    Returns
    -------
    T
        The first successful result.

    Raises
    ------
    Exception
        The error raised by the final attempt.

    """
    delays = backoff_delays(max_attempts, initial_delay_s)
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            if attempt == max_attempts or (retry_if is not None and not retry_if(exc)):
                raise
            delay = delays[attempt - 1]
            log_warning(
                logger,
                "Attempt %d/%d failed (%s: %s); retrying in %.3fs",
                attempt,
                max_attempts,
                type(exc).__name__,
                exc,
                delay,
            )
            await sleep(delay)

    # Unreachable: the loop either returns or re-raises on the last attempt.
    msg = "retry loop exited without a result"
    raise AssertionError(msg)
