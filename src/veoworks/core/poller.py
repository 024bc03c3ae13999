"""Polling of long-running video generation operations.

The remote service returns an operation handle immediately after a job is
submitted.  :func:`poll_operation` re-fetches that handle on a fixed interval
until the service reports ``done``.

Behaviour
---------
- Status checks are strictly sequential: sleep, fetch, inspect, repeat.
- A failed status check is fatal.  It is wrapped in
  :class:`~veoworks.core.errors.StatusCheckError` and never retried.
- Polling is bounded by ``timeout`` (``None`` polls forever).  The budget is
  expressed as a number of checks, ``ceil(timeout / interval)``, so the
  bound does not depend on wall-clock drift.
- Cancellation uses asyncio task cancellation.  Both suspension points (the
  sleep and the status fetch) are awaits, so ``task.cancel()`` stops the
  loop wherever it is and ``CancelledError`` propagates to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from veoworks.core.errors import PollTimeoutError, StatusCheckError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0
STATUS_CHECK_FAILED_MESSAGE = "Failed while checking video generation status."


class OperationSource(Protocol):
    """Anything that can refresh an operation handle."""

    async def get_operation(self, operation: Any) -> Any: ...


def max_status_checks(interval: float, timeout: float | None) -> int | None:
    """Return how many status checks fit in *timeout*, or ``None`` if unbounded."""
    if timeout is None:
        return None
    return max(1, math.ceil(timeout / interval))


async def poll_operation(
    client: OperationSource,
    operation: Any,
    *,
    interval: float = DEFAULT_POLL_INTERVAL,
    timeout: float | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Any:
    """Wait until *operation* reports completion.

    Args:
        client: Object providing ``await get_operation(operation)``.
        operation: Initial operation handle returned by job submission.
        interval: Seconds to wait before each status check.
        timeout: Polling budget in seconds, or ``None`` for no limit.
        sleep: Coroutine function used to wait (injectable for tests).

    Returns:
        The final operation handle, whose ``done`` flag is true.

    Raises:
        StatusCheckError: If a status check raises.
        PollTimeoutError: If the budget is exhausted before completion.
        asyncio.CancelledError: If the surrounding task is cancelled.
    """
    budget = max_status_checks(interval, timeout)
    checks = 0
    current = operation

    while not getattr(current, "done", False):
        if budget is not None and checks >= budget:
            logger.warning(f"Operation still running after {checks} status checks; giving up")
            raise PollTimeoutError(
                f"Video generation did not finish within {timeout:.0f} seconds."
            )

        await sleep(interval)

        try:
            current = await client.get_operation(current)
        except Exception as e:
            logger.error(f"Error polling operation: {e}", exc_info=True)
            raise StatusCheckError(STATUS_CHECK_FAILED_MESSAGE) from e

        checks += 1
        logger.debug(f"Status check {checks}: done={getattr(current, 'done', False)}")

    logger.info(f"Operation complete after {checks} status checks")
    return current
