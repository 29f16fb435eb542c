"""Deadline-bounded awaiting for best-effort operations.

Cache reads and writes must never slow down or break an extraction. This
module wraps an awaitable in a deadline and turns any timeout or failure into
a caller-supplied default.

Example:
    >>> entry = await call_with_deadline(
    ...     store.get(content_hash), timeout=0.2, default=None, operation="cache lookup"
    ... )
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_with_deadline(
    awaitable: Awaitable[T],
    timeout: float,
    default: T,
    operation: str,
) -> T:
    """Await ``awaitable`` for at most ``timeout`` seconds.

    Args:
        awaitable: Coroutine or future to run
        timeout: Deadline in seconds
        default: Value returned on timeout or failure
        operation: Short name used in log messages

    Returns:
        The awaited result, or ``default`` when the deadline passes or the
        awaitable raises

    Note:
        ``asyncio.CancelledError`` from the caller is not caught and still
        propagates.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except TimeoutError:
        logger.warning(f"{operation} timed out after {timeout * 1000:.0f}ms")
        return default
    except Exception as e:
        logger.warning(f"{operation} failed: {type(e).__name__}: {e}")
        return default
