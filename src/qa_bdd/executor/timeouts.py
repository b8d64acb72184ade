"""
Race a handler against a deadline.

Synchronous handlers run inline and are never timed out. Awaitables are
wrapped in a task and raced against ``timeout`` seconds. A task that loses the
race is abandoned (it keeps running and its side effects may still land)
unless ``cancel_on_timeout`` asks for cancellation.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Type

from ..core.exceptions import ExecutionTimeoutError

logger = logging.getLogger(__name__)


async def run_with_timeout(
        function: Callable,
        *args: Any,
        timeout: Optional[float] = None,
        description: str = "handler",
        error_class: Type[ExecutionTimeoutError] = ExecutionTimeoutError,
        cancel_on_timeout: bool = False,
) -> Any:
    result = function(*args)
    if not inspect.isawaitable(result):
        return result
    return await await_with_timeout(
        result,
        timeout=timeout,
        description=description,
        error_class=error_class,
        cancel_on_timeout=cancel_on_timeout,
    )


async def await_with_timeout(
        awaitable: Awaitable,
        timeout: Optional[float] = None,
        description: str = "handler",
        error_class: Type[ExecutionTimeoutError] = ExecutionTimeoutError,
        cancel_on_timeout: bool = False,
) -> Any:
    """
    Await ``awaitable`` for at most ``timeout`` seconds.

    Raises:
        error_class: the deadline passed first
    """
    if timeout is None or timeout <= 0:
        return await awaitable

    task = asyncio.ensure_future(awaitable)
    done, _ = await asyncio.wait({task}, timeout=timeout)
    if task in done:
        return task.result()

    if cancel_on_timeout:
        task.cancel()
        logger.debug(f"Cancelled {description} after {timeout}s")
    else:
        task.add_done_callback(_report_abandoned)
        logger.debug(f"Abandoned {description} after {timeout}s")

    raise error_class(f"{description} timed out after {timeout}s", timeout)


def _report_abandoned(task: asyncio.Future) -> None:
    # Retrieving the exception keeps asyncio from warning it was never read
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug(f"Abandoned task finished late with {type(error).__name__}: {error}")
