"""Retry utilities with linear backoff."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


async def linear_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 5,
    step_seconds: float = 2.0,
    exceptions: tuple = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
) -> T:
    """
    Execute an async function, retrying with a linearly growing delay.

    The delay before retry number ``n`` (1-based) is ``n * step_seconds``,
    so ``max_retries=5`` allows six attempts in total.

    Args:
        func: Async function to execute
        max_retries: Number of retries after the first attempt
        step_seconds: Delay increment per retry (seconds)
        exceptions: Tuple of exceptions to catch and retry on
        sleep: Coroutine used to wait between attempts

    Returns:
        Result of the function call

    Raises:
        The last exception encountered if all retries fail
    """
    attempt = 0

    while True:
        try:
            return await func()
        except exceptions as e:
            if attempt >= max_retries:
                logger.error(f"Function failed after {max_retries} retries: {e}")
                raise

            attempt += 1
            delay = attempt * step_seconds

            logger.warning(
                f"Retry {attempt}/{max_retries} after error: {e}. "
                f"Retrying in {delay:.2f} seconds..."
            )

            await sleep(delay)
