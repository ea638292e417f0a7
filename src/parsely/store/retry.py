import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from notion_client import APIErrorCode, APIResponseError

T = TypeVar("T")

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0


def is_conflict_error(error: BaseException) -> bool:
    """Conflict errors signal a concurrent write on the store side and are safe to retry."""
    return isinstance(error, APIResponseError) and error.code == APIErrorCode.ConflictError


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    should_retry: Callable[[BaseException], bool] = is_conflict_error,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    description: str = "store operation",
    log: Optional[logging.Logger] = None,
) -> T:
    """
    Run ``operation`` and retry it with exponential backoff on retryable errors.

    The delay doubles after every failed attempt: base_delay, 2 * base_delay, ...
    Errors that ``should_retry`` rejects propagate immediately.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt
        max_attempts: Total number of attempts, including the first one
        base_delay: Delay in seconds before the second attempt
        should_retry: Predicate selecting retryable errors
        sleep: Coroutine used to wait between attempts
        description: Human readable name of the operation for logs
        log: Logger for retry messages

    Returns:
        The result of the first successful attempt
    """
    log = log or logger
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempt >= max_attempts or not should_retry(e):
                raise
            delay = base_delay * (2 ** (attempt - 1))
            log.warning(
                f"{description} failed (attempt {attempt}/{max_attempts}): {e}; retrying in {delay:.1f}s"
            )
            await sleep(delay)
            attempt += 1
