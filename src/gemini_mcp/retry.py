import asyncio
import logging
from typing import Awaitable, Callable, Sequence, TypeVar

from gemini_mcp.errors import ErrorCategory, GeminiMCPError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRYABLE_ERRORS = (
    "RATE_LIMIT",
    "RESOURCE_EXHAUSTED",
    "UNAVAILABLE",
    "ECONNRESET",
    "ETIMEDOUT",
    "ENOTFOUND",
    "Connection reset",
    "ConnectError",
    "RemoteProtocolError",
    "429",
    "503",
    "502",
)


def is_retryable_error(error: BaseException, retryable_errors: Sequence[str]) -> bool:
    text = f"{type(error).__name__}: {error}".lower()
    return any(pattern.lower() in text for pattern in retryable_errors)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 3,
    initial_delay: float = 1.0,
    backoff_multiplier: float = 2.0,
    max_delay: float = 30.0,
    retryable_errors: Sequence[str] = DEFAULT_RETRYABLE_ERRORS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run `operation` with exponential backoff on transient failures.

    The operation is attempted at most max_retries + 1 times. Failures that do
    not match any of `retryable_errors` propagate unchanged on first sight.
    """
    delay = initial_delay
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as e:
            retryable = is_retryable_error(e, retryable_errors)
            if not retryable or attempt > max_retries:
                logger.warning(
                    f"Retry exhausted or non-retryable error (attempt {attempt}/"
                    f"{max_retries + 1}, retryable={retryable}): {e}"
                )
                raise
            logger.info(
                f"Retrying after transient error (attempt {attempt}/{max_retries + 1}, "
                f"delay {delay:g}s): {e}"
            )
            await sleep(delay)
            delay = min(delay * backoff_multiplier, max_delay)


def _discard_outcome(task: "asyncio.Future") -> None:
    if not task.cancelled():
        task.exception()


async def with_timeout(operation: Callable[[], Awaitable[T]], timeout: float) -> T:
    """
    Wait at most `timeout` seconds for `operation`.

    On expiry a TIMEOUT error is raised; the operation itself keeps running and
    whatever it eventually produces is dropped.
    """
    task = asyncio.ensure_future(operation())
    task.add_done_callback(_discard_outcome)
    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout)
    except asyncio.TimeoutError:
        raise GeminiMCPError(
            ErrorCategory.TIMEOUT, f"Operation timed out after {timeout:g}s"
        ) from None
