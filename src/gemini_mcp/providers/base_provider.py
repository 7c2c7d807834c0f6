import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from gemini_mcp.errors import GeminiMCPError, categorize_error
from gemini_mcp.logging_config import UsageLog, UsageRecord
from gemini_mcp.models import Usage
from gemini_mcp.retry import DEFAULT_RETRYABLE_ERRORS, with_retry, with_timeout

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Name resolution failures are not transient for a provider call.
PROVIDER_RETRYABLE_ERRORS = tuple(
    pattern for pattern in DEFAULT_RETRYABLE_ERRORS if pattern != "ENOTFOUND"
)


def usage_from_metadata(metadata: Any, include_thoughts: bool = True) -> Optional[Usage]:
    """Copies vendor token counts through; returns None when there are none."""
    if metadata is None:
        return None
    return Usage(
        prompt_tokens=getattr(metadata, "prompt_token_count", None),
        completion_tokens=getattr(metadata, "candidates_token_count", None),
        total_tokens=getattr(metadata, "total_token_count", None),
        thoughts_tokens=(
            getattr(metadata, "thoughts_token_count", None) if include_thoughts else None
        ),
    )


class BaseGeminiProvider:
    """
    Shared plumbing for the Gemini providers: resilient vendor calls and
    usage records. Each provider is stateless between calls.
    """

    operation: str = ""

    def __init__(self, usage_log: Optional[UsageLog] = None, max_retries: int = 2):
        self.usage_log = usage_log or UsageLog()
        self.max_retries = max_retries
        self._clock: Callable[[], float] = time.monotonic

    async def _call(self, fn: Callable[[], Awaitable[T]], timeout: float) -> T:
        return await with_retry(
            lambda: with_timeout(fn, timeout),
            max_retries=self.max_retries,
            retryable_errors=PROVIDER_RETRYABLE_ERRORS,
        )

    def _elapsed_ms(self, start_time: float) -> int:
        return int((self._clock() - start_time) * 1000)

    def _record_success(
        self,
        model: str,
        start_time: float,
        usage: Optional[Usage] = None,
        cost: Optional[Dict[str, Any]] = None,
    ) -> int:
        duration_ms = self._elapsed_ms(start_time)
        self.usage_log.record(
            UsageRecord(
                model=model,
                operation=self.operation,
                duration_ms=duration_ms,
                success=True,
                usage=usage,
                cost=cost,
            )
        )
        return duration_ms

    def _record_failure(
        self, model: str, start_time: float, exc: BaseException
    ) -> GeminiMCPError:
        error = categorize_error(exc)
        duration_ms = self._elapsed_ms(start_time)
        logger.error(
            f"{self.operation} failed for {model} after {duration_ms}ms: "
            f"{type(exc).__name__}: {exc}"
        )
        self.usage_log.record(
            UsageRecord(
                model=model,
                operation=self.operation,
                duration_ms=duration_ms,
                success=False,
                error=str(error),
            )
        )
        return error
