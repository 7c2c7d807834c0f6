"""
Deep Research provider.

The research agent is reached over the REST interactions API rather than the
SDK: a task is started in the background, then polled until it completes,
fails, or the caller's time budget runs out. A task that outlives the budget
keeps running on Google's side; its interaction ID is reported so it can be
checked later.
"""

import asyncio
import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from gemini_mcp.catalog import DEEP_RESEARCH_AGENT_ID, DEEP_RESEARCH_MODEL
from gemini_mcp.errors import ErrorCategory, GeminiMCPError
from gemini_mcp.logging_config import UsageLog
from gemini_mcp.models import ResearchRequest, ResearchResult
from gemini_mcp.providers.base_provider import BaseGeminiProvider

logger = logging.getLogger(__name__)

API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_POLL_INTERVAL = 10.0
DEFAULT_REQUEST_TIMEOUT = 60.0


def _error_payload(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except (json.JSONDecodeError, ValueError):
        return {}
    # The API sometimes wraps the error in a list: [{"error": {...}}]
    if isinstance(body, list) and body:
        body = body[0]
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"]
    return {}


def start_error(response: httpx.Response) -> GeminiMCPError:
    """Classifies a failed start request by status and embedded reason codes."""
    error = _error_payload(response)
    message = error.get("message") or response.text or (
        f"Failed to start research: {response.status_code}"
    )
    # Invalid keys come back as 400 with reason API_KEY_INVALID, not 401/403.
    api_key_invalid = any(
        isinstance(detail, dict) and detail.get("reason") == "API_KEY_INVALID"
        for detail in error.get("details") or []
    )
    if api_key_invalid or response.status_code in (401, 403):
        category = ErrorCategory.AUTH_ERROR
    elif response.status_code == 429:
        category = ErrorCategory.RATE_LIMIT
    else:
        category = ErrorCategory.API_ERROR
    return GeminiMCPError(
        category, f"{message} (HTTP {response.status_code})", response.status_code
    )


def join_outputs(outputs: Optional[List[Dict[str, Any]]]) -> str:
    texts = [output.get("text") for output in outputs or [] if isinstance(output, dict)]
    return "\n\n".join(text for text in texts if text)


class GeminiDeepResearchProvider(BaseGeminiProvider):
    operation = "deep_research"

    def __init__(
        self,
        api_key: str,
        usage_log: Optional[UsageLog] = None,
        max_retries: int = 2,
        base_url: str = API_BASE,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(usage_log=usage_log, max_retries=max_retries)
        if not api_key:
            raise ValueError("Gemini API key is required")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.poll_interval = poll_interval
        self.http_client = http_client or httpx.AsyncClient(timeout=request_timeout)
        self._sleep = sleep
        self._clock = clock
        logger.info(f"Deep Research provider initialized (agent: {DEEP_RESEARCH_AGENT_ID})")

    async def research(
        self,
        request: ResearchRequest,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> ResearchResult:
        """
        Start a research task and wait for its report.

        `timeout` (seconds) overrides the request's timeout_minutes budget.
        """
        budget = timeout if timeout is not None else request.timeout_minutes * 60.0
        interval = poll_interval if poll_interval is not None else self.poll_interval
        start_time = self._clock()
        try:
            if not request.query or not request.query.strip():
                raise GeminiMCPError(ErrorCategory.VALIDATION_ERROR, "Query cannot be empty")
            logger.debug(
                f"Starting deep research (query length {len(request.query)}, "
                f"budget {budget:g}s, poll interval {interval:g}s)"
            )
            interaction_id = await self._call(
                lambda: self._start_research(request.query), self.request_timeout
            )
            logger.info(f"Deep research started: {interaction_id}")
            text = await self._poll_for_completion(interaction_id, budget, interval, start_time)
        except Exception as e:
            raise self._record_failure(DEEP_RESEARCH_MODEL, start_time, e) from e

        duration_ms = self._record_success(DEEP_RESEARCH_MODEL, start_time)
        logger.info(
            f"Deep research completed: {interaction_id} in {duration_ms}ms "
            f"({len(text)} chars)"
        )
        return ResearchResult(
            text=text,
            model=DEEP_RESEARCH_MODEL,
            interaction_id=interaction_id,
            duration_ms=duration_ms,
        )

    async def _start_research(self, query: str) -> str:
        response = await self.http_client.post(
            f"{self.base_url}/interactions",
            headers={"Content-Type": "application/json", "x-goog-api-key": self.api_key},
            json={
                "input": query,
                "agent": DEEP_RESEARCH_AGENT_ID,
                "background": True,
                "agent_config": {"thinking_summaries": "auto"},
            },
        )
        if response.is_error:
            raise start_error(response)
        data = response.json()
        interaction_id = data.get("id") if isinstance(data, dict) else None
        if not interaction_id:
            raise GeminiMCPError(
                ErrorCategory.API_ERROR, "No interaction ID returned from API"
            )
        return interaction_id

    async def _poll_once(self, interaction_id: str) -> Dict[str, Any]:
        response = await self.http_client.get(
            f"{self.base_url}/interactions/{interaction_id}",
            headers={"x-goog-api-key": self.api_key},
        )
        if response.is_error:
            raise GeminiMCPError(
                ErrorCategory.API_ERROR,
                f"Failed to poll research status: {response.status_code} - {response.text}",
                response.status_code,
            )
        data = response.json()
        if not isinstance(data, dict):
            raise GeminiMCPError(
                ErrorCategory.API_ERROR,
                f"Unexpected research status payload: expected an object, "
                f"got {type(data).__name__}",
            )
        return data

    async def _poll_for_completion(
        self, interaction_id: str, budget: float, interval: float, start_time: float
    ) -> str:
        while True:
            elapsed = self._clock() - start_time
            if elapsed > budget:
                minutes = round(elapsed / 60)
                raise GeminiMCPError(
                    ErrorCategory.TIMEOUT,
                    f"Research timed out after {minutes} minutes. The research may "
                    f"still be running - interaction ID: {interaction_id}",
                )

            data = await self._call(
                lambda: self._poll_once(interaction_id), self.request_timeout
            )
            status = data.get("status")
            logger.debug(
                f"Research poll {interaction_id}: status={status}, elapsed={elapsed:.0f}s"
            )

            if status == "completed":
                text = join_outputs(data.get("outputs"))
                if not text:
                    raise GeminiMCPError(
                        ErrorCategory.API_ERROR, "Research completed but no output text found"
                    )
                return text
            if status == "failed":
                error = data.get("error") or {}
                raise GeminiMCPError(
                    ErrorCategory.RESEARCH_FAILED,
                    error.get("message") or "Research failed with unknown error",
                )

            await self._sleep(interval)

    async def close(self) -> None:
        await self.http_client.aclose()
