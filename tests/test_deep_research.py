import asyncio
import json

import pytest
import respx
from httpx import Response

from gemini_mcp.errors import ErrorCategory, GeminiMCPError
from gemini_mcp.models import ResearchRequest
from gemini_mcp.providers.deep_research import (
    API_BASE,
    GeminiDeepResearchProvider,
    join_outputs,
)
from tests.fakes import read_usage_records

INTERACTIONS_URL = f"{API_BASE}/interactions"
POLL_URL = f"{INTERACTIONS_URL}/int-123"


async def no_sleep(_delay: float) -> None:
    return None


class StepClock:
    """Advances by `step` seconds every time it is read."""

    def __init__(self, step: float):
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


def make_provider(usage_log=None, clock=None) -> GeminiDeepResearchProvider:
    kwargs = {}
    if clock is not None:
        kwargs["clock"] = clock
    return GeminiDeepResearchProvider(
        "test-key", usage_log=usage_log, max_retries=0, sleep=no_sleep, **kwargs
    )


def test_join_outputs_skips_empty_fragments():
    outputs = [{"text": "Part one"}, {"text": ""}, {"type": "thought"}, {"text": "Part two"}]
    assert join_outputs(outputs) == "Part one\n\nPart two"
    assert join_outputs(None) == ""


@pytest.mark.asyncio
async def test_research_polls_until_completed(usage_log, usage_path):
    provider = make_provider(usage_log)
    captured = {}
    try:
        with respx.mock(assert_all_called=True) as respx_mock:
            def start_handler(request):
                captured["json"] = json.loads(request.content.decode("utf-8"))
                captured["headers"] = request.headers
                return Response(200, json={"id": "int-123", "status": "in_progress"})

            respx_mock.post(INTERACTIONS_URL).mock(side_effect=start_handler)
            poll = respx_mock.get(POLL_URL).mock(
                side_effect=[
                    Response(200, json={"status": "in_progress"}),
                    Response(200, json={"status": "in_progress"}),
                    Response(
                        200,
                        json={
                            "status": "completed",
                            "outputs": [{"text": "Findings"}, {"text": "Sources"}],
                        },
                    ),
                ]
            )

            result = await provider.research(
                ResearchRequest(query="State of fusion power"), poll_interval=0
            )
    finally:
        await provider.close()

    assert result.text == "Findings\n\nSources"
    assert result.interaction_id == "int-123"
    assert result.model == "deep-research"
    assert result.duration_ms >= 0
    assert poll.call_count == 3

    assert captured["headers"]["x-goog-api-key"] == "test-key"
    assert captured["json"] == {
        "input": "State of fusion power",
        "agent": "deep-research-pro-preview-12-2025",
        "background": True,
        "agent_config": {"thinking_summaries": "auto"},
    }

    (record,) = read_usage_records(usage_path)
    assert record["success"] is True
    assert record["operation"] == "deep_research"


@pytest.mark.asyncio
async def test_research_timeout_reports_interaction_id():
    # Each clock read advances one minute; the budget is five minutes.
    provider = make_provider(clock=StepClock(60.0))
    try:
        with respx.mock() as respx_mock:
            respx_mock.post(INTERACTIONS_URL).mock(
                return_value=Response(200, json={"id": "int-123"})
            )
            respx_mock.get(POLL_URL).mock(
                return_value=Response(200, json={"status": "in_progress"})
            )

            with pytest.raises(GeminiMCPError) as exc_info:
                await provider.research(ResearchRequest(query="Slow topic", timeout_minutes=5))
    finally:
        await provider.close()

    assert exc_info.value.category == ErrorCategory.TIMEOUT
    assert "int-123" in exc_info.value.message
    assert "minutes" in exc_info.value.message


@pytest.mark.asyncio
async def test_invalid_api_key_on_start_is_auth_error():
    provider = make_provider()
    body = {
        "error": {
            "code": 400,
            "message": "API key not valid.",
            "details": [{"reason": "API_KEY_INVALID"}],
        }
    }
    try:
        with respx.mock() as respx_mock:
            respx_mock.post(INTERACTIONS_URL).mock(return_value=Response(400, json=body))
            with pytest.raises(GeminiMCPError) as exc_info:
                await provider.research(ResearchRequest(query="anything"))
    finally:
        await provider.close()

    assert exc_info.value.category == ErrorCategory.AUTH_ERROR
    assert str(exc_info.value) == "AUTH_ERROR: API key not valid. (HTTP 400)"


@pytest.mark.asyncio
async def test_rate_limited_start_is_rate_limit():
    provider = make_provider()
    try:
        with respx.mock() as respx_mock:
            respx_mock.post(INTERACTIONS_URL).mock(
                return_value=Response(429, json=[{"error": {"message": "Quota exceeded"}}])
            )
            with pytest.raises(GeminiMCPError) as exc_info:
                await provider.research(ResearchRequest(query="anything"))
    finally:
        await provider.close()

    assert exc_info.value.category == ErrorCategory.RATE_LIMIT


@pytest.mark.asyncio
async def test_failed_status_is_research_failed(usage_log, usage_path):
    provider = make_provider(usage_log)
    try:
        with respx.mock() as respx_mock:
            respx_mock.post(INTERACTIONS_URL).mock(
                return_value=Response(200, json={"id": "int-123"})
            )
            respx_mock.get(POLL_URL).mock(
                return_value=Response(
                    200, json={"status": "failed", "error": {"message": "Agent crashed"}}
                )
            )
            with pytest.raises(GeminiMCPError) as exc_info:
                await provider.research(ResearchRequest(query="anything"), poll_interval=0)
    finally:
        await provider.close()

    assert str(exc_info.value) == "RESEARCH_FAILED: Agent crashed"
    (record,) = read_usage_records(usage_path)
    assert record["success"] is False
    assert record["error"] == "RESEARCH_FAILED: Agent crashed"


@pytest.mark.asyncio
async def test_completed_without_text_is_api_error():
    provider = make_provider()
    try:
        with respx.mock() as respx_mock:
            respx_mock.post(INTERACTIONS_URL).mock(
                return_value=Response(200, json={"id": "int-123"})
            )
            respx_mock.get(POLL_URL).mock(
                return_value=Response(200, json={"status": "completed", "outputs": [{"text": ""}]})
            )
            with pytest.raises(GeminiMCPError) as exc_info:
                await provider.research(ResearchRequest(query="anything"), poll_interval=0)
    finally:
        await provider.close()

    assert exc_info.value.category == ErrorCategory.API_ERROR
    assert "no output text" in exc_info.value.message


@pytest.mark.asyncio
async def test_missing_interaction_id_is_api_error():
    provider = make_provider()
    try:
        with respx.mock() as respx_mock:
            respx_mock.post(INTERACTIONS_URL).mock(return_value=Response(200, json={}))
            with pytest.raises(GeminiMCPError) as exc_info:
                await provider.research(ResearchRequest(query="anything"))
    finally:
        await provider.close()

    assert str(exc_info.value) == "API_ERROR: No interaction ID returned from API"


@pytest.mark.asyncio
async def test_empty_query_fails_without_network_call():
    provider = make_provider()
    try:
        with respx.mock(assert_all_called=False) as respx_mock:
            start = respx_mock.post(INTERACTIONS_URL)
            with pytest.raises(GeminiMCPError) as exc_info:
                await provider.research(ResearchRequest(query="  "))
            assert not start.called
    finally:
        await provider.close()

    assert exc_info.value.category == ErrorCategory.VALIDATION_ERROR


@pytest.mark.asyncio
async def test_non_object_status_payload_is_api_error():
    provider = make_provider()
    try:
        with respx.mock() as respx_mock:
            respx_mock.post(INTERACTIONS_URL).mock(
                return_value=Response(200, json={"id": "int-123"})
            )
            respx_mock.get(POLL_URL).mock(
                return_value=Response(200, json=[{"status": "completed"}])
            )
            with pytest.raises(GeminiMCPError) as exc_info:
                await provider.research(ResearchRequest(query="anything"), poll_interval=0)
    finally:
        await provider.close()

    assert exc_info.value.category == ErrorCategory.API_ERROR
    assert "expected an object, got list" in exc_info.value.message


@pytest.mark.asyncio
async def test_poll_interval_does_not_block_other_tasks():
    # Real asyncio.sleep between polls; a concurrent task must keep running.
    provider = GeminiDeepResearchProvider("test-key", max_retries=0)
    state = {"ticks": 0, "ticks_at_poll": []}
    statuses = [
        {"status": "in_progress"},
        {"status": "in_progress"},
        {"status": "completed", "outputs": [{"text": "Report"}]},
    ]
    done = asyncio.Event()

    def poll_handler(request):
        state["ticks_at_poll"].append(state["ticks"])
        return Response(200, json=statuses.pop(0))

    async def ticker():
        while not done.is_set():
            state["ticks"] += 1
            await asyncio.sleep(0.001)

    ticker_task = asyncio.create_task(ticker())
    try:
        with respx.mock() as respx_mock:
            respx_mock.post(INTERACTIONS_URL).mock(
                return_value=Response(200, json={"id": "int-123"})
            )
            respx_mock.get(POLL_URL).mock(side_effect=poll_handler)
            result = await provider.research(
                ResearchRequest(query="anything"), poll_interval=0.05
            )
    finally:
        done.set()
        await ticker_task
        await provider.close()

    assert result.text == "Report"
    ticks = state["ticks_at_poll"]
    assert len(ticks) == 3
    assert all(later > earlier for earlier, later in zip(ticks, ticks[1:]))
