import logging
from typing import Any, Dict, Optional

from google import genai
from pydantic import TypeAdapter, ValidationError

from gemini_mcp.catalog import list_models
from gemini_mcp.config import Settings
from gemini_mcp.errors import ErrorCategory, GeminiMCPError, categorize_error
from gemini_mcp.logging_config import UsageLog
from gemini_mcp.models import (
    ImageGenerationRequest,
    ListModelsRequest,
    ModelCatalog,
    ResearchRequest,
    TextGenerationRequest,
    ToolError,
    ToolRequest,
    ToolResult,
)
from gemini_mcp.providers.deep_research import GeminiDeepResearchProvider
from gemini_mcp.providers.gemini_image import GeminiImageProvider
from gemini_mcp.providers.gemini_text import GeminiTextProvider

logger = logging.getLogger(__name__)

TOOL_NAMES = ("generate_text", "generate_image", "deep_research", "list_models")

_request_adapter: TypeAdapter = TypeAdapter(ToolRequest)


def _format_validation_error(error: ValidationError) -> str:
    problems = []
    for err in error.errors():
        location = ".".join(
            str(part)
            for part in err.get("loc", ())
            if part != "tool" and part not in TOOL_NAMES
        )
        problems.append(f"{location}: {err['msg']}" if location else err["msg"])
    return "; ".join(problems)


def parse_tool_call(name: str, arguments: Optional[Dict[str, Any]]) -> ToolRequest:
    if name not in TOOL_NAMES:
        raise GeminiMCPError(
            ErrorCategory.VALIDATION_ERROR,
            f'Unknown tool "{name}". Available tools: {", ".join(TOOL_NAMES)}',
        )
    data = {k: v for k, v in (arguments or {}).items() if v is not None}
    data["tool"] = name
    try:
        return _request_adapter.validate_python(data)
    except ValidationError as e:
        raise GeminiMCPError(
            ErrorCategory.VALIDATION_ERROR, _format_validation_error(e)
        ) from None


class Gateway:
    """Routes each tool request to exactly one provider."""

    def __init__(
        self,
        text_provider: GeminiTextProvider,
        image_provider: GeminiImageProvider,
        research_provider: GeminiDeepResearchProvider,
    ):
        self.text_provider = text_provider
        self.image_provider = image_provider
        self.research_provider = research_provider

    @classmethod
    def from_settings(cls, settings: Settings, usage_log: UsageLog) -> "Gateway":
        client = genai.Client(api_key=settings.api_key)
        return cls(
            text_provider=GeminiTextProvider(
                client=client,
                usage_log=usage_log,
                max_retries=settings.max_retries,
                timeout=settings.text_timeout,
            ),
            image_provider=GeminiImageProvider(
                client=client,
                usage_log=usage_log,
                max_retries=settings.max_retries,
                timeout=settings.image_timeout,
            ),
            research_provider=GeminiDeepResearchProvider(
                api_key=settings.api_key,
                usage_log=usage_log,
                max_retries=settings.max_retries,
                base_url=str(settings.research_base_url),
                request_timeout=settings.research_request_timeout,
                poll_interval=settings.research_poll_interval,
            ),
        )

    async def dispatch(self, request: ToolRequest) -> ToolResult:
        try:
            if isinstance(request, TextGenerationRequest):
                return await self.text_provider.generate(request)
            if isinstance(request, ImageGenerationRequest):
                return await self.image_provider.generate(request)
            if isinstance(request, ResearchRequest):
                return await self.research_provider.research(request)
            if isinstance(request, ListModelsRequest):
                return ModelCatalog(models=list_models())
            raise GeminiMCPError(
                ErrorCategory.VALIDATION_ERROR, f"Unsupported request: {type(request).__name__}"
            )
        except Exception as e:
            error = categorize_error(e)
            logger.error(f"{request.tool} failed: {error}")
            return ToolError(category=error.category, message=error.message)

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]]) -> ToolResult:
        try:
            request = parse_tool_call(name, arguments)
        except GeminiMCPError as e:
            logger.error(f"Rejected call to {name}: {e}")
            return ToolError(category=e.category, message=e.message)
        return await self.dispatch(request)

    async def close(self) -> None:
        await self.research_provider.close()
