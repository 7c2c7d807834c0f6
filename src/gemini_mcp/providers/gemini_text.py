import logging
from typing import Any, List, Optional, Tuple

from google import genai
from google.genai import types

from gemini_mcp.attachments import resolve_attachment
from gemini_mcp.catalog import TEXT_MODEL_IDS, validate_thinking_level
from gemini_mcp.errors import ErrorCategory, GeminiMCPError
from gemini_mcp.logging_config import UsageLog
from gemini_mcp.models import DEFAULT_TEXT_MODEL, TextGenerationRequest, TextGenerationResult
from gemini_mcp.pricing import calculate_text_cost
from gemini_mcp.providers.base_provider import BaseGeminiProvider, usage_from_metadata

logger = logging.getLogger(__name__)

THINKING_LEVEL_MAP = {
    "minimal": types.ThinkingLevel.MINIMAL,
    "low": types.ThinkingLevel.LOW,
    "medium": types.ThinkingLevel.MEDIUM,
    "high": types.ThinkingLevel.HIGH,
}

DEFAULT_TIMEOUT = 300.0
THINKING_SUMMARY_HEADER = "\n\n---\n**Thinking Summary:**\n"


def build_prompt_text(prompt: str, system_prompt: Optional[str] = None) -> str:
    if system_prompt:
        return f"<system>\n{system_prompt}\n</system>\n\n{prompt}"
    return prompt


def split_response(response: Any) -> Tuple[str, str]:
    """
    Returns (answer, thought summary) from a generate_content response.

    Direct response text wins; the parts of the first candidate are only walked
    when it is empty.
    """
    direct_text = getattr(response, "text", None)
    if direct_text:
        return direct_text, ""

    answer_parts: List[str] = []
    thoughts = ""
    candidates = getattr(response, "candidates", None) or []
    if candidates:
        content = getattr(candidates[0], "content", None)
        for part in getattr(content, "parts", None) or []:
            text = getattr(part, "text", None)
            if not text:
                continue
            if getattr(part, "thought", None):
                thoughts += text + "\n"
            else:
                answer_parts.append(text)
    return "".join(answer_parts), thoughts


class GeminiTextProvider(BaseGeminiProvider):
    operation = "generate_text"

    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Optional[genai.Client] = None,
        usage_log: Optional[UsageLog] = None,
        max_retries: int = 2,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(usage_log=usage_log, max_retries=max_retries)
        if client is None:
            if not api_key:
                raise ValueError("Gemini API key is required")
            client = genai.Client(api_key=api_key)
        self.client = client
        self.timeout = timeout
        logger.info(
            f"Gemini text provider initialized (models: {', '.join(TEXT_MODEL_IDS)}, "
            f"default: {DEFAULT_TEXT_MODEL})"
        )

    def _build_contents(self, request: TextGenerationRequest) -> List[types.Part]:
        contents: List[types.Part] = []
        for file_path in request.files:
            attachment = resolve_attachment(file_path)
            contents.append(
                types.Part.from_bytes(data=attachment.data, mime_type=attachment.mime_type)
            )
            logger.debug(f"Added file to request: {file_path} ({attachment.mime_type})")
        contents.append(
            types.Part.from_text(text=build_prompt_text(request.prompt, request.system_prompt))
        )
        return contents

    def _build_config(self, request: TextGenerationRequest) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            max_output_tokens=request.max_tokens,
            temperature=request.temperature,
            thinking_config=types.ThinkingConfig(
                thinking_level=THINKING_LEVEL_MAP[request.thinking_level],
                include_thoughts=True,
            ),
        )

    async def generate(self, request: TextGenerationRequest) -> TextGenerationResult:
        start_time = self._clock()
        model = request.model
        try:
            if not request.prompt or not request.prompt.strip():
                raise GeminiMCPError(ErrorCategory.VALIDATION_ERROR, "Prompt cannot be empty")
            validation_error = validate_thinking_level(model, request.thinking_level)
            if validation_error:
                raise GeminiMCPError(ErrorCategory.VALIDATION_ERROR, validation_error)

            api_model_id = TEXT_MODEL_IDS[model]
            contents = self._build_contents(request)
            config = self._build_config(request)
            logger.debug(
                f"Text generation request: model={model} ({api_model_id}), "
                f"thinking_level={request.thinking_level}, max_tokens={request.max_tokens}, "
                f"temperature={request.temperature}, files={len(request.files)}, "
                f"system_prompt={'yes' if request.system_prompt else 'no'}"
            )

            response = await self._call(
                lambda: self.client.aio.models.generate_content(
                    model=api_model_id, contents=contents, config=config
                ),
                self.timeout,
            )

            text, thought_summary = split_response(response)
            usage = usage_from_metadata(getattr(response, "usage_metadata", None))
            cost = (
                calculate_text_cost(
                    model, usage.prompt_tokens, usage.completion_tokens, usage.thoughts_tokens
                )
                if usage
                else None
            )
            self._record_success(model, start_time, usage, cost)
        except Exception as e:
            raise self._record_failure(model, start_time, e) from e

        if thought_summary:
            text = f"{text}{THINKING_SUMMARY_HEADER}{thought_summary}"
        return TextGenerationResult(text=text, model=model, usage=usage)
