import logging
from pathlib import Path
from typing import Any, List, Optional, Union

from google import genai
from google.genai import types

from gemini_mcp.catalog import IMAGE_MODEL_IDS, MAX_REFERENCE_IMAGES, VALID_ASPECT_RATIOS
from gemini_mcp.errors import ErrorCategory, GeminiMCPError
from gemini_mcp.logging_config import UsageLog
from gemini_mcp.models import ImageGenerationRequest, ImageGenerationResult
from gemini_mcp.pricing import calculate_image_cost
from gemini_mcp.providers.base_provider import BaseGeminiProvider, usage_from_metadata
from gemini_mcp.utils import parse_reference_image, save_image_bytes

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 180.0


def find_image_data(response: Any) -> Optional[bytes]:
    """First inline image payload across all candidates, if any."""
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline_data = getattr(part, "inline_data", None)
            if inline_data is not None and getattr(inline_data, "data", None):
                return inline_data.data
    return None


class GeminiImageProvider(BaseGeminiProvider):
    operation = "generate_image"

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
        logger.info(f"Gemini image provider initialized (models: {', '.join(IMAGE_MODEL_IDS)})")

    def _validate(self, request: ImageGenerationRequest) -> None:
        if not request.prompt or not request.prompt.strip():
            raise GeminiMCPError(ErrorCategory.VALIDATION_ERROR, "Prompt cannot be empty")
        if not request.output_path or not request.output_path.strip():
            raise GeminiMCPError(ErrorCategory.VALIDATION_ERROR, "output_path is required")
        if request.aspect_ratio and request.aspect_ratio not in VALID_ASPECT_RATIOS:
            raise GeminiMCPError(
                ErrorCategory.VALIDATION_ERROR,
                f'Invalid aspect ratio "{request.aspect_ratio}". '
                f"Valid options: {', '.join(VALID_ASPECT_RATIOS)}",
            )
        max_images = MAX_REFERENCE_IMAGES[request.model]
        if len(request.reference_images) > max_images:
            raise GeminiMCPError(
                ErrorCategory.VALIDATION_ERROR,
                f"Maximum {max_images} reference images allowed for {request.model} "
                f"(got {len(request.reference_images)})",
            )

    def _build_contents(
        self, request: ImageGenerationRequest
    ) -> Union[str, List[Union[types.Part, str]]]:
        if not request.reference_images:
            return request.prompt
        contents: List[Union[types.Part, str]] = []
        for reference in request.reference_images:
            mime_type, data = parse_reference_image(reference)
            contents.append(types.Part.from_bytes(data=data, mime_type=mime_type))
        contents.append(request.prompt)
        return contents

    def _build_config(self, request: ImageGenerationRequest) -> types.GenerateContentConfig:
        config = types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"])
        if request.aspect_ratio:
            config.image_config = types.ImageConfig(aspect_ratio=request.aspect_ratio)
        return config

    async def generate(self, request: ImageGenerationRequest) -> ImageGenerationResult:
        start_time = self._clock()
        model = request.model
        try:
            self._validate(request)
            model_id = IMAGE_MODEL_IDS[model]
            contents = self._build_contents(request)
            config = self._build_config(request)
            logger.debug(
                f"Image generation request: model={model} ({model_id}), "
                f"references={len(request.reference_images)}, "
                f"aspect_ratio={request.aspect_ratio}, output={request.output_path}"
            )

            response = await self._call(
                lambda: self.client.aio.models.generate_content(
                    model=model_id, contents=contents, config=config
                ),
                self.timeout,
            )

            image_data = find_image_data(response)
            if not image_data:
                raise GeminiMCPError(
                    ErrorCategory.GENERATION_ERROR, "No image data found in response"
                )
            saved_path = save_image_bytes(image_data, Path(request.output_path))

            usage = usage_from_metadata(
                getattr(response, "usage_metadata", None), include_thoughts=False
            )
            self._record_success(model, start_time, usage, calculate_image_cost(model))
        except Exception as e:
            raise self._record_failure(model, start_time, e) from e

        return ImageGenerationResult(image_path=str(saved_path), model=model, usage=usage)
