from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional, Union
from typing_extensions import Annotated

from gemini_mcp.errors import ErrorCategory

TextModel = Literal["gemini-3-pro", "gemini-3-flash"]
ThinkingLevelName = Literal["minimal", "low", "medium", "high"]
ImageModel = Literal["nano-banana", "nano-banana-pro"]

DEFAULT_TEXT_MODEL: TextModel = "gemini-3-pro"
DEFAULT_THINKING_LEVEL: ThinkingLevelName = "high"
DEFAULT_IMAGE_MODEL: ImageModel = "nano-banana"
DEFAULT_MAX_TOKENS = 65536


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Requests


class TextGenerationRequest(BaseModel):
    tool: Literal["generate_text"] = "generate_text"
    prompt: str
    system_prompt: Optional[str] = None
    model: TextModel = DEFAULT_TEXT_MODEL
    thinking_level: ThinkingLevelName = DEFAULT_THINKING_LEVEL
    max_tokens: int = Field(DEFAULT_MAX_TOKENS, ge=1, le=DEFAULT_MAX_TOKENS)
    temperature: float = Field(0.7, ge=0.0, le=1.0)
    files: List[str] = Field(
        default_factory=list,
        description="Paths of files sent ahead of the prompt (images, audio, video, PDF, text).",
    )


class ImageGenerationRequest(BaseModel):
    tool: Literal["generate_image"] = "generate_image"
    prompt: str
    output_path: str
    model: ImageModel = DEFAULT_IMAGE_MODEL
    reference_images: List[str] = Field(
        default_factory=list,
        description="Raw base64 or data URL encoded images.",
    )
    aspect_ratio: Optional[str] = None


class ResearchRequest(BaseModel):
    tool: Literal["deep_research"] = "deep_research"
    query: str
    timeout_minutes: int = Field(30, ge=5, le=60)


class ListModelsRequest(BaseModel):
    tool: Literal["list_models"] = "list_models"


ToolRequest = Annotated[
    Union[
        TextGenerationRequest,
        ImageGenerationRequest,
        ResearchRequest,
        ListModelsRequest,
    ],
    Field(discriminator="tool"),
]


# Results


class Usage(_CamelModel):
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    thoughts_tokens: Optional[int] = None


class ModelInfo(_CamelModel):
    id: str
    name: str
    provider: str = "google"
    type: Literal["text", "image", "research"]
    context_window: Optional[int] = None
    max_output: Optional[int] = None
    supports_thinking: Optional[bool] = None
    description: str
    available: bool = True


class TextGenerationResult(_CamelModel):
    kind: Literal["text"] = "text"
    text: str
    model: str
    usage: Optional[Usage] = None


class ImageGenerationResult(_CamelModel):
    kind: Literal["image"] = "image"
    image_path: str
    model: str
    usage: Optional[Usage] = None


class ResearchResult(_CamelModel):
    kind: Literal["research"] = "research"
    text: str
    model: str
    interaction_id: str
    duration_ms: int


class ModelCatalog(_CamelModel):
    kind: Literal["models"] = "models"
    models: List[ModelInfo]


class ToolError(_CamelModel):
    kind: Literal["error"] = "error"
    category: ErrorCategory
    message: str

    def __str__(self) -> str:
        return f"{self.category.value}: {self.message}"


ToolResult = Annotated[
    Union[
        TextGenerationResult,
        ImageGenerationResult,
        ResearchResult,
        ModelCatalog,
        ToolError,
    ],
    Field(discriminator="kind"),
]
