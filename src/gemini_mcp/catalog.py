from typing import Dict, FrozenSet, List, Optional

from gemini_mcp.models import ModelInfo

# API model ids. See https://ai.google.dev/gemini-api/docs/models
TEXT_MODEL_IDS: Dict[str, str] = {
    "gemini-3-pro": "gemini-3-pro-preview",
    "gemini-3-flash": "gemini-3-flash-preview",
}

IMAGE_MODEL_IDS: Dict[str, str] = {
    "nano-banana": "gemini-2.5-flash-image",
    "nano-banana-pro": "gemini-3-pro-image-preview",
}

DEEP_RESEARCH_AGENT_ID = "deep-research-pro-preview-12-2025"
DEEP_RESEARCH_MODEL = "deep-research"

THINKING_LEVELS_BY_MODEL: Dict[str, FrozenSet[str]] = {
    "gemini-3-pro": frozenset({"low", "high"}),
    "gemini-3-flash": frozenset({"minimal", "low", "medium", "high"}),
}

MAX_REFERENCE_IMAGES: Dict[str, int] = {
    "nano-banana": 3,
    "nano-banana-pro": 14,
}

VALID_ASPECT_RATIOS = (
    "1:1",
    "2:3",
    "3:2",
    "3:4",
    "4:3",
    "4:5",
    "5:4",
    "9:16",
    "16:9",
    "21:9",
)

_LEVEL_ORDER = ("minimal", "low", "medium", "high")


def supported_thinking_levels(model: str) -> List[str]:
    levels = THINKING_LEVELS_BY_MODEL.get(model, frozenset())
    return [level for level in _LEVEL_ORDER if level in levels]


def validate_thinking_level(model: str, thinking_level: str) -> Optional[str]:
    """Return an error message, or None when the model supports the level."""
    if model not in THINKING_LEVELS_BY_MODEL:
        return (
            f'Unknown text model "{model}". '
            f"Supported models: {', '.join(TEXT_MODEL_IDS)}"
        )
    if thinking_level not in THINKING_LEVELS_BY_MODEL[model]:
        return (
            f'Thinking level "{thinking_level}" is not supported by {model}. '
            f"Supported levels: {', '.join(supported_thinking_levels(model))}"
        )
    return None


MODEL_INFO: Dict[str, ModelInfo] = {
    "gemini-3-pro": ModelInfo(
        id="gemini-3-pro",
        name="Gemini 3 Pro (Thinking)",
        type="text",
        context_window=1048576,
        max_output=65536,
        supports_thinking=True,
        description=(
            "Google's most capable reasoning model with deep thinking. Best for complex "
            "analytical and creative tasks. Supports thinking levels: low, high."
        ),
    ),
    "gemini-3-flash": ModelInfo(
        id="gemini-3-flash",
        name="Gemini 3 Flash (Thinking)",
        type="text",
        context_window=1048576,
        max_output=65536,
        supports_thinking=True,
        description=(
            "Fast, balanced model optimized for speed and scale. Best for chat, "
            "high-throughput, and simple tasks. Supports thinking levels: minimal, "
            "low, medium, high."
        ),
    ),
    "nano-banana": ModelInfo(
        id="nano-banana",
        name="Nano Banana (Gemini 2.5 Flash Image)",
        type="image",
        description=(
            "Fast image generation model. Good for quick iterations. "
            "Accepts up to 3 reference images."
        ),
    ),
    "nano-banana-pro": ModelInfo(
        id="nano-banana-pro",
        name="Nano Banana Pro (Gemini 3 Pro Image)",
        type="image",
        description=(
            "High-fidelity image generation model. Excellent for detailed, "
            "production-quality images with accurate text rendering. "
            "Accepts up to 14 reference images."
        ),
    ),
    DEEP_RESEARCH_MODEL: ModelInfo(
        id=DEEP_RESEARCH_MODEL,
        name="Deep Research Pro",
        type="research",
        description=(
            "AI research agent that autonomously searches the web, analyzes multiple "
            "sources, and produces comprehensive research reports. Takes 5-30 minutes "
            "to complete."
        ),
    ),
}


def list_models() -> List[ModelInfo]:
    return [info.model_copy() for info in MODEL_INFO.values()]
