"""
MCP stdio server exposing the Gemini tools.

Each call is parsed into a typed request, dispatched through the Gateway, and
rendered as text content. Failures are raised as GeminiMCPError so the MCP SDK
reports an error result whose text begins with the error category.
"""

import logging
from typing import Any, Dict, List, Optional

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from gemini_mcp import __version__
from gemini_mcp.catalog import IMAGE_MODEL_IDS, TEXT_MODEL_IDS, VALID_ASPECT_RATIOS
from gemini_mcp.config import Settings
from gemini_mcp.core import Gateway
from gemini_mcp.errors import GeminiMCPError
from gemini_mcp.logging_config import setup_logging
from gemini_mcp.models import (
    DEFAULT_IMAGE_MODEL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEXT_MODEL,
    DEFAULT_THINKING_LEVEL,
    ImageGenerationResult,
    ModelCatalog,
    ResearchResult,
    TextGenerationResult,
    ToolError,
)

logger = logging.getLogger(__name__)

SERVER_NAME = "gemini-mcp"

TOOLS: List[types.Tool] = [
    types.Tool(
        name="generate_text",
        description=(
            "Generate text using Gemini 3 with thinking capabilities. Use this for complex "
            "reasoning, writing, analysis, or any text task that benefits from deep thinking. "
            "Files (images, audio, video, PDFs, text) can be attached for multimodal input."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "prompt": {
                    "type": "string",
                    "description": "The complete prompt, including all necessary context",
                },
                "model": {
                    "type": "string",
                    "enum": list(TEXT_MODEL_IDS),
                    "default": DEFAULT_TEXT_MODEL,
                    "description": (
                        "'gemini-3-pro' for deep reasoning (default), "
                        "'gemini-3-flash' for speed"
                    ),
                },
                "system_prompt": {
                    "type": "string",
                    "description": "Optional system instructions setting the model's role",
                },
                "thinking_level": {
                    "type": "string",
                    "enum": ["minimal", "low", "medium", "high"],
                    "default": DEFAULT_THINKING_LEVEL,
                    "description": (
                        "Thinking depth. gemini-3-pro supports low and high; "
                        "gemini-3-flash supports minimal, low, medium and high"
                    ),
                },
                "max_tokens": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": DEFAULT_MAX_TOKENS,
                    "default": DEFAULT_MAX_TOKENS,
                    "description": "Maximum number of tokens to generate",
                },
                "temperature": {
                    "type": "number",
                    "minimum": 0,
                    "maximum": 1,
                    "default": 0.7,
                    "description": "Sampling temperature; lower is more focused",
                },
                "files": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": (
                        "File paths for multimodal input: jpg, png, webp, heic, heif, "
                        "audio, video, pdf and text files (gif, bmp, tiff unsupported)"
                    ),
                },
            },
            "required": ["prompt"],
        },
    ),
    types.Tool(
        name="generate_image",
        description=(
            "Generate images using Nano Banana (fast) or Nano Banana Pro (high quality). "
            "Use this to create images from text, or to edit and compose reference images."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "prompt": {
                    "type": "string",
                    "description": "Description of the image to generate",
                },
                "output_path": {
                    "type": "string",
                    "description": "File path where the generated image is saved",
                },
                "model": {
                    "type": "string",
                    "enum": list(IMAGE_MODEL_IDS),
                    "default": DEFAULT_IMAGE_MODEL,
                    "description": "'nano-banana' (default) or 'nano-banana-pro'",
                },
                "reference_images": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": (
                        "Base64 or data URL reference images. Max 3 for nano-banana, "
                        "14 for nano-banana-pro"
                    ),
                },
                "aspect_ratio": {
                    "type": "string",
                    "enum": list(VALID_ASPECT_RATIOS),
                    "description": "Aspect ratio of the image (default: model decides)",
                },
            },
            "required": ["prompt", "output_path"],
        },
    ),
    types.Tool(
        name="deep_research",
        description=(
            "Run Gemini Deep Research: an agent that searches the web, analyzes sources "
            "and writes a research report. Takes several minutes (typically 5-30)."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "The research question"},
                "timeout_minutes": {
                    "type": "integer",
                    "minimum": 5,
                    "maximum": 60,
                    "default": 30,
                    "description": "Maximum minutes to wait for the report",
                },
            },
            "required": ["query"],
        },
    ),
    types.Tool(
        name="list_models",
        description="List all available Gemini models and their capabilities",
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
]


def render_result(result: Any) -> List[types.TextContent]:
    if isinstance(result, ToolError):
        raise GeminiMCPError(result.category, result.message)
    exclude = {"kind"}
    if isinstance(result, ImageGenerationResult):
        summary = f"Image saved to: {result.image_path}"
    elif isinstance(result, (TextGenerationResult, ResearchResult)):
        # Text goes in the summary block only.
        summary = result.text
        exclude.add("text")
    else:
        summary = None
    payload = result.model_dump_json(by_alias=True, exclude_none=True, exclude=exclude, indent=2)
    if summary is None:
        return [types.TextContent(type="text", text=payload)]
    return [
        types.TextContent(type="text", text=summary),
        types.TextContent(type="text", text=payload),
    ]


async def handle_call(
    gateway: Gateway, name: str, arguments: Optional[Dict[str, Any]]
) -> List[types.TextContent]:
    result = await gateway.call_tool(name, arguments)
    return render_result(result)


def create_server(gateway: Gateway) -> Server:
    server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return TOOLS

    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
        return await handle_call(gateway, name, arguments)

    return server


async def serve(settings: Settings) -> None:
    usage_log = setup_logging(settings)
    logger.info(
        f"Starting MCP server (version {__version__}, debug={settings.debug}, "
        f"log_dir={settings.log_dir if settings.log_files_enabled else 'none'})"
    )
    gateway = Gateway.from_settings(settings, usage_log)
    server = create_server(gateway)
    try:
        async with stdio_server() as (read_stream, write_stream):
            logger.info("Server running and ready for connections")
            await server.run(
                read_stream, write_stream, server.create_initialization_options()
            )
    finally:
        await gateway.close()
        usage_log.close()
