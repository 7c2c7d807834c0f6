import asyncio
import base64
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from typing_extensions import Annotated

from gemini_mcp import __version__
from gemini_mcp.catalog import list_models
from gemini_mcp.config import Settings, load_settings
from gemini_mcp.core import Gateway
from gemini_mcp.errors import ConfigurationError
from gemini_mcp.logging_config import setup_logging
from gemini_mcp.models import (
    DEFAULT_IMAGE_MODEL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEXT_MODEL,
    DEFAULT_THINKING_LEVEL,
    ImageGenerationRequest,
    ImageGenerationResult,
    ResearchRequest,
    ResearchResult,
    TextGenerationRequest,
    TextGenerationResult,
    ToolError,
    ToolRequest,
    ToolResult,
)
from gemini_mcp.server import serve

app = typer.Typer(
    name="gemini-mcp",
    help="MCP server and CLI for Gemini text, image and deep research tools.",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool):
    if value:
        console.print(f"gemini-mcp Version: [bold green]{__version__}[/bold green]")
        raise typer.Exit()


def _load_settings_or_exit() -> Settings:
    try:
        return load_settings()
    except ConfigurationError as e:
        err_console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(code=1)


async def _run_request(settings: Settings, request: ToolRequest) -> ToolResult:
    usage_log = setup_logging(settings)
    gateway = Gateway.from_settings(settings, usage_log)
    try:
        return await gateway.dispatch(request)
    finally:
        await gateway.close()
        usage_log.close()


def _execute(request: ToolRequest, status: str) -> ToolResult:
    settings = _load_settings_or_exit()
    with console.status(f"[spinner]{status}", spinner="dots"):
        result = asyncio.run(_run_request(settings, request))
    if isinstance(result, ToolError):
        console.print(f"[bold red]Error:[/bold red] {result}")
        raise typer.Exit(code=1)
    return result


def _print_usage(result) -> None:
    usage = getattr(result, "usage", None)
    if usage is None:
        return
    table = Table(title="Usage", show_header=True, header_style="bold magenta")
    table.add_column("Attribute", style="green")
    table.add_column("Value", style="yellow")
    for name, value in usage.model_dump().items():
        table.add_row(name, str(value) if value is not None else "N/A")
    console.print(table)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
):
    if ctx.invoked_subcommand is None:
        serve_command()


@app.command(name="serve")
def serve_command():
    """Run the MCP server over stdio."""
    settings = _load_settings_or_exit()
    asyncio.run(serve(settings))


@app.command()
def text(
    prompt: Annotated[str, typer.Argument(help="The prompt to send to the model.")],
    model: Annotated[
        str, typer.Option(help="gemini-3-pro or gemini-3-flash.")
    ] = DEFAULT_TEXT_MODEL,
    system: Annotated[
        Optional[str], typer.Option("--system", "-s", help="System instructions.")
    ] = None,
    thinking_level: Annotated[
        str, typer.Option(help="minimal, low, medium or high (per model).")
    ] = DEFAULT_THINKING_LEVEL,
    max_tokens: Annotated[
        int, typer.Option(min=1, max=DEFAULT_MAX_TOKENS, help="Maximum output tokens.")
    ] = DEFAULT_MAX_TOKENS,
    temperature: Annotated[
        float, typer.Option(min=0.0, max=1.0, help="Sampling temperature.")
    ] = 0.7,
    files: Annotated[
        Optional[List[str]],
        typer.Option("--file", "-f", help="File to attach; may be repeated."),
    ] = None,
):
    """Generate text with a Gemini thinking model."""
    request = TextGenerationRequest(
        prompt=prompt,
        model=model,
        system_prompt=system,
        thinking_level=thinking_level,
        max_tokens=max_tokens,
        temperature=temperature,
        files=files or [],
    )
    result: TextGenerationResult = _execute(request, f"Generating with {model}...")
    console.print(Markdown(result.text))
    _print_usage(result)


@app.command()
def image(
    prompt: Annotated[str, typer.Argument(help="Description of the image.")],
    output: Annotated[str, typer.Option("--output", "-o", help="Where to save the image.")],
    model: Annotated[
        str, typer.Option(help="nano-banana or nano-banana-pro.")
    ] = DEFAULT_IMAGE_MODEL,
    references: Annotated[
        Optional[List[Path]],
        typer.Option("--reference", "-r", help="Reference image file; may be repeated."),
    ] = None,
    aspect_ratio: Annotated[
        Optional[str], typer.Option("--aspect-ratio", help="e.g. '1:1', '16:9'.")
    ] = None,
):
    """Generate or edit an image with Nano Banana."""
    reference_images = [
        base64.b64encode(path.read_bytes()).decode("ascii") for path in references or []
    ]
    request = ImageGenerationRequest(
        prompt=prompt,
        output_path=output,
        model=model,
        reference_images=reference_images,
        aspect_ratio=aspect_ratio,
    )
    result: ImageGenerationResult = _execute(request, f"Generating image with {model}...")
    console.print(
        Panel(
            f"Image saved to: [green]{result.image_path}[/green]",
            title="[bold green]Success ✨[/bold green]",
            expand=False,
        )
    )
    _print_usage(result)


@app.command()
def research(
    query: Annotated[str, typer.Argument(help="The research question.")],
    timeout_minutes: Annotated[
        int, typer.Option(min=5, max=60, help="Maximum minutes to wait.")
    ] = 30,
):
    """Run a Deep Research task and print the report."""
    request = ResearchRequest(query=query, timeout_minutes=timeout_minutes)
    result: ResearchResult = _execute(request, "Researching (this can take a while)...")
    console.print(Markdown(result.text))
    console.print(
        f"[dim]Interaction {result.interaction_id}, {result.duration_ms / 1000:.0f}s[/dim]"
    )


@app.command(name="list-models")
def list_models_command():
    table = Table(title="⚙️ Gemini Models")
    table.add_column("Model", style="cyan", no_wrap=True)
    table.add_column("Type", style="magenta")
    table.add_column("Name", style="green")
    table.add_column("Description", style="yellow")
    for info in list_models():
        table.add_row(info.id, info.type, info.name, info.description)
    console.print(table)


if __name__ == "__main__":
    app()
