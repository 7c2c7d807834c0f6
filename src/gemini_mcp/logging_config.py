"""
Process-wide logging for the server.

stdout is reserved for the MCP protocol, so console output always goes to
stderr. When a log directory is configured, plain log lines are also written
to ``gemini-mcp.log`` and one JSON usage record per call is appended to
``usage.jsonl``. Neither file may ever fail a tool call.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Dict, Optional

from pydantic import BaseModel, Field
from rich.console import Console
from rich.logging import RichHandler

from gemini_mcp.config import Settings
from gemini_mcp.models import Usage

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "gemini_mcp"
LOG_FILE_NAME = "gemini-mcp.log"
USAGE_FILE_NAME = "usage.jsonl"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s %(message)s"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class UsageRecord(BaseModel):
    timestamp: str = Field(default_factory=_now)
    provider: str = "gemini"
    model: str
    operation: str
    duration_ms: int
    success: bool
    usage: Optional[Usage] = None
    cost: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class UsageLog:
    """Append-only usage trail, opened once per process."""

    def __init__(self, path: Optional[Path] = None):
        self.path = path
        self._file: Optional[IO[str]] = None
        if path is not None:
            try:
                self._file = open(path, "a", encoding="utf-8", buffering=1)
            except OSError as e:
                logger.warning(f"Usage file {path} unavailable: {e}")

    def record(self, entry: UsageRecord) -> None:
        if entry.success:
            total = entry.usage.total_tokens if entry.usage else None
            logger.info(
                f"{entry.operation} complete: {entry.model}, "
                f"{total if total is not None else '?'} tokens, {entry.duration_ms}ms"
            )
        else:
            logger.info(f"{entry.operation} failed: {entry.model}, {entry.error}")
        if self._file is None:
            return
        try:
            self._file.write(entry.model_dump_json(exclude_none=True) + "\n")
        except (OSError, ValueError):
            # Best effort: the usage trail never fails a call.
            pass

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None


def setup_logging(settings: Settings) -> UsageLog:
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)
    package_logger.propagate = False
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    package_logger.addHandler(
        RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    )

    if not settings.log_files_enabled:
        return UsageLog()

    log_dir = Path(settings.log_dir)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8")
    except OSError as e:
        Console(stderr=True).print(
            f"[bold red]Failed to initialize log files:[/bold red] {e}"
        )
        return UsageLog()
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(file_handler)

    usage_log = UsageLog(log_dir / USAGE_FILE_NAME)
    logger.info(
        f"Logger initialized (log_dir={log_dir}, log_file={log_dir / LOG_FILE_NAME}, "
        f"usage_file={usage_log.path})"
    )
    return usage_log
