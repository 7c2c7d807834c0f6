import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from gemini_mcp.errors import ErrorCategory, GeminiMCPError

logger = logging.getLogger(__name__)

# See https://ai.google.dev/gemini-api/docs (GIF, BMP and TIFF are not accepted).
SUPPORTED_MIME_TYPES: Dict[str, str] = {
    # Images
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".heif": "image/heif",
    # Audio
    ".wav": "audio/wav",
    ".mp3": "audio/mp3",
    ".aiff": "audio/aiff",
    ".aif": "audio/aiff",
    ".aac": "audio/aac",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    # Video
    ".mp4": "video/mp4",
    ".mpeg": "video/mpeg",
    ".mpg": "video/mpg",
    ".mov": "video/mov",
    ".avi": "video/avi",
    ".flv": "video/x-flv",
    ".webm": "video/webm",
    ".wmv": "video/wmv",
    ".3gp": "video/3gpp",
    ".3gpp": "video/3gpp",
    # Documents
    ".pdf": "application/pdf",
    # Text, sent as plain text rather than rendered
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".html": "text/html",
    ".htm": "text/html",
    ".xml": "text/xml",
    ".css": "text/css",
    ".js": "text/javascript",
    ".ts": "text/typescript",
    ".json": "application/json",
    ".csv": "text/csv",
    ".rtf": "application/rtf",
}

_TEXT_LIKE_APPLICATION_TYPES = {"application/json", "application/rtf"}


def content_category(mime_type: str) -> str:
    if mime_type == "application/pdf":
        return "document"
    if mime_type in _TEXT_LIKE_APPLICATION_TYPES:
        return "text"
    return mime_type.split("/", 1)[0]


def get_mime_type(file_path: str) -> str:
    ext = Path(file_path).suffix.lower()
    mime_type = SUPPORTED_MIME_TYPES.get(ext)
    if mime_type is None:
        raise GeminiMCPError(
            ErrorCategory.VALIDATION_ERROR,
            f'Unsupported file type "{ext or file_path}". '
            f"Supported types: {', '.join(SUPPORTED_MIME_TYPES)}",
        )
    return mime_type


@dataclass(frozen=True)
class Attachment:
    path: str
    category: str
    mime_type: str
    data: bytes


def resolve_attachment(file_path: str) -> Attachment:
    path = Path(file_path)
    if not path.is_file():
        raise GeminiMCPError(ErrorCategory.VALIDATION_ERROR, f"File not found: {file_path}")
    mime_type = get_mime_type(file_path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise GeminiMCPError(
            ErrorCategory.VALIDATION_ERROR, f"Cannot read file {file_path}: {e}"
        ) from e
    logger.debug(f"Resolved attachment {file_path} ({mime_type}, {len(data)} bytes)")
    return Attachment(
        path=file_path,
        category=content_category(mime_type),
        mime_type=mime_type,
        data=data,
    )
