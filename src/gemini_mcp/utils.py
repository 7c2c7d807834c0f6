import base64
import binascii
import logging
import re
from pathlib import Path
from typing import Tuple, Union

from gemini_mcp.errors import ErrorCategory, GeminiMCPError

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME_TYPE = "image/png"
_DATA_URL_RE = re.compile(r"^data:([^;,]+);base64,(.+)$", re.DOTALL)


def parse_reference_image(reference: str) -> Tuple[str, bytes]:
    """Decodes a raw base64 string or a data URL into (mime type, bytes)."""
    mime_type = DEFAULT_IMAGE_MIME_TYPE
    payload = reference.strip()
    match = _DATA_URL_RE.match(payload)
    if match:
        mime_type, payload = match.group(1), match.group(2)
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise GeminiMCPError(
            ErrorCategory.VALIDATION_ERROR, f"Reference image is not valid base64: {e}"
        ) from e
    return mime_type, data


def save_image_bytes(image_data: Union[bytes, str], output_path: Path) -> Path:
    if isinstance(image_data, str):
        image_data = base64.b64decode(image_data)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(image_data)
    logger.info(f"Image saved to {output_path}")
    return output_path
