from enum import Enum
from typing import Callable, List, Optional, Tuple


class ErrorCategory(str, Enum):
    AUTH_ERROR = "AUTH_ERROR"
    RATE_LIMIT = "RATE_LIMIT"
    SAFETY_BLOCK = "SAFETY_BLOCK"
    CONTENT_BLOCKED = "CONTENT_BLOCKED"
    TIMEOUT = "TIMEOUT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    API_ERROR = "API_ERROR"
    RESEARCH_FAILED = "RESEARCH_FAILED"
    GENERATION_ERROR = "GENERATION_ERROR"


class ConfigurationError(Exception):
    pass


class GeminiMCPError(Exception):
    """
    A failure tagged with its category.

    str() always renders as "<CATEGORY>: <message>" so the category survives
    any boundary that only carries text.
    """

    def __init__(
        self,
        category: ErrorCategory,
        message: str,
        status_code: Optional[int] = None,
    ):
        self.category = ErrorCategory(category)
        self.message = message
        self.status_code = status_code
        super().__init__(f"{self.category.value}: {message}")


# Ordered: the first matching rule wins.
_RULES: List[Tuple[ErrorCategory, Callable[[str, Optional[int]], bool]]] = [
    (
        ErrorCategory.AUTH_ERROR,
        lambda msg, status: status in (401, 403)
        or "api key" in msg.lower()
        or "api_key" in msg.lower()
        or "unauthorized" in msg.lower(),
    ),
    (
        ErrorCategory.RATE_LIMIT,
        lambda msg, status: status == 429
        or "quota" in msg.lower()
        or "rate limit" in msg.lower()
        or "rate_limit" in msg.lower()
        or "resource_exhausted" in msg.lower(),
    ),
    (ErrorCategory.SAFETY_BLOCK, lambda msg, status: "safety" in msg.lower()),
    (
        ErrorCategory.CONTENT_BLOCKED,
        lambda msg, status: "blocked" in msg.lower() or "content policy" in msg.lower(),
    ),
    (
        ErrorCategory.TIMEOUT,
        lambda msg, status: "TIMEOUT" in msg or "timed out" in msg.lower(),
    ),
]

_EXPLANATIONS = {
    ErrorCategory.AUTH_ERROR: "Invalid or missing Gemini API key",
    ErrorCategory.RATE_LIMIT: "Gemini API rate limit or quota exceeded. Please wait and retry.",
    ErrorCategory.SAFETY_BLOCK: "Content was blocked by Gemini safety filters",
    ErrorCategory.CONTENT_BLOCKED: "Request was blocked due to content policy. Try rephrasing the prompt.",
}


def classify_error(message: str, status_code: Optional[int] = None) -> ErrorCategory:
    for category, matches in _RULES:
        if matches(message or "", status_code):
            return category
    return ErrorCategory.API_ERROR


def _status_code_of(exc: BaseException) -> Optional[int]:
    for attr in ("status_code", "code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def _split_tag(message: str) -> Optional[Tuple[ErrorCategory, str]]:
    head, sep, rest = message.partition(":")
    if not sep:
        return None
    try:
        return ErrorCategory(head.strip()), rest.strip()
    except ValueError:
        return None


def categorize_error(exc: BaseException) -> GeminiMCPError:
    """Map any exception onto a GeminiMCPError, keeping existing tags."""
    if isinstance(exc, GeminiMCPError):
        return exc
    message = str(exc) or type(exc).__name__
    tagged = _split_tag(message)
    if tagged:
        category, rest = tagged
        return GeminiMCPError(category, rest, _status_code_of(exc))
    status = _status_code_of(exc)
    category = classify_error(message, status)
    return GeminiMCPError(category, _EXPLANATIONS.get(category, message), status)
