import json
from pathlib import Path
from types import SimpleNamespace
from typing import List, Optional
from unittest.mock import AsyncMock


def make_client(response=None, side_effect=None) -> SimpleNamespace:
    """Stand-in for genai.Client exposing only client.aio.models.generate_content."""
    generate_content = AsyncMock(return_value=response, side_effect=side_effect)
    return SimpleNamespace(
        aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate_content))
    )


def make_part(text=None, thought=None, inline_data=None) -> SimpleNamespace:
    return SimpleNamespace(text=text, thought=thought, inline_data=inline_data)


def make_response(
    parts: List[SimpleNamespace],
    text: Optional[str] = None,
    usage_metadata=None,
) -> SimpleNamespace:
    return SimpleNamespace(
        text=text,
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))],
        usage_metadata=usage_metadata,
    )


def make_usage_metadata(prompt=10, candidates=20, total=45, thoughts=15) -> SimpleNamespace:
    return SimpleNamespace(
        prompt_token_count=prompt,
        candidates_token_count=candidates,
        total_token_count=total,
        thoughts_token_count=thoughts,
    )


def read_usage_records(path: Path) -> List[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
