from pathlib import Path

import pytest

from gemini_mcp.logging_config import UsageLog


@pytest.fixture
def usage_path(tmp_path: Path) -> Path:
    return tmp_path / "usage.jsonl"


@pytest.fixture
def usage_log(usage_path: Path):
    log = UsageLog(usage_path)
    yield log
    log.close()
