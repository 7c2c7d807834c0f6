import logging

import pytest

from gemini_mcp.config import Settings
from gemini_mcp.logging_config import (
    LOG_FILE_NAME,
    PACKAGE_LOGGER,
    USAGE_FILE_NAME,
    UsageLog,
    UsageRecord,
    setup_logging,
)
from gemini_mcp.models import Usage
from tests.fakes import read_usage_records


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


def test_setup_logging_writes_log_and_usage_files(tmp_path):
    log_dir = tmp_path / "logs"
    settings = Settings(api_key="k", log_dir=str(log_dir), debug=False)

    usage_log = setup_logging(settings)
    try:
        logging.getLogger("gemini_mcp.test").info("hello from test")
        usage_log.record(
            UsageRecord(
                model="gemini-3-flash",
                operation="generate_text",
                duration_ms=12,
                success=True,
                usage=Usage(prompt_tokens=1, completion_tokens=2, total_tokens=3),
            )
        )
    finally:
        usage_log.close()

    assert logging.getLogger(PACKAGE_LOGGER).level == logging.INFO
    assert "hello from test" in (log_dir / LOG_FILE_NAME).read_text(encoding="utf-8")
    (record,) = read_usage_records(log_dir / USAGE_FILE_NAME)
    assert record["model"] == "gemini-3-flash"
    assert record["provider"] == "gemini"
    assert record["usage"]["total_tokens"] == 3
    assert "error" not in record
    assert record["timestamp"]


def test_log_files_can_be_disabled(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    settings = Settings(api_key="k", log_dir="none", debug=True)

    usage_log = setup_logging(settings)
    usage_log.record(
        UsageRecord(model="m", operation="generate_text", duration_ms=1, success=False, error="x")
    )

    assert usage_log.path is None
    assert list(tmp_path.iterdir()) == []
    assert logging.getLogger(PACKAGE_LOGGER).level == logging.DEBUG


def test_usage_log_never_raises_after_close(tmp_path):
    usage_log = UsageLog(tmp_path / USAGE_FILE_NAME)
    usage_log.close()
    usage_log.record(UsageRecord(model="m", operation="op", duration_ms=1, success=True))
