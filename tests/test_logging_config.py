import json
import logging

import pytest
import structlog

from chainlens.logging_config import setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_stdlib_records_render_as_json_lines(restore_logging, capsys):
    """Supervisor and provider loggers are plain stdlib loggers."""

    setup_logging("INFO")
    logging.getLogger("chainlens.mcp.supervisor").warning("MCP process exited with code %d", 1)

    line = capsys.readouterr().out.strip().splitlines()[-1]
    record = json.loads(line)
    assert record["event"] == "MCP process exited with code 1"
    assert record["level"] == "warning"
    assert record["logger"] == "chainlens.mcp.supervisor"
    assert "timestamp" in record


def test_noisy_http_loggers_are_quieted(restore_logging):
    setup_logging("DEBUG")

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING
