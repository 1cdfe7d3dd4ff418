"""Unit tests for logging helpers"""

import logging

from lightsprint.common.log_utils import (
    TruncatingFormatter,
    format_hook_context,
    setup_logger,
    truncate_value,
)


def test_truncate_value():
    assert truncate_value(None) == "None"
    assert truncate_value("short") == "short"
    assert truncate_value("x" * 150, 100) == "x" * 100 + "... [150 chars total]"
    assert truncate_value({"a": 1}) == '{"a": 1}'
    assert truncate_value(list(range(100)), 20).endswith("... [100 items total]")
    assert truncate_value(12345, 3) == "123... [5 chars total]"


def test_format_hook_context_orders_priority_keys():
    """Test that the identifying keys come first"""
    formatted = format_hook_context(
        {
            "tool_response": {"id": "1"},
            "cwd": "/work",
            "hook_event_name": "PostToolUse",
            "tool_name": "TaskCreate",
        }
    )

    assert formatted.startswith("{ hook_event_name: PostToolUse, tool_name: TaskCreate, cwd: /work")
    assert formatted.endswith('tool_response: {"id": "1"} }')


def test_truncating_formatter_keeps_prefix():
    formatter = TruncatingFormatter("%(name)s - %(levelname)s - %(funcName)s - x - %(message)s", max_length=10)
    record = logging.LogRecord("sync_task", logging.INFO, __file__, 1, "m" * 50, None, None)

    formatted = formatter.format(record)

    assert formatted.startswith("sync_task - INFO - ")
    assert formatted.endswith("m" * 10 + "... [truncated]")


def test_setup_logger_writes_to_file(tmp_path):
    """Test that records land in the sync log and not on the root logger"""
    log_file = tmp_path / "logs" / "sync.log"
    logger = setup_logger("lightsprint.test.file", log_file)

    logger.info("hello from the hook")
    for handler in logger.handlers:
        handler.flush()

    assert "hello from the hook" in log_file.read_text()
    assert logger.propagate is False


def test_setup_logger_is_idempotent_and_follows_file(tmp_path):
    """Test that repeated setup keeps one handler, retargeted when the path changes"""
    first = tmp_path / "a.log"
    second = tmp_path / "b.log"

    setup_logger("lightsprint.test.retarget", first)
    logger = setup_logger("lightsprint.test.retarget", first)
    assert len(logger.handlers) == 1

    logger = setup_logger("lightsprint.test.retarget", second)
    assert len(logger.handlers) == 1
    logger.warning("moved")
    logger.handlers[0].flush()

    assert "moved" in second.read_text()
    assert "moved" not in first.read_text()


def test_setup_logger_survives_unwritable_path(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")

    logger = setup_logger("lightsprint.test.null", blocker / "sync.log")
    logger.error("goes nowhere")

    assert isinstance(logger.handlers[0], logging.NullHandler)
