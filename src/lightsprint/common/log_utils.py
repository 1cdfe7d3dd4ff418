"""
Logging utilities for Lightsprint

Every hook and command appends to the same sync log, so lines are kept short
and payloads are truncated before they are written.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"


class TruncatingFormatter(logging.Formatter):
    """Formatter that truncates the message part of long log lines"""

    def __init__(
        self,
        *args: Any,
        max_length: int = 200,
        truncate_enabled: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.max_length = max_length
        self.truncate_enabled = truncate_enabled

    def format(self, record: logging.LogRecord) -> str:
        msg = super().format(record)

        if self.truncate_enabled and len(msg) > self.max_length:
            # timestamp - name - level - func:line - message
            parts = msg.split(" - ", 4)
            if len(parts) >= 5:
                prefix = " - ".join(parts[:4])
                message = parts[4]
                if len(message) > self.max_length:
                    msg = f"{prefix} - {message[: self.max_length]}... [truncated]"

        return msg


def truncate_value(value: Any, max_length: int = 100) -> str:
    """Truncate a value for logging purposes

    Args:
        value: Value to truncate
        max_length: Maximum length before truncation

    Returns:
        String representation of value, truncated if necessary
    """
    if value is None:
        return "None"

    if isinstance(value, str):
        if len(value) > max_length:
            return f"{value[:max_length]}... [{len(value)} chars total]"
        return value

    if isinstance(value, (dict, list)):
        try:
            json_str = json.dumps(value)
        except (TypeError, ValueError):
            json_str = str(value)
        if len(json_str) > max_length:
            unit = "keys" if isinstance(value, dict) else "items"
            return f"{json_str[:max_length]}... [{len(value)} {unit} total]"
        return json_str

    str_val = str(value)
    if len(str_val) > max_length:
        return f"{str_val[:max_length]}... [{len(str_val)} chars total]"
    return str_val


def format_hook_context(context: Dict[str, Any], max_value_length: int = 100) -> str:
    """Format a hook payload for logging with truncation

    Args:
        context: Hook payload dictionary
        max_value_length: Maximum length for each value

    Returns:
        Formatted string representation
    """
    formatted_parts = []

    priority_keys = ["hook_event_name", "tool_name", "session_id", "cwd", "tool_input"]

    for key in priority_keys:
        if key in context:
            formatted_parts.append(f"{key}: {truncate_value(context[key], max_value_length)}")

    for key, value in context.items():
        if key not in priority_keys:
            formatted_parts.append(f"{key}: {truncate_value(value, max_value_length)}")

    return "{ " + ", ".join(formatted_parts) + " }"


def setup_logger(
    name: str,
    log_file: Union[str, Path],
    level: int = logging.DEBUG,
    truncate: bool = True,
    max_length: int = 300,
) -> logging.Logger:
    """Set up a logger that appends to the sync log

    A log file that cannot be opened leaves the logger with a NullHandler;
    logging must never break a hook.

    Args:
        name: Logger name
        log_file: Path to log file
        level: Logging level
        truncate: Whether to enable truncation
        max_length: Maximum message length before truncation

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    target = os.path.abspath(str(log_file))
    for existing in list(logger.handlers):
        # Settings may point at a different config dir than the last call
        if getattr(existing, "baseFilename", None) != target:
            logger.removeHandler(existing)
            existing.close()

    if not logger.handlers:
        handler: logging.Handler
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(str(log_file), mode="a", encoding="utf-8")
        except OSError:
            handler = logging.NullHandler()

        handler.setLevel(level)
        handler.setFormatter(
            TruncatingFormatter(LOG_FORMAT, max_length=max_length, truncate_enabled=truncate)
        )
        logger.addHandler(handler)

    return logger
