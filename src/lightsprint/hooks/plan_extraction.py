"""
Plan text extraction for ExitPlanMode reviews

ExitPlanMode does not always carry the plan in its input. The plan is then
recovered from the session transcript (the last Write to a plan-like file) or
from a conventional plan file in the working directory.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

PLAN_FILE_PATTERN = re.compile(r"plan[^/]*\.md$", re.IGNORECASE)
PLAN_FILE_CANDIDATES = (Path(".claude") / "plan.md", Path("plan.md"))

logger = logging.getLogger("review_plan")


def is_plan_file(file_path: str) -> bool:
    return bool(PLAN_FILE_PATTERN.search(file_path)) or ".claude/plan" in file_path


def _plan_write_in_entry(entry: Any) -> Optional[Dict[str, Any]]:
    """Input of the first plan-file Write in an assistant transcript entry"""
    if not isinstance(entry, dict):
        return None
    message = entry.get("message")
    if not isinstance(message, dict) or message.get("role") != "assistant":
        return None
    content = message.get("content")
    if not isinstance(content, list):
        return None

    for block in content:
        if not isinstance(block, dict):
            continue
        if block.get("type") != "tool_use" or block.get("name") != "Write":
            continue
        tool_input = block.get("input")
        if not isinstance(tool_input, dict):
            continue
        if is_plan_file(str(tool_input.get("file_path") or "")):
            return tool_input
    return None


def scan_transcript_lines(lines: Iterable[str]) -> Optional[str]:
    """Content of the most recent plan-file Write, scanning lines in reverse

    Lines that are not valid JSON are skipped.
    """
    for line in reversed(list(lines)):
        if not line.strip():
            continue
        try:
            entry = json.loads(line)
        except ValueError:
            continue
        tool_input = _plan_write_in_entry(entry)
        if tool_input is None:
            continue
        content = tool_input.get("content")
        if isinstance(content, str) and content:
            logger.info(
                f"Extracted plan from transcript Write to {tool_input.get('file_path')} "
                f"({len(content)} chars)"
            )
            return content
    return None


def extract_plan_from_transcript(transcript_path: Optional[str]) -> Optional[str]:
    """Find the last plan written during the session"""
    if not transcript_path:
        logger.debug("No transcript path")
        return None
    try:
        text = Path(transcript_path).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug(f"Transcript not readable: {transcript_path} ({e})")
        return None

    plan = scan_transcript_lines(text.splitlines())
    if plan is None:
        logger.debug("No plan Write call found in transcript")
    return plan


def read_plan_from_file(cwd: str) -> Optional[str]:
    """First non-empty conventional plan file under cwd"""
    for candidate in PLAN_FILE_CANDIDATES:
        path = Path(cwd) / candidate
        try:
            if not path.is_file():
                continue
            content = path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError):
            continue
        if content:
            logger.info(f"Read plan from {path} ({len(content)} chars)")
            return content
    return None


def extract_plan(payload: Dict[str, Any], cwd: str) -> Optional[str]:
    """Resolve the plan to review, or None if no source has one

    Order: tool_input.plan, then the transcript, then plan files in cwd.
    """
    tool_input = payload.get("tool_input")
    if isinstance(tool_input, dict):
        plan = tool_input.get("plan")
        if isinstance(plan, str) and plan:
            return plan

    plan = extract_plan_from_transcript(payload.get("transcript_path"))
    if plan:
        return plan

    return read_plan_from_file(cwd)
