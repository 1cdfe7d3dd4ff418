"""
Claude Code hook input/output helpers
"""

import json
import re
import sys
from typing import Any, Dict, Optional, TextIO

# A "plan" string value that may contain raw control characters
_PLAN_VALUE = re.compile(r'"plan"\s*:\s*"([\s\S]*?)"(?=\s*[,}\]])')


def _escape_plan(match: "re.Match[str]") -> str:
    plan = match.group(1)
    plan = (
        plan.replace("\\", "\\\\")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
        .replace('"', '\\"')
    )
    return f'"plan":"{plan}"'


def parse_hook_payload(raw: str) -> Dict[str, Any]:
    """Parse a hook payload, repairing an unescaped plan string if needed

    Claude Code can deliver ExitPlanMode input with literal newlines inside
    tool_input.plan; only that value is re-escaped.

    Raises:
        ValueError: The payload is not valid JSON, even after repair
    """
    text = raw.rstrip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        if not _PLAN_VALUE.search(text):
            raise
        data = json.loads(_PLAN_VALUE.sub(_escape_plan, text))

    if not isinstance(data, dict):
        raise ValueError("Hook payload must be a JSON object")
    return data


class HookHandler:
    """Utility class for handling Claude Code hook input/output"""

    @staticmethod
    def read_hook_input(stream: Optional[TextIO] = None) -> Dict[str, Any]:
        """Read and parse the hook payload from stdin

        Raises:
            ValueError: Invalid JSON input
        """
        return parse_hook_payload((stream or sys.stdin).read())

    @staticmethod
    def write_hook_output(output: Dict[str, Any], stream: Optional[TextIO] = None) -> None:
        out = stream or sys.stdout
        out.write(json.dumps(output))
        out.flush()

    @staticmethod
    def create_permission_response(behavior: str, message: Optional[str] = None) -> Dict[str, Any]:
        """PermissionRequest hook output

        Args:
            behavior: "allow" or "deny"
            message: Feedback shown to the agent on deny
        """
        decision: Dict[str, Any] = {"behavior": behavior}
        if message is not None:
            decision["message"] = message
        return {
            "hookSpecificOutput": {
                "hookEventName": "PermissionRequest",
                "decision": decision,
            }
        }

    @staticmethod
    def create_allow_response() -> Dict[str, Any]:
        return HookHandler.create_permission_response("allow")
