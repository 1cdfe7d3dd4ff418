"""
Status mapping between Claude Code tasks and Lightsprint board columns

Claude Code: pending -> in_progress -> completed (+ deleted)
Lightsprint: todo -> in_progress -> in_review -> done
"""

from typing import Optional

CC_TO_LS = {
    "pending": "todo",
    "in_progress": "in_progress",
    "completed": "done",
}

LS_TO_CC = {
    "todo": "pending",
    "in_progress": "in_progress",
    "in_review": "in_progress",
    "done": "completed",
}

COLUMN_NAMES = {
    "todo": "Todo",
    "in_progress": "In Progress",
    "in_review": "In Review",
    "done": "Done",
}

LS_STATUSES = list(COLUMN_NAMES)
COMPLEXITIES = ["trivial", "low", "medium", "high", "critical"]


def cc_to_ls_status(cc_status: str) -> Optional[str]:
    return CC_TO_LS.get(cc_status)


def ls_to_cc_status(ls_status: str) -> Optional[str]:
    return LS_TO_CC.get(ls_status)


def status_to_column_name(status: str) -> str:
    """Board column name used by the task list filter"""
    return COLUMN_NAMES.get(status, status)
