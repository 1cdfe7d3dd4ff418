"""
Claude Code hook handlers for Lightsprint
"""

from .base import HookHandler, parse_hook_payload
from .plan_extraction import extract_plan
from .plan_review import PlanReviewHook, ReviewDecision, review_plan
from .task_sync import TaskSyncHook

__all__ = [
    "HookHandler",
    "PlanReviewHook",
    "ReviewDecision",
    "TaskSyncHook",
    "extract_plan",
    "parse_hook_payload",
    "review_plan",
]
