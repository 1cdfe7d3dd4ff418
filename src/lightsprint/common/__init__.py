"""
Lightsprint Common Library

Shared functionality for the Lightsprint CLI and Claude Code hooks: settings,
state files, the API client and the local callback server.
"""

from .callback_server import (
    CallbackServer,
    OAuthCallback,
    ReviewCallback,
    find_free_port,
    wait_for_callback,
)
from .client import ApiClient
from .context import LightsprintContext
from .errors import (
    ApiError,
    AuthenticationError,
    CallbackTimeout,
    LightsprintError,
    NotConnectedError,
)
from .log_utils import format_hook_context, setup_logger, truncate_value
from .settings import Settings
from .state import (
    ActivePlan,
    ActiveTask,
    ActiveTaskTracker,
    PlanTracker,
    ProjectLink,
    ProjectRegistry,
    TaskMap,
)
from .store import JsonFileStore

__all__ = [
    "ActivePlan",
    "ActiveTask",
    "ActiveTaskTracker",
    "ApiClient",
    "ApiError",
    "AuthenticationError",
    "CallbackServer",
    "CallbackTimeout",
    "JsonFileStore",
    "LightsprintContext",
    "LightsprintError",
    "NotConnectedError",
    "OAuthCallback",
    "PlanTracker",
    "ProjectLink",
    "ProjectRegistry",
    "ReviewCallback",
    "Settings",
    "TaskMap",
    "find_free_port",
    "format_hook_context",
    "setup_logger",
    "truncate_value",
    "wait_for_callback",
]
