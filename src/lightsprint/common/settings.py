"""
Runtime settings for Lightsprint

Everything is read from the environment once per process; the config
directory holds the JSON state files and the sync log.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_BASE_URL = "https://lightsprint.ai"

# Seconds to wait for the browser to call back
OAUTH_TIMEOUT = 120
REVIEW_TIMEOUT = 4 * 24 * 60 * 60

PROJECTS_FILE = "projects.json"
TASK_MAP_FILE = "task-map.json"
ACTIVE_PLAN_FILE = "active-plan.json"
ACTIVE_TASK_FILE = "active-task.json"
LOG_FILE = "sync.log"


def _env_seconds(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass
class Settings:
    """Process-wide configuration resolved from environment variables"""

    config_dir: Path
    base_url_override: Optional[str] = None
    oauth_timeout: float = OAUTH_TIMEOUT
    review_timeout: float = REVIEW_TIMEOUT
    log_level: int = logging.DEBUG
    open_browser: bool = True

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from the environment

        Args:
            env: Mapping to read instead of os.environ (used by tests)

        Returns:
            Settings instance
        """
        if env is None:
            env = os.environ

        home = env.get("LIGHTSPRINT_HOME")
        config_dir = Path(home).expanduser() if home else Path.home() / ".lightsprint"

        level_name = env.get("LIGHTSPRINT_LOG_LEVEL", "DEBUG").upper()
        log_level = logging.getLevelName(level_name)
        if not isinstance(log_level, int):
            log_level = logging.DEBUG

        return cls(
            config_dir=config_dir,
            base_url_override=env.get("LIGHTSPRINT_BASE_URL") or None,
            oauth_timeout=_env_seconds(env, "LIGHTSPRINT_OAUTH_TIMEOUT", OAUTH_TIMEOUT),
            review_timeout=_env_seconds(env, "LIGHTSPRINT_REVIEW_TIMEOUT", REVIEW_TIMEOUT),
            log_level=log_level,
            open_browser=not env.get("LIGHTSPRINT_NO_BROWSER"),
        )

    @property
    def default_base_url(self) -> str:
        return self.base_url_override or DEFAULT_BASE_URL

    @property
    def projects_file(self) -> Path:
        return self.config_dir / PROJECTS_FILE

    @property
    def task_map_file(self) -> Path:
        return self.config_dir / TASK_MAP_FILE

    @property
    def active_plan_file(self) -> Path:
        return self.config_dir / ACTIVE_PLAN_FILE

    @property
    def active_task_file(self) -> Path:
        return self.config_dir / ACTIVE_TASK_FILE

    @property
    def log_file(self) -> Path:
        return self.config_dir / LOG_FILE

    def ensure_config_dir(self) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
