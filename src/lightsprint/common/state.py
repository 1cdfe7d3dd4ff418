"""
Persisted Lightsprint state records

Project links, the task id map and the active plan/task pointers all live as
JSON files in the config directory. On-disk keys are camelCase.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from .store import JsonFileStore

# Refresh the access token when it expires within this many milliseconds
REFRESH_WINDOW_MS = 5 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ProjectLink:
    """OAuth credentials and remote project bound to a local folder"""

    folder: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    base_url: Optional[str] = None
    skipped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the on-disk representation (folder is the key, not a field)"""
        if self.skipped:
            return {"skipped": True}
        data: Dict[str, Any] = {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresAt": self.expires_at,
            "projectId": self.project_id,
            "projectName": self.project_name,
        }
        if self.base_url:
            data["baseUrl"] = self.base_url
        return data

    @classmethod
    def from_dict(cls, folder: str, data: Dict[str, Any]) -> "ProjectLink":
        expires_at = data.get("expiresAt")
        return cls(
            folder=folder,
            access_token=data.get("accessToken"),
            refresh_token=data.get("refreshToken"),
            expires_at=int(expires_at) if isinstance(expires_at, (int, float)) else None,
            project_id=data.get("projectId"),
            project_name=data.get("projectName"),
            base_url=data.get("baseUrl"),
            skipped=bool(data.get("skipped", False)),
        )

    def needs_refresh(self, now: Optional[int] = None) -> bool:
        """True when the token expires within the refresh window or already has"""
        if self.expires_at is None:
            return False
        if now is None:
            now = now_ms()
        return self.expires_at - now < REFRESH_WINDOW_MS

    def remaining_ms(self, now: Optional[int] = None) -> Optional[int]:
        if self.expires_at is None:
            return None
        return self.expires_at - (now if now is not None else now_ms())


class ProjectRegistry:
    """The projects.json table, keyed by absolute folder path"""

    def __init__(self, path: Path) -> None:
        self.store = JsonFileStore(path)

    def all(self) -> Dict[str, Dict[str, Any]]:
        return {k: v for k, v in self.store.read().items() if isinstance(v, dict)}

    def get(self, folder: str) -> Optional[ProjectLink]:
        entry = self.all().get(folder)
        if entry is None:
            return None
        return ProjectLink.from_dict(folder, entry)

    def save(self, link: ProjectLink) -> None:
        def _set(data: Dict[str, Any]) -> None:
            data[link.folder] = link.to_dict()

        self.store.update(_set)

    def remove(self, folder: str) -> Optional[Dict[str, Any]]:
        removed: Dict[str, Any] = {}

        def _pop(data: Dict[str, Any]) -> None:
            if folder in data:
                removed[folder] = data.pop(folder)

        self.store.update(_pop)
        return removed.get(folder)


class TaskMap:
    """Claude Code task id -> Lightsprint task id"""

    def __init__(self, path: Path) -> None:
        self.store = JsonFileStore(path)

    def set_mapping(self, local_id: str, remote_id: str) -> None:
        def _set(data: Dict[str, Any]) -> None:
            data[str(local_id)] = remote_id

        self.store.update(_set)

    def get_mapping(self, local_id: str) -> Optional[str]:
        value = self.store.read().get(str(local_id))
        return str(value) if value else None


@dataclass
class ActivePlan:
    """The plan currently awaiting review"""

    plan_id: str
    project_id: str
    session_id: Optional[str] = None
    updated_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "planId": self.plan_id,
            "projectId": self.project_id,
            "sessionId": self.session_id,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["ActivePlan"]:
        if not data.get("planId") or not data.get("projectId"):
            return None
        return cls(
            plan_id=data["planId"],
            project_id=data["projectId"],
            session_id=data.get("sessionId"),
            updated_at=data.get("updatedAt") or _utc_now(),
        )

    def matches(self, project_id: str, session_id: Optional[str]) -> bool:
        return self.project_id == project_id and self.session_id == session_id


class PlanTracker:
    """Pointer to the active plan so resubmissions become new versions"""

    def __init__(self, path: Path) -> None:
        self.store = JsonFileStore(path)

    def get(self) -> Optional[ActivePlan]:
        return ActivePlan.from_dict(self.store.read())

    def set(self, plan_id: str, project_id: str, session_id: Optional[str]) -> ActivePlan:
        plan = ActivePlan(plan_id=plan_id, project_id=project_id, session_id=session_id)
        self.store.write(plan.to_dict())
        return plan

    def clear(self) -> None:
        self.store.clear()


@dataclass
class ActiveTask:
    """The remote task currently in progress"""

    task_id: str
    updated_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {"taskId": self.task_id, "updatedAt": self.updated_at}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["ActiveTask"]:
        if not data.get("taskId"):
            return None
        return cls(task_id=str(data["taskId"]), updated_at=data.get("updatedAt") or _utc_now())


class ActiveTaskTracker:
    """Pointer to the in-progress task, used to annotate sub-agent spawns"""

    def __init__(self, path: Path) -> None:
        self.store = JsonFileStore(path)

    def get(self) -> Optional[ActiveTask]:
        return ActiveTask.from_dict(self.store.read())

    def set(self, task_id: str) -> ActiveTask:
        task = ActiveTask(task_id=str(task_id))
        self.store.write(task.to_dict())
        return task

    def clear(self, task_id: Optional[str] = None) -> bool:
        """Clear the pointer

        Args:
            task_id: Only clear if this task is the active one

        Returns:
            True if the pointer was removed
        """
        if task_id is not None:
            current = self.get()
            if current is None or current.task_id != str(task_id):
                return False
        self.store.clear()
        return True
