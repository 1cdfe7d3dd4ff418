"""
Per-invocation runtime context

Built once per process and passed explicitly to commands and hooks. It owns
the resolved project link, the API client and the memoized project info.
"""

import logging
import os
from typing import Any, Dict, Optional

import requests

from .auth import authenticate
from .client import ApiClient
from .config import find_project_link
from .errors import NotConnectedError
from .log_utils import setup_logger
from .settings import Settings
from .state import ActiveTaskTracker, PlanTracker, ProjectLink, ProjectRegistry, TaskMap


class LightsprintContext:
    """Settings, state files and lazily created API access for one folder"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cwd: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize the context

        Args:
            settings: Runtime settings (read from the environment if omitted)
            cwd: Folder whose project link is used
            session: requests session handed to the API client
        """
        self.settings = settings or Settings.from_env()
        self.cwd = os.path.abspath(cwd or os.getcwd())
        self.session = session

        # Client, OAuth and callback server messages go to the same sync log as the hooks
        setup_logger("lightsprint", self.settings.log_file, self.settings.log_level)

        self.registry = ProjectRegistry(self.settings.projects_file)
        self.task_map = TaskMap(self.settings.task_map_file)
        self.plans = PlanTracker(self.settings.active_plan_file)
        self.active_task = ActiveTaskTracker(self.settings.active_task_file)

        self._link: Optional[ProjectLink] = None
        self._link_resolved = False
        self._client: Optional[ApiClient] = None
        self._project_info: Optional[Dict[str, Any]] = None

    def for_folder(self, cwd: Optional[str]) -> "LightsprintContext":
        """Context for another folder (hooks report their cwd in the payload)"""
        if not cwd or os.path.abspath(cwd) == self.cwd:
            return self
        return LightsprintContext(self.settings, cwd, self.session)

    def logger(self, name: str = "lightsprint") -> logging.Logger:
        return setup_logger(name, self.settings.log_file, self.settings.log_level)

    def find_link(self) -> Optional[ProjectLink]:
        """Nearest project link for cwd, skipped entries included"""
        if not self._link_resolved:
            self._link = find_project_link(self.registry, self.cwd)
            self._link_resolved = True
        return self._link

    def get_link(self) -> Optional[ProjectLink]:
        """Usable link for cwd, or None for unconfigured and skipped folders"""
        link = self.find_link()
        if link is None or link.skipped or not link.access_token:
            return None
        return link

    def use_link(self, link: ProjectLink) -> None:
        """Adopt a freshly authorized link for the rest of this invocation"""
        self._link = link
        self._link_resolved = True
        self._client = None
        self._project_info = None

    def require_link(self, quiet: bool = False) -> ProjectLink:
        """Usable link for cwd, running the OAuth flow if there is none

        Raises:
            NotConnectedError: The folder was skipped, now or previously
        """
        link = self.find_link()
        if link is not None and link.skipped:
            raise NotConnectedError(link.folder, skipped=True)

        usable = self.get_link()
        if usable is not None:
            return usable

        link = authenticate(self.settings, self.settings.default_base_url, cwd=self.cwd, quiet=quiet)
        if link.skipped:
            raise NotConnectedError(link.folder, skipped=True)
        self.use_link(link)
        return link

    def base_url(self, link: Optional[ProjectLink] = None) -> str:
        """Environment override, then the link's stored URL, then the default"""
        link = link or self.find_link()
        if self.settings.base_url_override:
            return self.settings.base_url_override
        if link is not None and link.base_url:
            return link.base_url
        return self.settings.default_base_url

    @property
    def client(self) -> ApiClient:
        """API client for the current folder (may trigger OAuth)"""
        if self._client is None:
            link = self.require_link()
            self._client = ApiClient(
                link, self.base_url(link), registry=self.registry, session=self.session
            )
        return self._client

    def project_info(self) -> Dict[str, Any]:
        """GET /api/project-key/info, memoized for this invocation"""
        if self._project_info is None:
            self._project_info = self.client.get("/api/project-key/info") or {}
        return self._project_info

    def project_id(self) -> str:
        info = self.project_info()
        project = info.get("project") or {}
        project_id = project.get("id") or self.client.link.project_id
        if not project_id:
            raise NotConnectedError(self.cwd)
        return str(project_id)
