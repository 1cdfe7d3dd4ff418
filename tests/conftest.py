"""Shared fixtures for the Lightsprint test suite"""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple
from unittest.mock import MagicMock
from urllib.parse import urlsplit

import pytest
import requests

from lightsprint.common.context import LightsprintContext
from lightsprint.common.settings import Settings
from lightsprint.common.state import ProjectLink, ProjectRegistry, now_ms

HOUR_MS = 60 * 60 * 1000


def json_response(status: int = 200, body: Any = None) -> requests.Response:
    """Build a real requests.Response carrying a JSON body"""
    response = requests.Response()
    response.status_code = status
    if body is None:
        response._content = b""
    elif isinstance(body, str):
        response._content = body.encode("utf-8")
    else:
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    response.url = "https://lightsprint.test"
    return response


@pytest.fixture
def respond() -> Callable[..., requests.Response]:
    return json_response


@pytest.fixture
def lightsprint_home(tmp_path, monkeypatch):
    """Point the config directory at a temp dir and keep browsers closed"""
    home = tmp_path / "lightsprint-home"
    monkeypatch.setenv("LIGHTSPRINT_HOME", str(home))
    monkeypatch.setenv("LIGHTSPRINT_NO_BROWSER", "1")
    monkeypatch.delenv("LIGHTSPRINT_BASE_URL", raising=False)
    monkeypatch.delenv("LIGHTSPRINT_REVIEW_TIMEOUT", raising=False)
    monkeypatch.delenv("LIGHTSPRINT_OAUTH_TIMEOUT", raising=False)
    return home


@pytest.fixture
def settings(lightsprint_home) -> Settings:
    return Settings.from_env()


@pytest.fixture
def project_dir(tmp_path):
    folder = tmp_path / "project"
    folder.mkdir()
    return folder


@pytest.fixture
def session() -> MagicMock:
    """Stand-in for requests.Session; tests program .request and .post"""
    return MagicMock(spec=requests.Session)


@pytest.fixture
def make_link(settings, project_dir) -> Callable[..., ProjectLink]:
    def _make(folder: Optional[str] = None, expires_in_ms: Optional[int] = 2 * HOUR_MS, **fields: Any) -> ProjectLink:
        link = ProjectLink(
            folder=folder or str(project_dir),
            access_token=fields.pop("access_token", "access-1"),
            refresh_token=fields.pop("refresh_token", "refresh-1"),
            expires_at=None if expires_in_ms is None else now_ms() + expires_in_ms,
            project_id=fields.pop("project_id", "proj-1"),
            project_name=fields.pop("project_name", "Demo Project"),
            base_url=fields.pop("base_url", "https://lightsprint.test"),
            **fields,
        )
        ProjectRegistry(settings.projects_file).save(link)
        return link

    return _make


@pytest.fixture
def context(settings, project_dir, session) -> LightsprintContext:
    """Context for an unlinked project folder"""
    return LightsprintContext(settings, cwd=str(project_dir), session=session)


@pytest.fixture
def linked_context(settings, project_dir, session, make_link) -> LightsprintContext:
    """Context for a folder linked to proj-1 with a token valid for two hours"""
    make_link()
    return LightsprintContext(settings, cwd=str(project_dir), session=session)


PROJECT_INFO = {
    "project": {"id": "proj-1", "name": "Demo Project", "fullName": "acme/demo"},
    "scopes": ["tasks:read", "tasks:write"],
}


class FakeApi:
    """Routes session.request calls by (method, path) and records them"""

    def __init__(self, session: MagicMock) -> None:
        self.routes: Dict[Tuple[str, str], Any] = {}
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        session.request.side_effect = self
        self.on("GET", "/api/project-key/info", 200, PROJECT_INFO)

    def on(self, method: str, path: str, status: int = 200, body: Any = None) -> "FakeApi":
        self.routes[(method, path)] = (status, body)
        return self

    def fail(self, method: str, path: str, error: Exception) -> "FakeApi":
        self.routes[(method, path)] = error
        return self

    def __call__(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        path = urlsplit(url).path
        self.calls.append((method, path, kwargs))
        route = self.routes.get((method, path))
        if route is None:
            return json_response(404, {"error": f"no route for {method} {path}"})
        if isinstance(route, Exception):
            raise route
        return json_response(*route)

    def paths(self, method: Optional[str] = None) -> List[str]:
        return [path for m, path, _ in self.calls if method is None or m == method]

    def body(self, method: str, path: str) -> Any:
        for m, p, kwargs in self.calls:
            if m == method and p == path:
                return kwargs.get("json")
        raise AssertionError(f"{method} {path} was not called")


@pytest.fixture
def api(session) -> FakeApi:
    return FakeApi(session)
