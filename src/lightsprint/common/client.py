"""
HTTP client for the Lightsprint API

Bearer-token auth with a refresh-before-request check. The refreshed tokens
are written back to the folder's project link.
"""

import logging
from typing import Any, Dict, Optional

import requests

from .errors import ApiError, AuthenticationError, LightsprintError
from .state import ProjectLink, ProjectRegistry, now_ms

DEFAULT_TIMEOUT = 30

logger = logging.getLogger("lightsprint")


class ApiClient:
    """Authenticated client bound to one project link"""

    def __init__(
        self,
        link: ProjectLink,
        base_url: str,
        registry: Optional[ProjectRegistry] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the client

        Args:
            link: Credentials and project of the current folder
            base_url: Root URL of the Lightsprint instance
            registry: Where refreshed tokens are persisted (None to skip)
            session: requests session to reuse
            timeout: Per-request network timeout in seconds
        """
        self.link = link
        self.base_url = base_url.rstrip("/")
        self.registry = registry
        self.session = session or requests.Session()
        self.timeout = timeout

    def ensure_fresh_token(self) -> None:
        """Refresh the access token if it expires within the refresh window

        Raises:
            AuthenticationError: No refresh token, or the refresh was rejected
        """
        if not self.link.needs_refresh():
            return

        reconnect = (
            f"Your Lightsprint session for {self.link.folder} has expired. "
            "Run 'lightsprint connect' to re-authenticate."
        )
        if not self.link.refresh_token:
            raise AuthenticationError(reconnect)

        logger.info(f"Refreshing access token for {self.link.folder}")
        try:
            response = self.session.post(
                f"{self.base_url}/oauth/token",
                json={"grant_type": "refresh_token", "refresh_token": self.link.refresh_token},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AuthenticationError(f"{reconnect} ({e})") from e

        if not response.ok:
            logger.warning(f"Token refresh rejected: {response.status_code}")
            raise AuthenticationError(reconnect)

        try:
            payload = response.json()
        except ValueError as e:
            raise AuthenticationError(reconnect) from e

        access_token = payload.get("access_token")
        if not access_token:
            raise AuthenticationError(reconnect)

        self.link.access_token = access_token
        if payload.get("refresh_token"):
            self.link.refresh_token = payload["refresh_token"]
        expires_in = payload.get("expires_in")
        if expires_in is not None:
            self.link.expires_at = now_ms() + int(expires_in) * 1000
        else:
            self.link.expires_at = None

        if self.registry is not None:
            self.registry.save(self.link)
        logger.info("Access token refreshed")

    def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Make an authenticated request

        Args:
            method: HTTP method
            path: API path, e.g. '/api/projects/abc/tasks'
            json: JSON body
            params: Query parameters

        Returns:
            Parsed JSON response, or None for 204 No Content

        Raises:
            ApiError: Non-2xx response
            AuthenticationError: Token refresh failed
        """
        self.ensure_fresh_token()

        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                json=json,
                params=params,
                headers={
                    "Authorization": f"Bearer {self.link.access_token}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise LightsprintError(f"Could not reach Lightsprint at {url}: {e}") from e

        if not response.ok:
            raise ApiError(response.status_code, response.text or "", url=url)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("PUT", path, json=json)

    def patch(self, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("PATCH", path, json=json)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)
