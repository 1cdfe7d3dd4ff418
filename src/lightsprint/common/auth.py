"""
On-demand OAuth flow for Lightsprint

Opens the browser on /authorize-cli, waits for the redirect to the local
callback server and stores the tokens for the folder in projects.json.
"""

import logging
import os
import webbrowser
from typing import Optional
from urllib.parse import quote

import click

from .callback_server import OAuthCallback, find_free_port, wait_for_callback
from .config import get_git_repo_full_name
from .errors import AuthenticationError
from .settings import Settings
from .state import ProjectLink, ProjectRegistry, now_ms

SCOPES = "tasks:read+tasks:write+comments:write+plans:read+plans:write"

logger = logging.getLogger("lightsprint")


def open_browser(url: str, settings: Optional[Settings] = None) -> bool:
    """Open url in the default browser, printing it when that is not possible

    Returns:
        True if a browser was launched
    """
    opened = False
    if settings is None or settings.open_browser:
        try:
            opened = webbrowser.open(url)
        except webbrowser.Error as e:
            logger.warning(f"Could not open browser: {e}")

    if not opened:
        click.echo("Open this URL in your browser:", err=True)
        click.echo(f"  {url}", err=True)
    return opened


def build_authorize_url(base_url: str, port: int, repo_full_name: Optional[str] = None) -> str:
    url = f"{base_url.rstrip('/')}/authorize-cli?port={port}&scope={SCOPES}"
    if repo_full_name:
        url += f"&repo={quote(repo_full_name, safe='')}"
    return url


def authenticate(
    settings: Settings,
    base_url: Optional[str] = None,
    cwd: Optional[str] = None,
    quiet: bool = False,
) -> ProjectLink:
    """Run the browser OAuth flow and link the folder

    Args:
        settings: Runtime settings
        base_url: Lightsprint instance to authorize against
        cwd: Folder to link (defaults to the process cwd)
        quiet: Suppress progress output on stdout (hook contexts)

    Returns:
        The stored link; ``skipped`` is set if the user declined

    Raises:
        CallbackTimeout: The browser never called back
        AuthenticationError: The callback carried no access token
    """
    base_url = base_url or settings.default_base_url
    folder = os.path.abspath(cwd or os.getcwd())
    settings.ensure_config_dir()
    registry = ProjectRegistry(settings.projects_file)

    port = find_free_port()
    authorize_url = build_authorize_url(base_url, port, get_git_repo_full_name(folder))

    if not quiet:
        click.echo("Opening browser to authorize with Lightsprint...")
    logger.info(f"Starting OAuth for {folder} on port {port}")

    result = wait_for_callback(
        port,
        settings.oauth_timeout,
        OAuthCallback.from_query,
        OAuthCallback.page,
        timeout_message="Authorization timed out. Please try again.",
        on_ready=lambda _url: open_browser(authorize_url, settings),
    )

    if result.skipped:
        link = ProjectLink(folder=folder, skipped=True)
        registry.save(link)
        logger.info(f"OAuth skipped for {folder}")
        if not quiet:
            click.echo("Lightsprint skipped for this folder.")
        return link

    if not result.access_token:
        raise AuthenticationError("Authorization failed: no access token received.")

    expires_at = None
    if result.expires_in:
        try:
            expires_at = now_ms() + int(result.expires_in) * 1000
        except ValueError:
            logger.warning(f"Ignoring malformed expires_in: {result.expires_in!r}")

    link = ProjectLink(
        folder=folder,
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        expires_at=expires_at,
        project_id=result.project_id,
        project_name=result.project_name,
        base_url=base_url,
    )
    registry.save(link)
    logger.info(f"Connected {folder} to project {result.project_id}")

    if not quiet:
        click.echo(f"Connected to project: {result.project_name}")
    return link
