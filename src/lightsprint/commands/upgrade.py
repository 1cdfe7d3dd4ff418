"""Upgrade command for the Lightsprint CLI"""

import os
import re
import shutil
import subprocess
import sys
from typing import List

import click
import requests
from rich.console import Console

from lightsprint import __version__
from lightsprint.common.context import LightsprintContext
from lightsprint.common.errors import LightsprintError

console = Console(highlight=False)

UPGRADE_REPO = "SprintsAI/lightsprint-claude-code-plugin"
RELEASES_URL = f"https://api.github.com/repos/{UPGRADE_REPO}/releases/latest"
SAFE_VERSION = re.compile(r"^[0-9A-Za-z][0-9A-Za-z.+\-]*$")


def fetch_latest_tag(session: requests.Session) -> str:
    """Tag name of the latest GitHub release"""
    try:
        response = session.get(
            RELEASES_URL,
            headers={"Accept": "application/vnd.github.v3+json", "User-Agent": "lightsprint-cli"},
            timeout=30,
        )
    except requests.RequestException as e:
        raise LightsprintError(f"Failed to check for updates: {e}") from e
    if not response.ok:
        raise LightsprintError(f"Failed to check for updates (HTTP {response.status_code})")

    tag = (response.json() or {}).get("tag_name") or ""
    if not SAFE_VERSION.match(tag.lstrip("v")):
        raise LightsprintError(f"Invalid characters in version from release tag: {tag!r}")
    return tag


def install_command(tag: str) -> List[str]:
    """pipx when running from a pipx venv, pip otherwise"""
    source = f"git+https://github.com/{UPGRADE_REPO}.git@{tag}"
    if "pipx" in sys.prefix.split(os.sep) and shutil.which("pipx"):
        return ["pipx", "install", "--force", source]
    return [sys.executable, "-m", "pip", "install", "--upgrade", source]


@click.command()
@click.pass_obj
def upgrade(obj: LightsprintContext) -> None:
    """Install the latest release from GitHub"""
    console.print("Checking for updates...")
    tag = fetch_latest_tag(obj.session or requests.Session())
    latest = tag.lstrip("v")

    if latest == __version__:
        console.print(f"[green]Already up to date (v{__version__}).[/green]")
        return

    console.print(f"Current version: v{__version__}")
    console.print(f"Latest version:  v{latest}")

    cmd = install_command(tag)
    console.print(f"[cyan]Running: {' '.join(cmd)}[/cyan]")
    try:
        subprocess.run(cmd, check=True)
    except (OSError, subprocess.CalledProcessError) as e:
        raise LightsprintError(f"Upgrade failed: {e}") from e

    obj.logger().info(f"Upgraded v{__version__} -> v{latest}")
    console.print(f"\n[bold green]Upgraded lightsprint v{__version__} → v{latest}[/bold green]")
