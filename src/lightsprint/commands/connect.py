"""Connect and disconnect commands for the Lightsprint CLI"""

from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from lightsprint.common.auth import authenticate
from lightsprint.common.config import folders_to_disconnect
from lightsprint.common.context import LightsprintContext

console = Console(highlight=False)


@click.command()
@click.option("--base-url", help="Connect to a custom Lightsprint instance")
@click.pass_obj
def connect(obj: LightsprintContext, base_url: Optional[str]) -> None:
    """Authenticate and link this folder to a Lightsprint project"""
    link = authenticate(obj.settings, base_url or obj.settings.default_base_url, cwd=obj.cwd)
    if not link.skipped:
        obj.use_link(link)
        obj.logger().info(f"Connected {link.folder} to {link.project_id}")


@click.command()
@click.pass_obj
def disconnect(obj: LightsprintContext) -> None:
    """Remove Lightsprint credentials for the current folder"""
    folders = folders_to_disconnect(obj.registry, obj.cwd)
    if not folders:
        console.print("No Lightsprint connection found for this folder.")
        return

    for folder in folders:
        entry = obj.registry.remove(folder) or {}
        name = entry.get("projectName") or entry.get("baseUrl") or "unknown"
        console.print(f"[bold green]Disconnected:[/bold green] {escape(name)} ({escape(folder)})")
        obj.logger().info(f"Disconnected {folder}")
