"""Status command for the Lightsprint CLI"""

import click
from rich.console import Console
from rich.markup import escape

from lightsprint.common.context import LightsprintContext

console = Console(highlight=False)


def _format_remaining(remaining_ms: int) -> str:
    if remaining_ms <= 0:
        return "expired"
    hours = remaining_ms // 3_600_000
    minutes = (remaining_ms % 3_600_000) // 60_000
    return f"valid ({hours}h {minutes}m remaining)"


@click.command()
@click.pass_obj
def status(obj: LightsprintContext) -> None:
    """Show the Lightsprint connection for the current folder"""
    link = obj.get_link()

    if link is None:
        console.print("[bold yellow]Not connected to Lightsprint.[/bold yellow]\n")
        console.print("To get started:\n")
        console.print("  1. Run:  [cyan]lightsprint connect[/cyan]")
        console.print("  2. Authorize in the browser when prompted")
        console.print("  3. Select the project to link to this folder\n")
        console.print("For a custom instance:\n")
        console.print("  [cyan]lightsprint connect --base-url https://your-instance.lightsprint.ai[/cyan]")
        return

    console.print(f"[bold]Project:[/bold]    {escape(link.project_name or 'unknown')}")
    console.print(f"[bold]Project ID:[/bold] {escape(str(link.project_id))}")
    console.print(f"[bold]Folder:[/bold]     {escape(link.folder)}")
    console.print(f"[bold]Base URL:[/bold]   {escape(obj.base_url(link))}")

    remaining = link.remaining_ms()
    if remaining is not None:
        style = "red" if remaining <= 0 else "green"
        console.print(f"[bold]Token:[/bold]      [{style}]{_format_remaining(remaining)}[/{style}]")
