"""Whoami command for the Lightsprint CLI"""

import click

from lightsprint.common.context import LightsprintContext


@click.command()
@click.pass_obj
def whoami(obj: LightsprintContext) -> None:
    """Display current project and authentication info"""
    info = obj.project_info()
    project = info.get("project") or {}

    click.echo(f"Project: {project.get('name', 'unknown')}")
    if project.get("fullName"):
        click.echo(f"Repository: {project['fullName']}")
    click.echo(f"Project ID: {project.get('id', 'unknown')}")
    click.echo(f"Scopes: {', '.join(info.get('scopes') or [])}")
