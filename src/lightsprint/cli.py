#!/usr/bin/env python3
"""
Lightsprint CLI - plan review and task management for Claude Code
"""

import sys
from typing import Any

import click
from rich.console import Console

from lightsprint import __version__
from lightsprint.commands.connect import connect, disconnect
from lightsprint.commands.review_plan import review_plan
from lightsprint.commands.status import status
from lightsprint.commands.sync_task import sync_task
from lightsprint.commands.tasks import claim, comment, create, get, tasks, update
from lightsprint.commands.upgrade import upgrade
from lightsprint.commands.whoami import whoami
from lightsprint.common.context import LightsprintContext
from lightsprint.common.errors import LightsprintError

console = Console(stderr=True)


class LightsprintGroup(click.Group):
    """Group that reports Lightsprint errors and usage errors with exit code 1"""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except LightsprintError as e:
            raise click.ClickException(str(e)) from e
        except click.UsageError as e:
            e.exit_code = 1
            raise


@click.group(cls=LightsprintGroup, invoke_without_command=True)
@click.version_option(version=__version__, prog_name="lightsprint")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Lightsprint - plan review and task management for Claude Code

    Mirrors Claude Code tasks onto your Lightsprint board and gates
    ExitPlanMode behind a browser review.
    """
    if ctx.obj is None:
        ctx.obj = LightsprintContext()

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Task board
cli.add_command(tasks)
cli.add_command(create)
cli.add_command(update)
cli.add_command(get)
cli.add_command(claim)
cli.add_command(comment)

# Account
cli.add_command(whoami)
cli.add_command(status)
cli.add_command(connect)
cli.add_command(disconnect)
cli.add_command(upgrade)

# Hooks
cli.add_command(review_plan)
cli.add_command(sync_task)


def main() -> None:
    """Main entry point for the CLI"""
    try:
        cli()
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
