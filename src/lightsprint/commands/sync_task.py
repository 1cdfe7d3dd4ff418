"""Sync-task hook command for the Lightsprint CLI"""

import click

from lightsprint.common.context import LightsprintContext
from lightsprint.hooks.task_sync import ACTIONS, TaskSyncHook


@click.command(name="sync-task")
@click.argument("action", type=click.Choice(ACTIONS))
@click.pass_obj
def sync_task(obj: LightsprintContext, action: str) -> None:
    """Mirror a Claude Code task event to Lightsprint (Claude Code hook)

    ACTION is create or update (PostToolUse on TaskCreate/TaskUpdate) or
    spawn (PreToolUse on Task). Reads the hook payload from stdin and always
    exits 0.
    """
    TaskSyncHook(obj).run(action)
