"""Task board commands for the Lightsprint CLI"""

from typing import Any, Dict, Optional, Tuple

import click

from lightsprint.common.context import LightsprintContext
from lightsprint.common.errors import LightsprintError
from lightsprint.common.status_mapper import (
    COMPLEXITIES,
    LS_STATUSES,
    ls_to_cc_status,
    status_to_column_name,
)

STATUS_CHOICE = click.Choice(LS_STATUSES)
COMPLEXITY_CHOICE = click.Choice(COMPLEXITIES)


def _task_from(data: Any) -> Dict[str, Any]:
    """Unwrap {"task": {...}} responses"""
    if isinstance(data, dict):
        task = data.get("task")
        if isinstance(task, dict):
            return task
        if data.get("id"):
            return data
    return {}


def _fetch_task(obj: LightsprintContext, task_id: str) -> Dict[str, Any]:
    task = _task_from(obj.client.get(f"/api/tasks/{task_id}"))
    if not task:
        raise LightsprintError(f"Task {task_id} not found")
    return task


def _has_complexity(task: Dict[str, Any]) -> bool:
    return bool(task.get("complexity")) and task.get("complexity") != "unknown"


def _echo_todo_list(task: Dict[str, Any]) -> None:
    todo_list = task.get("todoList") or []
    if todo_list:
        click.echo("\nTodo list:")
        for item in todo_list:
            mark = "[x]" if item.get("completed") else "[ ]"
            click.echo(f"  {mark} {item.get('text', '')}")


def _echo_related_files(task: Dict[str, Any]) -> None:
    related = task.get("relatedFiles") or []
    if related:
        click.echo("\nRelated files:")
        for entry in related:
            path = entry if isinstance(entry, str) else entry.get("path")
            click.echo(f"  - {path}")


def _echo_link_hint(task_id: str) -> None:
    click.echo("\nTo link this task in Claude Code, create a task with:")
    click.echo(f'  metadata: {{ lightsprint_task_id: "{task_id}" }}')


@click.command()
@click.option("--status", type=STATUS_CHOICE, help="Filter by status")
@click.option("--limit", type=click.IntRange(min=1), default=20, show_default=True, help="Maximum number of tasks")
@click.pass_obj
def tasks(obj: LightsprintContext, status: Optional[str], limit: int) -> None:
    """List tasks from the project board"""
    project_id = obj.project_id()

    params: Dict[str, Any] = {}
    if status:
        params["columnName"] = status_to_column_name(status)
    params["limit"] = str(limit)

    data = obj.client.get(f"/api/projects/{project_id}/tasks", params=params) or {}
    task_list = data.get("tasks") or []
    if not task_list:
        click.echo("No tasks found.")
        return

    total = data.get("totalCount") or len(task_list)
    suffix = f" of {total} total" if total > len(task_list) else ""
    click.echo(f"Found {len(task_list)} task(s){suffix}:\n")

    for task in task_list:
        line = f"  {task.get('id')}  [{task.get('projectStatus') or 'unknown'}]"
        if task.get("assignee"):
            line += f" [{task['assignee']}]"
        if _has_complexity(task):
            line += f" ({task['complexity']})"
        click.echo(f"{line}  {task.get('title', '')}")

        description = task.get("description")
        if description:
            preview = description[:120].replace("\n", " ")
            click.echo(f"           {preview}{'...' if len(description) > 120 else ''}")

    if (data.get("pagination") or {}).get("hasMore"):
        click.echo(f"\n  ... and {total - len(task_list)} more. Use --limit to see more.")


@click.command()
@click.argument("title", nargs=-1, required=True)
@click.option("--description", help="Task description")
@click.option("--complexity", type=COMPLEXITY_CHOICE, help="Task complexity")
@click.option("--status", type=STATUS_CHOICE, default="todo", show_default=True, help="Initial status")
@click.pass_obj
def create(
    obj: LightsprintContext,
    title: Tuple[str, ...],
    description: Optional[str],
    complexity: Optional[str],
    status: str,
) -> None:
    """Create a new task

    TITLE: Task title (multiple words are joined)
    """
    joined = " ".join(title).strip()
    if not joined:
        raise click.UsageError("title is required.")

    body: Dict[str, Any] = {"title": joined, "projectStatus": status}
    if description:
        body["description"] = description
    if complexity:
        body["complexity"] = complexity

    project_id = obj.project_id()
    task = _task_from(obj.client.post(f"/api/projects/{project_id}/tasks", json=body))
    if not task.get("id"):
        raise LightsprintError("Task creation returned no task ID")

    click.echo(f"Created task: {task.get('title', joined)}")
    click.echo(f"ID: {task['id']}")
    click.echo(f"Status: {task.get('projectStatus') or status}")
    if _has_complexity(task):
        click.echo(f"Complexity: {task['complexity']}")
    if task.get("description"):
        click.echo(f"\nDescription:\n{task['description']}")
    _echo_link_hint(task["id"])


@click.command()
@click.argument("task_id")
@click.option("--title", help="New task title")
@click.option("--description", help="New description")
@click.option("--status", type=STATUS_CHOICE, help="New status")
@click.option("--complexity", type=COMPLEXITY_CHOICE, help="New complexity level")
@click.option("--assignee", help="Assign the task to a team member")
@click.pass_obj
def update(
    obj: LightsprintContext,
    task_id: str,
    title: Optional[str],
    description: Optional[str],
    status: Optional[str],
    complexity: Optional[str],
    assignee: Optional[str],
) -> None:
    """Update an existing task"""
    patch: Dict[str, Any] = {}
    if title:
        patch["title"] = title
    if description:
        patch["description"] = description
    if status:
        patch["projectStatus"] = status
    if complexity:
        patch["complexity"] = complexity
    if assignee:
        patch["assignee"] = assignee

    if not patch:
        raise click.UsageError("at least one field to update is required.")

    obj.client.patch(f"/api/tasks/{task_id}", json=patch)
    task = _fetch_task(obj, task_id)

    click.echo(f"Updated task: {task.get('title', '')}")
    click.echo(f"ID: {task.get('id', task_id)}")
    click.echo(f"Status: {task.get('projectStatus') or 'unknown'}")
    if task.get("assignee"):
        click.echo(f"Assignee: {task['assignee']}")
    if _has_complexity(task):
        click.echo(f"Complexity: {task['complexity']}")
    if task.get("description"):
        text = task["description"]
        click.echo(f"Description: {text[:200].replace(chr(10), ' ')}{'...' if len(text) > 200 else ''}")


@click.command()
@click.argument("task_id")
@click.pass_obj
def get(obj: LightsprintContext, task_id: str) -> None:
    """Show full details of a task"""
    task = _fetch_task(obj, task_id)
    project_status = task.get("projectStatus") or "unknown"

    click.echo(f"Title: {task.get('title', '')}")
    click.echo(f"ID: {task.get('id', task_id)}")
    click.echo(f"Status: {project_status}")
    cc_status = ls_to_cc_status(project_status)
    if cc_status:
        click.echo(f"Claude Code status: {cc_status}")
    if task.get("assignee"):
        click.echo(f"Assignee: {task['assignee']}")
    if _has_complexity(task):
        click.echo(f"Complexity: {task['complexity']}")
    if task.get("description"):
        click.echo(f"\nDescription:\n{task['description']}")
    _echo_todo_list(task)
    _echo_related_files(task)


@click.command()
@click.argument("task_id")
@click.pass_obj
def claim(obj: LightsprintContext, task_id: str) -> None:
    """Claim a task and set its status to in_progress"""
    obj.client.patch(f"/api/tasks/{task_id}", json={"projectStatus": "in_progress"})
    task = _fetch_task(obj, task_id)
    obj.active_task.set(str(task.get("id", task_id)))

    click.echo(f"Claimed task: {task.get('title', '')}")
    click.echo(f"ID: {task.get('id', task_id)}")
    click.echo("Status: in_progress")
    if task.get("description"):
        click.echo(f"\nDescription:\n{task['description']}")
    _echo_todo_list(task)
    _echo_related_files(task)
    if _has_complexity(task):
        click.echo(f"Complexity: {task['complexity']}")
    _echo_link_hint(str(task.get("id", task_id)))


@click.command()
@click.argument("task_id")
@click.argument("body", nargs=-1, required=True)
@click.pass_obj
def comment(obj: LightsprintContext, task_id: str, body: Tuple[str, ...]) -> None:
    """Add a comment to a task

    BODY: Comment text (multiple words are joined)
    """
    text = " ".join(body).strip()
    if not text:
        raise click.UsageError("comment body is required.")

    obj.client.post(f"/api/tasks/{task_id}/comments", json={"body": text})
    click.echo(f"Comment added to task {task_id}.")
