"""
Task sync hook

PostToolUse handler for TaskCreate/TaskUpdate and PreToolUse handler for
sub-agent Task spawns. Mirrors Claude Code tasks onto the Lightsprint board.

The hook never blocks the agent: every failure is written to the sync log and
the process exits 0.
"""

import logging
from typing import Any, Dict, Optional, TextIO

from lightsprint.common.context import LightsprintContext
from lightsprint.common.log_utils import format_hook_context
from lightsprint.common.status_mapper import cc_to_ls_status

from .base import HookHandler

ACTIONS = ("create", "update", "spawn")
METADATA_FIELDS = ("complexity", "todoList", "relatedFiles")


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


class TaskSyncHook:
    """Applies Claude Code task events to the linked Lightsprint project"""

    def __init__(self, context: LightsprintContext, logger: Optional[logging.Logger] = None) -> None:
        self.context = context
        self.logger = logger or context.logger("sync_task")

    def run(self, action: str, stream: Optional[TextIO] = None) -> int:
        """Hook entry point; always returns exit code 0"""
        try:
            try:
                payload = HookHandler.read_hook_input(stream)
            except ValueError as e:
                self.logger.error(f"Failed to parse stdin: {e}")
                return 0

            self.context = self.context.for_folder(payload.get("cwd"))
            if self.context.get_link() is None:
                self.logger.warning(f"No project linked to {self.context.cwd}, skipping sync")
                return 0

            self.logger.debug(f"sync-task {action}: {format_hook_context(payload)}")
            self.handle(action, payload)
        except Exception as e:
            self.logger.error(f"sync-task {action} failed: {e}")
        return 0

    def handle(self, action: str, payload: Dict[str, Any]) -> None:
        tool_input = _as_dict(payload.get("tool_input"))
        tool_response = _as_dict(payload.get("tool_response"))

        if action == "create":
            self.handle_create(tool_input, tool_response)
        elif action == "update":
            self.handle_update(tool_input)
        elif action == "spawn":
            self.handle_spawn(tool_input)
        else:
            self.logger.warning(f"Unknown sync-task action: {action}")

    def handle_create(self, tool_input: Dict[str, Any], tool_response: Dict[str, Any]) -> Optional[str]:
        """Create the remote task for a new Claude Code task

        Returns:
            The Lightsprint task id that was mapped, if any
        """
        local_id = tool_response.get("id") or tool_response.get("taskId")
        if not local_id:
            self.logger.warning(f"No task ID in tool_response: {tool_response}")
            return None

        metadata = _as_dict(tool_input.get("metadata"))

        # A claimed task already exists remotely
        claimed_id = metadata.get("lightsprint_task_id")
        if claimed_id:
            self.context.task_map.set_mapping(str(local_id), str(claimed_id))
            self.logger.info(f"Stored mapping for claimed task {local_id} -> {claimed_id}")
            return str(claimed_id)

        payload: Dict[str, Any] = {
            "title": tool_input.get("subject") or "Untitled task",
            "description": tool_input.get("description") or "",
            "projectStatus": "todo",
        }
        for key in METADATA_FIELDS:
            if metadata.get(key):
                payload[key] = metadata[key]

        project_id = self.context.project_id()
        result = _as_dict(self.context.client.post(f"/api/projects/{project_id}/tasks", json=payload))

        remote_id = result.get("id") or _as_dict(result.get("task")).get("id")
        if not remote_id:
            self.logger.warning(f"No task ID returned for {local_id}")
            return None

        self.context.task_map.set_mapping(str(local_id), str(remote_id))
        self.logger.info(f"Created LS task {remote_id} for {local_id}: {payload['title']}")
        return str(remote_id)

    def handle_update(self, tool_input: Dict[str, Any]) -> None:
        local_id = tool_input.get("taskId")
        if not local_id:
            self.logger.warning("No taskId in tool_input for update")
            return

        remote_id = self.context.task_map.get_mapping(str(local_id))
        if not remote_id:
            self.logger.warning(f"No LS mapping found for CC task {local_id}")
            return

        status = tool_input.get("status")
        if status == "deleted":
            try:
                self.context.client.delete(f"/api/tasks/{remote_id}")
                self.logger.info(f"Deleted LS task {remote_id} ({local_id})")
            except Exception as e:
                self.logger.error(f"Failed to delete LS task {remote_id}: {e}")
            self.context.active_task.clear(remote_id)
            return

        patch: Dict[str, Any] = {}
        if tool_input.get("subject"):
            patch["title"] = tool_input["subject"]
        if "description" in tool_input and tool_input["description"] is not None:
            patch["description"] = tool_input["description"]
        if status:
            ls_status = cc_to_ls_status(status)
            if ls_status:
                patch["projectStatus"] = ls_status
        if "owner" in tool_input and tool_input["owner"] is not None:
            patch["assignee"] = tool_input["owner"]

        metadata = _as_dict(tool_input.get("metadata"))
        for key in METADATA_FIELDS:
            if metadata.get(key):
                patch[key] = metadata[key]

        if not patch:
            self.logger.info(f"No patchable fields for update of {local_id}")
            return

        self.context.client.patch(f"/api/tasks/{remote_id}", json=patch)
        self.logger.info(f"Updated LS task {remote_id} ({local_id}): {sorted(patch)}")

        if status == "in_progress":
            self.context.active_task.set(remote_id)
        elif status == "completed":
            self.context.active_task.clear(remote_id)

    def handle_spawn(self, tool_input: Dict[str, Any]) -> None:
        """Note a sub-agent spawn on the task currently in progress"""
        active = self.context.active_task.get()
        if active is None:
            self.logger.debug("No active task, not recording sub-agent spawn")
            return

        agent = tool_input.get("subagent_type") or "general-purpose"
        description = tool_input.get("description") or "(no description)"
        body = f"Spawned sub-agent ({agent}): {description}"

        self.context.client.post(f"/api/tasks/{active.task_id}/comments", json={"body": body})
        self.logger.info(f"Commented sub-agent spawn on LS task {active.task_id}")
