"""
Plan review hook

PermissionRequest handler for ExitPlanMode. Uploads the plan to Lightsprint,
opens the review page and blocks until the reviewer approves or rejects it in
the browser.

The hook fails open: any error in any stage yields an "allow" decision so an
internal failure never blocks the user's workflow.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TextIO
from urllib.parse import quote

import click

from lightsprint.common.auth import open_browser
from lightsprint.common.callback_server import CallbackServer, ReviewCallback, find_free_port
from lightsprint.common.context import LightsprintContext
from lightsprint.common.errors import NotConnectedError
from lightsprint.common.log_utils import truncate_value
from lightsprint.common.settings import Settings
from lightsprint.common.state import ProjectLink

from .base import HookHandler, parse_hook_payload
from .plan_extraction import extract_plan

DENY_DECISIONS = frozenset({"deny", "denied", "reject"})
DEFAULT_DENY_MESSAGE = "Plan rejected by reviewer."


@dataclass
class ReviewDecision:
    """Outcome of a plan review, mapped to the PermissionRequest output"""

    behavior: str
    message: Optional[str] = None
    reason: str = ""

    @classmethod
    def allow(cls, reason: str = "approved") -> "ReviewDecision":
        return cls(behavior="allow", reason=reason)

    @classmethod
    def deny(cls, message: Optional[str] = None) -> "ReviewDecision":
        return cls(behavior="deny", message=message or DEFAULT_DENY_MESSAGE, reason="rejected")

    @property
    def allowed(self) -> bool:
        return self.behavior == "allow"

    def to_hook_output(self) -> Dict[str, Any]:
        if self.allowed:
            return HookHandler.create_allow_response()
        return HookHandler.create_permission_response("deny", self.message)


class PlanReviewHook:
    """Runs one plan review from hook payload to decision"""

    def __init__(
        self,
        context: LightsprintContext,
        logger: Optional[logging.Logger] = None,
        browser: Callable[[str, Optional[Settings]], Any] = open_browser,
    ) -> None:
        self.context = context
        self.logger = logger or context.logger("review_plan")
        self.browser = browser

    def run(self, raw_input: str) -> ReviewDecision:
        """Parse the payload and review it; never raises"""
        try:
            payload = parse_hook_payload(raw_input)
        except ValueError as e:
            self.logger.error(
                f"Failed to parse input: {e} (length={len(raw_input)}, "
                f"preview={truncate_value(raw_input, 200)})"
            )
            return ReviewDecision.allow("unparseable input")

        try:
            return self.review(payload)
        except Exception as e:
            self.logger.error(f"review-plan failed: {e}")
            return ReviewDecision.allow(f"error: {e}")

    def review(self, payload: Dict[str, Any]) -> ReviewDecision:
        """Review stages; each may short-circuit to allow"""
        tool_input = payload.get("tool_input") if isinstance(payload.get("tool_input"), dict) else {}
        session_id = payload.get("session_id")
        self.context = self.context.for_folder(payload.get("cwd"))
        cwd = self.context.cwd

        self.logger.info(
            f"Plan review requested: tool={payload.get('tool_name')} cwd={cwd} "
            f"has_plan={bool(tool_input.get('plan'))} "
            f"has_transcript={bool(payload.get('transcript_path'))}"
        )

        plan = extract_plan(payload, cwd)
        if not plan:
            self.logger.warning(f"Could not find plan content in {cwd}")
            return ReviewDecision.allow("no plan")
        self.logger.info(f"Plan content resolved ({len(plan)} chars)")

        link = self._resolve_link()
        if link is None:
            return ReviewDecision.allow("not connected")

        plan_id = self._upload(plan, tool_input.get("allowedPrompts"), session_id)
        if not plan_id:
            return ReviewDecision.allow("no plan id")

        callback = self._await_decision(plan_id, link)
        self.logger.info(
            f"Received review decision: {callback.decision} "
            f"feedback={truncate_value(callback.feedback, 200)}"
        )

        if callback.decision in DENY_DECISIONS:
            # Active plan stays so a revised plan becomes a new version
            return ReviewDecision.deny(callback.feedback)

        self.context.plans.clear()
        return ReviewDecision.allow()

    def _resolve_link(self) -> Optional[ProjectLink]:
        """Linked project for the folder, authorizing on demand"""
        link = self.context.get_link()
        if link is not None:
            return link

        self.logger.info(f"No project configured for {self.context.cwd}, triggering OAuth")
        try:
            link = self.context.require_link(quiet=True)
        except NotConnectedError as e:
            self.logger.info(f"Skipping review: {e}")
            return None
        self.logger.info(f"OAuth succeeded for project {link.project_id}")
        return link

    def _upload(self, plan: str, allowed_prompts: Any, session_id: Optional[str]) -> Optional[str]:
        """Upload the plan, as a new version of the active plan when possible"""
        client = self.context.client
        project_id = self.context.project_id()

        active = self.context.plans.get()
        plan_id: Optional[str] = None

        if active is not None and active.matches(project_id, session_id):
            try:
                client.put(f"/api/plans/{active.plan_id}/versions", json={"content": plan})
                plan_id = active.plan_id
                self.logger.info(f"Created new version of plan {plan_id}")
            except Exception as e:
                self.logger.warning(f"PUT version failed, creating new plan: {e}")

        if not plan_id:
            result = client.post(
                f"/api/projects/{project_id}/plans",
                json={"content": plan, "allowedPrompts": allowed_prompts},
            )
            result = result if isinstance(result, dict) else {}
            created = result.get("planId") or result.get("id")
            if not created:
                self.logger.error("No plan ID returned from POST")
                return None
            plan_id = str(created)
            self.logger.info(f"Created new plan {plan_id} in project {project_id}")

        self.context.plans.set(plan_id, project_id, session_id)
        return plan_id

    def _await_decision(self, plan_id: str, link: ProjectLink) -> ReviewCallback:
        """Open the review page and wait for the browser callback

        Raises:
            CallbackTimeout: No decision before the review timeout
        """
        settings = self.context.settings
        with CallbackServer(
            find_free_port(),
            ReviewCallback.from_query,
            ReviewCallback.page,
            timeout_message="Plan review timed out.",
        ) as server:
            review_url = (
                f"{self.context.base_url(link).rstrip('/')}/plans/{plan_id}"
                f"?callback={quote(server.url, safe='')}"
            )
            self.logger.info(f"Opening browser for plan review: {review_url}")
            self.browser(review_url, settings)
            click.echo(f"\n→ Review plan: {review_url}\n", err=True)
            return server.wait(settings.review_timeout)


def review_plan(context: LightsprintContext, raw_input: str, out: Optional[TextIO] = None) -> ReviewDecision:
    """Review a hook payload and write exactly one decision object to stdout"""
    hook = PlanReviewHook(context)
    decision = hook.run(raw_input)
    output = decision.to_hook_output()
    hook.logger.info(f"Output decision: {output}")
    HookHandler.write_hook_output(output, out)
    return decision
