"""Unit tests for the plan review hook

The review page is played by a fake browser that calls the real loopback
callback server.
"""

import io
import json
from unittest.mock import patch
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from lightsprint.hooks.plan_review import PlanReviewHook, ReviewDecision, review_plan


class FakeReviewer:
    """Opens the review URL and answers the callback with a decision"""

    def __init__(self, query=None):
        self.query = query
        self.opened = []

    def __call__(self, url, settings=None):
        self.opened.append(url)
        if self.query is None:
            return True
        callback = parse_qs(urlsplit(url).query)["callback"][0]
        http = requests.Session()
        http.trust_env = False
        http.get(callback + "?" + self.query, timeout=5)
        return True


def _payload(project_dir, plan="# Plan\n1. Do it", session_id="sess-1", **extra):
    payload = {
        "hook_event_name": "PermissionRequest",
        "tool_name": "ExitPlanMode",
        "session_id": session_id,
        "cwd": str(project_dir),
        "tool_input": {"plan": plan, "allowedPrompts": [{"tool": "Bash", "prompt": "run tests"}]},
    }
    payload.update(extra)
    return json.dumps(payload)


@pytest.fixture
def planning_api(api):
    api.on("POST", "/api/projects/proj-1/plans", 201, {"id": "plan-1"})
    api.on("PUT", "/api/plans/plan-1/versions", 200, {"version": 2})
    return api


def test_deny_returns_feedback_and_keeps_active_plan(linked_context, planning_api, project_dir):
    """Test the reject path end to end"""
    reviewer = FakeReviewer("decision=deny&feedback=not+ready")
    hook = PlanReviewHook(linked_context, browser=reviewer)

    decision = hook.run(_payload(project_dir))

    assert decision == ReviewDecision.deny("not ready")
    assert decision.to_hook_output()["hookSpecificOutput"]["decision"] == {
        "behavior": "deny",
        "message": "not ready",
    }
    assert reviewer.opened[0].startswith("https://lightsprint.test/plans/plan-1?callback=http%3A%2F%2F127.0.0.1%3A")
    assert planning_api.body("POST", "/api/projects/proj-1/plans") == {
        "content": "# Plan\n1. Do it",
        "allowedPrompts": [{"tool": "Bash", "prompt": "run tests"}],
    }
    assert linked_context.plans.get().plan_id == "plan-1"


def test_deny_without_feedback_uses_default_message(linked_context, planning_api, project_dir):
    decision = PlanReviewHook(linked_context, browser=FakeReviewer("decision=reject")).run(_payload(project_dir))

    assert not decision.allowed
    assert decision.message == "Plan rejected by reviewer."


def test_approve_clears_active_plan(linked_context, planning_api, project_dir):
    decision = PlanReviewHook(linked_context, browser=FakeReviewer("decision=approve")).run(_payload(project_dir))

    assert decision.allowed
    assert linked_context.plans.get() is None


def test_resubmission_becomes_new_version(linked_context, planning_api, project_dir):
    """Test that a revised plan in the same session is PUT as a version"""
    hook = PlanReviewHook(linked_context, browser=FakeReviewer("decision=deny&feedback=again"))
    hook.run(_payload(project_dir, plan="v1"))

    hook.browser = FakeReviewer("decision=allow")
    decision = hook.run(_payload(project_dir, plan="v2"))

    assert decision.allowed
    assert planning_api.paths("POST") == ["/api/projects/proj-1/plans"]
    assert planning_api.body("PUT", "/api/plans/plan-1/versions") == {"content": "v2"}


def test_new_session_creates_new_plan(linked_context, planning_api, project_dir):
    linked_context.plans.set("plan-1", "proj-1", "other-session")

    PlanReviewHook(linked_context, browser=FakeReviewer("decision=allow")).run(_payload(project_dir))

    assert planning_api.paths("PUT") == []
    assert planning_api.paths("POST") == ["/api/projects/proj-1/plans"]


def test_failed_version_falls_back_to_new_plan(linked_context, api, project_dir):
    """Test that a rejected PUT is followed by a POST"""
    linked_context.plans.set("gone", "proj-1", "sess-1")
    api.on("PUT", "/api/plans/gone/versions", 404, "not found")
    api.on("POST", "/api/projects/proj-1/plans", 201, {"planId": "plan-2"})
    reviewer = FakeReviewer("decision=deny&feedback=x")

    PlanReviewHook(linked_context, browser=reviewer).run(_payload(project_dir))

    assert api.paths("PUT") == ["/api/plans/gone/versions"]
    assert "/plans/plan-2?" in reviewer.opened[0]
    assert linked_context.plans.get().plan_id == "plan-2"


def test_missing_plan_allows_without_network(linked_context, session, project_dir):
    """Test that no plan content means allow with zero calls"""
    decision = PlanReviewHook(linked_context, browser=FakeReviewer()).run(
        _payload(project_dir, plan="", transcript_path=str(project_dir / "none.jsonl"))
    )

    assert decision.allowed
    assert decision.reason == "no plan"
    session.request.assert_not_called()


def test_skipped_folder_allows(context, session, project_dir, make_link):
    make_link(skipped=True)

    decision = PlanReviewHook(context, browser=FakeReviewer()).run(_payload(project_dir))

    assert decision.allowed
    assert decision.reason == "not connected"
    session.request.assert_not_called()


def test_unconfigured_folder_triggers_quiet_oauth(context, api, project_dir, make_link):
    """Test that plan review authorizes an unlinked folder on demand"""
    api.on("POST", "/api/projects/proj-1/plans", 201, {"id": "plan-1"})

    def fake_authenticate(settings, base_url=None, cwd=None, quiet=False):
        assert quiet is True
        return make_link(folder=cwd)

    with patch("lightsprint.common.context.authenticate", side_effect=fake_authenticate) as auth:
        decision = PlanReviewHook(context, browser=FakeReviewer("decision=allow")).run(_payload(project_dir))

    auth.assert_called_once()
    assert decision.allowed
    assert api.paths("POST") == ["/api/projects/proj-1/plans"]


def test_review_timeout_allows(linked_context, planning_api, project_dir):
    """Test that nobody answering the review page fails open"""
    linked_context.settings.review_timeout = 0.2

    decision = PlanReviewHook(linked_context, browser=FakeReviewer()).run(_payload(project_dir))

    assert decision.allowed
    assert "timed out" in decision.reason


def test_api_failure_allows(linked_context, api, project_dir):
    api.on("POST", "/api/projects/proj-1/plans", 500, "boom")

    decision = PlanReviewHook(linked_context, browser=FakeReviewer()).run(_payload(project_dir))

    assert decision.allowed
    assert "500" in decision.reason


def test_plan_id_missing_allows(linked_context, api, project_dir):
    api.on("POST", "/api/projects/proj-1/plans", 201, {})
    reviewer = FakeReviewer()

    decision = PlanReviewHook(linked_context, browser=reviewer).run(_payload(project_dir))

    assert decision.reason == "no plan id"
    assert reviewer.opened == []


def test_unparseable_input_allows(linked_context, session):
    decision = PlanReviewHook(linked_context).run("definitely not json")

    assert decision.allowed
    session.request.assert_not_called()


def test_review_plan_writes_single_decision(linked_context, project_dir):
    """Test that exactly one JSON object reaches stdout"""
    out = io.StringIO()

    review_plan(linked_context, _payload(project_dir, plan=""), out)

    assert json.loads(out.getvalue()) == {
        "hookSpecificOutput": {"hookEventName": "PermissionRequest", "decision": {"behavior": "allow"}}
    }
