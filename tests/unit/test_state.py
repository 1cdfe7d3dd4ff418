"""Unit tests for persisted state records"""

import json

import pytest

from lightsprint.common.state import (
    REFRESH_WINDOW_MS,
    ActivePlan,
    ActiveTaskTracker,
    PlanTracker,
    ProjectLink,
    ProjectRegistry,
    TaskMap,
)


@pytest.fixture
def registry(tmp_path):
    return ProjectRegistry(tmp_path / "projects.json")


class TestProjectLink:
    def test_on_disk_keys_are_camel_case(self):
        """Test the projects.json entry shape"""
        link = ProjectLink(
            folder="/work/app",
            access_token="a",
            refresh_token="r",
            expires_at=1000,
            project_id="p1",
            project_name="App",
            base_url="https://ls.example",
        )

        assert link.to_dict() == {
            "accessToken": "a",
            "refreshToken": "r",
            "expiresAt": 1000,
            "projectId": "p1",
            "projectName": "App",
            "baseUrl": "https://ls.example",
        }

    def test_base_url_omitted_when_unset(self):
        """Test that links on the default instance store no baseUrl"""
        assert "baseUrl" not in ProjectLink(folder="/x", access_token="a").to_dict()

    def test_skipped_entry(self):
        """Test that a skipped folder is stored as a bare marker"""
        link = ProjectLink(folder="/x", skipped=True)

        assert link.to_dict() == {"skipped": True}
        restored = ProjectLink.from_dict("/x", {"skipped": True})
        assert restored.skipped
        assert restored.access_token is None

    def test_from_dict_ignores_bad_expiry(self):
        """Test that a non-numeric expiresAt is treated as unknown"""
        link = ProjectLink.from_dict("/x", {"accessToken": "a", "expiresAt": "soon"})

        assert link.expires_at is None
        assert not link.needs_refresh()

    def test_needs_refresh_window(self):
        """Test refresh is needed only inside the five minute window"""
        now = 10_000_000
        assert ProjectLink("/x", expires_at=now + REFRESH_WINDOW_MS - 1).needs_refresh(now)
        assert ProjectLink("/x", expires_at=now - 1).needs_refresh(now)
        assert not ProjectLink("/x", expires_at=now + REFRESH_WINDOW_MS + 1).needs_refresh(now)

    def test_remaining_ms(self):
        assert ProjectLink("/x", expires_at=5000).remaining_ms(now=2000) == 3000
        assert ProjectLink("/x").remaining_ms(now=2000) is None


class TestProjectRegistry:
    def test_save_and_get(self, registry):
        """Test that links are keyed by folder"""
        registry.save(ProjectLink(folder="/a", access_token="t", project_id="p"))
        registry.save(ProjectLink(folder="/b", skipped=True))

        assert registry.get("/a").project_id == "p"
        assert registry.get("/b").skipped
        assert registry.get("/c") is None
        assert set(registry.all()) == {"/a", "/b"}

    def test_save_overwrites_entry(self, registry):
        registry.save(ProjectLink(folder="/a", access_token="old"))
        registry.save(ProjectLink(folder="/a", access_token="new"))

        assert registry.get("/a").access_token == "new"

    def test_remove_returns_entry(self, registry):
        """Test that remove hands back the removed entry for reporting"""
        registry.save(ProjectLink(folder="/a", access_token="t", project_name="App"))

        removed = registry.remove("/a")

        assert removed["projectName"] == "App"
        assert registry.get("/a") is None
        assert registry.remove("/a") is None

    def test_non_object_entries_ignored(self, registry):
        """Test that hand-edited garbage entries are not returned"""
        registry.store.write({"/a": "oops", "/b": {"accessToken": "t"}})

        assert list(registry.all()) == ["/b"]


def test_task_map(tmp_path):
    """Test local to remote id mapping"""
    task_map = TaskMap(tmp_path / "task-map.json")
    task_map.set_mapping("1", "ls-1")
    task_map.set_mapping(2, "ls-2")

    assert task_map.get_mapping("1") == "ls-1"
    assert task_map.get_mapping("2") == "ls-2"
    assert task_map.get_mapping("3") is None


class TestPlanTracker:
    def test_set_get_clear(self, tmp_path):
        """Test the active plan pointer lifecycle"""
        tracker = PlanTracker(tmp_path / "active-plan.json")
        assert tracker.get() is None

        tracker.set("plan-1", "proj-1", "sess-1")
        plan = tracker.get()
        assert plan.plan_id == "plan-1"
        assert plan.matches("proj-1", "sess-1")
        assert not plan.matches("proj-1", "sess-2")
        assert not plan.matches("proj-2", "sess-1")

        on_disk = json.loads((tmp_path / "active-plan.json").read_text())
        assert set(on_disk) == {"planId", "projectId", "sessionId", "updatedAt"}

        tracker.clear()
        assert tracker.get() is None

    def test_incomplete_record_is_ignored(self):
        assert ActivePlan.from_dict({"planId": "p"}) is None
        assert ActivePlan.from_dict({"projectId": "p"}) is None


class TestActiveTaskTracker:
    def test_clear_only_matching_task(self, tmp_path):
        """Test that completing another task leaves the pointer alone"""
        tracker = ActiveTaskTracker(tmp_path / "active-task.json")
        tracker.set("ls-1")

        assert tracker.clear("ls-2") is False
        assert tracker.get().task_id == "ls-1"

        assert tracker.clear("ls-1") is True
        assert tracker.get() is None

    def test_unconditional_clear(self, tmp_path):
        tracker = ActiveTaskTracker(tmp_path / "active-task.json")
        tracker.set("ls-1")

        assert tracker.clear() is True
        assert tracker.get() is None
        assert tracker.clear("ls-1") is False
