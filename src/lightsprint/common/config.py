"""
Per-folder project resolution

A folder is linked to a Lightsprint project in projects.json. Lookup walks up
from the working directory, then falls back to the git main worktree so that
linked worktrees share their main checkout's link.
"""

import os
import re
import subprocess
from typing import List, Optional

from .state import ProjectLink, ProjectRegistry

GITHUB_REMOTE = re.compile(r"github\.com[:/]([^/]+/[^/.]+?)(?:\.git)?$")


def _run_git_command(args: List[str], cwd: str) -> Optional[str]:
    """Run a git command, returning stdout or None if git fails"""
    try:
        result = subprocess.run(
            ["git"] + args,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
            timeout=10,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    return result.stdout


def get_git_main_worktree(cwd: str) -> Optional[str]:
    """Path of the main worktree for the repository containing cwd"""
    output = _run_git_command(["worktree", "list", "--porcelain"], cwd)
    if not output:
        return None
    for line in output.splitlines():
        if line.startswith("worktree "):
            return line[len("worktree "):].strip() or None
    return None


def get_git_repo_full_name(cwd: str) -> Optional[str]:
    """owner/repo of the origin remote when it is hosted on GitHub"""
    output = _run_git_command(["remote", "get-url", "origin"], cwd)
    if not output:
        return None
    match = GITHUB_REMOTE.search(output.strip())
    return match.group(1) if match else None


def iter_parent_dirs(cwd: str):
    """Yield cwd and each of its ancestors up to the filesystem root"""
    current = os.path.abspath(cwd)
    while True:
        yield current
        parent = os.path.dirname(current)
        if parent == current:
            return
        current = parent


def find_project_link(registry: ProjectRegistry, cwd: str) -> Optional[ProjectLink]:
    """Find the link entry for cwd, including skipped entries

    Args:
        registry: The projects table
        cwd: Directory to resolve from

    Returns:
        The nearest link, or None if neither cwd, its ancestors nor the git
        main worktree are registered
    """
    projects = registry.all()

    for folder in iter_parent_dirs(cwd):
        if folder in projects:
            return ProjectLink.from_dict(folder, projects[folder])

    main_worktree = get_git_main_worktree(cwd)
    if main_worktree and main_worktree in projects:
        return ProjectLink.from_dict(main_worktree, projects[main_worktree])

    return None


def folders_to_disconnect(registry: ProjectRegistry, cwd: str) -> List[str]:
    """Registered folders that are cwd itself or one of its ancestors"""
    ancestors = set(iter_parent_dirs(cwd))
    return [folder for folder in registry.all() if folder in ancestors]
