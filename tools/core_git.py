"""tools/core_git.py

Git metadata helpers for local source trees.

Used when a database is created from a checkout so the resulting
:class:`~dbkit.domain.database.Database` can carry the commit it was built
from.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from dbkit.errors import DbKitError

from .core_cmd import ProcessRunner

GIT_TIMEOUT_SECONDS = 20


def _git(runner: ProcessRunner, repo_path: Path, *args: str) -> Optional[str]:
    try:
        res = runner.run("git", ["-C", str(repo_path), *args], timeout=GIT_TIMEOUT_SECONDS)
    except DbKitError:
        return None
    out = (res.stdout or "").strip()
    return out if res.exit_code == 0 and out else None


def get_git_commit(repo_path: Path, runner: Optional[ProcessRunner] = None) -> Optional[str]:
    """Return the current commit SHA for the repo at repo_path.

    Returns None if repo_path is not a git repo or git is unavailable.
    """
    return _git(runner or ProcessRunner(), repo_path, "rev-parse", "HEAD")


def get_git_branch(repo_path: Path, runner: Optional[ProcessRunner] = None) -> Optional[str]:
    """Return the current branch name, or None when detached or unavailable."""
    b = _git(runner or ProcessRunner(), repo_path, "rev-parse", "--abbrev-ref", "HEAD")
    if not b or b == "HEAD":
        return None
    return b
