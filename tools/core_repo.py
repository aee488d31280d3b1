"""tools/core_repo.py

Source acquisition for database creation.

Creating a database needs a source tree on disk:

* If the caller provides a local path -> use it.
* Else, clone (or reuse) the repository under a shared repos/ directory.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional, Union

from dbkit.domain.repository import RepositoryRef
from dbkit.errors import DbKitError

from .core_cmd import ProcessRunner
from .core_git import get_git_commit

logger = logging.getLogger(__name__)

CLONE_TIMEOUT_SECONDS = 1800


def clone_repository(
    ref: RepositoryRef,
    base: Union[str, Path],
    *,
    instance: str = "https://github.com",
    runner: Optional[ProcessRunner] = None,
    timeout: float = CLONE_TIMEOUT_SECONDS,
    cancel_event: Optional[threading.Event] = None,
) -> Path:
    """Shallow-clone ``ref`` into ``base/<owner>/<name>`` and return the path.

    An existing checkout is reused. The branch is passed to ``git clone``
    when the ref names one; a pinned commit is fetched and checked out
    (detached), also in a reused checkout.
    """
    runner = runner or ProcessRunner()
    path = Path(base) / ref.owner / ref.name
    if path.exists():
        logger.debug("reusing checkout %s", path)
    else:
        path.parent.mkdir(parents=True, exist_ok=True)
        args = ["clone", "--depth", "1"]
        if ref.branch:
            args += ["--branch", ref.branch]
        args += [ref.clone_url(instance), str(path)]

        print(f"📥 Cloning {ref.slug} ...")
        res = runner.run("git", args, timeout=timeout, cancel_event=cancel_event)
        if res.exit_code != 0:
            raise DbKitError(f"git clone of {ref.slug} failed with code {res.exit_code}: {res.stderr.strip()[:300]}")

    if ref.commit:
        _checkout_commit(runner, path, ref, timeout=timeout, cancel_event=cancel_event)
    return path.resolve()


def _checkout_commit(
    runner: ProcessRunner,
    path: Path,
    ref: RepositoryRef,
    *,
    timeout: float,
    cancel_event: Optional[threading.Event],
) -> None:
    commit = ref.commit or ""
    head = get_git_commit(path, runner)
    if head and head.lower() == commit.lower():
        return

    steps = (
        ["-C", str(path), "fetch", "--depth", "1", "origin", commit],
        ["-C", str(path), "checkout", "--detach", commit],
    )
    for args in steps:
        res = runner.run("git", args, timeout=timeout, cancel_event=cancel_event)
        if res.exit_code != 0:
            raise DbKitError(
                f"git {args[2]} of {ref.slug}@{commit} failed with code {res.exit_code}: {res.stderr.strip()[:300]}"
            )
    logger.debug("checked out %s at %s", path, commit)
