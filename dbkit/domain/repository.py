"""dbkit.domain.repository

Addressing for repositories hosted on GitHub.

A :class:`RepositoryRef` is parsed once from its canonical string form and is
immutable afterwards::

    acme/widgets                 owner + name
    acme/widgets@main            ... on branch "main"
    acme/widgets@<40 hex chars>  ... at a specific commit
    acme/widgets/src/app@dev     ... scoped to a sub-path on branch "dev"

``str(ref)`` gives back the canonical string.
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass
from typing import Optional

from dbkit.errors import ParseError


_TOKEN_RE = re.compile(r"^[A-Za-z0-9_.-]+$")
_COMMIT_RE = re.compile(r"^[0-9a-fA-F]{40}$")
_REF_RE = re.compile(
    r"^(?P<owner>[A-Za-z0-9_.-]+)/(?P<name>[A-Za-z0-9_.-]+)"
    r"(?:[:/](?P<path>[A-Za-z0-9_./-]+?))?"
    r"(?:@(?P<ref>[A-Za-z0-9_./-]+))?$"
)


def is_commit_sha(value: str) -> bool:
    return bool(_COMMIT_RE.match(value or ""))


@dataclass(frozen=True)
class RepositoryRef:
    owner: str
    name: str
    branch: Optional[str] = None
    commit: Optional[str] = None
    path: Optional[str] = None

    def __post_init__(self) -> None:
        for label, value in (("owner", self.owner), ("name", self.name)):
            if not value or not _TOKEN_RE.match(value):
                raise ParseError(f"Invalid repository {label}: {value!r}")
        if self.commit is not None and not is_commit_sha(self.commit):
            raise ParseError(f"Invalid commit SHA (expected 40 hex chars): {self.commit!r}")
        if self.branch is not None and not self.branch:
            raise ParseError("Branch must be non-empty when set")

    @classmethod
    def parse(cls, text: str) -> "RepositoryRef":
        return parse_repository(text)

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def reference(self) -> Optional[str]:
        """Fully-qualified git reference for the branch (``refs/heads/...``)."""
        if self.branch is None:
            return None
        return f"refs/heads/{self.branch}"

    def with_commit(self, commit: Optional[str]) -> "RepositoryRef":
        return dataclasses.replace(self, commit=commit)

    def clone_url(self, instance: str = "https://github.com") -> str:
        return f"{instance.rstrip('/')}/{self.owner}/{self.name}.git"

    def __str__(self) -> str:
        out = self.slug
        if self.path:
            out += f"/{self.path}"
        if self.commit:
            out += f"@{self.commit}"
        elif self.branch:
            out += f"@{self.branch}"
        return out


def parse_repository(text: str) -> RepositoryRef:
    """Parse ``owner/name[/path][@ref]`` into a :class:`RepositoryRef`.

    A ref of exactly 40 hex characters is treated as a commit SHA; anything
    else is a branch name.
    """
    s = (text or "").strip()
    m = _REF_RE.match(s)
    if not m:
        raise ParseError(f"Invalid repository reference: {text!r} (expected owner/name[@ref])")

    ref = m.group("ref")
    path = (m.group("path") or "").strip("/") or None
    branch: Optional[str] = None
    commit: Optional[str] = None
    if ref:
        if is_commit_sha(ref):
            commit = ref
        else:
            branch = ref

    return RepositoryRef(
        owner=m.group("owner"),
        name=m.group("name"),
        branch=branch,
        commit=commit,
        path=path,
    )
