from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from dbkit.domain.repository import RepositoryRef


GITHUB_COM = "https://github.com"


@dataclass(frozen=True)
class GitHubConfig:
    """Connection settings for GitHub REST API calls."""
    instance: str = GITHUB_COM
    token: Optional[str] = field(default=None, repr=False)

    @property
    def is_github_com(self) -> bool:
        return self.instance.rstrip("/") in (GITHUB_COM, "https://www.github.com")

    @property
    def enterprise_server(self) -> bool:
        return not self.is_github_com

    @property
    def api_url(self) -> str:
        if self.is_github_com:
            return "https://api.github.com"
        return f"{self.instance.rstrip('/')}/api/v3"


@dataclass(frozen=True)
class RemoteDescriptor:
    """One downloadable database as listed by the code-scanning API."""
    id: int
    name: str
    language: str
    repository: RepositoryRef
    download_url: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    size: Optional[int] = None
    content_type: Optional[str] = None
    commit_oid: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.repository.slug} {self.language} ({self.name})"
