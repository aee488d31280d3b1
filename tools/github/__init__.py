"""tools.github

GitHub code-scanning database listing and download.
"""

from __future__ import annotations

from .api import GitHubClient
from .fetcher import RemoteFetcher
from .types import GitHubConfig, RemoteDescriptor

__all__ = ["GitHubClient", "GitHubConfig", "RemoteDescriptor", "RemoteFetcher"]
