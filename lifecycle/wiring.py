"""lifecycle.wiring

Composition root: the single place where a running
:class:`~lifecycle.manager.DatabaseLifecycleManager` is assembled.

- load ``.env`` from the repo root (python-dotenv)
- read :class:`~dbkit.config.Settings` from the environment
- build the engine client, GitHub client, fetcher and store

Entrypoints (CLI, scripts, notebooks) call :func:`build_manager`; tests build
managers directly with fakes.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from dbkit.config import Settings
from tools.codeql.client import EngineClient
from tools.core_root import ROOT_DIR
from tools.github.api import GitHubClient
from tools.github.fetcher import RemoteFetcher
from tools.github.types import GitHubConfig

from .manager import DatabaseLifecycleManager
from .store import DatabaseStore


ENV_PATH: Path = ROOT_DIR / ".env"


def load_settings(*, load_env: bool = True, **overrides: object) -> Settings:
    """Settings from the environment, with non-None ``overrides`` applied."""
    if load_env:
        load_dotenv(ENV_PATH)
    settings = Settings.from_env()
    changes = {k: v for k, v in overrides.items() if v is not None}
    return dataclasses.replace(settings, **changes) if changes else settings


def build_manager(
    settings: Optional[Settings] = None,
    *,
    load_env: bool = True,
    serialize_keys: bool = False,
) -> DatabaseLifecycleManager:
    s = settings or load_settings(load_env=load_env)

    engine = EngineClient(
        path=s.codeql_path,
        timeouts=s.timeouts,
        token=s.github_token,
        results_root=s.results_root,
    )

    gh_cfg = GitHubConfig(instance=s.github_instance, token=s.github_token)
    fetcher = RemoteFetcher(
        GitHubClient(gh_cfg),
        download_timeout=s.timeouts.download,
        enterprise_server=gh_cfg.enterprise_server,
    )

    return DatabaseLifecycleManager(
        store=DatabaseStore(),
        engine=engine,
        fetcher=fetcher,
        databases_root=s.databases_root,
        github_instance=s.github_instance,
        serialize_keys=serialize_keys,
    )
