"""dbkit.config

Runtime settings.

Settings are plain frozen dataclasses validated at construction. The only
place that reads the environment is :meth:`Settings.from_env`; entrypoints
load ``.env`` first (see :mod:`lifecycle.wiring`) and then call it.

Environment variables:

* ``CODEQL_PATH`` / ``CODEQL_BINARY``   engine location (see tools.codeql.discovery)
* ``CODEQL_DATABASES`` / ``CODEQL_RESULTS``   default roots
* ``CODEQL_THREADS`` / ``CODEQL_RAM``   engine resource knobs
* ``GITHUB_TOKEN`` / ``GITHUB_INSTANCE``   remote platform access
* ``DBKIT_{PROBE,CREATE,ANALYZE,DOWNLOAD}_TIMEOUT``   seconds
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dbkit.io.layout import default_databases_root, default_results_root


DEFAULT_GITHUB_INSTANCE = "https://github.com"


@dataclass(frozen=True)
class Timeouts:
    """Per sub-operation timeouts, in seconds."""

    probe: float = 60.0
    create: float = 3600.0
    analyze: float = 3600.0
    download: float = 900.0

    def __post_init__(self) -> None:
        for name in ("probe", "create", "analyze", "download"):
            value = getattr(self, name)
            if value is None or value <= 0:
                raise ValueError(f"Timeouts.{name} must be > 0 (got {value!r})")

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> "Timeouts":
        defaults = cls()
        return cls(
            probe=_float(env, "DBKIT_PROBE_TIMEOUT", defaults.probe),
            create=_float(env, "DBKIT_CREATE_TIMEOUT", defaults.create),
            analyze=_float(env, "DBKIT_ANALYZE_TIMEOUT", defaults.analyze),
            download=_float(env, "DBKIT_DOWNLOAD_TIMEOUT", defaults.download),
        )


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{key} must be a number of seconds (got {raw!r})") from e


def _int(env: Mapping[str, str], key: str) -> Optional[int]:
    raw = (env.get(key) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{key} must be an integer (got {raw!r})") from e


@dataclass(frozen=True)
class Settings:
    databases_root: Path
    results_root: Path
    codeql_path: Optional[str] = None
    github_token: Optional[str] = None
    github_instance: str = DEFAULT_GITHUB_INSTANCE
    threads: Optional[int] = None
    ram: Optional[int] = None
    timeouts: Timeouts = field(default_factory=Timeouts)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        e = os.environ if env is None else env
        return cls(
            databases_root=default_databases_root(e),
            results_root=default_results_root(e),
            github_token=e.get("GITHUB_TOKEN") or None,
            github_instance=(e.get("GITHUB_INSTANCE") or DEFAULT_GITHUB_INSTANCE).rstrip("/"),
            threads=_int(e, "CODEQL_THREADS"),
            ram=_int(e, "CODEQL_RAM"),
            timeouts=Timeouts.from_env(e),
        )
