from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Optional, Tuple

from tools.codeql.options import CreateOptions


@dataclass(frozen=True)
class ObtainOptions:
    """How :meth:`DatabaseLifecycleManager.obtain` may produce a database.

    Strategies are tried in order: local search paths, remote download
    (only when the engine is unavailable or ``prefer_remote`` is set), then
    local creation from ``source_path``.
    """

    search_paths: Tuple[Path, ...] = ()
    allow_remote: bool = True
    prefer_remote: bool = False
    allow_create: bool = True
    source_path: Optional[Path] = None
    clone_source: bool = False
    repos_root: Optional[Path] = None
    download_root: Optional[Path] = None
    output_root: Optional[Path] = None
    create_options: CreateOptions = field(default_factory=CreateOptions)
    max_age: Optional[timedelta] = None
    cancel_event: Optional[threading.Event] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "search_paths", tuple(Path(p).expanduser() for p in self.search_paths))
        for name in ("source_path", "repos_root", "download_root", "output_root"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, Path(value).expanduser())
        if self.max_age is not None and self.max_age <= timedelta(0):
            raise ValueError("max_age must be positive")
