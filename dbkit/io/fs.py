"""dbkit.io.fs

Filesystem helpers: atomic writers and directory cleanup.

Database directories are written by external processes (the engine, the zip
extractor). When one of those fails we must leave nothing behind that a later
scan could mistake for a usable database, so cleanup lives here in one place.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, TextIO, Union


logger = logging.getLogger(__name__)


def _atomic_write_text(path: Path, write_fn: Callable[[TextIO], None], *, encoding: str = "utf-8") -> None:
    """Write a file atomically via a temp file in the same directory and os.replace()."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f"{p.name}.", suffix=".tmp", dir=str(p.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            write_fn(f)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, p)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def write_json_atomic(path: Union[str, Path], data: Any, *, indent: int = 2) -> None:
    """Write JSON atomically with stable formatting."""

    def _write(f: TextIO) -> None:
        json.dump(data, f, indent=indent, sort_keys=True, ensure_ascii=False)
        f.write("\n")

    _atomic_write_text(Path(path), _write)


def remove_tree(path: Union[str, Path]) -> None:
    """Remove a file or directory tree if it exists."""
    p = Path(path)
    if p.is_symlink() or p.is_file():
        p.unlink()
    elif p.is_dir():
        shutil.rmtree(p)


def empty_directory(path: Union[str, Path]) -> None:
    """Delete everything inside ``path`` but keep the directory itself."""
    p = Path(path)
    if not p.is_dir():
        return
    for child in p.iterdir():
        remove_tree(child)
    logger.debug("emptied %s", p)
