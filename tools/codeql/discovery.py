"""tools/codeql/discovery.py

Locate the CodeQL CLI.

Lookup order (first hit wins):

1. an explicit path from the caller (file, or directory containing ``codeql``)
2. ``$CODEQL_PATH`` (directory containing ``codeql``, or the binary itself)
3. ``$CODEQL_BINARY``
4. ``codeql`` on ``PATH``
5. common install locations (gh extension, /opt, Homebrew)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Mapping, Optional

from tools.core_cmd import find_executable

logger = logging.getLogger(__name__)

CODEQL_BIN = "codeql"

CODEQL_FALLBACKS: List[str] = [
    "~/.local/share/gh/extensions/gh-codeql/dist/release/codeql",
    "/opt/codeql/codeql",
    "/usr/local/codeql/codeql",
    "/opt/homebrew/bin/codeql",
    "/usr/local/bin/codeql",
]


def _as_binary(candidate: str) -> Optional[str]:
    p = Path(candidate).expanduser()
    if p.is_dir():
        p = p / CODEQL_BIN
    if p.is_file() and os.access(str(p), os.X_OK):
        return str(p.resolve())
    return None


def find_codeql(explicit: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Return the absolute path of the CodeQL binary, or None when absent."""
    e = os.environ if env is None else env

    for label, candidate in (
        ("explicit", explicit),
        ("CODEQL_PATH", e.get("CODEQL_PATH")),
        ("CODEQL_BINARY", e.get("CODEQL_BINARY")),
    ):
        if not candidate:
            continue
        found = _as_binary(candidate)
        if found:
            logger.debug("codeql found via %s: %s", label, found)
            return found
        logger.warning("%s points at %s but no executable codeql is there", label, candidate)
        if label == "explicit":
            return None

    found = find_executable(CODEQL_BIN, CODEQL_FALLBACKS)
    if found:
        logger.debug("codeql found on PATH/fallbacks: %s", found)
    return found
