"""dbkit.io.layout

Where databases and analysis results live on disk.

Default roots (first match wins):

* databases: ``$CODEQL_DATABASES`` -> ``~/.codeql/databases`` -> ``/tmp/codeql``
* results:   ``$CODEQL_RESULTS``   -> ``~/.codeql/results``   -> ``/tmp/codeql-results``

A database for a repository is stored as ``<root>/<owner>/<name>/<language>``
so that :class:`lifecycle.store.DatabaseStore` can recover the repository
from the path when scanning.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from dbkit.domain.languages import normalize_language
from dbkit.domain.repository import RepositoryRef


def _home() -> Optional[Path]:
    try:
        return Path.home()
    except RuntimeError:
        return None


def default_databases_root(env: Optional[Mapping[str, str]] = None) -> Path:
    e = os.environ if env is None else env
    if e.get("CODEQL_DATABASES"):
        return Path(e["CODEQL_DATABASES"]).expanduser()
    home = _home()
    if home is not None:
        return home / ".codeql" / "databases"
    return Path("/tmp/codeql")


def default_results_root(env: Optional[Mapping[str, str]] = None) -> Path:
    e = os.environ if env is None else env
    if e.get("CODEQL_RESULTS"):
        return Path(e["CODEQL_RESULTS"]).expanduser()
    home = _home()
    if home is not None:
        return home / ".codeql" / "results"
    return Path("/tmp/codeql-results")


def database_path(root: Path, ref: RepositoryRef, language: str) -> Path:
    """Canonical location of ``ref``'s ``language`` database under ``root``."""
    return Path(root) / ref.owner / ref.name / normalize_language(language)


def results_filename(language: str, name: str, owner: Optional[str] = None, *, fmt: str = "sarif-latest") -> str:
    ext = "csv" if fmt == "csv" else "sarif"
    lang = normalize_language(language)
    if owner:
        return f"{lang}-{owner}-{name}.{ext}"
    return f"{lang}-{name}.{ext}"
