"""dbkit.domain.database

Database value types and on-disk layout validation.

A CodeQL database directory looks like::

    <db>/
      codeql-database.yml     metadata (YAML)
      db-<language>/          extracted relational data
      src.zip, log/, ...      optional extras

A directory without both the metadata file and the ``db-<language>``
directory, with metadata that does not parse, or whose primary language is
not supported, is *invalid* and is never returned as a :class:`Database`.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import cached_property
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

import yaml

from dbkit.errors import InvalidDatabaseError
from dbkit.domain.languages import KNOWN_LANGUAGES, normalize_language
from dbkit.domain.repository import RepositoryRef, is_commit_sha


logger = logging.getLogger(__name__)

METADATA_FILENAME = "codeql-database.yml"
DB_DIR_PREFIX = "db-"

DatabaseKey = Tuple[str, str]

_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def db_dir_name(language: str) -> str:
    return f"{DB_DIR_PREFIX}{normalize_language(language)}"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Coerce a YAML/JSON timestamp into an aware UTC datetime.

    CodeQL writes nanosecond precision; anything past microseconds is dropped.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        s = _FRACTION_RE.sub(r"\1", str(value).strip())
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class DatabaseConfig:
    """Parsed ``codeql-database.yml``."""

    primary_language: str
    source_location_prefix: Optional[str] = None
    baseline_lines_of_code: Optional[int] = None
    unicode_newlines: Optional[bool] = None
    column_kind: Optional[str] = None
    build_mode: Optional[str] = None
    finalised: Optional[bool] = None
    creation_sha: Optional[str] = None
    cli_version: Optional[str] = None
    creation_time: Optional[datetime] = None

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "DatabaseConfig":
        lang = data.get("primaryLanguage")
        if not isinstance(lang, str) or not lang.strip():
            raise InvalidDatabaseError("metadata has no primaryLanguage")

        meta = data.get("creationMetadata") or {}
        if not isinstance(meta, dict):
            meta = {}

        loc = data.get("baselineLinesOfCode")
        return cls(
            primary_language=normalize_language(lang),
            source_location_prefix=data.get("sourceLocationPrefix"),
            baseline_lines_of_code=int(loc) if isinstance(loc, (int, float)) else None,
            unicode_newlines=data.get("unicodeNewlines"),
            column_kind=data.get("columnKind"),
            build_mode=data.get("buildMode"),
            finalised=data.get("finalised"),
            creation_sha=str(meta["sha"]) if meta.get("sha") is not None else None,
            cli_version=meta.get("cliVersion"),
            creation_time=parse_timestamp(meta.get("creationTime")),
        )


def read_database_config(path: Path) -> DatabaseConfig:
    """Read and parse the metadata file inside the database directory ``path``."""
    meta_path = Path(path) / METADATA_FILENAME
    try:
        raw = meta_path.read_text(encoding="utf-8")
    except OSError as e:
        raise InvalidDatabaseError(f"cannot read {meta_path}: {e}", path=str(path)) from e
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise InvalidDatabaseError(f"{meta_path} is not valid YAML: {e}", path=str(path)) from e
    if not isinstance(data, dict):
        raise InvalidDatabaseError(f"{meta_path} must contain a mapping", path=str(path))
    try:
        return DatabaseConfig.from_mapping(data)
    except InvalidDatabaseError as e:
        raise InvalidDatabaseError(f"{meta_path}: {e}", path=str(path)) from e


def is_database_dir(path: Union[str, Path]) -> bool:
    """Layout-only check: metadata file plus at least one ``db-*`` directory."""
    p = Path(path)
    if not (p / METADATA_FILENAME).is_file():
        return False
    try:
        return any(c.is_dir() and c.name.startswith(DB_DIR_PREFIX) for c in p.iterdir())
    except OSError:
        return False


def directory_size(path: Path) -> int:
    total = 0
    for dirpath, _dirnames, filenames in os.walk(path):
        for fn in filenames:
            try:
                total += os.lstat(os.path.join(dirpath, fn)).st_size
            except OSError:
                continue
    return total


@dataclass(frozen=True)
class Database:
    """One local or remote CodeQL database."""

    name: str
    language: str
    path: Optional[Path] = None
    source: Optional[RepositoryRef] = None
    created_at: Optional[datetime] = None
    cli_version: Optional[str] = None
    source_location_prefix: Optional[str] = None
    lines_of_code: Optional[int] = None
    build_mode: Optional[str] = None
    commit: Optional[str] = None
    size: Optional[int] = field(default=None, compare=False, repr=False)

    @property
    def key(self) -> DatabaseKey:
        return (self.name, self.language)

    @cached_property
    def size_bytes(self) -> Optional[int]:
        """Size on disk, computed on first access (or as reported remotely)."""
        if self.size is not None:
            return self.size
        if self.path is None:
            return None
        return directory_size(self.path)

    def validate(self, supported_languages: Optional[Iterable[str]] = None) -> "Database":
        """Re-check the on-disk layout; raise :class:`InvalidDatabaseError` if it no longer holds."""
        if self.path is None:
            raise InvalidDatabaseError(f"database {self.name} ({self.language}) has no local path")
        load_database(self.path, supported_languages=supported_languages, name=self.name, source=self.source)
        return self

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "language": self.language,
            "path": str(self.path) if self.path else None,
            "source": str(self.source) if self.source else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "cliVersion": self.cli_version,
        }

    def __str__(self) -> str:
        return f"{self.name} ({self.language})"


def load_database(
    path: Union[str, Path],
    *,
    supported_languages: Optional[Iterable[str]] = None,
    name: Optional[str] = None,
    source: Optional[RepositoryRef] = None,
) -> Database:
    """Load and validate the database directory at ``path``.

    Raises :class:`InvalidDatabaseError` naming the first defect found.
    """
    p = Path(path).resolve()
    if not p.is_dir():
        raise InvalidDatabaseError(f"not a directory: {p}", path=str(p))
    if not (p / METADATA_FILENAME).is_file():
        raise InvalidDatabaseError(f"missing {METADATA_FILENAME} in {p}", path=str(p))

    cfg = read_database_config(p)
    language = cfg.primary_language

    if not (p / db_dir_name(language)).is_dir():
        raise InvalidDatabaseError(f"missing {db_dir_name(language)}/ in {p}", path=str(p))

    supported = KNOWN_LANGUAGES if supported_languages is None else frozenset(
        normalize_language(l) for l in supported_languages
    )
    if language not in supported:
        raise InvalidDatabaseError(f"unsupported language '{language}' in {p}", path=str(p))

    if cfg.finalised is False:
        raise InvalidDatabaseError(f"database in {p} is not finalised", path=str(p))

    logger.debug("loaded database %s (%s) from %s", name or p.name, language, p)
    return Database(
        name=name or p.name,
        language=language,
        path=p,
        source=source,
        created_at=cfg.creation_time,
        cli_version=cfg.cli_version,
        source_location_prefix=cfg.source_location_prefix,
        lines_of_code=cfg.baseline_lines_of_code,
        build_mode=cfg.build_mode,
        commit=cfg.creation_sha.lower() if cfg.creation_sha and is_commit_sha(cfg.creation_sha) else None,
    )


class DatabaseCollection:
    """Ordered set of databases keyed by ``(name, language)``.

    Iteration follows first-insertion order. Adding a database whose key is
    already present replaces the stored entry in place.
    """

    def __init__(self, databases: Iterable[Database] = ()) -> None:
        self._items: Dict[DatabaseKey, Database] = {}
        self.extend(databases)

    def add(self, database: Database) -> None:
        self._items[database.key] = database

    def extend(self, databases: Iterable[Database]) -> None:
        for db in databases:
            self.add(db)

    def get(self, name: str, language: str) -> Optional[Database]:
        return self._items.get((name, normalize_language(language)))

    def keys(self) -> List[DatabaseKey]:
        return list(self._items.keys())

    def by_language(self, language: str) -> List[Database]:
        lang = normalize_language(language)
        return [db for db in self._items.values() if db.language == lang]

    def to_json(self) -> List[Dict[str, Any]]:
        return [db.to_json() for db in self._items.values()]

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[Database]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __repr__(self) -> str:
        return f"DatabaseCollection({[str(db) for db in self._items.values()]})"
