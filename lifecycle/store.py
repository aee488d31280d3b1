"""lifecycle/store.py

Discovery of CodeQL databases already on disk.

:meth:`DatabaseStore.scan` walks a root directory (at most three levels
down, enough for the ``<owner>/<name>/<language>`` layout), loads every
directory that looks like a database and validates it. Directories that fail
validation are skipped; only an unreadable root is an error.

Results are ordered by path so that two scans of an unchanged tree are
identical.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from dbkit.domain.database import Database, DatabaseCollection, is_database_dir, load_database
from dbkit.domain.languages import normalize_language
from dbkit.domain.repository import RepositoryRef
from dbkit.errors import InvalidDatabaseError, NotFoundError, ParseError


logger = logging.getLogger(__name__)

MAX_SCAN_DEPTH = 3


def _source_from_layout(parts: Tuple[str, ...], language: str) -> Optional[RepositoryRef]:
    """``<owner>/<name>/<language>`` paths identify the repository."""
    if len(parts) != 3 or parts[2] != language:
        return None
    try:
        return RepositoryRef(owner=parts[0], name=parts[1])
    except ParseError:
        return None


class DatabaseStore:
    def __init__(
        self,
        *,
        supported_languages: Optional[Iterable[str]] = None,
        max_depth: int = MAX_SCAN_DEPTH,
    ) -> None:
        if max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        self.supported_languages = frozenset(supported_languages) if supported_languages is not None else None
        self.max_depth = max_depth

    def scan(self, root_path: Union[str, Path]) -> DatabaseCollection:
        collection = DatabaseCollection(self._load_all(root_path))
        logger.debug("scan of %s found %d database(s)", root_path, len(collection))
        return collection

    def find_all(self, root_path: Union[str, Path], name: str, language: str) -> List[Database]:
        """Every database under ``root_path`` keyed ``(name, language)``, in path order.

        Unlike :meth:`scan` this keeps same-key databases from different
        owners, so callers can choose between them.
        """
        lang = normalize_language(language)
        return [db for db in self._load_all(root_path) if db.name == name and db.language == lang]

    def _load_all(self, root_path: Union[str, Path]) -> List[Database]:
        root = Path(root_path).expanduser()
        if not root.is_dir():
            raise NotFoundError(f"Database root does not exist or is not a directory: {root}")
        try:
            os.listdir(root)
        except OSError as e:
            raise NotFoundError(f"Database root is not readable: {root} ({e})") from e
        root = root.resolve()

        candidates: List[Path] = []
        self._walk(root, 0, candidates)

        found: List[Database] = []
        for path in sorted(candidates, key=lambda p: p.as_posix()):
            parts = path.relative_to(root).parts
            if not parts:
                name = root.name
            elif len(parts) == 1:
                name = parts[0]
            else:
                name = parts[1]

            try:
                db = load_database(path, supported_languages=self.supported_languages, name=name)
            except InvalidDatabaseError as e:
                logger.debug("skipping %s: %s", path, e)
                continue

            source = _source_from_layout(parts, db.language)
            if source is not None:
                db = dataclasses.replace(db, source=source)
            found.append(db)
        return found

    def _walk(self, path: Path, depth: int, out: List[Path]) -> None:
        if is_database_dir(path):
            out.append(path)
            return
        if depth >= self.max_depth:
            return
        try:
            children = [c for c in path.iterdir() if c.is_dir() and not c.name.startswith(".")]
        except OSError as e:
            logger.debug("cannot list %s: %s", path, e)
            return
        for child in sorted(children):
            self._walk(child, depth + 1, out)

    @staticmethod
    def locate(collection: DatabaseCollection, name: str, language: str) -> Optional[Database]:
        return collection.get(name, language)

    def scan_many(self, roots: Sequence[Union[str, Path]]) -> DatabaseCollection:
        """Merge scans of several roots; missing roots are skipped with a warning."""
        merged = DatabaseCollection()
        for root in roots:
            try:
                merged.extend(self.scan(root))
            except NotFoundError as e:
                logger.warning("%s", e)
        return merged
