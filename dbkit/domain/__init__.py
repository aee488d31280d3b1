"""dbkit.domain

Value types shared across the toolkit.
"""

from __future__ import annotations

from .database import (
    METADATA_FILENAME,
    Database,
    DatabaseCollection,
    DatabaseConfig,
    db_dir_name,
    is_database_dir,
    load_database,
)
from .languages import CODEQL_LANGUAGES, KNOWN_LANGUAGES, SECONDARY_LANGUAGES, pretty_language
from .repository import RepositoryRef, parse_repository

__all__ = [
    "CODEQL_LANGUAGES",
    "KNOWN_LANGUAGES",
    "METADATA_FILENAME",
    "SECONDARY_LANGUAGES",
    "Database",
    "DatabaseCollection",
    "DatabaseConfig",
    "RepositoryRef",
    "db_dir_name",
    "is_database_dir",
    "load_database",
    "parse_repository",
    "pretty_language",
]
