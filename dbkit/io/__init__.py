"""dbkit.io

Filesystem contracts and IO helpers.
"""

from __future__ import annotations

from .fs import empty_directory, remove_tree, write_json_atomic
from .layout import database_path, default_databases_root, default_results_root, results_filename

__all__ = [
    "database_path",
    "default_databases_root",
    "default_results_root",
    "empty_directory",
    "remove_tree",
    "results_filename",
    "write_json_atomic",
]
