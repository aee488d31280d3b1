"""tools/core_root.py

Repository root locator.

Kept in its own tiny module so any layer can import :data:`ROOT_DIR` (used to
find the ``.env`` file) without import cycles.
"""

from __future__ import annotations

from pathlib import Path


# Repo root = parent of tools/
ROOT_DIR = Path(__file__).resolve().parents[1]
