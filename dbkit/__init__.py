"""dbkit

Core package for the CodeQL database toolkit.

This package owns the pieces every other layer agrees on:

* domain types (repository references, languages, databases)
* the error taxonomy shared by engine, store, fetcher and manager
* configuration loaded from the environment
* filesystem layout rules (where databases and results live)

Engine and GitHub adapters live under ``tools``; the lifecycle facade lives
under ``lifecycle``; ``cli`` and ``dbkit_cli.py`` are thin front doors.
"""

from __future__ import annotations

__version__ = "0.4.0"
