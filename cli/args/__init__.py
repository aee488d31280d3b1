"""CLI argument builder modules.

The top-level :mod:`dbkit_cli` is intentionally kept thin. Groups of flags
are registered by small "arg builder" functions housed here:

- :func:`cli.args.base.add_base_args`
- :func:`cli.args.engine.add_engine_args`
- :func:`cli.args.obtain.add_obtain_args`
"""

from __future__ import annotations

__all__ = [
    "base",
    "engine",
    "obtain",
]
