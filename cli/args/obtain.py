from __future__ import annotations

import argparse


def add_obtain_args(parser: argparse.ArgumentParser) -> None:
    """Flags for obtain mode (and ``--all`` for languages mode)."""

    parser.add_argument(
        "--search-path",
        action="append",
        default=[],
        help="Directory to search for an existing database (repeatable; default: the database root)",
    )
    parser.add_argument("--prefer-remote", action="store_true", help="Try GitHub before building locally")
    parser.add_argument("--no-remote", action="store_true", help="Never download from GitHub")
    parser.add_argument("--no-create", action="store_true", help="Never build a database locally")
    parser.add_argument("--clone", action="store_true", help="Clone the repository when --source is not given")
    parser.add_argument("--max-age-days", type=float, help="Treat local databases older than this as stale")
    parser.add_argument("--analyze", action="store_true", help="Analyze the database once obtained")
    parser.add_argument("--serialize", action="store_true", help="Serialize concurrent requests per repo+language")
    parser.add_argument("--all", action="store_true", help="(languages) Include secondary languages")
