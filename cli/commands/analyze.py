from __future__ import annotations

import argparse
from pathlib import Path

from cli.common import analyze_options_from_args, queries_from_args
from cli.ui import choose_from_menu
from dbkit.config import Settings
from dbkit.domain.database import Database, load_database
from lifecycle.manager import DatabaseLifecycleManager


def _pick_database(args: argparse.Namespace, manager: DatabaseLifecycleManager) -> Database:
    if args.database:
        return load_database(Path(args.database).expanduser(), supported_languages=manager.languages())

    collection = manager.enumerate()
    if not collection:
        raise SystemExit(f"No databases under {manager.databases_root}. Pass --database <dir>.")
    options = {str(db.path): str(db) for db in collection}
    chosen = choose_from_menu("Choose a database:", options)
    return next(db for db in collection if str(db.path) == chosen)


def run_analyze(args: argparse.Namespace, manager: DatabaseLifecycleManager, settings: Settings) -> int:
    db = _pick_database(args, manager)
    opts = analyze_options_from_args(args, settings)

    print("\n🚀 Analyzing database")
    print(f"  Database : {db.path}")
    print(f"  Queries  : {queries_from_args(args) or 'default pack'}")

    result = manager.analyze(db, queries_from_args(args), opts)
    print(f"\n✅ Results written to {result.path}")
    return 0
