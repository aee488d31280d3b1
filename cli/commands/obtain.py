from __future__ import annotations

import argparse
from datetime import timedelta
from pathlib import Path

from cli.common import (
    analyze_options_from_args,
    create_options_from_args,
    queries_from_args,
    resolve_language,
    resolve_ref,
)
from dbkit.config import Settings
from dbkit.domain.languages import CODEQL_LANGUAGES
from lifecycle.manager import DatabaseLifecycleManager
from lifecycle.models import ObtainOptions


def run_obtain(args: argparse.Namespace, manager: DatabaseLifecycleManager, settings: Settings) -> int:
    ref = resolve_ref(args)
    language = resolve_language(args, CODEQL_LANGUAGES.keys())

    opts = ObtainOptions(
        search_paths=tuple(Path(p) for p in args.search_path) or (manager.databases_root,),
        allow_remote=not args.no_remote,
        prefer_remote=bool(args.prefer_remote),
        allow_create=not args.no_create,
        source_path=Path(args.source) if args.source else None,
        clone_source=bool(args.clone),
        create_options=create_options_from_args(args, settings),
        max_age=timedelta(days=args.max_age_days) if args.max_age_days else None,
    )

    print(f"\n🔎 Obtaining {language} database for {ref}")
    db = manager.obtain(ref, language, opts)
    print(f"✅ {db} at {db.path}")

    if args.analyze:
        aopts = analyze_options_from_args(args, settings)
        result = manager.analyze(db, queries_from_args(args), aopts)
        print(f"✅ Results written to {result.path}")
    return 0
