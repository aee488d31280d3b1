from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from dbkit.domain.languages import primary_languages, pretty_language
from dbkit.io.fs import write_json_atomic
from lifecycle.manager import DatabaseLifecycleManager


def run_list(args: argparse.Namespace, manager: DatabaseLifecycleManager) -> int:
    roots = [Path(p).expanduser() for p in args.search_path] or [manager.databases_root]
    collection = manager.enumerate(roots)

    if args.format == "json":
        rows = collection.to_json()
        if args.output:
            write_json_atomic(Path(args.output).expanduser(), rows)
            print(f"📄 Wrote {len(rows)} database(s) to {args.output}", file=sys.stderr)
        else:
            print(json.dumps(rows, indent=2))
        return 0

    if not collection:
        print(f"ℹ️  No databases found under {', '.join(str(r) for r in roots)}")
        return 0

    print(f"\n📦 {len(collection)} database(s)")
    for db in collection:
        created = db.created_at.strftime("%Y-%m-%d %H:%M") if db.created_at else "?"
        source = f"  [{db.source}]" if db.source else ""
        print(f"  - {db.name:<24} {db.language:<12} {created}  {db.path}{source}")
    return 0


def run_languages(args: argparse.Namespace, manager: DatabaseLifecycleManager) -> int:
    langs = manager.languages()
    if not args.all:
        langs = primary_languages(langs)

    if args.format == "json":
        print(json.dumps(langs))
        return 0

    print("\n🧭 CodeQL languages")
    for lang in langs:
        print(f"  - {lang:<24} {pretty_language(lang)}")
    return 0
