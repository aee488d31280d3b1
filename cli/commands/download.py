from __future__ import annotations

import argparse
from pathlib import Path

from cli.common import resolve_ref
from cli.ui import choose_many
from dbkit.domain.languages import normalize_language
from lifecycle.manager import DatabaseLifecycleManager


def run_download(args: argparse.Namespace, manager: DatabaseLifecycleManager) -> int:
    ref = resolve_ref(args)

    if args.language and normalize_language(args.language) != "all":
        dest = Path(args.output).expanduser() if args.output else None
        db = manager.download(ref, args.language, dest)
        print(f"✅ Downloaded {db} to {db.path}")
        return 0

    descriptors = manager.list_remote(ref)
    if not descriptors:
        print(f"⚠️ GitHub has no CodeQL databases for {ref}")
        return 1

    if args.language:
        picked = descriptors
    else:
        idx = choose_many(
            f"Databases available for {ref}:",
            [f"{d.language} ({d.name}, {d.size or '?'} bytes)" for d in descriptors],
        )
        picked = [descriptors[i] for i in idx]

    for db in manager.download_all(ref, [d.language for d in picked]):
        print(f"✅ Downloaded {db} to {db.path}")
    return 0
