from __future__ import annotations

import argparse
from pathlib import Path

from cli.common import create_options_from_args, optional_ref, resolve_language
from cli.ui import prompt_text
from dbkit.config import Settings
from lifecycle.manager import DatabaseLifecycleManager


def run_create(args: argparse.Namespace, manager: DatabaseLifecycleManager, settings: Settings) -> int:
    source = args.source or prompt_text("Source directory", ".")
    ref = optional_ref(args)
    language = resolve_language(args, manager.languages())
    opts = create_options_from_args(args, settings, repository=ref)
    output = Path(args.output).expanduser() if args.output else None

    print("\n🚀 Creating database")
    print(f"  Language : {language}")
    print(f"  Source   : {Path(source).resolve()}")

    db = manager.create(language, source, output, opts)
    print(f"\n✅ Created {db} at {db.path}")
    return 0
