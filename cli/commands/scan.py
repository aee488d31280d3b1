from __future__ import annotations

import argparse
from pathlib import Path

from cli.common import (
    analyze_options_from_args,
    create_options_from_args,
    optional_ref,
    queries_from_args,
    resolve_language,
)
from cli.ui import prompt_text
from dbkit.config import Settings
from lifecycle.manager import DatabaseLifecycleManager


def run_scan(args: argparse.Namespace, manager: DatabaseLifecycleManager, settings: Settings) -> int:
    source = args.source or prompt_text("Source directory", ".")
    ref = optional_ref(args)
    language = resolve_language(args, manager.languages())

    print("\n🚀 Scanning")
    print(f"  Language : {language}")
    print(f"  Source   : {Path(source).resolve()}")

    result = manager.scan(
        ref,
        language,
        source,
        queries_from_args(args),
        create_options=create_options_from_args(args, settings, repository=ref),
        analyze_options=analyze_options_from_args(args, settings),
    )
    print(f"\n✅ Database : {result.database.path}")
    print(f"✅ Results  : {result.path}")
    return 0
