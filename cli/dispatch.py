from __future__ import annotations

import argparse

from cli.commands.analyze import run_analyze
from cli.commands.create import run_create
from cli.commands.databases import run_languages, run_list
from cli.commands.download import run_download
from cli.commands.obtain import run_obtain
from cli.commands.scan import run_scan
from cli.ui import choose_from_menu
from dbkit.config import Settings
from lifecycle.manager import DatabaseLifecycleManager


MODE_LABELS = {
    "list": "List databases on disk",
    "languages": "Show languages supported by the CodeQL CLI",
    "download": "Download databases built by GitHub code scanning",
    "create": "Create a database from a source tree",
    "analyze": "Analyze an existing database",
    "obtain": "Get a database: local, then GitHub, then build",
    "scan": "Create and analyze in one step",
}


def resolve_mode(args: argparse.Namespace) -> str:
    if args.mode:
        return args.mode
    if args.database:
        return "analyze"
    if args.repo and args.language:
        return "obtain"
    return choose_from_menu("Choose an action:", MODE_LABELS)


def dispatch(args: argparse.Namespace, manager: DatabaseLifecycleManager, settings: Settings) -> int:
    mode = resolve_mode(args)

    if mode == "list":
        return int(run_list(args, manager))
    if mode == "languages":
        return int(run_languages(args, manager))
    if mode == "download":
        return int(run_download(args, manager))
    if mode == "create":
        return int(run_create(args, manager, settings))
    if mode == "analyze":
        return int(run_analyze(args, manager, settings))
    if mode == "scan":
        return int(run_scan(args, manager, settings))
    return int(run_obtain(args, manager, settings))
