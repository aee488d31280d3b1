from __future__ import annotations

import argparse
from pathlib import Path
from typing import Iterable, List, Optional

from cli.ui import choose_from_menu, prompt_text
from dbkit.config import Settings
from dbkit.domain.languages import normalize_language, pretty_language
from dbkit.domain.repository import RepositoryRef, parse_repository
from dbkit.errors import ParseError
from tools.codeql.options import AnalyzeOptions, CreateOptions


def _csv(value: Optional[str]) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def optional_ref(args: argparse.Namespace) -> Optional[RepositoryRef]:
    return parse_repository(args.repo) if args.repo else None


def resolve_ref(args: argparse.Namespace) -> RepositoryRef:
    """Parse ``--repo`` or prompt for it."""
    if args.repo:
        return parse_repository(args.repo)
    while True:
        raw = prompt_text("Repository (owner/name[@branch])")
        try:
            return parse_repository(raw)
        except ParseError as e:
            print(f"⚠️ {e}")


def resolve_language(args: argparse.Namespace, choices: Iterable[str]) -> str:
    """``--language`` or a menu over ``choices``."""
    if args.language:
        return normalize_language(args.language)
    options = {lang: pretty_language(lang) for lang in sorted(set(choices))}
    return choose_from_menu("Choose a language:", options)


def create_options_from_args(
    args: argparse.Namespace,
    settings: Settings,
    *,
    repository: Optional[RepositoryRef] = None,
) -> CreateOptions:
    return CreateOptions(
        overwrite=bool(args.overwrite),
        build_command=args.build_command,
        build_mode=args.build_mode,
        threads=args.threads if args.threads is not None else settings.threads,
        ram=args.ram if args.ram is not None else settings.ram,
        threat_models=tuple(_csv(args.threat_models)),
        model_packs=tuple(_csv(args.model_packs)),
        summary=bool(args.summary),
        repository=repository,
    )


def analyze_options_from_args(args: argparse.Namespace, settings: Settings) -> AnalyzeOptions:
    return AnalyzeOptions(
        output=Path(args.output).expanduser() if args.output else None,
        format=args.result_format,
        threads=args.threads if args.threads is not None else settings.threads,
        ram=args.ram if args.ram is not None else settings.ram,
        category=args.category,
        summary=bool(args.summary),
    )


def queries_from_args(args: argparse.Namespace) -> Optional[str]:
    return args.queries or args.suite
