from __future__ import annotations

import argparse

MODES = ["list", "languages", "download", "create", "analyze", "obtain", "scan"]


def add_base_args(parser: argparse.ArgumentParser) -> None:
    """Register CLI flags that are shared across multiple modes.

    This includes:
    - mode selection
    - repository + language selection
    - engine / GitHub connection overrides
    - output and logging knobs
    """

    parser.add_argument(
        "--mode",
        choices=MODES,
        help=(
            "list = databases on disk, languages = engine languages, download = fetch from GitHub, "
            "create/analyze = run the engine, obtain = local -> remote -> create, scan = create + analyze"
        ),
    )
    parser.add_argument("--repo", help="Repository as owner/name[@branch|@commit]")
    parser.add_argument(
        "-l",
        "--language",
        help="CodeQL language (e.g. python, java-kotlin). In download mode 'all' downloads every language.",
    )

    parser.add_argument(
        "--databases",
        help="Database root (default: $CODEQL_DATABASES or ~/.codeql/databases)",
    )
    parser.add_argument("--codeql-path", help="CodeQL binary, or the directory that contains it")
    parser.add_argument("--github-token", help="GitHub token (default: $GITHUB_TOKEN)")
    parser.add_argument("--github-instance", help="GitHub instance URL (default: https://github.com)")

    parser.add_argument(
        "--format",
        choices=["std", "json"],
        default="std",
        help="(list|languages) Output format",
    )
    parser.add_argument("-o", "--output", help="Output file (list: JSON path, analyze: results path)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
