from __future__ import annotations

import argparse


def add_engine_args(parser: argparse.ArgumentParser) -> None:
    """Flags for database creation and analysis (create|analyze|obtain|scan)."""

    parser.add_argument("-s", "--source", help="Source tree to build the database from")
    parser.add_argument("-d", "--database", help="(analyze) Database directory to analyze")

    parser.add_argument("--threads", type=int, help="Engine threads (default: $CODEQL_THREADS)")
    parser.add_argument("--ram", type=int, help="Engine RAM in MB (default: $CODEQL_RAM)")

    g = parser.add_argument_group("create")
    g.add_argument("--build-command", help="Build command for compiled languages")
    g.add_argument("--build-mode", choices=["none", "autobuild", "manual"], help="Extractor build mode")
    g.add_argument("--overwrite", action="store_true", help="Replace an existing database directory")
    g.add_argument("--threat-models", help="Comma-separated threat models (e.g. local,remote)")
    g.add_argument("--model-packs", help="Comma-separated model packs")
    g.add_argument("--summary", action="store_true", help="Print diagnostics/metrics summaries")

    g = parser.add_argument_group("analyze")
    g.add_argument(
        "--queries",
        help="Query pack (scope/name[@range][:path]), suite alias, or local .ql/.qls path",
    )
    g.add_argument(
        "--suite",
        choices=["default", "code-scanning", "security-extended", "security-and-quality", "experimental"],
        help="Standard query suite for the database language",
    )
    g.add_argument("--result-format", choices=["sarif-latest", "csv"], default="sarif-latest")
    g.add_argument("--category", help="SARIF category")
