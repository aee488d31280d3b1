#!/usr/bin/env python3
"""
Command-line front door for the CodeQL database toolkit.

Modes:
  list       - databases found under the database root
  languages  - languages supported by the local CodeQL CLI
  download   - fetch databases built by GitHub code scanning
  create     - build a database from a source tree
  analyze    - run queries against a database
  obtain     - local database, else GitHub download, else local build
  scan       - create + analyze in one step

Usage:
  python dbkit_cli.py
  python dbkit_cli.py --mode list --format json
  python dbkit_cli.py --mode download --repo octo-org/octo-repo --language python
  python dbkit_cli.py --mode create -l python -s ./src --repo octo-org/octo-repo
  python dbkit_cli.py --mode obtain --repo octo-org/octo-repo@main -l java --clone --analyze
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from cli.args.base import add_base_args
from cli.args.engine import add_engine_args
from cli.args.obtain import add_obtain_args
from cli.dispatch import dispatch
from dbkit.errors import DbKitError, SpawnError, UnavailableError
from lifecycle.wiring import build_manager, load_settings


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Locate, download, create and analyze CodeQL databases.")
    add_base_args(parser)
    add_engine_args(parser)
    add_obtain_args(parser)
    return parser.parse_args(argv)


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    configure_logging(bool(args.debug))

    try:
        settings = load_settings(
            databases_root=Path(args.databases).expanduser() if args.databases else None,
            codeql_path=args.codeql_path,
            github_token=args.github_token,
            github_instance=args.github_instance.rstrip("/") if args.github_instance else None,
        )
        manager = build_manager(settings, serialize_keys=bool(args.serialize))
        code = dispatch(args, manager, settings)
    except SpawnError as e:
        print(f"❌ {e}", file=sys.stderr)
        raise SystemExit(127)
    except UnavailableError as e:
        print(f"❌ {e}", file=sys.stderr)
        raise SystemExit(2)
    except DbKitError as e:
        print(f"❌ {type(e).__name__}: {e}", file=sys.stderr)
        raise SystemExit(1)
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        raise SystemExit(1)
    raise SystemExit(code)


if __name__ == "__main__":
    main()
