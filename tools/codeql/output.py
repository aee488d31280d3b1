"""tools/codeql/output.py

Parsers for CodeQL CLI output.

All engine stdout goes through these functions; call sites never scan output
strings themselves. Each parser returns the parsed value or raises
:class:`~dbkit.errors.ProtocolError` with the offending output attached.
"""

from __future__ import annotations

import json
import re
from typing import FrozenSet

from dbkit.domain.languages import normalize_language
from dbkit.errors import ProtocolError


VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:[-+][0-9A-Za-z.+-]+)?$")

# Plain `codeql resolve languages` output: "python (/opt/codeql/python)"
_LANG_LINE_RE = re.compile(r"^([A-Za-z0-9_-]+)(?:\s+\(.*\))?$")


def parse_version(text: str) -> str:
    """Parse ``codeql version --format terse`` output into ``X.Y.Z[-suffix]``."""
    lines = [ln.strip() for ln in (text or "").splitlines() if ln.strip()]
    if not lines:
        raise ProtocolError("engine printed no version", output=text)
    candidate = lines[0]
    if not VERSION_RE.match(candidate):
        raise ProtocolError(f"unrecognised engine version string: {candidate!r}", output=text)
    return candidate


def parse_languages(text: str) -> FrozenSet[str]:
    """Parse ``codeql resolve languages`` output.

    Accepts the JSON form (object keyed by language) and the plain form
    (one ``<language> (<extractor path>)`` per line).
    """
    s = (text or "").strip()
    if not s:
        raise ProtocolError("engine reported no languages", output=text)

    if s.startswith("{"):
        try:
            data = json.loads(s)
        except json.JSONDecodeError as e:
            raise ProtocolError(f"language list is not valid JSON: {e}", output=text) from e
        if not isinstance(data, dict):
            raise ProtocolError("language list JSON must be an object", output=text)
        langs = {normalize_language(str(k)) for k in data.keys()}
    else:
        langs = set()
        for raw in s.splitlines():
            line = raw.strip()
            if not line:
                continue
            m = _LANG_LINE_RE.match(line)
            if not m:
                raise ProtocolError(f"unrecognised language line: {line!r}", output=text)
            langs.add(normalize_language(m.group(1)))

    langs.discard("")
    if not langs:
        raise ProtocolError("engine reported no languages", output=text)
    return frozenset(langs)
