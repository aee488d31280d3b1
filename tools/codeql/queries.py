"""tools/codeql/queries.py

Query selection for ``codeql database analyze``.

A query argument can be:

* a pack reference ``scope/name[@range][:path]``
  (e.g. ``codeql/python-queries@^1.0:codeql-suites/python-security-extended.qls``)
* a well-known suite alias (``default``, ``code-scanning``,
  ``security-extended``, ``security-and-quality``, ``experimental``)
* a local ``.ql``/``.qls`` file or query directory
* nothing, meaning the language's standard query pack
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dbkit.domain.languages import normalize_language
from dbkit.errors import ParseError


SUITE_ALIASES = {
    "default": "code-scanning",
    "code-scanning": "code-scanning",
    "security-extended": "security-extended",
    "security-and-quality": "security-and-quality",
    "experimental": "security-experimental",
}

# Query packs are published under the extractor name, not the alias.
_PACK_LANGUAGE = {
    "c": "cpp",
    "cpp": "cpp",
    "c-cpp": "cpp",
    "java": "java",
    "kotlin": "java",
    "java-kotlin": "java",
    "javascript": "javascript",
    "typescript": "javascript",
    "javascript-typescript": "javascript",
}

_SPEC_RE = re.compile(
    r"^(?P<scope>[A-Za-z0-9_-]+)/(?P<name>[A-Za-z0-9_-]+)"
    r"(?:@(?P<range>[^:]+))?"
    r"(?::(?P<path>.+))?$"
)


def query_pack_language(language: str) -> str:
    lang = normalize_language(language)
    return _PACK_LANGUAGE.get(lang, lang)


@dataclass(frozen=True)
class QuerySpec:
    scope: Optional[str] = None
    name: Optional[str] = None
    range: Optional[str] = None
    path: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "QuerySpec":
        s = (text or "").strip()
        if not s:
            raise ParseError("empty query spec")
        m = _SPEC_RE.match(s)
        if not m:
            return cls(path=s)
        return cls(scope=m.group("scope"), name=m.group("name"), range=m.group("range"), path=m.group("path"))

    @classmethod
    def language_pack(cls, language: str, suite: Optional[str] = None) -> "QuerySpec":
        lang = query_pack_language(language)
        path = None
        if suite is not None:
            if suite not in SUITE_ALIASES:
                raise ParseError(f"unknown query suite {suite!r} (known: {', '.join(sorted(SUITE_ALIASES))})")
            path = f"codeql-suites/{lang}-{SUITE_ALIASES[suite]}.qls"
        return cls(scope="codeql", name=f"{lang}-queries", path=path)

    @property
    def pack(self) -> Optional[str]:
        if self.scope and self.name:
            return f"{self.scope}/{self.name}"
        return None

    def __str__(self) -> str:
        if self.pack is None:
            return self.path or ""
        out = self.pack
        if self.range:
            out += f"@{self.range}"
        if self.path:
            out += f":{self.path}"
        return out


def resolve_queries(queries: Union[None, str, Path, QuerySpec], language: str) -> str:
    """Turn a caller's query selection into the analyze positional argument."""
    if queries is None:
        return str(QuerySpec.language_pack(language))
    if isinstance(queries, QuerySpec):
        return str(queries)
    if isinstance(queries, Path):
        return str(queries)

    s = queries.strip()
    if s in SUITE_ALIASES:
        return str(QuerySpec.language_pack(language, s))
    if Path(s).expanduser().exists():
        return str(Path(s).expanduser())
    spec = QuerySpec.parse(s)
    if spec.pack is None:
        return str(Path(s).expanduser())
    return str(spec)
