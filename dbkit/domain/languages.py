"""dbkit.domain.languages

Known CodeQL languages.

The engine is the source of truth for which languages it can extract (see
``EngineClient.get_languages``); this catalogue is used when the engine has
not been probed, for display names, and to tell primary languages apart from
the secondary ones the engine reports alongside them.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, List


CODEQL_LANGUAGES: Dict[str, str] = {
    "actions": "GitHub Actions",
    "c": "C / C++",
    "cpp": "C / C++",
    "c-cpp": "C / C++",
    "csharp": "C#",
    "java": "Java / Kotlin",
    "kotlin": "Java / Kotlin",
    "java-kotlin": "Java / Kotlin",
    "javascript": "JavaScript / TypeScript",
    "typescript": "JavaScript / TypeScript",
    "javascript-typescript": "JavaScript / TypeScript",
    "python": "Python",
    "go": "Go",
    "rust": "Rust",
    "ruby": "Ruby",
    "swift": "Swift",
}

# Reported by `codeql resolve languages` but never a database's primary language.
SECONDARY_LANGUAGES: FrozenSet[str] = frozenset({"properties", "csv", "yaml", "xml", "html"})

KNOWN_LANGUAGES: FrozenSet[str] = frozenset(CODEQL_LANGUAGES)


def normalize_language(language: str) -> str:
    return (language or "").strip().lower()


def pretty_language(language: str) -> str:
    key = normalize_language(language)
    return CODEQL_LANGUAGES.get(key, key)


def is_secondary_language(language: str) -> bool:
    return normalize_language(language) in SECONDARY_LANGUAGES


def primary_languages(languages: Iterable[str]) -> List[str]:
    """Sorted languages with the secondary (config/markup) ones removed."""
    return sorted({normalize_language(l) for l in languages if not is_secondary_language(l)})
