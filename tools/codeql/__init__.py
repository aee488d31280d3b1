"""tools.codeql

CodeQL CLI adapter (discovery, output parsing, create/analyze).
"""

from __future__ import annotations

from .client import AnalysisResult, EngineClient, EngineHandle
from .discovery import find_codeql
from .options import AnalyzeOptions, CreateOptions
from .queries import QuerySpec, resolve_queries

__all__ = [
    "AnalysisResult",
    "AnalyzeOptions",
    "CreateOptions",
    "EngineClient",
    "EngineHandle",
    "QuerySpec",
    "find_codeql",
    "resolve_queries",
]
