"""tools/codeql/options.py

Option objects for ``codeql database create`` / ``codeql database analyze``.

These are frozen dataclasses with defaulted fields, validated once at
construction. They translate themselves into CLI flags; the client adds the
positional arguments.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from dbkit.domain.repository import RepositoryRef


BUILD_MODES = ("none", "autobuild", "manual")
RESULT_FORMATS = ("sarif-latest", "sarifv2.1.0", "csv")


def _check_ram(ram: Optional[int]) -> None:
    if ram is not None and ram <= 0:
        raise ValueError(f"ram must be a positive number of MB (got {ram!r})")


def _resource_args(threads: Optional[int], ram: Optional[int]) -> List[str]:
    out: List[str] = []
    if threads is not None:
        out += ["--threads", str(threads)]
    if ram is not None:
        out += ["--ram", str(ram)]
    return out


@dataclass(frozen=True)
class CreateOptions:
    """Settings for database creation.

    ``overwrite`` deletes an existing output directory before the engine runs.
    ``threads`` follows the engine's convention: 0 = one per core, negative =
    leave that many cores free.
    """

    overwrite: bool = False
    build_command: Optional[str] = None
    build_mode: Optional[str] = None
    threads: Optional[int] = None
    ram: Optional[int] = None
    threat_models: Tuple[str, ...] = ()
    model_packs: Tuple[str, ...] = ()
    summary: bool = False
    name: Optional[str] = None
    repository: Optional[RepositoryRef] = None

    def __post_init__(self) -> None:
        if self.build_mode is not None and self.build_mode not in BUILD_MODES:
            raise ValueError(f"build_mode must be one of {BUILD_MODES} (got {self.build_mode!r})")
        if self.build_command is not None and not self.build_command.strip():
            raise ValueError("build_command must be non-empty when set")
        if self.build_command is not None and self.build_mode in ("none", "autobuild"):
            raise ValueError(f"build_command cannot be combined with build_mode={self.build_mode!r}")
        _check_ram(self.ram)
        # Accept lists from callers but store tuples.
        object.__setattr__(self, "threat_models", tuple(self.threat_models))
        object.__setattr__(self, "model_packs", tuple(self.model_packs))

    def to_args(self) -> List[str]:
        out: List[str] = []
        if self.build_mode:
            out += ["--build-mode", self.build_mode]
        if self.build_command:
            out += ["--command", self.build_command]
        out += _resource_args(self.threads, self.ram)
        if self.threat_models:
            out += ["--threat-models", ",".join(self.threat_models)]
        if self.model_packs:
            out += ["--model-packs", ",".join(self.model_packs)]
        if self.overwrite:
            out.append("--overwrite")
        if self.summary:
            out += ["--print-diagnostics-summary", "--print-metrics-summary"]
        return out


@dataclass(frozen=True)
class AnalyzeOptions:
    """Settings for database analysis.

    When ``output`` is None the client picks ``<results root>/<lang>-<name>.sarif``.
    """

    output: Optional[Path] = None
    format: str = "sarif-latest"
    threads: Optional[int] = None
    ram: Optional[int] = None
    category: Optional[str] = None
    summary: bool = False

    def __post_init__(self) -> None:
        if self.format not in RESULT_FORMATS:
            raise ValueError(f"format must be one of {RESULT_FORMATS} (got {self.format!r})")
        _check_ram(self.ram)
        if self.output is not None:
            object.__setattr__(self, "output", Path(self.output))

    def to_args(self) -> List[str]:
        out = ["--format", self.format]
        out += _resource_args(self.threads, self.ram)
        if self.category:
            out += ["--sarif-category", self.category]
        if self.summary:
            out += ["--print-diagnostics-summary", "--print-metrics-summary"]
        return out
