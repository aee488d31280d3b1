"""tools/codeql/client.py

CodeQL CLI adapter.

:class:`EngineClient` wraps :class:`~tools.core_cmd.ProcessRunner` and exposes
the engine operations the lifecycle manager needs:

* ``probe`` / ``get_languages`` - version and extractor discovery
* ``create`` - ``codeql database create``
* ``analyze`` - ``codeql database analyze``

Engine handle
-------------
The first engine-dependent call probes the binary and caches an
:class:`EngineHandle` (path, version, languages) in a process-wide cache keyed
by the executable path. The handle is read-only and is never re-probed, so a
binary replaced on disk mid-process keeps reporting its old version and
languages.

Failure policy
--------------
* Engine absent: :class:`SpawnError`, remembered for the life of the client.
* Unsupported language: :class:`UnsupportedLanguageError`, raised before any
  process is spawned.
* Timeouts during create/analyze: retried once with the same arguments, then
  surfaced as :class:`CreationError` / :class:`AnalysisError`.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, FrozenSet, List, Mapping, Optional, Sequence, Type, Union

from dbkit.domain.database import Database, load_database
from dbkit.domain.languages import KNOWN_LANGUAGES, normalize_language
from dbkit.domain.repository import RepositoryRef
from dbkit.errors import (
    AnalysisError,
    CreationError,
    DbKitError,
    InvalidDatabaseError,
    OperationCancelled,
    ProcessTimeoutError,
    ProtocolError,
    SpawnError,
    UnsupportedLanguageError,
)
from dbkit.config import Timeouts
from dbkit.io.fs import remove_tree
from dbkit.io.layout import default_results_root, results_filename
from tools.core_cmd import ProcessResult, ProcessRunner
from tools.core_git import get_git_branch, get_git_commit

from .discovery import find_codeql
from .options import AnalyzeOptions, CreateOptions
from .output import parse_languages, parse_version
from .queries import QuerySpec, resolve_queries


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineHandle:
    path: str
    version: Optional[str]
    languages: FrozenSet[str]

    def supports(self, language: str) -> bool:
        return normalize_language(language) in self.languages


@dataclass(frozen=True)
class AnalysisResult:
    path: Path
    format: str
    database: Database


_HANDLE_CACHE: Dict[str, EngineHandle] = {}
_PROBE_LOCKS: Dict[str, threading.Lock] = {}
_PROBE_LOCKS_GUARD = threading.Lock()


def _probe_lock(path: str) -> threading.Lock:
    with _PROBE_LOCKS_GUARD:
        return _PROBE_LOCKS.setdefault(path, threading.Lock())

QueryArg = Union[None, str, Path, QuerySpec]


class EngineClient:
    """Runs the CodeQL CLI.

    ``locate`` and ``runner`` are injectable so tests can drive the client
    without a real engine; ``handle_cache`` defaults to the process-wide cache.
    """

    def __init__(
        self,
        *,
        path: Optional[str] = None,
        runner: Optional[ProcessRunner] = None,
        locate: Optional[Callable[[], Optional[str]]] = None,
        timeouts: Optional[Timeouts] = None,
        search_paths: Sequence[Union[str, Path]] = (),
        additional_packs: Sequence[Union[str, Path]] = (),
        token: Optional[str] = None,
        results_root: Optional[Path] = None,
        handle_cache: Optional[Dict[str, EngineHandle]] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._runner = runner or ProcessRunner()
        self._locate = locate or (lambda: find_codeql(path, env))
        self.timeouts = timeouts or Timeouts()
        self.search_paths = [str(p) for p in search_paths]
        self.additional_packs = [str(p) for p in additional_packs]
        self.results_root = Path(results_root) if results_root else default_results_root(env)
        self._token = token
        self._cache = _HANDLE_CACHE if handle_cache is None else handle_cache
        self._absent: Optional[SpawnError] = None
        self._path: Optional[str] = None

    # ------------------------------------------------------------------
    # Handle resolution
    # ------------------------------------------------------------------

    def engine_path(self) -> str:
        if self._absent is not None:
            raise self._absent
        if self._path is None:
            found = self._locate()
            if not found:
                self._absent = SpawnError(
                    "CodeQL CLI not found. Set CODEQL_PATH or CODEQL_BINARY, or put codeql on PATH."
                )
                raise self._absent
            self._path = found
        return self._path

    def probe(self) -> EngineHandle:
        """Run the engine and build a fresh handle. Does not touch the cache."""
        path = self.engine_path()
        logger.debug("engine %s: Idle -> Probing", path)

        res = self._run(path, ["version", "--format", "terse"], timeout=self.timeouts.probe)
        if res.exit_code != 0:
            raise ProtocolError(f"'codeql version' exited with {res.exit_code}", output=res.stderr)
        version = parse_version(res.stdout)

        args = ["resolve", "languages", "--format", "json", *self._search_args()]
        res = self._run(path, args, timeout=self.timeouts.probe)
        if res.exit_code != 0:
            raise ProtocolError(f"'codeql resolve languages' exited with {res.exit_code}", output=res.stderr)
        languages = parse_languages(res.stdout)

        logger.debug("engine %s: Probing -> Ready (version=%s, %d languages)", path, version, len(languages))
        return EngineHandle(path=path, version=version, languages=languages)

    def handle(self) -> EngineHandle:
        """Cached handle; probes on first use.

        Unparsable probe output degrades to a handle with no version and no
        languages, so later operations fail with a typed error.
        """
        path = self.engine_path()
        cached = self._cache.get(path)
        if cached is not None:
            return cached
        # Probes are serialized per engine path.
        with _probe_lock(path):
            cached = self._cache.get(path)
            if cached is not None:
                return cached
            try:
                handle = self.probe()
            except ProtocolError as e:
                logger.warning("Could not parse CodeQL probe output (%s); continuing with no languages", e)
                handle = EngineHandle(path=path, version=None, languages=frozenset())
            self._cache[path] = handle
            return handle

    def is_available(self) -> bool:
        try:
            self.handle()
        except SpawnError:
            return False
        except ProcessTimeoutError as e:
            logger.warning("CodeQL probe timed out: %s", e)
            return False
        return True

    def get_languages(self) -> FrozenSet[str]:
        return self.handle().languages

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create(
        self,
        language: str,
        source_path: Union[str, Path],
        output_path: Union[str, Path],
        options: Optional[CreateOptions] = None,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> Database:
        opts = options or CreateOptions()
        lang = normalize_language(language)
        handle = self.handle()
        if lang not in handle.languages:
            raise UnsupportedLanguageError(lang, handle.languages)

        source = Path(source_path).resolve()
        if not source.is_dir():
            raise CreationError(f"Source path does not exist or is not a directory: {source}")
        repository = self._source_repository(opts.repository, source)

        output = Path(output_path).resolve()
        owned = opts.overwrite or not output.exists()
        if opts.overwrite and output.exists():
            logger.info("Removing existing database at %s", output)
            remove_tree(output)
        output.parent.mkdir(parents=True, exist_ok=True)

        args = ["database", "create", "-l", lang, "-s", str(source)]
        args += opts.to_args()
        args += self._search_args()
        args.append(str(output))

        def _discard() -> None:
            if owned:
                remove_tree(output)

        logger.debug("engine %s: Ready -> Creating %s", handle.path, output)
        try:
            res = self._run_with_retry(
                handle.path,
                args,
                timeout=self.timeouts.create,
                error_cls=CreationError,
                what=f"database create ({lang})",
                cleanup=_discard,
                cancel_event=cancel_event,
            )
        except OperationCancelled:
            _discard()
            raise
        if res.exit_code != 0:
            _discard()
            logger.debug("engine %s: Creating -> Failed (exit %s)", handle.path, res.exit_code)
            raise CreationError(
                f"codeql database create failed for {lang} (exit {res.exit_code})",
                stderr=res.stderr,
                exit_code=res.exit_code,
            )

        name = opts.name or (repository.name if repository else source.name)
        try:
            db = load_database(
                output,
                supported_languages=KNOWN_LANGUAGES | handle.languages,
                name=name,
                source=repository,
            )
        except InvalidDatabaseError as e:
            _discard()
            raise CreationError(f"engine reported success but produced an invalid database: {e}") from e

        logger.debug("engine %s: Creating -> Created %s", handle.path, db.path)
        return db

    def _source_repository(self, repository: Optional[RepositoryRef], source: Path) -> Optional[RepositoryRef]:
        """``repository`` pinned to the commit actually checked out at ``source``.

        A pinned commit that differs from HEAD is a :class:`CreationError`;
        one that cannot be checked (no git checkout) is dropped.
        """
        if repository is None:
            return None
        head = get_git_commit(source, self._runner)
        if repository.commit and head and head.lower() != repository.commit.lower():
            raise CreationError(f"{source} is at commit {head}, not {repository.commit} as requested for {repository.slug}")
        if repository.commit and not head:
            logger.warning("Cannot verify commit %s: %s is not a git checkout", repository.commit, source)
        repository = repository.with_commit(head.lower() if head else None)
        if repository.branch is None:
            branch = get_git_branch(source, self._runner)
            if branch:
                repository = dataclasses.replace(repository, branch=branch)
        return repository

    def analyze(
        self,
        database: Database,
        queries: QueryArg = None,
        options: Optional[AnalyzeOptions] = None,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> AnalysisResult:
        opts = options or AnalyzeOptions()
        handle = self.handle()
        if database.path is None:
            raise InvalidDatabaseError(f"database {database} has no local path; download or create it first")
        database.validate(supported_languages=KNOWN_LANGUAGES | handle.languages)

        output = opts.output
        if output is None:
            owner = database.source.owner if database.source else None
            output = self.results_root / results_filename(database.language, database.name, owner, fmt=opts.format)
        output = Path(output).resolve()
        output.parent.mkdir(parents=True, exist_ok=True)
        if output.exists():
            output.unlink()

        args = ["database", "analyze", "--output", str(output)]
        args += opts.to_args()
        args += self._search_args()
        args += [str(database.path), resolve_queries(queries, database.language)]

        logger.debug("engine %s: Ready -> Analyzing %s", handle.path, database.path)
        res = self._run_with_retry(
            handle.path,
            args,
            timeout=self.timeouts.analyze,
            error_cls=AnalysisError,
            what=f"database analyze ({database})",
            cancel_event=cancel_event,
        )
        if res.exit_code != 0:
            logger.debug("engine %s: Analyzing -> Failed (exit %s)", handle.path, res.exit_code)
            raise AnalysisError(
                f"codeql database analyze failed for {database} (exit {res.exit_code})",
                stderr=res.stderr,
                exit_code=res.exit_code,
            )
        if not output.is_file():
            raise AnalysisError(f"codeql database analyze succeeded but wrote no results to {output}")

        logger.debug("engine %s: Analyzing -> Analyzed %s", handle.path, output)
        return AnalysisResult(path=output, format=opts.format, database=database)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _search_args(self) -> List[str]:
        out: List[str] = []
        if self.search_paths:
            out += ["--search-path", os.pathsep.join(self.search_paths)]
        if self.additional_packs:
            out += ["--additional-packs", os.pathsep.join(self.additional_packs)]
        return out

    def _run(
        self,
        path: str,
        args: Sequence[str],
        *,
        timeout: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> ProcessResult:
        env = {"CODEQL_REGISTRIES_AUTH": self._token} if self._token else None
        try:
            return self._runner.run(path, list(args), timeout=timeout, env=env, cancel_event=cancel_event)
        except SpawnError as e:
            self._absent = e
            raise

    def _run_with_retry(
        self,
        path: str,
        args: Sequence[str],
        *,
        timeout: float,
        error_cls: Type[DbKitError],
        what: str,
        cleanup: Optional[Callable[[], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ProcessResult:
        last: Optional[ProcessTimeoutError] = None
        for attempt in (1, 2):
            try:
                return self._run(path, args, timeout=timeout, cancel_event=cancel_event)
            except ProcessTimeoutError as e:
                last = e
                logger.warning("%s timed out after %ss (attempt %d/2)", what, timeout, attempt)
                if cleanup is not None:
                    cleanup()
        raise error_cls(f"{what} timed out twice after {timeout}s") from last
