"""lifecycle/manager.py

The single front door for database work.

:class:`DatabaseLifecycleManager` composes the three sources of databases:

- :class:`~lifecycle.store.DatabaseStore`: databases already on disk
- :class:`~tools.github.fetcher.RemoteFetcher`: databases built by GitHub
- :class:`~tools.codeql.client.EngineClient`: databases we build ourselves

``obtain`` tries them in that order (remote only when the engine is
unavailable or the caller prefers a pre-built artifact) and stops at the first
success. When nothing works it raises :class:`~dbkit.errors.UnavailableError`
listing every strategy it tried and why each one failed.

Callers (CLI, scripts, tests) should build the manager through
:func:`lifecycle.wiring.build_manager` rather than wiring the parts by hand.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Union

from dbkit.domain.database import Database, DatabaseCollection
from dbkit.domain.languages import normalize_language
from dbkit.domain.repository import RepositoryRef
from dbkit.errors import (
    CreationError,
    DbKitError,
    NotFoundError,
    OperationCancelled,
    StepFailure,
    UnavailableError,
)
from dbkit.io.layout import database_path
from tools.codeql.client import AnalysisResult, EngineClient, QueryArg
from tools.codeql.options import AnalyzeOptions, CreateOptions
from tools.core_repo import clone_repository
from tools.github.fetcher import RemoteFetcher
from tools.github.types import RemoteDescriptor

from .locks import KeyedLocks
from .models import ObtainOptions
from .store import DatabaseStore


logger = logging.getLogger(__name__)

CloneFn = Callable[..., Path]


class DatabaseLifecycleManager:
    def __init__(
        self,
        *,
        store: DatabaseStore,
        engine: EngineClient,
        fetcher: Optional[RemoteFetcher],
        databases_root: Path,
        github_instance: str = "https://github.com",
        serialize_keys: bool = False,
        clone_fn: CloneFn = clone_repository,
    ) -> None:
        self.store = store
        self.engine = engine
        self.fetcher = fetcher
        self.databases_root = Path(databases_root)
        self.github_instance = github_instance
        self._clone_fn = clone_fn
        self._locks: Optional[KeyedLocks] = KeyedLocks() if serialize_keys else None

    # ------------------------------------------------------------------
    # obtain
    # ------------------------------------------------------------------

    def obtain(self, ref: RepositoryRef, language: str, options: Optional[ObtainOptions] = None) -> Database:
        """Return a usable database for ``ref`` in ``language``.

        Never returns a partial database: every returned value has passed
        layout validation. ``OperationCancelled`` propagates immediately.
        """
        opts = options or ObtainOptions()
        lang = normalize_language(language)
        if self._locks is None:
            return self._obtain(ref, lang, opts)
        with self._locks.hold((ref.slug, lang)):
            return self._obtain(ref, lang, opts)

    def _obtain(self, ref: RepositoryRef, lang: str, opts: ObtainOptions) -> Database:
        failures: List[StepFailure] = []

        def attempt(strategy: str, fn: Callable[[], Database]) -> Optional[Database]:
            logger.debug("obtain %s (%s): trying %s", ref, lang, strategy)
            try:
                db = fn()
            except OperationCancelled:
                raise
            except DbKitError as e:
                logger.info("obtain %s (%s): %s failed: %s", ref, lang, strategy, e)
                failures.append(StepFailure(strategy, e))
                return None
            logger.info("obtain %s (%s): %s -> %s", ref, lang, strategy, db.path)
            return db

        if opts.search_paths:
            db = attempt("local", lambda: self._obtain_local(ref, lang, opts))
            if db is not None:
                return db

        if opts.allow_remote and (opts.prefer_remote or not self.engine.is_available()):
            db = attempt("remote", lambda: self._obtain_remote(ref, lang, opts))
            if db is not None:
                return db

        if opts.allow_create:
            db = attempt("create", lambda: self._obtain_create(ref, lang, opts))
            if db is not None:
                return db

        raise UnavailableError(f"{ref} ({lang})", failures)

    def _obtain_local(self, ref: RepositoryRef, lang: str, opts: ObtainOptions) -> Database:
        reasons: List[str] = []
        for root in opts.search_paths:
            try:
                found = self.store.find_all(root, ref.name, lang)
            except NotFoundError as e:
                reasons.append(str(e))
                continue
            candidates = self._owned_by(found, ref)
            if not candidates:
                others = sorted({db.source.slug for db in found if db.source is not None})
                suffix = f" (found {', '.join(others)})" if others else ""
                reasons.append(f"no {ref.slug} ({lang}) database under {root}{suffix}")
                continue
            for db in candidates:
                stale = self._stale_reason(db, ref, opts)
                if stale:
                    reasons.append(f"{db.path} is stale: {stale}")
                    continue
                return db
        raise NotFoundError("; ".join(reasons))

    @staticmethod
    def _owned_by(found: List[Database], ref: RepositoryRef) -> List[Database]:
        """Databases from ``ref``'s owner first, then ones with no recorded source."""
        slug = ref.slug.lower()
        exact = [db for db in found if db.source is not None and db.source.slug.lower() == slug]
        unknown = [db for db in found if db.source is None]
        return exact + unknown

    @staticmethod
    def _stale_reason(db: Database, ref: RepositoryRef, opts: ObtainOptions) -> Optional[str]:
        if opts.max_age is not None:
            if db.created_at is None:
                return "creation time unknown"
            age = datetime.now(timezone.utc) - db.created_at
            if age > opts.max_age:
                return f"created {db.created_at.isoformat()}, older than {opts.max_age}"
        if ref.commit:
            built = db.commit or (db.source.commit if db.source is not None else None)
            if built and built.lower() != ref.commit.lower():
                return f"built from {built}, wanted {ref.commit}"
        return None

    def _require_fetcher(self) -> RemoteFetcher:
        if self.fetcher is None:
            raise NotFoundError("remote download is not configured")
        return self.fetcher

    def _obtain_remote(self, ref: RepositoryRef, lang: str, opts: ObtainOptions) -> Database:
        fetcher = self._require_fetcher()
        descriptor = fetcher.find(ref, lang)
        dest = database_path(opts.download_root or self.databases_root, ref, lang)
        return fetcher.download(descriptor, dest, cancel_event=opts.cancel_event)

    def _obtain_create(self, ref: RepositoryRef, lang: str, opts: ObtainOptions) -> Database:
        # Surfaces SpawnError when the engine is absent, before source checks.
        self.engine.handle()

        source = opts.source_path
        if source is None:
            if not opts.clone_source:
                raise CreationError("no source_path given and cloning is disabled")
            source = self._clone_fn(
                ref,
                opts.repos_root or (self.databases_root.parent / "repos"),
                instance=self.github_instance,
                cancel_event=opts.cancel_event,
            )

        create_opts = dataclasses.replace(
            opts.create_options,
            overwrite=True,
            repository=opts.create_options.repository or ref,
            name=opts.create_options.name or ref.name,
        )
        output = database_path(opts.output_root or self.databases_root, ref, lang)
        return self.engine.create(lang, source, output, create_opts, cancel_event=opts.cancel_event)

    # ------------------------------------------------------------------
    # Pass-through operations
    # ------------------------------------------------------------------

    def enumerate(self, paths: Optional[Sequence[Union[str, Path]]] = None) -> DatabaseCollection:
        """All valid databases under ``paths`` (default: the databases root)."""
        return self.store.scan_many(list(paths) if paths else [self.databases_root])

    def languages(self) -> List[str]:
        return sorted(self.engine.get_languages())

    def create(
        self,
        language: str,
        source_path: Union[str, Path],
        output_path: Optional[Union[str, Path]] = None,
        options: Optional[CreateOptions] = None,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> Database:
        opts = options or CreateOptions()
        if output_path is None:
            if opts.repository is not None:
                output_path = database_path(self.databases_root, opts.repository, language)
            else:
                name = opts.name or Path(source_path).resolve().name
                output_path = self.databases_root / f"{normalize_language(language)}-{name}"
        return self.engine.create(language, source_path, output_path, opts, cancel_event=cancel_event)

    def analyze(
        self,
        database: Database,
        queries: QueryArg = None,
        options: Optional[AnalyzeOptions] = None,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> AnalysisResult:
        return self.engine.analyze(database, queries, options, cancel_event=cancel_event)

    def list_remote(self, ref: RepositoryRef) -> List[RemoteDescriptor]:
        return list(self._require_fetcher().list(ref))

    def download(
        self,
        ref: RepositoryRef,
        language: str,
        destination: Optional[Union[str, Path]] = None,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> Database:
        fetcher = self._require_fetcher()
        dest = Path(destination) if destination else database_path(self.databases_root, ref, language)
        return fetcher.download_language(ref, language, dest, cancel_event=cancel_event)

    def download_all(self, ref: RepositoryRef, languages: Optional[Iterable[str]] = None) -> List[Database]:
        """Download every listed database for ``ref`` (optionally only ``languages``)."""
        fetcher = self._require_fetcher()
        wanted = {normalize_language(l) for l in languages} if languages else None
        out: List[Database] = []
        for desc in fetcher.list(ref):
            if wanted is not None and desc.language not in wanted:
                continue
            dest = database_path(self.databases_root, ref, desc.language)
            out.append(fetcher.download(desc, dest))
        return out

    def scan(
        self,
        ref: Optional[RepositoryRef],
        language: str,
        source_path: Union[str, Path],
        queries: QueryArg = None,
        *,
        create_options: Optional[CreateOptions] = None,
        analyze_options: Optional[AnalyzeOptions] = None,
    ) -> AnalysisResult:
        """Create a fresh database from ``source_path`` and analyze it in one go.

        Results default to ``<database>/results.sarif``.
        """
        copts = dataclasses.replace(create_options or CreateOptions(), overwrite=True)
        if ref is not None and copts.repository is None:
            copts = dataclasses.replace(copts, repository=ref)
        db = self.create(language, source_path, None, copts)

        aopts = analyze_options or AnalyzeOptions()
        if aopts.output is None and db.path is not None:
            ext = "csv" if aopts.format == "csv" else "sarif"
            aopts = dataclasses.replace(aopts, output=db.path / f"results.{ext}")
        return self.analyze(db, queries, aopts)
