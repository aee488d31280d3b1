"""tools/github/fetcher.py

List and download CodeQL databases built by GitHub code scanning.

Endpoints used::

    GET /repos/{owner}/{repo}/code-scanning/codeql/databases
    GET /repos/{owner}/{repo}/code-scanning/codeql/databases/{language}
        (Accept: application/zip)

A download is streamed into a staging directory next to the destination,
unpacked, and checked for the database layout. Only a database that passes
validation is moved into the destination; on any failure the staging
directory is removed and the destination is left as it was.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
import time
import zipfile
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Protocol, TypeVar, Union

from dbkit.domain.database import METADATA_FILENAME, Database, load_database, parse_timestamp
from dbkit.domain.languages import KNOWN_LANGUAGES, normalize_language
from dbkit.domain.repository import RepositoryRef
from dbkit.errors import IntegrityError, InvalidDatabaseError, NetworkError, NotFoundError, OperationCancelled
from dbkit.io.fs import empty_directory, remove_tree

from .types import RemoteDescriptor


logger = logging.getLogger(__name__)

T = TypeVar("T")

ARCHIVE_NAME = "codeql-database.zip"


class ApiClient(Protocol):
    def get(self, path: str) -> Any: ...

    def download(self, url: str, *, timeout: Any = None) -> Iterator[bytes]: ...


def _descriptor(ref: RepositoryRef, item: Dict[str, Any]) -> Optional[RemoteDescriptor]:
    language = normalize_language(str(item.get("language") or ""))
    url = item.get("url") or item.get("download_url")
    if not language or not url:
        return None
    size = item.get("size")
    return RemoteDescriptor(
        id=int(item.get("id") or 0),
        name=str(item.get("name") or f"{ref.name}-{language}"),
        language=language,
        repository=ref,
        download_url=str(url),
        created_at=parse_timestamp(item.get("created_at")),
        updated_at=parse_timestamp(item.get("updated_at")),
        size=int(size) if isinstance(size, (int, float)) else None,
        content_type=item.get("content_type"),
        commit_oid=item.get("commit_oid"),
    )


def _extract(archive: Path, dest: Path) -> None:
    dest.mkdir(parents=True, exist_ok=True)
    base = str(dest.resolve())
    try:
        with zipfile.ZipFile(archive) as zf:
            for member in zf.namelist():
                target = os.path.realpath(os.path.join(base, member))
                if os.path.commonpath([base, target]) != base:
                    raise IntegrityError(f"archive entry escapes the extraction directory: {member!r}")
            zf.extractall(base)
    except zipfile.BadZipFile as e:
        raise IntegrityError(f"downloaded artifact is not a valid zip archive: {e}") from e


def _find_database_root(path: Path, depth: int = 2) -> Optional[Path]:
    if (path / METADATA_FILENAME).is_file():
        return path
    if depth <= 0:
        return None
    for child in sorted(p for p in path.iterdir() if p.is_dir()):
        found = _find_database_root(child, depth - 1)
        if found is not None:
            return found
    return None


class RemoteFetcher:
    def __init__(
        self,
        client: ApiClient,
        *,
        retries: int = 2,
        backoff: float = 1.0,
        download_timeout: float = 900.0,
        enterprise_server: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if retries < 0:
            raise ValueError("retries must be >= 0")
        if download_timeout <= 0:
            raise ValueError("download_timeout must be > 0")
        self.client = client
        self.retries = retries
        self.backoff = backoff
        self.download_timeout = download_timeout
        self.enterprise_server = enterprise_server
        self._sleep = sleep

    def list(self, ref: RepositoryRef) -> Iterator[RemoteDescriptor]:
        """Databases available for ``ref``; evaluated lazily, one pass per call.

        The endpoint only serves databases for the default branch, so the
        branch on ``ref`` is not used for filtering. A commit on ``ref`` drops
        descriptors that report a different ``commit_oid``.
        """
        path = f"repos/{ref.owner}/{ref.name}/code-scanning/codeql/databases"
        data = self._with_retries(lambda: self.client.get(path), f"list databases for {ref.slug}")
        if not isinstance(data, list):
            raise NetworkError(f"unexpected response listing databases for {ref.slug}", retryable=False)

        for item in data:
            if not isinstance(item, dict):
                continue
            desc = _descriptor(ref, item)
            if desc is None:
                logger.debug("skipping malformed database descriptor for %s: %r", ref.slug, item)
                continue
            if ref.commit and desc.commit_oid and desc.commit_oid.lower() != ref.commit.lower():
                continue
            yield desc

    def find(self, ref: RepositoryRef, language: str) -> RemoteDescriptor:
        lang = normalize_language(language)
        for desc in self.list(ref):
            if desc.language == lang:
                return desc
        raise NotFoundError(f"GitHub has no {lang} CodeQL database for {ref}")

    def download(
        self,
        descriptor: RemoteDescriptor,
        destination: Union[str, Path],
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> Database:
        if self.enterprise_server:
            raise NotFoundError("Downloading CodeQL databases is not supported on GitHub Enterprise Server")

        dest = Path(destination).resolve()
        dest.mkdir(parents=True, exist_ok=True)
        supported = KNOWN_LANGUAGES | {descriptor.language}
        staging = Path(tempfile.mkdtemp(prefix=f".{dest.name}.", suffix=".partial", dir=str(dest.parent)))
        logger.info("Downloading %s into %s", descriptor, dest)

        try:
            archive = staging / ARCHIVE_NAME
            self._with_retries(
                lambda: self._fetch(descriptor.download_url, archive, cancel_event),
                f"download {descriptor}",
            )

            extracted = staging / "extracted"
            _extract(archive, extracted)
            root = _find_database_root(extracted)
            if root is None:
                raise IntegrityError(f"{descriptor}: archive does not contain {METADATA_FILENAME}")

            try:
                unpacked = load_database(root, supported_languages=supported)
            except InvalidDatabaseError as e:
                raise IntegrityError(f"{descriptor}: archive does not unpack into a database: {e}") from e
            if unpacked.language != descriptor.language:
                raise IntegrityError(
                    f"{descriptor}: archive holds a {unpacked.language} database, expected {descriptor.language}"
                )

            empty_directory(dest)
            for child in root.iterdir():
                shutil.move(str(child), str(dest / child.name))
        finally:
            remove_tree(staging)

        return load_database(
            dest,
            supported_languages=supported,
            name=descriptor.repository.name,
            source=descriptor.repository,
        )

    def download_language(
        self,
        ref: RepositoryRef,
        language: str,
        destination: Union[str, Path],
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> Database:
        return self.download(self.find(ref, language), destination, cancel_event=cancel_event)

    def _fetch(self, url: str, archive: Path, cancel_event: Optional[threading.Event]) -> None:
        deadline = time.monotonic() + self.download_timeout
        chunks = self.client.download(url, timeout=(10.0, min(60.0, self.download_timeout)))
        try:
            with open(archive, "wb") as f:
                for chunk in chunks:
                    if cancel_event is not None and cancel_event.is_set():
                        raise OperationCancelled(f"download of {url} cancelled")
                    if time.monotonic() > deadline:
                        raise NetworkError(
                            f"download of {url} exceeded {self.download_timeout}s",
                            url=url,
                            retryable=False,
                        )
                    f.write(chunk)
        finally:
            close = getattr(chunks, "close", None)
            if close is not None:
                close()

    def _with_retries(self, fn: Callable[[], T], what: str) -> T:
        """Call fn, retrying retryable NetworkErrors with exponential backoff."""
        delay = self.backoff
        attempt = 0
        while True:
            try:
                return fn()
            except NetworkError as e:
                if not e.retryable or attempt >= self.retries:
                    raise
                attempt += 1
                logger.warning("%s failed (%s); retry %d/%d in %.1fs", what, e, attempt, self.retries, delay)
                self._sleep(delay)
                delay *= 2
