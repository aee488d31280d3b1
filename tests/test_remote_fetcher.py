import threading
from pathlib import Path
from typing import List

import pytest

from dbkit.domain.repository import parse_repository
from dbkit.errors import IntegrityError, NetworkError, NotFoundError, OperationCancelled
from tools.github.fetcher import RemoteFetcher
from tests._fixtures.fakes import DB_API, FakeGitHubClient, descriptor_payload, make_database_zip


REF = parse_repository("acme/widgets")
LIST_PATH = "repos/acme/widgets/code-scanning/codeql/databases"
PY_URL = DB_API.format(owner="acme", name="widgets", lang="python")
JAVA_URL = DB_API.format(owner="acme", name="widgets", lang="java")


def _fetcher(client: FakeGitHubClient, sleeps: List[float], **kwargs) -> RemoteFetcher:
    return RemoteFetcher(client, sleep=sleeps.append, **kwargs)


def _listing(*items):
    return {LIST_PATH: list(items)}


def test_list_yields_descriptors_and_skips_malformed() -> None:
    client = FakeGitHubClient(
        _listing(
            descriptor_payload("acme", "widgets", "python"),
            {"id": 9, "name": "broken"},
            "not-a-dict",
            descriptor_payload("acme", "widgets", "Java"),
        )
    )
    descs = list(_fetcher(client, []).list(REF))

    assert [d.language for d in descs] == ["python", "java"]
    assert descs[0].download_url == PY_URL
    assert descs[0].repository == REF
    assert descs[0].size == 2048
    assert descs[0].created_at is not None


def test_list_is_lazy() -> None:
    client = FakeGitHubClient(_listing(descriptor_payload("acme", "widgets", "python")))
    it = _fetcher(client, []).list(REF)
    assert client.get_calls == []
    next(it)
    assert client.get_calls == [LIST_PATH]


def test_list_filters_by_commit() -> None:
    sha = "0123456789abcdef0123456789abcdef01234567"
    other = "f" * 40
    client = FakeGitHubClient(
        _listing(
            descriptor_payload("acme", "widgets", "python", commit_oid=other),
            descriptor_payload("acme", "widgets", "java", commit_oid=sha.upper()),
            descriptor_payload("acme", "widgets", "go"),
        )
    )
    descs = list(_fetcher(client, []).list(REF.with_commit(sha)))
    assert [d.language for d in descs] == ["java", "go"]


def test_find_missing_language_raises_not_found() -> None:
    client = FakeGitHubClient(_listing(descriptor_payload("acme", "widgets", "python")))
    with pytest.raises(NotFoundError):
        _fetcher(client, []).find(REF, "ruby")


def test_unknown_repository_raises_not_found() -> None:
    with pytest.raises(NotFoundError):
        list(_fetcher(FakeGitHubClient(), []).list(REF))


def test_download_installs_validated_database(tmp_path: Path) -> None:
    client = FakeGitHubClient(
        _listing(descriptor_payload("acme", "widgets", "python")),
        {PY_URL: make_database_zip("python")},
    )
    dest = tmp_path / "acme" / "widgets" / "python"

    db = _fetcher(client, []).download_language(REF, "python", dest)

    assert db.path == dest.resolve()
    assert db.language == "python"
    assert db.name == "widgets"
    assert db.source == REF
    assert (dest / "codeql-database.yml").is_file()
    assert (dest / "db-python").is_dir()
    assert [p.name for p in tmp_path.joinpath("acme", "widgets").iterdir()] == ["python"]


def test_download_replaces_previous_contents(tmp_path: Path) -> None:
    client = FakeGitHubClient(
        _listing(descriptor_payload("acme", "widgets", "python")),
        {PY_URL: make_database_zip("python", top="")},
    )
    dest = tmp_path / "db"
    dest.mkdir()
    (dest / "old.txt").write_text("old\n", encoding="utf-8")

    _fetcher(client, []).download_language(REF, "python", dest)

    assert not (dest / "old.txt").exists()
    assert (dest / "db-python").is_dir()


@pytest.mark.parametrize(
    "blob",
    [
        b"this is not a zip file",
        make_database_zip("python", with_db_dir=False),
        make_database_zip("java"),
    ],
)
def test_bad_artifact_leaves_destination_empty(tmp_path: Path, blob: bytes) -> None:
    client = FakeGitHubClient(_listing(descriptor_payload("acme", "widgets", "python")), {PY_URL: blob})
    dest = tmp_path / "db"

    with pytest.raises(IntegrityError):
        _fetcher(client, []).download_language(REF, "python", dest)

    assert dest.is_dir()
    assert list(dest.iterdir()) == []
    assert [p.name for p in tmp_path.iterdir()] == ["db"]


def test_transient_errors_retry_with_backoff_then_fail(tmp_path: Path) -> None:
    errors = [NetworkError("HTTP 503", status=503) for _ in range(3)]
    client = FakeGitHubClient(_listing(descriptor_payload("acme", "widgets", "python")), {PY_URL: errors})
    sleeps: List[float] = []

    with pytest.raises(NetworkError):
        _fetcher(client, sleeps).download_language(REF, "python", tmp_path / "db")

    assert sleeps == [1.0, 2.0]
    assert len(client.download_calls) == 3
    assert list((tmp_path / "db").iterdir()) == []


def test_transient_error_then_success(tmp_path: Path) -> None:
    blobs = {PY_URL: [NetworkError("HTTP 502", status=502), make_database_zip("python")]}
    client = FakeGitHubClient(_listing(descriptor_payload("acme", "widgets", "python")), blobs)
    sleeps: List[float] = []

    db = _fetcher(client, sleeps).download_language(REF, "python", tmp_path / "db")

    assert db.language == "python"
    assert sleeps == [1.0]


def test_non_retryable_error_is_not_retried(tmp_path: Path) -> None:
    blobs = {PY_URL: [NetworkError("HTTP 401", status=401, retryable=False)]}
    client = FakeGitHubClient(_listing(descriptor_payload("acme", "widgets", "python")), blobs)
    sleeps: List[float] = []

    with pytest.raises(NetworkError):
        _fetcher(client, sleeps).download_language(REF, "python", tmp_path / "db")
    assert sleeps == []


def test_enterprise_server_download_is_not_found(tmp_path: Path) -> None:
    client = FakeGitHubClient(_listing(descriptor_payload("acme", "widgets", "python")), {PY_URL: make_database_zip()})
    fetcher = _fetcher(client, [], enterprise_server=True)
    with pytest.raises(NotFoundError):
        fetcher.download_language(REF, "python", tmp_path / "db")
    assert client.download_calls == []


def test_cancelled_download(tmp_path: Path) -> None:
    client = FakeGitHubClient(_listing(descriptor_payload("acme", "widgets", "python")), {PY_URL: make_database_zip()})
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(OperationCancelled):
        _fetcher(client, []).download_language(REF, "python", tmp_path / "db", cancel_event=cancel)
    assert [p.name for p in tmp_path.iterdir()] == ["db"]


def test_constructor_validation() -> None:
    with pytest.raises(ValueError):
        RemoteFetcher(FakeGitHubClient(), retries=-1)
    with pytest.raises(ValueError):
        RemoteFetcher(FakeGitHubClient(), download_timeout=0)
