import threading
from pathlib import Path
from typing import Optional

import pytest

from dbkit.config import Timeouts
from dbkit.domain.database import Database
from dbkit.domain.repository import parse_repository
from dbkit.errors import (
    AnalysisError,
    CreationError,
    InvalidDatabaseError,
    OperationCancelled,
    ProcessTimeoutError,
    SpawnError,
    UnsupportedLanguageError,
)
from tools.codeql.client import EngineClient
from tools.codeql.options import AnalyzeOptions, CreateOptions
from tools.core_cmd import ProcessResult
from tests._fixtures.fakes import FakeRunner, make_database_dir, timeout_error


ENGINE = "/opt/codeql/codeql"


def _client(runner: FakeRunner, tmp_path: Path, *, locate: Optional[str] = ENGINE, **kwargs) -> EngineClient:
    return EngineClient(
        runner=runner,
        locate=lambda: locate,
        results_root=tmp_path / "results",
        handle_cache={},
        timeouts=Timeouts(probe=5, create=10, analyze=10, download=10),
        **kwargs,
    )


def _source(tmp_path: Path) -> Path:
    src = tmp_path / "src"
    src.mkdir(exist_ok=True)
    (src / "app.py").write_text("print('hi')\n", encoding="utf-8")
    return src


def test_probe_builds_handle(tmp_path: Path) -> None:
    runner = FakeRunner(languages=["python", "go"])
    client = _client(runner, tmp_path, search_paths=["/packs"])

    handle = client.handle()

    assert handle.path == ENGINE
    assert handle.version == "2.17.0"
    assert handle.languages == frozenset({"python", "go", "yaml"})
    assert handle.supports("Python")
    resolve = runner.engine_calls("resolve", "languages")[0]
    assert resolve.args[-2:] == ["--search-path", "/packs"]


def test_handle_is_cached_per_path(tmp_path: Path) -> None:
    runner = FakeRunner()
    cache: dict = {}
    a = EngineClient(runner=runner, locate=lambda: ENGINE, handle_cache=cache, results_root=tmp_path)
    b = EngineClient(runner=runner, locate=lambda: ENGINE, handle_cache=cache, results_root=tmp_path)

    assert a.handle() is b.handle()
    assert a.get_languages() == b.get_languages()
    assert len(runner.engine_calls("version")) == 1


def test_absent_engine_is_remembered(tmp_path: Path) -> None:
    lookups = []

    def locate() -> Optional[str]:
        lookups.append(1)
        return None

    client = EngineClient(runner=FakeRunner(), locate=locate, handle_cache={}, results_root=tmp_path)

    assert not client.is_available()
    with pytest.raises(SpawnError):
        client.get_languages()
    assert len(lookups) == 1


def test_spawn_failure_marks_engine_absent(tmp_path: Path) -> None:
    runner = FakeRunner(lambda call: SpawnError("gone", path=call.executable))
    client = _client(runner, tmp_path)

    assert not client.is_available()
    assert not client.is_available()
    assert len(runner.calls) == 1


def test_probe_timeout_means_unavailable(tmp_path: Path) -> None:
    client = _client(FakeRunner(timeout_error), tmp_path)
    assert not client.is_available()


def test_unparsable_probe_degrades_to_no_languages(tmp_path: Path) -> None:
    def responder(call):
        return ProcessResult(exit_code=0, stdout="garbage banner", stderr="")

    client = _client(FakeRunner(responder), tmp_path)

    handle = client.handle()
    assert handle.version is None
    assert handle.languages == frozenset()
    with pytest.raises(UnsupportedLanguageError):
        client.create("python", _source(tmp_path), tmp_path / "db")


def test_unsupported_language_spawns_nothing(tmp_path: Path) -> None:
    runner = FakeRunner(languages=["python"])
    client = _client(runner, tmp_path)
    client.handle()
    before = len(runner.calls)

    with pytest.raises(UnsupportedLanguageError) as ei:
        client.create("rust", _source(tmp_path), tmp_path / "db")

    assert len(runner.calls) == before
    assert ei.value.language == "rust"
    assert "python" in ei.value.supported


def test_create_builds_argument_list_and_loads_database(tmp_path: Path) -> None:
    runner = FakeRunner()
    client = _client(runner, tmp_path, token="ghp_secret")
    src = _source(tmp_path)
    out = tmp_path / "dbs" / "acme" / "widgets" / "python"
    opts = CreateOptions(build_mode="none", threads=2, repository=parse_repository("acme/widgets@main"))

    db = client.create("python", src, out, opts)

    call = runner.engine_calls("database", "create")[0]
    assert call.args == [
        "database", "create", "-l", "python", "-s", str(src.resolve()),
        "--build-mode", "none", "--threads", "2",
        str(out.resolve()),
    ]
    assert call.timeout == 10
    assert call.env == {"CODEQL_REGISTRIES_AUTH": "ghp_secret"}
    assert db.name == "widgets"
    assert db.language == "python"
    assert db.path == out.resolve()
    assert db.source.slug == "acme/widgets"
    assert db.source.commit is None


def test_create_records_git_commit_and_branch_of_source(tmp_path: Path) -> None:
    sha = "0123456789abcdef0123456789abcdef01234567"
    base = FakeRunner()

    def responder(call):
        if call.executable == "git" and "--abbrev-ref" in call.args:
            return ProcessResult(exit_code=0, stdout="feature/x\n", stderr="")
        if call.executable == "git":
            return ProcessResult(exit_code=0, stdout=sha + "\n", stderr="")
        return base.healthy(call)

    client = _client(FakeRunner(responder), tmp_path)
    db = client.create("python", _source(tmp_path), tmp_path / "db", CreateOptions(repository=parse_repository("acme/widgets")))

    assert db.source.commit == sha
    assert db.source.branch == "feature/x"


def test_create_names_database_after_source_directory(tmp_path: Path) -> None:
    client = _client(FakeRunner(), tmp_path)
    db = client.create("python", _source(tmp_path), tmp_path / "out")
    assert db.name == "src"


def test_create_requires_source_directory(tmp_path: Path) -> None:
    client = _client(FakeRunner(), tmp_path)
    with pytest.raises(CreationError):
        client.create("python", tmp_path / "missing", tmp_path / "db")


def test_create_overwrite_removes_existing_output(tmp_path: Path) -> None:
    out = make_database_dir(tmp_path / "db", "python")
    (out / "stale.txt").write_text("old\n", encoding="utf-8")
    runner = FakeRunner()
    client = _client(runner, tmp_path)

    client.create("python", _source(tmp_path), out, CreateOptions(overwrite=True))

    assert not (out / "stale.txt").exists()
    assert "--overwrite" in runner.engine_calls("database", "create")[0].args


def test_create_failure_cleans_up_and_carries_stderr(tmp_path: Path) -> None:
    base = FakeRunner()

    def responder(call):
        if call.args[:2] == ["database", "create"]:
            Path(call.args[-1]).mkdir(parents=True)
            (Path(call.args[-1]) / "log").write_text("partial\n", encoding="utf-8")
            return ProcessResult(exit_code=32, stdout="", stderr="A fatal error occurred: no source files")
        return base.healthy(call)

    out = tmp_path / "db"
    client = _client(FakeRunner(responder), tmp_path)

    with pytest.raises(CreationError) as ei:
        client.create("python", _source(tmp_path), out)

    assert ei.value.exit_code == 32
    assert "no source files" in ei.value.stderr_excerpt
    assert not out.exists()


def test_create_retries_once_on_timeout_then_fails(tmp_path: Path) -> None:
    base = FakeRunner()

    def responder(call):
        if call.args[:2] == ["database", "create"]:
            Path(call.args[-1]).mkdir(parents=True, exist_ok=True)
            return timeout_error(call)
        return base.healthy(call)

    runner = FakeRunner(responder)
    out = tmp_path / "db"
    client = _client(runner, tmp_path)

    with pytest.raises(CreationError) as ei:
        client.create("python", _source(tmp_path), out)

    assert isinstance(ei.value.__cause__, ProcessTimeoutError)
    assert len(runner.engine_calls("database", "create")) == 2
    assert not out.exists()


def test_create_succeeds_when_retry_succeeds(tmp_path: Path) -> None:
    base = FakeRunner()
    attempts = []

    def responder(call):
        if call.args[:2] == ["database", "create"]:
            attempts.append(call)
            if len(attempts) == 1:
                return timeout_error(call)
        return base.healthy(call)

    client = _client(FakeRunner(responder), tmp_path)
    db = client.create("python", _source(tmp_path), tmp_path / "db")

    assert len(attempts) == 2
    assert db.language == "python"


def test_create_cancel_discards_output(tmp_path: Path) -> None:
    base = FakeRunner()

    def responder(call):
        if call.args[:2] == ["database", "create"]:
            Path(call.args[-1]).mkdir(parents=True, exist_ok=True)
            return OperationCancelled("cancelled")
        return base.healthy(call)

    out = tmp_path / "db"
    with pytest.raises(OperationCancelled):
        _client(FakeRunner(responder), tmp_path).create("python", _source(tmp_path), out)
    assert not out.exists()


def test_create_rejects_invalid_engine_output(tmp_path: Path) -> None:
    base = FakeRunner()

    def responder(call):
        if call.args[:2] == ["database", "create"]:
            Path(call.args[-1]).mkdir(parents=True, exist_ok=True)
            return ProcessResult(exit_code=0, stdout="", stderr="")
        return base.healthy(call)

    out = tmp_path / "db"
    with pytest.raises(CreationError):
        _client(FakeRunner(responder), tmp_path).create("python", _source(tmp_path), out)
    assert not out.exists()


def test_analyze_writes_default_results_path(tmp_path: Path) -> None:
    runner = FakeRunner()
    client = _client(runner, tmp_path)
    db = client.create("python", _source(tmp_path), tmp_path / "db", CreateOptions(repository=parse_repository("acme/widgets")))

    result = client.analyze(db, "security-extended")

    expected = (tmp_path / "results" / "python-acme-widgets.sarif").resolve()
    assert result.path == expected
    assert expected.is_file()
    call = runner.engine_calls("database", "analyze")[0]
    assert call.args == [
        "database", "analyze", "--output", str(expected),
        "--format", "sarif-latest",
        str(db.path),
        "codeql/python-queries:codeql-suites/python-security-extended.qls",
    ]


def test_analyze_requires_local_valid_database(tmp_path: Path) -> None:
    client = _client(FakeRunner(), tmp_path)
    with pytest.raises(InvalidDatabaseError):
        client.analyze(Database(name="remote", language="python"))
    with pytest.raises(InvalidDatabaseError):
        client.analyze(Database(name="gone", language="python", path=tmp_path / "gone"))


def test_analyze_failure_and_missing_output(tmp_path: Path) -> None:
    base = FakeRunner()
    mode = {"exit": 1}

    def responder(call):
        if call.args[:2] == ["database", "analyze"]:
            return ProcessResult(exit_code=mode["exit"], stdout="", stderr="query compilation failed")
        return base.healthy(call)

    client = _client(FakeRunner(responder), tmp_path)
    db = client.create("python", _source(tmp_path), tmp_path / "db")
    opts = AnalyzeOptions(output=tmp_path / "out.sarif")

    with pytest.raises(AnalysisError) as ei:
        client.analyze(db, options=opts)
    assert "query compilation failed" in str(ei.value)

    mode["exit"] = 0
    with pytest.raises(AnalysisError):
        client.analyze(db, options=opts)


def test_analyze_retries_once_on_timeout(tmp_path: Path) -> None:
    base = FakeRunner()

    def responder(call):
        if call.args[:2] == ["database", "analyze"]:
            return timeout_error(call)
        return base.healthy(call)

    runner = FakeRunner(responder)
    client = _client(runner, tmp_path)
    db = client.create("python", _source(tmp_path), tmp_path / "db")

    with pytest.raises(AnalysisError):
        client.analyze(db)
    assert len(runner.engine_calls("database", "analyze")) == 2


def _git_at(sha: str):
    base = FakeRunner()

    def responder(call):
        if call.executable == "git" and "--abbrev-ref" in call.args:
            return ProcessResult(exit_code=0, stdout="HEAD\n", stderr="")
        if call.executable == "git":
            return ProcessResult(exit_code=0, stdout=sha + "\n", stderr="")
        return base.healthy(call)

    return responder


def test_create_rejects_source_at_a_different_commit(tmp_path: Path) -> None:
    wanted = "f" * 40
    runner = FakeRunner(_git_at("a" * 40))
    client = _client(runner, tmp_path)
    ref = parse_repository(f"acme/widgets@{wanted}")

    with pytest.raises(CreationError) as ei:
        client.create("python", _source(tmp_path), tmp_path / "db", CreateOptions(repository=ref))

    assert wanted in str(ei.value)
    assert runner.engine_calls("database", "create") == []
    assert not (tmp_path / "db").exists()


def test_create_keeps_pinned_commit_only_when_checked_out(tmp_path: Path) -> None:
    sha = "b" * 40
    ref = parse_repository(f"acme/widgets@{sha.upper()}")

    at_commit = _client(FakeRunner(_git_at(sha)), tmp_path)
    db = at_commit.create("python", _source(tmp_path), tmp_path / "db1", CreateOptions(repository=ref))
    assert db.source.commit == sha

    not_a_checkout = _client(FakeRunner(), tmp_path)
    db = not_a_checkout.create("python", _source(tmp_path), tmp_path / "db2", CreateOptions(repository=ref))
    assert db.source.slug == "acme/widgets"
    assert db.source.commit is None


def test_slow_engine_start_does_not_block_other_engines(tmp_path: Path) -> None:
    started = threading.Event()
    release = threading.Event()
    base = FakeRunner()

    def slow(call):
        started.set()
        release.wait(5)
        return base.healthy(call)

    cache: dict = {}
    slow_client = EngineClient(runner=FakeRunner(slow), locate=lambda: "/slow/codeql", handle_cache=cache, results_root=tmp_path)
    fast_client = EngineClient(runner=FakeRunner(), locate=lambda: "/fast/codeql", handle_cache=cache, results_root=tmp_path)

    slow_thread = threading.Thread(target=slow_client.handle)
    slow_thread.start()
    try:
        assert started.wait(5)
        fast_thread = threading.Thread(target=fast_client.handle)
        fast_thread.start()
        fast_thread.join(2)
        assert not fast_thread.is_alive()
        assert "/fast/codeql" in cache
        assert "/slow/codeql" not in cache
    finally:
        release.set()
        slow_thread.join(5)
    assert cache["/slow/codeql"].version == "2.17.0"
