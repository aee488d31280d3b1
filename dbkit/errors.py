"""dbkit.errors

Typed errors raised across the toolkit.

Every error derives from :class:`DbKitError` so entrypoints can catch one base
class and print a single-line message. Errors carry enough context (stderr
excerpt, attempted path, HTTP status) to diagnose a failure without re-running
the command that produced it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence


STDERR_EXCERPT_LIMIT = 2000


def excerpt(text: Optional[str], limit: int = STDERR_EXCERPT_LIMIT) -> str:
    """Return the tail of ``text`` capped at ``limit`` characters."""
    s = (text or "").strip()
    if len(s) <= limit:
        return s
    return "..." + s[-limit:]


class DbKitError(Exception):
    """Base class for all toolkit errors."""


class ParseError(DbKitError, ValueError):
    """Malformed input to one of the string-grammar parsers."""


class SpawnError(DbKitError):
    """An executable could not be located or started."""

    def __init__(self, message: str, *, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class ProcessTimeoutError(DbKitError, TimeoutError):
    """A subprocess exceeded its timeout and was killed."""

    def __init__(self, message: str, *, pid: Optional[int] = None, timeout: Optional[float] = None) -> None:
        super().__init__(message)
        self.pid = pid
        self.timeout = timeout


class OperationCancelled(DbKitError):
    """The caller cancelled an in-flight operation."""


class ProtocolError(DbKitError):
    """Engine output did not match the expected format."""

    def __init__(self, message: str, *, output: Optional[str] = None) -> None:
        super().__init__(message)
        self.output = excerpt(output, 500) if output is not None else None


class UnsupportedLanguageError(DbKitError):
    def __init__(self, language: str, supported: Sequence[str] = ()) -> None:
        listed = ", ".join(sorted(supported)) or "none"
        super().__init__(f"Language '{language}' is not supported by the engine (supported: {listed})")
        self.language = language
        self.supported = tuple(sorted(supported))


class _StderrError(DbKitError):
    def __init__(self, message: str, *, stderr: Optional[str] = None, exit_code: Optional[int] = None) -> None:
        self.stderr_excerpt = excerpt(stderr)
        self.exit_code = exit_code
        if self.stderr_excerpt:
            message = f"{message}\n{self.stderr_excerpt}"
        super().__init__(message)


class CreationError(_StderrError):
    """Database creation failed (non-zero exit, repeated timeout, bad output)."""


class AnalysisError(_StderrError):
    """Database analysis failed (non-zero exit, repeated timeout, missing results)."""


class InvalidDatabaseError(DbKitError):
    """A directory does not hold a valid database."""

    def __init__(self, message: str, *, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class NotFoundError(DbKitError):
    """A path, repository, or remote database does not exist."""


class NetworkError(DbKitError):
    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status: Optional[int] = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status = status
        self.retryable = retryable


class IntegrityError(DbKitError):
    """A downloaded artifact did not unpack into a database layout."""


@dataclass(frozen=True)
class StepFailure:
    """One failed strategy inside :meth:`DatabaseLifecycleManager.obtain`."""

    strategy: str
    error: BaseException

    def describe(self) -> str:
        return f"{self.strategy}: {type(self.error).__name__}: {self.error}"


class UnavailableError(DbKitError):
    """No strategy could produce the requested database."""

    def __init__(self, subject: str, failures: Sequence[StepFailure]) -> None:
        self.subject = subject
        self.failures: List[StepFailure] = list(failures)
        if self.failures:
            lines = "\n".join(f"  - {f.describe()}" for f in self.failures)
        else:
            lines = "  - no strategy was enabled"
        super().__init__(f"No database available for {subject}:\n{lines}")

    @property
    def strategies(self) -> List[str]:
        return [f.strategy for f in self.failures]
