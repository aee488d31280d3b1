"""tools/github/api.py

All GitHub HTTP calls live here.

The client is deliberately thin: ``get(path) -> JSON`` and
``download(url) -> byte chunks``. Status codes are mapped onto the toolkit's
error types; retry policy belongs to the callers.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, Optional, Tuple, Union

import requests

from dbkit.errors import NetworkError, NotFoundError

from .types import GitHubConfig


USER_AGENT = "dbkit"
JSON_ACCEPT = "application/vnd.github+json"
ZIP_ACCEPT = "application/zip"

Timeout = Union[float, Tuple[float, float]]


def _raise_for_status(resp: requests.Response, url: str) -> None:
    if resp.ok:
        return
    status = resp.status_code
    body = (resp.text or "")[:200]
    if status == 404:
        raise NotFoundError(f"GitHub returned 404 for {url}")
    if status == 429 or 500 <= status < 600:
        raise NetworkError(f"GitHub returned HTTP {status} for {url}: {body}", url=url, status=status)
    if status in (401, 403):
        raise NetworkError(
            f"GitHub rejected the request (HTTP {status}); check GITHUB_TOKEN: {body}",
            url=url,
            status=status,
            retryable=False,
        )
    raise NetworkError(f"GitHub returned HTTP {status} for {url}: {body}", url=url, status=status, retryable=False)


class GitHubClient:
    def __init__(
        self,
        cfg: GitHubConfig,
        *,
        session: Optional[requests.Session] = None,
        timeout: Timeout = 30.0,
    ) -> None:
        self.cfg = cfg
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self, accept: str) -> Dict[str, str]:
        headers = {"Accept": accept, "User-Agent": USER_AGENT}
        if self.cfg.token:
            headers["Authorization"] = f"Bearer {self.cfg.token}"
        return headers

    def url(self, path: str) -> str:
        return f"{self.cfg.api_url}/{path.lstrip('/')}"

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = self.url(path)
        try:
            resp = self.session.get(url, headers=self._headers(JSON_ACCEPT), params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(f"GET {url} failed: {e}", url=url) from e

        _raise_for_status(resp, url)
        try:
            return resp.json()
        except ValueError as e:
            raise NetworkError(f"GET {url} returned invalid JSON", url=url, status=resp.status_code, retryable=False) from e

    def download(self, url: str, *, timeout: Optional[Timeout] = None, chunk_size: int = 1 << 20) -> Iterator[bytes]:
        """Start a streaming download and return an iterator over its chunks.

        Status errors are raised here, before the first chunk; transport
        errors while streaming are raised from the iterator.
        """
        try:
            resp = self.session.get(
                url,
                headers=self._headers(ZIP_ACCEPT),
                stream=True,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except requests.RequestException as e:
            raise NetworkError(f"GET {url} failed: {e}", url=url) from e

        try:
            _raise_for_status(resp, url)
        except Exception:
            resp.close()
            raise
        return self._iter_chunks(resp, url, chunk_size)

    @staticmethod
    def _iter_chunks(resp: requests.Response, url: str, chunk_size: int) -> Iterator[bytes]:
        try:
            for chunk in resp.iter_content(chunk_size=chunk_size):
                if chunk:
                    yield chunk
        except requests.RequestException as e:
            raise NetworkError(f"download from {url} interrupted: {e}", url=url) from e
        finally:
            resp.close()
