import unittest
from typing import Any, Dict, List, Optional

import requests

from dbkit.errors import NetworkError, NotFoundError
from tools.github.api import GitHubClient, ZIP_ACCEPT
from tools.github.types import GitHubConfig


class FakeResponse:
    def __init__(self, status: int, payload: Any = None, chunks: Optional[List[bytes]] = None, text: str = "") -> None:
        self.status_code = status
        self._payload = payload
        self._chunks = chunks or []
        self.text = text
        self.closed = False

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def iter_content(self, chunk_size: int = 1):
        for c in self._chunks:
            if isinstance(c, Exception):
                raise c
            yield c

    def close(self) -> None:
        self.closed = True


class FakeSession:
    def __init__(self, response: Any) -> None:
        self.response = response
        self.requests: List[Dict[str, Any]] = []

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append({"url": url, **kwargs})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def _client(response: Any, token: Optional[str] = "t0k") -> "tuple[GitHubClient, FakeSession]":
    session = FakeSession(response)
    return GitHubClient(GitHubConfig(token=token), session=session), session


class TestGitHubConfig(unittest.TestCase):
    def test_api_urls(self) -> None:
        self.assertEqual("https://api.github.com", GitHubConfig().api_url)
        self.assertFalse(GitHubConfig().enterprise_server)
        ghes = GitHubConfig(instance="https://ghe.example.com/")
        self.assertTrue(ghes.enterprise_server)
        self.assertEqual("https://ghe.example.com/api/v3", ghes.api_url)

    def test_token_not_in_repr(self) -> None:
        self.assertNotIn("secret", repr(GitHubConfig(token="secret")))


class TestGitHubClient(unittest.TestCase):
    def test_get_sends_auth_and_parses_json(self) -> None:
        client, session = _client(FakeResponse(200, payload=[{"language": "python"}]))

        data = client.get("/repos/acme/widgets/code-scanning/codeql/databases")

        self.assertEqual([{"language": "python"}], data)
        req = session.requests[0]
        self.assertEqual("https://api.github.com/repos/acme/widgets/code-scanning/codeql/databases", req["url"])
        self.assertEqual("Bearer t0k", req["headers"]["Authorization"])

    def test_no_token_means_no_auth_header(self) -> None:
        client, session = _client(FakeResponse(200, payload={}), token=None)
        client.get("rate_limit")
        self.assertNotIn("Authorization", session.requests[0]["headers"])

    def test_status_mapping(self) -> None:
        cases = [
            (404, NotFoundError, None),
            (429, NetworkError, True),
            (502, NetworkError, True),
            (401, NetworkError, False),
            (403, NetworkError, False),
            (422, NetworkError, False),
        ]
        for status, exc, retryable in cases:
            with self.subTest(status=status):
                client, _ = _client(FakeResponse(status, text="nope"))
                with self.assertRaises(exc) as ctx:
                    client.get("x")
                if retryable is not None:
                    self.assertEqual(retryable, ctx.exception.retryable)
                    self.assertEqual(status, ctx.exception.status)

    def test_transport_errors_are_retryable(self) -> None:
        client, _ = _client(requests.ConnectionError("reset"))
        with self.assertRaises(NetworkError) as ctx:
            client.get("x")
        self.assertTrue(ctx.exception.retryable)

    def test_invalid_json_is_not_retryable(self) -> None:
        client, _ = _client(FakeResponse(200, payload=ValueError("bad json")))
        with self.assertRaises(NetworkError) as ctx:
            client.get("x")
        self.assertFalse(ctx.exception.retryable)

    def test_download_streams_chunks(self) -> None:
        resp = FakeResponse(200, chunks=[b"ab", b"", b"cd"])
        client, session = _client(resp)

        chunks = list(client.download("https://api.github.com/dl", timeout=5))

        self.assertEqual([b"ab", b"cd"], chunks)
        self.assertTrue(resp.closed)
        req = session.requests[0]
        self.assertTrue(req["stream"])
        self.assertEqual(5, req["timeout"])
        self.assertEqual(ZIP_ACCEPT, req["headers"]["Accept"])

    def test_download_status_error_raised_before_iteration(self) -> None:
        resp = FakeResponse(404)
        client, _ = _client(resp)
        with self.assertRaises(NotFoundError):
            client.download("https://api.github.com/dl")
        self.assertTrue(resp.closed)

    def test_download_interruption_is_network_error(self) -> None:
        resp = FakeResponse(200, chunks=[b"ab", requests.ConnectionError("reset")])
        client, _ = _client(resp)
        it = client.download("https://api.github.com/dl")
        with self.assertRaises(NetworkError):
            list(it)
        self.assertTrue(resp.closed)


if __name__ == "__main__":
    unittest.main()
