# === NAVMAP v1 ===
# {
#   "module": "tests.fixtures.http_mocking",
#   "purpose": "HTTP mocking fixtures for hermetic agent tests",
#   "sections": [
#     {"id": "mock-response-builder", "name": "MockResponseBuilder", "anchor": "class-mock-response-builder", "kind": "class"},
#     {"id": "echo", "name": "echo_handler", "anchor": "function-echo-handler", "kind": "function"},
#     {"id": "streams", "name": "FailingStream / TrackingStream", "anchor": "class-failing-stream", "kind": "class"},
#     {"id": "mock-client-fixture", "name": "mock_client", "anchor": "fixture-mock-client", "kind": "fixture"}
#   ]
# }
# === /NAVMAP ===

"""
HTTP mocking fixtures for hermetic agent tests.

Provides HTTPX MockTransport clients that record every request they receive, an
httpbin-style echo handler, and byte streams that fail or report closure.  No
test touches the network.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Generator, Iterator, List, Tuple
from urllib.parse import parse_qs

import httpx
import pytest

Handler = Callable[[httpx.Request], httpx.Response]


class MockResponseBuilder:
    """Builder for constructing mock HTTP responses with fluent API."""

    def __init__(self, status_code: int = 200, content: bytes = b""):
        self.status_code = status_code
        self.content = content
        self.headers: dict[str, str] = {}

    def with_status(self, code: int) -> MockResponseBuilder:
        self.status_code = code
        return self

    def with_content(self, content: bytes | str) -> MockResponseBuilder:
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.content = content
        return self

    def with_json(self, data: Any) -> MockResponseBuilder:
        self.content = json.dumps(data).encode("utf-8")
        self.headers["content-type"] = "application/json"
        return self

    def with_header(self, name: str, value: str) -> MockResponseBuilder:
        self.headers[name] = value
        return self

    def build(self) -> httpx.Response:
        return httpx.Response(
            status_code=self.status_code,
            content=self.content,
            headers=self.headers,
        )


def _flatten(parsed: dict[str, list[str]]) -> dict[str, Any]:
    return {key: values[0] if len(values) == 1 else values for key, values in parsed.items()}


def echo_handler(request: httpx.Request) -> httpx.Response:
    """Answer like httpbin: describe the request back as JSON."""

    body = request.content.decode("utf-8")
    content_type = request.headers.get("content-type", "")
    payload: dict[str, Any] = {
        "method": request.method,
        "url": str(request.url),
        "args": _flatten(parse_qs(request.url.query.decode("ascii"))),
        "headers": dict(request.headers),
        "data": body,
        "json": None,
        "form": {},
    }
    if content_type.startswith("application/json") and body:
        payload["json"] = json.loads(body)
    if content_type.startswith("application/x-www-form-urlencoded"):
        payload["form"] = _flatten(parse_qs(body))
    return httpx.Response(200, json=payload)


class FailingStream(httpx.SyncByteStream):
    """Response stream whose first read fails."""

    def __init__(self, message: str = "mock error") -> None:
        self.message = message
        self.closed = False

    def __iter__(self) -> Iterator[bytes]:
        raise httpx.ReadError(self.message)

    def close(self) -> None:
        self.closed = True


class TrackingStream(httpx.SyncByteStream):
    """Response stream that records whether it was closed."""

    def __init__(self, content: bytes) -> None:
        self.content = content
        self.closed = False

    def __iter__(self) -> Iterator[bytes]:
        yield self.content

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def mock_client() -> Generator[Callable[[Handler], Tuple[httpx.Client, List[httpx.Request]]], None, None]:
    """
    Provide a factory of MockTransport-backed clients that record requests.

    Example:
        def test_get(mock_client):
            client, calls = mock_client(lambda request: httpx.Response(200))
            get("https://api.example.com/", use_client(client)).do()
            assert len(calls) == 1
    """
    clients: list[httpx.Client] = []

    def _make(handler: Handler) -> Tuple[httpx.Client, List[httpx.Request]]:
        calls: List[httpx.Request] = []

        def _recording(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return handler(request)

        client = httpx.Client(transport=httpx.MockTransport(_recording))
        clients.append(client)
        return client, calls

    yield _make

    for client in clients:
        client.close()


@pytest.fixture
def http_mock() -> Callable[..., MockResponseBuilder]:
    """Provide a mock HTTP response builder factory."""

    def _mock_response(status_code: int = 200, content: bytes | str = b"") -> MockResponseBuilder:
        if isinstance(content, str):
            content = content.encode("utf-8")
        return MockResponseBuilder(status_code=status_code, content=content)

    return _mock_response
