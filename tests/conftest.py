"""
Pytest configuration and fixtures for faunadb-core tests.

Requests never leave the process: every Connection under test is wired to
httpx.MockTransport engines that record what was sent and answer with
scripted responses.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterable
from typing import Any

import httpx
import pytest

from faunadb_core import Connection, ConnectionBuilder, MetricRegistry


class ChunkStream(httpx.AsyncByteStream):
    """Response body delivered in several chunks, like a live stream."""

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._chunks = list(chunks)
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self._chunks:
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it handles."""

    def __init__(self, handler: Callable[[httpx.Request], Any] | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self._respond = handler or (lambda request: httpx.Response(200, text="{}"))
        super().__init__(self._record)

    def _record(self, request: httpx.Request) -> Any:
        self.requests.append(request)
        return self._respond(request)

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "no request was sent"
        return self.requests[-1]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def registry() -> MetricRegistry:
    return MetricRegistry()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def builder(transport: RecordingTransport, registry: MetricRegistry) -> ConnectionBuilder:
    """A builder wired to the recording transport for both engines."""
    return (
        Connection.builder()
        .with_auth_token("secret")
        .with_metrics(registry)
        .with_http_client(httpx.AsyncClient(transport=transport))
        .with_stream_http_client(httpx.AsyncClient(transport=transport))
    )


@pytest.fixture
async def connection(builder: ConnectionBuilder) -> AsyncIterator[Connection]:
    async with builder.build() as conn:
        yield conn
