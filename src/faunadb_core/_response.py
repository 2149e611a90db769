"""
Streaming response returned by Connection.perform_stream_request().
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx

from faunadb_core._errors import StreamConsumedError


class StreamingResponse:
    """
    A response whose body is produced lazily until the server closes the stream.

    This is a one-shot response - the body can be consumed in exactly one mode.
    Iterating the response yields lists of byte chunks, one list per read from
    the engine.

    Usage as an async context manager is recommended:

        async with await connection.perform_stream_request(
            "POST", "stream", body, {}
        ) as res:
            async for chunks in res:
                for chunk in chunks:
                    process(chunk)
    """

    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self._consumed_by: str | None = None
        self._closed = False

    def _ensure_not_consumed(self, method: str) -> None:
        if self._consumed_by is not None:
            raise StreamConsumedError(
                attempted_method=method,
                consumed_by=self._consumed_by,
            )
        self._consumed_by = method

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    @property
    def url(self) -> httpx.URL:
        return self._response.url

    @property
    def http_version(self) -> str:
        return self._response.http_version

    @property
    def response(self) -> httpx.Response:
        """The underlying httpx response."""
        return self._response

    @property
    def closed(self) -> bool:
        return self._closed

    async def aclose(self) -> None:
        """Close the stream and release the connection."""
        if not self._closed:
            self._closed = True
            await self._response.aclose()

    async def __aenter__(self) -> StreamingResponse:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    def __aiter__(self) -> AsyncIterator[list[bytes]]:
        """Iterate over lists of byte chunks."""
        self._ensure_not_consumed("__aiter__")
        return self._aiter_chunks_internal()

    async def _aiter_chunks_internal(self) -> AsyncIterator[list[bytes]]:
        try:
            async for chunk in self._response.aiter_bytes():
                if chunk:
                    yield [chunk]
        finally:
            await self.aclose()

    def aiter_bytes(self) -> AsyncIterator[bytes]:
        """Iterate over decoded body bytes."""
        self._ensure_not_consumed("aiter_bytes")
        return self._aiter_bytes_internal()

    async def _aiter_bytes_internal(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes():
                yield chunk
        finally:
            await self.aclose()

    def aiter_lines(self) -> AsyncIterator[str]:
        """Iterate over body lines, e.g. one JSON event per line."""
        self._ensure_not_consumed("aiter_lines")
        return self._aiter_lines_internal()

    async def _aiter_lines_internal(self) -> AsyncIterator[str]:
        try:
            async for line in self._response.aiter_lines():
                yield line
        finally:
            await self.aclose()

    def __repr__(self) -> str:
        return f"StreamingResponse(status_code={self.status_code}, url={str(self.url)!r})"
