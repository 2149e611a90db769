"""
Ref-counted handle over the HTTP engines used by a Connection.

Unary requests go through an HTTP/1.1 httpx.AsyncClient and streaming
requests through an HTTP/2 one; httpx picks the protocol per client, not per
request. Several Connections (sessions) share one handle, and the engines are
closed when the last holder releases it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from faunadb_core._errors import RefCountError
from faunadb_core._types import DEFAULT_CONNECT_TIMEOUT, DEFAULT_REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

INITIAL_REF_COUNT = 1


def default_http_client() -> httpx.AsyncClient:
    """HTTP/1.1 engine used for unary requests."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(DEFAULT_REQUEST_TIMEOUT, connect=DEFAULT_CONNECT_TIMEOUT),
    )


def default_stream_client() -> httpx.AsyncClient:
    """HTTP/2 engine used for streaming requests. Reads never time out."""
    return httpx.AsyncClient(
        http2=True,
        timeout=httpx.Timeout(DEFAULT_REQUEST_TIMEOUT, connect=DEFAULT_CONNECT_TIMEOUT, read=None),
    )


class RefCountedHttpClient:
    """
    Shared-ownership handle for the HTTP engines.

    The handle starts with one reference, held by whoever created it.
    retain() adds a reference, aclose() drops one; the engines are closed
    exactly once, when the count falls below one. Engines injected by the
    caller are never closed by the handle.

    Example:
        >>> handle = RefCountedHttpClient(httpx.AsyncClient())
        >>> async with handle.acquire() as client:
        ...     await client.get("https://example.com")
        >>> await handle.aclose()
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        stream_client: httpx.AsyncClient | None = None,
        *,
        owns_client: bool | None = None,
        owns_stream_client: bool | None = None,
    ) -> None:
        """
        Args:
            client: Engine for unary requests (default: a new HTTP/1.1 client)
            stream_client: Engine for streaming requests (default: a new
                HTTP/2 client)
            owns_client: Whether closing the handle closes ``client``;
                defaults to True only when the client was created here
            owns_stream_client: Same as ``owns_client`` for ``stream_client``
        """
        self._owns_client = client is None if owns_client is None else owns_client
        self._owns_stream_client = (
            stream_client is None if owns_stream_client is None else owns_stream_client
        )
        self._client = client if client is not None else default_http_client()
        self._stream_client = (
            stream_client if stream_client is not None else default_stream_client()
        )

        self._lock = threading.Lock()
        self._ref_count = INITIAL_REF_COUNT
        self._released = False

    @property
    def client(self) -> httpx.AsyncClient:
        """The engine for unary requests."""
        if self.closed:
            raise RefCountError()
        return self._client

    @property
    def stream_client(self) -> httpx.AsyncClient:
        """The engine for streaming requests."""
        if self.closed:
            raise RefCountError()
        return self._stream_client

    @property
    def ref_count(self) -> int:
        with self._lock:
            return self._ref_count

    @property
    def closed(self) -> bool:
        """True once the last reference was released or an engine was closed elsewhere."""
        return self._released or self._client.is_closed or self._stream_client.is_closed

    def retain(self) -> bool:
        """
        Add a reference to the handle.

        Returns:
            True if the reference was taken. False if the handle was already
            released or an engine closed; no reference is held in that case.
        """
        with self._lock:
            self._ref_count += 1
            if self._ref_count > INITIAL_REF_COUNT and not self.closed:
                return True
            self._ref_count -= 1
            return False

    async def aclose(self) -> None:
        """Drop one reference, closing the engines when none remain."""
        with self._lock:
            if self._released:
                return
            self._ref_count -= 1
            if self._ref_count >= INITIAL_REF_COUNT:
                return
            self._released = True

        logger.debug("Last reference released, closing HTTP engines")
        try:
            if self._owns_client and not self._client.is_closed:
                await self._client.aclose()
        finally:
            if self._owns_stream_client and not self._stream_client.is_closed:
                await self._stream_client.aclose()

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[httpx.AsyncClient]:
        """
        Hold a reference for the duration of a block.

        The reference is released on every exit path.

        Raises:
            RefCountError: If the handle can no longer be retained
        """
        if not self.retain():
            raise RefCountError()
        try:
            yield self._client
        finally:
            await self.aclose()

    async def __aenter__(self) -> RefCountedHttpClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"RefCountedHttpClient(ref_count={self.ref_count}, closed={self.closed})"
