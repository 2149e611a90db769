"""
Connection - the HTTP adapter for FaunaDB drivers.

A Connection issues authenticated requests against the service, tracks the
last transaction time seen by this client, and echoes it back on every
request so the server can provide read-your-writes consistency.
"""

from __future__ import annotations

import logging
import os
import re
import threading
from collections.abc import Generator, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

import httpx

from faunadb_core._errors import ConfigurationError, ProtocolError, RefCountError
from faunadb_core._http import RefCountedHttpClient
from faunadb_core._metrics import MetricRegistry, MetricsSink
from faunadb_core._response import StreamingResponse
from faunadb_core._types import (
    API_VERSION,
    API_VERSION_HEADER,
    AUTHORIZATION_HEADER,
    CONTENT_TYPE_HEADER,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_ROOT,
    DRIVER_HEADER,
    FAUNADB_BUILD_HEADER,
    FAUNADB_HOST_HEADER,
    JSON_CONTENT_TYPE,
    LAST_SEEN_TXN_HEADER,
    QUERY_TIMEOUT_HEADER,
    REQUEST_TIMER_NAME,
    TXN_TIME_HEADER,
    USER_AGENT,
    USER_AGENT_HEADER,
    Driver,
    ParamsLike,
    TimeoutLike,
)
from faunadb_core._util import (
    append_query_params,
    encode_json_body,
    join_url,
    parse_root_url,
    resolve_query_timeout,
    timeout_millis,
    to_timedelta,
)

logger = logging.getLogger(__name__)

_TXN_TIME_PATTERN = re.compile(r"^[+-]?\d+$")
_LONG_MIN = -(2**63)
_LONG_MAX = 2**63 - 1

UNARY_TIMEOUT = httpx.Timeout(DEFAULT_REQUEST_TIMEOUT, connect=DEFAULT_CONNECT_TIMEOUT)
STREAM_TIMEOUT = httpx.Timeout(DEFAULT_REQUEST_TIMEOUT, connect=DEFAULT_CONNECT_TIMEOUT, read=None)


def generate_auth_header(auth_token: str) -> str:
    return "Bearer " + auth_token


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Immutable configuration captured when a Connection is built.

    Attributes:
        root: Base endpoint that request paths are resolved against
        auth_header: Precomputed ``Authorization`` header value
        driver: Driver tag sent in ``X-Fauna-Driver``
        query_timeout: Default query timeout, or None to omit the header
    """

    root: httpx.URL
    auth_header: str = field(repr=False)
    driver: str
    query_timeout: timedelta | None = None

    def with_auth_token(self, auth_token: str) -> ConnectionConfig:
        return ConnectionConfig(
            root=self.root,
            auth_header=generate_auth_header(auth_token),
            driver=self.driver,
            query_timeout=self.query_timeout,
        )


class ConnectionBuilder:
    """
    Collects settings for a Connection. Use Connection.builder() to create one.

    Example:
        >>> connection = (
        ...     Connection.builder()
        ...     .with_auth_token("secret")
        ...     .with_query_timeout(timedelta(seconds=5))
        ...     .build()
        ... )
    """

    def __init__(self) -> None:
        self._root: str | httpx.URL | None = None
        self._auth_token: str | None = None
        self._metrics: MetricsSink | None = None
        self._last_seen_txn = 0
        self._http: httpx.AsyncClient | RefCountedHttpClient | None = None
        self._stream_http: httpx.AsyncClient | None = None
        self._driver: str = Driver.PYTHON
        self._query_timeout: TimeoutLike | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ConnectionBuilder:
        """
        Seed a builder from environment variables.

        Reads ``FAUNA_ROOT``, ``FAUNA_SECRET`` and ``FAUNA_QUERY_TIMEOUT_MS``.
        Unset variables leave the builder defaults in place.
        """
        env = os.environ if environ is None else environ
        builder = cls()

        root = env.get("FAUNA_ROOT")
        if root:
            builder.with_fauna_root(root)

        secret = env.get("FAUNA_SECRET")
        if secret:
            builder.with_auth_token(secret)

        timeout_ms = env.get("FAUNA_QUERY_TIMEOUT_MS")
        if timeout_ms:
            try:
                builder.with_query_timeout(timedelta(milliseconds=int(timeout_ms)))
            except ValueError as e:
                raise ConfigurationError(
                    f"FAUNA_QUERY_TIMEOUT_MS must be an integer, got {timeout_ms!r}"
                ) from e

        return builder

    def with_fauna_root(self, root: str | httpx.URL) -> ConnectionBuilder:
        """Set the root URL, e.g. ``https://db.fauna.com``."""
        self._root = root
        return self

    def with_auth_token(self, token: str) -> ConnectionBuilder:
        """Set the secret used to authenticate requests."""
        self._auth_token = token
        return self

    def with_metrics(self, registry: MetricsSink) -> ConnectionBuilder:
        """Set the registry that records request timings."""
        self._metrics = registry
        return self

    def with_driver(self, driver: Driver | str) -> ConnectionBuilder:
        """Set the driver tag reported to the server."""
        self._driver = driver
        return self

    with_jvm_driver = with_driver

    def with_last_seen_txn(self, txn_time: int) -> ConnectionBuilder:
        """Seed the last seen transaction time (microseconds)."""
        self._last_seen_txn = txn_time
        return self

    def with_http_client(
        self, client: httpx.AsyncClient | RefCountedHttpClient
    ) -> ConnectionBuilder:
        """
        Set the engine for unary requests.

        A plain httpx.AsyncClient is used as-is and never closed by the
        Connection. A RefCountedHttpClient is shared: the Connection retains
        it and releases its reference on aclose().
        """
        self._http = client
        return self

    def with_stream_http_client(self, client: httpx.AsyncClient) -> ConnectionBuilder:
        """Set the engine for streaming requests; it is never closed by the Connection."""
        self._stream_http = client
        return self

    def with_query_timeout(self, timeout: TimeoutLike | None) -> ConnectionBuilder:
        """Set the default query timeout, sent as ``X-Query-Timeout``."""
        self._query_timeout = timeout
        return self

    def build(self) -> Connection:
        """
        Build a Connection from the collected settings.

        Raises:
            ConfigurationError: If no auth token was set or the root URL is invalid
        """
        if self._auth_token is None:
            raise ConfigurationError("An auth token is required to build a Connection")

        root = parse_root_url(self._root if self._root is not None else DEFAULT_ROOT)
        config = ConnectionConfig(
            root=root,
            auth_header=generate_auth_header(self._auth_token),
            driver=str(self._driver),
            query_timeout=to_timedelta(self._query_timeout),
        )

        if isinstance(self._http, RefCountedHttpClient):
            if self._stream_http is not None:
                raise ConfigurationError(
                    "A stream client cannot be combined with a shared RefCountedHttpClient"
                )
            if not self._http.retain():
                raise ConfigurationError("The shared HTTP client has already been closed")
            http = self._http
        else:
            http = RefCountedHttpClient(self._http, self._stream_http)

        return Connection(
            config,
            http,
            metrics=self._metrics if self._metrics is not None else MetricRegistry(),
            last_seen_txn=self._last_seen_txn,
        )


class StreamRequest:
    """
    Pending streaming request returned by Connection.perform_stream_request().

    Supports both patterns:
        # Preferred: direct async context manager
        async with connection.perform_stream_request("POST", "stream", body) as res:
            async for chunks in res:
                ...

        # Also supported: await then use as context manager
        res = await connection.perform_stream_request("POST", "stream", body)
        async with res:
            ...
    """

    def __init__(
        self,
        connection: Connection,
        method: str,
        path: str,
        body: Any,
        params: ParamsLike | None,
    ) -> None:
        self._connection = connection
        self._method = method
        self._path = path
        self._body = body
        self._params = params
        self._response: StreamingResponse | None = None

    def __await__(self) -> Generator[Any, None, StreamingResponse]:
        return self._open().__await__()

    async def _open(self) -> StreamingResponse:
        self._response = await self._connection._perform_stream_request(
            self._method, self._path, self._body, self._params
        )
        return self._response

    async def __aenter__(self) -> StreamingResponse:
        if self._response is None:
            await self._open()
        assert self._response is not None
        return self._response

    async def __aexit__(self, *args: object) -> None:
        if self._response is not None:
            await self._response.aclose()


class Connection:
    """
    The HTTP connection used by FaunaDB drivers.

    Connections are safe to share between concurrent tasks and threads. The
    only mutable state is the last seen transaction time, which only ever
    moves forward.

    Example:
        >>> async with Connection.builder().with_auth_token("secret").build() as conn:
        ...     response = await conn.post("", {"paginate": {"@ref": "classes"}})
        ...     print(response.status_code, response.text)
    """

    def __init__(
        self,
        config: ConnectionConfig,
        http: RefCountedHttpClient,
        *,
        metrics: MetricsSink,
        last_seen_txn: int = 0,
    ) -> None:
        self._config = config
        self._http = http
        self._metrics = metrics
        self._txn_lock = threading.Lock()
        self._txn_time = last_seen_txn
        self._closed = False

    @staticmethod
    def builder() -> ConnectionBuilder:
        return ConnectionBuilder()

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def root(self) -> httpx.URL:
        return self._config.root

    @property
    def metrics(self) -> MetricsSink:
        return self._metrics

    @property
    def http_client(self) -> RefCountedHttpClient:
        """The shared handle over the HTTP engines."""
        return self._http

    @property
    def closed(self) -> bool:
        return self._closed

    # === Session handling ===

    def new_session_connection(self, auth_token: str) -> Connection:
        """
        Create a Connection that shares this one's HTTP engines.

        Requests on the session are authenticated with ``auth_token``. The
        session starts from this connection's current txn time and must be
        closed on its own.

        Raises:
            RefCountError: If the HTTP engines have already been closed
        """
        if not self._http.retain():
            raise RefCountError()
        return Connection(
            self._config.with_auth_token(auth_token),
            self._http,
            metrics=self._metrics,
            last_seen_txn=self.get_last_txn_time(),
        )

    async def aclose(self) -> None:
        """Release this connection's reference on the HTTP engines."""
        if not self._closed:
            self._closed = True
            await self._http.aclose()

    async def __aenter__(self) -> Connection:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    # === Transaction time ===

    @property
    def last_txn_time(self) -> int:
        return self.get_last_txn_time()

    def get_last_txn_time(self) -> int:
        """The freshest transaction time (microseconds) reported to this client."""
        with self._txn_lock:
            return self._txn_time

    def sync_last_txn_time(self, new_txn_time: int) -> None:
        """
        Advance the last seen transaction time.

        Values not greater than the current one are ignored. Use this only to
        coordinate timestamps across clients: moving it arbitrarily into the
        future stalls transactions.
        """
        with self._txn_lock:
            if new_txn_time > self._txn_time:
                self._txn_time = new_txn_time

    # === Unary requests ===

    async def get(
        self,
        path: str,
        params: ParamsLike | None = None,
        query_timeout: TimeoutLike | None = None,
    ) -> httpx.Response:
        """Issue a GET request, rendering ``params`` into the query string."""
        return await self._perform_request(
            "GET", path, None, params, query_timeout, has_body=False
        )

    async def post(
        self, path: str, body: Any, query_timeout: TimeoutLike | None = None
    ) -> httpx.Response:
        """Issue a POST request with a JSON body (a Value or a JSON-compatible tree)."""
        return await self._perform_request("POST", path, body, None, query_timeout)

    async def put(
        self, path: str, body: Any, query_timeout: TimeoutLike | None = None
    ) -> httpx.Response:
        """Issue a PUT request with a JSON body."""
        return await self._perform_request("PUT", path, body, None, query_timeout)

    async def patch(
        self, path: str, body: Any, query_timeout: TimeoutLike | None = None
    ) -> httpx.Response:
        """Issue a PATCH request with a JSON body."""
        return await self._perform_request("PATCH", path, body, None, query_timeout)

    # === Streaming requests ===

    def perform_stream_request(
        self,
        method: str,
        path: str,
        body: Any,
        params: ParamsLike | None = None,
    ) -> StreamRequest:
        """
        Issue a request whose response body is streamed over HTTP/2.

        The transaction time is taken from the response headers; the body is
        left untouched for the caller to consume.
        """
        return StreamRequest(self, method, path, body, params)

    # === Internals ===

    def build_request(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        content: bytes | None,
        params: ParamsLike | None = None,
        query_timeout: TimeoutLike | None = None,
        *,
        streaming: bool = False,
    ) -> httpx.Request:
        """Shape an outgoing request with the connection's headers."""
        url = append_query_params(join_url(self._config.root, path), params)

        headers = [
            (AUTHORIZATION_HEADER, self._config.auth_header),
            (API_VERSION_HEADER, API_VERSION),
            (USER_AGENT_HEADER, USER_AGENT),
            (DRIVER_HEADER, self._config.driver),
            (CONTENT_TYPE_HEADER, JSON_CONTENT_TYPE),
        ]

        timeout = resolve_query_timeout(query_timeout, self._config.query_timeout)
        if timeout is not None:
            headers.append((QUERY_TIMEOUT_HEADER, str(timeout_millis(timeout))))

        last_txn_time = self.get_last_txn_time()
        if last_txn_time > 0:
            headers.append((LAST_SEEN_TXN_HEADER, str(last_txn_time)))

        return client.build_request(
            method,
            url,
            content=content,
            headers=headers,
            timeout=STREAM_TIMEOUT if streaming else UNARY_TIMEOUT,
        )

    async def _perform_request(
        self,
        method: str,
        path: str,
        body: Any,
        params: ParamsLike | None,
        query_timeout: TimeoutLike | None,
        *,
        has_body: bool = True,
    ) -> httpx.Response:
        timer = self._metrics.timer(REQUEST_TIMER_NAME).time()
        request: httpx.Request | None = None
        content: bytes | None = None
        try:
            if has_body:
                content = encode_json_body(body)
            client = self._http.client
            request = self.build_request(client, method, path, content, params, query_timeout)
            response = await client.send(request)
            self._sync_from_response(response)
        except Exception as e:
            self._log_failure(method, request, path, content, e)
            raise
        finally:
            timer.stop()

        self._log_success(request, content, response)
        return response

    async def _perform_stream_request(
        self,
        method: str,
        path: str,
        body: Any,
        params: ParamsLike | None,
    ) -> StreamingResponse:
        timer = self._metrics.timer(REQUEST_TIMER_NAME).time()
        request: httpx.Request | None = None
        content: bytes | None = None
        try:
            content = encode_json_body(body)
            client = self._http.stream_client
            request = self.build_request(client, method, path, content, params, streaming=True)
            response = await client.send(request, stream=True)
            try:
                self._sync_from_response(response)
            except Exception:
                await response.aclose()
                raise
        except Exception as e:
            self._log_failure(method, request, path, content, e)
            raise
        finally:
            timer.stop()

        return StreamingResponse(response)

    def _sync_from_response(self, response: httpx.Response) -> None:
        header = response.headers.get(TXN_TIME_HEADER)
        if header is None:
            return
        value = header.strip()
        if not _TXN_TIME_PATTERN.match(value) or not _LONG_MIN <= int(value) <= _LONG_MAX:
            raise ProtocolError(f"Malformed {TXN_TIME_HEADER} header: {header!r}")
        self.sync_last_txn_time(int(value))

    def _log_success(
        self, request: httpx.Request, content: bytes | None, response: httpx.Response
    ) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        logger.debug(
            "Request: %s %s: [%s]. Response: Status=%d, Fauna Host: %s, Fauna Build: %s: %s",
            request.method,
            request.url,
            _describe_body(content),
            response.status_code,
            response.headers.get(FAUNADB_HOST_HEADER, "Unknown"),
            response.headers.get(FAUNADB_BUILD_HEADER, "Unknown"),
            response.text or "",
        )

    def _log_failure(
        self,
        method: str,
        request: httpx.Request | None,
        path: str,
        content: bytes | None,
        error: Exception,
    ) -> None:
        logger.info(
            "Request: %s %s: %s. Failed: %s",
            method,
            request.url if request is not None else path,
            _describe_body(content),
            error,
            exc_info=error,
        )

    def __repr__(self) -> str:
        return (
            f"Connection(root={str(self._config.root)!r}, driver={self._config.driver!r}, "
            f"last_txn_time={self.get_last_txn_time()})"
        )


def _describe_body(content: bytes | None) -> str:
    if content is None:
        return "NoBody"
    return content.decode("utf-8", errors="replace")
