"""
Shared utility functions for request shaping.

This module provides URL resolution, query-string rendering, body encoding
and timeout resolution used by the Connection.
"""

import json
from datetime import timedelta
from typing import Any
from urllib.parse import quote_plus, urlsplit, urlunsplit

import httpx

from faunadb_core._errors import (
    ConfigurationError,
    RequestConstructionError,
    SerializationError,
)
from faunadb_core._types import ParamsLike, TimeoutLike


def parse_root_url(root: str | httpx.URL) -> httpx.URL:
    """
    Validate and normalize a root URL.

    Args:
        root: The root URL as a string or httpx.URL

    Returns:
        The parsed httpx.URL

    Raises:
        ConfigurationError: If the URL is malformed or not absolute http(s)
    """
    try:
        url = root if isinstance(root, httpx.URL) else httpx.URL(root)
    except (httpx.InvalidURL, TypeError) as e:
        raise ConfigurationError(f"Malformed root URL: {root!r}", details=e) from e

    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(f"Root URL must be an absolute http(s) URL: {root!r}")
    return url


def join_url(root: httpx.URL, path: str) -> str:
    """
    Resolve a path against the root URL.

    Absolute paths replace the root's path, relative paths are resolved
    against it (RFC 3986 reference resolution).

    Args:
        root: The root URL
        path: Absolute or relative path of the resource

    Returns:
        The resolved URL as a string
    """
    try:
        return str(root.join(path))
    except (httpx.InvalidURL, TypeError) as e:
        raise ConfigurationError(f"Cannot resolve path {path!r} against {root}", details=e) from e


def encode_query_component(value: str) -> str:
    """
    Percent-encode a key or value using form encoding (UTF-8, spaces as "+").

    Only letters, digits and ".-*_" are left as-is; "~" is escaped too.
    """
    return quote_plus(value, safe="*").replace("~", "%7E")


def append_query_params(url: str, params: ParamsLike | None) -> str:
    """
    Append query parameters to a URL.

    Each entry renders as ``key=v1,v2`` with key and values percent-encoded
    separately, so the separating commas are never encoded. Entries with an
    empty value list are skipped. Existing query components are kept.

    Args:
        url: The URL to extend
        params: Mapping of key to list of values

    Returns:
        URL with the query parameters appended
    """
    if not params:
        return url

    parsed = urlsplit(url)
    query = parsed.query
    for key, values in params.items():
        if not values:
            continue
        if not isinstance(key, str) or not all(isinstance(v, str) for v in values):
            raise RequestConstructionError(
                f"Query parameter keys and values must be strings: {key!r}={values!r}"
            )
        encoded = encode_query_component(key) + "=" + ",".join(
            encode_query_component(v) for v in values
        )
        query = f"{query}&{encoded}" if query else encoded

    return urlunsplit(parsed._replace(query=query))


def encode_json_body(body: Any) -> bytes:
    """
    Encode a request body as UTF-8 JSON.

    Value instances are converted to their wire form first; anything else
    must already be a JSON-compatible tree.

    Raises:
        SerializationError: If the body is not JSON-serializable
    """
    from faunadb_core.values import Value, to_json

    if isinstance(body, Value):
        body = to_json(body)
    try:
        text = json.dumps(body, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Cannot encode request body as JSON: {e}", details=body) from e
    return text.encode("utf-8")


def to_timedelta(timeout: TimeoutLike | None) -> timedelta | None:
    """Normalize a timeout given as a timedelta or seconds."""
    if timeout is None or isinstance(timeout, timedelta):
        return timeout
    return timedelta(seconds=timeout)


def resolve_query_timeout(
    request_timeout: TimeoutLike | None,
    default_timeout: TimeoutLike | None,
) -> timedelta | None:
    """
    Pick the query timeout in effect for a request.

    The per-request value wins, then the connection default; None means the
    X-Query-Timeout header is omitted.
    """
    if request_timeout is not None:
        return to_timedelta(request_timeout)
    return to_timedelta(default_timeout)


def timeout_millis(timeout: timedelta) -> int:
    """Whole milliseconds in a timedelta, as sent in X-Query-Timeout."""
    return timeout // timedelta(milliseconds=1)
