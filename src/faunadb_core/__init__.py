"""
FaunaDB connection core

The HTTP connection and value model shared by FaunaDB drivers.

This package provides an asyncio Connection that issues authenticated
requests and tracks the last seen transaction time, plus the Value types
that mirror the service's JSON values.

Example usage:
    >>> from faunadb_core import Connection, decode
    >>>
    >>> async with Connection.builder().with_auth_token("secret").build() as conn:
    ...     response = await conn.post("", {"paginate": {"@ref": "classes"}})
    ...     result = decode(response.text)
    ...     print(result.at("resource", "data"))
"""

from importlib.metadata import PackageNotFoundError, version

from faunadb_core._errors import (
    ConfigurationError,
    FaunaError,
    ProtocolError,
    RefCountError,
    RequestConstructionError,
    SerializationError,
    StreamConsumedError,
    ValueDecodeError,
)
from faunadb_core._http import RefCountedHttpClient
from faunadb_core._metrics import MetricRegistry, MetricsSink, NoopMetricRegistry, Timer
from faunadb_core._response import StreamingResponse
from faunadb_core._time import HighPrecisionTime
from faunadb_core._types import Driver, ParamsLike, TimeoutLike
from faunadb_core.connection import (
    Connection,
    ConnectionBuilder,
    ConnectionConfig,
    StreamRequest,
)
from faunadb_core.field import Field, Result
from faunadb_core.values import (
    NULL,
    ArrayV,
    BooleanV,
    BytesV,
    DateV,
    DoubleV,
    LongV,
    NullV,
    ObjectV,
    QueryV,
    RefV,
    SetRefV,
    StringV,
    TimeV,
    Value,
    decode,
    encode,
    from_json,
    to_json,
)

__all__ = [
    # Types
    "Driver",
    "ParamsLike",
    "TimeoutLike",
    "HighPrecisionTime",
    # Errors
    "FaunaError",
    "ConfigurationError",
    "RequestConstructionError",
    "SerializationError",
    "ValueDecodeError",
    "StreamConsumedError",
    "RefCountError",
    "ProtocolError",
    # Connection
    "Connection",
    "ConnectionBuilder",
    "ConnectionConfig",
    "StreamRequest",
    "StreamingResponse",
    "RefCountedHttpClient",
    # Metrics
    "MetricRegistry",
    "MetricsSink",
    "NoopMetricRegistry",
    "Timer",
    # Values
    "Value",
    "StringV",
    "LongV",
    "DoubleV",
    "BooleanV",
    "NullV",
    "NULL",
    "ArrayV",
    "ObjectV",
    "RefV",
    "SetRefV",
    "TimeV",
    "DateV",
    "BytesV",
    "QueryV",
    "encode",
    "decode",
    "to_json",
    "from_json",
    # Navigation
    "Field",
    "Result",
]

# Use importlib.metadata for version (works with installed package)
# Fall back to hard-coded version for editable installs
try:
    __version__ = version("faunadb-core")
except PackageNotFoundError:
    __version__ = "0.1.0"
