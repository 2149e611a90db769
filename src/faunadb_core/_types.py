"""
Core types and protocol constants for the FaunaDB connection core.

This module defines the fundamental types used throughout the library.
"""

from datetime import timedelta
from enum import Enum

# Type for request params - each key maps to a list of values joined by ","
ParamsLike = dict[str, list[str]]

# Query timeouts accept a timedelta or a number of seconds
TimeoutLike = timedelta | float | int


class Driver(str, Enum):
    """
    Driver tag reported to the server in the X-Fauna-Driver header.

    The server treats the value as an opaque string, so any str is also
    accepted wherever a Driver is expected.
    """

    JAVA = "Java"
    SCALA = "Scala"
    PYTHON = "Python"

    def __str__(self) -> str:
        return self.value


# Protocol constants
API_VERSION = "4"
DEFAULT_ROOT = "https://db.fauna.com"
USER_AGENT = "Fauna JVM Http Client"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"

AUTHORIZATION_HEADER = "Authorization"
API_VERSION_HEADER = "X-FaunaDB-API-Version"
USER_AGENT_HEADER = "User-agent"
DRIVER_HEADER = "X-Fauna-Driver"
CONTENT_TYPE_HEADER = "Content-type"
QUERY_TIMEOUT_HEADER = "X-Query-Timeout"
LAST_SEEN_TXN_HEADER = "X-Last-Seen-Txn"

TXN_TIME_HEADER = "x-txn-time"
FAUNADB_HOST_HEADER = "X-FaunaDB-Host"
FAUNADB_BUILD_HEADER = "X-FaunaDB-Build"

# Timeouts (seconds)
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_REQUEST_TIMEOUT = 60.0

REQUEST_TIMER_NAME = "fauna-request"
