"""
Exception hierarchy for the FaunaDB connection core.

Transport failures are not wrapped: they surface as the httpx exception the
engine raised. HTTP status codes are never translated into exceptions.
"""

from typing import Any


class FaunaError(Exception):
    """
    Base exception for all errors raised by the connection core.

    Attributes:
        message: Human-readable error message
        details: Additional error details (offending value, cause, ...)
    """

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r})"


class ConfigurationError(FaunaError):
    """
    Raised when a Connection cannot be configured.

    Covers a missing auth token, a malformed root URL, or a path that cannot
    be joined onto the root.
    """


class RequestConstructionError(FaunaError):
    """Raised when query parameters cannot be rendered into the request URI."""


class SerializationError(FaunaError):
    """Raised when a request body cannot be encoded as JSON."""


class ValueDecodeError(FaunaError):
    """
    Raised when a JSON tree cannot be decoded into a Value.

    This happens for JSON shapes with no Value counterpart and for tagged
    objects whose payload is invalid, e.g. a malformed ``@date``.
    """

    def __init__(self, message: str, tag: str | None = None, details: Any = None) -> None:
        super().__init__(message, details=details)
        self.tag = tag

    def __str__(self) -> str:
        if self.tag:
            return f"{self.message} [{self.tag}]"
        return self.message


class StreamConsumedError(FaunaError):
    """
    Raised when attempting to consume a streaming response more than once.

    StreamingResponse is a one-shot object.
    """

    def __init__(
        self,
        message: str = "Stream has already been consumed",
        attempted_method: str | None = None,
        consumed_by: str | None = None,
    ) -> None:
        if attempted_method and consumed_by:
            message = (
                f"Cannot call {attempted_method}() - stream was already consumed "
                f"via {consumed_by}()"
            )
        super().__init__(message)
        self.attempted_method = attempted_method
        self.consumed_by = consumed_by


class RefCountError(FaunaError):
    """Raised when a ref-counted HTTP handle is used after its engine closed."""

    def __init__(self, message: str = "HTTP client has already been closed") -> None:
        super().__init__(message)


class ProtocolError(FaunaError):
    """Raised when the server sends a header the client cannot interpret."""
