"""Tests for error handling."""

from faunadb_core import (
    ConfigurationError,
    FaunaError,
    ProtocolError,
    RefCountError,
    RequestConstructionError,
    SerializationError,
    StreamConsumedError,
    ValueDecodeError,
)


class TestFaunaError:
    """Tests for FaunaError."""

    def test_basic_error(self) -> None:
        error = FaunaError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.details is None

    def test_error_with_details(self) -> None:
        error = FaunaError("Error", details={"extra": "info"})
        assert error.details == {"extra": "info"}

    def test_repr(self) -> None:
        assert repr(ConfigurationError("bad")) == "ConfigurationError(message='bad')"


class TestValueDecodeError:
    """Tests for ValueDecodeError."""

    def test_with_tag(self) -> None:
        error = ValueDecodeError("Invalid date", tag="@date", details="2020-13-01")
        assert str(error) == "Invalid date [@date]"
        assert error.tag == "@date"
        assert error.details == "2020-13-01"

    def test_without_tag(self) -> None:
        assert str(ValueDecodeError("Invalid JSON")) == "Invalid JSON"


class TestSpecificErrors:
    """Tests for specific error types."""

    def test_stream_consumed_error(self) -> None:
        error = StreamConsumedError(attempted_method="aiter_lines", consumed_by="aiter_bytes")
        assert "aiter_lines" in str(error)
        assert "aiter_bytes" in str(error)
        assert error.attempted_method == "aiter_lines"

    def test_stream_consumed_default_message(self) -> None:
        assert str(StreamConsumedError()) == "Stream has already been consumed"

    def test_ref_count_error_default_message(self) -> None:
        assert "closed" in str(RefCountError())

    def test_all_inherit_from_base(self) -> None:
        for cls in (
            ConfigurationError,
            RequestConstructionError,
            SerializationError,
            ValueDecodeError,
            StreamConsumedError,
            RefCountError,
            ProtocolError,
        ):
            assert issubclass(cls, FaunaError)
