"""
Value model for FaunaDB query results.

Values mirror the service's JSON value types: the JSON primitives plus the
service-specific tagged types (refs, set refs, timestamps, dates, bytes and
queries). Every Value is immutable and compares by payload.

Example usage:
    >>> from faunadb_core.values import decode, encode, RefV
    >>> decode('{"@ref": "classes/users/42"}')
    RefV(value='classes/users/42')
    >>> encode(RefV("classes/users/42"))
    '{"@ref":"classes/users/42"}'
"""

from __future__ import annotations

import base64
import binascii
import json
import math
import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from faunadb_core._errors import SerializationError, ValueDecodeError
from faunadb_core._time import HighPrecisionTime

if TYPE_CHECKING:
    from faunadb_core.field import Field, Result

LONG_MIN = -(2**63)
LONG_MAX = 2**63 - 1

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Hash shared by every NullV instance
_NULL_HASH = 0x4E554C4C


class Value:
    """
    Base class of all values.

    Values carry no accessible data of their own; navigate into them with
    at() or extract typed data with get() and a Field.
    """

    __slots__ = ()

    def to_json(self) -> Any:
        """Return the JSON-compatible wire form of this value."""
        raise NotImplementedError

    def at(self, *path: str | int) -> Value:
        """
        Navigate through object keys and array indexes.

        Returns:
            The value under the path, or NULL if the path does not resolve
        """
        from faunadb_core.field import Field

        return Field.at(*path).get(self).get_or_else(NULL)

    def get(self, field: Field[Any]) -> Result[Any]:
        """Extract a Field from this value."""
        return field.get(self)

    def get_optional(self, field: Field[Any]) -> Any:
        """Extract a Field from this value, or None if it does not resolve."""
        return field.get(self).get_optional()

    def collect(self, field: Field[Any]) -> tuple[Any, ...]:
        """
        Apply a Field to every element of this array.

        Raises:
            ValueError: If this is not an array or any element fails
        """
        from faunadb_core.field import Field

        return Field.root().collect(field).get(self).get()

    @staticmethod
    def from_python(obj: Any) -> Value:
        """
        Wrap plain Python data into a Value.

        Raises:
            TypeError: If the object has no Value counterpart
        """
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return NULL
        if isinstance(obj, bool):
            return BooleanV(obj)
        if isinstance(obj, int):
            return LongV(obj)
        if isinstance(obj, float):
            return DoubleV(obj)
        if isinstance(obj, str):
            return StringV(obj)
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return BytesV(bytes(obj))
        if isinstance(obj, (datetime, HighPrecisionTime)):
            return TimeV(obj)
        if isinstance(obj, date):
            return DateV(obj)
        if isinstance(obj, Mapping):
            return ObjectV({key: Value.from_python(item) for key, item in obj.items()})
        if isinstance(obj, (list, tuple)):
            return ArrayV(tuple(Value.from_python(item) for item in obj))
        raise TypeError(f"Cannot convert {type(obj).__name__} to a Value")


# === Scalars ===


@dataclass(frozen=True, slots=True)
class StringV(Value):
    value: str

    def to_json(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class LongV(Value):
    """A signed 64-bit integer."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(f"LongV requires an int, got {type(self.value).__name__}")
        if not LONG_MIN <= self.value <= LONG_MAX:
            raise ValueError(f"Integer out of 64-bit range: {self.value}")

    def to_json(self) -> int:
        return self.value


@dataclass(frozen=True, slots=True)
class DoubleV(Value):
    value: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", float(self.value))

    def to_json(self) -> float:
        return self.value


@dataclass(frozen=True, slots=True)
class BooleanV(Value):
    value: bool

    def to_json(self) -> bool:
        return self.value


@dataclass(frozen=True, slots=True)
class NullV(Value):
    """The null value. Use the NULL singleton."""

    def __hash__(self) -> int:
        return _NULL_HASH

    def __repr__(self) -> str:
        return "NullV"

    def to_json(self) -> None:
        return None


NULL = NullV()


# === Collections ===


@dataclass(frozen=True, slots=True)
class ArrayV(Value):
    """An ordered sequence of values."""

    values: tuple[Value, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))

    def __iter__(self) -> Iterator[Value]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, index: int) -> Value:
        return self.values[index]

    def to_json(self) -> list[Any]:
        return [item.to_json() for item in self.values]


@dataclass(frozen=True, slots=True)
class ObjectV(Value):
    """
    A mapping of string keys to values.

    Key order is preserved, but equality ignores it. Objects encode as
    ``{"object": {...}}`` so their keys can never be mistaken for tags.
    """

    values: Mapping[str, Value]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def __hash__(self) -> int:
        return hash(frozenset(self.values.items()))

    def __repr__(self) -> str:
        return f"ObjectV({dict(self.values)!r})"

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, key: str) -> Value:
        return self.values[key]

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def items(self) -> Iterator[tuple[str, Value]]:
        return iter(self.values.items())

    def to_json(self) -> dict[str, Any]:
        return {"object": {key: item.to_json() for key, item in self.values.items()}}


# === Special types ===


@dataclass(frozen=True, slots=True)
class RefV(Value):
    """A reference to a document, class, index or other entity."""

    value: str

    def to_json(self) -> dict[str, str]:
        return {"@ref": self.value}


@dataclass(frozen=True, slots=True)
class SetRefV(Value):
    """A set literal; the parameters describe the set query."""

    parameters: Mapping[str, Value]

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    def __hash__(self) -> int:
        return hash(frozenset(self.parameters.items()))

    def __repr__(self) -> str:
        return f"SetRefV({dict(self.parameters)!r})"

    def to_json(self) -> dict[str, Any]:
        return {"@set": {key: item.to_json() for key, item in self.parameters.items()}}


@dataclass(frozen=True, slots=True)
class TimeV(Value):
    """A timestamp with nanosecond precision."""

    value: HighPrecisionTime

    def __post_init__(self) -> None:
        if isinstance(self.value, datetime):
            object.__setattr__(self, "value", HighPrecisionTime.from_datetime(self.value))

    def to_datetime(self) -> datetime:
        """The timestamp as an aware datetime, truncated to microseconds."""
        return self.value.to_datetime()

    def to_json(self) -> dict[str, str]:
        return {"@ts": self.value.isoformat()}


@dataclass(frozen=True, slots=True)
class DateV(Value):
    value: date

    def __post_init__(self) -> None:
        if isinstance(self.value, datetime):
            object.__setattr__(self, "value", self.value.date())

    def to_json(self) -> dict[str, str]:
        return {"@date": self.value.isoformat()}


@dataclass(frozen=True, slots=True)
class BytesV(Value):
    """A byte sequence, sent as base64url."""

    value: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", bytes(self.value))

    def __repr__(self) -> str:
        return "BytesV(" + ", ".join(f"0x{b:02x}" for b in self.value) + ")"

    def to_json(self) -> dict[str, str]:
        return {"@bytes": base64.urlsafe_b64encode(self.value).decode("ascii")}


@dataclass(frozen=True, slots=True)
class QueryV(Value):
    """
    A query (lambda) value.

    The lambda is kept as its raw JSON tree. The generic decoder never
    produces QueryV; use QueryV.from_json() where a query is expected.
    """

    lambda_: Any

    def __hash__(self) -> int:
        return hash(json.dumps(self.lambda_, sort_keys=True))

    @classmethod
    def from_json(cls, tree: Any) -> QueryV:
        if not isinstance(tree, dict) or "@query" not in tree:
            raise ValueDecodeError("Expected a tagged query object", tag="@query", details=tree)
        return cls(tree["@query"])

    def to_json(self) -> dict[str, Any]:
        return {"@query": self.lambda_}


# === Codec ===


def to_json(value: Value) -> Any:
    """Return the JSON-compatible wire form of a value."""
    return value.to_json()


def encode(value: Value) -> str:
    """
    Serialize a value to JSON text.

    Raises:
        SerializationError: If a DoubleV holds NaN or an infinity
    """
    try:
        return json.dumps(
            to_json(value), ensure_ascii=False, allow_nan=False, separators=(",", ":")
        )
    except ValueError as e:
        raise SerializationError(f"Cannot encode value as JSON: {e}", details=value) from e


def decode(text: str | bytes) -> Value:
    """
    Parse JSON text into a value.

    Raises:
        ValueDecodeError: If the text is not JSON or has no Value counterpart
    """
    try:
        tree = json.loads(text)
    except ValueError as e:
        raise ValueDecodeError(f"Invalid JSON: {e}") from e
    return from_json(tree)


def from_json(tree: Any) -> Value:
    """
    Decode a parsed JSON tree into a value.

    Objects are dispatched on their first key: a recognised tag selects the
    special type, anything else decodes as an ObjectV.

    Raises:
        ValueDecodeError: For unknown shapes or invalid tagged payloads
    """
    if tree is None:
        return NULL
    if isinstance(tree, bool):
        return BooleanV(tree)
    if isinstance(tree, str):
        return StringV(tree)
    if isinstance(tree, int):
        if not LONG_MIN <= tree <= LONG_MAX:
            raise ValueDecodeError(f"Integer out of 64-bit range: {tree}", details=tree)
        return LongV(tree)
    if isinstance(tree, float):
        if not math.isfinite(tree):
            raise ValueDecodeError(f"Number out of range: {tree}", details=tree)
        return DoubleV(tree)
    if isinstance(tree, list):
        return ArrayV(tuple(from_json(item) for item in tree))
    if isinstance(tree, dict):
        return _decode_object(tree)
    raise ValueDecodeError(f"Cannot decode {type(tree).__name__} as a Value", details=tree)


def _decode_object(tree: dict[str, Any]) -> Value:
    if not tree:
        return ObjectV({})

    first = next(iter(tree))
    decoder = _TAGGED_DECODERS.get(first)
    if decoder is None:
        return ObjectV(_decode_map(tree, None))
    return decoder(tree[first])


def _decode_map(tree: Any, tag: str | None) -> dict[str, Value]:
    if not isinstance(tree, dict):
        raise ValueDecodeError(
            f"Expected an object, got {type(tree).__name__}", tag=tag, details=tree
        )
    return {key: from_json(item) for key, item in tree.items()}


def _decode_ref(payload: Any) -> Value:
    if not isinstance(payload, str):
        raise ValueDecodeError("Ref payload must be a string", tag="@ref", details=payload)
    return RefV(payload)


def _decode_set(payload: Any) -> Value:
    return SetRefV(_decode_map(payload, "@set"))


def _decode_ts(payload: Any) -> Value:
    if not isinstance(payload, str):
        raise ValueDecodeError("Timestamp payload must be a string", tag="@ts", details=payload)
    try:
        return TimeV(HighPrecisionTime.parse(payload))
    except ValueError as e:
        raise ValueDecodeError(str(e), tag="@ts", details=payload) from e


def _decode_date(payload: Any) -> Value:
    if not isinstance(payload, str):
        raise ValueDecodeError("Date payload must be a string", tag="@date", details=payload)
    try:
        if not _DATE_PATTERN.match(payload):
            raise ValueError(payload)
        return DateV(date.fromisoformat(payload))
    except ValueError as e:
        raise ValueDecodeError(f"Invalid date: {payload!r}", tag="@date", details=payload) from e


def _decode_bytes(payload: Any) -> Value:
    if not isinstance(payload, str):
        raise ValueDecodeError("Bytes payload must be a string", tag="@bytes", details=payload)
    padded = payload + "=" * (-len(payload) % 4)
    try:
        return BytesV(base64.b64decode(padded, altchars=b"-_", validate=True))
    except (binascii.Error, ValueError) as e:
        raise ValueDecodeError(
            f"Invalid base64url payload: {payload!r}", tag="@bytes", details=payload
        ) from e


def _decode_obj(payload: Any) -> Value:
    return ObjectV(_decode_map(payload, "@obj"))


_TAGGED_DECODERS: dict[str, Callable[[Any], Value]] = {
    "@ref": _decode_ref,
    "@set": _decode_set,
    "@ts": _decode_ts,
    "@date": _decode_date,
    "@bytes": _decode_bytes,
    "@obj": _decode_obj,
}
