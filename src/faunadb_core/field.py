"""
Navigation into Value trees.

A Field is a path of object keys and array indexes, optionally followed by a
type check. Applying a Field to a Value yields a Result that tells apart a
successful extraction, a path that does not exist, and a value of the wrong
shape.

Example:
    >>> ref = Field.at("ref").to(RefV)
    >>> name = Field.at("data", "name").to(StringV)
    >>> value.get(ref).get()
    RefV(value='classes/users/42')
    >>> value.get(Field.at("missing")).is_absent
    True
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from faunadb_core.values import ArrayV, ObjectV, Value

T = TypeVar("T")
U = TypeVar("U")

Status = Literal["success", "absent", "mismatch"]

PathSegment = str | int


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """
    Outcome of extracting a Field.

    Attributes:
        status: "success", "absent" (the path does not exist) or "mismatch"
            (a value of the wrong shape was found)
        value: The extracted value when successful
        message: Why the extraction failed
    """

    status: Status
    value: T | None = None
    message: str | None = None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls("success", value)

    @classmethod
    def absent(cls, message: str) -> Result[Any]:
        return cls("absent", None, message)

    @classmethod
    def mismatch(cls, message: str) -> Result[Any]:
        return cls("mismatch", None, message)

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    @property
    def is_absent(self) -> bool:
        return self.status == "absent"

    @property
    def is_mismatch(self) -> bool:
        return self.status == "mismatch"

    def get(self) -> T:
        """
        Return the value.

        Raises:
            ValueError: If the extraction did not succeed
        """
        if not self.is_success:
            raise ValueError(self.message)
        return self.value  # type: ignore[return-value]

    def get_or_else(self, default: U) -> T | U:
        return self.value if self.is_success else default  # type: ignore[return-value]

    def get_optional(self) -> T | None:
        return self.value if self.is_success else None

    def map(self, fn: Callable[[T], U]) -> Result[U]:
        if not self.is_success:
            return self  # type: ignore[return-value]
        return Result.success(fn(self.value))  # type: ignore[arg-type]


def _check_type(kind: type[Value]) -> Callable[[Value], Result[Any]]:
    def check(value: Value) -> Result[Any]:
        if isinstance(value, kind):
            return Result.success(value)
        return Result.mismatch(
            f"Expected {kind.__name__} but found {type(value).__name__}"
        )

    return check


class Field(Generic[T]):
    """A path into a Value tree plus an optional conversion step."""

    __slots__ = ("_path", "_convert")

    def __init__(
        self,
        path: tuple[PathSegment, ...] = (),
        convert: Callable[[Value], Result[Any]] | None = None,
    ) -> None:
        for segment in path:
            if isinstance(segment, bool) or not isinstance(segment, (str, int)):
                raise TypeError(f"Path segments must be str or int, got {segment!r}")
        self._path = path
        self._convert = convert

    @classmethod
    def root(cls) -> Field[Value]:
        """A Field that selects the value it is applied to."""
        return cls()

    @classmethod
    def at(cls, *path: PathSegment) -> Field[Value]:
        """A Field selecting the value under the given keys and indexes."""
        return cls(tuple(path))

    @property
    def path(self) -> tuple[PathSegment, ...]:
        return self._path

    def to(self, kind: type[Value] | Callable[[Value], Result[Any]]) -> Field[Any]:
        """
        Add a conversion step.

        Args:
            kind: A Value subclass to check against, or a function taking the
                selected Value and returning a Result
        """
        convert = _check_type(kind) if isinstance(kind, type) else kind
        return Field(self._path, self._chain(convert))

    def collect(self, field: Field[U]) -> Field[tuple[U, ...]]:
        """A Field applying ``field`` to every element of the array at this path."""

        def collect_all(value: Value) -> Result[Any]:
            if not isinstance(value, ArrayV):
                return Result.mismatch(
                    f"Expected ArrayV but found {type(value).__name__}"
                )
            collected = []
            for index, item in enumerate(value):
                result = field.get(item)
                if not result.is_success:
                    return Result(result.status, None, f"At index {index}: {result.message}")
                collected.append(result.value)
            return Result.success(tuple(collected))

        return Field(self._path, self._chain(collect_all))

    def _chain(self, convert: Callable[[Value], Result[Any]]) -> Callable[[Value], Result[Any]]:
        previous = self._convert
        if previous is None:
            return convert

        def chained(value: Value) -> Result[Any]:
            result = previous(value)
            if not result.is_success:
                return result
            return convert(result.value)

        return chained

    def get(self, root: Value) -> Result[T]:
        """Apply this Field to a value."""
        node = root
        for depth, segment in enumerate(self._path):
            where = "/".join(str(s) for s in self._path[: depth + 1])
            if isinstance(segment, str):
                if not isinstance(node, ObjectV):
                    return Result.mismatch(
                        f"Expected ObjectV at {where!r} but found {type(node).__name__}"
                    )
                if segment not in node:
                    return Result.absent(f"Key {segment!r} not found at {where!r}")
                node = node[segment]
            else:
                if not isinstance(node, ArrayV):
                    return Result.mismatch(
                        f"Expected ArrayV at {where!r} but found {type(node).__name__}"
                    )
                if not 0 <= segment < len(node):
                    return Result.absent(f"Index {segment} not found at {where!r}")
                node = node[segment]

        if self._convert is None:
            return Result.success(node)  # type: ignore[arg-type]
        return self._convert(node)

    def __repr__(self) -> str:
        return f"Field(path={self._path!r})"
