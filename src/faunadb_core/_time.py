"""
Timestamps with nanosecond precision.

datetime stops at microseconds, while the service reports timestamps with up
to nine fractional digits, so the seconds and nanoseconds are kept apart.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_NANOS_PER_SECOND = 1_000_000_000

_ISO_PATTERN = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})T(?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d{1,9}))?"
    r"(?P<offset>Z|z|[+-]\d{2}:?\d{2})$"
)


@dataclass(frozen=True, slots=True, order=True)
class HighPrecisionTime:
    """
    An instant on the UTC timeline.

    Attributes:
        seconds: Whole seconds since the Unix epoch (may be negative)
        nanos: Nanoseconds past ``seconds``, in ``[0, 1_000_000_000)``
    """

    seconds: int
    nanos: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.nanos < _NANOS_PER_SECOND:
            raise ValueError(f"nanos out of range: {self.nanos}")

    @classmethod
    def parse(cls, text: str) -> HighPrecisionTime:
        """
        Parse an ISO-8601 timestamp such as ``2015-01-15T10:20:30.123456789Z``.

        Raises:
            ValueError: If the text is not a valid timestamp, or its UTC
                instant falls outside years 1-9999
        """
        match = _ISO_PATTERN.match(text)
        if match is None:
            raise ValueError(f"Invalid timestamp: {text!r}")

        offset = match["offset"]
        if offset in ("Z", "z"):
            offset = "+00:00"
        elif ":" not in offset:
            offset = f"{offset[:3]}:{offset[3:]}"

        moment = datetime.fromisoformat(f"{match['date']}T{match['time']}{offset}")
        try:
            moment.astimezone(timezone.utc)
        except OverflowError as e:
            raise ValueError(f"Timestamp out of range: {text!r}") from e
        seconds = (moment - _EPOCH) // timedelta(seconds=1)
        fraction = match["fraction"] or ""
        nanos = int(fraction.ljust(9, "0")) if fraction else 0
        return cls(seconds, nanos)

    @classmethod
    def from_datetime(cls, moment: datetime) -> HighPrecisionTime:
        """Build from a datetime; naive datetimes are taken as UTC."""
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        delta = moment - _EPOCH
        seconds = delta // timedelta(seconds=1)
        micros = (delta - timedelta(seconds=seconds)) // timedelta(microseconds=1)
        return cls(seconds, micros * 1000)

    @classmethod
    def from_epoch_micros(cls, micros: int) -> HighPrecisionTime:
        """Build from microseconds since the epoch, the unit of txn times."""
        seconds, rest = divmod(micros, 1_000_000)
        return cls(seconds, rest * 1000)

    def to_datetime(self) -> datetime:
        """Convert to an aware UTC datetime, truncating to microseconds."""
        return _EPOCH + timedelta(seconds=self.seconds, microseconds=self.nanos // 1000)

    def to_epoch_micros(self) -> int:
        return self.seconds * 1_000_000 + self.nanos // 1000

    def isoformat(self) -> str:
        moment = _EPOCH + timedelta(seconds=self.seconds)
        base = (
            f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
            f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
        )
        if self.nanos == 0:
            return f"{base}Z"
        if self.nanos % 1_000_000 == 0:
            return f"{base}.{self.nanos // 1_000_000:03d}Z"
        if self.nanos % 1000 == 0:
            return f"{base}.{self.nanos // 1000:06d}Z"
        return f"{base}.{self.nanos:09d}Z"

    def __str__(self) -> str:
        return self.isoformat()
