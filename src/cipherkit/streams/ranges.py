"""Inclusive byte ranges with optionally unbounded ends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from cipherkit.exceptions import InvalidRangeError


RangeLike = Union["ByteRange", slice, range, Tuple[Optional[int], Optional[int]]]


@dataclass(frozen=True)
class ByteRange:
    """Offsets ``first`` through ``last``, both inclusive.

    ``first=None`` means "from the beginning", ``last=None`` means "through
    the end of the stream".
    """

    first: Optional[int] = None
    last: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("first", "last"):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidRangeError(f"Range {name} must be an int, got {value!r}")
            if value < 0:
                raise InvalidRangeError(f"Range {name} must not be negative, got {value}")
        if self.last is not None and self.last < self.start:
            raise InvalidRangeError(f"Range ends ({self.last}) before it starts ({self.start})")

    @property
    def start(self) -> int:
        return 0 if self.first is None else self.first

    @property
    def length(self) -> Optional[int]:
        """Number of bytes covered, or None for an unbounded range."""
        if self.last is None:
            return None
        return self.last - self.start + 1

    @classmethod
    def from_window(cls, offset: int, length: Optional[int]) -> "ByteRange":
        if length is not None and length <= 0:
            raise InvalidRangeError(f"Window length must be positive, got {length}")
        return cls(offset, None if length is None else offset + length - 1)

    @classmethod
    def coerce(cls, value: RangeLike) -> "ByteRange":
        """Build a ByteRange from a ByteRange, a ``slice``/``range`` (half-open,
        as in Python slicing) or an inclusive ``(first, last)`` tuple.

        A ByteRange always covers at least one byte, so an empty slice such
        as ``slice(3, 3)`` raises InvalidRangeError instead of selecting
        nothing.
        """
        if isinstance(value, ByteRange):
            return value
        if isinstance(value, (slice, range)):
            if value.step not in (None, 1):
                raise InvalidRangeError(f"Stepped ranges are not supported: {value!r}")
            first, stop = value.start, value.stop
            if stop is None:
                return cls(first, None)
            if isinstance(stop, int) and stop <= (first or 0):
                raise InvalidRangeError(f"Range {value!r} is empty")
            return cls(first, stop - 1)
        if isinstance(value, tuple) and len(value) == 2:
            return cls(value[0], value[1])
        raise InvalidRangeError(f"Cannot interpret {value!r} as a byte range")

    def intersection(self, other: "ByteRange") -> Optional["ByteRange"]:
        """Return the overlap of two ranges, or None when they do not touch."""
        start = max(self.start, other.start)
        lasts = [r.last for r in (self, other) if r.last is not None]
        last = min(lasts) if lasts else None
        if last is not None and last < start:
            return None
        return ByteRange(start, last)
