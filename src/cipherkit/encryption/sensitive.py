"""Wrapper that keeps key material out of reprs, logs and tracebacks."""

from __future__ import annotations

import hmac


class SensitiveBytes:
    """Holds secret bytes (keys, IVs, associated data).

    Formatting the wrapper in any way yields ``[SENSITIVE(<n> bits)]``.
    The raw value is only available through ``bytes(wrapper)``.
    """

    __slots__ = ("_value",)

    def __init__(self, value: bytes) -> None:
        if isinstance(value, SensitiveBytes):
            value = bytes(value)
        self._value = bytes(value)

    def __bytes__(self) -> bytes:
        return self._value

    def __len__(self) -> int:
        return len(self._value)

    @property
    def bit_length(self) -> int:
        return len(self._value) * 8

    def slice(self, start: int, length: int) -> "SensitiveBytes":
        """Return a new wrapper over ``length`` bytes starting at ``start``."""
        return SensitiveBytes(self._value[start:start + length])

    def __repr__(self) -> str:
        return f"[SENSITIVE({self.bit_length} bits)]"

    __str__ = __repr__

    def __format__(self, format_spec: str) -> str:
        return repr(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SensitiveBytes):
            return NotImplemented
        return hmac.compare_digest(self._value, other._value)

    __hash__ = None  # type: ignore[assignment]

    def __reduce__(self):
        raise TypeError("SensitiveBytes cannot be pickled")
