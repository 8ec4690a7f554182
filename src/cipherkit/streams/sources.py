"""Read-side helpers: bounded copying and windowed views over seekable sources."""

from __future__ import annotations

import os
from typing import BinaryIO, Optional

from cipherkit.exceptions import CiphertextFormatError, InvalidRangeError


DEFAULT_CHUNK_SIZE = 64 * 1024


def stream_size(source) -> int:
    """Return the total size of a seekable source without moving its cursor."""
    size = getattr(source, "size", None)
    if callable(size):
        return size()
    pos = source.tell()
    end = source.seek(0, os.SEEK_END)
    source.seek(pos)
    return end


def read_exact(source, n: int) -> bytes:
    """Read exactly ``n`` bytes or raise CiphertextFormatError."""
    data = source.read(n)
    if data is None or len(data) != n:
        got = 0 if not data else len(data)
        raise CiphertextFormatError(f"Truncated ciphertext: expected {n} bytes, got {got}")
    return data


def copy_stream(source, sink, limit: Optional[int] = None, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """Copy from ``source.read`` into ``sink.write`` until EOF or ``limit`` bytes.

    Returns the number of bytes read from the source.
    """
    copied = 0
    while limit is None or copied < limit:
        want = chunk_size if limit is None else min(chunk_size, limit - copied)
        chunk = source.read(want)
        if not chunk:
            break
        sink.write(chunk)
        copied += len(chunk)
    return copied


class WindowedSource:
    """A zero-based, read-only view of ``length`` bytes of ``source`` starting at ``offset``.

    The view keeps its own cursor and seeks the underlying source before every
    read, so the underlying cursor may be moved by others in between.
    """

    def __init__(self, source: BinaryIO, offset: int, length: int) -> None:
        if offset < 0:
            raise InvalidRangeError(f"negative window offset {offset}")
        if length < 0:
            raise InvalidRangeError(f"negative window length {length}")
        self._source = source
        self._offset = offset
        self._length = length
        self._pos = 0

    def size(self) -> int:
        return self._length

    def tell(self) -> int:
        return self._pos

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        if whence == os.SEEK_SET:
            target = offset
        elif whence == os.SEEK_CUR:
            target = self._pos + offset
        elif whence == os.SEEK_END:
            target = self._length + offset
        else:
            raise ValueError(f"invalid whence ({whence})")
        if target < 0:
            raise InvalidRangeError(f"negative seek destination {target}")
        self._pos = target
        return self._pos

    def read(self, n: Optional[int] = None) -> bytes:
        if n is None:
            n = max(self._length - self._pos, 0)
        if n < 0:
            raise InvalidRangeError(f"negative length {n} given")
        if n == 0:
            return b""

        window_end = self._offset + self._length
        wants_upto = self._offset + self._pos + n
        actual_n = min(window_end, wants_upto) - (self._offset + self._pos)
        if actual_n <= 0:
            return b""

        self._source.seek(self._offset + self._pos)
        data = self._source.read(actual_n) or b""
        self._pos += len(data)
        return data
