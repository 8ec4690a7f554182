"""Write-side adapters composed by the schemes.

Anything with a ``write(data) -> int`` method is a sink. The adapters here
either transform the bytes (through a cipher context) or restrict which of
them reach the next sink (a byte-range window).
"""

from __future__ import annotations

from contextlib import ExitStack, contextmanager
from typing import Callable, Iterator, Optional

from cipherkit.exceptions import ArgumentContractError, CipherContextError
from cipherkit.streams.ranges import ByteRange, RangeLike


class ChunkSink:
    """Presents a callback that accepts byte chunks as a writable sink."""

    def __init__(self, on_chunk: Callable[[bytes], object]) -> None:
        if not callable(on_chunk):
            raise ArgumentContractError("on_chunk must be callable")
        self._on_chunk = on_chunk

    def write(self, data: bytes) -> int:
        self._on_chunk(bytes(data))
        return len(data)

    def flush(self) -> None:
        pass


def sink_for(destination=None, on_chunk: Optional[Callable[[bytes], object]] = None):
    """Return ``destination`` itself, or a ChunkSink around ``on_chunk``.

    Exactly one of the two must be given.
    """
    if (destination is None) == (on_chunk is None):
        raise ArgumentContractError("Either a destination or an on_chunk callback must be given, but not both")
    if destination is not None:
        return destination
    return ChunkSink(on_chunk)


class CipherTransformSink:
    """Feeds every write through ``context.update`` and forwards the output.

    ``context`` is anything with ``update(bytes) -> bytes`` and
    ``finalize() -> bytes``: a cryptography encryptor/decryptor, or a PKCS7
    padder/unpadder.

    ``write`` reports how many input bytes were accepted, not how many
    output bytes were produced, since block ciphers may hold some back.
    Used as a context manager the sink is finalized on a clean exit and
    discarded (never finalized) when the block raises.
    """

    def __init__(self, downstream, context) -> None:
        self._downstream = downstream
        self._context = context
        self._closed = False

    def write(self, data: bytes) -> int:
        if self._closed:
            raise CipherContextError("Cannot write through a cipher context that was already finalized")
        # Some providers fail on empty updates
        if len(data) == 0:
            return 0
        produced = self._context.update(bytes(data))
        if produced:
            self._downstream.write(produced)
        return len(data)

    def finalize(self) -> None:
        if self._closed:
            raise CipherContextError("Cipher context was already finalized")
        self._closed = True
        trailer = self._context.finalize()
        if trailer:
            self._downstream.write(trailer)

    def discard(self) -> None:
        self._closed = True

    def __enter__(self) -> "CipherTransformSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.finalize()
        else:
            self.discard()


@contextmanager
def transform_pipeline(destination, *contexts) -> Iterator[CipherTransformSink]:
    """Chain ``contexts`` (in data flow order) in front of ``destination``.

    Yields the head of the chain. On a clean exit the contexts are finalized
    front to back, so e.g. a padder flushes its last block into the cipher
    before the cipher itself is finalized.
    """
    with ExitStack() as stack:
        sink = destination
        for context in reversed(contexts):
            sink = stack.enter_context(CipherTransformSink(sink, context))
        yield sink


class RangeWindowSink:
    """Passes through only the bytes of a logical stream that fall in ``window``.

    Offsets are implied by the order of writes. Each write is accepted in
    full, whatever part of it (if any) is forwarded.
    """

    def __init__(self, downstream, window: RangeLike) -> None:
        self._downstream = downstream
        self._window = ByteRange.coerce(window)
        self._pos = 0

    @classmethod
    def for_window(cls, downstream, offset: int, length: Optional[int]) -> "RangeWindowSink":
        return cls(downstream, ByteRange.from_window(offset, length))

    def write(self, data: bytes) -> int:
        n = len(data)
        previous_pos = self._pos
        self._pos += n
        if n == 0:
            return 0

        overlap = self._window.intersection(ByteRange(previous_pos, previous_pos + n - 1))
        if overlap is not None:
            at = overlap.start - previous_pos
            self._downstream.write(bytes(memoryview(data)[at:at + overlap.length]))
        return n

    def flush(self) -> None:
        pass
