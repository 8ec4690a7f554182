"""No-op scheme: ciphertext is the plaintext.

Useful as a baseline when testing the stream plumbing shared by the real
schemes. The key material is ignored.
"""

from __future__ import annotations

from typing import BinaryIO, Optional

from cipherkit.schemes.base import BaseScheme, ChunkCallback, Writer
from cipherkit.streams.ranges import ByteRange, RangeLike
from cipherkit.streams.sinks import sink_for
from cipherkit.streams.sources import WindowedSource, copy_stream, stream_size


class PassthroughScheme(BaseScheme):
    REQUIRED_KEY_LENGTH = 0

    def __init__(self, encryption_key: bytes = b"", **kwargs) -> None:
        super().__init__(encryption_key, **kwargs)

    def streaming_encrypt(
        self,
        into_ciphertext_io: BinaryIO,
        from_plaintext_io: Optional[BinaryIO] = None,
        writer: Optional[Writer] = None,
    ) -> None:
        self._check_plaintext_input(from_plaintext_io, writer)
        self._feed_plaintext(into_ciphertext_io, from_plaintext_io, writer)

    def streaming_decrypt(
        self,
        from_ciphertext_io: BinaryIO,
        into_plaintext_io: Optional[BinaryIO] = None,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> None:
        destination = sink_for(into_plaintext_io, on_chunk)
        copy_stream(from_ciphertext_io, destination, chunk_size=self._chunk_size)

    def streaming_decrypt_range(
        self,
        from_ciphertext_io: BinaryIO,
        byte_range: RangeLike,
        into_plaintext_io: Optional[BinaryIO] = None,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> None:
        window = ByteRange.coerce(byte_range)
        destination = sink_for(into_plaintext_io, on_chunk)

        starts_at = from_ciphertext_io.tell() + window.start
        available = max(stream_size(from_ciphertext_io) - starts_at, 0)
        n_bytes = available if window.length is None else min(window.length, available)
        copy_stream(WindowedSource(from_ciphertext_io, starts_at, n_bytes), destination, chunk_size=self._chunk_size)
