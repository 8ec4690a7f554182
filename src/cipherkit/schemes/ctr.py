"""AES-256 in counter mode.

Ciphertext layout: 12 random bytes (4 byte nonce + 8 byte IV), then the
ciphertext. The counter block for block ``n`` (zero-based) is
``nonce || iv || uint32be(n + 1)``, as in RFC 3686.

Range reads mask the counter to 32 bits while streaming lets the provider
carry into the IV bytes, so past 2**32 blocks (just under 64 GiB) range
output diverges from streamed output. Larger messages are not supported.
"""

from __future__ import annotations

import logging
import math
from typing import BinaryIO, Optional

from cryptography.hazmat.primitives.ciphers import modes

from cipherkit.encryption.sensitive import SensitiveBytes
from cipherkit.schemes.base import (
    BLOCK_SIZE,
    BaseScheme,
    ChunkCallback,
    Writer,
    aes_cipher,
    counter_suffix,
)
from cipherkit.streams.ranges import ByteRange, RangeLike
from cipherkit.streams.sinks import RangeWindowSink, sink_for, transform_pipeline
from cipherkit.streams.sources import WindowedSource, copy_stream, read_exact, stream_size

LOGGER = logging.getLogger(__name__)

NONCE_LENGTH = 4
IV_LENGTH = 8


def ctr_counter_block(nonce_and_iv: bytes, for_block_n: int) -> bytes:
    if len(nonce_and_iv) != NONCE_LENGTH + IV_LENGTH:
        raise ValueError(f"nonce and IV must be {NONCE_LENGTH + IV_LENGTH} bytes")
    return nonce_and_iv + counter_suffix(for_block_n + 1)


class AES256CTRScheme(BaseScheme):
    REQUIRED_KEY_LENGTH = 32

    def __init__(self, encryption_key: bytes, **kwargs) -> None:
        super().__init__(encryption_key, **kwargs)
        self._key = SensitiveBytes(bytes(encryption_key)[:32])

    def _cipher(self, nonce_and_iv: bytes, for_block_n: int):
        return aes_cipher(self._key, modes.CTR(ctr_counter_block(nonce_and_iv, for_block_n)))

    def streaming_encrypt(
        self,
        into_ciphertext_io: BinaryIO,
        from_plaintext_io: Optional[BinaryIO] = None,
        writer: Optional[Writer] = None,
    ) -> None:
        self._check_plaintext_input(from_plaintext_io, writer)
        nonce_and_iv = self._random_bytes(NONCE_LENGTH + IV_LENGTH)
        into_ciphertext_io.write(nonce_and_iv)

        encryptor = self._cipher(nonce_and_iv, 0).encryptor()
        with transform_pipeline(into_ciphertext_io, encryptor) as sink:
            self._feed_plaintext(sink, from_plaintext_io, writer)

    def streaming_decrypt(
        self,
        from_ciphertext_io: BinaryIO,
        into_plaintext_io: Optional[BinaryIO] = None,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> None:
        destination = sink_for(into_plaintext_io, on_chunk)
        nonce_and_iv = read_exact(from_ciphertext_io, NONCE_LENGTH + IV_LENGTH)

        decryptor = self._cipher(nonce_and_iv, 0).decryptor()
        with transform_pipeline(destination, decryptor) as sink:
            copy_stream(from_ciphertext_io, sink, chunk_size=self._chunk_size)

    def streaming_decrypt_range(
        self,
        from_ciphertext_io: BinaryIO,
        byte_range: RangeLike,
        into_plaintext_io: Optional[BinaryIO] = None,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> None:
        window = ByteRange.coerce(byte_range)
        destination = sink_for(into_plaintext_io, on_chunk)

        n_blocks_to_skip, offset_into_first_block = divmod(window.start, BLOCK_SIZE)
        nonce_and_iv = read_exact(from_ciphertext_io, NONCE_LENGTH + IV_LENGTH)
        ciphertext_starts_at = from_ciphertext_io.tell()
        first_block_at = ciphertext_starts_at + n_blocks_to_skip * BLOCK_SIZE

        # CTR does not validate anything on finalize, so there is no need
        # to read up to the end of the ciphertext.
        if window.length is None:
            n_bytes_to_read = max(stream_size(from_ciphertext_io) - first_block_at, 0)
        else:
            n_blocks_to_read = math.ceil(window.length / BLOCK_SIZE) + 1
            n_bytes_to_read = n_blocks_to_read * BLOCK_SIZE
        LOGGER.debug(
            "CTR range %s: skipping %d blocks, reading up to %d bytes",
            window, n_blocks_to_skip, n_bytes_to_read,
        )

        decryptor = self._cipher(nonce_and_iv, n_blocks_to_skip).decryptor()
        lens = RangeWindowSink.for_window(destination, offset_into_first_block, window.length)
        source = WindowedSource(from_ciphertext_io, first_block_at, n_bytes_to_read)
        with transform_pipeline(lens, decryptor) as sink:
            copy_stream(source, sink, chunk_size=self._chunk_size)
