"""AES-256 in cipher block chaining mode with PKCS7 padding.

Two variants:

- ``AES256CBCScheme`` generates a 16 byte IV per message and writes it in
  front of the ciphertext. Needs 32 bytes of key material.
- ``AES256CBCCIVScheme`` ("constant IV") takes the IV from the first 16
  bytes of the key material and the key from the next 32, so the
  ciphertext carries no prefix. Needs 48 bytes of key material.

Random access relies on block ``n`` being decryptable with ciphertext block
``n - 1`` as its IV.

Known gap: padding is only checked when a range read reaches the final
ciphertext block. A range that ends earlier is decrypted without ever
looking at the padding, so a corrupted tail goes unnoticed. Decrypt to the
end of the stream when padding validation matters.
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import modes

from cipherkit.encryption.sensitive import SensitiveBytes
from cipherkit.exceptions import CiphertextFormatError, PaddingError
from cipherkit.schemes.base import (
    BLOCK_SIZE,
    BaseScheme,
    ChunkCallback,
    GuardedContext,
    Writer,
    aes_cipher,
)
from cipherkit.streams.ranges import ByteRange, RangeLike
from cipherkit.streams.sinks import RangeWindowSink, sink_for, transform_pipeline
from cipherkit.streams.sources import WindowedSource, copy_stream, read_exact, stream_size

LOGGER = logging.getLogger(__name__)

IV_LENGTH = 16


class AES256CBCScheme(BaseScheme):
    REQUIRED_KEY_LENGTH = 32

    def __init__(self, encryption_key: bytes, **kwargs) -> None:
        super().__init__(encryption_key, **kwargs)
        self._key = SensitiveBytes(bytes(encryption_key)[:32])

    def _iv_for_encryption(self, into_ciphertext_io: BinaryIO) -> bytes:
        iv = self._random_bytes(IV_LENGTH)
        into_ciphertext_io.write(iv)
        return iv

    def _iv_for_decryption(self, from_ciphertext_io: BinaryIO) -> bytes:
        return read_exact(from_ciphertext_io, IV_LENGTH)

    def _decryptor(self, iv: bytes) -> GuardedContext:
        return GuardedContext(
            aes_cipher(self._key, modes.CBC(iv)).decryptor(),
            CiphertextFormatError,
            "CBC ciphertext length is not a multiple of the block size",
        )

    @staticmethod
    def _unpadder() -> GuardedContext:
        return GuardedContext(
            padding.PKCS7(BLOCK_SIZE * 8).unpadder(),
            PaddingError,
            "Invalid PKCS7 padding at the end of the CBC ciphertext",
        )

    def streaming_encrypt(
        self,
        into_ciphertext_io: BinaryIO,
        from_plaintext_io: Optional[BinaryIO] = None,
        writer: Optional[Writer] = None,
    ) -> None:
        self._check_plaintext_input(from_plaintext_io, writer)
        iv = self._iv_for_encryption(into_ciphertext_io)

        padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
        encryptor = aes_cipher(self._key, modes.CBC(iv)).encryptor()
        with transform_pipeline(into_ciphertext_io, padder, encryptor) as sink:
            self._feed_plaintext(sink, from_plaintext_io, writer)

    def streaming_decrypt(
        self,
        from_ciphertext_io: BinaryIO,
        into_plaintext_io: Optional[BinaryIO] = None,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> None:
        destination = sink_for(into_plaintext_io, on_chunk)
        iv = self._iv_for_decryption(from_ciphertext_io)

        with transform_pipeline(destination, self._decryptor(iv), self._unpadder()) as sink:
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

        iv = self._iv_for_decryption(from_ciphertext_io)
        # Any header in front of the ciphertext has already been consumed,
        # so block offsets are relative to here.
        ciphertext_starts_at = from_ciphertext_io.tell()
        ciphertext_length = stream_size(from_ciphertext_io) - ciphertext_starts_at
        if ciphertext_length % BLOCK_SIZE != 0:
            raise CiphertextFormatError("CBC ciphertext length is not a multiple of the block size")
        n_blocks_total = ciphertext_length // BLOCK_SIZE
        n_blocks_to_skip, offset_into_first_block = divmod(window.start, BLOCK_SIZE)
        if n_blocks_to_skip >= n_blocks_total:
            LOGGER.debug("CBC range %s starts past the end of the ciphertext", window)
            return

        if n_blocks_to_skip == 0:
            chaining_iv = iv
        else:
            # The last skipped ciphertext block is the IV of the first block we decrypt
            from_ciphertext_io.seek(ciphertext_starts_at + (n_blocks_to_skip - 1) * BLOCK_SIZE)
            chaining_iv = read_exact(from_ciphertext_io, BLOCK_SIZE)

        last_block = None if window.last is None else window.last // BLOCK_SIZE
        reaches_final_block = last_block is None or last_block >= n_blocks_total - 1
        if reaches_final_block:
            n_blocks_to_read = n_blocks_total - n_blocks_to_skip
            contexts = (self._decryptor(chaining_iv), self._unpadder())
        else:
            n_blocks_to_read = last_block - n_blocks_to_skip + 1
            contexts = (self._decryptor(chaining_iv),)
            LOGGER.debug("CBC range %s ends before the final block, padding is not validated", window)

        lens = RangeWindowSink.for_window(destination, offset_into_first_block, window.length)
        source = WindowedSource(
            from_ciphertext_io,
            ciphertext_starts_at + n_blocks_to_skip * BLOCK_SIZE,
            n_blocks_to_read * BLOCK_SIZE,
        )
        with transform_pipeline(lens, *contexts) as sink:
            copy_stream(source, sink, chunk_size=self._chunk_size)


class AES256CBCCIVScheme(AES256CBCScheme):
    REQUIRED_KEY_LENGTH = 48

    def __init__(self, encryption_key: bytes, **kwargs) -> None:
        super().__init__(encryption_key, **kwargs)
        self._iv = SensitiveBytes(bytes(encryption_key)[:IV_LENGTH])
        self._key = SensitiveBytes(bytes(encryption_key)[IV_LENGTH:IV_LENGTH + 32])

    def _iv_for_encryption(self, into_ciphertext_io: BinaryIO) -> bytes:
        return bytes(self._iv)

    def _iv_for_decryption(self, from_ciphertext_io: BinaryIO) -> bytes:
        return bytes(self._iv)
