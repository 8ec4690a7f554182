"""AES-256 in (128 bit) cipher feedback mode.

- ``AES256CFBScheme`` writes a fresh 16 byte IV in front of the ciphertext
  and needs 32 bytes of key material.
- ``AES256CFBCIVScheme`` takes the IV from the first 16 bytes of the key
  material and the key from the next 32; no prefix is written.

Range decryption decrypts from the start of the ciphertext up to the last
requested byte and throws away everything before the range. CFB would
allow starting at any block (the previous ciphertext block acts as the
IV), but that shortcut is not implemented here.
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Optional

from cryptography.hazmat.decrepit.ciphers.modes import CFB

from cipherkit.encryption.sensitive import SensitiveBytes
from cipherkit.schemes.base import BaseScheme, ChunkCallback, Writer, aes_cipher
from cipherkit.streams.ranges import ByteRange, RangeLike
from cipherkit.streams.sinks import RangeWindowSink, sink_for, transform_pipeline
from cipherkit.streams.sources import WindowedSource, copy_stream, read_exact, stream_size

LOGGER = logging.getLogger(__name__)

IV_LENGTH = 16


class AES256CFBScheme(BaseScheme):
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

    def streaming_encrypt(
        self,
        into_ciphertext_io: BinaryIO,
        from_plaintext_io: Optional[BinaryIO] = None,
        writer: Optional[Writer] = None,
    ) -> None:
        self._check_plaintext_input(from_plaintext_io, writer)
        iv = self._iv_for_encryption(into_ciphertext_io)

        encryptor = aes_cipher(self._key, CFB(iv)).encryptor()
        with transform_pipeline(into_ciphertext_io, encryptor) as sink:
            self._feed_plaintext(sink, from_plaintext_io, writer)

    def streaming_decrypt(
        self,
        from_ciphertext_io: BinaryIO,
        into_plaintext_io: Optional[BinaryIO] = None,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> None:
        destination = sink_for(into_plaintext_io, on_chunk)
        iv = self._iv_for_decryption(from_ciphertext_io)

        decryptor = aes_cipher(self._key, CFB(iv)).decryptor()
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

        iv = self._iv_for_decryption(from_ciphertext_io)
        ciphertext_starts_at = from_ciphertext_io.tell()
        # CFB ciphertext is as long as the plaintext, so nothing past the
        # last requested byte is needed.
        if window.last is None:
            n_bytes_to_read = stream_size(from_ciphertext_io) - ciphertext_starts_at
        else:
            n_bytes_to_read = window.last + 1
        LOGGER.debug("CFB range %s: decrypting %d bytes from the start", window, n_bytes_to_read)

        decryptor = aes_cipher(self._key, CFB(iv)).decryptor()
        lens = RangeWindowSink(destination, window)
        source = WindowedSource(from_ciphertext_io, ciphertext_starts_at, max(n_bytes_to_read, 0))
        with transform_pipeline(lens, decryptor) as sink:
            copy_stream(source, sink, chunk_size=self._chunk_size)


class AES256CFBCIVScheme(AES256CFBScheme):
    REQUIRED_KEY_LENGTH = 48

    def __init__(self, encryption_key: bytes, **kwargs) -> None:
        super().__init__(encryption_key, **kwargs)
        self._iv = SensitiveBytes(bytes(encryption_key)[:IV_LENGTH])
        self._key = SensitiveBytes(bytes(encryption_key)[IV_LENGTH:IV_LENGTH + 32])

    def _iv_for_encryption(self, into_ciphertext_io: BinaryIO) -> bytes:
        return bytes(self._iv)

    def _iv_for_decryption(self, from_ciphertext_io: BinaryIO) -> bytes:
        return bytes(self._iv)
