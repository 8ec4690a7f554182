"""AES-256 in Galois/counter mode.

Ciphertext layout: 12 byte IV, ciphertext, 16 byte authentication tag.

``streaming_decrypt`` authenticates: it fetches the tag from the tail of the
source before decrypting anything and raises IntegrityError from the final
step if the tag does not match. Plaintext already written to the
destination by that call must then be thrown away.

``streaming_decrypt_range`` does NOT authenticate. The tag covers the whole
message, so a range read falls back to the counter mode transform GCM is
built on. Bytes obtained this way can be tampered with undetected; trust
them only after a full ``streaming_decrypt`` of the same ciphertext has
succeeded.
"""

from __future__ import annotations

import logging
import math
from typing import BinaryIO, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import modes

from cipherkit.encryption.sensitive import SensitiveBytes
from cipherkit.exceptions import CiphertextFormatError, IntegrityError
from cipherkit.schemes.base import (
    BaseScheme,
    ChunkCallback,
    GuardedContext,
    Writer,
    aes_cipher,
    counter_suffix,
)
from cipherkit.streams.ranges import ByteRange, RangeLike
from cipherkit.streams.sinks import RangeWindowSink, sink_for, transform_pipeline
from cipherkit.streams.sources import WindowedSource, copy_stream, read_exact, stream_size

LOGGER = logging.getLogger(__name__)

IV_LENGTH = 12
TAG_LENGTH = 16
# Range arithmetic works in 32 byte steps (two AES blocks), which advance
# the GCM counter by 2.
BLOCK_AND_TAG_SIZE = 16 + 16


def gcm_counter_block(iv: bytes, for_block_n: int) -> bytes:
    """Counter block for the ``for_block_n``-th 32 byte step of the ciphertext.

    GCM reserves counter 1 for the tag, so the first ciphertext block is
    encrypted with counter 2.
    """
    if len(iv) != IV_LENGTH:
        raise ValueError(f"GCM IV must be {IV_LENGTH} bytes")
    return iv + counter_suffix(2 + for_block_n * 2)


class AES256GCMScheme(BaseScheme):
    REQUIRED_KEY_LENGTH = 32

    def __init__(
        self,
        encryption_key: bytes,
        *,
        auth_data: bytes = b"",
        **kwargs,
    ) -> None:
        super().__init__(encryption_key, **kwargs)
        if isinstance(auth_data, str):
            auth_data = auth_data.encode("utf-8")
        self._auth_data = SensitiveBytes(auth_data)
        self._key = SensitiveBytes(bytes(encryption_key)[:32])

    def streaming_encrypt(
        self,
        into_ciphertext_io: BinaryIO,
        from_plaintext_io: Optional[BinaryIO] = None,
        writer: Optional[Writer] = None,
    ) -> None:
        self._check_plaintext_input(from_plaintext_io, writer)
        iv = self._random_bytes(IV_LENGTH)
        into_ciphertext_io.write(iv)

        encryptor = aes_cipher(self._key, modes.GCM(iv)).encryptor()
        if self._auth_data:
            encryptor.authenticate_additional_data(bytes(self._auth_data))
        with transform_pipeline(into_ciphertext_io, encryptor) as sink:
            self._feed_plaintext(sink, from_plaintext_io, writer)
        into_ciphertext_io.write(encryptor.tag)

    def streaming_decrypt(
        self,
        from_ciphertext_io: BinaryIO,
        into_plaintext_io: Optional[BinaryIO] = None,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> None:
        """Decrypt and authenticate the whole message.

        Raises IntegrityError if the tag does not match.
        """
        destination = sink_for(into_plaintext_io, on_chunk)
        iv = read_exact(from_ciphertext_io, IV_LENGTH)
        start_at = from_ciphertext_io.tell()
        total_size = stream_size(from_ciphertext_io)
        # The tag was appended by us, it must not reach the cipher as ciphertext
        n_ciphertext_bytes = total_size - start_at - TAG_LENGTH
        if n_ciphertext_bytes < 0:
            raise CiphertextFormatError("GCM ciphertext is too short to contain an authentication tag")

        # The tag has to be known before the first update
        from_ciphertext_io.seek(total_size - TAG_LENGTH)
        tag = read_exact(from_ciphertext_io, TAG_LENGTH)
        from_ciphertext_io.seek(start_at)

        decryptor = aes_cipher(self._key, modes.GCM(iv, tag)).decryptor()
        if self._auth_data:
            decryptor.authenticate_additional_data(bytes(self._auth_data))
        guarded = GuardedContext(
            decryptor,
            IntegrityError,
            "GCM authentication failed: ciphertext, tag or associated data were altered",
            catch=(InvalidTag,),
        )
        source = WindowedSource(from_ciphertext_io, start_at, n_ciphertext_bytes)
        with transform_pipeline(destination, guarded) as sink:
            copy_stream(source, sink, chunk_size=self._chunk_size)

    def streaming_decrypt_range(
        self,
        from_ciphertext_io: BinaryIO,
        byte_range: RangeLike,
        into_plaintext_io: Optional[BinaryIO] = None,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> None:
        """Decrypt a plaintext range WITHOUT authenticating it.

        See the module docstring: the output is unauthenticated.
        """
        window = ByteRange.coerce(byte_range)
        destination = sink_for(into_plaintext_io, on_chunk)

        n_blocks_to_skip, offset_into_first_block = divmod(window.start, BLOCK_AND_TAG_SIZE)
        iv = read_exact(from_ciphertext_io, IV_LENGTH)
        ciphertext_starts_at = from_ciphertext_io.tell()
        n_ciphertext_bytes = stream_size(from_ciphertext_io) - ciphertext_starts_at - TAG_LENGTH
        first_block_at = n_blocks_to_skip * BLOCK_AND_TAG_SIZE

        n_bytes_available = max(n_ciphertext_bytes - first_block_at, 0)
        if window.length is None:
            n_bytes_to_read = n_bytes_available
        else:
            n_blocks_to_read = math.ceil((offset_into_first_block + window.length) / BLOCK_AND_TAG_SIZE)
            n_bytes_to_read = min(n_blocks_to_read * BLOCK_AND_TAG_SIZE, n_bytes_available)
        LOGGER.debug(
            "GCM range %s (unauthenticated): skipping %d steps, reading %d bytes",
            window, n_blocks_to_skip, n_bytes_to_read,
        )

        # Same keystream as GCM, minus the authentication
        decryptor = aes_cipher(self._key, modes.CTR(gcm_counter_block(iv, n_blocks_to_skip))).decryptor()
        lens = RangeWindowSink.for_window(destination, offset_into_first_block, window.length)
        source = WindowedSource(from_ciphertext_io, ciphertext_starts_at + first_block_at, n_bytes_to_read)
        with transform_pipeline(lens, decryptor) as sink:
            copy_stream(source, sink, chunk_size=self._chunk_size)
