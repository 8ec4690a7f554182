"""Common contract for all cipher schemes.

A scheme binds key material to one block cipher mode and offers three
streaming operations over file-like objects:

- ``streaming_encrypt`` writes the mode's prefix (IV/nonce), the ciphertext
  and any suffix (authentication tag) into a writable.
- ``streaming_decrypt`` consumes a whole ciphertext produced by
  ``streaming_encrypt``.
- ``streaming_decrypt_range`` decrypts only a range of plaintext offsets,
  seeking through the ciphertext instead of reading all of it.

Ciphertext sources may carry a header before the ciphertext: the schemes
treat the source's current position as the start of their own data.
"""

from __future__ import annotations

import io
import os
from abc import ABC, abstractmethod
from typing import BinaryIO, Callable, Optional

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms

from cipherkit.encryption.sensitive import SensitiveBytes
from cipherkit.exceptions import (
    ArgumentContractError,
    KeyMaterialError,
    RandomSourceError,
)
from cipherkit.streams.ranges import RangeLike
from cipherkit.streams.sources import DEFAULT_CHUNK_SIZE, copy_stream


BLOCK_SIZE = 16

RandomSource = Callable[[int], bytes]
Writer = Callable[[object], object]
ChunkCallback = Callable[[bytes], object]


def aes_cipher(key: SensitiveBytes, mode) -> Cipher:
    return Cipher(algorithms.AES(bytes(key)), mode, backend=default_backend())


def counter_suffix(counter: int) -> bytes:
    """Big-endian 32 bit counter, masked to 32 bits.

    Only range reads build counter blocks this way. Streaming encryption and
    decryption let the provider increment the whole 128 bit block, which
    carries into the nonce/IV bytes, so past 2**32 blocks (just under 64 GiB)
    range output no longer matches streamed output.
    """
    return (counter & 0xFFFFFFFF).to_bytes(4, "big")


class GuardedContext:
    """Wraps a cipher/padding context so that a failing ``finalize`` raises
    ``error(message)`` instead of the provider's own exception."""

    def __init__(self, context, error: type, message: str, catch: tuple = (ValueError,)) -> None:
        self._context = context
        self._error = error
        self._message = message
        self._catch = catch

    def update(self, data: bytes) -> bytes:
        return self._context.update(data)

    def finalize(self) -> bytes:
        try:
            return self._context.finalize()
        except self._catch as e:
            raise self._error(self._message) from e


class BaseScheme(ABC):
    """Abstract cipher scheme. Subclasses set ``REQUIRED_KEY_LENGTH``."""

    REQUIRED_KEY_LENGTH = 0

    def __init__(
        self,
        encryption_key: bytes,
        *,
        iv_generator: RandomSource = os.urandom,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        key_length = len(encryption_key)
        if key_length < self.REQUIRED_KEY_LENGTH:
            raise KeyMaterialError(
                f"{self.REQUIRED_KEY_LENGTH} bytes of key material needed, at the minimum (got {key_length})"
            )
        if not callable(iv_generator):
            raise RandomSourceError(f"iv_generator must be callable as iv_generator(n) -> bytes, got {iv_generator!r}")
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size <= 0:
            raise ArgumentContractError(f"chunk_size must be a positive int, got {chunk_size!r}")
        self._iv_generator = iv_generator
        self._chunk_size = chunk_size

    @property
    def required_key_length(self) -> int:
        return self.REQUIRED_KEY_LENGTH

    @abstractmethod
    def streaming_encrypt(
        self,
        into_ciphertext_io: BinaryIO,
        from_plaintext_io: Optional[BinaryIO] = None,
        writer: Optional[Writer] = None,
    ) -> None:
        """Encrypt an entire message into ``into_ciphertext_io``.

        Plaintext comes either from ``from_plaintext_io`` (read until EOF) or
        from ``writer``, which is called with a writable that accepts
        plaintext chunks. Exactly one of the two must be given.
        """

    @abstractmethod
    def streaming_decrypt(
        self,
        from_ciphertext_io: BinaryIO,
        into_plaintext_io: Optional[BinaryIO] = None,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> None:
        """Decrypt an entire message, reading ``from_ciphertext_io`` to its end.

        Plaintext goes to ``into_plaintext_io`` or, chunk by chunk, to
        ``on_chunk``. Exactly one of the two must be given.
        """

    @abstractmethod
    def streaming_decrypt_range(
        self,
        from_ciphertext_io: BinaryIO,
        byte_range: RangeLike,
        into_plaintext_io: Optional[BinaryIO] = None,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> None:
        """Decrypt the plaintext bytes at ``byte_range``.

        ``from_ciphertext_io`` must support ``tell``, ``seek`` and have a
        known size. ``byte_range`` is a ByteRange, a ``slice``/``range``
        (half-open) or an inclusive ``(first, last)`` tuple. Ranges running
        past the end of the plaintext are clamped.
        """

    def decrypt_range(self, from_ciphertext_io: BinaryIO, byte_range: RangeLike) -> bytes:
        """Like ``streaming_decrypt_range``, but returns the bytes."""
        buf = io.BytesIO()
        self.streaming_decrypt_range(from_ciphertext_io, byte_range, into_plaintext_io=buf)
        return buf.getvalue()

    def encrypt(self, plaintext: bytes) -> bytes:
        out = io.BytesIO()
        self.streaming_encrypt(out, from_plaintext_io=io.BytesIO(plaintext))
        return out.getvalue()

    def decrypt(self, ciphertext: bytes) -> bytes:
        out = io.BytesIO()
        self.streaming_decrypt(io.BytesIO(ciphertext), into_plaintext_io=out)
        return out.getvalue()

    def _random_bytes(self, n: int) -> bytes:
        value = self._iv_generator(n)
        if not isinstance(value, (bytes, bytearray)) or len(value) != n:
            raise RandomSourceError(f"iv_generator({n}) must return {n} bytes")
        return bytes(value)

    @staticmethod
    def _check_plaintext_input(from_plaintext_io, writer) -> None:
        if (from_plaintext_io is None) == (writer is None):
            raise ArgumentContractError("Either from_plaintext_io or a writer callback must be given, but not both")

    def _feed_plaintext(self, sink, from_plaintext_io, writer) -> None:
        if writer is not None:
            writer(sink)
        else:
            copy_stream(from_plaintext_io, sink, chunk_size=self._chunk_size)

    def __repr__(self) -> str:
        # Key material is held in SensitiveBytes, whose repr is redacted
        fields = " ".join(f"{name.lstrip('_')}={value!r}" for name, value in vars(self).items())
        return f"<{type(self).__name__} {fields}>"
