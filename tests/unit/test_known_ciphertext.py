"""Known answer checks: scheme output must match the documented wire format."""

import io
import random
import warnings

from cryptography.hazmat.decrepit.ciphers.modes import CFB
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.utils import CryptographyDeprecationWarning

from cipherkit.schemes.cbc import AES256CBCCIVScheme, AES256CBCScheme
from cipherkit.schemes.cfb import AES256CFBCIVScheme, AES256CFBScheme
from cipherkit.schemes.ctr import AES256CTRScheme, ctr_counter_block

PLAINTEXT = random.Random(42).randbytes(3623)
KEY = random.Random(21).randbytes(64)


def _encrypt(mode, key, data):
    encryptor = Cipher(algorithms.AES(key), mode).encryptor()
    return encryptor.update(data) + encryptor.finalize()


def _pkcs7(data):
    padder = padding.PKCS7(128).padder()
    return padder.update(data) + padder.finalize()


class TestKnownCiphertext:
    """Each scheme is compared with a direct cryptography computation."""

    def test_ctr(self):
        ours = AES256CTRScheme(KEY, iv_generator=random.Random(42).randbytes).encrypt(PLAINTEXT)
        nonce_and_iv = random.Random(42).randbytes(12)

        expected = nonce_and_iv + _encrypt(modes.CTR(nonce_and_iv + b"\x00\x00\x00\x01"), KEY[:32], PLAINTEXT)
        assert ours == expected

    def test_ctr_counter_block(self):
        nonce_and_iv = bytes(12)
        assert ctr_counter_block(nonce_and_iv, 0)[-4:] == b"\x00\x00\x00\x01"
        assert ctr_counter_block(nonce_and_iv, 255)[-4:] == b"\x00\x00\x01\x00"
        # Range counter blocks are masked to 32 bits
        assert ctr_counter_block(nonce_and_iv, 0xFFFFFFFF)[-4:] == b"\x00\x00\x00\x00"

    def test_streamed_counter_carries_past_32_bits(self):
        """Streaming increments the full 128 bit block, range counter blocks do not carry."""
        key = KEY[:32]
        nonce_and_iv = bytes(11) + b"\x07"
        streamed = _encrypt(modes.CTR(nonce_and_iv + b"\xff" * 4), key, bytes(32))

        carried = _encrypt(modes.CTR(bytes(11) + b"\x08" + bytes(4)), key, bytes(16))
        masked = _encrypt(modes.CTR(ctr_counter_block(nonce_and_iv, 0xFFFFFFFF)), key, bytes(16))
        assert streamed[16:] == carried
        assert streamed[16:] != masked

    def test_cbc_fresh_iv(self):
        ours = AES256CBCScheme(KEY, iv_generator=random.Random(42).randbytes).encrypt(PLAINTEXT)
        iv = random.Random(42).randbytes(16)

        assert ours == iv + _encrypt(modes.CBC(iv), KEY[:32], _pkcs7(PLAINTEXT))

    def test_cbc_constant_iv(self):
        ours = AES256CBCCIVScheme(KEY).encrypt(PLAINTEXT)
        assert ours == _encrypt(modes.CBC(KEY[:16]), KEY[16:48], _pkcs7(PLAINTEXT))

    def test_cfb_fresh_iv(self):
        ours = AES256CFBScheme(KEY, iv_generator=random.Random(42).randbytes).encrypt(PLAINTEXT)
        iv = random.Random(42).randbytes(16)

        assert ours == iv + _encrypt(CFB(iv), KEY[:32], PLAINTEXT)

    def test_cfb_constant_iv(self):
        ours = AES256CFBCIVScheme(KEY).encrypt(PLAINTEXT)
        assert ours == _encrypt(CFB(KEY[:16]), KEY[16:48], PLAINTEXT)

    def test_cfb_uses_no_deprecated_api(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error", CryptographyDeprecationWarning)
            scheme = AES256CFBScheme(KEY)
            ciphertext = scheme.encrypt(PLAINTEXT)
            assert scheme.decrypt(ciphertext) == PLAINTEXT
            assert scheme.decrypt_range(io.BytesIO(ciphertext), (100, 200)) == PLAINTEXT[100:201]
