"""End to end: key file, config file and an encrypted file carrying a header."""

import io
import random

from cipherkit.config import load_config
from cipherkit.encryption import keys
from cipherkit.schemes.registry import scheme_for

HEADER = b"CKv1\x00\x00\x00\x00"


def test_keyfile_config_and_header(tmp_path):
    """Encrypt behind an application header and range read back through the registry."""
    keyfile = tmp_path / "secret.key"
    keys.save_key(str(keyfile), keys.generate_key(keys.key_length_for("aes-256-gcm")))
    config_path = tmp_path / "cipherkit.yml"
    config_path.write_text("scheme: aes-256-gcm\nauth_data: volume-7\nchunk_size: 1000\n")

    config = load_config(str(config_path))
    scheme = scheme_for(config.scheme, keys.load_key(str(keyfile)), **config.scheme_options())
    plaintext = random.Random(99).randbytes(123_457)

    encrypted = tmp_path / "data.ck"
    with open(encrypted, "wb") as fout:
        fout.write(HEADER)
        scheme.streaming_encrypt(fout, from_plaintext_io=io.BytesIO(plaintext))

    with open(encrypted, "rb") as fin:
        assert fin.read(len(HEADER)) == HEADER
        out = io.BytesIO()
        scheme.streaming_decrypt(fin, into_plaintext_io=out)
    assert out.getvalue() == plaintext

    with open(encrypted, "rb") as fin:
        fin.seek(len(HEADER))
        assert scheme.decrypt_range(fin, slice(50_000, 50_100)) == plaintext[50_000:50_100]
