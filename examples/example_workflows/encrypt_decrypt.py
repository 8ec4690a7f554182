"""Simple example: encrypt a file behind a header, then read a slice of it back."""
import io
from pathlib import Path

from cipherkit.encryption import keys
from cipherkit.schemes.registry import scheme_for

HEADER = b"CKv1"


def demo():
	src = Path(__file__).parent.parent / "sample_media" / "example.txt"
	src.parent.mkdir(parents=True, exist_ok=True)
	src.write_text("This is an example media file (text). " * 200)

	key_path = Path("example_media.key")
	keys.save_key(str(key_path), keys.generate_key(keys.key_length_for("aes-256-ctr")))
	scheme = scheme_for("aes-256-ctr", keys.load_key(str(key_path)))

	encrypted = src.with_suffix(src.suffix + ".ck")
	with open(src, "rb") as fin, open(encrypted, "wb") as fout:
		fout.write(HEADER)
		scheme.streaming_encrypt(fout, from_plaintext_io=fin)

	with open(encrypted, "rb") as fin:
		assert fin.read(len(HEADER)) == HEADER
		piece = scheme.decrypt_range(fin, (1000, 1037))
		fin.seek(len(HEADER))
		whole = io.BytesIO()
		scheme.streaming_decrypt(fin, into_plaintext_io=whole)

	print("Roundtrip ok:", whole.getvalue() == src.read_bytes(), "bytes 1000..1037:", piece)


if __name__ == "__main__":
	demo()
