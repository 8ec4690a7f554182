from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from .config import CipherKitConfig, configure_logging, load_config
from .encryption import keys
from .exceptions import CipherKitError
from .schemes.base import BaseScheme
from .schemes.registry import SCHEMES, scheme_for
from .streams.ranges import ByteRange

app = typer.Typer(help="Encrypt, decrypt and randomly access block cipher encrypted files.")


@app.callback()
def main_options(
    ctx: typer.Context,
    verbose: int = typer.Option(0, "-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)"),
):
    ctx.obj = {"verbose": verbose}


def _settings(ctx: typer.Context, config_path: Optional[str], scheme: Optional[str]) -> CipherKitConfig:
    try:
        config = load_config(config_path)
    except CipherKitError as e:
        raise typer.BadParameter(str(e))
    verbose = ctx.obj["verbose"] if ctx.obj else 0
    configure_logging(verbose, config)
    if scheme is not None:
        if scheme not in SCHEMES:
            raise typer.BadParameter(f"Unknown scheme {scheme!r}. Run list-schemes to see the choices.")
        config = CipherKitConfig(
            scheme=scheme,
            chunk_size=config.chunk_size,
            auth_data=config.auth_data,
            log_level=config.log_level,
        )
    return config


def _existing_file(path: str, what: str) -> Path:
    p = Path(path)
    if not p.is_file():
        raise typer.BadParameter(f"{what} not found: {path}")
    return p


def _build_scheme(config: CipherKitConfig, keyfile: str) -> BaseScheme:
    key_path = _existing_file(keyfile, "Key file")
    try:
        return scheme_for(config.scheme, keys.load_key(str(key_path)), **config.scheme_options())
    except CipherKitError as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(code=1)


@app.command("generate-key")
def generate_key(
    keyfile: str = typer.Argument(..., help="Path to write the key material to"),
    scheme: str = typer.Option("aes-256-gcm", "-s", "--scheme", help="Scheme the key is meant for"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing key file"),
):
    """Generate random key material long enough for SCHEME."""
    key_path = Path(keyfile)
    if key_path.exists() and not force:
        raise typer.BadParameter(f"Key file already exists: {keyfile} (use --force to overwrite)")
    try:
        length = keys.key_length_for(scheme)
    except CipherKitError as e:
        raise typer.BadParameter(str(e))
    keys.save_key(str(key_path), keys.generate_key(length))
    typer.echo(f"Wrote {length * 8} bits of key material to {key_path}")


@app.command("encrypt")
def encrypt(
    ctx: typer.Context,
    input: str = typer.Argument(..., help="Path to plaintext file"),
    output: str = typer.Option("", "-o", "--output", help="Path to write ciphertext to"),
    keyfile: str = typer.Option(..., "-k", "--keyfile", help="Path to key file"),
    scheme: Optional[str] = typer.Option(None, "-s", "--scheme", help="Scheme name (overrides config)"),
    config: Optional[str] = typer.Option(None, "-c", "--config", help="Path to YAML config"),
):
    """Encrypt a whole file."""
    input_path = _existing_file(input, "Input file")
    out_path = Path(output) if output else input_path.with_suffix(input_path.suffix + ".enc")
    settings = _settings(ctx, config, scheme)
    cipher_scheme = _build_scheme(settings, keyfile)

    typer.echo(f"Encrypting with {settings.scheme}: {input_path} -> {out_path}")
    try:
        with open(input_path, "rb") as fin, open(out_path, "wb") as fout:
            cipher_scheme.streaming_encrypt(fout, from_plaintext_io=fin)
    except CipherKitError as e:
        out_path.unlink(missing_ok=True)
        typer.echo(f"ERROR: Encryption failed: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo("Encryption complete.")


@app.command("decrypt")
def decrypt(
    ctx: typer.Context,
    input: str = typer.Argument(..., help="Path to ciphertext file"),
    output: str = typer.Option("", "-o", "--output", help="Path to write plaintext to"),
    keyfile: str = typer.Option(..., "-k", "--keyfile", help="Path to key file"),
    scheme: Optional[str] = typer.Option(None, "-s", "--scheme", help="Scheme name (overrides config)"),
    config: Optional[str] = typer.Option(None, "-c", "--config", help="Path to YAML config"),
):
    """Decrypt a whole file. For aes-256-gcm the result is authenticated."""
    input_path = _existing_file(input, "Input file")
    out_path = Path(output) if output else input_path.with_suffix(".dec")
    settings = _settings(ctx, config, scheme)
    cipher_scheme = _build_scheme(settings, keyfile)

    typer.echo(f"Decrypting with {settings.scheme}: {input_path} -> {out_path}")
    try:
        with open(input_path, "rb") as fin, open(out_path, "wb") as fout:
            cipher_scheme.streaming_decrypt(fin, into_plaintext_io=fout)
    except CipherKitError as e:
        # Whatever was written before the failure is not valid plaintext
        out_path.unlink(missing_ok=True)
        typer.echo(f"ERROR: Decryption failed: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo("Decryption complete.")


@app.command("decrypt-range")
def decrypt_range(
    ctx: typer.Context,
    input: str = typer.Argument(..., help="Path to ciphertext file"),
    start: int = typer.Option(..., "--start", min=0, help="First plaintext offset to decrypt"),
    end: Optional[int] = typer.Option(None, "--end", min=0, help="Last plaintext offset (inclusive); omit for end of file"),
    output: str = typer.Option("", "-o", "--output", help="Path to write the decrypted range to"),
    keyfile: str = typer.Option(..., "-k", "--keyfile", help="Path to key file"),
    scheme: Optional[str] = typer.Option(None, "-s", "--scheme", help="Scheme name (overrides config)"),
    config: Optional[str] = typer.Option(None, "-c", "--config", help="Path to YAML config"),
):
    """Decrypt only the plaintext bytes START..END without reading the whole file."""
    input_path = _existing_file(input, "Input file")
    out_path = Path(output) if output else input_path.with_suffix(".range")
    settings = _settings(ctx, config, scheme)
    cipher_scheme = _build_scheme(settings, keyfile)
    try:
        byte_range = ByteRange(start, end)
    except CipherKitError as e:
        raise typer.BadParameter(str(e))

    if settings.scheme == "aes-256-gcm":
        typer.echo("WARNING: aes-256-gcm range output is NOT authenticated.", err=True)
    try:
        with open(input_path, "rb") as fin, open(out_path, "wb") as fout:
            cipher_scheme.streaming_decrypt_range(fin, byte_range, into_plaintext_io=fout)
    except CipherKitError as e:
        out_path.unlink(missing_ok=True)
        typer.echo(f"ERROR: Range decryption failed: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Wrote {out_path.stat().st_size} bytes to {out_path}")


@app.command("list-schemes")
def list_schemes():
    """List the available schemes and their minimum key lengths."""
    for name, cls in SCHEMES.items():
        typer.echo(f"  * {name:<18} key >= {cls.REQUIRED_KEY_LENGTH} bytes")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
