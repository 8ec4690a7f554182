"""Lookup of schemes by the names used in configuration and on the command line."""

from __future__ import annotations

from typing import Dict, Type

from cipherkit.exceptions import UnknownSchemeError
from cipherkit.schemes.base import BaseScheme
from cipherkit.schemes.cbc import AES256CBCCIVScheme, AES256CBCScheme
from cipherkit.schemes.cfb import AES256CFBCIVScheme, AES256CFBScheme
from cipherkit.schemes.ctr import AES256CTRScheme
from cipherkit.schemes.gcm import AES256GCMScheme
from cipherkit.schemes.passthrough import PassthroughScheme


SCHEMES: Dict[str, Type[BaseScheme]] = {
    "passthrough": PassthroughScheme,
    "aes-256-ctr": AES256CTRScheme,
    "aes-256-cbc": AES256CBCScheme,
    "aes-256-cbc-civ": AES256CBCCIVScheme,
    "aes-256-cfb": AES256CFBScheme,
    "aes-256-cfb-civ": AES256CFBCIVScheme,
    "aes-256-gcm": AES256GCMScheme,
}


def scheme_class(name: str) -> Type[BaseScheme]:
    try:
        return SCHEMES[name]
    except KeyError:
        known = ", ".join(sorted(SCHEMES))
        raise UnknownSchemeError(f"Unknown scheme {name!r} (known: {known})") from None


def scheme_for(name: str, encryption_key: bytes, **options) -> BaseScheme:
    """Instantiate the scheme registered under ``name``.

    ``auth_data`` is only meaningful for aes-256-gcm and is dropped for the
    other schemes.
    """
    cls = scheme_class(name)
    if cls is not AES256GCMScheme:
        options.pop("auth_data", None)
    return cls(encryption_key, **options)
