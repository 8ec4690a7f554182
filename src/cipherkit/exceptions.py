"""Error taxonomy for cipherkit.

Every error raised deliberately by the library derives from
:class:`CipherKitError`. Argument and construction errors also derive from
the matching builtin (``ValueError``/``TypeError``) so callers that already
catch those keep working.
"""


class CipherKitError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class KeyMaterialError(CipherKitError, ValueError):
    """Key material is shorter than the scheme requires."""


class RandomSourceError(CipherKitError, TypeError):
    """The injected random byte generator is unusable."""


class ArgumentContractError(CipherKitError, ValueError):
    """A call was made with a combination of arguments that is not allowed."""


class InvalidRangeError(ArgumentContractError):
    pass


class UnknownSchemeError(ArgumentContractError):
    pass


class CiphertextFormatError(CipherKitError, ValueError):
    """Ciphertext is truncated or not laid out the way the scheme writes it."""


class IntegrityError(CipherKitError):
    """Authentication of the ciphertext failed. Any plaintext produced must be discarded."""


class PaddingError(IntegrityError):
    pass


class CipherContextError(CipherKitError, RuntimeError):
    """A cipher context was used after it was finalized or discarded."""


class ConfigError(CipherKitError, ValueError):
    pass
