"""
Exceptions for tdescrypt
Every failure of the core is one of these so callers can catch a single base
"""


class TdesCryptError(Exception):
    # general container for errors
    pass


class DerivationError(TdesCryptError):
    # raised if the digest engine fails while deriving key material
    pass


class TransformError(TdesCryptError):
    # raised when the streaming cipher transform fails (see subclasses)
    pass


class CipherInitFailed(TransformError):
    # raised when the cipher rejects the key or IV
    pass


class PaddingError(TransformError):
    # raised on bad padding or truncated ciphertext (wrong password, corruption)
    pass


class IOFailure(TransformError):
    # raised when reading or writing a caller-supplied stream fails
    pass
