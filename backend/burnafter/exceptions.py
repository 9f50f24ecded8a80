"""Error types raised by the secret lifecycle.

Not-found is not an exception: ``retrieve_and_burn`` returns ``None`` so that
an unknown, expired, burned or malformed id all look the same to callers.
"""


class SecretValidationError(ValueError):
    """Input violates a constraint. Expected, reported to the caller, not logged as an error."""

    def __init__(self, field: str, rule: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.rule = rule
        self.message = message


class SecretServiceError(RuntimeError):
    """Base for internal failures that end the request with a 500."""


class StorageError(SecretServiceError):
    """Persistence is unavailable or broke an invariant (e.g. public id collision)."""


class CryptoError(SecretServiceError):
    """Encryption or decryption failed (tampered payload, wrong key)."""


class CipherConfigError(ValueError):
    """Encryption key material is missing or malformed."""
