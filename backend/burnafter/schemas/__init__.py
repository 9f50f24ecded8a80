from burnafter.schemas.secret import (
    SecretCreate,
    SecretCreateData,
    SecretCreateResponse,
    SecretNotFoundResponse,
    SecretRetrieveData,
    SecretRetrieveResponse,
)

__all__ = [
    "SecretCreate",
    "SecretCreateData",
    "SecretCreateResponse",
    "SecretNotFoundResponse",
    "SecretRetrieveData",
    "SecretRetrieveResponse",
]
