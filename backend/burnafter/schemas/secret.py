from datetime import UTC, datetime

from pydantic import BaseModel, Field, StrictInt, field_serializer, field_validator

from burnafter.config import settings


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to the naive timestamps used in storage."""
    if value is None:
        return None
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


class SecretCreate(BaseModel):
    content: str = Field(..., description="Plaintext to store; encrypted server-side")
    ttl: StrictInt | None = Field(default=None, description="Minutes until the secret expires")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        if not v:
            raise ValueError("The secret content is required.")
        if len(v) > settings.max_content_length:
            raise ValueError(
                f"The secret content cannot exceed {settings.max_content_length:,} characters."
            )
        return v

    @field_validator("ttl")
    @classmethod
    def validate_ttl(cls, v: int | None) -> int | None:
        if v is None:
            return None
        if v < 1:
            raise ValueError("The TTL must be at least 1 minute.")
        if v > settings.max_ttl_minutes:
            raise ValueError(
                f"The TTL cannot exceed {settings.max_ttl_minutes:,} minutes "
                f"({settings.max_ttl_minutes // 1440} days)."
            )
        return v


class _Timestamps(BaseModel):
    created_at: datetime
    expires_at: datetime | None = None

    @field_serializer("created_at", "expires_at")
    def serialize_utc(self, value: datetime | None) -> str | None:
        value = as_utc(value)
        return value.isoformat() if value else None


class SecretCreateData(_Timestamps):
    id: str
    url: str


class SecretCreateResponse(BaseModel):
    data: SecretCreateData
    message: str = "Secret created successfully"


class SecretRetrieveData(_Timestamps):
    content: str


class SecretRetrieveResponse(BaseModel):
    data: SecretRetrieveData
    message: str = "Secret retrieved successfully. This secret has been permanently deleted."


class SecretNotFoundResponse(BaseModel):
    message: str = "Secret not found or has expired"
