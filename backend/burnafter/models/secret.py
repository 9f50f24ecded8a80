from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from burnafter.database import Base


class Secret(Base):
    __tablename__ = "secrets"

    # Internal key, never exposed
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Public handle: UUIDv4 assigned by the store on insert
    public_id: Mapped[str] = mapped_column(String(36), unique=True, index=True, nullable=False)

    # nonce || ciphertext || GCM tag
    encrypted_content: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)

    # Timing
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True, default=None, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(UTC).replace(tzinfo=None), nullable=False
    )
