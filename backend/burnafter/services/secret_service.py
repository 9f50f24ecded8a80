import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from burnafter.config import Settings
from burnafter.exceptions import CryptoError, SecretValidationError
from burnafter.services.crypto_utils import SecretCipher
from burnafter.services.secret_store import Clock, SecretStore, utcnow

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class CreatedSecret:
    public_id: str
    created_at: datetime
    expires_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class RetrievedSecret:
    content: str
    created_at: datetime
    expires_at: datetime | None = None


def normalize_public_id(public_id: str) -> str | None:
    """Canonical lowercase UUID string, or None if the id is not a UUID."""
    try:
        return str(uuid.UUID(str(public_id)))
    except ValueError:
        return None


def run_cleanup(store: SecretStore, now: datetime | None = None) -> int:
    """
    Delete every secret whose expiry has passed.

    Safe to run concurrently with itself and with create/retrieve traffic.
    Returns the count of deleted rows.
    """
    now = now or utcnow()
    deleted = store.delete_expired(now)
    if deleted:
        logger.info("expired_secrets_deleted", count=deleted)
    return deleted


class SecretService:
    """Encryption boundary and burn-on-read orchestration over a SecretStore."""

    def __init__(
        self,
        store: SecretStore,
        cipher: SecretCipher,
        settings: Settings,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._cipher = cipher
        self._max_content_length = settings.max_content_length
        self._max_ttl_minutes = settings.max_ttl_minutes
        self._clock = clock

    def _validate(self, content, ttl_minutes) -> None:
        if not isinstance(content, str):
            raise SecretValidationError("content", "type", "The secret content must be a string.")
        if not content:
            raise SecretValidationError("content", "required", "The secret content is required.")
        if len(content) > self._max_content_length:
            raise SecretValidationError(
                "content",
                "max_length",
                f"The secret content cannot exceed {self._max_content_length:,} characters.",
            )
        try:
            content.encode("utf-8")
        except UnicodeEncodeError:
            raise SecretValidationError(
                "content", "type", "The secret content must be valid unicode text."
            ) from None

        if ttl_minutes is None:
            return
        # bool is an int subclass; True is not a TTL
        if isinstance(ttl_minutes, bool) or not isinstance(ttl_minutes, int):
            raise SecretValidationError("ttl", "type", "The TTL must be an integer.")
        if ttl_minutes < 1:
            raise SecretValidationError("ttl", "min", "The TTL must be at least 1 minute.")
        if ttl_minutes > self._max_ttl_minutes:
            raise SecretValidationError(
                "ttl",
                "max",
                f"The TTL cannot exceed {self._max_ttl_minutes:,} minutes "
                f"({self._max_ttl_minutes // 1440} days).",
            )

    def create(self, content: str, ttl_minutes: int | None = None) -> CreatedSecret:
        """
        Encrypt and store a new secret.

        Raises SecretValidationError for bad input; StorageError/CryptoError
        propagate unretried (a retry could create a duplicate secret).
        """
        self._validate(content, ttl_minutes)

        expires_at = None
        if ttl_minutes is not None:
            expires_at = self._clock() + timedelta(minutes=ttl_minutes)

        record = self._store.insert(self._cipher.encrypt(content), expires_at)

        logger.info("secret_created", ttl_minutes=ttl_minutes, content_length=len(content))

        return CreatedSecret(
            public_id=record.public_id,
            created_at=record.created_at,
            expires_at=record.expires_at,
        )

    def retrieve_and_burn(self, public_id: str) -> RetrievedSecret | None:
        """
        Return the decrypted secret and delete it, or None.

        None covers unknown, malformed, expired and already-burned ids alike.
        Only the caller whose delete actually removed the row gets the
        plaintext; a caller that loses the race discards what it decrypted.
        """
        canonical_id = normalize_public_id(public_id)
        if canonical_id is None:
            return None

        record = self._store.find_live(canonical_id)
        if record is None:
            return None

        try:
            content = self._cipher.decrypt(record.encrypted_content)
        except CryptoError as e:
            logger.error("secret_decrypt_failed", error=str(e))
            raise

        if not self._store.delete_if_present(canonical_id):
            logger.info("secret_burn_race_lost")
            return None

        logger.info("secret_burned")
        return RetrievedSecret(
            content=content,
            created_at=record.created_at,
            expires_at=record.expires_at,
        )

    def run_cleanup(self) -> int:
        return run_cleanup(self._store, self._clock())
