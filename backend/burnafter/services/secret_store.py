"""
Storage for encrypted secret records.

The lifecycle service only depends on the SecretStore protocol; any backend
providing the four operations below can be plugged in.
"""

from __future__ import annotations

import itertools
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from burnafter.exceptions import StorageError
from burnafter.models.secret import Secret

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the storage convention)."""
    return datetime.now(UTC).replace(tzinfo=None)


@dataclass(frozen=True, slots=True)
class SecretRecord:
    public_id: str
    encrypted_content: bytes
    created_at: datetime
    expires_at: datetime | None = None

    def is_live(self, now: datetime) -> bool:
        return self.expires_at is None or self.expires_at > now


class SecretStore(Protocol):
    def insert(self, encrypted_content: bytes, expires_at: datetime | None = None) -> SecretRecord:
        ...

    def find_live(self, public_id: str) -> SecretRecord | None:
        ...

    def delete_if_present(self, public_id: str) -> bool:
        ...

    def delete_expired(self, now: datetime) -> int:
        ...


def _to_record(secret: Secret) -> SecretRecord:
    return SecretRecord(
        public_id=secret.public_id,
        encrypted_content=secret.encrypted_content,
        created_at=secret.created_at,
        expires_at=secret.expires_at,
    )


class SqlSecretStore:
    """SecretStore over a SQLAlchemy session. One instance per request/session."""

    def __init__(self, db: Session, clock: Clock = utcnow) -> None:
        self._db = db
        self._clock = clock

    def _fail(
        self, operation: str, error: SQLAlchemyError, detail: str | None = None
    ) -> StorageError:
        self._db.rollback()
        # str(error) embeds the SQL statement and its parameters; only the
        # driver's own message is safe to surface
        if detail is None:
            orig = getattr(error, "orig", None)
            detail = str(orig) if orig is not None else type(error).__name__
        logger.error(
            "secret_storage_error",
            operation=operation,
            error_type=type(error).__name__,
            error=detail,
        )
        return StorageError(f"{operation} failed: {detail}")

    def insert(self, encrypted_content: bytes, expires_at: datetime | None = None) -> SecretRecord:
        """
        Persist a new record under a fresh UUIDv4.

        A public id collision surfaces as StorageError via the unique
        constraint; existing rows are never overwritten.
        """
        secret = Secret(
            public_id=str(uuid.uuid4()),
            encrypted_content=encrypted_content,
            expires_at=expires_at,
            created_at=self._clock(),
        )
        try:
            self._db.add(secret)
            self._db.commit()
            self._db.refresh(secret)
        except IntegrityError as e:
            raise self._fail("insert", e, detail="public id collision") from e
        except SQLAlchemyError as e:
            raise self._fail("insert", e) from e

        return _to_record(secret)

    def find_live(self, public_id: str) -> SecretRecord | None:
        now = self._clock()
        try:
            secret = (
                self._db.query(Secret)
                .filter(
                    Secret.public_id == public_id,
                    (Secret.expires_at == None) | (Secret.expires_at > now),  # noqa: E711
                )
                .first()
            )
        except SQLAlchemyError as e:
            raise self._fail("find_live", e) from e

        if secret is None:
            return None
        record = _to_record(secret)
        # Nothing from the row should outlive this call in the identity map
        self._db.expunge(secret)
        return record

    def delete_if_present(self, public_id: str) -> bool:
        """Hard delete. True only for the caller whose DELETE removed the row."""
        try:
            deleted = (
                self._db.query(Secret)
                .filter(Secret.public_id == public_id)
                .delete(synchronize_session=False)
            )
            self._db.commit()
        except SQLAlchemyError as e:
            raise self._fail("delete_if_present", e) from e
        return deleted == 1

    def delete_expired(self, now: datetime) -> int:
        try:
            deleted = (
                self._db.query(Secret)
                .filter(
                    Secret.expires_at != None,  # noqa: E711
                    Secret.expires_at <= now,
                )
                .delete(synchronize_session=False)
            )
            self._db.commit()
        except SQLAlchemyError as e:
            raise self._fail("delete_expired", e) from e
        return deleted


class InMemorySecretStore:
    """SecretStore backed by a dict. Thread-safe; contents vanish with the process."""

    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._rows: dict[str, tuple[int, SecretRecord]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def insert(self, encrypted_content: bytes, expires_at: datetime | None = None) -> SecretRecord:
        record = SecretRecord(
            public_id=str(uuid.uuid4()),
            encrypted_content=encrypted_content,
            created_at=self._clock(),
            expires_at=expires_at,
        )
        with self._lock:
            if record.public_id in self._rows:
                raise StorageError("insert failed: public id collision")
            self._rows[record.public_id] = (next(self._ids), record)
        return record

    def find_live(self, public_id: str) -> SecretRecord | None:
        now = self._clock()
        with self._lock:
            row = self._rows.get(public_id)
        if row is None or not row[1].is_live(now):
            return None
        return row[1]

    def delete_if_present(self, public_id: str) -> bool:
        with self._lock:
            return self._rows.pop(public_id, None) is not None

    def delete_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [
                public_id
                for public_id, (_, record) in self._rows.items()
                if record.expires_at is not None and record.expires_at <= now
            ]
            for public_id in expired:
                del self._rows[public_id]
        return len(expired)
