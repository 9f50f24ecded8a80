"""
At-rest encryption for secret content.

AES-256-GCM with a random 96-bit nonce per message.
Payload format: [nonce 12B][ciphertext + GCM tag 16B]

Never log plaintext, payloads or key material.
"""

from __future__ import annotations

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from burnafter.config import Settings
from burnafter.exceptions import CipherConfigError, CryptoError

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16
KEY_LENGTH = 32  # AES-256


def generate_key() -> str:
    """Return a fresh base64-encoded key suitable for ENCRYPTION_KEY."""
    return base64.b64encode(AESGCM.generate_key(bit_length=KEY_LENGTH * 8)).decode()


def decode_key(encoded: str) -> bytes:
    """Decode a base64 key and check it is exactly 32 bytes."""
    if not encoded:
        raise CipherConfigError(
            "ENCRYPTION_KEY is required. Generate one with: "
            'python -c "from burnafter.services.crypto_utils import generate_key; print(generate_key())"'
        )
    try:
        key = base64.b64decode(encoded, validate=True)
    except binascii.Error as e:
        raise CipherConfigError("ENCRYPTION_KEY is not valid base64") from e
    if len(key) != KEY_LENGTH:
        raise CipherConfigError(
            f"ENCRYPTION_KEY must decode to exactly {KEY_LENGTH} bytes, got {len(key)}"
        )
    return key


class SecretCipher:
    """Authenticated symmetric encryption bound to one process-wide key."""

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_LENGTH:
            raise CipherConfigError(f"Key must be exactly {KEY_LENGTH} bytes, got {len(key)}")
        self._aead = AESGCM(key)

    @staticmethod
    def from_settings(settings: Settings) -> "SecretCipher":
        return SecretCipher(decode_key(settings.encryption_key))

    def encrypt(self, plaintext: str) -> bytes:
        nonce = os.urandom(NONCE_SIZE)
        return nonce + self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)

    def decrypt(self, payload: bytes) -> str:
        """
        Decrypt a payload produced by encrypt().

        Raises CryptoError on short, tampered or foreign-key payloads; never
        returns partial plaintext.
        """
        _min = NONCE_SIZE + TAG_SIZE
        if len(payload) < _min:
            raise CryptoError(f"Payload too short: {len(payload)} bytes (minimum {_min})")
        nonce = payload[:NONCE_SIZE]
        try:
            plaintext = self._aead.decrypt(nonce, payload[NONCE_SIZE:], None)
        except InvalidTag as e:
            raise CryptoError("Authentication tag mismatch (corrupted payload or wrong key)") from e
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CryptoError("Decrypted payload is not valid UTF-8") from e
