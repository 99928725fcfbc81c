"""
AES-256-GCM helpers for storing short secrets (OAuth tokens, API keys).

Ciphertexts are base64 of ``IV || ciphertext || tag`` with a 96-bit IV and
a 128-bit authentication tag.
"""

import base64
import binascii
import json
import logging
import os
import secrets
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from app.core.config import settings


logger = logging.getLogger(__name__)

IV_LENGTH = 12
AUTH_TAG_LENGTH = 16
KEY_LENGTH = 32

_DEV_PASSPHRASE = b"development-key-not-for-production"
_DEV_SALT = b"salt"


class EncryptionError(Exception):
    """Raised when a key is malformed or a ciphertext cannot be decrypted."""


def _derive_development_key() -> bytes:
    kdf = Scrypt(salt=_DEV_SALT, length=KEY_LENGTH, n=2**14, r=8, p=1)
    return kdf.derive(_DEV_PASSPHRASE)


def get_encryption_key(key_hex: str | None = None) -> bytes:
    """
    Resolve the 32-byte key.

    Uses ``key_hex`` when given, then the ``ENCRYPTION_KEY`` setting. Without
    either a deterministic development key is derived.

    Raises:
        EncryptionError: If the configured key is not 64 hex characters
    """
    key = key_hex if key_hex is not None else settings.ENCRYPTION_KEY

    if not key:
        logger.warning("ENCRYPTION_KEY not set, using development key")
        return _derive_development_key()

    if len(key) != KEY_LENGTH * 2:
        raise EncryptionError("ENCRYPTION_KEY must be 64 hex characters (32 bytes)")

    try:
        return bytes.fromhex(key)
    except ValueError as exc:
        raise EncryptionError("ENCRYPTION_KEY must be hexadecimal") from exc


def encrypt(plaintext: str, key_hex: str | None = None) -> str:
    """
    Encrypt a string.

    Args:
        plaintext: Text to protect
        key_hex: Optional key override (hex)

    Returns:
        Base64 blob holding IV, ciphertext and auth tag
    """
    key = get_encryption_key(key_hex)
    iv = os.urandom(IV_LENGTH)
    # AESGCM appends the 16-byte tag to the ciphertext
    sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    return base64.b64encode(iv + sealed).decode("ascii")


def decrypt(token: str, key_hex: str | None = None) -> str:
    """
    Decrypt a blob produced by :func:`encrypt`.

    Raises:
        EncryptionError: If the blob is malformed, tampered with, or the key is wrong
    """
    key = get_encryption_key(key_hex)

    try:
        combined = base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise EncryptionError("Ciphertext is not valid base64") from exc

    if len(combined) < IV_LENGTH + AUTH_TAG_LENGTH:
        raise EncryptionError("Ciphertext is too short")

    iv, sealed = combined[:IV_LENGTH], combined[IV_LENGTH:]
    try:
        plaintext = AESGCM(key).decrypt(iv, sealed, None)
    except InvalidTag as exc:
        raise EncryptionError("Decryption failed (tampered data or wrong key)") from exc

    return plaintext.decode("utf-8")


def generate_encryption_key() -> str:
    """Return a new random key as 64 hex characters."""
    return secrets.token_hex(KEY_LENGTH)


def encrypt_json(data: Any, key_hex: str | None = None) -> str:
    """Serialize ``data`` to JSON and encrypt it."""
    return encrypt(json.dumps(data), key_hex)


def decrypt_json(token: str, key_hex: str | None = None) -> Any:
    """Decrypt and parse a blob produced by :func:`encrypt_json`."""
    return json.loads(decrypt(token, key_hex))
