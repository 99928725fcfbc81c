"""
AES-256-GCM helper tests.
"""

import base64

import pytest

from app.core.encryption import (
    EncryptionError,
    decrypt,
    decrypt_json,
    encrypt,
    encrypt_json,
    generate_encryption_key,
)


KEY = "0f" * 32


def test_round_trip():
    token = encrypt("refresh-token-value", KEY)

    assert token != "refresh-token-value"
    assert decrypt(token, KEY) == "refresh-token-value"


def test_random_iv_per_call():
    assert encrypt("same", KEY) != encrypt("same", KEY)


def test_tampered_ciphertext_is_rejected():
    raw = bytearray(base64.b64decode(encrypt("secret", KEY)))
    raw[-1] ^= 0x01

    with pytest.raises(EncryptionError):
        decrypt(base64.b64encode(bytes(raw)).decode(), KEY)


def test_wrong_key_is_rejected():
    token = encrypt("secret", KEY)

    with pytest.raises(EncryptionError):
        decrypt(token, generate_encryption_key())


def test_short_or_invalid_blobs():
    with pytest.raises(EncryptionError):
        decrypt(base64.b64encode(b"too short").decode(), KEY)
    with pytest.raises(EncryptionError):
        decrypt("not base64!!", KEY)


def test_key_must_be_64_hex_chars():
    with pytest.raises(EncryptionError):
        encrypt("secret", "abcd")
    with pytest.raises(EncryptionError):
        encrypt("secret", "zz" * 32)


def test_development_key_when_unset(monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "ENCRYPTION_KEY", None)

    assert decrypt(encrypt("dev")) == "dev"


def test_json_helpers():
    payload = {"access_token": "a", "expires_in": 3600}

    assert decrypt_json(encrypt_json(payload, KEY), KEY) == payload


def test_generated_key_shape():
    key = generate_encryption_key()

    assert len(key) == 64
    bytes.fromhex(key)
