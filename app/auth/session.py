# app/auth/session.py
"""
Farcaster session cookie: AES-256-CBC over a JSON blob, stored as
"<iv hex>:<ciphertext hex>".
"""
from __future__ import annotations

import json
import logging
import os
import time
from typing import Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from app.core.config import settings

logger = logging.getLogger(__name__)


class SessionConfigError(Exception):
    pass


def _secret_key() -> bytes:
    secret = settings.FARCASTER_CLIENT_SECRET[:32]
    if not secret:
        raise SessionConfigError("FARCASTER_CLIENT_SECRET not configured")
    return secret.ljust(32, "0").encode("utf-8")[:32]


def encrypt_session(data: dict) -> str:
    key = _secret_key()
    iv = os.urandom(16)
    payload = dict(data, timestamp=int(time.time() * 1000))

    padder = padding.PKCS7(128).padder()
    padded = padder.update(json.dumps(payload).encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    encrypted = encryptor.update(padded) + encryptor.finalize()
    return f"{iv.hex()}:{encrypted.hex()}"


def decrypt_session(cookie: Optional[str]) -> Optional[dict]:
    """Return the session dict, or None when missing, unreadable or older than 7 days."""
    if not cookie:
        return None

    iv_hex, _, encrypted_hex = cookie.partition(":")
    if not iv_hex or not encrypted_hex:
        return None

    try:
        key = _secret_key()
        iv = bytes.fromhex(iv_hex)
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(bytes.fromhex(encrypted_hex)) + decryptor.finalize()
        unpadder = padding.PKCS7(128).unpadder()
        data = json.loads((unpadder.update(padded) + unpadder.finalize()).decode("utf-8"))
    except SessionConfigError:
        logger.error("❌ FARCASTER_CLIENT_SECRET not configured - cannot decrypt session")
        return None
    except ValueError as e:
        logger.warning("Failed to decrypt session cookie: %s", e)
        return None

    age_ms = int(time.time() * 1000) - int(data.get("timestamp") or 0)
    if age_ms > settings.SESSION_MAX_AGE_SECONDS * 1000:
        return None
    return data
