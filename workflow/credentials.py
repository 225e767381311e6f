"""
workflow/credentials.py

Secret hashing for account records.

Secrets are hashed with ``hashlib.pbkdf2_hmac`` (SHA-256, 260 000
iterations, 16-byte random salt) and stored as ``"<hex_salt>:<hex_hash>"``
in ``Account.password_hash``.  The raw secret is never persisted or logged.
"""

from __future__ import annotations

import hashlib
import hmac
import os

_ITERATIONS = 260_000
_HASH_ALG = "sha256"


def _derive(secret: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac(_HASH_ALG, secret.encode("utf-8"), salt, _ITERATIONS)


def hash_secret(secret: str, salt: bytes | None = None) -> str:
    """Return the storable ``"<hex_salt>:<hex_hash>"`` blob for *secret*."""
    if salt is None:
        salt = os.urandom(16)
    return f"{salt.hex()}:{_derive(secret, salt).hex()}"


def verify_secret(secret: str, blob: str | None) -> bool:
    """
    Verify *secret* against a stored blob.
    Uses ``hmac.compare_digest`` to prevent timing attacks.
    """
    if not blob:
        return False
    try:
        hex_salt, hex_hash = blob.split(":", 1)
        salt = bytes.fromhex(hex_salt)
    except ValueError:
        return False
    return hmac.compare_digest(_derive(secret or "", salt).hex(), hex_hash)
