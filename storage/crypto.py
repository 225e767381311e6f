"""
storage/crypto.py

Fernet-based at-rest encryption for Record Store collections.

Keys
----
``Settings.data_key`` wins when set; otherwise the process-wide key comes from
APP_DATA_KEY (the output of ``Fernet.generate_key()``).

With neither configured, a throwaway key is generated once per process and
a warning is logged: an encrypted SQLite store written with it cannot be
reopened after a restart.

Public API
----------
get_fernet(raw_key: str | None = None) -> Fernet
encrypt_records(records: list[dict], fernet: Fernet | None = None) -> str
decrypt_records(token: str, fernet: Fernet | None = None) -> list[dict]
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from storage.errors import StoreFault

logger = logging.getLogger(__name__)

_ENV_KEY_NAME = "APP_DATA_KEY"


@lru_cache(maxsize=1)
def _default_fernet() -> Fernet:
    raw_key = os.environ.get(_ENV_KEY_NAME)

    if raw_key:
        logger.debug("Fernet key loaded from environment variable '%s'.", _ENV_KEY_NAME)
        return Fernet(raw_key.encode())

    logger.warning(
        "APP_DATA_KEY environment variable is not set. "
        "A temporary in-memory Fernet key has been generated. "
        "Encrypted collections will NOT be recoverable after process restart. "
        "Set APP_DATA_KEY to a stable key for persistent storage."
    )
    return Fernet(Fernet.generate_key())


def get_fernet(raw_key: str | None = None) -> Fernet:
    """
    Return a Fernet for *raw_key*, or the cached process-wide instance.

    Raises:
        ValueError: If *raw_key* is not a valid Fernet key.
    """
    if raw_key:
        return Fernet(raw_key.encode())
    return _default_fernet()


def encrypt_records(records: list[dict], fernet: Fernet | None = None) -> str:
    """
    Serialise a collection to JSON, encrypt it and return the token string.

    Raises:
        TypeError: If *records* contains non-serialisable types.
    """
    plaintext = json.dumps(records, ensure_ascii=False).encode("utf-8")
    return (fernet or _default_fernet()).encrypt(plaintext).decode("utf-8")


def decrypt_records(token: str, fernet: Fernet | None = None) -> list[dict]:
    """
    Decrypt a token produced by :func:`encrypt_records`.

    Raises:
        StoreFault: Wrong key, tampered token or a payload that is not a JSON list.
    """
    try:
        plaintext = (fernet or _default_fernet()).decrypt(token.encode("utf-8"))
    except InvalidToken as exc:
        logger.error("Fernet decryption failed: wrong key or corrupted collection.")
        raise StoreFault("collection could not be decrypted") from exc

    try:
        records = json.loads(plaintext.decode("utf-8"))
    except ValueError as exc:
        raise StoreFault("decrypted collection is not valid JSON") from exc
    if not isinstance(records, list):
        raise StoreFault("decrypted collection is not a list of records")
    return records
