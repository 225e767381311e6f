"""
Tests for the encrypted SQLite record store.
"""

import sqlite3

import pytest
from cryptography.fernet import Fernet

from storage.crypto import decrypt_records, encrypt_records
from storage.db import SqliteRecordStore
from storage.errors import StoreFault
from storage.records import ACCOUNTS, INSTITUTIONS


@pytest.fixture
def key():
    return Fernet(Fernet.generate_key())


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "registry.db"


def test_seeds_and_round_trip(db_path, key):
    store = SqliteRecordStore(db_path, seeds={ACCOUNTS: [{"email": "seed@x.org"}]}, fernet=key)

    assert store.load(ACCOUNTS) == [{"email": "seed@x.org"}]
    store.save_many({ACCOUNTS: [{"email": "a@x.org"}], INSTITUTIONS: [{"id": "hosp_1"}]})

    reopened = SqliteRecordStore(db_path, fernet=key)
    assert reopened.load(ACCOUNTS) == [{"email": "a@x.org"}]
    assert reopened.load(INSTITUTIONS) == [{"id": "hosp_1"}]


def test_collections_are_encrypted_at_rest(db_path, key):
    store = SqliteRecordStore(db_path, fernet=key)
    store.save(ACCOUNTS, [{"email": "secret-doctor@x.org"}])

    with sqlite3.connect(str(db_path)) as conn:
        blob = conn.execute("SELECT encrypted_blob FROM collections WHERE name = ?", (ACCOUNTS,)).fetchone()[0]

    assert "secret-doctor" not in blob
    assert decrypt_records(blob, key) == [{"email": "secret-doctor@x.org"}]


def test_wrong_key_is_a_store_fault(db_path, key):
    SqliteRecordStore(db_path, fernet=key).save(ACCOUNTS, [{"email": "a@x.org"}])

    other = SqliteRecordStore(db_path, fernet=Fernet(Fernet.generate_key()))
    with pytest.raises(StoreFault) as excinfo:
        other.load(ACCOUNTS)
    assert excinfo.value.collection == ACCOUNTS


def test_non_list_payload_is_a_store_fault(key):
    token = key.encrypt(b'{"email": "a@x.org"}').decode()

    with pytest.raises(StoreFault):
        decrypt_records(token, key)


def test_encrypt_round_trip_preserves_unicode(key):
    records = [{"name": "Dr. Zoë Müller"}]
    assert decrypt_records(encrypt_records(records, key), key) == records
