"""
Tests for the JSON-file record store: seeding, whole-collection replace,
atomic multi-collection writes, change notifications and fault reporting.
"""

import json

import pytest

from storage.errors import StoreFault
from storage.records import ACCOUNTS, CASES, INSTITUTIONS, JsonRecordStore


@pytest.fixture
def plain_store(tmp_path):
    return JsonRecordStore(tmp_path / "db.json", seeds={ACCOUNTS: [{"email": "seed@x.org"}]})


class TestLoadAndSave:
    def test_first_load_returns_and_persists_seed(self, plain_store):
        assert plain_store.load(ACCOUNTS) == [{"email": "seed@x.org"}]

        on_disk = json.loads(plain_store.path.read_text(encoding="utf-8"))
        assert on_disk[ACCOUNTS] == [{"email": "seed@x.org"}]

    def test_unseeded_collection_starts_empty(self, plain_store):
        assert plain_store.load(CASES) == []

    def test_seed_is_not_reapplied_after_save(self, plain_store):
        plain_store.save(ACCOUNTS, [])
        assert plain_store.load(ACCOUNTS) == []

    def test_load_returns_a_copy(self, plain_store):
        records = plain_store.load(ACCOUNTS)
        records[0]["email"] = "mutated@x.org"
        records.append({"email": "extra@x.org"})

        assert plain_store.load(ACCOUNTS) == [{"email": "seed@x.org"}]

    def test_save_replaces_entire_collection(self, plain_store):
        plain_store.save(ACCOUNTS, [{"email": "a@x.org"}, {"email": "b@x.org"}])
        plain_store.save(ACCOUNTS, [{"email": "c@x.org"}])

        assert plain_store.load(ACCOUNTS) == [{"email": "c@x.org"}]

    def test_save_many_writes_every_collection(self, plain_store):
        plain_store.save_many({
            ACCOUNTS: [{"email": "a@x.org"}],
            INSTITUTIONS: [{"id": "hosp_1"}],
        })

        assert plain_store.load(ACCOUNTS) == [{"email": "a@x.org"}]
        assert plain_store.load(INSTITUTIONS) == [{"id": "hosp_1"}]

    def test_data_survives_a_new_store_instance(self, plain_store):
        plain_store.save(CASES, [{"id": "CASE-1"}])

        reopened = JsonRecordStore(plain_store.path)
        assert reopened.load(CASES) == [{"id": "CASE-1"}]


class TestLastWriterWins:
    def test_concurrent_load_modify_save_loses_first_update(self, plain_store):
        first = plain_store.load(ACCOUNTS)
        second = plain_store.load(ACCOUNTS)

        plain_store.save(ACCOUNTS, first + [{"email": "first@x.org"}])
        plain_store.save(ACCOUNTS, second + [{"email": "second@x.org"}])

        emails = [r["email"] for r in plain_store.load(ACCOUNTS)]
        assert emails == ["seed@x.org", "second@x.org"]


class TestFaults:
    def test_corrupted_document_raises_store_fault(self, plain_store):
        plain_store.path.write_text("{not json", encoding="utf-8")

        with pytest.raises(StoreFault):
            plain_store.load(ACCOUNTS)

    def test_collection_that_is_not_a_list_raises_store_fault(self, plain_store):
        plain_store.path.write_text(json.dumps({ACCOUNTS: {"email": "x"}}), encoding="utf-8")

        with pytest.raises(StoreFault) as excinfo:
            plain_store.load(ACCOUNTS)
        assert excinfo.value.collection == ACCOUNTS


class TestChangeNotifications:
    def test_subscribers_receive_events(self, plain_store):
        seen = []
        plain_store.subscribe(seen.append)

        plain_store.notify("usersUpdated")

        assert seen == ["usersUpdated"]

    def test_unsubscribe_stops_delivery(self, plain_store):
        seen = []
        unsubscribe = plain_store.subscribe(seen.append)
        unsubscribe()

        plain_store.notify("usersUpdated")

        assert seen == []

    def test_failing_listener_does_not_break_others(self, plain_store):
        seen = []

        def broken(event):
            raise RuntimeError("dashboard crashed")

        plain_store.subscribe(broken)
        plain_store.subscribe(seen.append)

        plain_store.notify("diaryUpdated")

        assert seen == ["diaryUpdated"]
