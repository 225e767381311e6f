"""
storage/records.py

Record Store port and its JSON-file implementation.

- One logical collection per key (accounts, institutions, cases, ledgers)
- ``load`` seeds a collection with its default value on first access
- ``save`` replaces a whole collection; ``save_many`` replaces several in one
  atomic write so paired records never diverge on disk
- ``subscribe`` / ``notify`` give dashboards an explicit change feed

There is no lock spanning a caller's load -> modify -> save.  Two writers that
load the same collection and both save it get last-writer-wins.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Callable, Iterable, Mapping

from storage.errors import StoreFault

logger = logging.getLogger(__name__)

ACCOUNTS = "accounts"
INSTITUTIONS = "institutions"
CASES = "cases"
AUTH_EVENTS = "auth_events"
DECISION_DIARY = "decision_diary"
ACTIVITY_LOG = "activity_log"

COLLECTIONS = (ACCOUNTS, INSTITUTIONS, CASES, AUTH_EVENTS, DECISION_DIARY, ACTIVITY_LOG)

DEFAULT_DB_PATH = Path("data") / "genosym_registry.json"

Listener = Callable[[str], None]


def _atomic_write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    tmp.replace(path)


class RecordStore:
    """
    Base class for every store backend.

    Subclasses implement ``_read(collection)`` (return ``None`` when the
    collection has never been written) and ``_write(collections)`` (persist all
    given collections in one atomic step).
    """

    def __init__(self, seeds: Mapping[str, Iterable[dict]] | None = None):
        self._seeds = {name: [dict(r) for r in records] for name, records in (seeds or {}).items()}
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []

    # -------------------------
    # Backend hooks
    # -------------------------
    def _read(self, collection: str) -> list[dict] | None:
        raise NotImplementedError

    def _write(self, collections: dict[str, list[dict]]) -> None:
        raise NotImplementedError

    # -------------------------
    # Public contract
    # -------------------------
    def load(self, collection: str) -> list[dict]:
        with self._lock:
            records = self._read(collection)
            if records is None:
                records = copy.deepcopy(self._seeds.get(collection, []))
                self._write({collection: records})
                logger.debug("Seeded collection '%s' with %d records", collection, len(records))
        return copy.deepcopy(records)

    def save(self, collection: str, records: Iterable[dict]) -> None:
        self.save_many({collection: records})

    def save_many(self, collections: Mapping[str, Iterable[dict]]) -> None:
        payload = {name: copy.deepcopy(list(records)) for name, records in collections.items()}
        with self._lock:
            self._write(payload)
        logger.debug("Saved collections %s", ", ".join(sorted(payload)))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for change events; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def notify(self, event_name: str) -> None:
        """Broadcast *event_name* to same-process listeners, at most once each."""
        for listener in list(self._listeners):
            try:
                listener(event_name)
            except Exception:
                logger.exception("Change listener failed for event '%s'", event_name)


class JsonRecordStore(RecordStore):
    """
    Tiny JSON storage backend for demo/MVP.

    - Uses ./data/genosym_registry.json by default
    - Atomic writes (tmp file + replace) so a reader never sees a partial save
    """

    def __init__(self, path: Path | str = DEFAULT_DB_PATH, seeds: Mapping[str, Iterable[dict]] | None = None):
        super().__init__(seeds)
        self.path = Path(path)

    def _read_document(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Record store document %s is unreadable: %s", self.path, exc)
            raise StoreFault(f"cannot read {self.path}") from exc
        if not isinstance(document, dict):
            raise StoreFault(f"{self.path} does not hold a collection map")
        return document

    def _read(self, collection: str) -> list[dict] | None:
        records = self._read_document().get(collection)
        if records is not None and not isinstance(records, list):
            raise StoreFault(f"collection '{collection}' is corrupted", collection=collection)
        return records

    def _write(self, collections: dict[str, list[dict]]) -> None:
        document = self._read_document()
        document.update(collections)
        try:
            _atomic_write_json(self.path, document)
        except OSError as exc:
            logger.error("Failed to write record store %s: %s", self.path, exc)
            raise StoreFault(f"cannot write {self.path}") from exc
