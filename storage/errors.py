"""Store-layer faults. These are fatal: callers must not retry."""

from __future__ import annotations


class StoreFault(RuntimeError):
    """Persisted data could not be read or written (corruption, bad key, I/O)."""

    def __init__(self, message: str, collection: str | None = None):
        super().__init__(message)
        self.collection = collection
