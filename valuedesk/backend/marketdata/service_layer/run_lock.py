# marketdata/service_layer/run_lock.py
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from ..domain.errors import ConcurrencyViolation

IMPORT_RUN = "import"
SYNC_RUN = "sync"


def run_key(kind: str, config_id: str) -> str:
    # import and sync configs live in separate tables and may share an id
    return f"{kind}:{config_id}"


class RunLock:
    """
    Keyed single-flight marker: at most one run per key at a time. Keys
    come from run_key(), so an import config and a sync config never
    block each other.

    Acquisition is non-blocking. A second acquire for a held key raises
    ConcurrencyViolation immediately, before the caller does any work.
    The set is guarded by a threading lock so the API process and the
    scheduler thread can share one instance.
    """

    def __init__(self) -> None:
        self._held: set[str] = set()
        self._guard = threading.Lock()

    def acquire(self, key: str) -> None:
        with self._guard:
            if key in self._held:
                raise ConcurrencyViolation(key)
            self._held.add(key)

    def release(self, key: str) -> None:
        with self._guard:
            self._held.discard(key)

    def is_held(self, key: str) -> bool:
        with self._guard:
            return key in self._held

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        self.acquire(key)
        try:
            yield
        finally:
            self.release(key)
