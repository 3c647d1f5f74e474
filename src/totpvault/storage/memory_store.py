"""Summary: In-memory credential store guarded by a single lock.

Importance: Default backend for the HTTP server and for tests.
Alternatives: Use SQLite with an in-memory database.
"""

from __future__ import annotations

import threading
from typing import Iterable

from totpvault.models import TotpEntry
from totpvault.storage.base import CredentialStore


class MemoryCredentialStore(CredentialStore):
    """Summary: Dict-backed store; every access holds the same lock.

    Importance: Safe to share between request-handling threads.
    Alternatives: Use a read-write lock for heavier read traffic.
    """

    def __init__(self) -> None:
        self._entries: dict[str, TotpEntry] = {}
        self._settings: dict[str, str] = {}
        self._lock = threading.Lock()

    def add_entry(self, entry: TotpEntry) -> None:
        with self._lock:
            self._entries[entry.id] = entry

    def get_entry(self, entry_id: str) -> TotpEntry | None:
        with self._lock:
            return self._entries.get(entry_id)

    def list_entries(self) -> list[TotpEntry]:
        with self._lock:
            return list(self._entries.values())

    def delete_entry(self, entry_id: str) -> bool:
        with self._lock:
            return self._entries.pop(entry_id, None) is not None

    def merge_entries(self, entries: Iterable[TotpEntry]) -> int:
        added = 0
        with self._lock:
            for entry in entries:
                if entry.id in self._entries:
                    continue
                self._entries[entry.id] = entry
                added += 1
        return added

    def clear_entries(self) -> None:
        with self._lock:
            self._entries = {}

    def put_setting(self, key: str, value: str) -> None:
        with self._lock:
            self._settings[key] = value

    def get_setting(self, key: str) -> str | None:
        with self._lock:
            return self._settings.get(key)

    def delete_setting(self, key: str) -> None:
        with self._lock:
            self._settings.pop(key, None)
