"""Summary: Storage interface for TOTP credentials.

Importance: Lets services work against memory or SQLite backends alike.
Alternatives: Couple services to a single concrete store class.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from totpvault.models import TotpEntry


class CredentialStore(ABC):
    """Summary: Keyed collection of TOTP entries plus small settings.

    Importance: The only shared mutable state in the application.
    Alternatives: Keep a module-level dict with a global lock.
    """

    def initialize(self) -> None:
        """Prepare the backend; a no-op unless the store needs setup."""

    @abstractmethod
    def add_entry(self, entry: TotpEntry) -> None:
        """Insert or replace an entry by id."""

    @abstractmethod
    def get_entry(self, entry_id: str) -> TotpEntry | None:
        """Return the entry with ``entry_id`` or None."""

    @abstractmethod
    def list_entries(self) -> list[TotpEntry]:
        """Return all entries in insertion order."""

    @abstractmethod
    def delete_entry(self, entry_id: str) -> bool:
        """Remove an entry and report whether it existed."""

    @abstractmethod
    def merge_entries(self, entries: Iterable[TotpEntry]) -> int:
        """Summary: Add entries whose id is not already stored.

        Importance: Restoring a backup must not overwrite local edits.
        Alternatives: Replace the whole collection on restore.
        """

    @abstractmethod
    def clear_entries(self) -> None:
        """Remove every entry, leaving settings intact."""

    @abstractmethod
    def put_setting(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def get_setting(self, key: str) -> str | None:
        pass

    @abstractmethod
    def delete_setting(self, key: str) -> None:
        pass
