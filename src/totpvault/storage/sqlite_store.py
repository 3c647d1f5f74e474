"""Summary: SQLite storage implementation for TOTP Vault.

Importance: Keeps credentials across CLI invocations without a server.
Alternatives: Use an ORM or an encrypted key-value file.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator

from totpvault.models import TotpEntry
from totpvault.storage.base import CredentialStore


class SqliteCredentialStore(CredentialStore):
    """Summary: SQLite-backed credential store.

    Importance: Enables local-first persistence with no extra dependencies.
    Alternatives: Serialize the memory store to JSON on every change.
    """

    def __init__(self, db_path: str) -> None:
        """Summary: Initialize the storage with a database path.

        Importance: Allows configurable database location per environment.
        Alternatives: Hardcode a default path in the class.
        """

        self._db_path = Path(db_path)

    def initialize(self) -> None:
        """Summary: Create tables if they do not exist.

        Importance: Ensures the database is ready before the first import.
        Alternatives: Run migrations using a dedicated migration tool.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS entries (
                    id TEXT PRIMARY KEY,
                    user_info TEXT NOT NULL,
                    secret TEXT NOT NULL,
                    created TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            connection.commit()

    def add_entry(self, entry: TotpEntry) -> None:
        with self._connection() as connection:
            connection.execute(
                """
                INSERT INTO entries (id, user_info, secret, created)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    user_info = excluded.user_info,
                    secret = excluded.secret,
                    created = excluded.created
                """,
                _entry_row(entry),
            )
            connection.commit()

    def get_entry(self, entry_id: str) -> TotpEntry | None:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                "SELECT id, user_info, secret, created FROM entries WHERE id = ?",
                (entry_id,),
            )
            row = cursor.fetchone()
        return _entry_from_row(row) if row else None

    def list_entries(self) -> list[TotpEntry]:
        """Summary: Retrieve all entries in insertion order.

        Importance: Supplies the API listing and backup uploads.
        Alternatives: Order by label for display.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute("SELECT id, user_info, secret, created FROM entries ORDER BY rowid")
            rows = cursor.fetchall()
        return [_entry_from_row(row) for row in rows]

    def delete_entry(self, entry_id: str) -> bool:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute("DELETE FROM entries WHERE id = ?", (entry_id,))
            connection.commit()
            return cursor.rowcount > 0

    def merge_entries(self, entries: Iterable[TotpEntry]) -> int:
        """Summary: Insert entries whose id is not already present.

        Importance: Backs backup restores without clobbering local entries.
        Alternatives: Compare timestamps and keep the newest copy.
        """

        added = 0
        with self._connection() as connection:
            cursor = connection.cursor()
            for entry in entries:
                cursor.execute(
                    """
                    INSERT OR IGNORE INTO entries (id, user_info, secret, created)
                    VALUES (?, ?, ?, ?)
                    """,
                    _entry_row(entry),
                )
                added += cursor.rowcount
            connection.commit()
        return added

    def clear_entries(self) -> None:
        with self._connection() as connection:
            connection.execute("DELETE FROM entries")
            connection.commit()

    def put_setting(self, key: str, value: str) -> None:
        with self._connection() as connection:
            connection.execute(
                """
                INSERT INTO settings (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
            connection.commit()

    def get_setting(self, key: str) -> str | None:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute("SELECT value FROM settings WHERE key = ?", (key,))
            row = cursor.fetchone()
        return str(row[0]) if row else None

    def delete_setting(self, key: str) -> None:
        with self._connection() as connection:
            connection.execute("DELETE FROM settings WHERE key = ?", (key,))
            connection.commit()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Summary: Context manager for SQLite connections.

        Importance: Ensures connections are closed cleanly after use.
        Alternatives: Keep a single long-lived connection.
        """

        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
        finally:
            connection.close()


def _entry_row(entry: TotpEntry) -> tuple[str, str, str, str]:
    return (entry.id, entry.user_info, entry.secret, entry.created.isoformat())


def _entry_from_row(row: tuple[str, str, str, str]) -> TotpEntry:
    return TotpEntry(
        id=row[0],
        user_info=row[1],
        secret=row[2],
        created=datetime.fromisoformat(row[3]),
    )
