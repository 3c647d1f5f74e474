"""Summary: Core application services for TOTP Vault.

Importance: Orchestrates imports, token generation, and gist backups over a store.
Alternatives: Put the logic directly in the HTTP handlers.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from totpvault.errors import NoRecordsFound, RecordError
from totpvault.gist import GistClient
from totpvault.migration import build_migration_uri, parse_qr_data
from totpvault.models import AccountRecord, TotpEntry
from totpvault.storage.base import CredentialStore
from totpvault.token_codec import TokenCodec
from totpvault.totp import TotpGenerator


logger = logging.getLogger(__name__)

BACKUP_FILENAME = "totp_secret_backup.json"
BACKUP_DESCRIPTION = "TOTP Backup"
GITHUB_TOKEN_KEY = "github_token"


class EntryNotFoundError(LookupError):
    """Raised when an entry id is not in the store."""

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"TOTP {entry_id} not found")
        self.entry_id = entry_id


class NotAuthenticatedError(RuntimeError):
    """Raised when a backup operation runs without a GitHub token."""


class BackupPermissionError(PermissionError):
    """Raised when deleting a gist owned by someone else."""


@dataclass(frozen=True)
class ImportResult:
    """Summary: Outcome of importing QR data into the vault.

    Importance: Reports stored entries and skipped records together.
    Alternatives: Return only a count of imported entries.
    """

    entries: list[TotpEntry]
    failures: list[RecordError] = field(default_factory=list)


@dataclass(frozen=True)
class VaultService:
    """Summary: Manages stored TOTP credentials.

    Importance: Single place where decoder output becomes stored entries.
    Alternatives: Let API and CLI layers write to the store directly.
    """

    store: CredentialStore
    generator: TotpGenerator

    def add_entry(self, user_info: str, secret: str) -> TotpEntry:
        """Summary: Store a manually entered credential.

        Importance: Supports accounts that were never exported as QR codes.
        Alternatives: Require every account to come through a QR import.
        """

        secret = _normalize_secret(secret)
        if not user_info or not secret:
            raise ValueError("User info and secret are required")
        entry = _new_entry(user_info, secret)
        self.store.add_entry(entry)
        logger.info("Added TOTP entry %s.", entry.id)
        return entry

    def list_entries(self) -> list[TotpEntry]:
        return self.store.list_entries()

    def get_entry(self, entry_id: str) -> TotpEntry:
        entry = self.store.get_entry(entry_id)
        if entry is None:
            raise EntryNotFoundError(entry_id)
        return entry

    def delete_entry(self, entry_id: str) -> None:
        if not self.store.delete_entry(entry_id):
            raise EntryNotFoundError(entry_id)
        logger.info("Deleted TOTP entry %s.", entry_id)

    def clear_all(self) -> None:
        self.store.clear_entries()
        logger.info("Cleared all TOTP entries.")

    def generate_token(self, entry_id: str) -> str:
        """Summary: Generate the current code for an entry.

        Importance: Main read path of the vault.
        Alternatives: Generate codes client-side from the exported secret.
        """

        return self.generator.generate(self.get_entry(entry_id).secret)

    def verify_token(self, entry_id: str, token: str) -> bool:
        return self.generator.verify(self.get_entry(entry_id).secret, token)

    def export_uri(self, entry_id: str) -> str:
        entry = self.get_entry(entry_id)
        return self.generator.provisioning_uri(entry.user_info, entry.secret)

    def export_migration_uri(self, entry_ids: Iterable[str] | None = None) -> str:
        """Summary: Encode entries into one otpauth-migration URI.

        Importance: Moves many accounts back into an authenticator app at once.
        Alternatives: Export each entry as its own otpauth URI.
        """

        if entry_ids is None:
            entries = self.store.list_entries()
        else:
            entries = [self.get_entry(entry_id) for entry_id in entry_ids]
        if not entries:
            raise ValueError("No TOTP entries to export")
        records = [AccountRecord(secret=entry.secret, label=entry.user_info) for entry in entries]
        return build_migration_uri(records)

    def import_qr_data(self, qr_data: str) -> ImportResult:
        """Summary: Decode QR text and store every usable record.

        Importance: Records without a secret are reported instead of stored,
        since they could never produce a code.
        Alternatives: Store empty secrets and fail later at generation time.
        """

        result = parse_qr_data(qr_data)
        failures = list(result.failures)
        usable: list[AccountRecord] = []
        for index, record in result.indexed_records():
            if record.secret:
                usable.append(record)
            else:
                failures.append(RecordError(index, "missing secret"))
        failures.sort(key=lambda failure: failure.index)
        if not usable:
            raise NoRecordsFound("no valid TOTP entries found", failures)
        entries = [_new_entry(record.display_label, record.secret) for record in usable]
        for entry in entries:
            self.store.add_entry(entry)
        logger.info("Imported %s TOTP entries (%s skipped).", len(entries), len(failures))
        return ImportResult(entries=entries, failures=failures)


@dataclass(frozen=True)
class TokenService:
    """Summary: Stores the GitHub access token with basic obfuscation.

    Importance: Replaces a process-global token with store-backed state.
    Alternatives: Use a secrets manager or the OS keyring.
    """

    store: CredentialStore
    codec: TokenCodec

    def store_github_token(self, access_token: str) -> None:
        self.store.put_setting(GITHUB_TOKEN_KEY, self.codec.encode(access_token))
        logger.info("Stored GitHub access token.")

    def load_github_token(self) -> str | None:
        """Summary: Return the stored GitHub token, if any.

        Importance: A token written under another secret is dropped so the
        user is asked to authenticate again.
        Alternatives: Raise and force manual cleanup of the store.
        """

        encoded = self.store.get_setting(GITHUB_TOKEN_KEY)
        if not encoded:
            return None
        try:
            return self.codec.decode(encoded)
        except ValueError as exc:
            logger.warning("Discarding unreadable GitHub token: %s", exc)
            self.store.delete_setting(GITHUB_TOKEN_KEY)
            return None

    def clear_github_token(self) -> None:
        self.store.delete_setting(GITHUB_TOKEN_KEY)


@dataclass(frozen=True)
class BackupService:
    """Summary: Uploads and restores vault backups through GitHub gists.

    Importance: Gives the in-memory vault a durable off-site copy.
    Alternatives: Export JSON files for the user to store manually.
    """

    store: CredentialStore
    tokens: TokenService
    api_base_url: str

    def is_authenticated(self) -> bool:
        return self.tokens.load_github_token() is not None

    def upload(self, mode: str = "") -> str:
        """Summary: Write all entries to a backup gist and return its id.

        Importance: ``mode="create"`` keeps older backups as separate versions.
        Alternatives: Always overwrite a single backup gist.
        """

        client = self._client()
        content = json.dumps([entry.to_dict() for entry in self.store.list_entries()])
        files = {BACKUP_FILENAME: content}
        existing = None if mode == "create" else _find_backup_gist(client)
        if existing is None:
            gist = client.create_gist(BACKUP_DESCRIPTION, files, public=False)
        else:
            gist = client.update_gist(existing["id"], files)
        logger.info("Uploaded backup to gist %s.", gist["id"])
        return str(gist["id"])

    def restore(self, gist_id: str) -> int:
        """Summary: Merge entries from a backup gist into the store.

        Importance: Entries already present locally are left untouched.
        Alternatives: Replace local entries with the backup contents.
        """

        if not gist_id:
            raise ValueError("Gist ID is required")
        gist = self._client().get_gist(gist_id)
        entries = _parse_backup(_backup_content(gist))
        merged = self.store.merge_entries(entries)
        logger.info("Restored %s entries from gist %s.", merged, gist_id)
        return merged

    def list_versions(self) -> list[dict[str, str]]:
        return [
            {
                "id": gist["id"],
                "description": gist.get("description") or "",
                "created_at": gist.get("created_at") or "",
                "updated_at": gist.get("updated_at") or "",
            }
            for gist in self._client().list_gists()
            if BACKUP_FILENAME in (gist.get("files") or {})
        ]

    def delete_backup(self, gist_id: str) -> None:
        """Summary: Delete a backup gist after ownership and content checks.

        Importance: Prevents deleting gists that are not this user's backups.
        Alternatives: Trust the gist id supplied by the client.
        """

        if not gist_id:
            raise ValueError("Gist ID is required")
        client = self._client()
        gist = client.get_gist(gist_id)
        user = client.get_user()
        owner = (gist.get("owner") or {}).get("login")
        if owner != user.get("login"):
            raise BackupPermissionError("You don't have permission to delete this gist")
        _parse_backup(_backup_content(gist))
        client.delete_gist(gist_id)
        logger.info("Deleted backup gist %s.", gist_id)

    def _client(self) -> GistClient:
        token = self.tokens.load_github_token()
        if not token:
            raise NotAuthenticatedError("Not authenticated")
        return GistClient(token, self.api_base_url)


def _find_backup_gist(client: GistClient) -> dict[str, Any] | None:
    for gist in client.list_gists():
        if BACKUP_FILENAME in (gist.get("files") or {}):
            return gist
    return None


def _backup_content(gist: dict[str, Any]) -> str:
    backup_file = (gist.get("files") or {}).get(BACKUP_FILENAME)
    if not backup_file:
        raise ValueError("This gist is not a TOTP backup")
    if backup_file.get("truncated"):
        raise ValueError("Backup file is too large to read from the gist API")
    return backup_file.get("content") or ""


def _parse_backup(content: str) -> list[TotpEntry]:
    """Summary: Parse backup JSON into entries.

    Importance: Rejects anything that is not a list of entry objects.
    Alternatives: Skip malformed items and restore the rest.
    """

    try:
        payload = json.loads(content)
        if not isinstance(payload, list):
            raise ValueError("backup is not a list")
        return [TotpEntry.from_dict(item) for item in payload]
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise ValueError("Invalid TOTP backup content") from exc


def _normalize_secret(secret: str) -> str:
    return secret.replace(" ", "").upper()


def _new_entry(user_info: str, secret: str) -> TotpEntry:
    return TotpEntry(
        id=str(uuid.uuid4()),
        user_info=user_info,
        secret=_normalize_secret(secret),
        created=datetime.now(timezone.utc),
    )
