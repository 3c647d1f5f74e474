"""Summary: Domain model dataclasses for TOTP Vault.

Importance: Defines the records shared by the decoder, services, and storage.
Alternatives: Use Pydantic models or ORM classes directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class AccountRecord:
    """Summary: One credential recovered from a QR code.

    Importance: Decoder output handed to the store, which assigns identity.
    Alternatives: Build TotpEntry objects directly inside the decoder.
    """

    secret: str
    label: str = ""
    issuer: str = ""

    @property
    def display_label(self) -> str:
        """Summary: Compose the label shown for the account.

        Importance: Keeps the issuer visible without a separate column.
        Alternatives: Store issuer and label separately in every layer.
        """

        if self.issuer:
            return f"{self.label} ({self.issuer})"
        return self.label


@dataclass(frozen=True)
class TotpEntry:
    """Summary: A stored TOTP credential with identity and creation time.

    Importance: Core unit for token generation, export, and backups.
    Alternatives: Key credentials by label instead of a generated id.
    """

    id: str
    user_info: str
    secret: str
    created: datetime

    def to_dict(self) -> dict[str, Any]:
        """Summary: Serialize to the JSON shape used by the API and backups.

        Importance: Keeps backups readable by the web client.
        Alternatives: Let each caller build its own dictionary.
        """

        return {
            "id": self.id,
            "userInfo": self.user_info,
            "secret": self.secret,
            "created": self.created.isoformat(),
        }

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> "TotpEntry":
        """Summary: Build a TotpEntry from its JSON shape.

        Importance: Restores entries from remote backups.
        Alternatives: Use a schema library for validation.
        """

        created_raw = str(payload.get("created") or "")
        if created_raw.endswith("Z"):
            created_raw = created_raw[:-1] + "+00:00"
        return TotpEntry(
            id=str(payload["id"]),
            user_info=str(payload.get("userInfo", "")),
            secret=str(payload.get("secret", "")),
            created=datetime.fromisoformat(created_raw),
        )
