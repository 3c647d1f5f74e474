"""Summary: TOTP code generation and validation.

Importance: Wraps pyotp so services never touch HMAC or time-step details.
Alternatives: Implement RFC 6238 directly with hmac and struct.
"""

from __future__ import annotations

import binascii
from dataclasses import dataclass
from datetime import datetime

import pyotp


@dataclass(frozen=True)
class TotpGenerator:
    """Summary: Generates and checks codes for base32 secrets.

    Importance: Keeps issuer naming and validation window in one place.
    Alternatives: Construct pyotp.TOTP objects inline in each service.
    """

    issuer: str = "TOTP Vault"
    valid_window: int = 1

    def generate(self, secret: str, for_time: datetime | None = None) -> str:
        """Summary: Return the current (or given-time) code for a secret.

        Importance: Backs the token endpoint and CLI code command.
        Alternatives: Cache codes per 30-second step.
        """

        totp = self._totp(secret)
        try:
            if for_time is None:
                return totp.now()
            return totp.at(for_time)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"Invalid TOTP secret: {exc}") from exc

    def verify(self, secret: str, token: str) -> bool:
        totp = self._totp(secret)
        try:
            return totp.verify(token.strip(), valid_window=self.valid_window)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"Invalid TOTP secret: {exc}") from exc

    def provisioning_uri(self, user_info: str, secret: str) -> str:
        """Summary: Build an otpauth:// URI for re-enrolling an account.

        Importance: Lets users move a single credential to another app.
        Alternatives: Format the URI string manually.
        """

        return self._totp(secret).provisioning_uri(name=user_info, issuer_name=self.issuer)

    def _totp(self, secret: str) -> pyotp.TOTP:
        if not secret:
            raise ValueError("Secret has been cleared; cannot generate a token")
        return pyotp.TOTP(secret)
