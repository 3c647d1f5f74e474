"""Summary: Tests for TOTP code generation.

Importance: Codes must match what authenticator apps show for the same secret.
Alternatives: Compare against a phone app by hand.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from totpvault.totp import TotpGenerator

# Base32 of the RFC 6238 SHA1 seed "12345678901234567890".
RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


@pytest.mark.parametrize(
    ("timestamp", "expected"),
    [(59, "287082"), (1111111109, "081804"), (1234567890, "005924")],
)
def test_generate_matches_reference_vectors(timestamp: int, expected: str) -> None:
    generator = TotpGenerator()
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    assert generator.generate(RFC_SECRET, for_time=moment) == expected


def test_generate_current_code_is_six_digits() -> None:
    code = TotpGenerator().generate("JBSWY3DPEHPK3PXP")
    assert len(code) == 6
    assert code.isdigit()


def test_verify_accepts_current_code() -> None:
    generator = TotpGenerator()
    code = generator.generate("JBSWY3DPEHPK3PXP")
    assert generator.verify("JBSWY3DPEHPK3PXP", code)


def test_verify_rejects_wrong_code() -> None:
    generator = TotpGenerator()
    code = generator.generate("JBSWY3DPEHPK3PXP")
    wrong = f"{(int(code) + 500000) % 1000000:06d}"
    assert not generator.verify("JBSWY3DPEHPK3PXP", wrong)


def test_empty_secret_is_rejected() -> None:
    """Summary: Cleared secrets cannot produce codes.

    Importance: Surfaces a readable error instead of a pyotp traceback.
    Alternatives: Return an empty code.
    """

    with pytest.raises(ValueError, match="cleared"):
        TotpGenerator().generate("")


def test_invalid_secret_is_rejected() -> None:
    with pytest.raises(ValueError, match="Invalid TOTP secret"):
        TotpGenerator().generate("not-base32!")


def test_provisioning_uri_carries_issuer() -> None:
    uri = TotpGenerator(issuer="Vault").provisioning_uri("alice@example.com", "JBSWY3DPEHPK3PXP")
    assert uri.startswith("otpauth://totp/")
    assert "secret=JBSWY3DPEHPK3PXP" in uri
    assert "issuer=Vault" in uri
