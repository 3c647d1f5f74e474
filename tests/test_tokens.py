"""Summary: Tests for the token codec.

Importance: Ensures the stored GitHub token can be recovered and not forged.
Alternatives: Store the token in plain text.
"""

from __future__ import annotations

import pytest

from totpvault.token_codec import TokenCodec


def test_token_codec_roundtrip() -> None:
    """Summary: Verify encoding and decoding restores plaintext.

    Importance: Ensures token storage can be reversed for use.
    Alternatives: Store tokens in a vault without encoding.
    """

    codec = TokenCodec("secret")
    encoded = codec.encode("gho_token")
    assert "gho_token" not in encoded
    assert codec.decode(encoded) == "gho_token"


def test_token_codec_uses_fresh_nonce() -> None:
    codec = TokenCodec("secret")
    assert codec.encode("gho_token") != codec.encode("gho_token")


def test_token_codec_rejects_other_secret() -> None:
    encoded = TokenCodec("secret").encode("gho_token")
    with pytest.raises(ValueError, match="integrity"):
        TokenCodec("other").decode(encoded)


def test_token_codec_rejects_garbage() -> None:
    codec = TokenCodec("secret")
    with pytest.raises(ValueError):
        codec.decode("AAAA")
    with pytest.raises(ValueError):
        codec.decode("not base64 at all!")
