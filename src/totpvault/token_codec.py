"""Summary: Obfuscation for the GitHub access token kept in the store.

Importance: Avoids leaving a gist-scoped token in plain text in SQLite.
Alternatives: Use the OS keyring or a real encryption library.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import secrets

NONCE_BYTES = 12
TAG_BYTES = 16


class TokenCodec:
    """Summary: Reversible token encoder keyed by a deployment secret.

    Importance: Each encoding uses a fresh nonce and carries an integrity tag.
    Alternatives: Store tokens only in process memory.
    """

    def __init__(self, secret: str) -> None:
        self._key = hashlib.sha256(secret.encode("utf-8")).digest()

    def encode(self, plaintext: str) -> str:
        """Summary: Encode a token into a url-safe string.

        Importance: Produces different output for the same token each time.
        Alternatives: Deterministic encoding without a nonce.
        """

        nonce = secrets.token_bytes(NONCE_BYTES)
        raw = plaintext.encode("utf-8")
        body = bytes(b ^ k for b, k in zip(raw, _keystream(self._key, nonce, len(raw))))
        tag = hmac.new(self._key, nonce + body, hashlib.sha256).digest()[:TAG_BYTES]
        return base64.urlsafe_b64encode(nonce + body + tag).decode("ascii")

    def decode(self, payload: str) -> str:
        """Summary: Decode a string produced by ``encode``.

        Importance: Rejects values written under a different secret.
        Alternatives: Return garbage and let the GitHub API reject it.
        """

        try:
            blob = base64.urlsafe_b64decode(payload.encode("ascii"))
        except (binascii.Error, ValueError) as exc:
            raise ValueError("Stored token is not valid base64") from exc
        if len(blob) < NONCE_BYTES + TAG_BYTES:
            raise ValueError("Stored token is too short")
        nonce, body, tag = blob[:NONCE_BYTES], blob[NONCE_BYTES:-TAG_BYTES], blob[-TAG_BYTES:]
        expected = hmac.new(self._key, nonce + body, hashlib.sha256).digest()[:TAG_BYTES]
        if not hmac.compare_digest(tag, expected):
            raise ValueError("Stored token failed integrity check")
        raw = bytes(b ^ k for b, k in zip(body, _keystream(self._key, nonce, len(body))))
        return raw.decode("utf-8")


def _keystream(key: bytes, nonce: bytes, length: int) -> bytes:
    output = b""
    counter = 0
    while len(output) < length:
        output += hashlib.sha256(key + nonce + counter.to_bytes(4, "big")).digest()
        counter += 1
    return output[:length]
