"""Summary: Decode and encode authenticator QR payloads.

Importance: Turns otpauth and otpauth-migration text into account records and
keeps one corrupt record from sinking a whole import.
Alternatives: Depend on generated protobuf classes for the migration schema.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import urllib.parse
from dataclasses import dataclass, field
from typing import Iterable

from totpvault.errors import (
    EnvelopeError,
    InvalidOtpauthUri,
    NoRecordsFound,
    PayloadError,
    RecordError,
    WireFormatError,
)
from totpvault.models import AccountRecord
from totpvault.wire import WireType, encode_bytes_field, encode_varint_field, iter_fields


logger = logging.getLogger(__name__)

MIGRATION_PREFIX = "otpauth-migration://offline?data="

# Top-level fields of the migration payload.
PAYLOAD_ACCOUNT = 1
PAYLOAD_VERSION = 2
PAYLOAD_BATCH_SIZE = 3
PAYLOAD_BATCH_INDEX = 4

# Fields of one embedded account.
ACCOUNT_SECRET = 1
ACCOUNT_NAME = 2
ACCOUNT_ISSUER = 3
ACCOUNT_ALGORITHM = 4
ACCOUNT_DIGITS = 5
ACCOUNT_TYPE = 6

ALGORITHM_SHA1 = 1
DIGITS_SIX = 1
OTP_TYPE_TOTP = 2
PAYLOAD_FORMAT_VERSION = 1

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True)
class ExtractionResult:
    """Summary: Records recovered from a payload plus the ones that failed.

    Importance: Reports skipped records to the caller instead of only logging them.
    Alternatives: Raise on the first corrupt record.
    """

    records: list[AccountRecord]
    failures: list[RecordError] = field(default_factory=list)
    positions: list[int] = field(default_factory=list)

    def indexed_records(self) -> list[tuple[int, AccountRecord]]:
        """Pair each record with its position among the payload's accounts."""

        positions = self.positions or list(range(len(self.records)))
        return list(zip(positions, self.records))


def parse_qr_data(text: str) -> ExtractionResult:
    """Summary: Decode QR or clipboard text into account records.

    Importance: Single entry point for both otpauth URI forms.
    Alternatives: Make callers pick the decoder by inspecting the prefix.
    """

    text = text.strip()
    if text.startswith(MIGRATION_PREFIX):
        return extract_records(decode_envelope(text))
    return ExtractionResult(records=[parse_otpauth_uri(text)])


def decode_envelope(text: str) -> bytes:
    """Summary: Unwrap the URL-encoded base64 payload of a migration URI.

    Importance: Rejects malformed wrappers before any byte walking starts.
    Alternatives: Use urllib.parse.parse_qs and accept its lenient decoding.
    """

    data = text[len(MIGRATION_PREFIX):] if text.startswith(MIGRATION_PREFIX) else text
    if _BAD_ESCAPE.search(data):
        raise EnvelopeError("failed to URL decode data: malformed percent escape")
    try:
        unquoted = urllib.parse.unquote(data, errors="strict")
    except UnicodeDecodeError as exc:
        raise EnvelopeError(f"failed to URL decode data: {exc}") from exc
    try:
        return base64.b64decode(unquoted, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise EnvelopeError(f"failed to decode base64 data: {exc}") from exc


def extract_records(payload: bytes) -> ExtractionResult:
    """Summary: Walk the top-level payload and parse every embedded account.

    Importance: Separates fatal structure errors from per-record failures.
    Alternatives: Stop at the first record that fails to parse.
    """

    records: list[AccountRecord] = []
    positions: list[int] = []
    failures: list[RecordError] = []
    try:
        for item in iter_fields(payload):
            if item.field_number != PAYLOAD_ACCOUNT or item.wire_type != WireType.LENGTH_DELIMITED:
                continue
            index = len(records) + len(failures)
            try:
                records.append(parse_account(item.value))
                positions.append(index)
            except WireFormatError as exc:
                failure = RecordError(index, exc.message)
                failures.append(failure)
                logger.warning("Skipped migration record %s: %s", index, exc.message)
    except WireFormatError as exc:
        raise PayloadError(exc) from exc
    if not records:
        raise NoRecordsFound("no valid TOTP entries found", failures)
    return ExtractionResult(records=records, failures=failures, positions=positions)


def parse_account(payload: bytes) -> AccountRecord:
    """Summary: Pull secret, name, and issuer out of one embedded account.

    Importance: Unknown or newer fields are consumed without affecting the result.
    Alternatives: Reject accounts that carry unrecognized fields.
    """

    secret = b""
    label = ""
    issuer = ""
    for item in iter_fields(payload):
        if item.wire_type != WireType.LENGTH_DELIMITED:
            continue
        if item.field_number == ACCOUNT_SECRET:
            secret = item.value
        elif item.field_number == ACCOUNT_NAME:
            label = _text(item.value)
        elif item.field_number == ACCOUNT_ISSUER:
            issuer = _text(item.value)
    return AccountRecord(secret=encode_secret(secret), label=label, issuer=issuer)


def parse_otpauth_uri(uri: str) -> AccountRecord:
    """Summary: Parse a single otpauth://totp URI.

    Importance: Supports QR codes that hold one account instead of a batch.
    Alternatives: Use pyotp.parse_uri and accept its stricter validation.
    """

    try:
        parsed = urllib.parse.urlsplit(uri)
    except ValueError as exc:
        raise InvalidOtpauthUri(f"invalid TOTP URI: {exc}") from exc
    if parsed.scheme != "otpauth" or parsed.netloc.lower() != "totp":
        raise InvalidOtpauthUri("invalid TOTP URI")
    query = urllib.parse.parse_qs(parsed.query)
    secret = query.get("secret", [""])[0].replace(" ", "")
    if not secret:
        raise InvalidOtpauthUri("TOTP URI is missing a secret")
    issuer = query.get("issuer", [""])[0]
    label = urllib.parse.unquote(parsed.path.removeprefix("/"))
    return AccountRecord(secret=secret, label=label, issuer=issuer)


def encode_secret(raw: bytes) -> str:
    """Encode raw secret bytes as unpadded base32."""

    return base64.b32encode(raw).decode("ascii").rstrip("=")


def decode_secret(secret: str) -> bytes:
    """Summary: Decode a base32 secret, tolerating spaces and missing padding.

    Importance: Needed to put stored secrets back into migration payloads.
    Alternatives: Store raw secret bytes alongside the base32 text.
    """

    normalized = secret.replace(" ", "").upper()
    normalized += "=" * (-len(normalized) % 8)
    try:
        return base64.b32decode(normalized, casefold=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base32 secret: {exc}") from exc


def encode_account(record: AccountRecord) -> bytes:
    parts = [
        encode_bytes_field(ACCOUNT_SECRET, decode_secret(record.secret)),
        encode_bytes_field(ACCOUNT_NAME, record.label.encode("utf-8")),
    ]
    if record.issuer:
        parts.append(encode_bytes_field(ACCOUNT_ISSUER, record.issuer.encode("utf-8")))
    parts.append(encode_varint_field(ACCOUNT_ALGORITHM, ALGORITHM_SHA1))
    parts.append(encode_varint_field(ACCOUNT_DIGITS, DIGITS_SIX))
    parts.append(encode_varint_field(ACCOUNT_TYPE, OTP_TYPE_TOTP))
    return b"".join(parts)


def encode_payload(records: Iterable[AccountRecord]) -> bytes:
    """Summary: Encode records into a single-batch migration payload.

    Importance: Lets the vault hand accounts back to an authenticator app.
    Alternatives: Export one otpauth URI per account only.
    """

    parts = [encode_bytes_field(PAYLOAD_ACCOUNT, encode_account(record)) for record in records]
    parts.append(encode_varint_field(PAYLOAD_VERSION, PAYLOAD_FORMAT_VERSION))
    parts.append(encode_varint_field(PAYLOAD_BATCH_SIZE, 1))
    parts.append(encode_varint_field(PAYLOAD_BATCH_INDEX, 0))
    return b"".join(parts)


def build_migration_uri(records: Iterable[AccountRecord]) -> str:
    data = base64.b64encode(encode_payload(records)).decode("ascii")
    return MIGRATION_PREFIX + urllib.parse.quote(data, safe="")


def _text(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")
