"""Summary: Error types raised while decoding QR payloads.

Importance: Lets callers tell envelope, walker, and per-record failures apart.
Alternatives: Raise plain ValueError with formatted messages only.
"""

from __future__ import annotations


class QrDecodeError(ValueError):
    """Summary: Base class for every QR payload decoding failure.

    Importance: Gives API and CLI layers a single type to catch.
    Alternatives: Return (result, error) tuples from each decoder.
    """

    stage = "decode"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class EnvelopeError(QrDecodeError):
    """Summary: The URI wrapper around the payload could not be unpacked.

    Importance: Stops parsing before any bytes reach the walker.
    Alternatives: Fall back to treating the text as raw base64.
    """

    stage = "envelope"


class InvalidOtpauthUri(QrDecodeError):
    """Raised for a direct otpauth:// URI that is unusable."""

    stage = "uri"


class WireFormatError(QrDecodeError):
    """Summary: Structural error found by the tag-value walker.

    Importance: Carries the byte offset where decoding could not proceed.
    Alternatives: Report only a message without position details.
    """

    stage = "wire"

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(f"{message} at offset {offset}")
        self.offset = offset


class TruncatedTag(WireFormatError):
    pass


class TruncatedVarint(WireFormatError):
    pass


class VarintOverflow(WireFormatError):
    pass


class TruncatedFixed64(WireFormatError):
    pass


class TruncatedFixed32(WireFormatError):
    pass


class InvalidLength(WireFormatError):
    pass


class UnknownWireType(WireFormatError):
    def __init__(self, wire_type: int, offset: int) -> None:
        super().__init__(f"unknown wire type {wire_type}", offset)
        self.wire_type = wire_type


class PayloadError(QrDecodeError):
    """Summary: The top-level record list is structurally corrupt.

    Importance: Aborts the whole import instead of guessing at boundaries.
    Alternatives: Return whatever records were decoded before the error.
    """

    stage = "outer"

    def __init__(self, cause: WireFormatError) -> None:
        super().__init__(f"corrupt migration payload: {cause.message}")
        self.cause = cause


class RecordError(QrDecodeError):
    """Summary: One embedded account record could not be parsed.

    Importance: Reported alongside recovered records instead of aborting.
    Alternatives: Drop failed records silently.
    """

    stage = "inner"

    def __init__(self, index: int, reason: str) -> None:
        super().__init__(f"record {index}: {reason}")
        self.index = index
        self.reason = reason


class NoRecordsFound(QrDecodeError):
    """Raised when a structurally valid payload yields no usable records."""

    stage = "result"

    def __init__(self, message: str, failures: list[RecordError] | None = None) -> None:
        super().__init__(message)
        self.failures = list(failures or [])
