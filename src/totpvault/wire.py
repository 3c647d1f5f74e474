"""Summary: Tag-value stream walker for schema-less migration payloads.

Importance: Reads untrusted bytes one field at a time with every bound checked
before slicing, so corrupt input ends in an error rather than a bad read.
Alternatives: Compile the migration schema with protoc and use generated classes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator

from totpvault.errors import (
    InvalidLength,
    TruncatedFixed32,
    TruncatedFixed64,
    TruncatedTag,
    TruncatedVarint,
    UnknownWireType,
    VarintOverflow,
)


MAX_VARINT_BYTES = 10


class WireType(IntEnum):
    """Summary: Wire types understood by the walker.

    Importance: Selects how the bytes after a tag are decoded.
    Alternatives: Compare raw integers at every call site.
    """

    VARINT = 0
    FIXED64 = 1
    LENGTH_DELIMITED = 2
    FIXED32 = 5


@dataclass(frozen=True)
class DecodedField:
    """Summary: One field decoded from a buffer.

    Importance: Carries the payload plus the cursor the next step starts from.
    Alternatives: Return bare tuples from the step function.
    """

    field_number: int
    wire_type: WireType
    value: int | bytes
    offset: int
    end: int

    @property
    def bytes_consumed(self) -> int:
        return self.end - self.offset


def read_varint(buffer: bytes, offset: int) -> tuple[int, int]:
    """Summary: Decode a base-128 varint starting at ``offset``.

    Importance: Shared by varint fields and length prefixes.
    Alternatives: Read through io.BytesIO one byte at a time.

    Returns the value and the offset just past its last byte.
    """

    result = 0
    for index in range(MAX_VARINT_BYTES):
        position = offset + index
        if position >= len(buffer):
            raise TruncatedVarint("varint runs past end of buffer", offset)
        byte = buffer[position]
        result |= (byte & 0x7F) << (7 * index)
        if byte < 0x80:
            # The tenth byte may only carry the 64th bit.
            if index == MAX_VARINT_BYTES - 1 and byte > 1:
                raise VarintOverflow("varint exceeds 64 bits", offset)
            return result, position + 1
    raise VarintOverflow(f"varint longer than {MAX_VARINT_BYTES} bytes", offset)


def step(buffer: bytes, cursor: int) -> DecodedField:
    """Summary: Decode the single field that starts at ``cursor``.

    Importance: The only place bytes are interpreted, so bounds live in one spot.
    Alternatives: Inline the dispatch in each message parser.
    """

    if cursor >= len(buffer):
        raise TruncatedTag("expected a tag byte", cursor)
    tag = buffer[cursor]
    field_number = tag >> 3
    wire_type = tag & 0x07
    position = cursor + 1

    if wire_type == WireType.VARINT:
        value, end = read_varint(buffer, position)
        return DecodedField(field_number, WireType.VARINT, value, cursor, end)

    if wire_type == WireType.FIXED64:
        end = position + 8
        if end > len(buffer):
            raise TruncatedFixed64("fixed64 needs 8 bytes", position)
        value = int.from_bytes(buffer[position:end], "little")
        return DecodedField(field_number, WireType.FIXED64, value, cursor, end)

    if wire_type == WireType.LENGTH_DELIMITED:
        length, position = read_varint(buffer, position)
        remaining = len(buffer) - position
        if length > remaining:
            raise InvalidLength(
                f"declared length {length} exceeds remaining {remaining} bytes", position
            )
        end = position + length
        return DecodedField(
            field_number, WireType.LENGTH_DELIMITED, bytes(buffer[position:end]), cursor, end
        )

    if wire_type == WireType.FIXED32:
        end = position + 4
        if end > len(buffer):
            raise TruncatedFixed32("fixed32 needs 4 bytes", position)
        value = int.from_bytes(buffer[position:end], "little")
        return DecodedField(field_number, WireType.FIXED32, value, cursor, end)

    raise UnknownWireType(wire_type, cursor)


def iter_fields(buffer: bytes) -> Iterator[DecodedField]:
    """Summary: Lazily yield every field in ``buffer`` until it is exhausted.

    Importance: Gives message parsers a flat stream to dispatch on.
    Alternatives: Decode the whole buffer into a list up front.

    Every step strictly advances the cursor, so the loop always terminates.
    Walker errors propagate to the consumer at the point they occur.
    """

    cursor = 0
    while cursor < len(buffer):
        field = step(buffer, cursor)
        cursor = field.end
        yield field


def encode_varint(value: int) -> bytes:
    if value < 0:
        raise ValueError("varint cannot encode negative values")
    out = bytearray()
    while True:
        low = value & 0x7F
        value >>= 7
        if value:
            out.append(low | 0x80)
        else:
            out.append(low)
            return bytes(out)


def encode_tag(field_number: int, wire_type: WireType) -> bytes:
    """Encode a single-byte tag; field numbers above 15 do not fit."""

    if not 0 < field_number < 16:
        raise ValueError(f"field number {field_number} does not fit a one-byte tag")
    return bytes([(field_number << 3) | int(wire_type)])


def encode_varint_field(field_number: int, value: int) -> bytes:
    return encode_tag(field_number, WireType.VARINT) + encode_varint(value)


def encode_bytes_field(field_number: int, payload: bytes) -> bytes:
    return (
        encode_tag(field_number, WireType.LENGTH_DELIMITED)
        + encode_varint(len(payload))
        + payload
    )
