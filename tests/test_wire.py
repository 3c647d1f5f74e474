"""Summary: Tests for the tag-value stream walker.

Importance: The walker is the only code that touches untrusted bytes directly.
Alternatives: Test only through full migration payloads.
"""

from __future__ import annotations

import pytest

from totpvault.errors import (
    InvalidLength,
    TruncatedFixed32,
    TruncatedFixed64,
    TruncatedTag,
    TruncatedVarint,
    UnknownWireType,
    VarintOverflow,
)
from totpvault.wire import (
    WireType,
    encode_bytes_field,
    encode_tag,
    encode_varint,
    encode_varint_field,
    iter_fields,
    read_varint,
    step,
)


def test_read_varint_multi_byte() -> None:
    assert read_varint(b"\x96\x01", 0) == (150, 2)


def test_read_varint_from_offset() -> None:
    assert read_varint(b"\xff\xac\x02", 1) == (300, 3)


def test_read_varint_accepts_full_64_bits() -> None:
    encoded = encode_varint(2**64 - 1)
    assert len(encoded) == 10
    assert read_varint(encoded, 0) == (2**64 - 1, 10)


def test_read_varint_rejects_eleven_bytes() -> None:
    """Summary: A varint that never terminates within 10 bytes is an overflow.

    Importance: Bounds the work done on adversarial continuation bytes.
    Alternatives: Keep reading until the buffer ends.
    """

    with pytest.raises(VarintOverflow):
        read_varint(b"\xff" * 10 + b"\x01", 0)


def test_read_varint_rejects_value_above_64_bits() -> None:
    with pytest.raises(VarintOverflow):
        read_varint(b"\xff" * 9 + b"\x02", 0)


def test_read_varint_truncated() -> None:
    with pytest.raises(TruncatedVarint) as excinfo:
        read_varint(b"\x80\x80", 0)
    assert excinfo.value.offset == 0


def test_step_empty_buffer_is_truncated_tag() -> None:
    with pytest.raises(TruncatedTag):
        step(b"", 0)


def test_step_cursor_at_end_is_truncated_tag() -> None:
    with pytest.raises(TruncatedTag) as excinfo:
        step(b"\x08\x01", 2)
    assert excinfo.value.offset == 2


def test_step_varint_field() -> None:
    field = step(b"\x20\x96\x01", 0)
    assert field.field_number == 4
    assert field.wire_type == WireType.VARINT
    assert field.value == 150
    assert field.end == 3
    assert field.bytes_consumed == 3


def test_step_fixed64_field() -> None:
    buffer = bytes([0x09]) + (1234567890123).to_bytes(8, "little")
    field = step(buffer, 0)
    assert field.field_number == 1
    assert field.wire_type == WireType.FIXED64
    assert field.value == 1234567890123
    assert field.end == 9


def test_step_fixed64_truncated() -> None:
    with pytest.raises(TruncatedFixed64):
        step(bytes([0x09, 1, 2, 3]), 0)


def test_step_fixed32_field() -> None:
    buffer = bytes([0x15]) + (0xDEADBEEF).to_bytes(4, "little")
    field = step(buffer, 0)
    assert field.field_number == 2
    assert field.wire_type == WireType.FIXED32
    assert field.value == 0xDEADBEEF
    assert field.end == 5


def test_step_fixed32_truncated() -> None:
    with pytest.raises(TruncatedFixed32):
        step(bytes([0x15, 1, 2]), 0)


def test_step_length_delimited_field() -> None:
    field = step(b"\x0a\x03abc\x08\x01", 0)
    assert field.wire_type == WireType.LENGTH_DELIMITED
    assert field.value == b"abc"
    assert field.bytes_consumed == 5


def test_step_zero_length_field() -> None:
    field = step(b"\x12\x00", 0)
    assert field.field_number == 2
    assert field.value == b""
    assert field.end == 2


def test_step_length_past_end_is_invalid_length() -> None:
    """Summary: A declared length larger than the buffer is rejected before slicing.

    Importance: This check is what keeps hostile lengths from reading out of bounds.
    Alternatives: Slice and accept a short read.
    """

    with pytest.raises(InvalidLength) as excinfo:
        step(b"\x0a\x05ab", 0)
    assert excinfo.value.offset == 2


def test_step_huge_length_is_invalid_length() -> None:
    buffer = b"\x0a" + encode_varint(2**63) + b"x"
    with pytest.raises(InvalidLength):
        step(buffer, 0)


def test_step_truncated_length_prefix() -> None:
    with pytest.raises(TruncatedVarint):
        step(b"\x0a\x80", 0)


@pytest.mark.parametrize("wire_type", [3, 4, 6, 7])
def test_step_unknown_wire_types_are_errors(wire_type: int) -> None:
    with pytest.raises(UnknownWireType) as excinfo:
        step(bytes([(1 << 3) | wire_type, 0]), 0)
    assert excinfo.value.wire_type == wire_type


def test_iter_fields_walks_whole_buffer() -> None:
    buffer = encode_varint_field(1, 7) + encode_bytes_field(2, b"hi") + encode_varint_field(3, 300)
    fields = list(iter_fields(buffer))
    assert [field.field_number for field in fields] == [1, 2, 3]
    assert [field.value for field in fields] == [7, b"hi", 300]
    assert fields[-1].end == len(buffer)


def test_iter_fields_is_lazy() -> None:
    """Summary: Errors surface at the field that caused them, not up front.

    Importance: Lets consumers act on fields decoded before a corrupt one.
    Alternatives: Decode the whole buffer eagerly.
    """

    fields = iter_fields(b"\x08\x01\x0f")
    first = next(fields)
    assert first.value == 1
    with pytest.raises(UnknownWireType):
        next(fields)


def test_iter_fields_empty_buffer_yields_nothing() -> None:
    assert list(iter_fields(b"")) == []


def test_encode_tag_rejects_multi_byte_field_numbers() -> None:
    with pytest.raises(ValueError):
        encode_tag(16, WireType.VARINT)


def test_encode_varint_rejects_negative() -> None:
    with pytest.raises(ValueError):
        encode_varint(-1)
