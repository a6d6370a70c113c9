"""Tests for variable-length quantity decoding and encoding."""

import pytest

from mpc.errors import OverlongQuantity, TruncatedStream
from mpc.vlq import MAX_VLQ_VALUE, decode, encode


@pytest.mark.parametrize(
    "value, encoded",
    [
        (0x00, b"\x00"),
        (0x40, b"\x40"),
        (0x7F, b"\x7F"),
        (0x80, b"\x81\x00"),
        (0x1E0, b"\x83\x60"),
        (0x2000, b"\xC0\x00"),
        (0x3FFF, b"\xFF\x7F"),
        (0x4000, b"\x81\x80\x00"),
        (0x1FFFFF, b"\xFF\xFF\x7F"),
        (0x200000, b"\x81\x80\x80\x00"),
        (0x0FFFFFFF, b"\xFF\xFF\xFF\x7F"),
    ],
)
def test_known_encodings(value: int, encoded: bytes) -> None:
    assert encode(value) == encoded
    assert decode(encoded) == (value, len(encoded))


@pytest.mark.parametrize("value", [1, 127, 128, 16383, 16384, 2097151, 2097152, MAX_VLQ_VALUE])
def test_decode_inverts_encode_with_minimal_length(value: int) -> None:
    encoded = encode(value)
    expected_len = 1
    while value >= 1 << (7 * expected_len):
        expected_len += 1
    assert decode(encoded) == (value, expected_len)
    assert all(b & 0x80 for b in encoded[:-1])
    assert not encoded[-1] & 0x80


def test_decode_at_offset_ignores_trailing_bytes() -> None:
    data = b"\xAA\xBB\x83\x60\x90\x3C"
    assert decode(data, 2) == (480, 2)


def test_decode_buffer_ends_mid_quantity() -> None:
    with pytest.raises(TruncatedStream) as excinfo:
        decode(b"\x00\x81", 1)
    assert not isinstance(excinfo.value, OverlongQuantity)


def test_decode_empty_buffer() -> None:
    with pytest.raises(TruncatedStream):
        decode(b"")


def test_decode_rejects_fifth_byte() -> None:
    with pytest.raises(OverlongQuantity):
        decode(b"\x81\x80\x80\x80\x00")


def test_overlong_is_a_truncated_stream() -> None:
    assert issubclass(OverlongQuantity, TruncatedStream)


@pytest.mark.parametrize("value", [-1, MAX_VLQ_VALUE + 1])
def test_encode_rejects_out_of_range(value: int) -> None:
    with pytest.raises(ValueError):
        encode(value)
