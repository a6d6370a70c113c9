"""MIDI variable-length quantities.

Seven bits per byte, most significant group first. Every byte except the
last has its high bit set. Standard MIDI Files cap a quantity at four
bytes, which bounds the value to 0x0FFFFFFF.
"""

from __future__ import annotations

from typing import Tuple

from .errors import OverlongQuantity, TruncatedStream

MAX_VLQ_BYTES = 4
MAX_VLQ_VALUE = 0x0FFFFFFF


def decode(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode one quantity starting at ``offset``.

    Returns ``(value, bytes_consumed)``. Raises ``TruncatedStream`` when the
    buffer ends mid-quantity and ``OverlongQuantity`` when four bytes pass
    without the continuation bit clearing.
    """
    value = 0
    for consumed in range(1, MAX_VLQ_BYTES + 1):
        pos = offset + consumed - 1
        if pos >= len(data):
            raise TruncatedStream(
                f"buffer ends inside variable-length quantity at offset {offset}"
            )
        byte = data[pos]
        value = (value << 7) | (byte & 0x7F)
        if not byte & 0x80:
            return value, consumed
    raise OverlongQuantity(
        f"variable-length quantity at offset {offset} exceeds {MAX_VLQ_BYTES} bytes"
    )


def encode(value: int) -> bytes:
    """Encode ``value`` using the minimal number of bytes."""
    if value < 0 or value > MAX_VLQ_VALUE:
        raise ValueError(f"value {value} outside [0, 0x{MAX_VLQ_VALUE:X}]")
    groups = [value & 0x7F]
    value >>= 7
    while value:
        groups.append((value & 0x7F) | 0x80)
        value >>= 7
    return bytes(reversed(groups))
