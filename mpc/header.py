from __future__ import annotations

from dataclasses import dataclass

from .errors import MalformedHeader

HEADER_BODY_SIZE = 6
SMPTE_FLAG = 0x8000


def resolve_division(division: int) -> int:
    """Resolve the raw 16-bit division word into ticks per quarter note.

    With the high bit set the upper byte holds the negated frames per second
    (two's complement) and the lower byte the ticks per frame; the product
    stands in for the tick rate. Otherwise the word is the tick rate itself.
    """
    if division & SMPTE_FLAG:
        upper = (division >> 8) & 0xFF
        frames_per_second = -(upper - 0x100)
        ticks_per_frame = division & 0xFF
        return frames_per_second * ticks_per_frame
    return division


@dataclass(frozen=True)
class MidiHeader:
    format: int  # 0, 1 or 2
    track_count: int  # declared in the header, not necessarily the decoded count
    division: int  # raw division word
    ticks_per_quarter: int

    @property
    def is_smpte(self) -> bool:
        return bool(self.division & SMPTE_FLAG)

    @classmethod
    def from_bytes(cls, data: bytes) -> "MidiHeader":
        if len(data) < HEADER_BODY_SIZE:
            raise MalformedHeader(
                f"header chunk too short ({len(data)} bytes, need {HEADER_BODY_SIZE})"
            )
        fmt = int.from_bytes(data[0:2], "big")
        track_count = int.from_bytes(data[2:4], "big")
        division = int.from_bytes(data[4:6], "big")
        ticks = resolve_division(division)
        if ticks <= 0:
            raise MalformedHeader(
                f"division 0x{division:04X} resolves to non-positive tick rate {ticks}"
            )
        return cls(
            format=fmt,
            track_count=track_count,
            division=division,
            ticks_per_quarter=ticks,
        )
