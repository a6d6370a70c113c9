"""Decode the event stream of one ``MTrk`` chunk.

Each event is decoded once into one of a closed set of variants:

  NoteOn, NoteOff       channel voice 0x9n / 0x8n
  ControlChange         channel voice 0xBn
  ProgramChange         channel voice 0xCn
  Meta                  0xFF type, VLQ length, payload
  Other                 everything else that can be skipped safely:
                        aftertouch (0xAn), channel pressure (0xDn),
                        pitch bend (0xEn), SysEx (0xF0 / 0xF7)

Running status: a byte with its high bit clear where a status byte is
expected reuses the last channel-voice status. Meta events leave the latched
status alone; SysEx clears it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from . import vlq
from .errors import TruncatedStream, UnrecoverableEvent

logger = logging.getLogger(__name__)

META = 0xFF
SYSEX = 0xF0
SYSEX_ESCAPE = 0xF7

META_TRACK_NAME = 0x03
META_INSTRUMENT_NAME = 0x04
META_END_OF_TRACK = 0x2F
META_SET_TEMPO = 0x51

# Data bytes following each channel-voice status nibble.
CHANNEL_DATA_SIZES = {
    0x80: 2,
    0x90: 2,
    0xA0: 2,
    0xB0: 2,
    0xC0: 1,
    0xD0: 1,
    0xE0: 2,
}


@dataclass(frozen=True)
class NoteOn:
    tick: int
    channel: int
    pitch: int
    velocity: int


@dataclass(frozen=True)
class NoteOff:
    tick: int
    channel: int
    pitch: int
    velocity: int


@dataclass(frozen=True)
class ControlChange:
    tick: int
    channel: int
    controller: int
    value: int


@dataclass(frozen=True)
class ProgramChange:
    tick: int
    channel: int
    program: int


@dataclass(frozen=True)
class Meta:
    tick: int
    meta_type: int
    data: bytes

    @property
    def is_end_of_track(self) -> bool:
        return self.meta_type == META_END_OF_TRACK

    @property
    def text(self) -> str:
        return sanitize_text(decode_text(self.data))


@dataclass(frozen=True)
class Other:
    tick: int
    status: int
    data: bytes


Event = Union[NoteOn, NoteOff, ControlChange, ProgramChange, Meta, Other]


def decode_text(data: bytes) -> str:
    """Decode meta text as UTF-8, falling back to one character per byte."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        logger.debug("meta text is not UTF-8, decoding as Latin-1: %r", data)
        return data.decode("latin-1")


def sanitize_text(text: str) -> str:
    """Replace control characters with spaces, collapse whitespace, trim."""
    cleaned = "".join(
        " " if ord(ch) < 0x20 or ord(ch) == 0x7F else ch for ch in text
    )
    return " ".join(cleaned.split())


def _take(data: bytes, offset: int, count: int, what: str) -> bytes:
    if offset + count > len(data):
        raise TruncatedStream(
            f"{what} at offset {offset} needs {count} bytes, "
            f"{len(data) - offset} remain"
        )
    return data[offset : offset + count]


def _channel_event(tick: int, status: int, body: bytes) -> Event:
    kind = status & 0xF0
    channel = status & 0x0F
    if kind == 0x90:
        if body[1] == 0:
            return NoteOff(tick=tick, channel=channel, pitch=body[0], velocity=0)
        return NoteOn(tick=tick, channel=channel, pitch=body[0], velocity=body[1])
    if kind == 0x80:
        return NoteOff(tick=tick, channel=channel, pitch=body[0], velocity=body[1])
    if kind == 0xB0:
        return ControlChange(tick=tick, channel=channel, controller=body[0], value=body[1])
    if kind == 0xC0:
        return ProgramChange(tick=tick, channel=channel, program=body[0])
    return Other(tick=tick, status=status, data=body)


def iter_events(data: bytes) -> Iterator[Event]:
    """Yield the events of one track body in stream order.

    Stops after an end-of-track meta event or when the body is exhausted.
    A truncated trailing event raises ``TruncatedStream`` and an undecodable
    status raises ``UnrecoverableEvent``; events yielded before that stand.
    ``OverlongQuantity`` from a malformed delta-time or length also
    propagates from here.
    """
    offset = 0
    tick = 0
    running_status: Optional[int] = None

    while offset < len(data):
        delta, used = vlq.decode(data, offset)
        offset += used
        tick += delta

        if offset >= len(data):
            raise TruncatedStream(f"track data ends after delta-time at tick {tick}")

        status = data[offset]
        if status < 0x80:
            if running_status is None:
                raise UnrecoverableEvent(
                    f"data byte 0x{status:02X} at offset {offset} with no running status"
                )
            status = running_status
        else:
            offset += 1

        if status == META:
            meta_type = _take(data, offset, 1, "meta type")[0]
            offset += 1
            length, used = vlq.decode(data, offset)
            offset += used
            payload = _take(data, offset, length, f"meta 0x{meta_type:02X} payload")
            offset += length
            event = Meta(tick=tick, meta_type=meta_type, data=bytes(payload))
            yield event
            if event.is_end_of_track:
                return
            continue

        if status in (SYSEX, SYSEX_ESCAPE):
            running_status = None
            length, used = vlq.decode(data, offset)
            offset += used
            payload = _take(data, offset, length, "sysex payload")
            offset += length
            yield Other(tick=tick, status=status, data=bytes(payload))
            continue

        size = CHANNEL_DATA_SIZES.get(status & 0xF0)
        if size is None:
            raise UnrecoverableEvent(
                f"unsupported status 0x{status:02X} at offset {offset - 1}"
            )
        running_status = status
        body = _take(data, offset, size, f"status 0x{status:02X}")
        for idx, value in enumerate(body):
            if value & 0x80:
                raise UnrecoverableEvent(
                    f"status byte 0x{value:02X} at offset {offset + idx} "
                    f"inside 0x{status:02X} event data"
                )
        offset += size
        yield _channel_event(tick, status, bytes(body))
