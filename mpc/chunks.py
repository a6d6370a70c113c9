from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Tuple

from .errors import InvalidMidiFile, MalformedHeader, TruncatedStream

logger = logging.getLogger(__name__)

CHUNK_HEADER_SIZE = 8
HEADER_TAG = "MThd"
TRACK_TAG = "MTrk"


@dataclass(frozen=True)
class Chunk:
    """One tag + length + body unit of a Standard MIDI File."""

    tag: str
    offset: int  # offset of the tag within the source buffer
    length: int  # declared body length
    data: bytes  # body, exactly ``length`` bytes

    @property
    def end(self) -> int:
        return self.offset + CHUNK_HEADER_SIZE + self.length


def read_chunk(data: bytes, offset: int) -> Chunk:
    """Read the chunk starting at ``offset``.

    The 4-byte tag is decoded as Latin-1 so arbitrary bytes still produce a
    4-character tag for error messages.
    """
    if len(data) - offset < CHUNK_HEADER_SIZE:
        raise MalformedHeader(
            f"need {CHUNK_HEADER_SIZE} bytes for a chunk header at offset {offset}, "
            f"have {max(0, len(data) - offset)}"
        )
    tag = data[offset : offset + 4].decode("latin-1")
    length = int.from_bytes(data[offset + 4 : offset + 8], "big")
    body_start = offset + CHUNK_HEADER_SIZE
    if body_start + length > len(data):
        raise TruncatedStream(
            f"chunk {tag!r} at offset {offset} declares {length} bytes, "
            f"only {len(data) - body_start} remain"
        )
    return Chunk(
        tag=tag,
        offset=offset,
        length=length,
        data=bytes(data[body_start : body_start + length]),
    )


def iter_chunks(data: bytes) -> Tuple[Chunk, Iterator[Chunk]]:
    """Split ``data`` into its header chunk and an iterator of track chunks.

    The header chunk is validated eagerly. Chunks that are not ``MTrk`` are
    skipped by their declared length.
    """
    if not data:
        raise InvalidMidiFile("empty MIDI buffer")
    # Tag first: a foreign file's length field is meaningless here.
    tag = data[:4].decode("latin-1")
    if len(data) >= CHUNK_HEADER_SIZE and tag != HEADER_TAG:
        raise InvalidMidiFile(
            f"missing header chunk: expected {HEADER_TAG!r}, found {tag!r}"
        )
    header = read_chunk(data, 0)
    return header, _iter_track_chunks(data, header.end)


def _iter_track_chunks(data: bytes, offset: int) -> Iterator[Chunk]:
    while offset < len(data):
        remaining = len(data) - offset
        if remaining < CHUNK_HEADER_SIZE:
            logger.debug("ignoring %d trailing bytes at offset %d", remaining, offset)
            return
        chunk = read_chunk(data, offset)
        offset = chunk.end
        if chunk.tag != TRACK_TAG:
            logger.debug(
                "skipping %r chunk at offset %d (%d bytes)",
                chunk.tag,
                chunk.offset,
                chunk.length,
            )
            continue
        yield chunk
