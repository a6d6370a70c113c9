from __future__ import annotations

import dataclasses
import io
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import mido

from .chunks import iter_chunks
from .errors import UnresolvedTrack
from .header import MidiHeader
from .model import Track
from .track_reader import PAIRING_FIFO, read_track

logger = logging.getLogger(__name__)

DEFAULT_BPM = 120.0


@dataclass(frozen=True)
class MidiDocument:
    """Header plus decoded tracks in file order.

    ``tempo_bpm`` is display metadata only; tick-domain conversion never
    reads it.
    """

    header: MidiHeader
    tracks: Tuple[Track, ...] = ()
    tempo_bpm: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "tracks", tuple(self.tracks))

    @property
    def ticks_per_quarter(self) -> int:
        return self.header.ticks_per_quarter

    @classmethod
    def from_bytes(cls, data: bytes, *, pairing: str = PAIRING_FIFO) -> "MidiDocument":
        header_chunk, track_chunks = iter_chunks(data)
        header = MidiHeader.from_bytes(header_chunk.data)
        tracks = [
            read_track(chunk.data, pairing=pairing, index=idx)
            for idx, chunk in enumerate(track_chunks)
        ]
        if len(tracks) != header.track_count:
            logger.debug(
                "header declares %d track(s), decoded %d",
                header.track_count,
                len(tracks),
            )
        return cls(header=header, tracks=tracks)

    def with_tempo(self, bpm: float) -> "MidiDocument":
        return dataclasses.replace(self, tempo_bpm=bpm)

    def track(self, number: int) -> Track:
        """Return the track at 1-based file position ``number``."""
        if not 1 <= number <= len(self.tracks):
            raise UnresolvedTrack(
                f"track {number} not found (document has {len(self.tracks)} track(s))"
            )
        return self.tracks[number - 1]

    def tracks_with_notes(self) -> List[Tuple[int, Track]]:
        """Return ``(export_number, track)`` for tracks holding notes.

        Export numbers count only those tracks, from 1, in file order.
        """
        with_notes = [track for track in self.tracks if track.notes]
        return list(enumerate(with_notes, start=1))

    def note_track(self, number: int) -> Track:
        """Return the note-bearing track with export number ``number``."""
        numbered = self.tracks_with_notes()
        if not 1 <= number <= len(numbered):
            raise UnresolvedTrack(
                f"note track {number} not found "
                f"(document has {len(numbered)} track(s) with notes)"
            )
        return numbered[number - 1][1]

    def time_bounds(self) -> Tuple[int, int]:
        """``(earliest start, latest end)`` across every track."""
        bounds = [track.time_bounds() for track in self.tracks if track.notes]
        if not bounds:
            return 0, 0
        return min(lo for lo, _ in bounds), max(hi for _, hi in bounds)


def detect_tempo(data: bytes) -> float:
    """Return the BPM of the earliest tempo event, read with mido.

    Falls back to ``DEFAULT_BPM`` when the file has no tempo event or mido
    cannot parse it.
    """
    try:
        mid = mido.MidiFile(file=io.BytesIO(data))
    except (OSError, EOFError, ValueError, KeyError) as exc:
        logger.warning("tempo detection failed, assuming %.1f BPM: %s", DEFAULT_BPM, exc)
        return DEFAULT_BPM

    earliest: Optional[Tuple[int, int]] = None
    for track in mid.tracks:
        abs_tick = 0
        for msg in track:
            abs_tick += msg.time
            if msg.type == "set_tempo":
                if earliest is None or abs_tick < earliest[0]:
                    earliest = (abs_tick, msg.tempo)
                break
    if earliest is None:
        return DEFAULT_BPM
    return mido.tempo2bpm(earliest[1])


def load_document(data: bytes, *, pairing: str = PAIRING_FIFO) -> MidiDocument:
    """Decode ``data`` and annotate it with the detected tempo."""
    document = MidiDocument.from_bytes(data, pairing=pairing)
    return document.with_tempo(detect_tempo(data))
