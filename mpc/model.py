from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .gm import note_name, note_octave


@dataclass(frozen=True)
class Note:
    """A closed note interval in source ticks."""

    pitch: int  # MIDI note number 0-127
    velocity: int  # 1-127, taken from the note-on
    time: int  # absolute start tick from file start
    duration: int  # ticks; 0 for notes force-closed at end of track
    channel: int = 0  # 0-15

    @property
    def end(self) -> int:
        return self.time + self.duration

    @property
    def name(self) -> str:
        return note_name(self.pitch)

    @property
    def octave(self) -> int:
        return note_octave(self.pitch)

    def overlaps(self, start: int, end: int) -> bool:
        """Strict overlap of ``[time, end)`` with ``[start, end)``."""
        return self.time < end and self.end > start


@dataclass(frozen=True)
class Track:
    """Decoded ``MTrk`` chunk.

    ``notes`` are in the order their intervals were closed while decoding,
    not sorted by start tick.
    """

    notes: Tuple[Note, ...] = ()
    name: str = ""
    channel: int = 0  # primary channel
    program: Optional[int] = None
    instrument_name: str = ""
    ended: bool = False  # an end-of-track meta event was seen
    truncated: bool = False  # decoding stopped early on a bad or partial event

    def __post_init__(self) -> None:
        object.__setattr__(self, "notes", tuple(self.notes))

    @property
    def note_count(self) -> int:
        return len(self.notes)

    def notes_in_range(self, start: int, end: int) -> List[Note]:
        return [note for note in self.notes if note.overlaps(start, end)]

    def time_bounds(self) -> Tuple[int, int]:
        """Return ``(earliest start, latest end)``, or ``(0, 0)`` without notes."""
        if not self.notes:
            return 0, 0
        return (
            min(note.time for note in self.notes),
            max(note.end for note in self.notes),
        )
