from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from .document import MidiDocument
from .errors import EmptySelection
from .model import Track
from .pattern import TARGET_PPQ, Pattern, build_pattern
from .serializer import dumps_pattern, pattern_filename

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConvertedTrack:
    track_number: int  # export number among note-bearing tracks
    track: Track
    pattern: Pattern


def full_range(track: Track) -> Tuple[int, int]:
    """Default selection: the whole note span of ``track``.

    A zero-length note only passes the strict overlap test with a tick of
    room on both sides, so the span widens around those.
    """
    if not track.notes:
        return 0, 0
    start = min(n.time if n.duration else n.time - 1 for n in track.notes)
    end = max(n.end if n.duration else n.time + 1 for n in track.notes)
    return start, end


def convert_track(
    document: MidiDocument,
    track_number: int,
    start: Optional[int] = None,
    end: Optional[int] = None,
    origin: Optional[int] = None,
    *,
    target_ppq: int = TARGET_PPQ,
) -> Pattern:
    """Convert note track ``track_number`` (1-based among tracks with notes).

    ``start``/``end`` default to the track's full span, ``origin`` to the
    earliest note start in the document. Raises ``UnresolvedTrack`` for a
    bad number and ``EmptySelection`` when the window holds no notes.
    """
    track = document.note_track(track_number)
    default_start, default_end = full_range(track)
    if start is None:
        start = default_start
    if end is None:
        end = default_end
    if origin is None:
        origin = document.time_bounds()[0]

    logger.debug(
        "converting track %d: range [%d, %d) origin %d at %d ppq",
        track_number,
        start,
        end,
        origin,
        document.ticks_per_quarter,
    )
    pattern = build_pattern(
        track,
        start,
        end,
        origin,
        document.ticks_per_quarter,
        target_ppq=target_ppq,
    )
    if not pattern.events:
        raise EmptySelection(
            f"track {track_number} has no notes in tick range [{start}, {end})"
        )
    return pattern


def convert_all(document: MidiDocument, *, target_ppq: int = TARGET_PPQ) -> List[ConvertedTrack]:
    """Convert every note-bearing track over its full span."""
    return [
        ConvertedTrack(
            track_number=number,
            track=track,
            pattern=convert_track(document, number, target_ppq=target_ppq),
        )
        for number, track in document.tracks_with_notes()
    ]


def export_patterns(document: MidiDocument, source_name: str) -> Iterator[Tuple[str, str]]:
    """Yield ``(filename, text)`` for every note-bearing track."""
    for converted in convert_all(document):
        yield (
            pattern_filename(source_name, converted.track_number),
            dumps_pattern(converted.pattern),
        )
