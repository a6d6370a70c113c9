"""Reconcile one track's event stream into closed note intervals.

Note-on and note-off events are paired per ``(channel, pitch)``. Two pairing
policies are available for overlapping note-ons on the same key:

  "fifo"   each key holds a queue; a note-off closes the oldest pending
           note-on. Every note-on yields exactly one note.
  "single" each key holds one slot; a second note-on replaces the pending
           one and the replaced note-on is lost.

Note-offs with nothing pending are dropped. Note-ons still pending when the
track ends are closed with duration 0.

Truncated or undecodable trailing events stop the track and keep what was
decoded so far. A variable-length quantity longer than four bytes is not
tolerated and propagates as ``OverlongQuantity``.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from .errors import OverlongQuantity, TruncatedStream, UnrecoverableEvent
from .events import (
    META_INSTRUMENT_NAME,
    META_TRACK_NAME,
    Meta,
    NoteOff,
    NoteOn,
    ProgramChange,
    iter_events,
)
from .gm import instrument_name as gm_instrument_name
from .model import Note, Track

logger = logging.getLogger(__name__)

PAIRING_FIFO = "fifo"
PAIRING_SINGLE = "single"
PAIRING_POLICIES = frozenset({PAIRING_FIFO, PAIRING_SINGLE})


def primary_channel(
    note_on_counts: Dict[int, int], first_program_channel: Optional[int]
) -> int:
    """Pick the track's channel.

    The first program change wins; otherwise the channel with the most
    note-ons, lowest channel on ties; 0 for a track with neither.
    """
    if first_program_channel is not None:
        return first_program_channel
    if not note_on_counts:
        return 0
    return min(note_on_counts, key=lambda ch: (-note_on_counts[ch], ch))


def read_track(data: bytes, *, pairing: str = PAIRING_FIFO, index: int = 0) -> Track:
    """Decode one ``MTrk`` body into a ``Track``.

    Parameters
    ----------
    data : bytes
        Chunk body, without the tag and length.
    pairing : str
        ``"fifo"`` or ``"single"``; see the module docstring.
    index : int
        0-based chunk position, used only in log messages.
    """
    if pairing not in PAIRING_POLICIES:
        valid = ", ".join(sorted(PAIRING_POLICIES))
        raise ValueError(f"pairing must be one of: {valid}")

    notes: List[Note] = []
    pending: Dict[Tuple[int, int], List[NoteOn]] = {}
    note_on_counts: Dict[int, int] = {}
    program_by_channel: Dict[int, int] = {}
    first_program: Optional[ProgramChange] = None
    track_name = ""
    meta_instrument = ""
    ended = False
    truncated = False
    tick = 0

    try:
        for event in iter_events(data):
            tick = event.tick

            if isinstance(event, NoteOn):
                key = (event.channel, event.pitch)
                note_on_counts[event.channel] = note_on_counts.get(event.channel, 0) + 1
                queue = pending.setdefault(key, [])
                if queue and pairing == PAIRING_SINGLE:
                    logger.debug(
                        "track %d: note-on ch%d pitch %d at tick %d replaces pending "
                        "note-on from tick %d",
                        index,
                        event.channel,
                        event.pitch,
                        event.tick,
                        queue[0].tick,
                    )
                    queue.clear()
                queue.append(event)

            elif isinstance(event, NoteOff):
                key = (event.channel, event.pitch)
                queue = pending.get(key)
                if not queue:
                    logger.debug(
                        "track %d: dropping note-off ch%d pitch %d at tick %d "
                        "with no pending note-on",
                        index,
                        event.channel,
                        event.pitch,
                        event.tick,
                    )
                    continue
                start = queue.pop(0)
                if not queue:
                    del pending[key]
                notes.append(
                    Note(
                        pitch=start.pitch,
                        velocity=start.velocity,
                        time=start.tick,
                        duration=event.tick - start.tick,
                        channel=start.channel,
                    )
                )

            elif isinstance(event, ProgramChange):
                program_by_channel[event.channel] = event.program
                if first_program is None:
                    first_program = event

            elif isinstance(event, Meta):
                if event.is_end_of_track:
                    ended = True
                elif event.meta_type == META_TRACK_NAME and not track_name:
                    track_name = event.text
                elif event.meta_type == META_INSTRUMENT_NAME and not meta_instrument:
                    meta_instrument = event.text

    except OverlongQuantity:
        raise
    except (TruncatedStream, UnrecoverableEvent) as exc:
        truncated = True
        logger.warning(
            "track %d: %s; keeping %d note(s) decoded before tick %d",
            index,
            exc,
            len(notes),
            tick,
        )

    lingering = sorted(
        (start for queue in pending.values() for start in queue),
        key=lambda start: start.tick,
    )
    for start in lingering:
        logger.debug(
            "track %d: closing hanging note ch%d pitch %d from tick %d",
            index,
            start.channel,
            start.pitch,
            start.tick,
        )
        notes.append(
            Note(
                pitch=start.pitch,
                velocity=start.velocity,
                time=start.tick,
                duration=0,
                channel=start.channel,
            )
        )

    channel = primary_channel(
        note_on_counts,
        first_program.channel if first_program is not None else None,
    )
    program: Optional[int] = program_by_channel.get(channel)
    if program is None and first_program is not None:
        program = first_program.program

    return Track(
        notes=notes,
        name=track_name,
        channel=channel,
        program=program,
        instrument_name=meta_instrument or gm_instrument_name(program),
        ended=ended,
        truncated=truncated,
    )
