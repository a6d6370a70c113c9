"""Resample decoded notes into MPC pattern events.

Source notes are selected by a strict overlap test against the requested
window, rebased to an origin tick and rescaled from the file's tick rate to
the device's fixed 960 ticks per quarter note. Start and length are rounded
independently, so ``time + len`` may differ by one tick from the rounded
source end.

Velocities are stored as decimal strings of ``velocity / 127`` cut (not
rounded) to 17 characters, which is what the device's own exporter writes.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .model import Track

logger = logging.getLogger(__name__)

TARGET_PPQ = 960
PATTERN_LENGTH = 2**63 - 1  # device sentinel for host-controlled length
VELOCITY_STRING_MAX = 17
NOTE_EVENT_TYPE = 2
NOTE_MOD_VAL = 0.5


@dataclass(frozen=True)
class PatternEvent:
    """One type-2 note event in device ticks."""

    time: int
    length: int  # "len"
    pitch: int  # "1"
    velocity: str  # "2", kept as text
    type: int = NOTE_EVENT_TYPE
    field3: int = 0  # "3"
    mod: int = 0
    mod_val: float = NOTE_MOD_VAL


@dataclass(frozen=True)
class Pattern:
    events: List[PatternEvent] = field(default_factory=list)
    length: int = PATTERN_LENGTH


@dataclass(frozen=True)
class PatternStats:
    total_events: int
    time_start: int
    time_end: int
    note_low: int
    note_high: int
    length: int

    @property
    def duration(self) -> int:
        return self.time_end - self.time_start

    @property
    def note_span(self) -> int:
        return self.note_high - self.note_low


def round_half_up(value: float) -> int:
    floor = math.floor(value)
    return floor + 1 if value - floor >= 0.5 else floor


def scale_ticks(ticks: int, source_ppq: int, target_ppq: int = TARGET_PPQ) -> int:
    """Rescale a tick count between resolutions, rounding halves upward."""
    return round_half_up(target_ppq * ticks / source_ppq)


def velocity_string(velocity: int) -> str:
    """Format ``velocity / 127`` as shortest round-trip text, cut to 17 chars.

    Whole values drop their fractional part (``127`` gives ``"1"``).
    """
    text = repr(velocity / 127)
    if text.endswith(".0"):
        text = text[:-2]
    return text[:VELOCITY_STRING_MAX]


def build_pattern(
    track: Track,
    range_start: int,
    range_end: int,
    origin_tick: int,
    source_ppq: int,
    *,
    target_ppq: int = TARGET_PPQ,
) -> Pattern:
    """Select, rebase and rescale the notes of ``track`` into a pattern.

    Notes overlapping ``[range_start, range_end)`` are taken whole, without
    clipping. Event order follows ``track.notes``; starts that do not move
    forward are logged and left as they are.
    """
    if source_ppq <= 0:
        raise ValueError(f"source_ppq must be positive, got {source_ppq}")

    selected = track.notes_in_range(range_start, range_end)
    logger.debug(
        "selected %d of %d note(s) in [%d, %d)",
        len(selected),
        track.note_count,
        range_start,
        range_end,
    )

    events: List[PatternEvent] = []
    for note in selected:
        time = scale_ticks(note.time - origin_tick, source_ppq, target_ppq)
        length = scale_ticks(note.duration, source_ppq, target_ppq)
        if events and time <= events[-1].time:
            logger.debug("out of order note: %d <= %d", time, events[-1].time)
        events.append(
            PatternEvent(
                time=time,
                length=length,
                pitch=note.pitch,
                velocity=velocity_string(note.velocity),
            )
        )

    return Pattern(events=events)


def validate_pattern(pattern: object) -> bool:
    if not isinstance(pattern, Pattern):
        return False
    for event in pattern.events:
        if not isinstance(event, PatternEvent):
            return False
        if not 0 <= event.pitch <= 127 or event.length < 0:
            return False
        try:
            float(event.velocity)
        except ValueError:
            return False
    return True


def pattern_stats(pattern: Pattern) -> Optional[PatternStats]:
    """Summarize a pattern; ``None`` when it does not validate."""
    if not validate_pattern(pattern):
        return None
    events = pattern.events
    if not events:
        return PatternStats(0, 0, 0, 0, 0, pattern.length)
    return PatternStats(
        total_events=len(events),
        time_start=min(event.time for event in events),
        time_end=max(event.time + event.length for event in events),
        note_low=min(event.pitch for event in events),
        note_high=max(event.pitch for event in events),
        length=pattern.length,
    )


def merge_patterns(patterns: Iterable[Pattern]) -> Pattern:
    """Concatenate the events of every valid pattern, keeping their order."""
    merged: List[PatternEvent] = []
    for idx, pattern in enumerate(patterns):
        if not validate_pattern(pattern):
            logger.debug("skipping invalid pattern at position %d", idx)
            continue
        merged.extend(pattern.events)
    return Pattern(events=merged)
