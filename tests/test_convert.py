"""End-to-end conversion from MIDI bytes to .mpcpattern text."""

from __future__ import annotations

import pytest

from mpc.convert import convert_all, convert_track, export_patterns, full_range
from mpc.document import MidiDocument
from mpc.errors import EmptySelection, UnresolvedTrack
from mpc.model import Note, Track
from mpc.pattern import build_pattern
from mpc.serializer import read_pattern

EOT = b"\x00\xFF\x2F\x00"


def _chunk(tag: bytes, body: bytes) -> bytes:
    return tag + len(body).to_bytes(4, "big") + body


def _smf(*tracks: bytes, fmt: int = 1, division: int = 480) -> bytes:
    header = fmt.to_bytes(2, "big") + len(tracks).to_bytes(2, "big") + division.to_bytes(2, "big")
    return _chunk(b"MThd", header) + b"".join(_chunk(b"MTrk", body) for body in tracks)


CONDUCTOR = b"\x00\xFF\x03\x05Tempo\x00\xFF\x51\x03\x07\xA1\x20" + EOT
PIANO = b"\x00\x90\x3C\x64\x83\x60\x80\x3C\x40" + EOT  # C4 for one quarter


def test_two_track_quarter_note_scenario() -> None:
    doc = MidiDocument.from_bytes(_smf(CONDUCTOR, PIANO))
    assert doc.tracks[0].name == "Tempo"
    assert doc.tracks[0].notes == ()
    assert doc.track(2).notes == (Note(pitch=60, velocity=100, time=0, duration=480),)

    pattern = build_pattern(doc.track(2), 0, 480, 0, doc.ticks_per_quarter)
    (event,) = pattern.events
    assert event.type == 2
    assert (event.time, event.length, event.pitch) == (0, 960, 60)
    assert event.velocity == "0.787401574803149"
    assert (event.mod, event.mod_val) == (0, 0.5)


def test_convert_track_uses_note_track_numbering() -> None:
    doc = MidiDocument.from_bytes(_smf(CONDUCTOR, PIANO))
    pattern = convert_track(doc, 1, 0, 480, 0)
    assert [(e.time, e.length) for e in pattern.events] == [(0, 960)]
    with pytest.raises(UnresolvedTrack):
        convert_track(doc, 2)


def test_defaults_use_track_span_and_document_origin() -> None:
    early = b"\x83\x60\x90\x30\x50\x83\x60\x80\x30\x00" + EOT  # tick 480-960
    late = b"\x8F\x00\x90\x48\x50\x83\x60\x80\x48\x00" + EOT  # tick 1920-2400
    doc = MidiDocument.from_bytes(_smf(early, late))
    assert doc.time_bounds() == (480, 2400)
    pattern = convert_track(doc, 2)
    assert [(e.time, e.length) for e in pattern.events] == [(2880, 960)]


def test_empty_selection_is_a_conversion_error() -> None:
    doc = MidiDocument.from_bytes(_smf(CONDUCTOR, PIANO))
    before = doc.track(2).notes
    with pytest.raises(EmptySelection, match=r"\[480, 960\)"):
        convert_track(doc, 1, 480, 960)
    assert doc.track(2).notes == before


def test_full_range_makes_room_for_zero_length_notes() -> None:
    track = Track(
        notes=[
            Note(pitch=60, velocity=100, time=0, duration=100),
            Note(pitch=62, velocity=100, time=200, duration=0),
        ]
    )
    start, end = full_range(track)
    assert (start, end) == (0, 201)
    assert len(track.notes_in_range(start, end)) == 2

    lone = Track(notes=[Note(pitch=60, velocity=100, time=0, duration=0)])
    assert full_range(lone) == (-1, 1)
    assert full_range(Track()) == (0, 0)


def test_hanging_note_is_exported_with_zero_length() -> None:
    body = b"\x00\x90\x3C\x64" + EOT
    doc = MidiDocument.from_bytes(_smf(body))
    (event,) = convert_track(doc, 1).events
    assert (event.time, event.length) == (0, 0)


def test_smpte_file_rescales_from_resolved_rate() -> None:
    body = b"\x00\x90\x3C\x64\x8F\x00\x80\x3C\x00" + EOT  # 1920 ticks long
    doc = MidiDocument.from_bytes(_smf(body, division=0xE850))
    assert doc.ticks_per_quarter == 1920
    (event,) = convert_track(doc, 1).events
    assert event.length == 960


def test_convert_all_and_export_names() -> None:
    doc = MidiDocument.from_bytes(_smf(CONDUCTOR, PIANO, PIANO))
    converted = convert_all(doc)
    assert [c.track_number for c in converted] == [1, 2]
    exported = dict(export_patterns(doc, "/tmp/Song.mid"))
    assert sorted(exported) == ["Song_Track_1.mpcpattern", "Song_Track_2.mpcpattern"]
    restored = read_pattern(exported["Song_Track_2.mpcpattern"])
    assert [(e.time, e.length, e.pitch, e.velocity) for e in restored.events] == [
        (0, 960, 60, "0.787401574803149")
    ]
