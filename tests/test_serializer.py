"""Tests for .mpcpattern text output and reading it back."""

import json

import pytest

from mpc.errors import InvalidPattern
from mpc.pattern import Pattern, PatternEvent
from mpc.serializer import dumps_pattern, pattern_filename, read_pattern

PREAMBLE = [
    "            {",
    '                "type": 1,',
    '                "time": 0,',
    '                "len": 0,',
    '                "1": 0,',
    '                "2": 0.0,',
    '                "3": 0,',
    '                "mod": 0,',
    '                "modVal": 0.0',
    "            },",
    "            {",
    '                "type": 1,',
    '                "time": 0,',
    '                "len": 0,',
    '                "1": 32,',
    '                "2": 0.0,',
    '                "3": 0,',
    '                "mod": 0,',
    '                "modVal": 0.0',
    "            },",
    "            {",
    '                "type": 1,',
    '                "time": 0,',
    '                "len": 0,',
    '                "1": 130,',
    '                "2": 0.787401556968689,',
    '                "3": 0,',
    '                "mod": 0,',
    '                "modVal": 0.0',
]


def test_single_note_document() -> None:
    pattern = Pattern(
        events=[PatternEvent(time=0, length=960, pitch=60, velocity="0.787401574803149")]
    )
    expected = [
        "{",
        '    "pattern": {',
        '        "length": 9223372036854775807,',
        '        "events": [',
        *PREAMBLE,
        "            },",
        "            {",
        '                "type": 2,',
        '                "time": 0,',
        '                "len": 960,',
        '                "1": 60,',
        '                "2": 0.787401574803149,',
        '                "3": 0,',
        '                "mod": 0,',
        '                "modVal": 0.5',
        "            }",
        "        ]",
        "    }",
        "}",
    ]
    assert dumps_pattern(pattern) == "\r\n".join(expected) + "\r\n"


def test_empty_pattern_keeps_preamble() -> None:
    text = dumps_pattern(Pattern())
    lines = text.split("\r\n")
    assert lines[-1] == ""
    assert lines[4 : 4 + len(PREAMBLE)] == PREAMBLE
    assert lines[4 + len(PREAMBLE)] == "            }"
    assert '"length": 9223372036854775807' in text
    payload = json.loads(text)
    assert [e["type"] for e in payload["pattern"]["events"]] == [1, 1, 1]


def test_commas_between_note_events() -> None:
    events = [
        PatternEvent(time=t, length=10, pitch=60 + i, velocity="0.5")
        for i, t in enumerate((0, 960, 1920))
    ]
    payload = json.loads(dumps_pattern(Pattern(events=events)))
    notes = [e for e in payload["pattern"]["events"] if e["type"] == 2]
    assert [(e["time"], e["1"]) for e in notes] == [(0, 60), (960, 61), (1920, 62)]
    assert payload["pattern"]["length"] == 2**63 - 1


def test_no_bare_newlines() -> None:
    text = dumps_pattern(Pattern(events=[PatternEvent(time=0, length=1, pitch=1, velocity="1")]))
    assert "\n" not in text.replace("\r\n", "")


def test_velocity_text_is_written_verbatim() -> None:
    text = dumps_pattern(
        Pattern(events=[PatternEvent(time=0, length=1, pitch=60, velocity="0.50393700787401")])
    )
    assert '"2": 0.50393700787401,' in text


# ── reading ────────────────────────────────────────────────────────


def test_read_pattern_keeps_velocity_text() -> None:
    original = Pattern(
        events=[
            PatternEvent(time=0, length=960, pitch=60, velocity="0.787401574803149"),
            PatternEvent(time=960, length=480, pitch=67, velocity="1"),
        ]
    )
    restored = read_pattern(dumps_pattern(original))
    assert restored == original


@pytest.mark.parametrize(
    "text",
    [
        "",
        "{}",
        '{"pattern": {"length": 1}}',
        '{"pattern": {"length": 1, "events": [{"type": 2}]}}',
        '{"pattern": {"length": 1, "events": [3]}}',
    ],
)
def test_read_pattern_rejects_malformed_text(text: str) -> None:
    with pytest.raises(InvalidPattern):
        read_pattern(text)


# ── filenames ──────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "source, number, expected",
    [
        ("song.mid", 2, "song_Track_2.mpcpattern"),
        ("/music/set/my.song.mid", 1, "my_Track_1.mpcpattern"),
        ("groove", 3, "groove_Track_3.mpcpattern"),
        ("", 1, "midi_pattern_Track_1.mpcpattern"),
    ],
)
def test_pattern_filename(source: str, number: int, expected: str) -> None:
    assert pattern_filename(source, number) == expected
