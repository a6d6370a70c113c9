"""Render patterns as ``.mpcpattern`` text and read them back.

Layout (CRLF line endings, 4-space indentation steps, trailing CRLF):

  {
      "pattern": {
          "length": 9223372036854775807,
          "events": [
              { three fixed type-1 preamble events },
              { one type-2 event per note },
          ]
      }
  }

Each event is written one field per line, in the order type, time, len,
"1", "2", "3", mod, modVal. Numeric text is written verbatim: velocity
strings keep the exact truncated digits they were built with, and the
preamble's "0.0" values stay "0.0".
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Tuple

from .errors import InvalidPattern
from .pattern import PATTERN_LENGTH, Pattern, PatternEvent

EOL = "\r\n"
PATTERN_SUFFIX = ".mpcpattern"
DEFAULT_BASE_NAME = "midi_pattern"

PREAMBLE_EVENT_TYPE = 1
# ("1", "2") values of the fixed preamble events; every other field is 0 / 0.0.
PREAMBLE_VALUES: Tuple[Tuple[int, str], ...] = (
    (0, "0.0"),
    (32, "0.0"),
    (130, "0.787401556968689"),
)

_EVENT_INDENT = " " * 12
_FIELD_INDENT = " " * 16


def _number_text(value: float) -> str:
    if isinstance(value, int):
        return str(value)
    text = repr(value)
    return text[:-2] if text.endswith(".0") else text


def _event_lines(fields: List[Tuple[str, str]], trailing_comma: bool) -> List[str]:
    lines = [_EVENT_INDENT + "{"]
    for idx, (key, value) in enumerate(fields):
        sep = "," if idx < len(fields) - 1 else ""
        lines.append(f'{_FIELD_INDENT}"{key}": {value}{sep}')
    lines.append(_EVENT_INDENT + "}" + ("," if trailing_comma else ""))
    return lines


def _preamble_fields(one: int, two: str) -> List[Tuple[str, str]]:
    return [
        ("type", str(PREAMBLE_EVENT_TYPE)),
        ("time", "0"),
        ("len", "0"),
        ("1", str(one)),
        ("2", two),
        ("3", "0"),
        ("mod", "0"),
        ("modVal", "0.0"),
    ]


def _note_fields(event: PatternEvent) -> List[Tuple[str, str]]:
    return [
        ("type", str(event.type)),
        ("time", str(event.time)),
        ("len", str(event.length)),
        ("1", str(event.pitch)),
        ("2", event.velocity),
        ("3", str(event.field3)),
        ("mod", str(event.mod)),
        ("modVal", _number_text(event.mod_val)),
    ]


def dumps_pattern(pattern: Pattern) -> str:
    """Return the ``.mpcpattern`` text for ``pattern``.

    The length line always carries the device sentinel, whatever
    ``pattern.length`` holds.
    """
    lines = [
        "{",
        '    "pattern": {',
        f'        "length": {PATTERN_LENGTH},',
        '        "events": [',
    ]
    events = pattern.events
    for idx, (one, two) in enumerate(PREAMBLE_VALUES):
        more = idx < len(PREAMBLE_VALUES) - 1 or bool(events)
        lines.extend(_event_lines(_preamble_fields(one, two), more))
    for idx, event in enumerate(events):
        lines.extend(_event_lines(_note_fields(event), idx < len(events) - 1))
    lines.extend(["        ]", "    }", "}"])
    return EOL.join(lines) + EOL


def read_pattern(text: str) -> Pattern:
    """Parse ``.mpcpattern`` text back into a ``Pattern``.

    Type-1 preamble events are dropped. Velocity text is kept exactly as
    written.
    """
    try:
        payload = json.loads(text, parse_float=str)
        body = payload["pattern"]
        raw_events = body["events"]
        length = int(body["length"])
        events: List[PatternEvent] = []
        for raw in raw_events:
            if int(raw["type"]) == PREAMBLE_EVENT_TYPE:
                continue
            velocity = raw["2"]
            events.append(
                PatternEvent(
                    type=int(raw["type"]),
                    time=int(raw["time"]),
                    length=int(raw["len"]),
                    pitch=int(raw["1"]),
                    velocity=velocity if isinstance(velocity, str) else str(velocity),
                    field3=int(raw.get("3", 0)),
                    mod=int(raw.get("mod", 0)),
                    mod_val=float(raw.get("modVal", 0)),
                )
            )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise InvalidPattern(f"not a valid mpcpattern document: {exc}") from exc
    return Pattern(events=events, length=length)


def pattern_filename(source_name: str, track_number: int) -> str:
    """``<base>_Track_<n>.mpcpattern``; the base stops at the first dot."""
    base = Path(source_name).name.split(".")[0] if source_name else ""
    return f"{base or DEFAULT_BASE_NAME}_Track_{track_number}{PATTERN_SUFFIX}"
