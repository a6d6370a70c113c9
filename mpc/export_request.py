from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from .convert import convert_track
from .document import MidiDocument
from .serializer import dumps_pattern, pattern_filename
from .track_reader import PAIRING_FIFO, PAIRING_POLICIES


SUPPORTED_REQUEST_VERSION = 1
MAX_TICK = 2**32 - 1


@dataclass(frozen=True)
class TrackExport:
    track: int  # export number among note-bearing tracks
    start: Optional[int] = None
    end: Optional[int] = None
    origin: Optional[int] = None


@dataclass(frozen=True)
class ExportRequest:
    version: int
    input: Path
    output_dir: Path
    pairing: str = PAIRING_FIFO
    exports: List[TrackExport] = field(default_factory=list)

    @property
    def export_count(self) -> int:
        return len(self.exports)


def _require_dict(value: object, *, where: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"{where} must be an object")
    return value


def _require_list(value: object, *, where: str) -> list:
    if not isinstance(value, list):
        raise ValueError(f"{where} must be an array")
    return value


def _int_in_range(value: object, *, where: str, low: int, high: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{where} must be an integer")
    if not (low <= value <= high):
        raise ValueError(f"{where} must be in [{low}, {high}]")
    return value


def _optional_tick(obj: dict, name: str, *, where: str) -> Optional[int]:
    if obj.get(name) is None:
        return None
    return _int_in_range(obj[name], where=f"{where}.{name}", low=0, high=MAX_TICK)


def _resolve(raw: str, base_dir: Path) -> Path:
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return path


def _parse_export(raw: object, *, where: str) -> TrackExport:
    obj = _require_dict(raw, where=where)
    track = _int_in_range(obj.get("track"), where=f"{where}.track", low=1, high=65535)
    start = _optional_tick(obj, "start", where=where)
    end = _optional_tick(obj, "end", where=where)
    if start is not None and end is not None and end <= start:
        raise ValueError(f"{where}.end must be greater than {where}.start")
    return TrackExport(
        track=track,
        start=start,
        end=end,
        origin=_optional_tick(obj, "origin", where=where),
    )


def parse_export_request(data: object, *, base_dir: Path) -> ExportRequest:
    obj = _require_dict(data, where="request")

    version = _int_in_range(
        obj.get("version", SUPPORTED_REQUEST_VERSION),
        where="version",
        low=1,
        high=65535,
    )
    if version != SUPPORTED_REQUEST_VERSION:
        raise ValueError(
            f"unsupported request version {version}; "
            f"supported version is {SUPPORTED_REQUEST_VERSION}"
        )

    input_raw = obj.get("input")
    if not isinstance(input_raw, str) or not input_raw:
        raise ValueError("input must be a non-empty string path")
    input_path = _resolve(input_raw, base_dir)

    output_raw = obj.get("output_dir")
    if output_raw is None:
        output_dir = input_path.parent
    elif isinstance(output_raw, str) and output_raw:
        output_dir = _resolve(output_raw, base_dir)
    else:
        raise ValueError("output_dir must be a non-empty string path when provided")

    pairing = obj.get("pairing", PAIRING_FIFO)
    if pairing not in PAIRING_POLICIES:
        valid = ", ".join(sorted(PAIRING_POLICIES))
        raise ValueError(f"pairing must be one of: {valid}")

    exports_raw = _require_list(obj.get("exports"), where="exports")
    if not exports_raw:
        raise ValueError("exports must contain at least one entry")
    exports = [
        _parse_export(entry, where=f"exports[{idx}]")
        for idx, entry in enumerate(exports_raw)
    ]

    return ExportRequest(
        version=version,
        input=input_path,
        output_dir=output_dir,
        pairing=pairing,
        exports=exports,
    )


def load_export_request(path: Path | str) -> ExportRequest:
    request_path = Path(path).expanduser().resolve()
    payload = json.loads(request_path.read_text(encoding="utf-8"))
    return parse_export_request(payload, base_dir=request_path.parent)


def run_export_request(
    request: ExportRequest, document: Optional[MidiDocument] = None
) -> List[Tuple[str, str]]:
    """Convert every export in ``request``; returns ``(filename, text)`` pairs.

    ``document`` may be passed to reuse an already decoded input file.
    """
    if document is None:
        document = MidiDocument.from_bytes(
            request.input.read_bytes(), pairing=request.pairing
        )
    results: List[Tuple[str, str]] = []
    for entry in request.exports:
        pattern = convert_track(
            document,
            entry.track,
            start=entry.start,
            end=entry.end,
            origin=entry.origin,
        )
        results.append(
            (pattern_filename(request.input.name, entry.track), dumps_pattern(pattern))
        )
    return results
