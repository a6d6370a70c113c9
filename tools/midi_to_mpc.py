#!/usr/bin/env python3
"""Convert MIDI tracks into MPC .mpcpattern files.

Examples
--------
Every track with notes, full span, next to the input:
    python tools/midi_to_mpc.py song.mid

Second note track, one bar at 480 ppq, into a directory:
    python tools/midi_to_mpc.py song.mid --track 2 --start 1920 --end 3840 -o out/

Batch from a JSON export request:
    python tools/midi_to_mpc.py --request exports/song.json

Analysis only:
    python tools/midi_to_mpc.py song.mid --info
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
from typing import List, Tuple

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from mpc.convert import convert_track
from mpc.document import MidiDocument, detect_tempo
from mpc.errors import EmptySelection, MpcError
from mpc.export_request import load_export_request, run_export_request
from mpc.serializer import dumps_pattern, pattern_filename
from mpc.track_reader import PAIRING_FIFO, PAIRING_POLICIES

logger = logging.getLogger(__name__)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Convert MIDI note tracks to .mpcpattern files (960 ppq)",
    )
    parser.add_argument("input", nargs="?", type=Path, help="Input MIDI file")
    parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for .mpcpattern files (default: input directory)",
    )
    parser.add_argument(
        "--track",
        type=int,
        action="append",
        default=None,
        help="Note-track number to export, 1-based among tracks with notes (repeatable)",
    )
    parser.add_argument("--start", type=int, default=None, help="Range start tick")
    parser.add_argument("--end", type=int, default=None, help="Range end tick (exclusive)")
    parser.add_argument(
        "--origin",
        type=int,
        default=None,
        help="Tick mapped to pattern time 0 (default: earliest note in the file)",
    )
    parser.add_argument(
        "--pairing",
        choices=sorted(PAIRING_POLICIES),
        default=PAIRING_FIFO,
        help="Policy for overlapping note-ons on one channel/pitch (default: fifo)",
    )
    parser.add_argument(
        "--request",
        type=Path,
        default=None,
        help="JSON export request; replaces the positional input and range options",
    )
    parser.add_argument(
        "--info",
        action="store_true",
        help="Show header and track summary only",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Warnings only")
    return parser


def show_info(document: MidiDocument, source: Path) -> None:
    header = document.header
    print(f"MIDI: {source.name}")
    print(
        f"Format {header.format}, {header.track_count} track(s) declared, "
        f"{len(document.tracks)} decoded"
    )
    division = "SMPTE" if header.is_smpte else "PPQ"
    print(f"Division: 0x{header.division:04X} ({division}) -> {header.ticks_per_quarter} ticks/quarter")
    if document.tempo_bpm is not None:
        print(f"Tempo: {document.tempo_bpm:.1f} BPM")
    print()

    number = 0
    for idx, track in enumerate(document.tracks, start=1):
        label = "--"
        if track.notes:
            number += 1
            label = f"T{number}"
        lo, hi = track.time_bounds()
        flags = ""
        if track.truncated:
            flags += " [truncated]"
        print(
            f"  chunk {idx:<3} {label:<4} {track.name or '(unnamed)':<24} "
            f"ch{track.channel + 1:<3} {track.instrument_name or '-':<24} "
            f"notes={track.note_count:<5} ticks={lo}-{hi}{flags}"
        )


def _convert_from_args(args: argparse.Namespace, document: MidiDocument) -> List[Tuple[str, str]]:
    # Without --track, a window that misses some tracks skips them.
    skip_empty = not args.track
    numbers = args.track or [number for number, _ in document.tracks_with_notes()]
    results: List[Tuple[str, str]] = []
    for number in numbers:
        try:
            pattern = convert_track(
                document,
                number,
                start=args.start,
                end=args.end,
                origin=args.origin,
            )
        except EmptySelection as exc:
            if not skip_empty:
                raise
            logger.info("skipping T%d: %s", number, exc)
            continue
        print(f"  T{number}: {len(pattern.events)} note event(s)")
        results.append((pattern_filename(args.input.name, number), dumps_pattern(pattern)))
    if not results:
        raise EmptySelection(
            f"no note track has notes in tick range [{args.start}, {args.end})"
        )
    return results


def _write_outputs(results: List[Tuple[str, str]], output_dir: Path) -> None:
    output_dir = output_dir.expanduser().resolve()
    output_dir.mkdir(parents=True, exist_ok=True)
    for filename, text in results:
        out_path = output_dir / filename
        out_path.write_bytes(text.encode("utf-8"))
        print(f"Wrote {out_path}")


def main(argv: List[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s:%(name)s:%(message)s")

    if args.request is None and args.input is None:
        parser.error("an input MIDI file or --request is required")

    try:
        if args.request is not None:
            request = load_export_request(args.request)
            print(f"Request: {request.export_count} export(s) from {request.input.name}")
            results = run_export_request(request)
            _write_outputs(results, args.output_dir or request.output_dir)
            return 0

        data = args.input.read_bytes()
        document = MidiDocument.from_bytes(data, pairing=args.pairing)

        if args.info:
            show_info(document.with_tempo(detect_tempo(data)), args.input)
            return 0

        if not document.tracks_with_notes():
            raise MpcError(f"{args.input.name} contains no notes")
        print(f"MIDI: {args.input.name} ({document.ticks_per_quarter} ticks/quarter)")
        results = _convert_from_args(args, document)
        _write_outputs(results, args.output_dir or args.input.parent)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
