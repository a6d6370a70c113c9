"""Error taxonomy for MIDI decoding and pattern conversion."""

from __future__ import annotations


class MpcError(ValueError):
    """Base class for every error raised by this package."""


class MidiError(MpcError):
    """The byte buffer could not be decoded as a Standard MIDI File."""


class InvalidMidiFile(MidiError):
    """Empty buffer, or the first chunk is not ``MThd``."""


class MalformedHeader(MidiError):
    """Header chunk too short, or its division resolves to a non-positive tick rate."""


class TruncatedStream(MidiError):
    """The buffer ended before a value or chunk was complete."""


class OverlongQuantity(TruncatedStream):
    """A variable-length quantity kept its continuation bit past the 4-byte limit."""


class ConversionError(MpcError):
    """A single export request could not be satisfied."""


class UnresolvedTrack(ConversionError):
    """The requested track number has no decoded track."""


class EmptySelection(ConversionError):
    """The requested tick range selects no notes."""


class InvalidPattern(MpcError):
    """Text could not be read back as a ``.mpcpattern`` document."""


class UnrecoverableEvent(MidiError):
    """A status byte inside a track that cannot be decoded or skipped."""
