"""Convert Standard MIDI Files into MPC ``.mpcpattern`` documents."""

from .convert import (  # noqa: F401
    ConvertedTrack,
    convert_all,
    convert_track,
    export_patterns,
    full_range,
)
from .document import DEFAULT_BPM, MidiDocument, detect_tempo, load_document  # noqa: F401
from .errors import (  # noqa: F401
    ConversionError,
    EmptySelection,
    InvalidMidiFile,
    InvalidPattern,
    MalformedHeader,
    MidiError,
    MpcError,
    OverlongQuantity,
    TruncatedStream,
    UnrecoverableEvent,
    UnresolvedTrack,
)
from .header import MidiHeader  # noqa: F401
from .model import Note, Track  # noqa: F401
from .pattern import (  # noqa: F401
    PATTERN_LENGTH,
    TARGET_PPQ,
    Pattern,
    PatternEvent,
    PatternStats,
    build_pattern,
    merge_patterns,
    pattern_stats,
    scale_ticks,
    validate_pattern,
    velocity_string,
)
from .serializer import dumps_pattern, pattern_filename, read_pattern  # noqa: F401
from .track_reader import PAIRING_FIFO, PAIRING_SINGLE, read_track  # noqa: F401
