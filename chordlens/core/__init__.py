"""Core types and constants for chordlens."""

from .note import (
    ActiveNote,
    parse_note,
    parse_notes,
    to_pitch_class,
    pitch_class_name,
    dedupe,
    pitch_class_vector,
    format_pitch_classes,
)
from .config import DetectionConfig
from .errors import (
    InvalidNoteName,
    ChordlensWarning,
    InvalidNoteWarning,
    AnalysisTimeoutWarning,
    ListenerErrorWarning,
)
from .constants import (
    PITCH_NAMES,
    FLAT_PITCH_NAMES,
    NUM_PITCH_CLASSES,
)

__all__ = [
    "ActiveNote",
    "parse_note",
    "parse_notes",
    "to_pitch_class",
    "pitch_class_name",
    "dedupe",
    "pitch_class_vector",
    "format_pitch_classes",
    "DetectionConfig",
    "InvalidNoteName",
    "ChordlensWarning",
    "InvalidNoteWarning",
    "AnalysisTimeoutWarning",
    "ListenerErrorWarning",
    "PITCH_NAMES",
    "FLAT_PITCH_NAMES",
    "NUM_PITCH_CLASSES",
]
