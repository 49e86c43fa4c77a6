"""Note model - note names, pitch classes and active-note snapshots."""

import re
import warnings
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Union

import numpy as np

from .constants import (
    DEFAULT_OCTAVE,
    FLAT_PITCH_NAMES,
    LETTER_PITCH_CLASSES,
    NUM_PITCH_CLASSES,
    PITCH_NAMES,
)
from .errors import InvalidNoteName, InvalidNoteWarning

# Letter, any run of accidentals, optional (possibly negative) octave
NOTE_PATTERN = re.compile(r"^([A-Ga-g])([#b♯♭]*)(-?\d+)?$")

ACCIDENTAL_OFFSETS = {"#": 1, "♯": 1, "b": -1, "♭": -1}


@dataclass(frozen=True)
class ActiveNote:
    """A note currently held down, as reported by the note-capture layer."""

    name: str  # Spelling as received (e.g., "Eb4")
    pitch_class: int  # 0-11, where 0=C
    octave: int = DEFAULT_OCTAVE

    @property
    def midi(self) -> int:
        """MIDI pitch (C4 = 60)."""
        return (self.octave + 1) * 12 + self.pitch_class

    @property
    def pitch_name(self) -> str:
        """Canonical sharp spelling with octave (e.g., 'D#4')."""
        return f"{PITCH_NAMES[self.pitch_class]}{self.octave}"


NoteLike = Union[str, int, ActiveNote]


def parse_note(name: str) -> ActiveNote:
    """
    Parse a note name into an ActiveNote.

    Accepts a letter, any number of sharps/flats and an optional octave
    number, e.g. ``"C"``, ``"f#3"``, ``"Bb-1"``, ``"C##5"``. A missing
    octave defaults to 4.

    Raises:
        InvalidNoteName: If the name does not parse.
    """
    if not isinstance(name, str):
        raise InvalidNoteName(name)

    match = NOTE_PATTERN.match(name.strip())
    if not match:
        raise InvalidNoteName(name)

    letter, accidentals, octave = match.groups()
    offset = sum(ACCIDENTAL_OFFSETS[a] for a in accidentals)
    pitch_class = (LETTER_PITCH_CLASSES[letter.upper()] + offset) % NUM_PITCH_CLASSES

    return ActiveNote(
        name=name.strip(),
        pitch_class=pitch_class,
        octave=int(octave) if octave is not None else DEFAULT_OCTAVE,
    )


def to_pitch_class(name: str) -> int:
    """Map a note name to its pitch class (0-11)."""
    return parse_note(name).pitch_class


def pitch_class_name(pitch_class: int, use_flats: bool = False) -> str:
    """Get the display name of a pitch class (e.g., 1 -> 'C#' or 'Db')."""
    names = FLAT_PITCH_NAMES if use_flats else PITCH_NAMES
    return names[pitch_class % NUM_PITCH_CLASSES]


def parse_notes(notes: Iterable[NoteLike]) -> list:
    """
    Convert mixed note input to ActiveNotes, dropping anything malformed.

    Ints are read as pitch classes (reduced mod 12) in the default octave.
    Each invalid entry emits an InvalidNoteWarning; the rest are kept.
    """
    parsed = []
    for note in notes:
        if isinstance(note, ActiveNote):
            parsed.append(note)
        elif isinstance(note, (int, np.integer)) and not isinstance(note, bool):
            pc = int(note) % NUM_PITCH_CLASSES
            parsed.append(ActiveNote(name=PITCH_NAMES[pc], pitch_class=pc))
        else:
            try:
                parsed.append(parse_note(note))
            except InvalidNoteName as e:
                warnings.warn(f"Dropping note: {e}", InvalidNoteWarning, stacklevel=2)
    return parsed


def dedupe(notes: Iterable[NoteLike]) -> FrozenSet[int]:
    """Reduce notes to their set of pitch classes, ignoring octave."""
    return frozenset(n.pitch_class for n in parse_notes(notes))


def pitch_class_vector(pitch_classes: Iterable[int]) -> np.ndarray:
    """Get a 12-element boolean mask of the given pitch classes."""
    vector = np.zeros(NUM_PITCH_CLASSES, dtype=bool)
    for pc in pitch_classes:
        vector[pc % NUM_PITCH_CLASSES] = True
    return vector


def format_pitch_classes(
    pitch_classes: Iterable[int], use_flats: bool = False, sep: str = ", "
) -> str:
    """Render pitch classes in ascending order, e.g. {7, 0, 4} -> 'C, E, G'."""
    return sep.join(pitch_class_name(pc, use_flats) for pc in sorted(pitch_classes))
