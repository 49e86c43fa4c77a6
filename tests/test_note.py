"""Tests for note parsing and pitch-class helpers."""

import pytest
import numpy as np
from pathlib import Path
import sys

# Add package root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from chordlens.core import (
    ActiveNote,
    InvalidNoteName,
    InvalidNoteWarning,
    dedupe,
    format_pitch_classes,
    parse_note,
    parse_notes,
    pitch_class_name,
    pitch_class_vector,
    to_pitch_class,
)


class TestParseNote:
    """Tests for parse_note and to_pitch_class."""

    @pytest.mark.parametrize("name,expected", [
        ("C", 0), ("C#", 1), ("Db", 1), ("D", 2), ("Eb", 3), ("E", 4),
        ("F", 5), ("F#", 6), ("Gb", 6), ("G", 7), ("Ab", 8), ("A", 9),
        ("Bb", 10), ("B", 11),
    ])
    def test_pitch_classes(self, name, expected):
        """Test every natural and common accidental."""
        assert to_pitch_class(name) == expected

    def test_octave_is_ignored_for_pitch_class(self):
        """Test that octave does not change the pitch class."""
        assert to_pitch_class("C2") == to_pitch_class("C4") == to_pitch_class("C7") == 0

    def test_octave_parsed(self):
        """Test octave numbers, including negative."""
        assert parse_note("A4").octave == 4
        assert parse_note("Bb-1").octave == -1
        assert parse_note("G10").octave == 10

    def test_default_octave(self):
        """Test that a bare name gets octave 4."""
        assert parse_note("E").octave == 4

    def test_lowercase_letter(self):
        """Test lowercase letters are accepted."""
        assert to_pitch_class("f#3") == 6

    def test_wraparound_spellings(self):
        """Test enharmonic spellings across B/C and E/F."""
        assert to_pitch_class("B#") == 0
        assert to_pitch_class("Cb") == 11
        assert to_pitch_class("E#") == 5
        assert to_pitch_class("Fb") == 4

    def test_double_accidentals(self):
        """Test double sharps and flats."""
        assert to_pitch_class("C##") == 2
        assert to_pitch_class("Dbb") == 0

    def test_unicode_accidentals(self):
        """Test ♯ and ♭."""
        assert to_pitch_class("F♯") == 6
        assert to_pitch_class("B♭") == 10

    def test_midi_number(self):
        """Test MIDI numbering with C4 = 60."""
        assert parse_note("C4").midi == 60
        assert parse_note("A4").midi == 69

    @pytest.mark.parametrize("bad", ["H", "", "C#x", "4C", "Do", "C 4"])
    def test_invalid_names_raise(self, bad):
        """Test malformed names raise InvalidNoteName."""
        with pytest.raises(InvalidNoteName):
            to_pitch_class(bad)

    def test_non_string_raises(self):
        """Test non-string input raises InvalidNoteName."""
        with pytest.raises(InvalidNoteName):
            parse_note(None)

    def test_invalid_name_is_value_error(self):
        """Test InvalidNoteName can be caught as ValueError."""
        with pytest.raises(ValueError):
            to_pitch_class("X9")


class TestPitchClassHelpers:
    """Tests for set-level helpers."""

    def test_dedupe_removes_octaves(self):
        """Test that octave duplicates collapse."""
        assert dedupe(["C3", "E4", "G4", "C5"]) == frozenset({0, 4, 7})

    def test_dedupe_enharmonics(self):
        """Test that enharmonic spellings collapse."""
        assert dedupe(["C#", "Db", "Db5"]) == frozenset({1})

    def test_dedupe_mixed_input(self):
        """Test names, ActiveNotes and ints together."""
        notes = ["C4", ActiveNote("E4", 4, 4), 19]
        assert dedupe(notes) == frozenset({0, 4, 7})

    def test_dedupe_drops_invalid_with_warning(self):
        """Test malformed names are dropped and the rest kept."""
        with pytest.warns(InvalidNoteWarning):
            result = dedupe(["C", "H", "G"])
        assert result == frozenset({0, 7})

    def test_dedupe_empty(self):
        """Test empty input."""
        assert dedupe([]) == frozenset()

    def test_parse_notes_keeps_order(self):
        """Test parse_notes preserves input order."""
        parsed = parse_notes(["G3", "C4"])
        assert [n.pitch_class for n in parsed] == [7, 0]

    def test_pitch_class_name(self):
        """Test sharp and flat spellings."""
        assert pitch_class_name(3) == "D#"
        assert pitch_class_name(3, use_flats=True) == "Eb"
        assert pitch_class_name(15) == "D#"

    def test_pitch_class_vector(self):
        """Test the boolean mask."""
        vector = pitch_class_vector({0, 4, 7})
        assert vector.dtype == bool
        assert vector.shape == (12,)
        assert np.flatnonzero(vector).tolist() == [0, 4, 7]

    def test_format_pitch_classes(self):
        """Test sorted display."""
        assert format_pitch_classes({7, 0, 4}) == "C, E, G"
        assert format_pitch_classes({10, 3}, use_flats=True, sep=" ") == "Eb Bb"
