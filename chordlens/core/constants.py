"""Global constants for chordlens."""

# Pitch names
PITCH_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
FLAT_PITCH_NAMES = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

# Natural letters to pitch class
LETTER_PITCH_CLASSES = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}

NUM_PITCH_CLASSES = 12
DEFAULT_OCTAVE = 4

# Scoring
EXTRA_NOTE_PENALTY = 0.2
COMPLETE_BONUS = 0.1
COMMON_PATTERN_BOOST = 1.1

# Quality tier thresholds on completeness
PERFECT_COMPLETENESS = 0.9
GOOD_COMPLETENESS = 0.75
PARTIAL_COMPLETENESS = 0.6

# History capacities
CHORD_HISTORY_SIZE = 100
SCALE_HISTORY_SIZE = 50
PROGRESSION_HISTORY_SIZE = 20
