"""Pattern catalog - Chord and scale interval patterns.

The catalog is built once at import time and never mutated. Each pattern is
an interval set relative to its root (always containing 0), reduced mod 12,
so a ninth is stored as a second.

Weights rank otherwise-equal matches: everyday chords and scales sit near
1.0, colour chords and exotic scales lower. Spelling-only synonyms (Ionian
for Major, Aeolian for Natural Minor, ...) are aliases, never separate
patterns, so no two patterns of a category share an interval set.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple


class Category(Enum):
    """Kind of musical pattern."""
    CHORD = "chord"
    SCALE = "scale"


@dataclass(frozen=True)
class PatternDefinition:
    """An immutable chord or scale definition."""

    id: str  # e.g. "MINOR_7"
    name: str  # Display name, e.g. "Minor 7th"
    category: Category
    intervals: FrozenSet[int]  # Semitones above the root, 0-11, always includes 0
    weight: float = 1.0  # Prior in (0, 1]
    aliases: Tuple[str, ...] = field(default_factory=tuple)
    symbol: str = ""  # Chord suffix, e.g. "m7"
    common: bool = False  # Eligible for the common-pattern boost

    @property
    def size(self) -> int:
        """Number of distinct intervals in the pattern."""
        return len(self.intervals)

    def pitch_classes(self, root: int) -> FrozenSet[int]:
        """Get the pattern's pitch classes above a given root."""
        return frozenset((root + i) % 12 for i in self.intervals)


def _pattern(category, id, name, intervals, weight, aliases=(), symbol="", common=False):
    reduced = frozenset(i % 12 for i in intervals) | {0}
    return PatternDefinition(
        id=id,
        name=name,
        category=category,
        intervals=reduced,
        weight=weight,
        aliases=tuple(aliases),
        symbol=symbol,
        common=common,
    )


def _chord(*args, **kwargs):
    return _pattern(Category.CHORD, *args, **kwargs)


def _scale(*args, **kwargs):
    return _pattern(Category.SCALE, *args, **kwargs)


CHORD_PATTERNS: Tuple[PatternDefinition, ...] = (
    # Triads
    _chord("MAJOR", "Major", [0, 4, 7], 1.0, ["M", "maj"], "", common=True),
    _chord("MINOR", "Minor", [0, 3, 7], 1.0, ["m", "min"], "m", common=True),
    _chord("DIMINISHED", "Diminished", [0, 3, 6], 0.8, ["dim", "°"], "dim"),
    _chord("AUGMENTED", "Augmented", [0, 4, 8], 0.7, ["aug", "+"], "aug"),
    _chord("POWER", "Power Fifth", [0, 7], 0.7, ["5"], "5"),
    # Suspensions
    _chord("SUS_2", "Suspended 2nd", [0, 2, 7], 0.8, ["sus2"], "sus2"),
    _chord("SUS_4", "Suspended 4th", [0, 5, 7], 0.8, ["sus4"], "sus4"),
    # Sevenths
    _chord("DOMINANT_7", "Dominant 7th", [0, 4, 7, 10], 1.0, ["7", "dom7"], "7", common=True),
    _chord("MAJOR_7", "Major 7th", [0, 4, 7, 11], 1.0, ["M7", "maj7"], "maj7", common=True),
    _chord("MINOR_7", "Minor 7th", [0, 3, 7, 10], 1.0, ["m7", "min7"], "m7", common=True),
    _chord("MINOR_MAJOR_7", "Minor-Major 7th", [0, 3, 7, 11], 0.6, ["mM7", "m(maj7)"], "m(maj7)"),
    _chord("HALF_DIMINISHED_7", "Half-Diminished 7th", [0, 3, 6, 10], 0.7, ["m7b5", "ø7"], "m7b5"),
    _chord("DIMINISHED_7", "Diminished 7th", [0, 3, 6, 9], 0.6, ["dim7", "°7"], "dim7"),
    _chord("DOMINANT_7_SUS_4", "Dominant 7th sus4", [0, 5, 7, 10], 0.7, ["7sus4"], "7sus4"),
    # Sixths
    _chord("MAJOR_6", "Major 6th", [0, 4, 7, 9], 0.8, ["6"], "6"),
    _chord("MINOR_6", "Minor 6th", [0, 3, 7, 9], 0.7, ["m6"], "m6"),
    # Extended
    _chord("ADD_9", "Add 9", [0, 4, 7, 14], 0.7, ["add9"], "add9"),
    _chord("MINOR_ADD_9", "Minor Add 9", [0, 3, 7, 14], 0.6, ["m(add9)"], "m(add9)"),
    _chord("DOMINANT_9", "Dominant 9th", [0, 4, 7, 10, 14], 0.7, ["9"], "9"),
    _chord("MAJOR_9", "Major 9th", [0, 4, 7, 11, 14], 0.7, ["M9", "maj9"], "maj9"),
    _chord("MINOR_9", "Minor 9th", [0, 3, 7, 10, 14], 0.7, ["m9", "min9"], "m9"),
)

SCALE_PATTERNS: Tuple[PatternDefinition, ...] = (
    # Major and minor
    _scale("MAJOR", "Major", [0, 2, 4, 5, 7, 9, 11], 1.0, ["Ionian"], common=True),
    _scale("NATURAL_MINOR", "Natural Minor", [0, 2, 3, 5, 7, 8, 10], 0.9,
           ["Aeolian", "Minor", "Geez"], common=True),
    _scale("HARMONIC_MINOR", "Harmonic Minor", [0, 2, 3, 5, 7, 8, 11], 0.85),
    _scale("MELODIC_MINOR", "Melodic Minor", [0, 2, 3, 5, 7, 9, 11], 0.8,
           ["Jazz Minor", "Hawaiian"]),
    # Modes
    _scale("DORIAN", "Dorian", [0, 2, 3, 5, 7, 9, 10], 0.8, common=True),
    _scale("PHRYGIAN", "Phrygian", [0, 1, 3, 5, 7, 8, 10], 0.7, ["Indian Descending"]),
    _scale("LYDIAN", "Lydian", [0, 2, 4, 6, 7, 9, 11], 0.8),
    _scale("MIXOLYDIAN", "Mixolydian", [0, 2, 4, 5, 7, 9, 10], 0.8, common=True),
    _scale("LOCRIAN", "Locrian", [0, 1, 3, 5, 6, 8, 10], 0.6),
    _scale("LYDIAN_DOMINANT", "Lydian Dominant", [0, 2, 4, 6, 7, 9, 10], 0.6, ["Lydian b7"]),
    _scale("LYDIAN_AUGMENTED", "Lydian Augmented", [0, 2, 4, 6, 8, 9, 11], 0.5, ["Lydian #5"]),
    # Pentatonic and blues
    _scale("MAJOR_PENTATONIC", "Major Pentatonic", [0, 2, 4, 7, 9], 0.9, common=True),
    _scale("MINOR_PENTATONIC", "Minor Pentatonic", [0, 3, 5, 7, 10], 0.9, common=True),
    _scale("BLUES", "Blues", [0, 3, 5, 6, 7, 10], 0.8, ["Minor Blues"]),
    _scale("MAJOR_BLUES", "Major Blues", [0, 2, 3, 4, 7, 9], 0.7),
    # Jazz and symmetric
    _scale("MAJOR_BEBOP", "Major Bebop", [0, 2, 4, 5, 7, 8, 9, 11], 0.6),
    _scale("MINOR_BEBOP", "Minor Bebop", [0, 2, 3, 4, 5, 7, 9, 10], 0.6),
    _scale("SUPER_LOCRIAN", "Super Locrian", [0, 1, 3, 4, 6, 8, 10], 0.5, ["Altered"]),
    _scale("WHOLE_TONE", "Whole Tone", [0, 2, 4, 6, 8, 10], 0.6),
    _scale("DIMINISHED", "Diminished", [0, 2, 3, 5, 6, 8, 9, 11], 0.5, ["Whole-Half Diminished"]),
    _scale("DOMINANT_DIMINISHED", "Dominant Diminished", [0, 1, 3, 4, 6, 7, 9, 10], 0.5,
           ["Half-Whole Diminished"]),
    _scale("AUGMENTED", "Augmented", [0, 3, 4, 7, 8, 11], 0.4),
    _scale("CHROMATIC", "Chromatic", list(range(12)), 0.3),
    # Exotic
    _scale("HUNGARIAN_MINOR", "Hungarian Minor", [0, 2, 3, 6, 7, 8, 11], 0.5, ["Hungarian Gypsy"]),
    _scale("HUNGARIAN_MAJOR", "Hungarian Major", [0, 3, 4, 6, 7, 9, 10], 0.5),
    _scale("BYZANTINE", "Byzantine", [0, 1, 4, 5, 7, 8, 11], 0.5, ["Double Harmonic"]),
    _scale("NEAPOLITAN_MINOR", "Neapolitan Minor", [0, 1, 3, 5, 7, 8, 11], 0.5),
    _scale("NEAPOLITAN_MAJOR", "Neapolitan Major", [0, 1, 3, 5, 7, 9, 11], 0.5),
    _scale("SPANISH_GYPSY", "Spanish Gypsy", [0, 1, 4, 5, 7, 8, 10], 0.5, ["Phrygian Dominant"]),
    _scale("ROMANIAN_MINOR", "Romanian Minor", [0, 2, 3, 6, 7, 9, 10], 0.5),
    _scale("ENIGMATIC", "Enigmatic", [0, 1, 4, 6, 8, 10, 11], 0.4),
    _scale("ARABIC", "Arabic", [0, 2, 4, 5, 6, 8, 10], 0.4),
    _scale("ALGERIAN", "Algerian", [0, 2, 3, 5, 6, 7, 8, 11], 0.4),
    _scale("PROMETHEUS", "Prometheus", [0, 2, 4, 6, 9, 10], 0.5),
    _scale("HIRAJOSHI", "Hirajoshi", [0, 2, 3, 7, 8], 0.5),
    _scale("JAPANESE", "Japanese", [0, 1, 5, 7, 10], 0.5),
    _scale("EGYPTIAN", "Egyptian", [0, 2, 5, 7, 10], 0.5),
    _scale("YO", "Yo", [0, 2, 5, 7, 9], 0.5),
    _scale("CHINESE", "Chinese", [0, 4, 6, 7, 11], 0.4),
    _scale("BALINESE", "Balinese", [0, 1, 3, 7, 8], 0.4),
    _scale("IWATO", "Iwato", [0, 1, 5, 6, 10], 0.4),
)

_CATALOG: Dict[Category, Tuple[PatternDefinition, ...]] = {
    Category.CHORD: CHORD_PATTERNS,
    Category.SCALE: SCALE_PATTERNS,
}

_BY_ID: Dict[Tuple[Category, str], PatternDefinition] = {
    (p.category, p.id): p for patterns in _CATALOG.values() for p in patterns
}

_BY_NAME: Dict[Tuple[Category, str], PatternDefinition] = {}
for _patterns in _CATALOG.values():
    for _p in _patterns:
        for _key in (_p.name, *_p.aliases):
            _BY_NAME.setdefault((_p.category, _key.lower()), _p)


def all_patterns(category: Category) -> List[PatternDefinition]:
    """Get every pattern of a category, in catalog order."""
    return list(_CATALOG[category])


def get_pattern(category: Category, pattern_id: str) -> PatternDefinition:
    """
    Get a pattern by id.

    Raises:
        KeyError: If no pattern of that category has the id.
    """
    return _BY_ID[(category, pattern_id)]


def find_pattern(category: Category, name: str) -> Optional[PatternDefinition]:
    """Resolve a display name or alias (case-insensitive), e.g. 'Aeolian'."""
    return _BY_NAME.get((category, name.strip().lower()))
