"""Inference layer - Chord and scale recognition.

This layer turns a set of pitch classes into musical understanding:
- Pattern catalog (chord and scale interval sets)
- Match scoring of (root, pattern) candidates
- Ranked detection of chords and scales
- Completion suggestions for near-miss patterns
- Chord progression tracking

Pipeline: Pitch classes → [Scoring × Catalog] → Ranked results → [Suggestions, Progressions]
"""

from .patterns import (
    Category,
    PatternDefinition,
    CHORD_PATTERNS,
    SCALE_PATTERNS,
    all_patterns,
    get_pattern,
    find_pattern,
)
from .scoring import MatchScorer, MatchScore
from .detection import DetectionEngine, DetectionResult, QualityTier, pattern_label
from .suggestions import SuggestionFinder, Suggestion
from .progression import (
    ProgressionTracker,
    Progression,
    ProgressionChord,
    COMMON_PROGRESSIONS,
    roman_numeral,
)

__all__ = [
    # Catalog
    "Category",
    "PatternDefinition",
    "CHORD_PATTERNS",
    "SCALE_PATTERNS",
    "all_patterns",
    "get_pattern",
    "find_pattern",
    # Scoring
    "MatchScorer",
    "MatchScore",
    # Detection
    "DetectionEngine",
    "DetectionResult",
    "QualityTier",
    "pattern_label",
    # Suggestions
    "SuggestionFinder",
    "Suggestion",
    # Progressions
    "ProgressionTracker",
    "Progression",
    "ProgressionChord",
    "COMMON_PROGRESSIONS",
    "roman_numeral",
]
