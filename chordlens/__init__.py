"""chordlens - Chord and scale detection for live note input.

Architecture Layers:
    1. core/      - Note parsing, pitch classes, configuration, warnings
    2. inference/ - Pattern catalog, scoring, detection, suggestions, progressions
    3. realtime/  - Schedulers, debounced arbitration, detection sessions
"""

__version__ = "0.1.0"

# Core types
from .core import (
    ActiveNote,
    DetectionConfig,
    InvalidNoteName,
    parse_note,
    to_pitch_class,
    dedupe,
)

# Inference layer
from .inference import (
    Category,
    PatternDefinition,
    MatchScorer,
    DetectionEngine,
    DetectionResult,
    QualityTier,
    SuggestionFinder,
    Suggestion,
    ProgressionTracker,
    Progression,
)

# Realtime layer
from .realtime import (
    TemporalArbiter,
    ArbiterState,
    AnalysisOutcome,
    DetectionSession,
    ManualScheduler,
    AsyncioScheduler,
    ThreadingScheduler,
)

__all__ = [
    # Core
    "ActiveNote",
    "DetectionConfig",
    "InvalidNoteName",
    "parse_note",
    "to_pitch_class",
    "dedupe",
    # Inference
    "Category",
    "PatternDefinition",
    "MatchScorer",
    "DetectionEngine",
    "DetectionResult",
    "QualityTier",
    "SuggestionFinder",
    "Suggestion",
    "ProgressionTracker",
    "Progression",
    # Realtime
    "TemporalArbiter",
    "ArbiterState",
    "AnalysisOutcome",
    "DetectionSession",
    "ManualScheduler",
    "AsyncioScheduler",
    "ThreadingScheduler",
]
