"""Detection engine - Rank chord and scale candidates for a note set.

Enumerates every (root, pattern) pair of a category, keeps candidates at or
above the configured sensitivity, and orders them by:

1. confidence, descending
2. pattern size, ascending (simpler pattern wins a tie)
3. label, ascending
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from ..core import (
    DetectionConfig,
    InvalidNoteName,
    NUM_PITCH_CLASSES,
    dedupe,
    pitch_class_name,
    to_pitch_class,
)
from ..core.constants import GOOD_COMPLETENESS, PARTIAL_COMPLETENESS, PERFECT_COMPLETENESS
from .patterns import Category, PatternDefinition, all_patterns, find_pattern
from .scoring import MatchScore, MatchScorer


class QualityTier(Enum):
    """How much of a pattern is present."""
    PERFECT = "Perfect"
    GOOD = "Good"
    PARTIAL = "Partial"
    WEAK = "Weak"

    @classmethod
    def from_completeness(cls, completeness: float) -> "QualityTier":
        if completeness >= PERFECT_COMPLETENESS:
            return cls.PERFECT
        if completeness >= GOOD_COMPLETENESS:
            return cls.GOOD
        if completeness >= PARTIAL_COMPLETENESS:
            return cls.PARTIAL
        return cls.WEAK


def pattern_label(root: int, pattern: PatternDefinition) -> str:
    """Display label of a candidate, e.g. 'A Natural Minor'."""
    return f"{pitch_class_name(root)} {pattern.name}"


@dataclass(frozen=True)
class DetectionResult:
    """A ranked chord or scale candidate."""

    label: str  # Root name + pattern name, e.g. "C Major"
    root: int
    category: Category
    confidence: float
    completeness: float
    quality_tier: QualityTier
    timestamp: float
    pattern: PatternDefinition = field(repr=False)
    matched: FrozenSet[int] = field(default_factory=frozenset)
    missing: FrozenSet[int] = field(default_factory=frozenset)

    @property
    def pattern_id(self) -> str:
        return self.pattern.id

    @property
    def root_name(self) -> str:
        return pitch_class_name(self.root)

    @property
    def symbol(self) -> str:
        """Short symbol (e.g., 'Cm7'); scales fall back to the label."""
        if self.category is Category.CHORD:
            return f"{self.root_name}{self.pattern.symbol}"
        return self.label

    @property
    def size(self) -> int:
        return self.pattern.size

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "label": self.label,
            "symbol": self.symbol,
            "root": self.root_name,
            "category": self.category.value,
            "pattern_id": self.pattern_id,
            "confidence": round(self.confidence, 4),
            "completeness": round(self.completeness, 4),
            "quality_tier": self.quality_tier.value,
            "matched": sorted(self.matched),
            "missing": sorted(self.missing),
            "timestamp": self.timestamp,
        }


def ranking_key(result: DetectionResult):
    return (-result.confidence, result.size, result.label)


def _normalize(observed: Iterable[int]) -> FrozenSet[int]:
    return frozenset(int(p) % NUM_PITCH_CLASSES for p in observed)


class DetectionEngine:
    """Identify chords and scales in a set of pitch classes.

    Stateless apart from its scorer and clock: the same input and config
    always give the same ordered results.
    """

    def __init__(
        self,
        scorer: Optional[MatchScorer] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize DetectionEngine.

        Args:
            scorer: Scorer to use (default: MatchScorer with default constants)
            clock: Timestamp source for results
        """
        self.scorer = scorer or MatchScorer()
        self.clock = clock

    def rank(
        self,
        observed: Iterable[int],
        category: Category,
        config: DetectionConfig,
    ) -> List[DetectionResult]:
        """
        Rank every candidate at or above the category's sensitivity.

        Args:
            observed: Observed pitch classes
            category: Chord or scale
            config: Detection settings

        Returns:
            Sorted DetectionResults, untruncated; empty when too few notes
        """
        observed = _normalize(observed)
        if len(observed) < self._min_notes(category, config):
            return []

        sensitivity = self._sensitivity(category, config)
        timestamp = self.clock()

        results = []
        for pattern in all_patterns(category):
            for score in self.scorer.score_all_roots(
                observed, pattern, config.prioritize_common_patterns
            ):
                if score.confidence >= sensitivity:
                    results.append(self._to_result(score, category, timestamp))

        results.sort(key=ranking_key)
        return results

    def detect(
        self,
        observed: Iterable[int],
        category: Category,
        config: DetectionConfig,
    ) -> List[DetectionResult]:
        """Get the top candidates, truncated to the category's result limit."""
        limit = (
            config.max_chord_results if category is Category.CHORD
            else config.max_scale_results
        )
        return self.rank(observed, category, config)[:limit]

    def detect_chords(self, observed: Iterable[int], config: DetectionConfig) -> List[DetectionResult]:
        return self.detect(observed, Category.CHORD, config)

    def detect_scales(self, observed: Iterable[int], config: DetectionConfig) -> List[DetectionResult]:
        return self.detect(observed, Category.SCALE, config)

    def detect_notes(
        self,
        notes: Iterable,
        category: Category,
        config: DetectionConfig,
    ) -> List[DetectionResult]:
        """Detect from note names (e.g. ``["C4", "E4", "G4"]``); bad names are dropped."""
        return self.detect(dedupe(notes), category, config)

    def best_match(
        self,
        observed: Iterable[int],
        category: Category,
        config: DetectionConfig,
    ) -> Optional[DetectionResult]:
        """Get the single best candidate, or None."""
        results = self.rank(observed, category, config)
        return results[0] if results else None

    def confidence_for(
        self,
        label: str,
        observed: Iterable[int],
        category: Category,
        config: DetectionConfig,
    ) -> float:
        """
        Confidence of a named candidate such as ``"C Major 7th"``.

        Unknown roots or pattern names score 0.0.
        """
        root_name, _, pattern_name = label.strip().partition(" ")
        pattern = find_pattern(category, pattern_name)
        if pattern is None:
            return 0.0
        try:
            root = to_pitch_class(root_name)
        except InvalidNoteName:
            return 0.0

        return self.scorer.score(
            _normalize(observed), root, pattern, config.prioritize_common_patterns
        ).confidence

    @staticmethod
    def _min_notes(category: Category, config: DetectionConfig) -> int:
        if category is Category.CHORD:
            return config.min_notes_for_chord
        return config.min_notes_for_scale

    @staticmethod
    def _sensitivity(category: Category, config: DetectionConfig) -> float:
        if category is Category.CHORD:
            return config.chord_sensitivity
        return config.scale_sensitivity

    @staticmethod
    def _to_result(score: MatchScore, category: Category, timestamp: float) -> DetectionResult:
        return DetectionResult(
            label=pattern_label(score.root, score.pattern),
            root=score.root,
            category=category,
            confidence=score.confidence,
            completeness=score.completeness,
            quality_tier=QualityTier.from_completeness(score.completeness),
            timestamp=timestamp,
            pattern=score.pattern,
            matched=score.matched,
            missing=score.missing,
        )
