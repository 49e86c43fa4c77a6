"""Match scoring - Confidence of a (root, pattern) candidate against observed notes.

The observed notes are rotated onto each of the 12 roots at once with numpy,
so a whole pattern is scored per call. Matched/extra counts are integers and
the final confidence comes from the same scalar arithmetic for the batch and
the single-root path, which keeps both bit-identical.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List

import numpy as np

from ..core import NUM_PITCH_CLASSES, pitch_class_vector
from ..core.constants import COMMON_PATTERN_BOOST, COMPLETE_BONUS, EXTRA_NOTE_PENALTY
from .patterns import PatternDefinition

CONFIDENCE_DECIMALS = 6


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class MatchScore:
    """Score of one pattern at one root."""
    root: int
    pattern: PatternDefinition
    confidence: float
    completeness: float
    matched: FrozenSet[int] = field(default_factory=frozenset)  # Absolute pitch classes
    missing: FrozenSet[int] = field(default_factory=frozenset)
    extra: FrozenSet[int] = field(default_factory=frozenset)

    @property
    def is_complete(self) -> bool:
        return not self.missing


class MatchScorer:
    """Score observed pitch-class sets against chord and scale patterns.

    For a candidate (root, pattern), with the observed notes transposed so
    the root is 0:

        completeness = |matched| / |intervals|
        raw = clamp(completeness - extra_penalty * |extra| + complete_bonus)
        confidence = clamp(raw * weight [* common_boost])

    The complete bonus applies when every interval is present. The common
    boost applies to patterns flagged ``common`` when prioritization is on.
    """

    def __init__(
        self,
        extra_note_penalty: float = EXTRA_NOTE_PENALTY,
        complete_bonus: float = COMPLETE_BONUS,
        common_boost: float = COMMON_PATTERN_BOOST,
    ):
        """
        Initialize MatchScorer.

        Args:
            extra_note_penalty: Confidence lost per observed note outside the pattern
            complete_bonus: Bonus when all pattern intervals are present
            common_boost: Multiplier for common patterns when prioritized
        """
        self.extra_note_penalty = extra_note_penalty
        self.complete_bonus = complete_bonus
        self.common_boost = common_boost

    def confidence(
        self,
        matched: int,
        extra: int,
        pattern: PatternDefinition,
        prioritize_common: bool = True,
    ) -> float:
        """Confidence for given matched/extra counts."""
        if matched == 0 and extra == 0:
            return 0.0

        size = len(pattern.intervals)
        completeness = matched / size
        bonus = self.complete_bonus if matched == size else 0.0
        raw = _clamp01(completeness - self.extra_note_penalty * extra + bonus)

        confidence = raw * pattern.weight
        if prioritize_common and pattern.common:
            confidence *= self.common_boost
        # Rounded so equal scores reached by different arithmetic tie exactly
        return round(_clamp01(confidence), CONFIDENCE_DECIMALS)

    def score(
        self,
        observed: Iterable[int],
        root: int,
        pattern: PatternDefinition,
        prioritize_common: bool = True,
    ) -> MatchScore:
        """
        Score one pattern at one root.

        Args:
            observed: Observed pitch classes (duplicates ignored)
            root: Candidate root pitch class
            pattern: Pattern to test
            prioritize_common: Apply the common-pattern boost

        Returns:
            MatchScore with confidence and completeness in [0, 1]
        """
        observed = frozenset(p % NUM_PITCH_CLASSES for p in observed)
        root = root % NUM_PITCH_CLASSES
        expected = pattern.pitch_classes(root)

        matched = observed & expected
        extra = observed - expected
        missing = expected - observed

        if not observed:
            return MatchScore(root, pattern, 0.0, 0.0, missing=missing)

        return MatchScore(
            root=root,
            pattern=pattern,
            confidence=self.confidence(len(matched), len(extra), pattern, prioritize_common),
            completeness=len(matched) / len(pattern.intervals),
            matched=frozenset(matched),
            missing=frozenset(missing),
            extra=frozenset(extra),
        )

    def score_all_roots(
        self,
        observed: Iterable[int],
        pattern: PatternDefinition,
        prioritize_common: bool = True,
    ) -> List[MatchScore]:
        """
        Score a pattern at every root 0-11.

        Returns:
            12 MatchScores, indexed by root
        """
        observed = frozenset(p % NUM_PITCH_CLASSES for p in observed)
        if not observed:
            return [self.score(observed, root, pattern) for root in range(NUM_PITCH_CLASSES)]

        observed_mask = pitch_class_vector(observed)
        pattern_mask = pitch_class_vector(pattern.intervals)

        # Row r is the observed set transposed down by r semitones
        rotations = np.stack([np.roll(observed_mask, -r) for r in range(NUM_PITCH_CLASSES)])
        matched_counts = (rotations & pattern_mask).sum(axis=1)
        extra_counts = len(observed) - matched_counts

        scores = []
        size = len(pattern.intervals)
        for root in range(NUM_PITCH_CLASSES):
            expected = pattern.pitch_classes(root)
            matched = int(matched_counts[root])
            scores.append(MatchScore(
                root=root,
                pattern=pattern,
                confidence=self.confidence(
                    matched, int(extra_counts[root]), pattern, prioritize_common
                ),
                completeness=matched / size,
                matched=observed & expected,
                missing=expected - observed,
                extra=observed - expected,
            ))
        return scores
