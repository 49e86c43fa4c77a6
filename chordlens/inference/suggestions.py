"""Suggestions - Near-miss chords and scales, and the notes that complete them."""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List

from ..core import DetectionConfig, NUM_PITCH_CLASSES, format_pitch_classes
from .detection import pattern_label
from .patterns import Category, PatternDefinition, all_patterns


@dataclass(frozen=True)
class Suggestion:
    """A pattern that is a few notes away from the current set."""
    label: str
    root: int
    category: Category
    missing: FrozenSet[int]  # Pitch classes to add
    confidence: float  # Fraction of the pattern already present
    reason: str
    pattern: PatternDefinition = field(repr=False)

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "label": self.label,
            "category": self.category.value,
            "missing": format_pitch_classes(self.missing).split(", "),
            "confidence": round(self.confidence, 4),
            "reason": self.reason,
        }


class SuggestionFinder:
    """Find patterns that the current notes almost form.

    A (root, pattern) pair qualifies when at least ``min_present`` of its
    notes are already held and between 1 and ``max_missing`` are not.
    Notes held outside the pattern do not disqualify it.
    """

    # category: (min_present, max_missing)
    THRESHOLDS = {
        Category.CHORD: (2, 2),
        Category.SCALE: (3, 3),
    }

    def suggest(
        self,
        observed: Iterable[int],
        category: Category,
        config: DetectionConfig,
    ) -> List[Suggestion]:
        """
        Get completion suggestions, best first.

        Args:
            observed: Observed pitch classes
            category: Chord or scale
            config: Supplies the suggestion limit for the category

        Returns:
            Suggestions sorted by confidence, then weight, size and label
        """
        observed = frozenset(int(p) % NUM_PITCH_CLASSES for p in observed)
        if not observed:
            return []

        min_present, max_missing = self.THRESHOLDS[category]
        limit = (
            config.max_chord_suggestions if category is Category.CHORD
            else config.max_scale_suggestions
        )

        suggestions = []
        for pattern in all_patterns(category):
            for root in range(NUM_PITCH_CLASSES):
                expected = pattern.pitch_classes(root)
                present = len(expected & observed)
                missing = expected - observed
                if present < min_present or not 1 <= len(missing) <= max_missing:
                    continue

                label = pattern_label(root, pattern)
                suggestions.append(Suggestion(
                    label=label,
                    root=root,
                    category=category,
                    missing=frozenset(missing),
                    confidence=present / pattern.size,
                    reason=f"Add {format_pitch_classes(missing)} to complete {label}",
                    pattern=pattern,
                ))

        suggestions.sort(key=lambda s: (-s.confidence, -s.pattern.weight, s.pattern.size, s.label))
        return suggestions[:limit]
