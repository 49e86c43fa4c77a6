"""Detection configuration - tuning knobs for the pattern-detection engine.

Every setter clamps its value into the valid range instead of rejecting it;
the same clamps run on construction, on ``update`` and on ``from_dict``.
Infinities clamp to the nearest bound and NaN falls back to the default.
"""

import json
import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Union

# (min, max) per numeric field
LIMITS = {
    "chord_sensitivity": (0.0, 1.0),
    "scale_sensitivity": (0.0, 1.0),
    "min_notes_for_chord": (2, 8),
    "min_notes_for_scale": (3, 12),
    "debounce_ms": (0, 2000),
    "max_analysis_ms": (1, 10000),
    "max_chord_results": (1, 50),
    "max_scale_results": (1, 50),
    "max_chord_suggestions": (1, 50),
    "max_scale_suggestions": (1, 50),
    "progression_timeout_ms": (500, 30000),
}


def _clamp(value, low, high):
    return max(low, min(high, value))


@dataclass
class DetectionConfig:
    """Configuration for chord/scale detection.

    Attributes:
        chord_sensitivity: Minimum confidence for a chord result (default: 0.7)
        scale_sensitivity: Minimum confidence for a scale result (default: 0.6)
        min_notes_for_chord: Distinct pitch classes needed to detect chords (default: 3)
        min_notes_for_scale: Distinct pitch classes needed to detect scales (default: 4)
        debounce_ms: Quiet time before a changed note set is analyzed (default: 300)
        max_analysis_ms: Soft time budget for one analysis pass (default: 100)
        max_chord_results: Chord results kept per analysis (default: 3)
        max_scale_results: Scale results kept per analysis (default: 2)
        prioritize_common_patterns: Boost common chords/scales (default: True)
        progression_timeout_ms: Inactivity that finalizes a progression (default: 3000)
        enable_suggestions: Compute completion suggestions (default: True)
        enable_progression: Track chord progressions (default: True)
        max_chord_suggestions: Chord suggestions kept per analysis (default: 5)
        max_scale_suggestions: Scale suggestions kept per analysis (default: 3)
    """

    chord_sensitivity: float = 0.7
    scale_sensitivity: float = 0.6
    min_notes_for_chord: int = 3
    min_notes_for_scale: int = 4
    debounce_ms: int = 300
    max_analysis_ms: int = 100
    max_chord_results: int = 3
    max_scale_results: int = 2
    prioritize_common_patterns: bool = True
    progression_timeout_ms: int = 3000
    enable_suggestions: bool = True
    enable_progression: bool = True
    max_chord_suggestions: int = 5
    max_scale_suggestions: int = 3

    def __post_init__(self):
        defaults = {f.name: f.default for f in fields(self)}
        for name, (low, high) in LIMITS.items():
            value = float(getattr(self, name))
            if math.isnan(value):
                value = defaults[name]
            value = _clamp(value, low, high)
            if isinstance(low, int) and isinstance(high, int):
                value = int(round(value))
            setattr(self, name, value)
        self.prioritize_common_patterns = bool(self.prioritize_common_patterns)
        self.enable_suggestions = bool(self.enable_suggestions)
        self.enable_progression = bool(self.enable_progression)

    # ------------------------------------------------------------------
    # Setters
    # ------------------------------------------------------------------

    def set_chord_sensitivity(self, sensitivity: float) -> None:
        self.update(chord_sensitivity=sensitivity)

    def set_scale_sensitivity(self, sensitivity: float) -> None:
        self.update(scale_sensitivity=sensitivity)

    def set_min_notes_for_chord(self, notes: int) -> None:
        self.update(min_notes_for_chord=notes)

    def set_min_notes_for_scale(self, notes: int) -> None:
        self.update(min_notes_for_scale=notes)

    def set_debounce_ms(self, ms: int) -> None:
        self.update(debounce_ms=ms)

    def set_progression_timeout_ms(self, ms: int) -> None:
        self.update(progression_timeout_ms=ms)

    def update(self, **changes: Any) -> None:
        """
        Apply several settings at once.

        All keys are validated before anything changes, so a bad key
        leaves the config untouched.

        Raises:
            TypeError: If a key is not a config field.
        """
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown config fields: {', '.join(sorted(unknown))}")

        merged = self.to_dict()
        merged.update(changes)
        clamped = DetectionConfig(**merged)
        for name in changes:
            setattr(self, name, getattr(clamped, name))

    def copy(self) -> "DetectionConfig":
        """Get an independent copy of this config."""
        return DetectionConfig(**self.to_dict())

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectionConfig":
        """Build a config from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def load(cls, path: Union[str, Path]) -> "DetectionConfig":
        """Load a config from a JSON file; missing keys keep their defaults."""
        with open(path, "r") as f:
            return cls.from_dict(json.load(f))

    def save(self, path: Union[str, Path]) -> None:
        """Save this config as JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
