"""Chord progressions - Group successive chord detections into timed progressions.

A progression grows while chords keep arriving within the configured timeout
of the previous one. After a quiet period it is sealed into a bounded
history. A single chord is never a progression.
"""

import itertools
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, List, Optional, Tuple

import numpy as np

from ..core import DetectionConfig, pitch_class_name
from ..core.constants import PROGRESSION_HISTORY_SIZE
from .detection import DetectionResult

# Common progressions to look for, by roman numerals
COMMON_PROGRESSIONS: Dict[str, Tuple[str, ...]] = {
    "I-IV-V-I": ("I", "IV", "V", "I"),
    "I-V-vi-IV": ("I", "V", "vi", "IV"),
    "I-vi-IV-V": ("I", "vi", "IV", "V"),
    "I-IV-vi-V": ("I", "IV", "vi", "V"),
    "vi-IV-I-V": ("vi", "IV", "I", "V"),
    "I-vi-ii-V": ("I", "vi", "ii", "V"),
    "I-V-vi-iii-IV": ("I", "V", "vi", "iii", "IV"),
    "ii-V-I": ("ii", "V", "I"),
    "IV-V-I": ("IV", "V", "I"),
    "ii-V": ("ii", "V"),
    "I-IV": ("I", "IV"),
    "I-V": ("I", "V"),
}

# Major-key scale degree by semitones above the key root
MAJOR_DEGREES = {0: 1, 2: 2, 4: 3, 5: 4, 7: 5, 9: 6, 11: 7}
NUMERALS = ["", "I", "II", "III", "IV", "V", "VI", "VII"]

MINOR_QUALITY_IDS = {
    "MINOR", "MINOR_6", "MINOR_7", "MINOR_9", "MINOR_ADD_9", "MINOR_MAJOR_7",
    "DIMINISHED", "DIMINISHED_7", "HALF_DIMINISHED_7",
}

# Mean chord confidence needed for each quality label
STRONG_CONFIDENCE = 0.85
MODERATE_CONFIDENCE = 0.7


def roman_numeral(result: DetectionResult, key_root: int) -> str:
    """
    Get roman numeral of a chord relative to a major key.

    Args:
        result: Detected chord
        key_root: Key root pitch class

    Returns:
        Roman numeral (e.g., "IV", "ii", "V7"); non-diatonic roots give "(symbol)"
    """
    degree = MAJOR_DEGREES.get((result.root - key_root) % 12)
    if degree is None:
        return f"({result.symbol})"

    numeral = NUMERALS[degree]
    if result.pattern_id in MINOR_QUALITY_IDS:
        numeral = numeral.lower()

    if "7" in result.pattern_id:
        numeral += "7"
    elif result.pattern_id == "DIMINISHED":
        numeral += "°"
    elif result.pattern_id == "AUGMENTED":
        numeral += "+"

    return numeral


@dataclass
class ProgressionChord:
    """One chord of a progression and how long it was held."""
    result: DetectionResult
    start_time: float
    end_time: float
    position: int

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


@dataclass
class Progression:
    """An ordered, time-bounded sequence of detected chords."""

    id: str
    key: int  # Root of the first chord; never reassigned
    chords: List[ProgressionChord] = field(default_factory=list)
    sealed: bool = False

    @property
    def start_time(self) -> float:
        return self.chords[0].start_time if self.chords else 0.0

    @property
    def end_time(self) -> float:
        return self.chords[-1].end_time if self.chords else 0.0

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def key_name(self) -> str:
        return pitch_class_name(self.key)

    @property
    def labels(self) -> List[str]:
        return [c.result.label for c in self.chords]

    @property
    def symbols(self) -> List[str]:
        return [c.result.symbol for c in self.chords]

    @property
    def roman_numerals(self) -> List[str]:
        return [roman_numeral(c.result, self.key) for c in self.chords]

    @property
    def common_name(self) -> Optional[str]:
        """Name of the longest common progression found in this one, if any."""
        numerals = self.roman_numerals
        found = []
        for name, pattern in COMMON_PROGRESSIONS.items():
            n = len(pattern)
            if any(tuple(numerals[i:i + n]) == pattern for i in range(len(numerals) - n + 1)):
                found.append((n, name))
        if not found:
            return None
        # Longest wins; table order breaks ties
        return max(found, key=lambda x: x[0])[1]

    @property
    def quality(self) -> str:
        """'strong', 'moderate' or 'weak', from mean chord confidence."""
        if not self.chords:
            return "weak"
        mean = float(np.mean([c.result.confidence for c in self.chords]))
        if mean >= STRONG_CONFIDENCE:
            return "strong"
        if mean >= MODERATE_CONFIDENCE:
            return "moderate"
        return "weak"

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "key": self.key_name,
            "chords": [
                {
                    "label": c.result.label,
                    "symbol": c.result.symbol,
                    "start_time": c.start_time,
                    "end_time": c.end_time,
                    "position": c.position,
                }
                for c in self.chords
            ],
            "roman_numerals": self.roman_numerals,
            "common_name": self.common_name,
            "quality": self.quality,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "sealed": self.sealed,
        }


class ProgressionTracker:
    """Track the running chord progression and seal it on inactivity.

    Feed it the top chord of each analysis with ``add_chord``. With a
    scheduler, a timer of ``progression_timeout_ms`` is re-armed after each
    chord and seals the progression when it fires. Without one, call
    ``expire`` to apply the same check.
    """

    def __init__(
        self,
        config: DetectionConfig,
        scheduler=None,
        clock: Callable[[], float] = time.monotonic,
        history_size: int = PROGRESSION_HISTORY_SIZE,
        on_finalize: Optional[Callable[[Progression], None]] = None,
    ):
        """
        Initialize ProgressionTracker.

        Args:
            config: Supplies progression_timeout_ms (read on every chord)
            scheduler: Optional scheduler for the inactivity timer
            clock: Time source in seconds, used when no time is passed
            history_size: Sealed progressions kept
            on_finalize: Called with each sealed progression
        """
        self.config = config
        self.scheduler = scheduler
        self.clock = clock
        self.on_finalize = on_finalize

        self._history: Deque[Progression] = deque(maxlen=history_size)
        self._draft: Optional[Progression] = None
        self._last_activity: Optional[float] = None
        self._timer = None
        self._ids = itertools.count(1)
        self._lock = threading.RLock()
        self.total_progressions = 0

    @property
    def timeout(self) -> float:
        """Inactivity timeout in seconds."""
        return self.config.progression_timeout_ms / 1000.0

    @property
    def current_progression(self) -> Optional[Progression]:
        """The running progression, once it holds at least two chords."""
        with self._lock:
            if self._draft is not None and len(self._draft.chords) >= 2:
                return self._draft
            return None

    @property
    def history(self) -> List[Progression]:
        """Sealed progressions, oldest first."""
        with self._lock:
            return list(self._history)

    def add_chord(self, result: DetectionResult, now: Optional[float] = None) -> Optional[Progression]:
        """
        Add the top chord of an analysis.

        A chord with the same label as the last one extends it instead of
        being appended again.

        Returns:
            The current progression, or None while fewer than two chords
        """
        with self._lock:
            now = self.clock() if now is None else now

            if self._timed_out(now):
                self._seal()

            if self._draft is None:
                self._draft = Progression(id=f"prog_{next(self._ids)}", key=result.root)

            chords = self._draft.chords
            if chords and chords[-1].result.label == result.label:
                chords[-1].end_time = now
            else:
                chords.append(ProgressionChord(
                    result=result, start_time=now, end_time=now, position=len(chords)
                ))

            self._last_activity = now
            self._arm_timer()
            return self.current_progression

    def expire(self, now: Optional[float] = None) -> Optional[Progression]:
        """
        Seal the running progression if the timeout has passed.

        Returns:
            The sealed progression, or None
        """
        with self._lock:
            now = self.clock() if now is None else now
            if not self._timed_out(now):
                return None
            return self._seal()

    def finalize(self) -> Optional[Progression]:
        """Seal the running progression now, regardless of timing."""
        with self._lock:
            return self._seal()

    def clear(self) -> None:
        """Drop the running progression and the history."""
        with self._lock:
            self._cancel_timer()
            self._draft = None
            self._last_activity = None
            self._history.clear()

    def _timed_out(self, now: float) -> bool:
        # Inclusive, matching a timer that fires at exactly the timeout
        return self._last_activity is not None and now - self._last_activity >= self.timeout

    def _seal(self) -> Optional[Progression]:
        self._cancel_timer()
        draft, self._draft = self._draft, None
        self._last_activity = None

        if draft is None or len(draft.chords) < 2:
            return None

        draft.sealed = True
        self._history.append(draft)
        self.total_progressions += 1
        if self.on_finalize is not None:
            self.on_finalize(draft)
        return draft

    def _arm_timer(self) -> None:
        if self.scheduler is None:
            return
        self._cancel_timer()
        self._timer = self.scheduler.call_later(self.timeout, self._on_timeout)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timeout(self) -> None:
        with self._lock:
            self._timer = None
            self._seal()
