"""Detection session - Wire the arbiter, suggestions, progressions and history.

A DetectionSession is what a host talks to: it takes note-set changes in
and exposes the latest results, suggestions, progressions, bounded
histories and statistics. Subscribers get every AnalysisOutcome.
"""

import json
import threading
import warnings
from collections import Counter, deque
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Deque, Dict, Iterable, List, Optional

from ..core import DetectionConfig, ListenerErrorWarning
from ..core.constants import CHORD_HISTORY_SIZE, SCALE_HISTORY_SIZE
from ..inference import (
    Category,
    DetectionEngine,
    DetectionResult,
    Progression,
    ProgressionTracker,
    Suggestion,
    SuggestionFinder,
)
from .arbiter import AnalysisOutcome, ArbiterState, TemporalArbiter
from .scheduler import Scheduler, ThreadingScheduler


@dataclass
class DetectionStats:
    """Summary statistics over everything detected in a session."""
    total_chords_detected: int = 0
    total_scales_detected: int = 0
    total_progressions: int = 0
    most_detected_chord: str = ""
    most_detected_scale: str = ""
    average_confidence: float = 0.0  # Mean chord confidence


@dataclass
class UserFeedback:
    correct: int = 0
    incorrect: int = 0
    missed: int = 0
    missed_labels: Counter = field(default_factory=Counter)  # Expected label -> times missed

    def to_dict(self) -> Dict:
        return {
            "correct": self.correct,
            "incorrect": self.incorrect,
            "missed": self.missed,
            "missed_labels": dict(self.missed_labels),
            "accuracy": self.accuracy,
        }

    @property
    def accuracy(self) -> float:
        """Correct over judged detections; 0.0 before any feedback."""
        return self.correct / max(1, self.correct + self.incorrect)


class DetectionHistory:
    """Bounded chord and scale histories, oldest evicted first.

    Counters behind the statistics keep running after eviction, so the
    stats describe the whole session, not just the window.
    """

    def __init__(
        self,
        chord_capacity: int = CHORD_HISTORY_SIZE,
        scale_capacity: int = SCALE_HISTORY_SIZE,
    ):
        self.chord_history: Deque[DetectionResult] = deque(maxlen=chord_capacity)
        self.scale_history: Deque[DetectionResult] = deque(maxlen=scale_capacity)
        self._chord_counts: Counter = Counter()
        self._scale_counts: Counter = Counter()
        self._confidence_sum = 0.0

    def record(self, chords: Iterable[DetectionResult], scales: Iterable[DetectionResult]) -> None:
        for chord in chords:
            self.chord_history.append(chord)
            self._chord_counts[chord.label] += 1
            self._confidence_sum += chord.confidence
        for scale in scales:
            self.scale_history.append(scale)
            self._scale_counts[scale.label] += 1

    def recent_chords(self, count: int = 5) -> List[DetectionResult]:
        return list(self.chord_history)[-count:] if count > 0 else []

    def recent_scales(self, count: int = 5) -> List[DetectionResult]:
        return list(self.scale_history)[-count:] if count > 0 else []

    def clear_chords(self) -> None:
        self.chord_history.clear()

    def clear_scales(self) -> None:
        self.scale_history.clear()

    def clear(self) -> None:
        """Clear both histories and reset statistics."""
        self.clear_chords()
        self.clear_scales()
        self._chord_counts.clear()
        self._scale_counts.clear()
        self._confidence_sum = 0.0

    def stats(self, total_progressions: int = 0) -> DetectionStats:
        total_chords = sum(self._chord_counts.values())
        return DetectionStats(
            total_chords_detected=total_chords,
            total_scales_detected=sum(self._scale_counts.values()),
            total_progressions=total_progressions,
            most_detected_chord=_most_common(self._chord_counts),
            most_detected_scale=_most_common(self._scale_counts),
            average_confidence=self._confidence_sum / total_chords if total_chords else 0.0,
        )


def _most_common(counts: Counter) -> str:
    # Ties go to the label seen first
    return counts.most_common(1)[0][0] if counts else ""


class DetectionSession:
    """Real-time chord and scale detection for a stream of note sets.

    Results are published from the scheduler's timer callbacks, which may
    run on other threads; every read and write of session state goes
    through one re-entrant lock.

    Example::

        session = DetectionSession(scheduler=ManualScheduler())
        session.note_set_changed(["C4", "E4", "G4"])
        session.scheduler.advance(0.3)
        session.current_chords[0].label  # "C Major"
    """

    def __init__(
        self,
        config: Optional[DetectionConfig] = None,
        engine: Optional[DetectionEngine] = None,
        scheduler: Optional[Scheduler] = None,
        suggestion_finder: Optional[SuggestionFinder] = None,
    ):
        """
        Initialize DetectionSession.

        Args:
            config: Detection settings (default: DetectionConfig())
            engine: Detection engine (default: DetectionEngine())
            scheduler: Timer source (default: ThreadingScheduler())
            suggestion_finder: Suggestion finder (default: SuggestionFinder())
        """
        self.config = config or DetectionConfig()
        self.engine = engine or DetectionEngine()
        self.scheduler = scheduler or ThreadingScheduler()
        self.suggestion_finder = suggestion_finder or SuggestionFinder()

        self._lock = threading.RLock()
        self.tracker = ProgressionTracker(
            self.config, scheduler=self.scheduler, clock=self.scheduler.now
        )
        self.history = DetectionHistory()
        self.feedback = UserFeedback()
        self.arbiter = TemporalArbiter(self.engine, self.config, self.scheduler, self._publish)

        self.current_chords: List[DetectionResult] = []
        self.current_scales: List[DetectionResult] = []
        self.chord_suggestions: List[Suggestion] = []
        self.scale_suggestions: List[Suggestion] = []
        self.last_outcome: Optional[AnalysisOutcome] = None

        self._listeners: List[Callable[[AnalysisOutcome], None]] = []

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def note_set_changed(self, notes: Iterable) -> None:
        """Report the complete set of notes now held."""
        self.arbiter.note_set_changed(notes)

    def force_analysis(self) -> None:
        self.arbiter.force_analysis()

    def enable(self) -> None:
        self.arbiter.enable()

    def disable(self) -> None:
        """Stop detection and clear current results."""
        self.arbiter.disable()

    @property
    def state(self) -> ArbiterState:
        return self.arbiter.state

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    @property
    def current_progression(self) -> Optional[Progression]:
        return self.tracker.current_progression

    @property
    def progression_history(self) -> List[Progression]:
        return self.tracker.history

    @property
    def chord_history(self) -> List[DetectionResult]:
        with self._lock:
            return list(self.history.chord_history)

    @property
    def scale_history(self) -> List[DetectionResult]:
        with self._lock:
            return list(self.history.scale_history)

    @property
    def stats(self) -> DetectionStats:
        with self._lock:
            return self.history.stats(self.tracker.total_progressions)

    def on_update(self, callback: Callable[[AnalysisOutcome], None]) -> Callable[[], None]:
        """
        Subscribe to analysis outcomes.

        Returns:
            A function that unsubscribes the callback
        """
        with self._lock:
            if callback not in self._listeners:
                self._listeners.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def clear_results(self) -> None:
        """Drop current results and suggestions; histories are kept."""
        with self._lock:
            self.current_chords = []
            self.current_scales = []
            self.chord_suggestions = []
            self.scale_suggestions = []

    def clear_history(self) -> None:
        """Clear chord, scale and progression histories and statistics."""
        with self._lock:
            self.history.clear()
            self.tracker.clear()
            self.tracker.total_progressions = 0

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def mark_correct(self) -> None:
        with self._lock:
            self.feedback.correct += 1

    def mark_incorrect(self) -> None:
        with self._lock:
            self.feedback.incorrect += 1

    def report_missed(self, expected: Optional[str] = None) -> None:
        """Count a chord the detector failed to report, by expected label if known."""
        with self._lock:
            self.feedback.missed += 1
            if expected:
                self.feedback.missed_labels[expected] += 1

    @property
    def accuracy(self) -> float:
        return self.feedback.accuracy

    def reset_stats(self) -> None:
        with self._lock:
            self.history.clear()
            self.tracker.total_progressions = 0
            self.feedback = UserFeedback()

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def summary(self) -> Dict:
        """Snapshot of the session as a plain dict."""
        with self._lock:
            progression = self.current_progression
            return {
                "state": self.state.value,
                "current_chords": [c.label for c in self.current_chords],
                "current_scales": [s.label for s in self.current_scales],
                "chord_suggestions": len(self.chord_suggestions),
                "scale_suggestions": len(self.scale_suggestions),
                "current_progression": progression.labels if progression else None,
                "history_size": len(self.history.chord_history) + len(self.history.scale_history),
                "analysis_count": self.arbiter.analysis_count,
                "last_duration_ms": self.arbiter.last_duration_ms,
                "stats": vars(self.stats),
                "accuracy": self.accuracy,
            }

    def export_json(self, indent: int = 2) -> str:
        """Export config, histories, statistics and feedback as JSON."""
        with self._lock:
            data = {
                "config": self.config.to_dict(),
                "chord_history": [c.to_dict() for c in self.history.chord_history],
                "scale_history": [s.to_dict() for s in self.history.scale_history],
                "progression_history": [p.to_dict() for p in self.progression_history],
                "stats": vars(self.stats),
                "user_feedback": self.feedback.to_dict(),
                "export_date": datetime.now().isoformat(),
            }
        return json.dumps(data, indent=indent)

    # ------------------------------------------------------------------
    # Arbiter sink
    # ------------------------------------------------------------------

    def _publish(self, outcome: AnalysisOutcome) -> None:
        with self._lock:
            if outcome.cleared:
                self.clear_results()
            else:
                outcome = self._enrich(outcome)
                self.current_chords = outcome.chords
                self.current_scales = outcome.scales
                self.chord_suggestions = outcome.chord_suggestions
                self.scale_suggestions = outcome.scale_suggestions
                self.history.record(outcome.chords, outcome.scales)

            self.last_outcome = outcome
            listeners = list(self._listeners)

        self._notify(outcome, listeners)

    def _enrich(self, outcome: AnalysisOutcome) -> AnalysisOutcome:
        chord_suggestions: List[Suggestion] = []
        scale_suggestions: List[Suggestion] = []
        if self.config.enable_suggestions:
            chord_suggestions = self.suggestion_finder.suggest(
                outcome.notes, Category.CHORD, self.config
            )
            scale_suggestions = self.suggestion_finder.suggest(
                outcome.notes, Category.SCALE, self.config
            )

        progression = None
        if self.config.enable_progression and outcome.top_chord is not None:
            progression = self.tracker.add_chord(outcome.top_chord, now=outcome.timestamp)

        return replace(
            outcome,
            chord_suggestions=chord_suggestions,
            scale_suggestions=scale_suggestions,
            progression=progression,
        )

    def _notify(self, outcome: AnalysisOutcome, listeners) -> None:
        for callback in listeners:
            try:
                callback(outcome)
            except Exception as e:
                warnings.warn(
                    f"Error in update listener {callback!r}: {e}",
                    ListenerErrorWarning,
                    stacklevel=2,
                )
