"""Temporal arbiter - Decide when a changing note set gets analyzed.

State machine::

    IDLE --change--> PENDING --debounce--> RUNNING --done--> IDLE
      ^                 |  ^                  |
      |                 +--+ change           | change: queued, re-debounced
      |                    (timer restarts)   v          after the run
    DISABLED <--------- disable() from any state

At most one analysis runs at a time, and the most recent note set is never
dropped: a change that arrives mid-run is debounced again once the run ends.
A pass discarded by ``disable()`` still counts as running until it returns.

Every outcome carries an increasing pass number and reaches the sink under
a publish lock; an outcome older than the last one published is dropped,
so a slow sink can never leave a stale result on top.
"""

import itertools
import threading
import time
import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Optional

from ..core import AnalysisTimeoutWarning, DetectionConfig, dedupe
from ..inference import Category, DetectionEngine, DetectionResult, Suggestion
from ..inference.progression import Progression
from .scheduler import Scheduler, TimerHandle


class ArbiterState(Enum):
    IDLE = "idle"
    PENDING = "pending"
    RUNNING = "running"
    DISABLED = "disabled"


@dataclass(frozen=True)
class AnalysisOutcome:
    """Everything published by one analysis pass."""

    notes: FrozenSet[int]
    chords: List[DetectionResult] = field(default_factory=list)
    scales: List[DetectionResult] = field(default_factory=list)
    timestamp: float = 0.0  # Scheduler time at publication
    duration_ms: float = 0.0
    timed_out: bool = False
    cleared: bool = False  # Published by disable(); consumers drop their results
    chord_suggestions: List[Suggestion] = field(default_factory=list)
    scale_suggestions: List[Suggestion] = field(default_factory=list)
    progression: Optional[Progression] = None

    @property
    def top_chord(self) -> Optional[DetectionResult]:
        return self.chords[0] if self.chords else None

    @property
    def top_scale(self) -> Optional[DetectionResult]:
        return self.scales[0] if self.scales else None


class TemporalArbiter:
    """Debounce note-set changes and run the detection engine.

    All collaborators are passed in; the arbiter keeps no global state.
    Transitions happen under a re-entrant lock so a threaded scheduler can
    fire the timer while another thread reports changes. The engine and
    the sink run outside the lock.
    """

    def __init__(
        self,
        engine: DetectionEngine,
        config: DetectionConfig,
        scheduler: Scheduler,
        sink: Callable[[AnalysisOutcome], None],
        clock: Callable[[], float] = time.perf_counter,
    ):
        """
        Initialize TemporalArbiter.

        Args:
            engine: Detection engine to run
            config: Live config; read at the start of every decision
            scheduler: Source of cancellable debounce timers
            sink: Receives each AnalysisOutcome
            clock: Seconds clock used to time analysis passes
        """
        self.engine = engine
        self.config = config
        self.scheduler = scheduler
        self.sink = sink
        self.clock = clock

        self._lock = threading.RLock()
        self._publish_lock = threading.RLock()
        self._state = ArbiterState.IDLE
        self._timer: Optional[TimerHandle] = None
        self._latest: Optional[FrozenSet[int]] = None
        self._last_analyzed: Optional[FrozenSet[int]] = None
        self._queued = False
        self._generation = 0
        self._in_flight = False
        self._deferred = False
        self._pass_counter = itertools.count(1)
        self._last_published = 0

        self.analysis_count = 0
        self.last_duration_ms = 0.0

    @property
    def state(self) -> ArbiterState:
        return self._state

    @property
    def last_analyzed(self) -> Optional[FrozenSet[int]]:
        return self._last_analyzed

    @property
    def latest(self) -> Optional[FrozenSet[int]]:
        """Most recent note set received."""
        return self._latest

    @property
    def enabled(self) -> bool:
        return self._state is not ArbiterState.DISABLED

    def note_set_changed(self, notes: Iterable) -> None:
        """
        Report a complete replacement note set.

        Accepts note names, ActiveNotes or pitch classes. Invalid names are
        dropped with an InvalidNoteWarning.
        """
        pitch_classes = dedupe(notes)

        with self._lock:
            self._latest = pitch_classes

            if self._state is ArbiterState.DISABLED:
                return

            if self._state is ArbiterState.RUNNING:
                self._queued = True
                return

            if pitch_classes == self._last_analyzed:
                # Back to what is already published
                self._cancel_timer()
                self._state = ArbiterState.IDLE
                return

            self._start_debounce()

    def force_analysis(self) -> None:
        """Re-analyze the latest note set even if it was already analyzed."""
        with self._lock:
            if self._state is ArbiterState.DISABLED or self._latest is None:
                return
            self._last_analyzed = None
            if self._state is ArbiterState.RUNNING:
                self._queued = True
            else:
                self._start_debounce()

    def disable(self) -> None:
        """Stop analyzing, drop pending and in-flight work, clear published results."""
        with self._lock:
            if self._state is ArbiterState.DISABLED:
                return
            self._cancel_timer()
            self._queued = False
            self._deferred = False
            self._generation += 1
            self._last_analyzed = None
            self._state = ArbiterState.DISABLED
            cleared = AnalysisOutcome(
                notes=frozenset(), timestamp=self.scheduler.now(), cleared=True
            )
            pass_id = next(self._pass_counter)
        self._publish(cleared, pass_id)

    def enable(self) -> None:
        """Return to IDLE; nothing is analyzed until the next change."""
        with self._lock:
            if self._state is ArbiterState.DISABLED:
                self._state = ArbiterState.IDLE

    def _start_debounce(self) -> None:
        self._cancel_timer()
        self._timer = self.scheduler.call_later(self.config.debounce_ms / 1000.0, self._on_timer)
        self._state = ArbiterState.PENDING

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        with self._lock:
            if self._state is not ArbiterState.PENDING:
                return
            self._timer = None
            if self._in_flight:
                # A discarded pass has not returned yet
                self._deferred = True
                return
            self._in_flight = True
            self._state = ArbiterState.RUNNING
            notes = self._latest
            generation = self._generation

        try:
            chords, scales, duration_ms = self._analyze(notes)
        except BaseException:
            with self._lock:
                if self._generation == generation:
                    self._state = ArbiterState.IDLE
                self._pass_done()
            raise

        timed_out = duration_ms > self.config.max_analysis_ms
        if timed_out:
            warnings.warn(
                f"Analysis took {duration_ms:.1f}ms (budget {self.config.max_analysis_ms}ms)",
                AnalysisTimeoutWarning,
                stacklevel=2,
            )

        with self._lock:
            if self._generation != generation:
                # Disabled mid-run; result is discarded
                self._pass_done()
                return

            self._last_analyzed = notes
            self.analysis_count += 1
            self.last_duration_ms = duration_ms
            self._state = ArbiterState.IDLE
            self._pass_done()

            outcome = AnalysisOutcome(
                notes=notes,
                chords=chords,
                scales=scales,
                timestamp=self.scheduler.now(),
                duration_ms=duration_ms,
                timed_out=timed_out,
            )
            pass_id = next(self._pass_counter)

            if self._queued:
                self._queued = False
                if self._latest != notes:
                    self._start_debounce()

        self._publish(outcome, pass_id)

    def _pass_done(self) -> None:
        # Called with the lock held
        self._in_flight = False
        if self._deferred:
            self._deferred = False
            if self._state is ArbiterState.PENDING:
                self._start_debounce()

    def _publish(self, outcome: AnalysisOutcome, pass_id: int) -> None:
        with self._publish_lock:
            if pass_id < self._last_published:
                return
            self._last_published = pass_id
            self.sink(outcome)

    def _analyze(self, notes: FrozenSet[int]):
        start = self.clock()
        chords = self.engine.detect(notes, Category.CHORD, self.config)
        scales = self.engine.detect(notes, Category.SCALE, self.config)
        duration_ms = (self.clock() - start) * 1000.0
        return chords, scales, duration_ms
