"""Tests for the temporal arbiter and schedulers."""

import asyncio
import threading
import time

import pytest
from pathlib import Path
import sys

# Add package root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from chordlens.core import AnalysisTimeoutWarning, DetectionConfig
from chordlens.inference import DetectionEngine
from chordlens.realtime import (
    ArbiterState,
    AsyncioScheduler,
    ManualScheduler,
    TemporalArbiter,
    ThreadingScheduler,
)


class CountingEngine(DetectionEngine):
    """DetectionEngine that records what it was asked to analyze.

    ``during_run`` is called once per analysis pass, while the arbiter is
    RUNNING, to simulate input arriving mid-analysis.
    """

    def __init__(self):
        super().__init__()
        self.calls = []
        self.during_run = None

    def detect(self, observed, category, config):
        self.calls.append((frozenset(observed), category))
        if self.during_run is not None and len(self.calls) % 2 == 1:
            self.during_run()
        return super().detect(observed, category, config)

    @property
    def passes(self):
        # chords and scales are detected once each per pass
        return [notes for notes, _ in self.calls[::2]]


class Harness:
    def __init__(self, debounce_ms=150, clock=None, **config):
        self.scheduler = ManualScheduler()
        self.engine = CountingEngine()
        self.config = DetectionConfig(debounce_ms=debounce_ms, **config)
        self.outcomes = []
        kwargs = {"clock": clock} if clock is not None else {}
        self.arbiter = TemporalArbiter(
            self.engine, self.config, self.scheduler, self.outcomes.append, **kwargs
        )

    def change_at(self, t_ms, notes):
        self.scheduler.advance_to(t_ms / 1000.0)
        self.arbiter.note_set_changed(notes)


class TestManualScheduler:
    """Tests for ManualScheduler."""

    def test_fires_in_order(self):
        """Test callbacks fire by due time, ties in scheduling order."""
        scheduler = ManualScheduler()
        fired = []
        scheduler.call_later(0.2, lambda: fired.append("b"))
        scheduler.call_later(0.1, lambda: fired.append("a"))
        scheduler.call_later(0.2, lambda: fired.append("c"))

        assert scheduler.advance(0.5) == 3
        assert fired == ["a", "b", "c"]

    def test_cancel(self):
        """Test cancelled callbacks never fire."""
        scheduler = ManualScheduler()
        fired = []
        handle = scheduler.call_later(0.1, lambda: fired.append(1))
        handle.cancel()

        assert scheduler.pending() == 0
        scheduler.advance(1.0)
        assert fired == []

    def test_now_is_due_time_inside_callback(self):
        """Test callbacks see their own due time."""
        scheduler = ManualScheduler()
        seen = []
        scheduler.call_later(0.25, lambda: seen.append(scheduler.now()))
        scheduler.advance(1.0)
        assert seen == [0.25]
        assert scheduler.now() == 1.0

    def test_nested_scheduling(self):
        """Test callbacks can schedule further calls within the same advance."""
        scheduler = ManualScheduler()
        fired = []
        scheduler.call_later(0.1, lambda: scheduler.call_later(0.1, lambda: fired.append(1)))
        scheduler.advance(0.5)
        assert fired == [1]

    def test_run_all(self):
        """Test run_all drains everything."""
        scheduler = ManualScheduler()
        fired = []
        scheduler.call_later(5.0, lambda: fired.append(1))
        assert scheduler.run_all() == 1
        assert scheduler.now() == 5.0


class TestTemporalArbiter:
    """Tests for TemporalArbiter."""

    def test_initial_state(self):
        """Test the arbiter starts idle."""
        h = Harness()
        assert h.arbiter.state is ArbiterState.IDLE
        assert h.arbiter.last_analyzed is None

    def test_debounce_then_analyze(self):
        """Test a change analyzes after the debounce time."""
        h = Harness(debounce_ms=300)
        h.arbiter.note_set_changed(["C4", "E4", "G4"])
        assert h.arbiter.state is ArbiterState.PENDING

        h.scheduler.advance(0.29)
        assert h.outcomes == []

        h.scheduler.advance(0.02)
        assert len(h.outcomes) == 1
        assert h.outcomes[0].chords[0].label == "C Major"
        assert h.arbiter.state is ArbiterState.IDLE
        assert h.arbiter.last_analyzed == frozenset({0, 4, 7})
        assert h.arbiter.analysis_count == 1

    def test_burst_coalesces_to_last_set(self):
        """Test rapid changes within the debounce give one analysis of the last set."""
        h = Harness(debounce_ms=100)
        sets = [["C"], ["C", "E"], ["C", "E", "G"], ["C", "E", "G", "B"], ["D", "F", "A"]]
        for i, notes in enumerate(sets):
            h.change_at(i * 20, notes)
        h.scheduler.advance(1.0)

        assert h.engine.passes == [frozenset({2, 5, 9})]
        assert len(h.outcomes) == 1
        assert h.outcomes[0].chords[0].label == "D Minor"

    def test_staggered_changes_fire_once_after_last(self):
        """Test changes at 0, 40, 90 and 200ms with a 150ms debounce."""
        h = Harness(debounce_ms=150)
        h.change_at(0, ["C"])
        h.change_at(40, ["C", "E"])
        h.change_at(90, ["C", "E", "G"])
        h.change_at(200, ["F", "A", "C"])

        h.scheduler.advance_to(0.34)
        assert h.outcomes == []

        h.scheduler.advance_to(0.5)
        assert len(h.outcomes) == 1
        assert h.outcomes[0].notes == frozenset({5, 9, 0})
        assert h.outcomes[0].timestamp == pytest.approx(0.35)
        assert h.engine.passes == [frozenset({5, 9, 0})]

    def test_same_set_ignored(self):
        """Test a set equal to the last analyzed one is a no-op."""
        h = Harness()
        h.arbiter.note_set_changed(["C4", "E4", "G4"])
        h.scheduler.advance(1.0)

        h.arbiter.note_set_changed(["G3", "C5", "E2"])
        assert h.arbiter.state is ArbiterState.IDLE
        assert h.scheduler.pending() == 0
        h.scheduler.advance(1.0)
        assert h.arbiter.analysis_count == 1

    def test_revert_to_analyzed_set_cancels_pending(self):
        """Test returning to the published set cancels the pending run."""
        h = Harness()
        h.arbiter.note_set_changed(["C", "E", "G"])
        h.scheduler.advance(1.0)

        h.arbiter.note_set_changed(["C", "E", "G", "A"])
        assert h.arbiter.state is ArbiterState.PENDING
        h.arbiter.note_set_changed(["C", "E", "G"])
        assert h.arbiter.state is ArbiterState.IDLE

        h.scheduler.advance(1.0)
        assert h.arbiter.analysis_count == 1

    def test_change_while_running_is_queued(self):
        """Test a change mid-analysis is debounced again after the run."""
        h = Harness(debounce_ms=100)

        def press_during_first_run():
            assert h.arbiter.state is ArbiterState.RUNNING
            h.engine.during_run = None
            h.arbiter.note_set_changed(["A", "C", "E"])

        h.engine.during_run = press_during_first_run
        h.arbiter.note_set_changed(["C", "E", "G"])
        h.scheduler.advance(0.1)

        assert len(h.outcomes) == 1
        assert h.outcomes[0].chords[0].label == "C Major"
        assert h.arbiter.state is ArbiterState.PENDING

        h.scheduler.advance(0.1)
        assert len(h.outcomes) == 2
        assert h.outcomes[1].chords[0].label == "A Minor"
        assert h.engine.passes == [frozenset({0, 4, 7}), frozenset({9, 0, 4})]

    def test_queued_change_back_to_same_set(self):
        """Test a mid-run change that ends on the analyzed set adds no run."""
        h = Harness(debounce_ms=100)

        def wobble():
            h.engine.during_run = None
            h.arbiter.note_set_changed(["C", "E", "G", "B"])
            h.arbiter.note_set_changed(["C", "E", "G"])

        h.engine.during_run = wobble
        h.arbiter.note_set_changed(["C", "E", "G"])
        h.scheduler.advance(1.0)

        assert h.arbiter.analysis_count == 1
        assert h.arbiter.state is ArbiterState.IDLE

    def test_soft_timeout_warns_and_keeps_result(self):
        """Test an over-budget analysis warns but still publishes."""
        ticks = iter([0.0, 0.5])
        h = Harness(clock=lambda: next(ticks), max_analysis_ms=100)
        h.arbiter.note_set_changed(["C", "E", "G"])

        with pytest.warns(AnalysisTimeoutWarning):
            h.scheduler.advance(1.0)

        assert len(h.outcomes) == 1
        assert h.outcomes[0].timed_out
        assert h.outcomes[0].chords[0].label == "C Major"
        assert h.arbiter.last_duration_ms == pytest.approx(500.0)

    def test_disable_clears_and_ignores_changes(self):
        """Test disable publishes a clear and ignores input."""
        h = Harness()
        h.arbiter.note_set_changed(["C", "E", "G"])
        h.scheduler.advance(1.0)

        h.arbiter.disable()
        assert h.arbiter.state is ArbiterState.DISABLED
        assert h.outcomes[-1].cleared
        assert h.outcomes[-1].chords == []

        h.arbiter.note_set_changed(["D", "F", "A"])
        h.scheduler.advance(1.0)
        assert h.arbiter.analysis_count == 1

    def test_disable_cancels_pending(self):
        """Test disable drops a pending timer."""
        h = Harness()
        h.arbiter.note_set_changed(["C", "E", "G"])
        h.arbiter.disable()
        assert h.scheduler.pending() == 0
        h.scheduler.advance(1.0)
        assert h.arbiter.analysis_count == 0

    def test_disable_during_run_discards_result(self):
        """Test an in-flight result is dropped when disabled mid-run."""
        h = Harness()

        def disable_now():
            h.engine.during_run = None
            h.arbiter.disable()

        h.engine.during_run = disable_now
        h.arbiter.note_set_changed(["C", "E", "G"])
        h.scheduler.advance(1.0)

        assert [o.cleared for o in h.outcomes] == [True]
        assert h.arbiter.analysis_count == 0
        assert h.arbiter.state is ArbiterState.DISABLED

    def test_reenable_waits_for_discarded_pass(self):
        """Test a discarded pass still blocks a new run until it returns."""
        h = Harness(debounce_ms=150)
        passes_while_discarded = []

        def toggle_and_press():
            h.engine.during_run = None
            h.arbiter.disable()
            h.arbiter.enable()
            h.arbiter.note_set_changed(["D", "F", "A"])
            # The new debounce falls due while the first pass is still running
            h.scheduler.advance(0.2)
            passes_while_discarded.append(list(h.engine.passes))

        h.engine.during_run = toggle_and_press
        h.arbiter.note_set_changed(["C", "E", "G"])
        h.scheduler.advance(1.0)

        assert passes_while_discarded == [[frozenset({0, 4, 7})]]
        assert h.engine.passes == [frozenset({0, 4, 7}), frozenset({2, 5, 9})]
        assert [o.cleared for o in h.outcomes] == [True, False]
        assert h.outcomes[-1].chords[0].label == "D Minor"
        assert h.arbiter.state is ArbiterState.IDLE

    def test_enable_does_not_analyze(self):
        """Test enable returns to idle without re-running."""
        h = Harness()
        h.arbiter.note_set_changed(["C", "E", "G"])
        h.scheduler.advance(1.0)
        h.arbiter.disable()

        h.arbiter.enable()
        assert h.arbiter.state is ArbiterState.IDLE
        h.scheduler.advance(1.0)
        assert h.arbiter.analysis_count == 1

        # The previously analyzed set counts as new after a disable
        h.arbiter.note_set_changed(["C", "E", "G"])
        h.scheduler.advance(1.0)
        assert h.arbiter.analysis_count == 2

    def test_force_analysis(self):
        """Test force_analysis re-runs the latest set."""
        h = Harness()
        h.arbiter.note_set_changed(["C", "E", "G"])
        h.scheduler.advance(1.0)

        h.arbiter.force_analysis()
        assert h.arbiter.state is ArbiterState.PENDING
        h.scheduler.advance(1.0)
        assert h.engine.passes == [frozenset({0, 4, 7})] * 2

    def test_force_analysis_without_input(self):
        """Test force_analysis before any input does nothing."""
        h = Harness()
        h.arbiter.force_analysis()
        assert h.scheduler.pending() == 0

    def test_sink_error_propagates_after_reset(self):
        """Test a raising sink surfaces its error with the arbiter idle."""
        scheduler = ManualScheduler()

        def sink(outcome):
            raise RuntimeError("boom")

        arbiter = TemporalArbiter(DetectionEngine(), DetectionConfig(), scheduler, sink)
        arbiter.note_set_changed(["C", "E", "G"])

        with pytest.raises(RuntimeError):
            scheduler.advance(1.0)
        assert arbiter.state is ArbiterState.IDLE
        assert arbiter.analysis_count == 1

    def test_empty_set_publishes_empty_results(self):
        """Test releasing all keys clears results through a normal analysis."""
        h = Harness()
        h.arbiter.note_set_changed(["C", "E", "G"])
        h.scheduler.advance(1.0)
        h.arbiter.note_set_changed([])
        h.scheduler.advance(1.0)

        assert h.outcomes[-1].chords == []
        assert h.outcomes[-1].scales == []
        assert not h.outcomes[-1].cleared

    def test_debounce_read_from_live_config(self):
        """Test config changes apply to the next change."""
        h = Harness(debounce_ms=300)
        h.config.set_debounce_ms(50)
        h.arbiter.note_set_changed(["C", "E", "G"])
        h.scheduler.advance(0.06)
        assert h.arbiter.analysis_count == 1


class TestHostSchedulers:
    """Tests for the asyncio and threading schedulers."""

    def test_asyncio_scheduler(self):
        """Test the arbiter on an asyncio loop."""
        outcomes = []

        async def run():
            arbiter = TemporalArbiter(
                DetectionEngine(),
                DetectionConfig(debounce_ms=10),
                AsyncioScheduler(),
                outcomes.append,
            )
            arbiter.note_set_changed(["A", "C", "E"])
            arbiter.note_set_changed(["C", "E", "G"])
            await asyncio.sleep(0.1)

        asyncio.run(run())
        assert len(outcomes) == 1
        assert outcomes[0].chords[0].label == "C Major"

    def test_threading_scheduler(self):
        """Test the arbiter on timer threads."""
        done = threading.Event()
        outcomes = []

        def sink(outcome):
            outcomes.append(outcome)
            done.set()

        arbiter = TemporalArbiter(
            DetectionEngine(), DetectionConfig(debounce_ms=10), ThreadingScheduler(), sink
        )
        arbiter.note_set_changed(["D", "F#", "A"])

        assert done.wait(timeout=5.0)
        assert outcomes[0].chords[0].label == "D Major"

    def test_slow_sink_keeps_latest_result(self):
        """Test a slow sink cannot leave an older note set published last."""
        engine = CountingEngine()
        outcomes = []
        latest_seen = threading.Event()
        a_minor = frozenset({9, 0, 4})

        def sink(outcome):
            if not outcomes and outcome.notes != a_minor:
                time.sleep(0.3)
            outcomes.append(outcome)
            if outcome.notes == a_minor:
                latest_seen.set()

        arbiter = TemporalArbiter(
            engine, DetectionConfig(debounce_ms=0), ThreadingScheduler(), sink
        )

        def press_during_first_run():
            engine.during_run = None
            arbiter.note_set_changed(["A", "C", "E"])

        engine.during_run = press_during_first_run
        arbiter.note_set_changed(["C", "E", "G"])

        assert latest_seen.wait(timeout=5.0)
        time.sleep(0.5)  # let any older publish land
        assert outcomes[-1].notes == a_minor
        assert outcomes[-1].chords[0].label == "A Minor"

    def test_threading_cancel(self):
        """Test a cancelled threading timer never fires."""
        fired = threading.Event()
        handle = ThreadingScheduler().call_later(0.05, fired.set)
        handle.cancel()
        assert handle.cancelled
        assert not fired.wait(timeout=0.2)
