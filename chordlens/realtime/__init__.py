"""Realtime layer - Detection driven by a live stream of note-set changes.

- Schedulers: cancellable delayed calls (manual, asyncio, threading)
- TemporalArbiter: debounced, one-at-a-time analysis
- DetectionSession: results, suggestions, progressions, history and stats

Pipeline: Note-set changes → [Debounce] → Detection → [Suggestions, Progressions] → Subscribers
"""

from .scheduler import (
    Scheduler,
    TimerHandle,
    ManualScheduler,
    AsyncioScheduler,
    ThreadingScheduler,
)
from .arbiter import TemporalArbiter, ArbiterState, AnalysisOutcome
from .session import DetectionSession, DetectionHistory, DetectionStats, UserFeedback

__all__ = [
    # Schedulers
    "Scheduler",
    "TimerHandle",
    "ManualScheduler",
    "AsyncioScheduler",
    "ThreadingScheduler",
    # Arbitration
    "TemporalArbiter",
    "ArbiterState",
    "AnalysisOutcome",
    # Session
    "DetectionSession",
    "DetectionHistory",
    "DetectionStats",
    "UserFeedback",
]
