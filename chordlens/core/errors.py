"""Exceptions and warning categories raised by chordlens."""


class InvalidNoteName(ValueError):
    """A note name could not be parsed into a pitch class."""

    def __init__(self, name):
        self.name = name
        super().__init__(f"Invalid note name: {name!r}")


class ChordlensWarning(UserWarning):
    """Base class for recoverable chordlens warnings."""


class InvalidNoteWarning(ChordlensWarning):
    """A malformed note was dropped from an input set."""


class AnalysisTimeoutWarning(ChordlensWarning):
    """An analysis pass took longer than the configured budget."""


class ListenerErrorWarning(ChordlensWarning):
    """A result subscriber raised while being notified."""
