"""
Exception types for the krill pager.

IntegrityError and SourceError are fatal: they travel up to run(), which
restores the terminal, closes every document and exits.  PatternError is
shown on the status line and the view stays where it was.
"""


class KrillError(Exception):
    """Base class for all krill errors."""


class IntegrityError(KrillError):
    """An internal invariant of the document engine is broken."""


class SourceError(KrillError):
    """Reading a primary byte source failed."""

    def __init__(self, name: str, reason):
        super().__init__(f"{name}: {reason}")
        self.name = name
        self.reason = reason


class PatternError(KrillError):
    """A search pattern could not be compiled."""

    def __init__(self, pattern: str, message: str):
        super().__init__(message)
        self.pattern = pattern
        self.message = message
