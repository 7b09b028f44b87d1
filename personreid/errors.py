"""Exception types raised by the tracking pipeline."""

from __future__ import annotations


class TrackerError(RuntimeError):
    """Base class for fatal tracker errors."""


class StreamError(TrackerError):
    """Video source could not be opened or yielded no first frame."""


class LoadError(TrackerError):
    """A model file or reference image could not be loaded."""


class ConfigError(TrackerError, ValueError):
    """Configuration values are out of range."""


class SelectionCancelled(TrackerError):
    """User aborted interactive target selection."""
