"""
Core package init for the person re-identification tracker.

Makes the `personreid` modules importable without requiring an editable install.
"""

__all__ = [
    "config",
    "detectors",
    "errors",
    "inference",
    "io_utils",
    "recognition",
    "selection",
    "tracking",
    "types",
    "viz",
]
