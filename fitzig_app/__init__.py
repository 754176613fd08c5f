"""
Fitzig App - Guided Interval Session Runtime

Drives timed exercise/cooldown sequences for a workout template, persists
a recoverable snapshot after every observable change, and reconciles a
stale snapshot against wall-clock time when the session is resumed.
"""

__version__ = "0.1.0"
__author__ = "Fitzig Team"
