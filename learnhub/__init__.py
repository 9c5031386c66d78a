"""LearnHub API: courses, enrollment gating, progress and metrics."""

__version__ = "0.1.0"
