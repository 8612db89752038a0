"""Vectorization progress reporting."""

from shelfmind.pipeline.progress_tracker import ProgressTracker

__all__ = ["ProgressTracker"]
