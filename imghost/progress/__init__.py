"""Queue observers."""

from .observer import NullObserver, QueueObserver
from .tracker import QueueProgressTracker

__all__ = ["NullObserver", "QueueObserver", "QueueProgressTracker"]
