from .recorder import ActivityRecorder

__all__ = ["ActivityRecorder"]
