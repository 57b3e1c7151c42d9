"""Track geometry and progress-tracking engine."""

from .config import TrackingConfig
from .engine import TrackingEngine
from .errors import EmptyTrackError, MalformedPointError, TrackFormatError, TrackLoadError
from .events import (
    LocationUpdated,
    MessageBus,
    OffTrackChanged,
    ProgressUpdated,
    TrackCleared,
    TrackingStarted,
    TrackingStopped,
    TrackLoaded,
    TrackLoadFailed,
)
from .location import LocationStream
from .models import ClosestPoint, GeoPoint, TrackData, TrackMetadata
from .progress import ProgressTracker
from .track import Track

__all__ = [
    "ClosestPoint",
    "EmptyTrackError",
    "GeoPoint",
    "LocationStream",
    "LocationUpdated",
    "MalformedPointError",
    "MessageBus",
    "OffTrackChanged",
    "ProgressTracker",
    "ProgressUpdated",
    "Track",
    "TrackCleared",
    "TrackData",
    "TrackFormatError",
    "TrackLoadError",
    "TrackLoadFailed",
    "TrackLoaded",
    "TrackMetadata",
    "TrackingConfig",
    "TrackingEngine",
    "TrackingStarted",
    "TrackingStopped",
]
