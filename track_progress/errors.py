"""Central error types used across the engine."""

from __future__ import annotations


class TrackLoadError(RuntimeError):
    """Base error for track input that cannot be turned into a Track."""


class EmptyTrackError(TrackLoadError):
    """Raised when the raw track input contains no points."""


class MalformedPointError(TrackLoadError):
    """Raised when a coordinate is non-finite or outside the valid range."""

    def __init__(
        self,
        message: str,
        *,
        index: int | None = None,
        longitude: object = None,
        latitude: object = None,
    ) -> None:
        super().__init__(message)
        self.index = index
        self.longitude = longitude
        self.latitude = latitude


class TrackFormatError(TrackLoadError):
    """Raised when track content is not valid GPX or encoded polyline data."""


__all__ = [
    "TrackLoadError",
    "EmptyTrackError",
    "MalformedPointError",
    "TrackFormatError",
]
