"""Dataclasses describing points, tracks and the mutable tracking state."""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Mapping, Optional, Sequence

from . import geo
from .errors import MalformedPointError


def validate_coordinate(
    longitude: Any, latitude: Any, *, index: int | None = None
) -> tuple[float, float]:
    """Return ``(longitude, latitude)`` as floats or raise ``MalformedPointError``."""

    where = f" at index {index}" if index is not None else ""
    try:
        lon = float(longitude)
        lat = float(latitude)
    except (TypeError, ValueError) as exc:
        raise MalformedPointError(
            f"Coordinate{where} is not numeric: ({longitude!r}, {latitude!r})",
            index=index,
            longitude=longitude,
            latitude=latitude,
        ) from exc
    if not (math.isfinite(lon) and math.isfinite(lat)):
        raise MalformedPointError(
            f"Coordinate{where} is not finite: ({lon}, {lat})",
            index=index,
            longitude=lon,
            latitude=lat,
        )
    if not -180.0 <= lon <= 180.0 or not -90.0 <= lat <= 90.0:
        raise MalformedPointError(
            f"Coordinate{where} is out of range: ({lon}, {lat})",
            index=index,
            longitude=lon,
            latitude=lat,
        )
    return lon, lat


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A coordinate plus optional fix metadata.

    Attributes:
        longitude: Decimal degrees in ``[-180, 180]``.
        latitude: Decimal degrees in ``[-90, 90]``.
        timestamp: Unix epoch milliseconds of the fix, if known.
        accuracy: Horizontal accuracy in metres reported by the fix source.
        altitude: Altitude in metres.
        speed: Speed in metres/second.
        heading: Heading in degrees reported by the fix source.
        distance_from_start: Metres along the track; only set on track points.
        remaining_distance: Metres to the end of the track; only set on track
            points.
    """

    longitude: float
    latitude: float
    timestamp: Optional[int] = None
    accuracy: Optional[float] = None
    altitude: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    distance_from_start: float = 0.0
    remaining_distance: float = 0.0

    @classmethod
    def from_pair(cls, pair: Sequence[Any], *, index: int | None = None) -> "GeoPoint":
        """Build a point from a ``(longitude, latitude)`` pair."""

        if len(pair) < 2:
            raise MalformedPointError(
                f"Coordinate at index {index} needs longitude and latitude",
                index=index,
            )
        lon, lat = validate_coordinate(pair[0], pair[1], index=index)
        return cls(longitude=lon, latitude=lat)

    @classmethod
    def from_position(cls, position: Mapping[str, Any]) -> "GeoPoint":
        """Build a point from a platform fix record.

        The record carries ``latitude``/``longitude`` plus optional
        ``accuracy``, ``altitude``, ``speed``, ``heading`` and ``timestamp``
        (epoch milliseconds). A nested ``coords`` mapping is also accepted.
        """

        coords: Mapping[str, Any] = position.get("coords") or position
        lon, lat = validate_coordinate(coords.get("longitude"), coords.get("latitude"))
        raw_ts = position.get("timestamp", coords.get("timestamp"))
        timestamp = None
        if raw_ts is not None:
            try:
                timestamp = int(raw_ts)
            except (TypeError, ValueError):
                timestamp = None
        return cls(
            longitude=lon,
            latitude=lat,
            timestamp=timestamp,
            accuracy=_optional_float(coords.get("accuracy")),
            altitude=_optional_float(coords.get("altitude")),
            speed=_optional_float(coords.get("speed")),
            heading=_optional_float(coords.get("heading")),
        )

    def as_lonlat(self) -> tuple[float, float]:
        return self.longitude, self.latitude

    def distance_to(self, other: "GeoPoint") -> float:
        """Haversine distance in metres to ``other``."""

        return geo.distance(self, other)

    def to_geojson(self) -> Dict[str, Any]:
        """Return the point as a GeoJSON ``Point`` feature."""

        return {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": list(self.as_lonlat())},
            "properties": {
                "timestamp": self.timestamp,
                "heading": self.heading,
                "accuracy": self.accuracy,
                "altitude": self.altitude,
                "speed": self.speed,
                "distanceFromStart": self.distance_from_start,
                "remainingDistance": self.remaining_distance,
            },
        }


@dataclass(frozen=True, slots=True)
class TrackMetadata:
    name: Optional[str] = None
    description: Optional[str] = None
    loaded_at: Optional[int] = None
    source: Optional[str] = None


@dataclass(frozen=True, slots=True)
class TrackData:
    """Read-only snapshot of a track handed to collaborators."""

    points: List[GeoPoint]
    original_points: List[GeoPoint]
    has_track: bool
    total_distance: float
    metadata: TrackMetadata


@dataclass(frozen=True, slots=True)
class ClosestPoint:
    """Result of a nearest-point query against a loaded track."""

    point: GeoPoint
    index: int
    distance_from_start: float
    remaining_distance: float
    distance_from_track: float


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    location: GeoPoint
    heading: Optional[float]
    timestamp: int


@dataclass(slots=True)
class LocationState:
    """Rolling fix state owned by :class:`~track_progress.location.LocationStream`."""

    current: Optional[GeoPoint] = None
    previous: Optional[GeoPoint] = None
    heading: Optional[float] = None
    is_tracking: bool = False
    last_accepted_at: int = 0
    history: Deque[HistoryEntry] = field(default_factory=lambda: deque(maxlen=100))


@dataclass(slots=True)
class ProgressState:
    """Throttle clock and off-track flag of the progress tracker.

    ``last_evaluated_at`` is None until the first evaluation.
    """

    last_evaluated_at: Optional[int] = None
    is_off_track: bool = False


__all__ = [
    "ClosestPoint",
    "GeoPoint",
    "HistoryEntry",
    "LocationState",
    "ProgressState",
    "TrackData",
    "TrackMetadata",
    "validate_coordinate",
]
