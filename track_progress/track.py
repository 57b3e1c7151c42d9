"""Track construction, distance indexing and nearest-point search."""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from . import geo
from .config import TRACK_INTERPOLATION_DISTANCE_M
from .errors import EmptyTrackError
from .models import ClosestPoint, GeoPoint, TrackData, TrackMetadata

_LOGGER = logging.getLogger(__name__)

MetricArray = NDArray[np.float64]
RawCoordinate = Union[GeoPoint, Sequence[float]]


@dataclass(frozen=True, slots=True)
class _TrackGeometry:
    """Immutable snapshot swapped into a :class:`Track` on every load."""

    points: Tuple[GeoPoint, ...] = ()
    original_points: Tuple[GeoPoint, ...] = ()
    longitudes: MetricArray = field(default_factory=lambda: np.empty(0, dtype=float))
    latitudes: MetricArray = field(default_factory=lambda: np.empty(0, dtype=float))
    total_distance: float = 0.0
    metadata: TrackMetadata = field(default_factory=TrackMetadata)


def normalize_points(coordinates: Iterable[RawCoordinate]) -> List[GeoPoint]:
    """Validate raw ``(longitude, latitude)`` pairs into plain GeoPoints."""

    points: List[GeoPoint] = []
    for index, raw in enumerate(coordinates):
        if isinstance(raw, GeoPoint):
            raw = raw.as_lonlat()
        points.append(GeoPoint.from_pair(raw, index=index))
    return points


def densify(points: Sequence[GeoPoint], spacing_m: float) -> List[GeoPoint]:
    """Insert evenly spaced points into every pair further apart than ``spacing_m``.

    A pair ``d`` metres apart is split into ``floor(d / spacing_m)`` equal
    steps. The first point of each pair is always kept and the last original
    point is always appended.
    """

    if spacing_m <= 0:
        raise ValueError("spacing_m must be greater than zero")
    result: List[GeoPoint] = []
    for start, end in zip(points, points[1:]):
        result.append(start)
        gap = geo.distance(start, end)
        if gap <= spacing_m:
            continue
        steps = math.floor(gap / spacing_m)
        for j in range(1, steps):
            lon, lat = geo.interpolate(start, end, j / steps)
            result.append(GeoPoint(longitude=lon, latitude=lat))
    if points:
        result.append(points[-1])
    return result


def index_distances(points: Sequence[GeoPoint]) -> Tuple[List[GeoPoint], float]:
    """Return copies of ``points`` carrying cumulative and remaining distances.

    Both passes reuse the same per-segment distances so that
    ``distance_from_start + remaining_distance`` equals the total for every
    point, up to summation rounding.
    """

    if not points:
        return [], 0.0
    segments = np.asarray(
        [geo.distance(a, b) for a, b in zip(points, points[1:])], dtype=float
    )
    from_start = np.concatenate(([0.0], np.cumsum(segments)))
    remaining = np.concatenate((np.cumsum(segments[::-1])[::-1], [0.0]))
    total = float(from_start[-1])
    indexed = [
        replace(
            point,
            distance_from_start=float(from_start[i]),
            remaining_distance=float(remaining[i]),
        )
        for i, point in enumerate(points)
    ]
    return indexed, total


class Track:
    """Densified, distance-indexed track with nearest-point lookup.

    The track is replaced wholesale by :meth:`load` and emptied by
    :meth:`clear`. Queries against an empty track return None.
    """

    def __init__(
        self, interpolation_distance_m: float = TRACK_INTERPOLATION_DISTANCE_M
    ) -> None:
        if interpolation_distance_m <= 0:
            raise ValueError("interpolation_distance_m must be greater than zero")
        self._spacing = float(interpolation_distance_m)
        self._lock = threading.RLock()
        self._geometry = _TrackGeometry()

    @property
    def interpolation_distance_m(self) -> float:
        return self._spacing

    @property
    def has_track(self) -> bool:
        return bool(self._snapshot().points)

    @property
    def points(self) -> List[GeoPoint]:
        return list(self._snapshot().points)

    @property
    def original_points(self) -> List[GeoPoint]:
        return list(self._snapshot().original_points)

    @property
    def total_distance(self) -> float:
        return self._snapshot().total_distance

    @property
    def metadata(self) -> TrackMetadata:
        return self._snapshot().metadata

    def __len__(self) -> int:
        return len(self._snapshot().points)

    def _snapshot(self) -> _TrackGeometry:
        with self._lock:
            return self._geometry

    def load(
        self,
        coordinates: Iterable[RawCoordinate],
        *,
        source: str = "coordinates",
        name: Optional[str] = None,
        description: Optional[str] = None,
        loaded_at: Optional[int] = None,
    ) -> TrackData:
        """Build the track from raw ``(longitude, latitude)`` pairs.

        Raises:
            EmptyTrackError: ``coordinates`` is empty.
            MalformedPointError: A coordinate is non-numeric, non-finite or
                out of range. The previously loaded track is kept.
        """

        original = normalize_points(coordinates)
        if not original:
            raise EmptyTrackError("Track input contains no points")
        densified = densify(original, self._spacing)
        indexed, total = index_distances(densified)
        geometry = _TrackGeometry(
            points=tuple(indexed),
            original_points=tuple(original),
            longitudes=np.asarray([p.longitude for p in indexed], dtype=float),
            latitudes=np.asarray([p.latitude for p in indexed], dtype=float),
            total_distance=total,
            metadata=TrackMetadata(
                name=name,
                description=description,
                loaded_at=loaded_at,
                source=source,
            ),
        )
        with self._lock:
            self._geometry = geometry
        _LOGGER.info(
            "Loaded track source=%s original=%d densified=%d total=%.1fm",
            source,
            len(original),
            len(indexed),
            total,
        )
        return self.get_track_data()

    def clear(self) -> None:
        with self._lock:
            self._geometry = _TrackGeometry()

    def find_closest_point(self, location: Optional[GeoPoint]) -> Optional[ClosestPoint]:
        """Return the densified point nearest to ``location``.

        Linear scan over every point; ties go to the lowest index. Returns
        None when no track is loaded or ``location`` is None.
        """

        if location is None:
            return None
        geometry = self._snapshot()
        if not geometry.points:
            return None
        distances = geo.distances_from(
            location.longitude,
            location.latitude,
            geometry.longitudes,
            geometry.latitudes,
        )
        index = int(np.argmin(distances))
        point = geometry.points[index]
        return ClosestPoint(
            point=point,
            index=index,
            distance_from_start=point.distance_from_start,
            remaining_distance=point.remaining_distance,
            distance_from_track=float(distances[index]),
        )

    def get_track_data(self) -> TrackData:
        geometry = self._snapshot()
        return TrackData(
            points=list(geometry.points),
            original_points=list(geometry.original_points),
            has_track=bool(geometry.points),
            total_distance=geometry.total_distance,
            metadata=geometry.metadata,
        )

    def to_geojson(self) -> dict:
        """Return the densified track as a GeoJSON ``LineString`` feature."""

        geometry = self._snapshot()
        meta = geometry.metadata
        return {
            "type": "Feature",
            "geometry": {
                "type": "LineString",
                "coordinates": [list(p.as_lonlat()) for p in geometry.points],
            },
            "properties": {
                "name": meta.name,
                "description": meta.description,
                "source": meta.source,
                "loadedAt": meta.loaded_at,
                "totalDistance": geometry.total_distance,
                "pointCount": len(geometry.points),
            },
        }


__all__ = ["Track", "densify", "index_distances", "normalize_points"]
