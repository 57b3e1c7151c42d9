"""Pure geodesic helpers shared by the track and location components.

All functions take objects exposing ``longitude``/``latitude`` in decimal
degrees. Distances are Haversine great-circle metres on a spherical Earth.
"""

from __future__ import annotations

import math
from typing import Protocol

import numpy as np
from numpy.typing import NDArray

EARTH_RADIUS_M = 6_371_000.0

MetricArray = NDArray[np.float64]


class Coordinate(Protocol):
    longitude: float
    latitude: float


def bearing(start: Coordinate, end: Coordinate) -> float:
    """Return the initial great-circle bearing from ``start`` to ``end``.

    The result is in degrees, normalised into ``[0, 360)``.
    """

    phi1 = math.radians(start.latitude)
    phi2 = math.radians(end.latitude)
    d_lambda = math.radians(end.longitude - start.longitude)

    y = math.sin(d_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(
        phi2
    ) * math.cos(d_lambda)
    theta = math.degrees(math.atan2(y, x))
    result = (theta + 360.0) % 360.0
    # (-tiny + 360) % 360 rounds to 360.0 in floating point.
    return 0.0 if result >= 360.0 else result


def distance(start: Coordinate, end: Coordinate) -> float:
    """Haversine distance in metres between two coordinates."""

    phi1 = math.radians(start.latitude)
    phi2 = math.radians(end.latitude)
    d_phi = math.radians(end.latitude - start.latitude)
    d_lambda = math.radians(end.longitude - start.longitude)

    a = (
        math.sin(d_phi / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    )
    a = min(max(a, 0.0), 1.0)
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def interpolate(
    start: Coordinate, end: Coordinate, fraction: float
) -> tuple[float, float]:
    """Linearly interpolate in lon/lat space, returning ``(longitude, latitude)``.

    Fractions outside ``[0, 1]`` extrapolate along the same line.
    """

    lon = start.longitude + (end.longitude - start.longitude) * fraction
    lat = start.latitude + (end.latitude - start.latitude) * fraction
    return lon, lat


def distances_from(
    longitude: float,
    latitude: float,
    longitudes: MetricArray,
    latitudes: MetricArray,
) -> MetricArray:
    """Vectorised Haversine distance from one coordinate to many."""

    lons = np.asarray(longitudes, dtype=float)
    lats = np.asarray(latitudes, dtype=float)
    if lons.shape != lats.shape:
        raise ValueError("longitudes and latitudes must have the same shape")
    phi1 = math.radians(latitude)
    phi2 = np.radians(lats)
    d_phi = np.radians(lats - latitude)
    d_lambda = np.radians(lons - longitude)

    a = np.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * np.cos(phi2) * np.sin(
        d_lambda / 2.0
    ) ** 2
    a = np.clip(a, 0.0, 1.0)
    c = 2.0 * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


__all__ = [
    "EARTH_RADIUS_M",
    "bearing",
    "distance",
    "distances_from",
    "interpolate",
]
