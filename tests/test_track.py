"""Tests for track densification, distance indexing and nearest-point search."""

from __future__ import annotations

import math

import pytest

from track_progress import geo
from track_progress.errors import EmptyTrackError, MalformedPointError
from track_progress.models import GeoPoint
from track_progress.track import Track, densify, index_distances, normalize_points


def test_three_point_track_is_densified_and_indexed(loaded_track: Track) -> None:
    """Each ~111 m segment gains one midpoint at 50 m spacing."""

    data = loaded_track.get_track_data()
    assert data.has_track
    assert len(data.original_points) == 3
    assert len(data.points) == 5
    assert data.total_distance == pytest.approx(222.39, abs=0.01)
    assert data.metadata.name == "Three points"
    assert data.metadata.source == "test"

    first, last = data.points[0], data.points[-1]
    assert first.distance_from_start == 0.0
    assert first.remaining_distance == pytest.approx(data.total_distance)
    assert last.distance_from_start == pytest.approx(data.total_distance)
    assert last.remaining_distance == 0.0


def test_distance_fields_sum_to_total(loaded_track: Track) -> None:
    total = loaded_track.total_distance
    for point in loaded_track.points:
        assert point.distance_from_start + point.remaining_distance == pytest.approx(
            total, abs=1e-6
        )


def test_densified_track_keeps_original_endpoints(loaded_track: Track) -> None:
    points = loaded_track.points
    assert points[0].as_lonlat() == (0.0, 0.0)
    assert points[-1].as_lonlat() == (0.0, 0.002)
    # Original vertices survive densification in order.
    assert [p.as_lonlat() for p in points[::2]] == [
        (0.0, 0.0),
        (0.0, 0.001),
        (0.0, 0.002),
    ]


def test_long_segment_spacing_bounded() -> None:
    """A ~1.1 km segment is split into floor(d / spacing) equal steps."""

    original = normalize_points([(0.0, 0.0), (0.0, 0.01)])
    gap = geo.distance(original[0], original[1])
    result = densify(original, 50.0)

    assert len(result) == math.floor(gap / 50.0) + 1
    for a, b in zip(result, result[1:]):
        step = geo.distance(a, b)
        assert 50.0 <= step < 100.0


def test_short_segments_are_left_alone() -> None:
    original = normalize_points([(0.0, 0.0), (0.0, 0.0002), (0.0, 0.0004)])
    assert densify(original, 50.0) == original


def test_densify_rejects_non_positive_spacing() -> None:
    with pytest.raises(ValueError):
        densify(normalize_points([(0, 0), (0, 1)]), 0)


def test_index_distances_of_empty_sequence() -> None:
    assert index_distances([]) == ([], 0.0)


def test_single_point_track() -> None:
    track = Track()
    data = track.load([(5.0, 45.0)])
    assert data.has_track
    assert data.total_distance == 0.0
    closest = track.find_closest_point(GeoPoint(longitude=5.001, latitude=45.0))
    assert closest is not None
    assert closest.index == 0
    assert closest.remaining_distance == 0.0


def test_find_closest_point_between_vertices(loaded_track: Track) -> None:
    closest = loaded_track.find_closest_point(GeoPoint(longitude=0.0, latitude=0.0005))
    assert closest is not None
    assert closest.index == 1
    assert closest.distance_from_start == pytest.approx(55.6, abs=0.05)
    assert closest.remaining_distance == pytest.approx(166.8, abs=0.05)
    assert closest.distance_from_track == pytest.approx(0.0, abs=1e-6)


def test_find_closest_point_off_track(loaded_track: Track) -> None:
    location = GeoPoint(longitude=0.001, latitude=0.001)
    closest = loaded_track.find_closest_point(location)
    assert closest is not None
    assert closest.point.as_lonlat() == (0.0, 0.001)
    assert closest.distance_from_track == pytest.approx(
        geo.distance(location, closest.point), rel=1e-9
    )


def test_find_closest_point_ties_go_to_lowest_index() -> None:
    track = Track(50.0)
    track.load([(0.0, 0.0), (0.0, 0.0002), (0.0, 0.0)])
    closest = track.find_closest_point(GeoPoint(longitude=0.0, latitude=0.0))
    assert closest is not None
    assert closest.index == 0


def test_empty_track_queries_return_none() -> None:
    track = Track()
    assert not track.has_track
    assert track.find_closest_point(GeoPoint(longitude=0.0, latitude=0.0)) is None
    data = track.get_track_data()
    assert data.points == []
    assert data.total_distance == 0.0


def test_find_closest_point_without_location(loaded_track: Track) -> None:
    assert loaded_track.find_closest_point(None) is None


def test_empty_input_keeps_previous_track(loaded_track: Track) -> None:
    before = loaded_track.get_track_data()
    with pytest.raises(EmptyTrackError):
        loaded_track.load([])
    assert loaded_track.get_track_data() == before


@pytest.mark.parametrize(
    "bad",
    [
        (0.0, 95.0),
        (181.0, 0.0),
        (float("nan"), 0.0),
        (0.0, float("inf")),
        ("east", "north"),
        (1.0,),
    ],
)
def test_malformed_points_rejected_without_partial_update(
    loaded_track: Track, bad
) -> None:
    before = loaded_track.get_track_data()
    with pytest.raises(MalformedPointError) as excinfo:
        loaded_track.load([(0.0, 0.0), bad])
    assert excinfo.value.index == 1
    assert loaded_track.get_track_data() == before


def test_reload_is_idempotent(three_point_coords) -> None:
    track = Track(50.0)
    first = track.load(three_point_coords)
    second = track.load(three_point_coords)
    assert first.points == second.points
    assert first.total_distance == second.total_distance


def test_clear_empties_track(loaded_track: Track) -> None:
    loaded_track.clear()
    assert not loaded_track.has_track
    assert len(loaded_track) == 0
    assert loaded_track.total_distance == 0.0


def test_load_accepts_geopoints() -> None:
    track = Track(50.0)
    data = track.load(
        [GeoPoint(longitude=0.0, latitude=0.0, accuracy=5.0), (0.0, 0.0003)]
    )
    assert [p.as_lonlat() for p in data.original_points] == [(0.0, 0.0), (0.0, 0.0003)]
    assert data.original_points[0].accuracy is None


def test_to_geojson_line_string(loaded_track: Track) -> None:
    feature = loaded_track.to_geojson()
    assert feature["geometry"]["type"] == "LineString"
    assert feature["geometry"]["coordinates"][0] == [0.0, 0.0]
    assert len(feature["geometry"]["coordinates"]) == 5
    assert feature["properties"]["name"] == "Three points"
    assert feature["properties"]["totalDistance"] == pytest.approx(222.39, abs=0.01)


def test_track_rejects_non_positive_spacing() -> None:
    with pytest.raises(ValueError):
        Track(0)
