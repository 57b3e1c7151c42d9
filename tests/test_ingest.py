"""Tests for GPX and encoded-polyline parsing."""

from __future__ import annotations

from pathlib import Path

import pytest

from track_progress.errors import EmptyTrackError, MalformedPointError, TrackFormatError
from track_progress.ingest import (
    decode_polyline,
    parse_gpx,
    parse_track_content,
    read_track_file,
)

# Reference string from the encoded polyline algorithm documentation.
ENCODED = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"

ROUTE_GPX_10 = """<?xml version="1.0"?>
<gpx version="1.0" xmlns="http://www.topografix.com/GPX/1/0">
  <rte>
    <name>Ridge Route</name>
    <rtept lat="46.5" lon="7.9"/>
    <rtept lat="46.51" lon="7.91"/>
  </rte>
</gpx>
"""


def test_parse_gpx_reads_track_points_and_metadata(sample_gpx: str) -> None:
    parsed = parse_gpx(sample_gpx)
    assert parsed.format == "gpx"
    assert parsed.coordinates == [(0.0, 0.0), (0.0, 0.001), (0.0, 0.002)]
    assert parsed.name == "Harbour Loop"
    assert parsed.description == "Short test walk"


def test_parse_gpx_falls_back_to_route_points() -> None:
    parsed = parse_gpx(ROUTE_GPX_10)
    assert parsed.coordinates == [(7.9, 46.5), (7.91, 46.51)]
    assert parsed.name == "Ridge Route"
    assert parsed.description is None


def test_parse_gpx_without_namespace() -> None:
    parsed = parse_gpx('<gpx><trk><trkseg><trkpt lat="1" lon="2"/></trkseg></trk></gpx>')
    assert parsed.coordinates == [(2.0, 1.0)]


def test_parse_gpx_rejects_invalid_xml() -> None:
    with pytest.raises(TrackFormatError):
        parse_gpx("<gpx><trk>")


def test_parse_gpx_rejects_entity_expansion() -> None:
    payload = (
        '<?xml version="1.0"?>\n'
        '<!DOCTYPE gpx [<!ENTITY lol "lol">]>\n'
        "<gpx><trk><name>&lol;</name></trk></gpx>"
    )
    with pytest.raises(TrackFormatError):
        parse_gpx(payload)


def test_parse_gpx_missing_coordinate_attribute() -> None:
    with pytest.raises(MalformedPointError) as excinfo:
        parse_gpx('<gpx><trk><trkseg><trkpt lat="1" lon="2"/><trkpt lat="1"/></trkseg></trk></gpx>')
    assert excinfo.value.index == 1


def test_parse_gpx_out_of_range_coordinate() -> None:
    with pytest.raises(MalformedPointError):
        parse_gpx('<gpx><trk><trkseg><trkpt lat="91" lon="2"/></trkseg></trk></gpx>')


def test_parse_gpx_without_points() -> None:
    with pytest.raises(EmptyTrackError):
        parse_gpx("<gpx><trk><name>Nothing</name></trk></gpx>")


def test_decode_polyline_returns_lon_lat_pairs() -> None:
    coords = decode_polyline(ENCODED)
    expected = [(-120.2, 38.5), (-120.95, 40.7), (-126.453, 43.252)]
    assert len(coords) == len(expected)
    for actual, wanted in zip(coords, expected):
        assert actual == pytest.approx(wanted)
    assert decode_polyline("") == []


def test_parse_track_content_sniffs_format(sample_gpx: str) -> None:
    assert parse_track_content(sample_gpx).format == "gpx"
    parsed = parse_track_content(f"  {ENCODED}\n")
    assert parsed.format == "polyline"
    assert len(parsed.coordinates) == 3


def test_parse_track_content_accepts_bytes_with_bom(sample_gpx: str) -> None:
    parsed = parse_track_content(b"\xef\xbb\xbf" + sample_gpx.encode("utf-8"))
    assert parsed.name == "Harbour Loop"


@pytest.mark.parametrize("content", ["", "   \n", b""])
def test_parse_track_content_rejects_blank_input(content) -> None:
    with pytest.raises(EmptyTrackError):
        parse_track_content(content)


def test_read_track_file(tmp_path: Path, sample_gpx: str) -> None:
    path = tmp_path / "route.gpx"
    path.write_text(sample_gpx, encoding="utf-8")
    raw, parsed = read_track_file(path)
    assert raw == sample_gpx
    assert len(parsed.coordinates) == 3


def test_parse_track_content_rejects_invalid_utf8(sample_gpx: str) -> None:
    content = sample_gpx.encode("utf-8").replace(b"Harbour Loop", b"Harbour \xff")
    with pytest.raises(TrackFormatError, match="UTF-8"):
        parse_track_content(content)


def test_read_track_file_rejects_invalid_utf8(tmp_path: Path) -> None:
    path = tmp_path / "route.txt"
    path.write_bytes(b"\xff\xfe\x00garbage")
    with pytest.raises(TrackFormatError):
        read_track_file(path)
