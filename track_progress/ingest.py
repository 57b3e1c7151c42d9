"""Convert exchange formats into ``(longitude, latitude)`` pairs.

Format handling happens once, here, so that the geometry code only ever sees
validated coordinates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union
from xml.etree.ElementTree import Element

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as ET
from polyline import decode as polyline_decode

from .errors import EmptyTrackError, MalformedPointError, TrackFormatError
from .models import validate_coordinate

_LOGGER = logging.getLogger(__name__)

LonLat = Tuple[float, float]


@dataclass(slots=True)
class ParsedTrack:
    """Coordinates and descriptive metadata extracted from raw content."""

    coordinates: List[LonLat] = field(default_factory=list)
    name: Optional[str] = None
    description: Optional[str] = None
    format: str = "gpx"


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if "}" in tag else tag


def _child_text(element: Element, name: str) -> Optional[str]:
    for child in element:
        if _local_name(child.tag) == name:
            text = (child.text or "").strip()
            return text or None
    return None


def parse_gpx(content: Union[str, bytes]) -> ParsedTrack:
    """Extract track points (or route points) from GPX content.

    Namespaces are ignored so GPX 1.0 and 1.1 documents both work. Name and
    description come from the first ``<trk>`` (or ``<rte>``) element.

    Raises:
        TrackFormatError: The content is not well-formed XML.
        MalformedPointError: A point lacks a usable ``lat``/``lon``.
        EmptyTrackError: The document holds no track or route points.
    """

    try:
        root = ET.fromstring(content)
    except (ET.ParseError, DefusedXmlException) as exc:
        raise TrackFormatError(f"Invalid GPX content: {exc}") from exc

    elements = list(root.iter())
    points = [el for el in elements if _local_name(el.tag) == "trkpt"]
    container_tag = "trk"
    if not points:
        points = [el for el in elements if _local_name(el.tag) == "rtept"]
        container_tag = "rte"
    if not points:
        raise EmptyTrackError("No track points found in GPX content")

    coordinates: List[LonLat] = []
    for index, point in enumerate(points):
        lat_raw = point.get("lat")
        lon_raw = point.get("lon")
        if lat_raw is None or lon_raw is None:
            raise MalformedPointError(
                f"GPX point at index {index} is missing lat/lon",
                index=index,
                longitude=lon_raw,
                latitude=lat_raw,
            )
        coordinates.append(validate_coordinate(lon_raw, lat_raw, index=index))

    name = description = None
    container = next(
        (el for el in elements if _local_name(el.tag) == container_tag), None
    )
    if container is not None:
        name = _child_text(container, "name")
        description = _child_text(container, "desc")
    return ParsedTrack(coordinates, name=name, description=description, format="gpx")


def decode_polyline(encoded: str, precision: int = 5) -> List[LonLat]:
    """Decode an encoded polyline string into ``(longitude, latitude)`` pairs."""

    if not encoded:
        return []
    try:
        decoded = polyline_decode(encoded, precision)
    except (ValueError, TypeError, IndexError) as exc:
        raise TrackFormatError("Unable to decode polyline") from exc
    return [
        validate_coordinate(lon, lat, index=index)
        for index, (lat, lon) in enumerate(decoded)
    ]


def decode_text(content: Union[str, bytes]) -> str:
    """Return ``content`` as text, decoding bytes as strict UTF-8."""

    if not isinstance(content, bytes):
        return content
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise TrackFormatError(f"Track content is not valid UTF-8: {exc}") from exc


def parse_track_content(content: Union[str, bytes]) -> ParsedTrack:
    """Parse GPX or encoded-polyline content, sniffing the format.

    Raises:
        TrackFormatError: Bytes that are not UTF-8, or unparseable content.
    """

    text = decode_text(content)
    stripped = text.lstrip("\ufeff").strip()
    if not stripped:
        raise EmptyTrackError("Track content is empty")
    if stripped.startswith("<"):
        return parse_gpx(stripped.encode("utf-8"))
    coordinates = decode_polyline(stripped)
    if not coordinates:
        raise EmptyTrackError("Polyline contains no points")
    return ParsedTrack(coordinates, format="polyline")


def read_track_file(path: Union[str, Path]) -> Tuple[str, ParsedTrack]:
    """Read a track file, returning its raw text alongside the parsed track."""

    raw = decode_text(Path(path).read_bytes())
    parsed = parse_track_content(raw)
    _LOGGER.debug(
        "Parsed %s track from %s with %d points",
        parsed.format,
        path,
        len(parsed.coordinates),
    )
    return raw, parsed


__all__ = [
    "LonLat",
    "ParsedTrack",
    "decode_polyline",
    "decode_text",
    "parse_gpx",
    "parse_track_content",
    "read_track_file",
]
