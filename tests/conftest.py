"""Global pytest fixtures & helpers.

Adds project root to path and provides a reusable sample track, a virtual
clock and a message bus that records everything published.
"""
from __future__ import annotations

import os
import sys
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from track_progress.clock import ManualClock
from track_progress.config import TrackingConfig
from track_progress.engine import TrackingEngine
from track_progress.events import MessageBus
from track_progress.storage import InMemoryTrackStore
from track_progress.track import Track


# Epoch milliseconds, roughly November 2023.
START_MS = 1_700_000_000_000


# --- Factory helpers -------------------------------------------------
class RecordingBus(MessageBus):
    """Message bus keeping every published message in ``published``."""

    def __init__(self):
        super().__init__(debug=False)
        self.published = []

    def publish(self, message):
        self.published.append(message)
        super().publish(message)

    def of_type(self, message_type):
        return [m for m in self.published if isinstance(m, message_type)]


def make_gpx(points, name="Harbour Loop", desc="Short test walk"):
    rows = "\n".join(
        f'      <trkpt lat="{lat}" lon="{lon}"><ele>3</ele></trkpt>'
        for lon, lat in points
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<gpx version="1.1" creator="tests" xmlns="http://www.topografix.com/GPX/1/1">\n'
        "  <trk>\n"
        f"    <name>{name}</name>\n"
        f"    <desc>{desc}</desc>\n"
        "    <trkseg>\n"
        f"{rows}\n"
        "    </trkseg>\n"
        "  </trk>\n"
        "</gpx>\n"
    )


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def three_point_coords():
    # (longitude, latitude): two ~111 m segments heading due north.
    return [(0.0, 0.0), (0.0, 0.001), (0.0, 0.002)]


@pytest.fixture
def sample_gpx(three_point_coords):
    return make_gpx(three_point_coords)


@pytest.fixture
def config():
    return TrackingConfig(
        interpolation_distance_m=50.0,
        minimum_heading_distance_m=4.0,
        fix_evaluation_interval_ms=5000,
        progress_evaluation_interval_ms=60000,
        off_track_threshold_m=50.0,
        max_accuracy_m=None,
        location_history_size=100,
    )


@pytest.fixture
def bus():
    return RecordingBus()


@pytest.fixture
def clock():
    return ManualClock(START_MS)


@pytest.fixture
def loaded_track(three_point_coords):
    track = Track(50.0)
    track.load(three_point_coords, source="test", name="Three points")
    return track


@pytest.fixture
def store():
    return InMemoryTrackStore()


@pytest.fixture
def engine(config, clock, bus, store):
    return TrackingEngine(config, clock=clock, bus=bus, store=store)
