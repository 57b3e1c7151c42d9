"""Throttled progress evaluation with edge-triggered off-track detection."""

from __future__ import annotations

import logging
from typing import Optional

from . import geo
from .config import TrackingConfig
from .events import MessageBus, OffTrackChanged, ProgressUpdated
from .models import GeoPoint, ProgressState
from .track import Track

_LOGGER = logging.getLogger(__name__)


class ProgressTracker:
    """Turns location updates into progress reports against a borrowed track.

    Holds no geometry of its own; only the throttle timestamp and the
    off-track flag survive between calls.
    """

    def __init__(
        self,
        config: Optional[TrackingConfig] = None,
        bus: Optional[MessageBus] = None,
    ) -> None:
        self.config = (config or TrackingConfig()).validate()
        self._bus = bus
        self._state = ProgressState()

    @property
    def is_off_track(self) -> bool:
        return self._state.is_off_track

    @property
    def last_evaluated_at(self) -> Optional[int]:
        return self._state.last_evaluated_at

    def state(self) -> ProgressState:
        return ProgressState(
            last_evaluated_at=self._state.last_evaluated_at,
            is_off_track=self._state.is_off_track,
        )

    def reset(self) -> None:
        """Forget the throttle clock and the off-track flag."""

        self._state = ProgressState()

    def force_next(self) -> None:
        """Let the next location update bypass the throttle window."""

        self._state.last_evaluated_at = None

    def on_location_updated(
        self, location: Optional[GeoPoint], track: Track, now: int
    ) -> Optional[ProgressUpdated]:
        """Evaluate progress for ``location`` unless throttled.

        Returns the published report, or None when the call was skipped
        (no location, inside the throttle window, or no track loaded).
        """

        if location is None:
            return None
        last = self._state.last_evaluated_at
        interval = self.config.progress_evaluation_interval_ms
        if last is not None and now - last < interval:
            _LOGGER.debug(
                "Progress evaluation throttled (%d ms since last)", now - last
            )
            return None

        closest = track.find_closest_point(location)
        if closest is None:
            return None

        distance_from_track = geo.distance(location, closest.point)
        report = ProgressUpdated(
            remaining_distance=closest.remaining_distance,
            distance_from_track=distance_from_track,
            closest_point=closest.point,
            point_index=closest.index,
        )
        self._publish(report)

        was_off_track = self._state.is_off_track
        off_track = distance_from_track > self.config.off_track_threshold_m
        if off_track != was_off_track:
            _LOGGER.info(
                "Off-track status changed to %s (%.1fm from track)",
                off_track,
                distance_from_track,
            )
            self._publish(
                OffTrackChanged(
                    is_off_track=off_track, distance_from_track=distance_from_track
                )
            )
        self._state.is_off_track = off_track
        self._state.last_evaluated_at = now
        return report

    def _publish(self, message: ProgressUpdated | OffTrackChanged) -> None:
        if self._bus is not None:
            self._bus.publish(message)


__all__ = ["ProgressTracker"]
