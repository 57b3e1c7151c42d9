"""Mediator wiring the track, location stream and progress tracker together.

The engine owns one instance of each component and a message bus. Hosts feed
it discrete events (track content, raw fixes, start/stop requests) and call
:meth:`TrackingEngine.advance` whenever time may have passed; everything else
happens synchronously inside those calls.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Union

from .clock import Clock, PeriodicTask, SystemClock
from .config import LAST_TRACK_KEY, TrackingConfig
from .errors import TrackLoadError
from .events import (
    LocationUpdated,
    MessageBus,
    TrackCleared,
    TrackingStarted,
    TrackingStopped,
    TrackLoaded,
    TrackLoadFailed,
)
from .ingest import decode_text, parse_track_content
from .location import LocationStream, RawFix
from .models import ClosestPoint, GeoPoint, LocationState, ProgressState, TrackData
from .progress import ProgressTracker
from .storage import InMemoryTrackStore, TrackStore
from .track import RawCoordinate, Track

_LOGGER = logging.getLogger(__name__)


class TrackingEngine:
    """Single entry point used by the surrounding application."""

    def __init__(
        self,
        config: Optional[TrackingConfig] = None,
        *,
        clock: Optional[Clock] = None,
        bus: Optional[MessageBus] = None,
        store: Optional[TrackStore] = None,
        store_key: str = LAST_TRACK_KEY,
    ) -> None:
        self.config = (config or TrackingConfig()).validate()
        self.clock: Clock = clock or SystemClock()
        self.bus = bus or MessageBus()
        self.store: TrackStore = store if store is not None else InMemoryTrackStore()
        self._store_key = store_key

        self.track = Track(self.config.interpolation_distance_m)
        self.location = LocationStream(self.config, self.bus)
        self.progress = ProgressTracker(self.config, self.bus)
        self._ticker = PeriodicTask(
            self.config.fix_evaluation_interval_ms, self._on_tick
        )

    # ------------------------------------------------------------------
    # Track lifecycle
    # ------------------------------------------------------------------
    def load_track(
        self, content: Union[str, bytes], source: str = "file"
    ) -> Optional[TrackData]:
        """Parse and load GPX or encoded-polyline content.

        On success the raw content is persisted for :meth:`reload_last_track`;
        a store failure is logged and does not undo the load.
        On failure the previous track stays in place, a
        :class:`TrackLoadFailed` message is published and None is returned.
        """

        try:
            parsed = parse_track_content(content)
            data = self.track.load(
                parsed.coordinates,
                source=source,
                name=parsed.name,
                description=parsed.description,
                loaded_at=self.clock.now_ms(),
            )
        except TrackLoadError as exc:
            self._report_load_failure(exc, source)
            return None

        try:
            self.store.set(self._store_key, decode_text(content))
        except OSError as exc:
            _LOGGER.error("Failed to persist track from %s: %s", source, exc)
        self._after_load(data)
        return data

    def load_coordinates(
        self,
        coordinates: Iterable[RawCoordinate],
        *,
        source: str = "coordinates",
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[TrackData]:
        """Load already-parsed ``(longitude, latitude)`` pairs (not persisted)."""

        try:
            data = self.track.load(
                coordinates,
                source=source,
                name=name,
                description=description,
                loaded_at=self.clock.now_ms(),
            )
        except TrackLoadError as exc:
            self._report_load_failure(exc, source)
            return None
        self._after_load(data)
        return data

    def reload_last_track(self) -> Optional[TrackData]:
        content = self.store.get(self._store_key)
        if not content:
            _LOGGER.info("No stored track to reload")
            return None
        return self.load_track(content, source="storage")

    def clear_track(self) -> None:
        self.track.clear()
        self.progress.reset()
        _LOGGER.info("Track cleared")
        self.bus.publish(TrackCleared())

    def forget_last_track(self) -> None:
        """Drop the persisted copy so :meth:`reload_last_track` finds nothing."""

        self.store.delete(self._store_key)
        _LOGGER.info("Stored track forgotten")

    def _after_load(self, data: TrackData) -> None:
        self.progress.reset()
        self.bus.publish(
            TrackLoaded(
                points=data.points,
                original_points=data.original_points,
                total_distance=data.total_distance,
                metadata=data.metadata,
            )
        )
        current = self.location.current
        if current is not None:
            self.progress.on_location_updated(
                current, self.track, self.clock.now_ms()
            )

    def _report_load_failure(self, exc: TrackLoadError, source: str) -> None:
        _LOGGER.warning("Failed to load track from %s: %s", source, exc)
        self.bus.publish(TrackLoadFailed(error=exc, source=source))

    # ------------------------------------------------------------------
    # Location tracking
    # ------------------------------------------------------------------
    def start_tracking(self) -> bool:
        if not self.location.start_tracking():
            return False
        now = self.clock.now_ms()
        self.progress.force_next()
        self._ticker.start(now)
        self.bus.publish(TrackingStarted(timestamp=now))
        return True

    def stop_tracking(self) -> bool:
        if not self.location.stop_tracking():
            return False
        self._ticker.stop()
        self.bus.publish(TrackingStopped(timestamp=self.clock.now_ms()))
        return True

    def pause(self) -> None:
        self.location.pause()

    def resume(self) -> Optional[LocationUpdated]:
        message = self.location.resume(self.clock.now_ms())
        self._evaluate_progress(message)
        return message

    def refresh(self) -> Optional[LocationUpdated]:
        """Re-publish the current location (progress stays throttled)."""

        message = self.location.refresh(self.clock.now_ms())
        self._evaluate_progress(message)
        return message

    def submit_fix(self, position: RawFix) -> bool:
        return self.location.submit_fix(position, self.clock.now_ms())

    def advance(self) -> bool:
        """Run the evaluation tick if its period has elapsed on the clock."""

        return self._ticker.run_pending(self.clock.now_ms())

    def _on_tick(self, now: int) -> None:
        self._evaluate_progress(self.location.evaluate(now))

    def _evaluate_progress(self, message: Optional[LocationUpdated]) -> None:
        # Evaluation errors propagate to the caller; bus handlers only log.
        if message is None:
            return
        self.progress.on_location_updated(
            message.current, self.track, message.timestamp
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_closest_point(
        self, location: Optional[GeoPoint] = None
    ) -> Optional[ClosestPoint]:
        """Nearest track point to ``location`` (defaults to the current location)."""

        return self.track.find_closest_point(location or self.location.current)

    def get_track_data(self) -> TrackData:
        return self.track.get_track_data()

    def get_current_location(self) -> Optional[GeoPoint]:
        return self.location.current

    def get_location_state(self) -> LocationState:
        return self.location.snapshot()

    def get_progress_state(self) -> ProgressState:
        return self.progress.state()


__all__ = ["TrackingEngine"]
