"""Sample-and-hold location stream with heading estimation.

Raw fixes arrive at whatever cadence the platform delivers them. Only the
latest one is retained; a periodic evaluation tick promotes it to the current
location, derives the heading from the previously promoted fix and publishes a
:class:`~track_progress.events.LocationUpdated` message.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import replace
from typing import Any, List, Mapping, Optional, Union

from . import geo
from .config import TrackingConfig
from .errors import MalformedPointError
from .events import LocationUpdated, MessageBus
from .models import GeoPoint, HistoryEntry, LocationState

_LOGGER = logging.getLogger(__name__)

RawFix = Union[GeoPoint, Mapping[str, Any]]


class LocationStream:
    """Owns the rolling fix state; Idle until :meth:`start_tracking`."""

    def __init__(
        self,
        config: Optional[TrackingConfig] = None,
        bus: Optional[MessageBus] = None,
    ) -> None:
        self.config = (config or TrackingConfig()).validate()
        self._bus = bus
        self._lock = threading.RLock()
        self._state = LocationState(
            history=deque(maxlen=self.config.location_history_size)
        )
        self._pending: Optional[GeoPoint] = None
        self._paused = False

    @property
    def is_tracking(self) -> bool:
        return self._state.is_tracking

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def current(self) -> Optional[GeoPoint]:
        return self._state.current

    @property
    def previous(self) -> Optional[GeoPoint]:
        return self._state.previous

    @property
    def heading(self) -> Optional[float]:
        return self._state.heading

    @property
    def has_pending_fix(self) -> bool:
        return self._pending is not None

    def start_tracking(self) -> bool:
        """Enter the Tracking state. Returns False if already tracking."""

        with self._lock:
            if self._state.is_tracking:
                return False
            self._state.is_tracking = True
            self._state.history.clear()
            self._pending = None
            self._paused = False
        _LOGGER.info("Location tracking started")
        return True

    def stop_tracking(self) -> bool:
        """Return to Idle, keeping the last known current location."""

        with self._lock:
            if not self._state.is_tracking:
                return False
            self._state.is_tracking = False
            self._state.history.clear()
            self._pending = None
            self._paused = False
        _LOGGER.info("Location tracking stopped")
        return True

    def pause(self) -> None:
        with self._lock:
            self._paused = True

    def resume(self, now: int) -> Optional[LocationUpdated]:
        """Lift a pause and evaluate immediately."""

        with self._lock:
            self._paused = False
        return self.evaluate(now)

    def submit_fix(self, position: RawFix, now: int) -> bool:
        """Hold ``position`` as the latest fix. Returns True when retained.

        Ignored while Idle. Fixes with unusable coordinates, or with an
        accuracy worse than ``max_accuracy_m`` when configured, are dropped.
        """

        with self._lock:
            if not self._state.is_tracking:
                return False
            if isinstance(position, GeoPoint):
                fix = position
            else:
                try:
                    fix = GeoPoint.from_position(position)
                except MalformedPointError as exc:
                    _LOGGER.warning("Rejected fix: %s", exc)
                    return False
            if fix.timestamp is None:
                fix = replace(fix, timestamp=now)
            max_accuracy = self.config.max_accuracy_m
            if (
                max_accuracy is not None
                and fix.accuracy is not None
                and fix.accuracy > max_accuracy
            ):
                _LOGGER.debug(
                    "Rejected fix with accuracy %.1fm (limit %.1fm)",
                    fix.accuracy,
                    max_accuracy,
                )
                return False
            self._pending = fix
            return True

    def evaluate(self, now: int) -> Optional[LocationUpdated]:
        """Promote the held fix to the current location.

        No-op when Idle, paused, or when no fix arrived since the previous
        evaluation. The heading is recomputed only if the movement since the
        previous evaluation reaches ``minimum_heading_distance_m``; the
        published heading is None otherwise.
        """

        with self._lock:
            state = self._state
            if not state.is_tracking or self._paused or self._pending is None:
                return None
            state.previous = state.current
            state.current = self._pending
            self._pending = None
            state.last_accepted_at = now

            new_heading: Optional[float] = None
            if state.previous is not None:
                moved = geo.distance(state.previous, state.current)
                if moved >= self.config.minimum_heading_distance_m:
                    new_heading = geo.bearing(state.previous, state.current)
                    state.heading = new_heading

            state.history.append(
                HistoryEntry(
                    location=state.current, heading=state.heading, timestamp=now
                )
            )
            message = LocationUpdated(
                current=state.current,
                previous=state.previous,
                heading=new_heading,
                accuracy=state.current.accuracy,
                timestamp=now,
            )
        if self._bus is not None:
            self._bus.publish(message)
        return message

    def refresh(self, now: int) -> Optional[LocationUpdated]:
        """Re-publish the current location without touching the state.

        No-op when Idle, paused, or before any fix was promoted.
        """

        current = self._state.current
        if current is None or not self._state.is_tracking or self._paused:
            return None
        message = LocationUpdated(
            current=current,
            previous=self._state.previous,
            heading=None,
            accuracy=current.accuracy,
            timestamp=now,
        )
        if self._bus is not None:
            self._bus.publish(message)
        return message

    def history(self) -> List[HistoryEntry]:
        with self._lock:
            return list(self._state.history)

    def snapshot(self) -> LocationState:
        """Return a copy of the state (the history is copied too)."""

        with self._lock:
            state = self._state
            return LocationState(
                current=state.current,
                previous=state.previous,
                heading=state.heading,
                is_tracking=state.is_tracking,
                last_accepted_at=state.last_accepted_at,
                history=deque(state.history, maxlen=state.history.maxlen),
            )


__all__ = ["LocationStream", "RawFix"]
