"""Typed messages and the in-process bus that delivers them.

Every notification the engine emits is one of the frozen dataclasses below.
Handlers subscribe to a message class and receive instances of exactly that
class, so payload shapes are checked statically rather than by convention.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Type, TypeVar, Union

from .config import TRACK_PROGRESS_DEBUG_EVENTS
from .models import GeoPoint, TrackMetadata

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TrackLoaded:
    points: List[GeoPoint]
    original_points: List[GeoPoint]
    total_distance: float
    metadata: TrackMetadata


@dataclass(frozen=True, slots=True)
class TrackCleared:
    pass


@dataclass(frozen=True, slots=True)
class TrackLoadFailed:
    error: Exception
    source: Optional[str] = None


@dataclass(frozen=True, slots=True)
class TrackingStarted:
    timestamp: int


@dataclass(frozen=True, slots=True)
class TrackingStopped:
    timestamp: int


@dataclass(frozen=True, slots=True)
class LocationUpdated:
    """An evaluation tick promoted the latest fix to the current location.

    ``heading`` is None unless it was recomputed on this tick.
    """

    current: GeoPoint
    previous: Optional[GeoPoint]
    heading: Optional[float]
    accuracy: Optional[float]
    timestamp: int


@dataclass(frozen=True, slots=True)
class ProgressUpdated:
    remaining_distance: float
    distance_from_track: float
    closest_point: GeoPoint
    point_index: int


@dataclass(frozen=True, slots=True)
class OffTrackChanged:
    is_off_track: bool
    distance_from_track: float


Message = Union[
    TrackLoaded,
    TrackCleared,
    TrackLoadFailed,
    TrackingStarted,
    TrackingStopped,
    LocationUpdated,
    ProgressUpdated,
    OffTrackChanged,
]

M = TypeVar("M")
Handler = Callable[[M], None]


class MessageBus:
    """Synchronous publish/subscribe mediator keyed by message class."""

    def __init__(self, debug: bool = TRACK_PROGRESS_DEBUG_EVENTS) -> None:
        self._handlers: Dict[type, List[Callable[[object], None]]] = defaultdict(list)
        self._lock = threading.RLock()
        self._debug = debug

    def subscribe(self, message_type: Type[M], handler: Handler[M]) -> None:
        with self._lock:
            self._handlers[message_type].append(handler)  # type: ignore[arg-type]
        if self._debug:
            _LOGGER.debug("Subscribed %r to %s", handler, message_type.__name__)

    def unsubscribe(self, message_type: Type[M], handler: Handler[M]) -> None:
        with self._lock:
            handlers = self._handlers.get(message_type)
            if not handlers:
                return
            self._handlers[message_type] = [h for h in handlers if h != handler]

    def publish(self, message: Message) -> None:
        """Deliver ``message`` to every handler subscribed to its class.

        A handler that raises is logged and skipped; the remaining handlers
        still receive the message.
        """

        if self._debug:
            _LOGGER.debug("Publishing %s", message)
        with self._lock:
            handlers = list(self._handlers.get(type(message), ()))
        for handler in handlers:
            try:
                handler(message)
            except Exception:
                _LOGGER.exception(
                    "Handler %r failed for %s", handler, type(message).__name__
                )

    def subscriptions(self) -> List[str]:
        """Return the message class names that currently have handlers."""

        with self._lock:
            return sorted(cls.__name__ for cls, items in self._handlers.items() if items)

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()


__all__ = [
    "LocationUpdated",
    "Message",
    "MessageBus",
    "OffTrackChanged",
    "ProgressUpdated",
    "TrackCleared",
    "TrackLoadFailed",
    "TrackLoaded",
    "TrackingStarted",
    "TrackingStopped",
]
