"""Central configuration for the track progress engine.

Module constants are read from environment variables (optionally via a local
``.env``) and feed the defaults of :class:`TrackingConfig`, which is the value
actually injected into each component.
"""

from __future__ import annotations

import importlib
import os
from dataclasses import dataclass


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except ImportError:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Track geometry
# ---------------------------------------------------------------------------
# Maximum spacing (metres) between consecutive points after densification.
TRACK_INTERPOLATION_DISTANCE_M = _env_float("TRACK_INTERPOLATION_DISTANCE_M", 50.0)


# ---------------------------------------------------------------------------
# Location stream
# ---------------------------------------------------------------------------
# Cadence of the sample-and-hold evaluation tick.
FIX_EVALUATION_INTERVAL_MS = _env_int("FIX_EVALUATION_INTERVAL_MS", 5000)

# Movement required between ticks before the heading is recomputed.
MINIMUM_HEADING_DISTANCE_M = _env_float("MINIMUM_HEADING_DISTANCE_M", 4.0)

# Reject fixes whose reported accuracy is worse than this. 0 disables.
MAX_ACCURACY_M = _env_float("MAX_ACCURACY_M", 0.0)

# Diagnostic history of accepted fixes (FIFO).
LOCATION_HISTORY_SIZE = _env_int("LOCATION_HISTORY_SIZE", 100)


# ---------------------------------------------------------------------------
# Progress evaluation
# ---------------------------------------------------------------------------
PROGRESS_EVALUATION_INTERVAL_MS = _env_int("PROGRESS_EVALUATION_INTERVAL_MS", 60000)

# Distance from the nearest track point beyond which the user is off track.
OFF_TRACK_THRESHOLD_M = _env_float("OFF_TRACK_THRESHOLD_M", 50.0)


# ---------------------------------------------------------------------------
# Persistence / diagnostics
# ---------------------------------------------------------------------------
# Directory the CLI load/reload/forget commands keep the last track in.
LAST_TRACK_STORE_DIR = os.getenv("LAST_TRACK_STORE_DIR", ".track_progress")

# Key under which the raw content of the last loaded track is stored.
LAST_TRACK_KEY = "lastGpxContent"

# Log every published message at DEBUG level.
TRACK_PROGRESS_DEBUG_EVENTS = _env_bool("TRACK_PROGRESS_DEBUG_EVENTS", False)


@dataclass(frozen=True, slots=True)
class TrackingConfig:
    """Tunables injected into the track, location and progress components."""

    interpolation_distance_m: float = TRACK_INTERPOLATION_DISTANCE_M
    minimum_heading_distance_m: float = MINIMUM_HEADING_DISTANCE_M
    fix_evaluation_interval_ms: int = FIX_EVALUATION_INTERVAL_MS
    progress_evaluation_interval_ms: int = PROGRESS_EVALUATION_INTERVAL_MS
    off_track_threshold_m: float = OFF_TRACK_THRESHOLD_M
    max_accuracy_m: float | None = MAX_ACCURACY_M or None
    location_history_size: int = LOCATION_HISTORY_SIZE

    def validate(self) -> "TrackingConfig":
        """Return ``self`` or raise ``ValueError`` for unusable values."""

        if self.interpolation_distance_m <= 0:
            raise ValueError("interpolation_distance_m must be greater than zero")
        if self.fix_evaluation_interval_ms <= 0:
            raise ValueError("fix_evaluation_interval_ms must be greater than zero")
        if self.progress_evaluation_interval_ms < 0:
            raise ValueError("progress_evaluation_interval_ms must be >= 0")
        if self.minimum_heading_distance_m < 0:
            raise ValueError("minimum_heading_distance_m must be >= 0")
        if self.off_track_threshold_m < 0:
            raise ValueError("off_track_threshold_m must be >= 0")
        if self.max_accuracy_m is not None and self.max_accuracy_m <= 0:
            raise ValueError("max_accuracy_m must be positive when set")
        if self.location_history_size < 0:
            raise ValueError("location_history_size must be >= 0")
        return self
