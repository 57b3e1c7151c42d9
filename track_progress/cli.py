#!/usr/bin/env python3
"""Command line tooling for inspecting tracks and replaying recorded fixes.

Usage:
    python run.py inspect route.gpx
    python run.py export route.gpx --output route.geojson
    python run.py replay route.gpx fixes.csv --output report.csv
    python run.py load route.gpx
    python run.py reload
    python run.py forget

The replay command feeds a CSV of fixes (``timestamp`` in epoch milliseconds,
``latitude``, ``longitude`` and optionally ``accuracy``, ``altitude``,
``speed``) through the engine on a virtual clock, so an outing can be
re-evaluated offline with different thresholds.

``load`` remembers a track in ``--store-dir`` (default ``LAST_TRACK_STORE_DIR``)
so that a later ``reload`` can bring it back; ``forget`` removes it.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .clock import ManualClock
from .config import LAST_TRACK_STORE_DIR, TrackingConfig
from .engine import TrackingEngine
from .errors import TrackLoadError
from .events import (
    LocationUpdated,
    OffTrackChanged,
    ProgressUpdated,
    TrackLoadFailed,
)
from .ingest import read_track_file
from .models import TrackData
from .storage import FileTrackStore
from .track import Track
from .utils import compass_direction, format_distance

LOGGER = logging.getLogger("track_progress.cli")

REQUIRED_FIX_COLUMNS = ("timestamp", "latitude", "longitude")
OPTIONAL_FIX_COLUMNS = ("accuracy", "altitude", "speed")
_CONFIG_OVERRIDES = (
    ("spacing", "interpolation_distance_m"),
    ("progress_interval", "progress_evaluation_interval_ms"),
    ("off_track_threshold", "off_track_threshold_m"),
    ("max_accuracy", "max_accuracy_m"),
)
REPORT_COLUMNS = [
    "event",
    "timestamp",
    "latitude",
    "longitude",
    "heading",
    "remaining_distance",
    "distance_from_track",
    "point_index",
    "is_off_track",
]


def read_fixes(path: Path | str) -> pd.DataFrame:
    """Load recorded fixes sorted by timestamp.

    Raises:
        ValueError: A required column is missing.
    """

    frame = pd.read_csv(path)
    frame.columns = [str(col).strip().lower() for col in frame.columns]
    missing = [col for col in REQUIRED_FIX_COLUMNS if col not in frame.columns]
    if missing:
        raise ValueError(
            f"Fix file is missing required columns: {', '.join(missing)}"
        )
    frame = frame.dropna(subset=list(REQUIRED_FIX_COLUMNS)).copy()
    frame["timestamp"] = frame["timestamp"].astype("int64")
    return frame.sort_values("timestamp", kind="stable").reset_index(drop=True)


def _fix_record(row: Dict[str, Any]) -> Dict[str, Any]:
    record = {col: row[col] for col in REQUIRED_FIX_COLUMNS}
    for col in OPTIONAL_FIX_COLUMNS:
        if col in row and pd.notna(row[col]):
            record[col] = row[col]
    record["timestamp"] = int(record["timestamp"])
    return record


def replay_fixes(
    engine: TrackingEngine, clock: ManualClock, fixes: pd.DataFrame
) -> pd.DataFrame:
    """Drive ``engine`` through ``fixes`` and collect every published report.

    ``engine`` must have been built with ``clock``. Tracking starts at the
    first fix and one extra evaluation period is run after the last fix so
    it is promoted too.
    """

    rows: List[Dict[str, Any]] = []

    def on_location(message: LocationUpdated) -> None:
        rows.append(
            {
                "event": "location",
                "timestamp": message.timestamp,
                "latitude": message.current.latitude,
                "longitude": message.current.longitude,
                "heading": message.heading,
            }
        )

    def on_progress(message: ProgressUpdated) -> None:
        rows.append(
            {
                "event": "progress",
                "timestamp": clock.now_ms(),
                "latitude": message.closest_point.latitude,
                "longitude": message.closest_point.longitude,
                "remaining_distance": message.remaining_distance,
                "distance_from_track": message.distance_from_track,
                "point_index": message.point_index,
            }
        )

    def on_off_track(message: OffTrackChanged) -> None:
        rows.append(
            {
                "event": "off_track",
                "timestamp": clock.now_ms(),
                "distance_from_track": message.distance_from_track,
                "is_off_track": message.is_off_track,
            }
        )

    engine.bus.subscribe(LocationUpdated, on_location)
    engine.bus.subscribe(ProgressUpdated, on_progress)
    engine.bus.subscribe(OffTrackChanged, on_off_track)
    try:
        if not fixes.empty:
            clock.set(int(fixes["timestamp"].iloc[0]))
            engine.start_tracking()
            for row in fixes.to_dict(orient="records"):
                clock.set(int(row["timestamp"]))
                engine.advance()
                engine.submit_fix(_fix_record(row))
            clock.advance(engine.config.fix_evaluation_interval_ms)
            engine.advance()
            engine.stop_tracking()
    finally:
        engine.bus.unsubscribe(LocationUpdated, on_location)
        engine.bus.unsubscribe(ProgressUpdated, on_progress)
        engine.bus.unsubscribe(OffTrackChanged, on_off_track)
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def summarize_report(report: pd.DataFrame) -> Dict[str, Any]:
    """Return headline figures for a replay report."""

    progress = report[report["event"] == "progress"]
    off_track = report[report["event"] == "off_track"]
    locations = report[report["event"] == "location"]
    headings = locations["heading"].dropna()
    return {
        "locations": int(len(locations)),
        "evaluations": int(len(progress)),
        "off_track_changes": int(len(off_track)),
        "final_remaining_m": (
            float(progress["remaining_distance"].iloc[-1]) if len(progress) else None
        ),
        "max_distance_from_track_m": (
            float(progress["distance_from_track"].max()) if len(progress) else None
        ),
        "final_heading": (
            compass_direction(float(headings.iloc[-1])) if len(headings) else None
        ),
    }


def _build_config(args: argparse.Namespace) -> TrackingConfig:
    overrides: Dict[str, Any] = {}
    for option, field_name in _CONFIG_OVERRIDES:
        value = getattr(args, option, None)
        if value is not None:
            overrides[field_name] = value
    try:
        return replace(TrackingConfig(), **overrides).validate()
    except ValueError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc


def _load_track(path: Path, config: TrackingConfig) -> Track:
    try:
        _, parsed = read_track_file(path)
        track = Track(config.interpolation_distance_m)
        track.load(
            parsed.coordinates,
            source=str(path),
            name=parsed.name,
            description=parsed.description,
        )
    except (OSError, TrackLoadError) as exc:
        raise SystemExit(f"Failed to load track {path}: {exc}") from exc
    return track


def _print_track_summary(data: TrackData, label: str, spacing_m: float) -> None:
    print(f"Track:      {data.metadata.name or label}")
    if data.metadata.description:
        print(f"About:      {data.metadata.description}")
    print(
        f"Points:     {len(data.original_points)} original, "
        f"{len(data.points)} densified"
    )
    print(f"Spacing:    {format_distance(spacing_m)}")
    print(f"Distance:   {format_distance(data.total_distance)}")


def _cmd_inspect(args: argparse.Namespace) -> int:
    config = _build_config(args)
    track = _load_track(args.track, config)
    _print_track_summary(
        track.get_track_data(), args.track.name, track.interpolation_distance_m
    )
    return 0


def _stored_engine(args: argparse.Namespace) -> TrackingEngine:
    config = _build_config(args)
    return TrackingEngine(config, store=FileTrackStore(args.store_dir))


def _cmd_load(args: argparse.Namespace) -> int:
    engine = _stored_engine(args)
    failures: List[TrackLoadFailed] = []
    engine.bus.subscribe(TrackLoadFailed, failures.append)
    try:
        content = args.track.read_bytes()
    except OSError as exc:
        raise SystemExit(f"Failed to read track {args.track}: {exc}") from exc
    data = engine.load_track(content, source=str(args.track))
    if data is None:
        reason = failures[-1].error if failures else "unknown error"
        raise SystemExit(f"Failed to load track {args.track}: {reason}")
    _print_track_summary(
        data, args.track.name, engine.config.interpolation_distance_m
    )
    LOGGER.info("Stored track in %s", args.store_dir)
    return 0


def _cmd_reload(args: argparse.Namespace) -> int:
    engine = _stored_engine(args)
    failures: List[TrackLoadFailed] = []
    engine.bus.subscribe(TrackLoadFailed, failures.append)
    data = engine.reload_last_track()
    if data is None:
        if failures:
            raise SystemExit(f"Stored track is unusable: {failures[-1].error}")
        raise SystemExit(f"No stored track in {args.store_dir}")
    _print_track_summary(
        data, "stored track", engine.config.interpolation_distance_m
    )
    return 0


def _cmd_forget(args: argparse.Namespace) -> int:
    try:
        _stored_engine(args).forget_last_track()
    except OSError as exc:
        raise SystemExit(f"Failed to remove stored track: {exc}") from exc
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    config = _build_config(args)
    track = _load_track(args.track, config)
    payload = json.dumps(track.to_geojson(), indent=2)
    if args.output is None:
        print(payload)
    else:
        args.output.write_text(payload, encoding="utf-8")
        LOGGER.info("Wrote %d points to %s", len(track), args.output)
    return 0


def _cmd_replay(args: argparse.Namespace) -> int:
    config = _build_config(args)
    try:
        fixes = read_fixes(args.fixes)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Failed to read fixes {args.fixes}: {exc}") from exc

    clock = ManualClock()
    engine = TrackingEngine(config, clock=clock)
    failures: List[TrackLoadFailed] = []
    engine.bus.subscribe(TrackLoadFailed, failures.append)
    try:
        content = args.track.read_bytes()
    except OSError as exc:
        raise SystemExit(f"Failed to read track {args.track}: {exc}") from exc
    if engine.load_track(content, source=str(args.track)) is None:
        reason = failures[-1].error if failures else "unknown error"
        raise SystemExit(f"Failed to load track {args.track}: {reason}")

    report = replay_fixes(engine, clock, fixes)
    if args.output is not None:
        report.to_csv(args.output, index=False)
        LOGGER.info("Wrote %d report rows to %s", len(report), args.output)

    summary = summarize_report(report)
    print(f"Fixes replayed:      {len(fixes)}")
    print(f"Locations promoted:  {summary['locations']}")
    print(f"Evaluations:         {summary['evaluations']}")
    print(f"Off-track changes:   {summary['off_track_changes']}")
    if summary["final_remaining_m"] is not None:
        print(f"Remaining at end:    {format_distance(summary['final_remaining_m'])}")
        print(
            "Max off-track:       "
            f"{format_distance(summary['max_distance_from_track_m'])}"
        )
    if summary["final_heading"] is not None:
        print(f"Final heading:       {summary['final_heading']}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect tracks and replay recorded position fixes."
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--spacing",
        type=float,
        help="Densification spacing in metres (default from config)",
    )
    parser.add_argument(
        "--store-dir",
        type=Path,
        default=Path(LAST_TRACK_STORE_DIR),
        help="Where load/reload/forget keep the last track "
        f"(default: {LAST_TRACK_STORE_DIR})",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    inspect_p = sub.add_parser("inspect", help="Print point counts and distance")
    inspect_p.add_argument("track", type=Path, help="GPX or encoded polyline file")
    inspect_p.set_defaults(handler=_cmd_inspect)

    export_p = sub.add_parser("export", help="Write the densified track as GeoJSON")
    export_p.add_argument("track", type=Path, help="GPX or encoded polyline file")
    export_p.add_argument("--output", type=Path, help="Destination (default: stdout)")
    export_p.set_defaults(handler=_cmd_export)

    replay_p = sub.add_parser("replay", help="Replay a CSV of fixes against a track")
    replay_p.add_argument("track", type=Path, help="GPX or encoded polyline file")
    replay_p.add_argument("fixes", type=Path, help="CSV of recorded fixes")
    replay_p.add_argument("--output", type=Path, help="Write the full report as CSV")
    replay_p.add_argument(
        "--off-track-threshold",
        type=float,
        help="Metres from the track before flagging off-track",
    )
    replay_p.add_argument(
        "--progress-interval",
        type=int,
        help="Minimum milliseconds between progress evaluations",
    )
    replay_p.add_argument(
        "--max-accuracy",
        type=float,
        help="Drop fixes reporting a worse accuracy (metres)",
    )
    replay_p.set_defaults(handler=_cmd_replay)

    load_p = sub.add_parser("load", help="Load a track and remember it for reload")
    load_p.add_argument("track", type=Path, help="GPX or encoded polyline file")
    load_p.set_defaults(handler=_cmd_load)

    reload_p = sub.add_parser("reload", help="Reload the remembered track")
    reload_p.set_defaults(handler=_cmd_reload)

    forget_p = sub.add_parser("forget", help="Forget the remembered track")
    forget_p.set_defaults(handler=_cmd_forget)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=getattr(logging, args.log_level),
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )
    return int(args.handler(args))


if __name__ == "__main__":  # pragma: no cover - CLI entry
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)
