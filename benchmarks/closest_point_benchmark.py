"""Benchmark track loading and nearest-point search on long tracks."""

from __future__ import annotations

import argparse
import statistics
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Late imports rely on the adjusted sys.path above.
from track_progress.config import TrackingConfig  # noqa: E402
from track_progress.models import GeoPoint  # noqa: E402
from track_progress.progress import ProgressTracker  # noqa: E402
from track_progress.track import Track  # noqa: E402


@dataclass(slots=True)
class StageDurations:
    """Timing measurements (in seconds) for one benchmark iteration."""

    load: float
    queries: float
    progress: float

    @property
    def total(self) -> float:
        return self.load + self.queries + self.progress


@dataclass(slots=True)
class BenchmarkSummary:
    """Aggregated statistics for multiple benchmark iterations."""

    point_count: int
    densified_count: int
    query_count: int
    iterations: int
    mean_load_ms: float
    mean_query_us: float
    mean_progress_ms: float
    mean_total_ms: float
    worst_total_ms: float


def _build_coordinates(point_count: int) -> List[tuple[float, float]]:
    """Generate a zig-zag (longitude, latitude) track heading north."""

    base_lat = 46.0
    base_lon = 7.0
    step_deg = 9.0e-4  # ~100 m, so every segment gets densified
    return [
        (base_lon + (idx % 2) * step_deg, base_lat + idx * step_deg)
        for idx in range(point_count)
    ]


def _build_queries(
    coordinates: List[tuple[float, float]], query_count: int
) -> List[GeoPoint]:
    """Pick query locations slightly offset from evenly spread track vertices."""

    stride = max(1, len(coordinates) // query_count)
    return [
        GeoPoint(longitude=lon + 1.0e-4, latitude=lat)
        for lon, lat in coordinates[::stride][:query_count]
    ]


def _run_iteration(
    coordinates: List[tuple[float, float]],
    queries: List[GeoPoint],
    config: TrackingConfig,
) -> tuple[StageDurations, int]:
    """Execute one iteration and capture per-stage timings."""

    start = time.perf_counter()
    track = Track(config.interpolation_distance_m)
    track.load(coordinates, source="benchmark")
    load = time.perf_counter() - start

    start = time.perf_counter()
    for location in queries:
        if track.find_closest_point(location) is None:
            raise RuntimeError("Benchmark track unexpectedly empty")
    query_time = time.perf_counter() - start

    tracker = ProgressTracker(config)
    start = time.perf_counter()
    for step, location in enumerate(queries):
        tracker.on_location_updated(
            location, track, (step + 1) * config.progress_evaluation_interval_ms
        )
    progress = time.perf_counter() - start

    return StageDurations(load=load, queries=query_time, progress=progress), len(track)


def run_benchmark(
    point_count: int,
    iterations: int,
    query_count: int,
) -> BenchmarkSummary:
    """Benchmark load, query and progress stages and aggregate timings."""

    if point_count < 2:
        raise ValueError("point_count must be at least 2")
    if iterations <= 0:
        raise ValueError("iterations must be positive")
    if query_count <= 0:
        raise ValueError("query_count must be positive")

    config = TrackingConfig().validate()
    coordinates = _build_coordinates(point_count)
    queries = _build_queries(coordinates, query_count)

    durations: List[StageDurations] = []
    densified_count = 0
    for _ in range(iterations):
        stage, densified_count = _run_iteration(coordinates, queries, config)
        durations.append(stage)

    return BenchmarkSummary(
        point_count=point_count,
        densified_count=densified_count,
        query_count=len(queries),
        iterations=iterations,
        mean_load_ms=statistics.fmean(item.load for item in durations) * 1000.0,
        mean_query_us=(
            statistics.fmean(item.queries for item in durations)
            / len(queries)
            * 1_000_000.0
        ),
        mean_progress_ms=statistics.fmean(item.progress for item in durations)
        * 1000.0,
        mean_total_ms=statistics.fmean(item.total for item in durations) * 1000.0,
        worst_total_ms=max(item.total for item in durations) * 1000.0,
    )


def _format_summary(summary: BenchmarkSummary) -> Dict[str, float]:
    """Return a JSON-friendly representation of the benchmark summary."""

    return {
        "point_count": summary.point_count,
        "densified_count": summary.densified_count,
        "query_count": summary.query_count,
        "iterations": summary.iterations,
        "mean_load_ms": summary.mean_load_ms,
        "mean_query_us": summary.mean_query_us,
        "mean_progress_ms": summary.mean_progress_ms,
        "mean_total_ms": summary.mean_total_ms,
        "worst_total_ms": summary.worst_total_ms,
    }


def _parse_args() -> argparse.Namespace:
    """Parse command-line arguments for the benchmark utility."""

    parser = argparse.ArgumentParser(
        description="Benchmark track loading and nearest-point search",
    )
    parser.add_argument(
        "--points",
        type=int,
        default=5000,
        help="Number of original points in the synthetic track",
    )
    parser.add_argument(
        "--queries",
        type=int,
        default=500,
        help="Number of nearest-point queries per iteration",
    )
    parser.add_argument(
        "--iterations",
        type=int,
        default=5,
        help="Number of repetitions for averaging",
    )
    return parser.parse_args()


def main() -> None:
    """Entry point when running the module as a script."""

    args = _parse_args()
    summary = run_benchmark(args.points, args.iterations, args.queries)
    formatted = _format_summary(summary)
    for key, value in formatted.items():
        if key in {"point_count", "densified_count", "query_count", "iterations"}:
            print(f"{key}: {value}")
        else:
            print(f"{key}: {value:.3f}")


if __name__ == "__main__":
    main()
