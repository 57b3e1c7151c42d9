"""Smoke test for the closest-point benchmark script."""

import pytest

from benchmarks import closest_point_benchmark


@pytest.mark.benchmark
def test_run_benchmark_small_track():
    summary = closest_point_benchmark.run_benchmark(
        point_count=50, iterations=2, query_count=10
    )
    assert summary.point_count == 50
    assert summary.query_count == 10
    # Every ~100 m segment gains at least one interpolated point.
    assert summary.densified_count >= 2 * 50 - 1
    assert summary.worst_total_ms >= summary.mean_total_ms > 0


def test_run_benchmark_rejects_bad_arguments():
    with pytest.raises(ValueError):
        closest_point_benchmark.run_benchmark(point_count=1, iterations=1, query_count=1)
    with pytest.raises(ValueError):
        closest_point_benchmark.run_benchmark(point_count=10, iterations=0, query_count=1)
