"""Segment summary tests."""

import csv

import pytest

from pressograph_sim import DriftConfig, Stage, TestSchedule, compose_with_segments
from pressograph_sim.report import SUMMARY_HEADER, summarize_trace, write_summary_csv


def _schedule():
    return TestSchedule(
        start_time=0,
        end_time=3_600_000,
        working_pressure=10.0,
        intermediate_stages=(Stage(1_200_000, 1_800_000, 15.0),),
    )


def test_flat_trace_summary():
    cfg = DriftConfig(seed=1, noise_magnitude=0.0, drift_magnitude=0.0)
    segments, samples = compose_with_segments(_schedule(), cfg)
    summaries = summarize_trace(samples, segments)

    assert [s.kind for s in summaries] == [s.kind for s in segments]
    ramp_up, first_hold = summaries[0], summaries[1]
    assert ramp_up.min_pressure == 0.0
    assert ramp_up.max_pressure == 10.0
    assert ramp_up.samples == 31
    assert ramp_up.max_deviation_pct is None

    assert first_hold.target_pressure == 10.0
    assert first_hold.min_pressure == first_hold.max_pressure == 10.0
    assert first_hold.max_deviation_pct == 0.0

    stage_hold = summaries[3]
    assert stage_hold.kind == "hold"
    assert stage_hold.mean_pressure == pytest.approx(15.0)


def test_drift_band_reported_for_holds():
    cfg = DriftConfig(seed=42, noise_magnitude=0.0)
    segments, samples = compose_with_segments(_schedule(), cfg)
    holds = [s for s in summarize_trace(samples, segments) if s.kind == "hold"]

    assert holds
    for hold in holds:
        assert 0.0 < hold.max_deviation_pct <= 0.2 + 1e-9


def test_summary_csv(tmp_path):
    segments, samples = compose_with_segments(_schedule(), DriftConfig(seed=3))
    summaries = summarize_trace(samples, segments)
    path = tmp_path / "nested" / "summary.csv"

    write_summary_csv(summaries, path)

    with path.open(newline="") as handle:
        rows = list(csv.reader(handle))
    assert rows[0] == SUMMARY_HEADER
    assert len(rows) == len(summaries) + 1
    assert rows[1][:4] == ["0", "ramp", "0", "30000"]
    assert rows[1][-1] == ""
    assert rows[2][-1] != ""
