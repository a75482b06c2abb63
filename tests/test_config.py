"""Run-file loading tests (YAML and JSON schedules)."""

import json
import os
from datetime import datetime, timezone

import pytest

from pressograph_sim import DriftConfig, ScheduleError, Stage, compose_trace
from pressograph_sim.config import (
    drift_config_from_dict,
    load_config,
    load_run_file,
    parse_timestamp,
    schedule_from_dict,
)

START_MS = int(datetime(2024, 3, 1, 8, tzinfo=timezone.utc).timestamp() * 1000)


def test_yaml_run_file_with_relative_stage(tmp_path):
    run_file = tmp_path / "daily.yaml"
    run_file.write_text(
        "schedule:\n"
        "  startTime: 2024-03-01T08:00:00\n"
        "  endTime: 2024-03-01T09:00:00\n"
        "  workingPressure: 10\n"
        "  intermediateStages:\n"
        "    - offset_hours: 0.5\n"
        "      duration_minutes: 2\n"
        "      pressure: 15\n"
        "drift:\n"
        "  seed: 7\n"
        "  noiseMagnitude: 0\n"
    )

    schedule, drift_options = load_run_file(run_file)

    assert schedule.start_time == START_MS
    assert schedule.end_time == START_MS + 3_600_000
    assert schedule.working_pressure == 10
    assert schedule.intermediate_stages == (
        Stage(START_MS + 1_800_000, START_MS + 1_920_000, 15),
    )
    assert drift_options == {"seed": 7, "noise_magnitude": 0}

    trace = compose_trace(schedule, DriftConfig(**drift_options))
    assert trace[0].time == START_MS
    assert trace[-1].time == START_MS + 3_600_000


def test_bare_json_schedule(tmp_path):
    run_file = tmp_path / "bare.json"
    run_file.write_text(
        json.dumps(
            {
                "start_time": 0,
                "end_time": 3_600_000,
                "working_pressure": 12.5,
                "intermediate_stages": [
                    {"start_time": "1970-01-01T00:20:00", "end_time": "1970-01-01T00:30:00"}
                ],
            }
        )
    )

    schedule, drift_options = load_run_file(run_file)

    assert drift_options == {}
    assert schedule.intermediate_stages == (Stage(1_200_000, 1_800_000, 12.5),)


def test_load_config_returns_independent_copies(tmp_path):
    run_file = tmp_path / "cached.yaml"
    run_file.write_text("start_time: 0\nend_time: 60000\nworking_pressure: 4\n")

    first = load_config(run_file)
    first["working_pressure"] = 99
    assert load_config(run_file)["working_pressure"] == 4


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_run_file(tmp_path / "absent.yaml")


def test_parse_timestamp_variants():
    assert parse_timestamp(1500) == 1500
    assert parse_timestamp("1970-01-01T00:00:01") == 1000
    assert parse_timestamp("1970-01-01T01:00:00+01:00") == 0
    assert parse_timestamp(datetime(1970, 1, 1, 0, 1)) == 60_000
    with pytest.raises(ScheduleError):
        parse_timestamp("yesterday")
    with pytest.raises(ScheduleError):
        parse_timestamp(True)


@pytest.mark.parametrize(
    "data",
    [
        {"end_time": 1, "working_pressure": 1},
        {"start_time": 0, "end_time": 1, "working_pressure": "high"},
        {"start_time": 0, "end_time": 1, "working_pressure": 1, "colour": "red"},
        {"start_time": 0, "end_time": 1, "working_pressure": 1, "stages": {"a": 1}},
        {"start_time": 0, "end_time": 1, "working_pressure": 1, "stages": [{"pressure": 3}]},
        {"start_time": 0, "end_time": 1, "working_pressure": 1, "stages": [5]},
        {"start_time": float("nan"), "end_time": 1, "working_pressure": 1},
        {"start_time": 0, "end_time": float("inf"), "working_pressure": 1},
        {"start_time": 0, "end_time": 1, "working_pressure": float("nan")},
        {
            "start_time": 0,
            "end_time": 1,
            "working_pressure": 1,
            "stages": [{"time": float("nan"), "duration": 2}],
        },
    ],
)
def test_malformed_schedule_dicts(data):
    with pytest.raises(ScheduleError):
        schedule_from_dict(data)


def test_drift_config_from_dict():
    cfg = drift_config_from_dict(
        {"driftMagnitude": 0.01, "noise_magnitude": 0.0, "samplingRate": 2, "seed": 5}
    )
    assert cfg == DriftConfig(
        drift_magnitude=0.01, noise_magnitude=0.0, sampling_rate_seconds=2, seed=5
    )
    assert drift_config_from_dict(None).drift_magnitude == 0.002


@pytest.mark.parametrize(
    "data",
    [
        {"seed": "abc"},
        {"seed": 1.5},
        {"jitter": 1},
        {"noise_magnitude": -0.1},
        {"samplingRate": 0},
        {"noise_magnitude": float("nan")},
        {"driftMagnitude": float("inf")},
        {"samplingRate": float("nan")},
    ],
)
def test_malformed_drift_sections(data):
    with pytest.raises(ScheduleError):
        drift_config_from_dict(data)


def test_unknown_top_level_section(tmp_path):
    run_file = tmp_path / "extra.yaml"
    run_file.write_text(
        "schedule: {start_time: 0, end_time: 60000, working_pressure: 1}\nplot: {}\n"
    )
    with pytest.raises(ScheduleError):
        load_run_file(run_file)


def test_yaml_nan_and_inf_are_rejected(tmp_path):
    run_file = tmp_path / "nan.yaml"
    run_file.write_text("start_time: .nan\nend_time: 60000\nworking_pressure: 4\n")
    with pytest.raises(ScheduleError):
        load_run_file(run_file)

    run_file.write_text("start_time: 0\nend_time: .inf\nworking_pressure: 4\n")
    os.utime(run_file, ns=(0, 10**18))
    with pytest.raises(ScheduleError):
        load_run_file(run_file)


def test_cache_follows_working_directory(tmp_path, monkeypatch):
    for name, pressure in (("a", 4), ("b", 7)):
        (tmp_path / name).mkdir()
        (tmp_path / name / "run.yaml").write_text(
            f"start_time: 0\nend_time: 60000\nworking_pressure: {pressure}\n"
        )

    monkeypatch.chdir(tmp_path / "a")
    assert load_config("run.yaml")["working_pressure"] == 4
    monkeypatch.chdir(tmp_path / "b")
    assert load_config("run.yaml")["working_pressure"] == 7


def test_cache_reloads_edited_file(tmp_path):
    run_file = tmp_path / "edited.yaml"
    run_file.write_text("start_time: 0\nend_time: 60000\nworking_pressure: 4\n")
    os.utime(run_file, ns=(0, 10**18))
    assert load_config(run_file)["working_pressure"] == 4

    run_file.write_text("start_time: 0\nend_time: 60000\nworking_pressure: 9\n")
    os.utime(run_file, ns=(0, 2 * 10**18))
    assert load_config(run_file)["working_pressure"] == 9
