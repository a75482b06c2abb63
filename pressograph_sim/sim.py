"""Deterministic pressure-trace composition for multi-stage pressure tests."""

import logging
import math
from dataclasses import asdict
from typing import Any, Dict, List, Sequence, Tuple

from .curves import generate_hold, generate_ramp
from .models import (
    DriftConfig,
    HoldSegment,
    MinutePoint,
    RampSegment,
    Sample,
    ScheduleError,
    Segment,
    TestSchedule,
)
from .prng import SeededPRNG

logger = logging.getLogger(__name__)

RAMP_DURATION_MS = 30_000
MS_PER_MINUTE = 60_000


def _check_pressure(name: str, value: float) -> None:
    if not math.isfinite(value) or value < 0:
        raise ScheduleError(f"{name} must be a finite, non-negative pressure (got {value!r})")


def validate_schedule(schedule: TestSchedule, ramp_duration_ms: float = RAMP_DURATION_MS) -> None:
    """Reject schedules that would produce out-of-order or overlapping segments."""

    if not math.isfinite(ramp_duration_ms) or ramp_duration_ms <= 0:
        raise ScheduleError(f"ramp_duration_ms must be a finite positive number (got {ramp_duration_ms!r})")

    start, end = schedule.start_time, schedule.end_time
    if not (math.isfinite(start) and math.isfinite(end)):
        raise ScheduleError(f"start_time and end_time must be finite (got {start!r}, {end!r})")
    if end <= start:
        raise ScheduleError(f"end_time {end} must be after start_time {start}")
    if end - start < 2 * ramp_duration_ms:
        raise ScheduleError(
            f"test duration {end - start} ms is shorter than the ramp-up plus ramp-down "
            f"({2 * ramp_duration_ms} ms)"
        )
    _check_pressure("working_pressure", schedule.working_pressure)

    earliest = start + ramp_duration_ms
    latest = end - ramp_duration_ms
    previous_end = None
    for index, stage in enumerate(schedule.intermediate_stages):
        label = f"stage {index}"
        _check_pressure(f"{label} pressure", stage.pressure)
        if not (math.isfinite(stage.start_time) and math.isfinite(stage.end_time)):
            raise ScheduleError(f"{label} times must be finite")
        if stage.end_time <= stage.start_time:
            raise ScheduleError(f"{label} ends at {stage.end_time} before it starts at {stage.start_time}")
        if stage.start_time < earliest or stage.end_time > latest:
            raise ScheduleError(
                f"{label} window [{stage.start_time}, {stage.end_time}] lies outside "
                f"[{earliest}, {latest}]"
            )
        if previous_end is not None and stage.start_time < previous_end:
            raise ScheduleError(f"{label} starts before the previous stage ends at {previous_end}")
        previous_end = stage.end_time


def plan_segments(
    schedule: TestSchedule, ramp_duration_ms: float = RAMP_DURATION_MS
) -> List[Segment]:
    """Lay the schedule out as ramp and hold segments that tile [start, end]."""

    validate_schedule(schedule, ramp_duration_ms)
    working = schedule.working_pressure
    final_hold_end = schedule.end_time - ramp_duration_ms

    ramp_up_end = schedule.start_time + ramp_duration_ms
    segments: List[Segment] = [RampSegment(schedule.start_time, ramp_up_end, 0.0, working)]
    current = ramp_up_end

    stages = schedule.intermediate_stages
    for index, stage in enumerate(stages):
        if stage.start_time > current:
            segments.append(HoldSegment(current, stage.start_time, working))

        # Short windows: both ramps meet in the middle with no plateau.
        midpoint = (stage.start_time + stage.end_time) / 2
        ramp_in_end = min(stage.start_time + ramp_duration_ms, midpoint)
        ramp_out_start = max(stage.end_time - ramp_duration_ms, midpoint)
        if ramp_in_end < stage.start_time + ramp_duration_ms:
            logger.info(f"stage {index} is shorter than two ramps; skipping its hold")

        segments.append(RampSegment(stage.start_time, ramp_in_end, working, stage.pressure))
        if ramp_out_start > ramp_in_end:
            segments.append(HoldSegment(ramp_in_end, ramp_out_start, stage.pressure))
        segments.append(RampSegment(ramp_out_start, stage.end_time, stage.pressure, working))
        current = stage.end_time

        next_start = stages[index + 1].start_time if index + 1 < len(stages) else final_hold_end
        if next_start > current:
            segments.append(HoldSegment(current, next_start, working))
            current = next_start

    if not stages and final_hold_end > current:
        segments.append(HoldSegment(current, final_hold_end, working))
        current = final_hold_end

    segments.append(RampSegment(current, schedule.end_time, working, 0.0))
    return segments


def render_segment(segment: Segment, config: DriftConfig, rng: SeededPRNG) -> List[Sample]:
    if isinstance(segment, HoldSegment):
        return generate_hold(segment.start_time, segment.end_time, segment.pressure, config, rng)
    return generate_ramp(
        segment.start_time,
        segment.end_time,
        segment.start_pressure,
        segment.end_pressure,
        config,
        rng,
    )


def compose_with_segments(
    schedule: TestSchedule,
    config: DriftConfig,
    ramp_duration_ms: float = RAMP_DURATION_MS,
) -> Tuple[List[Segment], List[Sample]]:
    """Planned segments plus the trace rendered from them with one shared generator."""

    segments = plan_segments(schedule, ramp_duration_ms)
    logger.debug(f"planned {len(segments)} segments for seed {config.seed}")

    rng = SeededPRNG(config.seed)
    samples: List[Sample] = [Sample(schedule.start_time, 0.0)]
    for segment in segments:
        # first point repeats the previous segment's last timestamp
        samples.extend(render_segment(segment, config, rng)[1:])

    terminal = Sample(schedule.end_time, 0.0)
    if samples[-1].time == schedule.end_time:
        samples[-1] = terminal
    else:
        samples.append(terminal)

    logger.debug(f"composed {len(samples)} samples over {schedule.duration} ms")
    return segments, samples


def compose_trace(
    schedule: TestSchedule,
    config: DriftConfig,
    ramp_duration_ms: float = RAMP_DURATION_MS,
) -> List[Sample]:
    """Full zero-anchored trace for ``schedule``; identical inputs give identical output."""
    _, samples = compose_with_segments(schedule, config, ramp_duration_ms)
    return samples


def to_minutes(samples: Sequence[Sample], start_time: float) -> List[MinutePoint]:
    return [
        MinutePoint((time - start_time) / MS_PER_MINUTE, pressure) for time, pressure in samples
    ]


def build_report(
    schedule: TestSchedule,
    config: DriftConfig,
    segments: Sequence[Segment],
    samples: Sequence[Sample],
    ramp_duration_ms: float = RAMP_DURATION_MS,
    minutes: bool = False,
) -> Dict[str, Any]:
    points = to_minutes(samples, schedule.start_time) if minutes else samples

    return {
        "config": asdict(config),
        "schedule": schedule.to_dict(),
        "ramp_duration_ms": ramp_duration_ms,
        "time_axis": "minutes" if minutes else "ms",
        "segments": [segment.to_dict() for segment in segments],
        "samples": [[x, pressure] for x, pressure in points],
        "final": {
            "samples": len(samples),
            "duration_ms": schedule.duration,
            "peak_pressure": max(pressure for _, pressure in samples),
        },
    }


def run_trace(
    schedule: TestSchedule,
    config: DriftConfig,
    ramp_duration_ms: float = RAMP_DURATION_MS,
    minutes: bool = False,
) -> Dict[str, Any]:
    """Compose a trace and package it as a JSON-ready report."""

    segments, samples = compose_with_segments(schedule, config, ramp_duration_ms)
    return build_report(schedule, config, segments, samples, ramp_duration_ms, minutes)


if __name__ == "__main__":
    import json

    demo = TestSchedule(start_time=0, end_time=3_600_000, working_pressure=10.0)
    print(json.dumps(run_trace(demo, DriftConfig(seed=42))["final"], indent=2))
