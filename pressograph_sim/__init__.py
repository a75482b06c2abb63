"""Public package surface for the Pressograph synthetic pressure-trace generator."""

from .curves import add_pressure_noise, add_uniform_noise, generate_hold, generate_ramp
from .drift import BoundedDrift, DriftState, step_drift
from .models import (
    DriftConfig,
    HoldSegment,
    MinutePoint,
    RampSegment,
    Sample,
    ScheduleError,
    Stage,
    TestSchedule,
)
from .prng import SeededPRNG, gaussian
from .sim import (
    RAMP_DURATION_MS,
    build_report,
    compose_trace,
    compose_with_segments,
    plan_segments,
    run_trace,
    to_minutes,
    validate_schedule,
)

__all__ = [
    "BoundedDrift",
    "DriftConfig",
    "DriftState",
    "HoldSegment",
    "MinutePoint",
    "RAMP_DURATION_MS",
    "RampSegment",
    "Sample",
    "ScheduleError",
    "SeededPRNG",
    "Stage",
    "TestSchedule",
    "add_pressure_noise",
    "add_uniform_noise",
    "build_report",
    "compose_trace",
    "compose_with_segments",
    "gaussian",
    "generate_hold",
    "generate_ramp",
    "plan_segments",
    "run_trace",
    "step_drift",
    "to_minutes",
    "validate_schedule",
]
