import math
import time
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, NamedTuple, Tuple, Union


def _wall_clock_seed() -> int:
    return int(time.time() * 1000)


class ScheduleError(ValueError):
    """Raised when a test schedule cannot be turned into a trace."""


class Sample(NamedTuple):
    time: float
    pressure: float


class MinutePoint(NamedTuple):
    minutes: float
    pressure: float


@dataclass(frozen=True)
class Stage:
    start_time: float
    end_time: float
    pressure: float


@dataclass(frozen=True)
class TestSchedule:
    start_time: float
    end_time: float
    working_pressure: float
    intermediate_stages: Tuple[Stage, ...] = ()

    __test__ = False  # keep pytest from collecting it

    def __post_init__(self) -> None:
        # lists from callers become tuples so the schedule stays hashable
        object.__setattr__(self, "intermediate_stages", tuple(self.intermediate_stages))

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DriftConfig:
    """Simulation parameters for one trace run.

    Magnitudes are fractions of the base pressure (0.002 = ±0.2%). Without an
    explicit seed the wall clock is captured once, at construction.
    """

    drift_magnitude: float = 0.002
    noise_magnitude: float = 0.001
    sampling_rate_seconds: float = 1.0
    seed: int = field(default_factory=_wall_clock_seed)

    def __post_init__(self) -> None:
        if not math.isfinite(self.drift_magnitude) or self.drift_magnitude < 0:
            raise ValueError("drift_magnitude must be finite and non-negative")
        if not math.isfinite(self.noise_magnitude) or self.noise_magnitude < 0:
            raise ValueError("noise_magnitude must be finite and non-negative")
        if not math.isfinite(self.sampling_rate_seconds) or self.sampling_rate_seconds <= 0:
            raise ValueError("sampling_rate_seconds must be finite and positive")

    @property
    def sampling_interval_ms(self) -> float:
        return self.sampling_rate_seconds * 1000.0


@dataclass(frozen=True)
class RampSegment:
    start_time: float
    end_time: float
    start_pressure: float
    end_pressure: float
    kind: str = field(default="ramp", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class HoldSegment:
    start_time: float
    end_time: float
    pressure: float
    kind: str = field(default="hold", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


Segment = Union[RampSegment, HoldSegment]
