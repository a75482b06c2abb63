"""Bounded Brownian drift applied to pressure holds."""

from dataclasses import dataclass, replace

from .prng import SeededPRNG, gaussian

STEP_SCALE = 0.1
DAMPING = 0.5


def _sign(value: float) -> float:
    if value > 0:
        return 1.0
    if value < 0:
        return -1.0
    return 0.0


@dataclass(frozen=True)
class DriftState:
    """Drift offset as a fraction of base pressure, bounded by ``magnitude``."""

    value: float = 0.0
    magnitude: float = 0.002


def step_drift(state: DriftState, rng: SeededPRNG) -> DriftState:
    """Advance the random walk one step, pulling back softly then clamping."""
    magnitude = state.magnitude
    value = state.value + gaussian(0.0, magnitude * STEP_SCALE, rng)

    if abs(value) > magnitude:
        overshoot = abs(value) - magnitude
        value += -_sign(value) * overshoot * DAMPING

    value = max(-magnitude, min(magnitude, value))
    return replace(state, value=value)


class BoundedDrift:
    """Stateful wrapper used by the hold sampler; one instance per hold."""

    def __init__(self, magnitude: float, rng: SeededPRNG):
        self.rng = rng
        self.state = DriftState(value=0.0, magnitude=magnitude)

    @property
    def magnitude(self) -> float:
        return self.state.magnitude

    def step(self) -> float:
        self.state = step_drift(self.state, self.rng)
        return self.state.value

    def get_value(self) -> float:
        return self.state.value

    def reset(self) -> None:
        self.state = replace(self.state, value=0.0)
