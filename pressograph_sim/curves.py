
from typing import List, Optional

from .drift import BoundedDrift
from .models import DriftConfig, Sample
from .prng import SeededPRNG, gaussian

RAMP_NOISE_FACTOR = 0.5


def add_pressure_noise(base_pressure: float, noise_magnitude: float, rng: SeededPRNG) -> float:
    """Proportional Gaussian sensor noise; a true zero baseline stays at zero."""
    if base_pressure == 0:
        return 0.0
    noisy = base_pressure * (1.0 + gaussian(0.0, noise_magnitude, rng))
    return max(0.0, noisy)


def add_uniform_noise(pressure: float, rng: SeededPRNG, max_noise: float = 0.5) -> float:
    """Legacy absolute jitter of ±max_noise/2, kept for older graph previews."""
    if pressure == 0:
        return 0.0
    noise = (rng.next() - 0.5) * max_noise
    return max(0.0, pressure + noise)


def sample_count(start_time: float, end_time: float, config: DriftConfig) -> int:
    # Always at least both endpoints.
    return max(2, int((end_time - start_time) // config.sampling_interval_ms) + 1)


def ease_in_out(progress: float) -> float:
    """Piecewise-quadratic S-curve with zero slope at both ends."""
    if progress < 0.5:
        return 2.0 * progress * progress
    return 1.0 - 2.0 * (1.0 - progress) ** 2


def _sample_times(start_time: float, end_time: float, count: int) -> List[float]:
    duration = end_time - start_time
    return [start_time + (duration * i) / (count - 1) for i in range(count)]


def generate_ramp(
    start_time: float,
    end_time: float,
    start_pressure: float,
    end_pressure: float,
    config: DriftConfig,
    rng: Optional[SeededPRNG] = None,
) -> List[Sample]:
    """Smooth transition between two pressure levels with halved sensor noise.

    Ramps are short, so no drift is applied.
    """
    if rng is None:
        rng = SeededPRNG(config.seed)

    count = sample_count(start_time, end_time, config)
    delta = end_pressure - start_pressure
    noise_magnitude = config.noise_magnitude * RAMP_NOISE_FACTOR

    samples: List[Sample] = []
    for i, t in enumerate(_sample_times(start_time, end_time, count)):
        smoothed = ease_in_out(i / (count - 1))
        base = start_pressure + delta * smoothed
        samples.append(Sample(t, add_pressure_noise(base, noise_magnitude, rng)))
    return samples


def generate_hold(
    start_time: float,
    end_time: float,
    base_pressure: float,
    config: DriftConfig,
    rng: Optional[SeededPRNG] = None,
) -> List[Sample]:
    """Steady plateau with bounded drift and full-magnitude noise."""
    if rng is None:
        rng = SeededPRNG(config.seed)

    drift = BoundedDrift(config.drift_magnitude, rng)
    count = sample_count(start_time, end_time, config)

    samples: List[Sample] = []
    for t in _sample_times(start_time, end_time, count):
        drift.step()
        pressure_with_drift = base_pressure * (1.0 + drift.get_value())
        samples.append(
            Sample(t, add_pressure_noise(pressure_with_drift, config.noise_magnitude, rng))
        )
    return samples
