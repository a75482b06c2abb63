
# Seeded LCG plus Box-Muller sampler for reproducible pressure traces (no external deps)
# Constants are the classic 9301/49297/233280 generator used by the graph previews
import math
from dataclasses import dataclass

LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297
LCG_MODULUS = 233280

LOG_EPSILON = 1e-7


@dataclass
class SeededPRNG:
    state: int

    def __post_init__(self) -> None:
        self.state = int(self.state)

    def next(self) -> float:
        self.state = (self.state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return self.state / LCG_MODULUS

    def range(self, minimum: float, maximum: float) -> float:
        # [minimum, maximum)
        return minimum + self.next() * (maximum - minimum)


def gaussian(mean: float, std_dev: float, rng: SeededPRNG) -> float:
    """Box-Muller transform over two uniform draws from ``rng``."""
    u1 = rng.next()
    u2 = rng.next()
    if u1 == 0.0:
        u1 = LOG_EPSILON
    z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
    return mean + std_dev * z0
