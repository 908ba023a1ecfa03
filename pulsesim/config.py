"""
Simulation defaults and environment overrides.

Module-level constants are the defaults used across the package. Hosts that
want to tune a deployment without code changes can use SimulationSettings.from_env().
"""
import os
from dataclasses import dataclass
from typing import Optional

# Simulation parameters
NUM_SIMULATIONS = 1000  # Typical interactive trial count
RANDOM_SEED = None  # Set to int for reproducibility, None for OS entropy
WORKERS = 1  # >1 runs trial batches on a thread pool

# Result analysis
HISTOGRAM_BUCKETS = 10  # Target bucket count, actual count depends on range
PERCENTILES = [10, 25, 50, 75, 90]
CONFIDENCE_LEVELS = [80, 90, 95]

# Distributions
PERT_LAMBDA = 4.0  # Beta-PERT peakedness

# Scenarios
SCENARIO_DURATION_FLOOR = 1e-6  # Scaled estimates stay strictly positive
PRESET_DURATION_FLOOR = 1.0  # Speed-up presets never drop below one day

# Critical path
CRITICAL_FLOAT_TOLERANCE = 1e-3  # Total float below this counts as critical

ENV_PREFIX = "PULSESIM_"


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class SimulationSettings:
    """Run-level settings resolved from defaults and environment"""
    num_simulations: int = NUM_SIMULATIONS
    random_seed: Optional[int] = RANDOM_SEED
    histogram_buckets: int = HISTOGRAM_BUCKETS
    workers: int = WORKERS

    @classmethod
    def from_env(cls) -> "SimulationSettings":
        return cls(
            num_simulations=_env_int("NUM_SIMULATIONS", NUM_SIMULATIONS),
            random_seed=_env_int("RANDOM_SEED", RANDOM_SEED),
            histogram_buckets=_env_int("HISTOGRAM_BUCKETS", HISTOGRAM_BUCKETS),
            workers=_env_int("WORKERS", WORKERS),
        )
