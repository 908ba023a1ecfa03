# distributions.py - Duration sampling from 3-point estimates
import math
from enum import Enum
from typing import Tuple

from scipy import stats

from pulsesim.config import PERT_LAMBDA
from pulsesim.errors import InvalidParameterError


class DistributionType(Enum):
    """Supported probability distributions for task durations"""
    TRIANGULAR = "triangular"
    BETA_PERT = "beta_pert"


def triangular_from_uniform(u: float, optimistic: float, most_likely: float, pessimistic: float) -> float:
    """
    Inverse CDF of the triangular distribution.

    Args:
        u: Uniform draw in [0, 1)
        optimistic: Minimum (left bound)
        most_likely: Mode (peak)
        pessimistic: Maximum (right bound)

    Returns:
        Duration in [optimistic, pessimistic]
    """
    if pessimistic == optimistic:
        return float(optimistic)

    span = pessimistic - optimistic
    f = (most_likely - optimistic) / span

    if u < f:
        value = optimistic + math.sqrt(u * span * (most_likely - optimistic))
    else:
        value = pessimistic - math.sqrt((1 - u) * span * (pessimistic - most_likely))

    # rounding can leave the result an ulp outside the support
    return min(max(value, optimistic), pessimistic)


def pert_shape_parameters(optimistic: float, most_likely: float, pessimistic: float,
                          lambda_param: float = PERT_LAMBDA) -> Tuple[float, float]:
    """Beta shape parameters (alpha, beta) for a Beta-PERT on [optimistic, pessimistic]"""
    span = pessimistic - optimistic
    alpha = 1 + lambda_param * (most_likely - optimistic) / span
    beta = 1 + lambda_param * (pessimistic - most_likely) / span
    return alpha, beta


def mean_duration(optimistic: float, most_likely: float, pessimistic: float,
                  distribution: DistributionType = DistributionType.TRIANGULAR,
                  lambda_param: float = PERT_LAMBDA) -> float:
    """Analytic mean of the sampling distribution"""
    if distribution is DistributionType.BETA_PERT:
        return (optimistic + lambda_param * most_likely + pessimistic) / (lambda_param + 2)
    return (optimistic + most_likely + pessimistic) / 3


class DurationSampler:
    """
    Draws task durations from their 3-point estimates.

    The sampler keeps no random state. Every call takes the random source
    explicitly: anything with a ``random()`` method works for triangular
    sampling, Beta-PERT needs a numpy Generator.
    """

    def __init__(self, pert_lambda: float = PERT_LAMBDA):
        if not pert_lambda > 0:
            raise InvalidParameterError(f"pert_lambda must be positive, got {pert_lambda}")
        self.pert_lambda = pert_lambda

    def sample(self, task, rng) -> float:
        """Sample duration for a single task"""
        return self.sample_estimate(
            task.optimistic,
            task.most_likely,
            task.pessimistic,
            rng,
            distribution=task.distribution,
        )

    def sample_estimate(self, optimistic: float, most_likely: float, pessimistic: float, rng,
                        distribution: DistributionType = DistributionType.TRIANGULAR) -> float:
        if pessimistic == optimistic:
            return float(optimistic)

        if distribution is DistributionType.TRIANGULAR:
            return triangular_from_uniform(rng.random(), optimistic, most_likely, pessimistic)

        elif distribution is DistributionType.BETA_PERT:
            return self._sample_beta_pert(optimistic, most_likely, pessimistic, rng)

        raise InvalidParameterError(f"Unsupported distribution: {distribution!r}")

    def _sample_beta_pert(self, optimistic: float, most_likely: float, pessimistic: float, rng) -> float:
        """Sample from Beta(0,1) and scale to [optimistic, pessimistic]"""
        alpha, beta = pert_shape_parameters(optimistic, most_likely, pessimistic, self.pert_lambda)
        beta_sample = float(stats.beta.rvs(alpha, beta, random_state=rng))
        return min(optimistic + beta_sample * (pessimistic - optimistic), pessimistic)
