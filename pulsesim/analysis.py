# analysis.py - Read-only statistics over a SimulationResult
import math
from dataclasses import asdict, dataclass
from numbers import Real
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd

from pulsesim.config import HISTOGRAM_BUCKETS, PERCENTILES
from pulsesim.errors import InvalidParameterError
from pulsesim.simulation import SimulationResult


@dataclass(frozen=True)
class HistogramBucket:
    """Half-open interval [range_start, range_end) of completion times"""
    range_start: int
    range_end: int
    count: int
    probability_percent: float
    midpoint: float

    @property
    def label(self) -> str:
        return f"{self.range_start}-{self.range_end - 1}"


@dataclass(frozen=True)
class CumulativePoint:
    range_start: int
    range_end: int
    midpoint: float
    probability_percent: float  # % of trials finished before range_end


def _check_level(value, name: str, allow_hundred: bool) -> float:
    if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value):
        raise InvalidParameterError(f"{name} must be a number, got {value!r}")
    upper_ok = value <= 100 if allow_hundred else value < 100
    if not (value > 0 and upper_ok):
        bounds = "(0, 100]" if allow_hundred else "(0, 100)"
        raise InvalidParameterError(f"{name} must be in {bounds}, got {value}")
    return float(value)


class ResultAnalyzer:
    """
    Percentile, histogram and summary queries over one SimulationResult.

    Percentiles are nearest-rank: ``percentile(p)`` is the sorted value at index
    ``floor(n * p / 100)``, clamped to ``n - 1``. There is no interpolation
    between adjacent samples.
    """

    def __init__(self, result: SimulationResult):
        self.result = result
        self._times = result.completion_times

    @property
    def num_simulations(self) -> int:
        return len(self._times)

    def minimum(self) -> float:
        return float(self._times[0])

    def maximum(self) -> float:
        return float(self._times[-1])

    def mean(self) -> float:
        return float(np.mean(self._times))

    def standard_deviation(self) -> float:
        return float(np.std(self._times))

    def percentile(self, p: float) -> float:
        p = _check_level(p, "Percentile", allow_hundred=True)
        n = self.num_simulations
        index = min(int(math.floor(n * p / 100)), n - 1)
        return float(self._times[index])

    def median(self) -> float:
        return self.percentile(50)

    def confidence_interval(self, level: float) -> Tuple[float, float]:
        """Central interval holding ``level`` % of trials, e.g. 90 -> (P5, P95)"""
        level = _check_level(level, "Confidence level", allow_hundred=False)
        tail = (100 - level) / 2
        return self.percentile(tail), self.percentile(100 - tail)

    def probability_of_completion_by(self, target: float) -> float:
        """Percentage of trials that finished on or before ``target``"""
        finished = np.searchsorted(self._times, target, side="right")
        return float(finished / self.num_simulations * 100)

    def _bucket_edges(self, target_bucket_count: int) -> Tuple[List[int], int]:
        if (isinstance(target_bucket_count, bool) or not isinstance(target_bucket_count, (int, np.integer))
                or target_bucket_count < 1):
            raise InvalidParameterError(
                f"Bucket count must be a positive integer, got {target_bucket_count!r}")

        low = math.floor(self._times[0])
        high = math.ceil(self._times[-1])
        bucket_size = max(1, math.ceil((high - low) / target_bucket_count))
        return list(range(low, high + 1, bucket_size)), bucket_size

    def histogram(self, target_bucket_count: int = HISTOGRAM_BUCKETS) -> List[HistogramBucket]:
        """
        Fixed-width buckets spanning [floor(min), ceil(max)].

        Zero-count buckets are kept so the x-axis stays continuous. Bucket
        counts always sum to the trial count.
        """
        starts, bucket_size = self._bucket_edges(target_bucket_count)
        n = self.num_simulations
        starts_arr = np.asarray(starts, dtype=float)
        lower = np.searchsorted(self._times, starts_arr, side="left")
        upper = np.searchsorted(self._times, starts_arr + bucket_size, side="left")

        buckets = []
        for start, lo, hi in zip(starts, lower, upper):
            count = int(hi - lo)
            buckets.append(HistogramBucket(
                range_start=start,
                range_end=start + bucket_size,
                count=count,
                probability_percent=count / n * 100,
                midpoint=start + bucket_size / 2,
            ))
        return buckets

    def cumulative_distribution(self, target_bucket_count: int = HISTOGRAM_BUCKETS) -> List[CumulativePoint]:
        points = []
        cumulative = 0
        for bucket in self.histogram(target_bucket_count):
            cumulative += bucket.count
            points.append(CumulativePoint(
                range_start=bucket.range_start,
                range_end=bucket.range_end,
                midpoint=bucket.midpoint,
                probability_percent=cumulative / self.num_simulations * 100,
            ))
        return points

    def summary(self) -> Dict[str, float]:
        """Key statistics for reporting"""
        stats = {
            "num_simulations": self.num_simulations,
            "min": self.minimum(),
            "max": self.maximum(),
            "mean": self.mean(),
            "median": self.median(),
            "std": self.standard_deviation(),
        }
        for p in PERCENTILES:
            stats[f"p{p}"] = self.percentile(p)
        return stats

    def histogram_frame(self, target_bucket_count: int = HISTOGRAM_BUCKETS) -> pd.DataFrame:
        """Histogram as a DataFrame, one row per bucket"""
        rows = []
        for bucket in self.histogram(target_bucket_count):
            row = asdict(bucket)
            row["label"] = bucket.label
            rows.append(row)
        return pd.DataFrame(rows, columns=[
            "label", "range_start", "range_end", "count", "probability_percent", "midpoint"])

    def task_statistics_frame(self) -> pd.DataFrame:
        """Per-task mean start/finish and criticality, empty if the run did not track tasks"""
        columns = ["Task ID", "Task", "Mean Start", "Mean Finish", "Criticality (%)"]
        if not self.result.task_statistics:
            return pd.DataFrame(columns=columns)

        data = []
        for task in self.result.graph:
            stats = self.result.task_statistics[task.id]
            data.append({
                "Task ID": task.id,
                "Task": task.name,
                "Mean Start": stats.mean_start,
                "Mean Finish": stats.mean_finish,
                "Criticality (%)": stats.criticality,
            })
        return pd.DataFrame(data, columns=columns)
