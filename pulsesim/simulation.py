"""
Monte Carlo driver: runs N independent trials over a TaskGraph.

Each trial samples one duration per task into a fresh mapping, resolves the
schedule and records the project completion time. A failure in any trial
aborts the whole run, since a partially populated result would misrepresent
the distribution.

Randomness always comes from an explicit numpy Generator. With ``workers > 1``
trials are split into batches that run on a thread pool, each batch with its
own generator spawned from the run's generator; batch outcomes are reduced by
concatenation.
"""
import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

import numpy as np

from pulsesim.config import CRITICAL_FLOAT_TOLERANCE, NUM_SIMULATIONS, RANDOM_SEED, WORKERS
from pulsesim.distributions import DurationSampler
from pulsesim.errors import BrokenInvariantError, InvalidParameterError
from pulsesim.model import TaskGraph, TaskId
from pulsesim.scheduler import PathResolver

logger = logging.getLogger(__name__)

RandomState = Union[None, int, np.random.SeedSequence, np.random.Generator]


@dataclass(frozen=True)
class TaskStatistics:
    """Per-task aggregates over all trials of a run"""
    task_id: TaskId
    mean_start: float
    mean_finish: float
    criticality: float  # % of trials on the critical path


@dataclass(frozen=True, eq=False)
class SimulationResult:
    """
    Sorted completion times of one run.

    Attributes:
        completion_times: Read-only array sorted ascending, one entry per trial.
        num_simulations: Trial count.
        graph: The TaskGraph that was simulated.
        seed: Integer seed of the run, if one was given.
        task_statistics: Per-task aggregates when the run tracked tasks.
    """
    completion_times: np.ndarray
    num_simulations: int
    graph: TaskGraph
    seed: Optional[int] = None
    task_statistics: Optional[Dict[TaskId, TaskStatistics]] = None

    def __post_init__(self):
        times = np.array(self.completion_times, dtype=float)
        if times.ndim != 1 or len(times) != self.num_simulations:
            raise BrokenInvariantError(
                f"Expected {self.num_simulations} completion times, got shape {times.shape}")
        if len(times) > 1 and np.any(times[1:] < times[:-1]):
            raise BrokenInvariantError("Completion times must be sorted ascending")
        times.setflags(write=False)
        object.__setattr__(self, "completion_times", times)

    def __eq__(self, other):
        if not isinstance(other, SimulationResult):
            return NotImplemented
        return (self.num_simulations == other.num_simulations
                and self.graph == other.graph
                and np.array_equal(self.completion_times, other.completion_times))


@dataclass
class _BatchOutcome:
    completion_times: List[float]
    start_sums: Optional[np.ndarray] = None
    finish_sums: Optional[np.ndarray] = None
    critical_counts: Optional[np.ndarray] = None


def _validate_trial_count(num_simulations) -> int:
    if isinstance(num_simulations, bool) or not isinstance(num_simulations, (int, np.integer)):
        raise InvalidParameterError(f"Trial count must be an integer, got {num_simulations!r}")
    if num_simulations < 1:
        raise InvalidParameterError(f"Trial count must be at least 1, got {num_simulations}")
    return int(num_simulations)


class SimulationDriver:
    """Runs Monte Carlo trials over a TaskGraph"""

    def __init__(self, random_state: RandomState = RANDOM_SEED,
                 sampler: Optional[DurationSampler] = None,
                 workers: int = WORKERS,
                 batch_size: Optional[int] = None,
                 track_tasks: bool = False,
                 critical_tolerance: float = CRITICAL_FLOAT_TOLERANCE):
        """
        Args:
            random_state: Seed, SeedSequence or Generator. An int or SeedSequence
                gives a fresh, identical stream on every run; a Generator is consumed.
            sampler: DurationSampler to use (default instance if None)
            workers: Number of threads; 1 runs everything inline
            batch_size: Trials per batch when workers > 1 (default splits evenly)
            track_tasks: Collect per-task mean start/finish and criticality
            critical_tolerance: Float below which a task counts as critical
        """
        if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
            raise InvalidParameterError(f"workers must be a positive integer, got {workers!r}")
        if batch_size is not None and (not isinstance(batch_size, int) or batch_size < 1):
            raise InvalidParameterError(f"batch_size must be a positive integer, got {batch_size!r}")

        self.random_state = random_state
        self.sampler = sampler or DurationSampler()
        self.workers = workers
        self.batch_size = batch_size
        self.track_tasks = track_tasks
        self.critical_tolerance = critical_tolerance

    def _generator(self) -> np.random.Generator:
        if isinstance(self.random_state, np.random.Generator):
            return self.random_state
        return np.random.default_rng(self.random_state)

    def _batch_sizes(self, num_simulations: int) -> List[int]:
        size = self.batch_size or math.ceil(num_simulations / self.workers)
        full, rest = divmod(num_simulations, size)
        return [size] * full + ([rest] if rest else [])

    def run_trial(self, graph: TaskGraph, resolver: PathResolver, rng):
        """One trial: fresh sampled durations, then the forward pass"""
        durations = {task.id: self.sampler.sample(task, rng) for task in graph}
        return resolver.resolve(durations)

    def _run_batch(self, graph: TaskGraph, resolver: PathResolver, count: int, rng) -> _BatchOutcome:
        outcome = _BatchOutcome(completion_times=[])
        if self.track_tasks:
            outcome.start_sums = np.zeros(len(graph))
            outcome.finish_sums = np.zeros(len(graph))
            outcome.critical_counts = np.zeros(len(graph), dtype=int)
        task_ids = graph.task_ids

        for _ in range(count):
            schedule = self.run_trial(graph, resolver, rng)
            outcome.completion_times.append(schedule.completion_time)

            if self.track_tasks:
                outcome.start_sums += [schedule.earliest_start[t] for t in task_ids]
                outcome.finish_sums += [schedule.earliest_finish[t] for t in task_ids]
                total_float = resolver.total_float(schedule)
                outcome.critical_counts += [abs(total_float[t]) < self.critical_tolerance for t in task_ids]

        return outcome

    def run(self, graph: TaskGraph, num_simulations: int = NUM_SIMULATIONS) -> SimulationResult:
        """
        Run ``num_simulations`` independent trials.

        Returns:
            SimulationResult with completion times sorted ascending

        Raises:
            InvalidParameterError: if the trial count is not a positive integer
            BrokenInvariantError: if any trial cannot resolve the graph
        """
        num_simulations = _validate_trial_count(num_simulations)
        if not isinstance(graph, TaskGraph):
            raise InvalidParameterError(f"Expected TaskGraph, got {type(graph).__name__}")

        resolver = PathResolver(graph)
        rng = self._generator()
        started = time.perf_counter()
        logger.info("Running %d trials over %d tasks (workers=%d)", num_simulations, len(graph), self.workers)

        if self.workers == 1:
            outcomes = [self._run_batch(graph, resolver, num_simulations, rng)]
        else:
            sizes = self._batch_sizes(num_simulations)
            batch_rngs = rng.spawn(len(sizes))
            logger.debug("Split into %d batches: %s", len(sizes), sizes)
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                futures = [
                    executor.submit(self._run_batch, graph, resolver, size, batch_rng)
                    for size, batch_rng in zip(sizes, batch_rngs)
                ]
                try:
                    outcomes = [future.result() for future in futures]
                except BaseException:
                    for future in futures:
                        future.cancel()
                    raise

        completion_times = np.sort(np.concatenate([o.completion_times for o in outcomes]))
        task_statistics = self._reduce_task_statistics(graph, outcomes, num_simulations) if self.track_tasks else None

        elapsed = time.perf_counter() - started
        logger.info("Finished %d trials in %.3fs: min=%.2f median=%.2f max=%.2f",
                    num_simulations, elapsed, completion_times[0],
                    completion_times[len(completion_times) // 2], completion_times[-1])

        seed = int(self.random_state) if isinstance(self.random_state, (int, np.integer)) else None
        return SimulationResult(
            completion_times=completion_times,
            num_simulations=num_simulations,
            graph=graph,
            seed=seed,
            task_statistics=task_statistics,
        )

    @staticmethod
    def _reduce_task_statistics(graph: TaskGraph, outcomes: List[_BatchOutcome],
                                num_simulations: int) -> Dict[TaskId, TaskStatistics]:
        start_sums = sum(o.start_sums for o in outcomes)
        finish_sums = sum(o.finish_sums for o in outcomes)
        critical_counts = sum(o.critical_counts for o in outcomes)

        return {
            task_id: TaskStatistics(
                task_id=task_id,
                mean_start=float(start_sums[i] / num_simulations),
                mean_finish=float(finish_sums[i] / num_simulations),
                criticality=float(critical_counts[i] / num_simulations * 100),
            )
            for i, task_id in enumerate(graph.task_ids)
        }


def run_simulation(graph: TaskGraph, num_simulations: int = NUM_SIMULATIONS,
                   random_state: RandomState = RANDOM_SEED, **driver_options) -> SimulationResult:
    """Run a Monte Carlo simulation with a one-off driver"""
    return SimulationDriver(random_state=random_state, **driver_options).run(graph, num_simulations)
