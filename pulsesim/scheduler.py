# scheduler.py - Forward/backward pass over a TaskGraph for one set of durations
import math
from dataclasses import dataclass
from typing import Dict, List, Mapping

from pulsesim.config import CRITICAL_FLOAT_TOLERANCE
from pulsesim.errors import BrokenInvariantError, InvalidParameterError
from pulsesim.model import TaskGraph, TaskId


@dataclass(frozen=True)
class Schedule:
    """Earliest start/finish of every task for one trial"""
    earliest_start: Dict[TaskId, float]
    earliest_finish: Dict[TaskId, float]

    @property
    def completion_time(self) -> float:
        """Project completion is the latest task completion"""
        return max(self.earliest_finish.values())

    def duration(self, task_id: TaskId) -> float:
        return self.earliest_finish[task_id] - self.earliest_start[task_id]


class PathResolver:
    """
    Computes earliest start and finish times by propagating through the
    dependency graph.

    ``resolve`` walks the topological order cached on the graph. ``resolve_by_frontier``
    repeatedly scans for tasks whose dependencies are all resolved. Both give
    identical schedules.
    """

    def __init__(self, graph: TaskGraph):
        self.graph = graph

    def _checked_durations(self, durations: Mapping[TaskId, float]) -> Mapping[TaskId, float]:
        for task_id in self.graph.task_ids:
            if task_id not in durations:
                raise InvalidParameterError(f"No sampled duration for task {task_id!r}")
            value = durations[task_id]
            if not (math.isfinite(value) and value > 0):
                raise InvalidParameterError(f"Task {task_id!r}: sampled duration must be positive, got {value}")
        return durations

    def resolve(self, durations: Mapping[TaskId, float]) -> Schedule:
        """Forward pass in cached topological order"""
        durations = self._checked_durations(durations)
        start_times: Dict[TaskId, float] = {}
        finish_times: Dict[TaskId, float] = {}

        for task_id in self.graph.topological_order:
            deps = self.graph.predecessors(task_id)
            if any(dep_id not in finish_times for dep_id in deps):
                raise BrokenInvariantError(
                    f"Task {task_id!r} reached before its dependencies in topological order")
            start_times[task_id] = max((finish_times[dep_id] for dep_id in deps), default=0.0)
            finish_times[task_id] = start_times[task_id] + durations[task_id]

        if len(finish_times) != len(self.graph):
            raise BrokenInvariantError(
                f"Topological order covers {len(finish_times)} of {len(self.graph)} tasks")
        return Schedule(start_times, finish_times)

    def resolve_by_frontier(self, durations: Mapping[TaskId, float]) -> Schedule:
        """Kahn-style frontier scan, O(tasks^2) per call"""
        durations = self._checked_durations(durations)
        start_times: Dict[TaskId, float] = {}
        finish_times: Dict[TaskId, float] = {}
        remaining = list(self.graph.task_ids)

        while remaining:
            # Find tasks that can be calculated (all dependencies are calculated)
            frontier = [
                task_id for task_id in remaining
                if all(dep_id in finish_times for dep_id in self.graph.predecessors(task_id))
            ]
            if not frontier:
                raise BrokenInvariantError(
                    f"No resolvable task among {len(remaining)} remaining: {remaining!r}")

            for task_id in frontier:
                deps = self.graph.predecessors(task_id)
                start_times[task_id] = max((finish_times[dep_id] for dep_id in deps), default=0.0)
                finish_times[task_id] = start_times[task_id] + durations[task_id]

            remaining = [task_id for task_id in remaining if task_id not in finish_times]

        return Schedule(start_times, finish_times)

    def total_float(self, schedule: Schedule) -> Dict[TaskId, float]:
        """Calculate total float for tasks using a backward pass"""
        project_duration = schedule.completion_time
        late_finish: Dict[TaskId, float] = {}

        for task_id in reversed(self.graph.topological_order):
            successors = self.graph.successors(task_id)
            if successors:
                # Late finish = minimum of successors' late start times
                late_finish[task_id] = min(late_finish[s] - schedule.duration(s) for s in successors)
            else:
                late_finish[task_id] = project_duration

        return {
            task_id: late_finish[task_id] - schedule.earliest_finish[task_id]
            for task_id in self.graph.task_ids
        }

    def critical_path(self, schedule: Schedule, tolerance: float = CRITICAL_FLOAT_TOLERANCE) -> List[TaskId]:
        """Tasks with zero total float, in topological order"""
        total_float = self.total_float(schedule)
        return [task_id for task_id in self.graph.topological_order if abs(total_float[task_id]) < tolerance]
