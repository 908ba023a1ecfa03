# scenarios.py - What-if transforms that derive a new TaskGraph from a base graph
import logging
import math
from dataclasses import dataclass
from functools import partial
from numbers import Real
from typing import Callable, Iterable, List, Union

import numpy as np

from pulsesim.config import PRESET_DURATION_FLOOR, SCENARIO_DURATION_FLOOR
from pulsesim.errors import InvalidParameterError
from pulsesim.model import Task, TaskGraph, TaskId

logger = logging.getLogger(__name__)

Transform = Callable[[TaskGraph], TaskGraph]


@dataclass(frozen=True)
class Scenario:
    """A named what-if graph"""
    name: str
    graph: TaskGraph


def _check_positive(value, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value) or value <= 0:
        raise InvalidParameterError(f"{name} must be a positive number, got {value!r}")
    return float(value)


def _scaled(task: Task, factor: float, floor: float) -> Task:
    # max() with a common floor is monotone, so O <= M <= P survives
    return task.with_estimate(
        max(floor, task.optimistic * factor),
        max(floor, task.most_likely * factor),
        max(floor, task.pessimistic * factor),
    )


def _as_id_list(task_ids: Union[TaskId, Iterable[TaskId]]) -> List[TaskId]:
    if isinstance(task_ids, np.integer):
        return [int(task_ids)]
    if isinstance(task_ids, (int, str)):
        return [task_ids]
    return [int(task_id) if isinstance(task_id, np.integer) else task_id for task_id in task_ids]


class ScenarioTransformer:
    """
    Pure TaskGraph -> TaskGraph transforms.

    Every transform builds a brand-new TaskGraph, so the result is re-validated
    and any invariant violation surfaces as InvalidGraphError. The input graph
    is never touched.
    """

    @staticmethod
    def scale_durations(graph: TaskGraph, factor: float,
                        floor: float = SCENARIO_DURATION_FLOOR) -> TaskGraph:
        """Multiply every task's estimate by ``factor``, clamped to ``floor``"""
        factor = _check_positive(factor, "Scale factor")
        floor = _check_positive(floor, "Duration floor")
        return TaskGraph(_scaled(task, factor, floor) for task in graph)

    @staticmethod
    def speed_up(graph: TaskGraph, task_ids: Union[TaskId, Iterable[TaskId]], factor: float,
                 floor: float = SCENARIO_DURATION_FLOOR) -> TaskGraph:
        """Scale only the named task(s), leaving others unchanged"""
        factor = _check_positive(factor, "Scale factor")
        floor = _check_positive(floor, "Duration floor")
        targets = {graph.get_task(task_id).id for task_id in _as_id_list(task_ids)}
        if not targets:
            raise InvalidParameterError("speed_up needs at least one task id")
        return TaskGraph(
            _scaled(task, factor, floor) if task.id in targets else task
            for task in graph
        )

    @staticmethod
    def remove_dependencies(graph: TaskGraph, task_id: TaskId) -> TaskGraph:
        """Strip one task's dependency list so it can run in parallel"""
        target = graph.get_task(task_id)
        return TaskGraph(
            task.with_dependencies(()) if task.id == target.id else task
            for task in graph
        )

    @staticmethod
    def compose(*transforms: Transform) -> Transform:
        """Chain transforms left to right"""
        def composed(graph: TaskGraph) -> TaskGraph:
            for transform in transforms:
                graph = transform(graph)
            return graph
        return composed

    # ------------------------------------------------------------------
    # Named presets
    # ------------------------------------------------------------------
    @staticmethod
    def get_available_scenarios() -> List[str]:
        return ["optimistic", "pessimistic", "add-resources", "parallel-tasks"]

    @staticmethod
    def get_transform(name: str, **params) -> Transform:
        """Return the transform for a named preset"""
        if name == "optimistic":
            # Reduce task durations by 20%
            return partial(ScenarioTransformer.scale_durations, factor=params.get("factor", 0.8),
                           floor=params.get("floor", PRESET_DURATION_FLOOR))

        elif name == "pessimistic":
            # Increase task durations by 30%
            return partial(ScenarioTransformer.scale_durations, factor=params.get("factor", 1.3),
                           floor=params.get("floor", SCENARIO_DURATION_FLOOR))

        elif name == "add-resources":
            if "task_ids" not in params:
                raise InvalidParameterError("add-resources needs task_ids")
            return partial(ScenarioTransformer.speed_up, task_ids=params["task_ids"],
                           factor=params.get("factor", 0.7),
                           floor=params.get("floor", PRESET_DURATION_FLOOR))

        elif name == "parallel-tasks":
            if "task_id" not in params:
                raise InvalidParameterError("parallel-tasks needs task_id")
            return partial(ScenarioTransformer.remove_dependencies, task_id=params["task_id"])

        raise InvalidParameterError(
            f"Unknown scenario {name!r}; expected one of {ScenarioTransformer.get_available_scenarios()}")

    @staticmethod
    def build_scenario(graph: TaskGraph, name: str, **params) -> Scenario:
        transform = ScenarioTransformer.get_transform(name, **params)
        derived = transform(graph)
        logger.info("Built %s scenario from %d tasks", name, len(graph))
        return Scenario(name=name, graph=derived)
