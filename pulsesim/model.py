# model.py - Task and TaskGraph data model
import math
from collections import deque
from dataclasses import dataclass, replace
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from pulsesim.distributions import DistributionType, mean_duration
from pulsesim.errors import InvalidGraphError

TaskId = Union[int, str]

_ESTIMATE_FIELDS = ("optimistic", "most_likely", "pessimistic")


@dataclass(frozen=True)
class Task:
    """Individual task with a 3-point duration estimate"""
    id: TaskId
    name: str
    dependencies: Tuple[TaskId, ...]
    optimistic: float
    most_likely: float
    pessimistic: float
    distribution: DistributionType = DistributionType.TRIANGULAR

    def __post_init__(self):
        if isinstance(self.dependencies, str):
            raise InvalidGraphError(
                f"Task {self.id}: dependencies must be a list of ids, got {self.dependencies!r}")
        # Collapse repeated dependency ids, keeping first occurrence
        object.__setattr__(self, "dependencies", tuple(dict.fromkeys(self.dependencies or ())))

        for attr in _ESTIMATE_FIELDS:
            value = getattr(self, attr)
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise InvalidGraphError(f"Task {self.id}: {attr} must be a number, got {value!r}")
            if not math.isfinite(value) or value <= 0:
                raise InvalidGraphError(f"Task {self.id}: {attr} must be positive, got {value}")
            object.__setattr__(self, attr, value)

        if not (self.optimistic <= self.most_likely <= self.pessimistic):
            raise InvalidGraphError(
                f"Task {self.id}: Invalid 3-point estimate: "
                f"O({self.optimistic}) <= M({self.most_likely}) <= P({self.pessimistic})")

        if not isinstance(self.distribution, DistributionType):
            try:
                object.__setattr__(self, "distribution", DistributionType(self.distribution))
            except ValueError:
                raise InvalidGraphError(f"Task {self.id}: Unknown distribution {self.distribution!r}")

    @property
    def expected_duration(self) -> float:
        """Calculate expected duration using PERT formula"""
        return (self.optimistic + 4 * self.most_likely + self.pessimistic) / 6

    @property
    def variance(self) -> float:
        """Calculate variance using PERT formula"""
        return ((self.pessimistic - self.optimistic) / 6) ** 2

    @property
    def standard_deviation(self) -> float:
        return math.sqrt(self.variance)

    @property
    def mean_duration(self) -> float:
        """Mean of the distribution this task is actually sampled from"""
        return mean_duration(self.optimistic, self.most_likely, self.pessimistic, self.distribution)

    def with_estimate(self, optimistic: float, most_likely: float, pessimistic: float) -> "Task":
        return replace(self, optimistic=optimistic, most_likely=most_likely, pessimistic=pessimistic)

    def with_dependencies(self, dependencies: Iterable[TaskId]) -> "Task":
        return replace(self, dependencies=tuple(dependencies))


class TaskGraph:
    """
    Read-only precedence network of tasks.

    Construction validates every invariant the simulator relies on: unique ids,
    resolvable dependencies and the absence of cycles. The topological order is
    computed once here and reused by every trial.
    """

    def __init__(self, tasks: Iterable[Task]):
        self._tasks: Dict[TaskId, Task] = {}
        for task in tasks:
            if not isinstance(task, Task):
                raise InvalidGraphError(f"Expected Task, got {type(task).__name__}")
            if task.id in self._tasks:
                raise InvalidGraphError(f"Duplicate task id {task.id!r}")
            self._tasks[task.id] = task

        if not self._tasks:
            raise InvalidGraphError("Task graph must contain at least one task")

        errors = self._validate_dependencies()
        if errors:
            raise InvalidGraphError("; ".join(errors))

        cycle = self._find_cycle()
        if cycle:
            raise InvalidGraphError(
                "Circular dependencies detected: " + " -> ".join(str(task_id) for task_id in cycle))

        self._successors: Dict[TaskId, Tuple[TaskId, ...]] = self._build_successors()
        self._order: Tuple[TaskId, ...] = self._topological_order()

    # ------------------------------------------------------------------
    def _validate_dependencies(self) -> List[str]:
        errors = []
        for task in self._tasks.values():
            for dep_id in task.dependencies:
                if dep_id == task.id:
                    errors.append(f"Task {task.id}: Cannot depend on itself")
                elif dep_id not in self._tasks:
                    errors.append(f"Task {task.id}: Invalid dependency {dep_id!r}")
        return errors

    def _find_cycle(self) -> Optional[List[TaskId]]:
        """Depth-first visit with visiting/visited coloring. Returns the cycle path if any."""
        visiting, visited = 1, 2
        state: Dict[TaskId, int] = {}

        for root in self._tasks:
            if root in state:
                continue
            state[root] = visiting
            path = [root]
            stack = [iter(self._tasks[root].dependencies)]

            while stack:
                for dep_id in stack[-1]:
                    mark = state.get(dep_id)
                    if mark == visiting:
                        return path[path.index(dep_id):] + [dep_id]
                    if mark is None:
                        state[dep_id] = visiting
                        path.append(dep_id)
                        stack.append(iter(self._tasks[dep_id].dependencies))
                        break
                else:
                    state[path.pop()] = visited
                    stack.pop()
        return None

    def _build_successors(self) -> Dict[TaskId, Tuple[TaskId, ...]]:
        successors: Dict[TaskId, List[TaskId]] = {task_id: [] for task_id in self._tasks}
        for task in self._tasks.values():
            for dep_id in task.dependencies:
                successors[dep_id].append(task.id)
        return {task_id: tuple(ids) for task_id, ids in successors.items()}

    def _topological_order(self) -> Tuple[TaskId, ...]:
        """Kahn's algorithm, stable with respect to insertion order"""
        remaining = {task_id: len(task.dependencies) for task_id, task in self._tasks.items()}
        ready = deque(task_id for task_id, count in remaining.items() if count == 0)
        order = []
        while ready:
            task_id = ready.popleft()
            order.append(task_id)
            for succ_id in self._successors[task_id]:
                remaining[succ_id] -= 1
                if remaining[succ_id] == 0:
                    ready.append(succ_id)

        if len(order) != len(self._tasks):
            raise InvalidGraphError("Circular dependencies detected")
        return tuple(order)

    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks.values())

    def __contains__(self, task_id) -> bool:
        return task_id in self._tasks

    def __getitem__(self, task_id: TaskId) -> Task:
        return self._tasks[task_id]

    def __eq__(self, other):
        if not isinstance(other, TaskGraph):
            return NotImplemented
        return self.tasks == other.tasks

    def __hash__(self):
        return hash(self.tasks)

    def __repr__(self):
        return f"TaskGraph({len(self)} tasks)"

    @property
    def tasks(self) -> Tuple[Task, ...]:
        return tuple(self._tasks.values())

    @property
    def task_ids(self) -> Tuple[TaskId, ...]:
        return tuple(self._tasks.keys())

    @property
    def topological_order(self) -> Tuple[TaskId, ...]:
        return self._order

    def predecessors(self, task_id: TaskId) -> Tuple[TaskId, ...]:
        return self._tasks[task_id].dependencies

    def successors(self, task_id: TaskId) -> Tuple[TaskId, ...]:
        return self._successors[task_id]

    def get_task(self, task_id: TaskId) -> Task:
        """Lookup that reports unknown ids as a graph error"""
        try:
            return self._tasks[task_id]
        except KeyError:
            raise InvalidGraphError(f"Unknown task id {task_id!r}")
