# controller.py - Host-facing facade over scenarios, simulation and analysis
import logging
from abc import ABC
from typing import Any, Dict, List, Optional, Tuple

from pulsesim.analysis import HistogramBucket, ResultAnalyzer
from pulsesim.config import SimulationSettings
from pulsesim.errors import BrokenInvariantError, PulseSimError
from pulsesim.model import TaskGraph
from pulsesim.project_templates import ProjectTemplates
from pulsesim.scenarios import Scenario, ScenarioTransformer
from pulsesim.simulation import SimulationDriver, SimulationResult
from pulsesim.utils import graph_from_records

logger = logging.getLogger(__name__)


# ====== BASE CONTROLLER ======
class BaseController(ABC):
    """Base controller with common functionality"""

    def __init__(self, model: TaskGraph):
        self.model = model
        self._observers = []

    def add_observer(self, observer):
        """Add observer for model updates"""
        self._observers.append(observer)

    def notify_observers(self, event_type: str, data: Dict[str, Any] = None):
        """Notify all observers of model changes"""
        for observer in self._observers:
            observer.on_model_change(event_type, data or {})

    def handle_error(self, error: Exception) -> Tuple[bool, str]:
        """
        Standard error handling.

        Input errors become a (False, message) pair for the host to display.
        BrokenInvariantError signals a bug and is always re-raised.
        """
        if isinstance(error, BrokenInvariantError):
            raise error
        logger.error("%s: %s", type(error).__name__, error)
        return False, f"Error: {str(error)}"


# ====== SIMULATION CONTROLLER ======
class SimulationController(BaseController):
    """Holds the base graph, the active what-if scenario and the latest run"""

    def __init__(self, model: Optional[TaskGraph] = None, settings: Optional[SimulationSettings] = None):
        super().__init__(model if model is not None else ProjectTemplates.get_template(
            "Software Development (Default)"))
        self.settings = settings or SimulationSettings()
        self.scenario: Optional[Scenario] = None
        self.result: Optional[SimulationResult] = None
        self.baseline_result: Optional[SimulationResult] = None

    @property
    def active_graph(self) -> TaskGraph:
        return self.scenario.graph if self.scenario else self.model

    @property
    def analyzer(self) -> Optional[ResultAnalyzer]:
        return ResultAnalyzer(self.result) if self.result else None

    def _clear_results(self):
        self.result = None
        self.baseline_result = None

    def load_template(self, template_name: str) -> Tuple[bool, Optional[str]]:
        """Load a project template"""
        try:
            self.model = ProjectTemplates.get_template(template_name)
            self.scenario = None
            self._clear_results()
            self.notify_observers("tasks_updated", {"template": template_name})
            return True, None
        except PulseSimError as e:
            return self.handle_error(e)

    def set_tasks(self, records: List[Dict[str, Any]]) -> Tuple[bool, Optional[str]]:
        """Replace the base graph from host-supplied task dicts"""
        try:
            self.model = graph_from_records(records)
            self.scenario = None
            self._clear_results()
            self.notify_observers("tasks_updated", {"task_count": len(self.model)})
            return True, None
        except PulseSimError as e:
            return self.handle_error(e)

    def apply_scenario(self, name: str, **params) -> Tuple[bool, Optional[str]]:
        """Derive a what-if graph from the base graph"""
        try:
            self.scenario = ScenarioTransformer.build_scenario(self.model, name, **params)
            self.result = None
            self.notify_observers("scenario_applied", {"scenario": name})
            return True, None
        except PulseSimError as e:
            return self.handle_error(e)

    def reset_scenario(self):
        self.scenario = None
        self.result = None
        self.notify_observers("scenario_reset", {})

    def _driver(self, seed, track_tasks) -> SimulationDriver:
        return SimulationDriver(
            random_state=self.settings.random_seed if seed is None else seed,
            workers=self.settings.workers,
            track_tasks=track_tasks,
        )

    def run_monte_carlo(self, num_simulations: Optional[int] = None, seed: Optional[int] = None,
                        track_tasks: bool = True) -> Tuple[bool, Optional[str]]:
        """Run Monte Carlo simulation on the active graph"""
        num_simulations = self.settings.num_simulations if num_simulations is None else num_simulations
        try:
            self.result = self._driver(seed, track_tasks).run(self.active_graph, num_simulations)
            if self.scenario is None:
                self.baseline_result = self.result

            self.notify_observers("monte_carlo_completed", {
                "num_simulations": num_simulations,
                "scenario": self.scenario.name if self.scenario else None,
            })
            return True, None
        except PulseSimError as e:
            return self.handle_error(e)

    def run_baseline(self, num_simulations: Optional[int] = None,
                     seed: Optional[int] = None) -> Tuple[bool, Optional[str]]:
        """Simulate the base graph regardless of the active scenario"""
        num_simulations = self.settings.num_simulations if num_simulations is None else num_simulations
        try:
            self.baseline_result = self._driver(seed, track_tasks=True).run(self.model, num_simulations)
            return True, None
        except PulseSimError as e:
            return self.handle_error(e)

    def get_simulation_status(self) -> Dict[str, Any]:
        """Get current simulation status"""
        return {
            "has_results": self.result is not None,
            "has_baseline": self.baseline_result is not None,
            "scenario": self.scenario.name if self.scenario else None,
            "task_count": len(self.active_graph),
        }

    def get_histogram(self, bucket_count: Optional[int] = None) -> Optional[List[HistogramBucket]]:
        if self.result is None:
            return None
        if bucket_count is None:
            bucket_count = self.settings.histogram_buckets
        return self.analyzer.histogram(bucket_count)

    def get_percentile(self, confidence_level: float) -> Tuple[Optional[float], Optional[str]]:
        """Completion time at the given confidence level"""
        if self.result is None:
            return None, "No simulation results available"
        try:
            return self.analyzer.percentile(confidence_level), None
        except PulseSimError as e:
            return None, self.handle_error(e)[1]

    def compare_with_baseline(self) -> Optional[Dict[str, Dict[str, float]]]:
        """Summary statistics of baseline and active run side by side"""
        if self.result is None or self.baseline_result is None:
            return None
        return {
            "baseline": ResultAnalyzer(self.baseline_result).summary(),
            "scenario": self.analyzer.summary(),
        }
