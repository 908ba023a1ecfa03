"""
Monte Carlo project-duration simulator.

Estimates how long a network of dependent tasks takes to finish when every
task duration is uncertain, by sampling 3-point estimates, resolving the
precedence graph per trial and aggregating completion times.
"""
from pulsesim.analysis import HistogramBucket, ResultAnalyzer
from pulsesim.distributions import DistributionType, DurationSampler
from pulsesim.errors import BrokenInvariantError, InvalidGraphError, InvalidParameterError, PulseSimError
from pulsesim.model import Task, TaskGraph
from pulsesim.project_templates import ProjectTemplates
from pulsesim.scenarios import Scenario, ScenarioTransformer
from pulsesim.scheduler import PathResolver, Schedule
from pulsesim.simulation import SimulationDriver, SimulationResult, run_simulation

__version__ = "0.1.0"

__all__ = [
    "BrokenInvariantError",
    "DistributionType",
    "DurationSampler",
    "HistogramBucket",
    "InvalidGraphError",
    "InvalidParameterError",
    "PathResolver",
    "ProjectTemplates",
    "PulseSimError",
    "ResultAnalyzer",
    "Scenario",
    "ScenarioTransformer",
    "Schedule",
    "SimulationDriver",
    "SimulationResult",
    "Task",
    "TaskGraph",
    "run_simulation",
]
