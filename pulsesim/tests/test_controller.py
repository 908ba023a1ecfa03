from unittest.mock import Mock

import pytest

from pulsesim.config import SimulationSettings
from pulsesim.controller import SimulationController
from pulsesim.errors import BrokenInvariantError, InvalidParameterError
from pulsesim.model import Task, TaskGraph
from pulsesim.utils import graph_to_records

@pytest.fixture
def simulation_controller():
    return SimulationController(settings=SimulationSettings(num_simulations=300, random_seed=17))

def test_default_model(simulation_controller):
    assert len(simulation_controller.model) == 8
    assert simulation_controller.active_graph is simulation_controller.model

def test_run_monte_carlo(simulation_controller):
    success, error = simulation_controller.run_monte_carlo()
    assert success and error is None
    assert simulation_controller.result.num_simulations == 300
    assert simulation_controller.baseline_result is simulation_controller.result
    assert simulation_controller.get_simulation_status()["has_results"]

def test_optimistic_scenario_finishes_earlier(simulation_controller):
    simulation_controller.run_monte_carlo(seed=5)
    baseline_median = simulation_controller.analyzer.median()

    success, _ = simulation_controller.apply_scenario("optimistic")
    assert success
    assert simulation_controller.result is None
    simulation_controller.run_monte_carlo(seed=5)

    assert simulation_controller.analyzer.median() < baseline_median
    comparison = simulation_controller.compare_with_baseline()
    assert comparison["scenario"]["median"] < comparison["baseline"]["median"]
    assert simulation_controller.baseline_result is not simulation_controller.result

def test_reset_scenario(simulation_controller):
    simulation_controller.apply_scenario("parallel-tasks", task_id=6)
    assert simulation_controller.active_graph.predecessors(6) == ()
    simulation_controller.reset_scenario()
    assert simulation_controller.active_graph.predecessors(6) == (4, 5)

def test_unknown_scenario(simulation_controller):
    success, error = simulation_controller.apply_scenario("bogus")
    assert not success
    assert error.startswith("Error: Unknown scenario")
    assert simulation_controller.scenario is None

def test_set_tasks_with_cycle(simulation_controller):
    before = simulation_controller.model
    success, error = simulation_controller.set_tasks([
        {"id": 1, "name": "A", "dependencies": [2], "optimistic": 1, "most_likely": 2, "pessimistic": 3},
        {"id": 2, "name": "B", "dependencies": [1], "optimistic": 1, "most_likely": 2, "pessimistic": 3},
    ])
    assert not success
    assert "Circular dependencies detected" in error
    assert simulation_controller.model is before

def test_set_tasks(simulation_controller, chain_graph):
    success, _ = simulation_controller.set_tasks(graph_to_records(chain_graph))
    assert success
    assert simulation_controller.model == chain_graph

def test_load_template(simulation_controller):
    simulation_controller.run_monte_carlo()
    assert simulation_controller.load_template("Marketing Campaign") == (True, None)
    assert len(simulation_controller.model) == 7
    assert simulation_controller.result is None

    success, error = simulation_controller.load_template("Moon Landing")
    assert not success
    assert "Unknown template" in error

def test_invalid_trial_count(simulation_controller):
    success, error = simulation_controller.run_monte_carlo(num_simulations=0)
    assert not success
    assert "Trial count" in error

def test_get_percentile(simulation_controller):
    assert simulation_controller.get_percentile(90) == (None, "No simulation results available")
    simulation_controller.run_monte_carlo()
    value, error = simulation_controller.get_percentile(90)
    assert error is None
    assert value == simulation_controller.analyzer.percentile(90)

    value, error = simulation_controller.get_percentile(150)
    assert value is None
    assert error.startswith("Error: Percentile")

def test_get_histogram(simulation_controller):
    assert simulation_controller.get_histogram() is None
    simulation_controller.run_monte_carlo()
    buckets = simulation_controller.get_histogram(5)
    assert sum(b.count for b in buckets) == 300

def test_observers_notified(simulation_controller):
    observer = Mock()
    simulation_controller.add_observer(observer)
    simulation_controller.run_monte_carlo(num_simulations=50)
    observer.on_model_change.assert_called_once_with(
        "monte_carlo_completed", {"num_simulations": 50, "scenario": None})

def test_broken_invariant_is_raised():
    graph = TaskGraph([Task("A", "Alpha", [], 1, 2, 3), Task("B", "Beta", ["A"], 1, 2, 3)])
    graph._tasks["A"] = graph["A"].with_dependencies(["B"])
    controller = SimulationController(graph, SimulationSettings(num_simulations=10, random_seed=1))
    with pytest.raises(BrokenInvariantError):
        controller.run_monte_carlo()

def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("PULSESIM_NUM_SIMULATIONS", "250")
    monkeypatch.setenv("PULSESIM_RANDOM_SEED", "3")
    monkeypatch.delenv("PULSESIM_WORKERS", raising=False)
    settings = SimulationSettings.from_env()
    assert settings.num_simulations == 250
    assert settings.random_seed == 3
    assert settings.workers == 1

def test_settings_from_env_rejects_text(monkeypatch):
    monkeypatch.setenv("PULSESIM_WORKERS", "many")
    with pytest.raises(ValueError, match="PULSESIM_WORKERS"):
        SimulationSettings.from_env()

def test_get_histogram_rejects_zero_buckets(simulation_controller):
    simulation_controller.run_monte_carlo()
    assert len(simulation_controller.get_histogram()) >= 1
    with pytest.raises(InvalidParameterError):
        simulation_controller.get_histogram(0)
