import numpy as np
import pytest

from pulsesim.analysis import ResultAnalyzer
from pulsesim.distributions import DurationSampler
from pulsesim.errors import BrokenInvariantError, InvalidParameterError
from pulsesim.model import Task, TaskGraph
from pulsesim.scenarios import ScenarioTransformer
from pulsesim.simulation import SimulationDriver, SimulationResult, run_simulation


class FailingSampler(DurationSampler):
    """Returns an impossible duration after a number of good draws"""

    def __init__(self, fail_after):
        super().__init__()
        self.fail_after = fail_after
        self.calls = 0

    def sample(self, task, rng):
        self.calls += 1
        if self.calls > self.fail_after:
            return -1.0
        return super().sample(task, rng)


@pytest.mark.parametrize("num_simulations", [0, -5, 2.5, "100", True, None])
def test_invalid_trial_count(chain_graph, num_simulations):
    with pytest.raises(InvalidParameterError):
        SimulationDriver(random_state=1).run(chain_graph, num_simulations)


@pytest.mark.parametrize("workers", [0, -1, 1.5])
def test_invalid_workers(workers):
    with pytest.raises(InvalidParameterError):
        SimulationDriver(workers=workers)


def test_run_rejects_non_graph():
    with pytest.raises(InvalidParameterError):
        SimulationDriver(random_state=1).run([Task(1, "Design", [], 1, 2, 3)], 10)


def test_end_to_end_three_phase(chain_graph):
    result = SimulationDriver(random_state=2024).run(chain_graph, 1000)
    analyzer = ResultAnalyzer(result)

    assert len(result.completion_times) == 1000
    assert result.num_simulations == 1000
    assert result.graph is chain_graph
    assert analyzer.minimum() >= 5 + 10 + 3
    assert analyzer.maximum() <= 20 + 25 + 10
    assert 18 < analyzer.percentile(50) < 55


def test_results_are_sorted_and_read_only(software_graph):
    result = SimulationDriver(random_state=5).run(software_graph, 300)
    times = result.completion_times
    assert np.all(times[1:] >= times[:-1])
    with pytest.raises(ValueError):
        times[0] = 0.0


def test_same_seed_same_result(software_graph):
    driver = SimulationDriver(random_state=42)
    first = driver.run(software_graph, 500)
    second = driver.run(software_graph, 500)
    assert first == second
    assert first is not second
    assert first.seed == 42


def test_different_seed_different_result(software_graph):
    first = SimulationDriver(random_state=1).run(software_graph, 200)
    second = SimulationDriver(random_state=2).run(software_graph, 200)
    assert not np.array_equal(first.completion_times, second.completion_times)


def test_generator_is_consumed(software_graph):
    driver = SimulationDriver(random_state=np.random.default_rng(9))
    first = driver.run(software_graph, 100)
    second = driver.run(software_graph, 100)
    assert not np.array_equal(first.completion_times, second.completion_times)
    assert first.seed is None


def test_single_trial(chain_graph):
    result = SimulationDriver(random_state=0).run(chain_graph, 1)
    assert result.completion_times.shape == (1,)


def test_workers_are_deterministic(software_graph):
    driver = SimulationDriver(random_state=7, workers=4)
    first = driver.run(software_graph, 1000)
    second = driver.run(software_graph, 1000)
    assert len(first.completion_times) == 1000
    assert np.all(np.diff(first.completion_times) >= 0)
    assert first == second


def test_uneven_batches(chain_graph):
    result = SimulationDriver(random_state=3, workers=3, batch_size=64).run(chain_graph, 1000)
    assert result.num_simulations == 1000
    assert ResultAnalyzer(result).minimum() >= 18


def test_failed_trial_aborts_run(chain_graph):
    driver = SimulationDriver(random_state=1, sampler=FailingSampler(fail_after=30))
    with pytest.raises(InvalidParameterError):
        driver.run(chain_graph, 100)


def test_failed_trial_aborts_threaded_run(chain_graph):
    driver = SimulationDriver(random_state=1, workers=2, sampler=FailingSampler(fail_after=0))
    with pytest.raises(InvalidParameterError):
        driver.run(chain_graph, 100)


def test_broken_graph_aborts_run():
    graph = TaskGraph([Task("A", "Alpha", [], 1, 2, 3), Task("B", "Beta", ["A"], 1, 2, 3)])
    graph._tasks["A"] = graph["A"].with_dependencies(["B"])
    with pytest.raises(BrokenInvariantError):
        SimulationDriver(random_state=1).run(graph, 10)


def test_track_tasks_on_chain(chain_graph):
    result = SimulationDriver(random_state=11, track_tasks=True).run(chain_graph, 400)
    stats = result.task_statistics
    assert set(stats) == {1, 2, 3}
    assert stats[1].mean_start == 0
    for task_id in (1, 2, 3):
        assert stats[task_id].criticality == pytest.approx(100.0)
    assert stats[2].mean_start == pytest.approx(stats[1].mean_finish)
    assert stats[3].mean_finish == pytest.approx(ResultAnalyzer(result).mean())


def test_track_tasks_with_workers_matches_trial_count(diamond_graph):
    result = SimulationDriver(random_state=11, workers=2, track_tasks=True).run(diamond_graph, 500)
    stats = result.task_statistics
    assert stats["A"].criticality == pytest.approx(100.0)
    assert stats["B"].criticality + stats["C"].criticality >= 100.0


def test_untracked_run_has_no_task_statistics(chain_graph):
    assert SimulationDriver(random_state=0).run(chain_graph, 10).task_statistics is None


def test_scale_by_one_matches_original(software_graph):
    scaled = ScenarioTransformer.scale_durations(software_graph, 1.0)
    assert scaled == software_graph
    base = ResultAnalyzer(SimulationDriver(random_state=21).run(software_graph, 2000))
    other = ResultAnalyzer(SimulationDriver(random_state=22).run(scaled, 2000))
    assert other.mean() == pytest.approx(base.mean(), rel=0.02)


def test_result_rejects_unsorted_times(chain_graph):
    with pytest.raises(BrokenInvariantError):
        SimulationResult(completion_times=np.array([3.0, 1.0]), num_simulations=2, graph=chain_graph)


def test_result_rejects_wrong_length(chain_graph):
    with pytest.raises(BrokenInvariantError):
        SimulationResult(completion_times=np.array([1.0, 2.0]), num_simulations=3, graph=chain_graph)


def test_run_simulation_helper(chain_graph):
    result = run_simulation(chain_graph, 50, random_state=4)
    assert result == SimulationDriver(random_state=4).run(chain_graph, 50)
