# run_all_simulations.py - Compare baseline against every what-if preset
import argparse
import logging
import sys
import time
from typing import Any, Dict, List, Optional

from pulsesim.analysis import ResultAnalyzer
from pulsesim.config import CONFIDENCE_LEVELS, SimulationSettings
from pulsesim.errors import PulseSimError
from pulsesim.model import TaskGraph, TaskId
from pulsesim.project_templates import ProjectTemplates
from pulsesim.scenarios import ScenarioTransformer
from pulsesim.simulation import SimulationDriver, SimulationResult

logger = logging.getLogger(__name__)


class SimulationTester:
    """Runs a template and its what-if scenarios and tabulates the outcomes"""

    def __init__(self, graph: TaskGraph, num_simulations: int, seed: Optional[int] = None,
                 workers: int = 1, target: Optional[float] = None):
        self.graph = graph
        self.num_simulations = num_simulations
        self.seed = seed
        self.workers = workers
        self.target = target

    def _run(self, graph: TaskGraph) -> Dict[str, Any]:
        start_time = time.time()
        driver = SimulationDriver(random_state=self.seed, workers=self.workers, track_tasks=True)
        result = driver.run(graph, self.num_simulations)
        analyzer = ResultAnalyzer(result)
        row = {
            "result": result,
            "mean": analyzer.mean(),
            "median": analyzer.median(),
            "std": analyzer.standard_deviation(),
            "ci90": analyzer.confidence_interval(90),
            "execution_time": time.time() - start_time,
        }
        if self.target is not None:
            row["on_time"] = analyzer.probability_of_completion_by(self.target)
        return row

    def scenario_parameters(self, baseline: SimulationResult) -> Dict[str, Dict[str, Any]]:
        """Pick preset targets from the baseline's most critical tasks"""
        stats = baseline.task_statistics
        ranked = sorted(self.graph.task_ids, key=lambda task_id: -stats[task_id].criticality)
        critical: List[TaskId] = [task_id for task_id in ranked if stats[task_id].criticality >= 50.0]

        params = {"optimistic": {}, "pessimistic": {}}
        if critical:
            params["add-resources"] = {"task_ids": critical}
        # Drop dependencies of the most critical task that has any
        for task_id in ranked:
            if self.graph.predecessors(task_id):
                params["parallel-tasks"] = {"task_id": task_id}
                break
        return params

    def run_comprehensive_test(self) -> Dict[str, Dict[str, Any]]:
        """Run the baseline and every applicable preset"""
        results = {"baseline": self._run(self.graph)}
        params = self.scenario_parameters(results["baseline"]["result"])

        for name in ScenarioTransformer.get_available_scenarios():
            if name not in params:
                logger.info("Skipping %s: no applicable tasks", name)
                continue
            scenario = ScenarioTransformer.build_scenario(self.graph, name, **params[name])
            results[name] = self._run(scenario.graph)
        return results

    def print_comparison_table(self, results: Dict[str, Dict[str, Any]]):
        """Print a comparison table of all runs"""
        print("\n" + "=" * 90)
        print(f"SCENARIO COMPARISON ({self.num_simulations} trials each)")
        print("=" * 90)

        header = f"{'Scenario':<16} | {'Mean':<8} | {'Median':<8} | {'Std Dev':<8} | {'90% CI':<16}"
        if self.target is not None:
            header += f" | {'On time':<8}"
        header += f" | {'Time':<8}"
        print(header)
        print("-" * 90)

        for name, row in results.items():
            low, high = row["ci90"]
            line = (f"{name:<16} | {row['mean']:<8.1f} | {row['median']:<8.1f} | "
                    f"{row['std']:<8.2f} | {f'[{low:.1f}, {high:.1f}]':<16}")
            if self.target is not None:
                line += f" | {row['on_time']:<7.1f}%"
            line += f" | {row['execution_time']:<7.3f}s"
            print(line)
        print("=" * 90)

    def print_critical_path_analysis(self, baseline: SimulationResult):
        print("\nCRITICAL PATH ANALYSIS (baseline)")
        print("-" * 40)
        for task in self.graph:
            crit_pct = baseline.task_statistics[task.id].criticality
            if crit_pct > 0:
                print(f"  {task.name:<28} {crit_pct:5.1f}% critical")

    def print_percentiles(self, baseline: SimulationResult):
        analyzer = ResultAnalyzer(baseline)
        print("\nCONFIDENCE LEVELS (baseline)")
        print("-" * 40)
        for level in CONFIDENCE_LEVELS:
            print(f"  P{level}: {analyzer.percentile(level):.1f} days")


def main(argv=None):
    """Main runner"""
    settings = SimulationSettings.from_env()

    parser = argparse.ArgumentParser(description="Monte Carlo what-if comparison for a project template")
    parser.add_argument("--template", type=str, default="Software Development (Default)",
                        choices=ProjectTemplates.get_available_templates())
    parser.add_argument("--simulations", type=int, default=settings.num_simulations,
                        help="Trials per scenario")
    parser.add_argument("--seed", type=int, default=settings.random_seed, help="Random seed")
    parser.add_argument("--workers", type=int, default=settings.workers, help="Worker threads")
    parser.add_argument("--target", type=float, help="Target completion (days) for on-time probability")
    parser.add_argument("--verbose", action="store_true", help="Verbose output")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        graph = ProjectTemplates.get_template(args.template)
        tester = SimulationTester(graph, args.simulations, seed=args.seed,
                                  workers=args.workers, target=args.target)
        results = tester.run_comprehensive_test()
    except PulseSimError as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    tester.print_comparison_table(results)
    tester.print_critical_path_analysis(results["baseline"]["result"])
    tester.print_percentiles(results["baseline"]["result"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
