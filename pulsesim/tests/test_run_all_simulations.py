from pulsesim.project_templates import ProjectTemplates
from pulsesim.run_all_simulations import SimulationTester, main


def test_main_prints_comparison(capsys):
    assert main(["--simulations", "200", "--seed", "3", "--target", "60"]) == 0
    out = capsys.readouterr().out
    assert "SCENARIO COMPARISON (200 trials each)" in out
    for name in ("baseline", "optimistic", "pessimistic", "add-resources", "parallel-tasks"):
        assert name in out
    assert "On time" in out
    assert "CRITICAL PATH ANALYSIS" in out
    assert "P90:" in out


def test_main_threaded_template(capsys):
    assert main(["--template", "Three-Phase Delivery", "--simulations", "100",
                 "--seed", "1", "--workers", "2"]) == 0
    assert "Design" in capsys.readouterr().out


def test_main_rejects_bad_trial_count(capsys):
    assert main(["--simulations", "0"]) == 1
    assert "Trial count" in capsys.readouterr().err


def test_scenario_parameters():
    graph = ProjectTemplates.get_template("Three-Phase Delivery")
    tester = SimulationTester(graph, 100, seed=2)
    baseline = tester.run_comprehensive_test()["baseline"]["result"]
    params = tester.scenario_parameters(baseline)
    assert params["add-resources"] == {"task_ids": [1, 2, 3]}
    assert params["parallel-tasks"] == {"task_id": 2}
    assert params["optimistic"] == {}
