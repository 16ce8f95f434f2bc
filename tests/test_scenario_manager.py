# tests/test_scenario_manager.py
import pytest

from scenario_manager import ScenarioManager


@pytest.fixture
def scenarios():
    return [
        ScenarioManager.create_scenario("Base", {}),
        ScenarioManager.create_scenario("Selective", {'graduation_rate': 0.15}),
    ]


def test_create_scenario_validates_config():
    with pytest.raises(ValueError):
        ScenarioManager.create_scenario("Broken", {'graduation_rate': 0})


def test_run_and_metrics(scenarios):
    scenario = scenarios[0]
    assert ScenarioManager.calculate_metrics(scenario) is None

    ok, message = ScenarioManager.run_scenario(scenario, num_simulations=80, seed=42)
    assert ok, message

    metrics = ScenarioManager.calculate_metrics(scenario)
    assert metrics['num_simulations'] == 80
    assert metrics['median_net_tvpi'] == pytest.approx(scenario['results'].summary.net_tvpi.p50)
    assert metrics['p10_net_tvpi'] <= metrics['median_net_tvpi'] <= metrics['p90_net_tvpi']
    # Second call is served from the cache
    assert ScenarioManager.calculate_metrics(scenario) is metrics


def test_run_scenario_reports_failure(scenarios):
    ok, message = ScenarioManager.run_scenario(scenarios[0], num_simulations=0)
    assert not ok
    assert "Error running simulation" in message
    assert scenarios[0]['results'] is None


def test_compare_scenarios(scenarios):
    for scenario in scenarios:
        ScenarioManager.run_scenario(scenario, num_simulations=50, seed=1)
    scenarios.append(ScenarioManager.create_scenario("Not run", {}))

    table = ScenarioManager.compare_scenarios(scenarios)
    assert list(table.index) == ["Base", "Selective"]
    assert 'median_net_tvpi' in table.columns
    assert 'prob_return_fund' in table.columns
